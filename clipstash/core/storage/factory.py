"""Backend selection with graceful fallback"""

from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Union

from loguru import logger

from .base import StorageBackend
from .database import DatabaseStorage
from .json_storage import JSONFileStorage
from .memory import InMemoryStorage

DEFAULT_BACKENDS = ('sqlite', 'json', 'memory')
DEFAULT_DATABASE_FILE = 'clipboard_history.sqlite'
DEFAULT_JSON_FILE = 'clipboard_history.json'

# factory(data_dir, options) -> backend
BackendFactory = Callable[[Path, Dict[str, str]], StorageBackend]


def _sqlite_factory(data_dir: Path, options: Dict[str, str]) -> StorageBackend:
    return DatabaseStorage(data_dir / (options.get('database_file') or DEFAULT_DATABASE_FILE))


def _json_factory(data_dir: Path, options: Dict[str, str]) -> StorageBackend:
    return JSONFileStorage(data_dir / (options.get('json_file') or DEFAULT_JSON_FILE))


def _memory_factory(data_dir: Path, options: Dict[str, str]) -> StorageBackend:
    return InMemoryStorage()


_FACTORIES: Dict[str, BackendFactory] = {
    'sqlite': _sqlite_factory,
    'json': _json_factory,
    'memory': _memory_factory,
}


def register_backend(name: str, factory: BackendFactory) -> None:
    """
    Make an additional backend selectable by name

    Args:
        name: Name used in the storage.backends setting
        factory: Callable building the backend from (data_dir, options)
    """
    _FACTORIES[name] = factory
    logger.debug(f"Registered storage backend: {name}")


def create_storage(backends: Optional[Iterable[str]] = None,
                   data_dir: Union[str, Path, None] = None,
                   options: Optional[Dict[str, str]] = None) -> StorageBackend:
    """
    Build the first backend in priority order that initializes

    Args:
        backends: Backend names to try, highest priority first
        data_dir: Directory for file based backends
        options: Extra settings such as database_file / json_file

    Returns:
        The selected backend; in-memory storage when everything else fails
    """
    names = list(backends) if backends is not None else list(DEFAULT_BACKENDS)
    if 'memory' not in names:
        names.append('memory')

    if data_dir is None:
        from ...utils.config_manager import get_data_dir
        data_dir = get_data_dir()
    data_dir = Path(data_dir)
    options = options or {}

    for name in names:
        factory = _FACTORIES.get(name)
        if factory is None:
            logger.warning(f"Unknown storage backend '{name}', skipping")
            continue

        try:
            backend = factory(data_dir, options)
        except Exception as e:
            logger.warning(f"Storage backend '{name}' unavailable, trying next: {e}")
            continue

        if name == 'memory' and name != names[0]:
            logger.warning("Falling back to in-memory storage; history will not survive restarts")
        logger.info(f"Using storage backend: {name}")
        return backend

    # Only reachable if the memory factory itself was replaced and failed
    logger.error("All storage backends failed; using in-memory storage")
    return InMemoryStorage()
