"""Data persistence and storage management"""

from .base import StorageBackend
from .database import DatabaseStorage
from .errors import StorageError, StorageIOError, StorageUnavailableError
from .factory import create_storage, register_backend
from .json_storage import JSONFileStorage
from .memory import InMemoryStorage

__all__ = [
    'StorageBackend', 'DatabaseStorage', 'JSONFileStorage', 'InMemoryStorage',
    'StorageError', 'StorageIOError', 'StorageUnavailableError',
    'create_storage', 'register_backend'
]
