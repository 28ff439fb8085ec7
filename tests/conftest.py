import threading
from typing import Dict, List, Optional, Sequence

import pytest

from clipstash.core import ClipItem
from clipstash.core.clipboard import ClipboardMonitor, ClipboardSource, HistoryStore
from clipstash.core.storage import InMemoryStorage


class FakeClipboardSource(ClipboardSource):
    """Clipboard whose counter and text are driven by the test"""

    def __init__(self, text: Optional[str] = None):
        self.counter = 0
        self.text = text
        self.available = True
        self.reads = 0
        self.app: Dict[str, str] = {}

    def copy(self, text: Optional[str]) -> None:
        self.text = text
        self.counter += 1

    def change_count(self) -> Optional[int]:
        return self.counter if self.available else None

    def read_text(self) -> Optional[str]:
        self.reads += 1
        return self.text if self.available else None

    def write_text(self, text: str) -> bool:
        self.copy(text)
        return True

    def source_app(self) -> Dict[str, str]:
        return dict(self.app)


class RecordingStorage(InMemoryStorage):
    """In-memory backend that records calls and can fail or stall on demand"""

    name = "recording"

    def __init__(self, initial: Sequence[ClipItem] = (), fail_load: bool = False,
                 fail_save: bool = False):
        super().__init__()
        self._items = list(initial)
        self.fail_load = fail_load
        self.fail_save = fail_save
        self.load_gate = threading.Event()
        self.load_gate.set()
        self.calls: List[str] = []
        self.saved_snapshots: List[List[ClipItem]] = []
        self.closed = False

    def load_items(self) -> List[ClipItem]:
        self.calls.append('load')
        self.load_gate.wait(5)
        if self.fail_load:
            raise OSError("disk on fire")
        return super().load_items()

    def save_items(self, items: Sequence[ClipItem]) -> bool:
        self.calls.append('save')
        if self.fail_save:
            raise OSError("disk full")
        self.saved_snapshots.append(list(items))
        return super().save_items(items)

    def clear_storage(self) -> bool:
        self.calls.append('clear')
        return super().clear_storage()

    @property
    def stored(self) -> List[ClipItem]:
        return super().load_items()

    def close(self) -> None:
        self.closed = True


def make_items(count: int, prefix: str = "Item") -> List[ClipItem]:
    """Newest-first synthetic history: prefix count .. prefix 1"""
    return [ClipItem.create(f"{prefix} {i}") for i in range(count, 0, -1)]


@pytest.fixture
def clipboard() -> FakeClipboardSource:
    return FakeClipboardSource()


@pytest.fixture
def monitor(clipboard) -> ClipboardMonitor:
    monitor = ClipboardMonitor(source=clipboard, check_interval=10)
    yield monitor
    monitor.stop()


@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
def store_factory(monitor):
    """Build ready stores and close them after the test"""
    stores = []

    def factory(storage=None, wait=True, **kwargs) -> HistoryStore:
        store = HistoryStore(
            storage=storage if storage is not None else RecordingStorage(),
            monitor=kwargs.pop('monitor', monitor),
            **kwargs
        )
        stores.append(store)
        if wait:
            assert store.wait_until_ready(5)
        return store

    yield factory

    for store in stores:
        store.close()


@pytest.fixture
def store(store_factory, storage) -> HistoryStore:
    return store_factory(storage)


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    path = tmp_path / "clipstash"
    monkeypatch.setenv("CLIPSTASH_HOME", str(path))
    return path
