"""Non-persistent storage backend"""

import threading
from typing import List, Sequence

from .base import StorageBackend
from ..item import ClipItem


class InMemoryStorage(StorageBackend):
    """Keeps the last saved snapshot in process memory only"""

    name = "memory"

    def __init__(self):
        self._items: List[ClipItem] = []
        self._lock = threading.Lock()

    def load_items(self) -> List[ClipItem]:
        with self._lock:
            return list(self._items)

    def save_items(self, items: Sequence[ClipItem]) -> bool:
        with self._lock:
            self._items = list(items)
        return True

    def clear_storage(self) -> bool:
        with self._lock:
            self._items.clear()
        return True
