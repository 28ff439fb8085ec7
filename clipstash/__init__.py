"""Local clipboard history with durable, non-blocking persistence"""

from .core import ClipItem, InvalidContentError
from .core.clipboard import ClipboardMonitor, HistoryStore, MonitorState, StoreState
from .core.storage import (
    DatabaseStorage, InMemoryStorage, JSONFileStorage, StorageBackend, create_storage
)

__version__ = "0.1.0"

__all__ = [
    'ClipItem', 'InvalidContentError', 'ClipboardMonitor', 'HistoryStore', 'MonitorState',
    'StoreState', 'StorageBackend', 'DatabaseStorage', 'JSONFileStorage', 'InMemoryStorage',
    'create_storage'
]
