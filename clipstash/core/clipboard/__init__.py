"""Clipboard monitoring and history management"""

from .monitor import ClipboardMonitor, MonitorState
from .history import HistoryStore, StoreState, MAX_ITEMS
from .source import ClipboardSource, PyperclipSource, get_clipboard_source

__all__ = [
    'ClipboardMonitor', 'MonitorState', 'HistoryStore', 'StoreState', 'MAX_ITEMS',
    'ClipboardSource', 'PyperclipSource', 'get_clipboard_source'
]
