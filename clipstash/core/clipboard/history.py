"""Clipboard history management with move-to-top deduplication"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
from typing import Callable, Dict, List, Optional, TYPE_CHECKING

from loguru import logger

from .monitor import ClipboardMonitor
from ..item import ClipItem, normalize_content
from ..storage import StorageBackend, create_storage

if TYPE_CHECKING:
    from ...utils.config_manager import ConfigManager

ItemsObserver = Callable[[List[ClipItem]], None]

MAX_ITEMS = 100


class StoreState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class HistoryStore:
    """
    Owns the ordered clipboard history, newest first.

    Every read and mutation of the list goes through one re-entrant lock, so
    the monitor thread, persistence completions and UI callers never
    interleave. Observers are called while that lock is held, right after
    each mutation and before the matching save has run. Persistence happens
    on a single background worker: the initial load is its first job and
    saves follow in the order they were requested.

    Mutations made while the initial load is still running are kept: the
    loaded snapshot is merged behind them once it arrives, unless the
    history was cleared in the meantime, in which case it is discarded.

    Observers must not call clear_all_and_storage() or stop_monitoring(),
    both of which wait on other threads.
    """

    def __init__(self, storage: Optional[StorageBackend] = None,
                 monitor: Optional[ClipboardMonitor] = None,
                 max_items: int = MAX_ITEMS):
        """
        Initialize the store and start loading persisted history

        Args:
            storage: Persistence backend (defaults to the fallback chain)
            monitor: Clipboard monitor (defaults to polling the system clipboard)
            max_items: Maximum number of retained items
        """
        if max_items < 1:
            raise ValueError("max_items must be at least 1")

        self.max_items = max_items
        self.storage = storage if storage is not None else create_storage()
        self.monitor = monitor if monitor is not None else ClipboardMonitor()

        self._items: List[ClipItem] = []
        self._observers: List[ItemsObserver] = []
        self._lock = threading.RLock()
        self._ready = threading.Event()
        self._state = StoreState.UNINITIALIZED
        self._is_loading = False
        self._cleared_while_loading = False
        self._save_pending = False
        self._save_queued = False
        self._closing = False
        self._closed = False
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="HistoryPersistence")
        self.monitor.on_text_detected = self._on_text_detected

        logger.info(f"HistoryStore initialized (max_items={max_items}, storage={self.storage.name})")
        self._begin_load()

    @classmethod
    def from_config(cls, config: 'ConfigManager') -> 'HistoryStore':
        """
        Build storage, monitor and store from configuration

        Args:
            config: Loaded configuration manager

        Returns:
            New store (not yet monitoring)
        """
        storage_dir = config.get('storage.directory') or config.data_dir
        storage = create_storage(
            backends=config.get('storage.backends'),
            data_dir=storage_dir,
            options={
                'database_file': config.get('storage.database_file'),
                'json_file': config.get('storage.json_file'),
            }
        )
        monitor = ClipboardMonitor(check_interval=config.get('clipboard.check_interval', 500))
        return cls(storage=storage, monitor=monitor,
                   max_items=config.get('history.max_items', MAX_ITEMS))

    # Loading

    def _begin_load(self) -> None:
        with self._lock:
            self._state = StoreState.LOADING
            self._is_loading = True
        self._executor.submit(self._load)

    def _load(self) -> None:
        """Initial load, runs as the first persistence job"""
        loaded: Optional[List[ClipItem]]
        try:
            loaded = list(self.storage.load_items())
        except Exception as e:
            logger.error(f"Failed to load clipboard history: {e}")
            loaded = None

        with self._lock:
            if loaded is not None:
                if self._cleared_while_loading:
                    logger.info(f"Discarded {len(loaded)} loaded items; history was cleared while loading")
                else:
                    self._items = self._merge_loaded(loaded)
                    logger.info(f"Loaded {len(loaded)} items, history now has {len(self._items)}")

            self._is_loading = False
            self._cleared_while_loading = False
            self._state = StoreState.READY

            if self._save_pending:
                self._save_pending = False
                self._schedule_save()

            self._notify_observers()

        self._ready.set()

    def _merge_loaded(self, loaded: List[ClipItem]) -> List[ClipItem]:
        """Place loaded items behind anything added while loading"""
        merged = list(self._items)
        seen = {item.content for item in merged}

        for item in loaded:
            if item.content in seen:
                continue
            seen.add(item.content)
            merged.append(item)

        return merged[:self.max_items]

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the initial load has settled

        Args:
            timeout: Seconds to wait, None waits forever

        Returns:
            True if the store is ready
        """
        return self._ready.wait(timeout)

    # Observers

    def subscribe(self, observer: ItemsObserver) -> Callable[[], None]:
        """
        Register a callback receiving the full snapshot after each change

        Args:
            observer: Called with the ordered list of items

        Returns:
            Function that removes the subscription
        """
        with self._lock:
            if observer not in self._observers:
                self._observers.append(observer)

        return lambda: self.unsubscribe(observer)

    def unsubscribe(self, observer: ItemsObserver) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def _notify_observers(self) -> None:
        """Deliver the current snapshot, caller holds the lock"""
        observers = list(self._observers)
        for observer in observers:
            try:
                observer(list(self._items))
            except Exception as e:
                logger.error(f"Error in history observer {getattr(observer, '__name__', observer)}: {e}")

    # Persistence

    def _schedule_save(self) -> None:
        """Queue a save of the latest snapshot, caller holds the lock"""
        if self._closed:
            return

        if self._is_loading:
            # Written once the load settles, never before storage was read
            self._save_pending = True
            return

        if self._save_queued:
            return

        self._save_queued = True
        self._executor.submit(self._save_latest)

    def _save_latest(self) -> None:
        with self._lock:
            self._save_queued = False
            snapshot = list(self._items)

        try:
            saved = self.storage.save_items(snapshot)
        except Exception as e:
            logger.error(f"Failed to save clipboard history: {e}")
            return

        if saved:
            logger.debug(f"Persisted {len(snapshot)} items")
        else:
            logger.warning("Clipboard history was not persisted; in-memory history is unaffected")

    def _clear_storage(self) -> bool:
        try:
            return bool(self.storage.clear_storage())
        except Exception as e:
            logger.error(f"Failed to clear clipboard storage: {e}")
            return False

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the initial load and every persistence job queued so far

        Args:
            timeout: Seconds to wait for each phase, None waits forever

        Returns:
            True if all queued work finished in time
        """
        if not self._ready.wait(timeout):
            return False

        with self._lock:
            if self._closed:
                return True
            marker: Future = self._executor.submit(lambda: None)

        try:
            marker.result(timeout)
            return True
        except FutureTimeoutError:
            return False

    def close(self) -> None:
        """Stop monitoring, finish pending persistence and release storage"""
        with self._lock:
            if self._closing:
                return
            self._closing = True

        self.stop_monitoring()
        self.flush()

        with self._lock:
            self._closed = True

        self._executor.shutdown(wait=True)
        self.storage.close()
        logger.info("HistoryStore closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # Mutations

    def add_item(self, content: str, metadata: Optional[Dict[str, str]] = None) -> Optional[ClipItem]:
        """
        Add clipboard text to the front of the history

        Args:
            content: Clipboard text, trimmed before use
            metadata: Optional source application details

        Returns:
            The new item, or None if the text was empty or already newest
        """
        normalized = normalize_content(content)
        if normalized is None:
            return None

        with self._lock:
            if self._items and self._items[0].content == normalized:
                return None

            self._items = [item for item in self._items if item.content != normalized]

            new_item = ClipItem.create(normalized, metadata)
            self._items.insert(0, new_item)

            if len(self._items) > self.max_items:
                del self._items[self.max_items:]

            logger.debug(f"Added item {new_item.id} ({len(normalized)} chars), count={len(self._items)}")
            self._notify_observers()
            self._schedule_save()
            return new_item

    def remove_item(self, item: ClipItem) -> bool:
        """
        Remove an item by identity

        Returns:
            True if the item was present
        """
        with self._lock:
            for index, existing in enumerate(self._items):
                if existing.id == item.id:
                    return self._remove_at(index)
            return False

    def remove_item_at(self, index: int) -> bool:
        """
        Remove the item at a position, out-of-range indexes are ignored

        Returns:
            True if an item was removed
        """
        with self._lock:
            if index < 0 or index >= len(self._items):
                return False
            return self._remove_at(index)

    def _remove_at(self, index: int) -> bool:
        removed = self._items.pop(index)
        logger.debug(f"Removed item {removed.id}, count={len(self._items)}")
        self._notify_observers()
        self._schedule_save()
        return True

    def clear_all(self) -> None:
        """Clear all history; storage is emptied in the background"""
        with self._lock:
            self._clear_items()
            self._schedule_save()
        logger.info("Clipboard history cleared")

    def clear_all_and_storage(self) -> bool:
        """
        Clear all history and wait until persisted data is gone too

        Returns:
            True if the backend reported success
        """
        with self._lock:
            self._clear_items()
            self._save_pending = False
            if self._closed:
                future = None
            else:
                future = self._executor.submit(self._clear_storage)

        cleared = future.result() if future is not None else self._clear_storage()
        logger.info(f"Clipboard history and storage cleared (storage ok={cleared})")
        return cleared

    def _clear_items(self) -> None:
        self._items.clear()
        if self._is_loading:
            self._cleared_while_loading = True
        self._notify_observers()

    # Queries

    @property
    def items(self) -> List[ClipItem]:
        """Snapshot of the history, newest first"""
        with self._lock:
            return list(self._items)

    def item_with_id(self, item_id: str) -> Optional[ClipItem]:
        with self._lock:
            for item in self._items:
                if item.id == item_id:
                    return item
            return None

    def contains(self, content: str) -> bool:
        normalized = normalize_content(content)
        if normalized is None:
            return False

        with self._lock:
            return any(item.content == normalized for item in self._items)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return not self._items

    @property
    def most_recent_item(self) -> Optional[ClipItem]:
        with self._lock:
            return self._items[0] if self._items else None

    def __len__(self):
        return self.count

    # Monitoring

    def _on_text_detected(self, content: str, metadata: Dict[str, str]) -> None:
        self.add_item(content, metadata or None)

    def start_monitoring(self) -> None:
        self.monitor.start()

    def stop_monitoring(self) -> None:
        self.monitor.stop()

    @property
    def is_monitoring(self) -> bool:
        return self.monitor.is_running

    def copy_to_clipboard(self, item: ClipItem) -> bool:
        """
        Put an item's text back on the system clipboard.

        The monitor will see the change; since the text is already present
        the history just moves it to the front or leaves it there.

        Returns:
            True if the clipboard accepted the text
        """
        return self.monitor.write_text(item.content)
