"""Clipboard monitoring service for real-time clipboard content detection"""

import threading
from enum import Enum
from typing import Callable, Dict, List, Optional

from loguru import logger

from .source import ClipboardSource, get_clipboard_source

# Receives the text and the source application metadata
TextCallback = Callable[[str, Dict[str, str]], None]


class MonitorState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class ClipboardMonitor:
    """Polls the clipboard change counter and reports new plain text"""

    def __init__(self, source: Optional[ClipboardSource] = None, check_interval: int = 500,
                 on_text_detected: Optional[TextCallback] = None):
        """
        Initialize clipboard monitor

        Args:
            source: Clipboard access (defaults to the platform source)
            check_interval: Check interval in milliseconds
            on_text_detected: Primary callback receiving new clipboard text
                and the source application metadata
        """
        self.source = source if source is not None else get_clipboard_source()
        self.check_interval = check_interval / 1000.0  # Convert to seconds
        self.on_text_detected = on_text_detected
        self._state = MonitorState.STOPPED
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._last_change_count: Optional[int] = None
        self._callbacks: List[TextCallback] = []
        self._lock = threading.RLock()
        # Held for a whole tick so stop() can wait out an in-flight dispatch
        self._tick_lock = threading.RLock()

        logger.info(f"ClipboardMonitor initialized with {check_interval}ms interval")

    def add_callback(self, callback: TextCallback) -> None:
        """
        Add a callback for clipboard changes

        Args:
            callback: Function called with the new clipboard text and its
                source application metadata
        """
        with self._lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)
            logger.debug(f"Added callback: {getattr(callback, '__name__', callback)}")

    def remove_callback(self, callback: TextCallback) -> None:
        """Remove a callback"""
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
            logger.debug(f"Removed callback: {getattr(callback, '__name__', callback)}")

    def start(self) -> None:
        """Start monitoring the clipboard"""
        with self._lock:
            if self._state is MonitorState.RUNNING:
                logger.warning("Monitor already running")
                return

            with self._tick_lock:
                self._last_change_count = self.source.change_count()
                self._stop_event.clear()

            self._state = MonitorState.RUNNING
            self._thread = threading.Thread(
                target=self._monitor_loop, name="ClipboardMonitor", daemon=True
            )
            self._thread.start()
            logger.info("Clipboard monitoring started")

    def stop(self) -> None:
        """
        Stop monitoring the clipboard.

        No callback fires after this returns. Do not call it while holding a
        lock that a callback needs, since it waits for an in-flight tick.
        """
        with self._lock:
            if self._state is MonitorState.STOPPED:
                logger.debug("Monitor not running")
                return

            self._state = MonitorState.STOPPED
            self._stop_event.set()
            thread, self._thread = self._thread, None

        # Waits for a tick that is dispatching on another thread
        with self._tick_lock:
            pass

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5.0)

        logger.info("Clipboard monitoring stopped")

    def _monitor_loop(self) -> None:
        """Main monitoring loop"""
        logger.debug("Monitor loop started")

        while not self._stop_event.wait(self.check_interval):
            try:
                self.check_for_changes()
            except Exception as e:
                logger.error(f"Error in monitor loop: {e}")

        logger.debug("Monitor loop ended")

    def check_for_changes(self) -> bool:
        """
        Run one poll tick

        Returns:
            True if new text was reported to the callbacks
        """
        with self._tick_lock:
            if self._stop_event.is_set():
                return False

            change_count = self.source.change_count()
            if change_count is None:
                return False

            if self._last_change_count is None:
                self._last_change_count = change_count
                return False

            if change_count == self._last_change_count:
                return False

            # Recorded before reading so one external change is never reprocessed
            self._last_change_count = change_count

            content = self.source.read_text()
            if not content or not content.strip():
                return False

            self._notify_callbacks(content, self._capture_source_app())
            return True

    def _capture_source_app(self) -> Dict[str, str]:
        try:
            return dict(self.source.source_app())
        except Exception as e:
            logger.debug(f"Source application lookup failed: {e}")
            return {}

    def _notify_callbacks(self, content: str, metadata: Dict[str, str]) -> None:
        """
        Notify all callbacks of clipboard change

        Args:
            content: New clipboard content
            metadata: Source application details, possibly empty
        """
        with self._lock:
            callbacks = list(self._callbacks)
        if self.on_text_detected is not None:
            callbacks.insert(0, self.on_text_detected)

        for callback in callbacks:
            if self._stop_event.is_set():
                break
            try:
                callback(content, dict(metadata))
            except Exception as e:
                logger.error(f"Error in callback {getattr(callback, '__name__', callback)}: {e}")

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if monitor is running"""
        return self._state is MonitorState.RUNNING

    def get_current_content(self) -> Optional[str]:
        """Get current clipboard content"""
        return self.source.read_text()

    def write_text(self, text: str) -> bool:
        """Put text on the clipboard through the monitored source"""
        return self.source.write_text(text)
