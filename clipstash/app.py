"""Headless clipboard history application"""

import signal
import sys
import threading
from typing import List, Optional

from loguru import logger

from .core import ClipItem
from .core.clipboard import HistoryStore
from .utils import ConfigManager, setup_logging


class ClipStashApp:
    """Composition root: builds the single history store and runs it"""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize application

        Args:
            config_path: Optional settings file location
        """
        self.config_path = config_path
        self.config_manager: Optional[ConfigManager] = None
        self.history: Optional[HistoryStore] = None

        self._shutdown_event = threading.Event()
        self._shutdown_lock = threading.Lock()
        self._shut_down = False

    def _setup_logging(self):
        """Configure logging"""
        setup_logging(
            level=self.config_manager.get('logging.level', 'INFO'),
            log_dir=self.config_manager.data_dir / 'logs',
            file_logging=self.config_manager.get('logging.file_logging', True),
            rotation=self.config_manager.get('logging.rotation', '1 day'),
            retention=self.config_manager.get('logging.retention', '7 days')
        )

    def initialize(self) -> bool:
        """Initialize all components"""
        try:
            self.config_manager = ConfigManager(self.config_path)
            self._setup_logging()

            logger.info("=" * 60)
            logger.info("ClipStash Starting")
            logger.info("=" * 60)

            if not self.config_manager.validate():
                logger.error("Invalid configuration")
                return False

            logger.info("Initializing clipboard history...")
            self.history = HistoryStore.from_config(self.config_manager)
            self.history.subscribe(self._on_history_changed)

            logger.info("Application initialized successfully")
            return True

        except Exception as e:
            logger.error(f"Failed to initialize application: {e}")
            return False

    def _on_history_changed(self, items: List[ClipItem]):
        """Log history changes"""
        newest = items[0].preview[:40] if items else "-"
        logger.debug(f"History updated: {len(items)} items, newest: {newest!r}")

    def start(self):
        """Start monitoring and block until shutdown"""
        if self.config_manager.get('clipboard.auto_start', True):
            self.history.start_monitoring()

        logger.info("ClipStash running. Press Ctrl+C to exit.")
        self._shutdown_event.wait()

    def shutdown(self):
        """Shutdown the application"""
        with self._shutdown_lock:
            if self._shut_down:
                return
            self._shut_down = True

        logger.info("Shutting down application...")

        try:
            if self.history:
                self.history.close()

            logger.info("Application shutdown complete")

        except Exception as e:
            logger.error(f"Error during shutdown: {e}")

        finally:
            self._shutdown_event.set()


def main():
    """Main entry point"""
    app = ClipStashApp()

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}")
        threading.Thread(target=app.shutdown, name="Shutdown", daemon=True).start()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if not app.initialize():
        logger.error("Failed to initialize application")
        sys.exit(1)

    app.start()
