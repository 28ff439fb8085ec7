"""Flat JSON file storage backend"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import List, Sequence, Union

from loguru import logger

from .base import StorageBackend
from .errors import StorageIOError, StorageUnavailableError
from ..item import ClipItem


class JSONFileStorage(StorageBackend):
    """Stores the whole history as one JSON array of records"""

    name = "json"

    def __init__(self, file_path: Union[str, Path]):
        """
        Initialize file storage

        Args:
            file_path: Location of the JSON file

        Raises:
            StorageUnavailableError: If the parent directory is not writable
        """
        self.file_path = Path(file_path)
        self._write_lock = threading.Lock()

        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot create {self.file_path.parent}: {e}") from e

        if not os.access(self.file_path.parent, os.W_OK):
            raise StorageUnavailableError(f"Directory not writable: {self.file_path.parent}")

        logger.info(f"JSON storage initialized at: {self.file_path}")

    def _read_records(self) -> list:
        if not self.file_path.exists():
            return []

        try:
            raw = self.file_path.read_text(encoding='utf-8')
        except UnicodeDecodeError as e:
            raise StorageIOError(f"History file {self.file_path} is not UTF-8: {e}") from e

        if not raw.strip():
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageIOError(f"Corrupt history file {self.file_path}: {e}") from e

        if not isinstance(data, list):
            raise StorageIOError(f"Unexpected history file layout in {self.file_path}")

        return data

    def load_items(self) -> List[ClipItem]:
        try:
            records = self._read_records()
        except (OSError, StorageIOError) as e:
            logger.error(f"Failed to load items from {self.file_path}: {e}")
            return []

        items = []
        for record in records:
            try:
                items.append(ClipItem.from_record(record))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.error(f"Skipping unreadable record: {e}")

        logger.debug(f"Loaded {len(items)} items from {self.file_path.name}")
        return items

    def save_items(self, items: Sequence[ClipItem]) -> bool:
        records = [item.to_record() for item in items]

        with self._write_lock:
            tmp_path = None
            try:
                fd, tmp_path = tempfile.mkstemp(
                    dir=str(self.file_path.parent),
                    prefix=f".{self.file_path.name}.",
                    suffix='.tmp'
                )
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(records, f, indent=2, sort_keys=True, ensure_ascii=False)

                os.replace(tmp_path, self.file_path)
                logger.debug(f"Saved {len(records)} items to {self.file_path.name}")
                return True

            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Failed to save items to {self.file_path}: {e}")
                if tmp_path and os.path.exists(tmp_path):
                    os.remove(tmp_path)
                return False

    def clear_storage(self) -> bool:
        with self._write_lock:
            try:
                if self.file_path.exists():
                    self.file_path.unlink()
                logger.info(f"Removed history file {self.file_path}")
                return True

            except OSError as e:
                logger.error(f"Failed to remove {self.file_path}: {e}")
                return False
