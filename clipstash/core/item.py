"""Clipboard history item value type"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..utils.ids import new_item_id


PREVIEW_LENGTH = 80


class InvalidContentError(ValueError):
    """Raised when an item would be created from empty or whitespace-only text"""


def normalize_content(content: Optional[str]) -> Optional[str]:
    """
    Trim surrounding whitespace and newlines

    Args:
        content: Raw clipboard text

    Returns:
        Trimmed text, or None if nothing is left
    """
    if not content:
        return None

    trimmed = content.strip()
    return trimmed or None


@dataclass(frozen=True, eq=False)
class ClipItem:
    """Single immutable clipboard snapshot"""
    id: str
    content: str
    captured_at: datetime
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def create(cls, content: str, metadata: Optional[Dict[str, str]] = None) -> 'ClipItem':
        """
        Create a new item stamped with a fresh id and the current time

        Args:
            content: Clipboard text
            metadata: Optional source application details

        Returns:
            New item holding the trimmed content

        Raises:
            InvalidContentError: If content is empty after trimming
        """
        normalized = normalize_content(content)
        if normalized is None:
            raise InvalidContentError("Clipboard content is empty")

        return cls(
            id=new_item_id(),
            content=normalized,
            captured_at=datetime.now(timezone.utc),
            metadata=dict(metadata or {})
        )

    def __eq__(self, other):
        if not isinstance(other, ClipItem):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def to_record(self) -> Dict[str, Any]:
        """Convert to the persisted record layout"""
        return {
            'id': self.id,
            'content': self.content,
            'captured_at': self.captured_at.timestamp(),
            'metadata': dict(self.metadata)
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'ClipItem':
        """
        Create from a persisted record

        Raises:
            ValueError: If the record has no id, no usable content or an
                unrepresentable timestamp
        """
        item_id = record.get('id')
        if not item_id:
            raise ValueError("Record has no id")

        content = normalize_content(record.get('content'))
        if content is None:
            raise ValueError(f"Record {item_id} has empty content")

        try:
            captured_at = datetime.fromtimestamp(float(record['captured_at']), tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Record {item_id} has an out of range timestamp: {e}") from e
        metadata = record.get('metadata') or {}

        return cls(
            id=str(item_id),
            content=content,
            captured_at=captured_at,
            metadata={str(k): str(v) for k, v in metadata.items()}
        )

    @property
    def preview(self) -> str:
        """Content clipped for single-line display"""
        if len(self.content) <= PREVIEW_LENGTH:
            return self.content
        return self.content[:PREVIEW_LENGTH] + "..."

    def _metadata_value(self, key: str) -> Optional[str]:
        value = self.metadata.get(key)
        return value or None

    @property
    def source_app_name(self) -> Optional[str]:
        return self._metadata_value('source_app_name')

    @property
    def source_app_bundle_id(self) -> Optional[str]:
        return self._metadata_value('source_app_bundle_id')

    @property
    def source_app_path(self) -> Optional[str]:
        return self._metadata_value('source_app_path')

    def relative_date_description(self, now: Optional[datetime] = None) -> Optional[str]:
        """
        Describe how long ago the item was captured

        Args:
            now: Reference time (defaults to current local time)

        Returns:
            None for items captured today, otherwise a coarse bucket label
        """
        if now is None:
            now = datetime.now().astimezone()
        elif now.tzinfo is None:
            now = now.astimezone()

        captured = self.captured_at.astimezone(now.tzinfo)
        days_ago = (now.date() - captured.date()).days

        if days_ago <= 0:
            return None
        if days_ago == 1:
            return "Yesterday"
        if days_ago < 7:
            return "This week"
        if days_ago < 30:
            return "This month"
        if captured.year == now.year:
            return "Earlier this year"
        return captured.strftime('%m/%d/%y')
