"""Storage backend contract"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from ..item import ClipItem


class StorageBackend(ABC):
    """
    Durable home for history snapshots.

    Backends only serialize and deserialize what they are handed; they never
    reorder or trim. Failures are logged and absorbed: load_items returns an
    empty list and the other operations return False.
    """

    name = "base"

    @abstractmethod
    def load_items(self) -> List[ClipItem]:
        """Return the last saved snapshot, newest first"""

    @abstractmethod
    def save_items(self, items: Sequence[ClipItem]) -> bool:
        """Replace the stored snapshot with items"""

    @abstractmethod
    def clear_storage(self) -> bool:
        """Remove all persisted data"""

    def close(self) -> None:
        """Release any held resources"""

    def __repr__(self):
        return f"<{type(self).__name__} name={self.name!r}>"
