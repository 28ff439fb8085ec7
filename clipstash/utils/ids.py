"""Identifier helpers"""

from ulid import ULID


def new_item_id() -> str:
    """Return a unique id that sorts by creation time"""
    return str(ULID())
