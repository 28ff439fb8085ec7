"""Storage error types"""


class StorageError(Exception):
    """Base class for persistence failures"""


class StorageUnavailableError(StorageError):
    """A backend could not be initialized"""


class StorageIOError(StorageError):
    """A backend failed while loading, saving or clearing"""
