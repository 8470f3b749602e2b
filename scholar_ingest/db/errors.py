"""Storage-layer exceptions."""


class StorageError(Exception):
    """Raised when a storage statement or connection acquisition fails."""

    pass
