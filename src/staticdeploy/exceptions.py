"""Exceptions raised while mapping and uploading static files."""


class EmptyKeyError(ValueError):
    """Raised when a file path reduces to an empty bucket key."""

    def __init__(self, file: str):
        super().__init__(f"No bucket key could be derived for file {file!r}")
        self.file = file


class StorageTransportError(RuntimeError):
    """Raised when the object store rejects or fails a request."""
    pass


class LocalIOError(OSError):
    """Raised when a local source file cannot be opened or read."""
    pass


class ConfigError(ValueError):
    """Raised when a deploy configuration group is missing or invalid."""
    pass
