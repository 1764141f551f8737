"""Library domain errors."""


class LibraryError(Exception):
    """Base exception for library operations."""


class InvalidParentError(LibraryError):
    """Raised when a folder is created under a parent that does not exist."""


class InvalidFileError(LibraryError, ValueError):
    """Raised when a file path cannot be used as an index key."""
