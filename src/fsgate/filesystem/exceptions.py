"""
Exceptions for sandboxed filesystem operations.

Every error carries an :class:`ErrorKind` so the protocol layer can map it
to a structured response without inspecting the exception type.
"""

import errno
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Error vocabulary shared by all operations."""

    INVALID_PARAMS = "invalid_params"
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    BINARY_FILE = "binary_file"
    TOO_LARGE = "too_large"
    NO_MATCH = "no_match"
    AMBIGUOUS_MATCH = "ambiguous_match"
    NOT_EMPTY = "not_empty"
    INTERNAL = "internal"


class FileSystemError(Exception):
    """Base exception for filesystem operations."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Structured form handed to the protocol layer."""
        data: dict[str, Any] = {
            "error": self.message,
            "error_type": type(self).__name__,
            "error_kind": self.kind.value,
        }
        if self.path is not None:
            data["path"] = self.path
        return data


class InvalidParamsError(FileSystemError):
    """Raised when request parameters are malformed."""

    kind = ErrorKind.INVALID_PARAMS


class InvalidPathError(InvalidParamsError):
    """Raised when a path is invalid, malformed, or of the wrong type."""

    def __init__(self, path: str, reason: str = "Invalid path"):
        self.reason = reason
        super().__init__(f"{reason}: {path}", path=path)


class FileAccessDeniedError(FileSystemError):
    """Raised when a path resolves outside the allowed directories."""

    kind = ErrorKind.ACCESS_DENIED

    def __init__(self, path: str, reason: str = "Access denied"):
        self.reason = reason
        super().__init__(f"{reason}: {path}", path=path)


class PathNotFoundError(FileSystemError):
    """Raised when a path that must exist does not."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, path: str):
        super().__init__(f"Not found: {path}", path=path)


class BinaryFileError(FileSystemError):
    """Raised when a file looks binary (NUL byte near the start)."""

    kind = ErrorKind.BINARY_FILE

    def __init__(self, path: str):
        super().__init__(
            f"Binary file detected: {path}. Use get_file_info to inspect its metadata.",
            path=path,
        )


class FileSizeLimitExceededError(FileSystemError):
    """Raised when a file exceeds the size limit."""

    kind = ErrorKind.TOO_LARGE

    def __init__(self, path: str, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"File too large ({size} bytes > {limit} bytes): {path}", path=path
        )


def _preview(text: str, length: int = 80) -> str:
    return repr(text[:length])


class NoMatchError(FileSystemError):
    """Raised when an edit's old_text does not occur in the file."""

    kind = ErrorKind.NO_MATCH

    def __init__(self, path: str, old_text: str):
        self.old_text = old_text
        super().__init__(
            f"Edit failed on {path}: old_text not found: {_preview(old_text)}",
            path=path,
        )


class AmbiguousMatchError(FileSystemError):
    """Raised when an edit's old_text occurs more than once."""

    kind = ErrorKind.AMBIGUOUS_MATCH

    def __init__(self, path: str, old_text: str, count: int):
        self.old_text = old_text
        self.count = count
        super().__init__(
            f"Edit failed on {path}: old_text matches {count} locations "
            f"(must be unique): {_preview(old_text)}",
            path=path,
        )


class DirectoryNotEmptyError(FileSystemError):
    """Raised when deleting a directory that still has entries."""

    kind = ErrorKind.NOT_EMPTY

    def __init__(self, path: str):
        super().__init__(f"Directory not empty: {path}", path=path)


class SearchError(InvalidParamsError):
    """Raised when a search pattern is rejected."""

    pass


class OperationFailedError(FileSystemError):
    """Raised when the underlying I/O fails unexpectedly."""

    kind = ErrorKind.INTERNAL

    @classmethod
    def from_os_error(cls, error: OSError, path: str) -> "OperationFailedError":
        """
        Wrap an OSError, keeping OS-level permission denials distinguishable
        from sandbox denials.
        """
        if isinstance(error, PermissionError) or error.errno in (
            errno.EACCES,
            errno.EPERM,
        ):
            return cls(f"Permission denied by operating system: {path}", path=path)
        reason = error.strerror or str(error)
        return cls(f"{reason}: {path}", path=path)
