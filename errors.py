# --- errors.py ---

from contextlib import contextmanager
from typing import Iterator, Optional


class FileSystemError(Exception):
    """Base class for every error raised by FileSystemNode."""

    def __init__(self, message: str, uri: Optional[str] = None, target_uri: Optional[str] = None):
        super().__init__(message)
        self.uri = uri
        self.target_uri = target_uri


class NotFound(FileSystemError):
    pass


class AlreadyExists(FileSystemError):
    pass


class TypeMismatch(AlreadyExists):
    """
    A file would replace a directory, or the other way round.
    Raised whatever the overwrite flag says.
    """


class InvalidOperation(FileSystemError):
    """A content operation was attempted on a directory."""


class OutOfSync(FileSystemError):
    """
    The caller's stat no longer matches the disk.
    Carries both sides so the caller can report what changed.
    """

    def __init__(self, message: str, uri: str,
                 expected_modification: int, actual_modification: int,
                 expected_size: Optional[int], actual_size: Optional[int]):
        super().__init__(message, uri)
        self.expected_modification = expected_modification
        self.actual_modification = actual_modification
        self.expected_size = expected_size
        self.actual_size = actual_size


class FileSystemIOError(FileSystemError):
    """An underlying failure that none of the other classes describe."""

    def __init__(self, message: str, uri: Optional[str] = None, errno: Optional[int] = None):
        super().__init__(message, uri)
        self.errno = errno


@contextmanager
def wrap_os_errors(uri: Optional[str] = None, action: str = "accessing") -> Iterator[None]:
    """
    Re-raises raw OSErrors as FileSystemIOError.
    Errors that are already classified pass through untouched.
    """
    try:
        yield
    except FileSystemError:
        raise
    except OSError as e:
        raise FileSystemIOError(
            f"Error occurred while {action} {uri}: {e}", uri=uri, errno=e.errno
        ) from e
