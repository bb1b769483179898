# --- utils.py ---

import errno
import os
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

# Errors that make a stat report "absent" instead of failing.
SOFT_ABSENCE_ERRNOS = frozenset({
    errno.ENOENT,
    errno.EACCES,
    errno.EBUSY,
    errno.EPERM,
})


def uri_to_path(uri: str) -> str:
    """
Signature: `uri_to_path(uri: str) -> str`

Converts a `file://` URI to an absolute filesystem path.
Plain paths (no scheme) are accepted and made absolute.
"""
    parsed = urlparse(uri)
    if parsed.scheme == 'file':
        path = url2pathname(parsed.path)
        if parsed.netloc and parsed.netloc != 'localhost':
            raise ValueError(f"Only local file URIs are supported. URI: {uri}.")
        return os.path.abspath(path)
    if parsed.scheme and len(parsed.scheme) > 1:
        raise ValueError(f"Unsupported URI scheme '{parsed.scheme}'. URI: {uri}.")
    # Either no scheme, or a Windows drive letter parsed as one.
    return os.path.abspath(uri)


def path_to_uri(path: str) -> str:
    """
Signature: `path_to_uri(path: str) -> str`

Converts a filesystem path to its canonical `file://` URI.
"""
    return Path(os.path.abspath(path)).as_uri()


def normalize_uri(uri: str) -> str:
    """Canonical `file://` form of a URI or plain path."""
    return path_to_uri(uri_to_path(uri))


def parent_path(path: str) -> str:
    return os.path.dirname(os.path.abspath(path)) or path


def to_millis(mtime_ns: int) -> int:
    """Converts `st_mtime_ns` to epoch milliseconds."""
    return mtime_ns // 1_000_000


def is_soft_absence(error: OSError) -> bool:
    """
Signature: `is_soft_absence(error: OSError) -> bool`

True when a stat failure means "treat as absent":
not found, no access, busy, or not permitted.
"""
    return error.errno in SOFT_ABSENCE_ERRNOS


def format_bytes(size_bytes: int) -> str:
    """
Signature: `format_bytes(size_bytes: int) -> str`

Converts a size in bytes to a human-readable string (KB, MB, GB, TB).
Uses decimal (1000) instead of binary (1024) for storage representation.
"""
    if size_bytes < 0:
        return "0 B"

    units = ['B', 'KB', 'MB', 'GB', 'TB', 'PB']
    power = 1000.0  # Use decimal (base 1000)

    i = 0
    while size_bytes >= power and i < len(units) - 1:
        size_bytes /= power
        i += 1

    return f"{size_bytes:.2f} {units[i]}"
