# --- sync_guard.py ---

from errors import OutOfSync
from models import FileStat
from utils import format_bytes


def check_fresh(current: FileStat, cached: FileStat) -> None:
    """
    Raises OutOfSync if the caller's cached stat no longer matches disk.

    Only the modification time and the size are compared. The check detects
    a conflicting writer but does not resolve it: the caller has to read
    the file again and retry.
    """
    if current.last_modification != cached.last_modification:
        raise OutOfSync(
            f"File is out of sync. URI: {cached.uri}. "
            f"Expected timestamp: {current.last_modification}. "
            f"Actual timestamp: {cached.last_modification}.",
            uri=cached.uri,
            expected_modification=current.last_modification,
            actual_modification=cached.last_modification,
            expected_size=current.size,
            actual_size=cached.size,
        )
    if current.size != cached.size:
        raise OutOfSync(
            f"File is out of sync. URI: {cached.uri}. "
            f"Expected size: {format_bytes(current.size or 0)} ({current.size} bytes). "
            f"Actual size: {format_bytes(cached.size or 0)} ({cached.size} bytes).",
            uri=cached.uri,
            expected_modification=current.last_modification,
            actual_modification=cached.last_modification,
            expected_size=current.size,
            actual_size=cached.size,
        )
