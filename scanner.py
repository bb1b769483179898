# --- scanner.py ---

import asyncio
import enum
import logging
import os
import stat as stat_module
from typing import List, Optional

from models import FileStat
from utils import is_soft_absence, path_to_uri, to_millis

logger = logging.getLogger(__name__)


class ChildrenState(enum.Enum):
    """What a probe could tell about a directory's contents."""
    EMPTY = "empty"
    NONEMPTY = "nonempty"
    UNKNOWN = "unknown"


def classify_children(root: Optional[FileStat], listing: Optional[FileStat]) -> ChildrenState:
    """
    Decision table for the emptiness probe.

    root     -- depth-0 stat of the location, or None if it was absent
                or could not be read.
    listing  -- depth-1 stat of the same location, or None if listing
                failed or was not attempted.

    root absent                   -> UNKNOWN
    root is a file                -> EMPTY (files have no children)
    listing missing               -> UNKNOWN
    listing has children          -> NONEMPTY
    listing has no children       -> EMPTY
    """
    if root is None:
        return ChildrenState.UNKNOWN
    if not root.is_directory:
        return ChildrenState.EMPTY
    if listing is None or listing.children is None:
        return ChildrenState.UNKNOWN
    if listing.children:
        return ChildrenState.NONEMPTY
    return ChildrenState.EMPTY


class StatBuilder:
    """
    Turns filesystem entries into FileStat snapshots.

    Child entries of a directory are stat'ed concurrently; each one runs
    its blocking syscalls in a worker thread.
    """

    async def stat(self, path: str, depth: int = 0) -> Optional[FileStat]:
        """
        Builds a snapshot of `path`, materializing `depth` levels of children.

        Returns None when the entry is missing or unreadable for one of the
        soft reasons (not found, no access, busy, not permitted). Any other
        OSError propagates.
        """
        if depth < 0:
            raise ValueError(f"Depth must not be negative, got {depth}.")
        try:
            st = await asyncio.to_thread(os.stat, path)
        except OSError as e:
            if is_soft_absence(e):
                logger.debug("Treating %s as absent (%s)", path, os.strerror(e.errno))
                return None
            raise

        uri = path_to_uri(path)
        if stat_module.S_ISDIR(st.st_mode):
            children = await self._children(path, depth) if depth > 0 else ()
            return FileStat(
                uri=uri,
                last_modification=to_millis(st.st_mtime_ns),
                is_directory=True,
                children=children,
            )
        return FileStat(
            uri=uri,
            last_modification=to_millis(st.st_mtime_ns),
            is_directory=False,
            size=st.st_size,
        )

    async def _children(self, path: str, depth: int) -> tuple:
        """Stats every entry of `path` at `depth - 1`, dropping absent ones."""
        names: List[str] = sorted(await asyncio.to_thread(os.listdir, path))
        logger.debug("Resolving %d children of %s (depth %d)", len(names), path, depth)
        # Every sibling finishes before the first hard failure is raised.
        results = await asyncio.gather(
            *(self.stat(os.path.join(path, name), depth - 1) for name in names),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return tuple(child for child in results if child is not None)

    async def may_have_children(self, path: str) -> bool:
        """
        Returns True if `path` might have children.

        Only a definite "empty" answer yields False. Absence, permission
        problems and any other failure yield True, so callers never pick a
        strategy that could overwrite content they could not see.
        """
        try:
            root = await self.stat(path, 0)
        except Exception as e:
            logger.warning("Could not stat %s while probing for children: %s", path, e)
            return True

        listing = None
        if root is not None and root.is_directory:
            try:
                listing = await self.stat(path, 1)
            except Exception as e:
                logger.warning("Could not list %s while probing for children: %s", path, e)
                return True

        state = classify_children(root, listing)
        logger.debug("Children probe for %s: %s", path, state.value)
        return state is not ChildrenState.EMPTY
