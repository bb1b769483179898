# --- transfer_ops.py ---

import asyncio
import enum
import errno
import logging
import os
import shutil
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from errors import AlreadyExists, FileSystemIOError, InvalidOperation, NotFound, TypeMismatch
from models import FileStat
from scanner import StatBuilder
from utils import path_to_uri

logger = logging.getLogger(__name__)

# Removes the source tree once a move has been turned into a copy.
RemoveCallback = Callable[[str], Awaitable[None]]


# --- 1. Raw primitives (blocking, run in worker threads) ---

def rename(source: str, target: str,
           create_missing_ancestors: bool = True,
           replace_existing: bool = False) -> None:
    """
    Renames `source` to `target`, falling back to copy-and-remove when the
    two live on different devices.

    Without `replace_existing`, an existing target raises FileExistsError.
    With it, files are replaced and empty directories are replaced; a
    non-empty target directory makes the platform rename fail.
    """
    if create_missing_ancestors:
        os.makedirs(os.path.dirname(target), exist_ok=True)
    if not replace_existing and os.path.lexists(target):
        raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), target)
    try:
        if replace_existing:
            os.replace(source, target)
        else:
            os.rename(source, target)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        logger.debug("Cross-device move from %s to %s, copying instead", source, target)
        _move_across_devices(source, target, replace_existing)


def _move_across_devices(source: str, target: str, replace_existing: bool) -> None:
    if os.path.isdir(source) and not os.path.islink(source):
        if replace_existing and os.path.isdir(target) and not os.path.islink(target):
            # Same outcome as a same-device rename: only an empty directory is replaced.
            if os.listdir(target):
                raise OSError(errno.ENOTEMPTY, os.strerror(errno.ENOTEMPTY), target)
            os.rmdir(target)
        shutil.copytree(source, target, symlinks=True)
        shutil.rmtree(source)
    else:
        if replace_existing and os.path.islink(target):
            os.remove(target)
        shutil.copy2(source, target, follow_symlinks=False)
        os.remove(source)


def _copy_file(source: str, target: str, overwrite: bool) -> None:
    if os.path.lexists(target):
        if not overwrite:
            # Existing entries are kept when not overwriting.
            return
        if os.path.isdir(target) and not os.path.islink(target):
            raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), target)
        if os.path.islink(source) or os.path.islink(target):
            os.remove(target)
    shutil.copy2(source, target, follow_symlinks=False)


def copy_tree(source: str, target: str, overwrite: bool, recursive: bool) -> None:
    """
    Copies `source` to `target`, creating missing ancestors of the target.

    Directories are merged into an existing target directory. Symbolic links
    are copied as links. With `recursive` off, a directory copy creates the
    target directory and copies only the regular files directly inside it;
    subdirectories are skipped.
    """
    os.makedirs(os.path.dirname(target), exist_ok=True)
    if not os.path.isdir(source) or os.path.islink(source):
        _copy_file(source, target, overwrite)
        return

    os.makedirs(target, exist_ok=True)
    with os.scandir(source) as it:
        entries = list(it)
    for entry in entries:
        child_target = os.path.join(target, entry.name)
        if entry.is_dir(follow_symlinks=False):
            if recursive:
                copy_tree(entry.path, child_target, overwrite, recursive)
            continue
        _copy_file(entry.path, child_target, overwrite)


def _is_same_or_inside(path: str, ancestor: str) -> bool:
    path = os.path.normcase(os.path.abspath(path))
    ancestor = os.path.normcase(os.path.abspath(ancestor))
    return path == ancestor or path.startswith(ancestor.rstrip(os.sep) + os.sep)


# --- 2. Move strategy selection ---

class MoveStrategy(enum.Enum):
    # Empty directory onto an empty directory: a plain rename fails on some
    # platforms, so touch the target and drop the source.
    TOUCH_TARGET = "touch-target"
    # Non-empty directory onto an empty directory.
    COPY_THEN_DELETE = "copy-then-delete"
    # Everything else.
    RENAME = "rename"


@dataclass(frozen=True)
class MoveCase:
    source_is_dir: bool
    target_exists: bool
    target_is_dir: bool
    source_may_have_children: bool
    target_may_have_children: bool
    overwrite: bool


def classify_move(case: MoveCase) -> MoveStrategy:
    """
    Maps a move situation to one of the three strategies.

    overwrite  dir->existing dir  source children  target children  strategy
    yes        yes                no               no                TOUCH_TARGET
    yes        yes                maybe            no                COPY_THEN_DELETE
    yes        yes                any              maybe             RENAME
    no / file  -                  -                -                 RENAME
    """
    replaces_directory = (
        case.overwrite
        and case.target_exists
        and case.target_is_dir
        and case.source_is_dir
    )
    if not replaces_directory or case.target_may_have_children:
        return MoveStrategy.RENAME
    if case.source_may_have_children:
        return MoveStrategy.COPY_THEN_DELETE
    return MoveStrategy.TOUCH_TARGET


def _check_target(source: str, target: str,
                  source_stat: Optional[FileStat], target_stat: Optional[FileStat],
                  overwrite: bool) -> FileStat:
    source_uri, target_uri = path_to_uri(source), path_to_uri(target)
    if source_stat is None:
        raise NotFound(f"File does not exist under {source_uri}.", uri=source_uri)
    if _is_same_or_inside(target, source):
        raise InvalidOperation(
            f"Cannot transfer a resource onto itself or into its own subtree. "
            f"Source URI: {source_uri}. Target URI: {target_uri}.",
            uri=source_uri, target_uri=target_uri,
        )
    if target_stat is not None and source_stat.is_directory != target_stat.is_directory:
        raise TypeMismatch(
            f"Cannot replace an existing {target_stat.label} with a {source_stat.label}. "
            f"Source URI: {source_uri}. Target URI: {target_uri}.",
            uri=source_uri, target_uri=target_uri,
        )
    if target_stat is not None and not overwrite:
        raise AlreadyExists(
            f"File already exists under the '{target_uri}' target location. "
            f"Did you set the 'overwrite' flag to true?",
            uri=source_uri, target_uri=target_uri,
        )
    return source_stat


async def _restat(stats: StatBuilder, target: str, action: str) -> FileStat:
    new_stat = await stats.stat(target, 1)
    if new_stat is None:
        target_uri = path_to_uri(target)
        raise FileSystemIOError(
            f"Error occurred while {action}. Resource does not exist at {target_uri}.",
            uri=target_uri,
        )
    return new_stat


# --- 3. Engines ---

class CopyEngine:
    """Recursive copy with an overwrite policy."""

    def __init__(self, stats: StatBuilder):
        self.stats = stats

    async def copy(self, source: str, target: str, overwrite: bool, recursive: bool) -> FileStat:
        source_stat, target_stat = await asyncio.gather(
            self.stats.stat(source, 0), self.stats.stat(target, 0)
        )
        _check_target(source, target, source_stat, target_stat, overwrite)

        logger.info("Copying %s to %s (overwrite=%s, recursive=%s)", source, target, overwrite, recursive)
        await asyncio.to_thread(copy_tree, source, target, overwrite, recursive)
        return await _restat(self.stats, target, f"copying {path_to_uri(source)}")


class MoveEngine:
    """
    Moves files and directories, working around the platforms whose rename
    cannot put a directory on top of an existing empty one.
    """

    def __init__(self, stats: StatBuilder, copier: CopyEngine, remove: RemoveCallback):
        self.stats = stats
        self.copier = copier
        self.remove = remove

    async def move(self, source: str, target: str, overwrite: bool) -> FileStat:
        source_stat, target_stat = await asyncio.gather(
            self.stats.stat(source, 1), self.stats.stat(target, 1)
        )
        source_stat = _check_target(source, target, source_stat, target_stat, overwrite)

        source_children, target_children = await asyncio.gather(
            self.stats.may_have_children(source), self.stats.may_have_children(target)
        )
        strategy = classify_move(MoveCase(
            source_is_dir=source_stat.is_directory,
            target_exists=target_stat is not None,
            target_is_dir=target_stat is not None and target_stat.is_directory,
            source_may_have_children=source_children,
            target_may_have_children=target_children,
            overwrite=overwrite,
        ))
        logger.info("Moving %s to %s using %s", source, target, strategy.value)

        if strategy is MoveStrategy.TOUCH_TARGET:
            now = time.time()
            await asyncio.to_thread(os.utime, target, (now, now))
            await asyncio.to_thread(os.rmdir, source)
            return await _restat(self.stats, target, f"moving {path_to_uri(source)}")

        if strategy is MoveStrategy.COPY_THEN_DELETE:
            new_stat = await self.copier.copy(source, target, overwrite=True, recursive=True)
            await self.remove(source)
            return new_stat

        await asyncio.to_thread(rename, source, target, True, overwrite)
        return await _restat(self.stats, target, f"moving {path_to_uri(source)}")
