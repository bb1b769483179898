# --- filesystem.py ---

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from delete_ops import TrashCallback, delete_entry, send_to_trash
from errors import AlreadyExists, FileSystemIOError, InvalidOperation, NotFound, wrap_os_errors
from models import DEFAULT_OPTIONS, CallOptions, FileStat, FileSystemOptions, ResolvedOptions
from scanner import StatBuilder
from sync_guard import check_fresh
from transfer_ops import CopyEngine, MoveEngine
from utils import normalize_uri, parent_path, uri_to_path

logger = logging.getLogger(__name__)


def _read_text(path: str, encoding: str) -> str:
    with open(path, 'r', encoding=encoding, newline='') as f:
        return f.read()


def _write_text(path: str, content: str, encoding: str, mode: str = 'w') -> None:
    with open(path, mode, encoding=encoding, newline='') as f:
        f.write(content)


class FileSystemNode:
    """
    File operations over the local disk, addressed by `file://` URIs.

    Plain paths are accepted wherever a URI is expected. Every call that
    changes the disk returns a fresh FileStat of the result.

    Args:
        options: Process-wide defaults. Per-call arguments left as None
            fall back to these.
        trash: Soft-delete collaborator used when `move_to_trash` is on.
    """

    def __init__(self,
                 options: Optional[FileSystemOptions] = None,
                 trash: TrashCallback = send_to_trash):
        self.options = options or DEFAULT_OPTIONS
        self.trash = trash
        self.stats = StatBuilder()
        self.copier = CopyEngine(self.stats)
        self.mover = MoveEngine(self.stats, self.copier, self._remove_moved_source)

    async def __aenter__(self) -> 'FileSystemNode':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        # Nothing is held between calls.
        pass

    # --- Helpers ---

    def _resolve(self, **overrides) -> ResolvedOptions:
        return self.options.resolve(CallOptions(**overrides))

    async def _stat(self, uri: str, depth: int) -> Optional[FileStat]:
        with wrap_os_errors(uri, "reading the stat of"):
            return await self.stats.stat(uri_to_path(uri), depth)

    async def _require_stat(self, uri: str, depth: int) -> FileStat:
        stat = await self._stat(uri, depth)
        if stat is None:
            raise NotFound(f"Cannot find file under the given URI. URI: {uri}.", uri=uri)
        return stat

    async def _require_file(self, uri: str, action: str) -> FileStat:
        stat = await self._require_stat(uri, 0)
        if stat.is_directory:
            raise InvalidOperation(f"Cannot {action} of a directory. URI: {uri}.", uri=uri)
        return stat

    async def _restat(self, uri: str, action: str) -> FileStat:
        new_stat = await self._stat(uri, 1)
        if new_stat is None:
            raise FileSystemIOError(
                f"Error occurred while {action}. The file does not exist at {uri}.", uri=uri
            )
        return new_stat

    async def _remove_moved_source(self, path: str) -> None:
        await delete_entry(path, self.options.move_to_trash, self.trash)

    # --- Inspection ---

    async def stat(self, uri: str) -> FileStat:
        """Stat of `uri` with its immediate children. Raises NotFound."""
        return await self._require_stat(uri, 1)

    async def exists(self, uri: str) -> bool:
        return await asyncio.to_thread(os.path.exists, uri_to_path(uri))

    async def get_encoding(self, uri: str) -> str:
        await self._require_file(uri, "get the encoding")
        return self.options.encoding

    async def roots(self) -> List[FileStat]:
        """The root of the drive holding the current working directory."""
        anchor = Path.cwd().anchor
        root = await self._stat(anchor, 1)
        return [root] if root is not None else []

    async def home_directory(self) -> FileStat:
        return await self._require_stat(str(Path.home()), 1)

    # --- Content ---

    async def read_content(self, uri: str, encoding: Optional[str] = None) -> Tuple[FileStat, str]:
        stat = await self._require_file(uri, "resolve the content")
        opts = self._resolve(encoding=encoding)
        with wrap_os_errors(uri, "reading"):
            content = await asyncio.to_thread(_read_text, uri_to_path(uri), opts.encoding)
        return stat, content

    async def write_content(self, file: FileStat, content: str, encoding: Optional[str] = None) -> FileStat:
        """
        Replaces the content of the file `file` describes.

        Raises OutOfSync if the file changed on disk since `file` was taken.
        """
        uri = file.uri
        current = await self._require_file(uri, "set the content")
        check_fresh(current, file)
        opts = self._resolve(encoding=encoding)
        with wrap_os_errors(uri, "writing"):
            await asyncio.to_thread(_write_text, uri_to_path(uri), content, opts.encoding)
        return await self._restat(uri, "writing file content")

    # --- Structure ---

    async def create_file(self, uri: str, content: Optional[str] = None,
                          encoding: Optional[str] = None) -> FileStat:
        path = uri_to_path(uri)
        parent = parent_path(path)
        stat, parent_stat = await asyncio.gather(self._stat(uri, 0), self._stat(parent, 0))
        if stat is not None:
            raise AlreadyExists(
                f"Error occurred while creating the file. File already exists at {uri}.", uri=uri
            )
        opts = self._resolve(content=content, encoding=encoding)
        with wrap_os_errors(uri, "creating"):
            if parent_stat is None:
                await asyncio.to_thread(os.makedirs, parent, exist_ok=True)
            try:
                await asyncio.to_thread(_write_text, path, opts.content, opts.encoding, 'x')
            except FileExistsError as e:
                raise AlreadyExists(
                    f"Error occurred while creating the file. File already exists at {uri}.", uri=uri
                ) from e
        logger.info("Created file %s", path)
        return await self._restat(uri, "creating new file")

    async def create_directory(self, uri: str) -> FileStat:
        stat = await self._stat(uri, 0)
        if stat is not None:
            raise AlreadyExists(
                f"Error occurred while creating the directory. File already exists at {uri}.", uri=uri
            )
        path = uri_to_path(uri)
        with wrap_os_errors(uri, "creating the directory"):
            await asyncio.to_thread(os.makedirs, path, exist_ok=True)
        logger.info("Created directory %s", path)
        return await self._restat(uri, "creating the directory")

    async def touch(self, uri: str) -> FileStat:
        """Creates an empty file, or bumps the modification time of an existing entry."""
        stat = await self._stat(uri, 0)
        if stat is None:
            return await self.create_file(uri)
        with wrap_os_errors(uri, "touching"):
            await asyncio.to_thread(os.utime, uri_to_path(uri), None)
        return await self._restat(uri, "touching")

    async def delete(self, uri: str, move_to_trash: Optional[bool] = None) -> None:
        await self._require_stat(uri, 0)
        opts = self._resolve(move_to_trash=move_to_trash)
        with wrap_os_errors(uri, "deleting"):
            await delete_entry(uri_to_path(uri), opts.move_to_trash, self.trash)

    async def move(self, source_uri: str, target_uri: str, overwrite: Optional[bool] = None) -> FileStat:
        opts = self._resolve(overwrite=overwrite)
        with wrap_os_errors(source_uri, f"moving to {normalize_uri(target_uri)}"):
            return await self.mover.move(uri_to_path(source_uri), uri_to_path(target_uri), opts.overwrite)

    async def copy(self, source_uri: str, target_uri: str,
                   overwrite: Optional[bool] = None, recursive: Optional[bool] = None) -> FileStat:
        opts = self._resolve(overwrite=overwrite, recursive=recursive)
        with wrap_os_errors(source_uri, f"copying to {normalize_uri(target_uri)}"):
            return await self.copier.copy(
                uri_to_path(source_uri), uri_to_path(target_uri), opts.overwrite, opts.recursive
            )
