# --- delete_ops.py ---

import asyncio
import logging
import os
import shutil
from typing import Callable, List

from send2trash import send2trash

logger = logging.getLogger(__name__)

# Soft-delete collaborator: receives the paths to move to the trash and
# raises on failure.
TrashCallback = Callable[[List[str]], None]


def send_to_trash(paths: List[str]) -> None:
    """
    Default trash collaborator.
    send2trash handles both files and directories seamlessly.
    """
    for path in paths:
        send2trash(path)


def delete_permanently(path: str) -> None:
    """
    *Permanently* deletes a file or directory tree.
    USE WITH EXTREME CAUTION.
    """
    if os.path.isdir(path) and not os.path.islink(path):
        # Use shutil.rmtree for recursive directory deletion
        shutil.rmtree(path, ignore_errors=False)
    else:
        # Use os.remove for a single file
        os.remove(path)


async def delete_entry(path: str, move_to_trash: bool, trash: TrashCallback = send_to_trash) -> None:
    """
    Deletes one entry, either through the trash or irreversibly.

    Args:
        path: Filesystem path of the file or directory to remove.
        move_to_trash: If False, bypasses the trash. DANGEROUS.
        trash: The soft-delete collaborator to use.
    """
    if move_to_trash:
        logger.info("Sending to trash: %s", path)
        await asyncio.to_thread(trash, [path])
    else:
        logger.info("Permanently deleting: %s", path)
        await asyncio.to_thread(delete_permanently, path)
