"""File-system collaborator: reading PDFs and committing renames."""

from __future__ import annotations

import errno
import logging
import os
import shutil
from pathlib import Path

from pdf_pattern_renamer.exceptions import (
    DestinationExistsError,
    FileOperationError,
    RenamePermissionError,
)

logger = logging.getLogger(__name__)


def read_file(path: str | Path) -> bytes:
    """Read a whole file into memory.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return path.read_bytes()


def _is_permission_error(exc: OSError) -> bool:
    return isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM)


def rename_file(old_path: str | Path, new_path: str | Path) -> Path:
    """Rename *old_path* to *new_path*, moving across volumes if needed.

    Cross-device moves fall back to copy + delete.

    Raises:
        FileNotFoundError: If the source does not exist.
        DestinationExistsError: If *new_path* already exists.
        RenamePermissionError: If the OS refuses the operation.
        FileOperationError: For any other OS failure.
    """
    src = Path(old_path)
    dst = Path(new_path)

    if not src.exists():
        raise FileNotFoundError(f"File not found: {src}")
    if src == dst:
        return dst
    # On case-insensitive file systems a case-only rename resolves to itself.
    if dst.exists() and not _same_file(src, dst):
        raise DestinationExistsError(f"Destination already exists: {dst}")

    try:
        os.rename(src, dst)
        logger.info("Renamed %s -> %s", src, dst)
        return dst
    except OSError as exc:
        if exc.errno == errno.EXDEV:
            return _move_across_devices(src, dst)
        if _is_permission_error(exc):
            raise RenamePermissionError(f"Permission denied renaming {src}: {exc}") from exc
        raise FileOperationError(f"Cannot rename {src}: {exc}") from exc


def _same_file(a: Path, b: Path) -> bool:
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False


def _move_across_devices(src: Path, dst: Path) -> Path:
    logger.info("Cross-device rename detected, using copy + delete for %s", src)
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dst)
    except OSError as exc:
        if _is_permission_error(exc):
            raise RenamePermissionError(f"Permission denied writing {dst}: {exc}") from exc
        raise FileOperationError(f"Cannot copy {src} to {dst}: {exc}") from exc

    try:
        os.remove(src)
    except OSError as exc:
        if _is_permission_error(exc):
            raise RenamePermissionError(
                f"Copied to {dst} but could not delete {src}: {exc}"
            ) from exc
        raise FileOperationError(f"Copied to {dst} but could not delete {src}: {exc}") from exc
    return dst
