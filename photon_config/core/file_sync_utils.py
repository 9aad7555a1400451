"""
File durability helpers.

``atomic_write_text`` writes through a temporary sibling file, syncs it and
swaps it into place so readers never observe a half-written settings file.
On POSIX systems syncing uses os.fsync(); on Windows msvcrt._commit().

Copyright (C) 2024-2025 Red Scientific

Licensed under the Apache License, Version 2.0
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Optional, Union

from photon_config.core.logging_utils import get_module_logger

logger = get_module_logger("FileSyncUtils")

_msvcrt = None
if sys.platform == "win32":
    import msvcrt as _msvcrt


def safe_fsync(fd: int) -> bool:
    """Sync file descriptor to disk. Returns False instead of raising."""
    try:
        if _msvcrt is not None:
            _msvcrt._commit(fd)
        else:
            os.fsync(fd)
        return True
    except OSError as e:
        logger.debug("fsync failed for fd %d: %s", fd, e)
        return False


def fsync_file(file_obj) -> bool:
    """Flush and sync an open file object."""
    try:
        file_obj.flush()
        return safe_fsync(file_obj.fileno())
    except (OSError, AttributeError, ValueError) as e:
        logger.debug("fsync_file failed: %s", e)
        return False


def atomic_write_text(path: Union[str, Path], text: str, encoding: str = "utf-8") -> None:
    """Replace ``path`` with ``text`` atomically.

    Raises:
        OSError: when the parent directory cannot be created or the
            replacement fails. The original file is left untouched.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            dir=str(target.parent),
            prefix=f".{target.name}.",
            delete=False,
            encoding=encoding,
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(text)
            fsync_file(tmp)

        os.replace(tmp_path, target)
        tmp_path = None
    finally:
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass


__all__ = ["safe_fsync", "fsync_file", "atomic_write_text"]
