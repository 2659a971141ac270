"""Preparation of the mutex data and lock files.

Must succeed before a mutex is used: every later operation assumes both
files live in existing directories and are readable and writable.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from filemutex.core.config import MutexConfig
from filemutex.core.exceptions import MutexSetupError


def _ensure_directory(directory: Path, permission: int) -> None:
    if directory.is_dir():
        return
    if directory.exists():
        raise MutexSetupError(
            f"Invalid mutex directory '{directory}'",
            path=str(directory),
            details="the path exists but it is not a directory",
        )
    try:
        directory.mkdir(mode=permission, parents=True, exist_ok=True)
    except OSError as e:
        raise MutexSetupError(
            f"The mutex directory '{directory}' does not exist and could not be created",
            path=str(directory),
            details=f"make sure the path is valid and the current process has read and write access ({e})",
        ) from e


def _ensure_file(path: Path, permission: int) -> None:
    try:
        fd = os.open(str(path), os.O_CREAT | os.O_RDWR, permission)
    except OSError as e:
        raise MutexSetupError(
            f"Failed to acquire handle on mutex file '{path}'",
            path=str(path),
            details=f"make sure the path is readable and writable by the current process ({e})",
        ) from e
    os.close(fd)

    try:
        os.chmod(path, permission)
    except OSError as e:
        raise MutexSetupError(f"Failed to set permissions on mutex file '{path}'", path=str(path), details=str(e)) from e


def prepare_mutex_files(config: MutexConfig, logger: logging.Logger | None = None) -> None:
    """Create missing directories and files for a mutex and apply permission bits.

    Raises:
        MutexSetupError: A directory or file cannot be created or opened.
    """
    log = logger or logging.getLogger(__name__)
    for path in (config.data_file, config.lock_file):
        _ensure_directory(path.parent, config.directory_permission)
        _ensure_file(path, config.file_permission)
        log.debug("Prepared mutex file %s (mode %s)", path, oct(config.file_permission))
