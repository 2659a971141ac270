"""
filemutex - Cross-process named mutexes on plain files

Processes on one host acquire and release logical locks by name. A single
advisory file lock serializes access to a shared lock table; locks may
carry an expiry so a crashed holder does not block others forever.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from filemutex.core import (
    FileMutexError,
    LockNestingError,
    MutexAcquireCancelled,
    MutexConfig,
    MutexIOError,
    MutexSetupError,
    MutexUsageError,
    NoLocalLockError,
    __version__,
)
from filemutex.core.locks import FileMutex, LockEntry, prepare_mutex_files

__all__ = [
    "__version__",
    "FileMutex",
    "FileMutexError",
    "LockEntry",
    "LockNestingError",
    "MutexAcquireCancelled",
    "MutexConfig",
    "MutexIOError",
    "MutexSetupError",
    "MutexUsageError",
    "NoLocalLockError",
    "main",
    "prepare_mutex_files",
]

if TYPE_CHECKING:
    from filemutex.cli.main import main


def __getattr__(name: str) -> Any:
    if name == "main":
        from filemutex.cli.main import main

        return main
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
