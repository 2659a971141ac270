"""Coordination file locking.

Design principles:
- An exclusive OS lock on the coordination file is the only permission to
  read or write the lock table file.
- The OS lock is held for one table read/modify/write, never across
  caller work, so waiting for it is bounded by table I/O.
- Failing to open or lock the coordination file is an I/O error, never
  reported as contention.
"""

from __future__ import annotations

import contextlib
import errno
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from filemutex.core.constants import DEFAULT_FILE_PERMISSION
from filemutex.core.exceptions import MutexIOError

try:
    import fcntl
except ImportError:  # pragma: no cover - exercised on non-POSIX only
    fcntl = None

_FLOCK_UNSUPPORTED_ERRNOS = {
    err_no
    for err_no in (
        getattr(errno, "ENOTSUP", None),
        getattr(errno, "EOPNOTSUPP", None),
        getattr(errno, "ENOSYS", None),
    )
    if err_no is not None
}


@dataclass
class CoordinationHandle:
    lock_path: Path
    fd: int
    closed: bool = False


class FcntlCoordinationLock:
    """Blocking exclusive lock on a coordination file via `fcntl.flock`.

    Each ``acquire`` opens a new file description, so two threads of the
    same process exclude each other just like two processes do.
    """

    def __init__(self, lock_path: Path, file_permission: int = DEFAULT_FILE_PERMISSION):
        self.lock_path = Path(lock_path)
        self.file_permission = file_permission

    @staticmethod
    def is_supported() -> bool:
        return fcntl is not None

    def acquire(self) -> CoordinationHandle:
        """Block until the exclusive lock is granted."""
        if fcntl is None:
            raise MutexIOError("fcntl locks are unavailable on this platform", path=str(self.lock_path))

        try:
            fd = os.open(str(self.lock_path), os.O_CREAT | os.O_RDWR, self.file_permission)
        except OSError as e:
            raise MutexIOError(
                f"Failed to open lock file '{self.lock_path}'",
                path=str(self.lock_path),
                details="the path might not be writable",
                original_error=e,
            ) from e

        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
        except OSError as e:
            os.close(fd)
            reason = "flock is unsupported for this path" if e.errno in _FLOCK_UNSUPPORTED_ERRNOS else str(e)
            raise MutexIOError(
                f"Failed to lock file '{self.lock_path}'",
                path=str(self.lock_path),
                details=reason,
                original_error=e,
            ) from e

        return CoordinationHandle(lock_path=self.lock_path, fd=fd)

    def release(self, handle: CoordinationHandle) -> None:
        if handle.closed:
            return
        try:
            # Closing the descriptor drops the lock as well.
            with contextlib.suppress(OSError):
                fcntl.flock(handle.fd, fcntl.LOCK_UN)
        finally:
            with contextlib.suppress(OSError):
                os.close(handle.fd)
            handle.closed = True

    @contextlib.contextmanager
    def held(self) -> Iterator[CoordinationHandle]:
        """Hold the coordination lock for the duration of the block."""
        handle = self.acquire()
        try:
            yield handle
        finally:
            self.release(handle)
