"""File mutex engine: named logical locks stored in a shared lock table."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from filemutex.core.config import MutexConfig
from filemutex.core.constants import (
    DEFAULT_FILE_PERMISSION,
    DEFAULT_POLL_INTERVAL_MICROS,
    MICROS_PER_SECOND,
    lock_file_for,
)
from filemutex.core.exceptions import (
    LockNestingError,
    MutexAcquireCancelled,
    MutexIOError,
    MutexUsageError,
    NoLocalLockError,
)
from filemutex.core.locks.backends import FcntlCoordinationLock
from filemutex.core.locks.bootstrap import prepare_mutex_files
from filemutex.core.locks.table import LockEntry, LockTable, read_table, write_table
from filemutex.core.logging import with_log_context


def _validate_lock_id(lock_id: object) -> str:
    if not isinstance(lock_id, str) or not lock_id:
        raise MutexUsageError("Lock id must be a non-empty string", f"got {lock_id!r}")
    return lock_id


class FileMutex:
    """Cross-process mutex keyed by string ids.

    Every operation takes the coordination file lock, reads the whole lock
    table, mutates it and writes it back. Logical locks outlive the call
    and the process; they end on ``release`` or when their timeout elapses.

    Locks acquired through this instance are tracked on a local stack and
    must be released in LIFO order. Ids this instance never acquired can be
    released freely, which is how one process frees another's lock.
    """

    def __init__(
        self,
        *,
        data_file: Path,
        lock_file: Path | None = None,
        default_timeout: int = 0,
        poll_interval_micros: int = DEFAULT_POLL_INTERVAL_MICROS,
        file_permission: int = DEFAULT_FILE_PERMISSION,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ):
        self.data_file = Path(data_file)
        self.lock_file = Path(lock_file) if lock_file is not None else lock_file_for(self.data_file)
        self.default_timeout = default_timeout
        self.poll_interval_micros = poll_interval_micros
        self.file_permission = file_permission
        self.clock = clock
        self.logger = with_log_context(logger or logging.getLogger(__name__), data_file=str(self.data_file))
        self.coordination = FcntlCoordinationLock(self.lock_file, file_permission)

        self._local_locks: list[str] = []
        self._state_lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        config: MutexConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ) -> FileMutex:
        """Prepare the mutex files described by ``config`` and build a mutex on them.

        Raises:
            MutexSetupError: The files cannot be prepared; the mutex must not be used.
        """
        config = config or MutexConfig.from_env()
        prepare_mutex_files(config, logger=logger)
        return cls(
            data_file=config.data_file,
            lock_file=config.lock_file,
            default_timeout=config.default_timeout,
            poll_interval_micros=config.poll_interval_micros,
            file_permission=config.file_permission,
            clock=clock,
            logger=logger,
        )

    @property
    def local_locks(self) -> tuple[str, ...]:
        """Ids acquired by this instance and not yet released, oldest first."""
        with self._state_lock:
            return tuple(self._local_locks)

    def try_acquire(self, lock_id: str, timeout: int = 0) -> bool:
        """Make a single attempt to acquire ``lock_id``.

        Args:
            lock_id: Lock identifier
            timeout: Lifetime in microseconds; values < 1 use ``default_timeout``

        Returns:
            True if the lock was acquired and recorded, False if it is held
            by someone else or the table could not be persisted.

        Raises:
            MutexIOError: The coordination file cannot be opened or locked.
        """
        _validate_lock_id(lock_id)
        log = with_log_context(self.logger, lock_id=lock_id)
        lifetime = timeout if timeout > 0 else self.default_timeout

        with self.coordination.held():
            table = read_table(self.data_file)
            now = self.clock()
            current = table.get(lock_id)
            if current is not None and not current.is_expired(now):
                log.debug("Lock '%s' is held until %s", lock_id, current.expires_at or "released")
                return False

            table[lock_id] = LockEntry(timeout_micros=lifetime, acquired_at=now)
            try:
                write_table(self.data_file, table, self.file_permission)
            except OSError as e:
                log.warning("Failed to persist lock table while acquiring '%s': %s", lock_id, e)
                return False

            self._push_local(lock_id)

        if current is not None:
            log.debug("Lock '%s' acquired over an expired entry", lock_id)
        else:
            log.debug("Lock '%s' acquired (timeout %d us)", lock_id, lifetime)
        return True

    def acquire(
        self,
        lock_id: str,
        timeout: int = 0,
        poll_interval_micros: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """Block until ``lock_id`` is acquired, polling at a fixed interval.

        There is no deadline. Pass ``cancel_event`` to stop waiting from
        another thread; a set event raises ``MutexAcquireCancelled``.
        """
        interval = self.poll_interval_micros if poll_interval_micros is None else poll_interval_micros
        interval_seconds = max(0, interval) / MICROS_PER_SECOND

        log = with_log_context(self.logger, lock_id=lock_id)
        attempts = 1
        while not self.try_acquire(lock_id, timeout):
            if cancel_event is None:
                time.sleep(interval_seconds)
            elif cancel_event.wait(interval_seconds):
                raise MutexAcquireCancelled(lock_id)
            attempts += 1

        if attempts > 1:
            log.debug("Lock '%s' acquired after %d attempts", lock_id, attempts)

    def release(self, lock_id: str | None = None) -> bool:
        """Release ``lock_id``, or the most recent local lock when omitted.

        Returns:
            True if the lock was in the table and the table was persisted.

        Raises:
            NoLocalLockError: No id given and nothing was acquired locally.
            LockNestingError: ``lock_id`` is a local lock but not the most recent one.
            MutexIOError: The coordination file cannot be opened or locked.
        """
        local = False
        with self._state_lock:
            if lock_id is None:
                if not self._local_locks:
                    raise NoLocalLockError()
                lock_id = self._local_locks.pop()
                local = True
            elif lock_id in self._local_locks:
                nested_id = self._local_locks[-1]
                if lock_id != nested_id:
                    raise LockNestingError(lock_id, nested_id)
                self._local_locks.pop()
                local = True
            else:
                _validate_lock_id(lock_id)

        log = with_log_context(self.logger, lock_id=lock_id)
        try:
            with self.coordination.held():
                table = read_table(self.data_file)
                if lock_id not in table:
                    log.debug("Lock '%s' is not held; nothing to release", lock_id)
                    return False

                del table[lock_id]
                try:
                    write_table(self.data_file, table, self.file_permission)
                except OSError as e:
                    log.warning("Failed to persist lock table while releasing '%s': %s", lock_id, e)
                    return False
        except MutexIOError:
            # Coordination failed before the table was read; keep the local entry.
            if local:
                self._push_local(lock_id)
            raise

        log.debug("Lock '%s' released", lock_id)
        return True

    @contextmanager
    def hold(
        self,
        lock_id: str,
        timeout: int = 0,
        poll_interval_micros: int | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[str]:
        """Context manager that acquires ``lock_id`` and releases it on exit."""
        self.acquire(lock_id, timeout, poll_interval_micros, cancel_event)
        try:
            yield lock_id
        finally:
            self.release(lock_id)

    def is_locked(self, lock_id: str) -> bool:
        """Return True if ``lock_id`` is held and not expired."""
        _validate_lock_id(lock_id)
        with self.coordination.held():
            entry = read_table(self.data_file).get(lock_id)
        return entry is not None and not entry.is_expired(self.clock())

    def snapshot(self) -> LockTable:
        """Return a copy of the lock table, expired entries included."""
        with self.coordination.held():
            return dict(read_table(self.data_file))

    def purge_expired(self) -> list[str]:
        """Remove expired entries from the table and return their ids.

        Expired entries are otherwise only replaced by a new acquisition or
        removed by an explicit release, so long-running systems that rotate
        through many ids can call this to compact the table.

        Raises:
            MutexIOError: The coordination file cannot be locked or the table
                cannot be persisted.
        """
        with self.coordination.held():
            table = read_table(self.data_file)
            now = self.clock()
            expired = sorted(lock_id for lock_id, entry in table.items() if entry.is_expired(now))
            if not expired:
                return []
            for lock_id in expired:
                del table[lock_id]
            try:
                write_table(self.data_file, table, self.file_permission)
            except OSError as e:
                raise MutexIOError(
                    f"Failed to persist lock table '{self.data_file}'",
                    path=str(self.data_file),
                    details=str(e),
                    original_error=e,
                ) from e

        self.logger.info("Purged %d expired lock(s)", len(expired), extra={"purged": expired})
        return expired

    def _push_local(self, lock_id: str) -> None:
        with self._state_lock:
            # Reacquiring an expired local id makes it the most recent one.
            if lock_id in self._local_locks:
                self._local_locks.remove(lock_id)
            self._local_locks.append(lock_id)
