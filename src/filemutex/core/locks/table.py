"""Lock table model and persistence.

The table file holds one JSON document::

    {"version": 1, "locks": {"<lock id>": [<timeout micros>, <acquired at>], ...}}

Reading never fails: a missing, empty, unreadable or malformed table
decodes to an empty mapping. Corruption is logged at WARNING.

Callers must hold the coordination lock around every read and write.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from filemutex.core.constants import DEFAULT_FILE_PERMISSION, MICROS_PER_SECOND, TABLE_FORMAT_VERSION

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockEntry:
    """One held logical lock.

    Attributes:
        timeout_micros: Lifetime from acquisition; values < 1 never expire
        acquired_at: Epoch seconds when the entry was written
    """

    timeout_micros: int
    acquired_at: float

    @property
    def expires_at(self) -> float | None:
        if self.timeout_micros <= 0:
            return None
        return self.acquired_at + self.timeout_micros / MICROS_PER_SECOND

    def is_expired(self, now: float) -> bool:
        expires_at = self.expires_at
        return expires_at is not None and expires_at <= now

    def to_list(self) -> list[int | float]:
        return [self.timeout_micros, self.acquired_at]

    @classmethod
    def from_value(cls, value: object) -> LockEntry | None:
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            return None
        timeout_micros, acquired_at = value
        if isinstance(timeout_micros, bool) or not isinstance(timeout_micros, int):
            return None
        if isinstance(acquired_at, bool) or not isinstance(acquired_at, (int, float)):
            return None
        return cls(timeout_micros=timeout_micros, acquired_at=float(acquired_at))


LockTable = dict[str, LockEntry]


def encode_table(table: LockTable) -> bytes:
    document = {
        "version": TABLE_FORMAT_VERSION,
        "locks": {lock_id: entry.to_list() for lock_id, entry in table.items()},
    }
    return json.dumps(document, sort_keys=True).encode("utf-8")


def decode_table(payload: bytes | str) -> LockTable | None:
    """Decode a serialized table, returning None when it is not a well formed table."""
    try:
        document = json.loads(payload)
    except (UnicodeDecodeError, ValueError, RecursionError):
        # Deeply nested garbage exhausts the decoder stack
        return None

    if not isinstance(document, dict) or document.get("version") != TABLE_FORMAT_VERSION:
        return None
    locks = document.get("locks")
    if not isinstance(locks, dict):
        return None

    table: LockTable = {}
    for lock_id, value in locks.items():
        entry = LockEntry.from_value(value)
        if entry is None:
            return None
        table[lock_id] = entry
    return table


def load_table(payload: bytes, source: Path | str = "<memory>") -> LockTable:
    """Decode with fallback: empty and corrupt payloads both yield an empty table."""
    if not payload.strip():
        logger.debug("Lock table %s is empty", source)
        return {}
    table = decode_table(payload)
    if table is None:
        logger.warning("Lock table %s is corrupt; treating it as empty", source)
        return {}
    return table


def read_table(data_file: Path) -> LockTable:
    try:
        payload = Path(data_file).read_bytes()
    except FileNotFoundError:
        logger.debug("Lock table %s does not exist yet", data_file)
        return {}
    except OSError as e:
        logger.warning("Lock table %s is unreadable (%s); treating it as empty", data_file, e)
        return {}
    return load_table(payload, data_file)


def _write_all(fd: int, payload: bytes) -> None:
    """Write complete payload to fd, handling short writes."""
    total_written = 0
    while total_written < len(payload):
        written = os.write(fd, payload[total_written:])
        if written <= 0:
            raise OSError("short write while persisting lock table")
        total_written += written


def write_table(data_file: Path, table: LockTable, file_permission: int = DEFAULT_FILE_PERMISSION) -> None:
    """Replace the table file contents. Raises OSError on any failure."""
    payload = encode_table(table)
    fd = os.open(str(data_file), os.O_CREAT | os.O_RDWR, file_permission)
    try:
        os.lseek(fd, 0, os.SEEK_SET)
        os.ftruncate(fd, 0)
        _write_all(fd, payload)
        os.fsync(fd)
    finally:
        os.close(fd)
