"""Locking subsystem for cross-process coordination.

A single OS lock on the coordination file serializes access to a shared
lock table; the table records named logical locks with optional expiry.
"""

from filemutex.core.locks.backends import CoordinationHandle, FcntlCoordinationLock
from filemutex.core.locks.bootstrap import prepare_mutex_files
from filemutex.core.locks.manager import FileMutex
from filemutex.core.locks.table import (
    LockEntry,
    LockTable,
    decode_table,
    encode_table,
    load_table,
    read_table,
    write_table,
)

__all__ = [
    "CoordinationHandle",
    "FcntlCoordinationLock",
    "FileMutex",
    "LockEntry",
    "LockTable",
    "decode_table",
    "encode_table",
    "load_table",
    "prepare_mutex_files",
    "read_table",
    "write_table",
]
