"""Command handlers and entry point for the filemutex CLI."""

from __future__ import annotations

import argparse
import logging
import subprocess
import sys
from datetime import UTC, datetime
from typing import NoReturn

from filemutex.cli.parser import parse_arguments
from filemutex.core.colors import ConsoleColors
from filemutex.core.config import AppConfig
from filemutex.core.exceptions import FileMutexError
from filemutex.core.locks.manager import FileMutex
from filemutex.core.locks.table import LockEntry
from filemutex.core.logging import flush_logging_handlers, setup_logging

logger = logging.getLogger(__name__)


def _exit_error(msg: str) -> NoReturn:
    """Print a coloured error message to stderr and exit with code 1."""
    print(ConsoleColors.error(f"ERROR: {msg}"), file=sys.stderr)
    sys.exit(1)


def _format_time(epoch_seconds: float) -> str:
    return datetime.fromtimestamp(epoch_seconds, UTC).isoformat(timespec="microseconds")


def _describe_entry(lock_id: str, entry: LockEntry, now: float) -> str:
    acquired = _format_time(entry.acquired_at)
    if entry.expires_at is None:
        state = ConsoleColors.warning("held, never expires")
    elif entry.is_expired(now):
        state = ConsoleColors.dim(f"expired at {_format_time(entry.expires_at)}")
    else:
        state = ConsoleColors.success(f"held until {_format_time(entry.expires_at)}")
    return f"{ConsoleColors.ljust(ConsoleColors.bold(lock_id), 32)} acquired {acquired}  {state}"


def cmd_acquire(mutex: FileMutex, args: argparse.Namespace) -> int:
    if args.no_wait:
        if not mutex.try_acquire(args.lock_id, args.timeout):
            print(ConsoleColors.warning(f"Lock '{args.lock_id}' is busy"))
            return 1
    else:
        mutex.acquire(args.lock_id, args.timeout, args.poll_interval)
    print(ConsoleColors.success(f"Acquired lock '{args.lock_id}'"))
    return 0


def cmd_release(mutex: FileMutex, args: argparse.Namespace) -> int:
    if mutex.release(args.lock_id):
        print(ConsoleColors.success(f"Released lock '{args.lock_id}'"))
        return 0
    print(ConsoleColors.warning(f"Lock '{args.lock_id}' was not held"))
    return 1


def cmd_status(mutex: FileMutex, args: argparse.Namespace) -> int:
    table = mutex.snapshot()
    now = mutex.clock()

    if args.lock_id is not None:
        entry = table.get(args.lock_id)
        if entry is None:
            print(f"Lock '{args.lock_id}' is not held")
            return 1
        print(_describe_entry(args.lock_id, entry, now))
        return 0 if not entry.is_expired(now) else 1

    if not table:
        print("No locks held")
        return 0
    for lock_id in sorted(table):
        print(_describe_entry(lock_id, table[lock_id], now))
    return 0


def cmd_purge(mutex: FileMutex, args: argparse.Namespace) -> int:
    removed = mutex.purge_expired()
    if removed:
        print(ConsoleColors.success(f"Purged {len(removed)} expired lock(s): {', '.join(removed)}"))
    else:
        print("No expired locks")
    return 0


def cmd_run(mutex: FileMutex, args: argparse.Namespace) -> int:
    with mutex.hold(args.lock_id, args.timeout, args.poll_interval):
        logger.info("Running %s while holding lock '%s'", args.cmd, args.lock_id)
        try:
            completed = subprocess.run(args.cmd, check=False)
        except OSError as e:
            _exit_error(f"Cannot run {args.cmd[0]!r}: {e}")
    return completed.returncode


COMMANDS = {
    "acquire": cmd_acquire,
    "release": cmd_release,
    "status": cmd_status,
    "purge": cmd_purge,
    "run": cmd_run,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the script"""
    args = parse_arguments(argv)
    ConsoleColors.configure(no_color=args.no_color)

    try:
        config = AppConfig.from_args(args)
    except FileMutexError as e:
        _exit_error(str(e))

    setup_logging(config.log.level, config.log.format, config.log.file)

    try:
        mutex = FileMutex.from_config(config.mutex)
        return COMMANDS[args.command](mutex, args)
    except FileMutexError as e:
        _exit_error(str(e))
    finally:
        flush_logging_handlers(logger)
