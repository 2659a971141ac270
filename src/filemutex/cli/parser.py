"""CLI argument parsing."""

from __future__ import annotations

import argparse

import argcomplete

from filemutex.core.constants import VALID_LOG_LEVELS
from filemutex.core.version import __version__


def _add_timing_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--timeout",
        type=int,
        default=0,
        metavar="US",
        help="Lock lifetime in microseconds; values < 1 use the configured default (default: 0)",
    )
    parser.add_argument(
        "--poll-interval",
        type=int,
        default=None,
        metavar="US",
        help="Microseconds to sleep between attempts while waiting (default: config, 1000)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="filemutex",
        description="filemutex - Cross-process named mutexes on plain files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Take a lock that expires after 30 seconds, waiting if it is busy
  filemutex acquire nightly-import --timeout 30000000

  # Fail immediately instead of waiting
  filemutex acquire nightly-import --no-wait

  # Release a lock (also works for locks taken by other processes)
  filemutex release nightly-import

  # Run a command while holding a lock
  filemutex run nightly-import -- ./import.sh --full

  # Inspect and compact the lock table
  filemutex status
  filemutex purge

  # Use a specific table file and structured logs
  filemutex --data-file /var/run/app/mutex.bin --log-format json status

Environment:
  FILEMUTEX_RUNTIME_DIR, FILEMUTEX_DATA_FILE, FILEMUTEX_LOCK_FILE,
  FILEMUTEX_DEFAULT_TIMEOUT, FILEMUTEX_MAX_EXECUTION_TIME,
  FILEMUTEX_FILE_PERMISSION, FILEMUTEX_DIRECTORY_PERMISSION,
  FILEMUTEX_POLL_INTERVAL, LOG_LEVEL (a .env file is honored)
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--data-file", metavar="PATH", help="Lock table file (default: <runtime dir>/filemutex/mutex.bin)")
    parser.add_argument("--lock-file", metavar="PATH", help="Coordination file (default: <data file>.lock)")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=VALID_LOG_LEVELS,
        default=None,
        help="Logging level (default: LOG_LEVEL environment variable or WARNING)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log output format (default: text)",
    )
    parser.add_argument("--log-file", metavar="PATH", help="Also write logs to a rotating file")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    acquire = subparsers.add_parser("acquire", help="Acquire a lock")
    acquire.add_argument("lock_id", metavar="ID")
    _add_timing_options(acquire)
    acquire.add_argument(
        "--no-wait",
        action="store_true",
        help="Make a single attempt and exit with status 1 if the lock is busy",
    )

    release = subparsers.add_parser("release", help="Release a lock")
    release.add_argument("lock_id", metavar="ID")

    status = subparsers.add_parser("status", help="Show held locks")
    status.add_argument("lock_id", metavar="ID", nargs="?", help="Only report this lock (exit 1 if not held)")

    subparsers.add_parser("purge", help="Remove expired entries from the lock table")

    run = subparsers.add_parser("run", help="Run a command while holding a lock")
    run.add_argument("lock_id", metavar="ID")
    _add_timing_options(run)
    run.add_argument("cmd", nargs="+", metavar="CMD", help="Command to run; put it after -- when it has options")

    return parser


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments"""
    parser = build_parser()
    # Enable shell tab-completion
    argcomplete.autocomplete(parser)
    args = parser.parse_args(argv)
    if args.command == "run" and args.cmd and args.cmd[0] == "--":
        args.cmd = args.cmd[1:]
        if not args.cmd:
            parser.error("run: a command is required after --")
    return args
