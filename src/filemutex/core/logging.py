"""Logging helpers for filemutex."""

from __future__ import annotations

import atexit
import contextlib
import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from filemutex.core.constants import LOG_FILE_BACKUP_COUNT, LOG_FILE_MAX_BYTES, VALID_LOG_LEVELS

_LOG_RECORD_RESERVED_FIELDS = set(logging.makeLogRecord({}).__dict__.keys()) | {"message", "asctime"}

# Lock context attached by FileMutex through with_log_context
MUTEX_CONTEXT_FIELDS: tuple[str, ...] = ("data_file", "lock_id")

TEXT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _safe_record_message(record: logging.LogRecord) -> str:
    try:
        return record.getMessage()
    except Exception:
        # Bad placeholders or a broken __str__ must not lose the record.
        return f"{getattr(record, 'msg', '')!s} [log-message-format-error]"


def _is_reserved_or_private_record_key(key: object) -> bool:
    if not isinstance(key, str):
        return True
    return key in _LOG_RECORD_RESERVED_FIELDS or key.startswith("_")


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging output.

    Each record is one JSON object per line. ``data_file`` and ``lock_id``
    are always present and null outside the engine. Other ``extra=`` fields
    follow them.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _safe_record_message(record),
        }
        for name in MUTEX_CONTEXT_FIELDS:
            log_entry[name] = getattr(record, name, None)
        log_entry.update(
            {
                "process": record.process,
                "thread": record.threadName,
                "source": f"{record.module}:{record.lineno}",
            }
        )

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in log_entry or _is_reserved_or_private_record_key(key):
                continue
            log_entry[key] = value

        return json.dumps(log_entry, default=str)


class ContextTextFormatter(logging.Formatter):
    """Plain text formatter that appends lock context, e.g. ``[lock_id=job]``."""

    def __init__(self, fmt: str = TEXT_LOG_FORMAT):
        super().__init__(fmt)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = " ".join(
            f"{name}={getattr(record, name)}" for name in MUTEX_CONTEXT_FIELDS if getattr(record, name, None) is not None
        )
        return f"{line} [{context}]" if context else line


# Module-level tracking to prevent duplicate atexit registration
_atexit_registered = False


class ContextLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges contextual fields into record extras."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        extra = kwargs.get("extra")
        merged_extra = dict(self.extra)
        if isinstance(extra, dict):
            merged_extra.update(extra)
        kwargs["extra"] = merged_extra
        return msg, kwargs


def _unwrap_logger(logger: logging.Logger | logging.LoggerAdapter | None) -> logging.Logger | None:
    current = logger
    while isinstance(current, logging.LoggerAdapter):
        current = current.logger
    if isinstance(current, logging.Logger):
        return current
    return None


def with_log_context(
    logger: logging.Logger | logging.LoggerAdapter | object, **context: object
) -> logging.Logger | logging.LoggerAdapter | object:
    """Return a logger enriched with persistent contextual fields."""
    if not isinstance(logger, (logging.Logger, logging.LoggerAdapter)):
        # Preserve test doubles/mocks that may not satisfy logging interfaces.
        return logger

    base_logger = _unwrap_logger(logger)
    if base_logger is None:
        return logger

    normalized_context = {k: v for k, v in context.items() if v is not None}
    existing_context = {}
    if isinstance(logger, logging.LoggerAdapter):
        existing_context = dict(getattr(logger, "extra", {}))

    existing_context.update(normalized_context)
    return ContextLoggerAdapter(base_logger, existing_context)


def flush_logging_handlers(logger: logging.Logger | logging.LoggerAdapter | None = None) -> None:
    """Flush logger handlers, including propagated root handlers."""
    handlers: list[logging.Handler] = []
    seen: set[int] = set()

    current: logging.Logger | None = _unwrap_logger(logger)
    while current is not None:
        handlers.extend(current.handlers)
        if not current.propagate:
            break
        current = current.parent

    if not handlers:
        handlers.extend(logging.root.handlers)

    for handler in handlers:
        handler_id = id(handler)
        if handler_id in seen:
            continue
        seen.add(handler_id)
        with contextlib.suppress(Exception):
            handler.flush()


def setup_logging(
    log_level: str | None = None,
    log_format: str = "text",
    log_file: str | Path | None = None,
    *,
    max_bytes: int = LOG_FILE_MAX_BYTES,
    backup_count: int = LOG_FILE_BACKUP_COUNT,
) -> logging.Logger:
    """Setup logging to stderr and, optionally, a rotating log file.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format - "text" (default) or "json" for structured logging
        log_file: Optional path of a rotating log file
        max_bytes: Rotation size of the log file
        backup_count: Number of rotated log files to keep

    Returns:
        The package logger

    Priority: 1) Passed parameter, 2) Environment variable LOG_LEVEL, 3) Default WARNING
    """
    global _atexit_registered

    if not _atexit_registered:
        atexit.register(logging.shutdown)
        _atexit_registered = True

    if log_level is None:
        log_level = os.environ.get("LOG_LEVEL", "WARNING")

    if log_level.upper() not in VALID_LOG_LEVELS:
        print(f"Warning: Invalid log level '{log_level}', using WARNING", file=sys.stderr)
        log_level = "WARNING"

    numeric_level = getattr(logging, log_level.upper(), logging.WARNING)

    for handler in logging.root.handlers[:]:
        handler.close()
        logging.root.removeHandler(handler)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    resolved_log_file = Path(log_file) if log_file is not None else None
    if resolved_log_file is not None:
        try:
            resolved_log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(RotatingFileHandler(resolved_log_file, maxBytes=max_bytes, backupCount=backup_count))
        except OSError as e:
            print(f"Warning: Cannot open log file {resolved_log_file}: {e}. Logging to console only.", file=sys.stderr)
            resolved_log_file = None

    if log_format.lower() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = ContextTextFormatter()

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(numeric_level)
        logging.root.addHandler(handler)

    logging.root.setLevel(numeric_level)

    logger = logging.getLogger("filemutex")
    logger.propagate = True
    logger.setLevel(logging.NOTSET)

    if resolved_log_file is not None:
        logger.debug("Logging initialized. Log file: %s", resolved_log_file)

    flush_logging_handlers(logger)
    return logger
