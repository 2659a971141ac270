"""Configuration dataclasses for filemutex.

These dataclasses centralize all configuration options for type safety
and easy testing. They can be created from the environment (including a
``.env`` file), from command-line arguments, or used directly in code.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

from filemutex.core.constants import (
    DEFAULT_DIRECTORY_PERMISSION,
    DEFAULT_FILE_PERMISSION,
    DEFAULT_MAX_EXECUTION_TIME,
    DEFAULT_POLL_INTERVAL_MICROS,
    ENV_VAR_MAPPING,
    LOG_FILE_BACKUP_COUNT,
    LOG_FILE_MAX_BYTES,
    MAX_EXECUTION_TIME_ENV,
    MICROS_PER_SECOND,
    default_data_file,
    lock_file_for,
)
from filemutex.core.exceptions import ConfigurationError


def _parse_int(value: str, field_name: str, base: int = 10) -> int:
    try:
        return int(value.strip(), base)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {field_name}",
            field=field_name,
            details=f"expected an integer, got {value!r}",
        ) from e


def max_execution_time_micros() -> int:
    """Default lock timeout derived from FILEMUTEX_MAX_EXECUTION_TIME (seconds)."""
    raw = os.environ.get(MAX_EXECUTION_TIME_ENV, "").strip()
    if not raw:
        return DEFAULT_MAX_EXECUTION_TIME * MICROS_PER_SECOND
    return _parse_int(raw, MAX_EXECUTION_TIME_ENV) * MICROS_PER_SECOND


@dataclass
class LogConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level string (default: "INFO")
        format: "text" or "json" (default: "text")
        file: Optional log file path; console only when None
        file_max_bytes: Maximum size per log file (default: 10MB)
        file_backup_count: Number of backup log files (default: 5)
    """

    level: str = "INFO"
    format: str = "text"
    file: str | None = None
    file_max_bytes: int = LOG_FILE_MAX_BYTES
    file_backup_count: int = LOG_FILE_BACKUP_COUNT


@dataclass
class MutexConfig:
    """Configuration for a file mutex.

    Attributes:
        data_file: Table file path (default: <runtime dir>/filemutex/mutex.bin)
        lock_file: Coordination file path (default: <data_file>.lock)
        default_timeout: Lock lifetime in microseconds used when a caller passes
            a timeout < 1. Values < 1 mean locks never expire. None derives the
            value from FILEMUTEX_MAX_EXECUTION_TIME.
        file_permission: chmod bits for the mutex files (default: 0o600)
        directory_permission: chmod bits for created directories (default: 0o700)
        poll_interval_micros: Sleep between acquire() attempts (default: 1000)
    """

    data_file: Path | None = None
    lock_file: Path | None = None
    default_timeout: int | None = None
    file_permission: int = DEFAULT_FILE_PERMISSION
    directory_permission: int = DEFAULT_DIRECTORY_PERMISSION
    poll_interval_micros: int = DEFAULT_POLL_INTERVAL_MICROS

    def __post_init__(self) -> None:
        self.data_file = Path(self.data_file) if self.data_file is not None else default_data_file()
        self.lock_file = Path(self.lock_file) if self.lock_file is not None else lock_file_for(self.data_file)
        if self.default_timeout is None:
            self.default_timeout = max_execution_time_micros()

    def to_dict(self) -> dict[str, Any]:
        return {
            "data_file": str(self.data_file),
            "lock_file": str(self.lock_file),
            "default_timeout": self.default_timeout,
            "file_permission": oct(self.file_permission),
            "directory_permission": oct(self.directory_permission),
            "poll_interval_micros": self.poll_interval_micros,
        }

    @staticmethod
    def _env_values() -> dict[str, Any]:
        values: dict[str, Any] = {}
        for config_key, env_var in ENV_VAR_MAPPING.items():
            raw = os.environ.get(env_var)
            if raw is None or not raw.strip():
                continue
            if config_key in ("data_file", "lock_file"):
                values[config_key] = Path(raw.strip())
            elif config_key in ("file_permission", "directory_permission"):
                values[config_key] = _parse_int(raw, env_var, base=8)
            else:
                values[config_key] = _parse_int(raw, env_var)
        return values

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> MutexConfig:
        """Create configuration from environment variables.

        A ``.env`` file (explicit path, or the nearest one from the working
        directory) is loaded first without overriding variables already set.
        """
        load_dotenv(env_file if env_file is not None else find_dotenv(usecwd=True), override=False)
        return cls(**cls._env_values())

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> MutexConfig:
        """Create configuration from parsed command-line arguments layered over the environment."""
        load_dotenv(find_dotenv(usecwd=True), override=False)
        values = cls._env_values()
        if getattr(args, "data_file", None):
            values["data_file"] = Path(args.data_file)
            # An environment lock file belongs to the environment's data file
            values.pop("lock_file", None)
        if getattr(args, "lock_file", None):
            values["lock_file"] = Path(args.lock_file)
        return cls(**values)


@dataclass
class AppConfig:
    """Master configuration for the command-line tool.

    Attributes:
        mutex: Mutex file and timing configuration
        log: Logging configuration
        no_color: Disable ANSI colors in console output
    """

    mutex: MutexConfig = field(default_factory=MutexConfig)
    log: LogConfig = field(default_factory=LogConfig)
    no_color: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> AppConfig:
        """Create configuration from parsed command-line arguments."""
        return cls(
            mutex=MutexConfig.from_args(args),
            log=LogConfig(
                level=getattr(args, "log_level", None) or os.environ.get("LOG_LEVEL", "WARNING"),
                format=getattr(args, "log_format", "text"),
                file=getattr(args, "log_file", None),
            ),
            no_color=getattr(args, "no_color", False),
        )
