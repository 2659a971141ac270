"""Constants and default values for filemutex.

This module centralizes default paths, permission bits, timing values
and environment variable names used throughout the package.
"""

import os
import tempfile
from pathlib import Path

# ==================== TIME UNITS ====================

MICROS_PER_SECOND: int = 1_000_000

# ==================== FILE LAYOUT ====================

DEFAULT_DATA_DIR_NAME: str = "filemutex"  # Subdirectory created under the runtime dir
DEFAULT_DATA_FILE_NAME: str = "mutex.bin"
LOCK_FILE_SUFFIX: str = ".lock"  # Coordination file = data file + suffix

# ==================== PERMISSIONS ====================

DEFAULT_FILE_PERMISSION: int = 0o600  # owner rw
DEFAULT_DIRECTORY_PERMISSION: int = 0o700  # owner rwx

# ==================== TIMING DEFAULTS ====================

DEFAULT_POLL_INTERVAL_MICROS: int = 1000  # Sleep between acquire() attempts
DEFAULT_MAX_EXECUTION_TIME: int = 0  # Seconds; 0 means logical locks never expire by default

# ==================== TABLE FORMAT ====================

TABLE_FORMAT_VERSION: int = 1

# ==================== LOGGING DEFAULTS ====================

LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB max per log file
LOG_FILE_BACKUP_COUNT: int = 5  # Number of backup log files to keep
VALID_LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# ==================== ENVIRONMENT VARIABLE MAPPING ====================

# Maps MutexConfig field names to environment variable names
ENV_VAR_MAPPING: dict[str, str] = {
    "data_file": "FILEMUTEX_DATA_FILE",
    "lock_file": "FILEMUTEX_LOCK_FILE",
    "default_timeout": "FILEMUTEX_DEFAULT_TIMEOUT",
    "file_permission": "FILEMUTEX_FILE_PERMISSION",
    "directory_permission": "FILEMUTEX_DIRECTORY_PERMISSION",
    "poll_interval_micros": "FILEMUTEX_POLL_INTERVAL",
}

RUNTIME_DIR_ENV: str = "FILEMUTEX_RUNTIME_DIR"
MAX_EXECUTION_TIME_ENV: str = "FILEMUTEX_MAX_EXECUTION_TIME"


def default_runtime_dir() -> Path:
    """Return the runtime directory holding the default mutex files.

    Priority: 1) FILEMUTEX_RUNTIME_DIR, 2) XDG_RUNTIME_DIR, 3) system temp dir
    """
    for env_var in (RUNTIME_DIR_ENV, "XDG_RUNTIME_DIR"):
        value = os.environ.get(env_var, "").strip()
        if value:
            return Path(value)
    return Path(tempfile.gettempdir())


def default_data_file() -> Path:
    """Default table file path: ``<runtime dir>/filemutex/mutex.bin``."""
    return default_runtime_dir() / DEFAULT_DATA_DIR_NAME / DEFAULT_DATA_FILE_NAME


def lock_file_for(data_file: Path) -> Path:
    """Coordination file path paired with a table file."""
    return data_file.with_name(data_file.name + LOCK_FILE_SUFFIX)
