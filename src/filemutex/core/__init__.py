"""Core module - Foundation components of filemutex.

This module provides the basic building blocks used throughout the package:
- Version information
- Custom exceptions
- Configuration dataclasses
- Constants and defaults
"""

from filemutex.core.version import __version__

from filemutex.core.exceptions import (
    FileMutexError,
    ConfigurationError,
    MutexSetupError,
    MutexIOError,
    MutexUsageError,
    NoLocalLockError,
    LockNestingError,
    MutexAcquireCancelled,
)

from filemutex.core.config import (
    AppConfig,
    LogConfig,
    MutexConfig,
)

from filemutex.core.constants import (
    DEFAULT_DIRECTORY_PERMISSION,
    DEFAULT_FILE_PERMISSION,
    DEFAULT_POLL_INTERVAL_MICROS,
    ENV_VAR_MAPPING,
    MICROS_PER_SECOND,
    default_data_file,
    default_runtime_dir,
    lock_file_for,
)

__all__ = [
    # Version
    '__version__',
    # Exceptions
    'FileMutexError',
    'ConfigurationError',
    'MutexSetupError',
    'MutexIOError',
    'MutexUsageError',
    'NoLocalLockError',
    'LockNestingError',
    'MutexAcquireCancelled',
    # Config dataclasses
    'AppConfig',
    'LogConfig',
    'MutexConfig',
    # Constants
    'DEFAULT_DIRECTORY_PERMISSION',
    'DEFAULT_FILE_PERMISSION',
    'DEFAULT_POLL_INTERVAL_MICROS',
    'ENV_VAR_MAPPING',
    'MICROS_PER_SECOND',
    'default_data_file',
    'default_runtime_dir',
    'lock_file_for',
]
