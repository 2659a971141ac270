"""Custom exceptions for filemutex.

All exception classes carry a short message plus optional details so that
callers (and the CLI) can show what went wrong and which file was involved.

A busy lock is never an exception: ``try_acquire`` and ``release`` report
that with ``False``. Exceptions are reserved for setup failures, I/O
failures during an operation and programming errors.
"""


class FileMutexError(Exception):
    """Base exception for all filemutex errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(FileMutexError):
    """Exception raised for invalid configuration values.

    Examples:
        - Non-numeric timeout in the environment
        - Permission bits that are not a valid octal string
    """

    def __init__(self, message: str, field: str | None = None, details: str | None = None):
        self.field = field
        super().__init__(message, details)


class MutexSetupError(FileMutexError):
    """Exception raised when the mutex files cannot be prepared.

    Examples:
        - Parent path exists but is a regular file
        - Parent directory cannot be created
        - Data or lock file cannot be opened for read and write
    """

    def __init__(self, message: str, path: str | None = None, details: str | None = None):
        self.path = path
        super().__init__(message, details)


class MutexIOError(FileMutexError):
    """Exception raised when the coordination file cannot be opened or locked.

    The state of the logical lock is unknown after this error.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
        original_error: Exception | None = None,
    ):
        self.path = path
        self.original_error = original_error
        super().__init__(message, details)


class MutexUsageError(FileMutexError):
    """Exception raised when the engine is used incorrectly."""


class NoLocalLockError(MutexUsageError):
    """Raised by ``release()`` without an id when nothing was acquired locally."""

    def __init__(self):
        super().__init__(
            "No local lock available that could be released",
            "acquire a lock with this mutex before calling release() without an id",
        )


class LockNestingError(MutexUsageError):
    """Raised when a local lock is released out of LIFO order.

    Attributes:
        lock_id: The id that was requested for release
        nested_id: The most recently acquired local id
    """

    def __init__(self, lock_id: str, nested_id: str):
        self.lock_id = lock_id
        self.nested_id = nested_id
        super().__init__(f"Local lock '{lock_id}' is outside of the current nested lock '{nested_id}'")


class MutexAcquireCancelled(FileMutexError):
    """Raised when a blocking acquire is cancelled through its cancel event."""

    def __init__(self, lock_id: str):
        self.lock_id = lock_id
        super().__init__(f"Acquisition of lock '{lock_id}' was cancelled")
