"""Console colors for filemutex command-line output.

ANSI codes are emitted only when stdout is a TTY and colors were not
disabled with ``--no-color`` or the NO_COLOR environment variable.
"""

import os
import re
import sys


class ConsoleColors:
    """ANSI color codes for terminal output."""
    GREEN = '\033[92m'
    RED = '\033[91m'
    YELLOW = '\033[93m'
    BOLD = '\033[1m'
    DIM = '\033[90m'
    RESET = '\033[0m'
    ANSI_ESCAPE = re.compile(r'\033\[[0-9;]*m')

    _enabled = sys.stdout.isatty() and (os.name != 'nt' or bool(os.environ.get('TERM')))

    @classmethod
    def configure(cls, no_color: bool = False) -> None:
        """Apply the global color policy for all call sites."""
        if no_color or os.environ.get('NO_COLOR'):
            cls._enabled = False
        else:
            cls._enabled = sys.stdout.isatty() and (os.name != 'nt' or bool(os.environ.get('TERM')))

    @classmethod
    def _wrap(cls, code: str, text: str) -> str:
        if cls._enabled:
            return f"{code}{text}{cls.RESET}"
        return text

    @classmethod
    def success(cls, text: str) -> str:
        """Format text as success (green)"""
        return cls._wrap(cls.GREEN, text)

    @classmethod
    def error(cls, text: str) -> str:
        """Format text as error (red)"""
        return cls._wrap(cls.RED, text)

    @classmethod
    def warning(cls, text: str) -> str:
        """Format text as warning (yellow)"""
        return cls._wrap(cls.YELLOW, text)

    @classmethod
    def bold(cls, text: str) -> str:
        return cls._wrap(cls.BOLD, text)

    @classmethod
    def dim(cls, text: str) -> str:
        return cls._wrap(cls.DIM, text)

    @classmethod
    def visible_len(cls, text: str) -> int:
        """Return the visible length of a string, ignoring ANSI escape codes."""
        return len(cls.ANSI_ESCAPE.sub('', text))

    @classmethod
    def ljust(cls, text: str, width: int) -> str:
        """Left-justify a string accounting for ANSI escape codes."""
        padding = max(0, width - cls.visible_len(text))
        return text + ' ' * padding
