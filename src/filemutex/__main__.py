"""Allow running as ``python -m filemutex``."""

import sys

from filemutex.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
