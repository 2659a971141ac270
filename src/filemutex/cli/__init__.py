"""Command-line interface for filemutex (``filemutex`` / ``python -m filemutex``)."""
