"""Pytest configuration and fixtures for filemutex tests"""
import logging
import os
from pathlib import Path

import pytest

from filemutex.core.config import MutexConfig
from filemutex.core.locks.bootstrap import prepare_mutex_files
from filemutex.core.locks.manager import FileMutex


class FakeClock:
    """Manually advanced wall clock for expiry tests."""

    def __init__(self, now: float = 1_700_000_000.25):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep real FILEMUTEX_* settings and stray .env files out of every test."""
    for name in list(os.environ):
        if name.startswith("FILEMUTEX_"):
            monkeypatch.delenv(name)
    monkeypatch.delenv("XDG_RUNTIME_DIR", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    # load_dotenv writes os.environ directly, outside monkeypatch's bookkeeping
    for name in [n for n in os.environ if n.startswith("FILEMUTEX_")]:
        os.environ.pop(name, None)


@pytest.fixture
def data_file(tmp_path) -> Path:
    return tmp_path / "runtime" / "filemutex" / "mutex.bin"


@pytest.fixture
def mutex_config(data_file) -> MutexConfig:
    config = MutexConfig(data_file=data_file, default_timeout=0)
    prepare_mutex_files(config)
    return config


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_mutex(mutex_config, clock):
    """Factory for independent engine instances sharing the same files."""

    def _make(**overrides) -> FileMutex:
        kwargs = {
            "data_file": mutex_config.data_file,
            "lock_file": mutex_config.lock_file,
            "default_timeout": mutex_config.default_timeout,
            "clock": clock,
        }
        kwargs.update(overrides)
        return FileMutex(**kwargs)

    return _make


@pytest.fixture
def restore_root_logging():
    """Undo setup_logging's changes to the root logger."""
    root_logger = logging.getLogger()
    original_handlers = list(root_logger.handlers)
    original_level = root_logger.level
    yield root_logger
    for handler in list(root_logger.handlers):
        if handler not in original_handlers:
            handler.close()
            root_logger.removeHandler(handler)
    for handler in original_handlers:
        if handler not in root_logger.handlers:
            root_logger.addHandler(handler)
    root_logger.setLevel(original_level)
