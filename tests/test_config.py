"""Tests for configuration loading"""

import argparse
from pathlib import Path

import pytest

from filemutex.core.config import AppConfig, MutexConfig, max_execution_time_micros
from filemutex.core.constants import default_runtime_dir
from filemutex.core.exceptions import ConfigurationError


class TestDefaults:
    def test_paths_derive_from_runtime_dir(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FILEMUTEX_RUNTIME_DIR", str(tmp_path))
        config = MutexConfig()
        assert config.data_file == tmp_path / "filemutex" / "mutex.bin"
        assert config.lock_file == tmp_path / "filemutex" / "mutex.bin.lock"

    def test_runtime_dir_falls_back_to_xdg(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path / "xdg"))
        assert default_runtime_dir() == tmp_path / "xdg"

    def test_runtime_dir_falls_back_to_tempdir(self):
        import tempfile

        assert default_runtime_dir() == Path(tempfile.gettempdir())

    def test_explicit_data_file_gets_sibling_lock_file(self, tmp_path):
        config = MutexConfig(data_file=str(tmp_path / "x.bin"))
        assert config.data_file == tmp_path / "x.bin"
        assert config.lock_file == tmp_path / "x.bin.lock"

    def test_default_permissions_and_poll_interval(self):
        config = MutexConfig()
        assert config.file_permission == 0o600
        assert config.directory_permission == 0o700
        assert config.poll_interval_micros == 1000

    def test_default_timeout_never_expires_without_environment(self):
        assert MutexConfig().default_timeout == 0

    def test_default_timeout_from_max_execution_time(self, monkeypatch):
        monkeypatch.setenv("FILEMUTEX_MAX_EXECUTION_TIME", "30")
        assert max_execution_time_micros() == 30_000_000
        assert MutexConfig().default_timeout == 30_000_000

    def test_explicit_default_timeout_wins(self, monkeypatch):
        monkeypatch.setenv("FILEMUTEX_MAX_EXECUTION_TIME", "30")
        assert MutexConfig(default_timeout=-1).default_timeout == -1

    def test_to_dict(self, tmp_path):
        payload = MutexConfig(data_file=tmp_path / "m.bin", default_timeout=5).to_dict()
        assert payload["data_file"] == str(tmp_path / "m.bin")
        assert payload["file_permission"] == "0o600"
        assert payload["default_timeout"] == 5


class TestFromEnv:
    def test_reads_environment_variables(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FILEMUTEX_DATA_FILE", str(tmp_path / "data.bin"))
        monkeypatch.setenv("FILEMUTEX_LOCK_FILE", str(tmp_path / "data.lck"))
        monkeypatch.setenv("FILEMUTEX_DEFAULT_TIMEOUT", "2500000")
        monkeypatch.setenv("FILEMUTEX_FILE_PERMISSION", "640")
        monkeypatch.setenv("FILEMUTEX_DIRECTORY_PERMISSION", "0o750")
        monkeypatch.setenv("FILEMUTEX_POLL_INTERVAL", "250")

        config = MutexConfig.from_env()
        assert config.data_file == tmp_path / "data.bin"
        assert config.lock_file == tmp_path / "data.lck"
        assert config.default_timeout == 2_500_000
        assert config.file_permission == 0o640
        assert config.directory_permission == 0o750
        assert config.poll_interval_micros == 250

    def test_blank_values_are_ignored(self, monkeypatch):
        monkeypatch.setenv("FILEMUTEX_DEFAULT_TIMEOUT", "   ")
        assert MutexConfig.from_env().default_timeout == 0

    def test_invalid_integer_raises_configuration_error(self, monkeypatch):
        monkeypatch.setenv("FILEMUTEX_DEFAULT_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError) as exc_info:
            MutexConfig.from_env()
        assert exc_info.value.field == "FILEMUTEX_DEFAULT_TIMEOUT"
        assert "soon" in str(exc_info.value)

    def test_invalid_octal_permission_raises_configuration_error(self, monkeypatch):
        monkeypatch.setenv("FILEMUTEX_FILE_PERMISSION", "0o999")
        with pytest.raises(ConfigurationError):
            MutexConfig.from_env()

    def test_invalid_max_execution_time_raises_configuration_error(self, monkeypatch):
        monkeypatch.setenv("FILEMUTEX_MAX_EXECUTION_TIME", "1.5")
        with pytest.raises(ConfigurationError):
            MutexConfig()

    def test_loads_dotenv_file(self, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("FILEMUTEX_DEFAULT_TIMEOUT=42\nFILEMUTEX_POLL_INTERVAL=7\n", encoding="utf-8")

        config = MutexConfig.from_env(env_file)
        assert config.default_timeout == 42
        assert config.poll_interval_micros == 7

    def test_dotenv_in_working_directory_is_found(self, tmp_path):
        (tmp_path / ".env").write_text("FILEMUTEX_DEFAULT_TIMEOUT=99\n", encoding="utf-8")
        assert MutexConfig.from_env().default_timeout == 99

    def test_real_environment_wins_over_dotenv(self, monkeypatch, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("FILEMUTEX_DEFAULT_TIMEOUT=42\n", encoding="utf-8")
        monkeypatch.setenv("FILEMUTEX_DEFAULT_TIMEOUT", "1")

        assert MutexConfig.from_env(env_file).default_timeout == 1


class TestFromArgs:
    def test_cli_data_file_overrides_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FILEMUTEX_DATA_FILE", str(tmp_path / "env.bin"))
        monkeypatch.setenv("FILEMUTEX_LOCK_FILE", str(tmp_path / "env.lock"))
        args = argparse.Namespace(data_file=str(tmp_path / "cli.bin"), lock_file=None)

        config = MutexConfig.from_args(args)
        assert config.data_file == tmp_path / "cli.bin"
        assert config.lock_file == tmp_path / "cli.bin.lock"

    def test_cli_lock_file(self, tmp_path):
        args = argparse.Namespace(data_file=str(tmp_path / "cli.bin"), lock_file=str(tmp_path / "cli.lck"))
        assert MutexConfig.from_args(args).lock_file == tmp_path / "cli.lck"

    def test_app_config_from_args(self, tmp_path):
        args = argparse.Namespace(
            data_file=str(tmp_path / "cli.bin"),
            lock_file=None,
            log_level="DEBUG",
            log_format="json",
            log_file=None,
            no_color=True,
        )
        config = AppConfig.from_args(args)
        assert config.mutex.data_file == tmp_path / "cli.bin"
        assert config.log.level == "DEBUG"
        assert config.log.format == "json"
        assert config.no_color is True

    def test_app_config_log_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        args = argparse.Namespace(data_file=None, lock_file=None, log_level=None, log_format="text")
        assert AppConfig.from_args(args).log.level == "INFO"
