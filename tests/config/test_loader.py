"""Tests for loading the stream configuration from YAML and the environment."""

import pytest
import yaml

from litepipe.config import load_stream_config
from litepipe.config.loader import default_config_path
from litepipe.sdk.stream import StreamConfigModel


@pytest.fixture
def home(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


def _write_config(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data))
    return path


class TestLoadStreamConfig:
    """File discovery, validation and overrides."""

    def test_defaults_without_file(self, home):
        assert load_stream_config() == StreamConfigModel()

    def test_default_location(self, home):
        _write_config(home / ".litepipe" / "config.yml", {"program": "/opt/sqlite3", "quit_timeout": 1.5})
        assert default_config_path() == home / ".litepipe" / "config.yml"

        config = load_stream_config()
        assert config.program == "/opt/sqlite3"
        assert config.quit_timeout == 1.5
        assert config.poll_interval == StreamConfigModel().poll_interval

    def test_explicit_path(self, tmp_path):
        path = _write_config(tmp_path / "custom.yml", {"use_pty": True, "pty_relay": "ptyrelay"})
        config = load_stream_config(path)
        assert config.use_pty
        assert config.pty_relay == "ptyrelay"

    def test_config_env_var(self, monkeypatch, tmp_path):
        path = _write_config(tmp_path / "env.yml", {"null_sentinel": "<nil>"})
        monkeypatch.setenv("LITEPIPE_CONFIG", str(path))
        assert load_stream_config().null_sentinel == "<nil>"

    def test_missing_explicit_file(self, monkeypatch, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_stream_config(tmp_path / "nope.yml")
        monkeypatch.setenv("LITEPIPE_CONFIG", str(tmp_path / "nope.yml"))
        with pytest.raises(FileNotFoundError):
            load_stream_config()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_stream_config(path) == StreamConfigModel()

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- sqlite3\n")
        with pytest.raises(ValueError, match="must be a mapping"):
            load_stream_config(path)

    def test_invalid_values(self, tmp_path):
        path = _write_config(tmp_path / "bad.yml", {"quit_timeout": -1})
        with pytest.raises(ValueError, match="Invalid litepipe config"):
            load_stream_config(path)

    def test_unknown_keys_rejected(self, tmp_path):
        path = _write_config(tmp_path / "extra.yml", {"colour": "blue"})
        with pytest.raises(ValueError):
            load_stream_config(path)

    def test_environment_overrides(self, monkeypatch, tmp_path):
        path = _write_config(tmp_path / "base.yml", {"program": "from-file", "quit_timeout": 9})
        monkeypatch.setenv("LITEPIPE_SQLITE_PROGRAM", "from-env")
        monkeypatch.setenv("LITEPIPE_QUIT_TIMEOUT", "0.5")
        monkeypatch.setenv("LITEPIPE_USE_PTY", "yes")
        monkeypatch.setenv("LITEPIPE_PTY_RELAY", "ptyrelay")
        monkeypatch.setenv("LITEPIPE_CONVERT_NUMBERS", "no")

        config = load_stream_config(path)
        assert config.program == "from-env"
        assert config.quit_timeout == 0.5
        assert config.use_pty
        assert config.pty_relay == "ptyrelay"
        assert not config.convert_numbers

    def test_bad_environment_value(self, monkeypatch, home):
        monkeypatch.setenv("LITEPIPE_QUIT_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="LITEPIPE_QUIT_TIMEOUT"):
            load_stream_config()
