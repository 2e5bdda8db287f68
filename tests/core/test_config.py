"""Tests for the Config system."""

import pytest
from pathlib import Path
from croncue.core.config import CronCueConfig, _deep_merge, _substitute_env_vars, _convert_value
from croncue.core.errors import ConfigError


@pytest.fixture
def no_files(tmp_path):
    """Paths that do not exist, so only defaults/env/overrides apply."""
    return {
        "project_path": tmp_path / "missing" / "croncue.toml",
        "user_path": tmp_path / "missing" / "config.toml",
    }


def test_default_config():
    """Default config has sensible values."""
    config = CronCueConfig()

    assert config.scheduler.data_dir == "~/.croncue/cron"
    assert config.scheduler.default_target is None
    assert config.scheduler.tick_interval == 15.0
    assert config.scheduler.rescan_interval == 30.0
    assert config.heartbeat.enabled is False
    assert config.heartbeat.cron == "*/5 * * * *"
    assert config.heartbeat.target == "tui"
    assert config.heartbeat.file == ".croncue/HEARTBEAT.md"
    assert config.logging.console_level == "WARNING"


def test_data_path_expands_home():
    config = CronCueConfig()
    assert config.scheduler.data_path.is_absolute()
    assert config.scheduler.data_path.parts[-2:] == (".croncue", "cron")


def test_load_with_overrides(no_files):
    """Explicit overrides take highest precedence."""
    config = CronCueConfig.load(
        overrides={
            "scheduler": {"data_dir": "/srv/cron", "default_target": "ops"},
            "heartbeat": {"enabled": True},
        },
        **no_files,
    )

    assert config.scheduler.data_dir == "/srv/cron"
    assert config.scheduler.default_target == "ops"
    assert config.heartbeat.enabled is True
    # Defaults still work for non-overridden values
    assert config.scheduler.tick_interval == 15.0


def test_env_var_loading(monkeypatch, no_files):
    """CRONCUE_* environment variables are loaded."""
    monkeypatch.setenv("CRONCUE_DATA_DIR", "/var/lib/croncue")
    monkeypatch.setenv("CRONCUE_TICK_INTERVAL", "5")
    monkeypatch.setenv("CRONCUE_HEARTBEAT_ENABLED", "true")
    monkeypatch.setenv("CRONCUE_DEFAULT_TARGET", "1234")

    config = CronCueConfig.load(**no_files)

    assert config.scheduler.data_dir == "/var/lib/croncue"
    assert config.scheduler.tick_interval == 5.0
    assert config.heartbeat.enabled is True
    # Session ids stay strings even when numeric
    assert config.scheduler.default_target == "1234"


def test_toml_layers(tmp_path, monkeypatch):
    """Project toml beats user toml; env beats both."""
    user = tmp_path / "config.toml"
    user.write_text('[scheduler]\ndata_dir = "/user"\ndefault_target = "tui"\n')
    project = tmp_path / "croncue.toml"
    project.write_text('[scheduler]\ndata_dir = "/project"\n')

    config = CronCueConfig.load(project_path=project, user_path=user)
    assert config.scheduler.data_dir == "/project"
    assert config.scheduler.default_target == "tui"

    monkeypatch.setenv("CRONCUE_DATA_DIR", "/env")
    config = CronCueConfig.load(project_path=project, user_path=user)
    assert config.scheduler.data_dir == "/env"


def test_invalid_value_raises_config_error(no_files):
    with pytest.raises(ConfigError):
        CronCueConfig.load(overrides={"scheduler": {"tick_interval": 0}}, **no_files)


def test_malformed_toml_raises_config_error(tmp_path):
    bad = tmp_path / "croncue.toml"
    bad.write_text("[scheduler\ndata_dir = ")

    with pytest.raises(ConfigError):
        CronCueConfig.load(project_path=bad, user_path=tmp_path / "none.toml")


def test_env_var_substitution(monkeypatch):
    """${VAR} in config values gets replaced with env var values."""
    monkeypatch.setenv("MY_DIR", "/data")
    data = {"key": "${MY_DIR}/cron", "nested": {"list": ["${MY_DIR}", 3]}}

    _substitute_env_vars(data)

    assert data["key"] == "/data/cron"
    assert data["nested"]["list"] == ["/data", 3]


def test_deep_merge():
    base = {"a": 1, "b": {"c": 2, "d": 3}, "e": 5}
    override = {"b": {"c": 20, "f": 6}, "g": 7}

    _deep_merge(base, override)

    assert base == {"a": 1, "b": {"c": 20, "d": 3, "f": 6}, "e": 5, "g": 7}


def test_convert_value():
    assert _convert_value("true") is True
    assert _convert_value("false") is False
    assert _convert_value("42") == 42
    assert _convert_value("3.14") == 3.14
    assert _convert_value("hello") == "hello"


def test_get_home():
    config = CronCueConfig()
    assert config.get_home() == Path.home() / ".croncue"


def test_load_nonexistent_toml():
    """Loading from nonexistent files just uses defaults."""
    config = CronCueConfig.load(
        project_path=Path("/nonexistent/croncue.toml"),
        user_path=Path("/nonexistent/config.toml"),
    )
    assert config.heartbeat.target == "tui"
