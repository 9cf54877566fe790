"""Tests for the configuration system."""

import pytest

from sparktop.config import Config, DisplayConfig, EngineConfig, LoggingConfig


def test_engine_config_defaults():
    """Test engine defaults: 1s ticks, half-weight smoothing, 10 minutes of history."""
    engine = EngineConfig()
    assert engine.tick_interval == 1.0
    assert engine.ewma_weight == 0.5
    assert engine.tombstone_ttl == 5
    assert engine.sample_limit == 600
    assert engine.store_smoothed is False
    assert engine.failure_threshold == 3


def test_display_config_defaults():
    """Test display defaults."""
    display = DisplayConfig()
    assert display.metric == "cpu"
    assert display.sort_by == "cpu"
    assert display.descending is True
    assert display.direction == "rtl"


def test_logging_config_defaults():
    """Test logging defaults."""
    assert LoggingConfig().level == "INFO"


def test_paths_under_home(tmp_path, monkeypatch):
    """Test config and log paths follow the XDG-style layout."""
    monkeypatch.setenv("HOME", str(tmp_path))
    config = Config()
    assert config.config_path == tmp_path / ".config" / "sparktop" / "config.toml"
    assert config.log_path == tmp_path / ".local" / "state" / "sparktop" / "sparktop.log"


def test_load_missing_file_returns_defaults(tmp_path):
    """Test loading a nonexistent file gives the defaults."""
    assert Config.load(tmp_path / "missing.toml") == Config()


def test_save_load_roundtrip(tmp_path):
    """Test saved values come back on load."""
    path = tmp_path / "nested" / "config.toml"
    config = Config()
    config.engine.tick_interval = 0.5
    config.engine.tombstone_ttl = 0
    config.engine.store_smoothed = True
    config.display.metric = "disk_write"
    config.display.direction = "ltr"
    config.logging.level = "DEBUG"
    config.save(path)

    assert Config.load(path) == config


def test_partial_file_uses_defaults(tmp_path):
    """Test missing keys and sections fall back to defaults."""
    path = tmp_path / "config.toml"
    path.write_text("[engine]\newma_weight = 0.3\n")

    config = Config.load(path)
    assert config.engine.ewma_weight == 0.3
    assert config.engine.tick_interval == 1.0
    assert config.display == DisplayConfig()


def test_dumps_has_all_sections():
    """Test the TOML rendering names every section."""
    text = Config().dumps()
    assert "[engine]" in text
    assert "[display]" in text
    assert "[logging]" in text
    assert "ewma_weight = 0.5" in text


def test_unparseable_file_raises(tmp_path):
    """Test a broken file is reported as ValueError."""
    path = tmp_path / "config.toml"
    path.write_text("[engine\nthis is not toml")
    with pytest.raises(ValueError, match="Failed to parse"):
        Config.load(path)


@pytest.mark.parametrize(
    "section, key, value",
    [
        ("engine", "tick_interval", 0.0),
        ("engine", "ewma_weight", 0.0),
        ("engine", "ewma_weight", 1.5),
        ("engine", "tombstone_ttl", -1),
        ("engine", "sample_limit", 0),
        ("engine", "failure_threshold", 0),
        ("display", "metric", "gpu"),
        ("display", "sort_by", "name"),
        ("display", "direction", "up"),
        ("display", "min_history_width", 0),
        ("logging", "level", "LOUD"),
    ],
)
def test_validate_rejects_out_of_range(section, key, value):
    """Test validate() names the bad value."""
    config = Config()
    setattr(getattr(config, section), key, value)
    with pytest.raises(ValueError):
        config.validate()


def test_load_validates(tmp_path):
    """Test out-of-range values in the file are rejected on load."""
    path = tmp_path / "config.toml"
    path.write_text('[display]\nmetric = "gpu"\n')
    with pytest.raises(ValueError, match="metric"):
        Config.load(path)
