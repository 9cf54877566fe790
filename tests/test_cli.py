"""Tests for the command line interface."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from sparktop.cli import main
from sparktop.config import Config


@pytest.fixture
def home(tmp_path, monkeypatch):
    """Point config and log paths at a temporary home directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


def test_help():
    """Test the top-level help lists the commands."""
    result = CliRunner().invoke(main, ["--help"])
    assert result.exit_code == 0
    for command in ("tui", "watch", "config"):
        assert command in result.output


def test_config_show_defaults(home):
    """Test config show prints the effective settings."""
    result = CliRunner().invoke(main, ["config", "show"])
    assert result.exit_code == 0
    assert "Exists: False" in result.output
    assert "[engine]" in result.output
    assert "tombstone_ttl = 5" in result.output


def test_config_show_applies_overrides(home):
    """Test command-line options override the file."""
    result = CliRunner().invoke(main, ["-d", "0.5", "-e", "0.3", "--ttl", "2", "config", "show"])
    assert result.exit_code == 0
    assert "tick_interval = 0.5" in result.output
    assert "ewma_weight = 0.3" in result.output
    assert "tombstone_ttl = 2" in result.output


def test_invalid_override_is_reported(home):
    """Test an out-of-range option is a usage error, not a traceback."""
    result = CliRunner().invoke(main, ["-e", "2.0", "config", "show"])
    assert result.exit_code != 0
    assert "ewma_weight" in result.output


def test_config_init_writes_file(home):
    """Test config init creates the default config file."""
    result = CliRunner().invoke(main, ["config", "init"])
    assert result.exit_code == 0
    path = home / ".config" / "sparktop" / "config.toml"
    assert path.exists()
    assert Config.load(path) == Config()


def test_config_init_keeps_existing_file(home):
    """Test config init does not overwrite without --force."""
    path = home / ".config" / "sparktop" / "config.toml"
    path.parent.mkdir(parents=True)
    path.write_text("[engine]\ntombstone_ttl = 9\n")

    CliRunner().invoke(main, ["config", "init"])
    assert Config.load(path).engine.tombstone_ttl == 9

    CliRunner().invoke(main, ["config", "init", "--force"])
    assert Config.load(path).engine.tombstone_ttl == 5


def test_explicit_config_path(home):
    """Test --config reads the given file."""
    path = home / "custom.toml"
    path.write_text('[display]\nsort_by = "pid"\n')
    result = CliRunner().invoke(main, ["--config", str(path), "config", "show"])
    assert result.exit_code == 0
    assert 'sort_by = "pid"' in result.output


def test_watch_runs_console(home):
    """Test watch hands the loaded config and iteration limit to the console mode."""
    with patch("sparktop.console.run_console", return_value=2) as run_console:
        result = CliRunner().invoke(main, ["-d", "0.1", "watch", "-n", "2"])
    assert result.exit_code == 0
    config = run_console.call_args.args[0]
    assert config.engine.tick_interval == 0.1
    assert run_console.call_args.kwargs["iterations"] == 2


def test_default_command_is_tui(home):
    """Test running with no command launches the dashboard."""
    with patch("sparktop.app.run_tui") as run_tui:
        result = CliRunner().invoke(main, [])
    assert result.exit_code == 0
    run_tui.assert_called_once()
