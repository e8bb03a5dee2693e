"""
Tests for CLI argument parser.
"""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from depkit.cli.parser import CLI


@pytest.fixture(autouse=True)
def basic_config():
    """Keep CLI.run from replacing the test run's logging handlers."""
    with patch("depkit.cli.parser.logging.basicConfig") as mock_config:
        yield mock_config


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_no_command_shows_help(self, capsys):
        """Test that running without command shows help."""
        result = CLI().run([])

        assert result == 1
        captured = capsys.readouterr()
        assert "usage:" in captured.out.lower()

    def test_version_flag(self, capsys):
        """Test --version flag."""
        with pytest.raises(SystemExit) as exc_info:
            CLI().run(["--version"])

        assert exc_info.value.code == 0
        assert "DepKit" in capsys.readouterr().out

    def test_global_options(self, temp_dir):
        """Test global options are parsed before the command."""
        args = CLI().parse_args(
            ["--verbose", "--config", "ci.yaml", "--workspace", str(temp_dir), "detect"]
        )

        assert args.verbose is True
        assert args.config == Path("ci.yaml")
        assert args.workspace == temp_dir
        assert args.command == "detect"

    def test_workspace_defaults_to_cwd(self):
        """Test default workspace."""
        assert CLI().parse_args(["detect"]).workspace == Path.cwd()


class TestCommandParsing:
    """Test sub-command parsing."""

    def test_compile(self, temp_dir):
        """Test compile with --cache-dir."""
        args = CLI().parse_args(["compile", "--cache-dir", str(temp_dir)])
        assert args.command == "compile"
        assert args.cache_dir == temp_dir

    def test_compile_without_cache_dir(self):
        """Test compile cache dir defaults to None."""
        assert CLI().parse_args(["compile"]).cache_dir is None

    @pytest.mark.parametrize("sub", ["status", "clear"])
    def test_cache_subcommands(self, sub):
        """Test cache status and clear."""
        args = CLI().parse_args(["cache", sub, "--cache-dir", "/tmp/c"])
        assert args.command == "cache"
        assert args.cache_command == sub
        assert args.cache_dir == Path("/tmp/c")

    def test_unknown_command(self):
        """Test argparse rejects unknown commands."""
        with pytest.raises(SystemExit):
            CLI().parse_args(["deploy"])


class TestDispatch:
    """Test command dispatch and top-level error handling."""

    @patch("depkit.cli.commands.detect.run", return_value=0)
    def test_dispatches_to_module(self, mock_run):
        """Test commands are routed to their module's run()."""
        assert CLI().run(["detect"]) == 0
        mock_run.assert_called_once()
        assert mock_run.call_args[0][0].command == "detect"

    @patch("depkit.cli.commands.compile.run", side_effect=KeyboardInterrupt)
    def test_keyboard_interrupt(self, mock_run):
        """Test Ctrl-C exit code."""
        assert CLI().run(["compile"]) == 130

    @patch("depkit.cli.commands.compile.run", side_effect=RuntimeError("boom"))
    def test_unexpected_error(self, mock_run, caplog):
        """Test unexpected errors become exit code 1."""
        with caplog.at_level(logging.ERROR):
            assert CLI().run(["compile"]) == 1
        assert "boom" in caplog.text


class TestLogging:
    """Test logging configuration flags."""

    @pytest.mark.parametrize(
        "flag,level",
        [([], logging.INFO), (["--verbose"], logging.DEBUG), (["--quiet"], logging.ERROR)],
    )
    def test_levels(self, basic_config, flag, level):
        """Test --verbose and --quiet set the root level."""
        CLI().run(flag)
        assert basic_config.call_args[1]["level"] == level
        assert basic_config.call_args[1]["force"] is True
