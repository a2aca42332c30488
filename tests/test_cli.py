"""Tests for the command-line entry point."""
import logging

import pytest
from typer.testing import CliRunner

from helios_mcp import cli
from helios_mcp.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    """serve() reconfigures the root logger onto the runner's stderr."""
    handlers, level = logging.root.handlers[:], logging.root.level
    yield
    logging.root.handlers[:] = handlers
    logging.root.setLevel(level)


class TestCli:
    def test_serve_requires_api_key(self):
        """Test that the server refuses to start without a key."""
        result = runner.invoke(app, ["serve"])
        assert result.exit_code == 1

    def test_default_command_is_serve(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 1

    def test_tools_lists_catalogue(self):
        """Test that the tools command prints every tool without a key."""
        result = runner.invoke(app, ["tools"])

        assert result.exit_code == 0
        names = [line.split()[0] for line in result.stdout.splitlines() if line.strip()]
        assert "create_project" in names
        assert "debug_environment" in names
        assert len(names) == len(set(names))

    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "serve" in result.stdout

    def test_root_options_start_server(self, monkeypatch):
        """Test that the default command accepts the server options directly."""
        started = []

        async def fake_serve(gateway):
            started.append(gateway.settings)
            await gateway.aclose()

        monkeypatch.setattr(cli, "_serve", fake_serve)
        result = runner.invoke(app, ["--api-key", "hel9_x", "--api-url", "https://helios.test/", "--lazy-service-keys"])

        assert result.exit_code == 0
        assert len(started) == 1
        assert started[0].api_key == "hel9_x"
        assert started[0].api_url == "https://helios.test"
        assert started[0].lazy_service_keys is True

    def test_root_options_carry_into_serve(self, monkeypatch):
        """Test that options before the subcommand apply unless serve overrides them."""
        started = []

        async def fake_serve(gateway):
            started.append(gateway.settings)
            await gateway.aclose()

        monkeypatch.setattr(cli, "_serve", fake_serve)
        result = runner.invoke(app, ["--api-key", "hel9_x", "--log-level", "debug", "serve", "--log-level", "warning"])

        assert result.exit_code == 0
        assert started[0].api_key == "hel9_x"
        assert started[0].log_level == "WARNING"
