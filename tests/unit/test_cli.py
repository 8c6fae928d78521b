"""Unit tests for the command-line interface and application wiring."""

import json

import pytest
import yaml
from click.testing import CliRunner

from tgsync.cli.main import TGSyncApplication, cli
from tgsync.lib.config import ConfigurationError
from tgsync.services.session_refresh import SessionRefreshOrchestrator


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "tgsync.yaml"
    path.write_text(yaml.safe_dump({
        "transport": {"request_timeout": 5},
        "refresh": {"chat_info_failure_policy": "fail"},
    }))
    return path


class TestCLI:
    """Test CLI commands."""

    def test_validate(self, runner, config_file):
        """Test validate reports a valid file."""
        result = runner.invoke(cli, ["--config", str(config_file), "validate"])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "Warnings" not in result.output

    def test_validate_invalid(self, runner, tmp_path):
        """Test validate exits non-zero on invalid configuration."""
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"logging": {"level": "LOUD"}}))

        result = runner.invoke(cli, ["--config", str(path), "validate"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_show_config_json(self, runner, config_file):
        """Test show-config prints the effective configuration."""
        result = runner.invoke(cli, ["--config", str(config_file), "show-config", "-f", "json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["transport"]["request_timeout"] == 5
        assert "config_file_path" not in data

    def test_debug_flag_enables_debug_mode(self, runner, config_file, tmp_path):
        """Test --debug turns on debug mode in the effective configuration."""
        output = tmp_path / "debug.yaml"

        result = runner.invoke(cli, ["--config", str(config_file), "--debug", "export-config", "-o", str(output)])

        assert result.exit_code == 0
        assert yaml.safe_load(output.read_text())["debug"] is True

    def test_export_config(self, runner, config_file, tmp_path):
        """Test export-config writes YAML."""
        output = tmp_path / "exported.yaml"

        result = runner.invoke(cli, ["--config", str(config_file), "export-config", "-o", str(output)])

        assert result.exit_code == 0
        assert yaml.safe_load(output.read_text())["refresh"]["chat_info_failure_policy"] == "fail"


class TestTGSyncApplication:
    """Test application wiring."""

    def test_create_orchestrator_uses_refresh_config(self, config_file, transport):
        """Test the orchestrator receives the configured refresh section."""
        app = TGSyncApplication(str(config_file))
        app.initialize(configure_logging=False)

        orchestrator = app.create_orchestrator(transport)

        assert isinstance(orchestrator, SessionRefreshOrchestrator)
        assert orchestrator.config.chat_info_failure_policy == "fail"
        app.shutdown()

    def test_create_transport_uses_timeout(self, config_file):
        """Test the transport receives the configured request timeout."""
        async def exchange(request):
            return True, None

        app = TGSyncApplication(str(config_file))
        app.initialize(configure_logging=False)

        transport = app.create_transport(exchange)

        assert transport.request_timeout == 5
        assert transport.is_usable()

    def test_create_orchestrator_requires_initialize(self, transport):
        """Test wiring before initialization fails."""
        with pytest.raises(ConfigurationError):
            TGSyncApplication().create_orchestrator(transport)
