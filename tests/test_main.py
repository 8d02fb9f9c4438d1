"""
Tests for the command line entry point.

Covers:
- Backend selection
- Argument handling and configuration overrides
"""

from __future__ import annotations

import os
import sys
from unittest.mock import AsyncMock, patch

import pytest

from apadopt.__main__ import build_collaborators, main
from apadopt.adoption.ssh import SSHAdopter
from apadopt.bridge.host import HostBridgeClient
from apadopt.bridge.setup_codes import SetupCodeClient
from apadopt.core.config import Config
from apadopt.mocks import MockAdopter, MockCodeValidator, MockScanner


class TestBuildCollaborators:
    """Tests for build_collaborators."""

    def test_mock_mode(self):
        validator, scanner, adopter = build_collaborators(Config.from_dict({}), mock=True)

        assert isinstance(validator, MockCodeValidator)
        assert isinstance(scanner, MockScanner)
        assert isinstance(adopter, MockAdopter)

    def test_ssh_backend(self):
        """Default backend adopts over SSH and scans through the bridge."""
        config = Config.from_dict({"adoption": {"username": "admin", "port": 2222}})

        validator, scanner, adopter = build_collaborators(config)

        assert isinstance(validator, SetupCodeClient)
        assert isinstance(scanner, HostBridgeClient)
        assert isinstance(adopter, SSHAdopter)
        assert adopter.username == "admin"
        assert adopter.port == 2222

    def test_bridge_backend(self):
        """Bridge backend shares one client for scanning and adopting."""
        config = Config.from_dict({"adoption": {"backend": "bridge"}})

        _, scanner, adopter = build_collaborators(config)

        assert adopter is scanner


class TestMain:
    """Tests for main()."""

    def run_main(self, *argv):
        with patch.object(sys, "argv", ["apadopt", *argv]), \
             patch("apadopt.__main__.run_assistant", new_callable=AsyncMock) as run_mock, \
             patch("apadopt.__main__.configure_logging"), \
             patch.dict(os.environ, {}, clear=True):
            main()
        return run_mock

    def test_cli_overrides(self, tmp_path, monkeypatch):
        """--host, --port and --adopter override configuration."""
        monkeypatch.chdir(tmp_path)
        run_mock = self.run_main("--host", "0.0.0.0", "--port", "8123", "--adopter", "bridge")

        config = run_mock.call_args.args[0]
        assert config.assistant.host == "0.0.0.0"
        assert config.assistant.port == 8123
        assert config.adoption.backend == "bridge"
        assert run_mock.call_args.kwargs["mock"] is False

    def test_mock_flag(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        run_mock = self.run_main("--mock")

        assert run_mock.call_args.kwargs["mock"] is True

    def test_config_file(self, tmp_path, monkeypatch):
        """--config is loaded first."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "custom.yaml"
        path.write_text("assistant:\n  port: 9999\n")

        run_mock = self.run_main("--config", str(path))

        config = run_mock.call_args.args[0]
        assert config.assistant.port == 9999
        assert config.source_path == path

    def test_invalid_config_exits(self, tmp_path, monkeypatch):
        """Invalid configuration exits with status 1."""
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "bad.yaml"
        path.write_text("system:\n  log_level: chatty\n")

        with pytest.raises(SystemExit) as exc_info:
            self.run_main("--config", str(path))

        assert exc_info.value.code == 1

    def test_invalid_cli_override_exits(self, tmp_path, monkeypatch, capsys):
        """Out-of-range --port is reported, not raised."""
        monkeypatch.chdir(tmp_path)

        with pytest.raises(SystemExit) as exc_info:
            self.run_main("--mock", "--port", "70000")

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "Configuration errors:" in out
        assert "assistant.port" in out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            self.run_main("--version")

        assert exc_info.value.code == 0
        assert "apadopt" in capsys.readouterr().out
