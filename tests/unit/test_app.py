"""
Unit tests for UploadServer construction and the CLI.
"""

import argparse

import pytest

from uploadserver import UploadServer, create_app, __version__
from uploadserver.__main__ import build_config, main
from uploadserver.config import ServerConfig


class TestUploadServer:

    def test_default_routes(self, config):
        server = UploadServer(config)
        assert server.table.paths() == ["/", "/start", "/upload", "/show"]
        assert server.table["/"] is not None

    def test_listing_route_when_enabled(self, config):
        config.enable_listing = True
        server = create_app(config)
        assert "/listing" in server.table

    def test_slot_follows_config(self, config):
        server = UploadServer(config)
        assert str(server.slot.path) == config.upload_path

    def test_invalid_config_fails_before_binding(self):
        with pytest.raises(ValueError):
            UploadServer(ServerConfig(port=-5))

    def test_port_unknown_until_serving(self, config):
        assert UploadServer(config).port is None


class TestCLI:

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_invalid_port_exits_with_error(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--port", "99999"])

        assert exc_info.value.code == 1
        assert "Invalid port" in capsys.readouterr().err

    def test_bad_environment_exits_with_error(self, monkeypatch, capsys):
        monkeypatch.setenv("UPLOAD_SERVER_PORT", "abc")

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert "Error: invalid literal" in capsys.readouterr().err

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("UPLOAD_SERVER_PORT", "9000")
        monkeypatch.setenv("UPLOAD_SERVER_HOST", "0.0.0.0")

        args = argparse.Namespace(
            host=None, port=3000, upload_path=None,
            log_level=None, log_format="json", enable_listing=True,
        )
        config = build_config(args)

        assert config.port == 3000
        assert config.host == "0.0.0.0"
        assert config.log_format == "json"
        assert config.enable_listing is True
