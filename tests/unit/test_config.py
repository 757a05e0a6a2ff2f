"""
Unit tests for ServerConfig.
"""

from pathlib import Path

import pytest

from uploadserver.config import ServerConfig


class TestDefaults:

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 8888
        assert config.upload_path == "/tmp/test.png"
        assert config.upload_field == "upload"
        assert config.listing_command == "ls -lah"
        assert config.enable_listing is False
        assert config.log_format == "text"

    def test_defaults_validate(self):
        ServerConfig().validate()

    def test_spool_dir_defaults_to_slot_directory(self):
        assert ServerConfig(upload_path="/srv/uploads/test.png").spool_dir == Path("/srv/uploads")

    def test_spool_dir_override(self):
        config = ServerConfig(upload_dir="/var/spool/uploads")
        assert config.spool_dir == Path("/var/spool/uploads")


class TestValidate:

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 70000},
        {"buffer_size": 10},
        {"max_header_size": 100},
        {"max_request_size": -1},
        {"upload_path": ""},
        {"log_format": "xml"},
        {"enable_listing": True, "listing_command": "  "},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_port_zero_is_allowed(self):
        ServerConfig(port=0).validate()


class TestFromEnv:

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("UPLOAD_SERVER_HOST", "0.0.0.0")
        monkeypatch.setenv("UPLOAD_SERVER_PORT", "9000")
        monkeypatch.setenv("UPLOAD_SERVER_UPLOAD_PATH", "/data/last.png")
        monkeypatch.setenv("UPLOAD_SERVER_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("UPLOAD_SERVER_ENABLE_LISTING", "true")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.upload_path == "/data/last.png"
        assert config.log_level == "DEBUG"
        assert config.enable_listing is True

    def test_falls_back_to_defaults(self, monkeypatch):
        for name in ("HOST", "PORT", "UPLOAD_PATH", "LOG_LEVEL", "ENABLE_LISTING"):
            monkeypatch.delenv(f"UPLOAD_SERVER_{name}", raising=False)

        assert ServerConfig.from_env() == ServerConfig()
