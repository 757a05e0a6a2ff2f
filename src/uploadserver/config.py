"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the upload server.

=============================================================================
WHY A CONFIG CLASS?
=============================================================================

The classic upload router hard-codes port 8888, /tmp/test.png and
"ls -lah". Those stay the defaults here, but they live in one typed place
so tests can point the upload slot at a temporary directory and bind an
ephemeral port.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m uploadserver --port 3000                        │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── UPLOAD_SERVER_PORT=3000 python -m uploadserver            │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Configuration is validated once, at startup. A bad value stops the server
before it binds a socket.

=============================================================================
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class ServerConfig:
    """
    Configuration for the upload server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size

    HTTP SETTINGS
    - max_header_size, max_request_size

    UPLOAD SLOT
    - upload_path, upload_dir, upload_field, text_field

    SUBPROCESS HANDLER
    - listing_command, enable_listing

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8888
    """
    The port number to listen on. 0 lets the OS pick a free port,
    which is what the test suite does.
    """

    backlog: int = 128
    """Maximum number of queued connections."""

    buffer_size: int = 65536
    """
    Maximum bytes pulled from the socket per read.
    Also the chunk size handed to the form parser.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_header_size: int = 64 * 1024  # 64 KB
    """
    Maximum size of the request line plus headers.
    Larger heads are rejected with 431 Request Header Fields Too Large.
    """

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """
    Maximum declared Content-Length.
    Larger bodies are rejected with 413 before any handler runs.
    """

    # ─────────────────────────────────────────────────────────────────────
    # UPLOAD SLOT
    # ─────────────────────────────────────────────────────────────────────

    upload_path: str = "/tmp/test.png"
    """
    The single, process-wide file that /upload writes and /show reads.
    Every successful upload overwrites it (last writer wins).
    """

    upload_dir: Optional[str] = None
    """
    Where in-flight uploads are spooled before being renamed into the slot.
    None means "the slot's own directory", which keeps the final rename on
    one filesystem.
    """

    upload_field: str = "upload"
    """Form field name carrying the uploaded file."""

    text_field: str = "text"
    """Form field name echoed back by a urlencoded submission."""

    # ─────────────────────────────────────────────────────────────────────
    # SUBPROCESS HANDLER
    # ─────────────────────────────────────────────────────────────────────

    listing_command: str = "ls -lah"
    """Shell command run by the /listing handler."""

    enable_listing: bool = False
    """Register /listing in the route table. Off by default."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (Apache style) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "UploadServer/1.0"
    """Value of the Server response header."""

    @property
    def spool_dir(self) -> Path:
        """Directory used for in-flight uploads."""
        if self.upload_dir:
            return Path(self.upload_dir)
        return Path(self.upload_path).parent

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        UPLOAD_SERVER_HOST            Server host (default: 127.0.0.1)
        UPLOAD_SERVER_PORT            Server port (default: 8888)
        UPLOAD_SERVER_UPLOAD_PATH     Upload slot (default: /tmp/test.png)
        UPLOAD_SERVER_LOG_LEVEL       Logging level (default: INFO)
        UPLOAD_SERVER_ENABLE_LISTING  "1"/"true" registers /listing

        =====================================================================
        """
        return cls(
            host=os.getenv("UPLOAD_SERVER_HOST", "127.0.0.1"),
            port=int(os.getenv("UPLOAD_SERVER_PORT", "8888")),
            upload_path=os.getenv("UPLOAD_SERVER_UPLOAD_PATH", "/tmp/test.png"),
            log_level=os.getenv("UPLOAD_SERVER_LOG_LEVEL", "INFO"),
            enable_listing=os.getenv("UPLOAD_SERVER_ENABLE_LISTING", "").lower()
            in ("1", "true", "yes"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.max_header_size < 1024:
            raise ValueError("max_header_size must be >= 1024")

        if self.max_request_size < 0:
            raise ValueError("max_request_size must be >= 0")

        if not self.upload_path:
            raise ValueError("upload_path must not be empty")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

        if self.enable_listing and not self.listing_command.strip():
            raise ValueError("listing_command must not be empty when listing is enabled")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Type-safe configuration with a dataclass
# 2. Environment variable support (from_env)
# 3. Validation at startup (fail-fast)
# 4. Defaults: port 8888, /tmp/test.png, "ls -lah"
# =============================================================================
