"""
=============================================================================
UPLOAD SERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (127.0.0.1:8888, slot /tmp/test.png)
    python -m uploadserver

    # Custom port, JSON access log
    python -m uploadserver --port 3000 --log-format json

    # Also expose /listing (runs "ls -lah")
    python -m uploadserver --enable-listing

Environment variables (UPLOAD_SERVER_*) are read first; flags override
them.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig
from .server import UploadServer


def build_config(args: argparse.Namespace) -> ServerConfig:
    """
    Environment first, then flags.

    Raises:
        ValueError: If an UPLOAD_SERVER_* variable cannot be parsed.
    """
    config = ServerConfig.from_env()
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.upload_path is not None:
        config.upload_path = args.upload_path
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format
    if args.enable_listing:
        config.enable_listing = True
    return config


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="uploadserver",
        description="Minimal HTTP router with file upload handling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m uploadserver                      # Run with defaults
  python -m uploadserver --port 3000          # Custom port
  python -m uploadserver --host 0.0.0.0       # Listen on all interfaces
  python -m uploadserver --enable-listing     # Register /listing
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8888)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # FEATURE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--upload-path",
        default=None,
        help="Where uploads are stored (default: /tmp/test.png)"
    )

    parser.add_argument(
        "--enable-listing",
        action="store_true",
        help="Register /listing, which runs the listing command"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"uploadserver {__version__}"
    )

    args = parser.parse_args(argv)

    try:
        config = build_config(args)
        server = UploadServer(config)
        server.run()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
