"""
=============================================================================
UPLOADSERVER - Minimal HTTP Router With File Upload Handling
=============================================================================

A small HTTP server built around an explicit route table. Handlers are
plain functions or coroutines; each one finalizes its own response, some
only after an asynchronous sub-operation (reading a file, running a child
process, consuming an upload) has completed.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    uploadserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m uploadserver)
    ├── server.py            # UploadServer orchestrator
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # Exception hierarchy
    ├── storage.py           # UploadSlot (last writer wins)
    ├── core/                # Networking
    │   ├── listener.py      # TCP accept loop → dispatch
    │   ├── connection.py    # Per-connection reads and writes
    │   └── access_log.py    # One line per request
    ├── http/                # HTTP protocol components
    │   ├── request.py       # Head parsing, lazy body stream
    │   ├── response.py      # ResponseSink, HTTPResponse
    │   ├── router.py        # RouteTable, build(), dispatch()
    │   ├── forms.py         # multipart / urlencoded bodies
    │   ├── status_codes.py  # HTTP status enum
    │   └── mime_types.py    # MIME type detection
    └── handlers/            # Request handlers
        ├── form.py          # /, /start
        ├── upload.py        # /upload
        ├── show.py          # /show
        └── listing.py       # /listing (optional)

=============================================================================
QUICK START
=============================================================================

    from uploadserver import UploadServer, ServerConfig

    UploadServer(ServerConfig(port=8888)).run()

    # then:
    #   open http://127.0.0.1:8888/start, pick a PNG, press "Upload file"

=============================================================================
"""

from .config import ServerConfig
from .errors import (
    FormParseError,
    RouteConfigurationError,
    SinkFinalizedError,
    UploadServerError,
    UploadSlotError,
)
from .http.request import RawRequest
from .http.response import ResponseSink
from .http.router import RouteTable, build, dispatch
from .server import UploadServer, create_app
from .storage import UploadSlot

__version__ = "1.0.0"

__all__ = [
    "UploadServer",
    "create_app",
    "ServerConfig",
    "UploadSlot",
    "RouteTable",
    "build",
    "dispatch",
    "RawRequest",
    "ResponseSink",
    "UploadServerError",
    "RouteConfigurationError",
    "SinkFinalizedError",
    "FormParseError",
    "UploadSlotError",
    "__version__",
]
