"""
=============================================================================
UPLOAD SERVER
=============================================================================

Ties the components together: configuration, the upload slot, the route
table and the listener.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                          │
    │                        │  UploadServer   │                          │
    │                        │ (Orchestrator)  │                          │
    │                        └────────┬────────┘                          │
    │                                 │                                    │
    │            ┌────────────────────┼────────────────────┐              │
    │            │                    │                    │              │
    │            ▼                    ▼                    ▼              │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────┐        │
    │    │   Listener   │    │  RouteTable  │    │  UploadSlot  │        │
    │    │ (Networking) │    │ (Dispatching)│    │ (/tmp/...)   │        │
    │    └──────┬───────┘    └──────┬───────┘    └──────────────┘        │
    │           │                   │                    ▲                │
    │           ▼                   ▼                    │                │
    │    ┌──────────────┐    ┌──────────────┐            │                │
    │    │  Connection  │    │   Handlers   │────────────┘                │
    │    │ (TCP Conn.)  │    │ /upload /show│                             │
    │    └──────────────┘    └──────────────┘                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. CLIENT CONNECTS
       └── Listener accepts, one task per connection

    2. PARSE HEAD
       └── RequestParser extracts method, path, headers
           (the body stays on the socket)

    3. DISPATCH
       └── dispatch(table, path, sink, request, tg)
           miss → 404 "404 Not found"
           hit  → handler task started

    4. HANDLER COMPLETES
       └── sync handlers finalize immediately, async handlers after
           their one awaited sub-operation

    5. SEND RESPONSE AND CLOSE
       └── sink.response serialized, Connection: close

=============================================================================
"""

from typing import Optional
import logging

import anyio

from .config import ServerConfig
from .core import AccessLog, Listener
from .handlers import listing_handler, show_handler, upload_form, upload_handler
from .http.router import RouteTable, build
from .storage import UploadSlot


logger = logging.getLogger(__name__)


class UploadServer:
    """
    The upload router as a runnable server.

    =========================================================================
    USAGE
    =========================================================================

        # Blocking, with defaults (127.0.0.1:8888, slot /tmp/test.png)
        UploadServer().run()

        # Inside an existing event loop
        server = UploadServer(ServerConfig(port=0))
        async with anyio.create_task_group() as tg:
            port = await tg.start(server.serve)
            ...
            tg.cancel_scope.cancel()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Build the server. Nothing is bound until serve() runs.

        Raises:
            ValueError: If the configuration is invalid.
            RouteConfigurationError: If the route table cannot be built.
        """
        self.config = config or ServerConfig()
        self.config.validate()  # Fail fast on invalid config

        self.slot = UploadSlot(self.config.upload_path)
        self.table = self.build_routes()
        self.listener = Listener(
            self.config,
            self.table,
            access_log=AccessLog(self.config.log_format),
        )

    def build_routes(self) -> RouteTable:
        """
        The route table for this configuration.

            /         → upload form
            /start    → upload form
            /upload   → form body → upload slot
            /show     → upload slot → image bytes
            /listing  → child process output (only with enable_listing)
        """
        form = upload_form(field=self.config.upload_field)
        bindings = [
            ("/", form.handle),
            ("/start", form.handle),
            ("/upload", upload_handler(
                self.slot,
                spool_dir=str(self.config.spool_dir),
                file_field=self.config.upload_field,
                text_field=self.config.text_field,
            ).handle),
            ("/show", show_handler(self.slot).handle),
        ]
        if self.config.enable_listing:
            bindings.append(("/listing", listing_handler(self.config.listing_command).handle))

        return build(bindings)

    @property
    def port(self) -> Optional[int]:
        """The bound port, once serve() has started listening."""
        return self.listener.port

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    async def serve(self, *, task_status=anyio.TASK_STATUS_IGNORED) -> None:
        """Listen and serve until cancelled. Reports the bound port."""
        logger.debug(f"Routes:\n{self.table.describe()}")
        await self.listener.serve(task_status=task_status)

    def run(self) -> None:
        """
        Start the server (blocking).

        Blocks until interrupted with Ctrl+C.
        """
        self._setup_logging()
        logger.info(f"Upload slot is {self.slot.path}")

        try:
            anyio.run(self.serve)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def _setup_logging(self) -> None:
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("uploadserver").setLevel(level)


def create_app(config: Optional[ServerConfig] = None) -> UploadServer:
    """
    Create an upload server.

    Example:
        app = create_app(ServerConfig(port=3000, enable_listing=True))
        app.run()
    """
    return UploadServer(config)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# UploadServer builds everything up front (config validation, slot, route
# table) so configuration errors surface before any socket is bound.
# serve() is the async entry point, run() the blocking one.
# =============================================================================
