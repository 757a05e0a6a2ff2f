"""
=============================================================================
CONNECTION LISTENER
=============================================================================

Accepts TCP connections and turns each one into a dispatch call.

=============================================================================
ONE EVENT LOOP, MANY CONNECTIONS
=============================================================================

Everything runs on a single anyio event loop. Each accepted connection
gets its own task; while one handler awaits a file read or a child
process, the loop keeps accepting and dispatching others.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   anyio.create_tcp_listener(host, port)                              │
    │        │                                                             │
    │        ▼   listener.serve(handle_connection)                         │
    │   ┌──────────────┐   ┌──────────────┐   ┌──────────────┐            │
    │   │ connection 1 │   │ connection 2 │   │ connection 3 │   ...      │
    │   │ GET /show    │   │ POST /upload │   │ GET /start   │            │
    │   │  (awaiting   │   │  (awaiting   │   │  (done)      │            │
    │   │   file read) │   │   body)      │   │              │            │
    │   └──────────────┘   └──────────────┘   └──────────────┘            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PER-CONNECTION FLOW
=============================================================================

    1. read the head (up to the blank line)
          malformed  → 400/505 directly, no dispatch
          too large  → 431 directly
    2. parse_head → RawRequest, attach a lazy BodyStream
          Content-Length over the limit → 413 directly
    3. build a ResponseSink
    4. dispatch(table, path, sink, request, tg) inside a task group
          the task group waits until the handler has finalized the sink
    5. drain unread body bytes, write sink.response, close
    6. one access-log line

=============================================================================
"""

from typing import Optional
import logging
import time

import anyio
from anyio.abc import SocketAttribute, SocketStream

from ..config import ServerConfig
from ..http.request import HTTPParseError, RequestParser
from ..http.response import HTTPResponse, ResponseSink, error_response
from ..http.router import RouteTable, dispatch
from ..http.status_codes import HTTPStatus
from .access_log import AccessLog
from .connection import Connection, ConnectionState


logger = logging.getLogger(__name__)


class Listener:
    """
    TCP listener feeding the dispatcher.

    Usage:
        listener = Listener(config, table)

        async with anyio.create_task_group() as tg:
            port = await tg.start(listener.serve)   # returns once bound
            ...

    Args:
        config: Bind address, limits and server name.
        table: The route table every request is dispatched against.
        access_log: Access log writer; defaults to config.log_format.
    """

    def __init__(self, config: ServerConfig, table: RouteTable,
                 access_log: Optional[AccessLog] = None):
        self.config = config
        self.table = table
        self.access_log = access_log or AccessLog(config.log_format)
        self.parser = RequestParser(
            max_header_size=config.max_header_size,
            max_request_size=config.max_request_size,
        )
        self.port: Optional[int] = None

    async def serve(self, *, task_status=anyio.TASK_STATUS_IGNORED) -> None:
        """
        Bind and serve until cancelled.

        Reports the bound port through task_status, so callers using
        task_group.start() know when connections will be accepted (and
        which port was picked when config.port is 0).
        """
        listener = await anyio.create_tcp_listener(
            local_host=self.config.host,
            local_port=self.config.port,
            backlog=self.config.backlog,
        )
        self.port = listener.extra(SocketAttribute.local_port)
        logger.info(f"Server has started on http://{self.config.host}:{self.port}")
        task_status.started(self.port)

        async with listener:
            await listener.serve(self.handle_connection)

    async def handle_connection(self, stream: SocketStream) -> None:
        """Serve one connection. Never lets an error escape to the listener."""
        async with Connection(
            stream,
            buffer_size=self.config.buffer_size,
            max_header_size=self.config.max_header_size,
        ) as conn:
            try:
                await self.process(conn)
            except Exception:
                logger.exception(f"[{conn.id}] Connection error")

    async def process(self, conn: Connection) -> None:
        started = time.time()

        # ─────────────────────────────────────────────────────────────────
        # READ AND PARSE THE HEAD
        # ─────────────────────────────────────────────────────────────────
        try:
            head = await conn.read_head()
            if head is None:
                return
            request = self.parser.parse_head(head, conn.address)
        except HTTPParseError as exc:
            logger.info(f"[{conn.id}] Rejected request: {exc}")
            await self._send_error(conn, exc, started)
            return

        request.body = conn.body_stream(request.content_length)
        logger.info(f"Request for {request.path} received.")

        # ─────────────────────────────────────────────────────────────────
        # DISPATCH
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.PROCESSING
        sink = ResponseSink()
        async with anyio.create_task_group() as tg:
            dispatch(self.table, request.path, sink, request, tg)

        response = sink.response
        if response is None:
            logger.error(f"[{conn.id}] No response for {request.path}")
            response = error_response(HTTPStatus.INTERNAL_SERVER_ERROR, "No response\n")

        # ─────────────────────────────────────────────────────────────────
        # RESPOND AND LOG
        # ─────────────────────────────────────────────────────────────────
        await conn.drain(request.body)
        await conn.send_response(response.to_bytes(self.config.server_name))
        self.access_log.record(response, started, request=request)

    async def _send_error(self, conn: Connection, exc: HTTPParseError,
                          started: float) -> HTTPResponse:
        """Answer a protocol error before any sink exists."""
        try:
            status = HTTPStatus(exc.status_code)
        except ValueError:
            status = HTTPStatus.BAD_REQUEST

        response = error_response(status, f"{exc}\n")
        await conn.send_response(response.to_bytes(self.config.server_name))
        self.access_log.record(response, started, client_address=conn.address)
        return response
