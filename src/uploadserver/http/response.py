"""
=============================================================================
HTTP RESPONSE AND RESPONSE SINK
=============================================================================

Two pieces live here:

1. HTTPResponse: a finished response (status, headers, body) that knows
   how to serialize itself to HTTP/1.1 bytes.

2. ResponseSink: the one-shot writable target a handler fills in. It has
   the same shape as a Node.js ServerResponse:

        sink.write_head(200, {"Content-Type": "text/plain"})
        sink.write("Hello ")
        sink.end("World")          # finalize

   or, for the common case, all three at once:

        sink.send(200, "Hello World", "text/plain")

=============================================================================
SINK LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │     OPEN ──write_head()──► HEAD WRITTEN ──end()──► FINALIZED        │
    │       │                        │                      │              │
    │       │ write()                │ write()              │ any call     │
    │       │ (implicit 200 head)    │                      ▼              │
    │       └────────────────────────┘             SinkFinalizedError     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Finalization happens exactly once. After end(), every mutator raises
SinkFinalizedError, so a second finalize cannot silently succeed.

The sink does not own the socket. The connection listener waits for the
handler task to finish, then serializes sink.response and writes it. The
sink therefore works without an event loop, which is what the unit tests
rely on.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Union

from ..errors import SinkFinalizedError
from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    A complete HTTP response, ready to be serialized.

        HTTPResponse(                 to_bytes()          b"HTTP/1.1 404 Not Found\r\n
          status=404,           ─────────────────►          Content-Type: text/plain\r\n
          headers={...},                                    Content-Length: 13\r\n
          body=b"404 Not found"                             ...\r\n\r\n
        )                                                   404 Not found"
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.version} {self.status.value} {self.status.phrase}"

    @property
    def content_type(self) -> Optional[str]:
        """The Content-Type header, matched case-insensitively."""
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return None

    def to_bytes(self, server_name: str = "UploadServer/1.0") -> bytes:
        """
        Serialize the response to bytes for sending over the connection.

        =====================================================================
        SERIALIZATION FORMAT
        =====================================================================

            HTTP/1.1 200 OK\r\n              ← Status line
            Content-Type: image/png\r\n
            Content-Length: 5120\r\n         ← Auto-calculated
            Date: Wed, 01 Jan 2026 ...\r\n   ← Auto-added
            Server: UploadServer/1.0\r\n     ← Auto-added
            Connection: close\r\n            ← Always; no keep-alive
            \r\n                             ← Empty line (separator)
            <body bytes>

        =====================================================================

        Args:
            server_name: Value for the Server header.

        Returns:
            Complete HTTP response as bytes.
        """
        response_headers = dict(self.headers)
        present = {name.lower() for name in response_headers}

        # Content-Length: lets the client know where the body ends
        if "content-length" not in present:
            response_headers["Content-Length"] = str(len(self.body))

        # Date: RFC 7231 requires origin servers to send this
        if "date" not in present:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "server" not in present:
            response_headers["Server"] = server_name

        # One request per connection
        if "connection" not in present:
            response_headers["Connection"] = "close"

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseSink:
    """
    The writable target for exactly one request's reply.

    Exactly one party finalizes a sink: the handler bound to the path, or
    the dispatcher's not-found path. Never both, never neither.

    Example:
        sink = ResponseSink()
        sink.send(200, "hello", "text/plain")
        sink.finalized          # True
        sink.response.body      # b"hello"
        sink.end()              # raises SinkFinalizedError
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._chunks: list[bytes] = []
        self._head_written = False
        self._response: Optional[HTTPResponse] = None

    @property
    def finalized(self) -> bool:
        """True once end() has been called."""
        return self._response is not None

    @property
    def response(self) -> Optional[HTTPResponse]:
        """The finished response, or None while the sink is still open."""
        return self._response

    @property
    def head_written(self) -> bool:
        return self._head_written

    def write_head(
        self,
        status: Union[HTTPStatus, int],
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        """
        Set the status code and headers.

        May be called once, before any write(). Unknown status codes raise
        ValueError.

        Raises:
            SinkFinalizedError: If the sink was already finalized.
            RuntimeError: If the head was already written.
        """
        self._check_open("write_head")
        if self._head_written:
            raise RuntimeError("Response head already written")

        self._status = HTTPStatus(status)
        if headers:
            self._headers.update(headers)
        self._head_written = True

    def write(self, data: Union[str, bytes]) -> None:
        """
        Append to the response body.

        Writing before write_head() implies a 200 head with no headers.
        Strings are encoded as UTF-8.
        """
        self._check_open("write")
        if not self._head_written:
            self._head_written = True

        if isinstance(data, str):
            data = data.encode("utf-8")
        self._chunks.append(data)

    def end(self, data: Union[str, bytes, None] = None) -> None:
        """
        Finalize the response, optionally writing a last body chunk.

        This is the terminal call. Afterwards the sink rejects everything.
        """
        self._check_open("end")
        if data:
            self.write(data)

        self._response = HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=b"".join(self._chunks),
        )
        self._chunks = []

    def send(
        self,
        status: Union[HTTPStatus, int],
        body: Union[str, bytes] = b"",
        content_type: str = "text/plain",
    ) -> None:
        """write_head + end, the way every handler in this package replies."""
        self.write_head(status, {"Content-Type": content_type})
        self.end(body)

    def fail(self, message: str) -> None:
        """
        Discard any partial head or body and finalize as 500 text/plain.

        For the dispatch guard, which may find a handler died halfway
        through writing.
        """
        self._check_open("fail")
        self._status = HTTPStatus.OK
        self._headers = {}
        self._chunks = []
        self._head_written = False
        self.send(HTTPStatus.INTERNAL_SERVER_ERROR, message, "text/plain")

    def _check_open(self, operation: str) -> None:
        if self._response is not None:
            raise SinkFinalizedError(
                f"Cannot {operation}(): response already finalized "
                f"with status {self._response.status.value}"
            )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Wed, 01 Jan 2026 12:00:00 GMT

    HTTP dates are always GMT, never local time.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def error_response(status: Union[HTTPStatus, int], message: str) -> HTTPResponse:
    """
    Build a plain-text error response without going through a sink.

    Used by the listener for protocol errors (400, 413, 431, 505) that are
    answered before any sink or dispatch exists.
    """
    return HTTPResponse(
        status=HTTPStatus(status),
        headers={"Content-Type": "text/plain"},
        body=message.encode("utf-8"),
    )
