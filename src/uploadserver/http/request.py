"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses the head of an HTTP/1.1 request into a RawRequest whose body has
NOT been read yet.

=============================================================================
WHY THE BODY IS LEFT ON THE WIRE
=============================================================================

The upload handler hands the request to a streaming form parser, which
pulls the body chunk by chunk and spools file parts to disk. If the
listener buffered the body first, a 10 MB upload would sit in memory
twice. So the listener only reads up to the blank line:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │  POST /upload HTTP/1.1\r\n          ┐                               │
    │  Host: localhost:8888\r\n           │  read by the listener,         │
    │  Content-Type: multipart/...\r\n    │  parsed by parse_head()        │
    │  Content-Length: 5321\r\n           │                               │
    │  \r\n                               ┘                               │
    │  --boundary\r\n                     ┐                               │
    │  Content-Disposition: ...\r\n       │  left on the connection,       │
    │  ...                                │  pulled through BodyStream     │
    │  --boundary--\r\n                   ┘  only if a handler asks        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Handlers that never touch the body (/, /start, /show) never cost a read.

=============================================================================
PROTOCOL ERRORS
=============================================================================

parse_head() raises HTTPParseError carrying the status to send back:

    400 Bad Request                  - malformed request line, bad Content-Length,
                                       chunked transfer encoding
    413 Payload Too Large            - Content-Length above max_request_size
    431 Request Header Fields Too Large - head above max_header_size
    505 HTTP Version Not Supported   - anything but HTTP/1.0 and HTTP/1.1

The listener answers these directly. No sink is built and nothing is
dispatched.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Optional, Dict
from urllib.parse import parse_qs, urlparse, unquote
import re


class HTTPParseError(Exception):
    """
    Raised when an HTTP request cannot be parsed.

    Carries the HTTP status code that should be returned to the client.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


Receive = Callable[[int], Awaitable[bytes]]
"""Async callable returning up to N bytes, or b"" once the peer is done."""


class BodyStream:
    """
    Lazily pulls a request body of known length.

    Iterate it to get chunks; each pull reads from the connection only
    when the consumer asks:

        async for chunk in request.body:
            parser.write(chunk)

    The stream can be consumed once. A peer that closes before
    Content-Length bytes arrived raises HTTPParseError.
    """

    def __init__(self, receive: Optional[Receive], length: int = 0,
                 chunk_size: int = 65536):
        self._receive = receive
        self.length = length
        self.chunk_size = chunk_size
        self._remaining = length

    @classmethod
    def from_bytes(cls, data: bytes, chunk_size: int = 65536) -> "BodyStream":
        """A body stream over an in-memory buffer."""
        view = memoryview(data)
        offset = 0

        async def receive(max_bytes: int) -> bytes:
            nonlocal offset
            chunk = bytes(view[offset:offset + max_bytes])
            offset += len(chunk)
            return chunk

        return cls(receive, len(data), chunk_size)

    @property
    def remaining(self) -> int:
        """Bytes not yet pulled from the source."""
        return self._remaining

    @property
    def consumed(self) -> bool:
        return self._remaining == 0

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._chunks()

    async def _chunks(self) -> AsyncIterator[bytes]:
        while self._remaining > 0:
            chunk = await self._receive(min(self.chunk_size, self._remaining))
            if not chunk:
                received = self.length - self._remaining
                raise HTTPParseError(
                    f"Incomplete body: expected {self.length} bytes, got {received}"
                )
            self._remaining -= len(chunk)
            yield chunk

    async def read(self) -> bytes:
        """Read the whole remaining body into memory."""
        return b"".join([chunk async for chunk in self])


@dataclass
class RawRequest:
    """
    A parsed request head plus a handle on the unread body.

        method          "POST"
        path            "/upload"        (no query string, no fragment)
        version         "HTTP/1.1"
        headers         {"content-type": "...", ...}  (names lowercase)
        query_params    {"page": ["1"]}
        client_address  ("127.0.0.1", 54321)
        body            BodyStream
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)
    body: BodyStream = field(default_factory=lambda: BodyStream(None, 0))

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int:
        """Declared body length; 0 when absent. Validated by the parser."""
        return int(self.headers.get("content-length", 0))

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")


class RequestParser:
    """
    Parses request heads into RawRequest objects.

    REQUEST_LINE_PATTERN: ^([A-Z]+) ([^ ]+) (HTTP/\\d\\.\\d)$
        METHOD SP REQUEST-URI SP HTTP-VERSION

    HEADER_PATTERN: ^([^:]+):\\s*(.*)$
        field-name ":" OWS field-value
    """

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_header_size: int = 64 * 1024,
                 max_request_size: int = 10 * 1024 * 1024):
        self.max_header_size = max_header_size
        self.max_request_size = max_request_size

    def parse_head(
        self,
        head: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> RawRequest:
        """
        Parse a request line plus headers.

        Args:
            head: Bytes up to (optionally including) the blank line.
            client_address: Peer (ip, port), kept for logging.

        Returns:
            RawRequest with an empty body. The caller attaches a BodyStream
            bound to the connection.

        Raises:
            HTTPParseError: With the status code to answer.
        """
        if len(head) > self.max_header_size:
            raise HTTPParseError(
                f"Request head too large: {len(head)} bytes",
                status_code=431,
            )

        text = head.decode("latin-1").rstrip("\r\n")
        lines = text.split("\r\n")
        if not lines or not lines[0]:
            raise HTTPParseError("Empty request")

        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        if "chunked" in headers.get("transfer-encoding", "").lower():
            raise HTTPParseError("Chunked request bodies are not supported")

        raw_length = headers.get("content-length", "0")
        # digits only: int() would also take "+5" and "1_0"
        if not (raw_length.isascii() and raw_length.isdigit()):
            raise HTTPParseError(f"Invalid Content-Length: {raw_length!r}")
        content_length = int(raw_length)
        if content_length > self.max_request_size:
            raise HTTPParseError(
                f"Request body too large: {content_length} bytes "
                f"(limit {self.max_request_size})",
                status_code=413,
            )

        return RawRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str,
    ) -> tuple[str, str, Dict[str, list[str]], str]:
        """
        Parse "METHOD URI VERSION".

        The method is not checked against a list: routing ignores the
        method, and an unknown one still gets an ordinary 404.
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, uri, version = match.groups()

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        # "/show?x=1#top" → path "/show", query {"x": ["1"]}
        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Continuation lines (leading whitespace) extend the previous header.
        Repeated headers are joined with ", ".
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers
