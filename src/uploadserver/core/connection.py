"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted anyio socket stream with the reads and writes the
listener needs.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

Every connection carries exactly one request and is closed after the
response (Connection: close). The lifecycle is linear:

    NEW ──read_head()──► READING ──► PROCESSING ──send_response()──► WRITING
                                         │                              │
                                   handler pulls                     aclose()
                                   body via receive()                   │
                                                                        ▼
                                                                     CLOSED

=============================================================================
BUFFERED READING
=============================================================================

TCP delivers bytes in arbitrary chunks. A BufferedByteReceiveStream sits
on top of the socket so the head can be read up to the blank line and any
body bytes that arrived in the same packet stay buffered for the body
stream.

    socket ──► BufferedByteReceiveStream
                   │
                   ├── receive_until(b"\\r\\n\\r\\n")   → head
                   └── receive(n)                      → body chunks

=============================================================================
"""

from enum import Enum
from typing import Optional
import logging
import time
import uuid

import anyio
from anyio.abc import SocketAttribute, SocketStream
from anyio.streams.buffered import BufferedByteReceiveStream

from ..http.request import BodyStream, HTTPParseError


logger = logging.getLogger(__name__)

HEAD_TERMINATOR = b"\r\n\r\n"


class ConnectionState(Enum):
    """Connection lifecycle states, for logging."""

    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSED = "closed"


class Connection:
    """
    One client connection.

    Usage:
        async with Connection(stream, max_header_size=65536) as conn:
            head = await conn.read_head()
            ...
            await conn.send_response(data)
        # closed here
    """

    def __init__(self, stream: SocketStream, buffer_size: int = 65536,
                 max_header_size: int = 64 * 1024):
        self.stream = stream
        self.buffer_size = buffer_size
        self.max_header_size = max_header_size
        self.id = str(uuid.uuid4())[:8]
        self.state = ConnectionState.NEW
        self.created_at = time.time()
        self._buffered = BufferedByteReceiveStream(stream)

    @property
    def address(self) -> tuple[str, int]:
        """Client's (ip, port)."""
        try:
            remote = self.stream.extra(SocketAttribute.remote_address)
        except anyio.TypedAttributeLookupError:
            return ("", 0)
        if isinstance(remote, tuple):
            return (str(remote[0]), int(remote[1]))
        return (str(remote), 0)

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    async def read_head(self) -> Optional[bytes]:
        """
        Read the request line and headers, up to the blank line.

        Returns:
            The head bytes without the terminator, or None if the client
            closed the connection before sending a complete head.

        Raises:
            HTTPParseError: 431 if no blank line shows up within
                max_header_size bytes.
        """
        self.state = ConnectionState.READING
        try:
            return await self._buffered.receive_until(HEAD_TERMINATOR, self.max_header_size)
        except anyio.DelimiterNotFound:
            raise HTTPParseError(
                f"Request head exceeds {self.max_header_size} bytes",
                status_code=431,
            ) from None
        except (anyio.IncompleteRead, anyio.EndOfStream, anyio.BrokenResourceError):
            logger.debug(f"[{self.id}] Client closed before sending a request")
            return None

    async def receive(self, max_bytes: int) -> bytes:
        """
        Receive up to max_bytes of body data.

        Returns b"" once the client has stopped sending. BodyStream turns
        that into an "incomplete body" error when bytes are still owed.
        """
        try:
            return await self._buffered.receive(max_bytes)
        except (anyio.EndOfStream, anyio.BrokenResourceError):
            return b""

    def body_stream(self, content_length: int) -> BodyStream:
        """A lazy body reader bound to this connection."""
        return BodyStream(self.receive, content_length, self.buffer_size)

    async def drain(self, body: BodyStream, timeout: float = 1.0) -> None:
        """
        Discard body bytes a handler did not read.

        Closing a socket with unread input makes the kernel send a reset,
        which can destroy the response before the client reads it.
        """
        if body.consumed:
            return
        with anyio.move_on_after(timeout):
            try:
                async for _ in body:
                    pass
            except HTTPParseError:
                pass  # client stopped sending; nothing left to drain

    # =========================================================================
    # WRITING
    # =========================================================================

    async def send_response(self, data: bytes) -> bool:
        """
        Send response bytes.

        Returns:
            True if sent, False if the client was already gone.
        """
        self.state = ConnectionState.WRITING
        try:
            await self.stream.send(data)
            return True
        except (anyio.BrokenResourceError, anyio.ClosedResourceError) as exc:
            logger.warning(f"[{self.id}] Send failed: {exc!r}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    async def aclose(self) -> None:
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        with anyio.CancelScope(shield=True):
            try:
                await self.stream.send_eof()
            except (anyio.BrokenResourceError, anyio.ClosedResourceError, OSError):
                pass  # already disconnected
            await self.stream.aclose()
        logger.debug(f"[{self.id}] Connection closed after {self.age * 1000:.1f}ms")

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.aclose()
        return False
