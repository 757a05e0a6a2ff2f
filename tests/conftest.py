"""
pytest configuration and fixtures.
"""

from pathlib import Path
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from uploadserver import ServerConfig, UploadSlot
from uploadserver.http.request import BodyStream, RawRequest


BOUNDARY = "----pytestboundary7MA4YWxkTrZu0gW"

# Smallest valid PNG (1x1, transparent)
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d00000000"
    "49454e44ae426082"
)


@pytest.fixture
def anyio_backend() -> str:
    """Run async tests on asyncio only."""
    return "asyncio"


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /show?size=full&size=thumb HTTP/1.1\r\n"
        b"Host: localhost:8888\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: image/png\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with an urlencoded body."""
    body = b"text=hello+world"
    return (
        b"POST /upload HTTP/1.1\r\n"
        b"Host: localhost:8888\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
        + body
    )


@pytest.fixture
def config(tmp_path: Path) -> ServerConfig:
    """Test server configuration with the upload slot under tmp_path."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        upload_path=str(tmp_path / "test.png"),
        log_level="WARNING",
    )


@pytest.fixture
def slot(tmp_path: Path) -> UploadSlot:
    return UploadSlot(tmp_path / "test.png")


def multipart_body(parts, boundary: str = BOUNDARY, close: bool = True) -> bytes:
    """
    Encode (name, filename, content_type, data) parts as multipart/form-data.

    filename None makes a plain text field.
    """
    out = bytearray()
    for name, filename, content_type, data in parts:
        out += f"--{boundary}\r\n".encode()
        disposition = f'Content-Disposition: form-data; name="{name}"'
        if filename is not None:
            disposition += f'; filename="{filename}"'
        out += disposition.encode() + b"\r\n"
        if content_type:
            out += f"Content-Type: {content_type}\r\n".encode()
        out += b"\r\n"
        out += data if isinstance(data, bytes) else data.encode()
        out += b"\r\n"
    if close:
        out += f"--{boundary}--\r\n".encode()
    return bytes(out)


def make_request(
    path: str = "/",
    method: str = "GET",
    body: bytes = b"",
    content_type: str = None,
    chunk_size: int = 65536,
) -> RawRequest:
    """A RawRequest whose body is served from memory."""
    headers = {"host": "localhost:8888"}
    if content_type:
        headers["content-type"] = content_type
    if body:
        headers["content-length"] = str(len(body))
    return RawRequest(
        method=method,
        path=path,
        headers=headers,
        client_address=("127.0.0.1", 50000),
        body=BodyStream.from_bytes(body, chunk_size=chunk_size),
    )


def multipart_request(parts, chunk_size: int = 65536, close: bool = True) -> RawRequest:
    return make_request(
        "/upload",
        method="POST",
        body=multipart_body(parts, close=close),
        content_type=f"multipart/form-data; boundary={BOUNDARY}",
        chunk_size=chunk_size,
    )
