"""
=============================================================================
FORM PARSING
=============================================================================

Turns a request body into fields and uploaded files.

    application/x-www-form-urlencoded   stdlib urllib.parse, read in memory
    multipart/form-data                 python-multipart, streamed; file
                                        parts go straight to temp files

=============================================================================
STREAMING MULTIPART
=============================================================================

    request.body (BodyStream)
         │  chunk
         ▼
    MultipartParser.write(chunk) ──callbacks──► _MultipartCollector
         │                                         │
         │                                         │ file bytes queued
         ▼                                         ▼
    collector.flush() ─────────────────────► temp file in spool_dir
                                              (anyio.wrap_file)

The parser callbacks are synchronous, so they only queue work. The queued
writes run between chunks, on anyio's file API, so a large upload never
blocks the event loop on disk I/O.

Uploaded files stay on disk until someone commits them (UploadSlot) or
calls FormData.aclose(). parse_form() removes its temp files itself if
parsing fails.

=============================================================================
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import parse_qs
import logging
import os
import tempfile

import anyio
from python_multipart.exceptions import FormParserError
from python_multipart.multipart import MultipartParser, parse_options_header

from ..errors import FormParseError
from .request import RawRequest


logger = logging.getLogger(__name__)

URLENCODED = "application/x-www-form-urlencoded"
MULTIPART = "multipart/form-data"


@dataclass
class UploadedFile:
    """A file part spooled to disk."""

    field_name: str
    filename: str
    content_type: str
    path: str
    size: int = 0

    async def read(self) -> bytes:
        return await anyio.Path(self.path).read_bytes()

    async def discard(self) -> None:
        """Remove the temp file. No-op once it has been moved elsewhere."""
        await anyio.Path(self.path).unlink(missing_ok=True)

    def __repr__(self) -> str:
        return f"UploadedFile({self.field_name!r}, {self.filename!r}, {self.size} bytes)"


class FormData(Mapping[str, str]):
    """
    Parsed form submission.

    Mapping access returns the first value of a text field. Uploaded
    files are kept separately:

        form = await parse_form(request)
        form["text"]              # "hello"
        form.file("upload")       # UploadedFile or None
    """

    def __init__(
        self,
        data: dict[str, list[str]],
        files: Optional[dict[str, list[UploadedFile]]] = None,
    ):
        self._data = data
        self._files = files or {}

    @property
    def files(self) -> Mapping[str, list[UploadedFile]]:
        """Uploaded files by field name."""
        return self._files

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"FormData(fields={list(self._data)!r}, files={list(self._files)!r})"

    def get_list(self, key: str) -> list[str]:
        """All values for a field."""
        return list(self._data.get(key, []))

    def file(self, name: str) -> Optional[UploadedFile]:
        """
        The file uploaded under a field name.

        An <input multiple> field can carry several files; the last one
        wins.
        """
        uploads = self._files.get(name)
        return uploads[-1] if uploads else None

    async def aclose(self) -> None:
        """Remove every temp file that nobody has moved away."""
        for uploads in self._files.values():
            for upload in uploads:
                await upload.discard()


async def parse_form(
    request: RawRequest,
    spool_dir: Optional[str] = None,
) -> FormData:
    """
    Parse a request body as a form submission.

    Args:
        request: Request whose body has not been consumed yet.
        spool_dir: Where file parts are written. None uses the system
            temp directory.

    Returns:
        FormData. The caller owns any uploaded temp files.

    Raises:
        FormParseError: Missing or unsupported Content-Type, a malformed
            body, or a body cut short.
        OSError: A temp file could not be created or written.
    """
    content_type = request.content_type
    if not content_type:
        raise FormParseError("Request has no Content-Type; expected a form submission")

    media_type = content_type.split(";")[0].strip().lower()

    if media_type == URLENCODED:
        return await _parse_urlencoded(request)

    if media_type == MULTIPART:
        return await _parse_multipart(request, content_type, spool_dir)

    raise FormParseError(f"Unsupported form content type: {content_type!r}")


async def _parse_urlencoded(request: RawRequest) -> FormData:
    body = await request.body.read()
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FormParseError(f"Form body is not valid UTF-8: {exc}") from exc
    return FormData(parse_qs(text, keep_blank_values=True))


async def _parse_multipart(
    request: RawRequest,
    content_type: str,
    spool_dir: Optional[str],
) -> FormData:
    _, options = parse_options_header(content_type.encode("latin-1"))
    boundary = options.get(b"boundary")
    if not boundary:
        raise FormParseError("Multipart form data missing boundary parameter")

    collector = _MultipartCollector(spool_dir)
    parser = MultipartParser(boundary, collector.callbacks())

    try:
        async for chunk in request.body:
            parser.write(chunk)
            await collector.flush()
        parser.finalize()
        await collector.flush()

        if not collector.complete:
            raise FormParseError("Multipart body ended before the closing boundary")
    except FormParserError as exc:
        await collector.discard()
        raise FormParseError(f"Malformed multipart body: {exc}") from exc
    except BaseException:
        with anyio.CancelScope(shield=True):
            await collector.discard()
        raise

    file_count = sum(len(uploads) for uploads in collector.files.values())
    logger.debug(f"Parsed multipart form: {len(collector.fields)} field(s), {file_count} file(s)")
    return FormData(collector.fields, collector.files)


class _Spool:
    """An open temp file receiving one file part."""

    def __init__(self, directory: Optional[str]):
        fd, self.path = tempfile.mkstemp(prefix="upload_", dir=directory)
        self.file = anyio.wrap_file(os.fdopen(fd, "wb"))
        self.closed = False

    async def write(self, data: bytes) -> None:
        await self.file.write(data)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            await self.file.aclose()


class _MultipartCollector:
    """
    Receives python-multipart callbacks for one body.

    Header names and values may arrive split across several callbacks, so
    they are accumulated and committed in on_header_end.
    """

    def __init__(self, spool_dir: Optional[str]):
        self.spool_dir = spool_dir
        self.fields: dict[str, list[str]] = {}
        self.files: dict[str, list[UploadedFile]] = {}
        self.complete = False

        # (spool, data) pairs; data None means "close"
        self._pending: list[tuple[_Spool, Optional[bytes]]] = []
        self._spools: list[_Spool] = []

        self._reset_part()

    def _reset_part(self) -> None:
        self._headers: dict[str, str] = {}
        self._header_field = bytearray()
        self._header_value = bytearray()
        self._name: Optional[str] = None
        self._filename: Optional[str] = None
        self._value = bytearray()
        self._spool: Optional[_Spool] = None
        self._upload: Optional[UploadedFile] = None

    def callbacks(self) -> dict[str, Any]:
        return {
            "on_part_begin": self.on_part_begin,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_end": self.on_end,
        }

    # ─────────────────────────────────────────────────────────────────────
    # HEADERS
    # ─────────────────────────────────────────────────────────────────────

    def on_part_begin(self) -> None:
        self._reset_part()

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field.extend(data[start:end])

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value.extend(data[start:end])

    def on_header_end(self) -> None:
        name = self._header_field.decode("latin-1").strip().lower()
        self._headers[name] = self._header_value.decode("latin-1").strip()
        self._header_field = bytearray()
        self._header_value = bytearray()

    def on_headers_finished(self) -> None:
        disposition = self._headers.get("content-disposition")
        if disposition is None:
            raise FormParseError("Multipart part without Content-Disposition header")

        _, params = parse_options_header(disposition.encode("latin-1"))
        name = params.get(b"name")
        if name is None:
            raise FormParseError("Multipart part without a field name")
        self._name = name.decode("utf-8", errors="replace")

        filename = params.get(b"filename")
        if filename is not None:
            self._filename = filename.decode("utf-8", errors="replace")

        # An empty file input still submits a part with filename="".
        if self._filename:
            self._spool = _Spool(self.spool_dir)
            self._spools.append(self._spool)
            self._upload = UploadedFile(
                field_name=self._name,
                filename=self._filename,
                content_type=self._headers.get("content-type", "application/octet-stream"),
                path=self._spool.path,
            )

    # ─────────────────────────────────────────────────────────────────────
    # DATA
    # ─────────────────────────────────────────────────────────────────────

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._spool is not None:
            chunk = bytes(data[start:end])
            self._upload.size += len(chunk)
            self._pending.append((self._spool, chunk))
        elif self._filename is None:
            self._value.extend(data[start:end])

    def on_part_end(self) -> None:
        if self._name is None:
            return

        if self._spool is not None:
            self._pending.append((self._spool, None))
            self.files.setdefault(self._name, []).append(self._upload)
        elif self._filename is None:
            value = self._value.decode("utf-8", errors="replace")
            self.fields.setdefault(self._name, []).append(value)

        self._reset_part()

    def on_end(self) -> None:
        self.complete = True

    # ─────────────────────────────────────────────────────────────────────
    # DISK I/O (runs between parser.write calls)
    # ─────────────────────────────────────────────────────────────────────

    async def flush(self) -> None:
        pending, self._pending = self._pending, []
        for spool, data in pending:
            if data is None:
                await spool.close()
            else:
                await spool.write(data)

    async def discard(self) -> None:
        self._pending = []
        for spool in self._spools:
            await spool.close()
            await anyio.Path(spool.path).unlink(missing_ok=True)
