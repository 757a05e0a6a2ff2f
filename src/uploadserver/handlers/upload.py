"""
=============================================================================
UPLOAD HANDLER
=============================================================================

Accepts the upload form's POST, stores the file in the upload slot and
answers with a page that shows it.

    POST /upload (multipart/form-data, field "upload")
        │
        ▼
    await parse_form(request)          ← body streamed to a temp file
        │
        ▼  continuation
    slot.commit(temp file)             ← os.replace into /tmp/test.png
        │
        ▼
    200 text/html  "received image:<br/><img src='/show' />"

A urlencoded POST with a "text" field is echoed back instead:

    POST /upload (text=hello)  →  200 text/plain  "You've sent the text: hello"

Anything else (unparseable body, missing field, failed commit) gets a 500
with the error description. The slot is committed before the
confirmation is finalized, so a browser following the <img src='/show'>
always finds the new file.

=============================================================================
"""

from typing import Optional
import logging

from ..errors import FormParseError, UploadSlotError
from ..http.forms import FormData, parse_form
from ..http.request import HTTPParseError, RawRequest
from ..http.response import ResponseSink
from ..http.status_codes import HTTPStatus
from ..storage import UploadSlot


logger = logging.getLogger(__name__)

CONFIRMATION_BODY = "received image:<br/><img src='/show' />"


class UploadHandler:
    """
    Body-consuming handler for /upload.

    Args:
        slot: Where uploaded files end up.
        spool_dir: Directory for in-flight temp files. Should be on the
            same filesystem as the slot.
        file_field: Form field carrying the file.
        text_field: Form field echoed back for urlencoded submissions.
    """

    def __init__(
        self,
        slot: UploadSlot,
        spool_dir: Optional[str] = None,
        file_field: str = "upload",
        text_field: str = "text",
    ):
        self.slot = slot
        self.spool_dir = spool_dir
        self.file_field = file_field
        self.text_field = text_field

    async def handle(self, sink: ResponseSink, request: RawRequest) -> None:
        logger.info("Request handler 'upload' was called.")

        try:
            form = await parse_form(request, self.spool_dir)
        except (FormParseError, HTTPParseError, OSError) as exc:
            logger.warning(f"Could not parse upload from {request.client_address[0]}: {exc}")
            sink.send(HTTPStatus.INTERNAL_SERVER_ERROR, f"{exc}\n", "text/plain")
            return

        logger.debug("parsing done")
        try:
            self._respond(sink, form)
        finally:
            await form.aclose()

    def _respond(self, sink: ResponseSink, form: FormData) -> None:
        upload = form.file(self.file_field)
        if upload is not None:
            try:
                self.slot.commit(upload.path)
            except UploadSlotError as exc:
                logger.warning(str(exc))
                sink.send(HTTPStatus.INTERNAL_SERVER_ERROR, f"{exc}\n", "text/plain")
                return

            logger.info(f"Stored {upload.filename!r} ({upload.size} bytes) in {self.slot.path}")
            sink.send(HTTPStatus.OK, CONFIRMATION_BODY, "text/html")
            return

        text = form.get(self.text_field)
        if text is not None:
            sink.send(HTTPStatus.OK, f"You've sent the text: {text}", "text/plain")
            return

        message = (
            f"Form has neither a {self.file_field!r} file "
            f"nor a {self.text_field!r} field"
        )
        logger.warning(message)
        sink.send(HTTPStatus.INTERNAL_SERVER_ERROR, message + "\n", "text/plain")


def upload_handler(
    slot: UploadSlot,
    spool_dir: Optional[str] = None,
    file_field: str = "upload",
    text_field: str = "text",
) -> UploadHandler:
    """Create an upload handler."""
    return UploadHandler(slot, spool_dir, file_field, text_field)
