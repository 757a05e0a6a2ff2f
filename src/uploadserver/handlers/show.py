"""
=============================================================================
SHOW HANDLER
=============================================================================

Serves the upload slot's current contents.

    GET /show
        │
        ▼
    await slot.read()                   ← async file read
        │
        ├── ok     → 200, Content-Type from the slot's extension, bytes
        └── error  → 500 text/plain, "<error description>\n"

Before the first upload there is no file, so /show answers 500 with the
"No such file or directory" description.

=============================================================================
"""

import logging

from ..http.request import RawRequest
from ..http.response import ResponseSink
from ..http.status_codes import HTTPStatus
from ..storage import UploadSlot


logger = logging.getLogger(__name__)


class ShowHandler:
    """File-serving handler for the upload slot."""

    def __init__(self, slot: UploadSlot):
        self.slot = slot

    async def handle(self, sink: ResponseSink, request: RawRequest) -> None:
        logger.info("Request handler 'show' was called.")

        try:
            content = await self.slot.read()
        except OSError as exc:
            logger.warning(f"Could not read {self.slot.path}: {exc}")
            sink.send(HTTPStatus.INTERNAL_SERVER_ERROR, f"{exc}\n", "text/plain")
            return

        sink.send(HTTPStatus.OK, content, self.slot.content_type)


def show_handler(slot: UploadSlot) -> ShowHandler:
    """Create a show handler for a slot."""
    return ShowHandler(slot)
