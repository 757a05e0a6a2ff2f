"""
=============================================================================
UPLOAD FORM HANDLER
=============================================================================

Serves the HTML upload form at / and /start.

This is the synchronous handler shape: no sub-operation, so the sink is
finalized before handle() returns.

    GET /start
        │
        ▼
    UploadFormHandler.handle(sink, request)
        │
        └── sink.send(200, FORM_HTML, "text/html")      ← finalized here

=============================================================================
"""

import logging

from ..http.request import RawRequest
from ..http.response import ResponseSink
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


FORM_TEMPLATE = (
    "<html>"
    "<head>"
    '<meta http-equiv="Content-Type" content="text/html; charset=UTF-8" />'
    "</head>"
    "<body>"
    '<form action="{action}" enctype="multipart/form-data" method="post">'
    '<input type="file" name="{field}" multiple="multiple">'
    '<input type="submit" value="Upload file" />'
    "</form>"
    "</body>"
    "</html>"
)


class UploadFormHandler:
    """
    Handler returning the file upload form.

    Args:
        action: Where the form posts to.
        field: Name of the file input; must match the upload handler's
            expected field.
    """

    def __init__(self, action: str = "/upload", field: str = "upload"):
        self.action = action
        self.field = field
        self.body = FORM_TEMPLATE.format(action=action, field=field)

    def handle(self, sink: ResponseSink, request: RawRequest) -> None:
        logger.info("Request handler 'start' was called.")
        sink.send(HTTPStatus.OK, self.body, "text/html")


def upload_form(action: str = "/upload", field: str = "upload") -> UploadFormHandler:
    """Create an upload form handler."""
    return UploadFormHandler(action=action, field=field)
