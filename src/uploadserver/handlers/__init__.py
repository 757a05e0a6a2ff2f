"""
=============================================================================
HANDLERS MODULE
=============================================================================

The request handlers bound in the route table.

Every handler has the same signature, handle(sink, request), and is
responsible for finalizing its sink exactly once. They differ in WHEN:

    ┌───────────────────┬──────────────┬───────────────────────────────────┐
    │ Handler           │ Path         │ Finalizes                         │
    ├───────────────────┼──────────────┼───────────────────────────────────┤
    │ UploadFormHandler │ /, /start    │ before returning (synchronous)    │
    │ ListingHandler    │ /listing     │ after the child process exits     │
    │ UploadHandler     │ /upload      │ after the form body is parsed     │
    │ ShowHandler       │ /show        │ after the slot file is read       │
    └───────────────────┴──────────────┴───────────────────────────────────┘

The async handlers await exactly one sub-operation; everything after that
await is the completion continuation.

=============================================================================
USAGE
=============================================================================

    from uploadserver.handlers import upload_form, upload_handler, show_handler
    from uploadserver.http.router import build
    from uploadserver.storage import UploadSlot

    slot = UploadSlot("/tmp/test.png")
    form = upload_form()

    table = build([
        ("/", form.handle),
        ("/start", form.handle),
        ("/upload", upload_handler(slot).handle),
        ("/show", show_handler(slot).handle),
    ])

=============================================================================
"""

from .form import UploadFormHandler, upload_form
from .listing import ListingHandler, listing_handler
from .show import ShowHandler, show_handler
from .upload import UploadHandler, upload_handler

__all__ = [
    "UploadFormHandler",
    "upload_form",
    "ListingHandler",
    "listing_handler",
    "UploadHandler",
    "upload_handler",
    "ShowHandler",
    "show_handler",
]
