"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps the upload slot's file extension to a Content-Type for /show.

By default uploads are stored as test.png and served as "image/png".
The type follows the slot's configured file name, so
pointing the slot at /tmp/upload.jpg serves image/jpeg without touching
the handler.

    ┌────────────────────────────────────────────────────────────────────┐
    │  upload_path            →   Content-Type sent by /show             │
    ├────────────────────────────────────────────────────────────────────┤
    │  /tmp/test.png          →   image/png                              │
    │  /tmp/photo.JPG         →   image/jpeg  (extension is lowercased)  │
    │  /tmp/notes.txt         →   text/plain; charset=utf-8              │
    │  /tmp/blob              →   application/octet-stream               │
    └────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from pathlib import Path
from typing import Optional


MIME_TYPES = {
    # Images (what the upload form is for)
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".ico": "image/x-icon",
    ".svg": "image/svg+xml",

    # Text
    ".txt": "text/plain",
    ".html": "text/html",
    ".htm": "text/html",
    ".json": "application/json",

    # Documents
    ".pdf": "application/pdf",
}

# application/octet-stream = "unknown binary data"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: str | Path, default: Optional[str] = None) -> str:
    """
    Get the MIME type for a file based on its extension.

    Examples:
        >>> get_mime_type("/tmp/test.png")
        'image/png'

        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    if isinstance(path, str):
        path = Path(path)

    extension = path.suffix.lower()  # .PNG → .png
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    """Check if a MIME type should carry a charset parameter."""
    if mime_type.startswith("text/"):
        return True

    return mime_type in {"application/json", "image/svg+xml"}


def get_content_type(path: str | Path, charset: str = "utf-8") -> str:
    """
    Get the full Content-Type header value for a file.

    Text types get a charset parameter; binary types are returned as-is.

        >>> get_content_type("test.png")
        'image/png'
        >>> get_content_type("notes.txt")
        'text/plain; charset=utf-8'
    """
    mime_type = get_mime_type(path)

    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"

    return mime_type
