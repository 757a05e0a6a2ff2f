"""
=============================================================================
UPLOAD SLOT
=============================================================================

The one file the whole server shares: /upload writes it, /show reads it.

=============================================================================
LAST WRITER WINS
=============================================================================

There is exactly one slot per process (default /tmp/test.png). Nothing
locks it. Every successful upload replaces it, and the last upload to
commit is what /show returns next.

    upload A:  ──spool to tmp_A──────────────┐ commit (os.replace)
    upload B:  ──spool to tmp_B──┐ commit    │
                                 ▼           ▼
    slot:      old ─────────────► B ────────► A      ← A committed last

A reader never sees a half-written image. Uploads stream into a private
temp file first; commit is a single os.replace, which swaps the whole file
in one step as long as temp file and slot share a filesystem. That is
why the default spool directory is the slot's own directory.

=============================================================================
BLOCKING RENAME
=============================================================================

commit() calls os.replace directly on the event loop. A rename is one
metadata operation on the same filesystem, and doing it synchronously
means the slot already holds the new file when the handler finalizes its
confirmation response. The read side (read()) goes through anyio's file
API because it moves the image bytes.

=============================================================================
"""

from pathlib import Path
import logging
import os

import anyio

from .errors import UploadSlotError
from .http.mime_types import get_content_type


logger = logging.getLogger(__name__)


class UploadSlot:
    """
    Named handle on the fixed-path upload file.

    Example:
        slot = UploadSlot("/tmp/test.png")
        slot.commit("/tmp/upload_x1y2")     # temp file moves into the slot
        data = await slot.read()            # bytes of the last upload
        slot.content_type                   # "image/png"
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"UploadSlot({str(self.path)!r})"

    @property
    def content_type(self) -> str:
        """Content-Type derived from the slot's file extension."""
        return get_content_type(self.path)

    def exists(self) -> bool:
        return self.path.is_file()

    def commit(self, source: str | Path) -> None:
        """
        Move a finished upload into the slot, replacing what was there.

        Args:
            source: A complete temp file. It no longer exists afterwards.

        Raises:
            UploadSlotError: If the rename fails. The temp file is left
                for the caller to clean up.
        """
        try:
            os.replace(source, self.path)
        except OSError as exc:
            raise UploadSlotError(
                f"Could not store upload at {self.path}: {exc.strerror or exc}",
                path=str(self.path),
            ) from exc

        logger.info(f"Upload slot {self.path} replaced")

    async def read(self) -> bytes:
        """
        Read the current slot contents.

        Raises:
            OSError: FileNotFoundError before the first upload, or any
                other read failure. Handlers turn it into a 500.
        """
        return await anyio.Path(self.path).read_bytes()
