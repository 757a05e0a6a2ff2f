"""
=============================================================================
DIRECTORY LISTING HANDLER
=============================================================================

Runs a shell command (default "ls -lah") and returns its output.

This is the subprocess-backed handler shape: one await on the child
process, and the code after it is the only code that touches the sink.

=============================================================================
"""

import logging

import anyio

from ..http.request import RawRequest
from ..http.response import ResponseSink
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class ListingHandler:
    """
    Handler answering with a command's standard output.

    =========================================================================
    WHY THE SINK IS ONLY TOUCHED AFTER THE AWAIT
    =========================================================================

    The naive version starts the command, keeps a local variable
    content = "empty", lets the completion callback overwrite it, and
    returns content straight away:

        content = "empty"
        start_command("ls -lah", on_done=lambda out: set_content(out))
        return content               # the command has not finished yet

    The client receives "empty" every time. Here the response is written
    in the continuation of the await, so it always carries the process
    output.

    =========================================================================

    Args:
        command: Shell command line to run.
    """

    def __init__(self, command: str = "ls -lah"):
        self.command = command

    async def handle(self, sink: ResponseSink, request: RawRequest) -> None:
        logger.info("Request handler 'listing' was called.")

        try:
            result = await anyio.run_process(self.command, check=False)
        except OSError as exc:
            logger.warning(f"Could not run {self.command!r}: {exc}")
            sink.send(HTTPStatus.INTERNAL_SERVER_ERROR, f"{exc}\n", "text/plain")
            return

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            message = f"Command {self.command!r} exited with status {result.returncode}"
            if stderr:
                message += f": {stderr}"
            logger.warning(message)
            sink.send(HTTPStatus.INTERNAL_SERVER_ERROR, message + "\n", "text/plain")
            return

        sink.send(HTTPStatus.OK, result.stdout, "text/plain")


def listing_handler(command: str = "ls -lah") -> ListingHandler:
    """Create a directory listing handler."""
    return ListingHandler(command)
