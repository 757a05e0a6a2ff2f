"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can emit, with their reason phrases.

This server speaks a very small vocabulary:

    ┌────────┬──────────────────────────────────────────────────────────────┐
    │  Code  │ Who sends it                                                 │
    ├────────┼──────────────────────────────────────────────────────────────┤
    │  200   │ A handler, after its sub-operation succeeded                 │
    │  400   │ The listener, for a malformed request head                   │
    │  404   │ The dispatcher, for a path with no bound handler             │
    │  413   │ The listener, when Content-Length exceeds the limit          │
    │  431   │ The listener, when the request head exceeds the limit        │
    │  500   │ A handler whose sub-operation failed, or the dispatch guard  │
    │  505   │ The listener, for anything but HTTP/1.0 and HTTP/1.1         │
    └────────┴──────────────────────────────────────────────────────────────┘

Handlers may still pass a plain int to the response sink; anything outside
this enum is rejected there.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200                                # Handler finished normally

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400                       # Malformed request line/headers
    NOT_FOUND = 404                         # No handler bound to the path
    PAYLOAD_TOO_LARGE = 413                 # Declared body over the limit
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431   # Head over the limit

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500             # Sub-operation failed
    HTTP_VERSION_NOT_SUPPORTED = 505        # Not HTTP/1.0 or HTTP/1.1

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      └── Reason phrase
                      └───────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes. Used to pick the access-log level."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
