"""
=============================================================================
EXCEPTIONS
=============================================================================

Every failure in this package falls into one of four buckets:

    ┌──────────────────────────┬──────────────────────────────────────────┐
    │ Exception                │ When / what happens                      │
    ├──────────────────────────┼──────────────────────────────────────────┤
    │ RouteConfigurationError  │ Bad route table. Raised at startup,      │
    │                          │ before the listener binds. Never seen    │
    │                          │ per request.                             │
    ├──────────────────────────┼──────────────────────────────────────────┤
    │ SinkFinalizedError       │ Somebody touched a response sink after   │
    │                          │ it was finalized. Always a bug.          │
    ├──────────────────────────┼──────────────────────────────────────────┤
    │ FormParseError           │ The request body could not be parsed as  │
    │                          │ a form. Handler answers 500.             │
    ├──────────────────────────┼──────────────────────────────────────────┤
    │ UploadSlotError          │ The upload slot could not be written.    │
    │                          │ Handler answers 500.                     │
    └──────────────────────────┴──────────────────────────────────────────┘

HTTP protocol errors (malformed request line, oversized headers) are raised
as HTTPParseError from uploadserver.http.request, next to the parser.

=============================================================================
"""

from typing import Optional


class UploadServerError(Exception):
    """Base class for all errors raised by uploadserver."""


class RouteConfigurationError(UploadServerError, ValueError):
    """
    Raised when a route table cannot be built.

    Examples: the same path bound twice, a path with pattern syntax
    (":id", "*rest"), or a handler that is not callable.
    """


class SinkFinalizedError(UploadServerError, RuntimeError):
    """Raised when a response sink is written to after end()."""


class FormParseError(UploadServerError):
    """Raised when a request body cannot be parsed as a form submission."""


class UploadSlotError(UploadServerError):
    """
    Raised when the upload slot cannot accept a new file.

    Carries the slot path so the error response can name it.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path
