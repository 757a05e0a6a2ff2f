"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Translates raw bytes from TCP into requests and finalized sinks back into
bytes.

=============================================================================
MODULE COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   b"POST /upload HTTP/1.1\r\nContent-Length: 1234\r\n..."   │
    │ Output:  RawRequest(method="POST", path="/upload", body=<stream>)   │
    │                                                                      │
    │ The body is NOT read here. It stays on the socket until a handler   │
    │ iterates request.body.                                              │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE SINK (response.py)                                         │
    │ ─────────────────────────────────────────────────────────────────── │
    │ write_head(status, headers) → write(data) → end()                   │
    │                                                                      │
    │ Finalized exactly once. A second end() raises SinkFinalizedError.   │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ ROUTE TABLE AND DISPATCH (router.py)                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ build([("/", h), ("/show", h2)]) → immutable RouteTable             │
    │ dispatch(table, path, sink, request, tg)                            │
    │     hit  → handler scheduled on tg                                  │
    │     miss → 404 "404 Not found" text/plain                           │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ FORMS (forms.py)                                                    │
    │ ─────────────────────────────────────────────────────────────────── │
    │ multipart/form-data and urlencoded bodies → FormData                │
    │ File parts are spooled to disk as they stream in.                   │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .forms import FormData, UploadedFile, parse_form
from .mime_types import get_content_type, get_mime_type
from .request import BodyStream, HTTPParseError, RawRequest, RequestParser
from .response import HTTPResponse, ResponseSink, error_response
from .router import NOT_FOUND_BODY, Route, RouteTable, build, dispatch
from .status_codes import HTTPStatus

__all__ = [
    # Requests
    "RawRequest",
    "RequestParser",
    "HTTPParseError",
    "BodyStream",

    # Responses
    "HTTPResponse",
    "ResponseSink",
    "error_response",

    # Routing
    "Route",
    "RouteTable",
    "build",
    "dispatch",
    "NOT_FOUND_BODY",

    # Forms
    "FormData",
    "UploadedFile",
    "parse_form",

    # Status codes and MIME types
    "HTTPStatus",
    "get_mime_type",
    "get_content_type",
]
