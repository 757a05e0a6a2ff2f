"""
=============================================================================
ACCESS LOG
=============================================================================

One line per request, emitted on the "uploadserver.access" logger after
the response has been written.

    Text (Apache style, default):
        127.0.0.1 - - [19/Oct/2026:10:15:02 +0000] "GET /show" 200 5120 3.41ms

    JSON (log_format = "json"):
        {"request_id": "1f3a9c2e", "method": "GET", "path": "/show", ...}

The logger is namespaced so it can be routed or silenced on its own:

    logging.getLogger("uploadserver.access").setLevel(logging.WARNING)

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional
import json
import logging
import time
import uuid

from ..http.request import RawRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("uploadserver.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one request.

    request_id:     Short random ID, for correlating with handler logs
    method:         HTTP method, "-" if the head could not be parsed
    path:           Request path, "-" if the head could not be parsed
    query:          Raw query parameters
    client_ip:      Client's IP address
    user_agent:     Client identifier
    status_code:    Status sent back
    content_length: Response body size in bytes
    duration_ms:    Time from first byte read to response written
    timestamp:      When the request finished
    """

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "query": self.query,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Apache-style line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLog:
    """
    Writes RequestLog entries in the configured format.

    Error responses (4xx/5xx) are logged at WARNING, everything else at
    INFO.
    """

    def __init__(self, log_format: str = "text"):
        self.log_format = log_format

    def entry(
        self,
        response: HTTPResponse,
        started: float,
        request: Optional[RawRequest] = None,
        client_address: tuple[str, int] = ("", 0),
    ) -> RequestLog:
        """Build the log entry for a finished request."""
        if request is not None:
            client_address = request.client_address

        return RequestLog(
            request_id=str(uuid.uuid4())[:8],
            method=request.method if request else "-",
            path=request.path if request else "-",
            query=str(request.query_params) if request and request.query_params else "",
            client_ip=client_address[0] or "-",
            user_agent=(request.user_agent if request else "") or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=(time.time() - started) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def record(
        self,
        response: HTTPResponse,
        started: float,
        request: Optional[RawRequest] = None,
        client_address: tuple[str, int] = ("", 0),
    ) -> RequestLog:
        """Emit one access-log line and return the entry."""
        log_entry = self.entry(response, started, request, client_address)
        level = logging.WARNING if response.status.is_error else logging.INFO

        if self.log_format == "json":
            logger.log(level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(level, log_entry.to_text())

        return log_entry
