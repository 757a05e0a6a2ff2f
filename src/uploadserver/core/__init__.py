"""
Networking core: the TCP listener, per-connection I/O and the access log.
"""

from .access_log import AccessLog, RequestLog
from .connection import Connection, ConnectionState
from .listener import Listener

__all__ = [
    "AccessLog",
    "RequestLog",
    "Connection",
    "ConnectionState",
    "Listener",
]
