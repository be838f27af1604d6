"""
Transports

Connection implementations carrying one JSON payload per frame:
- stream: length-prefixed frames over a TLS socket
- zeromq: native ZeroMQ frames over a DEALER socket
"""

from .factory import TransportType, open_connection
from .interface import Connection
from .stream import StreamConnection
from .zeromq import ZeroMQConnection

__all__ = [
    "Connection",
    "StreamConnection",
    "TransportType",
    "ZeroMQConnection",
    "open_connection",
]
