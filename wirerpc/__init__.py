"""
wirerpc: JSON-RPC client over persistent stream connections

Encodes requests, responses and notifications onto the wire, decodes and
classifies incoming messages, and correlates them by request id.

1. Message Format: JSON-RPC 2.0 style objects without the version tag
2. Transports:
   - TLS stream sockets with length-prefixed frames
   - ZeroMQ DEALER sockets
3. Client: single-reader/single-writer facade over one connection
4. Dispatcher: concurrent calls multiplexed over one client

Client and dispatcher report metrics and spans through OpenTelemetry.
"""

from wirerpc.client import Client
from wirerpc.codec import decode, encode
from wirerpc.config import ClientConfig
from wirerpc.dispatcher import Dispatcher
from wirerpc.errors import (
    ConnectError,
    ConnectionClosedError,
    DecodeError,
    EncodeError,
    ErrorDecodeError,
    IDGenerationError,
    MalformedJSONError,
    MalformedMessageError,
    ParamsDecodeError,
    RemoteError,
    ResultDecodeError,
    TransportError,
    TransportReadError,
    TransportTimeoutError,
    TransportWriteError,
    WireRPCError,
)
from wirerpc.messages import Message, Notification, Request, ResError, Response

__version__ = "0.1.0"

__all__ = [
    "Client",
    "ClientConfig",
    "Dispatcher",
    "decode",
    "encode",
    "Message",
    "Notification",
    "Request",
    "ResError",
    "Response",
    "WireRPCError",
    "ConnectError",
    "TransportError",
    "TransportReadError",
    "TransportWriteError",
    "TransportTimeoutError",
    "ConnectionClosedError",
    "DecodeError",
    "MalformedJSONError",
    "MalformedMessageError",
    "ParamsDecodeError",
    "ResultDecodeError",
    "ErrorDecodeError",
    "EncodeError",
    "IDGenerationError",
    "RemoteError",
]
