"""
JSON-RPC client

Owns one Connection and exposes typed read/write operations on top of the
wire codec. The client runs no background thread and takes no locks:
callers keep to a single reader and a single writer, or use the Dispatcher
to multiplex concurrent calls over one connection.

Usage
-----
    with Client.open("tls://rpc.example.com:3000", trust_anchors=ca_pem) as client:
        req_id = client.write_request("echo", {"message": "hello"})
        msg = client.read_message()
"""

import time
import logging
from typing import Any, Callable, Optional

from wirerpc import codec
from wirerpc.config import ClientConfig
from wirerpc.errors import DecodeError, EncodeError, IDGenerationError, TransportError
from wirerpc.idgen import generate_id
from wirerpc.messages import Message, Notification, Request, ResError, Response
from wirerpc.telemetry.metrics import count_error, count_message, record_read_latency
from wirerpc.telemetry.tracer import create_span, setup_tracer
from wirerpc.transport.factory import open_connection
from wirerpc.transport.interface import Connection

logger = logging.getLogger(__name__)


def _kind(message: Any) -> str:
    return type(message).__name__.lower()


class Client:
    """JSON-RPC client over a single connection"""

    def __init__(self, connection: Connection, id_generator: Callable[[], str] = generate_id):
        """Wrap an established connection

        Args:
            connection: Connection owned by this client from now on
            id_generator: Callable returning a fresh, non-empty request id
        """
        self.connection = connection
        self.id_generator = id_generator

    @classmethod
    def open(cls,
             address: str,
             trust_anchors: Optional[bytes] = None,
             client_cert: Optional[bytes] = None,
             client_key: Optional[bytes] = None,
             trace_wire_traffic: bool = False,
             id_generator: Callable[[], str] = generate_id) -> "Client":
        """Connect to address and return a client owning the connection

        Args:
            address: `host:port`/`tls://host:port` for TLS, `tcp://...` for ZeroMQ
            trust_anchors: PEM CA certificates used to verify the server
            client_cert: PEM client certificate
            client_key: PEM client private key
            trace_wire_traffic: Log every raw frame for this connection
            id_generator: Request id generator

        Raises:
            ConnectError: the connection could not be established
        """
        connection = open_connection(address, trust_anchors, client_cert, client_key,
                                     trace_wire_traffic=trace_wire_traffic)
        return cls(connection, id_generator=id_generator)

    @classmethod
    def from_config(cls, config: ClientConfig) -> "Client":
        """Connect using a ClientConfig, applying its read timeout"""
        if config.enable_tracing:
            setup_tracer(config.service_name)

        trust_anchors, client_cert, client_key = config.load_credentials()
        client = cls.open(config.address, trust_anchors, client_cert, client_key,
                          trace_wire_traffic=config.trace_wire_traffic)
        if config.read_timeout_seconds is not None:
            client.set_read_deadline(config.read_timeout_seconds)
        return client

    def __enter__(self):
        return self

    def __exit__(self, *_):
        self.close()

    @property
    def closed(self) -> bool:
        return self.connection.closed

    def set_read_deadline(self, seconds: Optional[float]) -> None:
        """Fail the next blocking read if no frame arrives within `seconds`

        Args:
            seconds: Seconds from now, None clears the deadline
        """
        self.connection.set_read_deadline(seconds)

    def read_message(self, result_type: Any = None, params_type: Any = None) -> Message:
        """Read one message off the connection

        Blocks until a frame arrives, the read deadline elapses or the
        connection closes.

        Args:
            result_type: Optional target type for a response result
            params_type: Optional target type for request/notification params

        Returns:
            Message: A Request, Response or Notification

        Raises:
            TransportError: read failure, deadline exceeded or closed connection
            DecodeError: the frame is not a valid message
        """
        started = time.monotonic()
        with create_span("wirerpc.read_message") as span:
            try:
                data = self.connection.read_frame()
            except TransportError as e:
                count_error(type(e).__name__)
                raise

            record_read_latency(started)

            try:
                message = codec.decode(data, result_type=result_type, params_type=params_type)
            except DecodeError as e:
                logger.warning(f"received undecodable message: {e}")
                count_error(type(e).__name__)
                raise

            span.set_attribute("wirerpc.message.kind", _kind(message))
            count_message(_kind(message))
            return message

    def next_id(self) -> str:
        """Generate a request id

        Raises:
            IDGenerationError: the generator failed or returned an empty or
                non-string id
        """
        try:
            request_id = self.id_generator()
        except Exception as e:
            count_error("IDGenerationError")
            raise IDGenerationError(f"failed to generate request id: {e}") from e
        if not isinstance(request_id, str) or not request_id:
            count_error("IDGenerationError")
            raise IDGenerationError(f"id generator returned an invalid id: {request_id!r}")
        return request_id

    def write_request(self, method: str, params: Any = None) -> str:
        """Write a request with a freshly generated id

        Args:
            method: Method name
            params: Structured params (object) or None

        Returns:
            str: The request id, to match against the response

        Raises:
            IDGenerationError: the id generator failed; nothing was written
            EncodeError: params cannot be serialized
            TransportWriteError: the write failed
        """
        request_id = self.next_id()
        self.write_message(Request(id=request_id, method=method, params=params))
        return request_id

    def write_request_args(self, method: str, *params: Any) -> str:
        """Write a request with positional (array) params"""
        return self.write_request(method, list(params))

    def write_notification(self, method: str, params: Any = None) -> None:
        """Write a notification, no response is expected"""
        self.write_message(Notification(method=method, params=params))

    def write_notification_args(self, method: str, *params: Any) -> None:
        """Write a notification with positional (array) params"""
        self.write_notification(method, list(params))

    def write_response(self, request_id: str, result: Any = None, error: Optional[ResError] = None) -> None:
        """Write a response to a request received from the peer

        The id is not checked against requests seen on this connection.
        """
        self.write_message(Response(id=request_id, result=result, error=error))

    def write_message(self, message: Message) -> None:
        """Encode a message and write it as one frame

        Raises:
            EncodeError: the message cannot be serialized
            TransportWriteError: the write failed
        """
        kind = _kind(message)
        with create_span("wirerpc.write_message", {"wirerpc.message.kind": kind}):
            try:
                data = codec.encode(message)
            except EncodeError as e:
                logger.error(f"failed to encode {kind}: {e}")
                count_error("EncodeError")
                raise

            try:
                self.connection.write_frame(data)
            except TransportError as e:
                logger.error(f"failed to write {kind}: {e}")
                count_error(type(e).__name__)
                raise

        count_message(kind, written=True)

    def close(self) -> None:
        """Close the connection"""
        self.connection.close()
