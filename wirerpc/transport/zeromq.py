"""
ZeroMQ transport

A DEALER socket connected to a ROUTER (or DEALER) peer. ZeroMQ delivers
whole messages, so each JSON payload travels as a single ZeroMQ frame and
no length prefix is needed.
"""

import logging
import threading
from typing import Optional

import zmq

from wirerpc.errors import (
    ConnectError,
    ConnectionClosedError,
    TransportReadError,
    TransportWriteError,
)
from wirerpc.transport.interface import Connection

logger = logging.getLogger(__name__)

ZMQ_SCHEMES = ("tcp://", "ipc://", "inproc://")
POLL_SLICE_MS = 50


class ZeroMQConnection(Connection):
    """Connection over a ZeroMQ DEALER socket"""

    def __init__(self,
                 server_address: str = "tcp://localhost:5555",
                 trace_wire_traffic: bool = False,
                 context: Optional[zmq.Context] = None):
        """Connect to a ZeroMQ peer

        Args:
            server_address: ZeroMQ endpoint, e.g. tcp://localhost:5555
            trace_wire_traffic: Log every raw frame
            context: Shared ZeroMQ context, required for inproc:// endpoints

        Raises:
            ConnectError: the endpoint is invalid
        """
        super().__init__(trace_wire_traffic)
        self.server_address = server_address
        self._own_context = context is None
        self.context = context or zmq.Context()
        self._closed = False
        # ZeroMQ sockets are not thread-safe
        self._lock = threading.Lock()

        try:
            self.socket = self.context.socket(zmq.DEALER)
            self.socket.setsockopt(zmq.LINGER, 0)
            self.socket.connect(server_address)
        except zmq.error.ZMQError as e:
            self._release()
            raise ConnectError(f"cannot connect to {server_address}: {e}") from e

        logger.info(f"ZeroMQ connection to {server_address}")

    @classmethod
    def dial(cls,
             address: str,
             trust_anchors: Optional[bytes] = None,
             client_cert: Optional[bytes] = None,
             client_key: Optional[bytes] = None,
             trace_wire_traffic: bool = False) -> "ZeroMQConnection":
        if trust_anchors or client_cert or client_key:
            raise ConnectError("ZeroMQ endpoints do not support TLS certificates")
        return cls(address, trace_wire_traffic=trace_wire_traffic)

    @property
    def closed(self) -> bool:
        return self._closed

    def read_frame(self) -> bytes:
        # Poll in short slices so writers and close() can take the socket lock
        while True:
            remaining = self._remaining()
            timeout_ms = POLL_SLICE_MS
            if remaining is not None:
                timeout_ms = max(1, min(POLL_SLICE_MS, int(remaining * 1000)))

            with self._lock:
                if self._closed:
                    raise ConnectionClosedError("connection is closed")
                try:
                    if self.socket.poll(timeout_ms, zmq.POLLIN):
                        data = self.socket.recv(zmq.NOBLOCK)
                        break
                except zmq.error.Again:
                    continue
                except zmq.error.ZMQError as e:
                    if e.errno in (zmq.ETERM, zmq.ENOTSOCK):
                        raise ConnectionClosedError("connection is closed") from e
                    raise TransportReadError(f"ZeroMQ read failed: {e}") from e

        if self.trace_wire_traffic:
            logger.debug(f"[{self.server_address}] recv {len(data)} bytes: {data[:512]!r}")
        return data

    def write_frame(self, data: bytes) -> None:
        if self.trace_wire_traffic:
            logger.debug(f"[{self.server_address}] send {len(data)} bytes: {data[:512]!r}")

        with self._lock:
            if self._closed:
                raise TransportWriteError("connection is closed")
            try:
                self.socket.send(data)
            except zmq.error.ZMQError as e:
                raise TransportWriteError(f"ZeroMQ write failed: {e}") from e

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._release()
        logger.info(f"ZeroMQ connection to {self.server_address} closed")

    def _release(self):
        if getattr(self, "socket", None) is not None:
            self.socket.close()
        if self._own_context:
            self.context.term()
