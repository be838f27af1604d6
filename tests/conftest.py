"""
Shared fixtures: an in-memory Connection and connected stream socket pairs
"""

import queue
import socket

import pytest

from wirerpc.client import Client
from wirerpc.errors import ConnectionClosedError, TransportTimeoutError, TransportWriteError
from wirerpc.transport.interface import Connection
from wirerpc.transport.stream import StreamConnection

_CLOSED = object()


class FakeConnection(Connection):
    """In-memory Connection: frames queued by the test, writes recorded"""

    def __init__(self):
        super().__init__(trace_wire_traffic=True)
        self.inbound = queue.Queue()
        self.written = []
        self.write_error = None
        self._closed = False

    def feed(self, item):
        """Queue a frame (bytes) or an exception to raise from read_frame"""
        self.inbound.put(item)

    @property
    def closed(self) -> bool:
        return self._closed

    def read_frame(self) -> bytes:
        if self._closed:
            raise ConnectionClosedError("connection is closed")
        try:
            item = self.inbound.get(timeout=self._remaining())
        except queue.Empty:
            raise TransportTimeoutError("read deadline exceeded") from None
        if item is _CLOSED:
            raise ConnectionClosedError("connection is closed")
        if isinstance(item, Exception):
            raise item
        return item

    def write_frame(self, data: bytes) -> None:
        if self._closed:
            raise TransportWriteError("connection is closed")
        if self.write_error is not None:
            raise self.write_error
        self.written.append(data)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self.inbound.put(_CLOSED)


@pytest.fixture
def fake_connection():
    return FakeConnection()


@pytest.fixture
def client(fake_connection):
    """Client over a FakeConnection with predictable ids"""
    counter = iter(range(1, 10_000))
    return Client(fake_connection, id_generator=lambda: str(next(counter)))


@pytest.fixture
def stream_pair():
    """Two StreamConnections joined by a socket pair: (local, peer)"""
    a, b = socket.socketpair()
    local = StreamConnection(a, peer="local")
    peer = StreamConnection(b, peer="peer")
    yield local, peer
    local.close()
    peer.close()
