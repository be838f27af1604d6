"""
Stream socket transport

Length-prefixed frames over a connected stream socket, normally TLS.

Wire format
-----------
Each frame is prefixed by a 4-byte big-endian unsigned integer carrying the
byte length of the UTF-8 JSON payload that follows:

  [ length : uint32 BE ] [ JSON payload : length bytes ]
"""

import os
import select
import socket
import ssl
import struct
import logging
import tempfile
import threading
from typing import Optional, Tuple

from wirerpc.errors import (
    ConnectError,
    ConnectionClosedError,
    TransportError,
    TransportReadError,
    TransportTimeoutError,
    TransportWriteError,
)
from wirerpc.transport.interface import Connection

logger = logging.getLogger(__name__)

_HDR = struct.Struct("!I")   # network-order uint32
HDR_SIZE = _HDR.size         # 4 bytes
MAX_FRAME_SIZE = 4 * 1024 * 1024


def parse_address(address: str) -> Tuple[str, int]:
    """Split `tls://host:port` or `host:port` into host and port

    Raises:
        ConnectError: address has no valid port
    """
    if address.startswith("tls://"):
        address = address[len("tls://"):]
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ConnectError(f"invalid address {address!r}, expected host:port")
    try:
        return host.strip("[]"), int(port)
    except ValueError:
        raise ConnectError(f"invalid port in address {address!r}") from None


def build_tls_context(trust_anchors: Optional[bytes] = None,
                      client_cert: Optional[bytes] = None,
                      client_key: Optional[bytes] = None) -> ssl.SSLContext:
    """Create a client TLS context from PEM encoded material

    Args:
        trust_anchors: PEM CA certificates; the system store is used when empty
        client_cert: PEM client certificate
        client_key: PEM private key for client_cert

    Raises:
        ConnectError: certificate material is invalid or incomplete
    """
    if bool(client_cert) != bool(client_key):
        raise ConnectError("client certificate and key must be supplied together")

    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    try:
        if trust_anchors:
            context.load_verify_locations(cadata=trust_anchors.decode("ascii"))
        if client_cert:
            # load_cert_chain only reads from files
            with tempfile.TemporaryDirectory() as tmp:
                cert_path = os.path.join(tmp, "client.crt")
                key_path = os.path.join(tmp, "client.key")
                with open(cert_path, "wb") as f:
                    f.write(client_cert)
                with open(key_path, "wb") as f:
                    f.write(client_key)
                context.load_cert_chain(cert_path, key_path)
    except (ssl.SSLError, ValueError, OSError) as e:
        raise ConnectError(f"invalid TLS credentials: {e}") from e
    return context


class StreamConnection(Connection):
    """Connection over a connected stream socket"""

    def __init__(self, sock: socket.socket, trace_wire_traffic: bool = False, peer: str = ""):
        super().__init__(trace_wire_traffic)
        self.sock = sock
        self.peer = peer
        self._closed = False
        self._close_lock = threading.Lock()
        # bytes received but not yet returned as a frame; a read deadline can
        # expire part way through a frame and the next read resumes from here
        self._rbuf = bytearray()
        # reads wait with select() so the socket stays blocking for writers
        sock.settimeout(None)

    @classmethod
    def dial_tls(cls,
                 address: str,
                 trust_anchors: Optional[bytes] = None,
                 client_cert: Optional[bytes] = None,
                 client_key: Optional[bytes] = None,
                 trace_wire_traffic: bool = False,
                 connect_timeout: float = 10.0) -> "StreamConnection":
        """Open a TLS connection

        Args:
            address: `host:port` or `tls://host:port`
            trust_anchors: PEM CA certificates used to verify the server
            client_cert: PEM client certificate
            client_key: PEM client private key
            trace_wire_traffic: Log every raw frame
            connect_timeout: Seconds allowed for TCP connect and handshake

        Raises:
            ConnectError: unreachable address, handshake or certificate failure
        """
        host, port = parse_address(address)
        context = build_tls_context(trust_anchors, client_cert, client_key)

        try:
            raw = socket.create_connection((host, port), timeout=connect_timeout)
        except OSError as e:
            raise ConnectError(f"cannot connect to {host}:{port}: {e}") from e

        try:
            tls = context.wrap_socket(raw, server_hostname=host)
        except (ssl.SSLError, ssl.CertificateError, OSError) as e:
            raw.close()
            raise ConnectError(f"TLS handshake with {host}:{port} failed: {e}") from e

        logger.info(f"TLS connection established to {host}:{port} ({tls.version()})")
        return cls(tls, trace_wire_traffic=trace_wire_traffic, peer=f"{host}:{port}")

    @property
    def closed(self) -> bool:
        return self._closed

    def read_frame(self) -> bytes:
        if self._closed:
            raise ConnectionClosedError("connection is closed")

        try:
            self._fill(HDR_SIZE)
            length, = _HDR.unpack_from(self._rbuf)
            if length > MAX_FRAME_SIZE:
                raise TransportReadError(f"frame too large: {length} bytes")
            self._fill(HDR_SIZE + length)
        except TransportError:
            raise
        except (ConnectionResetError, BrokenPipeError, ssl.SSLEOFError) as e:
            raise ConnectionClosedError(f"connection lost: {e}") from e
        except (OSError, ValueError) as e:
            # ValueError: select() on a socket closed by another thread
            if self._closed:
                raise ConnectionClosedError("connection is closed") from e
            raise TransportReadError(f"read failed: {e}") from e

        payload = bytes(self._rbuf[HDR_SIZE:HDR_SIZE + length])
        del self._rbuf[:HDR_SIZE + length]

        if self.trace_wire_traffic:
            logger.debug(f"[{self.peer}] recv {length} bytes: {payload[:512]!r}")
        return payload

    def _fill(self, n: int) -> None:
        """Receive until the read buffer holds at least n bytes"""
        while len(self._rbuf) < n:
            self._wait_readable()
            chunk = self.sock.recv(n - len(self._rbuf))
            if not chunk:
                raise ConnectionClosedError("connection closed by peer")
            self._rbuf += chunk

    def _wait_readable(self) -> None:
        timeout = self._remaining()
        if timeout is None:
            return
        # decrypted TLS bytes already buffered are invisible to select()
        if isinstance(self.sock, ssl.SSLSocket) and self.sock.pending():
            return
        readable, _, _ = select.select([self.sock], [], [], timeout)
        if not readable:
            raise TransportTimeoutError("read deadline exceeded")

    def write_frame(self, data: bytes) -> None:
        if self._closed:
            raise TransportWriteError("connection is closed")
        if len(data) > MAX_FRAME_SIZE:
            raise TransportWriteError(f"frame too large: {len(data)} bytes")

        if self.trace_wire_traffic:
            logger.debug(f"[{self.peer}] send {len(data)} bytes: {data[:512]!r}")
        try:
            self.sock.sendall(_HDR.pack(len(data)) + data)
        except OSError as e:
            raise TransportWriteError(f"write failed: {e}") from e

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # already disconnected
            pass
        self.sock.close()
        logger.info(f"connection to {self.peer or 'peer'} closed")
