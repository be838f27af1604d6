"""
Stream transport tests

Length-prefixed framing over socket pairs, read deadlines, closing and TLS
dialing failures.
"""

import socket
import struct
import threading
import time

import pytest

from wirerpc.errors import (
    ConnectError,
    ConnectionClosedError,
    TransportReadError,
    TransportTimeoutError,
    TransportWriteError,
)
from wirerpc.transport.stream import (
    MAX_FRAME_SIZE,
    StreamConnection,
    build_tls_context,
    parse_address,
)


def test_frame_round_trip(stream_pair):
    local, peer = stream_pair
    local.write_frame(b'{"method":"tick"}')
    local.write_frame(b'{"id":"1","result":2}')
    assert peer.read_frame() == b'{"method":"tick"}'
    assert peer.read_frame() == b'{"id":"1","result":2}'


def test_wire_format_is_length_prefixed():
    a, b = socket.socketpair()
    try:
        StreamConnection(a).write_frame(b"hello")
        assert b.recv(16) == struct.pack("!I", 5) + b"hello"
    finally:
        a.close()
        b.close()


def test_frame_split_across_segments():
    a, b = socket.socketpair()
    conn = StreamConnection(b)
    try:
        frame = struct.pack("!I", 11) + b'{"id":"42"}'

        def trickle():
            for i in range(len(frame)):
                a.sendall(frame[i:i + 1])
                time.sleep(0.001)

        threading.Thread(target=trickle, daemon=True).start()
        assert conn.read_frame() == b'{"id":"42"}'
    finally:
        a.close()
        conn.close()


def test_read_deadline(stream_pair):
    local, _ = stream_pair
    local.set_read_deadline(0.05)
    start = time.monotonic()
    with pytest.raises(TransportTimeoutError):
        local.read_frame()
    assert time.monotonic() - start < 2


def test_expired_deadline_fails_immediately(stream_pair):
    local, peer = stream_pair
    local.set_read_deadline(0.01)
    time.sleep(0.02)
    peer.write_frame(b"{}")
    with pytest.raises(TransportTimeoutError):
        local.read_frame()


def test_deadline_cleared(stream_pair):
    local, peer = stream_pair
    local.set_read_deadline(0.01)
    local.set_read_deadline(None)
    time.sleep(0.02)
    peer.write_frame(b"{}")
    assert local.read_frame() == b"{}"


def test_peer_close(stream_pair):
    local, peer = stream_pair
    peer.close()
    with pytest.raises(ConnectionClosedError):
        local.read_frame()


def test_close_unblocks_reader(stream_pair):
    local, _ = stream_pair
    errors = []

    def reader():
        try:
            local.read_frame()
        except TransportReadError as e:
            errors.append(e)

    thread = threading.Thread(target=reader)
    thread.start()
    time.sleep(0.05)
    local.close()
    thread.join(timeout=5)

    assert len(errors) == 1
    assert isinstance(errors[0], ConnectionClosedError)


def test_oversized_frame_header():
    a, b = socket.socketpair()
    conn = StreamConnection(b)
    try:
        a.sendall(struct.pack("!I", MAX_FRAME_SIZE + 1))
        with pytest.raises(TransportReadError):
            conn.read_frame()
    finally:
        a.close()
        conn.close()


def test_oversized_write(stream_pair):
    local, _ = stream_pair
    with pytest.raises(TransportWriteError):
        local.write_frame(b"x" * (MAX_FRAME_SIZE + 1))


def test_closed_connection(stream_pair):
    local, _ = stream_pair
    local.close()
    local.close()
    assert local.closed
    with pytest.raises(ConnectionClosedError):
        local.read_frame()
    with pytest.raises(TransportWriteError):
        local.write_frame(b"{}")


def test_write_to_closed_peer(stream_pair):
    local, peer = stream_pair
    peer.close()
    with pytest.raises(TransportWriteError):
        for _ in range(100):
            local.write_frame(b"{}" * 1024)


def test_deadline_mid_frame_resumes_on_next_read():
    a, b = socket.socketpair()
    conn = StreamConnection(b)
    try:
        payload = b'{"id":"1","result":"ok"}'
        a.sendall(struct.pack("!I", len(payload)) + payload[:5])

        conn.set_read_deadline(0.2)
        with pytest.raises(TransportTimeoutError):
            conn.read_frame()

        a.sendall(payload[5:])
        a.sendall(struct.pack("!I", 2) + b"{}")
        conn.set_read_deadline(5)
        assert conn.read_frame() == payload
        assert conn.read_frame() == b"{}"
    finally:
        a.close()
        conn.close()


def test_timeout_is_not_wrapped(stream_pair):
    local, _ = stream_pair
    local.set_read_deadline(0.01)
    time.sleep(0.02)
    with pytest.raises(TransportTimeoutError) as exc_info:
        local.read_frame()
    assert type(exc_info.value) is TransportTimeoutError


def test_read_deadline_does_not_limit_writes(stream_pair):
    local, peer = stream_pair
    frame = b"x" * (3 * 1024 * 1024)
    timed_out = []

    def reader():
        local.set_read_deadline(0.3)
        try:
            local.read_frame()
        except TransportTimeoutError as e:
            timed_out.append(e)

    received = []

    def slow_peer():
        time.sleep(1.0)
        peer.set_read_deadline(5)
        received.append(peer.read_frame())

    threads = [threading.Thread(target=reader), threading.Thread(target=slow_peer)]
    for t in threads:
        t.start()
    local.write_frame(frame)
    for t in threads:
        t.join(timeout=10)

    assert len(timed_out) == 1
    assert received == [frame]
    assert local.sock.gettimeout() is None


class TestParseAddress:
    """Test address parsing"""

    def test_host_port(self):
        assert parse_address("example.com:3000") == ("example.com", 3000)

    def test_tls_scheme(self):
        assert parse_address("tls://127.0.0.1:443") == ("127.0.0.1", 443)

    def test_ipv6(self):
        assert parse_address("[::1]:3010") == ("::1", 3010)

    def test_missing_port(self):
        with pytest.raises(ConnectError):
            parse_address("example.com")

    def test_invalid_port(self):
        with pytest.raises(ConnectError):
            parse_address("example.com:https")


class TestDialTLS:
    """Test TLS connection setup failures"""

    def test_connection_refused(self):
        probe = socket.socket()
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
        probe.close()

        with pytest.raises(ConnectError):
            StreamConnection.dial_tls(f"127.0.0.1:{port}", connect_timeout=2)

    def test_connect_error_is_connection_error(self):
        with pytest.raises(ConnectionError):
            StreamConnection.dial_tls("no-port-here")

    def test_handshake_failure(self):
        server = socket.socket()
        server.bind(("127.0.0.1", 0))
        server.listen(1)
        port = server.getsockname()[1]

        def plain_server():
            conn, _ = server.accept()
            conn.recv(1024)
            conn.sendall(b"this is not TLS\r\n")
            conn.close()

        thread = threading.Thread(target=plain_server, daemon=True)
        thread.start()
        try:
            with pytest.raises(ConnectError):
                StreamConnection.dial_tls(f"127.0.0.1:{port}", connect_timeout=2)
        finally:
            thread.join(timeout=5)
            server.close()

    def test_cert_without_key(self):
        with pytest.raises(ConnectError):
            build_tls_context(client_cert=b"-----BEGIN CERTIFICATE-----")

    def test_invalid_trust_anchors(self):
        with pytest.raises(ConnectError):
            build_tls_context(trust_anchors=b"not a certificate")

    def test_invalid_client_cert(self):
        with pytest.raises(ConnectError):
            build_tls_context(client_cert=b"not a cert", client_key=b"not a key")

    def test_default_context_verifies_server(self):
        import ssl
        context = build_tls_context()
        assert context.verify_mode == ssl.CERT_REQUIRED
        assert context.check_hostname
