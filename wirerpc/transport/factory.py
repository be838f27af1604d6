"""
Transport factory

Selects the Connection implementation from the address scheme:

- tcp://, ipc://, inproc://  -> ZeroMQConnection
- tls://host:port, host:port -> StreamConnection over TLS
"""

from typing import Optional

from wirerpc.transport.interface import Connection
from wirerpc.transport.stream import StreamConnection
from wirerpc.transport.zeromq import ZMQ_SCHEMES, ZeroMQConnection


class TransportType:
    """Transport type constants"""
    TLS = "tls"
    ZEROMQ = "zeromq"


def transport_type(address: str) -> str:
    if address.lower().startswith(ZMQ_SCHEMES):
        return TransportType.ZEROMQ
    return TransportType.TLS


def open_connection(address: str,
                    trust_anchors: Optional[bytes] = None,
                    client_cert: Optional[bytes] = None,
                    client_key: Optional[bytes] = None,
                    trace_wire_traffic: bool = False) -> Connection:
    """Open a connection to address

    Args:
        address: Peer address, the scheme selects the transport
        trust_anchors: PEM CA certificates (TLS only)
        client_cert: PEM client certificate (TLS only)
        client_key: PEM client key (TLS only)
        trace_wire_traffic: Log every raw frame sent and received

    Returns:
        Connection: Established connection

    Raises:
        ConnectError: the connection could not be established
    """
    if transport_type(address) == TransportType.ZEROMQ:
        return ZeroMQConnection.dial(address, trust_anchors, client_cert, client_key,
                                     trace_wire_traffic=trace_wire_traffic)
    return StreamConnection.dial_tls(address, trust_anchors, client_cert, client_key,
                                     trace_wire_traffic=trace_wire_traffic)
