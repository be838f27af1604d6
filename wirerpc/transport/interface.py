"""
Connection interface

Unified interface every transport (TLS stream, ZeroMQ) implements. The
client only ever talks to a Connection, so swapping the underlying socket
type needs no change above this layer.
"""

import abc
import time
from typing import Optional

from wirerpc.errors import TransportTimeoutError


class Connection(abc.ABC):
    """A persistent, ordered, reliable frame-oriented connection"""

    def __init__(self, trace_wire_traffic: bool = False):
        self.trace_wire_traffic = trace_wire_traffic
        self._deadline: Optional[float] = None

    @abc.abstractmethod
    def read_frame(self) -> bytes:
        """Block until one complete frame arrives

        Returns:
            bytes: Frame payload

        Raises:
            TransportTimeoutError: read deadline elapsed
            ConnectionClosedError: connection closed locally or by the peer
            TransportReadError: any other I/O failure
        """
        pass

    @abc.abstractmethod
    def write_frame(self, data: bytes) -> None:
        """Write one frame

        Raises:
            TransportWriteError: I/O failure or closed connection
        """
        pass

    @abc.abstractmethod
    def close(self) -> None:
        """Close the connection and release resources. Safe to call twice."""
        pass

    @property
    @abc.abstractmethod
    def closed(self) -> bool:
        pass

    def set_read_deadline(self, seconds: Optional[float]) -> None:
        """Fail reads that have not completed `seconds` from now

        Args:
            seconds: Seconds from now, or None to clear the deadline
        """
        if seconds is None:
            self._deadline = None
        else:
            self._deadline = time.monotonic() + seconds

    def _remaining(self) -> Optional[float]:
        """Seconds left until the read deadline, None when no deadline is set"""
        if self._deadline is None:
            return None
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise TransportTimeoutError("read deadline exceeded")
        return remaining
