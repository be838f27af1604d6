"""
wirerpc error hierarchy

Every failure raised by the package derives from WireRPCError so callers can
branch on the exact kind:

- ConnectError: the connection could not be established
- TransportError: I/O failure on an established connection
- DecodeError: an incoming frame could not be decoded
- EncodeError: an outgoing message could not be serialized
- IDGenerationError: the request identifier generator failed
"""

from typing import Optional


class WireRPCError(Exception):
    """Base class for all wirerpc errors"""


class ConnectError(WireRPCError, ConnectionError):
    """Address unreachable, handshake or certificate failure"""


class TransportError(WireRPCError):
    """I/O failure on an established connection"""


class TransportReadError(TransportError):
    pass


class TransportWriteError(TransportError):
    pass


class TransportTimeoutError(TransportReadError, TimeoutError):
    """The read deadline elapsed before a frame arrived"""


class ConnectionClosedError(TransportReadError):
    """The connection was closed locally or by the peer"""


class DecodeError(WireRPCError):
    """Base class for incoming message decode failures

    response_id is set when the frame was recognisably a response, so a
    caller waiting on that id can be failed instead of left waiting.
    """

    def __init__(self, message: str = "", response_id: Optional[str] = None):
        super().__init__(message)
        self.response_id = response_id


class MalformedJSONError(DecodeError):
    """The frame is not valid JSON or not a JSON object"""


class MalformedMessageError(DecodeError):
    """Valid JSON that is not a request, response or notification"""


class ParamsDecodeError(DecodeError):
    pass


class ResultDecodeError(DecodeError):
    pass


class ErrorDecodeError(DecodeError):
    pass


class EncodeError(WireRPCError):
    """An outgoing message could not be serialized"""


class IDGenerationError(WireRPCError):
    pass


class RemoteError(WireRPCError):
    """The peer answered a call with an error response"""

    def __init__(self, error):
        self.error = error
        super().__init__(f"[{error.code}] {error.message}")

    @property
    def code(self) -> int:
        return self.error.code

    @property
    def data(self):
        return self.error.data
