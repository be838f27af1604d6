"""
JSON-RPC message types

The three message shapes exchanged on the wire plus the error payload
carried by a failed response. All values are transient: built right before
a write or right after a read.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass
class ResError:
    """Error object of a failed response"""
    code: int
    message: str
    data: Any = None


@dataclass
class Request:
    """Request expecting a response with the same id"""
    id: str
    method: str
    params: Any = None


@dataclass
class Response:
    """Response to the request carrying the same id"""
    id: str
    result: Any = None
    error: Optional[ResError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class Notification:
    """Fire-and-forget message, no id and no reply"""
    method: str
    params: Any = None


Message = Union[Request, Response, Notification]
