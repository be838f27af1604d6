"""
Wire codec

Encodes requests, responses and notifications to canonical JSON and decodes
an incoming frame into exactly one of them.

Classification looks only at `id` and `method`; the remaining fields are
decoded afterwards according to the message kind:

    id + method  -> Request
    id only      -> Response
    method only  -> Notification
    neither      -> MalformedMessageError
"""

import json
from dataclasses import dataclass
from typing import Any, Dict

from wirerpc.errors import (
    EncodeError,
    ErrorDecodeError,
    MalformedJSONError,
    MalformedMessageError,
    ParamsDecodeError,
    ResultDecodeError,
)
from wirerpc.messages import Message, Notification, Request, ResError, Response
from wirerpc.utils.serialization import ConversionError, convert_value, to_jsonable

# Marks a field missing from the frame, as opposed to an explicit null
_ABSENT = object()


@dataclass
class _Envelope:
    id: str
    method: str
    params: Any
    result: Any
    error: Any


def encode(message: Message) -> bytes:
    """Serialize a message to UTF-8 JSON

    Args:
        message: Request, Response or Notification

    Returns:
        bytes: Frame payload

    Raises:
        EncodeError: the message or one of its values cannot be represented
    """
    if isinstance(message, Request):
        doc = {"id": message.id, "method": message.method}
        if message.params is not None:
            doc["params"] = message.params
    elif isinstance(message, Notification):
        doc = {"method": message.method}
        if message.params is not None:
            doc["params"] = message.params
    elif isinstance(message, Response):
        doc = {"id": message.id}
        if message.result is not None or message.error is None:
            doc["result"] = message.result
        if message.error is not None:
            doc["error"] = _error_to_dict(message.error)
    else:
        raise EncodeError(f"cannot encode {type(message).__name__} as a JSON-RPC message")

    try:
        return json.dumps(doc, default=to_jsonable, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as e:
        raise EncodeError(f"failed to encode message: {e}") from e


def _error_to_dict(error: ResError) -> Dict[str, Any]:
    doc = {"code": error.code, "message": error.message}
    if error.data is not None:
        doc["data"] = error.data
    return doc


def decode(data: bytes, result_type: Any = None, params_type: Any = None) -> Message:
    """Decode one frame into a Request, Response or Notification

    Args:
        data: Frame payload
        result_type: Optional target type for a response `result`
        params_type: Optional target type for request/notification `params`

    Returns:
        Message: Exactly one of Request, Response, Notification

    Raises:
        MalformedJSONError: not valid JSON, or not a JSON object
        MalformedMessageError: neither `id` nor `method` is set
        ParamsDecodeError: `params` does not fit params_type
        ResultDecodeError: `result` does not fit result_type
        ErrorDecodeError: `error` is not a valid error object
    """
    env = _parse_envelope(data)

    if env.id:
        if env.method:
            return Request(id=env.id, method=env.method,
                           params=_decode_params(env.params, params_type))
        return _decode_response(env, result_type)

    if env.method:
        return Notification(method=env.method,
                            params=_decode_params(env.params, params_type))

    raise MalformedMessageError("message has neither id nor method")


def _parse_envelope(data: bytes) -> _Envelope:
    try:
        doc = json.loads(data)
    except (ValueError, TypeError) as e:
        # UnicodeDecodeError and JSONDecodeError are both ValueErrors
        raise MalformedJSONError(f"invalid JSON: {e}") from e

    if not isinstance(doc, dict):
        raise MalformedJSONError(f"expected a JSON object, got {type(doc).__name__}")

    msg_id = doc.get("id")
    method = doc.get("method")
    if msg_id is not None and not isinstance(msg_id, str):
        raise MalformedMessageError(f"id must be a string, got {type(msg_id).__name__}")
    if method is not None and not isinstance(method, str):
        raise MalformedMessageError(f"method must be a string, got {type(method).__name__}")

    return _Envelope(
        id=msg_id or "",
        method=method or "",
        params=doc.get("params"),
        result=doc.get("result", _ABSENT),
        error=doc.get("error"),
    )


def _decode_params(params: Any, params_type: Any) -> Any:
    try:
        return convert_value(params, params_type)
    except ConversionError as e:
        raise ParamsDecodeError(f"cannot decode params: {e}") from e


def _decode_response(env: _Envelope, result_type: Any) -> Response:
    result = None
    if env.result is not _ABSENT:
        try:
            result = convert_value(env.result, result_type)
        except ConversionError as e:
            raise ResultDecodeError(f"cannot decode result: {e}", response_id=env.id) from e

    error = None
    if env.error is not None:
        error = _decode_error(env.error, env.id)

    return Response(id=env.id, result=result, error=error)


def _decode_error(raw: Any, response_id: str) -> ResError:
    if not isinstance(raw, dict):
        raise ErrorDecodeError(f"error must be an object, got {type(raw).__name__}",
                               response_id=response_id)

    code = raw.get("code", 0)
    message = raw.get("message", "")
    if not isinstance(code, int) or isinstance(code, bool):
        raise ErrorDecodeError(f"error code must be an integer, got {code!r}",
                               response_id=response_id)
    if not isinstance(message, str):
        raise ErrorDecodeError(f"error message must be a string, got {type(message).__name__}",
                               response_id=response_id)

    return ResError(code=code, message=message, data=raw.get("data"))
