"""
Value conversion helpers

Converts between generic JSON values and the typed values callers hand to
the codec: protobuf messages, dataclass instances and builtin types.
"""

import dataclasses
from typing import Any, Dict, Type

from google.protobuf.json_format import MessageToDict, ParseDict, ParseError
from google.protobuf.message import Message

# JSON-model builtins a caller may request directly
_BUILTIN_TARGETS = (bool, int, float, str, list, dict)


class ConversionError(ValueError):
    """A JSON value does not fit the requested target type"""


def protobuf_to_dict(message: Message) -> Dict[str, Any]:
    """Convert Protobuf message to dictionary

    Args:
        message: Protobuf message object

    Returns:
        Dict: Dictionary containing message fields
    """
    if message is None:
        return {}

    return MessageToDict(message, preserving_proto_field_name=True)


def dict_to_protobuf(data: Dict[str, Any], message_type: Type[Message]) -> Message:
    """Convert dictionary to Protobuf message

    Args:
        data: Dictionary data
        message_type: Protobuf message type

    Returns:
        Message: Protobuf message object

    Raises:
        ConversionError: data does not match the message schema
    """
    if not data:
        return message_type()

    message = message_type()
    try:
        ParseDict(data, message)
    except (ParseError, TypeError, AttributeError) as e:
        raise ConversionError(f"cannot parse into {message_type.__name__}: {e}") from e
    return message


def to_jsonable(value: Any) -> Any:
    """`default` hook for json.dumps covering protobuf messages and dataclasses

    Raises:
        TypeError: value has no JSON representation
    """
    if isinstance(value, Message):
        return protobuf_to_dict(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def convert_value(value: Any, target: Any = None) -> Any:
    """Convert a generic JSON value into the requested target type

    Args:
        value: Value produced by json.loads
        target: None for the generic value, a builtin type, a dataclass type
            or a protobuf message class

    Returns:
        The converted value. None always stays None.

    Raises:
        ConversionError: value does not fit target
    """
    if target is None or value is None:
        return value

    if isinstance(target, type) and issubclass(target, Message):
        if not isinstance(value, dict):
            raise ConversionError(f"expected object for {target.__name__}, got {type(value).__name__}")
        return dict_to_protobuf(value, target)

    if dataclasses.is_dataclass(target) and isinstance(target, type):
        if not isinstance(value, dict):
            raise ConversionError(f"expected object for {target.__name__}, got {type(value).__name__}")
        try:
            return target(**value)
        except TypeError as e:
            raise ConversionError(f"cannot build {target.__name__}: {e}") from e

    if target in _BUILTIN_TARGETS:
        if target is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        if target is int and isinstance(value, bool):
            raise ConversionError("expected int, got bool")
        if not isinstance(value, target):
            raise ConversionError(f"expected {target.__name__}, got {type(value).__name__}")
        return value

    raise ConversionError(f"unsupported target type: {target!r}")
