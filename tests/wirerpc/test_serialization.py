"""
Tests for value conversion helpers
"""

from dataclasses import dataclass

import pytest
from google.protobuf.struct_pb2 import Struct

from wirerpc.utils.serialization import (
    ConversionError,
    convert_value,
    dict_to_protobuf,
    protobuf_to_dict,
    to_jsonable,
)


@dataclass
class Lot:
    id: str
    capacity: int


class TestConvertValue:
    """Test generic and typed conversion"""

    def test_no_target_returns_value(self):
        value = {"a": [1, 2]}
        assert convert_value(value) is value

    def test_none_stays_none(self):
        assert convert_value(None, int) is None
        assert convert_value(None, Lot) is None

    def test_builtin_types(self):
        assert convert_value("x", str) == "x"
        assert convert_value([1], list) == [1]
        assert convert_value({"a": 1}, dict) == {"a": 1}
        assert convert_value(True, bool) is True

    def test_int_widens_to_float(self):
        value = convert_value(3, float)
        assert value == 3.0
        assert isinstance(value, float)

    def test_bool_is_not_int(self):
        with pytest.raises(ConversionError):
            convert_value(True, int)

    def test_float_is_not_int(self):
        with pytest.raises(ConversionError):
            convert_value(1.5, int)

    def test_dataclass(self):
        assert convert_value({"id": "A", "capacity": 10}, Lot) == Lot(id="A", capacity=10)

    def test_dataclass_missing_field(self):
        with pytest.raises(ConversionError):
            convert_value({"id": "A"}, Lot)

    def test_dataclass_from_non_object(self):
        with pytest.raises(ConversionError):
            convert_value(["A", 10], Lot)

    def test_protobuf_from_non_object(self):
        with pytest.raises(ConversionError):
            convert_value([1, 2], Struct)

    def test_unsupported_target(self):
        with pytest.raises(ConversionError):
            convert_value(1, complex)


class TestProtobuf:
    """Test protobuf conversion"""

    def test_dict_round_trip(self):
        message = dict_to_protobuf({"lot": "A", "free": 3}, Struct)
        assert protobuf_to_dict(message) == {"lot": "A", "free": 3}

    def test_empty_dict(self):
        assert dict_to_protobuf({}, Struct) == Struct()

    def test_none_message(self):
        assert protobuf_to_dict(None) == {}


class TestToJsonable:
    """Test the json.dumps default hook"""

    def test_dataclass(self):
        assert to_jsonable(Lot("A", 5)) == {"id": "A", "capacity": 5}

    def test_tuple(self):
        assert to_jsonable((1, 2)) == [1, 2]

    def test_protobuf(self):
        message = Struct()
        message.update({"k": "v"})
        assert to_jsonable(message) == {"k": "v"}

    def test_unknown_type(self):
        with pytest.raises(TypeError):
            to_jsonable(object())

    def test_dataclass_type_itself(self):
        with pytest.raises(TypeError):
            to_jsonable(Lot)
