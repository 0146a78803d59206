import io
import struct
from dataclasses import dataclass, field

import pytest

from amfcodec.encoder import Encoder, encode
from amfcodec.markers import AMFError, Marker


@dataclass
class Point:
    x: int
    y: int


@dataclass
class Person:
    Name: str
    _hidden: int = 0


@dataclass
class Tagged:
    text: str = field(metadata={"amf.name": "str"})


class Plain:
    def __init__(self):
        self.a = 1
        self._b = 2


def test_small_integer():
    assert encode(5) == bytes([Marker.INTEGER, 5])


def test_two_byte_integer():
    assert encode(200) == b"\x04\x81\x48"


def test_three_byte_integer():
    assert encode(0x4000) == b"\x04\x81\x80\x00"


@pytest.mark.parametrize("value", [0x20000000, 0xFFFFFFFF, -0x10000000])
def test_out_of_range_integers_become_doubles(value):
    assert encode(value) == bytes([Marker.DOUBLE]) + struct.pack(">d", float(value))


@pytest.mark.parametrize("value", [0x100000000, -0x7FFFFFFF, -(2**40)])
def test_very_large_integers_become_strings(value):
    out = encode(value)
    assert out[0] == Marker.STRING
    assert out.endswith(str(value).encode())


def test_small_negative_integer_overflows():
    with pytest.raises(AMFError):
        encode(-1)


def test_float_is_big_endian_double():
    assert encode(0.000001) == bytes([Marker.DOUBLE]) + struct.pack(">d", 0.000001)


def test_unicode_string_is_utf8():
    out = encode("测试")
    assert out[0] == Marker.STRING
    assert out.endswith("测试".encode("utf-8"))


def test_repeated_strings_written_once():
    out = encode({"a": "hello", "b": "hello"})
    assert out.count(b"hello") == 1


def test_repeated_keys_written_once():
    out = encode([{"name": 1}, {"name": 2}])
    assert out.count(b"name") == 1


def test_map_layout():
    out = encode({"a": 1})
    assert out.startswith(bytes([Marker.OBJECT, 0x0B, 0x01]))
    assert out.endswith(b"\x01")
    assert b"a" in out


def test_map_with_non_string_key_fails():
    with pytest.raises(AMFError):
        encode({1: "x"})


def test_self_referential_list():
    items = []
    items.append(items)
    assert encode(items) == bytes([Marker.ARRAY, 0x03, 0x01, Marker.ARRAY, 0x00])


def test_shared_object_encoded_as_reference():
    shared = {"key": "value"}
    assert len(encode([shared, shared])) < len(encode([shared, dict(shared)]))


def test_shared_struct_encoded_as_reference():
    shared = Point(1, 2)
    assert len(encode([shared, shared])) < len(encode([shared, Point(1, 2)]))


def test_tuple_and_bytes_encode_like_lists():
    assert encode((1, 2)) == encode([1, 2])
    assert encode(b"\x01\x02") == encode([1, 2])


def test_dataclass_encodes_like_dict():
    assert encode(Point(1, 2)) == encode({"x": 1, "y": 2})


def test_field_name_lowercased_by_default():
    out = encode(Person("bob"))
    assert b"name" in out
    assert b"Name" not in out
    assert b"hidden" not in out


def test_field_name_kept_when_reserving_struct():
    out = encode(Person("bob"), reserve_struct=True)
    assert b"Name" in out
    assert b"name" not in out


def test_metadata_overrides_field_name():
    out = encode(Tagged("body"))
    assert out == encode({"str": "body"})


def test_plain_object_skips_private_attributes():
    assert encode(Plain()) == encode({"a": 1})


def test_unsupported_type():
    with pytest.raises(AMFError):
        encode(1 + 2j)


def test_reset_forgets_strings():
    buffer = io.BytesIO()
    encoder = Encoder(buffer)
    encoder.encode("hello")
    first = buffer.getvalue()
    encoder.encode("hello")
    second = buffer.getvalue()[len(first):]
    assert b"hello" not in second
    encoder.reset()
    encoder.encode("hello")
    third = buffer.getvalue()[len(first) + len(second):]
    assert third == first


def test_short_write_raises():
    class Short:
        def write(self, data):
            return 0

    with pytest.raises(AMFError):
        Encoder(Short()).encode(True)


def test_failing_stream_raises():
    class Broken:
        def write(self, data):
            raise OSError("disk full")

    with pytest.raises(AMFError):
        Encoder(Broken()).encode("x")