"""AMF3 encoder for plain Python values, mappings, sequences and objects."""

from __future__ import annotations

import dataclasses
import io
import struct
import types
from collections.abc import Iterator, Mapping
from typing import Any, BinaryIO

from .markers import AMFError, Marker

# Dataclass field metadata key that overrides the encoded field name.
_NAME_METADATA = "amf.name"
_DYNAMIC_OBJECT = 0x0B
_U29_LIMIT = 0x20000000
_UINT32_MAX = 0xFFFFFFFF
_INT_LOW = -0x0FFFFFFF
_DOUBLE_LOW = -0x7FFFFFFF


def _is_struct(value: Any) -> bool:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return True
    return (
        hasattr(value, "__dict__")
        and not callable(value)
        and not isinstance(value, types.ModuleType)
    )


class Encoder:
    """Writes AMF3 values to a binary stream, sharing string and object references."""

    def __init__(self, stream: BinaryIO, reserve_struct: bool = False) -> None:
        self._stream = stream
        self.reserve_struct = reserve_struct
        self.reset()

    def reset(self) -> None:
        """Forget every string and object already written."""
        self._strings: dict[str, int] = {}
        # id -> (reference index, object); the object is kept alive so ids stay unique.
        self._objects: dict[int, tuple[int, object]] = {}

    def encode(self, value: Any) -> None:
        """Encode one value onto the stream."""
        if value is None:
            self._write_marker(Marker.NULL)
        elif isinstance(value, bool):
            self._write_marker(Marker.TRUE if value else Marker.FALSE)
        elif isinstance(value, int):
            self._encode_int(value)
        elif isinstance(value, float):
            self._encode_float(value)
        elif isinstance(value, str):
            self._encode_string(value)
        elif isinstance(value, Mapping):
            self._encode_map(value)
        elif isinstance(value, (list, tuple, bytes, bytearray)):
            self._encode_sequence(value)
        elif _is_struct(value):
            self._encode_struct(value)
        else:
            raise AMFError(f"unsupported type: {type(value).__name__}")

    # ----- scalars -----

    def _encode_int(self, value: int) -> None:
        if value >= 0:
            if value >= _U29_LIMIT:
                if value <= _UINT32_MAX:
                    self._encode_float(float(value))
                else:
                    self._encode_string(str(value))
                return
            self._write_marker(Marker.INTEGER)
            self._write_u29(value)
            return
        if value < _INT_LOW:
            if value > _DOUBLE_LOW:
                self._encode_float(float(value))
            else:
                self._encode_string(str(value))
            return
        self._write_marker(Marker.INTEGER)
        self._write_u29(value & _UINT32_MAX)

    def _encode_float(self, value: float) -> None:
        self._write(bytes([Marker.DOUBLE]) + struct.pack(">d", value))

    def _encode_string(self, value: str) -> None:
        self._write_marker(Marker.STRING)
        self._write_string(value)

    # ----- compound values -----

    def _write_reference(self, value: object) -> bool:
        """Write a back-reference if the object was seen; otherwise register it."""
        entry = self._objects.get(id(value))
        if entry is not None:
            self._write_u29(entry[0] << 2)
            return True
        self._objects[id(value)] = (len(self._objects), value)
        return False

    def _encode_map(self, value: Mapping[Any, Any]) -> None:
        self._write_marker(Marker.OBJECT)
        if self._write_reference(value):
            return
        self._write_marker(_DYNAMIC_OBJECT)
        self._write_string("")
        for key, item in value.items():
            if not isinstance(key, str):
                raise AMFError("map key must be string")
            self._write_string(key)
            self.encode(item)
        self._write_string("")

    def _struct_fields(self, value: Any) -> Iterator[tuple[str, Any]]:
        if dataclasses.is_dataclass(value):
            items = (
                (f.name, f.metadata.get(_NAME_METADATA), getattr(value, f.name))
                for f in dataclasses.fields(value)
            )
        else:
            items = ((name, None, item) for name, item in vars(value).items())
        for attr, alias, item in items:
            if attr.startswith("_"):
                continue
            if alias:
                yield alias, item
            elif self.reserve_struct:
                yield attr, item
            else:
                yield attr[:1].lower() + attr[1:], item

    def _encode_struct(self, value: Any) -> None:
        self._write_marker(Marker.OBJECT)
        if self._write_reference(value):
            return
        self._write_marker(_DYNAMIC_OBJECT)
        self._write_string("")
        for name, item in self._struct_fields(value):
            self._write_string(name)
            self.encode(item)
        self._write_string("")

    def _encode_sequence(self, value: Any) -> None:
        self._write_marker(Marker.ARRAY)
        if self._write_reference(value):
            return
        self._write_u29((len(value) << 1) | 0x01)
        self._write_string("")
        for item in value:
            self.encode(item)

    # ----- low level -----

    def _write_string(self, value: str) -> None:
        index = self._strings.get(value)
        if index is not None:
            self._write_u29(index << 1)
            return
        data = value.encode("utf-8")
        self._write_u29((len(data) << 1) | 0x01)
        if value:
            self._strings[value] = len(self._strings)
        self._write(data)

    def _write_u29(self, value: int) -> None:
        if value < 0x80:
            data = bytes([value])
        elif value < 0x4000:
            data = bytes([(value >> 7) | 0x80, value & 0x7F])
        elif value < 0x200000:
            data = bytes(
                [
                    ((value >> 14) | 0x80) & 0xFF,
                    ((value >> 7) | 0x80) & 0xFF,
                    value & 0x7F,
                ]
            )
        elif value < _U29_LIMIT:
            data = bytes(
                [
                    ((value >> 22) | 0x80) & 0xFF,
                    ((value >> 15) | 0x80) & 0xFF,
                    ((value >> 7) | 0x80) & 0xFF,
                    value & 0xFF,
                ]
            )
        else:
            raise AMFError("u29 overflow")
        self._write(data)

    def _write_marker(self, marker: int) -> None:
        self._write(bytes([marker]))

    def _write(self, data: bytes) -> None:
        try:
            written = self._stream.write(data)
        except (OSError, ValueError) as exc:
            raise AMFError("write failed") from exc
        if written is not None and written != len(data):
            raise AMFError("write failed")


def encode(value: Any, reserve_struct: bool = False) -> bytes:
    """Encode a single value and return the AMF3 bytes."""
    buffer = io.BytesIO()
    Encoder(buffer, reserve_struct).encode(value)
    return buffer.getvalue()