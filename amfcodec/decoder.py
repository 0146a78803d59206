"""AMF3 decoder producing plain Python values, dataclasses or populated objects."""

from __future__ import annotations

import dataclasses
import io
import re
import struct
import types
import typing
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any, BinaryIO

from .markers import AMFError, Marker

# Dataclass field metadata key that maps an encoded name onto a field.
_NAME_METADATA = "amf.name"
_DYNAMIC_OBJECT = 0x0B
_EMPTY_STRING = 0x01
_SIGN_LIMIT = 0x0FFFFFFF
_U29_RANGE = 0x20000000
_SCALARS = (bool, int, float, str)
_NOT_STRUCTS = (int, float, str, bytes, bytearray, list, tuple, dict, set, frozenset)
_INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")
_NAMED_HINTS: dict[str, Any] = {
    "int": int,
    "float": float,
    "str": str,
    "bool": bool,
    "list": list,
    "dict": dict,
    "Any": Any,
    "object": object,
    "None": type(None),
}


def _type_name(hint: Any) -> str:
    return getattr(hint, "__name__", None) or str(hint)


def _is_type_hint(target: Any) -> bool:
    return (
        target is Any
        or isinstance(target, type)
        or typing.get_origin(target) is not None
    )


def _unwrap(hint: Any) -> tuple[Any, bool]:
    """Return the hint without an optional wrapper, and whether None is allowed."""
    if hint is None or hint is object or hint is Any:
        return Any, True
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        nullable = len(args) != len(typing.get_args(hint))
        if len(args) == 1:
            return _unwrap(args[0])[0], nullable
        return Any, True
    return hint, hint not in _SCALARS


def _is_struct_type(hint: Any) -> bool:
    return isinstance(hint, type) and not issubclass(hint, _NOT_STRUCTS)


def _is_struct_instance(value: Any) -> bool:
    return (
        value is not None
        and _is_struct_type(type(value))
        and (dataclasses.is_dataclass(value) or hasattr(value, "__dict__"))
        and not callable(value)
    )


def _instantiate(cls: type) -> Any:
    if dataclasses.is_dataclass(cls):
        instance = cls.__new__(cls)
        for f in dataclasses.fields(cls):
            if f.default is not dataclasses.MISSING:
                value = f.default
            elif f.default_factory is not dataclasses.MISSING:
                value = f.default_factory()
            else:
                value = None
            object.__setattr__(instance, f.name, value)
        return instance
    try:
        return cls()
    except TypeError:
        return cls.__new__(cls)


def _resolve_text_hint(text: str) -> Any:
    """Resolve a textual annotation made of simple built-in names; otherwise Any."""
    parts = [part.strip() for part in text.split("|")]
    resolved = [_NAMED_HINTS.get(part) for part in parts]
    if any(item is None for item in resolved):
        return Any
    if len(resolved) == 1:
        return resolved[0]
    return typing.Union[tuple(resolved)]


def _type_hints(cls: type) -> dict[str, Any]:
    hints: dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        annotations = vars(klass).get("__annotations__", {})
        if not isinstance(annotations, Mapping):
            continue
        for name, hint in annotations.items():
            hints[name] = _resolve_text_hint(hint) if isinstance(hint, str) else hint
    return hints


def _upper_first(key: str) -> str:
    return key[:1].upper() + key[1:]


def _find_field(key: str, instance: Any, hints: Mapping[str, Any]) -> str | None:
    upper = _upper_first(key)
    if dataclasses.is_dataclass(instance):
        for f in dataclasses.fields(instance):
            if f.name in (key, upper) or f.metadata.get(_NAME_METADATA) == key:
                return f.name
        return None
    names = list(hints)
    names.extend(getattr(instance, "__dict__", {}))
    for name in names:
        if name.startswith("_"):
            continue
        if name in (key, upper):
            return name
    return None


class Decoder:
    """Reads AMF3 values from a binary stream, resolving string and object references."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self.reset()

    def reset(self) -> None:
        """Forget every string and object already read."""
        self._strings: list[str] = []
        self._objects: list[Any] = []

    def decode(self, target: Any = None) -> Any:
        """Decode the next value.

        ``target`` may be None (plain Python values), a type hint such as a
        dataclass or ``list[int]``, or an existing object, dict or list that is
        filled in place and returned.
        """
        if target is None or _is_type_hint(target):
            return self._decode(target)
        if isinstance(target, (*_SCALARS, bytes, tuple, frozenset)):
            raise AMFError(f"cannot decode into immutable value of type {_type_name(type(target))}")
        return self._decode(type(target), target)

    # ----- dispatch -----

    def _decode(self, hint: Any, current: Any = None) -> Any:
        marker = self._read_byte()
        hint, nullable = _unwrap(hint)

        if marker == Marker.NULL:
            if not nullable:
                raise AMFError(f"invalid type: {_type_name(hint)} for nil")
            return None
        if marker == Marker.FALSE:
            return self._read_bool(hint, False)
        if marker == Marker.TRUE:
            return self._read_bool(hint, True)
        if marker == Marker.STRING:
            return self._read_string(hint)
        if marker == Marker.DOUBLE:
            return self._read_double(hint)
        if marker == Marker.INTEGER:
            return self._read_integer(hint)
        if marker == Marker.ARRAY:
            return self._read_array(hint, current)
        if marker == Marker.OBJECT:
            return self._read_object(hint, current)
        raise AMFError(f"unsupported marker: {marker}")

    # ----- scalars -----

    @staticmethod
    def _read_bool(hint: Any, value: bool) -> bool:
        if hint is Any or hint is bool:
            return value
        raise AMFError(f"invalid type: {_type_name(hint)} for bool")

    def _read_double(self, hint: Any) -> Any:
        (value,) = struct.unpack(">d", self._read_bytes(8))
        if hint is Any or hint is float:
            return value
        if hint is int:
            try:
                return int(value)
            except (ValueError, OverflowError) as exc:
                raise AMFError(f"cannot convert {value} to integer") from exc
        raise AMFError(f"invalid type: {_type_name(hint)} for double")

    def _read_integer(self, hint: Any) -> int:
        unsigned = self._read_u29()
        if hint is int:
            return unsigned - _U29_RANGE if unsigned > _SIGN_LIMIT else unsigned
        if hint is Any:
            return unsigned
        raise AMFError(f"invalid type: {_type_name(hint)} for integer")

    def _read_string(self, hint: Any) -> Any:
        text = self._read_text()
        if hint is Any or hint is str:
            return text
        if hint is int:
            if not _INTEGER_TEXT.fullmatch(text):
                raise AMFError(f"invalid integer: {text!r}")
            return int(text)
        raise AMFError(f"invalid type: {_type_name(hint)} for string")

    # ----- compound values -----

    def _reference(self, index: int) -> Any:
        try:
            return self._objects[index >> 1]
        except IndexError:
            raise AMFError(f"invalid object reference: {index >> 1}") from None

    def _read_object(self, hint: Any, current: Any) -> Any:
        index = self._read_u29()
        if not index & 0x01:
            return self._reference(index)
        if index != _DYNAMIC_OBJECT:
            raise AMFError("invalid object type")
        if self._read_byte() != _EMPTY_STRING:
            raise AMFError("typed object not supported")

        if hint is Any and _is_struct_instance(current):
            hint = type(current)

        origin = typing.get_origin(hint) or hint
        if hint is Any or origin in (dict, Mapping, MutableMapping):
            args = typing.get_args(hint)
            value_hint = args[1] if len(args) == 2 else Any
            result = current if isinstance(current, dict) else {}
            self._objects.append(result)
            while key := self._read_text():
                result[key] = self._decode(value_hint, result.get(key))
            return result

        if not _is_struct_type(hint):
            raise AMFError(f"struct expected, found: {_type_name(hint)}")

        instance = current if isinstance(current, hint) else _instantiate(hint)
        self._objects.append(instance)
        hints = _type_hints(hint)
        while key := self._read_text():
            name = _find_field(key, instance, hints)
            if name is None:
                raise AMFError(f"key {key} not found in struct {_type_name(hint)}")
            existing = getattr(instance, name, None)
            value = self._decode(hints.get(name, Any), existing)
            object.__setattr__(instance, name, value)
        return instance

    def _read_array(self, hint: Any, current: Any) -> list[Any]:
        index = self._read_u29()
        if not index & 0x01:
            return self._reference(index)
        length = index >> 1
        if self._read_byte() != _EMPTY_STRING:
            raise AMFError("ECMA array not allowed")

        origin = typing.get_origin(hint) or hint
        if hint is Any:
            item_hint: Any = Any
        elif origin in (list, Sequence, MutableSequence):
            args = typing.get_args(hint)
            item_hint = args[0] if args else Any
        else:
            raise AMFError(f"invalid type: {_type_name(hint)} for array")

        result = current if isinstance(current, list) else []
        result[:] = [None] * length
        self._objects.append(result)
        for position in range(length):
            result[position] = self._decode(item_hint)
        return result

    # ----- low level -----

    def _read_text(self) -> str:
        index = self._read_u29()
        if not index & 0x01:
            try:
                return self._strings[index >> 1]
            except IndexError:
                raise AMFError(f"invalid string reference: {index >> 1}") from None
        text = self._read_bytes(index >> 1).decode("utf-8", errors="surrogateescape")
        if text:
            self._strings.append(text)
        return text

    def _read_u29(self) -> int:
        result = 0
        for position in range(4):
            byte = self._read_byte()
            if position != 3:
                result = (result << 7) | (byte & 0x7F)
                if not byte & 0x80:
                    break
            else:
                result = (result << 8) | byte
        return result

    def _read_bytes(self, count: int) -> bytes:
        chunks = []
        remaining = count
        while remaining > 0:
            try:
                chunk = self._stream.read(remaining)
            except (OSError, ValueError) as exc:
                raise AMFError("read failed") from exc
            if not chunk:
                raise AMFError("unexpected end of data")
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def _read_byte(self) -> int:
        return self._read_bytes(1)[0]


def decode(data: bytes, target: Any = None) -> Any:
    """Decode a single value from AMF3 bytes."""
    return Decoder(io.BytesIO(data)).decode(target)