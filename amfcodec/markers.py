"""AMF3 type markers and the error raised by the codec."""

from __future__ import annotations

from enum import IntEnum


class Marker(IntEnum):
    """Type marker byte that precedes every AMF3 value."""

    UNDEFINED = 0x00
    NULL = 0x01
    FALSE = 0x02
    TRUE = 0x03
    INTEGER = 0x04
    DOUBLE = 0x05
    STRING = 0x06
    XMLDOC = 0x07
    DATE = 0x08
    ARRAY = 0x09
    OBJECT = 0x0A
    XML = 0x0B
    BYTEARRAY = 0x0C


class AMFError(Exception):
    """Raised when a value cannot be encoded or decoded."""