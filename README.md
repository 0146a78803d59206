# amfcodec

A compact AMF3 codec. It writes Python values to AMF3 bytes and reads them back, either as plain Python values or into dataclasses and other objects of your own.

## Installing

```
pip install amfcodec
```

The package has no runtime dependencies.

## Modules

- `amfcodec.markers`: `Marker`, an `IntEnum` of the AMF3 type markers such as `Marker.STRING` or `Marker.OBJECT`. It also holds `AMFError`, the exception the codec raises.
- `amfcodec.encoder`: the `Encoder` class and the `encode()` function.
- `amfcodec.decoder`: the `Decoder` class and the `decode()` function.

## Encoding

```python
import io
from amfcodec.encoder import Encoder, encode

data = encode({"name": "hello", "count": 3})

buffer = io.BytesIO()
encoder = Encoder(buffer, reserve_struct=False)
encoder.encode([1, 2.5, "three"])
encoder.reset()  # forget the string and object reference tables
```

Each value is written as follows:

- `None` is written as null. `True` and `False` are written as the true and false markers.
- Integers from 0 to 2**29 - 1, and negative integers down to -0x0FFFFFFF, are written as AMF integers. Positive integers up to 0xFFFFFFFF, and negative integers above -0x7FFFFFFF, are written as doubles. Anything further out is written as its decimal string.
- A float is written as a 64-bit big-endian double.
- A string is written as UTF-8 and uses the string reference table.
- A list, tuple, `bytes` or `bytearray` is written as a dense array. Bytes are written item by item as integers.
- A mapping is written as a dynamic anonymous object. Every key must be a string, or `AMFError` is raised.
- A dataclass instance, or any other non-callable object with a `__dict__`, is also written as a dynamic anonymous object made of its fields or attributes.

A field or attribute whose name starts with an underscore is skipped. By default the first letter of each name is written in lower case. With `reserve_struct=True`, names are written unchanged. A dataclass field can set its own wire name through metadata: `field(metadata={"amf.name": "str"})`. That name takes precedence over both of these rules.

Objects and sequences that appear more than once, by identity, are written as back-references. Repeated non-empty strings are written the same way. Both tables last until `reset()` is called. Any other type raises `AMFError`, and so does a stream that fails or writes short.

## Decoding

```python
from dataclasses import dataclass
from amfcodec.decoder import Decoder, decode
from amfcodec.encoder import encode

value = decode(data)  # dict, list, int, float, str, bool or None

@dataclass
class User:
    uname: str = ""
    uid: int = 0

user = decode(encode(User("hello", 3)), User)
```

`Decoder(stream).decode(target)` and `decode(data, target)` both accept a `target` in one of three forms:

- **`None`**: gives plain values. Objects become `dict`s and arrays become `list`s. An integer comes back as its unsigned 29-bit value, so negative integers need an `int` hint to keep their sign.
- **A type hint**: this can be a dataclass or another class, `int`, `str`, `float`, `bool`, `list[...]`, `dict[str, ...]`, or an `Optional`. The value is checked against the hint. An `int` hint also accepts a double, which is truncated, and a decimal string. Nested fields follow the class's annotations. Annotations written as strings are understood only when they are simple built-in names.
- **An existing `dict`, `list` or object**: it is filled in place and returned. Immutable values such as ints, strings, bytes and tuples are refused.

Object keys are matched to fields by the exact name, by the name with its first letter in upper case, or, for dataclasses, by the field's `amf.name` metadata. A key that matches no field raises `AMFError`. A null can only go where the hint allows `None`.

The `Decoder` keeps its string and object reference tables between calls until `reset()` is called. Running out of data, a failing stream, bad references and mismatched types all raise `AMFError`.

## What it does not do

The codec covers only the value kinds listed above. It does not handle:

- the undefined marker
- dates
- XML
- byte arrays (the AMF byte-array type)
- typed (class-named) objects
- arrays with an associative part

The decoder raises `AMFError` when it meets any of these. The encoder raises `AMFError` for values it cannot map to a supported kind.

Tuples and bytes are encoded as arrays, so they decode as lists. The package is a library only and has no command-line tool.