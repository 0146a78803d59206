import pytest

from amfcodec.encoder import encode
from amfcodec.markers import AMFError, Marker


@pytest.mark.parametrize(
    "value, marker",
    [
        (None, Marker.NULL),
        (False, Marker.FALSE),
        (True, Marker.TRUE),
        (7, Marker.INTEGER),
        (1.25, Marker.DOUBLE),
        ("text", Marker.STRING),
        ([1], Marker.ARRAY),
        ({"k": 1}, Marker.OBJECT),
    ],
)
def test_encoded_value_starts_with_marker(value, marker):
    assert Marker(encode(value)[0]) is marker


def test_scalar_markers_are_the_whole_encoding():
    assert encode(None) == bytes([Marker.NULL])
    assert encode(True) == bytes([Marker.TRUE])
    assert encode(False) == bytes([Marker.FALSE])


def test_unsupported_value_raises_amf_error():
    with pytest.raises(AMFError):
        encode(object())