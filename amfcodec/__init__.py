"""Encode Python values to AMF3 bytes and decode them back into values, dataclasses or objects."""

__version__ = "0.1.0"
__all__ = ["markers", "encoder", "decoder"]