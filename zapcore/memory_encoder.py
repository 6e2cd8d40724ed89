"""Map- and list-backed encoders, mainly useful for inspecting log context."""

from __future__ import annotations

import math
import struct
from typing import Any

from zapcore.marshaler import ArrayMarshaler, ObjectMarshaler

__all__ = ["MapObjectEncoder", "SliceArrayEncoder"]


def _to_float32(value: float) -> float:
    """Round ``value`` to the nearest single-precision float."""
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return value
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _to_complex64(value: complex) -> complex:
    value = complex(value)
    return complex(_to_float32(value.real), _to_float32(value.imag))


class MapObjectEncoder:
    """An object encoder that collects everything into a plain dict.

    ``fields`` holds the whole encoded context. Namespaces opened with
    :meth:`open_namespace` become nested dicts, and every later key is
    written into the innermost one.
    """

    def __init__(self) -> None:
        self.fields: dict[str, Any] = {}
        self._cur: dict[str, Any] = self.fields

    def add_array(self, key: str, marshaler: ArrayMarshaler) -> None:
        """Marshal an array under ``key``; partial output is kept on error."""
        arr = SliceArrayEncoder()
        try:
            marshaler.marshal_log_array(arr)
        finally:
            self._cur[key] = arr.elems

    def add_object(self, key: str, marshaler: ObjectMarshaler) -> None:
        """Marshal a nested object under ``key``; partial output is kept on error."""
        nested = MapObjectEncoder()
        self._cur[key] = nested.fields
        marshaler.marshal_log_object(nested)

    def add_binary(self, key: str, value: bytes) -> None:
        self._cur[key] = bytes(value)

    def add_byte_string(self, key: str, value: bytes) -> None:
        self._cur[key] = bytes(value).decode("utf-8", errors="replace")

    def add_bool(self, key: str, value: bool) -> None:
        self._cur[key] = bool(value)

    def add_complex(self, key: str, value: complex) -> None:
        self._cur[key] = complex(value)

    def add_complex64(self, key: str, value: complex) -> None:
        self._cur[key] = _to_complex64(value)

    def add_duration(self, key: str, value: Any) -> None:
        self._cur[key] = value

    def add_float(self, key: str, value: float) -> None:
        self._cur[key] = float(value)

    def add_float32(self, key: str, value: float) -> None:
        self._cur[key] = _to_float32(value)

    def add_int(self, key: str, value: int) -> None:
        self._cur[key] = int(value)

    def add_uint(self, key: str, value: int) -> None:
        self._cur[key] = int(value)

    def add_string(self, key: str, value: str) -> None:
        self._cur[key] = value

    def add_time(self, key: str, value: Any) -> None:
        self._cur[key] = value

    def add_reflected(self, key: str, value: Any) -> None:
        self._cur[key] = value

    def open_namespace(self, key: str) -> None:
        """Start a nested dict under ``key`` that receives all later fields."""
        namespace: dict[str, Any] = {}
        self._cur[key] = namespace
        self._cur = namespace


class SliceArrayEncoder:
    """An array encoder that collects every appended value into a list."""

    def __init__(self) -> None:
        self.elems: list[Any] = []

    def append_array(self, marshaler: ArrayMarshaler) -> None:
        inner = SliceArrayEncoder()
        try:
            marshaler.marshal_log_array(inner)
        finally:
            self.elems.append(inner.elems)

    def append_object(self, marshaler: ObjectMarshaler) -> None:
        nested = MapObjectEncoder()
        try:
            marshaler.marshal_log_object(nested)
        finally:
            self.elems.append(nested.fields)

    def append_reflected(self, value: Any) -> None:
        self.elems.append(value)

    def append_bool(self, value: bool) -> None:
        self.elems.append(bool(value))

    def append_byte_string(self, value: bytes) -> None:
        self.elems.append(bytes(value).decode("utf-8", errors="replace"))

    def append_complex(self, value: complex) -> None:
        self.elems.append(complex(value))

    def append_complex64(self, value: complex) -> None:
        self.elems.append(_to_complex64(value))

    def append_duration(self, value: Any) -> None:
        self.elems.append(value)

    def append_float(self, value: float) -> None:
        self.elems.append(float(value))

    def append_float32(self, value: float) -> None:
        self.elems.append(_to_float32(value))

    def append_int(self, value: int) -> None:
        self.elems.append(int(value))

    def append_uint(self, value: int) -> None:
        self.elems.append(int(value))

    def append_string(self, value: str) -> None:
        self.elems.append(value)

    def append_time(self, value: Any) -> None:
        self.elems.append(value)