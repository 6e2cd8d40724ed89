"""Typed key-value fields and the logic that writes them into encoders."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

__all__ = ["FieldType", "Field", "add_fields", "encode_error"]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class FieldType(enum.IntEnum):
    """Which member of a Field carries the value, and how to encode it."""

    UNKNOWN = 0
    ARRAY_MARSHALER = enum.auto()
    OBJECT_MARSHALER = enum.auto()
    BINARY = enum.auto()
    BOOL = enum.auto()
    BYTE_STRING = enum.auto()
    COMPLEX128 = enum.auto()
    COMPLEX64 = enum.auto()
    DURATION = enum.auto()
    FLOAT64 = enum.auto()
    FLOAT32 = enum.auto()
    INT64 = enum.auto()
    INT32 = enum.auto()
    INT16 = enum.auto()
    INT8 = enum.auto()
    STRING = enum.auto()
    TIME = enum.auto()
    TIME_FULL = enum.auto()
    UINT64 = enum.auto()
    UINT32 = enum.auto()
    UINT16 = enum.auto()
    UINT8 = enum.auto()
    UINTPTR = enum.auto()
    REFLECT = enum.auto()
    NAMESPACE = enum.auto()
    STRINGER = enum.auto()
    ERROR = enum.auto()
    SKIP = enum.auto()
    INLINE_MARSHALER = enum.auto()


_SIGNED_BITS = {
    FieldType.INT64: 64,
    FieldType.INT32: 32,
    FieldType.INT16: 16,
    FieldType.INT8: 8,
}
_UNSIGNED_BITS = {
    FieldType.UINT64: 64,
    FieldType.UINT32: 32,
    FieldType.UINT16: 16,
    FieldType.UINT8: 8,
    FieldType.UINTPTR: 64,
}


def _signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _unsigned(value: int, bits: int) -> int:
    return value & ((1 << bits) - 1)


def _float64_from_bits(bits: int) -> float:
    return struct.unpack("<d", struct.pack("<Q", _unsigned(bits, 64)))[0]


def _float32_from_bits(bits: int) -> float:
    return struct.unpack("<f", struct.pack("<I", _unsigned(bits, 32)))[0]


def _time_from_nanos(nanos: int, tz: Any) -> datetime:
    moment = _EPOCH + timedelta(microseconds=nanos // 1000)
    if tz is None:
        return moment.astimezone()
    return moment.astimezone(tz)


def _describe(exc: BaseException) -> str:
    try:
        return str(exc)
    except Exception:
        return "<nil>"


def _panic(exc: BaseException) -> ValueError:
    return ValueError(f"PANIC={_describe(exc)}")


def _deep_equal(a: Any, b: Any) -> bool:
    if a is b:
        return True
    if isinstance(a, BaseException) or isinstance(b, BaseException):
        return type(a) is type(b) and a.args == b.args
    try:
        return bool(a == b)
    except Exception:
        return False


def _strict_equal(a: Any, b: Any) -> bool:
    if isinstance(a, datetime) and isinstance(b, datetime):
        return a == b and a.tzinfo == b.tzinfo
    return _deep_equal(a, b)


@dataclass(frozen=True, eq=False)
class Field:
    """A lazily marshaled key-value pair for a logger's context.

    Integer-like values, booleans, durations (nanoseconds), times
    (nanoseconds since the epoch) and float bit patterns live in
    ``integer``; strings in ``string``; everything else in ``interface``.
    """

    key: str = ""
    type: FieldType = FieldType.UNKNOWN
    integer: int = 0
    string: str = ""
    interface: Any = None

    def add_to(self, enc: Any) -> None:
        """Write this field into the object encoder ``enc``.

        A failure while marshaling is recorded as a ``<key>Error`` string
        field. An unknown field type raises ``TypeError``.
        """
        key, kind, value = self.key, self.type, self.interface
        try:
            match kind:
                case FieldType.ARRAY_MARSHALER:
                    enc.add_array(key, value)
                case FieldType.OBJECT_MARSHALER:
                    enc.add_object(key, value)
                case FieldType.INLINE_MARSHALER:
                    value.marshal_log_object(enc)
                case FieldType.REFLECT:
                    enc.add_reflected(key, value)
                case FieldType.STRINGER:
                    _encode_stringer(key, value, enc)
                case FieldType.ERROR:
                    encode_error(key, value, enc)
                case _:
                    self._add_primitive(enc)
        except _UnknownFieldType:
            raise TypeError(f"unknown field type: {self!r}") from None
        except Exception as exc:
            enc.add_string(f"{key}Error", _describe(exc))

    def _add_primitive(self, enc: Any) -> None:
        key, kind, integer = self.key, self.type, self.integer
        if kind in _SIGNED_BITS:
            enc.add_int(key, _signed(integer, _SIGNED_BITS[kind]))
        elif kind in _UNSIGNED_BITS:
            enc.add_uint(key, _unsigned(integer, _UNSIGNED_BITS[kind]))
        elif kind == FieldType.BINARY:
            enc.add_binary(key, self.interface)
        elif kind == FieldType.BOOL:
            enc.add_bool(key, integer == 1)
        elif kind == FieldType.BYTE_STRING:
            enc.add_byte_string(key, self.interface)
        elif kind == FieldType.COMPLEX128:
            enc.add_complex(key, self.interface)
        elif kind == FieldType.COMPLEX64:
            enc.add_complex64(key, self.interface)
        elif kind == FieldType.DURATION:
            enc.add_duration(key, _signed(integer, 64))
        elif kind == FieldType.FLOAT64:
            enc.add_float(key, _float64_from_bits(integer))
        elif kind == FieldType.FLOAT32:
            enc.add_float32(key, _float32_from_bits(integer))
        elif kind == FieldType.STRING:
            enc.add_string(key, self.string)
        elif kind == FieldType.TIME:
            enc.add_time(key, _time_from_nanos(integer, self.interface))
        elif kind == FieldType.TIME_FULL:
            enc.add_time(key, self.interface)
        elif kind == FieldType.NAMESPACE:
            enc.open_namespace(key)
        elif kind == FieldType.SKIP:
            return
        else:
            raise _UnknownFieldType()

    def equals(self, other: "Field") -> bool:
        """Report whether two fields carry the same key, type and value."""
        if not isinstance(other, Field):
            return False
        if self.type != other.type or self.key != other.key:
            return False
        if self.type in (FieldType.BINARY, FieldType.BYTE_STRING):
            return bytes(self.interface or b"") == bytes(other.interface or b"")
        if self.type in (
            FieldType.ARRAY_MARSHALER,
            FieldType.OBJECT_MARSHALER,
            FieldType.ERROR,
            FieldType.REFLECT,
        ):
            return _deep_equal(self.interface, other.interface)
        return (
            self.integer == other.integer
            and self.string == other.string
            and _strict_equal(self.interface, other.interface)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Field):
            return NotImplemented
        return self.equals(other)

    __hash__ = None  # type: ignore[assignment]


class _UnknownFieldType(Exception):
    pass


def add_fields(enc: Any, fields: Iterable[Field]) -> None:
    """Write every field into ``enc``, in order."""
    for f in fields:
        f.add_to(enc)


def _encode_stringer(key: str, value: Any, enc: Any) -> None:
    if value is None:
        enc.add_string(key, "<nil>")
        return
    try:
        text = str(value)
    except Exception as exc:
        raise _panic(exc) from exc
    enc.add_string(key, text)


def _error_causes(err: Any) -> list[Any] | None:
    if isinstance(err, BaseExceptionGroup):
        return list(err.exceptions)
    errors = getattr(err, "errors", None)
    if callable(errors):
        return list(errors())
    return None


def _is_formatter(err: Any) -> bool:
    return type(err).__format__ is not object.__format__


def encode_error(key: str, err: Any, enc: Any) -> None:
    """Encode ``err`` as fields of an object.

    Adds ``key`` with the error message. Error groups (exception groups or
    objects with an ``errors()`` method) also get a ``<key>Causes`` array;
    errors with a custom ``__format__`` whose ``"+v"`` form differs from the
    message get a ``<key>Verbose`` field. A failure while rendering the error
    raises ``ValueError`` with a ``PANIC=`` message.
    """
    if err is None:
        enc.add_string(key, "<nil>")
        return
    try:
        basic = str(err)
    except Exception as exc:
        raise _panic(exc) from exc
    enc.add_string(key, basic)

    causes = _error_causes(err)
    if causes is not None:
        enc.add_array(key + "Causes", _ErrArray(tuple(causes)))
        return
    if _is_formatter(err):
        try:
            verbose = format(err, "+v")
        except Exception as exc:
            raise _panic(exc) from exc
        if verbose != basic:
            enc.add_string(key + "Verbose", verbose)


@dataclass(frozen=True)
class _ErrArray:
    errs: tuple[Any, ...]

    def marshal_log_array(self, arr: Any) -> None:
        for err in self.errs:
            if err is None:
                continue
            try:
                arr.append_object(_ErrArrayElem(err))
            except Exception:
                pass


@dataclass(frozen=True)
class _ErrArrayElem:
    err: Any

    def marshal_log_array(self, arr: Any) -> None:
        arr.append_object(self)

    def marshal_log_object(self, enc: Any) -> None:
        encode_error("error", self.err, enc)