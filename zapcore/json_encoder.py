"""A JSON entry encoder that writes keys and values straight into a byte buffer."""

from __future__ import annotations

import base64
import copy
import dataclasses
import io
import json
import math
import struct
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Sequence

from zapcore.encoder import (
    DEFAULT_LINE_ENDING,
    RFC3339_NANO_LAYOUT,
    EncoderConfig,
    format_time_layout,
    full_name_encoder,
)
from zapcore.entry import Entry
from zapcore.field import add_fields
from zapcore.level import Level

__all__ = ["JSONEncoder", "new_json_encoder"]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NANOS_PER_SECOND = 1_000_000_000
_NULL = b"null"
_NO_SEPARATOR_AFTER = frozenset(b"{[:, ")


def _build_escapes() -> dict[int, str]:
    table: dict[int, str] = {code: f"\\u{code:04x}" for code in range(0x20)}
    table[ord("\n")] = "\\n"
    table[ord("\r")] = "\\r"
    table[ord("\t")] = "\\t"
    table[ord('"')] = '\\"'
    table[ord("\\")] = "\\\\"
    # Lone surrogates stand for bytes that were not valid UTF-8.
    for code in range(0xD800, 0xE000):
        table[code] = "\\ufffd"
    return table


_ESCAPES = _build_escapes()


def _escape(text: str) -> bytes:
    return text.translate(_ESCAPES).encode("utf-8")


def _to_float32(value: float) -> float:
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return value
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _shortest_float32(value: float) -> str:
    for precision in range(1, 10):
        text = f"{value:.{precision}g}"
        if _to_float32(float(text)) == value:
            return text
    return repr(value)


def _format_float(value: float, bits: int) -> str:
    """Format a float in plain decimal notation with the fewest digits."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = _shortest_float32(value) if bits == 32 else repr(value)
    return format(Decimal(text).normalize(), "f")


def _local(t: datetime) -> datetime:
    return t.astimezone() if t.tzinfo is None else t


def _unix_nanos(t: datetime) -> int:
    delta = _local(t) - _EPOCH
    seconds = delta.days * 86_400 + delta.seconds
    return seconds * _NANOS_PER_SECOND + delta.microseconds * 1000


def _duration_nanos(d: Any) -> int:
    if isinstance(d, timedelta):
        return (d.days * 86_400 + d.seconds) * _NANOS_PER_SECOND + d.microseconds * 1000
    return int(d)


def _jsonable(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    if isinstance(obj, datetime):
        return format_time_layout(obj, RFC3339_NANO_LAYOUT)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    if isinstance(obj, complex):
        raise TypeError("json: unsupported type: complex")
    attrs = getattr(obj, "__dict__", None)
    if isinstance(attrs, dict):
        return {k: v for k, v in attrs.items() if not k.startswith("_")}
    raise TypeError(f"json: unsupported type: {type(obj).__name__}")


class _StdReflectedEncoder:
    """Writes values as compact JSON followed by a newline."""

    def __init__(self, writer: Any) -> None:
        self._writer = writer

    def encode(self, obj: Any) -> None:
        text = json.dumps(
            obj,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
            default=_jsonable,
        )
        self._writer.write(text.encode("utf-8", errors="replace") + b"\n")


class JSONEncoder:
    """Encodes log context and entries as JSON.

    Keys are not deduplicated. With ``spaced`` set, a space follows every
    colon and comma.
    """

    def __init__(self, cfg: EncoderConfig | None = None, *, spaced: bool = False) -> None:
        cfg = dataclasses.replace(cfg) if cfg is not None else EncoderConfig()
        if cfg.skip_line_ending:
            cfg.line_ending = ""
        elif not cfg.line_ending:
            cfg.line_ending = DEFAULT_LINE_ENDING
        if cfg.new_reflected_encoder is None:
            cfg.new_reflected_encoder = _StdReflectedEncoder
        self.config = cfg
        self.spaced = spaced
        self._buf = bytearray()
        self._open_namespaces = 0
        self._reflect_buf: io.BytesIO | None = None
        self._reflect_enc: Any = None

    def __bytes__(self) -> bytes:
        return bytes(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    # Object encoder.

    def add_array(self, key: str, arr: Any) -> None:
        self._add_key(key)
        self.append_array(arr)

    def add_object(self, key: str, obj: Any) -> None:
        self._add_key(key)
        self.append_object(obj)

    def add_binary(self, key: str, value: bytes) -> None:
        self.add_string(key, base64.b64encode(bytes(value)).decode("ascii"))

    def add_byte_string(self, key: str, value: bytes) -> None:
        self._add_key(key)
        self.append_byte_string(value)

    def add_bool(self, key: str, value: bool) -> None:
        self._add_key(key)
        self.append_bool(value)

    def add_complex(self, key: str, value: complex) -> None:
        self._add_key(key)
        self.append_complex(value)

    def add_complex64(self, key: str, value: complex) -> None:
        self._add_key(key)
        self.append_complex64(value)

    def add_duration(self, key: str, value: Any) -> None:
        self._add_key(key)
        self.append_duration(value)

    def add_float(self, key: str, value: float) -> None:
        self._add_key(key)
        self.append_float(value)

    def add_float32(self, key: str, value: float) -> None:
        self._add_key(key)
        self.append_float32(value)

    def add_int(self, key: str, value: int) -> None:
        self._add_key(key)
        self.append_int(value)

    def add_uint(self, key: str, value: int) -> None:
        self._add_key(key)
        self.append_uint(value)

    def add_string(self, key: str, value: str) -> None:
        self._add_key(key)
        self.append_string(value)

    def add_time(self, key: str, value: datetime) -> None:
        self._add_key(key)
        self.append_time(value)

    def add_reflected(self, key: str, value: Any) -> None:
        """Add ``value`` serialized by the reflected encoder; errors propagate."""
        data = self._encode_reflected(value)
        self._add_key(key)
        self._buf += data

    def open_namespace(self, key: str) -> None:
        """Open a nested object that receives all later fields."""
        self._add_key(key)
        self._buf.append(ord("{"))
        self._open_namespaces += 1

    # Array encoder.

    def append_array(self, arr: Any) -> None:
        self._add_element_separator()
        self._buf.append(ord("["))
        try:
            arr.marshal_log_array(self)
        finally:
            self._buf.append(ord("]"))

    def append_object(self, obj: Any) -> None:
        old = self._open_namespaces
        self._open_namespaces = 0
        self._add_element_separator()
        self._buf.append(ord("{"))
        try:
            obj.marshal_log_object(self)
        finally:
            self._buf.append(ord("}"))
            self.close_open_namespaces()
            self._open_namespaces = old

    def append_bool(self, value: bool) -> None:
        self._add_element_separator()
        self._buf += b"true" if value else b"false"

    def append_byte_string(self, value: bytes) -> None:
        self._add_element_separator()
        self._buf.append(ord('"'))
        self._buf += _escape(bytes(value).decode("utf-8", errors="surrogateescape"))
        self._buf.append(ord('"'))

    def _append_complex(self, value: complex, bits: int) -> None:
        self._add_element_separator()
        value = complex(value)
        real, imag = value.real, value.imag
        if bits == 32:
            real, imag = _to_float32(real), _to_float32(imag)
        text = _format_float(real, bits)
        if imag >= 0:
            text += "+"
        text += _format_float(imag, bits) + "i"
        self._buf += f'"{text}"'.encode("ascii")

    def append_complex(self, value: complex) -> None:
        self._append_complex(value, 64)

    def append_complex64(self, value: complex) -> None:
        self._append_complex(value, 32)

    def append_duration(self, value: Any) -> None:
        """Append via the configured duration encoder, or as nanoseconds."""
        cur = len(self._buf)
        if self.config.encode_duration is not None:
            self.config.encode_duration(value, self)
        if cur == len(self._buf):
            self.append_int(_duration_nanos(value))

    def _append_float(self, value: float, bits: int) -> None:
        self._add_element_separator()
        text = _format_float(value, bits)
        if math.isnan(value) or math.isinf(value):
            text = f'"{text}"'
        self._buf += text.encode("ascii")

    def append_float(self, value: float) -> None:
        self._append_float(float(value), 64)

    def append_float32(self, value: float) -> None:
        self._append_float(_to_float32(value), 32)

    def append_int(self, value: int) -> None:
        self._add_element_separator()
        self._buf += str(int(value)).encode("ascii")

    def append_uint(self, value: int) -> None:
        self.append_int(value)

    def append_string(self, value: str) -> None:
        self._add_element_separator()
        self._buf.append(ord('"'))
        self._buf += _escape(value)
        self._buf.append(ord('"'))

    def append_time(self, value: datetime) -> None:
        """Append via the configured time encoder, or as nanoseconds since the epoch."""
        cur = len(self._buf)
        if self.config.encode_time is not None:
            self.config.encode_time(value, self)
        if cur == len(self._buf):
            self.append_int(_unix_nanos(value))

    def append_time_layout(self, t: datetime, layout: str) -> None:
        """Append ``t`` formatted with a reference-time layout, as a string."""
        self.append_string(format_time_layout(t, layout))

    def append_reflected(self, value: Any) -> None:
        data = self._encode_reflected(value)
        self._add_element_separator()
        self._buf += data

    # Entries.

    def clone(self) -> "JSONEncoder":
        """Copy the encoder, including its accumulated context."""
        clone = self._empty_clone()
        clone._buf += self._buf
        return clone

    def encode_entry(self, ent: Entry, fields: Sequence[Any]) -> bytes:
        """Encode ``ent``, the accumulated context and ``fields`` as one JSON line."""
        cfg = self.config
        final = self._empty_clone()
        final._buf.append(ord("{"))

        if cfg.level_key and cfg.encode_level is not None:
            final._add_key(cfg.level_key)
            cur = len(final._buf)
            cfg.encode_level(ent.level, final)
            if cur == len(final._buf):
                final.append_string(str(Level(ent.level)))
        if cfg.time_key:
            final.add_time(cfg.time_key, ent.time)
        if ent.logger_name and cfg.name_key:
            final._add_key(cfg.name_key)
            cur = len(final._buf)
            name_encoder = cfg.encode_name or full_name_encoder
            name_encoder(ent.logger_name, final)
            if cur == len(final._buf):
                final.append_string(ent.logger_name)
        if ent.caller.defined:
            if cfg.caller_key:
                final._add_key(cfg.caller_key)
                cur = len(final._buf)
                if cfg.encode_caller is not None:
                    cfg.encode_caller(ent.caller, final)
                if cur == len(final._buf):
                    final.append_string(str(ent.caller))
            if cfg.function_key:
                final._add_key(cfg.function_key)
                final.append_string(ent.caller.function)
        if cfg.message_key:
            final._add_key(cfg.message_key)
            final.append_string(ent.message)
        if self._buf:
            final._add_element_separator()
            final._buf += self._buf
        add_fields(final, fields)
        final.close_open_namespaces()
        if ent.stack and cfg.stacktrace_key:
            final.add_string(cfg.stacktrace_key, ent.stack)
        final._buf.append(ord("}"))
        final._buf += cfg.line_ending.encode("utf-8")
        return bytes(final._buf)

    def close_open_namespaces(self) -> None:
        """Close every namespace opened on this encoder."""
        self._buf += b"}" * self._open_namespaces
        self._open_namespaces = 0

    # Internals.

    def _empty_clone(self) -> "JSONEncoder":
        clone = copy.copy(self)
        clone._buf = bytearray()
        clone._reflect_buf = None
        clone._reflect_enc = None
        return clone

    def _encode_reflected(self, value: Any) -> bytes:
        if value is None:
            return _NULL
        if self._reflect_buf is None:
            self._reflect_buf = io.BytesIO()
            self._reflect_enc = self.config.new_reflected_encoder(self._reflect_buf)
        else:
            self._reflect_buf.seek(0)
            self._reflect_buf.truncate()
        self._reflect_enc.encode(value)
        data = self._reflect_buf.getvalue()
        if data.endswith(b"\n"):
            data = data[:-1]
        return data

    def _add_key(self, key: str) -> None:
        self._add_element_separator()
        self._buf.append(ord('"'))
        self._buf += _escape(key)
        self._buf += b'":'
        if self.spaced:
            self._buf.append(ord(" "))

    def _add_element_separator(self) -> None:
        if not self._buf or self._buf[-1] in _NO_SEPARATOR_AFTER:
            return
        self._buf.append(ord(","))
        if self.spaced:
            self._buf.append(ord(" "))


def new_json_encoder(cfg: EncoderConfig) -> JSONEncoder:
    """Create a compact JSON encoder for ``cfg``."""
    return JSONEncoder(cfg)