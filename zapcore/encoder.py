"""Encoder interfaces, encoder configuration and the stock value encoders."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Protocol, Sequence, runtime_checkable

from zapcore.entry import Entry, EntryCaller
from zapcore.level import Level, capital_color_string, lowercase_color_string

__all__ = [
    "DEFAULT_LINE_ENDING",
    "OMIT_KEY",
    "LevelEncoder",
    "TimeEncoder",
    "DurationEncoder",
    "CallerEncoder",
    "NameEncoder",
    "EncoderConfig",
    "ObjectEncoder",
    "ArrayEncoder",
    "PrimitiveArrayEncoder",
    "Encoder",
    "lowercase_level_encoder",
    "lowercase_color_level_encoder",
    "capital_level_encoder",
    "capital_color_level_encoder",
    "level_encoder_from_text",
    "epoch_time_encoder",
    "epoch_millis_time_encoder",
    "epoch_nanos_time_encoder",
    "iso8601_time_encoder",
    "rfc3339_time_encoder",
    "rfc3339_nano_time_encoder",
    "format_time_layout",
    "time_encoder_of_layout",
    "time_encoder_from_text",
    "time_encoder_from_config",
    "time_encoder_from_json",
    "seconds_duration_encoder",
    "nanos_duration_encoder",
    "millis_duration_encoder",
    "string_duration_encoder",
    "format_duration",
    "duration_encoder_from_text",
    "full_caller_encoder",
    "short_caller_encoder",
    "caller_encoder_from_text",
    "full_name_encoder",
    "name_encoder_from_text",
    "encoder_config_from_dict",
]

DEFAULT_LINE_ENDING = "\n"
OMIT_KEY = ""

ISO8601_LAYOUT = "2006-01-02T15:04:05.000Z0700"
RFC3339_LAYOUT = "2006-01-02T15:04:05Z07:00"
RFC3339_NANO_LAYOUT = "2006-01-02T15:04:05.999999999Z07:00"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NANOS_PER_SECOND = 1_000_000_000


@runtime_checkable
class PrimitiveArrayEncoder(Protocol):
    """Appends built-in values to an array."""

    def append_bool(self, value: bool) -> None: ...
    def append_byte_string(self, value: bytes) -> None: ...
    def append_complex(self, value: complex) -> None: ...
    def append_complex64(self, value: complex) -> None: ...
    def append_float(self, value: float) -> None: ...
    def append_float32(self, value: float) -> None: ...
    def append_int(self, value: int) -> None: ...
    def append_uint(self, value: int) -> None: ...
    def append_string(self, value: str) -> None: ...


@runtime_checkable
class ArrayEncoder(PrimitiveArrayEncoder, Protocol):
    """Appends values of any supported kind to an array."""

    def append_duration(self, value: Any) -> None: ...
    def append_time(self, value: datetime) -> None: ...
    def append_array(self, marshaler: Any) -> None: ...
    def append_object(self, marshaler: Any) -> None: ...
    def append_reflected(self, value: Any) -> None: ...


@runtime_checkable
class ObjectEncoder(Protocol):
    """Adds key-value pairs to a map- or struct-like object."""

    def add_array(self, key: str, marshaler: Any) -> None: ...
    def add_object(self, key: str, marshaler: Any) -> None: ...
    def add_binary(self, key: str, value: bytes) -> None: ...
    def add_byte_string(self, key: str, value: bytes) -> None: ...
    def add_bool(self, key: str, value: bool) -> None: ...
    def add_complex(self, key: str, value: complex) -> None: ...
    def add_complex64(self, key: str, value: complex) -> None: ...
    def add_duration(self, key: str, value: Any) -> None: ...
    def add_float(self, key: str, value: float) -> None: ...
    def add_float32(self, key: str, value: float) -> None: ...
    def add_int(self, key: str, value: int) -> None: ...
    def add_uint(self, key: str, value: int) -> None: ...
    def add_string(self, key: str, value: str) -> None: ...
    def add_time(self, key: str, value: datetime) -> None: ...
    def add_reflected(self, key: str, value: Any) -> None: ...
    def open_namespace(self, key: str) -> None: ...


@runtime_checkable
class Encoder(ObjectEncoder, Protocol):
    """A format-specific serializer of whole log entries."""

    def clone(self) -> "Encoder": ...
    def encode_entry(self, ent: Entry, fields: Sequence[Any]) -> bytes: ...


LevelEncoder = Callable[[Level, PrimitiveArrayEncoder], None]
TimeEncoder = Callable[[datetime, PrimitiveArrayEncoder], None]
DurationEncoder = Callable[[Any, PrimitiveArrayEncoder], None]
CallerEncoder = Callable[[EntryCaller, PrimitiveArrayEncoder], None]
NameEncoder = Callable[[str, PrimitiveArrayEncoder], None]


# Level encoders.


def lowercase_level_encoder(level: int, enc: PrimitiveArrayEncoder) -> None:
    """Append the level as lowercase text, e.g. ``info``."""
    enc.append_string(str(Level(level)))


def lowercase_color_level_encoder(level: int, enc: PrimitiveArrayEncoder) -> None:
    """Append the level as colored lowercase text."""
    enc.append_string(lowercase_color_string(level))


def capital_level_encoder(level: int, enc: PrimitiveArrayEncoder) -> None:
    """Append the level as all-caps text, e.g. ``INFO``."""
    enc.append_string(Level(level).capital_string())


def capital_color_level_encoder(level: int, enc: PrimitiveArrayEncoder) -> None:
    """Append the level as colored all-caps text."""
    enc.append_string(capital_color_string(level))


def level_encoder_from_text(text: str) -> LevelEncoder:
    """Choose a level encoder by name; unknown names give the lowercase one."""
    return {
        "capital": capital_level_encoder,
        "capitalColor": capital_color_level_encoder,
        "color": lowercase_color_level_encoder,
    }.get(text, lowercase_level_encoder)


# Time encoders.


def _local(t: datetime) -> datetime:
    return t.astimezone() if t.tzinfo is None else t


def _unix_nanos(t: datetime) -> int:
    delta = _local(t) - _EPOCH
    seconds = delta.days * 86_400 + delta.seconds
    return seconds * _NANOS_PER_SECOND + delta.microseconds * 1000


def epoch_time_encoder(t: datetime, enc: PrimitiveArrayEncoder) -> None:
    """Append seconds since the Unix epoch as a float."""
    enc.append_float(_unix_nanos(t) / _NANOS_PER_SECOND)


def epoch_millis_time_encoder(t: datetime, enc: PrimitiveArrayEncoder) -> None:
    """Append milliseconds since the Unix epoch as a float."""
    enc.append_float(_unix_nanos(t) / 1_000_000)


def epoch_nanos_time_encoder(t: datetime, enc: PrimitiveArrayEncoder) -> None:
    """Append nanoseconds since the Unix epoch as an integer."""
    enc.append_int(_unix_nanos(t))


_MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
_WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

_TOKENS = (
    "January", "Jan", "Monday", "Mon", "MST",
    "2006", "002", "01", "02", "03", "04", "05", "06",
    "15", "1", "2", "__2", "_2", "3", "4", "5", "PM", "pm",
    "-07:00:00", "-070000", "-07:00", "-0700", "-07",
    "Z07:00:00", "Z070000", "Z07:00", "Z0700", "Z07",
)


def _offset_seconds(t: datetime) -> int:
    offset = t.utcoffset()
    return int(offset.total_seconds()) if offset is not None else 0


def _format_zone(t: datetime, token: str) -> str:
    offset = _offset_seconds(t)
    if token.startswith("Z") and offset == 0:
        return "Z"
    sign = "-" if offset < 0 else "+"
    hours, rest = divmod(abs(offset), 3600)
    minutes, seconds = divmod(rest, 60)
    body = token[1:]
    if body == "07":
        return f"{sign}{hours:02d}"
    if body == "0700":
        return f"{sign}{hours:02d}{minutes:02d}"
    if body == "07:00":
        return f"{sign}{hours:02d}:{minutes:02d}"
    if body == "070000":
        return f"{sign}{hours:02d}{minutes:02d}{seconds:02d}"
    return f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"


def _zone_name(t: datetime) -> str:
    name = t.tzname()
    if name and not (name.startswith("UTC") and len(name) > 3):
        return name
    return _format_zone(t, "-0700")


def _hour12(t: datetime) -> int:
    return t.hour % 12 or 12


def _format_token(t: datetime, token: str) -> str:
    match token:
        case "January":
            return _MONTHS[t.month - 1]
        case "Jan":
            return _MONTHS[t.month - 1][:3]
        case "Monday":
            return _WEEKDAYS[t.weekday()]
        case "Mon":
            return _WEEKDAYS[t.weekday()][:3]
        case "MST":
            return _zone_name(t)
        case "2006":
            return f"{t.year:04d}"
        case "06":
            return f"{t.year % 100:02d}"
        case "01":
            return f"{t.month:02d}"
        case "1":
            return str(t.month)
        case "02":
            return f"{t.day:02d}"
        case "2":
            return str(t.day)
        case "_2":
            return f"{t.day:>2d}"
        case "002":
            return f"{t.timetuple().tm_yday:03d}"
        case "__2":
            return f"{t.timetuple().tm_yday:>3d}"
        case "15":
            return f"{t.hour:02d}"
        case "03":
            return f"{_hour12(t):02d}"
        case "3":
            return str(_hour12(t))
        case "04":
            return f"{t.minute:02d}"
        case "4":
            return str(t.minute)
        case "05":
            return f"{t.second:02d}"
        case "5":
            return str(t.second)
        case "PM":
            return "PM" if t.hour >= 12 else "AM"
        case "pm":
            return "pm" if t.hour >= 12 else "am"
        case _:
            return _format_zone(t, token)


def _format_fraction(t: datetime, separator: str, digit: str, width: int) -> str:
    digits = f"{t.microsecond * 1000:09d}"[: min(width, 9)]
    if digit == "9":
        digits = digits.rstrip("0")
        if not digits:
            return ""
    return separator + digits


def format_time_layout(t: datetime, layout: str) -> str:
    """Format ``t`` using a reference-time layout such as ``2006-01-02T15:04:05Z07:00``.

    Naive datetimes are taken to be in local time.
    """
    t = _local(t)
    out: list[str] = []
    i, n = 0, len(layout)
    while i < n:
        c = layout[i]
        if c in ".," and i + 1 < n and layout[i + 1] in "09":
            digit = layout[i + 1]
            j = i + 1
            while j < n and layout[j] == digit:
                j += 1
            if not (j < n and layout[j].isdigit()):
                out.append(_format_fraction(t, c, digit, j - i - 1))
                i = j
                continue
        for token in _TOKENS:
            if layout.startswith(token, i):
                out.append(_format_token(t, token))
                i += len(token)
                break
        else:
            out.append(c)
            i += 1
    return "".join(out)


def _encode_time_layout(t: datetime, layout: str, enc: PrimitiveArrayEncoder) -> None:
    append_layout = getattr(enc, "append_time_layout", None)
    if callable(append_layout):
        append_layout(t, layout)
        return
    enc.append_string(format_time_layout(t, layout))


def iso8601_time_encoder(t: datetime, enc: PrimitiveArrayEncoder) -> None:
    """Append an ISO8601 string with millisecond precision."""
    _encode_time_layout(t, ISO8601_LAYOUT, enc)


def rfc3339_time_encoder(t: datetime, enc: PrimitiveArrayEncoder) -> None:
    """Append an RFC3339 string."""
    _encode_time_layout(t, RFC3339_LAYOUT, enc)


def rfc3339_nano_time_encoder(t: datetime, enc: PrimitiveArrayEncoder) -> None:
    """Append an RFC3339 string with sub-second precision."""
    _encode_time_layout(t, RFC3339_NANO_LAYOUT, enc)


def time_encoder_of_layout(layout: str) -> TimeEncoder:
    """Return a time encoder that formats times with ``layout``."""

    def encode(t: datetime, enc: PrimitiveArrayEncoder) -> None:
        _encode_time_layout(t, layout, enc)

    return encode


def time_encoder_from_text(text: str) -> TimeEncoder:
    """Choose a time encoder by name; unknown names give epoch seconds."""
    return {
        "rfc3339nano": rfc3339_nano_time_encoder,
        "RFC3339Nano": rfc3339_nano_time_encoder,
        "rfc3339": rfc3339_time_encoder,
        "RFC3339": rfc3339_time_encoder,
        "iso8601": iso8601_time_encoder,
        "ISO8601": iso8601_time_encoder,
        "millis": epoch_millis_time_encoder,
        "nanos": epoch_nanos_time_encoder,
    }.get(text, epoch_time_encoder)


def time_encoder_from_config(value: Any) -> TimeEncoder:
    """Build a time encoder from a decoded config value.

    A mapping uses its ``layout`` entry; a string is looked up by name.
    Anything else raises ``TypeError``.
    """
    if isinstance(value, Mapping):
        layout = value.get("layout", "")
        if layout is None:
            layout = ""
        if not isinstance(layout, str):
            raise TypeError(f"time encoder layout must be a string, not {type(layout).__name__}")
        return time_encoder_of_layout(layout)
    if isinstance(value, str):
        return time_encoder_from_text(value)
    raise TypeError(f"cannot build a time encoder from {type(value).__name__}")


def time_encoder_from_json(data: str | bytes) -> TimeEncoder:
    """Build a time encoder from a JSON document; malformed JSON raises ``ValueError``."""
    return time_encoder_from_config(json.loads(data))


# Duration encoders.


def _duration_nanos(d: Any) -> int:
    if isinstance(d, timedelta):
        return (d.days * 86_400 + d.seconds) * _NANOS_PER_SECOND + d.microseconds * 1000
    return int(d)


def seconds_duration_encoder(d: Any, enc: PrimitiveArrayEncoder) -> None:
    """Append the duration as floating-point seconds."""
    enc.append_float(_duration_nanos(d) / _NANOS_PER_SECOND)


def nanos_duration_encoder(d: Any, enc: PrimitiveArrayEncoder) -> None:
    """Append the duration as integer nanoseconds."""
    enc.append_int(_duration_nanos(d))


def millis_duration_encoder(d: Any, enc: PrimitiveArrayEncoder) -> None:
    """Append the duration as integer milliseconds, truncated toward zero."""
    nanos = _duration_nanos(d)
    millis = abs(nanos) // 1_000_000
    enc.append_int(-millis if nanos < 0 else millis)


def _with_fraction(value: int, precision: int) -> str:
    whole, frac = divmod(value, 10**precision)
    digits = f"{frac:0{precision}d}".rstrip("0")
    return f"{whole}.{digits}" if digits else str(whole)


def format_duration(d: Any) -> str:
    """Render a duration like ``1h2m3.5s``, ``1.5µs`` or ``0s``."""
    nanos = _duration_nanos(d)
    u = abs(nanos)
    if u == 0:
        return "0s"
    if u < _NANOS_PER_SECOND:
        if u < 1000:
            text = f"{u}ns"
        elif u < 1_000_000:
            text = _with_fraction(u, 3) + "µs"
        else:
            text = _with_fraction(u, 6) + "ms"
    else:
        seconds, frac = divmod(u, _NANOS_PER_SECOND)
        minutes, seconds = divmod(seconds, 60)
        hours, minutes = divmod(minutes, 60)
        text = _with_fraction(seconds * _NANOS_PER_SECOND + frac, 9) + "s"
        if hours or minutes:
            text = f"{minutes}m{text}"
        if hours:
            text = f"{hours}h{text}"
    return "-" + text if nanos < 0 else text


def string_duration_encoder(d: Any, enc: PrimitiveArrayEncoder) -> None:
    """Append the duration in its human-readable text form."""
    enc.append_string(format_duration(d))


def duration_encoder_from_text(text: str) -> DurationEncoder:
    """Choose a duration encoder by name; unknown names give seconds."""
    return {
        "string": string_duration_encoder,
        "nanos": nanos_duration_encoder,
        "ms": millis_duration_encoder,
    }.get(text, seconds_duration_encoder)


# Caller and name encoders.


def full_caller_encoder(caller: EntryCaller, enc: PrimitiveArrayEncoder) -> None:
    """Append the caller as ``/full/path/to/file:line``."""
    enc.append_string(caller.full_path())


def short_caller_encoder(caller: EntryCaller, enc: PrimitiveArrayEncoder) -> None:
    """Append the caller as ``dir/file:line``."""
    enc.append_string(caller.trimmed_path())


def caller_encoder_from_text(text: str) -> CallerEncoder:
    """Choose a caller encoder: ``full`` or, for anything else, the short one."""
    return full_caller_encoder if text == "full" else short_caller_encoder


def full_name_encoder(name: str, enc: PrimitiveArrayEncoder) -> None:
    """Append the logger name unchanged."""
    enc.append_string(name)


def name_encoder_from_text(text: str) -> NameEncoder:
    """Choose a name encoder; every name gives the full-name encoder."""
    return full_name_encoder


@dataclass
class EncoderConfig:
    """Keys and value encoders used by the entry encoders.

    An empty key omits that part of the entry.
    """

    message_key: str = ""
    level_key: str = ""
    time_key: str = ""
    name_key: str = ""
    caller_key: str = ""
    function_key: str = ""
    stacktrace_key: str = ""
    skip_line_ending: bool = False
    line_ending: str = ""
    encode_level: LevelEncoder | None = None
    encode_time: TimeEncoder | None = None
    encode_duration: DurationEncoder | None = None
    encode_caller: CallerEncoder | None = None
    encode_name: NameEncoder | None = None
    new_reflected_encoder: Callable[[Any], Any] | None = None
    console_separator: str = ""


_STRING_KEYS = {
    "messageKey": "message_key",
    "levelKey": "level_key",
    "timeKey": "time_key",
    "nameKey": "name_key",
    "callerKey": "caller_key",
    "functionKey": "function_key",
    "stacktraceKey": "stacktrace_key",
    "lineEnding": "line_ending",
    "consoleSeparator": "console_separator",
}
_TEXT_ENCODERS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "levelEncoder": ("encode_level", level_encoder_from_text),
    "durationEncoder": ("encode_duration", duration_encoder_from_text),
    "callerEncoder": ("encode_caller", caller_encoder_from_text),
    "nameEncoder": ("encode_name", name_encoder_from_text),
}


def _require_str(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, not {type(value).__name__}")
    return value


def encoder_config_from_dict(data: Mapping[str, Any]) -> EncoderConfig:
    """Build an EncoderConfig from decoded JSON or YAML using camelCase keys.

    Unknown keys and null values are ignored; values of the wrong type raise
    ``TypeError``.
    """
    if not isinstance(data, Mapping):
        raise TypeError(f"encoder config must be a mapping, not {type(data).__name__}")
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        if key in _STRING_KEYS:
            kwargs[_STRING_KEYS[key]] = _require_str(key, value)
        elif key == "skipLineEnding":
            if not isinstance(value, bool):
                raise TypeError(f"{key} must be a boolean, not {type(value).__name__}")
            kwargs["skip_line_ending"] = value
        elif key in _TEXT_ENCODERS:
            attr, build = _TEXT_ENCODERS[key]
            kwargs[attr] = build(_require_str(key, value))
        elif key == "timeEncoder":
            kwargs["encode_time"] = time_encoder_from_config(value)
    return EncoderConfig(**kwargs)