"""A plain-text entry encoder meant for people reading logs in a terminal."""

from __future__ import annotations

import dataclasses
import math
from decimal import Decimal
from typing import Any, Sequence

from zapcore.encoder import EncoderConfig, full_name_encoder
from zapcore.entry import Entry
from zapcore.field import add_fields
from zapcore.json_encoder import JSONEncoder
from zapcore.memory_encoder import SliceArrayEncoder

__all__ = ["ConsoleEncoder", "new_console_encoder"]

_DEFAULT_SEPARATOR = "\t"


def _format_float(value: float) -> str:
    """Render a float the way a ``%v`` verb does: shortest digits, exponent when large."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    number = Decimal(repr(value)).normalize()
    sign, digits, exponent = number.as_tuple()
    sci_exponent = len(digits) - 1 + int(exponent)
    prefix = "-" if sign else ""
    if sci_exponent < -4 or sci_exponent >= 21:
        text = "".join(str(d) for d in digits)
        mantissa = text[0] + ("." + text[1:] if len(text) > 1 else "")
        exp_sign = "-" if sci_exponent < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(sci_exponent):02d}"
    return format(number, "f")


def _format_element(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, complex):
        sign = "+" if value.imag >= 0 or math.isnan(value.imag) else ""
        return f"({_format_float(value.real)}{sign}{_format_float(value.imag)}i)"
    return str(value)


class ConsoleEncoder(JSONEncoder):
    """Writes entry metadata as separated plain text and context as JSON.

    The configured keys are not printed, but any part whose key is empty
    is left out.
    """

    def __init__(self, cfg: EncoderConfig | None = None) -> None:
        cfg = dataclasses.replace(cfg) if cfg is not None else EncoderConfig()
        if not cfg.console_separator:
            cfg.console_separator = _DEFAULT_SEPARATOR
        super().__init__(cfg, spaced=True)

    def clone(self) -> "ConsoleEncoder":
        """Copy the encoder, including its accumulated context."""
        return super().clone()

    def encode_entry(self, ent: Entry, fields: Sequence[Any]) -> bytes:
        """Encode ``ent``, the accumulated context and ``fields`` as one line."""
        cfg = self.config
        separator = cfg.console_separator.encode("utf-8")

        preamble = SliceArrayEncoder()
        if cfg.time_key and cfg.encode_time is not None:
            cfg.encode_time(ent.time, preamble)
        if cfg.level_key and cfg.encode_level is not None:
            cfg.encode_level(ent.level, preamble)
        if ent.logger_name and cfg.name_key:
            (cfg.encode_name or full_name_encoder)(ent.logger_name, preamble)
        if ent.caller.defined:
            if cfg.caller_key and cfg.encode_caller is not None:
                cfg.encode_caller(ent.caller, preamble)
            if cfg.function_key:
                preamble.append_string(ent.caller.function)

        line = bytearray(
            cfg.console_separator.join(_format_element(e) for e in preamble.elems).encode("utf-8")
        )

        if cfg.message_key:
            if line:
                line += separator
            line += ent.message.encode("utf-8")

        context = self._context(fields)
        if context:
            if line:
                line += separator
            line += b"{" + context + b"}"

        if ent.stack and cfg.stacktrace_key:
            line += b"\n" + ent.stack.encode("utf-8")

        line += cfg.line_ending.encode("utf-8")
        return bytes(line)

    def _context(self, fields: Sequence[Any]) -> bytes:
        context = super().clone()
        add_fields(context, fields)
        context.close_open_namespaces()
        return bytes(context)


def new_console_encoder(cfg: EncoderConfig) -> ConsoleEncoder:
    """Create a console encoder for ``cfg``; the separator defaults to a tab."""
    return ConsoleEncoder(cfg)