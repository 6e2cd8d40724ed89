"""Logging levels, level parsing and level-enabling helpers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

__all__ = [
    "Level",
    "LevelEnabler",
    "MIN_LEVEL",
    "MAX_LEVEL",
    "parse_level",
    "level_of",
    "lowercase_color_string",
    "capital_color_string",
]


class Level(int):
    """A logging priority. Higher levels are more important.

    Named levels are available as class attributes (``Level.DEBUG`` through
    ``Level.FATAL``) along with ``Level.INVALID``. Any integer may be wrapped,
    so unnamed levels can still be represented and printed.
    """

    __slots__ = ()

    DEBUG: "Level"
    INFO: "Level"
    WARN: "Level"
    ERROR: "Level"
    DPANIC: "Level"
    PANIC: "Level"
    FATAL: "Level"
    INVALID: "Level"

    def __new__(cls, value: int = 0) -> "Level":
        return super().__new__(cls, value)

    def __str__(self) -> str:
        name = _LOWER_NAMES.get(int(self))
        return name if name is not None else f"Level({int(self)})"

    def __repr__(self) -> str:
        return f"<Level {self}>"

    def capital_string(self) -> str:
        """Return an all-caps representation of the level."""
        name = _LOWER_NAMES.get(int(self))
        return name.upper() if name is not None else f"LEVEL({int(self)})"

    def enabled(self, lvl: int) -> bool:
        """Report whether ``lvl`` is at or above this level."""
        return int(lvl) >= int(self)

    def marshal_text(self) -> bytes:
        """Return the lowercase text form of the level as bytes."""
        return str(self).encode("ascii")


_LOWER_NAMES: dict[int, str] = {
    -1: "debug",
    0: "info",
    1: "warn",
    2: "error",
    3: "dpanic",
    4: "panic",
    5: "fatal",
}

Level.DEBUG = Level(-1)
Level.INFO = Level(0)
Level.WARN = Level(1)
Level.ERROR = Level(2)
Level.DPANIC = Level(3)
Level.PANIC = Level(4)
Level.FATAL = Level(5)

MIN_LEVEL = Level.DEBUG
MAX_LEVEL = Level.FATAL
Level.INVALID = Level(int(MAX_LEVEL) + 1)


def _all_levels() -> list[Level]:
    return [Level(value) for value in range(int(MIN_LEVEL), int(MAX_LEVEL) + 1)]


@runtime_checkable
class LevelEnabler(Protocol):
    """Decides whether a given logging level is enabled."""

    def enabled(self, lvl: Level) -> bool:
        ...


_TEXT_TO_LEVEL: dict[str, Level] = {"": Level.INFO}
for _lvl in _all_levels():
    _TEXT_TO_LEVEL[str(_lvl)] = _lvl
    _TEXT_TO_LEVEL[_lvl.capital_string()] = _lvl


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def parse_level(text: str | bytes) -> Level:
    """Parse a level from its lowercase or all-caps text form.

    The empty string parses as ``Level.INFO``. Raises ``ValueError`` for
    unrecognized text.
    """
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8", errors="replace")
    level = _TEXT_TO_LEVEL.get(text)
    if level is None:
        level = _TEXT_TO_LEVEL.get(text.lower())
    if level is None:
        raise ValueError(f"unrecognized level: {_quote(text)}")
    return level


def level_of(enabler: LevelEnabler) -> Level:
    """Report the minimum enabled level of ``enabler``.

    An enabler with a ``level()`` method decides for itself; otherwise the
    supported levels are probed from lowest to highest. Returns
    ``Level.INVALID`` when none is enabled.
    """
    own_level = getattr(enabler, "level", None)
    if callable(own_level):
        return Level(own_level())
    for lvl in _all_levels():
        if enabler.enabled(lvl):
            return lvl
    return Level.INVALID


_MAGENTA = 35
_BLUE = 34
_YELLOW = 33
_RED = 31

_LEVEL_TO_COLOR: dict[Level, int] = {
    Level.DEBUG: _MAGENTA,
    Level.INFO: _BLUE,
    Level.WARN: _YELLOW,
    Level.ERROR: _RED,
    Level.DPANIC: _RED,
    Level.PANIC: _RED,
    Level.FATAL: _RED,
}
_UNKNOWN_LEVEL_COLOR = _RED


def _colorize(color: int, text: str) -> str:
    return f"\x1b[{color}m{text}\x1b[0m"


_LOWERCASE_COLOR_STRINGS: dict[Level, str] = {
    level: _colorize(color, str(level)) for level, color in _LEVEL_TO_COLOR.items()
}
_CAPITAL_COLOR_STRINGS: dict[Level, str] = {
    level: _colorize(color, level.capital_string())
    for level, color in _LEVEL_TO_COLOR.items()
}


def lowercase_color_string(level: int) -> str:
    """Return the lowercase level name wrapped in its terminal color."""
    level = Level(level)
    cached = _LOWERCASE_COLOR_STRINGS.get(level)
    if cached is not None:
        return cached
    return _colorize(_UNKNOWN_LEVEL_COLOR, str(level))


def capital_color_string(level: int) -> str:
    """Return the all-caps level name wrapped in its terminal color."""
    level = Level(level)
    cached = _CAPITAL_COLOR_STRINGS.get(level)
    if cached is not None:
        return cached
    return _colorize(_UNKNOWN_LEVEL_COLOR, level.capital_string())