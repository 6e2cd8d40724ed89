import pytest

from zapcore.level import (
    MAX_LEVEL,
    MIN_LEVEL,
    Level,
    LevelEnabler,
    capital_color_string,
    level_of,
    lowercase_color_string,
    parse_level,
)

ALL_LEVELS = [
    Level.DEBUG,
    Level.INFO,
    Level.WARN,
    Level.ERROR,
    Level.DPANIC,
    Level.PANIC,
    Level.FATAL,
]


@pytest.mark.parametrize(
    "lvl, text",
    [
        (Level.DEBUG, "debug"),
        (Level.INFO, "info"),
        (Level.WARN, "warn"),
        (Level.ERROR, "error"),
        (Level.DPANIC, "dpanic"),
        (Level.PANIC, "panic"),
        (Level.FATAL, "fatal"),
        (Level(-42), "Level(-42)"),
        (Level.INVALID, "Level(6)"),
    ],
)
def test_level_string(lvl, text):
    assert str(lvl) == text
    assert lvl.capital_string() == text.upper()


@pytest.mark.parametrize(
    "text, level",
    [
        ("debug", Level.DEBUG),
        ("info", Level.INFO),
        ("", Level.INFO),
        ("warn", Level.WARN),
        ("error", Level.ERROR),
        ("dpanic", Level.DPANIC),
        ("panic", Level.PANIC),
        ("fatal", Level.FATAL),
    ],
)
def test_level_text(text, level):
    if text:
        assert level.marshal_text() == text.encode()
    assert parse_level(text) == level
    assert parse_level(text.encode()) == level


def test_parse_level():
    assert parse_level("info") == Level.INFO
    assert parse_level("DEBUG") == Level.DEBUG
    with pytest.raises(ValueError, match='unrecognized level: "FOO"'):
        parse_level("FOO")


@pytest.mark.parametrize(
    "text, level",
    [
        ("DEBUG", Level.DEBUG),
        ("INFO", Level.INFO),
        ("WARN", Level.WARN),
        ("ERROR", Level.ERROR),
        ("DPANIC", Level.DPANIC),
        ("PANIC", Level.PANIC),
        ("FATAL", Level.FATAL),
    ],
)
def test_capital_levels_parse(text, level):
    assert parse_level(text) == level


@pytest.mark.parametrize(
    "text, level",
    [
        ("Debug", Level.DEBUG),
        ("Info", Level.INFO),
        ("Warn", Level.WARN),
        ("Error", Level.ERROR),
        ("Dpanic", Level.DPANIC),
        ("Panic", Level.PANIC),
        ("Fatal", Level.FATAL),
        ("DeBuG", Level.DEBUG),
        ("InFo", Level.INFO),
        ("WaRn", Level.WARN),
        ("ErRor", Level.ERROR),
        ("DpAnIc", Level.DPANIC),
        ("PaNiC", Level.PANIC),
        ("FaTaL", Level.FATAL),
    ],
)
def test_weird_levels_parse(text, level):
    assert parse_level(text) == level


def test_unmarshal_unknown_text():
    with pytest.raises(ValueError, match="unrecognized level"):
        parse_level("foo")


def test_parse_error_message_for_flag_style_input():
    with pytest.raises(ValueError) as excinfo:
        parse_level("nope")
    assert str(excinfo.value) == 'unrecognized level: "nope"'


def test_round_trip_through_text():
    for lvl in ALL_LEVELS:
        assert parse_level(lvl.marshal_text()) == lvl
        assert parse_level(str(lvl)) == lvl


def test_enabled():
    assert Level.WARN.enabled(Level.WARN)
    assert Level.WARN.enabled(Level.FATAL)
    assert not Level.WARN.enabled(Level.INFO)
    assert not Level.WARN.enabled(Level.DEBUG)


def test_min_max():
    assert level_of(MIN_LEVEL) == Level.DEBUG
    assert level_of(MAX_LEVEL) == Level.FATAL
    assert str(Level(int(MAX_LEVEL) + 1)) == "Level(6)"
    assert MIN_LEVEL.enabled(MAX_LEVEL)
    assert not MAX_LEVEL.enabled(MIN_LEVEL)


class _EnablerWithCustomLevel:
    def __init__(self, lvl):
        self.lvl = lvl

    def enabled(self, lvl):
        return self.lvl.enabled(lvl)

    def level(self):
        return self.lvl


class _NeverEnabled:
    def enabled(self, lvl):
        return False


@pytest.mark.parametrize(
    "give, want",
    [
        (Level.DEBUG, Level.DEBUG),
        (Level.INFO, Level.INFO),
        (Level.WARN, Level.WARN),
        (Level.ERROR, Level.ERROR),
        (Level.DPANIC, Level.DPANIC),
        (Level.PANIC, Level.PANIC),
        (Level.FATAL, Level.FATAL),
        (_EnablerWithCustomLevel(Level.INFO), Level.INFO),
        (_NeverEnabled(), Level.INVALID),
    ],
)
def test_level_of(give, want):
    assert level_of(give) == want


def test_level_is_level_enabler():
    assert isinstance(Level.INFO, LevelEnabler)
    enabled = [lvl for lvl in ALL_LEVELS if Level.INFO.enabled(lvl)]
    assert enabled == ALL_LEVELS[1:]


def test_all_levels_covered_by_color_strings():
    for value in range(int(MIN_LEVEL), int(MAX_LEVEL) + 1):
        lvl = Level(value)
        lower = lowercase_color_string(lvl)
        capital = capital_color_string(lvl)
        assert str(lvl) in lower
        assert lvl.capital_string() in capital
        assert lower.startswith("\x1b[") and lower.endswith("\x1b[0m")
        assert capital.startswith("\x1b[") and capital.endswith("\x1b[0m")


def test_color_strings_for_unknown_level_use_names():
    lvl = Level(-42)
    assert "Level(-42)" in lowercase_color_string(lvl)
    assert "LEVEL(-42)" in capital_color_string(lvl)
    assert lowercase_color_string(lvl) == lowercase_color_string(Level.ERROR).replace(
        "error", "Level(-42)"
    )