"""Cores: the pieces that decide whether to log an entry and then write it."""

from __future__ import annotations

import abc
import io
from typing import Any, Callable, Sequence

from zapcore.encoder import Encoder
from zapcore.entry import CheckedEntry, Entry, add_core
from zapcore.field import Field, add_fields
from zapcore.level import MAX_LEVEL, MIN_LEVEL, Level, LevelEnabler, level_of

__all__ = [
    "Core",
    "NopCore",
    "IOCore",
    "HookedCore",
    "LevelFilterCore",
    "new_nop_core",
    "new_core",
    "register_hooks",
    "new_increase_level_core",
]


class Core(abc.ABC):
    """A minimal logger: a level enabler that can add context, check and write."""

    @abc.abstractmethod
    def enabled(self, lvl: Level) -> bool:
        """Report whether ``lvl`` is enabled."""

    @abc.abstractmethod
    def with_fields(self, fields: Sequence[Field]) -> "Core":
        """Return a core with ``fields`` added to its context."""

    @abc.abstractmethod
    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        """Register with ``ce`` if ``ent`` should be logged, returning the result."""

    @abc.abstractmethod
    def write(self, ent: Entry, fields: Sequence[Field]) -> None:
        """Serialize and write the entry; raises on failure."""

    @abc.abstractmethod
    def sync(self) -> None:
        """Flush buffered output, if any."""


class NopCore(Core):
    """A core that logs nothing."""

    def enabled(self, lvl: Level) -> bool:
        return False

    def with_fields(self, fields: Sequence[Field]) -> "NopCore":
        return self

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        return ce

    def write(self, ent: Entry, fields: Sequence[Field]) -> None:
        return None

    def sync(self) -> None:
        return None


def new_nop_core() -> NopCore:
    """Return a core that never logs."""
    return NopCore()


def _sync_output(out: Any) -> None:
    sync = getattr(out, "sync", None)
    if not callable(sync):
        sync = getattr(out, "flush", None)
    if callable(sync):
        sync()


class IOCore(Core):
    """Encodes entries with an encoder and writes them to an output stream."""

    def __init__(self, enab: LevelEnabler, enc: Encoder, out: Any) -> None:
        self._enabler = enab
        self.encoder = enc
        self.out = out

    def enabled(self, lvl: Level) -> bool:
        return self._enabler.enabled(lvl)

    def level(self) -> Level:
        return level_of(self._enabler)

    def with_fields(self, fields: Sequence[Field]) -> "IOCore":
        clone = IOCore(self._enabler, self.encoder.clone(), self.out)
        add_fields(clone.encoder, fields)
        return clone

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        if self.enabled(ent.level):
            return add_core(ce, ent, self)
        return ce

    def write(self, ent: Entry, fields: Sequence[Field]) -> None:
        data = self.encoder.encode_entry(ent, fields)
        if isinstance(self.out, io.TextIOBase):
            self.out.write(data.decode("utf-8", errors="replace"))
        else:
            self.out.write(data)
        if ent.level > Level.ERROR:
            # The program may be about to stop; flush, ignoring failures.
            try:
                self.sync()
            except Exception:
                pass

    def sync(self) -> None:
        _sync_output(self.out)


def new_core(enc: Encoder, ws: Any, enab: LevelEnabler) -> IOCore:
    """Create a core that writes entries encoded by ``enc`` to ``ws``."""
    return IOCore(enab, enc, ws)


class HookedCore(Core):
    """Wraps a core and runs callbacks each time an entry is logged."""

    def __init__(self, core: Core, funcs: Sequence[Callable[[Entry], Any]]) -> None:
        self.core = core
        self._funcs = tuple(funcs)

    def enabled(self, lvl: Level) -> bool:
        return self.core.enabled(lvl)

    def level(self) -> Level:
        return level_of(self.core)

    def with_fields(self, fields: Sequence[Field]) -> "HookedCore":
        return HookedCore(self.core.with_fields(fields), self._funcs)

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        downstream = self.core.check(ent, ce)
        if downstream is not None:
            return downstream.add_core(ent, self)
        return ce

    def write(self, ent: Entry, fields: Sequence[Field]) -> None:
        """Run every hook; the wrapped core registered itself separately."""
        errors: list[Exception] = []
        for func in self._funcs:
            try:
                func(ent)
            except Exception as exc:
                errors.append(exc)
        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise ExceptionGroup("hook errors", errors)

    def sync(self) -> None:
        self.core.sync()


def register_hooks(core: Core, *args: Callable[[Entry], Any]) -> HookedCore:
    """Wrap ``core`` so that every hook in ``args`` runs for each logged entry."""
    return HookedCore(core, args)


class LevelFilterCore(Core):
    """Filters a core's entries with a stricter level enabler."""

    def __init__(self, core: Core, level: LevelEnabler) -> None:
        self.core = core
        self._level = level

    def enabled(self, lvl: Level) -> bool:
        return self._level.enabled(lvl)

    def level(self) -> Level:
        return level_of(self._level)

    def with_fields(self, fields: Sequence[Field]) -> "LevelFilterCore":
        return LevelFilterCore(self.core.with_fields(fields), self._level)

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        if not self.enabled(ent.level):
            return ce
        return self.core.check(ent, ce)

    def write(self, ent: Entry, fields: Sequence[Field]) -> None:
        self.core.write(ent, fields)

    def sync(self) -> None:
        self.core.sync()


def new_increase_level_core(core: Core, level: LevelEnabler) -> LevelFilterCore:
    """Raise the minimum level of ``core``.

    Raises ``ValueError`` if ``level`` would enable a level the core does not.
    """
    if isinstance(level, int) and not isinstance(level, Level):
        level = Level(level)
    for value in range(int(MAX_LEVEL), int(MIN_LEVEL) - 1, -1):
        lvl = Level(value)
        if not core.enabled(lvl) and level.enabled(lvl):
            raise ValueError(
                f'invalid increase level, as level "{lvl}" is allowed by increased level, '
                "but not by existing core"
            )
    return LevelFilterCore(core, level)