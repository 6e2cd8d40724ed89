"""Log entries, call-site information and checked entries."""

from __future__ import annotations

import enum
import io
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol, Sequence, runtime_checkable

from zapcore.level import Level

__all__ = [
    "ZERO_TIME",
    "EntryCaller",
    "Entry",
    "CheckWriteHook",
    "CheckWriteAction",
    "CheckedEntry",
    "PanicError",
    "GoexitError",
    "new_entry_caller",
    "add_core",
    "after",
]

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


class PanicError(Exception):
    """Raised after writing an entry whose action is ``WRITE_THEN_PANIC``."""


class GoexitError(BaseException):
    """Raised after writing an entry whose action is ``WRITE_THEN_GOEXIT``.

    It derives from ``BaseException`` so that ordinary ``except Exception``
    handlers let it unwind the current flow of execution.
    """


@dataclass(frozen=True)
class EntryCaller:
    """The call site of a logging function."""

    defined: bool = False
    pc: int = 0
    file: str = ""
    line: int = 0
    function: str = ""

    def __str__(self) -> str:
        return self.full_path()

    def full_path(self) -> str:
        """Return ``/full/path/to/file:line`` or ``undefined``."""
        if not self.defined:
            return "undefined"
        return f"{self.file}:{self.line}"

    def trimmed_path(self) -> str:
        """Return ``dir/file:line``, keeping only the leaf directory."""
        if not self.defined:
            return "undefined"
        last = self.file.rfind("/")
        if last == -1:
            return self.full_path()
        penultimate = self.file.rfind("/", 0, last)
        if penultimate == -1:
            return self.full_path()
        return f"{self.file[penultimate + 1:]}:{self.line}"


def new_entry_caller(pc: int, file: str, line: int, ok: bool) -> EntryCaller:
    """Build an EntryCaller; an undefined one when ``ok`` is false."""
    if not ok:
        return EntryCaller()
    return EntryCaller(defined=True, pc=pc, file=file, line=line)


@dataclass(frozen=True)
class Entry:
    """A complete log message apart from its structured context."""

    level: Level = Level.INFO
    time: datetime = ZERO_TIME
    logger_name: str = ""
    message: str = ""
    caller: EntryCaller = field(default_factory=EntryCaller)
    stack: str = ""


@runtime_checkable
class CheckWriteHook(Protocol):
    """An action run after a checked entry has been written."""

    def on_write(self, ce: "CheckedEntry", fields: Sequence[Any]) -> None:
        ...


class CheckWriteAction(enum.IntEnum):
    """Built-in post-write actions, in increasing severity."""

    WRITE_THEN_NOOP = 0
    WRITE_THEN_GOEXIT = 1
    WRITE_THEN_PANIC = 2
    WRITE_THEN_FATAL = 3

    def on_write(self, ce: "CheckedEntry", fields: Sequence[Any]) -> None:
        """Carry out the action for the entry that was just written."""
        if self is CheckWriteAction.WRITE_THEN_GOEXIT:
            raise GoexitError()
        if self is CheckWriteAction.WRITE_THEN_PANIC:
            raise PanicError(ce.message)
        if self is CheckWriteAction.WRITE_THEN_FATAL:
            sys.exit(1)


def _emit(out: Any, text: str) -> None:
    if isinstance(out, (io.RawIOBase, io.BufferedIOBase)):
        out.write(text.encode("utf-8"))
    else:
        out.write(text)
    sync = getattr(out, "sync", None) or getattr(out, "flush", None)
    if callable(sync):
        try:
            sync()
        except Exception:
            pass


class CheckedEntry:
    """An entry together with the cores that agreed to log it.

    A checked entry may be written once; writing it again is reported on
    ``error_output`` and otherwise ignored.
    """

    def __init__(self, entry: Entry | None = None, error_output: Any = None) -> None:
        self.entry: Entry = entry if entry is not None else Entry()
        self.error_output = error_output
        self._dirty = False
        self._after: CheckWriteHook | None = None
        self._cores: list[Any] = []

    @property
    def level(self) -> Level:
        return self.entry.level

    @property
    def time(self) -> datetime:
        return self.entry.time

    @property
    def logger_name(self) -> str:
        return self.entry.logger_name

    @property
    def message(self) -> str:
        return self.entry.message

    @property
    def caller(self) -> EntryCaller:
        return self.entry.caller

    @property
    def stack(self) -> str:
        return self.entry.stack

    @property
    def cores(self) -> tuple[Any, ...]:
        """The cores registered on this entry, in order."""
        return tuple(self._cores)

    @property
    def hook(self) -> CheckWriteHook | None:
        """The hook run after writing, if any."""
        return self._after

    def write(self, *args: Any) -> None:
        """Write the entry and ``args`` fields to every core, then run the hook."""
        if self._dirty:
            if self.error_output is not None:
                _emit(
                    self.error_output,
                    f"{self.time} Unsafe CheckedEntry re-use near Entry {self.entry!r}.\n",
                )
            return
        self._dirty = True

        fields = list(args)
        errors: list[BaseException] = []
        for core in self._cores:
            try:
                core.write(self.entry, fields)
            except Exception as exc:
                errors.append(exc)
        if errors and self.error_output is not None:
            message = "; ".join(str(err) for err in errors)
            _emit(self.error_output, f"{self.time} write error: {message}\n")

        if self._after is not None:
            self._after.on_write(self, fields)

    def add_core(self, ent: Entry, core: Any) -> "CheckedEntry":
        """Register a core that agreed to log this entry."""
        self._cores.append(core)
        return self

    def after(self, ent: Entry, hook: CheckWriteHook) -> "CheckedEntry":
        """Set the hook run after this entry is written."""
        self._after = hook
        return self

    def should(self, ent: Entry, should: CheckWriteHook) -> "CheckedEntry":
        """Alias of :meth:`after`, kept for older callers."""
        return self.after(ent, should)


def add_core(checked: CheckedEntry | None, ent: Entry, core: Any) -> CheckedEntry:
    """Add ``core`` to ``checked``, creating a checked entry for ``ent`` if it is None."""
    if checked is None:
        checked = CheckedEntry(ent)
    return checked.add_core(ent, core)


def after(checked: CheckedEntry | None, ent: Entry, hook: CheckWriteHook) -> CheckedEntry:
    """Set ``hook`` on ``checked``, creating a checked entry for ``ent`` if it is None."""
    if checked is None:
        checked = CheckedEntry(ent)
    return checked.after(ent, hook)