"""Interfaces through which user types add themselves to a log context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable

__all__ = [
    "ObjectMarshaler",
    "ArrayMarshaler",
    "ObjectMarshalerFunc",
    "ArrayMarshalerFunc",
]


@runtime_checkable
class ObjectMarshaler(Protocol):
    """A type that writes itself into an object encoder.

    Implementations raise an exception to report a failure.
    """

    def marshal_log_object(self, enc: Any) -> Any:
        ...


@runtime_checkable
class ArrayMarshaler(Protocol):
    """A type that writes itself into an array encoder.

    Implementations raise an exception to report a failure.
    """

    def marshal_log_array(self, enc: Any) -> Any:
        ...


@dataclass(frozen=True)
class ObjectMarshalerFunc:
    """Adapts a plain callable into an ObjectMarshaler."""

    func: Callable[[Any], Any]

    def marshal_log_object(self, enc: Any) -> Any:
        """Call the wrapped function with ``enc``."""
        return self.func(enc)


@dataclass(frozen=True)
class ArrayMarshalerFunc:
    """Adapts a plain callable into an ArrayMarshaler."""

    func: Callable[[Any], Any]

    def marshal_log_array(self, enc: Any) -> Any:
        """Call the wrapped function with ``enc``."""
        return self.func(enc)