"""Structured, leveled logging core: levels, fields, entries, JSON, console and map encoders, and cores."""

__version__ = "0.1.0"