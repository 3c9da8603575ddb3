from __future__ import annotations

from typing import Optional


class SaveError(Exception):
    """Base exception for save/load errors."""


class ConfigurationError(SaveError):
    """Raised when a data shape cannot be serialized and a strict save system is requested."""


class ParseError(SaveError):
    """Raised when a serialized document is not well-formed text."""

    def __init__(self, message: str, lineno: Optional[int] = None, colno: Optional[int] = None) -> None:
        self.message = message
        self.lineno = lineno
        self.colno = colno
        location = f" (line {lineno}, column {colno})" if lineno is not None and colno is not None else ""
        super().__init__(f"Malformed save document{location}: {message}")


class ShapeMismatchError(SaveError):
    """Raised when a value in a document cannot be converted to the declared field type."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        where = path or "<root>"
        super().__init__(f"Cannot convert value at {where}: {message}")


class StorageError(SaveError, OSError):
    """Raised when the storage backend fails to read or write a document."""
