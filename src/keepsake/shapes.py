"""Declaring data shapes.

A data shape is a dataclass that opts into persistence with :func:`serializable`.
Fields declared with :func:`transient`, and fields whose name starts with an
underscore, are neither checked nor written.
"""
from __future__ import annotations

import dataclasses
from functools import lru_cache
from typing import Any, List, Tuple, Type

__all__ = [
    "serializable",
    "transient",
    "is_marked_serializable",
    "is_transient",
    "serialized_fields",
    "camel_case",
]

_MARKER = "__keepsake_serializable__"
TRANSIENT = "keepsake.transient"


def serializable(cls: Type[Any]) -> Type[Any]:
    """Mark a dataclass as a persistable data shape.

    Plain classes are turned into dataclasses so ``@serializable`` can be used alone.
    """
    if not isinstance(cls, type):
        raise TypeError("@serializable can only decorate classes")
    if not dataclasses.is_dataclass(cls):
        cls = dataclasses.dataclass(cls)
    setattr(cls, _MARKER, True)
    return cls


def transient(**kwargs: Any) -> Any:
    """Declare a dataclass field that is excluded from serialization."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[TRANSIENT] = True
    return dataclasses.field(metadata=metadata, **kwargs)


def is_marked_serializable(tp: Any) -> bool:
    # The marker must be set on the class itself; subclasses opt in separately
    return isinstance(tp, type) and dataclasses.is_dataclass(tp) and _MARKER in vars(tp)


def is_transient(f: dataclasses.Field) -> bool:
    return bool(f.metadata.get(TRANSIENT)) or f.name.startswith("_")


def serialized_fields(cls: Type[Any]) -> List[dataclasses.Field]:
    """Dataclass fields that take part in serialization, in declaration order."""
    return [f for f in dataclasses.fields(cls) if not is_transient(f)]


@lru_cache(maxsize=1024)
def camel_case(name: str) -> str:
    """Render a field name in lowerCamelCase.

    ``player_name`` -> ``playerName``, ``Score`` -> ``score``, ``HP`` -> ``hp``.
    """
    parts: Tuple[str, ...] = tuple(p for p in name.split("_") if p)
    if not parts:
        return name
    head = _lower_leading(parts[0])
    return head + "".join(p[:1].upper() + p[1:] for p in parts[1:])


def _lower_leading(word: str) -> str:
    # Lower the leading run of capitals: "URLPath" -> "urlPath", "HP" -> "hp"
    if word.isupper():
        return word.lower()
    i = 0
    while i < len(word) and word[i].isupper():
        i += 1
    if i <= 1:
        return word[:1].lower() + word[1:]
    return word[: i - 1].lower() + word[i - 1 :]
