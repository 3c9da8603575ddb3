"""Recursive check that a data shape can be represented in a save document."""
from __future__ import annotations

import collections.abc
import enum
import logging
import types
import typing
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set, Union

from .codecs import CodecRegistry, default_registry
from .shapes import is_marked_serializable, serialized_fields

logger = logging.getLogger(__name__)

__all__ = ["is_serializable_recursively", "AdmissibilityCache"]

_PRIMITIVES = (bool, int, float, str)
_NONE_TYPE = type(None)
_SEQUENCE_ORIGINS = (
    list,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Collection,
    collections.abc.Iterable,
)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
_UNION_ORIGINS = (Union, getattr(types, "UnionType", Union))
_SET_ORIGINS = (set, frozenset, collections.abc.Set, collections.abc.MutableSet)


def _is_plain_value(value: Any) -> bool:
    # Enum member values must come back from JSON unchanged (tuples as arrays)
    if value is None or isinstance(value, _PRIMITIVES):
        return True
    return isinstance(value, tuple) and all(_is_plain_value(v) for v in value)


def _is_text_key(tp: Any) -> bool:
    """Object keys are text, so only types that survive ``str()`` and back qualify."""
    if tp in _PRIMITIVES:
        return True
    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        return all(isinstance(m.value, (str, int)) and not isinstance(m.value, bool) for m in tp)
    return False


def _is_hashable(tp: Any) -> bool:
    origin = typing.get_origin(tp)
    if origin in _UNION_ORIGINS:
        return all(_is_hashable(a) for a in typing.get_args(tp) if a is not _NONE_TYPE)
    if origin is typing.Annotated:
        return _is_hashable(typing.get_args(tp)[0])
    if origin is not None:
        # Lists and dicts decoded for other generics cannot go into a set
        return origin in (tuple, frozenset, typing.Literal)
    return isinstance(tp, type) and tp.__hash__ is not None


_default_codecs: Optional[CodecRegistry] = None


def _codecs(registry: Optional[CodecRegistry]) -> CodecRegistry:
    global _default_codecs
    if registry is not None:
        return registry
    if _default_codecs is None:
        _default_codecs = default_registry()
    return _default_codecs


def is_serializable_recursively(
    tp: Any,
    visited: Optional[Set[Any]] = None,
    registry: Optional[CodecRegistry] = None,
) -> bool:
    """Return True if every field reachable from ``tp`` can be written to a document.

    ``visited`` holds the types already entered during this check. A type seen a
    second time is reported as representable without looking at it again, which
    keeps self-referential shapes from recursing forever. The trade-off is that
    an unrepresentable type inside a cycle is not detected.
    """
    if tp is None:
        return False
    if visited is None:
        visited = set()
    codecs = _codecs(registry)

    try:
        if tp in visited:
            return True
        visited.add(tp)
    except TypeError:
        # Unhashable annotation objects are simply not memoized
        pass

    if tp in _PRIMITIVES:
        return True
    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        if not all(_is_plain_value(m.value) for m in tp):
            logger.debug("%s has member values that cannot be written", tp.__name__)
            return False
        return True

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin in _UNION_ORIGINS:
        members = [a for a in args if a is not _NONE_TYPE]
        if len(members) != 1:
            logger.debug("Union %s has %d non-None members; not representable", tp, len(members))
            return False
        return is_serializable_recursively(members[0], visited, codecs)

    if origin is typing.Annotated:
        return is_serializable_recursively(args[0], visited, codecs)

    if origin is typing.Literal:
        return all(isinstance(a, _PRIMITIVES) or a is None for a in args)

    if origin is tuple:
        if not args:
            return False
        if len(args) == 2 and args[1] is Ellipsis:
            return is_serializable_recursively(args[0], visited, codecs)
        if args == ((),):
            return True
        return all(is_serializable_recursively(a, visited, codecs) for a in args)

    if origin in _SEQUENCE_ORIGINS:
        # Element type only; arity and count are not restricted
        if not args:
            return False
        if origin in _SET_ORIGINS and not _is_hashable(args[0]):
            logger.debug("Set element type %r is not hashable", args[0])
            return False
        return is_serializable_recursively(args[0], visited, codecs)

    if origin in _MAPPING_ORIGINS:
        if len(args) != 2:
            return False
        if not _is_text_key(args[0]):
            logger.debug("Mapping key type %r cannot be written as an object key", args[0])
            return False
        return is_serializable_recursively(args[1], visited, codecs)

    if origin is not None or not isinstance(tp, type):
        logger.debug("Unsupported annotation %r", tp)
        return False

    if tp in codecs:
        return True

    if not is_marked_serializable(tp):
        logger.debug("%s is not marked @serializable", tp.__name__)
        return False

    try:
        hints = typing.get_type_hints(tp, include_extras=True)
    except (NameError, TypeError) as exc:
        logger.debug("Could not resolve field annotations of %s: %s", tp.__name__, exc)
        return False

    for f in serialized_fields(tp):
        if not is_serializable_recursively(hints.get(f.name, f.type), visited, codecs):
            logger.debug("Field %s.%s is not representable", tp.__name__, f.name)
            return False
    return True


class AdmissibilityCache:
    """Remembers verdicts keyed by an arbitrary key, e.g. a save file path.

    Tooling uses this to avoid re-probing every candidate file on each refresh.
    """

    def __init__(self) -> None:
        self._verdicts: Dict[str, bool] = {}

    @staticmethod
    def _key(key: Union[str, Path]) -> str:
        return str(key)

    def get(self, key: Union[str, Path]) -> Optional[bool]:
        return self._verdicts.get(self._key(key))

    def set(self, key: Union[str, Path], verdict: bool) -> None:
        self._verdicts[self._key(key)] = bool(verdict)

    def verdict(self, key: Union[str, Path], compute: Callable[[], bool]) -> bool:
        cached = self.get(key)
        if cached is None:
            cached = bool(compute())
            self.set(key, cached)
        return cached

    def invalidate(self, key: Union[str, Path]) -> None:
        self._verdicts.pop(self._key(key), None)

    def clear(self) -> None:
        self._verdicts.clear()

    def __len__(self) -> int:
        return len(self._verdicts)
