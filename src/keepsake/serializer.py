"""Conversion between data instances and save documents.

Documents are indented JSON objects. Field names are written in lowerCamelCase in
declaration order; composite value types go through the codec registry. Reading
is lenient about structure (missing fields keep their defaults, unknown fields
are ignored) and about representation (``"12"`` is accepted for an int, ``3``
for a float), but not about data that cannot be converted at all.
"""
from __future__ import annotations

import collections.abc
import dataclasses
import enum
import json
import logging
import math
import types
import typing
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set, Type, TypeVar, Union

from .codecs import CodecRegistry, Decoder, Encoder, default_registry
from .errors import ParseError, ShapeMismatchError
from .shapes import camel_case, serialized_fields

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NONE_TYPE = type(None)
_UNION_ORIGINS = (Union, getattr(types, "UnionType", Union))
_SET_ORIGINS = (set, frozenset, collections.abc.Set, collections.abc.MutableSet)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
_SEQUENCE_ORIGINS = (
    list,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Collection,
    collections.abc.Iterable,
)

# Sentinel returned by the encoder for values that close a reference loop
_OMIT = object()


class Serializer(ABC):
    """Converts data instances to text and back."""

    @abstractmethod
    def serialize(self, obj: Any) -> str:
        """Render ``obj`` as a document."""

    @abstractmethod
    def deserialize(self, text: str, shape: Type[T]) -> T:
        """Parse ``text`` into a new instance of ``shape``."""


def _join(path: str, part: str) -> str:
    if not path:
        return part
    if part.startswith("["):
        return path + part
    return f"{path}.{part}"


def _as_tuple(items: List[Any]) -> tuple:
    return tuple(_as_tuple(v) if isinstance(v, list) else v for v in items)


class JsonSerializer(Serializer):
    """JSON implementation with camelCase names and composite value codecs."""

    def __init__(self, registry: Optional[CodecRegistry] = None, indent: Optional[int] = 2) -> None:
        self.registry = registry if registry is not None else default_registry()
        self.indent = indent
        self._hints: Dict[type, Dict[str, Any]] = {}

    def add_codec(self, tp: type, encode: Encoder, decode: Decoder) -> None:
        """Register an additional composite value encoder."""
        self.registry.register(tp, encode, decode)

    # Public API

    def serialize(self, obj: Any) -> str:
        data = self.to_document(obj)
        return json.dumps(data, indent=self.indent, ensure_ascii=False)

    def deserialize(self, text: str, shape: Type[T]) -> T:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(e.msg, e.lineno, e.colno) from e
        except RecursionError as e:
            raise ParseError("document is nested too deeply") from e
        except TypeError as e:
            raise ParseError(f"expected text, got {type(text).__name__}") from e
        try:
            return self.from_document(data, shape)
        except RecursionError as e:
            raise ShapeMismatchError("", "document is nested too deeply") from e

    def to_document(self, obj: Any) -> Any:
        """Return the JSON-compatible structure that :meth:`serialize` writes."""
        value = self._encode(obj, set(), "")
        return None if value is _OMIT else value

    def from_document(self, data: Any, shape: Type[T]) -> T:
        """Build an instance of ``shape`` from an already parsed document."""
        if not isinstance(data, dict):
            raise ShapeMismatchError("", f"expected an object for {shape.__name__}, got {type(data).__name__}")
        return self._convert(data, shape, "")

    # Encoding

    def _encode(self, obj: Any, stack: Set[int], path: str) -> Any:
        if obj is None or isinstance(obj, (bool, int, float, str)):
            return obj
        if isinstance(obj, enum.Enum):
            return self._encode(obj.value, stack, path)

        codec = self.registry.lookup(type(obj))
        if codec is not None:
            return codec.encode(obj)

        if id(obj) in stack:
            logger.debug("Omitting reference loop at %s", path or "<root>")
            return _OMIT
        stack.add(id(obj))
        try:
            if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
                out: Dict[str, Any] = {}
                for f in serialized_fields(type(obj)):
                    value = self._encode(getattr(obj, f.name), stack, _join(path, f.name))
                    if value is not _OMIT:
                        out[camel_case(f.name)] = value
                return out
            if isinstance(obj, collections.abc.Mapping):
                mapped: Dict[str, Any] = {}
                for k, v in obj.items():
                    value = self._encode(v, stack, _join(path, f"[{k!r}]"))
                    if value is not _OMIT:
                        mapped[self._encode_key(k)] = value
                return mapped
            if isinstance(obj, (list, tuple, set, frozenset)):
                items = [self._encode(v, stack, _join(path, f"[{i}]")) for i, v in enumerate(obj)]
                return [v for v in items if v is not _OMIT]
        finally:
            stack.discard(id(obj))

        raise TypeError(f"Object of type {type(obj).__name__} at {path or '<root>'} cannot be serialized")

    @staticmethod
    def _encode_key(key: Any) -> str:
        if isinstance(key, enum.Enum):
            key = key.value
        if isinstance(key, bool):
            return "true" if key else "false"
        return str(key)

    # Decoding

    def _type_hints(self, cls: type) -> Dict[str, Any]:
        hints = self._hints.get(cls)
        if hints is None:
            hints = typing.get_type_hints(cls)
            self._hints[cls] = hints
        return hints

    def _decode(self, data: Dict[str, Any], cls: Type[T], path: str) -> T:
        try:
            instance = cls()
        except TypeError as e:
            raise ShapeMismatchError(path, f"{cls.__name__} cannot be default-constructed: {e}") from e
        hints = self._type_hints(cls)
        lookup = {k.lower(): k for k in data}
        for f in serialized_fields(cls):
            key = self._match_key(f.name, data, lookup)
            if key is None:
                continue
            raw = data[key]
            tp = hints.get(f.name, f.type)
            if raw is None and not self._is_optional(tp):
                # null on a non-optional field keeps the declared default
                continue
            value = self._convert(raw, tp, _join(path, camel_case(f.name)))
            object.__setattr__(instance, f.name, value)
        return instance

    @staticmethod
    def _match_key(name: str, data: Dict[str, Any], lookup: Dict[str, str]) -> Optional[str]:
        camel = camel_case(name)
        if camel in data:
            return camel
        if name in data:
            return name
        return lookup.get(camel.lower()) or lookup.get(name.lower())

    @staticmethod
    def _is_optional(tp: Any) -> bool:
        if tp is Any:
            return True
        return typing.get_origin(tp) in _UNION_ORIGINS and _NONE_TYPE in typing.get_args(tp)

    def _convert(self, raw: Any, tp: Any, path: str) -> Any:
        if tp is Any:
            return raw

        origin = typing.get_origin(tp)
        args = typing.get_args(tp)

        if origin is typing.Annotated:
            return self._convert(raw, args[0], path)
        if origin in _UNION_ORIGINS:
            if raw is None:
                return None
            members = [a for a in args if a is not _NONE_TYPE]
            if len(members) != 1:
                raise ShapeMismatchError(path, f"cannot choose between union members of {tp}")
            return self._convert(raw, members[0], path)
        if origin is typing.Literal:
            if raw not in args:
                raise ShapeMismatchError(path, f"expected one of {list(args)!r}, got {raw!r}")
            return raw

        if origin is tuple:
            items = self._expect_list(raw, path)
            if len(args) == 2 and args[1] is Ellipsis:
                return tuple(self._convert(v, args[0], _join(path, f"[{i}]")) for i, v in enumerate(items))
            if len(items) != len(args):
                raise ShapeMismatchError(path, f"expected {len(args)} items, got {len(items)}")
            return tuple(self._convert(v, a, _join(path, f"[{i}]")) for i, (v, a) in enumerate(zip(items, args)))
        if origin in _SET_ORIGINS:
            items = self._expect_list(raw, path)
            elem = args[0] if args else Any
            try:
                result = {self._convert(v, elem, _join(path, f"[{i}]")) for i, v in enumerate(items)}
            except TypeError as e:
                raise ShapeMismatchError(path, f"set members must be hashable: {e}") from e
            return frozenset(result) if origin is frozenset else result
        if origin in _SEQUENCE_ORIGINS:
            items = self._expect_list(raw, path)
            elem = args[0] if args else Any
            return [self._convert(v, elem, _join(path, f"[{i}]")) for i, v in enumerate(items)]
        if origin in _MAPPING_ORIGINS:
            if not isinstance(raw, dict):
                raise ShapeMismatchError(path, f"expected an object, got {type(raw).__name__}")
            key_tp, val_tp = args if len(args) == 2 else (Any, Any)
            return {
                self._convert(k, key_tp, _join(path, f"[{k!r}]")): self._convert(v, val_tp, _join(path, f"[{k!r}]"))
                for k, v in raw.items()
            }

        if not isinstance(tp, type):
            raise ShapeMismatchError(path, f"unsupported annotation {tp!r}")
        if raw is None:
            raise ShapeMismatchError(path, f"null is not a valid {tp.__name__}")

        codec = self.registry.lookup(tp)
        if codec is not None:
            try:
                return codec.decode(raw)
            except ShapeMismatchError as e:
                raise ShapeMismatchError(_join(path, e.path) if e.path else path, e.message) from e
            except (TypeError, ValueError) as e:
                raise ShapeMismatchError(path, str(e)) from e

        if issubclass(tp, enum.Enum):
            return self._to_enum(raw, tp, path)
        if tp is bool:
            return self._to_bool(raw, path)
        if tp is int:
            return self._to_int(raw, path)
        if tp is float:
            return self._to_float(raw, path)
        if tp is str:
            if isinstance(raw, str):
                return raw
            if isinstance(raw, bool):
                return "true" if raw else "false"
            if isinstance(raw, (int, float)):
                return str(raw)
            raise ShapeMismatchError(path, f"expected a string, got {type(raw).__name__}")
        if tp in (list, tuple, set, frozenset):
            items = self._expect_list(raw, path)
            return tp(items)
        if tp is dict:
            if not isinstance(raw, dict):
                raise ShapeMismatchError(path, f"expected an object, got {type(raw).__name__}")
            return dict(raw)
        if dataclasses.is_dataclass(tp):
            if not isinstance(raw, dict):
                raise ShapeMismatchError(path, f"expected an object for {tp.__name__}, got {type(raw).__name__}")
            return self._decode(raw, tp, path)
        raise ShapeMismatchError(path, f"no conversion to {tp.__name__}")

    @staticmethod
    def _expect_list(raw: Any, path: str) -> List[Any]:
        if not isinstance(raw, list):
            raise ShapeMismatchError(path, f"expected an array, got {type(raw).__name__}")
        return raw

    @staticmethod
    def _to_bool(raw: Any, path: str) -> bool:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, (int, float)):
            return raw != 0
        if isinstance(raw, str):
            lowered = raw.strip().lower()
            if lowered in ("true", "1"):
                return True
            if lowered in ("false", "0"):
                return False
        raise ShapeMismatchError(path, f"expected a boolean, got {raw!r}")

    @staticmethod
    def _to_float(raw: Any, path: str) -> float:
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return float(raw)
        if isinstance(raw, str):
            try:
                return float(raw.strip())
            except ValueError:
                pass
        raise ShapeMismatchError(path, f"expected a number, got {raw!r}")

    @classmethod
    def _to_int(cls, raw: Any, path: str) -> int:
        if isinstance(raw, bool):
            return int(raw)
        if isinstance(raw, int):
            return raw
        if isinstance(raw, str):
            try:
                return int(raw.strip())
            except ValueError:
                pass
        number = cls._to_float(raw, path)
        if math.isnan(number) or math.isinf(number):
            raise ShapeMismatchError(path, f"{raw!r} is not a finite integer")
        return int(round(number))

    @staticmethod
    def _to_enum(raw: Any, tp: Type[enum.Enum], path: str) -> enum.Enum:
        if isinstance(raw, list):
            # Tuple values are written as arrays
            raw = _as_tuple(raw)
        try:
            return tp(raw)
        except (ValueError, TypeError):
            pass
        if isinstance(raw, str):
            for member in tp:
                if member.name.lower() == raw.strip().lower():
                    return member
                if isinstance(member.value, int) and raw.strip().lstrip("-").isdigit():
                    if member.value == int(raw):
                        return member
        raise ShapeMismatchError(path, f"{raw!r} is not a valid {tp.__name__}")
