"""Encoders for composite value types.

A codec maps a type to an ``(encode, decode)`` pair. The serializer consults the
registry before falling back to generic record encoding.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple, Type

from .composites import Color, Quaternion, Vector2, Vector3
from .errors import ShapeMismatchError

logger = logging.getLogger(__name__)

Encoder = Callable[[Any], Any]
Decoder = Callable[[Any], Any]


@dataclass(frozen=True)
class Codec:
    encode: Encoder
    decode: Decoder


class CodecRegistry:
    """Mapping from type identity to a :class:`Codec`."""

    def __init__(self) -> None:
        self._codecs: Dict[type, Codec] = {}

    def register(self, tp: type, encode: Encoder, decode: Decoder) -> None:
        if tp in self._codecs:
            logger.debug("Replacing codec for %s", tp.__name__)
        self._codecs[tp] = Codec(encode=encode, decode=decode)

    def lookup(self, tp: Any) -> Optional[Codec]:
        if not isinstance(tp, type):
            return None
        codec = self._codecs.get(tp)
        if codec is not None:
            return codec
        for base in tp.__mro__[1:]:
            codec = self._codecs.get(base)
            if codec is not None:
                return codec
        return None

    def __contains__(self, tp: Any) -> bool:
        return self.lookup(tp) is not None

    def __iter__(self) -> Iterator[type]:
        return iter(self._codecs)

    def copy(self) -> "CodecRegistry":
        clone = CodecRegistry()
        clone._codecs = dict(self._codecs)
        return clone


def _component(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ShapeMismatchError(key, f"expected a number, got {value!r}") from e


def flat_codec(cls: type, keys: Tuple[str, ...], defaults: Mapping[str, float]) -> Codec:
    """Build a codec that writes ``cls`` as a flat object of its numeric components.

    Missing components take ``defaults`` (0 when absent); unknown keys are ignored.
    """

    def encode(value: Any) -> Dict[str, float]:
        return {k: float(getattr(value, k)) for k in keys}

    def decode(data: Any) -> Any:
        if not isinstance(data, Mapping):
            raise ShapeMismatchError("", f"expected an object for {cls.__name__}, got {type(data).__name__}")
        values = {k: float(defaults.get(k, 0.0)) for k in keys}
        for key, raw in data.items():
            if key in values and raw is not None:
                values[key] = _component(raw, key)
        return cls(**values)

    return Codec(encode=encode, decode=decode)


def default_registry() -> CodecRegistry:
    registry = CodecRegistry()
    for cls, keys, defaults in (
        (Vector2, ("x", "y"), {}),
        (Vector3, ("x", "y", "z"), {}),
        (Quaternion, ("x", "y", "z", "w"), {"w": 1.0}),
        (Color, ("r", "g", "b", "a"), {"a": 1.0}),
    ):
        codec = flat_codec(cls, keys, defaults)
        registry.register(cls, codec.encode, codec.decode)
    return registry
