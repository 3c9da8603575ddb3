"""Small fixed-arity numeric value types used in save data."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

__all__ = ["Vector2", "Vector3", "Quaternion", "Color"]


@dataclass(frozen=True)
class Vector2:
    x: float = 0.0
    y: float = 0.0

    @staticmethod
    def zero() -> "Vector2":
        return Vector2()

    @property
    def magnitude(self) -> float:
        return math.hypot(self.x, self.y)

    def __add__(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vector2") -> "Vector2":
        return Vector2(self.x - other.x, self.y - other.y)

    def __mul__(self, k: float) -> "Vector2":
        return Vector2(self.x * k, self.y * k)

    __rmul__ = __mul__


@dataclass(frozen=True)
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @staticmethod
    def zero() -> "Vector3":
        return Vector3()

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def __add__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, k: float) -> "Vector3":
        return Vector3(self.x * k, self.y * k, self.z * k)

    __rmul__ = __mul__


@dataclass(frozen=True)
class Quaternion:
    """Rotation quaternion. The default value is the identity rotation."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @staticmethod
    def identity() -> "Quaternion":
        return Quaternion()


@dataclass(frozen=True)
class Color:
    """RGBA color with channels in 0..1. Defaults to opaque black."""

    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 1.0

    @staticmethod
    def white() -> "Color":
        return Color(1.0, 1.0, 1.0, 1.0)

    @staticmethod
    def black() -> "Color":
        return Color()

    def to_rgba8(self) -> Tuple[int, int, int, int]:
        def _channel(v: float) -> int:
            return int(round(max(0.0, min(1.0, v)) * 255))

        return (_channel(self.r), _channel(self.g), _channel(self.b), _channel(self.a))
