from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set, Tuple, Union

import pytest

from keepsake import (
    AdmissibilityCache,
    CodecRegistry,
    Color,
    Vector2,
    Vector3,
    is_serializable_recursively,
    serializable,
    transient,
)


class Mood(enum.Enum):
    CALM = "calm"
    ANGRY = "angry"


@serializable
class Inner:
    label: str = ""
    tags: List[str] = field(default_factory=list)


@serializable
class Profile:
    name: str = ""
    level: int = 1
    ratio: float = 0.5
    alive: bool = True
    mood: Mood = Mood.CALM
    inner: Inner = field(default_factory=Inner)
    nickname: Optional[str] = None
    scores: Dict[str, int] = field(default_factory=dict)
    badges: Set[str] = field(default_factory=set)
    position: Vector3 = field(default_factory=Vector3)
    tint: Color = field(default_factory=Color)
    pair: Tuple[int, str] = (0, "")


@serializable
class Node:
    value: int = 0
    next: Optional[Node] = None
    children: List[Node] = field(default_factory=list)


@serializable
class Room:
    name: str = ""
    doors: List[Door] = field(default_factory=list)


@serializable
class Door:
    target: Optional[Room] = None


class Opaque:
    def __init__(self) -> None:
        self.handle = object()


@dataclass
class Unmarked:
    x: int = 0


@serializable
class HasOpaque:
    thing: Optional[Opaque] = None


@serializable
class HasUnmarked:
    inner: Unmarked = field(default_factory=Unmarked)


@serializable
class HasTransientOpaque:
    x: int = 0
    cache: Optional[Opaque] = transient(default=None)
    _scratch: Optional[Opaque] = None


@serializable
class HasAmbiguousUnion:
    value: Union[int, str] = 0


@serializable
class HasBareList:
    items: list = field(default_factory=list)


@pytest.mark.parametrize("tp", [int, float, bool, str, Mood])
def test_primitives_and_enums_are_representable(tp):
    assert is_serializable_recursively(tp) is True


def test_nested_record_with_all_field_kinds():
    assert is_serializable_recursively(Profile) is True


def test_self_referential_shape_terminates():
    assert is_serializable_recursively(Node) is True


def test_mutually_recursive_shapes_terminate():
    assert is_serializable_recursively(Room) is True
    assert is_serializable_recursively(Door) is True


@pytest.mark.parametrize("tp", [Opaque, Unmarked, HasOpaque, HasUnmarked, HasAmbiguousUnion, HasBareList])
def test_unrepresentable_types(tp):
    assert is_serializable_recursively(tp) is False


def test_transient_and_private_fields_are_skipped():
    assert is_serializable_recursively(HasTransientOpaque) is True


def test_wrappers_and_containers():
    assert is_serializable_recursively(Optional[int]) is True
    assert is_serializable_recursively(List[Inner]) is True
    assert is_serializable_recursively(Dict[str, List[Vector3]]) is True
    assert is_serializable_recursively(Tuple[int, ...]) is True
    assert is_serializable_recursively(List[Opaque]) is False
    assert is_serializable_recursively(Dict[str, Opaque]) is False
    assert is_serializable_recursively(list) is False
    assert is_serializable_recursively(None) is False


def test_revisited_type_is_reported_representable():
    # Known limitation: anything already in `visited` short-circuits to True
    assert is_serializable_recursively(Opaque, visited={Opaque}) is True


def test_visited_records_entered_types():
    visited = set()
    assert is_serializable_recursively(Profile, visited)
    assert Profile in visited
    assert Inner in visited


def test_composites_need_a_registered_codec():
    assert is_serializable_recursively(Vector3) is True
    assert is_serializable_recursively(Vector3, registry=CodecRegistry()) is False
    assert is_serializable_recursively(Profile, registry=CodecRegistry()) is False


def test_custom_codec_makes_type_representable():
    registry = CodecRegistry()
    registry.register(Opaque, lambda o: None, lambda v: Opaque())
    assert is_serializable_recursively(HasOpaque, registry=registry) is True


def test_admissibility_cache_memoizes_per_key(tmp_path):
    cache = AdmissibilityCache()
    calls = []

    def compute():
        calls.append(1)
        return True

    path = tmp_path / "a.save"
    assert cache.verdict(path, compute) is True
    assert cache.verdict(str(path), compute) is True
    assert len(calls) == 1
    cache.invalidate(path)
    assert cache.get(path) is None
    cache.set(path, False)
    assert cache.verdict(path, compute) is False
    cache.clear()
    assert len(cache) == 0


class Level(enum.IntEnum):
    LOW = 1
    HIGH = 2


class Heading(enum.Enum):
    UP = (0, 1)
    DOWN = (0, -1)


class Weight(enum.Enum):
    LIGHT = 0.5
    HEAVY = 2.5


class Handle(enum.Enum):
    MAIN = object()


@pytest.mark.parametrize("key", [str, int, float, bool, Mood, Level])
def test_mapping_keys_that_survive_text_are_accepted(key):
    assert is_serializable_recursively(Dict[key, int]) is True


@pytest.mark.parametrize("key", [Vector2, Tuple[int, int], Optional[int], Heading, Weight, Inner])
def test_mapping_keys_that_do_not_survive_text_are_rejected(key):
    assert is_serializable_recursively(Dict[key, int]) is False


def test_enum_values_must_be_writable():
    assert is_serializable_recursively(Heading) is True
    assert is_serializable_recursively(Handle) is False


def test_set_elements_must_be_hashable():
    assert is_serializable_recursively(Set[str]) is True
    assert is_serializable_recursively(FrozenSet[Mood]) is True
    assert is_serializable_recursively(Set[Tuple[int, int]]) is True
    assert is_serializable_recursively(Set[Vector3]) is True
    # Plain records are mutable dataclasses without __hash__
    assert is_serializable_recursively(Set[Inner]) is False
    assert is_serializable_recursively(Set[List[int]]) is False
    assert is_serializable_recursively(List[Inner]) is True
