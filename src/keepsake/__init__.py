"""Keepsake: save/load persistence for application data objects.

This package provides:
- Data shape declaration (``@serializable`` dataclasses, ``transient`` fields)
- A recursive check that a shape can be written at all
- A JSON serializer with camelCase names and composite value codecs
- File and in-memory storage backends
- A SaveSystem that owns the live instance, with optional periodic auto-save
- Inspection tooling (SaveInspector and the ``keepsake`` command line)
"""

from .admissibility import AdmissibilityCache, is_serializable_recursively
from .autosave import AutoSaveManager
from .codecs import Codec, CodecRegistry, default_registry
from .composites import Color, Quaternion, Vector2, Vector3
from .errors import ConfigurationError, ParseError, SaveError, ShapeMismatchError, StorageError
from .inspector import SaveInspector
from .save_system import EVENT_LOADED, EVENT_SAVED, SaveState, SaveSystem
from .scheduling import PeriodicScheduler, ThreadedScheduler, TickScheduler
from .serializer import JsonSerializer, Serializer
from .settings import SaveSettings
from .shapes import camel_case, serializable, transient
from .storage import FileSaveStorage, MemorySaveStorage, SaveStorage

__version__ = "0.1.0"

__all__ = [
    "AdmissibilityCache",
    "is_serializable_recursively",
    "AutoSaveManager",
    "Codec",
    "CodecRegistry",
    "default_registry",
    "Color",
    "Quaternion",
    "Vector2",
    "Vector3",
    "ConfigurationError",
    "ParseError",
    "SaveError",
    "ShapeMismatchError",
    "StorageError",
    "SaveInspector",
    "EVENT_LOADED",
    "EVENT_SAVED",
    "SaveState",
    "SaveSystem",
    "PeriodicScheduler",
    "ThreadedScheduler",
    "TickScheduler",
    "JsonSerializer",
    "Serializer",
    "SaveSettings",
    "camel_case",
    "serializable",
    "transient",
    "FileSaveStorage",
    "MemorySaveStorage",
    "SaveStorage",
]
