from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, Type, TypeVar

from .admissibility import is_serializable_recursively
from .autosave import DEFAULT_INTERVAL, AutoSaveManager, SchedulerFactory
from .errors import ConfigurationError, ParseError, ShapeMismatchError
from .serializer import JsonSerializer, Serializer
from .settings import SaveSettings
from .storage import FileSaveStorage, SaveStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")

EVENT_SAVED = "saved"
EVENT_LOADED = "loaded"

Listener = Callable[[str, "SaveSystem[Any]"], None]


class SaveState(str, Enum):
    DISABLED = "disabled"
    READY = "ready"


class SaveSystem(Generic[T]):
    """Owns the live instance of a data shape and keeps it in sync with storage.

    On construction the shape is checked once with
    :func:`~keepsake.admissibility.is_serializable_recursively`. A shape that
    fails the check leaves the system DISABLED: ``save``/``load``/``reset`` log a
    warning and do nothing, and ``data`` stays a default instance. Otherwise the
    system is READY and loads immediately, writing a default document if storage
    is empty.

    Storage and serialization errors propagate to the caller. The application
    must not mutate ``data`` from another thread while a save is in progress.
    """

    def __init__(
        self,
        shape: Type[T],
        storage: Optional[SaveStorage] = None,
        serializer: Optional[Serializer] = None,
        *,
        strict: bool = False,
        scheduler_factory: Optional[SchedulerFactory] = None,
    ) -> None:
        self.shape = shape
        self.data: Optional[T] = None
        self._serializer: Serializer = serializer or JsonSerializer()
        self._storage: Optional[SaveStorage] = storage
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._closed = False
        self._auto_save = AutoSaveManager(self.save, scheduler_factory)

        problem = self._check_shape()
        if problem:
            logger.error("[SaveSystem] %s", problem)
            if strict:
                raise ConfigurationError(problem)
            self.state = SaveState.DISABLED
            self.data = self._default_or_none()
            return

        if self._storage is None:
            self._storage = FileSaveStorage("Saves")
        self.state = SaveState.READY
        self.load()

    @classmethod
    def from_settings(
        cls, shape: Type[T], settings: Optional[SaveSettings] = None, **kwargs: Any
    ) -> "SaveSystem[T]":
        """Build a file-backed save system from :class:`SaveSettings`."""
        settings = settings or SaveSettings.load()
        storage = FileSaveStorage(settings.storage.save_name, settings.storage.save_folder)
        serializer = JsonSerializer(indent=settings.serializer.indent)
        system = cls(shape, storage, serializer, **kwargs)
        if settings.autosave.enabled and system.ready:
            system.enable_auto_save(settings.autosave.interval)
        return system

    # Introspection

    @property
    def ready(self) -> bool:
        return self.state is SaveState.READY

    @property
    def data_type(self) -> Type[T]:
        return self.shape

    @property
    def storage(self) -> Optional[SaveStorage]:
        return self._storage

    @property
    def serializer(self) -> Serializer:
        return self._serializer

    # Public API

    def save(self) -> None:
        """Serialize the current instance and hand it to storage. Creates a default first if absent."""
        with self._lock:
            if not self.ready:
                logger.warning("Save ignored: %s is not a valid data shape", self._shape_name)
                return
            if self.data is None:
                self.data = self.shape()
            text = self._serializer.serialize(self.data)
            self._storage.save_data(text)
            logger.debug("Saved %s", self._shape_name)
            self._notify(EVENT_SAVED)

    def load(self) -> Optional[T]:
        """Replace the current instance with the stored document.

        If storage has no document yet, a default instance is created and saved.
        """
        with self._lock:
            if not self.ready:
                logger.warning("Load ignored: %s is not a valid data shape", self._shape_name)
                return self.data
            if self._storage.has_data():
                text = self._storage.load_data()
                self.data = self._serializer.deserialize(text, self.shape)
                logger.debug("Loaded %s from %r", self._shape_name, self._storage)
            else:
                logger.info("No save found; creating default %s", self._shape_name)
                self.data = self.shape()
                self.save()
            self._notify(EVENT_LOADED)
            return self.data

    def reset(self) -> None:
        """Replace the current instance with a fresh default and save it."""
        with self._lock:
            if not self.ready:
                logger.warning("Reset ignored: %s is not a valid data shape", self._shape_name)
                return
            self.data = self.shape()
            self.save()

    def is_valid(self, text: str) -> bool:
        """Return True if ``text`` parses into the configured shape. Never mutates state."""
        if not self.ready:
            return False
        try:
            self._serializer.deserialize(text, self.shape)
        except (ParseError, ShapeMismatchError) as exc:
            logger.debug("Document rejected: %s", exc)
            return False
        return True

    def get_file_text(self) -> str:
        """Render the current instance as it would be written by :meth:`save`."""
        with self._lock:
            data = self.data if self.data is not None else self.shape()
            return self._serializer.serialize(data)

    def set_data(self, text: str) -> None:
        """Replace the current instance by parsing ``text``. Does not save."""
        with self._lock:
            if not self.ready:
                logger.warning("set_data ignored: %s is not a valid data shape", self._shape_name)
                return
            self.data = self._serializer.deserialize(text, self.shape)
            self._notify(EVENT_LOADED)

    # Auto-save

    @property
    def auto_save_enabled(self) -> bool:
        return self._auto_save.enabled

    def enable_auto_save(self, interval: float = DEFAULT_INTERVAL) -> None:
        if not self.ready:
            logger.warning("Auto-save not enabled: %s is not a valid data shape", self._shape_name)
            return
        self._auto_save.enable(interval)

    def disable_auto_save(self) -> None:
        self._auto_save.disable()

    def update(self, dt: float) -> None:
        """Advance a cooperative auto-save scheduler by ``dt`` seconds."""
        self._auto_save.update(dt)

    # Observers

    def add_listener(self, callback: Listener) -> None:
        """Register ``callback(event, system)``, called after each successful save or load."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: Listener) -> None:
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass

    def _notify(self, event: str) -> None:
        for cb in list(self._listeners):
            try:
                cb(event, self)
            except Exception:
                logger.exception("Save listener %r failed on '%s'", cb, event)

    # Lifecycle

    def shutdown(self) -> None:
        """Stop auto-save and write a final save. Call once from the host's shutdown sequence."""
        if self._closed:
            return
        self.disable_auto_save()
        if self.ready:
            self.save()
        self._closed = True
        logger.info("SaveSystem for %s shut down", self._shape_name)

    # Internal utilities

    @property
    def _shape_name(self) -> str:
        return getattr(self.shape, "__name__", repr(self.shape))

    def _check_shape(self) -> Optional[str]:
        registry = getattr(self._serializer, "registry", None)
        if not is_serializable_recursively(self.shape, registry=registry):
            return f"Type {self._shape_name} or its fields are not fully serializable; mark shapes with @serializable"
        try:
            self.shape()
        except TypeError as exc:
            return f"Type {self._shape_name} must be constructible without arguments: {exc}"
        return None

    def _default_or_none(self) -> Optional[T]:
        try:
            return self.shape()
        except Exception:
            logger.debug("Cannot build a default %r", self.shape, exc_info=True)
            return None
