from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from .errors import StorageError
from .paths import ensure_dir, get_save_dir, with_save_extension

logger = logging.getLogger(__name__)


class SaveStorage(ABC):
    """Backend that persists a single opaque text document."""

    @abstractmethod
    def save_data(self, data: str) -> None:
        """Persist ``data``, replacing any existing document.

        Raises StorageError (an OSError) on failure.
        """

    @abstractmethod
    def load_data(self) -> str:
        """Return the stored document.

        Raises StorageError if no document exists or it cannot be read.
        """

    @abstractmethod
    def has_data(self) -> bool:
        """Return True if a document exists. Never raises."""


class FileSaveStorage(SaveStorage):
    """Stores the document in ``<save_folder>/<save_name>.save``.

    Writes go to a temporary file in the same directory which then replaces the
    target, so a crash mid-write leaves the previous document intact.
    """

    def __init__(self, save_name: str = "Saves", save_folder: Optional[Union[str, Path]] = None) -> None:
        if not save_name:
            raise ValueError("save_name must be a non-empty string")
        self.save_name = with_save_extension(save_name)
        self.save_folder = Path(save_folder) if save_folder is not None else get_save_dir()

    @property
    def file_path(self) -> Path:
        return self.save_folder / self.save_name

    def save_data(self, data: str) -> None:
        path = self.file_path
        try:
            ensure_dir(path.parent)
            fd, tmp_name = tempfile.mkstemp(prefix=path.name, suffix=".tmp", dir=path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, path)
            finally:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
        except OSError as exc:
            logger.error("Failed to write save file %s: %s", path, exc)
            raise StorageError(f"Failed to write save file {path}: {exc}") from exc
        logger.debug("Save written to %s (%d chars)", path, len(data))

    def load_data(self) -> str:
        path = self.file_path
        try:
            with path.open("r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError as exc:
            raise StorageError(f"Save file not found: {path}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to read save file %s: %s", path, exc)
            raise StorageError(f"Failed to read save file {path}: {exc}") from exc

    def has_data(self) -> bool:
        try:
            return self.file_path.is_file()
        except OSError:
            logger.debug("Could not stat %s", self.file_path, exc_info=True)
            return False

    def __repr__(self) -> str:
        return f"FileSaveStorage({str(self.file_path)!r})"


class MemorySaveStorage(SaveStorage):
    """Test/tooling storage that holds the document in memory only."""

    def __init__(self, initial: Optional[str] = None) -> None:
        self._data: Optional[str] = initial
        self.writes = 0

    def save_data(self, data: str) -> None:
        self._data = data
        self.writes += 1

    def load_data(self) -> str:
        if self._data is None:
            raise StorageError("No document stored")
        return self._data

    def has_data(self) -> bool:
        return self._data is not None
