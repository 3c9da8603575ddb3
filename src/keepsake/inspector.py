"""Developer tooling for browsing, validating, editing and backing up save files.

Everything here goes through :class:`~keepsake.save_system.SaveSystem` public
operations or plain file access; nothing in the core depends on it.
"""
from __future__ import annotations

import json
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .admissibility import AdmissibilityCache
from .errors import ParseError, StorageError
from .paths import SAVE_EXTENSION, backup_path, ensure_dir
from .save_system import SaveSystem

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class SaveInspector:
    """Browse candidate save files and apply hand-edited documents.

    Args:
        system: Optional live save system. When given, documents are validated
            against its shape and ``apply`` without a path updates the live data.
        search_dirs: Directories scanned recursively for ``*.save`` files.
    """

    def __init__(self, system: Optional[SaveSystem] = None, search_dirs: Iterable[PathLike] = ()) -> None:
        self.system = system
        self.search_dirs = [Path(d) for d in search_dirs]
        self.cache = AdmissibilityCache()

    def find_save_files(self) -> List[Path]:
        found = set()
        for root in self.search_dirs:
            if not root.is_dir():
                logger.debug("Skipping missing search dir %s", root)
                continue
            try:
                found.update(p.resolve() for p in root.rglob(f"*{SAVE_EXTENSION}") if p.is_file())
            except OSError as exc:
                logger.warning("Could not scan %s: %s", root, exc)
        return sorted(found)

    def read(self, path: PathLike) -> str:
        path = Path(path)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def probe(self, text: str) -> bool:
        """Return True if ``text`` would be accepted by :meth:`apply`."""
        if self.system is not None:
            return self.system.is_valid(text)
        try:
            json.loads(text)
        except json.JSONDecodeError:
            return False
        return True

    def validity(self, paths: Optional[Iterable[PathLike]] = None) -> Dict[Path, bool]:
        """Probe each file, caching the verdict per path until :meth:`refresh`."""
        targets = [Path(p) for p in paths] if paths is not None else self.find_save_files()
        return {p: self.cache.verdict(p, lambda p=p: self._probe_file(p)) for p in targets}

    def refresh(self) -> None:
        self.cache.clear()

    def apply(self, text: str, path: Optional[PathLike] = None) -> None:
        """Apply an edited document after checking it with :meth:`probe`.

        Without ``path`` the live system's data is replaced and saved. With
        ``path`` the file is rewritten and, if a system is attached, its data is
        replaced too (without saving to its own storage).
        """
        if not self.probe(text):
            raise ParseError("document does not match the save shape")
        if path is None:
            if self.system is None:
                raise ValueError("apply() without a path needs a live SaveSystem")
            self.system.set_data(text)
            self.system.save()
            logger.info("Applied document to live %s", self.system.data_type.__name__)
            return

        path = Path(path)
        if self.system is not None:
            self.system.set_data(text)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            ensure_dir(path.parent)
            tmp.write_text(text, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc
        self.cache.invalidate(path.resolve())
        self.cache.invalidate(path)
        logger.info("Applied document to %s", path)

    def backup(self, path: PathLike, dest_dir: Optional[PathLike] = None, now: Optional[datetime] = None) -> Path:
        """Copy ``path`` to ``backup_<timestamp>.save`` and return the new path."""
        src = Path(path)
        if not src.is_file():
            raise StorageError(f"Nothing to back up: {src} does not exist")
        folder = ensure_dir(Path(dest_dir)) if dest_dir is not None else src.parent
        dest = backup_path(folder, now)
        n = 1
        while dest.exists():
            dest = dest.with_name(f"{dest.stem.split('-')[0]}-{n}{SAVE_EXTENSION}")
            n += 1
        try:
            shutil.copy2(src, dest)
        except OSError as exc:
            logger.error("Backup of %s failed: %s", src, exc)
            raise StorageError(f"Backup of {src} failed: {exc}") from exc
        logger.info("Backup created: %s", dest)
        return dest

    def _probe_file(self, path: Path) -> bool:
        try:
            return self.probe(self.read(path))
        except StorageError as exc:
            logger.warning("%s", exc)
            return False
