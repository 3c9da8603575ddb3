from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from platformdirs import user_data_dir

__all__ = [
    "APP_NAME",
    "SAVE_EXTENSION",
    "SAVE_DIR_ENV",
    "get_user_data_root",
    "get_save_dir",
    "ensure_dir",
    "with_save_extension",
    "backup_path",
]


APP_NAME = "Keepsake"
SAVE_EXTENSION = ".save"
SAVE_DIR_ENV = "KEEPSAKE_SAVE_DIR"

_logger = logging.getLogger(__name__)


def get_user_data_root() -> Path:
    """Return the OS-appropriate application data directory.

    Linux:   ~/.local/share/Keepsake (or $XDG_DATA_HOME/Keepsake)
    macOS:   ~/Library/Application Support/Keepsake
    Windows: %LOCALAPPDATA%/Keepsake
    """
    return Path(user_data_dir(appname=APP_NAME, appauthor=False))


def ensure_dir(path: Path) -> Path:
    """Create the directory if it doesn't exist. Log and raise on failure."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        _logger.error("Failed to create directory '%s': %s", path, exc)
        raise
    return path


def get_save_dir(create: bool = True) -> Path:
    """Return the directory for save files.

    The KEEPSAKE_SAVE_DIR environment variable overrides the platform default.
    """
    override = os.getenv(SAVE_DIR_ENV, "").strip()
    save_dir = Path(override).expanduser() if override else get_user_data_root() / "saves"
    if create:
        ensure_dir(save_dir)
    return save_dir


def with_save_extension(name: str) -> str:
    if name.endswith(SAVE_EXTENSION):
        return name
    return name + SAVE_EXTENSION


def backup_path(folder: Path, now: Optional[datetime] = None) -> Path:
    """Return a timestamped backup file path inside ``folder``."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return Path(folder) / f"backup_{stamp}{SAVE_EXTENSION}"
