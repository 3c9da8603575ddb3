from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .logging_config import level_from_name

logger = logging.getLogger(__name__)

ENV_SAVE_NAME = "KEEPSAKE_SAVE_NAME"
ENV_SAVE_DIR = "KEEPSAKE_SAVE_DIR"
ENV_AUTOSAVE_INTERVAL = "KEEPSAKE_AUTOSAVE_INTERVAL"
ENV_LOG_LEVEL = "KEEPSAKE_LOG_LEVEL"


@dataclass
class StorageSettings:
    save_name: str = "Saves"
    save_folder: Optional[str] = None


@dataclass
class AutoSaveSettings:
    enabled: bool = False
    interval: float = 15.0


@dataclass
class SerializerSettings:
    indent: Optional[int] = 2


@dataclass
class SaveSettings:
    storage: StorageSettings = field(default_factory=StorageSettings)
    autosave: AutoSaveSettings = field(default_factory=AutoSaveSettings)
    serializer: SerializerSettings = field(default_factory=SerializerSettings)
    log_level: str = "INFO"

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def _deep_merge(cls, base: dict, overlay: dict) -> dict:
        merged = dict(base)
        for k, v in (overlay or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                merged[k] = cls._deep_merge(base[k], v)
            else:
                merged[k] = v
        return merged

    @staticmethod
    def _section(section_cls: type, data: Any, name: str) -> Any:
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("Settings section '%s' must be a mapping; using defaults", name)
            return section_cls()
        known = {f.name for f in dataclasses.fields(section_cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown settings in '%s': %s", name, ", ".join(unknown))
        return section_cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def _from_dict(cls, data: dict) -> "SaveSettings":
        unknown = sorted(set(data) - {"storage", "autosave", "serializer", "log_level"})
        if unknown:
            logger.warning("Ignoring unknown settings: %s", ", ".join(unknown))
        settings = SaveSettings(
            storage=cls._section(StorageSettings, data.get("storage"), "storage"),
            autosave=cls._section(AutoSaveSettings, data.get("autosave"), "autosave"),
            serializer=cls._section(SerializerSettings, data.get("serializer"), "serializer"),
            log_level=str(data.get("log_level", "INFO")),
        )
        settings.autosave.interval = float(settings.autosave.interval)
        if settings.autosave.interval <= 0:
            raise ValueError(f"autosave.interval must be positive, got {settings.autosave.interval}")
        return settings

    @staticmethod
    def _env_overrides() -> dict:
        overlay: Dict[str, Any] = {}
        if os.getenv(ENV_SAVE_NAME):
            overlay.setdefault("storage", {})["save_name"] = os.environ[ENV_SAVE_NAME]
        if os.getenv(ENV_SAVE_DIR):
            overlay.setdefault("storage", {})["save_folder"] = os.environ[ENV_SAVE_DIR]
        if os.getenv(ENV_AUTOSAVE_INTERVAL):
            raw = os.environ[ENV_AUTOSAVE_INTERVAL]
            try:
                overlay.setdefault("autosave", {})["interval"] = float(raw)
            except ValueError:
                logger.warning("Ignoring %s=%r; not a number", ENV_AUTOSAVE_INTERVAL, raw)
        if os.getenv(ENV_LOG_LEVEL):
            overlay["log_level"] = os.environ[ENV_LOG_LEVEL]
        return overlay

    @classmethod
    def load(cls, user_path: Optional[Path] = None) -> "SaveSettings":
        """Load settings from built-in defaults, an optional YAML file and the environment.

        Later sources win: defaults < user file < KEEPSAKE_* environment variables.
        """
        try:
            with resources.files("keepsake.config").joinpath("default_settings.yaml").open("r", encoding="utf-8") as f:
                default_data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Default settings not found; falling back to dataclass defaults.")
            default_data = dataclasses.asdict(SaveSettings())

        user_data = {}
        if user_path is not None:
            if user_path.exists():
                user_data = cls._load_yaml(user_path)
                logger.info("Loaded user settings from %s", user_path)
            else:
                logger.warning("User settings file not found: %s", user_path)

        merged = cls._deep_merge(default_data, user_data)
        merged = cls._deep_merge(merged, cls._env_overrides())
        settings = cls._from_dict(merged)
        logger.debug("Settings merged: %s", settings)
        return settings

    @property
    def log_level_value(self) -> int:
        return level_from_name(self.log_level)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(dataclasses.asdict(self), f, sort_keys=False)
        logger.info("Saved settings to %s", path)
