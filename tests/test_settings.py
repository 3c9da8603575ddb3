from __future__ import annotations

import logging
import textwrap
from pathlib import Path

import pytest

from keepsake import SaveSettings
from keepsake.logging_config import configure_logging, level_from_name

ENV_VARS = ["KEEPSAKE_SAVE_NAME", "KEEPSAKE_SAVE_DIR", "KEEPSAKE_AUTOSAVE_INTERVAL", "KEEPSAKE_LOG_LEVEL"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_from_packaged_yaml():
    settings = SaveSettings.load()
    assert settings.storage.save_name == "Saves"
    assert settings.storage.save_folder is None
    assert settings.autosave.enabled is False
    assert settings.autosave.interval == 15.0
    assert settings.serializer.indent == 2
    assert settings.log_level_value == logging.INFO


def test_user_file_overlays_defaults(tmp_path: Path):
    user = tmp_path / "settings.yaml"
    user.write_text(
        textwrap.dedent(
            """
            autosave:
              enabled: true
              interval: 5
            log_level: debug
            """
        ),
        encoding="utf-8",
    )
    settings = SaveSettings.load(user_path=user)
    assert settings.autosave.enabled is True
    assert settings.autosave.interval == 5.0
    assert settings.storage.save_name == "Saves"
    assert settings.log_level_value == logging.DEBUG


def test_environment_wins_over_file(monkeypatch, tmp_path: Path):
    user = tmp_path / "settings.yaml"
    user.write_text("storage:\n  save_name: fromfile\nautosave:\n  interval: 5\n", encoding="utf-8")
    monkeypatch.setenv("KEEPSAKE_SAVE_NAME", "fromenv")
    monkeypatch.setenv("KEEPSAKE_SAVE_DIR", str(tmp_path / "saves"))
    monkeypatch.setenv("KEEPSAKE_AUTOSAVE_INTERVAL", "3")

    settings = SaveSettings.load(user_path=user)
    assert settings.storage.save_name == "fromenv"
    assert settings.storage.save_folder == str(tmp_path / "saves")
    assert settings.autosave.interval == 3.0


def test_bad_env_interval_is_ignored(monkeypatch, caplog):
    monkeypatch.setenv("KEEPSAKE_AUTOSAVE_INTERVAL", "soon")
    settings = SaveSettings.load()
    assert settings.autosave.interval == 15.0
    assert "KEEPSAKE_AUTOSAVE_INTERVAL" in caplog.text


def test_unknown_keys_are_ignored_with_warning(tmp_path: Path, caplog):
    user = tmp_path / "settings.yaml"
    user.write_text("storage:\n  compression: zstd\ncolour: blue\n", encoding="utf-8")
    settings = SaveSettings.load(user_path=user)
    assert settings.storage.save_name == "Saves"
    assert "compression" in caplog.text
    assert "colour" in caplog.text


def test_non_positive_interval_rejected(tmp_path: Path):
    user = tmp_path / "settings.yaml"
    user.write_text("autosave:\n  interval: 0\n", encoding="utf-8")
    with pytest.raises(ValueError):
        SaveSettings.load(user_path=user)


def test_missing_user_file_falls_back(tmp_path: Path, caplog):
    settings = SaveSettings.load(user_path=tmp_path / "nope.yaml")
    assert settings.storage.save_name == "Saves"
    assert "not found" in caplog.text


def test_save_and_reload(tmp_path: Path):
    settings = SaveSettings()
    settings.storage.save_name = "slot2"
    settings.autosave.interval = 30.0
    path = tmp_path / "out" / "settings.yaml"
    settings.save(path)

    reloaded = SaveSettings.load(user_path=path)
    assert reloaded == settings


def test_configure_logging_replaces_handlers(monkeypatch):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        monkeypatch.setenv("KEEPSAKE_LOG_LEVEL", "error")
        configure_logging(logging.DEBUG)
        configure_logging(logging.DEBUG)
        assert len(root.handlers) == 1
        assert root.level == logging.ERROR
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("debug", logging.DEBUG),
        ("WARNING", logging.WARNING),
        (" error ", logging.ERROR),
        ("15", 15),
        (logging.INFO, logging.INFO),
    ],
)
def test_level_from_name(name, expected):
    assert level_from_name(name) == expected


def test_level_from_unknown_name_falls_back():
    assert level_from_name("chatty", logging.WARNING) == logging.WARNING
    assert level_from_name(None) == logging.INFO
    assert SaveSettings(log_level="nonsense").log_level_value == logging.INFO


def test_configure_logging_accepts_settings_level():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        assert configure_logging(SaveSettings(log_level="warning").log_level) == logging.WARNING
        assert root.level == logging.WARNING
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
