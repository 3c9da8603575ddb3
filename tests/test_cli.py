from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from keepsake.cli import load_shape, main

SHAPE_MODULE = textwrap.dedent(
    """
    from keepsake import Vector3, serializable

    @serializable
    class CliSave:
        score: int = 42
        position: Vector3 = Vector3()

    class NotAShape:
        pass
    """
)


@pytest.fixture()
def shape_module(tmp_path, monkeypatch):
    pkg = tmp_path / "shapes_pkg"
    pkg.mkdir()
    (pkg / "cli_shapes.py").write_text(SHAPE_MODULE, encoding="utf-8")
    monkeypatch.syspath_prepend(str(pkg))
    return "cli_shapes"


@pytest.fixture(autouse=True)
def restore_logging():
    import logging

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def test_list_prints_save_files(tmp_path, capsys):
    (tmp_path / "a.save").write_text("{}", encoding="utf-8")
    (tmp_path / "b.txt").write_text("{}", encoding="utf-8")

    assert main(["list", str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert "a.save" in out
    assert "b.txt" not in out


def test_list_uses_configured_save_dir(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("KEEPSAKE_SAVE_DIR", str(tmp_path))
    assert main(["list"]) == 0
    assert "No save files found." in capsys.readouterr().out


def test_show_prints_document(tmp_path, capsys):
    path = tmp_path / "Saves.save"
    path.write_text('{"score": 5}', encoding="utf-8")
    assert main(["show", str(path)]) == 0
    assert '{"score": 5}' in capsys.readouterr().out


def test_show_missing_file(tmp_path, capsys):
    assert main(["show", str(tmp_path / "missing.save")]) == 1
    assert "ERROR" in capsys.readouterr().err


def test_validate_reports_each_file(tmp_path, shape_module, capsys):
    good = tmp_path / "good.save"
    good.write_text('{"score": 1, "position": {"x": 1, "y": 2, "z": 3}}', encoding="utf-8")
    bad = tmp_path / "bad.save"
    bad.write_text('{"position": "up"}', encoding="utf-8")

    assert main(["validate", "--shape", f"{shape_module}:CliSave", str(good)]) == 0
    assert main(["validate", "--shape", f"{shape_module}:CliSave", str(good), str(bad)]) == 1

    out = capsys.readouterr().out
    assert f"OK: {good}" in out
    assert f"INVALID: {bad}" in out


def test_validate_rejects_unmarked_shape(tmp_path, shape_module, capsys):
    path = tmp_path / "x.save"
    path.write_text("{}", encoding="utf-8")
    assert main(["validate", "--shape", f"{shape_module}:NotAShape", str(path)]) == 1
    assert "not a serializable data shape" in capsys.readouterr().err


@pytest.mark.parametrize("target", ["no_colon", "missing_module_xyz:Thing", "keepsake:Nope"])
def test_validate_bad_shape_is_usage_error(tmp_path, target):
    path = tmp_path / "x.save"
    path.write_text("{}", encoding="utf-8")
    assert main(["validate", "--shape", target, str(path)]) == 2


def test_backup_command(tmp_path, capsys):
    src = tmp_path / "Saves.save"
    src.write_text("{}", encoding="utf-8")
    dest = tmp_path / "bk"

    assert main(["backup", str(src), "--dest", str(dest)]) == 0
    printed = Path(capsys.readouterr().out.strip())
    assert printed.parent == dest
    assert printed.read_text(encoding="utf-8") == "{}"


def test_backup_missing_file(tmp_path):
    assert main(["backup", str(tmp_path / "missing.save")]) == 1


def test_load_shape_imports_by_name():
    from keepsake import Vector3

    assert load_shape("keepsake.composites:Vector3") is Vector3
