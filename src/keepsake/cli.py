from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from .admissibility import is_serializable_recursively
from .errors import ParseError, SaveError, ShapeMismatchError
from .inspector import SaveInspector
from .logging_config import configure_logging
from .paths import get_save_dir
from .serializer import JsonSerializer
from .settings import SaveSettings

logger = logging.getLogger(__name__)


def load_shape(target: str) -> Any:
    """Import a data shape given as ``package.module:ClassName``."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Shape must look like 'module:ClassName', got {target!r}")
    module = importlib.import_module(module_name)
    obj: Any = module
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


def _search_dirs(args: argparse.Namespace) -> List[Path]:
    if args.dirs:
        return [Path(d) for d in args.dirs]
    settings = SaveSettings.load(user_path=args.settings_path)
    if settings.storage.save_folder:
        return [Path(settings.storage.save_folder)]
    return [get_save_dir()]


def _cmd_list(args: argparse.Namespace) -> int:
    inspector = SaveInspector(search_dirs=_search_dirs(args))
    files = inspector.find_save_files()
    if not files:
        print("No save files found.")
        return 0
    for path in files:
        print(path)
    return 0


def _cmd_show(args: argparse.Namespace) -> int:
    try:
        print(SaveInspector().read(args.path))
    except SaveError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    return 0


def _cmd_validate(args: argparse.Namespace) -> int:
    try:
        shape = load_shape(args.shape)
    except (ImportError, AttributeError, ValueError) as e:
        print(f"ERROR: cannot load shape {args.shape!r}: {e}", file=sys.stderr)
        return 2

    serializer = JsonSerializer()
    if not is_serializable_recursively(shape, registry=serializer.registry):
        print(f"ERROR: {args.shape} is not a serializable data shape", file=sys.stderr)
        return 1

    inspector = SaveInspector()
    success = True
    for p in args.paths:
        try:
            serializer.deserialize(inspector.read(p), shape)
            print(f"OK: {p}")
        except (ParseError, ShapeMismatchError) as e:
            success = False
            print(f"INVALID: {p}: {e}")
        except SaveError as e:
            success = False
            print(f"ERROR: {p}: {e}")

    return 0 if success else 1


def _cmd_backup(args: argparse.Namespace) -> int:
    try:
        dest = SaveInspector().backup(args.path, dest_dir=args.dest)
    except SaveError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    print(dest)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="keepsake", description="Inspect and maintain save files")
    p.add_argument("--debug", action="store_true", help="Enable verbose debug logging.")
    p.add_argument(
        "--settings",
        dest="settings_path",
        type=Path,
        default=None,
        help="Path to a settings YAML file used to locate the save folder.",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    ls = sub.add_parser("list", help="List save files")
    ls.add_argument("dirs", nargs="*", help="Directories to scan (default: the configured save folder)")
    ls.set_defaults(func=_cmd_list)

    show = sub.add_parser("show", help="Print a save file")
    show.add_argument("path")
    show.set_defaults(func=_cmd_show)

    v = sub.add_parser("validate", help="Check that save files parse into a data shape")
    v.add_argument("paths", nargs="+", help="Save files to check")
    v.add_argument("--shape", required=True, help="Data shape as 'package.module:ClassName'")
    v.set_defaults(func=_cmd_validate)

    b = sub.add_parser("backup", help="Copy a save file to a timestamped backup")
    b.add_argument("path")
    b.add_argument("--dest", default=None, help="Backup folder (default: next to the file)")
    b.set_defaults(func=_cmd_backup)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=logging.DEBUG if args.debug else logging.WARNING)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
