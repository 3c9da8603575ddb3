"""Root logger setup for the ``keepsake`` command line and host applications."""
import logging
import os
import sys
from typing import Union

LOG_LEVEL_ENV = "KEEPSAKE_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s: %(message)s"


def level_from_name(name: Union[int, str, None], default: int = logging.INFO) -> int:
    """Resolve ``"debug"``, ``"WARNING"`` or a numeric level; unknown names give ``default``."""
    if isinstance(name, int):
        return name
    if not name:
        return default
    text = str(name).strip()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    return level if isinstance(level, int) else default


def configure_logging(level: Union[int, str] = logging.INFO) -> int:
    """Install a single stdout handler on the root logger and return the level used.

    ``level`` may be a level name such as ``settings.log_level``. The
    KEEPSAKE_LOG_LEVEL environment variable wins over it when set. Calling this
    again replaces the handler instead of adding a second one.
    """
    resolved = level_from_name(level)
    resolved = level_from_name(os.getenv(LOG_LEVEL_ENV), resolved)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(resolved)
    logging.getLogger(__name__).debug("Logging configured at %s", logging.getLevelName(resolved))
    return resolved
