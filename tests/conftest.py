import sys
from pathlib import Path

import pytest

# Import keepsake from src/ without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))


@pytest.fixture(autouse=True)
def isolated_save_dir(tmp_path, monkeypatch):
    """Keep default file storage out of the real user data directory."""
    save_dir = tmp_path / "user_saves"
    monkeypatch.setenv("KEEPSAKE_SAVE_DIR", str(save_dir))
    return save_dir
