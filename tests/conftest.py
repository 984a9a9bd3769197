from __future__ import annotations

import shutil
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tests._candles import make_candles  # noqa: E402
from tradesim.core.config import Config  # noqa: E402
from tradesim.core.types import Candle  # noqa: E402


@pytest.fixture()
def candle_factory() -> Callable[..., list[Candle]]:
    return make_candles


@pytest.fixture()
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture()
def config_dir(temp_dir: Path) -> Path:
    """Copy of the repo config tree (default + presets) in a temp directory."""

    dst = temp_dir / "config"
    dst.mkdir(parents=True, exist_ok=True)
    shutil.copy2(REPO_ROOT / "config" / "default.yaml", dst / "default.yaml")
    shutil.copytree(REPO_ROOT / "config" / "presets", dst / "presets")
    return dst


@pytest.fixture()
def test_config(config_dir: Path) -> Config:
    return Config.from_yaml(config_dir / "default.yaml")
