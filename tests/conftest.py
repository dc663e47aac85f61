from __future__ import annotations

import logging
import shutil
import sys
from pathlib import Path

import pytest

# pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from snowball.core.config import Config  # noqa: E402


@pytest.fixture()
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture()
def test_config(temp_dir: Path) -> Config:
    """Config loaded from a copy of the repo's config directory."""

    cfg_src = REPO_ROOT / "config" / "default.yaml"
    cfg_dst_dir = temp_dir / "config"
    cfg_dst_dir.mkdir(parents=True, exist_ok=True)

    shutil.copy2(cfg_src, cfg_dst_dir / "default.yaml")
    shutil.copytree(REPO_ROOT / "config" / "presets", cfg_dst_dir / "presets")

    return Config.from_yaml(cfg_dst_dir / "default.yaml")


@pytest.fixture()
def frictionless_config(test_config: Config) -> Config:
    backtest = test_config.backtest.model_copy(update={"commission_rate": 0.0, "slippage": 0.0})
    return test_config.model_copy(update={"backtest": backtest})


@pytest.fixture(autouse=True)
def _reset_snowball_logger():
    """Entry points install a handler bound to the captured stderr of the test that ran them."""

    yield
    logger = logging.getLogger("snowball")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
