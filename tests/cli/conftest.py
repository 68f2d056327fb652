"""Shared fixtures for CLI tests."""

from pathlib import Path
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def _no_global_config(tmp_path: Path):
    """Keep the developer's global config out of CLI runs."""
    with patch("phpthrows.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "global-none.yaml"):
        yield
