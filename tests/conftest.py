"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local phpthrows package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of phpthrows modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("phpthrows"):
        del sys.modules[module_name]


@pytest.fixture
def write_php(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a PHP source file under tmp_path and return its path."""

    def _write(relative: str, source: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source)
        return path

    return _write
