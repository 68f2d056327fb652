"""Tests for CLI utilities."""

from __future__ import annotations

from pathlib import Path

from phpthrows.cli.utils import cache_root_for, resolve_project_root


class TestResolveProjectRoot:
    """Tests for resolve_project_root function."""

    def test_composer_root_from_file(self, tmp_path: Path) -> None:
        (tmp_path / "composer.json").write_text("{}")
        nested = tmp_path / "src" / "Http"
        nested.mkdir(parents=True)
        source = nested / "A.php"
        source.write_text("<?php\n")

        assert resolve_project_root(source) == tmp_path

    def test_file_without_project(self, tmp_path: Path) -> None:
        source = tmp_path / "A.php"
        source.write_text("<?php\n")

        assert resolve_project_root(source, max_depth=1) == tmp_path

    def test_directory_without_project(self, tmp_path: Path) -> None:
        assert resolve_project_root(tmp_path, max_depth=1) == tmp_path

    def test_missing_path_uses_cwd(self, tmp_path: Path) -> None:
        assert resolve_project_root(tmp_path / "missing") == Path.cwd()


class TestCacheRootFor:
    """Tests for cache_root_for function."""

    def test_directory_is_its_own_root(self, tmp_path: Path) -> None:
        (tmp_path / "composer.json").write_text("{}")
        sub = tmp_path / "src"
        sub.mkdir()

        assert cache_root_for(sub) == sub

    def test_file_uses_composer_root(self, tmp_path: Path) -> None:
        (tmp_path / "composer.json").write_text("{}")
        source = tmp_path / "src" / "A.php"
        source.parent.mkdir()
        source.write_text("<?php\n")

        assert cache_root_for(source) == tmp_path

    def test_file_without_project(self, tmp_path: Path) -> None:
        source = tmp_path / "A.php"
        source.write_text("<?php\n")

        assert cache_root_for(source, max_depth=1) is None
