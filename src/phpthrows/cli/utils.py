"""CLI utilities."""

from pathlib import Path

from phpthrows.analysis.discovery import find_project_root


def resolve_project_root(path: Path, max_depth: int = 10) -> Path:
    """Directory whose config and cache apply to ``path``.

    The enclosing composer project when there is one, otherwise the path
    itself (or its directory for a file). A path that does not exist falls
    back to the current working directory.
    """
    if not path.exists():
        return Path.cwd()
    root = find_project_root(path, max_depth)
    if root is not None:
        return root
    return path if path.is_dir() else path.parent


def cache_root_for(path: Path, max_depth: int = 10) -> Path | None:
    """Directory holding the cache that ``phpthrows analyze PATH`` uses.

    A directory is its own cache root; a file uses its composer project's.
    """
    if path.is_dir():
        return path
    return find_project_root(path, max_depth)
