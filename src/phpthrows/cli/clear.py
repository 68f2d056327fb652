"""phpthrows clear-cache command - reset a project's method-throws cache."""

from pathlib import Path

import click
from rich.console import Console

from phpthrows.cache.manager import CacheManager
from phpthrows.cli.utils import cache_root_for, resolve_project_root
from phpthrows.config.loader import load_config
from phpthrows.core.errors import PhpThrowsError


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, path_type=Path))
def clear_cache_command(path: Path) -> None:
    """Empty the cache used when analyzing PATH.

    PATH is a directory (its own cache) or a file inside a composer project
    (the project's cache). Defaults to the current directory.
    """
    console = Console(stderr=True)
    try:
        config = load_config(resolve_project_root(path))
    except PhpThrowsError as e:
        raise click.ClickException(str(e)) from e

    root = cache_root_for(path, config.analysis.max_manifest_depth)
    if root is None:
        console.print("[yellow]Nothing to clear[/yellow] - no project cache for this path")
        return

    cache = CacheManager(root, config.cache.file_name)
    if not cache.cache_path.exists():
        console.print(f"[yellow]Nothing to clear[/yellow] - {cache.cache_path} does not exist")
        return

    cache.clear()
    try:
        cache.save()
    except OSError as e:
        raise click.ClickException(f"Failed to clear {cache.cache_path}: {e}") from e
    console.print(f"[green]✓[/green] Cleared {cache.cache_path}")
