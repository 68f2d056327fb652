"""phpthrows CLI - phpthrows command."""

import click

from phpthrows import __version__
from phpthrows.cli.analyze import analyze_command
from phpthrows.cli.clear import clear_cache_command
from phpthrows.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="phpthrows")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """phpthrows - check @throws documentation in PHP code."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(analyze_command, name="analyze")
cli.add_command(clear_cache_command, name="clear-cache")


if __name__ == "__main__":
    cli()
