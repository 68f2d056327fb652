"""Allow running as ``python -m phpthrows``."""

from phpthrows.cli.main import cli

if __name__ == "__main__":
    cli()
