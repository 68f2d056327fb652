"""phpthrows analyze command - check @throws documentation.

Exit codes:
    0 - no diagnostics
    1 - at least one diagnostic
    2 - invalid input, bad configuration or internal failure
"""

import json
from pathlib import Path
from typing import Any

import click
import structlog
from rich.console import Console
from rich.table import Table

from phpthrows.analysis.analyzer import Analyzer
from phpthrows.analysis.models import AnalysisResult
from phpthrows.cli.utils import resolve_project_root
from phpthrows.config.loader import load_config
from phpthrows.core.errors import InternalError, PhpThrowsError
from phpthrows.core.logging import configure_logging

log = structlog.get_logger(__name__)

EXIT_CLEAN = 0
EXIT_ERRORS_FOUND = 1
EXIT_FAILURE = 2


def _emit_error(error: PhpThrowsError) -> None:
    click.echo(json.dumps({"error": error.to_dict()}, ensure_ascii=False))


def _render_text(result: AnalysisResult) -> None:
    console = Console()
    for report in result.files:
        table = Table(title=report.file, title_justify="left", show_lines=False)
        table.add_column("Line", justify="right", style="cyan", no_wrap=True)
        table.add_column("Type", style="magenta")
        table.add_column("Function")
        table.add_column("Message")
        for error in report.errors:
            table.add_row(str(error.line), error.type.value, error.function or "", error.message)
        console.print(table)

    summary = result.summary
    style = "red" if summary.total_errors else "green"
    console.print(
        f"[{style}]{summary.total_errors} error(s)[/{style}] in "
        f"{summary.files_with_errors} of {summary.total_files} file(s)"
    )


def _render_json(result: AnalysisResult) -> None:
    payload: dict[str, Any] = result.to_dict()
    click.echo(json.dumps(payload, ensure_ascii=False))


@click.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.option(
    "--no-project-scan",
    is_flag=True,
    help="Only index the given file, not its composer project",
)
@click.option(
    "--exclude-pattern",
    "exclude_patterns",
    multiple=True,
    help="Regex excluding matching paths (repeatable; replaces the defaults)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"]),
    default="json",
    show_default=True,
    help="Output format",
)
@click.pass_context
def analyze_command(
    ctx: click.Context,
    path: Path,
    no_project_scan: bool,
    exclude_patterns: tuple[str, ...],
    output_format: str,
) -> None:
    """Check that @throws tags match the exceptions PATH can raise.

    PATH is a PHP file or a directory. Results go to stdout; logs go to
    stderr.
    """
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    try:
        config = load_config(resolve_project_root(path))
        if not verbose:
            configure_logging(config=config.logging)
        result = Analyzer(config).analyze(
            path,
            use_project_wide_analysis=False if no_project_scan else None,
            exclude_patterns=list(exclude_patterns) or None,
        )
    except PhpThrowsError as e:
        log.debug("analyze_failed", error=e.error_name, message=e.message)
        _emit_error(e)
        ctx.exit(EXIT_FAILURE)
    except Exception as e:
        log.exception("analyze_crashed")
        _emit_error(InternalError.unexpected(str(e), exception=type(e).__name__))
        ctx.exit(EXIT_FAILURE)

    if output_format == "text":
        _render_text(result)
    else:
        _render_json(result)

    ctx.exit(EXIT_ERRORS_FOUND if result.summary.total_errors > 0 else EXIT_CLEAN)
