"""analyze command: statistics over merged changes in a date range."""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path

import click
from rich.console import Console

from gerry_cli.session import get_config, get_profile, handle_errors
from gerry_core.analysis import build_report
from gerry_core.bulk import DEFAULT_MAX_TOTAL, DEFAULT_PAGE_SIZE, fetch_all
from gerry_core.gerrit.rest import RestClient
from gerry_core.report import render

logger = logging.getLogger(__name__)

# Reports go to stdout; progress goes to stderr so output can be piped.
console = Console(stderr=True)


def _validate_date(ctx, param, value: str) -> str:
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as e:
        raise click.BadParameter("use YYYY-MM-DD") from e
    return value


@click.command("analyze")
@click.option(
    "--start-date",
    "-s",
    default=lambda: date(date.today().year, 1, 1).isoformat(),
    show_default="January 1st of this year",
    callback=_validate_date,
    help="Start date (YYYY-MM-DD).",
)
@click.option(
    "--end-date",
    "-e",
    default=lambda: date.today().isoformat(),
    show_default="today",
    callback=_validate_date,
    help="End date (YYYY-MM-DD).",
)
@click.option("--repo", "-r", default=None, help="Only changes in this repository (project).")
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(["markdown", "md", "json", "csv"], case_sensitive=False),
    default="markdown",
    show_default=True,
    help="Report format.",
)
@click.option("--output", "-o", "output_path", default=None, help="Write the report to this file instead of stdout.")
@click.option("--page-size", default=DEFAULT_PAGE_SIZE, show_default=True, type=click.IntRange(min=1), help="Changes per request.")
@click.option(
    "--max-changes",
    default=DEFAULT_MAX_TOTAL,
    show_default=True,
    type=click.IntRange(min=1),
    help="Safety limit on the total number of changes fetched.",
)
@click.option("--timeout", default=None, type=float, help="Request timeout in seconds.  [default: analyze_timeout, 300]")
@click.pass_context
@handle_errors
def analyze_cmd(
    ctx,
    start_date: str,
    end_date: str,
    repo: str | None,
    fmt: str,
    output_path: str | None,
    page_size: int,
    max_changes: int,
    timeout: float | None,
):
    """Analyze merged changes across repositories within a date range.

    Fetches every merged change page by page over the REST API and reports
    counts per repository, per author and per month.

    \b
    Examples:
      gerry analyze --start-date 2025-01-01 --end-date 2025-12-31
      gerry analyze --repo my-project --format json --output changes.json
    """
    if start_date > end_date:
        raise click.UsageError("--start-date must not be after --end-date.")

    timeout = timeout if timeout is not None else float(get_config(ctx).get("analyze_timeout") or 300)
    rest = RestClient(get_profile(ctx), timeout=timeout)
    logger.debug("Using timeout: %ss", timeout)

    console.print(f"Analyzing changes from {start_date} to {end_date}")
    console.print(f"Repository filter: {repo}" if repo else "Analyzing all repositories")

    result = fetch_all(
        rest,
        start_date,
        end_date,
        project=repo,
        page_size=page_size,
        max_total=max_changes,
        on_page=lambda total: console.print(f"[dim]Fetched {total} changes so far...[/dim]"),
    )

    if not result.changes:
        console.print("[yellow]No changes found in the specified date range.[/yellow]")
        return

    console.print(f"[green]✓[/green] Fetched {len(result)} total changes")
    if not result.complete:
        console.print(
            f"[yellow]Partial result ({result.stop_reason.value}); more changes may exist. "
            "Raise --max-changes or narrow the date range.[/yellow]"
        )

    report = build_report(result, start_date, end_date, repository=repo)
    text = render(report, fmt)

    if output_path:
        Path(output_path).write_text(text)
        console.print(f"[green]✓[/green] Report written to {output_path}")
    else:
        click.echo(text, nl=not text.endswith("\n"))
