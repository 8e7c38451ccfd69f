"""list command: your own changes, or the ones waiting on your review."""

from __future__ import annotations

import click
from rich.console import Console

from gerry_cli.render import changes_table, print_change
from gerry_cli.session import get_client, get_profile, handle_errors
from gerry_core.models import Query

console = Console()


@click.command("list")
@click.option("--reviewer", is_flag=True, default=False, help="Show changes where you are a reviewer.")
@click.option("--status", default="open", show_default=True, help="Change status (open, merged, abandoned).")
@click.option("--limit", "-n", default=25, show_default=True, help="Maximum number of changes to show.")
@click.option("--detailed", is_flag=True, default=False, help="Show one block per change instead of a table.")
@click.option("--project", default=None, help="Only changes in this project. Overrides the configured default.")
@click.option("--query", "extra", default=None, help="Extra Gerrit query terms appended verbatim.")
@click.pass_context
@handle_errors
def list_cmd(
    ctx,
    reviewer: bool,
    status: str,
    limit: int,
    detailed: bool,
    project: str | None,
    extra: str | None,
):
    """List your open changes, or with --reviewer those that need your review."""
    if limit < 1:
        raise click.UsageError("--limit must be at least 1.")

    profile = get_profile(ctx)
    client = get_client(ctx, profile=profile)
    user = profile.user
    query = Query(
        owner=None if reviewer else user,
        reviewer=user if reviewer else None,
        status=status,
        project=project or profile.project,
        terms=(extra,) if extra else (),
        limit=limit,
        detailed=detailed,
    )

    changes = client.list_changes(query)
    if not changes:
        console.print(
            "[yellow]No changes found that need your review.[/yellow]"
            if reviewer
            else "[yellow]No changes found.[/yellow]"
        )
        return

    if detailed:
        for i, change in enumerate(changes):
            if i:
                console.print()
            print_change(console, change, summary=True)
        return

    title = "Changes needing your review" if reviewer else f"Your {status} changes"
    console.print(changes_table(changes, title))
