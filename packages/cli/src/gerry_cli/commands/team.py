"""team command: changes where you are a reviewer or CC."""

from __future__ import annotations

import click
from rich.console import Console

from gerry_cli.render import changes_table, print_change
from gerry_cli.session import get_client, get_profile, handle_errors

console = Console()


def build_team_query(user: str, status: str = "open", all_verified: bool = False, extra: str | None = None) -> str:
    """Reviewer-or-CC query for ``user``.

    Open changes exclude ignored and WIP changes, and the user's own changes
    on the reviewer side. Unless ``all_verified``, only Verified+1 changes
    are kept.
    """
    verified = "" if all_verified else " label:Verified=1"

    if status == "open":
        base = f"is:open -is:ignored -is:wip -status:merged{verified}"
        query = f"({base} cc:{user} OR is:open -owner:{user} -is:wip -is:ignored -status:merged{verified} reviewer:{user})"
    elif status == "merged":
        query = f"(status:merged{verified} cc:{user} OR status:merged{verified} reviewer:{user})"
    else:
        base = f"status:{status} -status:merged{verified}"
        query = f"({base} cc:{user} OR {base} reviewer:{user})"

    if extra:
        query = f"{query} {extra}"
    return query


@click.command("team")
@click.option("--status", default="open", show_default=True, help="Change status (open, merged, abandoned).")
@click.option("--limit", "-n", default=25, show_default=True, help="Maximum number of changes to show.")
@click.option("--detailed", is_flag=True, default=False, help="Show one block per change instead of a table.")
@click.option("--all-verified", is_flag=True, default=False, help="Include changes without Verified+1.")
@click.option("--filter", "extra", default=None, help="Extra Gerrit query terms appended verbatim.")
@click.pass_context
@handle_errors
def team_cmd(ctx, status: str, limit: int, detailed: bool, all_verified: bool, extra: str | None):
    """List changes where you are a reviewer or CC'd."""
    if limit < 1:
        raise click.UsageError("--limit must be at least 1.")

    profile = get_profile(ctx)
    client = get_client(ctx, profile=profile)

    changes = client.list_changes(build_team_query(profile.user, status, all_verified, extra), limit)
    if not changes:
        console.print("[yellow]No changes found where you are a reviewer or CC'd.[/yellow]")
        return

    if detailed:
        for i, change in enumerate(changes):
            if i:
                console.print()
            print_change(console, change, summary=True)
        return

    console.print(changes_table(changes, f"Team changes ({status})"))
