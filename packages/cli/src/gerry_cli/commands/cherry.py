"""cherry command: fetch a change's patchset and cherry-pick it onto HEAD."""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.markup import escape

from gerry_cli.git import NO_HOOKS, fetch_ref, git, has_uncommitted_changes, head_summary, require_git_repository
from gerry_cli.session import change_argument, get_client, get_profile, handle_errors
from gerry_core.refs import build_ref_path, require_current_patchset

logger = logging.getLogger(__name__)
console = Console()

# git cherry-pick exits with 1 when it stops on conflicts.
CONFLICT_EXIT_CODE = 1


@click.command("cherry")
@click.argument("change", callback=change_argument)
@click.argument("patchset", required=False, type=click.IntRange(min=1))
@click.option("--no-commit", "-n", is_flag=True, default=False, help="Apply the change without committing it.")
@click.option("--no-verify", is_flag=True, default=False, help="Skip git hooks during the cherry-pick.")
@click.pass_context
@handle_errors
def cherry_cmd(ctx, change: str, patchset: int | None, no_commit: bool, no_verify: bool):
    """Cherry-pick CHANGE (current patchset unless PATCHSET is given) onto HEAD."""
    require_git_repository()
    if has_uncommitted_changes():
        raise click.ClickException("Working directory is not clean. Please commit or stash your changes.")

    profile = get_profile(ctx)
    client = get_client(ctx, profile=profile)
    info = client.get_change(change)
    if patchset is None:
        patchset = require_current_patchset(info)

    ref = build_ref_path(info.number, patchset)
    logger.debug("Cherry-picking ref %s", ref)
    console.print(
        f"Cherry-picking change [bold cyan]{info.number}[/bold cyan] "
        f"(patchset [bold yellow]{patchset}[/bold yellow]) from {profile.server}..."
    )
    if info.subject:
        console.print(f"Subject: [dim]{escape(info.subject)}[/dim]")

    fetch_ref(profile, ref)
    console.print("[green]✓[/green] Fetched change")

    args = [*NO_HOOKS] if no_verify else []
    args.append("cherry-pick")
    if no_commit:
        args.append("--no-commit")
    result = git(*args, "FETCH_HEAD")

    if result.returncode == CONFLICT_EXIT_CODE:
        console.print("\n[yellow]Cherry-pick has conflicts.[/yellow] Resolve them and then:")
        console.print("  • git add <resolved-files>")
        console.print("  • git commit (when ready)" if no_commit else "  • git cherry-pick --continue")
        console.print("  • or run 'git cherry-pick --abort' to give up")
        return
    if result.returncode != 0:
        raise click.ClickException(f"cherry-pick failed: {result.stderr.strip()}")

    if no_commit:
        console.print(f"\n[green]✓[/green] Change [bold cyan]{info.number}[/bold cyan] applied (not committed)")
        console.print("Review the changes and commit when ready: git commit")
        return

    console.print(f"\n[green]✓[/green] Change [bold cyan]{info.number}[/bold cyan] cherry-picked")
    head = head_summary()
    if head:
        console.print(f"HEAD is now at [dim]{head}[/dim]")
