"""fetch command: download a change's patchset ref into the local repository."""

from __future__ import annotations

import logging

import click
from rich.console import Console

from gerry_cli.git import NO_HOOKS, fetch_ref, git, head_summary, require_git_repository
from gerry_cli.session import change_argument, get_client, get_profile, handle_errors
from gerry_core.refs import build_ref_path, require_current_patchset

logger = logging.getLogger(__name__)
console = Console()


@click.command("fetch")
@click.argument("change", callback=change_argument)
@click.argument("patchset", required=False, type=click.IntRange(min=1))
@click.option("--checkout/--no-checkout", default=True, show_default=True, help="Check out FETCH_HEAD after fetching.")
@click.option("--no-verify", is_flag=True, default=False, help="Skip git hooks during checkout.")
@click.pass_context
@handle_errors
def fetch_cmd(ctx, change: str, patchset: int | None, checkout: bool, no_verify: bool):
    """Fetch CHANGE (current patchset unless PATCHSET is given) and check it out."""
    require_git_repository()

    profile = get_profile(ctx)
    client = get_client(ctx, profile=profile)
    info = client.get_change(change)
    if patchset is None:
        patchset = require_current_patchset(info)

    ref = build_ref_path(info.number, patchset)
    logger.debug("Fetching from ref %s", ref)
    console.print(
        f"Fetching change [bold cyan]{info.number}[/bold cyan] "
        f"(patchset [bold yellow]{patchset}[/bold yellow]) from {profile.server}..."
    )

    fetch_ref(profile, ref)
    console.print("[green]✓[/green] Successfully fetched change")

    if checkout:
        # git checkout has no --no-verify; disabling the hooks path skips post-checkout.
        args = NO_HOOKS if no_verify else ()
        result = git(*args, "checkout", "FETCH_HEAD")
        if result.returncode != 0:
            raise click.ClickException(f"checkout failed: {result.stderr.strip()}")
        head = head_summary()
        if head:
            console.print(f"HEAD is now at [dim]{head}[/dim]")

    console.print(f"\nChange [bold cyan]{info.number}[/bold cyan] is ready for review ({ref})")
    if not checkout:
        console.print("Use 'git checkout FETCH_HEAD' to switch to the fetched change")
