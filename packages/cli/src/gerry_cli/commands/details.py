"""details command: one change in full."""

from __future__ import annotations

import click
from rich.console import Console

from gerry_cli.render import print_change
from gerry_cli.session import change_argument, get_client, handle_errors

console = Console()


@click.command("details")
@click.argument("change", callback=change_argument)
@click.pass_context
@handle_errors
def details_cmd(ctx, change: str):
    """Show status, owner, current patchset and votes for CHANGE."""
    print_change(console, get_client(ctx).get_change(change))
