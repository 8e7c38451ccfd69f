"""comments command: review comments grouped into threads."""

from __future__ import annotations

import click
from rich.console import Console

from gerry_cli.render import print_threads
from gerry_cli.session import change_argument, get_client, get_config, handle_errors
from gerry_core.threads import count_unresolved, filter_threads, resolve_threads

console = Console()


@click.command("comments")
@click.argument("change", callback=change_argument)
@click.option("--all", "show_all", is_flag=True, default=False, help="Include resolved threads.")
@click.pass_context
@handle_errors
def comments_cmd(ctx, change: str, show_all: bool):
    """Show unresolved comment threads on CHANGE.

    A thread is resolved when its latest comment is marked resolved or
    replies with one of the configured resolution phrases ("Done").
    """
    comments = get_client(ctx).get_comments(change)
    if not comments:
        console.print("No comments found on this change.")
        return

    phrases = get_config(ctx).get("resolution_phrases") or ["Done"]
    threads = resolve_threads(comments, phrases)
    shown = filter_threads(threads, show_all=show_all)
    if not shown:
        console.print("[yellow]No unresolved comments found. Use --all to show all comments.[/yellow]")
        return

    print_threads(console, shown)

    total = sum(len(t) for t in shown)
    if show_all:
        unresolved = sum(len(t) for t in threads if not t.resolved)
        summary = f"Total comments: [bold]{total}[/bold]"
        if unresolved:
            summary += f" ([bold red]{unresolved}[/bold red] unresolved)"
        console.print(summary)
    else:
        console.print(
            f"Unresolved comments: [bold red]{total}[/bold red] in {count_unresolved(threads)} thread(s)"
        )
