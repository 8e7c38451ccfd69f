"""Rich rendering shared by the change-listing commands."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gerry_core.models import Change, Thread
from gerry_core.refs import resolve_current_patchset

_STATUS_STYLE = {
    "NEW": "green",
    "MERGED": "magenta",
    "ABANDONED": "red",
}


def styled_status(status: str) -> str:
    style = _STATUS_STYLE.get(status.upper(), "white")
    return f"[{style}]{status}[/{style}]"


def format_votes(change: Change) -> str:
    """``Code-Review+2 Verified-1``, strongest vote per label."""
    scores = []
    for label in sorted(change.labels):
        votes = change.labels[label]
        if not votes:
            continue
        strongest = max(votes, key=lambda v: abs(v.value)).value
        style = "green" if strongest > 0 else "red"
        scores.append(f"[{style}]{label}{strongest:+d}[/{style}]")
    return " ".join(scores)


def changes_table(changes: list[Change], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Change", style="bold", width=8)
    table.add_column("Subject", max_width=50)
    table.add_column("Project")
    table.add_column("Owner")
    table.add_column("Status", width=10)
    table.add_column("Updated", width=19)
    table.add_column("Reviews")

    for change in changes:
        table.add_row(
            change.number,
            escape(change.subject[:50]),
            change.project,
            change.owner,
            styled_status(change.status),
            change.updated[:19],
            format_votes(change) or "[dim]none[/dim]",
        )
    return table


def print_change(console: Console, change: Change, summary: bool = False) -> None:
    """Key/value view of one change. ``summary`` omits the detail-only fields."""
    console.print(f"[bold cyan]Change:[/bold cyan] [bold]{change.number}[/bold]")
    console.print(f"[bold cyan]Subject:[/bold cyan] {escape(change.subject)}")
    console.print(f"[bold cyan]Status:[/bold cyan] {styled_status(change.status)}")
    console.print(f"[bold cyan]Project:[/bold cyan] {change.project}")
    console.print(f"[bold cyan]Branch:[/bold cyan] {change.branch}")
    if change.topic and not summary:
        console.print(f"[bold cyan]Topic:[/bold cyan] {change.topic}")
    console.print(f"[bold cyan]Owner:[/bold cyan] {change.owner}")
    if not summary:
        patchset = resolve_current_patchset(change)
        if patchset is not None:
            console.print(f"[bold cyan]Patch Set:[/bold cyan] {patchset}")
        if change.created:
            console.print(f"[bold cyan]Created:[/bold cyan] {change.created[:19]}")
    if change.updated:
        console.print(f"[bold cyan]Updated:[/bold cyan] {change.updated[:19]}")
    if change.url and not summary:
        console.print(f"[bold cyan]URL:[/bold cyan] [cyan]{change.url}[/cyan]")
    console.print(f"[bold cyan]Reviews:[/bold cyan] {format_votes(change) or '[dim]none[/dim]'}")


def print_threads(console: Console, threads: list[Thread]) -> None:
    current_file = None
    for thread in threads:
        if thread.file != current_file:
            if current_file is not None:
                console.print()
            current_file = thread.file
            console.print(f"[bold cyan]File:[/bold cyan] [bold]{thread.file}[/bold]")
            console.print("=" * (len(thread.file) + 6))

        for comment in thread.comments:
            header = f"[bold blue]Author:[/bold blue] {comment.author}"
            if comment.line > 0:
                header += f" [dim]Line:[/dim] [yellow]{comment.line}[/yellow]"
            if comment.updated:
                header += f" [dim]Updated:[/dim] {comment.updated[:19]}"
            if comment.unresolved:
                header += " [bold red]\\[UNRESOLVED][/bold red]"
            console.print(header)
            for line in comment.message.splitlines():
                console.print(f"  {line}", markup=False, highlight=False)
            console.print()
