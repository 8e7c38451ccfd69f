"""tree commands: git worktrees for reviewing changes in isolation.

Worktrees live under ``<repo parent>/worktrees`` unless ``--path`` says
otherwise; a change's worktree is named ``change-<number>``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console

from gerry_cli.git import fetch_ref, git, has_uncommitted_changes, repository_root, require_git_repository
from gerry_cli.session import change_argument, get_client, get_profile, handle_errors
from gerry_core.refs import build_ref_path, require_current_patchset
from gerry_core.utils.validation import sanitize_filename

logger = logging.getLogger(__name__)
console = Console()

WORKTREE_DIR = "worktrees"


def worktree_base(path: str | None) -> Path:
    if path:
        return Path(path).expanduser().resolve()
    return Path(repository_root()).parent / WORKTREE_DIR


def change_worktree_name(number: str) -> str:
    return f"change-{number}"


def _add_worktree(target: Path, commitish: str) -> None:
    if target.exists():
        raise click.ClickException(f"worktree already exists at: {target}")
    result = git("worktree", "add", str(target), commitish)
    if result.returncode != 0:
        raise click.ClickException(f"failed to create worktree: {result.stderr.strip()}")
    console.print(f"\n[green]✓[/green] Worktree created at [bold green]{target}[/bold green]")
    console.print(f"Run 'cd {target}' to start working in it.")


def _list_worktrees() -> None:
    result = git("worktree", "list")
    if result.returncode != 0:
        raise click.ClickException(f"failed to list worktrees: {result.stderr.strip()}")
    console.print("Current worktrees:")
    console.print(result.stdout.rstrip(), markup=False, highlight=False)


@click.group("tree")
def tree_group():
    """Manage git worktrees for Gerrit changes."""


@tree_group.command("setup")
@click.argument("change", required=False, callback=change_argument)
@click.argument("patchset", required=False, type=click.IntRange(min=1))
@click.option("--path", "-p", "base_path", default=None, help="Base directory for worktrees (default: ../worktrees).")
@click.option("--name", "-n", default=None, help="Create a worktree for new work from HEAD instead of a change.")
@click.pass_context
@handle_errors
def setup_cmd(ctx, change: str | None, patchset: int | None, base_path: str | None, name: str | None):
    """Create a worktree at CHANGE (current patchset unless PATCHSET is given)."""
    require_git_repository()

    if name:
        if change:
            raise click.UsageError("Cannot give a change together with --name.")
        try:
            safe_name = sanitize_filename(name)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--name") from e
        base = worktree_base(base_path)
        base.mkdir(parents=True, exist_ok=True)
        console.print(f"Setting up worktree [bold cyan]{safe_name}[/bold cyan] from current HEAD...")
        _add_worktree(base / safe_name, "HEAD")
        return

    if not change:
        raise click.UsageError("Provide a change, or use --name for a worktree without one.")

    profile = get_profile(ctx)
    client = get_client(ctx, profile=profile)
    info = client.get_change(change)
    if patchset is None:
        patchset = require_current_patchset(info)

    base = worktree_base(base_path)
    target = base / change_worktree_name(info.number)
    if target.exists():
        raise click.ClickException(f"worktree already exists at: {target}")
    base.mkdir(parents=True, exist_ok=True)

    ref = build_ref_path(info.number, patchset)
    logger.debug("Worktree for ref %s at %s", ref, target)
    console.print(
        f"Setting up worktree for change [bold cyan]{info.number}[/bold cyan] "
        f"(patchset [bold yellow]{patchset}[/bold yellow])..."
    )
    fetch_ref(profile, ref)
    console.print("[green]✓[/green] Fetched change")
    _add_worktree(target, "FETCH_HEAD")


@tree_group.command("cleanup")
@click.argument("target", required=False)
@click.option("--path", "-p", "base_path", default=None, help="Base directory for worktrees (default: ../worktrees).")
@click.option("--force", "-f", is_flag=True, default=False, help="Remove even with uncommitted changes.")
def cleanup_cmd(target: str | None, base_path: str | None, force: bool):
    """Remove the worktree for TARGET (a change number, a --name, or a path).

    Without TARGET, lists the existing worktrees.
    """
    require_git_repository()
    if not target:
        _list_worktrees()
        return

    if target.startswith(("/", "./", "../", "~")):
        path = Path(target).expanduser()
    else:
        base = worktree_base(base_path)
        candidates = [base / change_worktree_name(target), base / target]
        path = next((c for c in candidates if c.exists()), None)
        if path is None:
            raise click.ClickException(
                f"worktree not found for '{target}' (tried {change_worktree_name(target)} and {target})"
            )

    if not path.exists():
        raise click.ClickException(f"worktree does not exist: {path}")
    if not force and has_uncommitted_changes(str(path)):
        raise click.ClickException("Worktree has uncommitted changes. Use --force to remove it anyway.")

    console.print(f"Removing worktree: {path}")
    args = ["worktree", "remove"]
    if force:
        args.append("--force")
    result = git(*args, str(path))
    if result.returncode != 0:
        raise click.ClickException(f"failed to remove worktree: {result.stderr.strip()}")
    console.print("[green]✓[/green] Worktree removed")


@tree_group.command("list")
def list_trees_cmd():
    """List the repository's worktrees."""
    require_git_repository()
    _list_worktrees()
