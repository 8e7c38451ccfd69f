"""CLI entry point for gerry.

Commands:
  init      interactive setup wizard writing ~/.gerry/config.yml
  list      your changes, or changes waiting for your review
  team      changes where you are a reviewer or CC
  details   summary of one change
  comments  threaded review comments on one change
  fetch     fetch a change's patchset ref and check it out
  cherry    cherry-pick a change's patchset onto HEAD
  tree      git worktrees checked out at a change
  analyze   report on merged changes over a date range
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from gerry_cli.commands.analyze import analyze_cmd
from gerry_cli.commands.cherry import cherry_cmd
from gerry_cli.commands.comments import comments_cmd
from gerry_cli.commands.details import details_cmd
from gerry_cli.commands.fetch import fetch_cmd
from gerry_cli.commands.init import init_cmd
from gerry_cli.commands.list import list_cmd
from gerry_cli.commands.team import team_cmd
from gerry_cli.commands.tree import tree_group


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=Console(stderr=True), show_path=False, show_time=verbose)
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    # urllib3 is chatty at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


@click.group()
@click.version_option(
    version=importlib.metadata.version("gerry"),
    prog_name="gerry",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Path to the configuration file.  [default: ~/.gerry/config.yml]",
    envvar="GERRY_CONFIG",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool):
    """A command-line client for Gerrit Code Review."""
    from gerry_core.config import load_config
    from gerry_core.errors import ConfigError

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(e.message) from e

    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path


main.add_command(init_cmd)
main.add_command(list_cmd)
main.add_command(team_cmd)
main.add_command(details_cmd)
main.add_command(comments_cmd)
main.add_command(fetch_cmd)
main.add_command(cherry_cmd)
main.add_command(tree_group)
main.add_command(analyze_cmd)
