"""init command: interactive setup wizard.

Asks for the connection settings, checks the SSH and (optionally) REST
connections against the server, and writes ~/.gerry/config.yml. A failed
REST check disables REST access instead of aborting, since every query
falls back to SSH anyway.
"""

from __future__ import annotations

import os
from pathlib import Path

import click
from rich.console import Console

from gerry_core.config import DEFAULT_SSH_PORT, ConnectionProfile, save_config
from gerry_core.errors import GerryError
from gerry_core.gerrit.rest import RestClient
from gerry_core.gerrit.ssh import SshClient

console = Console()


def _check(label: str, fetch_version) -> bool:
    console.print(f"Testing {label} connection... ", end="")
    try:
        version = fetch_version()
    except GerryError as e:
        console.print("[red]FAILED[/red]")
        console.print(f"Error: {e.message}")
        return False
    console.print(f"[green]SUCCESS[/green] [dim](Gerrit {version})[/dim]")
    return True


def _profile(config: dict) -> ConnectionProfile:
    try:
        return ConnectionProfile.from_config(config)
    except GerryError as e:
        raise click.ClickException(e.message) from e


@click.command("init")
@click.pass_context
def init_cmd(ctx):
    """Set up your Gerrit connection.

    Writes ~/.gerry/config.yml (or the file given with --config).
    """
    config_path = ctx.obj.get("config_path") if ctx.obj else None

    console.print("\n[bold cyan]gerry init[/bold cyan] setup wizard\n")

    config: dict = {}
    config["server"] = click.prompt("Gerrit server hostname")
    config["port"] = click.prompt("SSH port", default=DEFAULT_SSH_PORT, type=click.IntRange(1, 65535))
    config["user"] = click.prompt("Your Gerrit username", default=os.environ.get("USER"))
    default_key = Path.home() / ".ssh" / "id_rsa"
    ssh_key = click.prompt(
        "Path to SSH private key (blank for ssh's default)",
        default=str(default_key) if default_key.exists() else "",
        show_default=default_key.exists(),
    )
    config["ssh_key"] = ssh_key or None

    console.print()
    if not _check("SSH", SshClient(_profile(config)).server_version):
        raise click.ClickException("Please check your SSH configuration and try again.")

    if click.confirm("Configure REST API access? (recommended for full functionality)", default=True):
        http_port = click.prompt(
            "HTTP/HTTPS port (0 to auto-detect)",
            default=0,
            type=click.IntRange(0, 65535),
        )
        config["http_port"] = http_port or None
        config["http_password"] = click.prompt("HTTP password (Gerrit Settings > HTTP Credentials)", hide_input=True)

        if not _check("REST API", RestClient(_profile(config)).server_version):
            if config["http_port"] is None:
                console.print("\nAuto-detection may have failed. Common HTTP ports are 443, 8080 and 8443.")
                console.print("Run `gerry init` again to set the HTTP port explicitly.")
            console.print("\n[yellow]REST API access will be disabled. Queries will use SSH.[/yellow]")
            config["http_password"] = None
            config["http_port"] = None

    project = click.prompt("Default project (optional)", default="", show_default=False)
    config["project"] = project or None

    path = save_config(config, config_path)
    console.print(f"\n[green]✓[/green] Configuration saved to: {path}")
    console.print("You're all set! Try [bold]gerry list[/bold] to see your open changes.")
