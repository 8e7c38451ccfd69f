"""Thin wrappers around the git executable for commands that consume change refs."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess

import click

from gerry_core.config import ConnectionProfile

logger = logging.getLogger(__name__)

# Prefix for git commands that must not run any hook.
NO_HOOKS = ("-c", "core.hooksPath=/dev/null")


def git(*args: str, env: dict | None = None) -> subprocess.CompletedProcess:
    logger.debug("Running git %s", " ".join(args))
    try:
        return subprocess.run(["git", *args], capture_output=True, text=True, env=env)
    except FileNotFoundError as e:
        raise click.ClickException("git executable not found in PATH") from e


def git_env(profile: ConnectionProfile) -> dict | None:
    if not profile.ssh_key:
        return None
    return {**os.environ, "GIT_SSH_COMMAND": f"ssh -i {shlex.quote(profile.ssh_key)}"}


def require_git_repository() -> None:
    if git("rev-parse", "--git-dir").returncode != 0:
        raise click.UsageError("Not in a git repository.")


def has_uncommitted_changes(path: str | None = None) -> bool:
    args = ["-C", path] if path else []
    result = git(*args, "status", "--porcelain")
    return result.returncode == 0 and bool(result.stdout.strip())


def repository_root() -> str:
    result = git("rev-parse", "--show-toplevel")
    if result.returncode != 0:
        raise click.ClickException(f"failed to get repository root: {result.stderr.strip()}")
    return result.stdout.strip()


def fetch_ref(profile: ConnectionProfile, ref: str) -> None:
    """``git fetch`` one change ref from the server's SSH remote into FETCH_HEAD."""
    result = git("fetch", profile.ssh_remote_url(), ref, env=git_env(profile))
    if result.returncode != 0:
        raise click.ClickException(f"git fetch failed: {result.stderr.strip()}")


def head_summary() -> str | None:
    result = git("log", "--oneline", "-1", "--no-decorate")
    return result.stdout.strip() if result.returncode == 0 else None
