"""Per-invocation wiring between click contexts and the core client."""

from __future__ import annotations

import functools

import click

from gerry_core.config import ConnectionProfile
from gerry_core.errors import GerryError
from gerry_core.gerrit.client import GerritClient
from gerry_core.utils.validation import validate_change_id


def handle_errors(func):
    """Report any GerryError as ``Error: <message>`` with exit status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except GerryError as e:
            raise click.ClickException(e.message) from e

    return wrapper


def get_config(ctx: click.Context) -> dict:
    return ctx.obj["config"]


def get_profile(ctx: click.Context) -> ConnectionProfile:
    return ConnectionProfile.from_config(get_config(ctx))


def get_client(
    ctx: click.Context,
    timeout: float | None = None,
    profile: ConnectionProfile | None = None,
) -> GerritClient:
    return GerritClient.from_profile(profile or get_profile(ctx), timeout=timeout)


def change_argument(ctx: click.Context, param: click.Parameter, value: str) -> str:
    """click callback validating a change number or Change-Id."""
    if value is None:
        return value
    try:
        return validate_change_id(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
