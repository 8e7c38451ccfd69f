"""Current-patchset resolution and Gerrit change ref construction."""

from __future__ import annotations

import logging

from gerry_core.errors import RefResolutionError
from gerry_core.models import Change
from gerry_core.normalize import to_int

logger = logging.getLogger(__name__)


def resolve_current_patchset(change: Change) -> int | None:
    """Return the current patchset number, whichever backend produced the change.

    Resolution order:
      1. REST: the current revision's own ``_number`` from the revision map.
      2. SSH: ``currentPatchSet.number``.
      3. The change's own number (degraded; should not normally happen).

    Returns None when none of the three yields an integer.
    """
    if change.revisions and change.current_revision:
        number = to_int(change.revisions.get(change.current_revision))
        if number is not None:
            return number

    number = to_int(change.current_patch_set)
    if number is not None:
        return number

    number = to_int(change.number)
    if number is not None:
        logger.debug("Change %s carries no revision data; using its number as the patchset", change.number)
    return number


def require_current_patchset(change: Change) -> int:
    number = resolve_current_patchset(change)
    if number is None:
        raise RefResolutionError(
            f"could not determine the current patchset of change {change.number or '?'}",
            change.number,
        )
    return number


def change_shard(change_number: str | int) -> str:
    """Two-character shard directory: the last two digits, zero-padded (``5`` -> ``05``)."""
    digits = str(change_number).strip()
    if not digits.isdigit():
        raise ValueError(f"change number must be numeric, got {change_number!r}")
    return digits[-2:].zfill(2)


def build_ref_path(change_number: str | int, patchset: str | int) -> str:
    """``refs/changes/<shard>/<change>/<patchset>``, e.g. ``refs/changes/65/384465/8``."""
    digits = str(change_number).strip()
    return f"refs/changes/{change_shard(digits)}/{int(digits)}/{int(patchset)}"
