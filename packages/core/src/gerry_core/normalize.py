"""Schema normalizer: the single translation boundary between server JSON and gerry records.

The REST API and the SSH ``gerrit query`` command describe the same change
with different keys (``_number`` vs ``number``, ``updated`` vs
``lastUpdated``, a revision map vs a nested ``currentPatchSet`` object).
Every logical field maps to an ordered tuple of concrete aliases; lookups
try them in order and never raise. Missing data degrades to ``""`` (or a
documented default), so a partial record is always representable.

Comment resolution flags default differently per backend. A REST comment
without ``unresolved`` is resolved, as Gerrit reports it. SSH rows carry no
flag at all, so SSH comments default to unresolved and only a resolution
reply closes their thread. Older gerrit CLIs left SSH comments resolved,
which hid every SSH-sourced thread from the unresolved view.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from gerry_core.models import REST, SSH, Change, Comment, Vote

logger = logging.getLogger(__name__)

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "number": ("_number", "number"),
    "change_id": ("change_id", "id"),
    "subject": ("subject",),
    "project": ("project",),
    "branch": ("branch",),
    "topic": ("topic",),
    "status": ("status",),
    "url": ("url",),
    "created": ("created", "createdOn"),
    "updated": ("updated", "lastUpdated"),
    "submitted": ("submitted",),
    "owner": ("owner.name", "owner.username", "owner.email"),
    "owner_email": ("owner.email",),
    "current_revision": ("current_revision", "currentPatchSet.revision"),
    "current_patch_set": ("currentPatchSet.number",),
    "comment_updated": ("updated", "timestamp"),
}

FIELD_DEFAULTS: dict[str, str] = {"owner": "unknown"}

# Logical fields whose numeric values are epoch seconds (SSH schema).
TIMESTAMP_FIELDS = frozenset({"created", "updated", "submitted", "comment_updated"})

_ACCOUNT_ALIASES = ("name", "username", "email")

# Account objects for a comment's author: REST uses ``author``, SSH ``reviewer``.
COMMENT_AUTHOR_ALIASES = ("author", "reviewer")


def format_value(value: Any) -> str:
    """Render a scalar JSON value as text.

    Floats come out of generic JSON decoding for every number; whole
    values are rendered without a fractional part (``12.0`` -> ``"12"``).
    Containers and ``None`` render as ``""``.
    """
    if value is None or isinstance(value, (Mapping, list, tuple)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:.0f}"
    return str(value)


def format_timestamp(value: Any) -> str:
    """Render an epoch-seconds number in Gerrit's UTC text form; pass strings through.

    Numbers outside the platform's datetime range (milliseconds, corrupt
    values) are rendered as plain numbers.
    """
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        try:
            moment = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.debug("Timestamp %r out of range; keeping the raw value", value)
            return format_value(value)
        return moment.strftime("%Y-%m-%d %H:%M:%S") + ".000000000"
    return format_value(value)


def get_path(record: Any, path: str) -> Any:
    """Walk a dotted path through nested mappings, returning None when any hop is missing."""
    current = record
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def get_value(record: Any, key: str) -> str:
    """Return one concrete key (dotted paths allowed) as text, or ``""``."""
    return format_value(get_path(record, key))


def get_field(record: Any, logical: str) -> str:
    """Return a logical field, trying each alias in priority order.

    Unknown logical names are looked up as a concrete key.
    """
    aliases = FIELD_ALIASES.get(logical, (logical,))
    render = format_timestamp if logical in TIMESTAMP_FIELDS else format_value
    for alias in aliases:
        text = render(get_path(record, alias))
        if text:
            return text
    return FIELD_DEFAULTS.get(logical, "")


def account_name(account: Any) -> str:
    """Return the first non-empty of name, username, email; ``unknown`` otherwise."""
    for key in _ACCOUNT_ALIASES:
        text = get_value(account, key)
        if text:
            return text
    return "unknown"


def to_int(value: Any) -> int | None:
    """Parse an int from a JSON scalar (``"+2"``, ``2.0``, ``2``); None if it doesn't parse."""
    text = format_value(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


# --------------------------------------------------------------------------- #
# Changes                                                                     #
# --------------------------------------------------------------------------- #


def _label_extreme(info: Mapping, highest: bool) -> int | None:
    values = [v for v in (to_int(k) for k in (info.get("values") or {})) if v is not None]
    if not values:
        return None
    return max(values) if highest else min(values)


def _rest_labels(record: Mapping) -> dict[str, list[Vote]]:
    labels = record.get("labels")
    if not isinstance(labels, Mapping):
        return {}

    result: dict[str, list[Vote]] = {}
    for name, info in labels.items():
        if not isinstance(info, Mapping):
            continue
        votes: list[Vote] = []
        for entry in info.get("all") or []:
            value = to_int(get_path(entry, "value"))
            if value:
                votes.append(Vote(value=value, account=account_name(entry)))
        if not votes:
            # LABELS (not DETAILED_LABELS) only reports the extreme voters.
            summary = (
                ("approved", _label_extreme(info, highest=True) or 2),
                ("rejected", _label_extreme(info, highest=False) or -2),
                ("recommended", 1),
                ("disliked", -1),
            )
            for key, default in summary:
                account = info.get(key)
                if isinstance(account, Mapping):
                    value = to_int(account.get("value"))
                    votes.append(Vote(value=value if value is not None else default, account=account_name(account)))
        result[str(name)] = votes
    return result


def _ssh_labels(record: Mapping) -> dict[str, list[Vote]]:
    approvals = get_path(record, "currentPatchSet.approvals")
    if not isinstance(approvals, list):
        return {}

    result: dict[str, list[Vote]] = {}
    for approval in approvals:
        if not isinstance(approval, Mapping):
            continue
        label = get_value(approval, "type") or get_value(approval, "description")
        value = to_int(approval.get("value"))
        if not label or value is None:
            continue
        result.setdefault(label, [])
        if value:
            result[label].append(Vote(value=value, account=account_name(approval.get("by"))))
    return result


def _revisions(record: Mapping) -> dict[str, str]:
    revisions = record.get("revisions")
    if not isinstance(revisions, Mapping):
        return {}
    return {str(sha): get_value(rev, "_number") for sha, rev in revisions.items() if isinstance(rev, Mapping)}


def _build_change(record: Mapping, source: str, labels: dict[str, list[Vote]]) -> Change:
    return Change(
        number=get_field(record, "number"),
        change_id=get_field(record, "change_id"),
        subject=get_field(record, "subject"),
        owner=get_field(record, "owner"),
        owner_email=get_field(record, "owner_email"),
        project=get_field(record, "project"),
        branch=get_field(record, "branch"),
        topic=get_field(record, "topic"),
        status=get_field(record, "status"),
        created=get_field(record, "created"),
        updated=get_field(record, "updated"),
        submitted=get_field(record, "submitted"),
        url=get_field(record, "url"),
        labels=labels,
        revisions=_revisions(record),
        current_revision=get_field(record, "current_revision"),
        current_patch_set=get_field(record, "current_patch_set"),
        source=source,
        raw=dict(record),
    )


def change_from_rest(record: Mapping) -> Change:
    return _build_change(record, REST, _rest_labels(record))


def change_from_ssh(record: Mapping) -> Change:
    return _build_change(record, SSH, _ssh_labels(record))


# --------------------------------------------------------------------------- #
# Comments                                                                    #
# --------------------------------------------------------------------------- #


def comment_author(entry: Mapping) -> str:
    for alias in COMMENT_AUTHOR_ALIASES:
        account = entry.get(alias)
        if isinstance(account, Mapping):
            return account_name(account)
    return "unknown"


def comments_from_rest(by_file: Mapping) -> list[Comment]:
    """Flatten ``GET /changes/{id}/comments`` (``{path: [CommentInfo, ...]}``)."""
    comments: list[Comment] = []
    if not isinstance(by_file, Mapping):
        return comments
    for path, entries in by_file.items():
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if not isinstance(entry, Mapping):
                continue
            comments.append(
                Comment(
                    file=str(path),
                    line=to_int(entry.get("line")) or 0,
                    author=comment_author(entry),
                    message=get_value(entry, "message"),
                    updated=get_field(entry, "comment_updated"),
                    unresolved=entry.get("unresolved") is True,
                    in_reply_to=get_value(entry, "in_reply_to") or None,
                    id=get_value(entry, "id"),
                )
            )
    return comments


def _ssh_comment(entry: Mapping) -> Comment:
    # The SSH schema has no resolution flag; treat such comments as open.
    unresolved = entry.get("unresolved")
    return Comment(
        file=get_value(entry, "file"),
        line=to_int(entry.get("line")) or 0,
        author=comment_author(entry),
        message=get_value(entry, "message"),
        updated=get_field(entry, "comment_updated"),
        unresolved=unresolved if isinstance(unresolved, bool) else True,
        in_reply_to=get_value(entry, "in_reply_to") or None,
        id=get_value(entry, "id"),
    )


def comments_from_ssh(record: Mapping) -> list[Comment]:
    """Collect inline comments from an SSH query row (``--patch-sets --comments``).

    Change-level messages in the top-level ``comments`` list carry no file
    and are skipped.
    """
    if not isinstance(record, Mapping):
        return []

    patch_sets = record.get("patchSets")
    if not isinstance(patch_sets, list):
        current = record.get("currentPatchSet")
        patch_sets = [current] if isinstance(current, Mapping) else []

    entries: list[Mapping] = []
    for patch_set in patch_sets:
        if isinstance(patch_set, Mapping):
            entries.extend(c for c in patch_set.get("comments") or [] if isinstance(c, Mapping))
    entries.extend(c for c in record.get("comments") or [] if isinstance(c, Mapping) and c.get("file"))

    return [_ssh_comment(entry) for entry in entries]
