"""Normalized review records.

Instances are built by ``gerry_core.normalize`` from either server schema
and are never mutated afterwards. ``Change.source`` tags which backend the
record came from; code past the normalizer only ever reads the typed fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

REST = "rest"
SSH = "ssh"


@dataclass(frozen=True)
class Vote:
    value: int
    account: str


@dataclass(frozen=True)
class Change:
    number: str
    subject: str = ""
    owner: str = "unknown"
    owner_email: str = ""
    project: str = ""
    branch: str = ""
    topic: str = ""
    status: str = ""
    created: str = ""
    updated: str = ""
    submitted: str = ""
    url: str = ""
    change_id: str = ""
    labels: dict[str, list[Vote]] = field(default_factory=dict)
    revisions: dict[str, str] = field(default_factory=dict)  # revision sha -> patchset number
    current_revision: str = ""
    current_patch_set: str = ""
    source: str = REST
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(frozen=True)
class Comment:
    """A single inline (line > 0) or file-level (line == 0) remark."""

    file: str
    line: int
    author: str
    message: str
    updated: str = ""
    unresolved: bool = True
    in_reply_to: str | None = None
    id: str = ""


@dataclass(frozen=True)
class Thread:
    """All comments on one (file, line), oldest first, with one shared verdict."""

    file: str
    line: int
    comments: list[Comment]
    resolved: bool

    @property
    def last(self) -> Comment:
        return self.comments[-1]

    def __len__(self) -> int:
        return len(self.comments)


@dataclass(frozen=True)
class Query:
    """A predicate-filtered request for changes.

    ``terms`` holds raw Gerrit query fragments appended verbatim, e.g.
    ``("label:Verified=1", "-is:wip")``.
    """

    owner: str | None = None
    reviewer: str | None = None
    cc: str | None = None
    status: str | None = None
    project: str | None = None
    terms: tuple[str, ...] = ()
    limit: int = 25
    detailed: bool = False

    def to_gerrit(self) -> str:
        parts: list[str] = []
        if self.owner:
            parts.append(f"owner:{self.owner}")
        if self.reviewer:
            parts.append(f"reviewer:{self.reviewer}")
        if self.cc:
            parts.append(f"cc:{self.cc}")
        if self.status:
            parts.append(f"status:{self.status}")
        if self.project:
            parts.append(f"project:{self.project}")
        parts.extend(t for t in self.terms if t)
        return " ".join(parts)
