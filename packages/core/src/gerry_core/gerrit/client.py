"""Dual-backend query client: REST first, SSH on any REST failure.

The fallback is an explicit state machine:

    TRYING_REST --ok--> SUCCEEDED
        | TransportError
        v
    TRYING_SSH  --ok--> SUCCEEDED
        | TransportError
        v
      FAILED  (QueryFailedError, SSH error as the primary cause)
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from gerry_core.config import ConnectionProfile
from gerry_core.errors import QueryFailedError, TransportError
from gerry_core.gerrit.rest import RestClient
from gerry_core.gerrit.ssh import SshClient
from gerry_core.models import Change, Comment, Query

logger = logging.getLogger(__name__)


class FallbackState(enum.Enum):
    TRYING_REST = "trying_rest"
    TRYING_SSH = "trying_ssh"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class Attempt:
    backend: str
    error: TransportError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class Outcome:
    """Result of one logical operation across both transports."""

    operation: str
    state: FallbackState = FallbackState.TRYING_REST
    value: Any = None
    backend: str | None = None
    attempts: list[Attempt] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is FallbackState.SUCCEEDED

    def error_for(self, backend: str) -> TransportError | None:
        for attempt in self.attempts:
            if attempt.backend == backend and attempt.error is not None:
                return attempt.error
        return None

    def unwrap(self) -> Any:
        if self.succeeded:
            return self.value
        ssh_error = self.error_for("ssh")
        rest_error = self.error_for("rest")
        primary = ssh_error or rest_error or TransportError("no backend attempted")
        raise QueryFailedError(self.operation, primary, rest_error) from primary


class GerritClient:
    def __init__(self, rest: RestClient, ssh: SshClient) -> None:
        self.rest = rest
        self.ssh = ssh

    @classmethod
    def from_profile(cls, profile: ConnectionProfile, timeout: float | None = None) -> "GerritClient":
        return cls(RestClient(profile, timeout=timeout), SshClient(profile))

    def run(
        self,
        operation: str,
        rest_call: Callable[[], Any],
        ssh_call: Callable[[], Any],
    ) -> Outcome:
        """Drive the fallback state machine for one logical operation."""
        outcome = Outcome(operation=operation)
        while outcome.state not in (FallbackState.SUCCEEDED, FallbackState.FAILED):
            backend, call = ("rest", rest_call) if outcome.state is FallbackState.TRYING_REST else ("ssh", ssh_call)
            try:
                outcome.value = call()
            except TransportError as e:
                outcome.attempts.append(Attempt(backend, e))
                if outcome.state is FallbackState.TRYING_REST:
                    logger.warning("REST API failed to %s: %s. Falling back to SSH...", operation, e)
                    outcome.state = FallbackState.TRYING_SSH
                else:
                    logger.debug("SSH failed to %s: %s", operation, e)
                    outcome.state = FallbackState.FAILED
            else:
                outcome.attempts.append(Attempt(backend))
                outcome.backend = backend
                outcome.state = FallbackState.SUCCEEDED
        return outcome

    def list_changes(self, query: Query | str, limit: int | None = None) -> list[Change]:
        if isinstance(query, Query):
            limit = query.limit if limit is None else limit
            query = query.to_gerrit()
        limit = 25 if limit is None else limit
        return self.run(
            "list changes",
            lambda: self.rest.list_changes(query, limit),
            lambda: self.ssh.list_changes(query, limit),
        ).unwrap()

    def get_change(self, change_id: str) -> Change:
        return self.run(
            f"get change {change_id}",
            lambda: self.rest.get_change(change_id),
            lambda: self.ssh.get_change(change_id),
        ).unwrap()

    def get_comments(self, change_id: str) -> list[Comment]:
        return self.run(
            f"get comments for {change_id}",
            lambda: self.rest.get_comments(change_id),
            lambda: self.ssh.get_comments(change_id),
        ).unwrap()
