"""Gerrit SSH transport (``ssh ... gerrit query --format=JSON``).

Arguments are always passed to ``subprocess.run`` as a list, so query text
never goes through a local shell.
"""

from __future__ import annotations

import json
import logging
import subprocess

from gerry_core.config import ConnectionProfile
from gerry_core.errors import SchemaError, TransportError
from gerry_core.models import Change, Comment
from gerry_core.normalize import change_from_ssh, comments_from_ssh, get_value

logger = logging.getLogger(__name__)


def parse_query_output(output: str) -> list[dict]:
    """Parse newline-delimited JSON from ``gerrit query``.

    The trailing statistics row (``{"type": "stats", ...}``) is dropped. An
    ``{"type": "error"}`` row is raised as a TransportError.
    """
    records: list[dict] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            raise SchemaError(f"could not decode SSH query output: {line[:200]}", backend="ssh") from e
        if not isinstance(record, dict):
            raise SchemaError(f"unexpected SSH query row: {line[:200]}", backend="ssh")
        if "type" in record:
            if record["type"] == "error":
                raise TransportError(f"gerrit query failed: {get_value(record, 'message')}", backend="ssh")
            continue
        records.append(record)
    return records


class SshClient:
    def __init__(self, profile: ConnectionProfile) -> None:
        self._profile = profile

    def _base_args(self) -> list[str]:
        args = ["ssh", "-p", str(self._profile.port)]
        if self._profile.ssh_key:
            args += ["-i", self._profile.ssh_key]
        args += [
            "-o",
            "StrictHostKeyChecking=accept-new",
            f"{self._profile.user}@{self._profile.server}",
            "gerrit",
        ]
        return args

    def run(self, *args: str) -> str:
        """Run ``gerrit <args>`` on the server and return stdout."""
        command = self._base_args() + list(args)
        logger.debug("Running %s", command)
        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise TransportError("ssh executable not found in PATH", backend="ssh") from e
        if result.returncode != 0:
            raise TransportError(
                f"SSH command failed (exit {result.returncode}): {result.stderr.strip()}",
                backend="ssh",
            )
        return result.stdout

    def query(self, query: str, *options: str) -> list[dict]:
        output = self.run("query", "--format=JSON", *options, query)
        return parse_query_output(output)

    def server_version(self) -> str:
        output = self.run("version").strip()
        if "gerrit version" not in output:
            raise SchemaError("unexpected response from Gerrit server", backend="ssh")
        return output.replace("gerrit version", "").strip()

    def _single(self, change_id: str, *options: str) -> dict:
        records = self.query(f"change:{change_id}", *options)
        if not records:
            raise TransportError(f"change {change_id} not found", backend="ssh")
        return records[0]

    # ------------------------------------------------------------------ #
    # Normalized operations                                                #
    # ------------------------------------------------------------------ #

    def list_changes(self, query: str, limit: int) -> list[Change]:
        records = self.query(f"limit:{limit} {query}".strip(), "--current-patch-set")
        return [change_from_ssh(record) for record in records]

    def get_change(self, change_id: str) -> Change:
        return change_from_ssh(self._single(change_id, "--current-patch-set", "--all-approvals"))

    def get_comments(self, change_id: str) -> list[Comment]:
        return comments_from_ssh(self._single(change_id, "--patch-sets", "--comments"))
