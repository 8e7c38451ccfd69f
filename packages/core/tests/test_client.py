"""Tests for REST-first, SSH-fallback query dispatch."""

import logging
from unittest.mock import MagicMock

import pytest

from gerry_core.errors import AuthenticationError, QueryFailedError, TransportError
from gerry_core.gerrit.client import FallbackState, GerritClient
from gerry_core.models import Change, Query


def _client():
    rest = MagicMock()
    ssh = MagicMock()
    return GerritClient(rest, ssh), rest, ssh


class TestRun:
    def test_rest_success_skips_ssh(self):
        client, _, _ = _client()
        ssh_call = MagicMock()
        outcome = client.run("op", lambda: "rest-value", ssh_call)
        assert outcome.state is FallbackState.SUCCEEDED
        assert outcome.value == "rest-value"
        assert outcome.backend == "rest"
        ssh_call.assert_not_called()

    def test_rest_failure_falls_back(self):
        client, _, _ = _client()
        rest_call = MagicMock(side_effect=AuthenticationError("authentication failed (401)"))
        outcome = client.run("op", rest_call, lambda: "ssh-value")
        assert outcome.succeeded
        assert outcome.backend == "ssh"
        assert outcome.value == "ssh-value"
        assert isinstance(outcome.error_for("rest"), AuthenticationError)

    def test_both_fail(self):
        client, _, _ = _client()
        rest_error = TransportError("rest down")
        ssh_error = TransportError("ssh down", backend="ssh")
        outcome = client.run("op", MagicMock(side_effect=rest_error), MagicMock(side_effect=ssh_error))
        assert outcome.state is FallbackState.FAILED
        with pytest.raises(QueryFailedError) as exc:
            outcome.unwrap()
        assert exc.value.ssh_error is ssh_error
        assert exc.value.rest_error is rest_error
        assert exc.value.message == "failed to op: ssh down"

    def test_non_transport_errors_propagate(self):
        client, _, _ = _client()
        ssh_call = MagicMock()
        with pytest.raises(KeyError):
            client.run("op", MagicMock(side_effect=KeyError("x")), ssh_call)
        ssh_call.assert_not_called()


class TestOperations:
    def test_list_changes_rest(self):
        client, rest, ssh = _client()
        rest.list_changes.return_value = [Change(number="1")]
        changes = client.list_changes(Query(owner="ada", status="open", limit=10))
        rest.list_changes.assert_called_once_with("owner:ada status:open", 10)
        ssh.list_changes.assert_not_called()
        assert changes == [Change(number="1")]

    def test_list_changes_default_limit(self):
        client, rest, _ = _client()
        rest.list_changes.return_value = []
        client.list_changes("status:open")
        rest.list_changes.assert_called_once_with("status:open", 25)

    def test_rest_failure_only_warns(self, caplog):
        client, rest, ssh = _client()
        rest.get_change.side_effect = TransportError("connection refused")
        ssh.get_change.return_value = Change(number="7", source="ssh")

        with caplog.at_level(logging.WARNING, logger="gerry_core.gerrit.client"):
            change = client.get_change("7")

        assert change.number == "7"
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "Falling back to SSH" in warnings[0].getMessage()
        assert not any(r.levelno >= logging.ERROR for r in caplog.records)

    def test_get_comments_both_fail(self):
        client, rest, ssh = _client()
        rest.get_comments.side_effect = TransportError("rest")
        ssh.get_comments.side_effect = TransportError("no route to host", backend="ssh")
        with pytest.raises(QueryFailedError, match="no route to host"):
            client.get_comments("7")
