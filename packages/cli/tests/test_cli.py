"""Tests for the CLI entry point and commands."""

import json
import subprocess
from unittest.mock import MagicMock

from click.testing import CliRunner

from gerry_cli.cli import main
from gerry_cli.commands.team import build_team_query
from gerry_core.bulk import BulkResult, StopReason
from gerry_core.config import ConnectionProfile
from gerry_core.errors import QueryFailedError, TransportError
from gerry_core.models import Change, Comment, Query, Vote


def _make_config(**overrides):
    config = {
        "server": "gerrit.example.com",
        "port": 29418,
        "http_port": None,
        "user": "ada",
        "http_password": "secret",
        "ssh_key": None,
        "project": None,
        "timeout": 30,
        "analyze_timeout": 300,
        "resolution_phrases": ["Done"],
    }
    config.update(overrides)
    return config


def _profile(**overrides):
    values = dict(server="gerrit.example.com", user="ada", http_password="secret")
    values.update(overrides)
    return ConnectionProfile(**values)


def _patch_common(mocker, module, config=None, client=None):
    """Patch config loading and client construction for one command module."""
    cfg = config or _make_config()
    mocker.patch("gerry_core.config.load_config", return_value=cfg)
    client = client or MagicMock()
    mocker.patch(f"gerry_cli.commands.{module}.get_client", return_value=client)
    return cfg, client


def _change(**overrides):
    values = dict(
        number="384465",
        subject="Fix the frobnicator",
        owner="Ada Lovelace",
        project="core",
        branch="main",
        status="NEW",
        updated="2025-01-15 10:00:00.000000000",
        revisions={"abc": "8"},
        current_revision="abc",
        labels={"Code-Review": [Vote(2, "Grace Hopper")]},
    )
    values.update(overrides)
    return Change(**values)


def _fake_git(mocker, fail=None, fail_code=1, status="", toplevel="/work/repo"):
    """Replace the git executable; return the list of argv vectors it was called with."""
    calls = []

    def fake_run(argv, **kwargs):
        calls.append(argv)
        if fail is not None and fail in argv:
            return subprocess.CompletedProcess(argv, fail_code, stdout="", stderr="boom")
        if "status" in argv:
            stdout = status
        elif "--show-toplevel" in argv:
            stdout = toplevel + "\n"
        else:
            stdout = "abc123 Fix it\n"
        return subprocess.CompletedProcess(argv, 0, stdout=stdout, stderr="")

    mocker.patch("gerry_cli.git.subprocess.run", side_effect=fake_run)
    return calls


class TestMain:
    def test_help_lists_commands(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        for name in ("init", "list", "team", "details", "comments", "fetch", "cherry", "tree", "analyze"):
            assert name in result.output

    def test_broken_config_file_reported(self, tmp_path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("server: [unclosed\n")
        result = CliRunner().invoke(main, ["--config", str(cfg), "list"])
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestList:
    def test_own_changes_query(self, mocker):
        _, client = _patch_common(mocker, "list")
        client.list_changes.return_value = [_change()]

        result = CliRunner().invoke(main, ["list"])

        assert result.exit_code == 0, result.output
        query = client.list_changes.call_args.args[0]
        assert query == Query(owner="ada", status="open", limit=25)
        assert "384465" in result.output

    def test_reviewer_query(self, mocker):
        _, client = _patch_common(mocker, "list")
        client.list_changes.return_value = []

        result = CliRunner().invoke(main, ["list", "--reviewer", "--limit", "5", "--status", "merged"])

        query = client.list_changes.call_args.args[0]
        assert query.to_gerrit() == "reviewer:ada status:merged"
        assert query.limit == 5
        assert "need your review" in result.output

    def test_default_project_from_profile(self, mocker):
        _, client = _patch_common(mocker, "list", config=_make_config(project="core"))
        client.list_changes.return_value = []
        CliRunner().invoke(main, ["list"])
        assert client.list_changes.call_args.args[0].project == "core"

    def test_detailed(self, mocker):
        _, client = _patch_common(mocker, "list")
        client.list_changes.return_value = [_change(), _change(number="384466")]
        result = CliRunner().invoke(main, ["list", "--detailed"])
        assert result.output.count("Change:") == 2
        assert "Code-Review+2" in result.output

    def test_bad_limit(self, mocker):
        _patch_common(mocker, "list")
        result = CliRunner().invoke(main, ["list", "--limit", "0"])
        assert result.exit_code != 0

    def test_both_backends_failing_is_reported(self, mocker):
        _, client = _patch_common(mocker, "list")
        client.list_changes.side_effect = QueryFailedError(
            "list changes", TransportError("connection refused", backend="ssh")
        )
        result = CliRunner().invoke(main, ["list"])
        assert result.exit_code == 1
        assert "Error: failed to list changes: connection refused" in result.output


class TestTeam:
    def test_open_query_requires_verified(self):
        query = build_team_query("ada")
        assert query == (
            "(is:open -is:ignored -is:wip -status:merged label:Verified=1 cc:ada OR "
            "is:open -owner:ada -is:wip -is:ignored -status:merged label:Verified=1 reviewer:ada)"
        )

    def test_all_verified_drops_label(self):
        assert "label:Verified" not in build_team_query("ada", all_verified=True)

    def test_merged_query(self):
        assert build_team_query("ada", status="merged", all_verified=True) == (
            "(status:merged cc:ada OR status:merged reviewer:ada)"
        )

    def test_other_status_query(self):
        assert build_team_query("ada", status="abandoned", all_verified=True) == (
            "(status:abandoned -status:merged cc:ada OR status:abandoned -status:merged reviewer:ada)"
        )

    def test_filter_appended(self):
        assert build_team_query("ada", extra="project:core").endswith(") project:core")

    def test_command(self, mocker):
        _, client = _patch_common(mocker, "team")
        client.list_changes.return_value = []
        result = CliRunner().invoke(main, ["team", "--limit", "10"])
        assert result.exit_code == 0, result.output
        query, limit = client.list_changes.call_args.args
        assert "reviewer:ada" in query
        assert limit == 10
        assert "reviewer or CC" in result.output


class TestDetails:
    def test_shows_patchset(self, mocker):
        _, client = _patch_common(mocker, "details")
        client.get_change.return_value = _change(topic="frob")
        result = CliRunner().invoke(main, ["details", "384465"])
        assert result.exit_code == 0, result.output
        client.get_change.assert_called_once_with("384465")
        assert "Patch Set: 8" in result.output
        assert "Topic: frob" in result.output

    def test_invalid_change_id(self, mocker):
        _, client = _patch_common(mocker, "details")
        result = CliRunner().invoke(main, ["details", "not-a-change"])
        assert result.exit_code == 2
        client.get_change.assert_not_called()


class TestComments:
    def _comments(self):
        return [
            Comment("a.py", 1, "grace", "Please fix", updated="2025-01-01"),
            Comment("a.py", 1, "ada", "Done", updated="2025-01-02"),
            Comment("b.py", 7, "grace", "Why is this here?", updated="2025-01-01"),
        ]

    def test_only_unresolved_by_default(self, mocker):
        _, client = _patch_common(mocker, "comments")
        client.get_comments.return_value = self._comments()
        result = CliRunner().invoke(main, ["comments", "384465"])
        assert result.exit_code == 0, result.output
        assert "b.py" in result.output
        assert "a.py" not in result.output
        assert "Unresolved comments: 1" in result.output

    def test_all(self, mocker):
        _, client = _patch_common(mocker, "comments")
        client.get_comments.return_value = self._comments()
        result = CliRunner().invoke(main, ["comments", "384465", "--all"])
        assert "a.py" in result.output
        assert "Total comments: 3" in result.output

    def test_custom_resolution_phrase(self, mocker):
        _, client = _patch_common(mocker, "comments", config=_make_config(resolution_phrases=["Fixed"]))
        client.get_comments.return_value = [Comment("a.py", 1, "ada", "fixed", updated="2025-01-02")]
        result = CliRunner().invoke(main, ["comments", "384465"])
        assert "No unresolved comments" in result.output

    def test_no_comments(self, mocker):
        _, client = _patch_common(mocker, "comments")
        client.get_comments.return_value = []
        result = CliRunner().invoke(main, ["comments", "384465"])
        assert "No comments found" in result.output


class TestFetch:
    def test_fetches_current_patchset_ref(self, mocker):
        _, client = _patch_common(mocker, "fetch")
        client.get_change.return_value = _change()
        calls = _fake_git(mocker)

        result = CliRunner().invoke(main, ["fetch", "384465"])

        assert result.exit_code == 0, result.output
        fetch = next(argv for argv in calls if "fetch" in argv)
        assert fetch[-2:] == ["ssh://ada@gerrit.example.com:29418", "refs/changes/65/384465/8"]
        assert ["git", "checkout", "FETCH_HEAD"] in calls

    def test_explicit_patchset_and_no_checkout(self, mocker):
        _, client = _patch_common(mocker, "fetch")
        client.get_change.return_value = _change()
        calls = _fake_git(mocker)

        result = CliRunner().invoke(main, ["fetch", "384465", "3", "--no-checkout"])

        assert result.exit_code == 0, result.output
        assert any(argv[-1] == "refs/changes/65/384465/3" for argv in calls)
        assert not any("checkout" in argv for argv in calls)
        assert "git checkout FETCH_HEAD" in result.output

    def test_no_verify_disables_hooks(self, mocker):
        _, client = _patch_common(mocker, "fetch")
        client.get_change.return_value = _change()
        calls = _fake_git(mocker)
        CliRunner().invoke(main, ["fetch", "384465", "--no-verify"])
        checkout = next(argv for argv in calls if "checkout" in argv)
        assert "core.hooksPath=/dev/null" in checkout

    def test_not_a_git_repository(self, mocker):
        _patch_common(mocker, "fetch")
        _fake_git(mocker, fail="rev-parse")
        result = CliRunner().invoke(main, ["fetch", "384465"])
        assert result.exit_code != 0
        assert "Not in a git repository" in result.output

    def test_fetch_failure(self, mocker):
        _, client = _patch_common(mocker, "fetch")
        client.get_change.return_value = _change()
        _fake_git(mocker, fail="fetch")
        result = CliRunner().invoke(main, ["fetch", "384465"])
        assert result.exit_code == 1
        assert "git fetch failed" in result.output


class TestCherry:
    def test_cherry_picks_current_patchset(self, mocker):
        _, client = _patch_common(mocker, "cherry")
        client.get_change.return_value = _change()
        calls = _fake_git(mocker)

        result = CliRunner().invoke(main, ["cherry", "384465"])

        assert result.exit_code == 0, result.output
        assert ["git", "fetch", "ssh://ada@gerrit.example.com:29418", "refs/changes/65/384465/8"] in calls
        assert ["git", "cherry-pick", "FETCH_HEAD"] in calls
        assert "HEAD is now at" in result.output

    def test_no_commit_and_no_verify(self, mocker):
        _, client = _patch_common(mocker, "cherry")
        client.get_change.return_value = _change()
        calls = _fake_git(mocker)

        result = CliRunner().invoke(main, ["cherry", "384465", "3", "--no-commit", "--no-verify"])

        assert result.exit_code == 0, result.output
        assert any(argv[-1] == "refs/changes/65/384465/3" for argv in calls)
        assert ["git", "-c", "core.hooksPath=/dev/null", "cherry-pick", "--no-commit", "FETCH_HEAD"] in calls
        assert "not committed" in result.output

    def test_dirty_working_tree_refused(self, mocker):
        _, client = _patch_common(mocker, "cherry")
        _fake_git(mocker, status=" M src/a.py\n")

        result = CliRunner().invoke(main, ["cherry", "384465"])

        assert result.exit_code == 1
        assert "not clean" in result.output
        client.get_change.assert_not_called()

    def test_conflict_explained_not_failed(self, mocker):
        _, client = _patch_common(mocker, "cherry")
        client.get_change.return_value = _change()
        _fake_git(mocker, fail="cherry-pick")

        result = CliRunner().invoke(main, ["cherry", "384465"])

        assert result.exit_code == 0, result.output
        assert "conflicts" in result.output
        assert "git cherry-pick --continue" in result.output

    def test_other_failure(self, mocker):
        _, client = _patch_common(mocker, "cherry")
        client.get_change.return_value = _change()
        _fake_git(mocker, fail="cherry-pick", fail_code=128)

        result = CliRunner().invoke(main, ["cherry", "384465"])

        assert result.exit_code == 1
        assert "cherry-pick failed: boom" in result.output


class TestTree:
    def test_setup_worktree_at_change_ref(self, mocker, tmp_path):
        _, client = _patch_common(mocker, "tree")
        client.get_change.return_value = _change()
        calls = _fake_git(mocker, toplevel=str(tmp_path / "repo"))

        result = CliRunner().invoke(main, ["tree", "setup", "384465"])

        assert result.exit_code == 0, result.output
        target = tmp_path / "worktrees" / "change-384465"
        assert ["git", "fetch", "ssh://ada@gerrit.example.com:29418", "refs/changes/65/384465/8"] in calls
        assert ["git", "worktree", "add", str(target), "FETCH_HEAD"] in calls

    def test_setup_existing_worktree_refused(self, mocker, tmp_path):
        _, client = _patch_common(mocker, "tree")
        client.get_change.return_value = _change()
        calls = _fake_git(mocker, toplevel=str(tmp_path / "repo"))
        (tmp_path / "worktrees" / "change-384465").mkdir(parents=True)

        result = CliRunner().invoke(main, ["tree", "setup", "384465"])

        assert result.exit_code == 1
        assert "already exists" in result.output
        assert not any("fetch" in argv for argv in calls)

    def test_setup_named_worktree_from_head(self, mocker, tmp_path):
        _, client = _patch_common(mocker, "tree")
        calls = _fake_git(mocker)

        result = CliRunner().invoke(main, ["tree", "setup", "--name", "my work", "--path", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert ["git", "worktree", "add", str(tmp_path.resolve() / "my_work"), "HEAD"] in calls
        client.get_change.assert_not_called()

    def test_setup_needs_change_or_name(self, mocker):
        _patch_common(mocker, "tree")
        _fake_git(mocker)
        result = CliRunner().invoke(main, ["tree", "setup"])
        assert result.exit_code == 2

    def test_setup_change_and_name_conflict(self, mocker):
        _patch_common(mocker, "tree")
        _fake_git(mocker)
        result = CliRunner().invoke(main, ["tree", "setup", "384465", "--name", "x"])
        assert result.exit_code == 2

    def test_cleanup_removes_change_worktree(self, mocker, tmp_path):
        _patch_common(mocker, "tree")
        calls = _fake_git(mocker, toplevel=str(tmp_path / "repo"))
        target = tmp_path / "worktrees" / "change-384465"
        target.mkdir(parents=True)

        result = CliRunner().invoke(main, ["tree", "cleanup", "384465"])

        assert result.exit_code == 0, result.output
        assert ["git", "worktree", "remove", str(target)] in calls

    def test_cleanup_refuses_uncommitted_changes(self, mocker, tmp_path):
        _patch_common(mocker, "tree")
        calls = _fake_git(mocker, status=" M a.py\n", toplevel=str(tmp_path / "repo"))
        (tmp_path / "worktrees" / "change-384465").mkdir(parents=True)

        result = CliRunner().invoke(main, ["tree", "cleanup", "384465"])

        assert result.exit_code == 1
        assert "uncommitted changes" in result.output
        assert not any("remove" in argv for argv in calls)

    def test_cleanup_force(self, mocker, tmp_path):
        _patch_common(mocker, "tree")
        calls = _fake_git(mocker, status=" M a.py\n", toplevel=str(tmp_path / "repo"))
        target = tmp_path / "worktrees" / "feature"
        target.mkdir(parents=True)

        result = CliRunner().invoke(main, ["tree", "cleanup", "feature", "--force"])

        assert result.exit_code == 0, result.output
        assert ["git", "worktree", "remove", "--force", str(target)] in calls

    def test_cleanup_unknown_target(self, mocker, tmp_path):
        _patch_common(mocker, "tree")
        _fake_git(mocker, toplevel=str(tmp_path / "repo"))
        result = CliRunner().invoke(main, ["tree", "cleanup", "nope"])
        assert result.exit_code == 1
        assert "worktree not found" in result.output

    def test_cleanup_without_target_lists(self, mocker):
        _patch_common(mocker, "tree")
        calls = _fake_git(mocker)
        result = CliRunner().invoke(main, ["tree", "cleanup"])
        assert result.exit_code == 0, result.output
        assert ["git", "worktree", "list"] in calls
        assert "Current worktrees:" in result.output


class TestAnalyze:
    def _patch(self, mocker, result):
        mocker.patch("gerry_core.config.load_config", return_value=_make_config())
        mocker.patch("gerry_cli.commands.analyze.get_profile", return_value=_profile())
        rest_cls = mocker.patch("gerry_cli.commands.analyze.RestClient")
        fetch = mocker.patch("gerry_cli.commands.analyze.fetch_all", return_value=result)
        return rest_cls, fetch

    def _result(self, stop_reason=StopReason.SHORT_PAGE):
        changes = [
            Change(number="1", owner="ada", project="core", submitted="2025-01-15 10:00:00.000000000"),
            Change(number="2", owner="grace", project="web", submitted="2025-02-01 09:00:00.000000000"),
        ]
        return BulkResult(changes=changes, stop_reason=stop_reason, pages=1)

    def test_json_report_to_file(self, mocker, tmp_path):
        rest_cls, fetch = self._patch(mocker, self._result())
        out = tmp_path / "report.json"

        result = CliRunner().invoke(
            main,
            [
                "analyze",
                "--start-date", "2025-01-01",
                "--end-date", "2025-12-31",
                "--format", "json",
                "--output", str(out),
                "--page-size", "100",
                "--max-changes", "50",
            ],
        )

        assert result.exit_code == 0, result.output
        document = json.loads(out.read_text())
        assert document["metadata"]["total_changes"] == 2
        assert [s["name"] for s in document["analysis"]["timeline"]] == ["2025-01", "2025-02"]
        kwargs = fetch.call_args.kwargs
        assert kwargs["page_size"] == 100
        assert kwargs["max_total"] == 50
        assert rest_cls.call_args.kwargs["timeout"] == 300

    def test_timeout_flag(self, mocker, tmp_path):
        rest_cls, _ = self._patch(mocker, self._result())
        CliRunner().invoke(main, ["analyze", "--timeout", "60", "--output", str(tmp_path / "r.md")])
        assert rest_cls.call_args.kwargs["timeout"] == 60

    def test_markdown_to_stdout(self, mocker):
        self._patch(mocker, self._result())
        result = CliRunner().invoke(main, ["analyze", "--start-date", "2025-01-01", "--end-date", "2025-12-31"])
        assert result.exit_code == 0, result.output
        assert "# Gerrit Change Analysis" in result.output

    def test_partial_result_warned(self, mocker, tmp_path):
        self._patch(mocker, self._result(StopReason.SAFETY_CAP))
        result = CliRunner().invoke(main, ["analyze", "--output", str(tmp_path / "r.md")])
        assert "Partial result" in result.output

    def test_bad_date(self, mocker):
        self._patch(mocker, self._result())
        result = CliRunner().invoke(main, ["analyze", "--start-date", "01/01/2025"])
        assert result.exit_code == 2

    def test_reversed_range(self, mocker):
        _, fetch = self._patch(mocker, self._result())
        result = CliRunner().invoke(main, ["analyze", "--start-date", "2025-06-01", "--end-date", "2025-01-01"])
        assert result.exit_code != 0
        fetch.assert_not_called()

    def test_empty_range(self, mocker):
        self._patch(mocker, BulkResult())
        result = CliRunner().invoke(main, ["analyze"])
        assert result.exit_code == 0
        assert "No changes found" in result.output


class TestInit:
    def test_writes_config(self, mocker, tmp_path):
        mocker.patch("gerry_cli.commands.init.SshClient").return_value.server_version.return_value = "3.9.1"
        mocker.patch("gerry_cli.commands.init.RestClient").return_value.server_version.return_value = "3.9.1"
        path = tmp_path / "config.yml"

        answers = "\n".join(["gerrit.example.com", "29418", "ada", "", "y", "0", "secret", "core"]) + "\n"
        result = CliRunner().invoke(main, ["--config", str(path), "init"], input=answers)

        assert result.exit_code == 0, result.output
        text = path.read_text()
        assert "server: gerrit.example.com" in text
        assert "project: core" in text
        assert "http_password: secret" in text

    def test_rest_failure_disables_rest(self, mocker, tmp_path):
        mocker.patch("gerry_cli.commands.init.SshClient").return_value.server_version.return_value = "3.9.1"
        mocker.patch("gerry_cli.commands.init.RestClient").return_value.server_version.side_effect = TransportError(
            "authentication failed (401)"
        )
        path = tmp_path / "config.yml"

        answers = "\n".join(["gerrit.example.com", "29418", "ada", "", "y", "0", "wrong", ""]) + "\n"
        result = CliRunner().invoke(main, ["--config", str(path), "init"], input=answers)

        assert result.exit_code == 0, result.output
        assert "REST API access will be disabled" in result.output
        assert "http_password" not in path.read_text()

    def test_ssh_failure_aborts(self, mocker, tmp_path):
        mocker.patch("gerry_cli.commands.init.SshClient").return_value.server_version.side_effect = TransportError(
            "Permission denied", backend="ssh"
        )
        path = tmp_path / "config.yml"

        answers = "\n".join(["gerrit.example.com", "29418", "ada", ""]) + "\n"
        result = CliRunner().invoke(main, ["--config", str(path), "init"], input=answers)

        assert result.exit_code == 1
        assert not path.exists()
