"""Tests for the click entrypoint (orchestration stubbed out)."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import sha_of
from safe_push import cli as cli_module
from safe_push.errors import BuildFailed, NotFastForward
from safe_push.models import CommitRef, PushReport, UpstreamTarget


UPSTREAM = UpstreamTarget(remote="origin", branch="main", commit=CommitRef(sha_of("base")))


class StubOrchestrator:
    """Records run() arguments and returns or raises a canned outcome."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    def run(self, target=None, options=None):
        self.calls.append((target, options))
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def stub(monkeypatch, tmp_path):
    holder = {}

    def install(outcome):
        orchestrator = StubOrchestrator(outcome)
        holder["orchestrator"] = orchestrator
        monkeypatch.setattr(
            cli_module.PushOrchestrator,
            "for_repository",
            classmethod(lambda cls, repo_path, config, reporter: orchestrator),
        )
        monkeypatch.setattr(
            cli_module.RepositoryInspector,
            "repository_root",
            lambda self: Path(tmp_path),
        )
        for name in ("SAFE_PUSH_BUILD_COMMAND", "SAFE_PUSH_CACHE_PATHS", "SAFE_PUSH_DEBUG"):
            monkeypatch.delenv(name, raising=False)
        return orchestrator

    return install


def invoke(*args):
    return CliRunner().invoke(cli_module.cli, list(args))


class TestArguments:
    """Flag and positional handling."""

    def test_two_revisions_is_usage_error(self, stub):
        orchestrator = stub(PushReport(upstream=UPSTREAM))
        result = invoke("HEAD", "HEAD~1")
        assert result.exit_code == 2
        assert orchestrator.calls == []

    def test_flags_become_options(self, stub):
        orchestrator = stub(PushReport(upstream=UPSTREAM, published=[CommitRef(sha_of("a"))]))

        result = invoke(
            "-c", "make check", "-a", "-f", "--if-needed", "--no-fetch", "--no-clean-shadow", "topic"
        )

        assert result.exit_code == 0, result.output
        target, options = orchestrator.calls[0]
        assert target == "topic"
        assert options.build_command == ["make", "check"]
        assert options.all_at_once and options.force and options.if_needed
        assert options.fetch is False
        assert options.clean_shadow is False
        assert options.dry_run is False

    def test_defaults(self, stub):
        orchestrator = stub(PushReport(upstream=UPSTREAM, published=[CommitRef(sha_of("a"))]))
        result = invoke()
        assert result.exit_code == 0
        target, options = orchestrator.calls[0]
        assert target is None
        assert options.fetch is True and options.clean_shadow is True
        assert options.build_command is None

    def test_config_file_command_used(self, stub, tmp_path):
        (tmp_path / ".safe-push.yaml").write_text("build_command: ./ci.sh\n")
        orchestrator = stub(PushReport(upstream=UPSTREAM, published=[CommitRef(sha_of("a"))]))
        invoke()
        assert orchestrator.calls[0][1].build_command == ["./ci.sh"]


class TestExitStatus:
    """Exit codes for outcomes and failures."""

    def test_fatal_error_exit_code_and_message(self, stub):
        stub(NotFastForward("abc123 is not a fast-forward of origin/main", subject="abc123"))
        result = invoke()
        assert result.exit_code == NotFastForward.exit_code
        assert "abc123" in result.output

    def test_validation_failure(self, stub):
        stub(BuildFailed("Build failed for abc123", subject="abc123"))
        result = invoke()
        assert result.exit_code == BuildFailed.exit_code

    def test_nothing_to_push_if_needed(self, stub):
        stub(PushReport(upstream=UPSTREAM, nothing_to_push=True))
        assert invoke("--if-needed").exit_code == 0

    def test_dry_run_exits_non_zero(self, stub):
        """A dry run pushes nothing, so it does not count as success."""
        stub(PushReport(upstream=UPSTREAM, published=[CommitRef(sha_of("a"))], dry_run=True))
        assert invoke("--dry-run").exit_code == 1

    def test_dry_run_nothing_to_push_if_needed(self, stub):
        stub(PushReport(upstream=UPSTREAM, dry_run=True, nothing_to_push=True))
        assert invoke("--dry-run", "--if-needed").exit_code == 0

    def test_pushed_commits_exit_zero(self, stub):
        stub(PushReport(upstream=UPSTREAM, published=[CommitRef(sha_of("a"))]))
        assert invoke().exit_code == 0

    def test_bad_config_file(self, stub, tmp_path):
        (tmp_path / ".safe-push.yaml").write_text("nope: 1\n")
        stub(PushReport(upstream=UPSTREAM))
        result = invoke()
        assert result.exit_code == 2


class TestDebugOutput:
    """--debug and the config's debug setting."""

    def test_debug_reports_config_source(self, stub, tmp_path):
        (tmp_path / ".safe-push.yaml").write_text("build_command: ./ci.sh\n")
        stub(PushReport(upstream=UPSTREAM, published=[CommitRef(sha_of("a"))]))
        result = invoke("--debug")
        assert "[DEBUG] Configuration loaded from" in result.output
        assert ".safe-push.yaml" in result.output

    def test_no_debug_by_default(self, stub):
        stub(PushReport(upstream=UPSTREAM, published=[CommitRef(sha_of("a"))]))
        assert "[DEBUG]" not in invoke().output
