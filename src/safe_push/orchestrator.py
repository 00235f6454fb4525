"""Push orchestration: safety checks, then validate-and-publish per commit.

Flow:
    resolve target + upstream -> fetch -> nothing-to-push check
    -> fast-forward check -> plan -> shadow workspace
    -> for each commit: validate -> publish

Any exception aborts the remaining plan. Nothing is retried and no later
commit is attempted after an earlier one fails.
"""

from pathlib import Path
from typing import Optional, Tuple

from safe_push.build_runner import BuildRunner, BuildRunnerResolver
from safe_push.config import Config
from safe_push.errors import NothingToPush, NotFastForward
from safe_push.git_client import GitClient
from safe_push.inspector import RepositoryInspector
from safe_push.models import CommitRef, PushOptions, PushPlan, PushReport, UpstreamTarget
from safe_push.publisher import PublishStrategist
from safe_push.reporter import Reporter
from safe_push.shadow import ShadowWorkspaceManager
from safe_push.validator import CommitValidator


class PushOrchestrator:
    """Drives one safe-push run against a repository."""

    def __init__(
        self,
        repo_path: Path,
        inspector: RepositoryInspector,
        shadow: ShadowWorkspaceManager,
        validator: CommitValidator,
        publisher: PublishStrategist,
        reporter: Reporter,
    ):
        self.repo_path = Path(repo_path)
        self.inspector = inspector
        self.shadow = shadow
        self.validator = validator
        self.publisher = publisher
        self.reporter = reporter

    @classmethod
    def for_repository(cls, repo_path: Path, config: Config, reporter: Reporter) -> "PushOrchestrator":
        """Wire up the real git and build collaborators."""
        git = GitClient(repo_path, reporter=reporter)
        shadow = ShadowWorkspaceManager(git, shared_caches=config.shared_caches, suffix=config.shadow_suffix)
        validator = CommitValidator(
            git=git,
            shadow=shadow,
            resolver=BuildRunnerResolver(),
            runner=BuildRunner(),
            reporter=reporter,
        )
        return cls(
            repo_path=repo_path,
            inspector=RepositoryInspector(git),
            shadow=shadow,
            validator=validator,
            publisher=PublishStrategist(git, reporter),
            reporter=reporter,
        )

    def preflight(self, target: Optional[str], options: PushOptions) -> Tuple[CommitRef, UpstreamTarget]:
        """Resolve what to push and where, fetching first unless told not to.

        Raises:
            AmbiguousOrMissingRef, NoUpstreamConfigured, NetworkError
        """
        to_push = self.inspector.resolve_commit(target or "HEAD")
        upstream = self.inspector.resolve_upstream()

        if options.fetch and not options.force and not upstream.is_local:
            self.reporter.info(f"Fetching {upstream.remote}...")
            self.inspector.fetch_remote(upstream)
            upstream = self.inspector.resolve_upstream()
        return to_push, upstream

    def plan(self, to_push: CommitRef, upstream: UpstreamTarget, options: PushOptions) -> PushPlan:
        """
        Check that to_push fast-forwards upstream and list what to publish.

        Raises:
            NothingToPush, NotFastForward (unless options.force)
        """
        if to_push == upstream.commit:
            raise NothingToPush(
                f"{to_push.short} is already at {upstream.display_name}",
                subject=to_push.sha,
            )

        base = self.inspector.merge_base(to_push, upstream.commit)
        if base != upstream.commit:
            message = (
                f"{to_push.short} is not a fast-forward of {upstream.display_name} "
                f"({upstream.commit.short})"
            )
            if not options.force:
                raise NotFastForward(message + "; rebase first or use --force", subject=to_push.sha)
            self.reporter.warning(message + "; continuing because of --force")

        if options.all_at_once:
            commits = [to_push]
        else:
            commits = self.inspector.commits_between(base, to_push)
            if not commits and options.force:
                # to_push is behind the upstream; rewinding publishes to_push itself
                commits = [to_push]

        return PushPlan.build(commits, upstream, options)

    def run(self, target: Optional[str] = None, options: Optional[PushOptions] = None) -> PushReport:
        options = options or PushOptions()
        if options.dry_run:
            self.reporter.warning("[dry-run] Nothing will be pushed.")

        to_push, upstream = self.preflight(target, options)
        if to_push == upstream.commit and options.if_needed:
            prefix = "[dry-run] " if options.dry_run else ""
            self.reporter.success(f"{prefix}Nothing to push; {upstream.display_name} is up to date.")
            return PushReport(upstream=upstream, dry_run=options.dry_run, nothing_to_push=True)

        plan = self.plan(to_push, upstream, options)

        unit = "commit" if len(plan) == 1 else "commits"
        mode = " as one batch" if options.all_at_once else ""
        self.reporter.info(f"Validating {len(plan)} {unit}{mode} for {plan.upstream.display_name}")

        workspace = self.shadow.ensure_workspace(self.repo_path, plan.commits[0])
        if workspace.is_new:
            self.reporter.info(f"Created shadow workspace {workspace.path}")
        else:
            self.reporter.debug(f"Reusing shadow workspace {workspace.path}")

        report = PushReport(upstream=plan.upstream, dry_run=options.dry_run)
        build_command = None
        for index, commit in enumerate(plan, start=1):
            self.reporter.info(f"[{index}/{len(plan)}] {commit.short}")
            result = self.validator.validate(
                workspace,
                commit,
                build_command=build_command,
                explicit_command=options.build_command,
                clean_first=options.clean_shadow,
            )
            build_command = result.build_command
            result.raise_for_failure()

            self.publisher.publish(commit, plan.upstream, options)
            report.published.append(commit)

        names = ", ".join(c.short for c in report.published)
        if options.dry_run:
            self.reporter.success(
                f"[dry-run] Simulated: would have pushed {names} to {plan.upstream.display_name}"
            )
        else:
            self.reporter.success(f"Pushed {names} to {plan.upstream.display_name}")
        return report
