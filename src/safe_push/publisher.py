"""Publishing a validated commit to the upstream."""

from enum import Enum

from safe_push.errors import PublishError, RemoteDiverged
from safe_push.git_client import GitClient
from safe_push.models import CommitRef, PushOptions, UpstreamTarget
from safe_push.reporter import Reporter


class PublishAction(Enum):
    SKIP_DRY_RUN = "skip-dry-run"
    FAST_FORWARD_LOCAL = "fast-forward-local"
    FORCE_PUSH = "force-push"
    PUSH = "push"


# Markers git prints when the remote has moved on since our fetch
_DIVERGED_MARKERS = ("non-fast-forward", "fetch first", "[rejected]", "stale info")


class PublishStrategist:
    """Chooses and performs the publish step for one validated commit."""

    def __init__(self, git: GitClient, reporter: Reporter):
        self.git = git
        self.reporter = reporter

    def choose(self, upstream: UpstreamTarget, options: PushOptions) -> PublishAction:
        if options.dry_run:
            return PublishAction.SKIP_DRY_RUN
        if upstream.is_local:
            return PublishAction.FAST_FORWARD_LOCAL
        if options.force:
            return PublishAction.FORCE_PUSH
        return PublishAction.PUSH

    def publish(self, commit: CommitRef, upstream: UpstreamTarget, options: PushOptions) -> PublishAction:
        """
        Publish commit to upstream according to options.

        Raises:
            RemoteDiverged: The remote moved since the pre-flight check.
            PublishError: Any other rejection.
        """
        action = self.choose(upstream, options)

        if action is PublishAction.SKIP_DRY_RUN:
            self.reporter.warning(f"[dry-run] Would push {commit.short} to {upstream.display_name}")
            return action

        if action is PublishAction.FAST_FORWARD_LOCAL:
            result = self.git.fast_forward_local_branch(upstream.branch, commit.sha)
            if not result.ok:
                raise PublishError(
                    f"Could not fast-forward local branch {upstream.branch} to {commit.short}: "
                    f"{result.diagnostic}",
                    subject=commit.sha,
                )
            self.reporter.info(f"Fast-forwarded {upstream.branch} to {commit.short}")
            return action

        force = action is PublishAction.FORCE_PUSH
        if force:
            self.reporter.warning(f"Force-pushing {commit.short} to {upstream.display_name}")
        result = self.git.push(upstream.remote, commit.sha, upstream.branch, force=force)
        if not result.ok:
            diagnostic = result.diagnostic
            if not force and any(marker in diagnostic for marker in _DIVERGED_MARKERS):
                raise RemoteDiverged(
                    f"{upstream.display_name} has diverged; push of {commit.short} rejected: {diagnostic}",
                    subject=commit.sha,
                )
            raise PublishError(
                f"Push of {commit.short} to {upstream.display_name} failed: {diagnostic}",
                subject=commit.sha,
            )
        self.reporter.info(f"Pushed {commit.short} to {upstream.display_name}")
        return action
