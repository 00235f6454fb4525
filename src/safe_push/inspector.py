"""Read-side queries against the user's repository."""

from pathlib import Path
from typing import Iterable, List

from safe_push.errors import (
    AmbiguousOrMissingRef,
    NetworkError,
    NoUpstreamConfigured,
    PreconditionError,
)
from safe_push.git_client import GitClient, is_under, parse_status_paths
from safe_push.models import CommitRef, UpstreamTarget


class RepositoryInspector:
    """Resolves refs, the upstream target and commit ranges."""

    def __init__(self, git: GitClient):
        self.git = git

    def repository_root(self) -> Path:
        result = self.git.show_toplevel()
        if not result.ok or not result.output:
            raise PreconditionError(
                f"{self.git.work_dir} is not inside a git working copy", subject=str(self.git.work_dir)
            )
        return Path(result.output)

    def resolve_commit(self, ref: str) -> CommitRef:
        result = self.git.resolve_commit(ref)
        if not result.ok or not result.output:
            raise AmbiguousOrMissingRef(f"Unknown revision: {ref}", subject=ref)
        return CommitRef(result.output)

    def resolve_upstream(self, ref: str = "HEAD") -> UpstreamTarget:
        """
        Resolve the branch the current branch publishes to.

        A branch.<name>.remote of "." means the upstream is a local branch;
        the returned target then has no remote.

        Raises:
            NoUpstreamConfigured: HEAD is detached or tracks nothing.
        """
        branch_result = self.git.current_branch(ref)
        if not branch_result.ok or not branch_result.output or branch_result.output == "HEAD":
            raise NoUpstreamConfigured(
                f"{ref} is not on a branch, so it has no upstream", subject=ref
            )
        local_branch = branch_result.output

        upstream_result = self.git.upstream_name(ref)
        remote_result = self.git.config_get(f"branch.{local_branch}.remote")
        merge_result = self.git.config_get(f"branch.{local_branch}.merge")
        if not (upstream_result.ok and remote_result.ok and merge_result.ok):
            raise NoUpstreamConfigured(
                f"Branch {local_branch} has no upstream configured "
                f"(try: git branch --set-upstream-to=<upstream>)",
                subject=local_branch,
            )

        upstream_name = upstream_result.output
        remote = remote_result.output
        merge_ref = merge_result.output
        branch = merge_ref[len("refs/heads/"):] if merge_ref.startswith("refs/heads/") else merge_ref

        commit = self.resolve_commit(upstream_name)

        if remote == ".":
            return UpstreamTarget(remote=None, branch=branch, commit=commit)

        if f"{remote}/{branch}" != upstream_name:
            raise NoUpstreamConfigured(
                f"Upstream {upstream_name} does not match {remote}/{branch}; "
                f"cannot tell which remote branch to publish to",
                subject=upstream_name,
            )
        return UpstreamTarget(remote=remote, branch=branch, commit=commit)

    def fetch_remote(self, upstream: UpstreamTarget) -> None:
        """Fetch the upstream's remote. Local upstreams need nothing."""
        if upstream.is_local:
            return
        result = self.git.fetch(upstream.remote)
        if not result.ok:
            raise NetworkError(
                f"Fetching {upstream.remote} failed: {result.diagnostic}",
                subject=upstream.remote,
            )

    def merge_base(self, a: CommitRef, b: CommitRef) -> CommitRef:
        result = self.git.merge_base(a.sha, b.sha)
        if not result.ok or not result.output:
            raise PreconditionError(
                f"{a.short} and {b.short} have no common history", subject=a.sha
            )
        return CommitRef(result.output)

    def commits_between(self, older: CommitRef, newer: CommitRef) -> List[CommitRef]:
        """Commits after older up to and including newer, oldest first.

        Only the first-parent chain is followed, so every commit in the
        result descends from the one before it.
        """
        result = self.git.rev_list(older.sha, newer.sha)
        if not result.ok:
            raise PreconditionError(
                f"Cannot list commits {older.short}..{newer.short}: {result.diagnostic}",
                subject=newer.sha,
            )
        return [CommitRef(line.strip()) for line in result.output.splitlines() if line.strip()]

    def residual_changes(self, exclude_paths: Iterable[str] = ()) -> List[str]:
        """Modified or untracked paths, ignoring anything under exclude_paths."""
        exclude = list(exclude_paths)
        result = self.git.status_porcelain()
        if not result.ok:
            raise PreconditionError(f"git status failed: {result.diagnostic}")
        return [p for p in parse_status_paths(result.stdout) if not is_under(p, exclude)]

    def has_uncommitted_or_untracked_changes(self, exclude_paths: Iterable[str] = ()) -> bool:
        return bool(self.residual_changes(exclude_paths))
