"""Value types shared across the push pipeline."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Set, Tuple

from safe_push.errors import BuildFailed, NothingToPush, ResidualChanges


@dataclass(frozen=True)
class CommitRef:
    """A resolved commit id. Never re-resolved once created."""
    sha: str

    @property
    def short(self) -> str:
        return self.sha[:10]

    def __str__(self) -> str:
        return self.sha


@dataclass(frozen=True)
class UpstreamTarget:
    """Where commits get published.

    remote is None when the upstream is itself a local branch.
    """
    remote: Optional[str]
    branch: str
    commit: CommitRef

    @property
    def is_local(self) -> bool:
        return self.remote is None

    @property
    def display_name(self) -> str:
        if self.remote is None:
            return self.branch
        return f"{self.remote}/{self.branch}"


@dataclass(frozen=True)
class PushOptions:
    """Mode flags for a run."""
    all_at_once: bool = False
    dry_run: bool = False
    force: bool = False
    fetch: bool = True
    clean_shadow: bool = True
    if_needed: bool = False
    build_command: Optional[Sequence[str]] = None


@dataclass(frozen=True)
class PushPlan:
    """Commits to validate and publish, oldest first."""
    commits: Tuple[CommitRef, ...]
    upstream: UpstreamTarget
    options: PushOptions

    @classmethod
    def build(cls, commits: Sequence[CommitRef], upstream: UpstreamTarget, options: PushOptions) -> "PushPlan":
        if not commits:
            raise NothingToPush(
                f"No commits to push to {upstream.display_name}",
                subject=upstream.display_name,
            )
        return cls(commits=tuple(commits), upstream=upstream, options=options)

    def __len__(self) -> int:
        return len(self.commits)

    def __iter__(self):
        return iter(self.commits)


@dataclass
class ShadowWorkspace:
    """Linked working copy used for builds. Outlives any single run."""
    path: Path
    original_path: Path
    is_new: bool
    linked_paths: Set[str] = field(default_factory=set)


@dataclass(frozen=True)
class BuildCommand:
    """Resolved build argv plus the rule that produced it."""
    argv: Tuple[str, ...]
    source: str

    def __str__(self) -> str:
        return " ".join(self.argv)


@dataclass
class BuildResult:
    ok: bool
    returncode: int
    diagnostic: str = ""


@dataclass
class ValidationResult:
    """Result of validating one commit."""
    commit: CommitRef
    passed: bool
    residual_changes: bool = False
    details: str = ""
    residual_paths: List[str] = field(default_factory=list)
    build_command: Optional[BuildCommand] = None

    def raise_for_failure(self) -> None:
        """Turn a failed result into the matching ValidationFailure."""
        if self.passed:
            return
        if self.residual_changes:
            raise ResidualChanges(self.details, subject=self.commit.sha, paths=self.residual_paths)
        raise BuildFailed(self.details, subject=self.commit.sha)


@dataclass
class PushReport:
    """Summary of a finished run."""
    upstream: UpstreamTarget
    published: List[CommitRef] = field(default_factory=list)
    dry_run: bool = False
    nothing_to_push: bool = False

    @property
    def pushed_anything(self) -> bool:
        return bool(self.published) and not self.dry_run
