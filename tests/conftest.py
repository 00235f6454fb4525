"""In-memory git and build fakes (no git executable needed)."""

import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

from safe_push.git_client import GitResult
from safe_push.models import BuildResult
from safe_push.reporter import RecordingReporter


def sha_of(name: str) -> str:
    return hashlib.sha1(name.encode()).hexdigest()


def ok(stdout: str = "") -> GitResult:
    return GitResult(ok=True, stdout=stdout)


def fail(stderr: str = "fatal: failed", returncode: int = 128) -> GitResult:
    return GitResult(ok=False, stderr=stderr, returncode=returncode)


@dataclass
class RepoState:
    """Commit graph, refs and a log of every mutating call."""
    root: Path
    parents: Dict[str, Optional[str]] = field(default_factory=dict)
    refs: Dict[str, str] = field(default_factory=dict)
    branch: Optional[str] = "feature"
    upstream_name: Optional[str] = "origin/main"
    config: Dict[str, str] = field(default_factory=dict)
    status: Dict[str, str] = field(default_factory=dict)
    checked_out: Dict[str, str] = field(default_factory=dict)

    fetch_error: Optional[str] = None
    push_error: Optional[str] = None
    worktree_error: Optional[str] = None
    refs_after_fetch: Dict[str, str] = field(default_factory=dict)

    fetches: List[str] = field(default_factory=list)
    pushes: List[Tuple[str, str, str, bool]] = field(default_factory=list)
    fast_forwards: List[Tuple[str, str]] = field(default_factory=list)
    checkouts: List[Tuple[str, str]] = field(default_factory=list)
    cleans: List[Tuple[str, Set[str]]] = field(default_factory=list)
    worktrees: List[Tuple[str, str]] = field(default_factory=list)
    worktree_dirs: Set[str] = field(default_factory=set)
    prunes: int = 0

    def commit(self, name: str, parent: Optional[str] = None) -> str:
        sha = sha_of(name)
        self.parents[sha] = parent
        return sha

    def chain(self, names: List[str], parent: Optional[str] = None) -> List[str]:
        shas = []
        for name in names:
            parent = self.commit(name, parent)
            shas.append(parent)
        return shas

    def lookup(self, ref: str) -> Optional[str]:
        if ref in self.refs:
            return self.refs[ref]
        if ref in self.parents:
            return ref
        return None

    def ancestors(self, sha: str) -> List[str]:
        out = []
        while sha is not None:
            out.append(sha)
            sha = self.parents.get(sha)
        return out


class FakeGit:
    """Stands in for GitClient; all clients from at() share one RepoState."""

    def __init__(self, state: RepoState, work_dir: Optional[Path] = None):
        self.state = state
        self.work_dir = Path(work_dir or state.root)

    def at(self, work_dir: Path) -> "FakeGit":
        return FakeGit(self.state, work_dir)

    def show_toplevel(self) -> GitResult:
        return ok(f"{self.state.root}\n")

    def resolve_commit(self, ref: str) -> GitResult:
        sha = self.state.lookup(ref)
        return ok(f"{sha}\n") if sha else fail("", returncode=1)

    def current_branch(self, ref: str = "HEAD") -> GitResult:
        if self.state.branch is None:
            return fail("", returncode=1)
        return ok(f"{self.state.branch}\n")

    def upstream_name(self, ref: str = "HEAD") -> GitResult:
        if self.state.upstream_name is None:
            return fail("fatal: no upstream configured for branch 'feature'")
        return ok(f"{self.state.upstream_name}\n")

    def common_dir(self) -> GitResult:
        here = self.work_dir.resolve()
        if here == self.state.root.resolve() or str(here) in self.state.worktree_dirs:
            return ok(f"{self.state.root.resolve() / '.git'}\n")
        return fail("fatal: not a git repository (or any of the parent directories): .git")

    def config_get(self, key: str) -> GitResult:
        if key not in self.state.config:
            return fail("", returncode=1)
        return ok(f"{self.state.config[key]}\n")

    def merge_base(self, a: str, b: str) -> GitResult:
        seen = set(self.state.ancestors(a))
        for sha in self.state.ancestors(b):
            if sha in seen:
                return ok(f"{sha}\n")
        return fail("", returncode=1)

    def rev_list(self, older: str, newer: str, first_parent: bool = True) -> GitResult:
        shas = []
        for sha in self.state.ancestors(newer):
            if sha == older:
                break
            shas.append(sha)
        return ok("".join(f"{sha}\n" for sha in reversed(shas)))

    def status_porcelain(self) -> GitResult:
        return ok(self.state.status.get(str(self.work_dir), ""))

    def fetch(self, remote: str) -> GitResult:
        self.state.fetches.append(remote)
        if self.state.fetch_error:
            return fail(self.state.fetch_error)
        self.state.refs.update(self.state.refs_after_fetch)
        return ok()

    def checkout(self, commit: str, force: bool = True) -> GitResult:
        self.state.checkouts.append((str(self.work_dir), commit))
        self.state.checked_out[str(self.work_dir)] = commit
        self.state.status.pop(str(self.work_dir), None)
        return ok()

    def clean(self, exclude=()) -> GitResult:
        self.state.cleans.append((str(self.work_dir), set(exclude)))
        return ok()

    def worktree_add(self, destination: Path, commit: str) -> GitResult:
        if self.state.worktree_error:
            return fail(self.state.worktree_error)
        Path(destination).mkdir(parents=True)
        self.state.worktrees.append((str(destination), commit))
        self.state.worktree_dirs.add(str(Path(destination).resolve()))
        return ok()

    def worktree_prune(self) -> GitResult:
        self.state.prunes += 1
        return ok()

    def fast_forward_local_branch(self, branch: str, commit: str) -> GitResult:
        self.state.fast_forwards.append((branch, commit))
        self.state.refs[branch] = commit
        return ok()

    def push(self, remote: str, commit: str, branch: str, force: bool = False) -> GitResult:
        self.state.pushes.append((remote, commit, branch, force))
        if self.state.push_error:
            return fail(self.state.push_error, returncode=1)
        self.state.refs[f"{remote}/{branch}"] = commit
        return ok()


class FakeBuildRunner:
    """Records builds; fails or leaves residue for chosen commits."""

    def __init__(self, state: RepoState):
        self.state = state
        self.runs: List[Tuple[Tuple[str, ...], str, str]] = []
        self.fail_on: Set[str] = set()
        self.residue_on: Dict[str, str] = {}

    def run(self, command, cwd: Path) -> BuildResult:
        commit = self.state.checked_out.get(str(cwd))
        self.runs.append((tuple(command.argv), str(cwd), commit))
        if commit in self.fail_on:
            return BuildResult(ok=False, returncode=1, diagnostic=f"`{command}` exited with status 1")
        if commit in self.residue_on:
            self.state.status[str(cwd)] = self.residue_on[commit]
        return BuildResult(ok=True, returncode=0)

    @property
    def built_commits(self) -> List[str]:
        return [commit for _, _, commit in self.runs]


@pytest.fixture
def repo_state(tmp_path):
    """Repository at tmp_path/work: main = base, feature = base + 3 commits."""
    root = tmp_path / "work"
    root.mkdir()
    state = RepoState(root=root)
    base = state.chain(["root", "base"])[-1]
    ahead = state.chain(["one", "two", "three"], parent=base)
    state.refs.update({"HEAD": ahead[-1], "feature": ahead[-1], "origin/main": base, "main": base})
    state.config.update({
        "branch.feature.remote": "origin",
        "branch.feature.merge": "refs/heads/main",
    })
    return state


@pytest.fixture
def fake_git(repo_state):
    return FakeGit(repo_state)


@pytest.fixture
def build_runner(repo_state):
    return FakeBuildRunner(repo_state)


@pytest.fixture
def reporter():
    return RecordingReporter()
