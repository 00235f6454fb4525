"""Thin wrapper around the git executable.

Every call returns a GitResult instead of raising or leaking raw exit
codes; callers decide which failures are fatal. Each client is bound to
one working directory, passed to git with -C, so nothing here ever
changes the process-wide current directory.
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from safe_push.constants import GIT_EXECUTABLE
from safe_push.reporter import Reporter


@dataclass
class GitResult:
    """Outcome of one git invocation."""
    ok: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def output(self) -> str:
        return self.stdout.strip()

    @property
    def diagnostic(self) -> str:
        """Best available explanation of a failure."""
        return (
            self.stderr.strip()
            or self.stdout.strip()
            or f"git exited with status {self.returncode}"
        )


class GitClient:
    """Runs git commands against a single working directory."""

    def __init__(self, work_dir: Path, executable: str = GIT_EXECUTABLE, reporter: Optional[Reporter] = None):
        self.work_dir = Path(work_dir)
        self.executable = executable
        self.reporter = reporter

    def at(self, work_dir: Path) -> "GitClient":
        """Return a client bound to another working directory."""
        return GitClient(work_dir, executable=self.executable, reporter=self.reporter)

    def run(self, *args: str) -> GitResult:
        cmd = [self.executable, "-C", str(self.work_dir), *args]
        if self.reporter is not None:
            self.reporter.debug(" ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            return GitResult(ok=False, stderr=f"{self.executable} command not found", returncode=127)
        except OSError as e:
            return GitResult(ok=False, stderr=f"git failed to start: {e}", returncode=126)
        return GitResult(
            ok=result.returncode == 0,
            stdout=result.stdout,
            stderr=result.stderr,
            returncode=result.returncode,
        )

    # --- Read operations ---

    def resolve_commit(self, ref: str) -> GitResult:
        return self.run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")

    def current_branch(self, ref: str = "HEAD") -> GitResult:
        """Short branch name HEAD points at; fails when detached."""
        if ref == "HEAD":
            return self.run("symbolic-ref", "--quiet", "--short", "HEAD")
        return self.run("rev-parse", "--abbrev-ref", "--verify", "--quiet", ref)

    def upstream_name(self, ref: str = "HEAD") -> GitResult:
        return self.run("rev-parse", "--abbrev-ref", "--symbolic-full-name", f"{ref}@{{upstream}}")

    def show_toplevel(self) -> GitResult:
        return self.run("rev-parse", "--show-toplevel")

    def common_dir(self) -> GitResult:
        """Shared .git directory; the same for a repository and all its worktrees."""
        return self.run("rev-parse", "--git-common-dir")

    def config_get(self, key: str) -> GitResult:
        return self.run("config", "--get", key)

    def merge_base(self, a: str, b: str) -> GitResult:
        return self.run("merge-base", a, b)

    def rev_list(self, older: str, newer: str, first_parent: bool = True) -> GitResult:
        args = ["rev-list", "--reverse"]
        if first_parent:
            args.append("--first-parent")
        args.append(f"{older}..{newer}")
        return self.run(*args)

    def status_porcelain(self) -> GitResult:
        return self.run("status", "--porcelain", "-z", "--untracked-files=all")

    # --- Mutating operations ---

    def fetch(self, remote: str) -> GitResult:
        return self.run("fetch", remote)

    def checkout(self, commit: str, force: bool = True) -> GitResult:
        args = ["checkout"]
        if force:
            args.append("--force")
        args.extend(["--detach", commit])
        return self.run(*args)

    def clean(self, exclude: Iterable[str] = ()) -> GitResult:
        """Remove untracked and ignored files, keeping the excluded paths."""
        args = ["clean", "-ffdx"]
        for path in sorted(exclude):
            args.extend(["-e", f"/{path}"])
        return self.run(*args)

    def worktree_add(self, destination: Path, commit: str) -> GitResult:
        return self.run("worktree", "add", "--detach", str(destination), commit)

    def worktree_prune(self) -> GitResult:
        return self.run("worktree", "prune")

    def fast_forward_local_branch(self, branch: str, commit: str) -> GitResult:
        """Move a local branch to commit, refusing anything but a fast-forward."""
        return self.run("fetch", ".", f"{commit}:refs/heads/{branch}")

    def push(self, remote: str, commit: str, branch: str, force: bool = False) -> GitResult:
        args = ["push"]
        if force:
            args.append("--force")
        args.extend([remote, f"{commit}:refs/heads/{branch}"])
        return self.run(*args)


def parse_status_paths(porcelain_z: str) -> List[str]:
    """Extract paths from `git status --porcelain -z` output.

    Renames and copies carry a second NUL-terminated entry with the
    original path; both paths are reported.
    """
    paths: List[str] = []
    entries = porcelain_z.split("\0")
    i = 0
    while i < len(entries):
        entry = entries[i]
        i += 1
        if len(entry) < 4:
            continue
        status, path = entry[:2], entry[3:]
        paths.append(path.rstrip("/"))
        if status[0] in ("R", "C") and i < len(entries):
            if entries[i]:
                paths.append(entries[i].rstrip("/"))
            i += 1
    return paths


def is_under(path: str, prefixes: Iterable[str]) -> bool:
    """True if path equals or lies below any of the given relative paths."""
    for prefix in prefixes:
        prefix = prefix.strip("/")
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False
