"""Build command resolution and execution.

Resolution is an ordered list of (name, predicate, command) rules checked
against a FileSystemView rooted at the workspace. The first rule whose
predicate holds wins.
"""

import os
import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from safe_push.config import split_command
from safe_push.constants import (
    GO_RUNNER,
    NO_SLEEP_GUARDS,
    PRE_COMMIT_SCRIPT,
    SBT_BOOTSTRAP,
    SBT_PHASES,
    SBT_PROJECT_DIR,
)
from safe_push.errors import NoBuildRunnerFound
from safe_push.models import BuildCommand, BuildResult


class FileSystemView(ABC):
    """Read-only questions about files under a root directory."""

    @abstractmethod
    def is_executable(self, relpath: str) -> bool:
        ...

    @abstractmethod
    def glob(self, pattern: str) -> List[str]:
        ...


class LocalFileSystem(FileSystemView):
    def __init__(self, root: Path):
        self.root = Path(root)

    def is_executable(self, relpath: str) -> bool:
        path = self.root / relpath
        return path.is_file() and os.access(path, os.X_OK)

    def glob(self, pattern: str) -> List[str]:
        return sorted(str(p.relative_to(self.root)) for p in self.root.glob(pattern) if p.is_file())


def _has_sbt_descriptors(fs: FileSystemView) -> bool:
    return bool(
        fs.glob("*.sbt")
        or fs.glob(f"{SBT_PROJECT_DIR}/*.sbt")
        or fs.glob(f"{SBT_PROJECT_DIR}/*.scala")
    )


Rule = Tuple[str, Callable[[FileSystemView], bool], List[str]]

DEFAULT_RULES: List[Rule] = [
    ("go runner", lambda fs: fs.is_executable(GO_RUNNER), [f"./{GO_RUNNER}"]),
    ("pre-commit script", lambda fs: fs.is_executable(PRE_COMMIT_SCRIPT), [f"./{PRE_COMMIT_SCRIPT}"]),
    ("sbt bootstrap", lambda fs: fs.is_executable(SBT_BOOTSTRAP), [f"./{SBT_BOOTSTRAP}", *SBT_PHASES]),
    ("sbt project", _has_sbt_descriptors, ["sbt", *SBT_PHASES]),
]


class BuildRunnerResolver:
    """Picks the build command for a workspace."""

    def __init__(
        self,
        rules: Optional[List[Rule]] = None,
        view_factory: Callable[[Path], FileSystemView] = LocalFileSystem,
        platform: str = sys.platform,
    ):
        self.rules = list(DEFAULT_RULES if rules is None else rules)
        self.view_factory = view_factory
        self.platform = platform

    def resolve(self, explicit_command: Optional[Sequence[str]], workspace_path: Path) -> BuildCommand:
        """
        Resolve the build command to run in workspace_path.

        Args:
            explicit_command: Command supplied by the user (string or argv);
                              always wins when given.
            workspace_path: Root of the checked-out commit.

        Raises:
            NoBuildRunnerFound: No rule matched.
        """
        if explicit_command:
            return self._guard(split_command(explicit_command), "explicit")

        fs = self.view_factory(workspace_path)
        for name, predicate, argv in self.rules:
            if predicate(fs):
                return self._guard(list(argv), name)

        raise NoBuildRunnerFound(
            f"Don't know how to build {workspace_path}: no ./{GO_RUNNER}, "
            f"./{PRE_COMMIT_SCRIPT}, ./{SBT_BOOTSTRAP} or sbt project found. "
            f"Pass --command to say how.",
            subject=str(workspace_path),
        )

    def _guard(self, argv: List[str], source: str) -> BuildCommand:
        guard = NO_SLEEP_GUARDS.get(self.platform)
        if guard and argv[: len(guard)] != guard:
            argv = [*guard, *argv]
        return BuildCommand(argv=tuple(argv), source=source)


class BuildRunner:
    """Runs a build command to completion in a directory."""

    def run(self, command: BuildCommand, cwd: Path) -> BuildResult:
        try:
            result = subprocess.run(list(command.argv), cwd=str(cwd))
        except FileNotFoundError:
            return BuildResult(ok=False, returncode=127, diagnostic=f"{command.argv[0]}: command not found")
        except PermissionError:
            return BuildResult(ok=False, returncode=126, diagnostic=f"{command.argv[0]}: permission denied")
        if result.returncode != 0:
            return BuildResult(
                ok=False,
                returncode=result.returncode,
                diagnostic=f"`{command}` exited with status {result.returncode}",
            )
        return BuildResult(ok=True, returncode=0)
