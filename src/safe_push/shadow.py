"""Shadow workspace management.

The shadow workspace is a `git worktree` next to the user's repository.
It shares the repository's object database, so any commit can be checked
out there without copying history, and builds never touch the user's
working copy.
"""

import os
from pathlib import Path
from typing import Iterable, List, Optional, Set

from safe_push.constants import DEFAULT_SHADOW_SUFFIX, DEFAULT_SHARED_CACHES, SHADOW_PREFIX
from safe_push.errors import ResourceSetupError
from safe_push.git_client import GitClient
from safe_push.models import CommitRef, ShadowWorkspace


class ShadowWorkspaceManager:
    """Creates, reuses and prepares shadow workspaces."""

    def __init__(
        self,
        git: GitClient,
        shared_caches: Optional[Iterable[str]] = None,
        suffix: str = DEFAULT_SHADOW_SUFFIX,
    ):
        self.git = git
        self.shared_caches = list(DEFAULT_SHARED_CACHES if shared_caches is None else shared_caches)
        self.suffix = suffix

    def shadow_path_for(self, original: Path) -> Path:
        original = Path(original).resolve()
        return original.parent / f"{SHADOW_PREFIX}{original.name}{self.suffix}"

    def ensure_workspace(self, original: Path, seed_commit: CommitRef) -> ShadowWorkspace:
        """
        Return the shadow workspace for original, creating it if needed.

        A directory at the canonical path is reused only if it is a worktree
        of original. An empty leftover directory is removed, stale worktree
        records are pruned and the worktree is recreated at seed_commit.

        Raises:
            ResourceSetupError: The path is occupied by something other than
                                a worktree of original, or the worktree could
                                not be created.
        """
        original = Path(original).resolve()
        path = self.shadow_path_for(original)

        if path.exists() or path.is_symlink():
            if not path.is_dir():
                raise ResourceSetupError(
                    f"Shadow workspace path {path} exists and is not a directory",
                    subject=str(path),
                )
            if self._is_worktree_of(original, path):
                return ShadowWorkspace(
                    path=path,
                    original_path=original,
                    is_new=False,
                    linked_paths=self._existing_links(path),
                )
            if any(path.iterdir()):
                raise ResourceSetupError(
                    f"{path} exists but is not a worktree of {original}; move it aside and rerun",
                    subject=str(path),
                )
            path.rmdir()
            self.git.at(original).worktree_prune()

        result = self.git.at(original).worktree_add(path, seed_commit.sha)
        if not result.ok:
            raise ResourceSetupError(
                f"Could not create shadow workspace at {path}: {result.diagnostic}",
                subject=str(path),
            )
        return ShadowWorkspace(path=path, original_path=original, is_new=True)

    def _common_dir(self, work_dir: Path) -> Optional[Path]:
        result = self.git.at(work_dir).common_dir()
        if not result.ok or not result.output:
            return None
        common = Path(result.output)
        if not common.is_absolute():
            common = work_dir / common
        return common.resolve()

    def _is_worktree_of(self, original: Path, path: Path) -> bool:
        ours = self._common_dir(original)
        return ours is not None and self._common_dir(path) == ours

    def _existing_links(self, path: Path) -> Set[str]:
        return {rel for rel in self.shared_caches if (path / rel).is_symlink()}

    def prepare_for_commit(self, workspace: ShadowWorkspace, commit: CommitRef, clean_first: bool = True) -> None:
        """Force-checkout commit, optionally wiping untracked and ignored files.

        Linked cache paths survive the clean.
        """
        git = self.git.at(workspace.path)
        result = git.checkout(commit.sha, force=True)
        if not result.ok:
            raise ResourceSetupError(
                f"Could not check out {commit.short} in {workspace.path}: {result.diagnostic}",
                subject=commit.sha,
            )
        if clean_first:
            result = git.clean(exclude=workspace.linked_paths)
            if not result.ok:
                raise ResourceSetupError(
                    f"Could not clean {workspace.path}: {result.diagnostic}",
                    subject=commit.sha,
                )

    def link_shared_caches(
        self,
        workspace: ShadowWorkspace,
        original: Optional[Path] = None,
        candidates: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """
        Symlink cache directories from the original repository.

        A candidate is linked only if it exists in the original and nothing
        exists at its place in the workspace yet. Links found in place are
        recorded but never recreated.

        Returns:
            Relative paths linked by this call.
        """
        original = Path(original or workspace.original_path).resolve()
        candidates = self.shared_caches if candidates is None else list(candidates)

        linked = []
        for rel in candidates:
            source = original / rel
            target = workspace.path / rel
            if target.is_symlink():
                workspace.linked_paths.add(rel)
                continue
            if not source.exists() or target.exists():
                continue
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                os.symlink(source, target, target_is_directory=source.is_dir())
            except OSError as e:
                raise ResourceSetupError(
                    f"Could not link {rel} into {workspace.path}: {e}", subject=rel
                )
            workspace.linked_paths.add(rel)
            linked.append(rel)
        return linked
