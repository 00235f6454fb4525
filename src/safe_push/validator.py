"""Per-commit validation inside the shadow workspace."""

from typing import Optional, Sequence

from safe_push.build_runner import BuildRunner, BuildRunnerResolver
from safe_push.git_client import GitClient
from safe_push.inspector import RepositoryInspector
from safe_push.models import BuildCommand, CommitRef, ShadowWorkspace, ValidationResult
from safe_push.reporter import Reporter
from safe_push.shadow import ShadowWorkspaceManager


class CommitValidator:
    """Checks out one commit in the shadow workspace and builds it."""

    def __init__(
        self,
        git: GitClient,
        shadow: ShadowWorkspaceManager,
        resolver: BuildRunnerResolver,
        runner: BuildRunner,
        reporter: Reporter,
    ):
        self.git = git
        self.shadow = shadow
        self.resolver = resolver
        self.runner = runner
        self.reporter = reporter

    def validate(
        self,
        workspace: ShadowWorkspace,
        commit: CommitRef,
        build_command: Optional[BuildCommand] = None,
        explicit_command: Optional[Sequence[str]] = None,
        clean_first: bool = True,
    ) -> ValidationResult:
        """
        Validate commit in workspace.

        Steps:
        1. Force-checkout the commit (and clean, unless disabled)
        2. Link shared caches from the original repository
        3. Resolve the build command if the caller has none yet
        4. Run the build in the workspace
        5. Check that the build left no uncommitted or untracked files

        Returns:
            ValidationResult. Its build_command is what the caller should
            pass back in for the following commits.
        """
        self.shadow.prepare_for_commit(workspace, commit, clean_first=clean_first)

        newly_linked = self.shadow.link_shared_caches(workspace)
        for rel in newly_linked:
            self.reporter.debug(f"Linked {rel} into {workspace.path}")

        if build_command is None:
            build_command = self.resolver.resolve(explicit_command, workspace.path)
            self.reporter.info(f"Build command ({build_command.source}): {build_command}")

        self.reporter.info(f"Building {commit.short} in {workspace.path}")
        build = self.runner.run(build_command, workspace.path)
        if not build.ok:
            return ValidationResult(
                commit=commit,
                passed=False,
                details=f"Build failed for {commit.short}: {build.diagnostic}",
                build_command=build_command,
            )

        inspector = RepositoryInspector(self.git.at(workspace.path))
        residue = inspector.residual_changes(exclude_paths=workspace.linked_paths)
        if residue:
            shown = ", ".join(residue[:10])
            more = f" (and {len(residue) - 10} more)" if len(residue) > 10 else ""
            return ValidationResult(
                commit=commit,
                passed=False,
                residual_changes=True,
                residual_paths=residue,
                details=(
                    f"Build of {commit.short} left uncommitted changes: {shown}{more}. "
                    f"Commit them or add them to .gitignore."
                ),
                build_command=build_command,
            )

        return ValidationResult(commit=commit, passed=True, build_command=build_command)
