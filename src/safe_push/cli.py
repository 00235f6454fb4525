"""CLI entrypoint for safe-push."""

from pathlib import Path

import click
from dotenv import load_dotenv

from safe_push.config import load_config, split_command
from safe_push.errors import SafePushError, UsageError
from safe_push.git_client import GitClient
from safe_push.inspector import RepositoryInspector
from safe_push.models import PushOptions
from safe_push.orchestrator import PushOrchestrator
from safe_push.reporter import ConsoleReporter

# Load .env file on CLI startup
load_dotenv()


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="safe-push")
@click.argument("revision", nargs=-1)
@click.option("-c", "--command", "build_command", default=None, help="Build command to run for every commit.")
@click.option("-a", "--all-at-once", is_flag=True, help="Validate and push only the final commit.")
@click.option("-n", "--dry-run", is_flag=True, help="Validate, but do not push anything.")
@click.option("-f", "--force", is_flag=True, help="Skip the fast-forward check and force-push.")
@click.option("--if-needed", is_flag=True, help="Succeed quietly when there is nothing to push.")
@click.option("--no-fetch", is_flag=True, help="Do not fetch the upstream remote first.")
@click.option("--no-clean-shadow", is_flag=True, help="Do not wipe untracked files in the shadow workspace.")
@click.option(
    "-C",
    "--repo",
    default=".",
    type=click.Path(exists=True, file_okay=False),
    help="Repository to push from (default: current directory).",
)
@click.option("--debug", is_flag=True, envvar="SAFE_PUSH_DEBUG", help="Show git commands and other details.")
def cli(
    revision,
    build_command,
    all_at_once: bool,
    dry_run: bool,
    force: bool,
    if_needed: bool,
    no_fetch: bool,
    no_clean_shadow: bool,
    repo: str,
    debug: bool,
):
    """Build every commit in a shadow workspace, then push the ones that pass.

    REVISION defaults to HEAD.
    """
    reporter = ConsoleReporter(debug=debug)

    try:
        if len(revision) > 1:
            raise UsageError(f"Expected at most one revision, got {len(revision)}: {' '.join(revision)}")

        repo_root = RepositoryInspector(GitClient(Path(repo).resolve(), reporter=reporter)).repository_root()
        config = load_config(repo_root)
        reporter.show_debug = debug or config.debug
        reporter.debug(f"Configuration loaded from {config.source}")

        explicit = split_command(build_command) if build_command else config.build_command
        options = PushOptions(
            all_at_once=all_at_once,
            dry_run=dry_run,
            force=force,
            fetch=not no_fetch,
            clean_shadow=not no_clean_shadow,
            if_needed=if_needed,
            build_command=explicit,
        )

        orchestrator = PushOrchestrator.for_repository(repo_root, config, reporter)
        report = orchestrator.run(revision[0] if revision else None, options)
    except UsageError as e:
        raise click.UsageError(str(e))
    except SafePushError as e:
        reporter.fatal(str(e))
        raise SystemExit(e.exit_code)

    if report.nothing_to_push:
        raise SystemExit(0 if if_needed else 1)
    if not report.pushed_anything:
        raise SystemExit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
