"""Constants for safe-push."""

import os

# Shadow workspace lives next to the repository: <parent>/.<name><suffix>
SHADOW_PREFIX = "."
DEFAULT_SHADOW_SUFFIX = "-safe-push"

# Heavy dependency/cache directories symlinked from the original repository
# into the shadow workspace instead of being rebuilt for every commit.
DEFAULT_SHARED_CACHES = [
    "node_modules",
    ".gradle",
    ".bundle",
    "vendor/bundle",
    "target/resolution-cache",
    "project/target",
    "project/project",
]

# Build runner fallbacks, relative to the workspace root
GO_RUNNER = "go"
PRE_COMMIT_SCRIPT = "pre-commit"
SBT_BOOTSTRAP = "sbt"
SBT_PROJECT_DIR = "project"
SBT_PHASES = ["clean", "test", "doc", "package"]

# Platforms that idle-sleep during long builds, and the guard to wrap with
NO_SLEEP_GUARDS = {
    "darwin": ["caffeinate", "-i"],
}

CONFIG_FILENAME = ".safe-push.yaml"

GIT_EXECUTABLE = os.getenv("SAFE_PUSH_GIT", "git")
