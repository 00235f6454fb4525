"""Error taxonomy for safe-push.

Every fatal condition is a SafePushError. The CLI maps each class to a
process exit code; nothing below is ever recovered from inside a run.
"""

from typing import Optional


class SafePushError(Exception):
    """Base for all safe-push failures."""

    exit_code = 1

    def __init__(self, message: str, subject: Optional[str] = None):
        super().__init__(message)
        self.subject = subject


class UsageError(SafePushError):
    """Bad command-line invocation."""

    exit_code = 2


class ConfigError(SafePushError):
    """Invalid environment or .safe-push.yaml configuration."""

    exit_code = 2


class PreconditionError(SafePushError):
    """Safety checks failed before any side effect was performed."""

    exit_code = 3


class AmbiguousOrMissingRef(PreconditionError):
    pass


class NoUpstreamConfigured(PreconditionError):
    pass


class NothingToPush(PreconditionError):
    pass


class NotFastForward(PreconditionError):
    pass


class ResourceSetupError(SafePushError):
    """Shadow workspace or build runner could not be set up."""

    exit_code = 4


class NoBuildRunnerFound(ResourceSetupError):
    pass


class ValidationFailure(SafePushError):
    """A commit failed its build or left residue behind."""

    exit_code = 5


class BuildFailed(ValidationFailure):
    pass


class ResidualChanges(ValidationFailure):
    def __init__(self, message: str, subject: Optional[str] = None, paths=None):
        super().__init__(message, subject)
        self.paths = list(paths or [])


class PublishError(SafePushError):
    """Push or local fast-forward was rejected."""

    exit_code = 6


class RemoteDiverged(PublishError):
    pass


class NetworkError(SafePushError):
    """Fetching the upstream remote failed."""

    exit_code = 7


__all__ = [
    "SafePushError",
    "UsageError",
    "ConfigError",
    "PreconditionError",
    "AmbiguousOrMissingRef",
    "NoUpstreamConfigured",
    "NothingToPush",
    "NotFastForward",
    "ResourceSetupError",
    "NoBuildRunnerFound",
    "ValidationFailure",
    "BuildFailed",
    "ResidualChanges",
    "PublishError",
    "RemoteDiverged",
    "NetworkError",
]
