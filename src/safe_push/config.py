"""Configuration loading for safe-push.

Settings come from the environment (optionally via a .env file) and from
an optional .safe-push.yaml at the repository root. Environment wins over
the file; command-line flags win over both.
"""

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import jsonschema
import yaml
from dotenv import load_dotenv

from safe_push.constants import CONFIG_FILENAME, DEFAULT_SHADOW_SUFFIX, DEFAULT_SHARED_CACHES
from safe_push.errors import ConfigError


CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "build_command": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {"type": "array", "items": {"type": "string"}, "minItems": 1},
            ]
        },
        "shared_caches": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "shadow_suffix": {"type": "string", "minLength": 1},
    },
}


@dataclass
class Config:
    """Effective configuration for one repository."""

    build_command: Optional[List[str]] = None
    shared_caches: List[str] = field(default_factory=lambda: list(DEFAULT_SHARED_CACHES))
    shadow_suffix: str = DEFAULT_SHADOW_SUFFIX
    debug: bool = False
    source: str = "defaults"


def split_command(command) -> List[str]:
    """Normalise a build command given as a string or argv list."""
    if isinstance(command, str):
        argv = shlex.split(command)
    else:
        argv = [str(part) for part in command]
    if not argv:
        raise ConfigError("Build command is empty")
    return argv


def _load_config_file(config_path: Path) -> dict:
    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        if hasattr(e, "problem_mark") and e.problem_mark:
            mark = e.problem_mark
            raise ConfigError(
                f"{config_path}: YAML parse error at line {mark.line + 1}, "
                f"column {mark.column + 1}: {e.problem or 'syntax error'}"
            )
        raise ConfigError(f"{config_path}: YAML parse error: {e}")
    except OSError as e:
        raise ConfigError(f"{config_path}: cannot read config: {e}")

    if data is None:
        return {}
    try:
        jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "(root)"
        raise ConfigError(f"{config_path}: invalid config at {location}: {e.message}")
    return data


def load_config(repo_path: Optional[Path] = None) -> Config:
    """
    Load configuration for the repository at repo_path.

    Args:
        repo_path: Repository root; its .safe-push.yaml is read if present.

    Returns:
        Config with environment overrides applied on top of the file.

    Raises:
        ConfigError: If the config file is unparsable or fails the schema.
    """
    load_dotenv()

    config = Config()

    if repo_path is not None:
        config_path = Path(repo_path) / CONFIG_FILENAME
        if config_path.is_file():
            data = _load_config_file(config_path)
            if "build_command" in data:
                config.build_command = split_command(data["build_command"])
            if "shared_caches" in data:
                config.shared_caches = list(data["shared_caches"])
            if "shadow_suffix" in data:
                config.shadow_suffix = data["shadow_suffix"]
            config.source = str(config_path)

    env_command = os.environ.get("SAFE_PUSH_BUILD_COMMAND")
    if env_command:
        config.build_command = split_command(env_command)

    env_caches = os.environ.get("SAFE_PUSH_CACHE_PATHS")
    if env_caches is not None:
        config.shared_caches = [p.strip() for p in env_caches.split(",") if p.strip()]

    env_suffix = os.environ.get("SAFE_PUSH_SHADOW_SUFFIX")
    if env_suffix:
        config.shadow_suffix = env_suffix

    config.debug = bool(os.environ.get("SAFE_PUSH_DEBUG"))

    return config
