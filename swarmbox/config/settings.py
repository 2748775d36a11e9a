"""Configuration utilities for swarmbox."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from dotenv import dotenv_values

from .constants import (
    DEFAULT_CONTAINER_NAME,
    DEFAULT_DATA_DIR,
    DEFAULT_ENV_FILE,
    DEFAULT_EXTERNAL_SUBDIR,
    DEFAULT_IMAGE,
    DEFAULT_NETWORK,
    ENV_VAR_DEFINITIONS,
    SSH_AGENT_SOCKET,
    SWARMBOX_CONFIG_DIR,
)

logger = logging.getLogger(__name__)

_TRUTHY = {"true", "1", "yes"}


@dataclass(frozen=True)
class EnvironmentConfig:
    """Key/value settings read from the env file layered over the process environment.

    Values from the file win, matching what sourcing the file in a shell
    would do.
    """

    env_file: Path
    env_file_exists: bool
    values: Mapping[str, str] = field(default_factory=dict)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.values.get(key)
        if value is None or value == "":
            return default
        return value

    @property
    def docker_cpus(self) -> Optional[str]:
        return self.get("DOCKER_CPUS")

    @property
    def docker_memory(self) -> Optional[str]:
        return self.get("DOCKER_MEMORY")

    @property
    def external_dir(self) -> Optional[str]:
        return self.get("EXTERNAL_DIR")

    @property
    def ssh_auth_sock(self) -> str:
        return self.get("SSH_AUTH_SOCK", SSH_AGENT_SOCKET)

    @property
    def home(self) -> Path:
        home = self.get("HOME")
        return Path(home) if home else Path.home()

    def warnings(self) -> List[str]:
        """Return the non-fatal configuration problems for this environment."""
        problems = []
        if not self.env_file_exists:
            problems.append(f"{self.env_file} not found - using environment variables only")
        if not self.external_dir:
            problems.append("EXTERNAL_DIR not set - using default path")
        return problems


@dataclass(frozen=True)
class LifecycleSettings:
    """Everything a lifecycle command needs, built once per invocation."""

    container_name: str
    image: str
    network: str
    project_dir: Path
    data_dir: Path
    gpus: bool
    env: EnvironmentConfig

    @property
    def env_file(self) -> Path:
        return self.env.env_file

    @property
    def external_dir(self) -> Path:
        if not self.env.external_dir:
            return self.data_dir / DEFAULT_EXTERNAL_SUBDIR
        # A bare relative name would be taken as a named volume by docker
        path = Path(self.env.external_dir).expanduser()
        if not path.is_absolute():
            path = self.project_dir / path
        return path

    def data_path(self, subdir: str) -> Path:
        return self.data_dir / subdir


def load_environment(
    env_file: Path = Path(DEFAULT_ENV_FILE),
    environ: Optional[Mapping[str, str]] = None,
) -> EnvironmentConfig:
    """Load the env file (if present) on top of the process environment.

    A missing file is not an error; callers report it as a warning.
    """
    base = dict(os.environ if environ is None else environ)
    exists = env_file.is_file()
    if exists:
        file_values = {k: v for k, v in dotenv_values(env_file).items() if v is not None}
        logger.debug(f"Loaded {len(file_values)} values from {env_file}")
        base.update(file_values)
    return EnvironmentConfig(env_file=env_file, env_file_exists=exists, values=base)


def load_settings(
    env_file: Path = Path(DEFAULT_ENV_FILE),
    environ: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
) -> LifecycleSettings:
    """Build the LifecycleSettings for this invocation."""
    env = load_environment(env_file, environ)

    for error in validate_all_env_vars(env.values):
        logger.warning(error)

    base_dir = cwd or Path.cwd()
    data_dir = Path(env.get("SWARMBOX_DATA_DIR", DEFAULT_DATA_DIR)).expanduser()
    if not data_dir.is_absolute():
        data_dir = base_dir / data_dir

    gpus_value = env.get("SWARMBOX_GPUS", "true")
    return LifecycleSettings(
        container_name=env.get("SWARMBOX_CONTAINER", DEFAULT_CONTAINER_NAME),
        image=env.get("SWARMBOX_IMAGE", DEFAULT_IMAGE),
        network=env.get("SWARMBOX_NETWORK", DEFAULT_NETWORK),
        project_dir=base_dir,
        data_dir=data_dir,
        gpus=gpus_value.lower() in _TRUTHY,
        env=env,
    )


def get_log_path() -> Path:
    """Get the log file path, respecting SWARMBOX_LOG_FILE."""
    override = os.environ.get("SWARMBOX_LOG_FILE")
    if override:
        return Path(override)

    SWARMBOX_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return SWARMBOX_CONFIG_DIR / "swarmbox.log"


def validate_env_var(name: str, value: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Validate a single environment variable value.

    Args:
        name: The environment variable name.
        value: The current value (or None if not set).

    Returns:
        Tuple of (is_valid, error_message).
    """
    if name not in ENV_VAR_DEFINITIONS:
        return True, None  # Unknown vars are always valid

    if value is None:
        return True, None

    valid_values = ENV_VAR_DEFINITIONS[name].get("valid_values")
    if valid_values is None:
        return True, None

    if value.lower() not in [v.lower() for v in valid_values]:
        return False, f"Invalid value '{value}' for {name}. Valid values: {valid_values}"

    return True, None


def validate_all_env_vars(values: Mapping[str, str]) -> List[str]:
    """Validate all known swarmbox variables.

    Returns:
        List of error messages (empty if all valid).
    """
    errors = []
    for name in ENV_VAR_DEFINITIONS:
        is_valid, error = validate_env_var(name, values.get(name))
        if not is_valid:
            errors.append(error)
    return errors

