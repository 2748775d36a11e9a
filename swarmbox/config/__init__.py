"""Configuration package for swarmbox."""

from .settings import (
    EnvironmentConfig,
    LifecycleSettings,
    get_log_path,
    load_environment,
    load_settings,
)

__all__ = [
    "EnvironmentConfig",
    "LifecycleSettings",
    "get_log_path",
    "load_environment",
    "load_settings",
]
