"""
Host resource detection for the development container.

Computes CPU and memory limits from what the host actually has, applies
user overrides, and clamps anything that asks for more than the host can
give. Clamping is a warning, never an error.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import psutil

from swarmbox.config.constants import (
    MAX_DEFAULT_CPUS,
    MAX_DEFAULT_MEMORY_GB,
    MEMORY_HEADROOM_GB,
    MIN_MEMORY_GB,
)
from swarmbox.config.settings import EnvironmentConfig

logger = logging.getLogger(__name__)

_MEMORY_PATTERN = re.compile(r"^\s*(\d+)\s*([a-zA-Z]*)\s*$")
_GIB = 1024 ** 3


@dataclass(frozen=True)
class ResourceProfile:
    """What the host has and what the container will get."""
    available_cpus: int
    available_memory_gb: int
    requested_cpus: int
    requested_memory_gb: int

    @property
    def memory_arg(self) -> str:
        return f"{self.requested_memory_gb}g"


def default_cpus(host_cpus: int) -> int:
    return min(host_cpus, MAX_DEFAULT_CPUS)


def default_memory_gb(host_memory_gb: int) -> int:
    if host_memory_gb > MAX_DEFAULT_MEMORY_GB:
        return MAX_DEFAULT_MEMORY_GB
    if host_memory_gb > MEMORY_HEADROOM_GB:
        return host_memory_gb - MEMORY_HEADROOM_GB
    return MIN_MEMORY_GB


def parse_cpus(value: Optional[str]) -> Optional[int]:
    """Parse a DOCKER_CPUS override. Fractions are rounded down, minimum 1."""
    if value is None:
        return None
    try:
        cpus = int(float(value))
    except ValueError:
        logger.warning(f"Ignoring invalid DOCKER_CPUS value '{value}'")
        return None
    if cpus < 1:
        logger.warning(f"Ignoring non-positive DOCKER_CPUS value '{value}'")
        return None
    return cpus


def parse_memory_gb(value: Optional[str]) -> Optional[int]:
    """Parse a DOCKER_MEMORY override into whole gigabytes.

    Accepts a bare number (GB), or a number with a g/gb/m/mb suffix.
    Megabyte values are rounded down to whole gigabytes with a floor of 1.
    """
    if value is None:
        return None

    match = _MEMORY_PATTERN.match(value)
    if not match:
        logger.warning(f"Ignoring invalid DOCKER_MEMORY value '{value}'")
        return None

    amount, unit = int(match.group(1)), match.group(2).lower()
    if unit in ("", "g", "gb", "gib"):
        memory_gb = amount
    elif unit in ("m", "mb", "mib"):
        memory_gb = max(1, amount // 1024)
    else:
        logger.warning(f"Ignoring DOCKER_MEMORY value '{value}': unknown unit '{unit}'")
        return None

    if memory_gb < 1:
        logger.warning(f"Ignoring non-positive DOCKER_MEMORY value '{value}'")
        return None
    return memory_gb


def compute_resource_profile(
    host_cpus: int,
    host_memory_gb: int,
    cpus_override: Optional[int] = None,
    memory_override_gb: Optional[int] = None,
) -> ResourceProfile:
    """Combine host capacity, defaults and overrides into a ResourceProfile."""
    requested_cpus = cpus_override if cpus_override is not None else default_cpus(host_cpus)
    requested_memory = (
        memory_override_gb if memory_override_gb is not None else default_memory_gb(host_memory_gb)
    )

    if requested_cpus > host_cpus:
        logger.warning(
            f"Requested CPUs ({requested_cpus}) exceeds available ({host_cpus}), using {host_cpus}"
        )
        requested_cpus = host_cpus

    if requested_memory > host_memory_gb:
        logger.warning(
            f"Requested memory ({requested_memory}g) exceeds available ({host_memory_gb}g), "
            f"using {host_memory_gb}g"
        )
        requested_memory = host_memory_gb

    return ResourceProfile(
        available_cpus=host_cpus,
        available_memory_gb=host_memory_gb,
        requested_cpus=requested_cpus,
        requested_memory_gb=requested_memory,
    )


def read_host_cpus() -> int:
    return psutil.cpu_count(logical=True) or 1


def read_host_memory_gb() -> int:
    """Total host memory in whole GiB, rounded down like `free -g`."""
    return max(1, psutil.virtual_memory().total // _GIB)


def detect_resources(env: EnvironmentConfig) -> ResourceProfile:
    """Detect host capacity and derive the container's resource limits."""
    profile = compute_resource_profile(
        read_host_cpus(),
        read_host_memory_gb(),
        cpus_override=parse_cpus(env.docker_cpus),
        memory_override_gb=parse_memory_gb(env.docker_memory),
    )
    logger.debug(
        f"Resources: {profile.requested_cpus}/{profile.available_cpus} CPUs, "
        f"{profile.requested_memory_gb}/{profile.available_memory_gb}g memory"
    )
    return profile
