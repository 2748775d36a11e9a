"""
Container runtime layer for swarmbox.

- resources: host CPU/memory detection and clamping
- options: the immutable `docker run` option set
- docker: subprocess adapter over the docker CLI
- lifecycle: state-aware lifecycle commands
- supervisor: the health-check restart loop
"""

from swarmbox.runtime.docker import ContainerState, DockerRuntime, HealthStatus
from swarmbox.runtime.lifecycle import LifecycleManager, PersistResult
from swarmbox.runtime.options import RuntimeOptions, build_runtime_options
from swarmbox.runtime.resources import ResourceProfile, detect_resources
from swarmbox.runtime.supervisor import HealthSupervisor

__all__ = [
    "ContainerState",
    "DockerRuntime",
    "HealthStatus",
    "HealthSupervisor",
    "LifecycleManager",
    "PersistResult",
    "ResourceProfile",
    "RuntimeOptions",
    "build_runtime_options",
    "detect_resources",
]
