"""
`docker run` option assembly for the development container.

Turns a ResourceProfile plus LifecycleSettings into a RuntimeOptions value:
GPU passthrough, resource limits, the capability policy, the mount table,
network and published ports. Pure data, no side effects.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from swarmbox.config.constants import (
    CAPABILITY_ALLOW_LIST,
    CONTAINER_ENVIRONMENT,
    CONTAINER_USER,
    DATA_MOUNTS,
    DOCKER_SOCKET,
    EXTERNAL_MOUNT_TARGET,
    PIDS_LIMIT,
    PUBLISHED_PORTS,
    SECURITY_OPTS,
    SSH_AGENT_SOCKET,
    SSH_DIR_TARGET,
)
from swarmbox.config.settings import LifecycleSettings
from swarmbox.runtime.resources import ResourceProfile


@dataclass(frozen=True)
class Mount:
    """A host path bound into the container."""
    source: str
    target: str
    mode: str = "rw"

    def to_arg(self) -> str:
        return f"{self.source}:{self.target}:{self.mode}"


@dataclass(frozen=True)
class RuntimeOptions:
    """Immutable option set for `docker run`, rendered in a fixed order."""
    gpus: bool
    cpus: int
    memory: str
    security_opts: Tuple[str, ...]
    cap_add: Tuple[str, ...]
    pids_limit: int
    user: str
    env_file: Optional[str]
    mounts: Tuple[Mount, ...]
    environment: Tuple[Tuple[str, str], ...]
    network: str
    privileged: bool
    ports: Tuple[Tuple[int, int], ...]

    def to_args(self) -> List[str]:
        """Render the options as `docker run` arguments."""
        args: List[str] = []

        if self.gpus:
            args += ["--gpus", "all"]

        args += ["--cpus", str(self.cpus), "--memory", self.memory]

        for opt in self.security_opts:
            args += ["--security-opt", opt]

        # Drop everything, then allow-list
        args += ["--cap-drop", "ALL"]
        for cap in self.cap_add:
            args += ["--cap-add", cap]

        args += ["--pids-limit", str(self.pids_limit)]
        args += ["-u", self.user]

        if self.env_file:
            args += ["--env-file", self.env_file]

        for mount in self.mounts:
            args += ["-v", mount.to_arg()]

        for key, value in self.environment:
            args += ["-e", f"{key}={value}"]

        args += ["--network", self.network]

        if self.privileged:
            args.append("--privileged")

        for host_port, container_port in self.ports:
            args += ["-p", f"{host_port}:{container_port}"]

        return args


def _build_mounts(settings: LifecycleSettings) -> Tuple[Mount, ...]:
    env = settings.env
    mounts = [Mount(str(settings.external_dir), EXTERNAL_MOUNT_TARGET)]

    for subdir, target in DATA_MOUNTS:
        mounts.append(Mount(str(settings.data_path(subdir)), target))

    # SSH credentials are read-only
    mounts.append(Mount(str(env.home / ".ssh"), SSH_DIR_TARGET, "ro"))
    mounts.append(Mount(env.ssh_auth_sock, SSH_AGENT_SOCKET))

    # Docker-in-Docker
    mounts.append(Mount(DOCKER_SOCKET, DOCKER_SOCKET))
    return tuple(mounts)


def build_runtime_options(
    profile: ResourceProfile,
    settings: LifecycleSettings,
) -> RuntimeOptions:
    """Assemble the runtime options for a new container."""
    env_file: Optional[Path] = settings.env_file if settings.env.env_file_exists else None

    return RuntimeOptions(
        gpus=settings.gpus,
        cpus=profile.requested_cpus,
        memory=profile.memory_arg,
        security_opts=SECURITY_OPTS,
        cap_add=CAPABILITY_ALLOW_LIST,
        pids_limit=PIDS_LIMIT,
        user=CONTAINER_USER,
        env_file=str(env_file) if env_file else None,
        mounts=_build_mounts(settings),
        environment=CONTAINER_ENVIRONMENT,
        network=settings.network,
        privileged=True,
        ports=PUBLISHED_PORTS,
    )
