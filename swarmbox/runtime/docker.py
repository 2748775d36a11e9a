"""
Docker CLI adapter for swarmbox.

Every call shells out to the `docker` executable. Queries capture output
and never raise on a non-zero exit; attached calls inherit the terminal and
hand back the runtime's exit code. Container state is never cached: the
daemon's registry is asked fresh on every call.
"""

import json
import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from swarmbox.config.constants import BUILD_SECRET, CONTAINER_USER
from swarmbox.error_handling import RuntimeUnavailableError

logger = logging.getLogger(__name__)


class ContainerState(str, Enum):
    """Lifecycle states of the managed container."""
    ABSENT = "absent"
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"
    REMOVED = "removed"  # only reported by a successful rm


class HealthStatus(str, Enum):
    """Result of the runtime's own healthcheck."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    STARTING = "starting"
    NONE = "none"


# `docker ps` State column -> ContainerState
_STATE_MAP = {
    "running": ContainerState.RUNNING,
    "restarting": ContainerState.RUNNING,
    "created": ContainerState.CREATED,
    "exited": ContainerState.STOPPED,
    "dead": ContainerState.STOPPED,
    "paused": ContainerState.STOPPED,
    "removing": ContainerState.STOPPED,
}


@dataclass
class ContainerInfo:
    """One row of `docker ps -a` for the managed container."""
    name: str
    status: str  # e.g. "Up 3 hours (healthy)"
    state: ContainerState
    raw_state: str


class DockerRuntime:
    """
    Thin wrapper around the docker CLI.

    Methods mirror docker subcommands. Nothing here decides policy; the
    LifecycleManager does that.
    """

    def __init__(self, executable: str = "docker"):
        self.executable = executable

    def _command(self, *args: str) -> List[str]:
        return [self.executable, *args]

    def _run(
        self,
        args: Sequence[str],
        capture: bool = True,
        env: Optional[Mapping[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        """Run a docker command and return the result."""
        cmd = self._command(*args)
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            if capture:
                return subprocess.run(cmd, capture_output=True, text=True, check=False, env=env)
            return subprocess.run(cmd, check=False, env=env)
        except FileNotFoundError as e:
            raise RuntimeUnavailableError(
                f"'{self.executable}' executable not found",
                details={"executable": self.executable},
                suggestion="Install Docker and make sure it is on your PATH.",
            ) from e

    # ── Daemon ───────────────────────────────────────────────────────────

    def ping(self) -> bool:
        """Check that the daemon answers."""
        return self._run(["info"]).returncode == 0

    def network_exists(self, network: str) -> bool:
        return self._run(["network", "inspect", network]).returncode == 0

    def create_network(self, network: str) -> subprocess.CompletedProcess:
        return self._run(["network", "create", network])

    def system_prune(self) -> int:
        return self._run(["system", "prune", "-f"], capture=False).returncode

    def volume_prune(self) -> int:
        return self._run(["volume", "prune", "-f"], capture=False).returncode

    def build(
        self,
        image: str,
        context: Path,
        extra_args: Sequence[str] = (),
        secrets: Optional[Mapping[str, str]] = None,
    ) -> int:
        """Build the image with BuildKit, forwarding GH_TOKEN as a secret.

        `secrets` are layered over the process environment so values that
        only exist in the env file still reach `--secret ...,env=GH_TOKEN`.
        """
        env = {**os.environ, **(secrets or {}), "DOCKER_BUILDKIT": "1"}
        args = [
            "build",
            "--progress=plain",
            "--secret", BUILD_SECRET,
            "-t", image,
            str(context),
            *extra_args,
        ]
        return self._run(args, capture=False, env=env).returncode

    # ── Queries ──────────────────────────────────────────────────────────

    def find_container(self, name: str) -> Optional[ContainerInfo]:
        """Return the container row with exactly this name, if any."""
        result = self._run([
            "ps", "-a",
            "--filter", f"name=^{name}$",
            "--format", "{{.Names}}\t{{.Status}}\t{{.State}}",
        ])
        if result.returncode != 0:
            return None

        for line in result.stdout.splitlines():
            parts = line.split("\t")
            if len(parts) != 3 or parts[0] != name:
                continue
            raw_state = parts[2].strip().lower()
            return ContainerInfo(
                name=parts[0],
                status=parts[1],
                state=_STATE_MAP.get(raw_state, ContainerState.STOPPED),
                raw_state=raw_state,
            )
        return None

    def state(self, name: str) -> ContainerState:
        info = self.find_container(name)
        return info.state if info else ContainerState.ABSENT

    def is_running(self, name: str) -> bool:
        return self.state(name) == ContainerState.RUNNING

    def health(self, name: str) -> HealthStatus:
        """Read the healthcheck result; anything unexpected is NONE."""
        result = self._run(["inspect", "--format", "{{.State.Health.Status}}", name])
        if result.returncode != 0:
            return HealthStatus.NONE
        try:
            return HealthStatus(result.stdout.strip())
        except ValueError:
            return HealthStatus.NONE

    def inspect(self, name: str) -> Optional[List[Dict[str, Any]]]:
        result = self._run(["inspect", name])
        if result.returncode != 0:
            return None
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.debug(f"docker inspect {name} returned non-JSON output")
            return None

    def image_of(self, name: str) -> Optional[str]:
        result = self._run(["inspect", "--format", "{{.Config.Image}}", name])
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def ports(self, name: str) -> List[str]:
        result = self._run(["port", name])
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def stats(self, name: str) -> Optional[Dict[str, str]]:
        """One-shot resource usage sample."""
        result = self._run(["stats", "--no-stream", "--format", "{{json .}}", name])
        if result.returncode != 0 or not result.stdout.strip():
            return None
        try:
            return json.loads(result.stdout.strip().splitlines()[0])
        except json.JSONDecodeError:
            return None

    def logs_snapshot(self, name: str) -> Optional[str]:
        """Everything the container has logged so far (stdout and stderr)."""
        result = self._run(["logs", name])
        if result.returncode != 0:
            return None
        return result.stdout + result.stderr

    # ── Mutations ────────────────────────────────────────────────────────

    def run(self, name: str, image: str, options: Sequence[str], detach: bool) -> int:
        mode = "-d" if detach else "-it"
        args = ["run", *options, "--name", name, mode, image]
        return self._run(args, capture=False).returncode

    def start(self, name: str, attach: bool) -> int:
        args = ["start", "-ai", name] if attach else ["start", name]
        return self._run(args, capture=False).returncode

    def stop(self, name: str) -> int:
        return self._run(["stop", name], capture=False).returncode

    def remove(self, name: str) -> int:
        return self._run(["rm", name], capture=False).returncode

    def restart(self, name: str) -> int:
        return self._run(["restart", name], capture=False).returncode

    def exec(self, name: str, command: Sequence[str], user: str = CONTAINER_USER) -> int:
        return self._run(["exec", "-it", "-u", user, name, *command], capture=False).returncode

    def logs(self, name: str, follow: bool = True) -> int:
        args = ["logs", "-f", name] if follow else ["logs", name]
        return self._run(args, capture=False).returncode

    def copy_from(self, name: str, container_path: str, host_path: Path) -> bool:
        """Copy a path out of the container. Returns False when nothing was copied."""
        result = self._run(["cp", f"{name}:{container_path}", f"{host_path}/"])
        if result.returncode != 0:
            logger.debug(f"docker cp {container_path} failed: {result.stderr.strip()}")
            return False
        return True
