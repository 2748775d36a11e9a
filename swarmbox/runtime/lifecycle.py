"""
Lifecycle commands for the development container.

LifecycleManager owns the policy around the raw docker calls: preflight
checks before mutating operations, create-or-resume for start/daemon, the
running-container requirement for exec/persist, and the best-effort
backup performed by persist.

States: absent -> running (start/daemon), running -> stopped (stop),
stopped -> removed (rm), running|stopped -> running (restart).
"""

import json
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from swarmbox.config.constants import (
    ANALYSIS_DIR_IN_CONTAINER,
    BUILD_SECRET_VAR,
    CONTAINER_GID,
    CONTAINER_UID,
    DATA_MOUNTS,
    EXTRA_DATA_DIRS,
    OUTPUT_DIR_IN_CONTAINER,
)
from swarmbox.config.settings import LifecycleSettings
from swarmbox.error_handling import (
    ConfigurationError,
    ContainerNotFoundError,
    ContainerNotRunningError,
    RuntimeCommandError,
    RuntimeUnavailableError,
)
from swarmbox.runtime.docker import ContainerInfo, ContainerState, DockerRuntime, HealthStatus
from swarmbox.runtime.options import RuntimeOptions, build_runtime_options
from swarmbox.runtime.resources import detect_resources

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup_"
STATE_FILE_NAME = "container_state.json"


@dataclass
class PersistResult:
    """Where persist put things. Paths are None when that copy failed."""
    backup_dir: Path
    output_dir: Path
    log_file: Optional[Path] = None
    state_file: Optional[Path] = None
    copied: Dict[str, bool] = field(default_factory=dict)


@dataclass
class ContainerStatus:
    """Snapshot for the status command."""
    info: ContainerInfo
    health: HealthStatus
    ports: List[str]
    image: Optional[str]
    stats: Optional[Dict[str, str]]


class LifecycleManager:
    """State-aware lifecycle operations for one named container."""

    def __init__(self, settings: LifecycleSettings, runtime: Optional[DockerRuntime] = None):
        self.settings = settings
        self.runtime = runtime or DockerRuntime()

    @property
    def name(self) -> str:
        return self.settings.container_name

    def state(self) -> ContainerState:
        return self.runtime.state(self.name)

    # ── Preflight ────────────────────────────────────────────────────────

    def preflight(self) -> None:
        """Fail fast if the daemon is unreachable, then prepare host state."""
        if not self.runtime.ping():
            raise RuntimeUnavailableError()

        self.prepare_host_dirs()
        self.ensure_network()

        for warning in self.settings.env.warnings():
            logger.warning(warning)

    def host_dirs(self) -> List[Path]:
        dirs = [self.settings.data_path(subdir) for subdir, _ in DATA_MOUNTS]
        dirs += [self.settings.data_path(subdir) for subdir in EXTRA_DATA_DIRS]
        dirs.append(self.settings.external_dir)
        return dirs

    def prepare_host_dirs(self) -> List[Path]:
        """Create the persistent directory tree and hand it to the container user."""
        dirs = self.host_dirs()
        for path in dirs:
            path.mkdir(parents=True, exist_ok=True)

        self._set_ownership(self.settings.data_dir)
        for root, subdirs, _ in os.walk(self.settings.data_dir):
            os.chmod(root, 0o755)

        logger.info(f"Persistent directories ready under {self.settings.data_dir}")
        for path in dirs:
            logger.debug(f"  - {path}")
        return dirs

    def _set_ownership(self, root: Path) -> None:
        try:
            for current, subdirs, files in os.walk(root):
                os.chown(current, CONTAINER_UID, CONTAINER_GID)
                for filename in files:
                    os.chown(os.path.join(current, filename), CONTAINER_UID, CONTAINER_GID)
        except OSError as e:
            logger.warning(f"Could not set ownership (this is normal on some systems): {e}")

    def ensure_network(self) -> None:
        network = self.settings.network
        if self.runtime.network_exists(network):
            return

        logger.info(f"Creating {network} network...")
        result = self.runtime.create_network(network)
        if result.returncode != 0:
            raise RuntimeCommandError(
                f"Failed to create network '{network}'",
                details={"stderr": result.stderr.strip()},
            )

    # ── Build ────────────────────────────────────────────────────────────

    def lint_dockerfile(self, dockerfile: Path) -> bool:
        """Run hadolint when it is installed. Lint failures are only warnings."""
        hadolint = shutil.which("hadolint")
        if hadolint is None:
            logger.debug("hadolint not installed, skipping Dockerfile lint")
            return True

        logger.info("Linting Dockerfile...")
        result = subprocess.run([hadolint, str(dockerfile)], check=False)
        if result.returncode != 0:
            logger.warning("Dockerfile linting failed")
            return False
        return True

    def build(self, extra_args: Sequence[str] = ()) -> int:
        context = self.settings.project_dir
        dockerfile = context / "Dockerfile"
        if not dockerfile.is_file():
            raise ConfigurationError(
                f"Dockerfile not found in {context}",
                suggestion="Run the build from the directory that holds the Dockerfile.",
            )

        self.preflight()
        self.lint_dockerfile(dockerfile)

        secrets = {}
        token = self.settings.env.get(BUILD_SECRET_VAR)
        if token:
            secrets[BUILD_SECRET_VAR] = token
        else:
            logger.debug(f"{BUILD_SECRET_VAR} not set, building without it")
        return self.runtime.build(self.settings.image, context, extra_args, secrets=secrets)

    # ── Start / daemon ───────────────────────────────────────────────────

    def runtime_options(self) -> RuntimeOptions:
        profile = detect_resources(self.settings.env)
        return build_runtime_options(profile, self.settings)

    def start(self, detach: bool = False) -> int:
        """Create and run the container, or resume the existing one."""
        self.preflight()

        if self.state() != ContainerState.ABSENT:
            if detach:
                logger.info("Starting existing container in background...")
            return self.runtime.start(self.name, attach=not detach)

        if detach:
            logger.info("Creating new container in background...")
        options = self.runtime_options()
        return self.runtime.run(self.name, self.settings.image, options.to_args(), detach=detach)

    def daemon(self) -> int:
        return self.start(detach=True)

    # ── Simple transitions ───────────────────────────────────────────────

    def stop(self) -> int:
        return self.runtime.stop(self.name)

    def remove(self) -> int:
        return self.runtime.remove(self.name)

    def restart(self) -> int:
        # docker restart works from both running and stopped
        return self.runtime.restart(self.name)

    # ── Running-container operations ─────────────────────────────────────

    def require_running(self) -> None:
        if not self.runtime.is_running(self.name):
            raise ContainerNotRunningError(self.name)

    def exec(self, command: Sequence[str]) -> int:
        self.require_running()
        return self.runtime.exec(self.name, command)

    def persist(self, now: Optional[datetime] = None) -> PersistResult:
        """Copy analysis/output data, logs and inspect metadata to the host.

        Each copy is best-effort; a failed copy is logged and skipped.
        """
        self.require_running()

        analysis_root = self.settings.data_path("docker_analysis")
        output_dir = self.settings.data_path("docker_output")
        logs_dir = self.settings.data_path("docker_logs")
        for path in (analysis_root, output_dir, logs_dir):
            path.mkdir(parents=True, exist_ok=True)

        stamp, backup_dir = self._new_backup_dir(analysis_root, now or datetime.now())
        result = PersistResult(backup_dir=backup_dir, output_dir=output_dir)

        result.copied["analysis"] = self.runtime.copy_from(
            self.name, f"{ANALYSIS_DIR_IN_CONTAINER}/.", backup_dir
        )
        if not result.copied["analysis"]:
            logger.warning("No analysis data found")

        result.copied["output"] = self.runtime.copy_from(
            self.name, f"{OUTPUT_DIR_IN_CONTAINER}/.", output_dir
        )
        if not result.copied["output"]:
            logger.warning("No output data found")

        logs = self.runtime.logs_snapshot(self.name)
        if logs is None:
            logger.warning("No log data found")
        else:
            result.log_file = self._write_best_effort(
                logs_dir / f"container_{stamp}.log", logs, "container logs"
            )
        result.copied["logs"] = result.log_file is not None

        state = self.runtime.inspect(self.name)
        if state is None:
            logger.warning("No container state found")
        else:
            result.state_file = self._write_best_effort(
                backup_dir / STATE_FILE_NAME, json.dumps(state, indent=2), "container state"
            )
        result.copied["state"] = result.state_file is not None

        return result

    def _write_best_effort(self, path: Path, content: str, kind: str) -> Optional[Path]:
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not save {kind} to {path}: {e}")
            return None
        return path

    def _new_backup_dir(self, analysis_root: Path, now: datetime):
        """Create a backup directory that no earlier run has used."""
        base = now.strftime("%Y%m%d_%H%M%S")
        stamp = base
        suffix = 1
        while True:
            backup_dir = analysis_root / f"{BACKUP_PREFIX}{stamp}"
            try:
                backup_dir.mkdir(parents=True)
                return stamp, backup_dir
            except FileExistsError:
                stamp = f"{base}_{suffix}"
                suffix += 1

    # ── Read-only queries ────────────────────────────────────────────────

    def logs(self) -> int:
        return self.runtime.logs(self.name, follow=True)

    def health(self) -> HealthStatus:
        """Health of an existing container; NONE when it has no healthcheck."""
        if self.state() == ContainerState.ABSENT:
            raise ContainerNotFoundError(self.name)
        return self.runtime.health(self.name)

    def status(self) -> Optional[ContainerStatus]:
        info = self.runtime.find_container(self.name)
        if info is None:
            return None
        return ContainerStatus(
            info=info,
            health=self.runtime.health(self.name),
            ports=self.runtime.ports(self.name),
            image=self.runtime.image_of(self.name),
            stats=self.runtime.stats(self.name),
        )

    # ── Housekeeping ─────────────────────────────────────────────────────

    def cleanup(self) -> int:
        """Prune unused docker resources system-wide."""
        code = self.runtime.system_prune()
        if code != 0:
            return code
        return self.runtime.volume_prune()
