"""Shared pytest fixtures for swarmbox tests."""

import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from swarmbox.config.settings import load_settings
from swarmbox.runtime.docker import ContainerInfo, ContainerState, DockerRuntime, HealthStatus
from swarmbox.runtime.lifecycle import LifecycleManager


class FakeRuntime(DockerRuntime):
    """In-memory stand-in for the docker CLI.

    Tracks a single container's state the way the daemon would and records
    every call so tests can assert on mutations.
    """

    MUTATIONS = {"run", "start", "stop", "remove", "restart", "exec", "build",
                 "system_prune", "volume_prune", "create_network"}

    def __init__(self, state: ContainerState = ContainerState.ABSENT, reachable: bool = True):
        super().__init__()
        self.container_state = state
        self.reachable = reachable
        self.health_status = HealthStatus.HEALTHY
        self.networks = {"docker_ragflow"}
        self.calls: List[tuple] = []
        self.copy_ok: Dict[str, bool] = {"analysis": True, "output": True}
        self.log_text: Optional[str] = "container log line\n"
        self.inspect_data: Optional[list] = [{"Id": "abc123", "Name": "/swarm_container"}]
        self.build_secrets: Optional[dict] = None

    def _record(self, *call):
        self.calls.append(call)

    @property
    def mutation_calls(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in self.MUTATIONS]

    def ping(self) -> bool:
        self._record("ping")
        return self.reachable

    def network_exists(self, network):
        return network in self.networks

    def create_network(self, network):
        self._record("create_network", network)
        self.networks.add(network)
        return subprocess.CompletedProcess(["docker"], 0, "", "")

    def find_container(self, name):
        if self.container_state in (ContainerState.ABSENT, ContainerState.REMOVED):
            return None
        raw = {
            ContainerState.RUNNING: "running",
            ContainerState.STOPPED: "exited",
            ContainerState.CREATED: "created",
        }[self.container_state]
        return ContainerInfo(name=name, status="Up 1 minute", state=self.container_state, raw_state=raw)

    def health(self, name):
        if self.container_state != ContainerState.RUNNING:
            return HealthStatus.NONE
        return self.health_status

    def inspect(self, name):
        return self.inspect_data

    def image_of(self, name):
        return "powerdev:latest"

    def ports(self, name):
        return ["3010/tcp -> 0.0.0.0:3010"]

    def stats(self, name):
        return {"CPUPerc": "1.5%", "MemUsage": "1GiB / 200GiB", "NetIO": "1kB / 2kB", "BlockIO": "0B / 0B"}

    def logs_snapshot(self, name):
        return self.log_text

    def build(self, image, context, extra_args=(), secrets=None):
        self._record("build", image, str(context), tuple(extra_args))
        self.build_secrets = dict(secrets or {})
        return 0

    def run(self, name, image, options, detach):
        self._record("run", name, image, tuple(options), detach)
        self.container_state = ContainerState.RUNNING
        return 0

    def start(self, name, attach):
        self._record("start", name, attach)
        self.container_state = ContainerState.RUNNING
        return 0

    def stop(self, name):
        self._record("stop", name)
        if self.container_state == ContainerState.ABSENT:
            return 1
        self.container_state = ContainerState.STOPPED
        return 0

    def remove(self, name):
        self._record("remove", name)
        if self.container_state == ContainerState.RUNNING:
            return 1
        self.container_state = ContainerState.ABSENT
        return 0

    def restart(self, name):
        self._record("restart", name)
        if self.container_state == ContainerState.ABSENT:
            return 1
        self.container_state = ContainerState.RUNNING
        return 0

    def exec(self, name, command, user="dev"):
        self._record("exec", name, tuple(command))
        return 0

    def logs(self, name, follow=True):
        self._record("logs", name, follow)
        return 0

    def copy_from(self, name, container_path, host_path):
        kind = "analysis" if "analysis" in container_path else "output"
        self._record("copy_from", container_path, str(host_path))
        if self.copy_ok[kind]:
            (Path(host_path) / f"{kind}.txt").write_text(kind)
        return self.copy_ok[kind]

    def system_prune(self):
        self._record("system_prune")
        return 0

    def volume_prune(self):
        self._record("volume_prune")
        return 0


@pytest.fixture(autouse=True)
def isolated_log_file(tmp_path, monkeypatch):
    """Keep log output out of the real ~/.config directory."""
    monkeypatch.setenv("SWARMBOX_LOG_FILE", str(tmp_path / "swarmbox.log"))


@pytest.fixture
def project_dir(tmp_path):
    """An empty project directory acting as the working directory."""
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture
def environ(tmp_path):
    """A minimal process environment with no overrides."""
    home = tmp_path / "home"
    home.mkdir()
    return {"HOME": str(home)}


@pytest.fixture
def settings(project_dir, environ):
    """Settings with no env file and no EXTERNAL_DIR."""
    return load_settings(env_file=project_dir / ".env", environ=environ, cwd=project_dir)


@pytest.fixture
def fake_runtime():
    return FakeRuntime()


@pytest.fixture
def manager(settings, fake_runtime, monkeypatch):
    """LifecycleManager over the fake runtime with deterministic host resources."""
    monkeypatch.setattr("swarmbox.runtime.resources.read_host_cpus", lambda: 32)
    monkeypatch.setattr("swarmbox.runtime.resources.read_host_memory_gb", lambda: 256)
    return LifecycleManager(settings, fake_runtime)
