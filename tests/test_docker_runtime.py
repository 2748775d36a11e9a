"""Tests for the docker CLI adapter."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from swarmbox.error_handling import RuntimeUnavailableError
from swarmbox.runtime.docker import ContainerState, DockerRuntime, HealthStatus


def _done(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=["docker"], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def mock_run():
    with patch("swarmbox.runtime.docker.subprocess.run") as mock:
        mock.return_value = _done()
        yield mock


def _argv(mock_run):
    return mock_run.call_args[0][0]


class TestStateQueries:
    """Tests for container state and health lookups."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("running", ContainerState.RUNNING),
            ("restarting", ContainerState.RUNNING),
            ("created", ContainerState.CREATED),
            ("exited", ContainerState.STOPPED),
            ("dead", ContainerState.STOPPED),
            ("paused", ContainerState.STOPPED),
        ],
    )
    def test_state_mapping(self, mock_run, raw, expected):
        mock_run.return_value = _done(stdout=f"swarm_container\tsome status\t{raw}\n")

        assert DockerRuntime().state("swarm_container") == expected

    def test_absent_when_no_rows(self, mock_run):
        mock_run.return_value = _done(stdout="")

        runtime = DockerRuntime()
        assert runtime.state("swarm_container") == ContainerState.ABSENT
        assert runtime.is_running("swarm_container") is False

    def test_exact_name_filter(self, mock_run):
        mock_run.return_value = _done(stdout="swarm_container_old\tExited (0)\texited\n")

        runtime = DockerRuntime()
        assert runtime.find_container("swarm_container") is None
        argv = _argv(mock_run)
        assert argv[:3] == ["docker", "ps", "-a"]
        assert "name=^swarm_container$" in argv

    def test_container_info(self, mock_run):
        mock_run.return_value = _done(stdout="swarm_container\tUp 3 hours (healthy)\trunning\n")

        info = DockerRuntime().find_container("swarm_container")

        assert info.name == "swarm_container"
        assert info.status == "Up 3 hours (healthy)"
        assert info.state == ContainerState.RUNNING

    def test_failed_query_is_absent(self, mock_run):
        mock_run.return_value = _done(returncode=1, stderr="Cannot connect")

        assert DockerRuntime().state("swarm_container") == ContainerState.ABSENT

    @pytest.mark.parametrize(
        "output, expected",
        [
            ("healthy\n", HealthStatus.HEALTHY),
            ("unhealthy\n", HealthStatus.UNHEALTHY),
            ("starting\n", HealthStatus.STARTING),
            ("<no value>\n", HealthStatus.NONE),
            ("\n", HealthStatus.NONE),
        ],
    )
    def test_health(self, mock_run, output, expected):
        mock_run.return_value = _done(stdout=output)

        assert DockerRuntime().health("swarm_container") == expected
        assert _argv(mock_run) == [
            "docker", "inspect", "--format", "{{.State.Health.Status}}", "swarm_container"
        ]

    def test_health_of_missing_container(self, mock_run):
        mock_run.return_value = _done(returncode=1, stderr="No such object")

        assert DockerRuntime().health("swarm_container") == HealthStatus.NONE

    def test_stats_parses_first_json_line(self, mock_run):
        mock_run.return_value = _done(stdout='{"CPUPerc": "2.0%", "MemUsage": "1GiB / 8GiB"}\n')

        stats = DockerRuntime().stats("swarm_container")

        assert stats["CPUPerc"] == "2.0%"

    def test_stats_unavailable(self, mock_run):
        mock_run.return_value = _done(stdout="not json")
        assert DockerRuntime().stats("swarm_container") is None

    def test_inspect_non_json_output(self, mock_run):
        mock_run.return_value = _done(stdout="Error: template parsing failed")
        assert DockerRuntime().inspect("swarm_container") is None

    def test_inspect(self, mock_run):
        mock_run.return_value = _done(stdout='[{"Id": "abc123"}]')
        assert DockerRuntime().inspect("swarm_container") == [{"Id": "abc123"}]

    def test_ports(self, mock_run):
        mock_run.return_value = _done(stdout="3010/tcp -> 0.0.0.0:3010\n\n")
        assert DockerRuntime().ports("swarm_container") == ["3010/tcp -> 0.0.0.0:3010"]


class TestCommands:
    """Tests for the command vectors handed to docker."""

    def test_run(self, mock_run):
        DockerRuntime().run("box", "img:1", ["--cpus", "4"], detach=True)

        assert _argv(mock_run) == ["docker", "run", "--cpus", "4", "--name", "box", "-d", "img:1"]

    def test_run_interactive(self, mock_run):
        DockerRuntime().run("box", "img:1", [], detach=False)

        assert _argv(mock_run) == ["docker", "run", "--name", "box", "-it", "img:1"]

    def test_start(self, mock_run):
        runtime = DockerRuntime()

        runtime.start("box", attach=True)
        assert _argv(mock_run) == ["docker", "start", "-ai", "box"]

        runtime.start("box", attach=False)
        assert _argv(mock_run) == ["docker", "start", "box"]

    def test_exec_runs_as_dev(self, mock_run):
        DockerRuntime().exec("box", ["ls", "-la"])

        assert _argv(mock_run) == ["docker", "exec", "-it", "-u", "dev", "box", "ls", "-la"]

    def test_build(self, mock_run, tmp_path):
        DockerRuntime().build("img:1", tmp_path, ["--no-cache"])

        assert _argv(mock_run) == [
            "docker", "build", "--progress=plain",
            "--secret", "id=GH_TOKEN,env=GH_TOKEN",
            "-t", "img:1", str(tmp_path), "--no-cache",
        ]
        assert mock_run.call_args[1]["env"]["DOCKER_BUILDKIT"] == "1"

    def test_build_secrets_override_process_environment(self, mock_run, tmp_path, monkeypatch):
        monkeypatch.setenv("GH_TOKEN", "from-shell")

        DockerRuntime().build("img:1", tmp_path, secrets={"GH_TOKEN": "from-env-file"})

        assert mock_run.call_args[1]["env"]["GH_TOKEN"] == "from-env-file"

    def test_exit_code_is_returned(self, mock_run):
        mock_run.return_value = _done(returncode=137)

        assert DockerRuntime().stop("box") == 137

    def test_lifecycle_vectors(self, mock_run):
        runtime = DockerRuntime()

        runtime.stop("box")
        assert _argv(mock_run) == ["docker", "stop", "box"]
        runtime.remove("box")
        assert _argv(mock_run) == ["docker", "rm", "box"]
        runtime.restart("box")
        assert _argv(mock_run) == ["docker", "restart", "box"]
        runtime.logs("box")
        assert _argv(mock_run) == ["docker", "logs", "-f", "box"]

    def test_prune(self, mock_run):
        runtime = DockerRuntime()

        runtime.system_prune()
        assert _argv(mock_run) == ["docker", "system", "prune", "-f"]
        runtime.volume_prune()
        assert _argv(mock_run) == ["docker", "volume", "prune", "-f"]

    def test_copy_from(self, mock_run):
        assert DockerRuntime().copy_from("box", "/home/dev/output/.", Path("/tmp/out")) is True
        assert _argv(mock_run) == ["docker", "cp", "box:/home/dev/output/.", "/tmp/out/"]

    def test_copy_from_failure(self, mock_run):
        mock_run.return_value = _done(returncode=1, stderr="Could not find the file")

        assert DockerRuntime().copy_from("box", "/home/dev/output/.", Path("/tmp/out")) is False

    def test_custom_executable(self, mock_run):
        DockerRuntime(executable="podman").ping()

        assert _argv(mock_run) == ["podman", "info"]


class TestUnavailable:
    """Tests for a missing docker binary or daemon."""

    def test_missing_binary(self):
        with patch("swarmbox.runtime.docker.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(RuntimeUnavailableError) as exc_info:
                DockerRuntime().ping()

        assert "not found" in str(exc_info.value)

    def test_ping_failure(self, mock_run):
        mock_run.return_value = _done(returncode=1)

        assert DockerRuntime().ping() is False
