"""
Centralized constants for swarmbox.

Every literal that shapes the container (names, ports, capability policy,
mount table, supervisor timing) lives here so the runtime modules stay
free of magic values.
"""

from pathlib import Path

# =============================================================================
# IDENTITY
# =============================================================================

DEFAULT_IMAGE = "powerdev:latest"
DEFAULT_CONTAINER_NAME = "swarm_container"
DEFAULT_NETWORK = "docker_ragflow"
DEFAULT_ENV_FILE = ".env"
DEFAULT_DATA_DIR = ".swarm-docker"

CONTAINER_USER = "dev"
CONTAINER_UID = 1000
CONTAINER_GID = 1000

SWARMBOX_CONFIG_DIR = Path.home() / ".config" / "swarmbox"

# =============================================================================
# RESOURCE DEFAULTS
# =============================================================================

MAX_DEFAULT_CPUS = 24
MAX_DEFAULT_MEMORY_GB = 200
MEMORY_HEADROOM_GB = 10  # Left to the host when it has more than this
MIN_MEMORY_GB = 4  # Used when the host has 10GB or less

PIDS_LIMIT = 4096

# =============================================================================
# SECURITY POLICY
# =============================================================================

SECURITY_OPTS = (
    "apparmor:unconfined",
    "seccomp:unconfined",
)

# Applied after --cap-drop ALL
CAPABILITY_ALLOW_LIST = (
    "SYS_ADMIN",  # nested containers
    "SYS_PTRACE",  # debuggers
    "CHOWN",
    "DAC_OVERRIDE",
    "FOWNER",
    "FSETID",
    "KILL",
    "SETGID",
    "SETUID",
    "NET_BIND_SERVICE",
    "NET_RAW",
    "SYS_CHROOT",
    "MKNOD",
    "AUDIT_WRITE",
    "SETFCAP",
)

# =============================================================================
# MOUNTS
# =============================================================================

# Host subdirectory of the data root -> container path
DATA_MOUNTS = (
    ("docker_data", "/home/dev/data"),
    ("docker_workspace", "/home/dev/workspace"),
    ("docker_analysis", "/home/dev/analysis"),
    ("docker_logs", "/home/dev/logs"),
    ("docker_output", "/home/dev/output"),
)

# Extra directories created on the host but not mounted on their own
EXTRA_DATA_DIRS = ("docker_data/claude-flow",)

DEFAULT_EXTERNAL_SUBDIR = "ext"
EXTERNAL_MOUNT_TARGET = "/workspace/ext"

SSH_DIR_TARGET = "/home/dev/.ssh"
SSH_AGENT_SOCKET = "/tmp/ssh-agent.sock"
DOCKER_SOCKET = "/var/run/docker.sock"

# In-container directories copied out by `persist`
ANALYSIS_DIR_IN_CONTAINER = "/home/dev/analysis"
OUTPUT_DIR_IN_CONTAINER = "/home/dev/output"

# =============================================================================
# NETWORK & CONTAINER ENVIRONMENT
# =============================================================================

WEB_UI_PORT = 3010
PUBLISHED_PORTS = ((WEB_UI_PORT, WEB_UI_PORT),)

CONTAINER_ENVIRONMENT = (
    ("SSH_AUTH_SOCK", SSH_AGENT_SOCKET),
    ("CLAUDE_FLOW_PORT", str(WEB_UI_PORT)),
    ("CLAUDE_FLOW_HOST", "0.0.0.0"),
    ("CLAUDE_FLOW_DATA_DIR", "/home/dev/data/claude-flow"),
)

BUILD_SECRET_VAR = "GH_TOKEN"
BUILD_SECRET = f"id={BUILD_SECRET_VAR},env={BUILD_SECRET_VAR}"

# =============================================================================
# SUPERVISOR TIMING (seconds)
# =============================================================================

WATCH_INTERVAL_SECONDS = 60
RESTART_GRACE_SECONDS = 10

# =============================================================================
# LOGGING
# =============================================================================

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 2

# =============================================================================
# ENVIRONMENT VARIABLES
# =============================================================================

ENV_VAR_DEFINITIONS = {
    "DOCKER_CPUS": {
        "description": "CPU count for the container (clamped to host CPUs)",
        "default": None,
        "valid_values": None,
    },
    "DOCKER_MEMORY": {
        "description": "Memory limit such as 64g (clamped to host memory)",
        "default": None,
        "valid_values": None,
    },
    "EXTERNAL_DIR": {
        "description": "Host directory mounted at /workspace/ext",
        "default": None,
        "valid_values": None,
    },
    "SSH_AUTH_SOCK": {
        "description": "Host SSH agent socket forwarded into the container",
        "default": SSH_AGENT_SOCKET,
        "valid_values": None,
    },
    "GH_TOKEN": {
        "description": "GitHub token passed to docker build as a secret",
        "default": None,
        "valid_values": None,
    },
    "SWARMBOX_IMAGE": {
        "description": "Image tag to build and run",
        "default": DEFAULT_IMAGE,
        "valid_values": None,
    },
    "SWARMBOX_CONTAINER": {
        "description": "Container name",
        "default": DEFAULT_CONTAINER_NAME,
        "valid_values": None,
    },
    "SWARMBOX_NETWORK": {
        "description": "Docker network the container joins",
        "default": DEFAULT_NETWORK,
        "valid_values": None,
    },
    "SWARMBOX_DATA_DIR": {
        "description": "Host directory holding persistent container data",
        "default": DEFAULT_DATA_DIR,
        "valid_values": None,
    },
    "SWARMBOX_GPUS": {
        "description": "Whether to pass --gpus all",
        "default": "true",
        "valid_values": ["true", "false", "1", "0", "yes", "no"],
    },
}
