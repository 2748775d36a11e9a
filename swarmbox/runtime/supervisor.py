"""
Health supervisor for the `watch` command.

Polls the container on a fixed interval and restarts it whenever the
healthcheck is not "healthy". Waits go through a threading.Event so a
SIGINT/SIGTERM wakes the loop immediately instead of after the next sleep.
"""

import logging
import signal
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from swarmbox.config.constants import RESTART_GRACE_SECONDS, WATCH_INTERVAL_SECONDS
from swarmbox.error_handling import ContainerNotFoundError
from swarmbox.runtime.docker import ContainerState, HealthStatus
from swarmbox.runtime.lifecycle import LifecycleManager

logger = logging.getLogger(__name__)


class HealthSupervisor:
    """Retry-forever restart loop for one container.

    The loop ends when the container disappears or when stop() is called.
    There is no backoff and no failure counting.
    """

    def __init__(
        self,
        manager: LifecycleManager,
        interval: float = WATCH_INTERVAL_SECONDS,
        grace: float = RESTART_GRACE_SECONDS,
        stop_event: Optional[threading.Event] = None,
        on_restart: Optional[Callable[[HealthStatus], None]] = None,
    ):
        self.manager = manager
        self.interval = interval
        self.grace = grace
        self._stop_event = stop_event or threading.Event()
        self._on_restart = on_restart
        self.restarts = 0
        self.checks = 0

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        self._stop_event.set()

    def check_once(self) -> bool:
        """Run one poll cycle. Returns False when the container is gone."""
        if self.manager.state() == ContainerState.ABSENT:
            logger.info(f"Container '{self.manager.name}' not found, exiting watch")
            return False

        self.checks += 1
        try:
            status = self.manager.health()
        except ContainerNotFoundError:
            logger.info(f"Container '{self.manager.name}' removed, exiting watch")
            return False
        if status == HealthStatus.HEALTHY:
            logger.debug(f"Container '{self.manager.name}' healthy")
            return True

        logger.warning(f"Container unhealthy ({status.value}), restarting...")
        self.manager.restart()
        self.restarts += 1
        if self._on_restart:
            self._on_restart(status)

        # Give the container time to come back before the next poll
        self._stop_event.wait(self.grace)
        return True

    def run(self) -> None:
        """Block until the container disappears or the supervisor is stopped."""
        logger.info(f"Watching health for {self.manager.name}...")
        while not self._stop_event.wait(self.interval):
            if not self.check_once():
                return

        logger.info("Shutting down...")
        self.manager.stop()

    @contextmanager
    def signal_handlers(self) -> Iterator[None]:
        """Route SIGINT/SIGTERM to stop() for the duration of the block."""
        def _handle(signum, frame):
            logger.debug(f"Received signal {signum}")
            self.stop()

        previous = {
            sig: signal.signal(sig, _handle) for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
