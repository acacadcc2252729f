"""Lifecycle management for the background sampling task."""

from __future__ import annotations

import asyncio
import threading

from ..logging import build_log_extra, get_logger
from . import control as poller_control
from .collect import NodeSampler

LOGGER = get_logger(__name__)


class PollerManager:
    """Owns the single background task that runs the sampling loop.

    Creation is idempotent so a repeated lifespan startup reuses the running
    task instead of starting a second writer.
    """

    def __init__(self) -> None:
        self.polling_task: asyncio.Task | None = None
        self._lock = threading.Lock()

    def create_task(
        self,
        sampler: NodeSampler,
        *,
        interval_seconds: float,
        max_backoff_seconds: float,
    ) -> asyncio.Task:
        """Start the sampling loop unless it is already running.

        Returns:
            The running polling task.
        """
        with self._lock:
            if self.polling_task is not None and not self.polling_task.done():
                LOGGER.debug("Reusing existing polling task")
                return self.polling_task

            self.polling_task = asyncio.create_task(
                poller_control.poll_node(
                    sampler,
                    interval_seconds=interval_seconds,
                    max_backoff_seconds=max_backoff_seconds,
                ),
                name="geth-exporter-poller",
            )

            LOGGER.debug(
                "Created polling task",
                extra=build_log_extra(additional={"interval_seconds": interval_seconds}),
            )

            return self.polling_task

    async def shutdown_tasks(self, timeout_seconds: float = 30.0) -> None:
        """Cancel the polling task and wait for it to finish.

        Args:
            timeout_seconds: Maximum time to wait for the task to complete.
        """
        with self._lock:
            task = self.polling_task
            self.polling_task = None

        if task is None or task.done():
            return

        LOGGER.debug("Cancelling polling task")

        task.cancel()

        try:
            await asyncio.wait_for(
                asyncio.gather(task, return_exceptions=True),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError:
            LOGGER.warning(
                "Polling task did not complete within %s seconds",
                timeout_seconds,
                extra=build_log_extra(additional={"timeout_seconds": timeout_seconds}),
            )

        LOGGER.debug("Polling task cancelled")

    def get_active_task_count(self) -> int:
        with self._lock:
            if self.polling_task is None or self.polling_task.done():
                return 0
            return 1

    def reset(self) -> None:
        """Forget the tracked task (useful for testing)."""
        with self._lock:
            self.polling_task = None


_poller_manager: PollerManager | None = None
_manager_lock = threading.Lock()


def get_poller_manager() -> PollerManager:
    """Return the process-wide PollerManager instance."""
    global _poller_manager

    with _manager_lock:
        if _poller_manager is None:
            _poller_manager = PollerManager()

        return _poller_manager


def reset_poller_manager() -> None:
    """Reset the process-wide PollerManager instance (useful for testing)."""
    with _manager_lock:
        if _poller_manager is not None:
            _poller_manager.reset()


__all__ = [
    "PollerManager",
    "get_poller_manager",
    "reset_poller_manager",
]
