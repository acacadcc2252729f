"""Async control loop for node sampling."""

from __future__ import annotations

import asyncio
import logging
import time

from ..logging import build_log_extra, get_logger, log_duration
from .collect import NodeSampler
from .intervals import MAX_FAILURE_BACKOFF_SECONDS, compute_failure_backoff

LOGGER = get_logger(__name__)


async def poll_node(
    sampler: NodeSampler,
    *,
    interval_seconds: float,
    max_backoff_seconds: float = MAX_FAILURE_BACKOFF_SECONDS,
) -> None:
    """Continuously sample the node until cancelled.

    Each cycle runs in a worker thread. A failed cycle never stops the loop;
    consecutive failures back off exponentially, starting at one interval.

    Args:
        sampler: Sampler that fetches and publishes node state.
        interval_seconds: Delay between cycles.
        max_backoff_seconds: Upper bound for the failure backoff.
    """
    LOGGER.info(
        "Polling node every %s seconds.",
        interval_seconds,
        extra=build_log_extra(additional={"interval_seconds": interval_seconds}),
    )

    consecutive_failures = 0

    while True:
        start_time = time.monotonic()
        success = False

        try:
            with log_duration(LOGGER, "poller_iteration", level=logging.DEBUG):
                success = await sample_node(sampler)
        except asyncio.CancelledError:
            LOGGER.debug("Polling task cancelled.")
            raise
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Unexpected error while sampling node.", exc_info=exc)

        if success:
            consecutive_failures = 0
        else:
            consecutive_failures += 1

        elapsed = time.monotonic() - start_time

        if consecutive_failures > 0:
            wait_seconds = compute_failure_backoff(
                interval_seconds,
                consecutive_failures,
                max_backoff_seconds,
            )
            sleep_duration = max(wait_seconds - elapsed, 0)

            LOGGER.debug(
                "Backing off %.2f seconds before next poll after %s consecutive failure(s).",
                sleep_duration,
                consecutive_failures,
                extra=build_log_extra(
                    elapsed=sleep_duration,
                    additional={"consecutive_failures": consecutive_failures},
                ),
            )
        else:
            sleep_duration = max(interval_seconds - elapsed, 0)

        if sleep_duration > 0:
            await asyncio.sleep(sleep_duration)


async def sample_node(sampler: NodeSampler) -> bool:
    """Execute one sampling cycle inside a worker thread."""

    return await asyncio.to_thread(sampler.sample_once)


__all__ = ["poll_node", "sample_node"]
