"""Utilities for polling intervals and Web3 client creation."""

from __future__ import annotations

from web3 import HTTPProvider, Web3

from ..config import NodeConfig
from ..logging import get_logger
from ..settings import DEFAULT_POLL_DELAY_MS, get_settings

LOGGER = get_logger(__name__)
SETTINGS = get_settings()

DEFAULT_POLL_INTERVAL_SECONDS = DEFAULT_POLL_DELAY_MS / 1000
DEFAULT_RPC_TIMEOUT_SECONDS = SETTINGS.poller.rpc_request_timeout_seconds
MAX_FAILURE_BACKOFF_SECONDS = SETTINGS.poller.max_failure_backoff_seconds


def determine_rpc_timeout_seconds() -> float:
    """Return the configured RPC request timeout in seconds."""
    return DEFAULT_RPC_TIMEOUT_SECONDS


def create_web3_client(rpc_url: str, timeout_seconds: float | None = None) -> Web3:
    """Create a Web3 client whose every request is bounded by a timeout.

    Args:
        rpc_url: Node RPC endpoint.
        timeout_seconds: Per-request timeout; defaults to the configured value.

    Returns:
        Configured Web3 client instance.
    """
    provider = HTTPProvider(
        rpc_url,
        request_kwargs={"timeout": timeout_seconds or determine_rpc_timeout_seconds()},
    )

    return Web3(provider)


def determine_poll_interval_seconds(config: NodeConfig) -> float:
    """Return the poll interval in seconds, falling back to the default when unusable."""

    if config.poll_interval_ms <= 0:
        LOGGER.warning(
            "Invalid poll interval %sms. Falling back to %sms.",
            config.poll_interval_ms,
            DEFAULT_POLL_DELAY_MS,
        )

        return DEFAULT_POLL_INTERVAL_SECONDS

    return config.poll_interval_seconds


def compute_failure_backoff(
    interval_seconds: float,
    consecutive_failures: int,
    max_backoff_seconds: float = MAX_FAILURE_BACKOFF_SECONDS,
) -> float:
    """Return the delay before the next cycle after ``consecutive_failures`` failures.

    The first failure waits exactly one interval; each further failure doubles
    the wait up to ``max_backoff_seconds``.
    """
    if consecutive_failures <= 0:
        return interval_seconds

    backoff = interval_seconds * (2 ** (consecutive_failures - 1))

    return max(min(backoff, max_backoff_seconds), interval_seconds)


__all__ = [
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "DEFAULT_RPC_TIMEOUT_SECONDS",
    "MAX_FAILURE_BACKOFF_SECONDS",
    "compute_failure_backoff",
    "create_web3_client",
    "determine_poll_interval_seconds",
    "determine_rpc_timeout_seconds",
]
