"""Polling package for node sampling."""

from .collect import NodeSampler, SamplingState, merge_snapshot
from .control import poll_node, sample_node
from .intervals import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    MAX_FAILURE_BACKOFF_SECONDS,
    compute_failure_backoff,
    create_web3_client,
    determine_poll_interval_seconds,
)
from .manager import PollerManager, get_poller_manager, reset_poller_manager

__all__ = [
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "MAX_FAILURE_BACKOFF_SECONDS",
    "NodeSampler",
    "PollerManager",
    "SamplingState",
    "compute_failure_backoff",
    "create_web3_client",
    "determine_poll_interval_seconds",
    "get_poller_manager",
    "merge_snapshot",
    "poll_node",
    "reset_poller_manager",
    "sample_node",
]
