from __future__ import annotations

import pytest
from web3 import HTTPProvider, Web3

from geth_exporter.config import NodeConfig
from geth_exporter.poller.intervals import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    compute_failure_backoff,
    create_web3_client,
    determine_poll_interval_seconds,
)


def _config(poll_interval_ms: int) -> NodeConfig:
    return NodeConfig(
        rpc_url="http://node.invalid:8545",
        watch_addresses=(),
        metric_prefix="geth_node",
        poll_interval_ms=poll_interval_ms,
    )


@pytest.mark.parametrize(
    ("failures", "expected"),
    [
        (0, 1.0),
        (1, 1.0),
        (2, 2.0),
        (3, 4.0),
        (6, 30.0),
        (50, 30.0),
    ],
)
def test_compute_failure_backoff(failures: int, expected: float) -> None:
    assert compute_failure_backoff(1.0, failures, 30.0) == expected


def test_compute_failure_backoff_never_below_interval() -> None:
    assert compute_failure_backoff(45.0, 3, 30.0) == 45.0


def test_determine_poll_interval_seconds() -> None:
    assert determine_poll_interval_seconds(_config(250)) == 0.25
    assert determine_poll_interval_seconds(_config(0)) == DEFAULT_POLL_INTERVAL_SECONDS
    assert determine_poll_interval_seconds(_config(-10)) == DEFAULT_POLL_INTERVAL_SECONDS


def test_create_web3_client_uses_http_provider() -> None:
    client = create_web3_client("http://node.invalid:8545", timeout_seconds=3)

    assert isinstance(client, Web3)
    assert isinstance(client.provider, HTTPProvider)
    assert client.provider.endpoint_uri == "http://node.invalid:8545"
