from __future__ import annotations

from types import MappingProxyType

import pytest

from geth_exporter.aggregates import compute_block_aggregates
from geth_exporter.exceptions import SnapshotUnavailableError
from geth_exporter.models import (
    PublishedState,
    Snapshot,
    SyncProgress,
    Transaction,
    WatchedAddress,
)
from geth_exporter.projector import format_metrics_payload, render_metrics

from support import ALICE, BOB, ONE_ETHER, TOKEN, TRANSFER_CALL, make_block

PREFIX = "geth_node"


def _state(
    *,
    gas_price: int | None = 2_000_000_000,
    sync: SyncProgress | None = None,
    addresses: dict[str, WatchedAddress] | None = None,
) -> PublishedState:
    block = make_block(
        42,
        (
            Transaction(to=ALICE, value=ONE_ETHER // 2),
            Transaction(to=TOKEN, value=0, data=TRANSFER_CALL),
            Transaction(to=None, value=0),
        ),
        size=540,
        difficulty=3,
    )
    snapshot = Snapshot(
        block=block,
        aggregates=compute_block_aggregates(block),
        last_block_update=100.0,
        load_time=0.123456,
        sampled_at=110.0,
        gas_price=gas_price,
        pending_transactions=7,
        network_id=1,
        sync=sync,
    )

    return PublishedState(snapshot=snapshot, addresses=MappingProxyType(addresses or {}))


def _samples(payload: bytes) -> dict[str, str]:
    samples: dict[str, str] = {}

    for line in payload.decode().splitlines():
        if not line or line.startswith("#"):
            continue

        name, value = line.rsplit(" ", 1)
        samples[name] = value

    return samples


def test_render_metrics_requires_snapshot() -> None:
    with pytest.raises(SnapshotUnavailableError) as exc_info:
        render_metrics(PublishedState.empty(), PREFIX)

    assert "issue receiving block from node" in str(exc_info.value)


def test_render_metrics_projects_block_state() -> None:
    payload = render_metrics(_state(), PREFIX, now=112.5)
    samples = _samples(payload)

    assert float(samples["geth_node_eth_block"]) == 42.0
    assert float(samples["geth_node_eth_seconds_last_block"]) == 12.5
    assert float(samples["geth_node_eth_block_transactions"]) == 3.0
    assert float(samples["geth_node_eth_block_value"]) == 0.5
    assert float(samples["geth_node_eth_block_gas_used"]) == 63000.0
    assert float(samples["geth_node_eth_block_gas_limit"]) == 30000000
    assert float(samples["geth_node_eth_block_difficulty"]) == 3.0
    assert float(samples["geth_node_eth_block_uncles"]) == 0.0
    assert float(samples["geth_node_eth_block_size_bytes"]) == 540.0
    assert float(samples["geth_node_eth_gas_price"]) == 2000000000
    assert float(samples["geth_node_eth_pending_transactions"]) == 7.0
    assert float(samples["geth_node_eth_network_id"]) == 1.0
    assert float(samples["geth_node_eth_contracts_created"]) == 1.0
    assert float(samples["geth_node_eth_token_transfers"]) == 1.0
    assert float(samples["geth_node_eth_eth_transfers"]) == 1.0
    assert float(samples["geth_node_eth_load_time"]) == 0.1235
    assert not any("e" in value for value in samples.values())
    assert "# TYPE geth_node_eth_block gauge" in payload.decode()
    assert payload.endswith(b"\n")


def test_render_metrics_omits_missing_optional_values() -> None:
    samples = _samples(render_metrics(_state(gas_price=None), PREFIX, now=110.0))

    assert "geth_node_eth_gas_price" not in samples
    assert "geth_node_eth_known_states" not in samples
    assert "geth_node_eth_highest_block" not in samples
    assert not any(name.startswith("geth_node_eth_address_") for name in samples)


def test_render_metrics_includes_sync_progress() -> None:
    sync = SyncProgress(known_states=300, highest_block=900, pulled_states=200)
    samples = _samples(render_metrics(_state(sync=sync), PREFIX, now=110.0))

    assert float(samples["geth_node_eth_known_states"]) == 300.0
    assert float(samples["geth_node_eth_highest_block"]) == 900.0
    assert float(samples["geth_node_eth_pulled_states"]) == 200.0


def test_render_metrics_labels_sampled_addresses_only() -> None:
    addresses = {
        ALICE: WatchedAddress(address=ALICE, balance=3 * ONE_ETHER // 2, nonce=4, block_number=42),
        BOB: WatchedAddress(address=BOB),
    }

    samples = _samples(render_metrics(_state(addresses=addresses), PREFIX, now=110.0))

    assert float(samples[f'geth_node_eth_address_balance{{address="{ALICE}"}}']) == 1.5
    assert float(samples[f'geth_node_eth_address_nonce{{address="{ALICE}"}}']) == 4.0
    assert not any(BOB in name for name in samples)


def test_render_metrics_clamps_negative_block_age() -> None:
    samples = _samples(render_metrics(_state(), PREFIX, now=50.0))

    assert float(samples["geth_node_eth_seconds_last_block"]) == 0.0


def test_format_metrics_payload_expands_exponents() -> None:
    payload = b"# HELP x value\n# TYPE x gauge\nx 1e+22\ny 2.5e-05\nz 3.0\n"

    assert format_metrics_payload(payload) == (
        b"# HELP x value\n# TYPE x gauge\nx 10000000000000000000000\ny 0.000025\nz 3.0\n"
    )
