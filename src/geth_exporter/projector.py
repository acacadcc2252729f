"""Render a published node snapshot into Prometheus exposition text."""

from __future__ import annotations

import time
from decimal import Decimal, InvalidOperation
from typing import Iterable

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from .aggregates import to_ether
from .exceptions import SnapshotUnavailableError
from .models import PublishedState, Snapshot


class SnapshotCollector(Collector):
    """Prometheus collector that projects one ``PublishedState`` into gauges.

    The collector only reads the state it was built with; it never touches
    the store or the node.
    """

    def __init__(
        self,
        state: PublishedState,
        prefix: str,
        *,
        now: float | None = None,
    ) -> None:
        if state.snapshot is None:
            raise SnapshotUnavailableError("issue receiving block from node: no snapshot published yet")

        self._snapshot: Snapshot = state.snapshot
        self._addresses = state.addresses
        self._prefix = prefix
        self._now = now

    def _gauge(self, name: str, documentation: str, value: float) -> GaugeMetricFamily:
        return GaugeMetricFamily(f"{self._prefix}_eth_{name}", documentation, value=value)

    def collect(self) -> Iterable[Metric]:
        snapshot = self._snapshot
        block = snapshot.block
        aggregates = snapshot.aggregates
        now = time.time() if self._now is None else self._now

        yield self._gauge("block", "Latest block number reported by the node.", block.number)
        yield self._gauge(
            "seconds_last_block",
            "Seconds since the block height last advanced.",
            round(max(now - snapshot.last_block_update, 0.0), 2),
        )
        yield self._gauge(
            "block_transactions",
            "Number of transactions in the latest block.",
            len(block.transactions),
        )
        yield self._gauge(
            "block_value",
            "Total value transferred in the latest block, in ether.",
            float(aggregates.total_value_ether),
        )
        yield self._gauge("block_gas_used", "Gas used by the latest block.", block.gas_used)
        yield self._gauge("block_gas_limit", "Gas limit of the latest block.", block.gas_limit)
        yield self._gauge("block_nonce", "Nonce of the latest block.", block.nonce)
        yield self._gauge("block_difficulty", "Difficulty of the latest block.", block.difficulty)
        yield self._gauge("block_uncles", "Number of uncles in the latest block.", block.uncle_count)
        yield self._gauge(
            "block_size_bytes",
            "Size of the latest block in bytes.",
            aggregates.block_size_bytes,
        )

        if snapshot.gas_price is not None:
            yield self._gauge("gas_price", "Suggested gas price in wei.", snapshot.gas_price)

        if snapshot.pending_transactions is not None:
            yield self._gauge(
                "pending_transactions",
                "Number of transactions in the pending block.",
                snapshot.pending_transactions,
            )

        if snapshot.network_id is not None:
            yield self._gauge("network_id", "Network id reported by the node.", snapshot.network_id)

        yield self._gauge(
            "contracts_created",
            "Contract-creation transactions in the latest block.",
            aggregates.contracts_created,
        )
        yield self._gauge(
            "token_transfers",
            "Token transfer calls in the latest block.",
            aggregates.token_transfers,
        )
        yield self._gauge(
            "eth_transfers",
            "Transactions carrying a positive value in the latest block.",
            aggregates.value_transfers,
        )
        yield self._gauge(
            "load_time",
            "Seconds taken to fetch the latest block when the height last advanced.",
            round(snapshot.load_time, 4),
        )

        if snapshot.sync is not None:
            yield self._gauge("known_states", "Known state entries while syncing.", snapshot.sync.known_states)
            yield self._gauge("highest_block", "Highest block known while syncing.", snapshot.sync.highest_block)
            yield self._gauge("pulled_states", "Pulled state entries while syncing.", snapshot.sync.pulled_states)

        sampled = [entry for entry in self._addresses.values() if entry.sampled]

        if not sampled:
            return

        balance = GaugeMetricFamily(
            f"{self._prefix}_eth_address_balance",
            "Balance of a watched address, in ether.",
            labels=["address"],
        )
        nonce = GaugeMetricFamily(
            f"{self._prefix}_eth_address_nonce",
            "Nonce of a watched address.",
            labels=["address"],
        )

        for entry in sampled:
            balance.add_metric([entry.address], float(to_ether(entry.balance)))
            nonce.add_metric([entry.address], entry.nonce)

        yield balance
        yield nonce


def render_metrics(
    state: PublishedState,
    prefix: str,
    *,
    now: float | None = None,
) -> bytes:
    """Render ``state`` as Prometheus exposition text.

    Raises:
        SnapshotUnavailableError: If no snapshot has been published yet.
    """
    registry = CollectorRegistry(auto_describe=False)
    registry.register(SnapshotCollector(state, prefix, now=now))

    return format_metrics_payload(generate_latest(registry))


def format_metrics_payload(payload: bytes) -> bytes:
    """Rewrite exponent-notation sample values as plain decimals."""

    lines = []

    for line in payload.decode().splitlines():
        if not line or line.startswith("#"):
            lines.append(line)

            continue

        parts = line.rsplit(" ", 1)

        if len(parts) != 2:
            lines.append(line)

            continue

        metric, value = parts

        if "e" in value.lower():
            try:
                value = format(Decimal(value), "f")
            except InvalidOperation:
                pass

        lines.append(f"{metric} {value}")

    return ("\n".join(lines) + "\n").encode()


__all__ = ["SnapshotCollector", "format_metrics_payload", "render_metrics"]
