"""Synchronous sampling cycle invoked by the poller."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from ..aggregates import compute_block_aggregates
from ..exceptions import RpcError
from ..logging import build_log_extra, get_logger
from ..models import CycleObservation, QueryResult, Snapshot, WatchedAddress
from ..rpc import NodeQueryClientProtocol
from ..store import SnapshotStore

LOGGER = get_logger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class SamplingState:
    """Loop-private state carried between cycles; never shared with readers."""

    last_height: int | None = None
    last_block_update: float = 0.0
    load_time: float = 0.0
    addresses: dict[str, WatchedAddress] = field(default_factory=dict)


def merge_snapshot(previous: Snapshot | None, observation: CycleObservation) -> Snapshot:
    """Build the next snapshot, carrying forward any field whose query failed.

    Block-derived fields always come from ``observation``; best-effort
    fields take the new value on success and the previous snapshot's value
    otherwise (``None`` when there is no previous snapshot).
    """
    return Snapshot(
        block=observation.block,
        aggregates=observation.aggregates,
        last_block_update=observation.last_block_update,
        load_time=observation.load_time,
        sampled_at=observation.sampled_at,
        gas_price=observation.gas_price.or_previous(
            previous.gas_price if previous else None
        ),
        pending_transactions=observation.pending_transactions.or_previous(
            previous.pending_transactions if previous else None
        ),
        network_id=observation.network_id.or_previous(
            previous.network_id if previous else None
        ),
        sync=observation.sync.or_previous(previous.sync if previous else None),
    )


class NodeSampler:
    """Runs sampling cycles against a node and publishes the results."""

    def __init__(
        self,
        client: NodeQueryClientProtocol,
        store: SnapshotStore,
        watch_addresses: tuple[str, ...] = (),
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._store = store
        self._watch_addresses = watch_addresses
        self._clock = clock
        self.state = SamplingState(
            addresses={address: WatchedAddress(address=address) for address in watch_addresses}
        )

    @property
    def store(self) -> SnapshotStore:
        return self._store

    def bootstrap(self) -> None:
        """Verify the node is reachable and publish the first snapshot.

        Raises:
            RpcError: If the node is unreachable or the latest block cannot be fetched.
        """
        self._client.ensure_connected()
        self.sample_once(strict=True)

    def sample_once(self, *, strict: bool = False) -> bool:
        """Run one sampling cycle.

        Returns:
            True when a new snapshot was published, False when the latest block
            could not be fetched and the published state was left untouched.

        Raises:
            RpcError: If ``strict`` is set and the latest block cannot be fetched.
        """
        started = time.monotonic()

        try:
            block = self._client.fetch_latest_block()
        except RpcError as exc:
            if strict:
                raise

            LOGGER.warning(
                "Issue with response from node; keeping previous snapshot: %s",
                exc,
                extra=build_log_extra(operation="get_block", additional=exc.context),
            )

            return False

        fetch_elapsed = time.monotonic() - started

        gas_price = self._query("suggest_gas_price", self._client.suggest_gas_price)
        pending = self._query("pending_transaction_count", self._client.pending_transaction_count)
        network_id = self._query("network_id", self._client.network_id)
        sync = self._query("sync_progress", self._client.sync_progress)

        state = self.state

        if state.last_height is None or block.number > state.last_height:
            LOGGER.info(
                "Received block #%s with %s transactions (%s)",
                block.number,
                len(block.transactions),
                block.hash,
                extra=build_log_extra(block_number=block.number, block_hash=block.hash),
            )

            state.last_block_update = self._clock()
            state.load_time = fetch_elapsed

        state.last_height = block.number

        self._refresh_addresses(block.number)

        observation = CycleObservation(
            block=block,
            aggregates=compute_block_aggregates(block),
            last_block_update=state.last_block_update,
            load_time=state.load_time,
            sampled_at=self._clock(),
            gas_price=gas_price,
            pending_transactions=pending,
            network_id=network_id,
            sync=sync,
        )

        snapshot = merge_snapshot(self._store.snapshot, observation)
        self._store.publish(snapshot, state.addresses)

        return True

    def _query(self, operation: str, call: Callable[[], T]) -> QueryResult[T]:
        try:
            return QueryResult(value=call())
        except RpcError as exc:
            LOGGER.warning(
                "Node query %s failed; keeping previous value: %s",
                operation,
                exc,
                extra=build_log_extra(operation=operation, additional=exc.context),
            )

            return QueryResult(error=exc)

    def _refresh_addresses(self, block_number: int) -> None:
        for address in self._watch_addresses:
            balance = self._query(
                "balance_at",
                lambda: self._client.balance_at(address, block_number),
            )

            if not balance.ok:
                continue

            nonce = self._query(
                "nonce_at",
                lambda: self._client.nonce_at(address, block_number),
            )

            if not nonce.ok:
                continue

            self.state.addresses[address] = WatchedAddress(
                address=address,
                balance=balance.value,
                nonce=nonce.value,
                block_number=block_number,
            )


__all__ = ["NodeSampler", "SamplingState", "merge_snapshot"]
