"""Core data models used across the exporter."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Generic, Mapping, TypeVar

from web3 import Web3

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Transaction:
    to: str | None
    value: int
    data: bytes = b""


@dataclass(frozen=True, slots=True)
class Block:
    number: int
    hash: str
    transactions: tuple[Transaction, ...]
    gas_used: int
    gas_limit: int
    nonce: int
    difficulty: int
    uncle_count: int
    size: int | str


@dataclass(frozen=True, slots=True)
class SyncProgress:
    """Node-reported synchronisation state (``eth_syncing``)."""

    known_states: int
    highest_block: int
    pulled_states: int
    starting_block: int = 0
    current_block: int = 0


@dataclass(frozen=True, slots=True)
class BlockAggregates:
    """Counters derived from a single block's transaction list."""

    total_value_wei: int
    total_value_ether: Decimal
    contracts_created: int
    token_transfers: int
    value_transfers: int
    block_size_bytes: float


@dataclass(frozen=True, slots=True)
class WatchedAddress:
    address: str
    balance: int | None = None
    nonce: int | None = None
    block_number: int | None = None

    @property
    def sampled(self) -> bool:
        return self.balance is not None and self.nonce is not None


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Consistent view of the node produced by one sampling cycle."""

    block: Block
    aggregates: BlockAggregates
    last_block_update: float
    load_time: float
    sampled_at: float
    gas_price: int | None = None
    pending_transactions: int | None = None
    network_id: int | None = None
    sync: SyncProgress | None = None


@dataclass(frozen=True, slots=True)
class PublishedState:
    """What readers see: the current snapshot and the watched addresses."""

    snapshot: Snapshot | None
    addresses: Mapping[str, WatchedAddress]

    @classmethod
    def empty(cls, watch_addresses: tuple[str, ...] = ()) -> "PublishedState":
        return cls(
            snapshot=None,
            addresses=MappingProxyType(
                {address: WatchedAddress(address=address) for address in watch_addresses}
            ),
        )


@dataclass(frozen=True, slots=True)
class QueryResult(Generic[T]):
    """Outcome of one best-effort node query."""

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def or_previous(self, previous: T | None) -> T | None:
        return self.value if self.ok else previous


@dataclass(frozen=True, slots=True)
class CycleObservation:
    """Everything a sampling cycle learned before it is merged and published."""

    block: Block
    aggregates: BlockAggregates
    last_block_update: float
    load_time: float
    sampled_at: float
    gas_price: QueryResult[int]
    pending_transactions: QueryResult[int]
    network_id: QueryResult[int]
    sync: QueryResult[SyncProgress | None]


def _as_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    return str(value)


def _as_bytes(value: Any) -> bytes:
    if not value:
        return b""
    if isinstance(value, str):
        return Web3.to_bytes(hexstr=value)
    return bytes(value)


def _as_quantity(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray)):
        return int.from_bytes(value, "big")
    text = str(value)
    return int(text, 16) if text.startswith(("0x", "0X")) else int(text)


def transaction_from_web3(raw: Mapping[str, Any]) -> Transaction:
    to_address = raw.get("to")

    return Transaction(
        to=str(to_address) if to_address else None,
        value=_as_quantity(raw.get("value")),
        data=_as_bytes(raw.get("input", raw.get("data"))),
    )


def block_from_web3(raw: Mapping[str, Any]) -> Block:
    """Build a ``Block`` from a web3 ``eth.get_block(..., full_transactions=True)`` payload.

    Raises:
        KeyError: If mandatory block fields are missing.
        TypeError: If the payload holds transaction hashes instead of full transactions.
    """
    transactions = []

    for entry in raw.get("transactions", ()):
        if not isinstance(entry, Mapping):
            raise TypeError("Block payload must contain full transaction objects.")

        transactions.append(transaction_from_web3(entry))

    size = raw.get("size", 0)

    return Block(
        number=_as_quantity(raw["number"]),
        hash=_as_hex(raw["hash"]),
        transactions=tuple(transactions),
        gas_used=_as_quantity(raw.get("gasUsed")),
        gas_limit=_as_quantity(raw.get("gasLimit")),
        nonce=_as_quantity(raw.get("nonce")),
        difficulty=_as_quantity(raw.get("difficulty")),
        uncle_count=len(raw.get("uncles", ())),
        size=size if isinstance(size, str) else _as_quantity(size),
    )


def sync_progress_from_web3(raw: Any) -> SyncProgress | None:
    """Translate an ``eth.syncing`` result; ``False`` means the node is in sync."""

    if not raw:
        return None

    return SyncProgress(
        known_states=_as_quantity(raw.get("knownStates")),
        highest_block=_as_quantity(raw.get("highestBlock")),
        pulled_states=_as_quantity(raw.get("pulledStates")),
        starting_block=_as_quantity(raw.get("startingBlock")),
        current_block=_as_quantity(raw.get("currentBlock")),
    )


__all__ = [
    "Block",
    "BlockAggregates",
    "CycleObservation",
    "PublishedState",
    "QueryResult",
    "Snapshot",
    "SyncProgress",
    "Transaction",
    "WatchedAddress",
    "block_from_web3",
    "sync_progress_from_web3",
    "transaction_from_web3",
]
