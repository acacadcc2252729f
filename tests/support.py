"""Shared test doubles for exercising the sampler without a node."""

from __future__ import annotations

from typing import Any

from geth_exporter.exceptions import RpcError
from geth_exporter.models import Block, SyncProgress, Transaction

ALICE = "0x0000000000000000000000000000000000000001"
BOB = "0x0000000000000000000000000000000000000002"
TOKEN = "0x0000000000000000000000000000000000000010"

ONE_ETHER = 10**18
TRANSFER_CALL = bytes.fromhex("a9059cbb") + bytes(64)


def make_block(
    number: int,
    transactions: tuple[Transaction, ...] = (),
    *,
    size: int | str = 1024,
    difficulty: int = 0,
) -> Block:
    return Block(
        number=number,
        hash=f"0x{number:064x}",
        transactions=transactions,
        gas_used=21_000 * len(transactions),
        gas_limit=30_000_000,
        nonce=0,
        difficulty=difficulty,
        uncle_count=0,
        size=size,
    )


def rpc_failure(operation: str) -> RpcError:
    return RpcError(f"{operation} unavailable", operation=operation)


class FakeNodeClient:
    """Scripted node client.

    ``blocks`` is consumed one entry per fetch; the last entry repeats. Any
    entry or attribute holding an exception is raised instead of returned.
    """

    def __init__(self, blocks: list[Block | Exception] | None = None) -> None:
        self.blocks: list[Block | Exception] = list(blocks or [])
        self.connected = True
        self.gas_price: int | Exception = 2_000_000_000
        self.pending: int | Exception = 7
        self.network: int | Exception = 1
        self.sync: SyncProgress | None | Exception = None
        self.balances: dict[str, int | Exception] = {}
        self.nonces: dict[str, int | Exception] = {}
        self.calls: list[tuple[Any, ...]] = []

    @staticmethod
    def _resolve(value: Any) -> Any:
        if isinstance(value, Exception):
            raise value
        return value

    def is_connected(self) -> bool:
        return self.connected

    def ensure_connected(self) -> None:
        if not self.connected:
            from geth_exporter.exceptions import RpcConnectionError

            raise RpcConnectionError("node unreachable", operation="is_connected")

    def fetch_latest_block(self) -> Block:
        self.calls.append(("fetch_latest_block",))

        if not self.blocks:
            raise rpc_failure("get_block")

        entry = self.blocks.pop(0) if len(self.blocks) > 1 else self.blocks[0]
        return self._resolve(entry)

    def suggest_gas_price(self) -> int:
        return self._resolve(self.gas_price)

    def pending_transaction_count(self) -> int:
        return self._resolve(self.pending)

    def network_id(self) -> int:
        return self._resolve(self.network)

    def sync_progress(self) -> SyncProgress | None:
        return self._resolve(self.sync)

    def balance_at(self, address: str, block_number: int) -> int:
        self.calls.append(("balance_at", address, block_number))
        return self._resolve(self.balances.get(address, 0))

    def nonce_at(self, address: str, block_number: int) -> int:
        self.calls.append(("nonce_at", address, block_number))
        return self._resolve(self.nonces.get(address, 0))
