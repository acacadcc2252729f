"""Derived metrics computed from a block's transaction list."""

from __future__ import annotations

import re
from decimal import Decimal

from web3 import Web3

from .models import Block, BlockAggregates, Transaction

# transfer(address,uint256)
TOKEN_TRANSFER_SELECTOR = "0xa9059cbb"
SELECTOR_LENGTH_BYTES = 4
# Formatted sizes (e.g. "1.23 KiB") are assumed to be expressed in kilobytes.
FORMATTED_SIZE_MULTIPLIER = 1000
LEADING_NUMBER_PATTERN = re.compile(r"^\s*([-+]?\d+(?:\.\d+)?)")


def to_ether(wei: int) -> Decimal:
    """Convert a wei amount to ether without going through floats."""

    return Decimal(Web3.from_wei(wei, "ether"))


def is_contract_creation(transaction: Transaction) -> bool:
    return transaction.to is None


def is_token_transfer(transaction: Transaction) -> bool:
    if len(transaction.data) < SELECTOR_LENGTH_BYTES:
        return False

    return Web3.to_hex(transaction.data[:SELECTOR_LENGTH_BYTES]) == TOKEN_TRANSFER_SELECTOR


def parse_block_size_bytes(size: int | str) -> float:
    """Return the block size in bytes.

    Integer sizes are the raw byte count reported over JSON-RPC. Strings are
    treated as a human formatted size: the leading number is scaled by 1000
    and any unit suffix is ignored, so a "MiB" suffix is under-reported.
    """
    if isinstance(size, int):
        return float(size)

    match = LEADING_NUMBER_PATTERN.match(size)

    if not match:
        return 0.0

    return float(match.group(1)) * FORMATTED_SIZE_MULTIPLIER


def compute_block_aggregates(block: Block) -> BlockAggregates:
    """Classify every transaction of ``block`` and total the value moved.

    The three classifications are independent: a single transaction may
    count towards any combination of them.
    """
    total_value_wei = 0
    contracts_created = 0
    token_transfers = 0
    value_transfers = 0

    for transaction in block.transactions:
        if is_contract_creation(transaction):
            contracts_created += 1

        if is_token_transfer(transaction):
            token_transfers += 1

        if transaction.value > 0:
            value_transfers += 1

        total_value_wei += transaction.value

    return BlockAggregates(
        total_value_wei=total_value_wei,
        total_value_ether=to_ether(total_value_wei),
        contracts_created=contracts_created,
        token_transfers=token_transfers,
        value_transfers=value_transfers,
        block_size_bytes=parse_block_size_bytes(block.size),
    )


__all__ = [
    "TOKEN_TRANSFER_SELECTOR",
    "compute_block_aggregates",
    "is_contract_creation",
    "is_token_transfer",
    "parse_block_size_bytes",
    "to_ether",
]
