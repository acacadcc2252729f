from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from web3 import Web3

from .exceptions import ConfigError, ValidationError
from .settings import AppSettings, get_settings

DEFAULT_ENV_PATH = Path.cwd().joinpath(".env").resolve()

load_dotenv(DEFAULT_ENV_PATH)

METRIC_NAME_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_:]")


@dataclass(frozen=True, slots=True)
class NodeConfig:
    rpc_url: str

    watch_addresses: tuple[str, ...]

    metric_prefix: str

    poll_interval_ms: int

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000


def load_node_config(settings: AppSettings | None = None) -> NodeConfig:
    """Validate environment settings into a node configuration.

    Raises:
        ConfigError: If the node RPC URL is missing.
        ValidationError: If a watch-list entry is not a valid address.
    """
    resolved_settings = settings or get_settings()
    node = resolved_settings.node

    rpc_url = (node.rpc_url or "").strip()

    if not rpc_url:
        raise ConfigError(
            "Node RPC endpoint is not configured; set the GETH environment variable.",
            config_key="GETH",
        )

    return NodeConfig(
        rpc_url=rpc_url,
        watch_addresses=parse_watch_addresses(node.addresses),
        metric_prefix=sanitize_metric_prefix(node.prefix),
        poll_interval_ms=node.delay_ms,
    )


def parse_watch_addresses(raw: str | None) -> tuple[str, ...]:
    """Parse a comma-separated watch-list into unique checksum addresses.

    Blank entries are ignored and duplicates collapse onto the first
    occurrence, so the resulting order follows the configured order.
    """
    if not raw:
        return ()

    addresses: list[str] = []
    seen: set[str] = set()

    for index, entry in enumerate(raw.split(","), start=1):
        candidate = entry.strip()

        if not candidate:
            continue

        if not Web3.is_address(candidate):
            raise ValidationError(
                f"ADDRESSES[{index}] is not a valid account address.",
                config_key="ADDRESSES",
                value=candidate,
                expected_type="address",
            )

        checksum_address = Web3.to_checksum_address(candidate)

        if checksum_address in seen:
            continue

        seen.add(checksum_address)
        addresses.append(checksum_address)

    return tuple(addresses)


def sanitize_metric_prefix(prefix: str) -> str:
    """Return a prefix that yields valid Prometheus metric names."""

    sanitized = METRIC_NAME_INVALID_CHARS.sub("_", prefix.strip())

    if not sanitized:
        raise ValidationError(
            "PREFIX must contain at least one character.",
            config_key="PREFIX",
            value=prefix,
        )

    if sanitized[0].isdigit():
        sanitized = f"_{sanitized}"

    return sanitized


__all__ = [
    "DEFAULT_ENV_PATH",
    "NodeConfig",
    "load_node_config",
    "parse_watch_addresses",
    "sanitize_metric_prefix",
]
