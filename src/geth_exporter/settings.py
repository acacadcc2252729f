"""Process settings read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, TypeVar

N = TypeVar("N", int, float)

DEFAULT_METRIC_PREFIX = "geth-node"
DEFAULT_POLL_DELAY_MS = 500

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _env_number(name: str, default: N, cast: Callable[[str], N]) -> N:
    """Read a numeric variable; unset or unparsable values yield ``default``."""
    raw = os.getenv(name)

    if raw is None:
        return default

    try:
        return cast(raw.strip())
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()

    if raw in _TRUE_VALUES:
        return True

    if raw in _FALSE_VALUES:
        return False

    return default


@dataclass(slots=True)
class LoggingSettings:
    level: str
    format: str
    color_enabled: bool


@dataclass(slots=True)
class NodeSettings:
    rpc_url: str | None
    addresses: str
    prefix: str
    delay_ms: int


@dataclass(slots=True)
class PollerSettings:
    rpc_request_timeout_seconds: float
    rpc_max_attempts: int
    max_failure_backoff_seconds: float


@dataclass(slots=True)
class HealthSettings:
    readiness_stale_threshold_seconds: float


@dataclass(slots=True)
class ServerSettings:
    host: str
    metrics_port: int


@dataclass(slots=True)
class AppSettings:
    logging: LoggingSettings
    node: NodeSettings
    poller: PollerSettings
    health: HealthSettings
    server: ServerSettings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Read every exporter setting from the environment once per process."""
    # DELAY <= 0 and unparsable values both mean "use the default".
    delay_ms = _env_number("DELAY", 0, int)

    return AppSettings(
        logging=LoggingSettings(
            level=os.getenv("LOG_LEVEL", "INFO").upper(),
            format=os.getenv("LOG_FORMAT", "text").lower(),
            color_enabled=_env_bool("LOG_COLOR_ENABLED", True),
        ),
        node=NodeSettings(
            rpc_url=os.getenv("GETH"),
            addresses=os.getenv("ADDRESSES", ""),
            prefix=os.getenv("PREFIX") or DEFAULT_METRIC_PREFIX,
            delay_ms=delay_ms if delay_ms > 0 else DEFAULT_POLL_DELAY_MS,
        ),
        poller=PollerSettings(
            rpc_request_timeout_seconds=_env_number("RPC_REQUEST_TIMEOUT_SECONDS", 5.0, float),
            rpc_max_attempts=max(_env_number("RPC_MAX_ATTEMPTS", 1, int), 1),
            max_failure_backoff_seconds=_env_number("MAX_FAILURE_BACKOFF_SECONDS", 30.0, float),
        ),
        health=HealthSettings(
            readiness_stale_threshold_seconds=_env_number(
                "READINESS_STALE_THRESHOLD_SECONDS",
                60.0,
                float,
            ),
        ),
        server=ServerSettings(
            host=os.getenv("METRICS_HOST", "0.0.0.0"),
            metrics_port=_env_number("METRICS_PORT", 9090, int),
        ),
    )


def reset_settings_cache() -> None:
    """Forget the cached settings so the next call re-reads the environment."""

    get_settings.cache_clear()


__all__ = [
    "AppSettings",
    "DEFAULT_METRIC_PREFIX",
    "DEFAULT_POLL_DELAY_MS",
    "HealthSettings",
    "LoggingSettings",
    "NodeSettings",
    "PollerSettings",
    "ServerSettings",
    "get_settings",
    "reset_settings_cache",
]
