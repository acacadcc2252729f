"""Health and readiness reporting derived from the published node state."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict, Tuple

from fastapi import status

from .models import PublishedState
from .settings import get_settings

SETTINGS = get_settings()
READINESS_STALE_THRESHOLD_SECONDS = SETTINGS.health.readiness_stale_threshold_seconds


def _isoformat(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def generate_health_report(
    state: PublishedState,
    *,
    now: float | None = None,
    stale_threshold_seconds: float = READINESS_STALE_THRESHOLD_SECONDS,
) -> Tuple[str, int, Dict[str, Any]]:
    """Summarise sampler health as ``(status, http_status, details)``.

    ``initializing`` until the first snapshot, ``stale`` once the last
    successful cycle is older than the threshold, otherwise ``ok``.
    """
    snapshot = state.snapshot

    if snapshot is None:
        return "initializing", status.HTTP_503_SERVICE_UNAVAILABLE, {}

    current_time = time.time() if now is None else now
    sample_age = max(current_time - snapshot.sampled_at, 0.0)

    details: Dict[str, Any] = {
        "block_number": snapshot.block.number,
        "block_hash": snapshot.block.hash,
        "last_sample_timestamp": _isoformat(snapshot.sampled_at),
        "last_block_update_timestamp": _isoformat(snapshot.last_block_update),
        "seconds_since_last_sample": round(sample_age, 3),
        "watched_addresses": len(state.addresses),
    }

    if sample_age > stale_threshold_seconds:
        return "stale", status.HTTP_503_SERVICE_UNAVAILABLE, details

    return "ok", status.HTTP_200_OK, details


def generate_readiness_report(
    state: PublishedState,
    *,
    now: float | None = None,
    stale_threshold_seconds: float = READINESS_STALE_THRESHOLD_SECONDS,
) -> Tuple[bool, Dict[str, Any]]:
    overall_status, _status_code, details = generate_health_report(
        state,
        now=now,
        stale_threshold_seconds=stale_threshold_seconds,
    )

    return overall_status == "ok", details


__all__ = [
    "READINESS_STALE_THRESHOLD_SECONDS",
    "generate_health_report",
    "generate_readiness_report",
]
