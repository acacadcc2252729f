"""Guarded handoff of sampled node state from the sampler to readers."""

from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Mapping

from .models import PublishedState, Snapshot, WatchedAddress


class SnapshotStore:
    """Single-writer, many-reader holder of the latest ``PublishedState``.

    The sampler is the only writer. Each publication builds a new immutable
    ``PublishedState`` and swaps the reference under a lock, so a reader
    always gets a block, its aggregates and the watched addresses from the
    same cycle.
    """

    def __init__(self, watch_addresses: tuple[str, ...] = ()) -> None:
        self._lock = threading.Lock()
        self._state = PublishedState.empty(watch_addresses)
        self._publish_count = 0

    def publish(
        self,
        snapshot: Snapshot,
        addresses: Mapping[str, WatchedAddress],
    ) -> PublishedState:
        state = PublishedState(
            snapshot=snapshot,
            addresses=MappingProxyType(dict(addresses)),
        )

        with self._lock:
            self._state = state
            self._publish_count += 1

        return state

    def current(self) -> PublishedState:
        with self._lock:
            return self._state

    @property
    def snapshot(self) -> Snapshot | None:
        return self.current().snapshot

    @property
    def publish_count(self) -> int:
        with self._lock:
            return self._publish_count


__all__ = ["SnapshotStore"]
