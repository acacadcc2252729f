from __future__ import annotations

import asyncio
import importlib
import logging
from typing import Any

import pytest

control_module = importlib.import_module("geth_exporter.poller.control")


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_poll_node_failure_backoff_and_logging(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    sleep_calls: list[float] = []
    call_count = 0

    async def _sample(*args: Any, **kwargs: Any) -> bool:
        nonlocal call_count

        call_count += 1

        if call_count >= 3:
            raise asyncio.CancelledError

        return False

    async def _sleep(duration: float) -> None:
        sleep_calls.append(duration)

    monkeypatch.setattr(control_module, "sample_node", _sample)
    monkeypatch.setattr(control_module.asyncio, "sleep", _sleep)

    caplog.set_level(logging.DEBUG)

    with pytest.raises(asyncio.CancelledError):
        await control_module.poll_node(object(), interval_seconds=1, max_backoff_seconds=30)

    assert sleep_calls == pytest.approx([1, 2], rel=0.05)

    messages = caplog.messages

    assert any("Polling node every 1 seconds." in message for message in messages)
    assert any("Backing off 1.00 seconds before next poll" in message for message in messages)
    assert any("Backing off 2.00 seconds before next poll" in message for message in messages)
    assert any("Polling task cancelled." in message for message in messages)


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_poll_node_success_resets_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    sleep_calls: list[float] = []
    outcomes = iter([False, False, True, False])

    async def _sample(*args: Any, **kwargs: Any) -> bool:
        try:
            return next(outcomes)
        except StopIteration:
            raise asyncio.CancelledError

    async def _sleep(duration: float) -> None:
        sleep_calls.append(duration)

    monkeypatch.setattr(control_module, "sample_node", _sample)
    monkeypatch.setattr(control_module.asyncio, "sleep", _sleep)

    with pytest.raises(asyncio.CancelledError):
        await control_module.poll_node(object(), interval_seconds=1, max_backoff_seconds=30)

    assert sleep_calls == pytest.approx([1, 2, 1, 1], rel=0.05)


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_poll_node_survives_unexpected_errors(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    call_count = 0

    async def _sample(*args: Any, **kwargs: Any) -> bool:
        nonlocal call_count

        call_count += 1

        if call_count == 1:
            raise RuntimeError("boom")

        raise asyncio.CancelledError

    async def _sleep(duration: float) -> None:
        return None

    monkeypatch.setattr(control_module, "sample_node", _sample)
    monkeypatch.setattr(control_module.asyncio, "sleep", _sleep)

    with pytest.raises(asyncio.CancelledError):
        await control_module.poll_node(object(), interval_seconds=1)

    assert call_count == 2
    assert any("Unexpected error while sampling node." in message for message in caplog.messages)


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_poll_node_logs_cancellation(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    async def _sample(*args: Any, **kwargs: Any) -> bool:
        raise asyncio.CancelledError

    monkeypatch.setattr(control_module, "sample_node", _sample)

    caplog.set_level(logging.DEBUG)

    with pytest.raises(asyncio.CancelledError):
        await control_module.poll_node(object(), interval_seconds=1)

    assert any("Polling task cancelled." in message for message in caplog.messages)


@pytest.mark.anyio
@pytest.mark.parametrize("anyio_backend", ["asyncio"], indirect=True)
async def test_sample_node_runs_cycle_in_worker_thread() -> None:
    import threading

    main_thread = threading.get_ident()
    seen: list[int] = []

    class _Sampler:
        def sample_once(self) -> bool:
            seen.append(threading.get_ident())
            return True

    assert await control_module.sample_node(_Sampler()) is True
    assert seen and seen[0] != main_thread
