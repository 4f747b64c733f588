# ruff: noqa: E402, I001
import sys
from pathlib import Path

import httpx
import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from staging_review.sync import SyncChannel

URL = "http://staging.test/api/file-changes"


async def _no_sleep(delay: float) -> None:
    return None


def _sse(body: str) -> httpx.Response:
    return httpx.Response(
        200, headers={"content-type": "text/event-stream"}, content=body.encode()
    )


@pytest.mark.asyncio
async def test_each_event_triggers_a_change():
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["accept"] == "text/event-stream"
        return _sse(": keep-alive\n\ndata: reload\n\nevent: change\ndata: reload\n\n")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        def on_change() -> None:
            calls.append(1)
            if len(calls) == 2:
                channel.stop()

        channel = SyncChannel(http, URL, on_change, sleep=_no_sleep)
        await channel.run()

    assert len(calls) == 2
    assert channel.connections == 1


@pytest.mark.asyncio
async def test_comments_and_empty_events_do_not_trigger():
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return _sse(": ping\n\n\n: ping\n\n")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        async def stop_after_first(delay: float) -> None:
            channel.stop()

        channel = SyncChannel(http, URL, lambda: calls.append(1), sleep=stop_after_first)
        await channel.run()

    assert calls == []


@pytest.mark.asyncio
async def test_reconnects_after_failure_and_signals_once():
    attempts: list[int] = []
    calls: list[str] = []
    delays: list[float] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) == 1:
            return _sse("retry: 1500\n\n")
        if len(attempts) == 2:
            raise httpx.ConnectError("down", request=request)
        return _sse("")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        async def record(delay: float) -> None:
            delays.append(delay)
            if len(attempts) >= 3:
                channel.stop()

        channel = SyncChannel(
            http, URL, lambda: calls.append("change"), reconnect_delay=3.0, sleep=record
        )
        await channel.run()

    # First stream sets retry, second attempt fails, third reconnects.
    assert delays == [1.5, 1.5, 1.5]
    assert channel.connections == 2
    assert calls == ["change"]


@pytest.mark.asyncio
async def test_http_error_status_is_retried():
    statuses = iter([503, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        if status != 200:
            return httpx.Response(status)
        return _sse("data: x\n\n")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        channel = SyncChannel(http, URL, lambda: channel.stop(), sleep=_no_sleep)
        await channel.run()

    assert channel.connections == 1
