# ruff: noqa: E402, I001
import asyncio
import json
import sys
from pathlib import Path

import httpx
import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from staging_review.client import StagingClient
from staging_review.config import ReviewSettings
from staging_review.runtime import ReviewRuntime
from staging_review.session import (
    PHASE_ERROR,
    PHASE_REVIEWING,
    Commit,
    FieldInput,
    Message,
    Next,
    SessionController,
)


def _tx(item_id: str, payee: str) -> dict:
    return {
        "id": item_id,
        "transaction": {
            "date": "2025-01-05",
            "flag": "!",
            "payee": payee,
            "narration": "",
            "tags": [],
            "links": [],
            "postings": [
                {
                    "account": "Assets:Bank:Checking",
                    "amount": {"value": "-1.00", "currency": "EUR"},
                    "cost": None,
                    "price": None,
                }
            ],
        },
    }


class FakeStagingServer:
    """In-memory stand-in for the staging server's HTTP API."""

    def __init__(self, items: list[dict], accounts: list[str]) -> None:
        self.items = items
        self.accounts = accounts
        self.commits: list[tuple[str, dict]] = []
        self.init_status = 200
        self.commit_error: str | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api/")
        if path == "init":
            if self.init_status != 200:
                return httpx.Response(self.init_status)
            return httpx.Response(
                200,
                json={
                    "items": self.items,
                    "current_index": 0,
                    "available_accounts": self.accounts,
                },
            )
        if path == "file-changes":
            return httpx.Response(200, content=b": connected\n\n")
        rest = path.removeprefix("transaction/")
        if rest.endswith("/commit"):
            item_id = rest.removesuffix("/commit")
            if self.commit_error is not None:
                return httpx.Response(500, json={"error": self.commit_error})
            self.commits.append((item_id, json.loads(request.content)))
            self.items = [it for it in self.items if it["id"] != item_id]
            return httpx.Response(200, json={"ok": True, "remaining_count": len(self.items)})
        for it in self.items:
            if it["id"] == rest:
                return httpx.Response(200, json={"transaction": it})
        return httpx.Response(404, json={"error": "Transaction not found"})


@pytest.fixture
def server() -> FakeStagingServer:
    return FakeStagingServer(
        [_tx("a", "Cafe"), _tx("b", "Bakery"), _tx("c", "Cinema")],
        ["Expenses:Food:Coffee", "Expenses:Fun"],
    )


def _runtime(server: FakeStagingServer, *, live: bool = False) -> ReviewRuntime:
    settings = ReviewSettings(base_url="http://staging.test/api", reconnect_delay=60)
    http = httpx.AsyncClient(transport=httpx.MockTransport(server))
    return ReviewRuntime(SessionController(), StagingClient(settings, http=http), live=live)


@pytest.mark.asyncio
async def test_start_loads_queue_and_reports_changes(server):
    changes: list[str] = []
    runtime = _runtime(server)
    runtime.on_change = lambda: changes.append(runtime.controller.phase)

    runtime.start()
    await runtime.drain()

    assert runtime.controller.phase == PHASE_REVIEWING
    assert [it.id for it in runtime.controller.items] == ["a", "b", "c"]
    assert runtime.controller.catalog == ("Expenses:Food:Coffee", "Expenses:Fun")
    assert changes[-1] == PHASE_REVIEWING
    await runtime.stop()


@pytest.mark.asyncio
async def test_commit_round_trip(server):
    runtime = _runtime(server)
    runtime.start()
    await runtime.drain()

    runtime.dispatch(FieldInput("account", "Expenses:Food:Coffee"))
    runtime.dispatch(FieldInput("payee", "Corner Cafe"))
    runtime.dispatch(Commit())
    await runtime.drain()

    assert server.commits == [
        ("a", {"expense_account": "Expenses:Food:Coffee", "payee": "Corner Cafe"})
    ]
    ctrl = runtime.controller
    assert [it.id for it in ctrl.items] == ["b", "c"]
    assert ctrl.current_item.id == "b"
    assert ctrl.message == Message("success", "Committed. 2 remaining.")
    await runtime.stop()


@pytest.mark.asyncio
async def test_commit_failure_surfaces_server_text(server):
    server.commit_error = "Failed to commit: file is read-only"
    runtime = _runtime(server)
    runtime.start()
    await runtime.drain()

    runtime.dispatch(Commit())
    await runtime.drain()

    ctrl = runtime.controller
    assert ctrl.message == Message("error", "Failed to commit: file is read-only")
    assert len(ctrl.items) == 3
    await runtime.stop()


@pytest.mark.asyncio
async def test_navigation_refreshes_item_from_server(server):
    runtime = _runtime(server)
    runtime.start()
    await runtime.drain()

    server.items[1] = _tx("b", "Bakery (updated)")
    runtime.dispatch(Next())
    await runtime.drain()

    assert runtime.controller.current_item.payee == "Bakery (updated)"
    await runtime.stop()


@pytest.mark.asyncio
async def test_reload_failure_keeps_view(server):
    runtime = _runtime(server)
    runtime.start()
    await runtime.drain()

    server.init_status = 503
    runtime.reload()
    await runtime.drain()

    ctrl = runtime.controller
    assert ctrl.phase == PHASE_ERROR
    assert ctrl.message == Message(
        "error", "Failed to reload data: Failed to initialize: 503 Service Unavailable"
    )
    assert ctrl.current_item.id == "a"
    await runtime.stop()


@pytest.mark.asyncio
async def test_live_runtime_listens_and_stops_cleanly(server):
    runtime = _runtime(server, live=True)
    assert runtime.sync is not None
    assert runtime.sync.url == "http://staging.test/api/file-changes"

    runtime.start()
    await runtime.drain()
    await asyncio.sleep(0)
    await runtime.stop()

    assert runtime._sync_task is None
    assert not runtime._tasks
    assert runtime.sync.stopped
