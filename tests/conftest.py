"""Pytest configuration for test isolation.

Settings resolve from ``STAGING_REVIEW_*`` environment variables, so a
developer's shell (or a ``.env`` already loaded into it) could change defaults
under test. An autouse fixture clears them for every test.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
# Ensure `packages/` precedes the repo root on sys.path so local packages resolve first.
sys.path[:0] = [p for p in [str(_PKG_DIR), str(_ROOT)] if p not in sys.path]

from staging_review.config import ENV_VARS  # noqa: E402
from staging_review.models import Item  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for env in [*ENV_VARS.values(), "STAGING_REVIEW_LOG_LEVEL", "STAGING_REVIEW_LOG_FILE"]:
        monkeypatch.delenv(env, raising=False)


def make_item(item_id: str, **overrides) -> Item:
    """Build a small two-posting item; ``overrides`` replace top-level fields."""

    data = {
        "id": item_id,
        "date": "2025-01-05",
        "flag": "!",
        "payee": f"Payee {item_id}",
        "narration": f"Narration {item_id}",
        "postings": [
            {"account": "Assets:Bank:Checking", "amount": {"value": "-4.50", "currency": "EUR"}},
        ],
    }
    data.update(overrides)
    return Item.model_validate(data)


@pytest.fixture
def items() -> tuple[Item, ...]:
    return tuple(make_item(i) for i in ("a", "b", "c"))


@pytest.fixture
def catalog() -> tuple[str, ...]:
    return (
        "Assets:Bank:Checking",
        "Expenses:Food:Coffee",
        "Expenses:Food:Groceries",
        "Expenses:Food:Restaurant",
        "Expenses:Travel:Flights",
        "Income:Salary",
    )
