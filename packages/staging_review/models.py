"""Data models for the review client.

Items arrive from the staging server as JSON and are validated with pydantic;
they are frozen once parsed. The only mutable review state is the operator's
:class:`Draft` per item, held by :class:`staging_review.drafts.DraftStore`.

Wire shapes
-----------
The server may send an item flat (``{"id", "date", "flag", ...}``) or nested
the way the ledger side names it (``{"id", "transaction": {...}}``). Both are
accepted and normalized to the flat :class:`Item`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Fields an operator can edit on an item under review.
FieldName: TypeAlias = Literal["account", "payee", "narration"]
EDITABLE_FIELDS: tuple[FieldName, ...] = ("payee", "narration", "account")


# ---------------------------------------------------------------------------
# Ledger items (immutable once fetched)
# ---------------------------------------------------------------------------


class Amount(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    currency: str

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        # Keep the server's printed precision; numbers are accepted too.
        if isinstance(v, int | float):
            return str(v)
        return v


class Posting(BaseModel):
    model_config = ConfigDict(frozen=True)

    account: str
    amount: Amount | None = None
    cost: str | None = None
    price: str | None = None


class Item(BaseModel):
    """One pending transaction awaiting categorization."""

    model_config = ConfigDict(frozen=True)

    id: str
    date: str
    flag: str = "*"
    payee: str | None = None
    narration: str | None = None
    tags: tuple[str, ...] = ()
    links: tuple[str, ...] = ()
    postings: tuple[Posting, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _flatten_directive(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and isinstance(data.get("transaction"), Mapping):
            flat = dict(data["transaction"])
            flat["id"] = data.get("id", flat.get("id"))
            return flat
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def original_value(self, field: FieldName) -> str | None:
        """Return the item's own value for an editable text field."""

        if field == "payee":
            return self.payee
        if field == "narration":
            return self.narration
        return None

    def has_field(self, field: FieldName) -> bool:
        # The account line is always present; payee/narration only when set.
        return field == "account" or self.original_value(field) is not None


# ---------------------------------------------------------------------------
# Draft (operator edits, keyed by item id)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Draft:
    """In-progress, uncommitted edit for one item.

    ``payee``/``narration`` are ``None`` until the operator edits them; the
    item's own values apply in that case.
    """

    account: str = ""
    payee: str | None = None
    narration: str | None = None

    def with_fields(self, **fields: str | None) -> Draft:
        return replace(self, **fields)

    def value_of(self, field: FieldName) -> str | None:
        if field == "account":
            return self.account
        if field == "payee":
            return self.payee
        return self.narration

    @property
    def committable(self) -> bool:
        return bool(self.account.strip())


# ---------------------------------------------------------------------------
# HTTP payloads
# ---------------------------------------------------------------------------


class InitResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: tuple[Item, ...] = ()
    current_index: int = 0
    available_accounts: tuple[str, ...] = ()


class TransactionResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    transaction: Item


class CommitRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    expense_account: str = Field(min_length=1)
    payee: str | None = None
    narration: str | None = None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CommitResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    remaining_count: int = Field(ge=0)


class ErrorResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    error: str | None = None


__all__ = [
    "EDITABLE_FIELDS",
    "Amount",
    "CommitRequest",
    "CommitResponse",
    "Draft",
    "ErrorResponse",
    "FieldName",
    "InitResponse",
    "Item",
    "Posting",
    "TransactionResponse",
]
