"""Declarative rendering of an item and its draft.

:func:`render_item` is a pure function from ``(Item, Draft, editor view)`` to a
list of styled fragments. The terminal surface converts fragments into
prompt_toolkit formatted text and wires editable regions to the field editor;
``show`` joins them into plain text. Nothing here touches a display.

Layout (beancount style)::

    2025-01-05 ! "Coffee Corner" "Latte"
        #travel
        ^receipt-42
        Assets:Bank:Checking  -4.50 EUR
        Expenses:Food:Coffee
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import NamedTuple

from .models import Draft, FieldName, Item, Posting

INDENT = "    "


class Fragment(NamedTuple):
    style: str
    text: str
    field: FieldName | None = None


def _editable(
    field: FieldName,
    text: str,
    *,
    focused: FieldName | None,
    buffer: str | None,
    selected: bool,
) -> list[Fragment]:
    if field != focused:
        return [Fragment("class:editable", text, field)]
    style = "class:editable.focused"
    if selected:
        style += " class:editable.selected"
    # Trailing cursor cell keeps an empty focused field visible.
    return [
        Fragment(style, buffer if buffer is not None else text, field),
        Fragment("class:cursor", " ", field),
    ]


def _posting_fragments(posting: Posting) -> list[Fragment]:
    out = [Fragment("", INDENT + posting.account)]
    if posting.amount is not None:
        out += [
            Fragment("", "  "),
            Fragment("class:amount", posting.amount.value),
            Fragment("", " "),
            Fragment("class:currency", posting.amount.currency),
        ]
    if posting.cost:
        out.append(Fragment("", " " + posting.cost))
    if posting.price:
        out.append(Fragment("", " @ " + posting.price))
    out.append(Fragment("", "\n"))
    return out


def render_item(
    item: Item,
    draft: Draft | None = None,
    *,
    focused: FieldName | None = None,
    buffer: str | None = None,
    selected: bool = False,
) -> list[Fragment]:
    """Describe ``item`` with ``draft`` applied as styled fragments.

    ``focused``/``buffer`` describe the field currently being edited (its
    live text may be ahead of the draft); ``selected`` marks its text as fully
    selected.
    """

    draft = draft or Draft()

    def edit(field: FieldName, text: str) -> list[Fragment]:
        return _editable(field, text, focused=focused, buffer=buffer, selected=selected)

    out: list[Fragment] = [
        Fragment("class:date", item.date),
        Fragment("", f" {item.flag}"),
    ]
    for field in ("payee", "narration"):
        original = item.original_value(field)
        if original is None:
            continue
        override = draft.value_of(field)
        out += [
            Fragment("", ' "'),
            *edit(field, override if override is not None else original),
            Fragment("", '"'),
        ]
    out.append(Fragment("", "\n"))

    if item.tags:
        out.append(Fragment("class:tag", INDENT + " ".join("#" + t for t in item.tags) + "\n"))
    if item.links:
        out.append(Fragment("class:link", INDENT + " ".join("^" + lk for lk in item.links) + "\n"))

    for posting in item.postings:
        out += _posting_fragments(posting)

    out += [
        Fragment("", INDENT),
        *edit("account", draft.account),
        Fragment("", "\n"),
    ]
    return out


def to_plain_text(fragments: Iterable[Fragment]) -> str:
    return "".join(f.text for f in fragments)


def to_formatted_text(fragments: Iterable[Fragment]) -> list[tuple[str, str]]:
    """Drop field markers, keeping ``(style, text)`` pairs for prompt_toolkit."""

    return [(f.style, f.text) for f in fragments]


__all__ = ["INDENT", "Fragment", "render_item", "to_formatted_text", "to_plain_text"]
