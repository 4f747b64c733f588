"""Account suggestion matching over colon-separated account paths.

A query such as ``"ex:fo:r"`` is split into parts; an account matches when
every part is a case-insensitive prefix of at least one of its segments
(``Expenses:Food:Restaurant``). Accounts whose segments can be matched in
query order rank ahead of the ones that only match out of order; each group is
sorted by plain string order.

The functions here are pure and have no knowledge of the session.
"""

from __future__ import annotations

from collections.abc import Sequence

SEPARATOR = ":"


def split_query(query: str) -> list[str]:
    """Return the lower-cased, non-empty parts of ``query``.

    Leading/trailing separators and whitespace-only parts are dropped rather
    than treated as wildcards.
    """

    parts = (p.strip().lower() for p in query.split(SEPARATOR))
    return [p for p in parts if p]


def matches_in_order(query_parts: Sequence[str], account_parts: Sequence[str]) -> bool:
    """Greedy left-to-right check that parts match segments in order.

    Each query part consumes account segments until one starts with it; the
    next part continues after that segment. Running out of segments means
    there is no in-order witness.
    """

    pos = 0
    for part in query_parts:
        while pos < len(account_parts) and not account_parts[pos].startswith(part):
            pos += 1
        if pos == len(account_parts):
            return False
        pos += 1
    return True


def _matches_any_order(query_parts: Sequence[str], account_parts: Sequence[str]) -> bool:
    return all(any(seg.startswith(part) for seg in account_parts) for part in query_parts)


def filter_accounts(query: str, catalog: Sequence[str]) -> list[str]:
    """Return catalog entries matching ``query``, best candidates first.

    An empty query (after dropping empty parts) returns the catalog unchanged,
    in catalog order.
    """

    parts = split_query(query)
    if not parts:
        return list(catalog)

    in_order: list[str] = []
    out_of_order: list[str] = []
    for account in catalog:
        segments = account.lower().split(SEPARATOR)
        if not _matches_any_order(parts, segments):
            continue
        if matches_in_order(parts, segments):
            in_order.append(account)
        else:
            out_of_order.append(account)
    return sorted(in_order) + sorted(out_of_order)


__all__ = ["SEPARATOR", "filter_accounts", "matches_in_order", "split_query"]
