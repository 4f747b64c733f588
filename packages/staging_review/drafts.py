"""Per-item draft storage keyed by stable item id.

Drafts are looked up by the id of the item they were written for, never by
queue position, so removing or reordering items cannot attach an edit to the
wrong transaction. The store has no network or rendering side effects; only
:class:`staging_review.session.SessionController` mutates it.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .models import Draft


class DraftStore:
    def __init__(self) -> None:
        self._drafts: dict[str, Draft] = {}

    def get(self, item_id: str) -> Draft | None:
        return self._drafts.get(item_id)

    def set(self, item_id: str, **fields: str | None) -> Draft:
        """Merge ``fields`` into the draft for ``item_id``, creating it if needed.

        Callers only pass ids of items in the current queue; a missing
        ``account`` on a new draft starts out empty.
        """

        current = self._drafts.get(item_id) or Draft()
        updated = current.with_fields(**fields)
        self._drafts[item_id] = updated
        return updated

    def ensure(self, item_id: str, default_account: str = "") -> Draft:
        """Return the draft for ``item_id``, seeding it on first view."""

        draft = self._drafts.get(item_id)
        if draft is None:
            draft = Draft(account=default_account)
            self._drafts[item_id] = draft
        return draft

    def delete(self, item_id: str) -> None:
        self._drafts.pop(item_id, None)

    def retain(self, item_ids: Iterable[str]) -> list[str]:
        """Drop drafts whose id is not in ``item_ids``; return the dropped ids."""

        keep = set(item_ids)
        dropped = [k for k in self._drafts if k not in keep]
        for k in dropped:
            del self._drafts[k]
        return dropped

    def clear(self) -> None:
        self._drafts.clear()

    def ids(self) -> list[str]:
        return list(self._drafts)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._drafts

    def __len__(self) -> int:
        return len(self._drafts)

    def __iter__(self) -> Iterator[str]:
        return iter(self._drafts)


__all__ = ["DraftStore"]
