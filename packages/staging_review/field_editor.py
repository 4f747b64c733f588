"""Focus, editing and suggestion protocol for the editable fields.

The editor tracks which field (if any) holds interactive focus, the text being
typed into it, and for the account field the open suggestion list. It turns
key and pointer intents into session intents (:class:`FieldInput`,
:class:`SelectSuggestion`) that the caller forwards to the
:class:`~staging_review.session.SessionController`. It draws nothing.

Rules
-----
- Single-letter shortcuts (``p``/``n``/``a``) focus a field only while no field
  is focused; once a field has focus every key is literal input.
- Focusing a field selects its whole text, so typing replaces it.
- Every change to the account text recomputes the candidate list; an empty
  result closes the list, otherwise it opens with nothing highlighted.
- Losing focus does not close the list immediately: the surface waits a short
  delay and calls :meth:`FieldEditor.expire_blur`, so a click on a candidate
  that races with the blur still registers.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeAlias

from .matcher import filter_accounts
from .models import FieldName
from .session import FieldInput, Intent, SelectSuggestion

SHORTCUTS: dict[str, FieldName] = {
    "p": "payee",
    "n": "narration",
    "a": "account",
}
FIELD_KEYS: dict[FieldName, str] = {field: key for key, field in SHORTCUTS.items()}

Matcher: TypeAlias = Callable[[str, Sequence[str]], list[str]]


@dataclass(frozen=True, slots=True)
class SuggestionView:
    """What the surface needs to draw the suggestion list."""

    candidates: tuple[str, ...]
    highlighted: int | None


class FieldEditor:
    def __init__(
        self,
        catalog: Sequence[str] = (),
        *,
        matcher: Matcher = filter_accounts,
    ) -> None:
        self._catalog: tuple[str, ...] = tuple(catalog)
        self._matcher = matcher
        self._focused: FieldName | None = None
        self._text = ""
        self._select_all = False
        self._candidates: tuple[str, ...] = ()
        self._highlighted: int | None = None
        self._blur_token = 0
        self._closing = False

    # ---- state --------------------------------------------------------------

    @property
    def focused(self) -> FieldName | None:
        return self._focused

    @property
    def text(self) -> str:
        return self._text

    @property
    def text_selected(self) -> bool:
        return self._select_all

    @property
    def suggesting(self) -> bool:
        return bool(self._candidates)

    @property
    def highlighted(self) -> int | None:
        return self._highlighted

    @property
    def candidates(self) -> tuple[str, ...]:
        return self._candidates

    def suggestions(self) -> SuggestionView | None:
        if not self._candidates:
            return None
        return SuggestionView(self._candidates, self._highlighted)

    # ---- focus --------------------------------------------------------------

    def shortcut(
        self, key: str, *, available: Callable[[FieldName], bool] | None = None
    ) -> FieldName | None:
        """Resolve a global shortcut key to a field to focus.

        Returns ``None`` (key not consumed) while a field already has focus,
        for unmapped keys, or when ``available`` says the current item lacks
        the field.
        """

        if self._focused is not None:
            return None
        field = SHORTCUTS.get(key)
        if field is None:
            return None
        if available is not None and not available(field):
            return None
        return field

    def focus(self, field: FieldName, text: str) -> None:
        self._focused = field
        self._text = text
        self._select_all = True
        self._closing = False
        self._blur_token += 1
        if field == "account":
            self._recompute()
        else:
            self._close()

    # ---- editing ------------------------------------------------------------

    def type_text(self, data: str) -> list[Intent]:
        if self._focused is None or not data:
            return []
        new_text = data if self._select_all else self._text + data
        return self.set_text(new_text)

    def backspace(self) -> list[Intent]:
        if self._focused is None:
            return []
        new_text = "" if self._select_all else self._text[:-1]
        return self.set_text(new_text)

    def set_text(self, text: str) -> list[Intent]:
        if self._focused is None:
            return []
        self._text = text
        self._select_all = False
        if self._focused == "account":
            self._recompute()
        return [FieldInput(self._focused, text)]

    # ---- suggestion list ----------------------------------------------------

    def next_suggestion(self) -> None:
        if not self._candidates:
            return
        if self._highlighted is None:
            self._highlighted = 0
        else:
            self._highlighted = (self._highlighted + 1) % len(self._candidates)

    def prev_suggestion(self) -> None:
        if not self._candidates:
            return
        if self._highlighted is None or self._highlighted == 0:
            self._highlighted = len(self._candidates) - 1
        else:
            self._highlighted -= 1

    def highlight(self, index: int) -> None:
        """Pointer hover over a candidate."""

        if 0 <= index < len(self._candidates):
            self._highlighted = index

    def pointer_select(self, value: str) -> list[Intent]:
        """Pointer click on a candidate; valid while focused or closing."""

        if value not in self._candidates:
            return []
        return self._choose(value)

    # ---- leaving the field --------------------------------------------------

    def confirm(self) -> list[Intent]:
        if self._focused is None:
            return []
        if self._candidates:
            idx = self._highlighted if self._highlighted is not None else 0
            return self._choose(self._candidates[idx])
        return self._release()

    def cancel(self) -> list[Intent]:
        if self._focused is None:
            return []
        self._close()
        return self._release()

    def blur(self) -> int:
        """Release focus, keeping the list open until ``expire_blur``.

        Returns the token to pass to :meth:`expire_blur` once the close delay
        has elapsed.
        """

        self._focused = None
        self._select_all = False
        self._closing = bool(self._candidates)
        self._blur_token += 1
        return self._blur_token

    def expire_blur(self, token: int) -> bool:
        """Close the list left open by :meth:`blur`; stale tokens are ignored."""

        if token != self._blur_token or not self._closing:
            return False
        self._closing = False
        self._close()
        return True

    def reset(self) -> None:
        """Drop all transient state (new item under review or queue reload)."""

        self._focused = None
        self._text = ""
        self._select_all = False
        self._closing = False
        self._blur_token += 1
        self._close()

    def refresh(self, catalog: Sequence[str]) -> None:
        """Swap in a reloaded catalog and re-derive an open list against it."""

        self._catalog = tuple(catalog)
        if self._focused == "account":
            self._recompute()
        else:
            self._close()

    # ---- internals ----------------------------------------------------------

    def _recompute(self) -> None:
        self._candidates = tuple(self._matcher(self._text, self._catalog))
        self._highlighted = None

    def _close(self) -> None:
        self._candidates = ()
        self._highlighted = None

    def _choose(self, value: str) -> list[Intent]:
        self._text = value
        self._close()
        self._closing = False
        self._focused = None
        self._select_all = False
        self._blur_token += 1
        return [SelectSuggestion(value)]

    def _release(self) -> list[Intent]:
        field = self._focused
        assert field is not None
        text = self._text
        self._focused = None
        self._select_all = False
        self._blur_token += 1
        return [FieldInput(field, text)]


__all__ = ["FIELD_KEYS", "SHORTCUTS", "FieldEditor", "SuggestionView"]
