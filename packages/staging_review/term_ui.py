"""Full-screen review surface (prompt_toolkit-based).

The screen is a thin adapter: it draws what the session controller, the field
editor and the renderer describe, and turns keys and mouse clicks into editor
and session intents. All review rules live in
:mod:`staging_review.session` and :mod:`staging_review.field_editor`.

Keys
----
No field focused:
    ``left``/``h`` previous, ``right``/``l`` next, ``enter`` commit,
    ``p``/``n``/``a`` focus payee/narration/account, ``q`` quit.
Field focused:
    printable keys type, ``backspace`` deletes, ``down``/``tab`` and
    ``up``/``s-tab`` move the highlight, ``enter`` confirms, ``escape`` cancels.
``c-c`` quits at any time.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

from prompt_toolkit.application import Application
from prompt_toolkit.data_structures import Point
from prompt_toolkit.filters import Condition
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import ConditionalContainer, HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension
from prompt_toolkit.mouse_events import MouseEvent, MouseEventType
from prompt_toolkit.styles import Style

from .config import ReviewSettings
from .field_editor import SHORTCUTS, FieldEditor
from .logging_setup import get_logger
from .models import FieldName
from .render import Fragment, render_item
from .runtime import ReviewRuntime
from .session import (
    PHASE_EMPTY,
    PHASE_ERROR,
    PHASE_LOADING,
    Commit,
    Intent,
    Next,
    Prev,
)

logger = get_logger("staging_review.term_ui")

HELP_TEXT = (
    "←/h prev • →/l next • Enter commit • p payee • n narration • a account • q quit"
)
EDIT_HELP_TEXT = "Type to edit • ↑/↓ Tab choose • Enter confirm • Esc cancel"
MAX_SUGGESTIONS = 8

REVIEW_STYLE = Style.from_dict(
    {
        "counter": "bold",
        "date": "fg:ansicyan",
        "amount": "fg:ansiyellow",
        "currency": "fg:ansiyellow",
        "tag": "fg:ansimagenta",
        "link": "fg:ansiblue",
        "editable": "underline",
        "editable.focused": "reverse",
        "editable.selected": "bg:ansiblue fg:ansiwhite",
        "cursor": "reverse",
        "suggestion": "",
        "suggestion.highlighted": "reverse",
        "message.error": "fg:ansired bold",
        "message.success": "fg:ansigreen",
        "message.info": "fg:ansibrightblack",
        "help": "fg:ansibrightblack",
    }
)


class ReviewScreen:
    """Interactive review of the staging queue."""

    def __init__(
        self,
        runtime: ReviewRuntime,
        settings: ReviewSettings,
        *,
        editor: FieldEditor | None = None,
        input: Any = None,
        output: Any = None,
    ) -> None:
        self.runtime = runtime
        self.controller = runtime.controller
        self.settings = settings
        self.editor = editor if editor is not None else FieldEditor()
        self._seen_item: str | None = None
        self._seen_catalog: tuple[str, ...] | None = None
        runtime.on_change = self._on_state_change

        self.key_bindings = self._build_key_bindings()
        self.app: Application[None] = Application(
            layout=self._build_layout(),
            key_bindings=self.key_bindings,
            style=REVIEW_STYLE,
            full_screen=True,
            mouse_support=True,
            input=input,
            output=output,
        )

    # ---- lifecycle ----------------------------------------------------------

    async def run_async(self) -> None:
        self.runtime.start()
        try:
            await self.app.run_async()
        finally:
            await self.runtime.stop()

    def _on_state_change(self) -> None:
        # Editor state is transient: drop it when the item under review changes,
        # and re-derive any open list against a reloaded catalog.
        item = self.controller.current_item
        item_id = item.id if item is not None else None
        if item_id != self._seen_item:
            self._seen_item = item_id
            self.editor.reset()
        catalog = self.controller.catalog
        if catalog is not self._seen_catalog:
            self._seen_catalog = catalog
            self.editor.refresh(catalog)
        self._invalidate()

    def _invalidate(self) -> None:
        if self.app.is_running:
            self.app.invalidate()

    def _apply(self, intents: Iterable[Intent]) -> None:
        for intent in intents:
            self.runtime.dispatch(intent)
        self._invalidate()

    # ---- editor helpers -----------------------------------------------------

    def _field_text(self, field: FieldName) -> str:
        item = self.controller.current_item
        if item is None:
            return ""
        draft = self.controller.current_draft
        edited = draft.value_of(field) if draft is not None else None
        if edited is not None:
            return edited
        return item.original_value(field) or ""

    def focus_field(self, field: FieldName) -> bool:
        item = self.controller.current_item
        if item is None or self.controller.phase == PHASE_ERROR or not item.has_field(field):
            return False
        logger.debug("editing %s of %s", field, item.id)
        self.editor.focus(field, self._field_text(field))
        self._invalidate()
        return True

    def blur(self) -> None:
        if self.editor.focused is None:
            return
        token = self.editor.blur()
        asyncio.get_running_loop().call_later(
            self.settings.blur_close_delay, self._expire_blur, token
        )
        self._invalidate()

    def _expire_blur(self, token: int) -> None:
        if self.editor.expire_blur(token):
            self._invalidate()

    # ---- key bindings -------------------------------------------------------

    def _build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()
        editor = self.editor
        browsing = Condition(lambda: editor.focused is None)
        editing = ~browsing

        @kb.add("left", filter=browsing)
        @kb.add("h", filter=browsing)
        def _prev(event) -> None:
            self._apply([Prev()])

        @kb.add("right", filter=browsing)
        @kb.add("l", filter=browsing)
        def _next(event) -> None:
            self._apply([Next()])

        @kb.add("enter", filter=browsing)
        def _commit(event) -> None:
            self._apply([Commit()])

        def _focus_handler(key: str):
            def handler(event) -> None:
                item = self.controller.current_item
                if item is None:
                    return
                field = editor.shortcut(key, available=item.has_field)
                if field is not None:
                    self.focus_field(field)

            return handler

        for key in SHORTCUTS:
            kb.add(key, filter=browsing)(_focus_handler(key))

        @kb.add("q", filter=browsing)
        @kb.add("c-c")
        def _quit(event) -> None:
            logger.info("review screen closed")
            event.app.exit()

        @kb.add(Keys.Any, filter=editing)
        def _type(event) -> None:
            data = event.data or ""
            if data and data.isprintable():
                self._apply(editor.type_text(data))

        @kb.add("backspace", filter=editing)
        def _backspace(event) -> None:
            self._apply(editor.backspace())

        @kb.add("down", filter=editing)
        @kb.add("tab", filter=editing)
        def _down(event) -> None:
            editor.next_suggestion()
            self._invalidate()

        @kb.add("up", filter=editing)
        @kb.add("s-tab", filter=editing)
        def _up(event) -> None:
            editor.prev_suggestion()
            self._invalidate()

        @kb.add("enter", filter=editing)
        def _confirm(event) -> None:
            self._apply(editor.confirm())

        @kb.add("escape", filter=editing, eager=True)
        def _cancel(event) -> None:
            self._apply(editor.cancel())

        return kb

    # ---- layout -------------------------------------------------------------

    def _build_layout(self) -> Layout:
        suggesting = Condition(lambda: self.editor.suggesting)
        # The cursor sits on the highlighted row so the list scrolls to it.
        self.suggestion_window = Window(
            FormattedTextControl(
                self._suggestion_fragments,
                get_cursor_position=self._suggestion_cursor,
            ),
            height=Dimension(max=MAX_SUGGESTIONS),
        )
        body = HSplit(
            [
                Window(FormattedTextControl(self._counter_fragments), height=1),
                Window(height=1, char=" "),
                Window(FormattedTextControl(self._item_fragments), wrap_lines=True),
                ConditionalContainer(self.suggestion_window, filter=suggesting),
                Window(FormattedTextControl(self._message_fragments), height=1),
                Window(FormattedTextControl(self._help_fragments), height=1),
            ]
        )
        return Layout(body)

    def _counter_fragments(self) -> StyleAndTextTuples:
        text = self.controller.counter_text
        if self.controller.pending_commit is not None:
            text += "  (committing...)"
        return [("class:counter", text)]

    def _item_fragments(self) -> StyleAndTextTuples:
        phase = self.controller.phase
        if phase == PHASE_LOADING:
            return [("", "Loading transactions...")]
        item = self.controller.current_item
        if phase == PHASE_EMPTY or item is None:
            return []
        editor = self.editor
        fragments = render_item(
            item,
            self.controller.current_draft,
            focused=editor.focused,
            buffer=editor.text if editor.focused else None,
            selected=editor.text_selected,
        )
        return [self._with_pointer(f) for f in fragments]

    def _with_pointer(self, fragment: Fragment) -> tuple[Any, ...]:
        field = fragment.field

        def handler(mouse_event: MouseEvent) -> object:
            if mouse_event.event_type != MouseEventType.MOUSE_UP:
                return NotImplemented
            if field is None:
                self.blur()
            elif self.editor.focused != field:
                self.focus_field(field)
            return None

        return (fragment.style, fragment.text, handler)

    def _suggestion_fragments(self) -> StyleAndTextTuples:
        view = self.editor.suggestions()
        if view is None:
            return []
        out: StyleAndTextTuples = []
        for i, value in enumerate(view.candidates):
            style = "class:suggestion"
            if i == view.highlighted:
                style += " class:suggestion.highlighted"
            out.append((style, f"  {value}\n", self._suggestion_handler(i, value)))
        return out

    def _suggestion_cursor(self) -> Point | None:
        view = self.editor.suggestions()
        if view is None:
            return None
        return Point(x=0, y=view.highlighted or 0)

    def _suggestion_handler(self, index: int, value: str):
        def handler(mouse_event: MouseEvent) -> object:
            if mouse_event.event_type == MouseEventType.MOUSE_MOVE:
                if self.editor.highlighted != index:
                    self.editor.highlight(index)
                    self._invalidate()
                return None
            if mouse_event.event_type != MouseEventType.MOUSE_UP:
                return NotImplemented
            self._apply(self.editor.pointer_select(value))
            return None

        return handler

    def _message_fragments(self) -> StyleAndTextTuples:
        message = self.controller.message
        if message is None:
            return []
        return [(f"class:message.{message.kind}", message.text)]

    def _help_fragments(self) -> StyleAndTextTuples:
        text = EDIT_HELP_TEXT if self.editor.focused else HELP_TEXT
        return [("class:help", text)]


__all__ = ["HELP_TEXT", "REVIEW_STYLE", "ReviewScreen"]
