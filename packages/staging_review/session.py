"""Review session state machine.

:class:`SessionController` is the state machine of record for a review
session. It consumes a closed set of intents (user actions, the reload signal,
and completions of network requests) and returns the effects the caller must
perform; it never performs I/O itself. :class:`staging_review.runtime.ReviewRuntime`
executes the effects and feeds completions back in.

Phases
------
``loading``
    Nothing loaded yet; a queue request is outstanding.
``reviewing``
    The queue is non-empty and ``index`` points at the item under review.
``empty``
    The server reported no pending items.
``error``
    The latest queue load failed. The previous queue stays visible but
    navigation, editing and commit are disabled until a reload succeeds.

Stale responses
---------------
Each request is tagged with a generation number per target (the queue, one
item, one commit). A completion whose generation is not the latest issued for
its target is dropped, so a slow response can never overwrite a newer one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias

from .config import DEFAULT_ACCOUNT_PREFIX
from .drafts import DraftStore
from .logging_setup import get_logger
from .models import EDITABLE_FIELDS, Draft, FieldName, Item

logger = get_logger("staging_review.session")

Phase: TypeAlias = Literal["loading", "reviewing", "empty", "error"]
PHASE_LOADING: Phase = "loading"
PHASE_REVIEWING: Phase = "reviewing"
PHASE_EMPTY: Phase = "empty"
PHASE_ERROR: Phase = "error"

MessageKind: TypeAlias = Literal["error", "success", "info"]

EMPTY_ACCOUNT_MESSAGE = "Please enter an expense account"
ALL_DONE_MESSAGE = "All transactions committed!"
NOTHING_TO_REVIEW_MESSAGE = "No transactions to review!"


@dataclass(frozen=True, slots=True)
class Message:
    kind: MessageKind
    text: str


# ----------------------------------------------------------------------------
# Intents
# ----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Prev:
    pass


@dataclass(frozen=True, slots=True)
class Next:
    pass


@dataclass(frozen=True, slots=True)
class Commit:
    pass


@dataclass(frozen=True, slots=True)
class FieldInput:
    field: FieldName
    value: str


@dataclass(frozen=True, slots=True)
class SelectSuggestion:
    value: str


@dataclass(frozen=True, slots=True)
class ReloadSignal:
    pass


@dataclass(frozen=True, slots=True)
class Loaded:
    generation: int
    items: tuple[Item, ...]
    catalog: tuple[str, ...]
    current_index: int = 0


@dataclass(frozen=True, slots=True)
class LoadFailed:
    generation: int
    message: str


@dataclass(frozen=True, slots=True)
class ItemFetched:
    generation: int
    item: Item


@dataclass(frozen=True, slots=True)
class ItemFetchFailed:
    generation: int
    item_id: str
    message: str


@dataclass(frozen=True, slots=True)
class Committed:
    generation: int
    item_id: str
    remaining_count: int


@dataclass(frozen=True, slots=True)
class CommitFailed:
    generation: int
    item_id: str
    message: str


Intent: TypeAlias = (
    Prev
    | Next
    | Commit
    | FieldInput
    | SelectSuggestion
    | ReloadSignal
    | Loaded
    | LoadFailed
    | ItemFetched
    | ItemFetchFailed
    | Committed
    | CommitFailed
)


# ----------------------------------------------------------------------------
# Effects
# ----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FetchQueue:
    generation: int


@dataclass(frozen=True, slots=True)
class FetchItem:
    item_id: str
    generation: int


@dataclass(frozen=True, slots=True)
class SubmitCommit:
    item_id: str
    expense_account: str
    generation: int
    payee: str | None = None
    narration: str | None = None


Effect: TypeAlias = FetchQueue | FetchItem | SubmitCommit

QUEUE_TARGET = "queue"


def item_target(item_id: str) -> str:
    return f"item:{item_id}"


def commit_target(item_id: str) -> str:
    return f"commit:{item_id}"


class _Generations:
    """Monotonic request counters per logical target."""

    def __init__(self) -> None:
        self._latest: dict[str, int] = {}
        self._counter = 0

    def issue(self, target: str) -> int:
        self._counter += 1
        self._latest[target] = self._counter
        return self._counter

    def is_latest(self, target: str, generation: int) -> bool:
        return self._latest.get(target) == generation


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


# ----------------------------------------------------------------------------
# Controller
# ----------------------------------------------------------------------------


class SessionController:
    """Reducer for queue navigation, draft edits and commits.

    ``dispatch(intent)`` applies one intent atomically and returns the effects
    to perform. Convenience wrappers (``load``, ``next``, ``commit``...) exist
    for callers that prefer method calls.
    """

    def __init__(
        self,
        *,
        drafts: DraftStore | None = None,
        default_account: str = DEFAULT_ACCOUNT_PREFIX,
    ) -> None:
        self.drafts = drafts if drafts is not None else DraftStore()
        self._default_account = default_account
        self._phase: Phase = PHASE_LOADING
        self._items: tuple[Item, ...] = ()
        self._index = 0
        self._catalog: tuple[str, ...] = ()
        self._message: Message | None = None
        self._loaded_once = False
        self._pending_commit: str | None = None
        self._generations = _Generations()

    # ---- read-only view -----------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def items(self) -> tuple[Item, ...]:
        return self._items

    @property
    def index(self) -> int:
        return self._index

    @property
    def catalog(self) -> tuple[str, ...]:
        return self._catalog

    @property
    def message(self) -> Message | None:
        return self._message

    @property
    def pending_commit(self) -> str | None:
        return self._pending_commit

    @property
    def current_item(self) -> Item | None:
        if not self._items or self._phase in (PHASE_LOADING, PHASE_EMPTY):
            return None
        return self._items[self._index]

    @property
    def current_draft(self) -> Draft | None:
        item = self.current_item
        return self.drafts.get(item.id) if item is not None else None

    @property
    def can_navigate(self) -> bool:
        return self._phase == PHASE_REVIEWING and bool(self._items)

    @property
    def can_commit(self) -> bool:
        draft = self.current_draft
        return (
            self._phase == PHASE_REVIEWING
            and self._pending_commit is None
            and draft is not None
            and draft.committable
        )

    @property
    def counter_text(self) -> str:
        if self.current_item is None:
            return "0/0"
        return f"Transaction {self._index + 1}/{len(self._items)}"

    # ---- operations ---------------------------------------------------------

    def load(self) -> list[Effect]:
        return self.dispatch(ReloadSignal())

    reload = load

    def next(self) -> list[Effect]:
        return self.dispatch(Next())

    def prev(self) -> list[Effect]:
        return self.dispatch(Prev())

    def input_field(self, field: FieldName, value: str) -> list[Effect]:
        return self.dispatch(FieldInput(field, value))

    def commit(self) -> list[Effect]:
        return self.dispatch(Commit())

    def dispatch(self, intent: Intent) -> list[Effect]:
        if isinstance(intent, ReloadSignal):
            return self._on_reload()
        if isinstance(intent, Loaded):
            return self._on_loaded(intent)
        if isinstance(intent, LoadFailed):
            return self._on_load_failed(intent)
        if isinstance(intent, Next | Prev):
            return self._on_move(1 if isinstance(intent, Next) else -1)
        if isinstance(intent, FieldInput):
            return self._on_field_input(intent.field, intent.value)
        if isinstance(intent, SelectSuggestion):
            return self._on_field_input("account", intent.value)
        if isinstance(intent, Commit):
            return self._on_commit()
        if isinstance(intent, Committed):
            return self._on_committed(intent)
        if isinstance(intent, CommitFailed):
            return self._on_commit_failed(intent)
        if isinstance(intent, ItemFetched):
            return self._on_item_fetched(intent)
        if isinstance(intent, ItemFetchFailed):
            return self._on_item_fetch_failed(intent)
        raise TypeError(f"unsupported intent: {type(intent).__name__}")

    # ---- transitions --------------------------------------------------------

    def _enter_current(self, *, fetch: bool) -> list[Effect]:
        """Seed the draft of the item under review; optionally refresh it."""

        item = self.current_item
        if item is None:
            return []
        self.drafts.ensure(item.id, self._default_account)
        if not fetch:
            return []
        gen = self._generations.issue(item_target(item.id))
        return [FetchItem(item.id, gen)]

    def _on_reload(self) -> list[Effect]:
        gen = self._generations.issue(QUEUE_TARGET)
        if not self._loaded_once:
            self._phase = PHASE_LOADING
        logger.debug("queue reload requested (generation %d)", gen)
        return [FetchQueue(gen)]

    def _on_loaded(self, intent: Loaded) -> list[Effect]:
        if not self._generations.is_latest(QUEUE_TARGET, intent.generation):
            logger.debug("dropping stale queue response (generation %d)", intent.generation)
            return []

        previous = self.current_item if self._loaded_once else None
        previous_index = self._index

        self._items = tuple(intent.items)
        self._catalog = tuple(intent.catalog)
        ids = [it.id for it in self._items]
        dropped = self.drafts.retain(ids)
        if dropped:
            logger.info("discarded %d draft(s) for items no longer pending", len(dropped))
        if self._phase == PHASE_ERROR:
            self._message = None

        if not self._items:
            self._phase = PHASE_EMPTY
            self._index = 0
            self.drafts.clear()
            self._message = Message("success", NOTHING_TO_REVIEW_MESSAGE)
            self._loaded_once = True
            return []

        last = len(self._items) - 1
        if previous is not None and previous.id in ids:
            self._index = ids.index(previous.id)
        elif self._loaded_once:
            self._index = _clamp(previous_index, 0, last)
        else:
            self._index = _clamp(intent.current_index, 0, last)
        self._loaded_once = True
        self._phase = PHASE_REVIEWING
        logger.info("loaded %d pending item(s); reviewing #%d", len(self._items), self._index + 1)
        return self._enter_current(fetch=False)

    def _on_load_failed(self, intent: LoadFailed) -> list[Effect]:
        if not self._generations.is_latest(QUEUE_TARGET, intent.generation):
            return []
        logger.warning("queue load failed: %s", intent.message)
        self._phase = PHASE_ERROR
        self._message = Message("error", f"Failed to reload data: {intent.message}")
        return []

    def _on_move(self, step: int) -> list[Effect]:
        if not self.can_navigate:
            return []
        self._index = (self._index + step) % len(self._items)
        self._message = None
        return self._enter_current(fetch=True)

    def _on_field_input(self, field: FieldName, value: str) -> list[Effect]:
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"not an editable field: {field!r}")
        item = self.current_item
        if self._phase != PHASE_REVIEWING or item is None:
            return []
        if not item.has_field(field):
            logger.debug("ignoring %s input for item %s without that field", field, item.id)
            return []
        self.drafts.set(item.id, **{field: value})
        return []

    def _on_commit(self) -> list[Effect]:
        item = self.current_item
        if self._phase != PHASE_REVIEWING or item is None:
            return []
        if self._pending_commit is not None:
            return []
        draft = self.drafts.get(item.id) or Draft()
        account = draft.account.strip()
        if not account:
            self._message = Message("error", EMPTY_ACCOUNT_MESSAGE)
            return []

        def _override(field: FieldName) -> str | None:
            edited = draft.value_of(field)
            if edited is None or edited == item.original_value(field):
                return None
            return edited

        gen = self._generations.issue(commit_target(item.id))
        self._pending_commit = item.id
        logger.info("committing %s to %s", item.id, account)
        return [
            SubmitCommit(
                item_id=item.id,
                expense_account=account,
                generation=gen,
                payee=_override("payee"),
                narration=_override("narration"),
            )
        ]

    def _on_committed(self, intent: Committed) -> list[Effect]:
        if not self._generations.is_latest(commit_target(intent.item_id), intent.generation):
            return []
        self._pending_commit = None
        self.drafts.delete(intent.item_id)

        ids = [it.id for it in self._items]
        if intent.item_id in ids:
            pos = ids.index(intent.item_id)
            self._items = self._items[:pos] + self._items[pos + 1 :]
            if pos < self._index:
                self._index -= 1

        if intent.remaining_count == 0:
            self._items = ()
            self._index = 0
            self.drafts.clear()
            self._phase = PHASE_EMPTY
            self._message = Message("success", ALL_DONE_MESSAGE)
            logger.info("all items committed")
            return []

        if not self._items:
            # The server still has work the local queue never saw.
            self._index = 0
            self._phase = PHASE_LOADING
            self._message = Message("success", f"Committed. {intent.remaining_count} remaining.")
            logger.info(
                "server reports %d remaining with an empty local queue; reloading",
                intent.remaining_count,
            )
            return [FetchQueue(self._generations.issue(QUEUE_TARGET))]

        self._index = min(self._index, len(self._items) - 1)
        if self._phase == PHASE_LOADING:
            self._phase = PHASE_REVIEWING
        self._message = Message("success", f"Committed. {intent.remaining_count} remaining.")
        effects = self._enter_current(fetch=True)
        if len(self._items) != intent.remaining_count:
            logger.info(
                "server reports %d remaining but %d queued locally; reloading",
                intent.remaining_count,
                len(self._items),
            )
            effects.append(FetchQueue(self._generations.issue(QUEUE_TARGET)))
        return effects

    def _on_commit_failed(self, intent: CommitFailed) -> list[Effect]:
        if not self._generations.is_latest(commit_target(intent.item_id), intent.generation):
            return []
        self._pending_commit = None
        logger.warning("commit of %s failed: %s", intent.item_id, intent.message)
        self._message = Message("error", intent.message)
        return []

    def _on_item_fetched(self, intent: ItemFetched) -> list[Effect]:
        item = intent.item
        if not self._generations.is_latest(item_target(item.id), intent.generation):
            return []
        self._items = tuple(item if it.id == item.id else it for it in self._items)
        return []

    def _on_item_fetch_failed(self, intent: ItemFetchFailed) -> list[Effect]:
        if not self._generations.is_latest(item_target(intent.item_id), intent.generation):
            return []
        if self._phase == PHASE_REVIEWING:
            self._message = Message("error", f"Failed to load transaction: {intent.message}")
        return []


__all__ = [
    "ALL_DONE_MESSAGE",
    "EMPTY_ACCOUNT_MESSAGE",
    "NOTHING_TO_REVIEW_MESSAGE",
    "PHASE_EMPTY",
    "PHASE_ERROR",
    "PHASE_LOADING",
    "PHASE_REVIEWING",
    "Commit",
    "CommitFailed",
    "Committed",
    "Effect",
    "FetchItem",
    "FetchQueue",
    "FieldInput",
    "Intent",
    "ItemFetchFailed",
    "ItemFetched",
    "LoadFailed",
    "Loaded",
    "Message",
    "Next",
    "Phase",
    "Prev",
    "ReloadSignal",
    "SelectSuggestion",
    "SessionController",
    "SubmitCommit",
]
