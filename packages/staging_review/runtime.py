"""Effect runner bridging the session controller and the network.

:class:`ReviewRuntime` applies intents to a
:class:`~staging_review.session.SessionController`, runs each returned effect
as an asyncio task against a :class:`~staging_review.client.StagingClient`, and
dispatches the completion back as an intent. Every state change is reported
through ``on_change`` so a surface can redraw.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any

from .client import StagingApiError, StagingClient
from .logging_setup import get_logger
from .session import (
    CommitFailed,
    Committed,
    Effect,
    FetchItem,
    FetchQueue,
    Intent,
    ItemFetched,
    ItemFetchFailed,
    LoadFailed,
    Loaded,
    ReloadSignal,
    SessionController,
    SubmitCommit,
)
from .sync import SyncChannel

logger = get_logger("staging_review.runtime")


class ReviewRuntime:
    def __init__(
        self,
        controller: SessionController,
        client: StagingClient,
        *,
        on_change: Callable[[], object] | None = None,
        live: bool = True,
    ) -> None:
        self.controller = controller
        self.client = client
        self.on_change = on_change
        self._tasks: set[asyncio.Task[None]] = set()
        self._sync_task: asyncio.Task[None] | None = None
        self.sync: SyncChannel | None = None
        if live:
            self.sync = SyncChannel(
                client.http,
                client.settings.endpoint("file-changes"),
                self.reload,
                reconnect_delay=client.settings.reconnect_delay,
            )

    # ---- intents ------------------------------------------------------------

    def dispatch(self, intent: Intent) -> list[Effect]:
        """Apply ``intent`` and schedule its effects; must run inside the loop."""

        effects = self.controller.dispatch(intent)
        for effect in effects:
            self._spawn(self._run(effect))
        self._notify()
        return effects

    def reload(self) -> None:
        self.dispatch(ReloadSignal())

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

    # ---- effects ------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, effect: Effect) -> None:
        if isinstance(effect, FetchQueue):
            await self._fetch_queue(effect)
        elif isinstance(effect, FetchItem):
            await self._fetch_item(effect)
        elif isinstance(effect, SubmitCommit):
            await self._submit_commit(effect)
        else:
            raise TypeError(f"unsupported effect: {type(effect).__name__}")

    async def _fetch_queue(self, effect: FetchQueue) -> None:
        try:
            resp = await self.client.init()
        except StagingApiError as e:
            self.dispatch(LoadFailed(effect.generation, e.message))
            return
        self.dispatch(
            Loaded(
                effect.generation,
                resp.items,
                resp.available_accounts,
                current_index=resp.current_index,
            )
        )

    async def _fetch_item(self, effect: FetchItem) -> None:
        try:
            item = await self.client.get_transaction(effect.item_id)
        except StagingApiError as e:
            self.dispatch(ItemFetchFailed(effect.generation, effect.item_id, e.message))
            return
        self.dispatch(ItemFetched(effect.generation, item))

    async def _submit_commit(self, effect: SubmitCommit) -> None:
        try:
            resp = await self.client.commit(
                effect.item_id,
                effect.expense_account,
                payee=effect.payee,
                narration=effect.narration,
            )
        except StagingApiError as e:
            self.dispatch(CommitFailed(effect.generation, effect.item_id, e.message))
            return
        self.dispatch(Committed(effect.generation, effect.item_id, resp.remaining_count))

    # ---- lifecycle ----------------------------------------------------------

    async def drain(self) -> None:
        """Wait until no effect is in flight, including ones spawned meanwhile."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def start(self) -> None:
        self.reload()
        if self.sync is not None and self._sync_task is None:
            self._sync_task = asyncio.get_running_loop().create_task(self.sync.run())

    async def stop(self) -> None:
        if self.sync is not None:
            self.sync.stop()
        pending = list(self._tasks)
        if self._sync_task is not None:
            pending.append(self._sync_task)
            self._sync_task = None
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self.client.aclose()
        logger.debug("runtime stopped")


__all__ = ["ReviewRuntime"]
