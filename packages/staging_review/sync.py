"""Live invalidation from the staging server's ``file-changes`` stream.

The server pushes a server-sent event whenever the underlying ledger files
change. The payload is irrelevant: any dispatched event means "reload the
queue". The stream is consumed for the lifetime of the review session and
reconnects on its own after failures.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeAlias

import httpx

from .logging_setup import get_logger

logger = get_logger("staging_review.sync")

Sleeper: TypeAlias = Callable[[float], Awaitable[object]]


class SyncChannel:
    """Consume ``text/event-stream`` from ``url`` and call ``on_change``.

    - Comment lines (``:keep-alive``) are ignored.
    - An event is dispatched at the blank line that ends it, and only when it
      carried at least one ``data:`` line.
    - ``retry: <ms>`` replaces the reconnect delay.
    - After a successful reconnect ``on_change`` fires once, since changes may
      have happened while disconnected.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        url: str,
        on_change: Callable[[], object],
        *,
        reconnect_delay: float = 3.0,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._http = http
        self.url = url
        self._on_change = on_change
        self.reconnect_delay = reconnect_delay
        self._sleep = sleep
        self._stopped = False
        self.connections = 0

    def stop(self) -> None:
        """Finish after the current stream ends instead of reconnecting."""

        self._stopped = True

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def run(self) -> None:
        while not self._stopped:
            try:
                await self._consume()
                logger.info("file-changes stream closed by server")
            except httpx.HTTPError as e:
                logger.warning("file-changes stream failed: %s", e)
            if self._stopped:
                break
            logger.debug("reconnecting in %.1fs", self.reconnect_delay)
            await self._sleep(self.reconnect_delay)

    async def _consume(self) -> None:
        async with self._http.stream(
            "GET", self.url, headers={"Accept": "text/event-stream"}, timeout=None
        ) as resp:
            resp.raise_for_status()
            self.connections += 1
            if self.connections > 1:
                logger.info("file-changes stream reconnected; reloading")
                self._on_change()
            else:
                logger.info("listening for file changes at %s", self.url)

            data: list[str] = []
            async for line in resp.aiter_lines():
                line = line.rstrip("\r")
                if not line:
                    if data:
                        logger.debug("file change event: %s", "\n".join(data))
                        data = []
                        self._on_change()
                        if self._stopped:
                            return
                    continue
                if line.startswith(":"):
                    continue
                field, _, value = line.partition(":")
                value = value.removeprefix(" ")
                if field == "data":
                    data.append(value)
                elif field == "retry" and value.isdigit():
                    self.reconnect_delay = int(value) / 1000


__all__ = ["SyncChannel"]
