"""Async HTTP client for the staging server.

Endpoints (relative to the API base URL, ``http://127.0.0.1:8472/api`` by
default):

- ``GET init``: pending items, the server's cursor and the account catalog.
- ``GET transaction/{id}``: one item.
- ``POST transaction/{id}/commit``: commit an item with its expense account.
- ``GET file-changes``: server-sent events, consumed by
  :mod:`staging_review.sync`.

Every failure surfaces as :class:`StagingApiError`. When the server answers
with a JSON ``{"error": ...}`` payload, that text is used verbatim; otherwise
the message names the HTTP status or the transport problem.
"""

from __future__ import annotations

from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from .config import ReviewSettings
from .logging_setup import get_logger
from .models import (
    CommitRequest,
    CommitResponse,
    ErrorResponse,
    InitResponse,
    Item,
    TransactionResponse,
)

logger = get_logger("staging_review.client")

_M = TypeVar("_M", bound=BaseModel)


class StagingApiError(RuntimeError):
    """A request to the staging server failed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _server_error_text(resp: httpx.Response) -> str | None:
    try:
        payload = ErrorResponse.model_validate(resp.json())
    except (ValueError, ValidationError):
        return None
    if payload.error and payload.error.strip():
        return payload.error
    return None


class StagingClient:
    """Thin async wrapper over the staging server's JSON API.

    Pass ``http`` to share a preconfigured :class:`httpx.AsyncClient` (tests
    inject one backed by :class:`httpx.MockTransport`); otherwise the client
    owns one and :meth:`aclose` releases it.
    """

    def __init__(
        self,
        settings: ReviewSettings,
        *,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=settings.request_timeout)

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> StagingClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ---- endpoints ----------------------------------------------------------

    async def init(self) -> InitResponse:
        resp = await self._request("GET", "init", action="initialize")
        return self._parse(resp, InitResponse)

    async def get_transaction(self, item_id: str) -> Item:
        resp = await self._request(
            "GET", f"transaction/{quote(item_id, safe='')}", action="load transaction"
        )
        return self._parse(resp, TransactionResponse).transaction

    async def commit(
        self,
        item_id: str,
        expense_account: str,
        *,
        payee: str | None = None,
        narration: str | None = None,
    ) -> CommitResponse:
        body = CommitRequest(expense_account=expense_account, payee=payee, narration=narration)
        resp = await self._request(
            "POST",
            f"transaction/{quote(item_id, safe='')}/commit",
            action="commit transaction",
            json=body.to_json(),
        )
        result = self._parse(resp, CommitResponse)
        if not result.ok:
            raise StagingApiError("Failed to commit transaction: server did not confirm")
        return result

    # ---- helpers ------------------------------------------------------------

    async def _request(
        self, method: str, path: str, *, action: str, **kwargs: Any
    ) -> httpx.Response:
        url = self.settings.endpoint(path)
        try:
            resp = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise StagingApiError(f"Failed to reach staging server: {e}") from e

        if resp.status_code >= 400:
            text = _server_error_text(resp)
            logger.warning("%s %s -> %d %s", method, url, resp.status_code, text or "")
            if text is None:
                text = f"Failed to {action}: {resp.status_code} {resp.reason_phrase}".rstrip()
            raise StagingApiError(text, status_code=resp.status_code)
        logger.debug("%s %s -> %d", method, url, resp.status_code)
        return resp

    @staticmethod
    def _parse(resp: httpx.Response, model: type[_M]) -> _M:
        try:
            return model.model_validate(resp.json())
        except ValueError as e:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
            raise StagingApiError(
                f"Unexpected response from staging server: {e}", status_code=resp.status_code
            ) from e


__all__ = ["StagingApiError", "StagingClient"]
