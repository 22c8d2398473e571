"""Handle requests paused by the browser at the response stage."""

from __future__ import annotations

import asyncio
import base64
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from .config import FetchConfig
from .errors import BodyFetchError, PersistenceError, ReleaseError
from .filters import content_type_of, should_save
from .models import InterceptedExchange
from .storage import persist_exchange
from .utils import emit

logger = logging.getLogger("page_fetch")

REQUEST_PAUSED_EVENT = "Fetch.requestPaused"


async def continue_request(session: Any, request_id: str) -> None:
    """Let a paused request proceed to the page."""
    try:
        await session.send("Fetch.continueRequest", {"requestId": request_id})
    except Exception as exc:  # pylint: disable=broad-except
        raise ReleaseError(f"{request_id}: {exc}") from exc


async def fetch_body(session: Any, request_id: str) -> bytes:
    """Return the full response body of a paused request."""
    try:
        result: Dict[str, Any] = await session.send(
            "Fetch.getResponseBody", {"requestId": request_id}
        )
    except Exception as exc:  # pylint: disable=broad-except
        raise BodyFetchError(f"{request_id}: {exc}") from exc

    body = result.get("body", "")
    if result.get("base64Encoded"):
        return base64.b64decode(body)
    return body.encode("utf-8")


@asynccontextmanager
async def paused(session: Any, request_id: str) -> AsyncIterator[None]:
    """Hold a paused request for the duration of the block, then release it.

    The release is issued exactly once on every exit path. Its failure is
    logged rather than raised.
    """
    try:
        yield
    finally:
        try:
            await continue_request(session, request_id)
        except ReleaseError as exc:
            logger.error("continue request err: %s", exc)


class InterceptionHandler:
    """Filter and persist the exchanges paused during one job."""

    def __init__(self, session: Any, job_url: str, config: FetchConfig) -> None:
        self.session = session
        self.job_url = job_url
        self.config = config

    async def handle(self, exchange: InterceptedExchange) -> Optional[str]:
        """Process one paused exchange; returns the saved body path, if any."""
        async with paused(self.session, exchange.request_id):
            if not should_save(exchange, self.job_url, self.config):
                return None
            return await self._save(exchange)

    async def _save(self, exchange: InterceptedExchange) -> Optional[str]:
        try:
            body = await fetch_body(self.session, exchange.request_id)
        except BodyFetchError as exc:
            logger.debug("No body for %s: %s", exchange.url, exc)
            return None

        try:
            path = await asyncio.to_thread(
                persist_exchange, exchange, body, self.job_url, self.config
            )
        except PersistenceError as exc:
            logger.error("%s", exc)
            return None

        content_type = content_type_of(exchange.response_headers)
        emit(f"{exchange.method} {exchange.url} {exchange.status_code} {content_type}")
        return path
