"""Shared fixtures and fakes for the page-fetch tests.

Fixture summary
---------------
make_exchange   - factory for InterceptedExchange objects with sane defaults.
fake_session    - FakeSession recording every CDP command it receives.

The fakes stand in for Playwright's CDP session, page, context and browser so
that no Chromium install is needed to run the suite.
"""

from __future__ import annotations

import asyncio
import base64
from collections import Counter
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from page_fetch.models import InterceptedExchange


class FakeSession:
    """Records CDP commands; optionally fails or stalls specific ones."""

    def __init__(
        self,
        body: bytes = b"<html></html>",
        fail_body: bool = False,
        fail_release: bool = False,
        body_delay: float = 0.0,
    ) -> None:
        self.body = body
        self.fail_body = fail_body
        self.fail_release = fail_release
        self.body_delay = body_delay
        self.calls: List[Tuple[str, Optional[Dict[str, Any]]]] = []
        self.handlers: Dict[str, List[Callable[[dict], None]]] = {}

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.calls.append((method, params))
        if method == "Fetch.getResponseBody":
            if self.body_delay:
                await asyncio.sleep(self.body_delay)
            if self.fail_body:
                raise RuntimeError("No data found for resource with given identifier")
            return {
                "body": base64.b64encode(self.body).decode("ascii"),
                "base64Encoded": True,
            }
        if method == "Fetch.continueRequest" and self.fail_release:
            raise RuntimeError("Target page, context or browser has been closed")
        return {}

    def on(self, event: str, handler: Callable[[dict], None]) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event: str, params: dict) -> None:
        for handler in self.handlers.get(event, []):
            handler(params)

    def releases(self) -> Counter:
        return Counter(
            params["requestId"]
            for method, params in self.calls
            if method == "Fetch.continueRequest"
        )


class FakePage:
    def __init__(
        self,
        session: FakeSession,
        events: Optional[List[dict]] = None,
        goto_delay: float = 0.0,
        result: Any = False,
    ) -> None:
        self.session = session
        self.events = events or []
        self.goto_delay = goto_delay
        self.result = result
        self.visited: List[str] = []
        self.scripts: List[str] = []

    async def goto(self, url: str) -> None:
        self.visited.append(url)
        for event in self.events:
            self.session.emit("Fetch.requestPaused", event)
        if self.goto_delay:
            await asyncio.sleep(self.goto_delay)

    async def evaluate(self, script: str) -> Any:
        self.scripts.append(script)
        return self.result


class FakeContext:
    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.closed = False

    async def new_page(self) -> FakePage:
        return self.page

    async def new_cdp_session(self, page: FakePage) -> FakeSession:
        return page.session

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """Hands out a fresh context per job with a page from ``page_factory``."""

    def __init__(self, page_factory: Callable[[], FakePage]) -> None:
        self.page_factory = page_factory
        self.contexts: List[FakeContext] = []

    async def new_context(self, **kwargs: Any) -> FakeContext:
        context = FakeContext(self.page_factory())
        self.contexts.append(context)
        return context


def paused_event(
    request_id: str = "interception-1",
    url: str = "https://example.com/",
    method: str = "GET",
    content_type: Optional[str] = "text/html; charset=utf-8",
    status: int = 200,
    resource_type: str = "Document",
    post_data: Optional[str] = None,
) -> dict:
    headers = [{"name": "Date", "value": "Mon, 19 Oct 2026 10:00:00 GMT"}]
    if content_type is not None:
        headers.append({"name": "Content-Type", "value": content_type})
    request: Dict[str, Any] = {
        "url": url,
        "method": method,
        "headers": {"User-Agent": "HeadlessChrome", "Accept": "*/*"},
    }
    if post_data is not None:
        request["postData"] = post_data
    return {
        "requestId": request_id,
        "request": request,
        "frameId": "frame-1",
        "resourceType": resource_type,
        "responseStatusCode": status,
        "responseHeaders": headers,
    }


@pytest.fixture
def make_exchange() -> Callable[..., InterceptedExchange]:
    def _make(**kwargs: Any) -> InterceptedExchange:
        return InterceptedExchange.from_event(paused_event(**kwargs))

    return _make


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()
