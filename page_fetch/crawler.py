"""High-level orchestration for loading pages and capturing their traffic."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Iterable,
    Set,
    TextIO,
    Union,
)

from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import Error as PlaywrightError

from .config import FetchConfig
from .errors import PageFetchError, SessionError
from .interceptor import REQUEST_PAUSED_EVENT, InterceptionHandler
from .models import InterceptedExchange
from .utils import emit

logger = logging.getLogger("page_fetch")

BROWSER_ARGS = ["--ignore-certificate-errors"]
# pause every request once its response headers are known
RESPONSE_STAGE_PATTERNS = [{"urlPattern": "*", "requestStage": "Response"}]

_STOP = object()

JobRunner = Callable[[str], Awaitable[Any]]


@dataclass
class PoolStats:
    """Outcome counts for a finished pool run."""

    succeeded: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


def format_js_value(value: Any) -> str:
    """Render a script result for the ``JS (...)`` output line."""
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


async def read_urls(stream: TextIO) -> AsyncIterator[str]:
    """Yield non-blank lines from ``stream`` without blocking the event loop."""
    while True:
        line = await asyncio.to_thread(stream.readline)
        if not line:
            return
        url = line.strip()
        if url:
            yield url


class SessionWorker:
    """Load one URL per call in a fresh browser context."""

    def __init__(self, browser: Browser, config: FetchConfig) -> None:
        self.browser = browser
        self.config = config

    async def run(self, url: str) -> Any:
        """Navigate to ``url`` with interception enabled.

        Returns the result of the configured script. Any failure, including
        the job deadline passing, is raised as :class:`SessionError`. A
        configured script always gets its ``JS (...)`` line, ``null`` when
        the job failed before producing a value.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.job_timeout
        tasks: Set[asyncio.Task] = set()
        closing = asyncio.Event()
        context = None
        value = None
        try:
            context = await self.browser.new_context(ignore_https_errors=True)
            value = await asyncio.wait_for(
                self._load(context, url, tasks, closing),
                timeout=max(deadline - loop.time(), 0),
            )
            await self._drain(tasks, deadline)
        except asyncio.TimeoutError as exc:
            raise SessionError(
                url, f"deadline of {self.config.job_timeout:g}s exceeded"
            ) from exc
        except PlaywrightError as exc:
            raise SessionError(url, exc.message) from exc
        finally:
            # no handler may start once teardown begins
            closing.set()
            await self._cancel(tasks)
            try:
                if context is not None:
                    await context.close()
            finally:
                await self._cancel(tasks)
                if self.config.javascript:
                    emit(f"JS ({url}): {format_js_value(value)}")
        return value

    async def _load(
        self,
        context: BrowserContext,
        url: str,
        tasks: Set[asyncio.Task],
        closing: asyncio.Event,
    ) -> Any:
        page: Page = await context.new_page()
        session = await context.new_cdp_session(page)
        handler = InterceptionHandler(session, url, self.config)

        def on_task_done(task: asyncio.Task) -> None:
            tasks.discard(task)
            if not task.cancelled() and task.exception() is not None:
                logger.error("interception error (%s): %s", url, task.exception())

        def on_request_paused(event: dict) -> None:
            if closing.is_set():
                logger.debug("Ignoring request paused during teardown of %s", url)
                return
            exchange = InterceptedExchange.from_event(event)
            task = asyncio.ensure_future(handler.handle(exchange))
            tasks.add(task)
            task.add_done_callback(on_task_done)

        session.on(REQUEST_PAUSED_EVENT, on_request_paused)
        await session.send("Fetch.enable", {"patterns": RESPONSE_STAGE_PATTERNS})

        logger.debug("Loading %s", url)
        await page.goto(url)
        return await page.evaluate(self.config.script)

    @staticmethod
    async def _drain(tasks: Set[asyncio.Task], deadline: float) -> None:
        """Wait for in-flight handlers, including ones spawned while waiting."""
        loop = asyncio.get_running_loop()
        while tasks:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return
            await asyncio.wait(set(tasks), timeout=remaining)

    @staticmethod
    async def _cancel(tasks: Set[asyncio.Task]) -> None:
        """Cancel unfinished handlers and wait for their releases to run."""
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


class WorkerPool:
    """Fan URLs out to a fixed number of concurrent job runners."""

    def __init__(self, concurrency: int, run_job: JobRunner) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.run_job = run_job

    async def run(self, urls: Union[Iterable[str], AsyncIterable[str]]) -> PoolStats:
        """Process every URL, returning once all workers have drained."""
        stats = PoolStats()
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.concurrency)
        workers = [
            asyncio.ensure_future(self._worker(queue, stats))
            for _ in range(self.concurrency)
        ]
        try:
            if hasattr(urls, "__aiter__"):
                async for url in urls:
                    await queue.put(url)
            else:
                for url in urls:
                    await queue.put(url)
            for _ in workers:
                await queue.put(_STOP)
            await asyncio.gather(*workers)
        except BaseException:
            for worker in workers:
                worker.cancel()
            raise
        return stats

    async def _worker(self, queue: asyncio.Queue, stats: PoolStats) -> None:
        while True:
            url = await queue.get()
            if url is _STOP:
                return
            try:
                await self.run_job(url)
            except Exception as exc:  # pylint: disable=broad-except
                stats.failed += 1
                logger.error("run error (%s): %s", url, exc)
            else:
                stats.succeeded += 1


async def run_fetcher(
    urls: Union[Iterable[str], AsyncIterable[str]],
    config: FetchConfig,
) -> PoolStats:
    """Launch one shared browser and process every URL through the pool."""
    async with async_playwright() as playwright:
        try:
            browser = await playwright.chromium.launch(
                headless=config.headless,
                args=BROWSER_ARGS,
            )
        except PlaywrightError as exc:
            raise PageFetchError(f"error starting browser: {exc.message}") from exc

        try:
            worker = SessionWorker(browser, config)
            pool = WorkerPool(config.concurrency, worker.run)
            return await pool.run(urls)
        finally:
            await browser.close()
