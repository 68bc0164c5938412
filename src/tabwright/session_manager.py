"""Automation-channel connection manager."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .errors import BrowserUnreachable, TargetNotFound
from .logging_utils import _log_browser_event
from .page_events import PageEventRecorder
from .runtime_common import CONNECT_TIMEOUT_MS, automation_call, endpoint_for_cdp_port

logger = logging.getLogger(__name__)

Connector = Callable[[str, int], Awaitable[Any]]


@dataclass
class ConnectedBrowser:
    endpoint: str
    browser: Any


class PlaywrightConnectionManager:
    """
    Holds at most one Playwright connection per CDP endpoint.

    Concurrent callers asking for the same endpoint share a single in-flight
    connect task, so only one ``connect_over_cdp`` runs per endpoint.
    """

    def __init__(
        self,
        recorder: Optional[PageEventRecorder] = None,
        *,
        connector: Optional[Connector] = None,
        connect_timeout_ms: int = CONNECT_TIMEOUT_MS,
    ) -> None:
        self.recorder = recorder or PageEventRecorder()
        self._connector = connector or self._connect_over_cdp
        self._connect_timeout_ms = int(connect_timeout_ms)
        self._cached: Dict[str, ConnectedBrowser] = {}
        self._connecting: Dict[str, "asyncio.Future[ConnectedBrowser]"] = {}
        self._playwright: Any = None
        # Bumped by close(); connects started under an older value are discarded.
        self._generation = 0

    def cached(self, endpoint: str) -> Optional[ConnectedBrowser]:
        return self._cached.get(endpoint)

    async def connect(self, endpoint: str) -> ConnectedBrowser:
        current = self._cached.get(endpoint)
        if current is not None:
            return current

        task = self._connecting.get(endpoint)
        if task is None:
            task = asyncio.ensure_future(self._connect_once(endpoint))
            self._connecting[endpoint] = task
            task.add_done_callback(lambda done, ep=endpoint: self._clear_in_flight(ep, done))
        return await asyncio.shield(task)

    def _clear_in_flight(self, endpoint: str, task: "asyncio.Future[ConnectedBrowser]") -> None:
        if self._connecting.get(endpoint) is task:
            self._connecting.pop(endpoint, None)
        if not task.cancelled() and task.exception() is not None:
            _log_browser_event(
                logger,
                level=logging.DEBUG,
                event="connect_failed",
                endpoint=endpoint,
                error=task.exception(),
            )

    async def _connect_once(self, endpoint: str) -> ConnectedBrowser:
        generation = self._generation
        async with automation_call(f"connect {endpoint}"):
            browser = await self._connector(endpoint, self._connect_timeout_ms)
        if generation != self._generation:
            await self._close_browser(endpoint, browser)
            _log_browser_event(logger, level=logging.DEBUG, event="connect_discarded", endpoint=endpoint)
            raise BrowserUnreachable(f"Connection to {endpoint} was closed while connecting.")
        record = ConnectedBrowser(endpoint=endpoint, browser=browser)
        self._cached[endpoint] = record
        self.recorder.observe_browser(browser)
        browser.on("disconnected", lambda *_: self._on_disconnected(endpoint, browser))
        _log_browser_event(logger, level=logging.INFO, event="connected", endpoint=endpoint)
        return record

    def _on_disconnected(self, endpoint: str, browser: Any) -> None:
        current = self._cached.get(endpoint)
        if current is not None and current.browser is browser:
            self._cached.pop(endpoint, None)
            _log_browser_event(logger, level=logging.INFO, event="disconnected", endpoint=endpoint)

    async def _connect_over_cdp(self, endpoint: str, timeout_ms: int) -> Any:
        if self._playwright is None:
            from playwright.async_api import async_playwright

            self._playwright = await async_playwright().start()
        return await self._playwright.chromium.connect_over_cdp(endpoint, timeout=timeout_ms)

    def all_pages(self, browser: Any) -> List[Any]:
        pages: List[Any] = []
        for context in list(browser.contexts):
            pages.extend(context.pages)
        return pages

    async def page_target_id(self, page: Any) -> Optional[str]:
        session = await page.context.new_cdp_session(page)
        try:
            info = await session.send("Target.getTargetInfo")
        finally:
            try:
                await session.detach()
            except Exception as exc:
                logger.debug("browser cdp session detach failed error=%s", exc)
        target_id = str(((info or {}).get("targetInfo") or {}).get("targetId") or "").strip()
        return target_id or None

    async def get_page_for_target_id(self, cdp_port: int, target_id: Optional[str] = None) -> Any:
        record = await self.connect(endpoint_for_cdp_port(cdp_port))
        self.recorder.observe_browser(record.browser)
        pages = self.all_pages(record.browser)
        if not pages:
            raise TargetNotFound("No pages available in the connected browser.")
        if not target_id:
            return pages[0]
        for page in pages:
            try:
                async with automation_call("Target.getTargetInfo"):
                    candidate = await self.page_target_id(page)
            except Exception as exc:
                logger.debug("browser target lookup skipped page error=%s", exc)
                continue
            if candidate and candidate == target_id:
                return page
        raise TargetNotFound()

    @staticmethod
    def ref_locator(page: Any, ref: str) -> Any:
        return page.locator(f"aria-ref={ref}")

    @staticmethod
    async def _close_browser(endpoint: str, browser: Any) -> None:
        try:
            await browser.close()
        except Exception as exc:
            logger.debug("browser close failed endpoint=%s error=%s", endpoint, exc)

    async def close(self) -> None:
        self._generation += 1
        in_flight = list(self._connecting.values())
        self._connecting.clear()
        records = list(self._cached.values())
        self._cached.clear()
        self.recorder.clear()
        if in_flight:
            # Each pending connect closes its own browser once it sees the new generation.
            await asyncio.gather(*in_flight, return_exceptions=True)
        for record in records:
            await self._close_browser(record.endpoint, record.browser)
        playwright = self._playwright
        self._playwright = None
        if playwright is not None:
            await playwright.stop()
