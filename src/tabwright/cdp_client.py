"""
Raw remote-debugging channel.

Talks to the browser's own HTTP surface (``/json/*``) and, for target
creation, to the browser-level DevTools websocket. Every call is bounded by a
timeout and raises a control-plane error on failure.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from .errors import BrowserTimeout, BrowserUnreachable, UpstreamProtocolError
from .logging_utils import _log_browser_event
from .runtime_common import (
    DEFAULT_HTTP_TIMEOUT_MS,
    REACHABILITY_TIMEOUT_MS,
    endpoint_for_cdp_port,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrowserTab:
    target_id: str
    title: str = ""
    url: str = ""
    ws_url: Optional[str] = None
    type: Optional[str] = None

    @classmethod
    def from_devtools(cls, raw: Dict[str, Any], *, fallback_url: str = "") -> "BrowserTab":
        return cls(
            target_id=str(raw.get("id") or ""),
            title=str(raw.get("title") or ""),
            url=str(raw.get("url") or fallback_url),
            ws_url=raw.get("webSocketDebuggerUrl") or None,
            type=raw.get("type") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "targetId": self.target_id,
            "title": self.title,
            "url": self.url,
        }
        if self.ws_url:
            payload["wsUrl"] = self.ws_url
        if self.type:
            payload["type"] = self.type
        return payload


class CdpHttpClient:
    """Client for one browser's remote-debugging endpoint."""

    def __init__(self, cdp_port: int, *, host: str = "127.0.0.1") -> None:
        self.cdp_port = int(cdp_port)
        self.host = host
        self._message_ids = itertools.count(1)

    @property
    def base_url(self) -> str:
        return endpoint_for_cdp_port(self.cdp_port, self.host)

    async def _request(
        self,
        path: str,
        *,
        method: str = "GET",
        timeout_ms: int = DEFAULT_HTTP_TIMEOUT_MS,
        expect_json: bool = True,
    ) -> Any:
        url = f"{self.base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=max(1, int(timeout_ms)) / 1000)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, url) as response:
                    if response.status >= 400:
                        raise UpstreamProtocolError(
                            f"HTTP {response.status}",
                            http_status=response.status,
                        )
                    if not expect_json:
                        return None
                    text = await response.text()
        except asyncio.TimeoutError as exc:
            raise BrowserTimeout(f"{method} {url} timed out after {timeout_ms}ms") from exc
        except aiohttp.ClientError as exc:
            raise BrowserUnreachable(f"Can't reach the browser at {url}: {exc}") from exc
        try:
            return json.loads(text) if text.strip() else None
        except ValueError as exc:
            raise UpstreamProtocolError(f"Invalid JSON from {url}") from exc

    async def fetch_json(
        self,
        path: str,
        *,
        method: str = "GET",
        timeout_ms: int = DEFAULT_HTTP_TIMEOUT_MS,
    ) -> Any:
        return await self._request(path, method=method, timeout_ms=timeout_ms)

    async def fetch_ok(self, path: str, *, timeout_ms: int = DEFAULT_HTTP_TIMEOUT_MS) -> None:
        await self._request(path, timeout_ms=timeout_ms, expect_json=False)

    async def is_reachable(self, timeout_ms: int = REACHABILITY_TIMEOUT_MS) -> bool:
        try:
            version = await self.fetch_json("/json/version", timeout_ms=timeout_ms)
        except Exception:
            return False
        return isinstance(version, dict)

    async def list_tabs(self) -> List[BrowserTab]:
        raw = await self.fetch_json("/json/list")
        if not isinstance(raw, list):
            raise UpstreamProtocolError("Unexpected /json/list payload")
        tabs = [BrowserTab.from_devtools(item) for item in raw if isinstance(item, dict)]
        return [tab for tab in tabs if tab.target_id]

    async def browser_ws_url(self) -> str:
        version = await self.fetch_json("/json/version")
        ws_url = str((version or {}).get("webSocketDebuggerUrl") or "").strip()
        if not ws_url:
            raise UpstreamProtocolError("Browser did not report a webSocketDebuggerUrl")
        return ws_url

    async def send_browser_command(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        timeout_ms: int = DEFAULT_HTTP_TIMEOUT_MS,
    ) -> Dict[str, Any]:
        """Send one command over the browser-level DevTools websocket."""
        ws_url = await self.browser_ws_url()
        message_id = next(self._message_ids)
        timeout = aiohttp.ClientTimeout(total=max(1, int(timeout_ms)) / 1000)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.ws_connect(ws_url, max_msg_size=0) as ws:
                    await ws.send_json({"id": message_id, "method": method, "params": params or {}})
                    reply = await asyncio.wait_for(
                        self._read_reply(ws, message_id),
                        timeout=max(1, int(timeout_ms)) / 1000,
                    )
        except asyncio.TimeoutError as exc:
            raise BrowserTimeout(f"{method} timed out after {timeout_ms}ms") from exc
        except aiohttp.ClientError as exc:
            raise BrowserUnreachable(f"DevTools websocket failed: {exc}") from exc

        error = reply.get("error")
        if error:
            detail = error.get("message") if isinstance(error, dict) else error
            raise UpstreamProtocolError(f"{method} failed: {detail}")
        result = reply.get("result")
        return result if isinstance(result, dict) else {}

    @staticmethod
    async def _read_reply(ws: aiohttp.ClientWebSocketResponse, message_id: int) -> Dict[str, Any]:
        async for msg in ws:
            if msg.type != aiohttp.WSMsgType.TEXT:
                if msg.type in {aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR}:
                    break
                continue
            data = json.loads(msg.data)
            if isinstance(data, dict) and data.get("id") == message_id:
                return data
        raise UpstreamProtocolError("DevTools websocket closed before replying")

    async def create_target(self, url: str) -> str:
        result = await self.send_browser_command("Target.createTarget", {"url": url})
        target_id = str(result.get("targetId") or "").strip()
        if not target_id:
            raise UpstreamProtocolError("Target.createTarget returned no targetId")
        return target_id

    async def new_tab_via_rest(self, url: str) -> BrowserTab:
        """``PUT /json/new``, retried as ``GET`` when the browser answers 405."""
        path = f"/json/new?{quote(url, safe='')}"
        try:
            created = await self.fetch_json(path, method="PUT")
        except UpstreamProtocolError as exc:
            if exc.http_status != 405:
                raise
            _log_browser_event(
                logger,
                level=logging.DEBUG,
                event="new_tab_put_rejected",
                cdp_port=self.cdp_port,
            )
            created = await self.fetch_json(path)
        if not isinstance(created, dict) or not created.get("id"):
            raise UpstreamProtocolError("Failed to open tab (missing id)")
        return BrowserTab.from_devtools(created, fallback_url=url)

    async def activate(self, target_id: str) -> None:
        await self.fetch_ok(f"/json/activate/{quote(target_id, safe='')}")

    async def close(self, target_id: str) -> None:
        await self.fetch_ok(f"/json/close/{quote(target_id, safe='')}")
