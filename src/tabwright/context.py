"""
Browser control plane.

Owns the server state for one configured browser: the tracked process handle,
the raw CDP client and the Playwright connection manager. Route handlers and
the tool service go through this object for every browser or tab lookup.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from .cdp_client import BrowserTab, CdpHttpClient
from .config import BrowserConfig
from .errors import AttachOnlyViolation, NotStarted, TargetNotFound
from .launcher import BrowserLauncher, RunningBrowser
from .logging_utils import _log_browser_event
from .runtime_common import (
    NEW_TAB_POLL_DEADLINE_MS,
    NEW_TAB_POLL_INTERVAL_MS,
    REACHABILITY_TIMEOUT_MS,
    _monotonic_ms,
)
from .session_manager import PlaywrightConnectionManager
from .target_resolution import resolve_target_id_from_tabs

logger = logging.getLogger(__name__)


@dataclass
class BrowserServerState:
    port: int
    cdp_port: int
    resolved: BrowserConfig
    running: Optional[RunningBrowser] = None


class BrowserControlPlane:
    def __init__(
        self,
        config: BrowserConfig,
        *,
        cdp_client: Optional[CdpHttpClient] = None,
        launcher: Optional[BrowserLauncher] = None,
        connections: Optional[PlaywrightConnectionManager] = None,
    ) -> None:
        self.config = config
        self.cdp = cdp_client or CdpHttpClient(config.cdp_port)
        self.launcher = launcher or BrowserLauncher()
        self.connections = connections or PlaywrightConnectionManager()
        self._state: Optional[BrowserServerState] = None
        self._exit_watchers: Set["asyncio.Task[None]"] = set()
        self._launch_lock = asyncio.Lock()

    @property
    def started(self) -> bool:
        return self._state is not None

    def start(self) -> Optional[BrowserServerState]:
        if self._state is not None:
            return self._state
        if not self.config.enabled:
            logger.info("Browser control disabled by config")
            return None
        if not self.config.is_loopback_control():
            logger.info(
                "Browser control URL is non-loopback (%s); skipping local control plane",
                self.config.control_url,
            )
            return None
        self._state = BrowserServerState(
            port=self.config.control_port,
            cdp_port=self.config.cdp_port,
            resolved=self.config,
        )
        _log_browser_event(
            logger,
            level=logging.INFO,
            event="control_plane_started",
            control_url=self.config.control_url,
            cdp_port=self.config.cdp_port,
        )
        return self._state

    async def shutdown(self) -> None:
        if self._state is None:
            return
        try:
            await self.stop_running_browser()
        except Exception as exc:
            logger.warning("Browser stop failed during shutdown: %s", exc)
        self._state = None
        for task in list(self._exit_watchers):
            task.cancel()
        await self.connections.close()
        _log_browser_event(logger, level=logging.INFO, event="control_plane_stopped")

    def state(self) -> BrowserServerState:
        if self._state is None:
            raise NotStarted()
        return self._state

    async def is_reachable(self, timeout_ms: int = REACHABILITY_TIMEOUT_MS) -> bool:
        self.state()
        return await self.cdp.is_reachable(timeout_ms)

    async def ensure_browser_available(self) -> None:
        current = self.state()
        if await self.is_reachable():
            return
        if current.resolved.attach_only:
            raise AttachOnlyViolation()

        async with self._launch_lock:
            # A concurrent caller may have launched while this one waited.
            if await self.is_reachable():
                return
            launched = await self.launcher.launch(current.resolved)
            current.running = launched
            watcher = asyncio.ensure_future(self._watch_exit(launched))
            self._exit_watchers.add(watcher)
            watcher.add_done_callback(self._exit_watchers.discard)

    async def _watch_exit(self, launched: RunningBrowser) -> None:
        code = await launched.wait()
        live = self._state
        if live is not None and live.running is not None and live.running.pid == launched.pid:
            live.running = None
            _log_browser_event(
                logger,
                level=logging.INFO,
                event="exited",
                pid=launched.pid,
                code=code,
            )

    async def list_tabs(self) -> List[BrowserTab]:
        self.state()
        return await self.cdp.list_tabs()

    async def open_tab(self, url: str) -> BrowserTab:
        self.state()
        try:
            created_id: Optional[str] = await self.cdp.create_target(url)
        except Exception as exc:
            _log_browser_event(
                logger,
                level=logging.DEBUG,
                event="create_target_fallback",
                reason=exc,
            )
            created_id = None

        if created_id:
            deadline = _monotonic_ms() + NEW_TAB_POLL_DEADLINE_MS
            while _monotonic_ms() < deadline:
                try:
                    tabs = await self.cdp.list_tabs()
                except Exception as exc:
                    logger.debug("browser tab poll failed error=%s", exc)
                    tabs = []
                for tab in tabs:
                    if tab.target_id == created_id:
                        return tab
                await asyncio.sleep(NEW_TAB_POLL_INTERVAL_MS / 1000)
            _log_browser_event(
                logger,
                level=logging.DEBUG,
                event="new_tab_stub",
                target_id=created_id,
            )
            return BrowserTab(target_id=created_id, title="", url=url, type="page")

        return await self.cdp.new_tab_via_rest(url)

    async def ensure_tab_available(self, target_id: Optional[str] = None) -> BrowserTab:
        await self.ensure_browser_available()
        if not await self.list_tabs():
            await self.open_tab("about:blank")

        tabs = await self.list_tabs()
        if target_id:
            chosen_id = resolve_target_id_from_tabs(target_id, tabs).raise_for_reason()
            chosen = next((tab for tab in tabs if tab.target_id == chosen_id), None)
        else:
            chosen = tabs[0] if tabs else None
        if chosen is None or not chosen.ws_url:
            raise TargetNotFound()
        return chosen

    async def _resolve_listed(self, target_id: str) -> str:
        tabs = await self.list_tabs()
        return resolve_target_id_from_tabs(target_id, tabs).raise_for_reason()

    async def focus_tab(self, target_id: str) -> None:
        resolved = await self._resolve_listed(target_id)
        await self.cdp.activate(resolved)

    async def close_tab(self, target_id: str) -> None:
        resolved = await self._resolve_listed(target_id)
        await self.cdp.close(resolved)

    async def stop_running_browser(self) -> Dict[str, bool]:
        current = self.state()
        running = current.running
        if running is None:
            return {"stopped": False}
        await self.launcher.stop(running)
        if current.running is not None and current.running.pid == running.pid:
            current.running = None
        await self.connections.close()
        return {"stopped": True}

    async def status(self) -> Dict[str, Any]:
        current = self.state()
        reachable = await self.is_reachable(REACHABILITY_TIMEOUT_MS)
        payload = current.resolved.as_status()
        payload["running"] = reachable
        payload["cdpPort"] = current.cdp_port
        payload.update(BrowserLauncher.describe(current.running))
        return payload
