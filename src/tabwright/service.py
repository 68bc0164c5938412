"""
Browser tool service facade.

Maps tool names onto control-plane and runtime primitives through one flat
handler table and answers with a uniform envelope.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from .cdp_client import BrowserTab
from .context import BrowserControlPlane
from .errors import BrowserControlError, UnknownTool, status_for_error
from .media_store import MediaStore, SavedMedia
from .runtime import PlaywrightRuntime
from .service_dispatch_core import BrowserToolDispatchCoreMixin
from .service_dispatch_extra import BrowserToolDispatchExtraMixin
from .service_utils import _as_args, _as_str

logger = logging.getLogger(__name__)

ToolHandler = Callable[["ToolInvocation"], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class ToolInvocation:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)
    target_id: Optional[str] = None


class BrowserToolService(BrowserToolDispatchCoreMixin, BrowserToolDispatchExtraMixin):
    """Facade that maps browser tool calls onto the control plane."""

    def __init__(
        self,
        plane: BrowserControlPlane,
        *,
        runtime: Optional[PlaywrightRuntime] = None,
        media_store: Optional[MediaStore] = None,
    ) -> None:
        self._plane = plane
        self._runtime = runtime or PlaywrightRuntime(plane.connections)
        self._media = media_store or MediaStore()
        self._handlers: Dict[str, ToolHandler] = {}
        self._handlers.update(self._core_handlers())
        self._handlers.update(self._extra_handlers())

    @property
    def tool_names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._handlers))

    async def execute(
        self,
        name: str,
        args: Optional[Dict[str, Any]] = None,
        target_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        started = time.perf_counter()
        call = ToolInvocation(name=name, args=_as_args(args), target_id=_as_str(target_id))
        handler = self._handlers.get(call.name)
        if handler is None:
            raise UnknownTool()
        try:
            payload = await handler(call)
        except BrowserControlError as exc:
            logger.debug(
                "browser.execute failed tool=%s status=%s duration_ms=%s error=%s",
                call.name,
                status_for_error(exc),
                int((time.perf_counter() - started) * 1000),
                exc,
            )
            raise
        logger.debug(
            "browser.execute success tool=%s target_id=%s duration_ms=%s",
            call.name,
            payload.get("targetId"),
            int((time.perf_counter() - started) * 1000),
        )
        return payload

    async def handle_request(self, body: Any) -> Tuple[int, Dict[str, Any]]:
        """Run one ``{name, args, targetId}`` request and return ``(status, body)``."""
        request = body if isinstance(body, dict) else {}
        name = _as_str(request.get("name"))
        if not name:
            return 400, self._err("name is required")
        args = _as_args(request.get("args"))
        target_id = _as_str(request.get("targetId")) or _as_str(args.get("targetId"))
        try:
            self._plane.state()
            return 200, await self.execute(name, args, target_id)
        except Exception as exc:
            status = status_for_error(exc)
            if status >= 500:
                logger.warning("browser.execute error tool=%s error=%s", name, exc)
            return status, self._err(str(exc))

    async def _tab(self, call: ToolInvocation) -> BrowserTab:
        return await self._plane.ensure_tab_available(call.target_id)

    async def _page(self, tab: BrowserTab) -> Any:
        return await self._runtime.page_for_target(self._plane.state().cdp_port, tab.target_id)

    async def _save(self, data: bytes, content_type: str, max_bytes: Optional[int] = None) -> SavedMedia:
        return await self._media.save_buffer(data, content_type, "browser", max_bytes)

    @staticmethod
    def _ok(tab: Optional[BrowserTab] = None, **payload: Any) -> Dict[str, Any]:
        out: Dict[str, Any] = {"ok": True}
        if tab is not None:
            out["targetId"] = tab.target_id
            out["url"] = tab.url
        out.update({key: value for key, value in payload.items() if value is not None})
        return out

    @staticmethod
    def _err(message: str) -> Dict[str, Any]:
        return {"error": message}
