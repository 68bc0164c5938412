"""Per-page console and network history."""

from __future__ import annotations

import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

from .runtime_common import (
    MAX_CONSOLE_MESSAGES,
    MAX_NETWORK_REQUESTS,
    _now_iso,
    _read_attr,
    _safe_str,
)

logger = logging.getLogger(__name__)


@dataclass
class PageState:
    handle: str
    page: Any
    console: Deque[Dict[str, Any]] = field(
        default_factory=lambda: deque(maxlen=MAX_CONSOLE_MESSAGES)
    )
    network: Deque[Dict[str, Any]] = field(
        default_factory=lambda: deque(maxlen=MAX_NETWORK_REQUESTS)
    )
    # Keyed by id() of the live request object; entries leave on finish or failure.
    requests: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    observed: bool = False


class PageEventRecorder:
    """
    Registry of pages seen through the automation channel.

    A page gets a synthetic handle the first time it is touched. Listeners are
    attached once per page, guarded by the entry's ``observed`` flag, and the
    entry is dropped when the page emits ``close``.
    """

    def __init__(self) -> None:
        self._pages: Dict[str, PageState] = {}
        self._observed_contexts: List[Any] = []
        self._handle_ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._pages)

    def find(self, page: Any) -> Optional[PageState]:
        for state in self._pages.values():
            if state.page is page:
                return state
        return None

    def get(self, handle: str) -> Optional[PageState]:
        return self._pages.get(handle)

    def ensure_page_state(self, page: Any) -> PageState:
        state = self.find(page)
        if state is None:
            state = PageState(handle=f"page-{next(self._handle_ids)}", page=page)
            self._pages[state.handle] = state
        if not state.observed:
            self._attach_listeners(state)
            state.observed = True
        return state

    def observe_context(self, context: Any) -> None:
        for page in list(_read_attr(context, "pages", []) or []):
            self.ensure_page_state(page)
        if any(known is context for known in self._observed_contexts):
            return
        self._observed_contexts.append(context)
        context.on("page", self.ensure_page_state)
        context.on("close", lambda *_: self._forget_context(context))

    def observe_browser(self, browser: Any) -> None:
        for context in list(_read_attr(browser, "contexts", []) or []):
            self.observe_context(context)

    def clear(self) -> None:
        self._pages.clear()
        self._observed_contexts.clear()

    def _forget_context(self, context: Any) -> None:
        self._observed_contexts = [item for item in self._observed_contexts if item is not context]

    def _attach_listeners(self, state: PageState) -> None:
        handle = state.handle
        page = state.page
        page.on("console", lambda msg: self._record_console(handle, msg))
        page.on("request", lambda req: self._record_request(handle, req))
        page.on("requestfinished", lambda req: self._record_finished(handle, req))
        page.on("requestfailed", lambda req: self._record_failed(handle, req))
        page.on("close", lambda *_: self._drop(handle))

    def _drop(self, handle: str) -> None:
        self._pages.pop(handle, None)

    def _record_console(self, handle: str, msg: Any) -> None:
        state = self._pages.get(handle)
        if state is None:
            return
        state.console.append(
            {
                "type": _safe_str(_read_attr(msg, "type")),
                "text": _safe_str(_read_attr(msg, "text")),
                "timestamp": _now_iso(),
                "location": _read_attr(msg, "location", None) or {},
            }
        )

    def _record_request(self, handle: str, req: Any) -> None:
        state = self._pages.get(handle)
        if state is None:
            return
        entry = {
            "url": _safe_str(_read_attr(req, "url")),
            "method": _safe_str(_read_attr(req, "method")),
            "resourceType": _safe_str(_read_attr(req, "resource_type")),
            "timestamp": _now_iso(),
        }
        state.network.append(entry)
        state.requests[id(req)] = entry
        if len(state.requests) > MAX_NETWORK_REQUESTS:
            state.requests.pop(next(iter(state.requests)))

    async def _record_finished(self, handle: str, req: Any) -> None:
        state = self._pages.get(handle)
        if state is None:
            return
        entry = state.requests.pop(id(req), None)
        if entry is None:
            return
        try:
            response = await req.response()
        except Exception as exc:
            logger.debug("browser response lookup failed url=%s error=%s", entry.get("url"), exc)
            return
        if response is None:
            return
        entry["status"] = int(_read_attr(response, "status", 0) or 0)
        entry["ok"] = bool(_read_attr(response, "ok", False))
        entry["fromCache"] = bool(_read_attr(response, "from_service_worker", False))

    def _record_failed(self, handle: str, req: Any) -> None:
        state = self._pages.get(handle)
        if state is None:
            return
        entry = state.requests.pop(id(req), None)
        if entry is None:
            return
        failure = _read_attr(req, "failure", None)
        if isinstance(failure, dict):
            text = failure.get("errorText") or failure.get("error_text")
        else:
            text = _read_attr(failure, "error_text", None) if failure is not None else None
            if text is None and isinstance(failure, str):
                text = failure
        entry["failureText"] = _safe_str(text or "")
