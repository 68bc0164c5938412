"""Capture, history and verification mixin for PlaywrightRuntime."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .errors import UpstreamProtocolError, ValidationError, VerificationFailed
from .logging_utils import _log_browser_event
from .runtime_common import (
    DEFAULT_SNAPSHOT_TIMEOUT_MS,
    MAX_LOCATOR_TIMEOUT_MS,
    MIN_LOCATOR_TIMEOUT_MS,
    _clamp_timeout,
    automation_call,
)

logger = logging.getLogger(__name__)

STATIC_RESOURCE_TYPES = frozenset({"image", "font", "stylesheet", "media"})

_CONSOLE_PRIORITY = {"error": 3, "warning": 2, "info": 1, "log": 1, "debug": 0}


def console_priority(level: Optional[str]) -> int:
    return _CONSOLE_PRIORITY.get(str(level or "").strip().lower(), 1)


def generate_locator_for_ref(ref: str) -> str:
    return f"locator('aria-ref={ref}')"


class RuntimeObserveMixin:
    async def screenshot(
        self,
        page: Any,
        *,
        ref: Optional[str] = None,
        full_page: bool = False,
        image_type: str = "png",
    ) -> bytes:
        if image_type not in {"png", "jpeg"}:
            raise ValidationError("type must be png or jpeg")
        async with automation_call("screenshot"):
            if ref:
                if full_page:
                    raise ValidationError("fullPage is not supported for element screenshots")
                return await self._locator(page, ref).screenshot(type=image_type)
            return await page.screenshot(type=image_type, full_page=bool(full_page))

    async def pdf(self, page: Any) -> bytes:
        async with automation_call("pdf"):
            return await page.pdf(print_background=True)

    async def snapshot(self, page: Any, *, timeout_ms: Optional[float] = None) -> str:
        timeout = _clamp_timeout(
            timeout_ms,
            default=DEFAULT_SNAPSHOT_TIMEOUT_MS,
            minimum=MIN_LOCATOR_TIMEOUT_MS,
            maximum=MAX_LOCATOR_TIMEOUT_MS,
        )
        # mode="ai" emits the [ref=eN] handles that aria-ref locators resolve.
        async with automation_call("snapshot"):
            result = await page.aria_snapshot(mode="ai", timeout=timeout)
        return str(result or "")

    def _is_tracing(self, context: Any) -> bool:
        return any(known is context for known, _ in self._tracing_contexts)

    def _forget_tracing(self, context: Any, *, detach: bool = False) -> None:
        kept = []
        for known, handler in self._tracing_contexts:
            if known is not context:
                kept.append((known, handler))
            elif detach:
                context.remove_listener("close", handler)
        self._tracing_contexts = kept

    async def start_tracing(self, page: Any) -> None:
        context = page.context
        if self._is_tracing(context):
            raise UpstreamProtocolError("Tracing already started")
        async with automation_call("start tracing"):
            await context.tracing.start(screenshots=True, snapshots=True, sources=True)

        def on_close(*_: Any) -> None:
            self._forget_tracing(context)

        context.on("close", on_close)
        self._tracing_contexts.append((context, on_close))
        _log_browser_event(logger, level=logging.INFO, event="tracing_started")

    async def stop_tracing(self, page: Any) -> bytes:
        context = page.context
        if not self._is_tracing(context):
            raise UpstreamProtocolError("Tracing not started")
        trace_path = Path(tempfile.gettempdir()) / f"tabwright-trace-{uuid.uuid4()}.zip"
        async with automation_call("stop tracing"):
            await context.tracing.stop(path=str(trace_path))
        self._forget_tracing(context, detach=True)
        try:
            return await asyncio.to_thread(trace_path.read_bytes)
        finally:
            try:
                os.remove(trace_path)
            except OSError as exc:
                logger.debug("browser trace cleanup failed path=%s error=%s", trace_path, exc)

    def console_messages(self, page: Any, *, level: Optional[str] = None) -> List[Dict[str, Any]]:
        state = self.recorder.ensure_page_state(page)
        messages = list(state.console)
        if not level:
            return messages
        minimum = console_priority(level)
        return [msg for msg in messages if console_priority(msg.get("type")) >= minimum]

    def network_requests(self, page: Any, *, include_static: bool = False) -> List[Dict[str, Any]]:
        state = self.recorder.ensure_page_state(page)
        requests = [dict(entry) for entry in state.network]
        if include_static:
            return requests
        return [
            req
            for req in requests
            if not req.get("resourceType") or req["resourceType"] not in STATIC_RESOURCE_TYPES
        ]

    async def verify_element_visible(self, page: Any, *, role: str, accessible_name: str) -> None:
        async with automation_call("verify element"):
            locator = page.get_by_role(role, name=accessible_name)
            if await locator.count() == 0:
                raise VerificationFailed("element not found")
            if not await locator.first.is_visible():
                raise VerificationFailed("element not visible")

    async def verify_text_visible(self, page: Any, *, text: str) -> None:
        async with automation_call("verify text"):
            locator = page.get_by_text(text).filter(visible=True)
            if await locator.count() == 0:
                raise VerificationFailed("text not found")

    async def verify_list_visible(self, page: Any, *, ref: str, items: Sequence[str]) -> None:
        locator = self._locator(page, ref)
        async with automation_call("verify list"):
            for item in items:
                if await locator.get_by_text(item).count() == 0:
                    raise VerificationFailed(f'item "{item}" not found')

    async def verify_value(self, page: Any, *, ref: str, value_type: str, value: str) -> None:
        locator = self._locator(page, ref)
        async with automation_call("verify value"):
            if value_type in {"checkbox", "radio"}:
                checked = await locator.is_checked()
                if checked != (value == "true"):
                    raise VerificationFailed(
                        f"expected {value}, got {'true' if checked else 'false'}"
                    )
                return
            actual = await locator.input_value()
            if actual != value:
                raise VerificationFailed(f"expected {value}, got {actual}")
