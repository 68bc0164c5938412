"""Input and navigation mixin for PlaywrightRuntime."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .errors import ValidationError
from .logging_utils import _log_browser_event
from .runtime_common import (
    DEFAULT_EVENT_TIMEOUT_MS,
    DEFAULT_LOCATOR_TIMEOUT_MS,
    DEFAULT_NAVIGATION_TIMEOUT_MS,
    MAX_LOCATOR_TIMEOUT_MS,
    MAX_NAVIGATION_TIMEOUT_MS,
    MIN_LOCATOR_TIMEOUT_MS,
    MIN_NAVIGATION_TIMEOUT_MS,
    SLOW_TYPE_DELAY_MS,
    _clamp_timeout,
    _read_attr,
    _safe_str,
    automation_call,
)

logger = logging.getLogger(__name__)

_CHECKABLE_FIELD_TYPES = {"checkbox", "radio"}


def _locator_timeout(timeout_ms: Optional[float], default: int = DEFAULT_LOCATOR_TIMEOUT_MS) -> int:
    return _clamp_timeout(
        timeout_ms,
        default=default,
        minimum=MIN_LOCATOR_TIMEOUT_MS,
        maximum=MAX_LOCATOR_TIMEOUT_MS,
    )


def _navigation_timeout(timeout_ms: Optional[float]) -> int:
    return _clamp_timeout(
        timeout_ms,
        default=DEFAULT_NAVIGATION_TIMEOUT_MS,
        minimum=MIN_NAVIGATION_TIMEOUT_MS,
        maximum=MAX_NAVIGATION_TIMEOUT_MS,
    )


def _require_ref(ref: Optional[str], name: str = "ref") -> str:
    clean = _safe_str(ref).strip()
    if not clean:
        raise ValidationError(f"{name} is required")
    return clean


class RuntimeInteractionMixin:
    async def click(
        self,
        page: Any,
        *,
        ref: str,
        double_click: bool = False,
        button: Optional[str] = None,
        modifiers: Optional[Sequence[str]] = None,
        timeout_ms: Optional[float] = None,
    ) -> None:
        locator = self._locator(page, _require_ref(ref))
        kwargs: Dict[str, Any] = {"timeout": _locator_timeout(timeout_ms)}
        if button:
            kwargs["button"] = button
        if modifiers:
            kwargs["modifiers"] = list(modifiers)
        async with automation_call("click"):
            if double_click:
                await locator.dblclick(**kwargs)
            else:
                await locator.click(**kwargs)

    async def hover(self, page: Any, *, ref: str, timeout_ms: Optional[float] = None) -> None:
        locator = self._locator(page, _require_ref(ref))
        async with automation_call("hover"):
            await locator.hover(timeout=_locator_timeout(timeout_ms))

    async def drag(
        self,
        page: Any,
        *,
        start_ref: str,
        end_ref: str,
        timeout_ms: Optional[float] = None,
    ) -> None:
        start = _safe_str(start_ref).strip()
        end = _safe_str(end_ref).strip()
        if not start or not end:
            raise ValidationError("startRef and endRef are required")
        async with automation_call("drag"):
            await self._locator(page, start).drag_to(
                self._locator(page, end),
                timeout=_locator_timeout(timeout_ms),
            )

    async def select_option(
        self,
        page: Any,
        *,
        ref: str,
        values: Sequence[str],
        timeout_ms: Optional[float] = None,
    ) -> None:
        locator = self._locator(page, _require_ref(ref))
        if not values:
            raise ValidationError("values are required")
        async with automation_call("select option"):
            await locator.select_option(list(values), timeout=_locator_timeout(timeout_ms))

    async def press_key(self, page: Any, *, key: str, delay_ms: Optional[float] = None) -> None:
        clean_key = _safe_str(key).strip()
        if not clean_key:
            raise ValidationError("key is required")
        async with automation_call("press key"):
            await page.keyboard.press(clean_key, delay=max(0, int(delay_ms or 0)))

    async def type_text(
        self,
        page: Any,
        *,
        ref: str,
        text: str,
        submit: bool = False,
        slowly: bool = False,
        timeout_ms: Optional[float] = None,
    ) -> None:
        locator = self._locator(page, _require_ref(ref))
        timeout = _locator_timeout(timeout_ms)
        value = _safe_str(text)
        async with automation_call("type"):
            if slowly:
                await locator.click(timeout=timeout)
                await locator.press_sequentially(value, delay=SLOW_TYPE_DELAY_MS, timeout=timeout)
            else:
                await locator.fill(value, timeout=timeout)
            if submit:
                await locator.press("Enter", timeout=timeout)

    async def fill_form(self, page: Any, *, fields: Iterable[Dict[str, Any]]) -> int:
        filled = 0
        async with automation_call("fill form"):
            for field in fields:
                ref = _safe_str(field.get("ref")).strip()
                field_type = _safe_str(field.get("type")).strip()
                if not ref or not field_type:
                    continue
                value = field.get("value")
                text = "" if value is None else str(value)
                if isinstance(value, bool):
                    text = "true" if value else "false"
                locator = self._locator(page, ref)
                if field_type in _CHECKABLE_FIELD_TYPES:
                    await locator.set_checked(text == "true")
                else:
                    await locator.fill(text)
                filled += 1
        return filled

    async def evaluate(self, page: Any, *, fn: str, ref: Optional[str] = None) -> Any:
        source = _safe_str(fn).strip()
        if not source:
            raise ValidationError("function is required")
        async with automation_call("evaluate"):
            if ref:
                return await self._locator(page, ref).evaluate(source)
            return await page.evaluate(source)

    async def upload_files(
        self,
        page: Any,
        *,
        paths: Optional[Sequence[str]] = None,
        timeout_ms: Optional[float] = None,
    ) -> None:
        timeout = _locator_timeout(timeout_ms, DEFAULT_EVENT_TIMEOUT_MS)
        async with automation_call("file upload"):
            file_chooser = await page.wait_for_event("filechooser", timeout=timeout)
            if not paths:
                _log_browser_event(logger, level=logging.DEBUG, event="file_chooser_skipped")
                return
            await file_chooser.set_files(list(paths))

    async def handle_dialog(
        self,
        page: Any,
        *,
        accept: bool,
        prompt_text: Optional[str] = None,
        timeout_ms: Optional[float] = None,
    ) -> Dict[str, str]:
        timeout = _locator_timeout(timeout_ms, DEFAULT_EVENT_TIMEOUT_MS)
        async with automation_call("dialog"):
            dialog = await page.wait_for_event("dialog", timeout=timeout)
            message = _safe_str(_read_attr(dialog, "message"))
            dialog_type = _safe_str(_read_attr(dialog, "type"))
            if accept:
                if prompt_text is None:
                    await dialog.accept()
                else:
                    await dialog.accept(prompt_text)
            else:
                await dialog.dismiss()
        return {"message": message, "type": dialog_type}

    async def navigate(self, page: Any, *, url: str, timeout_ms: Optional[float] = None) -> str:
        clean_url = _safe_str(url).strip()
        if not clean_url:
            raise ValidationError("url is required")
        async with automation_call("navigate"):
            await page.goto(clean_url, timeout=_navigation_timeout(timeout_ms))
        return _safe_str(_read_attr(page, "url"))

    async def navigate_back(self, page: Any, *, timeout_ms: Optional[float] = None) -> str:
        async with automation_call("navigate back"):
            await page.go_back(timeout=_navigation_timeout(timeout_ms))
        return _safe_str(_read_attr(page, "url"))

    async def wait_for(
        self,
        page: Any,
        *,
        time_s: Optional[float] = None,
        text: Optional[str] = None,
        text_gone: Optional[str] = None,
        timeout_ms: Optional[float] = None,
    ) -> None:
        timeout = _clamp_timeout(
            timeout_ms,
            default=DEFAULT_NAVIGATION_TIMEOUT_MS,
            minimum=MIN_LOCATOR_TIMEOUT_MS,
            maximum=MAX_NAVIGATION_TIMEOUT_MS,
        )
        async with automation_call("wait for"):
            if time_s is not None:
                await page.wait_for_timeout(max(0.0, float(time_s)) * 1000)
            if text:
                await page.get_by_text(text).first.wait_for(state="visible", timeout=timeout)
            if text_gone:
                await page.get_by_text(text_gone).first.wait_for(state="hidden", timeout=timeout)

    async def resize(self, page: Any, *, width: float, height: float) -> None:
        async with automation_call("resize"):
            await page.set_viewport_size(
                {"width": max(1, int(width)), "height": max(1, int(height))}
            )

    async def close_page(self, page: Any) -> None:
        async with automation_call("close page"):
            await page.close()

    async def mouse_move(self, page: Any, *, x: float, y: float) -> None:
        async with automation_call("mouse move"):
            await page.mouse.move(x, y)

    async def mouse_click(
        self,
        page: Any,
        *,
        x: float,
        y: float,
        button: Optional[str] = None,
    ) -> None:
        kwargs: Dict[str, Any] = {}
        if button:
            kwargs["button"] = button
        async with automation_call("mouse click"):
            await page.mouse.click(x, y, **kwargs)

    async def mouse_drag(
        self,
        page: Any,
        *,
        start_x: float,
        start_y: float,
        end_x: float,
        end_y: float,
    ) -> None:
        async with automation_call("mouse drag"):
            await page.mouse.move(start_x, start_y)
            await page.mouse.down()
            await page.mouse.move(end_x, end_y)
            await page.mouse.up()

    @staticmethod
    def normalize_modifiers(raw: Any) -> List[str]:
        if not raw:
            return []
        if isinstance(raw, str):
            raw = [raw]
        return [str(item).strip() for item in raw if str(item).strip()]
