"""History, capture, verification and pointer tools for BrowserToolService."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from .errors import ValidationError
from .runtime_observe import generate_locator_for_ref
from .service_utils import _as_bool, _as_str, _as_str_list, _require_str, _to_number

if TYPE_CHECKING:
    from .service import ToolHandler, ToolInvocation


class BrowserToolDispatchExtraMixin:
    def _extra_handlers(self) -> Dict[str, "ToolHandler"]:
        return {
            "browser_console_messages": self._tool_console_messages,
            "browser_network_requests": self._tool_network_requests,
            "browser_pdf_save": self._tool_pdf_save,
            "browser_start_tracing": self._tool_start_tracing,
            "browser_stop_tracing": self._tool_stop_tracing,
            "browser_verify_element_visible": self._tool_verify_element_visible,
            "browser_verify_text_visible": self._tool_verify_text_visible,
            "browser_verify_list_visible": self._tool_verify_list_visible,
            "browser_verify_value": self._tool_verify_value,
            "browser_mouse_move_xy": self._tool_mouse_move_xy,
            "browser_mouse_click_xy": self._tool_mouse_click_xy,
            "browser_mouse_drag_xy": self._tool_mouse_drag_xy,
            "browser_generate_locator": self._tool_generate_locator,
        }

    async def _tool_console_messages(self, call: "ToolInvocation") -> Dict[str, Any]:
        tab = await self._tab(call)
        messages = self._runtime.console_messages(
            await self._page(tab),
            level=_as_str(call.args.get("level")),
        )
        return self._ok(tab, messages=messages)

    async def _tool_network_requests(self, call: "ToolInvocation") -> Dict[str, Any]:
        tab = await self._tab(call)
        requests = self._runtime.network_requests(
            await self._page(tab),
            include_static=_as_bool(call.args.get("includeStatic")),
        )
        return self._ok(tab, requests=requests)

    async def _tool_pdf_save(self, call: "ToolInvocation") -> Dict[str, Any]:
        tab = await self._tab(call)
        data = await self._runtime.pdf(await self._page(tab))
        saved = await self._save(data, "application/pdf")
        return self._ok(tab, path=saved.path)

    async def _tool_start_tracing(self, call: "ToolInvocation") -> Dict[str, Any]:
        tab = await self._tab(call)
        await self._runtime.start_tracing(await self._page(tab))
        return self._ok(tab)

    async def _tool_stop_tracing(self, call: "ToolInvocation") -> Dict[str, Any]:
        tab = await self._tab(call)
        data = await self._runtime.stop_tracing(await self._page(tab))
        saved = await self._save(data, "application/zip")
        return self._ok(tab, path=saved.path)

    async def _tool_verify_element_visible(self, call: "ToolInvocation") -> Dict[str, Any]:
        role = _as_str(call.args.get("role"))
        accessible_name = _as_str(call.args.get("accessibleName"))
        if not role or not accessible_name:
            raise ValidationError("role and accessibleName are required")
        tab = await self._tab(call)
        await self._runtime.verify_element_visible(
            await self._page(tab),
            role=role,
            accessible_name=accessible_name,
        )
        return self._ok(tab)

    async def _tool_verify_text_visible(self, call: "ToolInvocation") -> Dict[str, Any]:
        text = _require_str(call.args, "text")
        tab = await self._tab(call)
        await self._runtime.verify_text_visible(await self._page(tab), text=text)
        return self._ok(tab)

    async def _tool_verify_list_visible(self, call: "ToolInvocation") -> Dict[str, Any]:
        ref = _as_str(call.args.get("ref"))
        items = _as_str_list(call.args.get("items"))
        if not ref or not items:
            raise ValidationError("ref and items are required")
        tab = await self._tab(call)
        await self._runtime.verify_list_visible(await self._page(tab), ref=ref, items=items)
        return self._ok(tab)

    async def _tool_verify_value(self, call: "ToolInvocation") -> Dict[str, Any]:
        ref = _as_str(call.args.get("ref"))
        value_type = _as_str(call.args.get("type"))
        if not ref or not value_type:
            raise ValidationError("ref and type are required")
        tab = await self._tab(call)
        await self._runtime.verify_value(
            await self._page(tab),
            ref=ref,
            value_type=value_type,
            value=_as_str(call.args.get("value")) or "",
        )
        return self._ok(tab)

    async def _tool_mouse_move_xy(self, call: "ToolInvocation") -> Dict[str, Any]:
        x = _to_number(call.args.get("x"))
        y = _to_number(call.args.get("y"))
        if x is None or y is None:
            raise ValidationError("x and y are required")
        tab = await self._tab(call)
        await self._runtime.mouse_move(await self._page(tab), x=x, y=y)
        return self._ok(tab)

    async def _tool_mouse_click_xy(self, call: "ToolInvocation") -> Dict[str, Any]:
        x = _to_number(call.args.get("x"))
        y = _to_number(call.args.get("y"))
        if x is None or y is None:
            raise ValidationError("x and y are required")
        tab = await self._tab(call)
        await self._runtime.mouse_click(
            await self._page(tab),
            x=x,
            y=y,
            button=_as_str(call.args.get("button")),
        )
        return self._ok(tab)

    async def _tool_mouse_drag_xy(self, call: "ToolInvocation") -> Dict[str, Any]:
        coords = [_to_number(call.args.get(key)) for key in ("startX", "startY", "endX", "endY")]
        if any(value is None for value in coords):
            raise ValidationError("startX, startY, endX, endY are required")
        start_x, start_y, end_x, end_y = coords
        tab = await self._tab(call)
        await self._runtime.mouse_drag(
            await self._page(tab),
            start_x=start_x,
            start_y=start_y,
            end_x=end_x,
            end_y=end_y,
        )
        return self._ok(tab)

    async def _tool_generate_locator(self, call: "ToolInvocation") -> Dict[str, Any]:
        ref = _require_str(call.args, "ref")
        return self._ok(locator=generate_locator_for_ref(ref))
