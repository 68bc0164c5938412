"""Page interaction and tab tools for BrowserToolService."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from .errors import TargetNotFound, ValidationError
from .runtime_common import SCREENSHOT_MAX_BYTES
from .screenshot import normalize_screenshot
from .service_utils import (
    _as_bool,
    _as_str,
    _as_str_list,
    _require_str,
    _to_bool,
    _to_index,
    _to_number,
)

if TYPE_CHECKING:
    from .service import ToolHandler, ToolInvocation

BROWSER_INSTALL_MESSAGE = (
    "tabwright uses the system Chrome/Chromium; no Playwright browser install needed."
)


class BrowserToolDispatchCoreMixin:
    def _core_handlers(self) -> Dict[str, "ToolHandler"]:
        return {
            "browser_close": self._tool_close,
            "browser_resize": self._tool_resize,
            "browser_handle_dialog": self._tool_handle_dialog,
            "browser_evaluate": self._tool_evaluate,
            "browser_file_upload": self._tool_file_upload,
            "browser_fill_form": self._tool_fill_form,
            "browser_install": self._tool_install,
            "browser_press_key": self._tool_press_key,
            "browser_type": self._tool_type,
            "browser_navigate": self._tool_navigate,
            "browser_navigate_back": self._tool_navigate_back,
            "browser_take_screenshot": self._tool_take_screenshot,
            "browser_snapshot": self._tool_snapshot,
            "browser_click": self._tool_click,
            "browser_drag": self._tool_drag,
            "browser_hover": self._tool_hover,
            "browser_select_option": self._tool_select_option,
            "browser_tabs": self._tool_tabs,
            "browser_wait_for": self._tool_wait_for,
        }

    async def _tool_close(self, call: "ToolInvocation") -> Dict[str, Any]:
        tab = await self._tab(call)
        await self._runtime.close_page(await self._page(tab))
        return self._ok(tab)

    async def _tool_resize(self, call: "ToolInvocation") -> Dict[str, Any]:
        width = _to_number(call.args.get("width"))
        height = _to_number(call.args.get("height"))
        if not width or not height:
            raise ValidationError("width and height are required")
        tab = await self._tab(call)
        await self._runtime.resize(await self._page(tab), width=width, height=height)
        return self._ok(tab)

    async def _tool_handle_dialog(self, call: "ToolInvocation") -> Dict[str, Any]:
        accept = _to_bool(call.args.get("accept"))
        if accept is None:
            raise ValidationError("accept is required")
        tab = await self._tab(call)
        result = await self._runtime.handle_dialog(
            await self._page(tab),
            accept=accept,
            prompt_text=_as_str(call.args.get("promptText")),
        )
        return self._ok(tab, **result)

    async def _tool_evaluate(self, call: "ToolInvocation") -> Dict[str, Any]:
        fn = _require_str(call.args, "function")
        tab = await self._tab(call)
        result = await self._runtime.evaluate(
            await self._page(tab),
            fn=fn,
            ref=_as_str(call.args.get("ref")),
        )
        payload = self._ok(tab)
        payload["result"] = result
        return payload

    async def _tool_file_upload(self, call: "ToolInvocation") -> Dict[str, Any]:
        paths = _as_str_list(call.args.get("paths")) or []
        tab = await self._tab(call)
        await self._runtime.upload_files(await self._page(tab), paths=paths)
        return self._ok(tab)

    async def _tool_fill_form(self, call: "ToolInvocation") -> Dict[str, Any]:
        raw_fields = call.args.get("fields")
        fields = []
        if isinstance(raw_fields, list):
            fields = [item for item in raw_fields if isinstance(item, dict)]
        if not fields:
            raise ValidationError("fields are required")
        tab = await self._tab(call)
        await self._runtime.fill_form(await self._page(tab), fields=fields)
        return self._ok(tab)

    async def _tool_install(self, call: "ToolInvocation") -> Dict[str, Any]:
        return self._ok(message=BROWSER_INSTALL_MESSAGE)

    async def _tool_press_key(self, call: "ToolInvocation") -> Dict[str, Any]:
        key = _require_str(call.args, "key")
        tab = await self._tab(call)
        await self._runtime.press_key(await self._page(tab), key=key)
        return self._ok(tab)

    async def _tool_type(self, call: "ToolInvocation") -> Dict[str, Any]:
        ref = _as_str(call.args.get("ref"))
        text = _as_str(call.args.get("text"))
        if not ref or not text:
            raise ValidationError("ref and text are required")
        tab = await self._tab(call)
        await self._runtime.type_text(
            await self._page(tab),
            ref=ref,
            text=text,
            submit=_as_bool(call.args.get("submit")),
            slowly=_as_bool(call.args.get("slowly")),
        )
        return self._ok(tab)

    async def _tool_navigate(self, call: "ToolInvocation") -> Dict[str, Any]:
        url = _require_str(call.args, "url")
        tab = await self._tab(call)
        final_url = await self._runtime.navigate(await self._page(tab), url=url)
        return self._ok(tab, url=final_url)

    async def _tool_navigate_back(self, call: "ToolInvocation") -> Dict[str, Any]:
        tab = await self._tab(call)
        final_url = await self._runtime.navigate_back(await self._page(tab))
        return self._ok(tab, url=final_url)

    async def _tool_take_screenshot(self, call: "ToolInvocation") -> Dict[str, Any]:
        image_type = "jpeg" if call.args.get("type") == "jpeg" else "png"
        tab = await self._tab(call)
        data = await self._runtime.screenshot(
            await self._page(tab),
            ref=_as_str(call.args.get("ref")),
            full_page=_as_bool(call.args.get("fullPage")),
            image_type=image_type,
        )
        normalized = await normalize_screenshot(data)
        content_type = normalized.content_type or f"image/{image_type}"
        saved = await self._save(normalized.data, content_type, SCREENSHOT_MAX_BYTES)
        return self._ok(
            tab,
            path=saved.path,
            contentType=content_type,
            filename=_as_str(call.args.get("filename")),
        )

    async def _tool_snapshot(self, call: "ToolInvocation") -> Dict[str, Any]:
        filename = _as_str(call.args.get("filename"))
        tab = await self._tab(call)
        snapshot = await self._runtime.snapshot(await self._page(tab))
        if filename:
            saved = await self._save(snapshot.encode("utf-8"), "text/plain")
            return self._ok(tab, path=saved.path, filename=filename)
        return self._ok(tab, snapshot=snapshot)

    async def _tool_click(self, call: "ToolInvocation") -> Dict[str, Any]:
        ref = _require_str(call.args, "ref")
        tab = await self._tab(call)
        await self._runtime.click(
            await self._page(tab),
            ref=ref,
            double_click=_as_bool(call.args.get("doubleClick")),
            button=_as_str(call.args.get("button")),
            modifiers=self._runtime.normalize_modifiers(call.args.get("modifiers")),
        )
        return self._ok(tab)

    async def _tool_drag(self, call: "ToolInvocation") -> Dict[str, Any]:
        start_ref = _as_str(call.args.get("startRef"))
        end_ref = _as_str(call.args.get("endRef"))
        if not start_ref or not end_ref:
            raise ValidationError("startRef and endRef are required")
        tab = await self._tab(call)
        await self._runtime.drag(await self._page(tab), start_ref=start_ref, end_ref=end_ref)
        return self._ok(tab)

    async def _tool_hover(self, call: "ToolInvocation") -> Dict[str, Any]:
        ref = _require_str(call.args, "ref")
        tab = await self._tab(call)
        await self._runtime.hover(await self._page(tab), ref=ref)
        return self._ok(tab)

    async def _tool_select_option(self, call: "ToolInvocation") -> Dict[str, Any]:
        ref = _as_str(call.args.get("ref"))
        values = _as_str_list(call.args.get("values"))
        if not ref or not values:
            raise ValidationError("ref and values are required")
        tab = await self._tab(call)
        await self._runtime.select_option(await self._page(tab), ref=ref, values=values)
        return self._ok(tab)

    async def _tool_wait_for(self, call: "ToolInvocation") -> Dict[str, Any]:
        tab = await self._tab(call)
        await self._runtime.wait_for(
            await self._page(tab),
            time_s=_to_number(call.args.get("time")),
            text=_as_str(call.args.get("text")),
            text_gone=_as_str(call.args.get("textGone")),
        )
        return self._ok(tab)

    async def _tool_tabs(self, call: "ToolInvocation") -> Dict[str, Any]:
        action = _require_str(call.args, "action")
        number = _to_number(call.args.get("index"))
        index = _to_index(number)

        if action == "list":
            if not await self._plane.is_reachable():
                return self._ok(tabs=[])
            tabs = await self._plane.list_tabs()
            return self._ok(tabs=[tab.to_dict() for tab in tabs])

        if action == "new":
            await self._plane.ensure_browser_available()
            created = await self._plane.open_tab("about:blank")
            return {"ok": True, "tab": created.to_dict()}

        if action == "close":
            tabs = await self._plane.list_tabs()
            chosen = self._tab_at(tabs, 0 if number is None else index)
            await self._plane.close_tab(chosen.target_id)
            return self._ok(targetId=chosen.target_id)

        if action == "select":
            if number is None:
                raise ValidationError("index is required")
            tabs = await self._plane.list_tabs()
            chosen = self._tab_at(tabs, index)
            await self._plane.focus_tab(chosen.target_id)
            return self._ok(targetId=chosen.target_id)

        raise ValidationError("unknown tab action")

    @staticmethod
    def _tab_at(tabs: Any, index: Any) -> Any:
        if index is None or index < 0 or index >= len(tabs):
            raise TargetNotFound()
        return tabs[index]
