import inspect

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from tabwright.errors import (
    BrowserTimeout,
    UpstreamProtocolError,
    ValidationError,
    VerificationFailed,
)
from tabwright.runtime import PlaywrightRuntime
from tabwright.runtime_interaction import _locator_timeout, _navigation_timeout
from tabwright.runtime_observe import console_priority, generate_locator_for_ref
from tabwright.session_manager import PlaywrightConnectionManager

from fakes import (
    FakeConsoleMessage,
    FakeContext,
    FakeDialog,
    FakeFileChooser,
    FakePage,
    FakeRequest,
)


def make_runtime():
    return PlaywrightRuntime(PlaywrightConnectionManager())


def make_page(target_id="T1"):
    context = FakeContext()
    return context.add_page(FakePage(target_id))


def test_timeouts_are_clamped():
    assert _locator_timeout(None) == 8000
    assert _locator_timeout(10) == 500
    assert _locator_timeout(999_999) == 60_000
    assert _navigation_timeout(None) == 20_000
    assert _navigation_timeout(1) == 1000
    assert _navigation_timeout("not a number") == 20_000


def test_console_priority_orders_levels():
    assert console_priority("error") > console_priority("warning") > console_priority("info")
    assert console_priority("log") == console_priority("info")
    assert console_priority("debug") == 0
    assert console_priority("something-else") == 1


def test_generate_locator_for_ref():
    assert generate_locator_for_ref("e12") == "locator('aria-ref=e12')"


@pytest.mark.asyncio
async def test_click_uses_aria_ref_and_double_click():
    runtime = make_runtime()
    page = make_page()

    await runtime.click(page, ref=" e5 ", double_click=True, button="right", modifiers=["Shift"])

    name, selector, _, kwargs = page.calls[-1]
    assert name == "dblclick"
    assert selector == "aria-ref=e5"
    assert kwargs == {"timeout": 8000, "button": "right", "modifiers": ["Shift"]}


@pytest.mark.asyncio
async def test_click_requires_ref():
    with pytest.raises(ValidationError, match="ref is required"):
        await make_runtime().click(make_page(), ref="  ")


@pytest.mark.asyncio
async def test_type_slowly_presses_each_key_then_submits():
    runtime = make_runtime()
    page = make_page()

    await runtime.type_text(page, ref="e1", text="hello", submit=True, slowly=True)

    names = [call[0] for call in page.calls]
    assert names == ["click", "press_sequentially", "press"]
    assert page.calls[1][3]["delay"] == 75
    assert page.calls[2][2] == ("Enter",)


@pytest.mark.asyncio
async def test_fill_form_checks_boxes_and_fills_text():
    runtime = make_runtime()
    page = make_page()

    filled = await runtime.fill_form(
        page,
        fields=[
            {"ref": "e1", "type": "textbox", "value": "Ada"},
            {"ref": "e2", "type": "checkbox", "value": True},
            {"ref": "e3", "type": "radio", "value": "false"},
            {"ref": "", "type": "textbox", "value": "skipped"},
        ],
    )

    assert filled == 3
    assert page.calls[0][:3] == ("fill", "aria-ref=e1", ("Ada",))
    assert page.calls[1][:3] == ("set_checked", "aria-ref=e2", (True,))
    assert page.calls[2][:3] == ("set_checked", "aria-ref=e3", (False,))


@pytest.mark.asyncio
async def test_evaluate_on_page_and_element():
    runtime = make_runtime()
    page = make_page()

    assert await runtime.evaluate(page, fn="() => 40 + 2") == 42
    assert await runtime.evaluate(page, fn="(el) => true", ref="e1") == {"element": True}


@pytest.mark.asyncio
async def test_upload_files_sets_paths_on_chooser():
    runtime = make_runtime()
    page = make_page()
    chooser = FakeFileChooser()
    page.pending_events["filechooser"] = chooser

    await runtime.upload_files(page, paths=["/tmp/a.txt"])

    assert chooser.files == ["/tmp/a.txt"]
    assert page.calls[0] == ("wait_for_event", "filechooser", 10_000)


@pytest.mark.asyncio
async def test_upload_without_paths_leaves_chooser_untouched():
    runtime = make_runtime()
    page = make_page()
    chooser = FakeFileChooser()
    page.pending_events["filechooser"] = chooser

    await runtime.upload_files(page, paths=[])

    assert chooser.files is None


@pytest.mark.asyncio
async def test_handle_dialog_accepts_with_prompt_text():
    runtime = make_runtime()
    page = make_page()
    dialog = FakeDialog(message="Name?", type_="prompt")
    page.pending_events["dialog"] = dialog

    result = await runtime.handle_dialog(page, accept=True, prompt_text="Ada")

    assert result == {"message": "Name?", "type": "prompt"}
    assert dialog.accepted is True
    assert dialog.prompt_text == "Ada"


@pytest.mark.asyncio
async def test_navigate_returns_final_url():
    runtime = make_runtime()
    page = make_page()

    assert await runtime.navigate(page, url="https://example.test/next") == "https://example.test/next"
    assert await runtime.navigate_back(page) == "https://example.test/previous"


@pytest.mark.asyncio
async def test_wait_for_time_and_text():
    runtime = make_runtime()
    page = make_page()

    await runtime.wait_for(page, time_s=1.5, text="Done", text_gone="Loading")

    assert page.calls[0] == ("wait_for_timeout", 1500.0)
    assert page.calls[1][3] == {"state": "visible", "timeout": 20_000}
    assert page.calls[2][3] == {"state": "hidden", "timeout": 20_000}


@pytest.mark.asyncio
async def test_mouse_drag_moves_presses_and_releases():
    runtime = make_runtime()
    page = make_page()

    await runtime.mouse_drag(page, start_x=1, start_y=2, end_x=30, end_y=40)

    assert page.calls == [
        ("mouse.move", 1, 2),
        ("mouse.down",),
        ("mouse.move", 30, 40),
        ("mouse.up",),
    ]


@pytest.mark.asyncio
async def test_element_screenshot_rejects_full_page():
    runtime = make_runtime()
    page = make_page()

    with pytest.raises(ValidationError):
        await runtime.screenshot(page, ref="e1", full_page=True)
    assert await runtime.screenshot(page, ref="e1") == b"element-shot"
    assert await runtime.screenshot(page, full_page=True, image_type="jpeg") == b"page-shot"
    assert page.calls[-1] == ("screenshot", {"type": "jpeg", "full_page": True})


@pytest.mark.asyncio
async def test_snapshot_reads_full_text():
    runtime = make_runtime()
    page = make_page()

    assert await runtime.snapshot(page) == "- document [ref=e1]"
    assert page.calls[-1] == ("aria_snapshot", "ai", 5000)
    await runtime.snapshot(page, timeout_ms=999_999)
    assert page.calls[-1] == ("aria_snapshot", "ai", 60_000)


def test_installed_playwright_page_supports_ai_snapshots():
    from playwright.async_api import Page

    parameters = inspect.signature(Page.aria_snapshot).parameters

    assert "mode" in parameters
    assert "timeout" in parameters


@pytest.mark.asyncio
async def test_snapshot_errors_become_upstream_errors():
    from playwright.async_api import Error as PlaywrightError

    class DetachedPage(FakePage):
        async def aria_snapshot(self, **kwargs):
            raise PlaywrightError("Target page, context or browser has been closed")

    with pytest.raises(UpstreamProtocolError, match="has been closed"):
        await make_runtime().snapshot(DetachedPage())


@pytest.mark.asyncio
async def test_tracing_lifecycle_per_context():
    runtime = make_runtime()
    page = make_page()

    with pytest.raises(UpstreamProtocolError, match="Tracing not started"):
        await runtime.stop_tracing(page)

    await runtime.start_tracing(page)
    with pytest.raises(UpstreamProtocolError, match="Tracing already started"):
        await runtime.start_tracing(page)

    data = await runtime.stop_tracing(page)
    assert data == b"PK-trace"
    assert page.context.tracing.started == 1

    await runtime.start_tracing(page)
    assert page.context.tracing.started == 2


@pytest.mark.asyncio
async def test_closed_context_stops_counting_as_tracing():
    runtime = make_runtime()
    page = make_page()
    context = page.context

    await runtime.start_tracing(page)
    context.emit("close", context)

    assert not runtime._is_tracing(context)
    with pytest.raises(UpstreamProtocolError, match="Tracing not started"):
        await runtime.stop_tracing(page)


@pytest.mark.asyncio
async def test_stop_tracing_detaches_close_listener():
    runtime = make_runtime()
    page = make_page()
    before = len(page.context.listeners["close"])

    await runtime.start_tracing(page)
    assert len(page.context.listeners["close"]) == before + 1
    await runtime.stop_tracing(page)

    assert len(page.context.listeners["close"]) == before
    assert runtime._tracing_contexts == []


@pytest.mark.asyncio
async def test_console_messages_filter_by_minimum_level():
    runtime = make_runtime()
    page = make_page()
    runtime.recorder.ensure_page_state(page)
    for level in ("debug", "log", "warning", "error"):
        page.emit("console", FakeConsoleMessage(level, f"{level} line"))

    assert len(runtime.console_messages(page)) == 4
    warnings = runtime.console_messages(page, level="warning")
    assert [msg["type"] for msg in warnings] == ["warning", "error"]


@pytest.mark.asyncio
async def test_network_requests_hide_static_resources_by_default():
    runtime = make_runtime()
    page = make_page()
    runtime.recorder.ensure_page_state(page)
    page.emit("request", FakeRequest("https://example.test/", resource_type="document"))
    page.emit("request", FakeRequest("https://example.test/logo.png", resource_type="image"))
    page.emit("request", FakeRequest("https://example.test/site.css", resource_type="stylesheet"))

    assert [req["url"] for req in runtime.network_requests(page)] == ["https://example.test/"]
    assert len(runtime.network_requests(page, include_static=True)) == 3


@pytest.mark.asyncio
async def test_verify_checks_raise_on_mismatch():
    runtime = make_runtime()
    page = make_page()
    page.counts["text=Missing"] = 0
    page.values["aria-ref=e4"] = "actual"
    page.checked["aria-ref=e5"] = True

    await runtime.verify_text_visible(page, text="Present")
    with pytest.raises(VerificationFailed, match="text not found"):
        await runtime.verify_text_visible(page, text="Missing")
    with pytest.raises(VerificationFailed, match="expected wanted, got actual"):
        await runtime.verify_value(page, ref="e4", value_type="textbox", value="wanted")
    await runtime.verify_value(page, ref="e5", value_type="checkbox", value="true")


@pytest.mark.asyncio
async def test_playwright_timeout_becomes_browser_timeout():
    runtime = make_runtime()
    page = make_page()

    async def slow_goto(url, **kwargs):
        raise PlaywrightTimeoutError("Timeout 20000ms exceeded.")

    page.goto = slow_goto

    with pytest.raises(BrowserTimeout, match="navigate timed out"):
        await runtime.navigate(page, url="https://example.test")
