import pytest

from tabwright.page_events import PageEventRecorder
from tabwright.runtime_common import MAX_CONSOLE_MESSAGES, MAX_NETWORK_REQUESTS

from fakes import (
    FakeConsoleMessage,
    FakeContext,
    FakePage,
    FakeRequest,
    FakeResponse,
)


def test_listeners_attach_once_per_page():
    recorder = PageEventRecorder()
    page = FakePage()

    first = recorder.ensure_page_state(page)
    second = recorder.ensure_page_state(page)

    assert first is second
    assert first.handle == "page-1"
    assert len(page.listeners["console"]) == 1
    assert len(page.listeners["close"]) == 1


def test_console_history_is_capped_fifo():
    recorder = PageEventRecorder()
    page = FakePage()
    state = recorder.ensure_page_state(page)

    for i in range(MAX_CONSOLE_MESSAGES + 5):
        page.emit("console", FakeConsoleMessage("log", f"message {i}"))

    assert len(state.console) == MAX_CONSOLE_MESSAGES
    assert state.console[0]["text"] == "message 5"
    assert state.console[-1]["text"] == f"message {MAX_CONSOLE_MESSAGES + 4}"
    assert state.console[-1]["type"] == "log"
    assert state.console[-1]["timestamp"].endswith("Z")


def test_network_history_is_capped_fifo():
    recorder = PageEventRecorder()
    page = FakePage()
    state = recorder.ensure_page_state(page)

    for i in range(MAX_NETWORK_REQUESTS + 3):
        page.emit("request", FakeRequest(f"https://example.test/{i}"))

    assert len(state.network) == MAX_NETWORK_REQUESTS
    assert state.network[0]["url"] == "https://example.test/3"
    assert len(state.requests) <= MAX_NETWORK_REQUESTS


@pytest.mark.asyncio
async def test_finished_request_is_annotated_with_response():
    recorder = PageEventRecorder()
    page = FakePage()
    state = recorder.ensure_page_state(page)
    request = FakeRequest(
        "https://example.test/api",
        method="POST",
        resource_type="fetch",
        response=FakeResponse(status=201, from_service_worker=True),
    )

    page.emit("request", request)
    await page.emit_async("requestfinished", request)

    entry = state.network[-1]
    assert entry["method"] == "POST"
    assert entry["resourceType"] == "fetch"
    assert entry["status"] == 201
    assert entry["ok"] is True
    assert entry["fromCache"] is True
    assert state.requests == {}


def test_failed_request_records_failure_text():
    recorder = PageEventRecorder()
    page = FakePage()
    state = recorder.ensure_page_state(page)
    request = FakeRequest("https://example.test/missing", failure="net::ERR_NAME_NOT_RESOLVED")

    page.emit("request", request)
    page.emit("requestfailed", request)

    assert state.network[-1]["failureText"] == "net::ERR_NAME_NOT_RESOLVED"
    assert "status" not in state.network[-1]


def test_close_drops_page_state():
    recorder = PageEventRecorder()
    page = FakePage()
    state = recorder.ensure_page_state(page)

    page.emit("close", page)

    assert recorder.get(state.handle) is None
    assert recorder.find(page) is None
    assert len(recorder) == 0


def test_context_pages_are_observed_on_creation():
    recorder = PageEventRecorder()
    context = FakeContext()
    existing = context.add_page(FakePage("T1"))

    recorder.observe_context(context)
    recorder.observe_context(context)
    late = context.add_page(FakePage("T2"))

    assert recorder.find(existing) is not None
    assert recorder.find(late) is not None
    assert len(context.listeners["page"]) == 1
    assert len(late.listeners["console"]) == 1
