"""Shared constants and helpers for browser control-plane modules."""

from __future__ import annotations

import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .errors import BrowserControlError, BrowserTimeout, UpstreamProtocolError


MAX_CONSOLE_MESSAGES = 500
MAX_NETWORK_REQUESTS = 1000

REACHABILITY_TIMEOUT_MS = 300
DEFAULT_HTTP_TIMEOUT_MS = 1500
CONNECT_TIMEOUT_MS = 5000

DEFAULT_LOCATOR_TIMEOUT_MS = 8000
DEFAULT_EVENT_TIMEOUT_MS = 10_000
DEFAULT_NAVIGATION_TIMEOUT_MS = 20_000
DEFAULT_SNAPSHOT_TIMEOUT_MS = 5000
MIN_LOCATOR_TIMEOUT_MS = 500
MAX_LOCATOR_TIMEOUT_MS = 60_000
MIN_NAVIGATION_TIMEOUT_MS = 1000
MAX_NAVIGATION_TIMEOUT_MS = 120_000

NEW_TAB_POLL_INTERVAL_MS = 100
NEW_TAB_POLL_DEADLINE_MS = 2000

SLOW_TYPE_DELAY_MS = 75

SCREENSHOT_MAX_BYTES = 5 * 1024 * 1024
SCREENSHOT_MAX_SIDE = 2000


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def _safe_str(value: Any) -> str:
    try:
        return str(value) if value is not None else ""
    except Exception:
        return ""


def _read_attr(obj: Any, name: str, default: Any = "") -> Any:
    """Read a Playwright property, calling it when it is exposed as a method."""
    if obj is None:
        return default
    value = getattr(obj, name, default)
    if callable(value):
        try:
            return value()
        except Exception:
            return default
    return value


def _clamp_timeout(
    timeout_ms: Optional[float],
    *,
    default: int,
    minimum: int,
    maximum: int,
) -> int:
    if timeout_ms is None:
        return max(minimum, min(maximum, int(default)))
    try:
        parsed = int(float(timeout_ms))
    except (TypeError, ValueError):
        parsed = int(default)
    return max(minimum, min(maximum, parsed))


def _parse_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    text = raw.strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int_env(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return max(minimum, int(default))
    try:
        parsed = int(raw.strip())
    except Exception:
        return max(minimum, int(default))
    return max(minimum, parsed)


def _parse_str_env(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    text = raw.strip()
    return text or default


def endpoint_for_cdp_port(cdp_port: int, host: str = "127.0.0.1") -> str:
    return f"http://{host}:{int(cdp_port)}"


@asynccontextmanager
async def automation_call(label: str) -> AsyncIterator[None]:
    """Translate Playwright failures into control-plane errors."""
    try:
        yield
    except BrowserControlError:
        raise
    except PlaywrightTimeoutError as exc:
        raise BrowserTimeout(f"{label} timed out: {exc.message}") from exc
    except PlaywrightError as exc:
        raise UpstreamProtocolError(f"{label} failed: {exc.message}") from exc
