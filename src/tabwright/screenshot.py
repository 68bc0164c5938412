"""Fit browser screenshots under the media size cap."""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import List, Optional

from PIL import Image, UnidentifiedImageError

from .errors import BrowserControlError, UpstreamProtocolError
from .logging_utils import _log_browser_event
from .runtime_common import SCREENSHOT_MAX_BYTES, SCREENSHOT_MAX_SIDE

logger = logging.getLogger(__name__)

_SIDE_STEPS = (2000, 1800, 1600, 1400, 1200, 1000, 800)
_QUALITY_STEPS = (85, 75, 65, 55, 45, 35)


@dataclass(frozen=True)
class NormalizedScreenshot:
    data: bytes
    # None when the original buffer was kept as captured.
    content_type: Optional[str] = None


def _side_candidates(longest: int, max_side: int) -> List[int]:
    sides: List[int] = []
    for step in (max_side,) + _SIDE_STEPS:
        side = min(step, max_side, longest)
        if side not in sides:
            sides.append(side)
    return sorted(sides, reverse=True)


def normalize_screenshot_sync(
    data: bytes,
    *,
    max_side: int = SCREENSHOT_MAX_SIDE,
    max_bytes: int = SCREENSHOT_MAX_BYTES,
) -> NormalizedScreenshot:
    """
    Return ``data`` untouched when it already fits, otherwise a JPEG that does.

    The longest side is stepped down from ``max_side`` and, for each size, the
    JPEG quality is lowered until the encoded image is at most ``max_bytes``.
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
            if len(data) <= max_bytes and max(width, height) <= max_side:
                return NormalizedScreenshot(data)
            rgb = image.convert("RGB")
    except UnidentifiedImageError as exc:
        raise UpstreamProtocolError("Screenshot is not a decodable image") from exc

    smallest = None
    for side in _side_candidates(max(width, height), max_side):
        resized = rgb.copy()
        resized.thumbnail((side, side))
        for quality in _QUALITY_STEPS:
            buffer = io.BytesIO()
            resized.save(buffer, format="JPEG", quality=quality, optimize=True)
            size = buffer.tell()
            if smallest is None or size < smallest:
                smallest = size
            if size <= max_bytes:
                _log_browser_event(
                    logger,
                    level=logging.DEBUG,
                    event="screenshot_normalized",
                    original_bytes=len(data),
                    width=resized.width,
                    height=resized.height,
                    quality=quality,
                    bytes=size,
                )
                return NormalizedScreenshot(buffer.getvalue(), "image/jpeg")

    raise BrowserControlError(
        f"Screenshot could not be reduced below {max_bytes} bytes (smallest {smallest})"
    )


async def normalize_screenshot(
    data: bytes,
    *,
    max_side: int = SCREENSHOT_MAX_SIDE,
    max_bytes: int = SCREENSHOT_MAX_BYTES,
) -> NormalizedScreenshot:
    return await asyncio.to_thread(
        normalize_screenshot_sync, data, max_side=max_side, max_bytes=max_bytes
    )
