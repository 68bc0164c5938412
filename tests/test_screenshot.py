import io

import pytest
from PIL import Image

from tabwright.errors import BrowserControlError, UpstreamProtocolError
from tabwright.runtime_common import SCREENSHOT_MAX_BYTES
from tabwright.screenshot import (
    _side_candidates,
    normalize_screenshot,
    normalize_screenshot_sync,
)

from fakes import image_bytes


def decoded(data):
    with Image.open(io.BytesIO(data)) as image:
        return image.format, image.size


def test_small_screenshot_is_kept_as_captured():
    data = image_bytes(640, 480)

    result = normalize_screenshot_sync(data)

    assert result.data == data
    assert result.content_type is None


def test_side_candidates_never_upscale():
    assert _side_candidates(900, 2000) == [900, 800]
    assert _side_candidates(4000, 2000) == [2000, 1800, 1600, 1400, 1200, 1000, 800]


def test_wide_screenshot_is_downscaled_keeping_aspect_ratio():
    result = normalize_screenshot_sync(image_bytes(4000, 1000), max_side=2000)

    assert result.content_type == "image/jpeg"
    assert decoded(result.data) == ("JPEG", (2000, 500))


def test_heavy_screenshot_is_reencoded_under_the_byte_cap():
    data = image_bytes(1600, 1600, noise=True)
    assert len(data) > SCREENSHOT_MAX_BYTES

    result = normalize_screenshot_sync(data)

    assert result.content_type == "image/jpeg"
    assert len(result.data) <= SCREENSHOT_MAX_BYTES
    image_format, size = decoded(result.data)
    assert image_format == "JPEG"
    assert max(size) <= 1600


def test_unreachable_byte_cap_raises():
    with pytest.raises(BrowserControlError, match="could not be reduced below 10 bytes"):
        normalize_screenshot_sync(image_bytes(900, 900), max_bytes=10)


def test_undecodable_buffer_is_an_upstream_error():
    with pytest.raises(UpstreamProtocolError, match="not a decodable image"):
        normalize_screenshot_sync(b"not an image")


@pytest.mark.asyncio
async def test_normalize_runs_off_the_event_loop():
    result = await normalize_screenshot(image_bytes(2400, 1200), max_side=1200)

    assert result.content_type == "image/jpeg"
    assert decoded(result.data)[1] == (1200, 600)
