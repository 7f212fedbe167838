"""
Screenshot Utilities
====================

Pillow helpers for the screenshots that feed the vision model.

Provides functions for:
- Reading image dimensions from raw PNG bytes
- Building the blank fallback screenshot
- Shrinking screenshots for previews sent to web clients
"""

import base64
import io
from functools import lru_cache
from typing import Tuple

from PIL import Image

from phone_agent.device.base import Screenshot
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

FALLBACK_WIDTH = 1080
FALLBACK_HEIGHT = 2400


def get_image_dimensions(image_bytes: bytes) -> Tuple[int, int]:
    """
    Get the dimensions of an encoded image.

    Args:
        image_bytes: Raw PNG/JPEG bytes.

    Returns:
        Tuple of (width, height).

    Raises:
        PIL.UnidentifiedImageError: If the bytes are not an image.
    """
    with Image.open(io.BytesIO(image_bytes)) as image:
        return image.width, image.height


@lru_cache(maxsize=4)
def _blank_png(width: int, height: int) -> str:
    image = Image.new("RGB", (width, height), color=(0, 0, 0))
    output = io.BytesIO()
    image.save(output, format="PNG")
    return base64.b64encode(output.getvalue()).decode("utf-8")


def blank_screenshot(
    width: int = FALLBACK_WIDTH,
    height: int = FALLBACK_HEIGHT,
) -> Screenshot:
    """
    Build the black screenshot used when capture fails.

    The model always needs an image, so a deterministic blank one stands in.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        A fallback Screenshot.
    """
    return Screenshot(
        base64=_blank_png(width, height),
        width=width,
        height=height,
        is_fallback=True,
    )


def resize_for_preview(
    screenshot_b64: str,
    max_width: int = 540,
    max_height: int = 1200,
) -> str:
    """
    Shrink a screenshot for display in a client.

    Args:
        screenshot_b64: Base64-encoded PNG screenshot.
        max_width: Maximum width.
        max_height: Maximum height.

    Returns:
        Base64-encoded JPEG, or the original when it already fits.
    """
    image = Image.open(io.BytesIO(base64.b64decode(screenshot_b64)))
    if image.width <= max_width and image.height <= max_height:
        return screenshot_b64

    image.thumbnail((max_width, max_height), Image.Resampling.LANCZOS)
    if image.mode in ("RGBA", "P"):
        image = image.convert("RGB")

    output = io.BytesIO()
    image.save(output, format="JPEG", quality=80, optimize=True)

    logger.debug("Screenshot resized for preview", size=f"{image.width}x{image.height}")
    return base64.b64encode(output.getvalue()).decode("utf-8")
