"""
Capture decoding and color handling for document images.

Captures arrive as raw bytes, base64 text or data URLs. A capture that cannot
be decoded is reported to the caller as None so the page can show an empty
placeholder instead.
"""

import base64
import binascii
import logging
from io import BytesIO
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader

logger = logging.getLogger(__name__)

# Luma cutoff for black and white output
BLACK_WHITE_THRESHOLD = 128

# Capture resolution relative to 72 dpi
QUALITY_SCALE = {
    "low": 1.0,
    "medium": 1.5,
    "high": 2.0,
    "ultra": 3.0,
}

Capture = Union[bytes, str, None]


class CaptureError(Exception):
    """Raised when a capture cannot be turned into an image"""


def decode_capture(data: Capture) -> Image.Image:
    """
    Decode capture data into a Pillow image.

    Args:
        data: Raw image bytes, base64 text or a data URL

    Returns:
        Loaded image

    Raises:
        CaptureError: If the data is empty or not a readable image
    """
    if not data:
        raise CaptureError("Capture is empty")
    if not isinstance(data, (bytes, str)):
        raise CaptureError(f"Capture must be bytes or text, not {type(data).__name__}")

    if isinstance(data, str):
        payload = data.split(",", 1)[1] if data.startswith("data:") else data
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CaptureError(f"Capture is not valid base64: {e}")

    try:
        image = Image.open(BytesIO(data))
        image.load()
    except Image.DecompressionBombError as e:
        raise CaptureError(f"Capture is too large: {e}")
    except (UnidentifiedImageError, OSError) as e:
        raise CaptureError(f"Capture is not a readable image: {e}")
    return image


def apply_color_mode(image: Image.Image, color_mode: str) -> Image.Image:
    """
    Convert an image to the document's color mode.

    Grayscale uses ITU-R 601 luma weights. Black and white maps luma above the
    threshold to white and everything else to black.
    """
    if color_mode == "color":
        return image.convert("RGB") if image.mode not in ("RGB", "RGBA") else image
    gray = image.convert("L")
    if color_mode == "blackwhite":
        return gray.point(lambda v: 255 if v > BLACK_WHITE_THRESHOLD else 0)
    return gray


def scale_for_quality(image: Image.Image, target_width: float, quality: str) -> Image.Image:
    """Downscale an image to the pixel width the quality tier needs"""
    max_width = int(target_width * QUALITY_SCALE.get(quality, 2.0))
    if max_width > 0 and image.width > max_width:
        ratio = max_width / image.width
        image = image.resize((max_width, max(1, int(image.height * ratio))))
    return image


def prepare_capture(data: Capture, color_mode: str, quality: str, target_width: float) -> Optional[ImageReader]:
    """
    Decode and process a capture for placement on a page.

    Returns:
        ImageReader ready for drawing, or None if the capture failed
    """
    try:
        image = decode_capture(data)
        image = apply_color_mode(image, color_mode)
        image = scale_for_quality(image, target_width, quality)
    except (CaptureError, ValueError, OSError) as e:
        logger.warning("Capture could not be processed, using placeholder: %s", e)
        return None
    return ImageReader(image)


def convert_color(hex_color: str, color_mode: str) -> colors.Color:
    """Convert a hex color to the document's color mode"""
    color = colors.HexColor(hex_color)
    if color_mode == "color":
        return color
    luma = 0.299 * color.red + 0.587 * color.green + 0.114 * color.blue
    if color_mode == "blackwhite":
        luma = 1.0 if luma * 255 > BLACK_WHITE_THRESHOLD else 0.0
    return colors.Color(luma, luma, luma)
