"""
Model space to image space conversion of a detected box.

The detector always consumes a square input, whatever the aspect ratio of the
source image, so x and y are scaled independently.
"""

import math

from lofterfix.models.geometry import EMPTY_REGION, BoundingBox, ImageRegion


def round_half_away(value: float) -> int:
    """Rounds to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def clamp_region(region: ImageRegion, image_width: int, image_height: int) -> ImageRegion:
    """
    Clips the origin into the image, then shrinks width / height so the region
    ends inside the image. The origin is never moved to compensate, so padding
    near an edge ends up asymmetric.
    """
    x = min(max(region.x, 0), max(image_width - 1, 0))
    y = min(max(region.y, 0), max(image_height - 1, 0))
    width = max(min(region.width, image_width - x), 0)
    height = max(min(region.height, image_height - y), 0)
    return ImageRegion(x=x, y=y, width=width, height=height)


def box_to_region(
    box: BoundingBox,
    model_input_size: int,
    image_width: int,
    image_height: int,
    padding_ratio: float,
) -> ImageRegion:
    """
    Converts a center-format box from model input space into a padded pixel
    rectangle clamped to the image. Never raises; unusable input gives an
    empty region.

    Example:
        box (320, 240, 100, 50) on a 1280x960 image, model input 640,
        padding 0.2 -> ImageRegion(500, 308, 280, 105)
    """
    cx, cy, w, h = box.cx, box.cy, box.w, box.h
    if model_input_size <= 0 or not all(math.isfinite(v) for v in (cx, cy, w, h, padding_ratio)):
        return EMPTY_REGION

    # normalized output
    if w < 1.0:
        cx, cy, w, h = (v * model_input_size for v in (cx, cy, w, h))

    scale_x = image_width / model_input_size
    scale_y = image_height / model_input_size

    x = (cx - w / 2) * scale_x
    y = (cy - h / 2) * scale_y
    width = w * scale_x
    height = h * scale_y

    pad_w = width * padding_ratio
    pad_h = height * padding_ratio
    x -= pad_w
    y -= pad_h
    width += 2 * pad_w
    height += 2 * pad_h

    if not all(math.isfinite(v) for v in (x, y, width, height)):
        return EMPTY_REGION

    region = ImageRegion(
        x=round_half_away(x),
        y=round_half_away(y),
        width=round_half_away(width),
        height=round_half_away(height),
    )
    return clamp_region(region, image_width, image_height)
