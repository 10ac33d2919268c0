from typing import NamedTuple, Tuple

import cv2
import numpy as np
from loguru import logger

from lofterfix.errors import RepairError
from lofterfix.executors.box_geometry import clamp_region
from lofterfix.models.geometry import ImageRegion


class PatchResult(NamedTuple):
    image: np.ndarray
    changed: bool


def align_reference(reference: np.ndarray, target_shape: Tuple[int, ...]) -> np.ndarray:
    """Resizes the reference to the target's height and width (Lanczos)."""
    height, width = target_shape[:2]
    if reference.shape[:2] == (height, width):
        return reference.copy()
    if height <= 0 or width <= 0 or reference.size == 0:
        raise RepairError(f"cannot resize reference {reference.shape[:2]} to {(height, width)}")
    try:
        resized = cv2.resize(reference, (width, height), interpolation=cv2.INTER_LANCZOS4)
    except cv2.error as e:
        raise RepairError(f"reference resize failed: {e}") from e
    # cv2 drops the channel axis of single-channel input
    if reference.ndim == 3 and resized.ndim == 2:
        resized = resized[:, :, np.newaxis]
    return resized


def repair_region(target: np.ndarray, reference: np.ndarray, region: ImageRegion) -> PatchResult:
    """
    Overwrites the region of the target with the same region of the reference
    resized to the target's dimensions. A hard cut: pixels outside the region
    are returned untouched and nothing is blended at the boundary.
    """
    if target.ndim != reference.ndim or target.shape[2:] != reference.shape[2:]:
        raise RepairError(f"channel layout mismatch: target {target.shape}, reference {reference.shape}")
    if target.dtype != reference.dtype:
        raise RepairError(f"dtype mismatch: target {target.dtype}, reference {reference.dtype}")

    height, width = target.shape[:2]
    region = clamp_region(region, width, height)
    if region.is_empty:
        logger.info("  ! [Repair] Empty region, nothing to copy")
        return PatchResult(target.copy(), False)

    aligned = align_reference(reference, target.shape)
    ref_height, ref_width = aligned.shape[:2]
    region = clamp_region(region, ref_width, ref_height)
    if region.is_empty:
        return PatchResult(target.copy(), False)

    rows, cols = region.slices()
    repaired = target.copy()
    repaired[rows, cols] = aligned[rows, cols]
    logger.info(f"  ✔ [Repair] Copied {region.width}x{region.height} patch at ({region.x}, {region.y})")
    return PatchResult(repaired, True)
