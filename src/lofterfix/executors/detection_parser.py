"""
Detection tensor parsing.

The detector emits a ``[1, A, B]`` tensor whose trailing axes hold anchors and
per-anchor fields ``(cx, cy, w, h, conf, ...)``. Which axis is which depends on
how the model was exported, so the layout is resolved per tensor: when only one
trailing axis is long enough to hold the fields it is the field axis,
otherwise the larger trailing axis is the anchor axis.
"""

import enum
from typing import Optional, Tuple

import numpy as np
from loguru import logger

from lofterfix.errors import InferenceError
from lofterfix.models.geometry import BoundingBox

CONFIDENCE_FIELD = 4
MIN_FIELDS = CONFIDENCE_FIELD + 1


class Layout(enum.Enum):
    STANDARD = "standard"      # field-major: tensor[0][field][anchor]
    TRANSPOSED = "transposed"  # anchor-major: tensor[0][anchor][field]

    @classmethod
    def resolve(cls, shape: Tuple[int, ...]) -> "Layout":
        dim1, dim2 = shape[-2], shape[-1]
        # only one axis can hold a full field record: [1, 5, 3] is 3 anchors
        standard_fits, transposed_fits = dim1 >= MIN_FIELDS, dim2 >= MIN_FIELDS
        if standard_fits != transposed_fits:
            return cls.STANDARD if standard_fits else cls.TRANSPOSED
        return cls.TRANSPOSED if dim1 > dim2 else cls.STANDARD

    def field_major(self, tensor: np.ndarray) -> np.ndarray:
        """Returns a (fields, anchors) view of the single batch item."""
        rows = tensor[0]
        return rows.T if self is Layout.TRANSPOSED else rows


def _check_shape(tensor: np.ndarray) -> None:
    if tensor.ndim != 3:
        raise InferenceError(f"detector output must have rank 3, got shape {tensor.shape}")
    if tensor.shape[0] != 1:
        raise InferenceError(f"detector output must hold one batch item, got shape {tensor.shape}")


def _argmax_confidence(fields: np.ndarray) -> int:
    # np.argmax returns the first occurrence, so the earliest anchor wins ties
    conf = fields[CONFIDENCE_FIELD].astype(np.float64, copy=True)
    conf[np.isnan(conf)] = -np.inf
    return int(np.argmax(conf))


def best_anchor_index(tensor: np.ndarray) -> Optional[int]:
    """Index of the highest-confidence anchor, or None for an empty tensor."""
    tensor = np.asarray(tensor)
    _check_shape(tensor)
    if tensor.size == 0:
        return None

    layout = Layout.resolve(tensor.shape)
    fields = layout.field_major(tensor)
    if fields.shape[0] < MIN_FIELDS:
        raise InferenceError(
            f"detector output has {fields.shape[0]} fields per anchor, expected at least {MIN_FIELDS} "
            f"(shape {tensor.shape}, layout {layout.value})"
        )
    return _argmax_confidence(fields)


def parse_best_box(tensor: np.ndarray, confidence_threshold: float) -> Optional[BoundingBox]:
    """
    Picks the single best candidate of the detector output.

    The threshold is applied once, to the global maximum, so the result is
    either the best anchor of the whole tensor or None.

    Raises:
        InferenceError: the tensor is not a [1, A, B] array with at least 5 fields.
    """
    tensor = np.asarray(tensor)
    idx = best_anchor_index(tensor)
    if idx is None:
        logger.debug("  › [Parser] Detector output holds no anchors")
        return None

    layout = Layout.resolve(tensor.shape)
    fields = layout.field_major(tensor)
    cx, cy, w, h, conf = (float(v) for v in fields[:MIN_FIELDS, idx])

    if not conf >= confidence_threshold:
        logger.info(f"  › [Parser] Best confidence {conf:.3f} below threshold {confidence_threshold:.3f}")
        return None

    logger.info(f"  ✔ [Parser] Anchor {idx} selected ({layout.value} layout), confidence {conf:.3f}")
    return BoundingBox(cx=cx, cy=cy, w=w, h=h, confidence=conf)
