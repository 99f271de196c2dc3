"""Bounding box conversion between COCO pixel boxes and YOLO normalised boxes.

COCO stores a box as ``(x_min, y_min, width, height)`` in pixels.  YOLO
expects ``(x_center, y_center, width, height)`` divided by the image size so
every value lies in ``[0, 1]``.  Boxes that stick out of the image are clipped
to the image borders before conversion; boxes with nothing left after clipping
are reported through the ``keep`` mask of :func:`normalize_many`.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

Box = Tuple[float, float, float, float]


def normalize_many(bboxes: Sequence[Sequence[float]] | np.ndarray, img_width: float, img_height: float) -> Tuple[np.ndarray, np.ndarray]:
    """Convert ``(N, 4)`` COCO boxes of one image to YOLO boxes.

    Args:
        bboxes: Boxes in ``(x_min, y_min, width, height)`` pixel format.
        img_width: Image width in pixels, must be positive.
        img_height: Image height in pixels, must be positive.

    Returns:
        ``(boxes, keep)`` where ``boxes`` is an ``(N, 4)`` float array of
        ``(x_center, y_center, width, height)`` clipped to ``[0, 1]`` and
        ``keep`` is a boolean mask that is ``False`` for boxes with a
        non-positive size or lying entirely outside the image.
    """

    if img_width <= 0 or img_height <= 0:
        raise ValueError(f"image size must be positive, got {img_width}x{img_height}")
    arr = np.asarray(bboxes, dtype=np.float64).reshape(-1, 4)
    scale = np.array([img_width, img_height], dtype=np.float64)

    tl = arr[:, :2] / scale
    br = (arr[:, :2] + arr[:, 2:]) / scale
    valid = (arr[:, 2] > 0) & (arr[:, 3] > 0) & np.isfinite(arr).all(axis=1)

    tl = tl.clip(0.0, 1.0)
    br = br.clip(0.0, 1.0)
    wh = br - tl
    centre = tl + wh / 2
    out = np.concatenate([centre, wh], axis=1)

    keep = valid & (wh > 0).all(axis=1)
    out[~keep] = 0.0
    return out, keep


def normalize(bbox: Sequence[float], img_width: float, img_height: float) -> Optional[Box]:
    """Convert a single COCO box, returning ``None`` when it must be dropped."""

    out, keep = normalize_many([bbox], img_width, img_height)
    if not keep[0]:
        return None
    xc, yc, w, h = out[0].tolist()
    return xc, yc, w, h


def denormalize(box: Sequence[float], img_width: float, img_height: float) -> Box:
    """Inverse of :func:`normalize` for boxes that lie inside the image."""

    xc, yc, w, h = box
    bw = w * img_width
    bh = h * img_height
    return xc * img_width - bw / 2, yc * img_height - bh / 2, bw, bh


__all__ = ["Box", "normalize", "normalize_many", "denormalize"]
