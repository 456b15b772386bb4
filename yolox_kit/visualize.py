from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .types import RGBA, LabeledBox


def rgba_to_bgr(color: RGBA) -> Tuple[int, int, int]:
    """
    Colormap colors are RGBA floats in [0, 1]; OpenCV draws with BGR ints.
    """

    r, g, b = (int(round(float(np.clip(c, 0.0, 1.0)) * 255)) for c in color[:3])
    return b, g, r


def draw_labeled_boxes(
    image_bgr: np.ndarray,
    boxes: Iterable[LabeledBox],
    *,
    show_score: bool = True,
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw display-space boxes with their colormap label and color; returns a copy.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_labeled_boxes(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for lb in boxes:
        x1, y1, x2, y2 = lb.bbox.as_xyxy()
        x1i = int(np.clip(round(x1), 0, w - 1))
        y1i = int(np.clip(round(y1), 0, h - 1))
        x2i = int(np.clip(round(x2), 0, w - 1))
        y2i = int(np.clip(round(y2), 0, h - 1))

        color = rgba_to_bgr(lb.color)
        cv2.rectangle(out, (x1i, y1i), (x2i, y2i), color, thickness=box_thickness)

        label = f"{lb.label} {lb.bbox.score:.2f}" if show_score else lb.label
        (tw, th), baseline = cv2.getTextSize(label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        # Label above the box when it fits, else inside.
        y_text_top = y1i - th - baseline
        if y_text_top < 0:
            y_text_top = y1i

        cv2.rectangle(
            out,
            (x1i, y_text_top),
            (min(x1i + tw, w - 1), min(y_text_top + th + baseline, h - 1)),
            color,
            thickness=-1,
        )
        cv2.putText(
            out,
            label,
            (x1i, min(y_text_top + th, h - 1)),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out
