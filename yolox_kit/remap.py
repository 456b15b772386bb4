from __future__ import annotations

from dataclasses import replace
from typing import List, Sequence, Tuple

from .types import Box2D, LabeledBox


def scale_bounding_box(
    box: Box2D,
    input_dims: Tuple[int, int],
    screen_dims: Tuple[float, float],
    offset: Tuple[int, int],
    mirrored: bool = False,
) -> Box2D:
    """
    Map a model-space box onto the display.

    Args:
        box: box in cropped model-input coordinates
        input_dims: (width, height) of the cropped model input
        screen_dims: (width, height) of the display surface
        offset: (x, y) crop offset, in input pixels, applied during preprocessing
        mirrored: reflect horizontally about the screen center
    """

    in_w, in_h = input_dims
    screen_w, screen_h = screen_dims
    off_x, off_y = offset

    # The crop is centered, so the pre-crop source is the input plus the offset on both sides.
    source_w = in_w + 2 * off_x
    source_h = in_h + 2 * off_y
    if source_w <= 0 or source_h <= 0:
        raise ValueError(f"Source dims must be positive, got {(source_w, source_h)}")

    scale_x = float(screen_w) / source_w
    scale_y = float(screen_h) / source_h

    x = (box.x + off_x) * scale_x
    y = (box.y + off_y) * scale_y
    width = box.width * scale_x
    height = box.height * scale_y

    if mirrored:
        x = float(screen_w) - x - width

    return replace(box, x=x, y=y, width=width, height=height)


def remap_labeled_boxes(
    boxes: Sequence[LabeledBox],
    input_dims: Tuple[int, int],
    screen_dims: Tuple[float, float],
    offset: Tuple[int, int],
    mirrored: bool = False,
) -> List[LabeledBox]:
    return [
        replace(lb, bbox=scale_bounding_box(lb.bbox, input_dims, screen_dims, offset, mirrored))
        for lb in boxes
    ]
