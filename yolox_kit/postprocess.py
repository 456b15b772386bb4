from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import DetectorConfig, validate_threshold
from .grid import grid_to_arrays
from .nms import nms_sorted_boxes
from .remap import remap_labeled_boxes
from .types import Box2D, ClassColorEntry, GridCell, LabeledBox


def decode_proposals(
    output: np.ndarray,
    grid: Sequence[GridCell],
    num_classes: int,
    num_box_fields: int,
    confidence_threshold: float,
    grid_arrays: Optional[Tuple[np.ndarray, np.ndarray, np.ndarray]] = None,
) -> List[Box2D]:
    """
    Decode a flat YOLOX output buffer into boxes above `confidence_threshold`.

    Layout per grid cell i, at offset i * (num_box_fields + num_classes):
    [dx, dy, log_w, log_h, objectness, ..., class_scores...]

    Boxes come back in grid order, not score order.

    Args:
        output: flat float buffer from the model (any shape; it is flattened)
        grid: grid the buffer was produced for
        grid_arrays: optional precomputed (x, y, stride) columns of `grid`
    """

    if num_classes < 1:
        raise ValueError(f"num_classes must be >= 1, got {num_classes}")
    if num_box_fields < 5:
        raise ValueError(f"num_box_fields must be >= 5, got {num_box_fields}")
    validate_threshold("confidence_threshold", confidence_threshold)

    proposal_length = num_classes + num_box_fields
    p = np.asarray(output).reshape(-1)
    if not np.issubdtype(p.dtype, np.floating):
        p = p.astype(np.float32)
    expected = len(grid) * proposal_length
    if p.size != expected:
        raise ValueError(
            f"Output buffer has {p.size} values, expected {expected} "
            f"({len(grid)} grid cells x {proposal_length} fields)."
        )
    if expected == 0:
        return []

    p = p.reshape(len(grid), proposal_length)
    class_scores = p[:, num_box_fields:]
    class_ids = np.argmax(class_scores, axis=1)  # first index wins ties
    class_conf = class_scores[np.arange(class_scores.shape[0]), class_ids]
    scores = p[:, 4] * class_conf

    keep = np.flatnonzero(scores >= confidence_threshold)
    if keep.size == 0:
        return []

    gx, gy, gs = grid_arrays if grid_arrays is not None else grid_to_arrays(grid)
    raw = p[keep].astype(np.float64)
    stride = gs[keep].astype(np.float64)
    cx = (raw[:, 0] + gx[keep]) * stride
    cy = (raw[:, 1] + gy[keep]) * stride
    w = np.exp(raw[:, 2]) * stride
    h = np.exp(raw[:, 3]) * stride

    return [
        Box2D(
            x=float(x0),
            y=float(y0),
            width=float(bw),
            height=float(bh),
            class_index=int(cls_id),
            score=float(score),
        )
        for x0, y0, bw, bh, cls_id, score in zip(
            cx - w / 2, cy - h / 2, w, h, class_ids[keep], scores[keep]
        )
    ]


def get_labeled_boxes(
    proposals: Sequence[Box2D],
    indices: Sequence[int],
    colormap: Sequence[ClassColorEntry],
) -> List[LabeledBox]:
    """
    Attach label and color to the proposals selected by `indices`, keeping index order.
    """

    out: List[LabeledBox] = []
    for i in indices:
        box = proposals[i]
        if not 0 <= box.class_index < len(colormap):
            raise ValueError(f"class_index {box.class_index} has no colormap entry ({len(colormap)} classes)")
        entry = colormap[box.class_index]
        out.append(LabeledBox(bbox=box, label=entry.label, color=entry.color))
    return out


class YoloxPostprocessor:
    """
    Post-process one frame of YOLOX output: decode -> NMS -> labels -> display space.

    NMS is class-agnostic: a box can suppress an overlapping box of another class.
    """

    def __init__(self, cfg: DetectorConfig, colormap: Sequence[ClassColorEntry]):
        if not colormap:
            raise ValueError("colormap must not be empty")
        if cfg.num_classes is not None and cfg.num_classes != len(colormap):
            raise ValueError(f"colormap has {len(colormap)} entries but num_classes is {cfg.num_classes}")
        self.cfg = cfg
        self.colormap = list(colormap)

    @property
    def num_classes(self) -> int:
        return len(self.colormap)

    @property
    def proposal_length(self) -> int:
        return self.cfg.proposal_length(self.num_classes)

    def decode(
        self,
        output: np.ndarray,
        grid: Sequence[GridCell],
        grid_arrays: Optional[Tuple[np.ndarray, np.ndarray, np.ndarray]] = None,
    ) -> List[Box2D]:
        return decode_proposals(
            output,
            grid,
            self.num_classes,
            self.cfg.num_box_fields,
            self.cfg.confidence_threshold,
            grid_arrays=grid_arrays,
        )

    def process(
        self,
        output: np.ndarray,
        grid: Sequence[GridCell],
        input_dims: Tuple[int, int],
        screen_dims: Tuple[float, float],
        offset: Tuple[int, int] = (0, 0),
        mirrored: bool = False,
        grid_arrays: Optional[Tuple[np.ndarray, np.ndarray, np.ndarray]] = None,
    ) -> List[LabeledBox]:
        proposals = self.decode(output, grid, grid_arrays=grid_arrays)
        if not proposals:
            return []

        keep = nms_sorted_boxes(proposals, self.cfg.nms_threshold, max_detections=self.cfg.max_detections)
        labeled = get_labeled_boxes(proposals, keep, self.colormap)

        return remap_labeled_boxes(labeled, input_dims, screen_dims, offset, mirrored)
