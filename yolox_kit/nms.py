from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .types import Box2D


@dataclass
class NMSConfig:
    iou_threshold: float = 0.45
    # None keeps every surviving box.
    max_detections: Optional[int] = None


def _iou_one_to_many(box: np.ndarray, others: np.ndarray) -> np.ndarray:
    """
    IoU of one xyxy box against (M, 4) xyxy boxes. Zero-area boxes give 0.
    """

    area = max(box[2] - box[0], 0.0) * max(box[3] - box[1], 0.0)
    other_w = np.maximum(0.0, others[:, 2] - others[:, 0])
    other_h = np.maximum(0.0, others[:, 3] - others[:, 1])
    other_areas = other_w * other_h

    w = np.maximum(0.0, np.minimum(box[2], others[:, 2]) - np.maximum(box[0], others[:, 0]))
    h = np.maximum(0.0, np.minimum(box[3], others[:, 3]) - np.maximum(box[1], others[:, 1]))
    inter = w * h
    union = area + other_areas - inter

    valid = (area > 0.0) & (other_areas > 0.0) & (union > 0.0)
    iou = np.zeros_like(inter, dtype=np.float64)
    np.divide(inter, union, out=iou, where=valid)
    return iou


def box_iou(a: Box2D, b: Box2D) -> float:
    iou = _iou_one_to_many(np.array(a.as_xyxy(), dtype=np.float64), np.array([b.as_xyxy()], dtype=np.float64))
    return float(iou[0])


def nms(boxes: np.ndarray, scores: np.ndarray, cfg: NMSConfig) -> np.ndarray:
    """
    Greedy, class-agnostic NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).

    Candidates are visited by descending score (stable, so ties keep input order)
    and accepted only if their IoU with every accepted box is below the threshold.
    Returns indices into `boxes`, in acceptance order.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if boxes.shape[0] != scores.shape[0]:
        raise ValueError(f"Got {boxes.shape[0]} boxes but {scores.shape[0]} scores.")

    order = np.argsort(-scores, kind="stable")
    keep: List[int] = []

    for i in order:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        if keep and np.any(_iou_one_to_many(boxes[i], boxes[keep]) >= cfg.iou_threshold):
            continue
        keep.append(int(i))

    return np.array(keep, dtype=np.int64)


def nms_sorted_boxes(boxes: Sequence[Box2D], iou_threshold: float, max_detections: Optional[int] = None) -> List[int]:
    """
    Suppress overlapping proposals regardless of class.

    Returns indices into `boxes` of the survivors, highest score first.
    """

    if not 0.0 <= iou_threshold <= 1.0:
        raise ValueError(f"iou_threshold must be in [0, 1], got {iou_threshold}")
    if not boxes:
        return []

    xyxy = np.array([b.as_xyxy() for b in boxes], dtype=np.float64)
    scores = np.array([b.score for b in boxes], dtype=np.float64)
    keep = nms(xyxy, scores, NMSConfig(iou_threshold=iou_threshold, max_detections=max_detections))
    return keep.tolist()
