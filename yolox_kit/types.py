from dataclasses import dataclass
from typing import Tuple

RGBA = Tuple[float, float, float, float]


@dataclass(frozen=True)
class GridCell:
    """
    One anchor-free grid position at one feature-map scale.
    """

    x: int
    y: int
    stride: int


@dataclass(frozen=True)
class Box2D:
    """
    Axis-aligned box with a top-left origin.

    Decoded boxes are in model-input space; after remapping the same type
    carries display-space coordinates.
    """

    x: float
    y: float
    width: float
    height: float
    class_index: int
    score: float

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass(frozen=True)
class ClassColorEntry:
    label: str
    color: RGBA


@dataclass(frozen=True)
class LabeledBox:
    bbox: Box2D
    label: str
    color: RGBA


@dataclass(frozen=True)
class FrameResult:
    """
    Result of one frame. `boxes` and `count` are what display/status layers read.

    `ready` is False only when the inference backend had nothing to return yet.
    """

    boxes: Tuple[LabeledBox, ...] = ()
    ready: bool = True

    @property
    def count(self) -> int:
        return len(self.boxes)

    @classmethod
    def not_ready(cls) -> "FrameResult":
        return cls(boxes=(), ready=False)
