from __future__ import annotations

import json
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .grid import DEFAULT_STRIDES

PathLike = Union[str, Path]

NUM_BBOX_FIELDS = 5
MIN_TARGET_DIM = 64


def validate_threshold(name: str, value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValueError(f"{name} must be a number")
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")
    return value


@dataclass(frozen=True)
class DetectorConfig:
    """
    Settings for YOLOX post-processing.

    `num_classes` is optional; when set it must agree with the colormap.
    """

    strides: Tuple[int, ...] = DEFAULT_STRIDES
    target_dim: int = 224
    confidence_threshold: float = 0.5
    nms_threshold: float = 0.45
    num_box_fields: int = NUM_BBOX_FIELDS
    num_classes: Optional[int] = None
    normalize_input: bool = False
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.strides or any(isinstance(s, bool) or not isinstance(s, numbers.Integral) or s <= 0 for s in self.strides):
            raise ValueError("strides must be a non-empty sequence of positive integers")
        object.__setattr__(self, "strides", tuple(int(s) for s in self.strides))
        if self.target_dim <= 0:
            raise ValueError("target_dim must be > 0")
        object.__setattr__(self, "confidence_threshold", validate_threshold("confidence_threshold", self.confidence_threshold))
        object.__setattr__(self, "nms_threshold", validate_threshold("nms_threshold", self.nms_threshold))
        if self.num_box_fields < NUM_BBOX_FIELDS:
            raise ValueError(f"num_box_fields must be >= {NUM_BBOX_FIELDS}")
        if self.num_classes is not None and self.num_classes < 1:
            raise ValueError("num_classes must be >= 1")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1")

    def proposal_length(self, num_classes: int) -> int:
        return int(num_classes) + self.num_box_fields


def _require_threshold(payload: Dict[str, Any], key: str, default: float) -> float:
    if key not in payload:
        return default
    return validate_threshold(key, payload[key])


def _optional_int(payload: Dict[str, Any], key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return value


def load_detector_config(path: PathLike) -> DetectorConfig:
    """
    Load a JSON detector profile:

        {"schema_version": 1, "strides": [8, 16, 32], "target_dim": 224,
         "confidence_threshold": 0.5, "nms_threshold": 0.45}

    Every key except `schema_version` is optional.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Detector profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector profile must be a JSON object")

    allowed = {
        "schema_version",
        "strides",
        "target_dim",
        "confidence_threshold",
        "nms_threshold",
        "num_classes",
        "normalize_input",
        "max_detections",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detector profile keys: {unknown}")

    if payload.get("schema_version") != 1:
        raise ValueError("detector profile schema_version must be 1")

    defaults = DetectorConfig()
    strides = payload.get("strides", list(defaults.strides))
    if not isinstance(strides, list):
        raise ValueError("strides must be a list of integers")
    target_dim = _optional_int(payload, "target_dim")
    normalize_input = payload.get("normalize_input", defaults.normalize_input)
    if not isinstance(normalize_input, bool):
        raise ValueError("normalize_input must be a boolean")

    return DetectorConfig(
        strides=tuple(strides),
        target_dim=defaults.target_dim if target_dim is None else target_dim,
        confidence_threshold=_require_threshold(payload, "confidence_threshold", defaults.confidence_threshold),
        nms_threshold=_require_threshold(payload, "nms_threshold", defaults.nms_threshold),
        num_classes=_optional_int(payload, "num_classes"),
        normalize_input=normalize_input,
        max_detections=_optional_int(payload, "max_detections"),
    )
