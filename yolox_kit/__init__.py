"""
YOLOX (anchor-free) post-processing: decode -> filter -> suppress -> remap.

The core (grid, decode, NMS, remap) depends only on NumPy. OpenCV is used for
preprocessing and drawing, ONNX Runtime for the optional inference backend;
both are imported lazily.
"""

from .types import Box2D, ClassColorEntry, FrameResult, GridCell, LabeledBox
from .grid import GridGenerator, generate_grid
from .nms import NMSConfig, box_iou, nms, nms_sorted_boxes
from .remap import remap_labeled_boxes, scale_bounding_box
from .postprocess import YoloxPostprocessor, decode_proposals, get_labeled_boxes
from .config import DetectorConfig, load_detector_config
from .colormap import ModelEntry, load_colormap, load_model_list
from .preprocess import PreprocessResult, calculate_input_dims, crop_input_dims, crop_offset, prepare_input
from .runtime import YoloxDetector, load_detector, find_project_root, model_from_list, resolve_path
from .visualize import draw_labeled_boxes

__all__ = [
    "Box2D",
    "ClassColorEntry",
    "FrameResult",
    "GridCell",
    "LabeledBox",
    "GridGenerator",
    "generate_grid",
    "NMSConfig",
    "box_iou",
    "nms",
    "nms_sorted_boxes",
    "remap_labeled_boxes",
    "scale_bounding_box",
    "YoloxPostprocessor",
    "decode_proposals",
    "get_labeled_boxes",
    "DetectorConfig",
    "load_detector_config",
    "ModelEntry",
    "load_colormap",
    "load_model_list",
    "PreprocessResult",
    "calculate_input_dims",
    "crop_input_dims",
    "crop_offset",
    "prepare_input",
    "YoloxDetector",
    "load_detector",
    "find_project_root",
    "model_from_list",
    "resolve_path",
    "draw_labeled_boxes",
]
