from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np

from .colormap import ModelEntry, load_colormap, load_model_list
from .config import DetectorConfig, validate_threshold
from .grid import GridGenerator
from .postprocess import YoloxPostprocessor
from .preprocess import PreprocessResult, prepare_input
from .types import ClassColorEntry, FrameResult

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
InferFn = Callable[[np.ndarray], Optional[np.ndarray]]


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery, so `models/...` paths work from any cwd.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    # If a file is provided, start from its directory.
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    - Absolute paths are returned as-is.
    - Relative paths are resolved against `root` if provided, the project root otherwise.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


def model_from_list(models_json: PathLike, index: int = 0, root: Optional[PathLike] = "auto") -> Tuple[ModelEntry, Path]:
    """
    Pick a model from a model-list JSON. Relative model paths are resolved
    against the folder holding the list, not the project root.
    """

    list_path = resolve_path(models_json, root=root)
    models = load_model_list(list_path)
    if not 0 <= index < len(models):
        raise ValueError(f"Model index {index} out of range ({len(models)} models in {list_path})")
    entry = models[index]
    return entry, resolve_path(entry.path, root=list_path.parent)


class YoloxDetector:
    """
    Per-frame entry point: preprocess -> inference -> decode -> NMS -> remap.

    Call it once per host tick. The only state kept between frames is the grid
    cache, which is rebuilt when the model input resolution changes. When the
    backend returns None (model not loaded yet) the frame yields an empty
    `FrameResult` with `ready=False`.
    """

    def __init__(
        self,
        infer_fn: InferFn,
        colormap: Sequence[ClassColorEntry],
        cfg: DetectorConfig = DetectorConfig(),
        *,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
    ):
        self._infer_fn = infer_fn
        self.backend = backend
        self.backend_name = backend_name
        self.post = YoloxPostprocessor(cfg, colormap)
        self.grid = GridGenerator(cfg.strides)

    @property
    def cfg(self) -> DetectorConfig:
        return self.post.cfg

    def update_confidence_threshold(self, value: float) -> None:
        self.post.cfg = replace(self.post.cfg, confidence_threshold=validate_threshold("confidence_threshold", value))

    def update_nms_threshold(self, value: float) -> None:
        self.post.cfg = replace(self.post.cfg, nms_threshold=validate_threshold("nms_threshold", value))

    def preprocess(self, image_rgb: np.ndarray) -> PreprocessResult:
        return prepare_input(image_rgb, self.cfg.target_dim, self.cfg.strides, normalize=self.cfg.normalize_input)

    def process_output(
        self,
        output: Optional[np.ndarray],
        input_dims: Tuple[int, int],
        screen_dims: Tuple[float, float],
        offset: Tuple[int, int] = (0, 0),
        mirrored: bool = False,
    ) -> FrameResult:
        if output is None:
            logger.debug("Inference backend not ready; skipping frame")
            return FrameResult.not_ready()

        in_w, in_h = input_dims
        grid = self.grid.generate(in_h, in_w)
        boxes = self.post.process(
            output,
            grid,
            input_dims,
            screen_dims,
            offset=offset,
            mirrored=mirrored,
            grid_arrays=self.grid.grid_arrays(),
        )
        return FrameResult(boxes=tuple(boxes))

    def __call__(
        self,
        image_rgb: np.ndarray,
        screen_dims: Optional[Tuple[float, float]] = None,
        mirrored: bool = False,
    ) -> FrameResult:
        prep = self.preprocess(image_rgb)
        output = self._infer_fn(prep.tensor)
        if screen_dims is None:
            h, w = image_rgb.shape[:2]
            screen_dims = (float(w), float(h))
        return self.process_output(output, prep.input_dims, screen_dims, offset=prep.offset, mirrored=mirrored)


def load_detector(
    model_path: PathLike,
    colormap_path: PathLike,
    *,
    cfg: DetectorConfig = DetectorConfig(),
    root: Optional[PathLike] = "auto",
    onnx_providers: Optional[Sequence[str]] = None,
    onnx_input_name: Optional[str] = None,
    onnx_output_name: Optional[str] = None,
    channels_first: bool = False,
    lazy: bool = False,
) -> YoloxDetector:
    """
    Create a detector for an ONNX model on disk.

    Typical usage:
        detector = load_detector("models/yolox_tiny.onnx", "models/colormap.json")

    Args:
        model_path: path to the .onnx file; relative paths resolve against the project root by default
        colormap_path: JSON colormap, one entry per class in class-index order
        lazy: create the ONNX session on `detector.backend.load()` instead of now
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    resolved = resolve_path(model_path, root=root)
    if resolved.suffix.lower() != ".onnx":
        raise ValueError(f"Expected an .onnx model, got '{resolved.name}'")

    colormap = load_colormap(resolve_path(colormap_path, root=root))
    ort_backend = OnnxRuntimeBackend(
        resolved,
        OnnxRuntimeBackendConfig(
            providers=onnx_providers,
            input_name=onnx_input_name,
            output_name=onnx_output_name,
            channels_first=channels_first,
            lazy=lazy,
        ),
    )
    return YoloxDetector(
        ort_backend.infer,
        colormap,
        cfg,
        backend=ort_backend,
        backend_name="onnxruntime",
    )
