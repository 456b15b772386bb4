from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from .config import MIN_TARGET_DIM

IMAGENET_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
IMAGENET_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)


@dataclass(frozen=True)
class PreprocessResult:
    tensor: np.ndarray
    source_dims: Tuple[int, int]
    input_dims: Tuple[int, int]
    offset: Tuple[int, int]


def calculate_input_dims(image_dims: Tuple[int, int], target_dim: int) -> Tuple[int, int]:
    """
    Scale (width, height) so the shorter side equals `target_dim` (at least 64),
    keeping the aspect ratio.
    """

    w, h = image_dims
    if w <= 0 or h <= 0:
        raise ValueError(f"Image dims must be positive, got {image_dims}")
    target = max(int(target_dim), MIN_TARGET_DIM)
    scale = target / min(w, h)
    return int(round(w * scale)), int(round(h * scale))


def crop_input_dims(input_dims: Tuple[int, int], strides: Sequence[int]) -> Tuple[int, int]:
    """
    Trim (width, height) down to a multiple of the largest stride.
    """

    max_stride = max(strides)
    w, h = input_dims
    cropped = (w - w % max_stride, h - h % max_stride)
    if cropped[0] <= 0 or cropped[1] <= 0:
        raise ValueError(f"Input dims {input_dims} are smaller than the largest stride {max_stride}")
    return cropped


def crop_offset(source_dims: Tuple[int, int], input_dims: Tuple[int, int]) -> Tuple[int, int]:
    return (source_dims[0] - input_dims[0]) // 2, (source_dims[1] - input_dims[1]) // 2


def prepare_input(
    image_rgb: np.ndarray,
    target_dim: int,
    strides: Sequence[int],
    normalize: bool = False,
) -> PreprocessResult:
    """
    Resize an RGB frame so its shorter side matches `target_dim`, then take a
    centered `target_dim` square (trimmed to a stride multiple).

    Returns a float32 NHWC tensor of shape (1, H, W, 3). Without `normalize`
    pixel values stay in [0, 255]; with it they are scaled to [0, 1] and
    standardized with ImageNet mean/std.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for prepare_input(). Install with `pip install opencv-python`.") from e

    if image_rgb is None or not hasattr(image_rgb, "shape"):
        raise TypeError("image_rgb must be a NumPy array (RGB).")
    if image_rgb.ndim != 3 or image_rgb.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_rgb, 'shape', None)}")

    h, w = image_rgb.shape[:2]
    source_dims = calculate_input_dims((w, h), target_dim)
    input_dims = crop_input_dims((int(target_dim), int(target_dim)), strides)
    off_x, off_y = crop_offset(source_dims, input_dims)

    resized = image_rgb
    if (w, h) != source_dims:
        resized = cv2.resize(image_rgb, source_dims, interpolation=cv2.INTER_LINEAR)
    crop = resized[off_y : off_y + input_dims[1], off_x : off_x + input_dims[0]]

    tensor = crop.astype(np.float32)
    if normalize:
        tensor = (tensor / 255.0 - IMAGENET_MEAN) / IMAGENET_STD
    tensor = np.ascontiguousarray(tensor[None, ...], dtype=np.float32)

    return PreprocessResult(tensor=tensor, source_dims=source_dims, input_dims=input_dims, offset=(off_x, off_y))
