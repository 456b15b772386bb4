from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name/output_name: override auto-selected I/O names if needed
    - channels_first: transpose the NHWC input tensor to NCHW before running
    - lazy: defer session creation to `load()`; `infer` returns None until then
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None
    channels_first: bool = False
    lazy: bool = False


class OnnxRuntimeBackend:
    """
    ONNX Runtime backend returning the model output as a flat float32 buffer.

    Expects a float32 NHWC tensor shaped (1, H, W, 3).
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.cfg = cfg
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        self.session: Any = None
        self.input_name: Optional[str] = None
        self.output_name: Optional[str] = None
        if not cfg.lazy:
            self.load()

    @property
    def ready(self) -> bool:
        return self.session is not None

    def load(self) -> None:
        if self.session is not None:
            return
        sess_opts = self._ort.SessionOptions()
        providers = list(self.cfg.providers) if self.cfg.providers is not None else None
        self.session = self._ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        self.input_name = self.cfg.input_name or self.session.get_inputs()[0].name
        # If output_name not provided, pick first output.
        self.output_name = self.cfg.output_name or self.session.get_outputs()[0].name
        logger.info("Loaded %s with providers %s", self.model_path.name, list(self.providers_in_use))

    @property
    def providers_in_use(self) -> Sequence[str]:
        if self.session is None:
            return ()
        return tuple(self.session.get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(self._ort.get_available_providers())

    def infer(self, tensor: np.ndarray) -> Optional[np.ndarray]:
        if self.session is None:
            return None
        blob = np.asarray(tensor, dtype=np.float32)
        if self.cfg.channels_first:
            blob = np.ascontiguousarray(np.transpose(blob, (0, 3, 1, 2)))
        outputs = self.session.run([self.output_name], {self.input_name: blob})
        return np.asarray(outputs[0], dtype=np.float32).reshape(-1)
