import json
import math
import tempfile
import unittest
from pathlib import Path
from typing import List, Optional

import numpy as np

from yolox_kit.config import DetectorConfig
from yolox_kit.runtime import YoloxDetector, model_from_list, resolve_path
from yolox_kit.types import ClassColorEntry

COLORMAP = [
    ClassColorEntry("palm", (1.0, 0.0, 0.0, 1.0)),
    ClassColorEntry("fist", (0.0, 1.0, 0.0, 1.0)),
]
# 64x64 input with strides 8/16/32 -> 64 + 16 + 4 cells
NUM_CELLS = 84
PROPOSAL_LENGTH = 7


class FakeBackend:
    """
    Returns a buffer with one object at stride-8 cell (x=3, y=2), or None until loaded.
    """

    def __init__(self, ready: bool = True, length: int = NUM_CELLS * PROPOSAL_LENGTH):
        self.ready = ready
        self.length = length
        self.shapes: List[tuple] = []

    def infer(self, tensor: np.ndarray) -> Optional[np.ndarray]:
        self.shapes.append(tensor.shape)
        if not self.ready:
            return None
        out = np.zeros(self.length, dtype=np.float32)
        idx = 2 * 8 + 3
        log2 = math.log(2.0)
        out[idx * PROPOSAL_LENGTH : (idx + 1) * PROPOSAL_LENGTH] = [0.5, 0.5, log2, log2, 0.9, 0.1, 0.8]
        return out


class TestYoloxDetector(unittest.TestCase):
    def _detector(self, backend: FakeBackend) -> YoloxDetector:
        cfg = DetectorConfig(strides=(8, 16, 32), target_dim=64, confidence_threshold=0.5)
        return YoloxDetector(backend.infer, COLORMAP, cfg, backend=backend, backend_name="fake")

    def test_frame_end_to_end(self) -> None:
        backend = FakeBackend()
        detector = self._detector(backend)
        result = detector(np.zeros((64, 64, 3), dtype=np.uint8))

        self.assertTrue(result.ready)
        self.assertEqual(result.count, 1)
        (lb,) = result.boxes
        self.assertEqual(lb.label, "fist")
        self.assertEqual(lb.color, (0.0, 1.0, 0.0, 1.0))
        self.assertAlmostEqual(lb.bbox.score, 0.72, places=5)
        # center (28, 20), size 16x16
        self.assertAlmostEqual(lb.bbox.x, 20.0, places=4)
        self.assertAlmostEqual(lb.bbox.y, 12.0, places=4)
        self.assertAlmostEqual(lb.bbox.width, 16.0, places=4)
        self.assertEqual(backend.shapes, [(1, 64, 64, 3)])

    def test_mirrored_and_scaled_screen(self) -> None:
        detector = self._detector(FakeBackend())
        result = detector(np.zeros((64, 64, 3), dtype=np.uint8), screen_dims=(128.0, 128.0), mirrored=True)
        (lb,) = result.boxes
        self.assertAlmostEqual(lb.bbox.width, 32.0, places=4)
        self.assertAlmostEqual(lb.bbox.x, 128.0 - 40.0 - 32.0, places=4)
        self.assertAlmostEqual(lb.bbox.y, 24.0, places=4)

    def test_backend_not_ready_gives_empty_result(self) -> None:
        backend = FakeBackend(ready=False)
        detector = self._detector(backend)
        result = detector(np.zeros((64, 64, 3), dtype=np.uint8))
        self.assertFalse(result.ready)
        self.assertEqual(result.count, 0)
        self.assertEqual(result.boxes, ())

        backend.ready = True
        self.assertEqual(detector(np.zeros((64, 64, 3), dtype=np.uint8)).count, 1)

    def test_grid_cached_across_frames(self) -> None:
        detector = self._detector(FakeBackend())
        detector(np.zeros((64, 64, 3), dtype=np.uint8))
        grid = detector.grid.generate(64, 64)
        detector(np.zeros((64, 64, 3), dtype=np.uint8))
        self.assertIs(detector.grid.generate(64, 64), grid)
        self.assertEqual(detector.grid.key, (64, 64))
        self.assertEqual(detector.grid.output_size(detector.post.proposal_length), NUM_CELLS * PROPOSAL_LENGTH)

    def test_buffer_size_mismatch_raises(self) -> None:
        detector = self._detector(FakeBackend(length=NUM_CELLS * PROPOSAL_LENGTH + 1))
        with self.assertRaises(ValueError):
            detector(np.zeros((64, 64, 3), dtype=np.uint8))

    def test_runtime_threshold_updates(self) -> None:
        detector = self._detector(FakeBackend())
        detector.update_confidence_threshold(0.8)
        self.assertEqual(detector(np.zeros((64, 64, 3), dtype=np.uint8)).count, 0)
        detector.update_nms_threshold(0.3)
        self.assertEqual(detector.cfg.nms_threshold, 0.3)

        detector.update_confidence_threshold(np.float32(0.7))
        self.assertIs(type(detector.cfg.confidence_threshold), float)
        self.assertAlmostEqual(detector.cfg.confidence_threshold, 0.7, places=6)
        self.assertEqual(detector(np.zeros((64, 64, 3), dtype=np.uint8)).count, 1)
        detector.update_confidence_threshold(0.8)

        with self.assertRaises(ValueError):
            detector.update_confidence_threshold(1.2)
        with self.assertRaises(ValueError):
            detector.update_nms_threshold(-0.5)
        self.assertEqual(detector.cfg.confidence_threshold, 0.8)

    def test_process_output_with_crop_offset(self) -> None:
        detector = self._detector(FakeBackend())
        output = FakeBackend().infer(np.zeros((1, 64, 64, 3), dtype=np.float32))
        result = detector.process_output(output, (64, 64), (96.0, 64.0), offset=(16, 0))
        (lb,) = result.boxes
        # source is 96 wide, so x only shifts by the offset
        self.assertAlmostEqual(lb.bbox.x, 36.0, places=4)
        self.assertAlmostEqual(lb.bbox.width, 16.0, places=4)

    def test_process_output_none_is_not_ready(self) -> None:
        detector = self._detector(FakeBackend())
        self.assertFalse(detector.process_output(None, (64, 64), (64.0, 64.0)).ready)


class TestResolvePath(unittest.TestCase):
    def test_absolute_path_unchanged(self) -> None:
        p = resolve_path("/tmp/model.onnx")
        self.assertEqual(str(p), "/tmp/model.onnx")

    def test_relative_to_root(self) -> None:
        p = resolve_path("models/model.onnx", root="/opt/app")
        self.assertEqual(p.as_posix(), "/opt/app/models/model.onnx")


class TestModelFromList(unittest.TestCase):
    def _write_list(self, payload: dict) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name).resolve() / "assets" / "models.json"
        path.parent.mkdir()
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_relative_paths_resolve_next_to_the_list(self) -> None:
        path = self._write_list(
            {
                "models": [
                    {"name": "tiny", "path": "yolox_tiny.onnx"},
                    {"name": "small", "path": "weights/yolox_s.onnx"},
                ]
            }
        )
        entry, model_path = model_from_list(path)
        self.assertEqual(entry.name, "tiny")
        self.assertEqual(model_path, path.parent / "yolox_tiny.onnx")

        entry, model_path = model_from_list(path, index=1)
        self.assertEqual(entry.name, "small")
        self.assertEqual(model_path, path.parent / "weights" / "yolox_s.onnx")

    def test_relative_list_path_uses_root(self) -> None:
        path = self._write_list({"models": [{"name": "tiny", "path": "yolox_tiny.onnx"}]})
        root = path.parent.parent
        _, model_path = model_from_list("assets/models.json", root=root)
        self.assertEqual(model_path, root / "assets" / "yolox_tiny.onnx")

    def test_absolute_model_path_kept(self) -> None:
        path = self._write_list({"models": [{"name": "abs", "path": "/srv/models/yolox.onnx"}]})
        _, model_path = model_from_list(path)
        self.assertEqual(model_path.as_posix(), "/srv/models/yolox.onnx")

    def test_index_out_of_range(self) -> None:
        path = self._write_list({"models": [{"name": "tiny", "path": "yolox_tiny.onnx"}]})
        with self.assertRaises(ValueError):
            model_from_list(path, index=1)


if __name__ == "__main__":
    unittest.main()
