from __future__ import annotations

import logging
import numbers
from typing import Optional, Sequence, Tuple

import numpy as np

from .types import GridCell

logger = logging.getLogger(__name__)

DEFAULT_STRIDES: Tuple[int, ...] = (8, 16, 32)


def _validate_strides(strides: Sequence[int]) -> Tuple[int, ...]:
    out = tuple(strides)
    if not out:
        raise ValueError("strides must not be empty")
    for s in out:
        if isinstance(s, bool) or not isinstance(s, numbers.Integral) or s <= 0:
            raise ValueError(f"strides must be positive integers, got {out!r}")
    return tuple(int(s) for s in out)


def generate_grid(strides: Sequence[int], input_height: int, input_width: int) -> Tuple[GridCell, ...]:
    """
    Build the anchor-free grid for every stride, in the order given.

    Cells are scale-major then row-major, which is the order the model writes
    its output buffer in: `buffer[i * proposal_length + k]` belongs to `grid[i]`.
    """

    cells = []
    for s in _validate_strides(strides):
        grid_h = int(input_height) // s
        grid_w = int(input_width) // s
        for y in range(grid_h):
            for x in range(grid_w):
                cells.append(GridCell(x=x, y=y, stride=s))
    return tuple(cells)


class GridGenerator:
    """
    Owns the grid cache. The grid is rebuilt only when the input resolution
    key `(width, height)` changes; otherwise the cached tuple is returned as-is.
    """

    def __init__(self, strides: Sequence[int] = DEFAULT_STRIDES):
        self.strides = _validate_strides(strides)
        self._key: Optional[Tuple[int, int]] = None
        self._grid: Tuple[GridCell, ...] = ()
        self._arrays: Optional[Tuple[np.ndarray, np.ndarray, np.ndarray]] = None

    @property
    def key(self) -> Optional[Tuple[int, int]]:
        return self._key

    @property
    def cell_count(self) -> int:
        return len(self._grid)

    def generate(self, input_height: int, input_width: int) -> Tuple[GridCell, ...]:
        key = (int(input_width), int(input_height))
        if key == self._key:
            return self._grid

        self._grid = generate_grid(self.strides, input_height, input_width)
        self._arrays = None
        self._key = key
        logger.info("Rebuilt grid for %dx%d input: %d cells", key[0], key[1], len(self._grid))
        return self._grid

    def output_size(self, proposal_length: int) -> int:
        return self.cell_count * int(proposal_length)

    def grid_arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Cached grid as (x, y, stride) float32 columns for vectorized decoding.
        """

        if self._arrays is None:
            self._arrays = grid_to_arrays(self._grid)
        return self._arrays


def grid_to_arrays(grid: Sequence[GridCell]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    if not grid:
        empty = np.empty((0,), dtype=np.float32)
        return empty, empty, empty
    table = np.array([(c.x, c.y, c.stride) for c in grid], dtype=np.float32)
    return table[:, 0], table[:, 1], table[:, 2]
