"""Gap filling for signal grids.

Cells that no ray reached still hold the sentinel. Each such cell looks at
the square rings around it (Chebyshev distance 1, then 2) and copies the
first resolved neighbor it meets, minus 3 dB per ring. A ring is walked from
its lower-left corner: right along the bottom edge, up the right edge, left
along the top edge and down the left edge. The search stops at the first
ring that would leave the grid.

All reads go to a snapshot taken before filling, so filled cells never feed
other cells and the result does not depend on the order cells are visited.
"""

import numpy as np
import taichi as ti

from radiotrace.core.signal import SENTINEL

# Strength lost per ring of distance, in dB
HOMOGENIZATION_FALLOFF = 3.0

MAX_RING = 2

# float32 machine epsilon
EPS = 1.1920929e-07


@ti.func
def is_sentinel(value: ti.f32) -> ti.i32:
    return value - SENTINEL < EPS


@ti.kernel
def _homogenize(
    grid: ti.types.ndarray(dtype=ti.f32, ndim=1),
    snapshot: ti.types.ndarray(dtype=ti.f32, ndim=1),
    columns: ti.i32,
    rows: ti.i32,
):
    for i in range(grid.shape[0]):
        if is_sentinel(snapshot[i]):
            x = i % columns
            y = i // columns
            searching = 1
            for j in ti.static(range(1, MAX_RING + 1)):
                if x < j or x + j > columns - 1 or y < j or y + j > rows - 1:
                    searching = 0
                if searching == 1:
                    # Right, up, left, down; 2j cells per edge
                    steps = ti.static(((1, 0), (0, 1), (-1, 0), (0, -1)))
                    cx = x - j
                    cy = y - j
                    for d in ti.static(range(4)):
                        for step in range(2 * j):
                            if searching == 1:
                                v = snapshot[cy * columns + cx]
                                if not is_sentinel(v):
                                    grid[i] = v - HOMOGENIZATION_FALLOFF * j
                                    searching = 0
                                else:
                                    cx += steps[d][0]
                                    cy += steps[d][1]


def homogenize(grid: np.ndarray, width: int, height: int) -> np.ndarray:
    """Fill sentinel cells of a strength grid in place.

    Args:
        grid: Flat float32 grid of (width + 1) * (height + 1) cells with row
            stride width + 1.
        width: Grid width in cells.
        height: Grid height in cells.

    Returns:
        The same array, for chaining.

    Raises:
        ValueError: If the grid size does not match the dimensions.
    """
    columns = width + 1
    rows = height + 1
    if grid.shape != (columns * rows,) or grid.dtype != np.float32:
        raise ValueError(
            f"Expected a float32 grid of {columns * rows} cells, "
            f"got {grid.dtype} with shape {grid.shape}"
        )
    snapshot = grid.copy()
    _homogenize(grid, snapshot, columns, rows)
    ti.sync()
    return grid
