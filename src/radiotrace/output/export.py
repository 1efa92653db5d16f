"""Writers for preview images and signal grids.

Supported outputs:
    - PNG (8-bit RGB via Pillow) for the camera view and signal maps
    - Raw little-endian float32 arrays for strength, time and angle grids

Per-station files are named ``{base}_{primitive_id}_{frequency}.{ext}``.

Example:
    >>> from radiotrace.output.export import output_path, write_floats
    >>> path = output_path("out/city", 7, 2400.0, "data")  # out/city_7_2400.data
    >>> write_floats(path, grid.strength)
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

# Color drawn over elevated obstructions in signal maps
OBSTRUCTION_COLOR = (255, 0, 0)

# Obstructions whose center is at or below this height are not drawn
OBSTRUCTION_MIN_HEIGHT = 1.0


def format_frequency(frequency: float) -> str:
    """Integral frequencies print without a decimal point."""
    frequency = float(frequency)
    if frequency.is_integer():
        return str(int(frequency))
    return str(frequency)


def output_path(base: str | Path, primitive_id: int, frequency: float, ext: str) -> str:
    """Name of a per-station output file."""
    return f"{base}_{primitive_id}_{format_frequency(frequency)}.{ext}"


def write_floats(filepath: str | Path, values: npt.ArrayLike) -> None:
    """Write values as a flat array of little-endian 32-bit floats."""
    np.asarray(values, dtype="<f4").ravel().tofile(filepath)


def read_floats(filepath: str | Path) -> npt.NDArray[np.float32]:
    """Read a file written by write_floats."""
    return np.fromfile(filepath, dtype="<f4").astype(np.float32)


def save_png_from_array(image: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Save an RGB8 array of shape (H, W, 3) as a PNG file.

    Raises:
        ValueError: If the array is not an RGB8 image.
    """
    if image.ndim != 3 or image.shape[2] != 3 or image.dtype != np.uint8:
        raise ValueError(
            f"Expected a uint8 array of shape (H, W, 3), got {image.dtype} {image.shape}"
        )
    PILImage.fromarray(image).save(filepath)


def signal_to_color(signal: npt.ArrayLike) -> npt.NDArray[np.uint8]:
    """Map strengths in dB to RGB8 colors.

    -100 dB and below is black, rising through blue, cyan and white at 0 dB:

        value = clamp((signal + 100) / 100) * 3
        rgb = clamp(value - 2), clamp(value - 1), clamp(value)

    Args:
        signal: Strengths of any shape.

    Returns:
        Array of shape signal.shape + (3,) with dtype uint8.
    """
    s = np.asarray(signal, dtype=np.float32)
    value = np.clip((s + 100.0) / 100.0, 0.0, 1.0) * 3.0
    rgb = np.stack(
        [
            np.clip(value - 2.0, 0.0, 1.0),
            np.clip(value - 1.0, 0.0, 1.0),
            np.clip(value, 0.0, 1.0),
        ],
        axis=-1,
    )
    return np.round(rgb * 255.0).astype(np.uint8)


def _footprint(size: float | tuple[float, float, float]) -> tuple[int, int]:
    if isinstance(size, tuple):
        return int(size[0]), int(size[2])
    return int(size), int(size)


def signal_image(
    strength: npt.ArrayLike,
    width: int,
    height: int,
    obstructions: Iterable = (),
) -> npt.NDArray[np.uint8]:
    """Render a strength grid as an RGB8 map.

    The image has one pixel per grid cell, with +x to the right and +z up.
    Elevated obstructions are drawn as flat rectangles over their
    horizontal footprint.

    Args:
        strength: Flat grid of (width + 1) * (height + 1) cells, row stride
            width + 1.
        width: Grid width in cells.
        height: Grid height in cells.
        obstructions: Objects with ``center`` and ``size`` attributes, as
            returned by SceneManager.obstructions().

    Returns:
        Array of shape (height, width, 3) with dtype uint8.
    """
    grid = np.asarray(strength, dtype=np.float32).reshape(height + 1, width + 1)
    cells = grid[:height, :width]

    # Mask in grid orientation (row = z), flipped at the end
    mask = np.zeros((height, width), dtype=bool)
    for ob in obstructions:
        if ob.center[1] <= OBSTRUCTION_MIN_HEIGHT:
            continue
        half_x, half_z = _footprint(ob.size)
        cx, cz = int(ob.center[0]), int(ob.center[2])
        x0, x1 = max(cx - half_x, 0), min(cx + half_x, width)
        z0, z1 = max(cz - half_z, 0), min(cz + half_z, height)
        if x0 < x1 and z0 < z1:
            mask[z0:z1, x0:x1] = True

    image = signal_to_color(cells)
    image[mask] = OBSTRUCTION_COLOR
    return np.ascontiguousarray(np.flipud(image))
