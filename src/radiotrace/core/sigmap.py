"""Orchestration of the signal and view passes.

``generate_sigmap`` traces every station, fills the gaps in each strength
grid and writes the per-station files. ``render_view`` renders and writes
the camera preview. Both log their frame time.
"""

import time
from pathlib import Path

from radiotrace import get_logger
from radiotrace.core.homogenize import homogenize
from radiotrace.core.integrator import render_image
from radiotrace.core.signal import SignalGrid, generate_signals
from radiotrace.output.export import (
    output_path,
    save_png_from_array,
    signal_image,
    write_floats,
)

_log = get_logger()


def write_signal_grid(
    base: str | Path,
    grid: SignalGrid,
    obstructions=(),
    do_png: bool = False,
) -> list[str]:
    """Write the files of one station.

    Returns:
        The paths written, strength file first.
    """
    written = []
    path = output_path(base, grid.primitive_id, grid.frequency, "data")
    write_floats(path, grid.strength)
    written.append(path)

    if grid.times is not None:
        path = output_path(base, grid.primitive_id, grid.frequency, "times")
        write_floats(path, grid.times)
        written.append(path)
    if grid.angles is not None:
        path = output_path(base, grid.primitive_id, grid.frequency, "angles")
        write_floats(path, grid.angles)
        written.append(path)
    if do_png:
        path = output_path(base, grid.primitive_id, grid.frequency, "png")
        image = signal_image(grid.strength, grid.width, grid.height, obstructions)
        save_png_from_array(image, path)
        written.append(path)
    return written


def generate_sigmap(
    base: str | Path,
    scene,
    do_times: bool = False,
    do_angles: bool = False,
    do_png: bool = False,
) -> list[SignalGrid]:
    """Compute and write the coverage map of every station.

    Args:
        base: Output path prefix.
        scene: A loaded SceneManager.
        do_times: Also write ``.times`` files.
        do_angles: Also write ``.angles`` files.
        do_png: Also write a ``.png`` map per station.

    Returns:
        The homogenized grids, one per station.
    """
    stations = scene.stations()
    if not stations:
        _log.warning("Scene has no light primitives; no signal maps written")
        return []

    start = time.perf_counter()
    grids = generate_signals(scene, do_times, do_angles)
    for grid in grids:
        homogenize(grid.strength, grid.width, grid.height)
    elapsed_ms = (time.perf_counter() - start) * 1000.0

    obstructions = scene.obstructions()
    for grid in grids:
        paths = write_signal_grid(base, grid, obstructions, do_png)
        _log.debug("Station %d: wrote %s", grid.primitive_id, ", ".join(paths))

    _log.info("Frame time: %dms (%d stations)", round(elapsed_ms), len(grids))
    return grids


def render_view(filepath: str | Path, scene) -> None:
    """Render the camera view of a scene and save it as a PNG."""
    start = time.perf_counter()
    pixels = render_image(scene)
    elapsed_ms = (time.perf_counter() - start) * 1000.0
    _log.info("Frame time: %dms", round(elapsed_ms))
    save_png_from_array(pixels, filepath)
