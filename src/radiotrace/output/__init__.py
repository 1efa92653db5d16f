"""Output module for preview images and signal grids.

Components:
    export: PNG and little-endian float writers, signal colors

The camera view and optional signal maps are written as 8-bit RGB PNGs;
strength, time and angle grids as raw float32 arrays.
"""

from radiotrace.output.export import (
    format_frequency,
    output_path,
    read_floats,
    save_png_from_array,
    signal_image,
    signal_to_color,
    write_floats,
)

__all__ = [
    "format_frequency",
    "output_path",
    "write_floats",
    "read_floats",
    "save_png_from_array",
    "signal_to_color",
    "signal_image",
]
