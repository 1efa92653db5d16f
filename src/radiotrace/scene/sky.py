"""Background descriptor for rays that leave the scene.

Three kinds of sky are supported:

    NONE      black
    GRADIENT  vertical blend from white (down) to light blue (up)
    TEXTURE   nearest texel of an equirectangular image, dimmed to 70%

Both the gradient parameter and the texture lookup use the unit direction:
t = clamp(0.5 * (dir.y + 1)) and u = clamp(0.5 * (dir.x + 1)).
"""

from enum import IntEnum

import numpy as np
import taichi as ti
import taichi.math as tm

from radiotrace.materials.texture import fetch_texel, upload_pixels

# Type alias for 3D vectors
vec3 = tm.vec3

SKY_ZENITH = vec3(0.5, 0.7, 1.0)
SKY_TEXTURE_SCALE = 0.7


class SkyKind(IntEnum):
    NONE = 0
    GRADIENT = 1
    TEXTURE = 2


_sky_kind = ti.field(dtype=ti.i32, shape=())
_sky_offset = ti.field(dtype=ti.i32, shape=())
_sky_width = ti.field(dtype=ti.i32, shape=())
_sky_height = ti.field(dtype=ti.i32, shape=())


def clear_sky() -> None:
    """Use a black background."""
    _sky_kind[None] = int(SkyKind.NONE)


def set_sky_gradient() -> None:
    """Use the default white-to-blue gradient background."""
    _sky_kind[None] = int(SkyKind.GRADIENT)


def set_sky_texture(pixels: np.ndarray) -> None:
    """Use an equirectangular image as background.

    Args:
        pixels: Decoded image, shape (height, width, 3), dtype uint8.
    """
    offset = upload_pixels(pixels)
    _sky_offset[None] = offset
    _sky_height[None] = pixels.shape[0]
    _sky_width[None] = pixels.shape[1]
    _sky_kind[None] = int(SkyKind.TEXTURE)


def get_sky_kind() -> SkyKind:
    return SkyKind(int(_sky_kind[None]))


@ti.func
def background_color(direction: vec3) -> vec3:
    """Color seen along a ray that hits nothing."""
    unit = tm.normalize(direction)
    t = tm.clamp(0.5 * (unit.y + 1.0), 0.0, 1.0)
    u = tm.clamp(0.5 * (unit.x + 1.0), 0.0, 1.0)

    color = vec3(0.0, 0.0, 0.0)
    kind = _sky_kind[None]
    if kind == int(SkyKind.GRADIENT):
        color = (1.0 - t) * vec3(1.0, 1.0, 1.0) + t * SKY_ZENITH
    elif kind == int(SkyKind.TEXTURE):
        width = _sky_width[None]
        height = _sky_height[None]
        x = ti.cast(u * ti.cast(width - 1, ti.f32), ti.i32)
        y = ti.cast((1.0 - t) * ti.cast(height - 1, ti.f32), ti.i32)
        color = SKY_TEXTURE_SCALE * fetch_texel(_sky_offset[None], width, x, y)
    return color
