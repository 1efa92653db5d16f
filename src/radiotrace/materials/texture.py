"""Image-textured diffuse material and the shared texel pool.

Decoded RGB8 images (texture materials and the sky) are packed back to back
into one flat ``u8`` field. A texture stores only its offset into the pool
and its dimensions, so hit records and materials never copy pixel data.

Texture lookup wraps horizontally by ``h_offset`` (rotating the image around
a sphere or box) and samples the nearest texel:

    rot = u + h_offset          (minus 1 if it exceeds 1)
    column = floor(rot * width)
    row = floor((1 - v) * (height - 1))
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from radiotrace.core.ray import near_zero, random_in_hemisphere, random_unit_vector

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Texel Pool
# =============================================================================

MAX_TEXEL_BYTES = 32 * 1024 * 1024

texels = ti.field(dtype=ti.u8, shape=MAX_TEXEL_BYTES)
num_texel_bytes = ti.field(dtype=ti.i32, shape=())


def clear_texels() -> None:
    """Release every image in the pool."""
    num_texel_bytes[None] = 0


@ti.kernel
def _copy_texels(src: ti.types.ndarray(dtype=ti.u8, ndim=1), offset: ti.i32):
    for i in range(src.shape[0]):
        texels[offset + i] = src[i]


def upload_pixels(pixels: np.ndarray) -> int:
    """Append a decoded image to the texel pool.

    Args:
        pixels: Array of shape (height, width, 3) with dtype uint8, rows
            ordered top to bottom.

    Returns:
        The byte offset of the image in the pool.

    Raises:
        ValueError: If the array is not an RGB8 image.
        RuntimeError: If the pool is full.
    """
    if pixels.ndim != 3 or pixels.shape[2] != 3 or pixels.dtype != np.uint8:
        raise ValueError(
            f"Expected an RGB8 image of shape (height, width, 3), got {pixels.shape} {pixels.dtype}"
        )

    flat = np.ascontiguousarray(pixels).reshape(-1)
    offset = int(num_texel_bytes[None])
    if offset + flat.size > MAX_TEXEL_BYTES:
        raise RuntimeError(f"Texel pool ({MAX_TEXEL_BYTES} bytes) exhausted")

    _copy_texels(flat, offset)
    num_texel_bytes[None] = offset + flat.size
    return offset


@ti.func
def fetch_texel(offset: ti.i32, width: ti.i32, x: ti.i32, y: ti.i32) -> vec3:
    """Read texel (x, y) of a pooled image as an RGB color in [0, 1]."""
    base = offset + 3 * (y * width + x)
    return (
        vec3(
            ti.cast(texels[base], ti.f32),
            ti.cast(texels[base + 1], ti.f32),
            ti.cast(texels[base + 2], ti.f32),
        )
        / 255.0
    )


# =============================================================================
# Texture Material
# =============================================================================


@ti.func
def scatter_texture(normal: vec3) -> vec3:
    """Diffuse-like scatter direction for a textured surface.

    Returns:
        normal + a random unit vector, re-sampled from the hemisphere when
        the sum degenerates to zero.
    """
    scattered_direction = normal + random_unit_vector()
    if near_zero(scattered_direction):
        scattered_direction = random_in_hemisphere(normal)
    return scattered_direction


# Maximum number of texture materials in the scene
MAX_TEXTURE_MATERIALS = 256

texture_offsets = ti.field(dtype=ti.i32, shape=MAX_TEXTURE_MATERIALS)
texture_widths = ti.field(dtype=ti.i32, shape=MAX_TEXTURE_MATERIALS)
texture_heights = ti.field(dtype=ti.i32, shape=MAX_TEXTURE_MATERIALS)
texture_h_offsets = ti.field(dtype=ti.f32, shape=MAX_TEXTURE_MATERIALS)
num_texture_materials = ti.field(dtype=ti.i32, shape=())


def clear_texture_materials() -> None:
    """Clear all texture materials (the texel pool is cleared separately)."""
    num_texture_materials[None] = 0


def add_texture_material(pixels: np.ndarray, h_offset: float = 0.0) -> int:
    """Add a texture material backed by a decoded RGB8 image.

    Args:
        pixels: Decoded image, shape (height, width, 3), dtype uint8.
        h_offset: Horizontal wrap-around offset added to u.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If the image is malformed.
    """
    idx = num_texture_materials[None]
    if idx >= MAX_TEXTURE_MATERIALS:
        raise RuntimeError(
            f"Maximum number of texture materials ({MAX_TEXTURE_MATERIALS}) exceeded"
        )

    offset = upload_pixels(pixels)
    texture_offsets[idx] = offset
    texture_heights[idx] = pixels.shape[0]
    texture_widths[idx] = pixels.shape[1]
    texture_h_offsets[idx] = h_offset
    num_texture_materials[None] = idx + 1
    return idx


def get_texture_material_count() -> int:
    return int(num_texture_materials[None])


@ti.func
def get_texture_albedo(material_idx: ti.i32, u: ti.f32, v: ti.f32) -> vec3:
    """Sample a texture material's image at (u, v).

    Args:
        material_idx: The index of the material in the registry.
        u: Horizontal texture coordinate in [0, 1].
        v: Vertical texture coordinate in [0, 1].

    Returns:
        The nearest texel color.
    """
    width = texture_widths[material_idx]
    height = texture_heights[material_idx]

    rot = u + texture_h_offsets[material_idx]
    if rot > 1.0:
        rot -= 1.0

    x = ti.cast(ti.floor(rot * ti.cast(width, ti.f32)), ti.i32)
    y = ti.cast(ti.floor((1.0 - v) * ti.cast(height - 1, ti.f32)), ti.i32)
    x = ti.min(ti.max(x, 0), width - 1)
    y = ti.min(ti.max(y, 0), height - 1)

    return fetch_texel(texture_offsets[material_idx], width, x, y)
