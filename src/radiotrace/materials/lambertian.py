"""Diffuse surfaces: ground, walls and roofs.

A diffuse bounce leaves in a random direction on the normal's side of the
surface and tints the colour by the albedo. Strength and frequency of a
signal ray pass through untouched.
"""

import taichi as ti
import taichi.math as tm

from radiotrace.core.ray import random_in_hemisphere

vec3 = tm.vec3

MAX_LAMBERTIAN_MATERIALS = 256

_albedo = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
_count = ti.field(dtype=ti.i32, shape=())


@ti.func
def scatter_lambertian(albedo: vec3, normal: vec3):
    """Return (bounce direction, attenuation) for a diffuse hit."""
    return random_in_hemisphere(normal), albedo


def clear_lambertian_materials() -> None:
    _count[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Store a diffuse albedo and return its per-type index.

    Raises:
        ValueError: If a channel is outside [0, 1].
        RuntimeError: If the table is full.
    """
    if not all(0.0 <= channel <= 1.0 for channel in albedo):
        raise ValueError(f"Lambertian albedo {tuple(albedo)} must lie in [0, 1]")

    slot = int(_count[None])
    if slot == MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(f"Lambertian table is full ({MAX_LAMBERTIAN_MATERIALS} entries)")

    _albedo[slot] = albedo
    _count[None] = slot + 1
    return slot


def get_lambertian_material_count() -> int:
    return int(_count[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    return _albedo[material_idx]
