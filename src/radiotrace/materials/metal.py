"""Reflective surfaces such as glass facades and metal roofing.

The outgoing direction is the mirror image of the incoming one, pushed off
by ``fuzz`` times a random unit vector. A bounce whose fuzzed direction
dips below the surface is absorbed. Every reflection costs a signal ray
``dampening`` dB, making metal the one material that weakens rays.
"""

import taichi as ti
import taichi.math as tm

from radiotrace.core.ray import random_unit_vector, reflect

vec3 = tm.vec3

MAX_METAL_MATERIALS = 256

_albedo = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
_fuzz = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
_dampening = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
_count = ti.field(dtype=ti.i32, shape=())


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f32,
    incident_direction: vec3,
    normal: vec3,
):
    """Mirror bounce off a surface whose ``normal`` faces the incoming ray.

    Returns:
        (direction, attenuation, did_scatter); did_scatter is 0 when the
        fuzzed direction does not leave the surface.
    """
    direction = reflect(tm.normalize(incident_direction), normal) + fuzz * random_unit_vector()
    leaves = ti.select(direction.dot(normal) > 0.0, 1, 0)
    return direction, albedo, leaves


def clear_metal_materials() -> None:
    _count[None] = 0


def add_metal_material(
    albedo: tuple[float, float, float],
    fuzz: float = 0.0,
    dampening: float = 0.0,
) -> int:
    """Store a reflective material and return its per-type index.

    ``dampening`` is the loss in dB applied to a signal ray per reflection.

    Raises:
        ValueError: If an albedo channel or ``fuzz`` is outside [0, 1].
        RuntimeError: If the table is full.
    """
    if not all(0.0 <= channel <= 1.0 for channel in albedo):
        raise ValueError(f"Metal albedo {tuple(albedo)} must lie in [0, 1]")
    if not 0.0 <= fuzz <= 1.0:
        raise ValueError(f"Metal fuzz {fuzz} must lie in [0, 1]")

    slot = int(_count[None])
    if slot == MAX_METAL_MATERIALS:
        raise RuntimeError(f"Metal table is full ({MAX_METAL_MATERIALS} entries)")

    _albedo[slot] = albedo
    _fuzz[slot] = fuzz
    _dampening[slot] = dampening
    _count[None] = slot + 1
    return slot


def get_metal_material_count() -> int:
    return int(_count[None])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    return _albedo[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f32:
    return _fuzz[material_idx]


@ti.func
def get_metal_dampening(material_idx: ti.i32) -> ti.f32:
    return _dampening[material_idx]
