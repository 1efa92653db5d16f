"""Transparent surfaces: windows, glass towers and radomes.

At each hit the ray either reflects or refracts. Reflection is forced when
the angle exceeds the critical angle and is otherwise picked at random with
Schlick's Fresnel probability. Glass absorbs nothing, so the continuation
ray keeps white attenuation. Outside air is taken to have index 1.
"""

import taichi as ti
import taichi.math as tm

from radiotrace.core.ray import reflect, refract, schlick_reflectance

vec3 = tm.vec3

MAX_GLASS_MATERIALS = 256

_ior = ti.field(dtype=ti.f32, shape=MAX_GLASS_MATERIALS)
_count = ti.field(dtype=ti.i32, shape=())


@ti.func
def scatter_glass(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Return (direction, attenuation) for a hit on glass of index ``ior``.

    ``front_face`` is 1 when the ray enters the glass and 0 when it leaves.
    """
    eta = ti.select(front_face == 1, 1.0 / ior, ior)
    d = tm.normalize(incident_direction)
    cos_in = tm.min(-d.dot(normal), 1.0)
    sin_in = tm.sqrt(tm.max(0.0, 1.0 - cos_in * cos_in))

    out = refract(d, normal, eta)
    if eta * sin_in > 1.0 or schlick_reflectance(cos_in, eta) > ti.random(ti.f32):
        out = reflect(d, normal)
    return out, vec3(1.0)


def clear_glass_materials() -> None:
    _count[None] = 0


def add_glass_material(ior: float = 1.5) -> int:
    """Store a glass index of refraction and return its per-type index.

    Raises:
        ValueError: If ``ior`` is below 1.
        RuntimeError: If the table is full.
    """
    if ior < 1.0:
        raise ValueError(f"Glass index of refraction {ior} must be at least 1")

    slot = int(_count[None])
    if slot == MAX_GLASS_MATERIALS:
        raise RuntimeError(f"Glass table is full ({MAX_GLASS_MATERIALS} entries)")

    _ior[slot] = ior
    _count[None] = slot + 1
    return slot


def get_glass_material_count() -> int:
    return int(_count[None])


@ti.func
def get_glass_ior(material_idx: ti.i32) -> ti.f32:
    return _ior[material_idx]
