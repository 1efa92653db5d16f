"""Axis-aligned boxes: buildings, ground slabs and transmitter housings.

Each of the six faces is tested on its own: find where the ray crosses the
face plane, keep the crossing when it lands strictly within the face, and
return the nearest one in (t_min, t_max). A ray parallel to a face divides
by zero and the resulting inf/NaN coordinates fail the containment test.
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord, no_hit, surface_hit

vec3 = tm.vec3


@ti.dataclass
class Box:
    center: vec3
    half_extents: vec3


@ti.func
def hit_box(
    ray_origin: vec3,
    ray_direction: vec3,
    box: Box,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Nearest intersection of a ray with an axis-aligned box inside (t_min, t_max).

    Each of the six faces is tested as a plane, and a crossing counts when
    it lies within the face rectangle.

    Args:
        ray_origin: Ray origin.
        ray_direction: Ray direction; need not be unit length.
        box: The box.
        t_min: Lower bound on the ray parameter.
        t_max: Upper bound on the ray parameter.

    Returns:
        A HitRecord with the outward face normal turned toward the ray, or a
        miss.
    """
    rec = no_hit()
    nearest = t_max
    face = vec3(0.0)

    for axis in ti.static(range(3)):
        j = ti.static((axis + 1) % 3)
        k = ti.static((axis + 2) % 3)
        for side in ti.static((-1.0, 1.0)):
            t = (box.center[axis] + side * box.half_extents[axis] - ray_origin[axis]) / ray_direction[axis]
            dj = ray_origin[j] + t * ray_direction[j] - box.center[j]
            dk = ray_origin[k] + t * ray_direction[k] - box.center[k]
            on_face = ti.abs(dj) < box.half_extents[j] and ti.abs(dk) < box.half_extents[k]
            if on_face and t > t_min and t < nearest:
                nearest = t
                face = vec3(0.0)
                face[axis] = side

    if nearest < t_max:
        rec = surface_hit(ray_origin, ray_direction, nearest, face, box.center)

    return rec
