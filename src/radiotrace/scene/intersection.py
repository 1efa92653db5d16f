"""Primitive storage and nearest-hit queries against the whole scene.

Spheres and boxes sit in flat per-attribute fields next to their material
id and the stable primitive id used to name transmitter outputs.
``intersect_scene`` walks every primitive and narrows the search interval
to the nearest hit found so far.

Any primitive with a light material is also copied into the light table.
The preview integrator aims its direct-light rays at those entries and the
signal pass treats each entry as a transmitter.
"""

import taichi as ti
import taichi.math as tm

from radiotrace.geometry.box import Box, hit_box
from radiotrace.geometry.sphere import HitRecord, Sphere, hit_sphere, no_hit
from radiotrace.materials.registry import MaterialType, get_material_type, lookup_material_type

vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """A HitRecord tagged with what was hit.

    ``material_id`` and ``primitive_id`` are -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    u: ti.f32
    v: ti.f32
    material_id: ti.i32
    primitive_id: ti.i32


MAX_SPHERES = 1024
MAX_BOXES = 1024
MAX_LIGHTS = 64

_sph_center = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
_sph_radius = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
_sph_material = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
_sph_primitive = ti.field(dtype=ti.i32, shape=MAX_SPHERES)

_box_center = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BOXES)
_box_half = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BOXES)
_box_material = ti.field(dtype=ti.i32, shape=MAX_BOXES)
_box_primitive = ti.field(dtype=ti.i32, shape=MAX_BOXES)

light_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_material_ids = ti.field(dtype=ti.i32, shape=MAX_LIGHTS)
light_primitive_ids = ti.field(dtype=ti.i32, shape=MAX_LIGHTS)

# Entry 0 spheres, 1 boxes, 2 lights
_counts = ti.field(dtype=ti.i32, shape=3)
_SPHERES, _BOXES, _LIGHTS = 0, 1, 2


def clear_scene() -> None:
    _counts.fill(0)


def _next_slot(table: int, capacity: int, label: str) -> int:
    slot = int(_counts[table])
    if slot == capacity:
        raise RuntimeError(f"Scene holds at most {capacity} {label}")
    _counts[table] = slot + 1
    return slot


def _note_light(center, material_id: int, primitive_id: int) -> None:
    if lookup_material_type(material_id) != MaterialType.LIGHT:
        return
    slot = _next_slot(_LIGHTS, MAX_LIGHTS, "lights")
    light_centers[slot] = center
    light_material_ids[slot] = material_id
    light_primitive_ids[slot] = primitive_id


def add_sphere(center, radius: float, material_id: int = 0, primitive_id: int = 0) -> int:
    """Store a sphere and return its slot.

    Raises:
        ValueError: If ``radius`` is not positive.
        RuntimeError: If MAX_SPHERES spheres are already stored.
    """
    if not radius > 0.0:
        raise ValueError(f"Sphere radius {radius} must be positive")

    slot = _next_slot(_SPHERES, MAX_SPHERES, "spheres")
    _sph_center[slot] = center
    _sph_radius[slot] = radius
    _sph_material[slot] = material_id
    _sph_primitive[slot] = primitive_id
    _note_light(center, material_id, primitive_id)
    return slot


def add_box(center, half_extents, material_id: int = 0, primitive_id: int = 0) -> int:
    """Store an axis-aligned box and return its slot.

    Raises:
        ValueError: If a half extent is not positive.
        RuntimeError: If MAX_BOXES boxes are already stored.
    """
    if not all(extent > 0.0 for extent in half_extents):
        raise ValueError(f"Box half extents {tuple(half_extents)} must all be positive")

    slot = _next_slot(_BOXES, MAX_BOXES, "boxes")
    _box_center[slot] = center
    _box_half[slot] = half_extents
    _box_material[slot] = material_id
    _box_primitive[slot] = primitive_id
    _note_light(center, material_id, primitive_id)
    return slot


def get_sphere_count() -> int:
    return int(_counts[_SPHERES])


def get_box_count() -> int:
    return int(_counts[_BOXES])


def get_light_count() -> int:
    return int(_counts[_LIGHTS])


@ti.func
def light_count() -> ti.i32:
    return _counts[_LIGHTS]


@ti.func
def _tagged(rec: HitRecord, material_id: ti.i32, primitive_id: ti.i32) -> SceneHitRecord:
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        u=rec.u,
        v=rec.v,
        material_id=material_id,
        primitive_id=primitive_id,
    )


@ti.func
def _considered(material_id: ti.i32, skip_lights: ti.i32) -> ti.i32:
    return skip_lights == 0 or get_material_type(material_id) != int(MaterialType.LIGHT)


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
    skip_lights: ti.i32,
) -> SceneHitRecord:
    """Nearest primitive hit by the ray inside (t_min, t_max).

    With ``skip_lights`` set, light primitives are invisible and only the
    obstructions a signal ray can bounce off remain.
    """
    nearest = t_max
    best = _tagged(no_hit(), -1, -1)

    for i in range(_counts[_SPHERES]):
        mat = _sph_material[i]
        if _considered(mat, skip_lights):
            rec = hit_sphere(
                ray_origin, ray_direction, Sphere(center=_sph_center[i], radius=_sph_radius[i]), t_min, nearest
            )
            if rec.hit == 1:
                nearest = rec.t
                best = _tagged(rec, mat, _sph_primitive[i])

    for i in range(_counts[_BOXES]):
        mat = _box_material[i]
        if _considered(mat, skip_lights):
            rec = hit_box(
                ray_origin, ray_direction, Box(center=_box_center[i], half_extents=_box_half[i]), t_min, nearest
            )
            if rec.hit == 1:
                nearest = rec.t
                best = _tagged(rec, mat, _box_primitive[i])

    return best
