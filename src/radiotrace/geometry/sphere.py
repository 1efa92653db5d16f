"""Spheres, the shared hit record, and spherical texture coordinates.

Transmitters are frequently modelled as small spheres, so the sphere
routine doubles as the reference for how every primitive fills in a
HitRecord: the normal always opposes the incoming ray and ``front_face``
remembers which side was struck.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.dataclass
class Sphere:
    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Where and how a ray met a primitive.

    Only ``hit`` is meaningful on a miss. On a hit, ``normal`` is unit length
    and faces the incoming ray, ``front_face`` is 1 when the ray came from
    outside, and ``u``/``v`` are texture coordinates in [0, 1].
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    u: ti.f32
    v: ti.f32


@ti.func
def sphere_uv(direction: vec3):
    """Longitude/latitude style mapping of a unit direction to (u, v)."""
    return ti.atan2(direction.x, direction.z) / (2.0 * tm.pi) + 0.5, 0.5 + 0.5 * direction.y


@ti.func
def no_hit() -> HitRecord:
    return HitRecord(hit=0, t=0.0, point=vec3(0.0), normal=vec3(0.0), front_face=0, u=0.0, v=0.0)


@ti.func
def surface_hit(
    ray_origin: vec3, ray_direction: vec3, t: ti.f32, outward: vec3, center: vec3
) -> HitRecord:
    """Build the record for a hit at ``t`` given the primitive's outward normal."""
    point = ray_origin + t * ray_direction
    u, v = sphere_uv(tm.normalize(point - center))
    normal = outward
    front = 1
    if tm.dot(ray_direction, outward) > 0.0:
        normal = -outward
        front = 0
    return HitRecord(
        hit=1,
        t=t,
        point=point,
        normal=normal,
        front_face=front,
        u=u,
        v=v,
    )


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Nearest intersection of a ray with ``sphere`` inside (t_min, t_max).

    The quadratic is solved in half-b form. The first root comes from
    ``q = -(half_b + sign(half_b) * sqrt(disc))`` and the second from
    ``c / q`` so that neither subtracts two nearly equal numbers.
    """
    rec = no_hit()

    oc = ray_origin - sphere.center
    a = ray_direction.dot(ray_direction)
    half_b = oc.dot(ray_direction)
    c = oc.dot(oc) - sphere.radius * sphere.radius
    disc = half_b * half_b - a * c

    if disc >= 0.0:
        root = ti.sqrt(disc)
        q = -(half_b + ti.select(half_b < 0.0, -root, root))
        near = (-half_b - root) / a
        far = (-half_b + root) / a
        if ti.abs(q) >= 1e-10:
            near = tm.min(q / a, c / q)
            far = tm.max(q / a, c / q)

        t = near
        if t <= t_min or t >= t_max:
            t = far
        if t > t_min and t < t_max:
            rec = surface_hit(
                ray_origin,
                ray_direction,
                t,
                (ray_origin + t * ray_direction - sphere.center) / sphere.radius,
                sphere.center,
            )

    return rec
