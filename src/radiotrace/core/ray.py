"""Rays that carry a radio signal, plus the bounce helpers materials share.

Besides origin and direction a Ray holds a strength (a colour weight for
visual rays, dBm for signal rays), the distance already covered in earlier
segments (``ray_time``) and a carrier frequency in MHz. The free-space loss
scale ``dist_factor = wavelength / (4 * pi)`` is fixed once in ``make_ray``.

Visual rays have frequency 0. Their ``dist_factor`` is infinite, so
``strength_at`` is only meaningful for signal rays.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

SPEED_OF_LIGHT = 299792458.0

# float32 machine epsilon
F32_EPSILON = 1.1920929e-07

SQRT_2 = 1.4142135623730951


@ti.dataclass
class Ray:
    origin: vec3
    direction: vec3
    strength: ti.f32
    ray_time: ti.f32
    frequency: ti.f32
    dist_factor: ti.f32


@ti.func
def make_ray(
    origin: vec3,
    direction: vec3,
    strength: ti.f32,
    ray_time: ti.f32,
    frequency: ti.f32,
) -> Ray:
    """Build a ray; ``frequency`` is in MHz and ``direction`` need not be unit length."""
    wavelength = SPEED_OF_LIGHT / (frequency * 1.0e6)
    return Ray(
        origin=origin,
        direction=direction,
        strength=strength,
        ray_time=ray_time,
        frequency=frequency,
        dist_factor=wavelength / (4.0 * tm.pi),
    )


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Point reached after ``t`` units of the ray's direction.

    Args:
        ray: The ray.
        t: Ray parameter; scaled by the direction's length.

    Returns:
        origin + t * direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def strength_at(ray: Ray, t: ti.f32) -> ti.f32:
    """Strength in dB once the ray has covered a further distance ``t``.

    Free-space path loss over the whole path:

        strength - 20 * log10((ray_time + t) / dist_factor)
    """
    travelled = ray.ray_time + t
    return ray.strength - 20.0 * ti.log(travelled / ray.dist_factor) / ti.log(10.0)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror ``incident`` about a surface.

    Args:
        incident: Incoming direction.
        normal: Unit surface normal.

    Returns:
        The reflected direction, with the same length as ``incident``.
    """
    return incident - 2.0 * incident.dot(normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Bend a unit ``incident`` through a surface with index ratio ``eta``.

    ``normal`` faces the incident ray. The parallel part takes the absolute
    value under the root so rays at the critical angle stay finite.
    """
    cos_in = tm.min(-incident.dot(normal), 1.0)
    perp = eta * (incident + cos_in * normal)
    return perp - ti.sqrt(ti.abs(1.0 - perp.dot(perp))) * normal


@ti.func
def schlick_reflectance(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Schlick's approximation of the Fresnel reflectance."""
    f0 = (1.0 - ref_idx) / (1.0 + ref_idx)
    f0 = f0 * f0
    return f0 + (1.0 - f0) * tm.pow(1.0 - cosine, 5.0)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check whether every component of ``v`` is below float32 epsilon.

    Args:
        v: Vector to test, usually a scatter direction.

    Returns:
        1 if the vector is degenerate, 0 otherwise.
    """
    return ti.select(ti.abs(v).max() < F32_EPSILON, 1, 0)


@ti.func
def random_in_unit_sphere() -> vec3:
    """Rejection-sample a nonzero point strictly inside the unit ball."""
    p = vec3(0.0)
    searching = True
    for attempt in range(100):
        if searching:
            p = 2.0 * vec3(ti.random(ti.f32), ti.random(ti.f32), ti.random(ti.f32)) - 1.0
            r2 = p.dot(p)
            if r2 > 1e-12 and r2 < 1.0:
                searching = False
    return p


@ti.func
def random_unit_vector() -> vec3:
    """Uniform random direction.

    Returns:
        A unit vector drawn uniformly from the sphere.
    """
    return tm.normalize(random_in_unit_sphere())


@ti.func
def random_in_hemisphere(normal: vec3) -> vec3:
    """Random unit vector on the side of ``normal``.

    A sample further than sqrt(2) from the tip of the unit normal lies on
    the wrong side and is mirrored through the origin.
    """
    d = random_unit_vector()
    if tm.length(d - normal) >= SQRT_2:
        d = -d
    return d
