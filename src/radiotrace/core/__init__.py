"""Ray transport.

Components:
    ray: Signal-carrying rays, path loss and bounce helpers
    integrator: Visual integrator and row-parallel preview render
    signal: Beam model and transmitter-parallel signal pass
    homogenize: Cell-parallel gap filling of signal grids
    sigmap: Runs both passes and writes their output files

Only ``ray`` is re-exported here. The other modules declare Taichi fields
and must be imported after ti.init().
"""

from .ray import (
    SPEED_OF_LIGHT,
    Ray,
    make_ray,
    near_zero,
    random_in_hemisphere,
    random_in_unit_sphere,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    strength_at,
    vec3,
)

__all__ = [
    "SPEED_OF_LIGHT",
    "Ray",
    "make_ray",
    "ray_at",
    "strength_at",
    "vec3",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_hemisphere",
]
