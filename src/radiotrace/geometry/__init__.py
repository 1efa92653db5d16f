"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive, the shared HitRecord and spherical UVs
    box: Axis-aligned box primitive

All intersection routines are Taichi functions (@ti.func) with the same
shape: hit_<shape>(ray_origin, ray_direction, shape, t_min, t_max) returns
a HitRecord for the nearest crossing inside (t_min, t_max).
"""

from .box import Box, hit_box
from .sphere import HitRecord, Sphere, hit_sphere, sphere_uv

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "sphere_uv",
    "Box",
    "hit_box",
]
