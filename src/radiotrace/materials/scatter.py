"""Material dispatch.

``scatter_material`` is the single scatter entry point used by both
integrators. It reads the tag of the hit material, fetches the coefficients
from the type-specific registry and builds the continuation ray.

The result mirrors an optional(optional(ray), color):

    did_scatter == 0              absorbed, nothing to continue with
    did_scatter == 1, has_ray 0   terminal (lights): attenuation is emission
    did_scatter == 1, has_ray 1   continue with new_ray, scaled by attenuation

Continuation rays start at the hit point, keep the carrier frequency and
accumulate travelled distance in ``ray_time``.
"""

import taichi as ti
import taichi.math as tm

from radiotrace.core.ray import Ray, make_ray
from radiotrace.materials.glass import get_glass_ior, scatter_glass
from radiotrace.materials.lambertian import get_lambertian_albedo, scatter_lambertian
from radiotrace.materials.light import get_light_color
from radiotrace.materials.metal import (
    get_metal_albedo,
    get_metal_dampening,
    get_metal_fuzz,
    scatter_metal,
)
from radiotrace.materials.registry import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)
from radiotrace.materials.texture import get_texture_albedo, scatter_texture
from radiotrace.scene.intersection import SceneHitRecord

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_material(ray: Ray, hit: SceneHitRecord):
    """Scatter an incoming ray off the material of a hit.

    Args:
        ray: The incoming ray.
        hit: The nearest hit of that ray.

    Returns:
        A tuple of (did_scatter, has_ray, new_ray, attenuation).
    """
    mat_type = get_material_type(hit.material_id)
    type_index = get_material_type_index(hit.material_id)

    did_scatter = 0
    has_ray = 0
    direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    strength = ray.strength

    if mat_type == int(MaterialType.LAMBERTIAN):
        albedo = get_lambertian_albedo(type_index)
        direction, attenuation = scatter_lambertian(albedo, hit.normal)
        did_scatter = 1
        has_ray = 1

    elif mat_type == int(MaterialType.METAL):
        albedo = get_metal_albedo(type_index)
        fuzz = get_metal_fuzz(type_index)
        direction, attenuation, did_scatter = scatter_metal(
            albedo, fuzz, ray.direction, hit.normal
        )
        has_ray = did_scatter
        strength = ray.strength - get_metal_dampening(type_index)

    elif mat_type == int(MaterialType.GLASS):
        ior = get_glass_ior(type_index)
        direction, attenuation = scatter_glass(ior, ray.direction, hit.normal, hit.front_face)
        did_scatter = 1
        has_ray = 1

    elif mat_type == int(MaterialType.TEXTURE):
        direction = scatter_texture(hit.normal)
        attenuation = get_texture_albedo(type_index, hit.u, hit.v)
        did_scatter = 1
        has_ray = 1

    elif mat_type == int(MaterialType.LIGHT):
        attenuation = get_light_color(type_index)
        did_scatter = 1

    new_ray = make_ray(hit.point, direction, strength, ray.ray_time + hit.t, ray.frequency)
    return did_scatter, has_ray, new_ray, attenuation
