"""Materials module.

Components:
    registry: MaterialType tag and the unified material id table
    lambertian: Diffuse reflection
    metal: Fuzzed mirror reflection with per-bounce signal dampening
    glass: Fresnel-weighted reflection or refraction
    texture: Image-textured diffuse surfaces and the shared texel pool
    light: Emitters, which double as signal transmitters
    scatter: Dispatch from a hit's material id to the right scatter function

Each material type keeps its coefficients in a fixed-capacity registry of
Taichi fields with add_*/clear_*/get_* accessors.
"""

from .glass import add_glass_material, clear_glass_materials, scatter_glass
from .lambertian import add_lambertian_material, clear_lambertian_materials, scatter_lambertian
from .light import add_light_material, clear_light_materials
from .metal import add_metal_material, clear_metal_materials, scatter_metal
from .registry import (
    MAX_MATERIALS,
    MaterialType,
    clear_material_table,
    get_material_type,
    get_material_type_index,
    register_material,
)
from .texture import (
    add_texture_material,
    clear_texels,
    clear_texture_materials,
    scatter_texture,
    upload_pixels,
)

# Note: scatter is NOT imported here; it depends on scene.intersection.

__all__ = [
    "MAX_MATERIALS",
    "MaterialType",
    "register_material",
    "clear_material_table",
    "get_material_type",
    "get_material_type_index",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "scatter_lambertian",
    "add_metal_material",
    "clear_metal_materials",
    "scatter_metal",
    "add_glass_material",
    "clear_glass_materials",
    "scatter_glass",
    "add_texture_material",
    "clear_texture_materials",
    "scatter_texture",
    "upload_pixels",
    "clear_texels",
    "add_light_material",
    "clear_light_materials",
]
