"""Scene module for primitive storage, hit resolution, sky and scene files.

Components:
    intersection: Sphere/box storage, the light table and intersect_scene
    sky: Background descriptor (none, gradient, texture)
    manager: SceneManager, SceneSettings and JSON scene loading

Scene data is organized for parallel access:
    - Structure-of-Arrays layout for geometric data
    - Contiguous material ID and primitive ID arrays
    - A light table listing every emitting primitive
"""

from .intersection import (
    MAX_BOXES,
    MAX_LIGHTS,
    MAX_SPHERES,
    SceneHitRecord,
    add_box,
    add_sphere,
    clear_scene,
    get_box_count,
    get_light_count,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MaterialInfo,
    PrimitiveInfo,
    SceneManager,
    SceneSettings,
    load_image,
    load_scene,
)
from .sky import SkyKind, background_color, clear_sky, set_sky_gradient, set_sky_texture

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "add_sphere",
    "add_box",
    "clear_scene",
    "get_sphere_count",
    "get_box_count",
    "get_light_count",
    "intersect_scene",
    "MAX_SPHERES",
    "MAX_BOXES",
    "MAX_LIGHTS",
    # Sky module
    "SkyKind",
    "background_color",
    "clear_sky",
    "set_sky_gradient",
    "set_sky_texture",
    # Manager module
    "SceneManager",
    "SceneSettings",
    "MaterialInfo",
    "PrimitiveInfo",
    "load_scene",
    "load_image",
]
