"""Preview camera.

Image coordinates run left to right in u and bottom to top in v, both in
[0, 1]; pixel rows are counted from the top.
"""

from .pinhole import (
    PinholeCamera,
    camera_basis,
    get_camera_info,
    get_ray,
    get_ray_jittered,
    setup_camera,
    viewport,
)

__all__ = [
    "PinholeCamera",
    "camera_basis",
    "viewport",
    "setup_camera",
    "get_ray",
    "get_ray_jittered",
    "get_camera_info",
]
