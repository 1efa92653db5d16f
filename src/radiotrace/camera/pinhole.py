"""Perspective camera for the preview render.

The view is described by an eye point, a target and an up hint. From these
``camera_basis`` derives the right/up/back unit vectors and ``viewport``
lays out an image plane one unit in front of the eye. Only the eye, the
plane's lower-left corner and its two spanning edges are kept on the device.

Camera rays are visual: they carry no strength, no travelled distance and
frequency 0, so scattering them never touches the signal bookkeeping.
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from radiotrace.core.ray import Ray, make_ray


@dataclass
class PinholeCamera:
    """View parameters as they appear in a scene file.

    ``vfov`` is the vertical field of view in degrees and ``aspect_ratio``
    is image width over height.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float


_eye = ti.Vector.field(3, dtype=ti.f32, shape=())
_corner = ti.Vector.field(3, dtype=ti.f32, shape=())
_span_x = ti.Vector.field(3, dtype=ti.f32, shape=())
_span_y = ti.Vector.field(3, dtype=ti.f32, shape=())


def _unit(vec: np.ndarray, message: str) -> np.ndarray:
    length = np.linalg.norm(vec)
    if length == 0.0:
        raise ValueError(message)
    return vec / length


def camera_basis(camera: PinholeCamera) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return (right, up, back) unit vectors for ``camera``.

    Raises:
        ValueError: If the eye sits on the target or the up hint is parallel
            to the viewing direction.
    """
    back = _unit(
        np.subtract(camera.lookfrom, camera.lookat, dtype=np.float32),
        "Camera lookfrom and lookat must differ",
    )
    right = _unit(
        np.cross(np.asarray(camera.vup, dtype=np.float32), back),
        "Camera vup must not be parallel to the view direction",
    )
    return right, np.cross(back, right), back


def viewport(camera: PinholeCamera) -> dict[str, np.ndarray]:
    """Image plane of ``camera`` at unit distance from the eye."""
    right, up, back = camera_basis(camera)
    plane_h = 2.0 * math.tan(math.radians(camera.vfov) / 2.0)
    span_x = camera.aspect_ratio * plane_h * right
    span_y = plane_h * up
    eye = np.asarray(camera.lookfrom, dtype=np.float32)
    return {
        "origin": eye,
        "horizontal": span_x,
        "vertical": span_y,
        "lower_left": eye - back - 0.5 * (span_x + span_y),
    }


def setup_camera(camera: PinholeCamera) -> None:
    """Upload the viewport of ``camera`` for use by ``get_ray``."""
    plane = viewport(camera)
    _eye[None] = plane["origin"].tolist()
    _corner[None] = plane["lower_left"].tolist()
    _span_x[None] = plane["horizontal"].tolist()
    _span_y[None] = plane["vertical"].tolist()


@ti.func
def get_ray(u: ti.f32, v: ti.f32) -> Ray:
    """Visual ray through image coordinates u (left to right) and v (bottom to top)."""
    target = _corner[None] + u * _span_x[None] + v * _span_y[None]
    return make_ray(_eye[None], tm.normalize(target - _eye[None]), 0.0, 0.0, 0.0)


@ti.func
def get_ray_jittered(x: ti.i32, y: ti.i32, width: ti.i32, height: ti.i32) -> Ray:
    """Random ray through pixel (x, y), with row 0 at the top of the image."""
    fx = ti.cast(x, ti.f32) + ti.random(ti.f32)
    fy = ti.cast(y, ti.f32) + ti.random(ti.f32)
    return get_ray(fx / (width - 1.0), (height - fy) / (height - 1.0))


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Viewport currently uploaded by ``setup_camera``."""
    uploaded = {"origin": _eye, "horizontal": _span_x, "vertical": _span_y, "lower_left": _corner}
    return {name: tuple(float(c) for c in field[None]) for name, field in uploaded.items()}
