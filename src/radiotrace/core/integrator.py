"""Visual integrator and the row-parallel preview render.

``ray_color`` follows a camera ray through the scene:

    depth exhausted        black
    no hit                 background (sky)
    absorbed               black
    light                  emission color, unclamped
    scattered              clamp(direct + attenuation * ray_color(next))

The direct term is only sampled on the two bounces nearest the camera, and
only with probability n_lights * p (p = 0.05 on glass, 0.1 elsewhere). It
casts one connection ray toward the center of every light, weights the color
found there by the attenuation and by a distance falloff, and averages over
the lights. A connection ray that lands on a scattering surface may draw
once more toward the lights; rays of that second round stop at their
first hit.

Recursion is unrolled: each level stores its (direct, attenuation) pair in
per-row scratch fields, and the color is assembled by walking the levels
back from the terminal value. Rows are the unit of parallelism, so every
row owns its own scratch slot.

Pixels keep the per-channel maximum over their samples. The square root of
that maximum is quantized to 8 bits.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from radiotrace.scene.manager import load_scene
    >>> from radiotrace.core.integrator import render_image
    >>> scene = load_scene("scene.json")
    >>> pixels = render_image(scene)  # (height, width, 3) uint8
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from radiotrace.camera.pinhole import get_ray_jittered, setup_camera
from radiotrace.core.ray import Ray, make_ray
from radiotrace.materials.light import get_light_color
from radiotrace.materials.registry import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)
from radiotrace.materials.scatter import scatter_material
from radiotrace.scene.intersection import (
    intersect_scene,
    light_centers,
    light_count,
)
from radiotrace.scene.sky import background_color

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# t_min and t_max for ray intersection
T_MIN = 0.001
T_MAX = 1e10

# Per-light probability of sampling direct light at a bounce
DIRECT_LIGHT_PROB = 0.1
DIRECT_LIGHT_PROB_GLASS = 0.05

# Distance over which the direct-light contribution fades out
FALLOFF_DISTANCE = 20.0

# Scratch capacity (preallocated to avoid kernel recompilation)
MAX_DEPTH = 64
MAX_IMAGE_HEIGHT = 2048

_path_direct = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_HEIGHT, MAX_DEPTH))
_path_atten = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_HEIGHT, MAX_DEPTH))


# =============================================================================
# Direct Lighting
# =============================================================================


@ti.func
def falloff(dist: ti.f32) -> ti.f32:
    """Direct-light weight ((20 - dist) / 20)^2, clamped to [0, 1]."""
    f = (FALLOFF_DISTANCE - dist) / FALLOFF_DISTANCE
    return tm.clamp(f * f, 0.0, 1.0)


@ti.func
def _draws_direct_light(material_id: ti.i32) -> ti.i32:
    """Random draw deciding whether a bounce samples the lights directly.

    Fires with probability ``lights * prob``, where prob is smaller on glass.
    """
    prob = DIRECT_LIGHT_PROB
    if get_material_type(material_id) == int(MaterialType.GLASS):
        prob = DIRECT_LIGHT_PROB_GLASS
    n = ti.cast(light_count(), ti.f32)
    return ti.cast(n > 0.0 and ti.random(ti.f32) > 1.0 - n * prob, ti.i32)


@ti.func
def _emitter_color(origin: vec3, direction: vec3) -> vec3:
    """Innermost connection ray: sky, a light's emission, or black."""
    color = vec3(0.0, 0.0, 0.0)
    hit = intersect_scene(origin, direction, T_MIN, T_MAX, 0)
    if hit.hit == 0:
        color = background_color(direction)
    elif get_material_type(hit.material_id) == int(MaterialType.LIGHT):
        color = get_light_color(get_material_type_index(hit.material_id))
    return color


@ti.func
def _gather_emitters(point: vec3, t: ti.f32, attenuation: vec3) -> vec3:
    n = light_count()
    total = vec3(0.0, 0.0, 0.0)
    for i in range(n):
        total += attenuation * _emitter_color(point, light_centers[i] - point) * falloff(t)
    return total / ti.cast(n, ti.f32)


@ti.func
def connection_color(origin: vec3, direction: vec3) -> vec3:
    """Color seen along a connection ray toward a light.

    The ray is traced with a two-level budget starting one level down: it
    never continues past its first hit, but a scattering surface it hits
    may still sample the lights itself. That second round of connection
    rays only sees the sky or emission.
    """
    color = vec3(0.0, 0.0, 0.0)
    ray = make_ray(origin, direction, 0.0, 0.0, 0.0)
    hit = intersect_scene(origin, direction, T_MIN, T_MAX, 0)
    if hit.hit == 0:
        color = background_color(direction)
    else:
        did_scatter, has_ray, new_ray, attenuation = scatter_material(ray, hit)
        if did_scatter == 1:
            if has_ray == 0:
                color = attenuation
            elif _draws_direct_light(hit.material_id):
                color = tm.clamp(_gather_emitters(hit.point, hit.t, attenuation), 0.0, 1.0)
    return color


@ti.func
def _direct_light(point: vec3, t: ti.f32, attenuation: vec3) -> vec3:
    n = light_count()
    total = vec3(0.0, 0.0, 0.0)
    for i in range(n):
        total += attenuation * connection_color(point, light_centers[i] - point) * falloff(t)
    return total / ti.cast(n, ti.f32)


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def ray_color(ray: Ray, max_depth: ti.i32, row: ti.i32) -> vec3:
    """Trace a visual ray and return its color.

    Args:
        ray: The camera ray.
        max_depth: Bounce budget; 0 yields black.
        row: Scratch slot, unique to the calling row.

    Returns:
        The RGB color carried back along the ray.
    """
    current = ray
    levels = 0
    terminal = vec3(0.0, 0.0, 0.0)
    active = 1

    # Forward pass: record (direct, attenuation) per scattering level
    for level in range(max_depth):
        if active == 1:
            hit = intersect_scene(current.origin, current.direction, T_MIN, T_MAX, 0)
            if hit.hit == 0:
                terminal = background_color(current.direction)
                active = 0
            else:
                did_scatter, has_ray, new_ray, attenuation = scatter_material(current, hit)
                if did_scatter == 0:
                    active = 0
                elif has_ray == 0:
                    terminal = attenuation
                    active = 0
                else:
                    direct = vec3(0.0, 0.0, 0.0)
                    # depth = max_depth - level, so this is depth > max_depth - 2
                    if level < 2:
                        if _draws_direct_light(hit.material_id):
                            direct = _direct_light(hit.point, hit.t, attenuation)
                    _path_direct[row, level] = direct
                    _path_atten[row, level] = attenuation
                    levels = level + 1
                    current = new_ray

    # Backward pass: c = clamp(direct + attenuation * c)
    color = terminal
    for k in range(levels):
        level = levels - 1 - k
        color = tm.clamp(
            _path_direct[row, level] + _path_atten[row, level] * color, 0.0, 1.0
        )
    return color


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_rows(
    out: ti.types.ndarray(dtype=ti.f32, ndim=3),
    width: ti.i32,
    height: ti.i32,
    samples: ti.i32,
    max_depth: ti.i32,
):
    """Render every pixel, keeping the per-channel maximum over samples.

    The outermost loop runs rows in parallel; pixels within a row are
    rendered sequentially and share the row's scratch slot.
    """
    for y in range(height):
        for x in range(width):
            best = vec3(0.0, 0.0, 0.0)
            for s in range(samples):
                ray = get_ray_jittered(x, y, width, height)
                c = ray_color(ray, max_depth, y)
                for ch in ti.static(range(3)):
                    # NaN never replaces the running maximum
                    if c[ch] > best[ch]:
                        best[ch] = c[ch]
            for ch in ti.static(range(3)):
                out[y, x, ch] = best[ch]


@ti.kernel
def _trace_color(origin: vec3, direction: vec3, max_depth: ti.i32) -> vec3:
    return ray_color(make_ray(origin, direction, 0.0, 0.0, 0.0), max_depth, 0)


# =============================================================================
# Public Rendering API
# =============================================================================


def _check_depth(max_depth: int) -> None:
    if max_depth < 0 or max_depth > MAX_DEPTH:
        raise ValueError(f"max_depth = {max_depth} must be in [0, {MAX_DEPTH}]")


def trace_color(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int,
) -> tuple[float, float, float]:
    """Color of a single visual ray against the current scene.

    This is a Python-callable function for testing. For production rendering,
    use render_image() which processes all rows in parallel.
    """
    _check_depth(max_depth)
    color = _trace_color(vec3(*origin), vec3(*direction), max_depth)
    return (float(color[0]), float(color[1]), float(color[2]))


def to_rgb8(max_buffer: np.ndarray) -> np.ndarray:
    """Quantize per-pixel maxima: round(255 * sqrt(clamp(c)))."""
    c = np.sqrt(np.clip(np.nan_to_num(max_buffer, nan=0.0), 0.0, 1.0))
    return np.round(c * 255.0).astype(np.uint8)


def render_image(scene) -> np.ndarray:
    """Render the scene's camera view.

    Args:
        scene: A SceneManager whose settings carry a camera.

    Returns:
        NumPy array of shape (height, width, 3), dtype uint8, top row first.

    Raises:
        RuntimeError: If the scene has no camera.
        ValueError: If the image height or depth exceeds the scratch capacity.
    """
    settings = scene.settings
    if settings.camera is None:
        raise RuntimeError("Scene has no camera; cannot render a view")
    if settings.height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image height {settings.height} exceeds maximum supported ({MAX_IMAGE_HEIGHT})"
        )
    _check_depth(settings.max_depth)

    setup_camera(settings.camera)
    max_buffer = np.zeros((settings.height, settings.width, 3), dtype=np.float32)
    _render_rows(
        max_buffer,
        settings.width,
        settings.height,
        settings.samples_per_pixel,
        settings.max_depth,
    )
    ti.sync()
    return to_rgb8(max_buffer)
