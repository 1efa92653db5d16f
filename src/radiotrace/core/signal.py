"""RF signal integrator and the transmitter-parallel coverage pass.

Every primitive with a light material is a transmitter (station). For each
ground cell (x, z) of a width x height grid the station casts a 2x2 fan of
rays at the sub-cell centers and follows them through the non-emitting
scene. Whenever a ray lands on the ground plane inside the grid, the cell
under it keeps the strongest free-space-path-loss estimate seen so far.

Initial ray strength depends on the horizontal bearing of the ray. A station
with ``beams`` lobes peaks at bearings that are multiples of 2*pi/beams:

    c = (bearing * beams mod 2*pi) / pi,  folded to [0, 1]
    strength = base - 50 * c^2

Grids are flat, row-major with row stride ``width + 1`` and
(width + 1) * (height + 1) cells. Cells no ray reaches stay at SENTINEL.
"""

from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from radiotrace import get_logger
from radiotrace.core.ray import make_ray, strength_at
from radiotrace.materials.light import (
    get_light_beams,
    get_light_frequency,
    get_light_strength,
    light_frequencies,
)
from radiotrace.materials.registry import get_material_type_index, material_slots
from radiotrace.materials.scatter import scatter_material
from radiotrace.scene.intersection import (
    get_light_count,
    intersect_scene,
    light_centers,
    light_material_ids,
    light_primitive_ids,
)

_log = get_logger()

# Type alias for 3D vectors
vec3 = tm.vec3

# Strength of a cell no ray has reached, in dB
SENTINEL = -140.0

# Strength lost at the edge of a beam lobe, in dB
BEAM_FALLOFF = 50.0

# Rays per cell along each horizontal axis
SUBSAMPLING = 2

# Hits below this height count as ground hits
GROUND_EPS = 0.001

# Stations weaker than this cannot raise any cell above the sentinel
MIN_BASE_STRENGTH = -130.0

T_MIN = 1e-5
T_MAX = 1e10


@dataclass
class SignalGrid:
    """Coverage result of one station.

    Attributes:
        primitive_id: Id of the station primitive.
        frequency: Carrier frequency in MHz.
        width: Grid width in cells; the row stride is width + 1.
        height: Grid height in cells.
        strength: Received strength in dB, float32 of length
            (width + 1) * (height + 1).
        times: Travelled distance of the strongest ray per cell, or None.
        angles: Arrival angle within the cell per cell, or None.
    """

    primitive_id: int
    frequency: float
    width: int
    height: int
    strength: np.ndarray
    times: np.ndarray | None = None
    angles: np.ndarray | None = None


# =============================================================================
# Beam Model
# =============================================================================


@ti.func
def beam_strength(base: ti.f32, beams: ti.i32, direction: vec3) -> ti.f32:
    """Initial strength of a ray leaving a station along ``direction``.

    Args:
        base: Station strength at the center of a lobe, in dB.
        beams: Number of lobes around the vertical axis.
        direction: Unit ray direction.

    Returns:
        base - BEAM_FALLOFF * c^2, with c the normalized distance to the
        nearest lobe center.
    """
    bearing = tm.atan2(direction.z, direction.x)
    phase = tm.mod(bearing * ti.cast(beams, ti.f32), 2.0 * tm.pi)
    c = phase / tm.pi
    if c > 1.0:
        c = 2.0 - c
    return (base - BEAM_FALLOFF) + BEAM_FALLOFF * (1.0 - c * c)


@ti.func
def sub_ray_target(x: ti.i32, z: ti.i32, i: ti.i32, j: ti.i32) -> vec3:
    """Center of sub-cell (i, j) of ground cell (x, z)."""
    interval = 1.0 / SUBSAMPLING
    return vec3(
        ti.cast(x, ti.f32) + (ti.cast(i, ti.f32) + 0.5) * interval,
        0.0,
        ti.cast(z, ti.f32) + (ti.cast(j, ti.f32) + 0.5) * interval,
    )


@ti.func
def max_hold(current: ti.f32, candidate: ti.f32):
    """Combine a cell value with a candidate, keeping the larger.

    Returns:
        A tuple of (value, improved) where improved is 1 if the candidate
        replaced the current value.
    """
    value = current
    improved = 0
    if candidate > current:
        value = candidate
        improved = 1
    return value, improved


# =============================================================================
# Signal Kernel
# =============================================================================


@ti.kernel
def _trace_stations(
    stations: ti.types.ndarray(dtype=ti.i32, ndim=1),
    signals: ti.types.ndarray(dtype=ti.f32, ndim=2),
    times: ti.types.ndarray(dtype=ti.f32, ndim=2),
    angles: ti.types.ndarray(dtype=ti.f32, ndim=2),
    out_of_bounds: ti.types.ndarray(dtype=ti.i32, ndim=1),
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
    do_times: ti.i32,
    do_angles: ti.i32,
):
    """Trace every station's rays; stations run in parallel.

    Args:
        stations: Light-table index of each station.
        signals: Strength grids, one row per station, preset to SENTINEL.
        times: Distance grids, one row per station (unused if do_times is 0).
        angles: Angle grids, one row per station (unused if do_angles is 0).
        out_of_bounds: Per-station count of ground hits at negative cells.
    """
    for s in range(stations.shape[0]):
        light = stations[s]
        origin = light_centers[light]
        type_index = get_material_type_index(light_material_ids[light])
        base = get_light_strength(type_index)
        beams = get_light_beams(type_index)
        frequency = get_light_frequency(type_index)
        stride = width + 1

        for cz in range(height):
            for cx in range(width):
                for i, j in ti.static(ti.ndrange(SUBSAMPLING, SUBSAMPLING)):
                    direction = tm.normalize(sub_ray_target(cx, cz, i, j) - origin)
                    ray = make_ray(
                        origin, direction, beam_strength(base, beams, direction), 0.0, frequency
                    )
                    active = 1
                    for bounce in range(max_depth):
                        if active == 1:
                            hit = intersect_scene(ray.origin, ray.direction, T_MIN, T_MAX, 1)
                            if hit.hit == 0:
                                active = 0
                            else:
                                p = hit.point
                                on_ground = (
                                    p.y < GROUND_EPS
                                    and p.x < ti.cast(width, ti.f32)
                                    and p.z < ti.cast(height, ti.f32)
                                )
                                if on_ground:
                                    if p.x < 0.0 or p.z < 0.0:
                                        out_of_bounds[s] += 1
                                    else:
                                        ix = ti.cast(ti.floor(p.x), ti.i32)
                                        iz = ti.cast(ti.floor(p.z), ti.i32)
                                        idx = iz * stride + ix
                                        value, improved = max_hold(
                                            signals[s, idx], strength_at(ray, hit.t)
                                        )
                                        if improved == 1:
                                            signals[s, idx] = value
                                            if do_times == 1:
                                                times[s, idx] = ray.ray_time + hit.t
                                            if do_angles == 1:
                                                angles[s, idx] = tm.atan2(
                                                    p.x - ti.cast(ix, ti.f32),
                                                    p.z - ti.cast(iz, ti.f32),
                                                )
                                did_scatter, has_ray, new_ray, atten = scatter_material(ray, hit)
                                if has_ray == 0:
                                    active = 0
                                else:
                                    ray = new_ray


# =============================================================================
# Public API
# =============================================================================


def _light_frequency(light_index: int) -> float:
    type_index = material_slots[light_material_ids[light_index]]
    return float(light_frequencies[type_index])


def _trace(scene, light_indices: list[int], do_times: bool, do_angles: bool) -> list[SignalGrid]:
    settings = scene.settings
    width, height = settings.width, settings.height
    if settings.max_depth < 0:
        raise ValueError(f"max_depth = {settings.max_depth} must be non-negative")

    for p in scene.stations():
        params = scene.materials[p.material_id].params
        if params["strength"] <= MIN_BASE_STRENGTH:
            raise ValueError(
                f"Station {p.primitive_id} strength {params['strength']} dB must exceed "
                f"{MIN_BASE_STRENGTH}"
            )
        # Path loss needs a wavelength
        if params["frequency"] <= 0.0:
            raise ValueError(
                f"Station {p.primitive_id} frequency {params['frequency']} MHz must be positive"
            )

    n = len(light_indices)
    cells = (width + 1) * (height + 1)
    stations = np.array(light_indices, dtype=np.int32)
    signals = np.full((n, cells), SENTINEL, dtype=np.float32)
    times = np.zeros((n, cells if do_times else 1), dtype=np.float32)
    angles = np.zeros((n, cells if do_angles else 1), dtype=np.float32)
    out_of_bounds = np.zeros(n, dtype=np.int32)

    if n > 0:
        _trace_stations(
            stations,
            signals,
            times,
            angles,
            out_of_bounds,
            width,
            height,
            settings.max_depth,
            int(do_times),
            int(do_angles),
        )
        ti.sync()

    grids = []
    for k, light in enumerate(light_indices):
        primitive_id = int(light_primitive_ids[light])
        if out_of_bounds[k] > 0:
            _log.warning(
                "Station %d: skipped %d ground hits outside the %dx%d grid",
                primitive_id,
                int(out_of_bounds[k]),
                width,
                height,
            )
        grids.append(
            SignalGrid(
                primitive_id=primitive_id,
                frequency=_light_frequency(light),
                width=width,
                height=height,
                strength=signals[k],
                times=times[k] if do_times else None,
                angles=angles[k] if do_angles else None,
            )
        )
    return grids


def generate_signals(scene, do_times: bool = False, do_angles: bool = False) -> list[SignalGrid]:
    """Trace the coverage grid of every station in one parallel pass.

    Args:
        scene: A SceneManager.
        do_times: Also record travelled distance per cell.
        do_angles: Also record arrival angle per cell.

    Returns:
        One SignalGrid per station, in light-table order. Grids are not
        homogenized.
    """
    return _trace(scene, list(range(get_light_count())), do_times, do_angles)


def generate_signal(
    scene,
    station_primitive_id: int,
    do_times: bool = False,
    do_angles: bool = False,
) -> SignalGrid:
    """Trace the coverage grid of a single station.

    Raises:
        ValueError: If no light primitive carries the given id.
    """
    for light in range(get_light_count()):
        if int(light_primitive_ids[light]) == station_primitive_id:
            return _trace(scene, [light], do_times, do_angles)[0]
    raise ValueError(f"Station {station_primitive_id} does not have light material")
