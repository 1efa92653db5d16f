"""Light (emitter) material.

Lights end visual paths with their emission color and never produce a
continuation ray. A primitive carrying a light material is also a
transmitter for the signal pass: its beam count, base strength and carrier
frequency drive the beam-lobe model.
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3

# Maximum number of light materials in the scene
MAX_LIGHT_MATERIALS = 256

light_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHT_MATERIALS)
light_strengths = ti.field(dtype=ti.f32, shape=MAX_LIGHT_MATERIALS)
light_beams = ti.field(dtype=ti.i32, shape=MAX_LIGHT_MATERIALS)
light_frequencies = ti.field(dtype=ti.f32, shape=MAX_LIGHT_MATERIALS)
num_light_materials = ti.field(dtype=ti.i32, shape=())


def clear_light_materials() -> None:
    """Clear all light materials."""
    num_light_materials[None] = 0


def add_light_material(
    color: tuple[float, float, float],
    strength: float = 0.0,
    beams: int = 1,
    frequency: float = 0.0,
) -> int:
    """Add a light material to the material registry.

    Args:
        color: Emission color as (R, G, B). Components may exceed 1.
        strength: Transmit strength in dB.
        beams: Number of beam lobes around the vertical axis (>= 1).
        frequency: Carrier frequency in MHz.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If the color is negative, beams < 1 or frequency < 0.
    """
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"Emission component {i} = {component} is negative")
    if beams < 1:
        raise ValueError(f"Beam count = {beams} must be at least 1")
    if frequency < 0.0:
        raise ValueError(f"Frequency = {frequency} must be non-negative")

    idx = num_light_materials[None]
    if idx >= MAX_LIGHT_MATERIALS:
        raise RuntimeError(f"Maximum number of light materials ({MAX_LIGHT_MATERIALS}) exceeded")

    light_colors[idx] = vec3(color[0], color[1], color[2])
    light_strengths[idx] = strength
    light_beams[idx] = beams
    light_frequencies[idx] = frequency
    num_light_materials[None] = idx + 1
    return idx


def get_light_material_count() -> int:
    return int(num_light_materials[None])


@ti.func
def get_light_color(material_idx: ti.i32) -> vec3:
    return light_colors[material_idx]


@ti.func
def get_light_strength(material_idx: ti.i32) -> ti.f32:
    return light_strengths[material_idx]


@ti.func
def get_light_beams(material_idx: ti.i32) -> ti.i32:
    return light_beams[material_idx]


@ti.func
def get_light_frequency(material_idx: ti.i32) -> ti.f32:
    return light_frequencies[material_idx]
