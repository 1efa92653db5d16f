"""Scene-wide material ids.

Coefficients live in per-type tables (the Lambertian albedos, the metal
fuzz values, ...). This module hands out the scene-wide id and remembers,
for each id, which table the material sits in and at which slot, so a
kernel can branch on the tag before reading coefficients. Hit records only
ever carry the id.
"""

from enum import IntEnum

import taichi as ti


class MaterialType(IntEnum):
    LAMBERTIAN = 0
    METAL = 1
    GLASS = 2
    TEXTURE = 3
    LIGHT = 4


MAX_MATERIALS = 1024

material_tags = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_slots = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
_registered = ti.field(dtype=ti.i32, shape=())


def clear_material_table() -> None:
    _registered[None] = 0


def register_material(material_type: MaterialType, type_index: int) -> int:
    """Give the material at ``type_index`` of its per-type table a scene-wide id.

    Raises:
        RuntimeError: If all MAX_MATERIALS ids are taken.
    """
    new_id = int(_registered[None])
    if new_id == MAX_MATERIALS:
        raise RuntimeError(f"Material table is full ({MAX_MATERIALS} entries)")

    material_tags[new_id] = int(material_type)
    material_slots[new_id] = type_index
    _registered[None] = new_id + 1
    return new_id


def get_material_count() -> int:
    return int(_registered[None])


def lookup_material_type(material_id: int) -> MaterialType | None:
    """Tag of ``material_id`` from Python scope, None if it was never registered."""
    if material_id < 0 or material_id >= get_material_count():
        return None
    return MaterialType(int(material_tags[material_id]))


@ti.func
def _known(material_id: ti.i32) -> ti.i32:
    return material_id >= 0 and material_id < _registered[None]


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """MaterialType value of ``material_id``, or -1 for an unknown id."""
    tag = -1
    if _known(material_id):
        tag = material_tags[material_id]
    return tag


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Slot of ``material_id`` in its per-type table, or -1 for an unknown id."""
    slot = -1
    if _known(material_id):
        slot = material_slots[material_id]
    return slot
