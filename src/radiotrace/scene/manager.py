"""Scene manager coordinating primitives, materials, sky and render settings.

This module provides the high-level scene API. It registers materials in the
type-specific registries and the unified material table, adds spheres and
boxes with a stable primitive id, selects the sky, and carries the settings
shared by the visual and signal passes (image size, samples, depth, camera).

Scenes are usually read from a JSON file:

    {
        "width": 200, "height": 100, "samples_per_pixel": 8,
        "max_depth": 8, "nr_probes": 0,
        "camera": {"lookfrom": [..], "lookat": [..], "vup": [0, 1, 0],
                   "vfov": 40, "aspect": 2.0},
        "sky": {},
        "objects": [
            {"type": "box", "center": [100, -1, 50], "half_extents": [100, 1, 50],
             "id": 0, "material": {"type": "lambertian", "albedo": [0.5, 0.5, 0.5]}},
            {"type": "box", "center": [50, 10, 50], "half_extents": [1, 1, 1],
             "id": 7, "material": {"type": "light", "color": [1, 1, 1],
                                   "strength": 0, "beams": 3, "frequency": 2400}}
        ]
    }

``sky`` is ``null`` for a black background, ``{}`` for the gradient and
``{"texture": path}`` for an image. Texture paths are resolved relative to
the scene file.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from radiotrace.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> ground = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
    >>> scene.add_box((5, -1, 5), (5, 1, 5), ground, primitive_id=0)
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image

from radiotrace import get_logger
from radiotrace.camera.pinhole import PinholeCamera
from radiotrace.materials.glass import add_glass_material, clear_glass_materials
from radiotrace.materials.lambertian import add_lambertian_material, clear_lambertian_materials
from radiotrace.materials.light import add_light_material, clear_light_materials
from radiotrace.materials.metal import add_metal_material, clear_metal_materials
from radiotrace.materials.registry import (
    MAX_MATERIALS,
    MaterialType,
    clear_material_table,
    get_material_count,
    register_material,
)
from radiotrace.materials.texture import (
    add_texture_material,
    clear_texels,
    clear_texture_materials,
)
from radiotrace.scene.intersection import (
    MAX_BOXES,
    MAX_SPHERES,
    add_box,
    add_sphere,
    clear_scene,
    get_box_count,
    get_light_count,
    get_sphere_count,
)
from radiotrace.scene.sky import SkyKind, clear_sky, set_sky_gradient, set_sky_texture

_log = get_logger()

_MATERIAL_NAMES = {
    "lambertian": MaterialType.LAMBERTIAN,
    "diffuse": MaterialType.LAMBERTIAN,
    "metal": MaterialType.METAL,
    "glass": MaterialType.GLASS,
    "texture": MaterialType.TEXTURE,
    "light": MaterialType.LIGHT,
}


def load_image(path: str | Path) -> np.ndarray:
    """Decode an image file to an RGB8 array of shape (height, width, 3)."""
    with Image.open(path) as img:
        return np.asarray(img.convert("RGB"), dtype=np.uint8)


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The type of material.
        type_index: The index within the type-specific material array.
        params: The material parameters as provided during creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class PrimitiveInfo:
    """Information about a sphere or box in the scene.

    Attributes:
        kind: "sphere" or "box".
        index: The index in the kind's storage arrays.
        center: The center of the primitive.
        size: The radius of a sphere, or the half-extents of a box.
        material_id: The material ID assigned to the primitive.
        primitive_id: Stable id used to name per-transmitter outputs.
    """

    kind: str
    index: int
    center: tuple[float, float, float]
    size: float | tuple[float, float, float]
    material_id: int
    primitive_id: int


@dataclass
class SceneSettings:
    """Settings shared by the visual and signal passes.

    Attributes:
        width: Image width in pixels and signal grid width in cells.
        height: Image height in pixels and signal grid height in cells.
        samples_per_pixel: Jittered camera rays per pixel.
        max_depth: Bounce limit for both integrators.
        nr_probes: Carried through from scene files; unused by either pass.
        camera: Camera for the visual pass, or None if the scene has none.
    """

    width: int = 100
    height: int = 100
    samples_per_pixel: int = 1
    max_depth: int = 8
    nr_probes: int = 0
    camera: PinholeCamera | None = None


class SceneManager:
    """Scene manager coordinating primitives and materials.

    Materials are registered first and referenced by their unified material
    id when adding primitives. Primitives with a light material become
    transmitters for the signal pass.

    Attributes:
        settings: Image and pass settings.
        materials: MaterialInfo for all registered materials.
        primitives: PrimitiveInfo for all spheres and boxes, in insertion order.
        sky: The background kind.
        sky_texture: Path of the sky texture, if any.
    """

    def __init__(self, settings: SceneSettings | None = None) -> None:
        """Initialize an empty scene."""
        self.settings = settings if settings is not None else SceneSettings()
        self.materials: list[MaterialInfo] = []
        self.primitives: list[PrimitiveInfo] = []
        self.sky = SkyKind.NONE
        self.sky_texture: str | None = None
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_glass_materials()
        clear_texture_materials()
        clear_light_materials()
        clear_material_table()
        clear_texels()
        clear_sky()
        self.materials.clear()
        self.primitives.clear()
        self.sky = SkyKind.NONE
        self.sky_texture = None

    def clear(self) -> None:
        """Clear primitives, materials, texels and the sky. Settings are kept."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register(self, material_type: MaterialType, type_index: int, params: dict[str, Any]) -> int:
        material_id = register_material(material_type, type_index)
        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a diffuse material and return its unified material ID."""
        type_index = add_lambertian_material(albedo)
        return self._register(MaterialType.LAMBERTIAN, type_index, {"albedo": list(albedo)})

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
        dampening: float = 0.0,
    ) -> int:
        """Add a metal material.

        Args:
            albedo: Reflective color as (R, G, B), each in [0, 1].
            fuzz: Reflection perturbation in [0, 1]; 0 is a perfect mirror.
            dampening: Signal loss in dB applied on every bounce.

        Returns:
            The unified material ID for this material.
        """
        type_index = add_metal_material(albedo, fuzz, dampening)
        return self._register(
            MaterialType.METAL,
            type_index,
            {"albedo": list(albedo), "fuzz": fuzz, "dampening": dampening},
        )

    def add_glass_material(self, ior: float = 1.5) -> int:
        """Add a glass material with the given index of refraction."""
        type_index = add_glass_material(ior)
        return self._register(MaterialType.GLASS, type_index, {"ior": ior})

    def add_texture_material(
        self,
        pixels: np.ndarray,
        h_offset: float = 0.0,
        path: str | None = None,
    ) -> int:
        """Add an image-textured diffuse material.

        Args:
            pixels: Decoded RGB8 image of shape (height, width, 3).
            h_offset: Horizontal texture rotation in [0, 1].
            path: Source file of the image, kept for serialization.

        Returns:
            The unified material ID for this material.
        """
        type_index = add_texture_material(pixels, h_offset)
        return self._register(
            MaterialType.TEXTURE, type_index, {"texture": path, "h_offset": h_offset}
        )

    def add_light_material(
        self,
        color: tuple[float, float, float],
        strength: float = 0.0,
        beams: int = 1,
        frequency: float = 0.0,
    ) -> int:
        """Add an emitter material.

        Primitives using it are both visual lights and signal transmitters.

        Args:
            color: Emission color; components may exceed 1.
            strength: Transmit strength in dB.
            beams: Number of beam lobes around the vertical axis.
            frequency: Carrier frequency in MHz.

        Returns:
            The unified material ID for this material.
        """
        type_index = add_light_material(color, strength, beams, frequency)
        return self._register(
            MaterialType.LIGHT,
            type_index,
            {"color": list(color), "strength": strength, "beams": beams, "frequency": frequency},
        )

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return get_material_count()

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def _check_material(self, material_id: int) -> None:
        if material_id < 0 or material_id >= len(self.materials):
            raise ValueError(f"Invalid material_id: {material_id}")

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
        primitive_id: int = 0,
    ) -> int:
        """Add a sphere to the scene.

        Raises:
            ValueError: If material_id is invalid or the radius is not positive.
            RuntimeError: If the maximum number of spheres is exceeded.
        """
        self._check_material(material_id)
        index = add_sphere(center, radius, material_id, primitive_id)
        self.primitives.append(
            PrimitiveInfo("sphere", index, tuple(center), radius, material_id, primitive_id)
        )
        return index

    def add_box(
        self,
        center: tuple[float, float, float],
        half_extents: tuple[float, float, float],
        material_id: int,
        primitive_id: int = 0,
    ) -> int:
        """Add an axis-aligned box to the scene.

        Raises:
            ValueError: If material_id is invalid or an extent is not positive.
            RuntimeError: If the maximum number of boxes is exceeded.
        """
        self._check_material(material_id)
        index = add_box(center, half_extents, material_id, primitive_id)
        self.primitives.append(
            PrimitiveInfo(
                "box", index, tuple(center), tuple(half_extents), material_id, primitive_id
            )
        )
        return index

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    def get_box_count(self) -> int:
        return get_box_count()

    def get_primitive_count(self) -> int:
        return self.get_sphere_count() + self.get_box_count()

    def get_light_count(self) -> int:
        """Get the number of primitives carrying a light material."""
        return get_light_count()

    def stations(self) -> list[PrimitiveInfo]:
        """Primitives with a light material, in insertion order."""
        return [
            p
            for p in self.primitives
            if self.materials[p.material_id].material_type == MaterialType.LIGHT
        ]

    def obstructions(self) -> list[PrimitiveInfo]:
        """Primitives without a light material, in insertion order."""
        return [
            p
            for p in self.primitives
            if self.materials[p.material_id].material_type != MaterialType.LIGHT
        ]

    # =========================================================================
    # Sky
    # =========================================================================

    def set_sky_none(self) -> None:
        clear_sky()
        self.sky = SkyKind.NONE
        self.sky_texture = None

    def set_sky_gradient(self) -> None:
        set_sky_gradient()
        self.sky = SkyKind.GRADIENT
        self.sky_texture = None

    def set_sky_texture(self, pixels: np.ndarray, path: str | None = None) -> None:
        set_sky_texture(pixels)
        self.sky = SkyKind.TEXTURE
        self.sky_texture = path

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary in the scene-file layout.

        Textures added without a path cannot be serialized and are written
        with a ``null`` texture.
        """
        s = self.settings
        data: dict[str, Any] = {
            "width": s.width,
            "height": s.height,
            "samples_per_pixel": s.samples_per_pixel,
            "max_depth": s.max_depth,
            "nr_probes": s.nr_probes,
        }
        if s.camera is not None:
            data["camera"] = {
                "lookfrom": list(s.camera.lookfrom),
                "lookat": list(s.camera.lookat),
                "vup": list(s.camera.vup),
                "vfov": s.camera.vfov,
                "aspect": s.camera.aspect_ratio,
            }

        if self.sky == SkyKind.NONE:
            data["sky"] = None
        elif self.sky == SkyKind.GRADIENT:
            data["sky"] = {}
        else:
            data["sky"] = {"texture": self.sky_texture}

        objects = []
        for p in self.primitives:
            mat = self.materials[p.material_id]
            obj: dict[str, Any] = {"type": p.kind, "center": list(p.center)}
            if p.kind == "sphere":
                obj["radius"] = p.size
            else:
                obj["half_extents"] = list(p.size)
            obj["id"] = p.primitive_id
            obj["material"] = {"type": mat.material_type.name.lower(), **mat.params}
            objects.append(obj)
        data["objects"] = objects
        return data

    def from_dict(self, data: dict[str, Any], base_dir: str | Path | None = None) -> None:
        """Load a scene from a dictionary.

        Clears the current scene first. Objects sharing an identical material
        description still get one material each.

        Args:
            data: Dictionary in the scene-file layout.
            base_dir: Directory that relative texture paths are resolved
                against. Defaults to the working directory.

        Raises:
            ValueError: If the dictionary is malformed.
            OSError: If a texture image cannot be read or decoded.
        """
        self.clear()
        root = Path(base_dir) if base_dir is not None else Path(".")
        try:
            self.settings = _settings_from_dict(data)
            self._sky_from_dict(data.get("sky"), root)
            for obj in data.get("objects", []):
                self._object_from_dict(obj, root)
        except (KeyError, TypeError, IndexError, AttributeError) as e:
            raise ValueError(f"Malformed scene description: {e!r}") from e

        _log.debug(
            "Loaded scene: %d primitives, %d materials, %d lights",
            len(self.primitives),
            len(self.materials),
            self.get_light_count(),
        )

    def _sky_from_dict(self, sky: dict[str, Any] | None, root: Path) -> None:
        if sky is None:
            self.set_sky_none()
        elif sky.get("texture"):
            path = sky["texture"]
            self.set_sky_texture(load_image(root / path), path)
        else:
            self.set_sky_gradient()

    def _material_from_dict(self, mat: dict[str, Any], root: Path) -> int:
        name = str(mat["type"]).lower()
        if name not in _MATERIAL_NAMES:
            raise ValueError(f"Unknown material type: {name}")
        mat_type = _MATERIAL_NAMES[name]

        if mat_type == MaterialType.LAMBERTIAN:
            return self.add_lambertian_material(_vec3(mat["albedo"]))
        if mat_type == MaterialType.METAL:
            return self.add_metal_material(
                _vec3(mat["albedo"]),
                float(mat.get("fuzz", 0.0)),
                float(mat.get("dampening", 0.0)),
            )
        if mat_type == MaterialType.GLASS:
            return self.add_glass_material(float(mat.get("ior", 1.5)))
        if mat_type == MaterialType.TEXTURE:
            path = mat["texture"]
            return self.add_texture_material(
                load_image(root / path), float(mat.get("h_offset", 0.0)), path
            )
        return self.add_light_material(
            _vec3(mat["color"]),
            float(mat.get("strength", 0.0)),
            int(mat.get("beams", 1)),
            float(mat.get("frequency", 0.0)),
        )

    def _object_from_dict(self, obj: dict[str, Any], root: Path) -> None:
        kind = str(obj["type"]).lower()
        if kind not in ("sphere", "box"):
            raise ValueError(f"Unknown object type: {kind}")
        material_id = self._material_from_dict(obj["material"], root)
        center = _vec3(obj["center"])
        primitive_id = int(obj.get("id", 0))
        if kind == "sphere":
            self.add_sphere(center, float(obj["radius"]), material_id, primitive_id)
        else:
            self.add_box(center, _vec3(obj["half_extents"]), material_id, primitive_id)

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_boxes() -> int:
        return MAX_BOXES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS


def _vec3(values) -> tuple[float, float, float]:
    if len(values) != 3:
        raise ValueError(f"Expected 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


def _settings_from_dict(data: dict[str, Any]) -> SceneSettings:
    camera = None
    if data.get("camera") is not None:
        cam = data["camera"]
        camera = PinholeCamera(
            lookfrom=_vec3(cam["lookfrom"]),
            lookat=_vec3(cam["lookat"]),
            vup=_vec3(cam.get("vup", (0.0, 1.0, 0.0))),
            vfov=float(cam["vfov"]),
            aspect_ratio=float(cam["aspect"]),
        )
    settings = SceneSettings(
        width=int(data["width"]),
        height=int(data["height"]),
        samples_per_pixel=int(data.get("samples_per_pixel", 1)),
        max_depth=int(data.get("max_depth", 8)),
        nr_probes=int(data.get("nr_probes", 0)),
        camera=camera,
    )
    if settings.width <= 0 or settings.height <= 0:
        raise ValueError(f"Scene size {settings.width}x{settings.height} must be positive")
    if settings.samples_per_pixel <= 0:
        raise ValueError(f"samples_per_pixel = {settings.samples_per_pixel} must be positive")
    return settings


def load_scene(path: str | Path) -> SceneManager:
    """Read a JSON scene file into a new SceneManager.

    Raises:
        ValueError: If the file is not valid JSON or the scene is malformed.
        OSError: If the file or one of its textures cannot be read.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid scene file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Invalid scene file {path}: expected a JSON object")

    scene = SceneManager()
    scene.from_dict(data, base_dir=path.parent)
    _log.info("Loaded scene %s (%dx%d)", path, scene.settings.width, scene.settings.height)
    return scene
