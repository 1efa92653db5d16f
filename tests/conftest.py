"""Pytest configuration for radiotrace tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would
    invalidate the fields declared by modules imported in earlier tests.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene data before and after each test.

    This ensures tests are isolated from each other.
    """
    # Import here so that Taichi is initialized first
    from radiotrace.materials.glass import clear_glass_materials
    from radiotrace.materials.lambertian import clear_lambertian_materials
    from radiotrace.materials.light import clear_light_materials
    from radiotrace.materials.metal import clear_metal_materials
    from radiotrace.materials.registry import clear_material_table
    from radiotrace.materials.texture import clear_texels, clear_texture_materials
    from radiotrace.scene.intersection import clear_scene
    from radiotrace.scene.sky import clear_sky

    def _clear_all():
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_glass_materials()
        clear_texture_materials()
        clear_light_materials()
        clear_material_table()
        clear_texels()
        clear_sky()

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def scene():
    """An empty SceneManager."""
    from radiotrace.scene.manager import SceneManager

    return SceneManager()


@pytest.fixture
def station_scene():
    """A single 1-beam station above an empty 10x10 ground plane.

    The station sits low over the center of cell (5, 5) so the cell beneath
    it receives the shortest, strongest rays.
    """
    from radiotrace.scene.manager import SceneManager, SceneSettings

    scene = SceneManager(SceneSettings(width=10, height=10, max_depth=2))
    ground = scene.add_lambertian_material((0.5, 0.5, 0.5))
    scene.add_box((5.0, -1.0, 5.0), (20.0, 1.0, 20.0), ground, primitive_id=0)
    light = scene.add_light_material((1.0, 1.0, 1.0), strength=0.0, beams=1, frequency=2400.0)
    scene.add_box((5.5, 0.25, 5.5), (0.1, 0.1, 0.1), light, primitive_id=7)
    return scene
