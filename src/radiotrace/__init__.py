"""Taichi ray tracer for scene previews and RF signal coverage maps.

This package traces rays through a scene of spheres and axis-aligned boxes
twice over: once from a pinhole camera to render a preview image, and once
from every transmitter (a primitive with a light material) to accumulate
received signal strength on a ground grid.

Subpackages:
    core: Ray utilities, the visual and signal integrators, homogenization
    geometry: Sphere and box primitives with hit tests
    materials: Material registries and scatter dispatch
    scene: Primitive storage, nearest-hit resolution, sky, scene loading
    camera: Pinhole camera ray generation
    output: PNG and binary float writers

Note:
    Taichi must be initialized (``ti.init``) before importing modules that
    declare fields, i.e. everything below ``scene``, ``materials`` and the
    integrators.
"""

import logging

__version__ = "0.1.0"


def get_logger(name: str = "radiotrace") -> logging.Logger:
    """Return a package logger with a single stream handler attached."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger
