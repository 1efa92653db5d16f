"""Unit tests for the sky background."""

import numpy as np
import pytest
import taichi as ti


def _background(direction):
    from radiotrace.scene.sky import background_color, vec3

    result = ti.Vector.field(3, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel(d: vec3):
        result[None] = background_color(d)

    test_kernel(vec3(*direction))
    return tuple(result[None])


class TestSky:
    """Tests for each sky kind."""

    def test_default_is_black(self):
        from radiotrace.scene.sky import SkyKind, get_sky_kind

        assert get_sky_kind() == SkyKind.NONE
        assert _background((0.0, 1.0, 0.0)) == pytest.approx((0.0, 0.0, 0.0))

    def test_gradient(self):
        from radiotrace.scene.sky import set_sky_gradient

        set_sky_gradient()
        assert _background((0.0, 1.0, 0.0)) == pytest.approx((0.5, 0.7, 1.0), abs=1e-6)
        assert _background((0.0, -1.0, 0.0)) == pytest.approx((1.0, 1.0, 1.0), abs=1e-6)
        assert _background((1.0, 0.0, 0.0)) == pytest.approx((0.75, 0.85, 1.0), abs=1e-6)

    def test_gradient_ignores_direction_length(self):
        from radiotrace.scene.sky import set_sky_gradient

        set_sky_gradient()
        assert _background((0.0, 5.0, 0.0)) == pytest.approx((0.5, 0.7, 1.0), abs=1e-6)

    def test_texture_dimmed(self):
        """Test the texture is sampled at (u, 1 - t) and scaled by 0.7."""
        from radiotrace.scene.sky import SkyKind, get_sky_kind, set_sky_texture

        pixels = np.zeros((2, 2, 3), dtype=np.uint8)
        pixels[0, :] = (255, 255, 255)  # top row
        pixels[1, :] = (0, 0, 255)  # bottom row
        set_sky_texture(pixels)

        assert get_sky_kind() == SkyKind.TEXTURE
        assert _background((0.0, 1.0, 0.0)) == pytest.approx((0.7, 0.7, 0.7), abs=1e-6)
        assert _background((0.0, -1.0, 0.0)) == pytest.approx((0.0, 0.0, 0.7), abs=1e-6)

    def test_clear_sky(self):
        from radiotrace.scene.sky import clear_sky, set_sky_gradient

        set_sky_gradient()
        clear_sky()
        assert _background((1.0, 0.0, 0.0)) == pytest.approx((0.0, 0.0, 0.0))
