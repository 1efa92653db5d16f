"""Unit tests for the visual integrator.

Tests cover:
- Background, emission and depth limits of ray_color
- Direct lighting and connection rays
- Direct-light falloff
- Pixel quantization
- render_image output and validation
"""

import numpy as np
import pytest
import taichi as ti


class TestRayColor:
    """Tests for single-ray tracing."""

    def test_zero_depth_is_black(self, scene):
        from radiotrace.core.integrator import trace_color

        scene.set_sky_gradient()
        assert trace_color((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), 0) == (0.0, 0.0, 0.0)

    def test_miss_returns_gradient(self, scene):
        from radiotrace.core.integrator import trace_color

        scene.set_sky_gradient()
        color = trace_color((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), 8)
        assert color == pytest.approx((0.75, 0.85, 1.0), abs=1e-6)

    def test_miss_without_sky_is_black(self, scene):
        from radiotrace.core.integrator import trace_color

        assert trace_color((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), 8) == (0.0, 0.0, 0.0)

    def test_light_returns_raw_emission(self, scene):
        """Test emission is not clamped when the camera sees a light directly."""
        from radiotrace.core.integrator import trace_color

        light = scene.add_light_material((3.0, 2.0, 0.5))
        scene.add_sphere((0.0, 0.0, 5.0), 1.0, light, primitive_id=1)
        color = trace_color((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), 8)
        assert color == pytest.approx((3.0, 2.0, 0.5))

    def test_diffuse_under_black_sky_is_black(self, scene):
        from radiotrace.core.integrator import trace_color

        ground = scene.add_lambertian_material((0.8, 0.8, 0.8))
        scene.add_box((0.0, -1.0, 0.0), (10.0, 1.0, 10.0), ground)
        color = trace_color((0.0, 2.0, 0.0), (0.0, -1.0, 0.0), 8)
        assert color == pytest.approx((0.0, 0.0, 0.0))

    def test_mirror_reflects_sky(self, scene):
        """Test a perfect mirror scales the sky it reflects by its albedo."""
        from radiotrace.core.integrator import trace_color

        scene.set_sky_gradient()
        mirror = scene.add_metal_material((0.5, 0.5, 0.5), fuzz=0.0)
        scene.add_box((0.0, -1.0, 0.0), (10.0, 1.0, 10.0), mirror)
        color = trace_color((0.0, 2.0, 0.0), (0.0, -1.0, 0.0), 8)
        assert color == pytest.approx((0.25, 0.35, 0.5), abs=1e-5)

    def test_depth_one_stops_after_first_bounce(self, scene):
        from radiotrace.core.integrator import trace_color

        scene.set_sky_gradient()
        mirror = scene.add_metal_material((1.0, 1.0, 1.0), fuzz=0.0)
        scene.add_box((0.0, -1.0, 0.0), (10.0, 1.0, 10.0), mirror)
        color = trace_color((0.0, 2.0, 0.0), (0.0, -1.0, 0.0), 1)
        assert color == pytest.approx((0.0, 0.0, 0.0))

    def test_depth_out_of_range_raises(self, scene):
        from radiotrace.core.integrator import MAX_DEPTH, trace_color

        with pytest.raises(ValueError):
            trace_color((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), MAX_DEPTH + 1)


class TestDirectLight:
    """Tests for the sampled direct-light term."""

    def test_diffuse_pixel_picks_up_light(self, scene):
        """Test a diffuse bounce under a black sky is lit only by the direct draw."""
        from radiotrace.core.integrator import ray_color
        from radiotrace.core.ray import make_ray

        ground = scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.add_box((0.0, -1.0, 0.0), (10.0, 1.0, 10.0), ground)
        light = scene.add_light_material((1.0, 1.0, 1.0))
        scene.add_sphere((0.0, 3.0, 0.0), 0.5, light, primitive_id=1)

        n = 1000
        results = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                ray = make_ray(
                    ti.math.vec3(2.0, 1.0, 0.0), ti.math.vec3(0.0, -1.0, 0.0), 0.0, 0.0, 0.0
                )
                results[i] = ray_color(ray, 1, i)[0]

        test_kernel()
        values = results.to_numpy()

        # albedo * falloff(1): ((20 - 1) / 20)^2 * 0.5
        lit = values[values > 0.0]
        assert lit == pytest.approx(np.full(lit.shape, 0.45125), abs=1e-4)
        # One light at p = 0.1
        assert 50 <= lit.size <= 160

    def test_connection_ray_samples_lights_from_occluder(self, scene):
        """Test a connection ray blocked by a diffuse wall can still see a light past it."""
        from radiotrace.core.integrator import connection_color

        wall = scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.add_box((0.0, 0.0, 5.0), (2.0, 2.0, 0.1), wall)
        dim = scene.add_light_material((1.0, 1.0, 1.0))
        scene.add_sphere((0.0, 0.0, 10.0), 0.5, dim, primitive_id=1)
        bright = scene.add_light_material((2.0, 2.0, 2.0))
        scene.add_sphere((3.0, 0.0, 2.0), 0.5, bright, primitive_id=2)

        n = 4000
        results = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                results[i] = connection_color(
                    ti.math.vec3(0.0, 0.0, 0.0), ti.math.vec3(0.0, 0.0, 10.0)
                )[0]

        test_kernel()
        values = results.to_numpy()

        # Wall hit at t = 0.49; from there the dim light is behind the wall
        # and the bright one is visible, averaged over both lights
        expected = 0.5 * ((20.0 - 0.49) / 20.0) ** 2 * (0.0 + 2.0) / 2.0
        lit = values[values > 0.0]
        assert lit == pytest.approx(np.full(lit.shape, expected), abs=1e-3)
        # Two lights at p = 0.1 each
        assert 0.12 < lit.size / n < 0.28

    def test_connection_ray_to_visible_light_returns_emission(self, scene):
        from radiotrace.core.integrator import connection_color

        light = scene.add_light_material((3.0, 2.0, 0.5))
        scene.add_sphere((0.0, 0.0, 5.0), 1.0, light, primitive_id=1)

        results = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            results[None] = connection_color(
                ti.math.vec3(0.0, 0.0, 0.0), ti.math.vec3(0.0, 0.0, 5.0)
            )

        test_kernel()
        assert tuple(results[None]) == pytest.approx((3.0, 2.0, 0.5))


class TestFalloff:
    """Tests for the direct-light distance weight."""

    def test_values(self):
        from radiotrace.core.integrator import falloff

        results = ti.field(dtype=ti.f32, shape=3)

        @ti.kernel
        def test_kernel():
            results[0] = falloff(0.0)
            results[1] = falloff(10.0)
            results[2] = falloff(20.0)

        test_kernel()
        assert results.to_numpy() == pytest.approx([1.0, 0.25, 0.0], abs=1e-6)


class TestQuantization:
    """Tests for to_rgb8."""

    def test_sqrt_gamma(self):
        from radiotrace.core.integrator import to_rgb8

        buf = np.array([[[0.0, 0.25, 1.0]]], dtype=np.float32)
        assert to_rgb8(buf).tolist() == [[[0, 128, 255]]]

    def test_clamps_out_of_range(self):
        from radiotrace.core.integrator import to_rgb8

        buf = np.array([[[-1.0, 4.0, np.nan]]], dtype=np.float32)
        out = to_rgb8(buf)
        assert out.dtype == np.uint8
        assert out.tolist() == [[[0, 255, 0]]]


class TestRenderImage:
    """Tests for the row-parallel render."""

    def _camera(self, aspect):
        from radiotrace.camera.pinhole import PinholeCamera

        return PinholeCamera(
            lookfrom=(0.0, 0.0, 0.0),
            lookat=(0.0, 0.0, -1.0),
            vup=(0.0, 1.0, 0.0),
            vfov=90.0,
            aspect_ratio=aspect,
        )

    def test_shape_and_dtype(self, scene):
        from radiotrace.core.integrator import render_image

        scene.settings.width = 8
        scene.settings.height = 4
        scene.settings.samples_per_pixel = 2
        scene.settings.camera = self._camera(2.0)
        scene.set_sky_gradient()

        image = render_image(scene)
        assert image.shape == (4, 8, 3)
        assert image.dtype == np.uint8

    def test_gradient_sky_is_bluer_at_top(self, scene):
        from radiotrace.core.integrator import render_image

        scene.settings.width = 6
        scene.settings.height = 6
        scene.settings.camera = self._camera(1.0)
        scene.set_sky_gradient()

        image = render_image(scene).astype(int)
        # Blue is saturated everywhere; red falls off toward the zenith
        assert (image[:, :, 2] == 255).all()
        assert image[0, :, 0].mean() < image[-1, :, 0].mean()

    def test_light_fills_view(self, scene):
        from radiotrace.core.integrator import render_image

        light = scene.add_light_material((1.0, 1.0, 1.0))
        scene.add_sphere((0.0, 0.0, 0.0), 10.0, light, primitive_id=1)
        scene.settings.width = 4
        scene.settings.height = 4
        scene.settings.camera = self._camera(1.0)

        image = render_image(scene)
        assert (image == 255).all()

    def test_no_camera_raises(self, scene):
        from radiotrace.core.integrator import render_image

        with pytest.raises(RuntimeError):
            render_image(scene)

    def test_height_above_capacity_raises(self, scene):
        from radiotrace.core.integrator import MAX_IMAGE_HEIGHT, render_image

        scene.settings.height = MAX_IMAGE_HEIGHT + 1
        scene.settings.camera = self._camera(1.0)
        with pytest.raises(ValueError):
            render_image(scene)
