"""Unit tests for the Metal material module.

Tests cover:
- Perfect specular reflection (fuzz=0)
- Fuzzy reflection never scattering into the surface
- Attenuation equals albedo
- Material registry operations, dampening and validation
"""

import math

import pytest
import taichi as ti


class TestMetalScatter:
    """Tests for specular reflection."""

    def test_perfect_reflection_normal_incidence(self):
        from radiotrace.materials.metal import scatter_metal

        result_dir = ti.Vector.field(3, dtype=ti.f32, shape=())
        result_scatter = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            direction, _, did_scatter = scatter_metal(
                ti.math.vec3(1.0), 0.0, ti.math.vec3(0.0, -1.0, 0.0), ti.math.vec3(0.0, 1.0, 0.0)
            )
            result_dir[None] = direction
            result_scatter[None] = did_scatter

        test_kernel()
        assert tuple(result_dir[None]) == pytest.approx((0.0, 1.0, 0.0), abs=1e-5)
        assert result_scatter[None] == 1

    def test_perfect_reflection_45_degrees(self):
        """Test the incoming direction is normalized before reflecting."""
        from radiotrace.materials.metal import scatter_metal

        result_dir = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            direction, _, _ = scatter_metal(
                ti.math.vec3(1.0), 0.0, ti.math.vec3(3.0, -3.0, 0.0), ti.math.vec3(0.0, 1.0, 0.0)
            )
            result_dir[None] = direction

        test_kernel()
        inv_sqrt2 = 1.0 / math.sqrt(2.0)
        assert tuple(result_dir[None]) == pytest.approx((inv_sqrt2, inv_sqrt2, 0.0), abs=1e-5)

    def test_fuzzy_reflection_never_below_surface(self):
        """Test every scattered ray leaves the surface, absorbed ones excepted."""
        from radiotrace.materials.metal import scatter_metal

        n = 1000
        dots = ti.field(dtype=ti.f32, shape=n)
        scattered = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            normal = ti.math.vec3(0.0, 1.0, 0.0)
            incident = ti.math.vec3(1.0, -0.1, 0.0)
            for i in range(n):
                direction, _, did_scatter = scatter_metal(ti.math.vec3(1.0), 1.0, incident, normal)
                dots[i] = direction.dot(normal)
                scattered[i] = did_scatter

        test_kernel()
        d = dots.to_numpy()
        s = scattered.to_numpy()
        assert (d[s == 1] > 0.0).all()
        assert (d[s == 0] <= 0.0).all()
        # A grazing ray with full fuzz is absorbed some of the time
        assert 0 < s.sum() < n

    def test_attenuation_equals_albedo(self):
        from radiotrace.materials.metal import scatter_metal

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            _, attenuation, _ = scatter_metal(
                ti.math.vec3(0.8, 0.6, 0.2),
                0.0,
                ti.math.vec3(0.0, -1.0, 0.0),
                ti.math.vec3(0.0, 1.0, 0.0),
            )
            result[None] = attenuation

        test_kernel()
        assert tuple(result[None]) == pytest.approx((0.8, 0.6, 0.2))


class TestMetalRegistry:
    """Tests for the metal material registry."""

    def test_add_and_read_back(self):
        from radiotrace.materials.metal import (
            add_metal_material,
            get_metal_dampening,
            get_metal_fuzz,
            get_metal_material_count,
        )

        add_metal_material((0.5, 0.5, 0.5))
        idx = add_metal_material((0.7, 0.6, 0.5), fuzz=0.3, dampening=6.0)
        assert idx == 1
        assert get_metal_material_count() == 2

        fuzz = ti.field(dtype=ti.f32, shape=())
        dampening = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            fuzz[None] = get_metal_fuzz(1)
            dampening[None] = get_metal_dampening(1)

        test_kernel()
        assert fuzz[None] == pytest.approx(0.3)
        assert dampening[None] == pytest.approx(6.0)

    @pytest.mark.parametrize("fuzz", [-0.1, 1.5])
    def test_fuzz_out_of_range_raises(self, fuzz):
        from radiotrace.materials.metal import add_metal_material

        with pytest.raises(ValueError):
            add_metal_material((0.5, 0.5, 0.5), fuzz=fuzz)

    def test_albedo_out_of_range_raises(self):
        from radiotrace.materials.metal import add_metal_material

        with pytest.raises(ValueError):
            add_metal_material((0.5, 2.0, 0.5))
