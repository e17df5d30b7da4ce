"""Unit tests for the ray module.

Tests cover:
- Ray dataclass and ray_at function
- Vector utility functions (dot, cross, normalize, length, reflect)
- Biased point construction
"""

import taichi as ti


class TestRayBasics:
    """Tests for Ray dataclass and basic operations."""

    def test_ray_at_origin(self):
        """Test ray_at returns origin when t=0."""
        from src.facet.core.ray import Ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = Ray(origin=vec3(1.0, 2.0, 3.0), direction=vec3(0.0, 0.0, -1.0))
            result[None] = ray_at(ray, 0.0)

        test_kernel()
        r = result[None]
        assert abs(r[0] - 1.0) < 1e-6
        assert abs(r[1] - 2.0) < 1e-6
        assert abs(r[2] - 3.0) < 1e-6

    def test_ray_at_negative_t(self):
        """Test ray_at handles negative t (behind origin)."""
        from src.facet.core.ray import make_ray, ray_at, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0))
            result[None] = ray_at(ray, -3.0)

        test_kernel()
        r = result[None]
        assert abs(r[1] + 3.0) < 1e-6


class TestVectorUtilities:
    """Tests for vector helper functions."""

    def test_normalize_unit_length(self):
        """Test normalize returns a unit vector with the same direction."""
        from src.facet.core.ray import length, normalize, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())
        result_len = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            n = normalize(vec3(3.0, 0.0, 4.0))
            result[None] = n
            result_len[None] = length(n)

        test_kernel()
        r = result[None]
        assert abs(r[0] - 0.6) < 1e-6
        assert abs(r[2] - 0.8) < 1e-6
        assert abs(result_len[None] - 1.0) < 1e-6

    def test_normalize_zero_vector_unchanged(self):
        """Test normalize leaves a zero vector as zero instead of NaN."""
        from src.facet.core.ray import normalize, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = normalize(vec3(0.0, 0.0, 0.0))

        test_kernel()
        r = result[None]
        assert r[0] == 0.0 and r[1] == 0.0 and r[2] == 0.0

    def test_dot_cross_length_squared(self):
        """Test dot, cross and length_squared on simple inputs."""
        from src.facet.core.ray import cross, dot, length_squared, vec3

        d = ti.field(dtype=ti.f32, shape=())
        c = ti.field(dtype=ti.math.vec3, shape=())
        l2 = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            d[None] = dot(vec3(1.0, 2.0, 3.0), vec3(4.0, -5.0, 6.0))
            c[None] = cross(vec3(1.0, 0.0, 0.0), vec3(0.0, 1.0, 0.0))
            l2[None] = length_squared(vec3(1.0, 2.0, 2.0))

        test_kernel()
        assert abs(d[None] - 12.0) < 1e-6
        assert abs(c[None][2] - 1.0) < 1e-6
        assert abs(l2[None] - 9.0) < 1e-6

    def test_reflect_about_normal(self):
        """Test reflect mirrors the component along the normal."""
        from src.facet.core.ray import reflect, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = reflect(vec3(1.0, -1.0, 0.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        r = result[None]
        assert abs(r[0] - 1.0) < 1e-6
        assert abs(r[1] - 1.0) < 1e-6
        assert abs(r[2]) < 1e-6

    def test_reflect_ignores_normal_side(self):
        """Test reflecting about -N gives the same result as about N."""
        from src.facet.core.ray import reflect, vec3

        a = ti.field(dtype=ti.math.vec3, shape=())
        b = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            incident = vec3(0.3, -0.8, 0.52)
            a[None] = reflect(incident, vec3(0.0, 1.0, 0.0))
            b[None] = reflect(incident, vec3(0.0, -1.0, 0.0))

        test_kernel()
        for i in range(3):
            assert abs(a[None][i] - b[None][i]) < 1e-6

    def test_offset_point_uses_bias(self):
        """Test offset_point moves a point by BIAS along the direction."""
        from src.facet.core.ray import BIAS, offset_point, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = offset_point(vec3(1.0, 1.0, 1.0), vec3(0.0, 1.0, 0.0))

        test_kernel()
        r = result[None]
        assert abs(r[0] - 1.0) < 1e-7
        assert abs(r[1] - (1.0 + BIAS)) < 1e-6
        assert abs(r[2] - 1.0) < 1e-7
