"""Unit tests for the shading integrator.

Tests cover:
- Render target setup and errors
- Direct diffuse lighting, shadows and multiple lights
- Mirror reflection and the recursion depth limit
- Refraction through a glass sphere
- Full image rendering without NaN/Inf
"""

import math

import numpy as np
import pytest


def _lit_floor(scene, albedo=(0.5, 0.5, 0.5)):
    mat = scene.add_diffuse_material(albedo)
    scene.add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), mat)
    return mat


class TestRenderTargetSetup:
    """Tests for the render target buffer."""

    def test_setup_render_target(self):
        """Test dimensions are stored."""
        from src.facet.core.integrator import get_image_dimensions, setup_render_target

        setup_render_target(64, 48)
        assert get_image_dimensions() == (64, 48)

    @pytest.mark.parametrize("width, height", [(0, 10), (10, -1), (4096, 10)])
    def test_invalid_dimensions(self, width, height):
        """Test non-positive or oversized dimensions raise ValueError."""
        from src.facet.core.integrator import setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(width, height)

    def test_render_without_setup_raises(self):
        """Test rendering before setup raises RuntimeError."""
        from src.facet.core.integrator import get_image_numpy, render_pixel, render_rows

        with pytest.raises(RuntimeError, match="not set up"):
            render_rows(0, 1)
        with pytest.raises(RuntimeError):
            render_pixel(0, 0)
        with pytest.raises(RuntimeError):
            get_image_numpy()

    def test_invalid_render_arguments(self):
        """Test bad row ranges, sampling and depth raise ValueError."""
        from src.facet.core.integrator import render_rows, setup_render_target

        setup_render_target(8, 8)
        with pytest.raises(ValueError):
            render_rows(4, 2)
        with pytest.raises(ValueError):
            render_rows(0, 9)
        with pytest.raises(ValueError):
            render_rows(0, 8, aa_multiplier=0)
        with pytest.raises(ValueError):
            render_rows(0, 8, max_depth=-1)

    @pytest.mark.parametrize("depth", [-1, 101])
    def test_check_max_depth(self, depth):
        """Test depths outside [0, 100] are rejected."""
        from src.facet.core.integrator import check_max_depth, trace

        with pytest.raises(ValueError):
            check_max_depth(depth)
        with pytest.raises(ValueError):
            trace((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), max_depth=depth)


class TestDiffuseShading:
    """Tests for direct lighting of diffuse surfaces."""

    def test_miss_is_black(self):
        """Test a ray hitting nothing returns black."""
        from src.facet.scene.manager import Scene

        scene = Scene()
        scene.add_point_light((0.0, 5.0, 0.0), (1.0, 1.0, 1.0))

        assert scene.trace((0.0, 0.0, 0.0), (0.0, 0.0, 1.0)) == (0.0, 0.0, 0.0)

    def test_head_on_light(self):
        """Test color = albedo * light color when the light is along the normal."""
        from src.facet.scene.manager import Scene

        scene = Scene()
        _lit_floor(scene, albedo=(0.5, 0.4, 0.2))
        scene.add_point_light((0.0, 5.0, 0.0), (1.0, 0.5, 2.0))

        r, g, b = scene.trace((0.0, 1.0, 0.0), (0.0, -1.0, 0.0))

        assert abs(r - 0.5) < 1e-4
        assert abs(g - 0.2) < 1e-4
        assert abs(b - 0.4) < 1e-4

    def test_cosine_falloff(self):
        """Test a light at 45 degrees scales the color by cos(45)."""
        from src.facet.scene.manager import Scene

        scene = Scene()
        _lit_floor(scene)
        scene.add_point_light((5.0, 5.0, 0.0), (1.0, 1.0, 1.0))

        r, _, _ = scene.trace((0.0, 1.0, 0.0), (0.0, -1.0, 0.0))

        assert abs(r - 0.5 * math.sqrt(0.5)) < 1e-4

    def test_lights_sum(self):
        """Test contributions of several lights add up."""
        from src.facet.scene.manager import Scene

        scene = Scene()
        _lit_floor(scene)
        scene.add_point_light((0.0, 5.0, 0.0), (1.0, 1.0, 1.0))
        scene.add_point_light((0.0, 9.0, 0.0), (1.0, 1.0, 1.0))

        r, _, _ = scene.trace((0.0, 1.0, 0.0), (0.0, -1.0, 0.0))

        # Unbounded: no clamping before display
        assert abs(r - 1.0) < 1e-4

    def test_no_lights_is_black(self):
        """Test a diffuse hit with no lights is black."""
        from src.facet.scene.manager import Scene

        scene = Scene()
        _lit_floor(scene)

        assert scene.trace((0.0, 1.0, 0.0), (0.0, -1.0, 0.0)) == (0.0, 0.0, 0.0)

    def test_light_behind_surface_is_ignored(self):
        """Test a light on the back side of the surface does not light it."""
        from src.facet.scene.manager import Scene

        scene = Scene()
        _lit_floor(scene)
        scene.add_point_light((0.0, -5.0, 0.0), (1.0, 1.0, 1.0))

        assert scene.trace((0.0, 1.0, 0.0), (0.0, -1.0, 0.0)) == (0.0, 0.0, 0.0)

    def test_shadowed_point_is_black(self):
        """Test an occluder between the point and the light casts a shadow."""
        from src.facet.scene.manager import Scene

        scene = Scene()
        mat = _lit_floor(scene)
        scene.add_sphere((0.0, 2.5, 0.0), 1.0, mat)
        scene.add_point_light((0.0, 5.0, 0.0), (1.0, 1.0, 1.0))

        r, g, b = scene.trace((0.0, 1.0, 0.0), (0.0, -1.0, 0.0))

        assert r == 0.0 and g == 0.0 and b == 0.0


class TestReflection:
    """Tests for mirror surfaces and the depth limit."""

    def _periscope(self, scene, albedo=(0.2, 0.4, 0.6)):
        """Two 45-degree mirrors relay a +z ray to a lit wall at z = 8.

        The camera ray from the origin hits the first mirror at (0, 0, 5) and
        goes down to the second mirror at (0, -5, 5), which sends it along +z
        to the wall.
        """
        mirror = scene.add_reflective_material((0.1, 0.1, 0.1))
        wall = scene.add_diffuse_material(albedo)
        scene.add_plane((0.0, 0.0, 5.0), (0.0, -1.0, -1.0), mirror)
        scene.add_plane((0.0, -5.0, 5.0), (0.0, 1.0, 1.0), mirror)
        scene.add_plane((0.0, 0.0, 8.0), (0.0, 0.0, -1.0), wall)
        scene.add_point_light((0.0, -5.0, 6.5), (1.0, 1.0, 1.0))

    def test_mirror_chain_shows_wall_untinted(self):
        """Test the wall is seen through both mirrors without mirror tint."""
        from src.facet.core.integrator import trace
        from src.facet.scene.manager import Scene

        scene = Scene()
        self._periscope(scene)

        r, g, b = trace((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), max_depth=10)

        assert abs(r - 0.2) < 1e-3
        assert abs(g - 0.4) < 1e-3
        assert abs(b - 0.6) < 1e-3

    def test_depth_limit_cuts_off_second_mirror(self):
        """Test the second mirror is followed only when depth 1 is allowed."""
        from src.facet.core.integrator import trace
        from src.facet.scene.manager import Scene

        scene = Scene()
        self._periscope(scene)

        # Camera hit at depth 0 is followed; the second mirror is hit at depth 1
        assert trace((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), max_depth=0) == (0.0, 0.0, 0.0)
        r, _, _ = trace((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), max_depth=1)
        assert abs(r - 0.2) < 1e-3

    def test_facing_mirrors_terminate_black(self):
        """Test a ray bouncing between parallel mirrors ends black."""
        from src.facet.core.integrator import trace
        from src.facet.scene.manager import Scene

        scene = Scene()
        mirror = scene.add_reflective_material()
        scene.add_plane((0.0, 0.0, 5.0), (0.0, 0.0, -1.0), mirror)
        scene.add_plane((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), mirror)
        scene.add_point_light((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))

        for depth in (0, 10, 100):
            assert trace((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), max_depth=depth) == (0.0, 0.0, 0.0)


class TestRefraction:
    """Tests for refractive surfaces."""

    def _glass_sphere_scene(self, scene):
        """A glass sphere on the z axis in front of a lit backdrop at z = 10."""
        glass = scene.add_refractive_material(refractive_index=1.5)
        backdrop = scene.add_diffuse_material((0.5, 0.5, 0.5))
        scene.add_sphere((0.0, 0.0, 5.0), 1.0, glass)
        scene.add_plane((0.0, 0.0, 10.0), (0.0, 0.0, -1.0), backdrop)
        scene.add_point_light((0.0, 3.0, 9.0), (1.0, 1.0, 1.0))

    def test_transmission_at_normal_incidence(self):
        """Test the backdrop is seen through the sphere at about 0.96^2 strength."""
        from src.facet.core.integrator import trace
        from src.facet.scene.manager import Scene

        scene = Scene()
        self._glass_sphere_scene(scene)

        direct = 0.5 / math.sqrt(10.0)
        r, g, b = trace((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), max_depth=10)

        # Internal reflections add about 0.16% on top of the two transmissions
        assert abs(r - direct * 0.96 * 0.96) < 2e-3
        assert r == pytest.approx(g, abs=1e-6)
        assert r == pytest.approx(b, abs=1e-6)

    def test_refraction_needs_depth(self):
        """Test the exit point is not resolved when max_depth is 0."""
        from src.facet.core.integrator import trace
        from src.facet.scene.manager import Scene

        scene = Scene()
        self._glass_sphere_scene(scene)

        assert trace((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), max_depth=0) == (0.0, 0.0, 0.0)

    def _glass_slab_scene(self, scene):
        """Glass fills y < 0 under a refractive plane; a lit floor lies at y = -3.

        A ray from (0, -1, 0) along (1, 0.2, 0) meets the interface at
        sin(theta) ~ 0.98 > 1 / 1.5, so it is totally reflected down along
        (1, -0.2, 0) onto the floor at (20, -3, 0), right below the light.
        """
        glass = scene.add_refractive_material(refractive_index=1.5)
        floor = scene.add_diffuse_material((0.2, 0.4, 0.6))
        scene.add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), glass)
        scene.add_plane((0.0, -3.0, 0.0), (0.0, 1.0, 0.0), floor)
        scene.add_point_light((20.0, -1.0, 0.0), (1.0, 1.0, 1.0))

    def test_total_internal_reflection(self):
        """Test a ray leaving glass past the critical angle is fully mirrored."""
        from src.facet.core.integrator import trace
        from src.facet.scene.manager import Scene

        scene = Scene()
        self._glass_slab_scene(scene)

        # No transmitted share: the floor's direct color comes back unscaled
        color = trace((0.0, -1.0, 0.0), (1.0, 0.2, 0.0), max_depth=1)
        assert color == pytest.approx((0.2, 0.4, 0.6), abs=1e-4)

    def test_total_internal_reflection_needs_depth(self):
        """Test the internally reflected ray is dropped when max_depth is 0."""
        from src.facet.core.integrator import trace
        from src.facet.scene.manager import Scene

        scene = Scene()
        self._glass_slab_scene(scene)

        assert trace((0.0, -1.0, 0.0), (1.0, 0.2, 0.0), max_depth=0) == (0.0, 0.0, 0.0)

    def test_glass_sphere_casts_shadow(self):
        """Test a refractive occluder blocks the light like any surface."""
        from src.facet.scene.manager import Scene

        scene = Scene()
        _lit_floor(scene)
        glass = scene.add_refractive_material()
        scene.add_sphere((0.0, 2.5, 0.0), 1.0, glass)
        scene.add_point_light((0.0, 5.0, 0.0), (1.0, 1.0, 1.0))

        assert scene.trace((0.0, 1.0, 0.0), (0.0, -1.0, 0.0)) == (0.0, 0.0, 0.0)


class TestImageRendering:
    """Tests for rendering whole images."""

    def _scene(self):
        from src.facet.scene.manager import Scene, SceneOptions

        scene = Scene(
            SceneOptions(
                camera_position=(0.0, 1.0, -5.0),
                camera_axis=(1.0, 0.0, 0.0),
                camera_angle=5.0,
            )
        )
        floor = _lit_floor(scene)
        mirror = scene.add_reflective_material()
        glass = scene.add_refractive_material()
        scene.add_sphere((-1.2, 1.0, 0.0), 1.0, mirror)
        scene.add_sphere((1.2, 1.0, 0.0), 1.0, glass)
        scene.add_sphere((0.0, 0.5, 3.0), 0.5, floor)
        scene.add_point_light((0.0, 6.0, -3.0), (1.0, 1.0, 1.0))
        return scene

    def test_render_image_is_finite(self):
        """Test a full render has no NaN, Inf or negative values."""
        from src.facet.core.integrator import get_image_numpy, render_rows, setup_render_target

        scene = self._scene()
        scene.setup_camera(32, 24)
        setup_render_target(32, 24)
        render_rows(0, 24, aa_multiplier=2)

        image = get_image_numpy()
        assert image.shape == (24, 32, 3)
        assert np.all(np.isfinite(image))
        assert np.all(image >= 0.0)
        # The lit floor fills the bottom rows
        assert image[-1].max() > 0.0

    def test_rows_match_full_image(self):
        """Test get_rows_numpy returns the same pixels as get_image_numpy."""
        from src.facet.core.integrator import (
            get_image_numpy,
            get_rows_numpy,
            render_rows,
            setup_render_target,
        )

        scene = self._scene()
        scene.setup_camera(16, 12)
        setup_render_target(16, 12)
        render_rows(0, 12)

        np.testing.assert_array_equal(get_rows_numpy(4, 9), get_image_numpy()[4:9])

    def test_render_pixel_matches_buffer(self):
        """Test render_pixel agrees with the band kernel for the same pixel."""
        from src.facet.core.integrator import (
            get_image_numpy,
            render_pixel,
            render_rows,
            setup_render_target,
        )

        scene = self._scene()
        scene.setup_camera(16, 12)
        setup_render_target(16, 12)
        render_rows(0, 12)

        image = get_image_numpy()
        for x, y in [(8, 10), (3, 6), (12, 2)]:
            color = render_pixel(x, y)
            for c in range(3):
                assert abs(color[c] - image[y, x, c]) < 1e-5
