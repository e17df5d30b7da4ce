"""Pytest configuration for ray tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear surfaces, materials, lights and the render target around each test."""
    # Import here so Taichi is initialized first
    from src.facet.core.integrator import clear_render_target, reset_render_target
    from src.facet.materials.material import clear_materials
    from src.facet.scene.intersection import clear_scene
    from src.facet.scene.lights import clear_lights

    def _clear_all():
        clear_scene()
        clear_materials()
        clear_lights()
        clear_render_target()
        reset_render_target()

    _clear_all()

    yield

    _clear_all()
