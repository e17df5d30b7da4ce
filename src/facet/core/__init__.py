"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Ray data structure and vector utilities
    integrator: Whitted-style shading, render target and render kernels
    renderer: Render driver writing bands of rows into an image sink

All compute-intensive operations use Taichi kernels for parallel execution.
"""

from .ray import (
    BIAS,
    T_MAX,
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    normalize,
    offset_point,
    ray_at,
    reflect,
    vec3,
)

# Note: integrator and renderer are NOT imported here to avoid circular imports.
# Import directly from src.facet.core.integrator or src.facet.core.renderer when needed.

__all__ = [
    "BIAS",
    "T_MAX",
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "offset_point",
]
