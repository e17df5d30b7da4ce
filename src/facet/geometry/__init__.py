"""Geometry module for surface primitives and their intersection tests.

This module provides the geometric primitives a scene is built from:

Components:
    sphere: Sphere primitive and the shared HitRecord structure
    plane: Infinite plane primitive (one-sided unless refractive)
    triangle: Flat or smooth-shaded triangle with inside-outside test
    mesh: Axis-aligned bounding box slab test and mesh input helpers

All intersection routines are implemented as Taichi functions (@ti.func)
so they run inside the render kernels. Every primitive follows the pattern:
    record = hit_<shape>(ray_origin, ray_direction, shape, refractive)

Opaque surfaces only report hits in front of the ray origin and cull back
faces; refractive surfaces report both, so rays travelling inside a volume
can find the surface they leave through.
"""

from .mesh import AABB, MeshTriangle, compute_bounds, hit_aabb
from .plane import Plane, hit_plane, make_plane
from .sphere import HitRecord, Sphere, hit_sphere, make_miss_hit, make_sphere
from .triangle import (
    Triangle,
    face_normal,
    hit_triangle,
    make_flat_triangle,
    make_smooth_triangle,
    triangle_area,
)

__all__ = [
    "HitRecord",
    "make_miss_hit",
    "Sphere",
    "hit_sphere",
    "make_sphere",
    "Plane",
    "hit_plane",
    "make_plane",
    "Triangle",
    "face_normal",
    "hit_triangle",
    "make_flat_triangle",
    "make_smooth_triangle",
    "triangle_area",
    "AABB",
    "hit_aabb",
    "MeshTriangle",
    "compute_bounds",
]
