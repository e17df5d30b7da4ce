"""Triangle mesh aggregate: bounding box test and mesh input types.

A mesh is a set of triangles behind one axis-aligned bounding box. The
scene stores mesh triangles in its shared triangle storage (as one
contiguous range per mesh); this module provides the pieces that do not
depend on that storage:

- ``AABB`` and ``hit_aabb``, the slab test run before any triangle is tested
- ``MeshTriangle``, the Python-side triangle handed over by a mesh loader
- ``compute_bounds``, for callers that do not supply a precomputed box

Example:
    >>> from src.facet.geometry.mesh import MeshTriangle, compute_bounds
    >>> tris = [MeshTriangle((0, 0, 0), (1, 0, 0), (0, 1, 0))]
    >>> compute_bounds(tris)
    ((0.0, 0.0, 0.0), (1.0, 1.0, 0.0))
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from src.facet.core.ray import T_MAX

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

Vec3Tuple = tuple[float, float, float]


@ti.dataclass
class AABB:
    """Axis-aligned bounding box given by its min and max corners."""

    bmin: vec3
    bmax: vec3


@ti.func
def hit_aabb(ray_origin: vec3, ray_direction: vec3, box: AABB) -> ti.i32:
    """Slab test of a ray against an axis-aligned bounding box.

    Each axis contributes the interval of ``t`` over which the ray is
    between the two slab planes; the near/far bounds are swapped when the
    direction component is negative. The box is hit when the running
    intersection of the intervals is non-empty. An axis the ray is parallel
    to is rejected outright if the origin lies outside that slab.

    The interval is not clipped to ``t > 0``: triangles behind the origin
    are filtered by the triangle test itself, and refractive meshes need
    them.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        box: The bounding box.

    Returns:
        1 if the ray's line crosses the box, 0 otherwise.
    """
    t_near = -T_MAX
    t_far = T_MAX
    inside = 1

    for k in ti.static(range(3)):
        if ray_direction[k] == 0.0:
            if ray_origin[k] < box.bmin[k] or ray_origin[k] > box.bmax[k]:
                inside = 0
        else:
            inverse = 1.0 / ray_direction[k]
            t0 = (box.bmin[k] - ray_origin[k]) * inverse
            t1 = (box.bmax[k] - ray_origin[k]) * inverse
            if inverse < 0.0:
                temp = t0
                t0 = t1
                t1 = temp
            t_near = ti.max(t_near, t0)
            t_far = ti.min(t_far, t1)

    if t_near > t_far:
        inside = 0

    return inside


@dataclass
class MeshTriangle:
    """A triangle as produced by a mesh loader.

    Attributes:
        v0: First vertex position.
        v1: Second vertex position.
        v2: Third vertex position.
        normals: Optional per-vertex normals ``(n0, n1, n2)`` for smooth
            shading. None means flat shading with the face normal.
    """

    v0: Vec3Tuple
    v1: Vec3Tuple
    v2: Vec3Tuple
    normals: tuple[Vec3Tuple, Vec3Tuple, Vec3Tuple] | None = None


def compute_bounds(triangles: Sequence[MeshTriangle]) -> tuple[Vec3Tuple, Vec3Tuple]:
    """Compute the axis-aligned bounding box of a set of triangles.

    Args:
        triangles: The triangles to enclose (at least one).

    Returns:
        Tuple of (min_corner, max_corner).

    Raises:
        ValueError: If no triangles are given.
    """
    if len(triangles) == 0:
        raise ValueError("Cannot compute the bounds of an empty mesh")

    vertices = np.array(
        [[tri.v0, tri.v1, tri.v2] for tri in triangles], dtype=np.float64
    ).reshape(-1, 3)
    lo = vertices.min(axis=0)
    hi = vertices.max(axis=0)

    return (
        (float(lo[0]), float(lo[1]), float(lo[2])),
        (float(hi[0]), float(hi[1]), float(hi[2])),
    )
