"""Triangle primitive with inside-outside ray-triangle intersection.

A triangle is defined by three vertices. Scenes use a left-handed frame
(x right, y up, z forward, as seen by the camera), so the front face is the
one from which the vertices appear counter-clockwise; the face normal is
``(v2 - v0) x (v1 - v0)`` and points toward that side. Triangles may optionally
carry one normal per vertex, in which case the shading normal is the
barycentric blend of the vertex normals; otherwise the face normal is used.

Ray-triangle intersection follows the classic two-step test:
1. Intersect the ray with the plane of the triangle (face normal, v0)
2. Check the hit point against the three edges (half-plane test)

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.facet.geometry.triangle import make_flat_triangle, hit_triangle
    >>> # Unit triangle in the z=0 plane, facing -z
    >>> # Use hit_triangle within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from src.facet.core.ray import normalize

from .sphere import HitRecord

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Triangle:
    """A triangle with optional per-vertex normals.

    Attributes:
        v0: First vertex position (vec3).
        v1: Second vertex position (vec3).
        v2: Third vertex position (vec3).
        n0: Normal at v0 (only used when has_vertex_normals is 1).
        n1: Normal at v1 (only used when has_vertex_normals is 1).
        n2: Normal at v2 (only used when has_vertex_normals is 1).
        has_vertex_normals: 1 for smooth (interpolated) shading, 0 for flat.
    """

    v0: vec3
    v1: vec3
    v2: vec3
    n0: vec3
    n1: vec3
    n2: vec3
    has_vertex_normals: ti.i32


@ti.func
def face_normal(tri: Triangle) -> vec3:
    """Compute the unnormalized face normal ``(v2 - v0) x (v1 - v0)``.

    Its length is twice the triangle's area.
    """
    return tm.cross(tri.v2 - tri.v0, tri.v1 - tri.v0)


@ti.func
def hit_triangle(
    ray_origin: vec3,
    ray_direction: vec3,
    tri: Triangle,
    refractive: ti.i32,
) -> HitRecord:
    """Test for ray-triangle intersection.

    Back faces are culled before ``t`` is computed, and ``t <= 0`` is
    rejected, unless the triangle is refractive. A zero-area triangle has a
    zero face normal and is never hit.

    The edge tests ``normal . ((p - va) x (vb - va))`` are each twice the
    area of the sub-triangle opposite the remaining vertex, scaled by
    ``|normal|``. Dividing by ``normal . normal`` therefore gives the
    barycentric weight of that vertex.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        tri: The triangle to test against.
        refractive: 1 if the triangle's material is refractive.

    Returns:
        A HitRecord with a unit normal (interpolated when vertex normals
        are present).
    """
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)

    n = face_normal(tri)
    denom = tm.dot(ray_direction, n)

    if denom < 0.0 or (refractive == 1 and denom != 0.0):
        t = tm.dot(n, tri.v0 - ray_origin) / denom

        if t > 0.0 or refractive == 1:
            point = ray_origin + t * ray_direction

            # Inside-outside test against each edge
            edge_01 = tm.dot(n, tm.cross(point - tri.v0, tri.v1 - tri.v0))
            edge_12 = tm.dot(n, tm.cross(point - tri.v1, tri.v2 - tri.v1))
            edge_20 = tm.dot(n, tm.cross(point - tri.v2, tri.v0 - tri.v2))

            if edge_01 >= 0.0 and edge_12 >= 0.0 and edge_20 >= 0.0:
                did_hit = 1
                hit_t = t
                hit_point = point

                if tri.has_vertex_normals == 1:
                    area_sq = tm.dot(n, n)
                    w0 = edge_12 / area_sq
                    w1 = edge_20 / area_sq
                    w2 = edge_01 / area_sq
                    hit_normal = normalize(w0 * tri.n0 + w1 * tri.n1 + w2 * tri.n2)
                else:
                    hit_normal = normalize(n)

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        position=hit_point,
        normal=hit_normal,
        incident=ray_direction,
    )


@ti.func
def make_flat_triangle(v0: vec3, v1: vec3, v2: vec3) -> Triangle:
    """Create a flat-shaded triangle from three vertices."""
    zero = vec3(0.0, 0.0, 0.0)
    return Triangle(v0=v0, v1=v1, v2=v2, n0=zero, n1=zero, n2=zero, has_vertex_normals=0)


@ti.func
def make_smooth_triangle(
    v0: vec3, v1: vec3, v2: vec3, n0: vec3, n1: vec3, n2: vec3
) -> Triangle:
    """Create a triangle whose normal is interpolated from vertex normals."""
    return Triangle(v0=v0, v1=v1, v2=v2, n0=n0, n1=n1, n2=n2, has_vertex_normals=1)


@ti.func
def triangle_area(tri: Triangle) -> ti.f32:
    """Compute the area of a triangle."""
    return 0.5 * tm.length(face_normal(tri))
