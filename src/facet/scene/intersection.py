"""Scene-level surface storage and ray queries.

This module stores every surface of the scene in Taichi fields and answers
the two questions the shading code asks of a scene:

- closest hit: which surface does a ray see first?
- line of sight: is the segment between two points unobstructed?

Surfaces form a closed set of kinds (plane, sphere, triangle, mesh). Each
surface is registered in a surface table holding its kind, the index into
that kind's storage and its material id; ``intersect_surface`` dispatches on
the kind. Mesh triangles live in the shared triangle storage as one
contiguous range per mesh and are not registered as surfaces themselves.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.facet.scene.intersection import (
    ...     SurfaceKind, add_sphere, register_surface, query_closest_hit, clear_scene
    ... )
    >>> clear_scene()
    >>> idx = add_sphere((0.0, 0.0, 5.0), 1.0)
    >>> register_surface(SurfaceKind.SPHERE, idx, material_id=0)
    >>> hit = query_closest_hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from src.facet.core.ray import BIAS, T_MAX, normalize
from src.facet.geometry.mesh import AABB, hit_aabb
from src.facet.geometry.plane import Plane, hit_plane
from src.facet.geometry.sphere import HitRecord, Sphere, hit_sphere, make_miss_hit
from src.facet.geometry.triangle import Triangle, hit_triangle
from src.facet.materials.material import is_refractive

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

Vec3Tuple = tuple[float, float, float]


class SurfaceKind(IntEnum):
    """Enumeration of surface kinds stored in the surface table."""

    PLANE = 0
    SPHERE = 1
    TRIANGLE = 2
    MESH = 3


@ti.dataclass
class RayHit:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: Whether the ray intersected any surface (1 if hit, 0 if miss).
        position: The world-space hit point (not biased).
        normal: The geometric normal of the surface at the hit (unit length).
        incident: The direction of the ray that produced the hit.
        material_id: The material id of the hit surface, -1 on a miss.
    """

    hit: ti.i32
    position: vec3
    normal: vec3
    incident: vec3
    material_id: ti.i32


@dataclass
class HitInfo:
    """Python-side copy of a hit returned by the query functions.

    Attributes:
        position: The world-space hit point.
        normal: The surface normal at the hit.
        incident: The direction of the ray that produced the hit.
        material_id: The material id of the hit surface.
    """

    position: Vec3Tuple
    normal: Vec3Tuple
    incident: Vec3Tuple
    material_id: int


# Maximum number of primitives supported in the scene
MAX_SURFACES = 4096
MAX_SPHERES = 1024
MAX_PLANES = 256
MAX_TRIANGLES = 65536
MAX_MESHES = 64

# Surface table: one entry per renderable surface
surface_kinds = ti.field(dtype=ti.i32, shape=MAX_SURFACES)
surface_indices = ti.field(dtype=ti.i32, shape=MAX_SURFACES)
surface_material_ids = ti.field(dtype=ti.i32, shape=MAX_SURFACES)
num_surfaces = ti.field(dtype=ti.i32, shape=())

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Plane storage
plane_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())

# Triangle storage, shared by standalone triangles and mesh faces
triangle_v0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_n0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_n1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_n2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_has_normals = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())

# Mesh storage: a contiguous triangle range plus its bounding box
mesh_triangle_starts = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_triangle_counts = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_bounds_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MESHES)
mesh_bounds_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MESHES)
mesh_material_ids = ti.field(dtype=ti.i32, shape=MAX_MESHES)
num_meshes = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all surfaces from the scene.

    Resets the primitive counts to zero. The actual field data is not
    cleared but will be overwritten when new primitives are added.
    """
    num_surfaces[None] = 0
    num_spheres[None] = 0
    num_planes[None] = 0
    num_triangles[None] = 0
    num_meshes[None] = 0


def register_surface(kind: SurfaceKind, index: int, material_id: int) -> int:
    """Register a stored primitive as a renderable surface.

    Args:
        kind: The primitive kind.
        index: The index into that kind's storage.
        material_id: The material id of the surface.

    Returns:
        The index of the surface in the surface table.

    Raises:
        RuntimeError: If the maximum number of surfaces is exceeded.
    """
    idx = num_surfaces[None]
    if idx >= MAX_SURFACES:
        raise RuntimeError(f"Maximum number of surfaces ({MAX_SURFACES}) exceeded")
    surface_kinds[idx] = int(kind)
    surface_indices[idx] = index
    surface_material_ids[idx] = material_id
    num_surfaces[None] = idx + 1
    return idx


def add_sphere(center: Vec3Tuple, radius: float) -> int:
    """Store a sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = vec3(center[0], center[1], center[2])
    sphere_radii[idx] = radius
    num_spheres[None] = idx + 1
    return idx


def add_plane(center: Vec3Tuple, normal: Vec3Tuple) -> int:
    """Store a plane. The normal must already be unit length.

    Returns:
        The index of the added plane.

    Raises:
        RuntimeError: If the maximum number of planes is exceeded.
    """
    idx = num_planes[None]
    if idx >= MAX_PLANES:
        raise RuntimeError(f"Maximum number of planes ({MAX_PLANES}) exceeded")
    plane_centers[idx] = vec3(center[0], center[1], center[2])
    plane_normals[idx] = vec3(normal[0], normal[1], normal[2])
    num_planes[None] = idx + 1
    return idx


def add_triangle(
    v0: Vec3Tuple,
    v1: Vec3Tuple,
    v2: Vec3Tuple,
    normals: Sequence[Vec3Tuple] | None = None,
) -> int:
    """Store a triangle, optionally with per-vertex normals.

    Returns:
        The index of the added triangle.

    Raises:
        RuntimeError: If the maximum number of triangles is exceeded.
    """
    idx = num_triangles[None]
    if idx >= MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")
    triangle_v0[idx] = vec3(v0[0], v0[1], v0[2])
    triangle_v1[idx] = vec3(v1[0], v1[1], v1[2])
    triangle_v2[idx] = vec3(v2[0], v2[1], v2[2])
    if normals is None:
        triangle_has_normals[idx] = 0
    else:
        n0, n1, n2 = normals
        triangle_n0[idx] = vec3(n0[0], n0[1], n0[2])
        triangle_n1[idx] = vec3(n1[0], n1[1], n1[2])
        triangle_n2[idx] = vec3(n2[0], n2[1], n2[2])
        triangle_has_normals[idx] = 1
    num_triangles[None] = idx + 1
    return idx


def add_mesh(
    triangle_start: int,
    triangle_count: int,
    bounds_min: Vec3Tuple,
    bounds_max: Vec3Tuple,
    material_id: int,
) -> int:
    """Store a mesh over an already stored, contiguous triangle range.

    Returns:
        The index of the added mesh.

    Raises:
        RuntimeError: If the maximum number of meshes is exceeded.
    """
    idx = num_meshes[None]
    if idx >= MAX_MESHES:
        raise RuntimeError(f"Maximum number of meshes ({MAX_MESHES}) exceeded")
    mesh_triangle_starts[idx] = triangle_start
    mesh_triangle_counts[idx] = triangle_count
    mesh_bounds_min[idx] = vec3(bounds_min[0], bounds_min[1], bounds_min[2])
    mesh_bounds_max[idx] = vec3(bounds_max[0], bounds_max[1], bounds_max[2])
    mesh_material_ids[idx] = material_id
    num_meshes[None] = idx + 1
    return idx


def get_surface_count() -> int:
    """Get the number of registered surfaces."""
    return int(num_surfaces[None])


def get_triangle_count() -> int:
    """Get the number of stored triangles (standalone and mesh faces)."""
    return int(num_triangles[None])


# =============================================================================
# Per-surface intersection
# =============================================================================


@ti.func
def _load_triangle(i: ti.i32) -> Triangle:
    return Triangle(
        v0=triangle_v0[i],
        v1=triangle_v1[i],
        v2=triangle_v2[i],
        n0=triangle_n0[i],
        n1=triangle_n1[i],
        n2=triangle_n2[i],
        has_vertex_normals=triangle_has_normals[i],
    )


@ti.func
def _biased_offset(rec: HitRecord, ray_origin: vec3) -> vec3:
    """Vector from the ray origin to the hit, pulled back by BIAS.

    Pulling the hit back along the incident direction keeps a surface the
    ray is only grazing from winning the closest-hit comparison.
    """
    return rec.position - BIAS * rec.incident - ray_origin


@ti.func
def closest_mesh_triangle(
    mesh: ti.i32,
    ray_origin: vec3,
    ray_direction: vec3,
    refractive: ti.i32,
) -> HitRecord:
    """Find the closest triangle of a mesh hit by a ray (serial scan).

    The bounding box is tested first; only a box hit leads to a scan of the
    mesh's triangles. Among triangle hits in front of the ray, the one with
    the smallest biased squared distance wins.
    """
    result = make_miss_hit(ray_direction)
    box = AABB(bmin=mesh_bounds_min[mesh], bmax=mesh_bounds_max[mesh])

    if hit_aabb(ray_origin, ray_direction, box) == 1:
        closest_dist = T_MAX
        start = mesh_triangle_starts[mesh]
        end = start + mesh_triangle_counts[mesh]
        for i in range(start, end):
            rec = hit_triangle(ray_origin, ray_direction, _load_triangle(i), refractive)
            if rec.hit == 1:
                offset = _biased_offset(rec, ray_origin)
                dist = tm.dot(offset, offset)
                if dist < closest_dist and tm.dot(offset, ray_direction) > 0.0:
                    closest_dist = dist
                    result = rec

    return result


@ti.func
def intersect_surface(surface: ti.i32, ray_origin: vec3, ray_direction: vec3) -> HitRecord:
    """Intersect a ray with one registered surface.

    Dispatches on the surface kind. The surface's material decides whether
    back faces and hits behind the origin are reported (refractive only).

    Args:
        surface: Index into the surface table.
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.

    Returns:
        The primitive-level HitRecord.
    """
    kind = surface_kinds[surface]
    index = surface_indices[surface]
    refractive = is_refractive(surface_material_ids[surface])

    result = make_miss_hit(ray_direction)

    if kind == int(SurfaceKind.PLANE):
        plane = Plane(center=plane_centers[index], normal=plane_normals[index])
        result = hit_plane(ray_origin, ray_direction, plane, refractive)
    elif kind == int(SurfaceKind.SPHERE):
        sphere = Sphere(center=sphere_centers[index], radius=sphere_radii[index])
        result = hit_sphere(ray_origin, ray_direction, sphere, refractive)
    elif kind == int(SurfaceKind.TRIANGLE):
        result = hit_triangle(ray_origin, ray_direction, _load_triangle(index), refractive)
    elif kind == int(SurfaceKind.MESH):
        result = closest_mesh_triangle(index, ray_origin, ray_direction, refractive)

    return result


# =============================================================================
# Scene queries
# =============================================================================


@ti.func
def make_miss_ray_hit(ray_direction: vec3) -> RayHit:
    """Create a RayHit indicating no intersection."""
    return RayHit(
        hit=0,
        position=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        incident=ray_direction,
        material_id=-1,
    )


@ti.func
def closest_hit(ray_origin: vec3, ray_direction: vec3) -> RayHit:
    """Find the surface a ray sees first.

    Every surface is intersected; the winner is the hit whose biased
    position has the smallest squared distance from the ray origin among
    hits lying in front of the ray (``offset . direction > 0``). The
    returned hit carries the unbiased position.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.

    Returns:
        A RayHit for the closest surface, or a miss record.
    """
    closest_dist = T_MAX
    result = make_miss_ray_hit(ray_direction)

    for s in range(num_surfaces[None]):
        rec = intersect_surface(s, ray_origin, ray_direction)
        if rec.hit == 1:
            offset = _biased_offset(rec, ray_origin)
            dist = tm.dot(offset, offset)
            if dist < closest_dist and tm.dot(offset, ray_direction) > 0.0:
                closest_dist = dist
                result = RayHit(
                    hit=1,
                    position=rec.position,
                    normal=rec.normal,
                    incident=rec.incident,
                    material_id=surface_material_ids[s],
                )

    return result


@ti.func
def line_of_sight(origin: vec3, destination: vec3) -> ti.i32:
    """Test whether the segment from origin to destination is unobstructed.

    The ray is fired from the destination (usually a light) back toward the
    origin, which keeps precision where the segment ends on a surface. The
    origin is first moved toward the destination by BIAS times the segment
    so the surface it lies on does not shadow it. A hit occludes only when
    its projection onto the segment falls strictly between the two ends.

    Args:
        origin: The point being lit (typically a biased surface point).
        destination: The far end of the segment (typically a light position).

    Returns:
        1 if nothing blocks the segment, 0 otherwise.
    """
    adjusted_origin = origin + BIAS * (destination - origin)
    toward_destination = normalize(destination - adjusted_origin)
    segment = adjusted_origin - destination
    segment_len_sq = tm.dot(segment, segment)

    visible = 1
    for s in range(num_surfaces[None]):
        if visible == 1:
            rec = intersect_surface(s, destination, -toward_destination)
            if rec.hit == 1:
                projection = tm.dot(segment, rec.position - destination)
                if projection < segment_len_sq and projection > 0.0:
                    visible = 0

    return visible


# =============================================================================
# Python-callable queries
# =============================================================================

# Result slots written by the query kernels
_query_hit = ti.field(dtype=ti.i32, shape=())
_query_position = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_incident = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_material_id = ti.field(dtype=ti.i32, shape=())

# Scratch space for the parallel mesh reduction
_mesh_candidate_dist = ti.field(dtype=ti.f32, shape=MAX_TRIANGLES)
_mesh_best_dist = ti.field(dtype=ti.f32, shape=())
_mesh_best_index = ti.field(dtype=ti.i32, shape=())


@ti.func
def _store_query(hit: ti.i32, position: vec3, normal: vec3, incident: vec3, material_id: ti.i32):
    _query_hit[None] = hit
    _query_position[None] = position
    _query_normal[None] = normal
    _query_incident[None] = incident
    _query_material_id[None] = material_id


def _to_vec3(v: Sequence[float]) -> "ti.Vector":
    return vec3(float(v[0]), float(v[1]), float(v[2]))


def _vec3_tuple(v) -> Vec3Tuple:
    return (float(v[0]), float(v[1]), float(v[2]))


def _read_query() -> HitInfo | None:
    if _query_hit[None] == 0:
        return None
    return HitInfo(
        position=_vec3_tuple(_query_position[None]),
        normal=_vec3_tuple(_query_normal[None]),
        incident=_vec3_tuple(_query_incident[None]),
        material_id=int(_query_material_id[None]),
    )


@ti.kernel
def _closest_hit_kernel(ray_origin: vec3, ray_direction: vec3):
    # Single-iteration outer loop keeps the surface scan serial
    for _ in range(1):
        rec = closest_hit(ray_origin, ray_direction)
        _store_query(rec.hit, rec.position, rec.normal, rec.incident, rec.material_id)


@ti.kernel
def _surface_kernel(surface: ti.i32, ray_origin: vec3, ray_direction: vec3):
    for _ in range(1):
        rec = intersect_surface(surface, ray_origin, ray_direction)
        _store_query(
            rec.hit, rec.position, rec.normal, rec.incident, surface_material_ids[surface]
        )


@ti.kernel
def _line_of_sight_kernel(origin: vec3, destination: vec3) -> ti.i32:
    visible = 1
    for _ in range(1):
        visible = line_of_sight(origin, destination)
    return visible


def query_closest_hit(origin: Sequence[float], direction: Sequence[float]) -> HitInfo | None:
    """Find the closest surface hit by a ray (Python-callable).

    Args:
        origin: The ray origin as (x, y, z).
        direction: The ray direction as (x, y, z).

    Returns:
        HitInfo for the closest hit, or None if the ray hits nothing.
    """
    _closest_hit_kernel(_to_vec3(origin), _to_vec3(direction))
    return _read_query()


def query_surface(
    surface: int, origin: Sequence[float], direction: Sequence[float]
) -> HitInfo | None:
    """Intersect a ray with a single registered surface (Python-callable).

    Raises:
        IndexError: If the surface index is not registered.
    """
    if surface < 0 or surface >= num_surfaces[None]:
        raise IndexError(f"Invalid surface index: {surface}")
    _surface_kernel(surface, _to_vec3(origin), _to_vec3(direction))
    return _read_query()


def query_line_of_sight(origin: Sequence[float], destination: Sequence[float]) -> bool:
    """Test whether the segment between two points is unobstructed."""
    return bool(_line_of_sight_kernel(_to_vec3(origin), _to_vec3(destination)))


# =============================================================================
# Parallel mesh reduction
# =============================================================================


@ti.kernel
def _mesh_box_kernel(mesh: ti.i32, ray_origin: vec3, ray_direction: vec3) -> ti.i32:
    box = AABB(bmin=mesh_bounds_min[mesh], bmax=mesh_bounds_max[mesh])
    return hit_aabb(ray_origin, ray_direction, box)


@ti.kernel
def _mesh_distance_pass(mesh: ti.i32, ray_origin: vec3, ray_direction: vec3):
    refractive = is_refractive(mesh_material_ids[mesh])
    start = mesh_triangle_starts[mesh]
    end = start + mesh_triangle_counts[mesh]
    for i in range(start, end):
        dist = T_MAX
        rec = hit_triangle(ray_origin, ray_direction, _load_triangle(i), refractive)
        if rec.hit == 1:
            offset = _biased_offset(rec, ray_origin)
            if tm.dot(offset, ray_direction) > 0.0:
                dist = tm.dot(offset, offset)
        _mesh_candidate_dist[i] = dist
        ti.atomic_min(_mesh_best_dist[None], dist)


@ti.kernel
def _mesh_index_pass(mesh: ti.i32):
    start = mesh_triangle_starts[mesh]
    end = start + mesh_triangle_counts[mesh]
    for i in range(start, end):
        best = _mesh_best_dist[None]
        if best < T_MAX and _mesh_candidate_dist[i] == best:
            ti.atomic_min(_mesh_best_index[None], i)


@ti.kernel
def _mesh_store_kernel(mesh: ti.i32, triangle: ti.i32, ray_origin: vec3, ray_direction: vec3):
    for _ in range(1):
        refractive = is_refractive(mesh_material_ids[mesh])
        rec = hit_triangle(ray_origin, ray_direction, _load_triangle(triangle), refractive)
        _store_query(rec.hit, rec.position, rec.normal, rec.incident, mesh_material_ids[mesh])


def intersect_mesh_parallel(
    mesh: int, origin: Sequence[float], direction: Sequence[float]
) -> HitInfo | None:
    """Closest-triangle query over one mesh as a parallel reduction.

    After the bounding box test, the triangles are tested in parallel and
    reduced in two passes: an atomic minimum over the biased squared
    distances, then an atomic minimum over the indices of the triangles at
    that distance. Ties go to the lowest triangle index, so the result does
    not depend on thread scheduling and matches the serial scan.

    The render kernels do not call this. Inside them every pixel already
    runs in its own thread, so meshes are scanned serially by
    ``closest_mesh_triangle``.

    Args:
        mesh: Index of the mesh.
        origin: The ray origin as (x, y, z).
        direction: The ray direction as (x, y, z).

    Returns:
        HitInfo for the closest triangle, or None.

    Raises:
        IndexError: If the mesh index is not stored.
    """
    if mesh < 0 or mesh >= num_meshes[None]:
        raise IndexError(f"Invalid mesh index: {mesh}")

    ray_origin = _to_vec3(origin)
    ray_direction = _to_vec3(direction)

    if _mesh_box_kernel(mesh, ray_origin, ray_direction) == 0:
        return None

    _mesh_best_dist[None] = T_MAX
    _mesh_best_index[None] = MAX_TRIANGLES
    _mesh_distance_pass(mesh, ray_origin, ray_direction)
    _mesh_index_pass(mesh)

    best_index = int(_mesh_best_index[None])
    if best_index >= MAX_TRIANGLES:
        return None

    _mesh_store_kernel(mesh, best_index, ray_origin, ray_direction)
    return _read_query()
