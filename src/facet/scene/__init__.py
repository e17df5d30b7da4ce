"""Scene module: surface storage, ray queries and the scene API.

Components:
    intersection: Surface table, primitive storage, closest-hit and
        line-of-sight queries, parallel mesh reduction
    lights: Point light storage
    manager: The Scene class tying surfaces, materials, lights and camera
        configuration together

Scene data is organized for parallel access from the render kernels:
    - Structure-of-Arrays layout for geometric data
    - One surface table entry per renderable surface (kind, index, material)
    - Mesh triangles stored as contiguous ranges of the triangle storage
"""

from .intersection import (
    MAX_MESHES,
    MAX_PLANES,
    MAX_SPHERES,
    MAX_SURFACES,
    MAX_TRIANGLES,
    HitInfo,
    RayHit,
    SurfaceKind,
    clear_scene,
    closest_hit,
    intersect_mesh_parallel,
    intersect_surface,
    line_of_sight,
    query_closest_hit,
    query_line_of_sight,
    query_surface,
    register_surface,
)
from .lights import MAX_LIGHTS, add_point_light, clear_lights, get_light_count
from .manager import LightInfo, MaterialInfo, Scene, SceneOptions, SurfaceInfo

__all__ = [
    # Intersection module
    "SurfaceKind",
    "RayHit",
    "HitInfo",
    "register_surface",
    "clear_scene",
    "intersect_surface",
    "closest_hit",
    "line_of_sight",
    "query_closest_hit",
    "query_line_of_sight",
    "query_surface",
    "intersect_mesh_parallel",
    "MAX_SURFACES",
    "MAX_SPHERES",
    "MAX_PLANES",
    "MAX_TRIANGLES",
    "MAX_MESHES",
    # Lights module
    "add_point_light",
    "clear_lights",
    "get_light_count",
    "MAX_LIGHTS",
    # Manager module
    "Scene",
    "SceneOptions",
    "MaterialInfo",
    "SurfaceInfo",
    "LightInfo",
]
