"""Infinite plane primitive with ray-plane intersection.

A plane is defined by any point on it (its ``center``) and a unit normal.
Opaque planes are one-sided: a ray approaching from behind the normal does
not see them. Refractive planes are two-sided and also report hits behind
the ray origin, so rays travelling inside a refractive volume can find the
surface they leave through.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.facet.geometry.plane import Plane, hit_plane
    >>> floor = Plane(center=ti.math.vec3(0, -1, 0), normal=ti.math.vec3(0, 1, 0))
    >>> # Use hit_plane within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Plane:
    """An infinite plane.

    Attributes:
        center: A point on the plane (vec3).
        normal: The direction the plane faces (unit vec3).
    """

    center: vec3
    normal: vec3


@ti.func
def hit_plane(
    ray_origin: vec3,
    ray_direction: vec3,
    plane: Plane,
    refractive: ti.i32,
) -> HitRecord:
    """Test for ray-plane intersection.

    Solves ``t = normal . (center - origin) / (direction . normal)``.
    A ray parallel to the plane never hits it.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        plane: The plane to test against.
        refractive: 1 if the plane's material is refractive, which disables
            back-face culling and the ``t > 0`` check.

    Returns:
        A HitRecord; the normal is the plane's own normal.
    """
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)

    denom = tm.dot(ray_direction, plane.normal)

    # Back faces are culled before t is computed
    if denom < 0.0 or (refractive == 1 and denom != 0.0):
        t = tm.dot(plane.normal, plane.center - ray_origin) / denom
        if t > 0.0 or refractive == 1:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        position=hit_point,
        normal=plane.normal,
        incident=ray_direction,
    )


@ti.func
def make_plane(center: vec3, normal: vec3) -> Plane:
    """Create a plane from a point and a unit normal."""
    return Plane(center=center, normal=normal)
