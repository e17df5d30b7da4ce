"""Sphere primitive with geometric ray-sphere intersection.

This module provides the primitive-level HitRecord shared by every surface
kind, the Sphere dataclass and its intersection function.

The intersection uses the geometric construction rather than the quadratic
formula: project the origin-to-center vector onto the ray to get ``tca``,
measure the squared distance ``d2`` from the center to the ray, and step
back and forth by ``thc = sqrt(r^2 - d2)`` to reach the two roots. Rays that
start inside the sphere see the far root (the exit point).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.facet.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, 5), radius=1.0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from src.facet.core.ray import normalize

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float). Zero or negative
            radii are not detected; validation happens when the sphere is
            added to a scene.
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: Whether the ray intersected the primitive (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
            May be negative for refractive surfaces, which report hits on
            either side of the ray origin.
        position: The world-space point where the ray met the surface.
        normal: The geometric surface normal at the hit (unit length). It is
            never flipped toward the ray; that is the shading code's job.
        incident: A copy of the direction of the ray that produced the hit.
    """

    hit: ti.i32
    t: ti.f32
    position: vec3
    normal: vec3
    incident: vec3


@ti.func
def make_miss_hit(direction: vec3) -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        position=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        incident=direction,
    )


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    refractive: ti.i32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    The ray direction need not be unit length: ``tca`` and ``thc`` are
    expressed in units of the direction vector so the returned ``t``
    always satisfies ``position = origin + t * direction``.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (non-zero).
        sphere: The sphere to test intersection against.
        refractive: 1 if the sphere's material is refractive. Refractive
            spheres also report the near root when it lies behind the ray.

    Returns:
        A HitRecord whose hit field tells whether the sphere was hit. The
        normal is ``normalize(position - center)``.
    """
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)

    a = tm.dot(ray_direction, ray_direction)
    if a > 0.0:
        orig_to_center = sphere.center - ray_origin
        hyp_sq = tm.dot(orig_to_center, orig_to_center)
        radius_sq = sphere.radius * sphere.radius

        # Projection of origin->center onto the ray, in ray parameter units
        tca = tm.dot(orig_to_center, ray_direction) / a
        d2 = hyp_sq - tca * tca * a

        if d2 <= radius_sq:
            thc = ti.sqrt(ti.max(radius_sq - d2, 0.0) / a)
            t1 = tca - thc
            t2 = tca + thc

            if hyp_sq < radius_sq:
                # Origin inside: only the exit point is visible
                did_hit = 1
                hit_t = t2
            elif t1 > 0.0 or refractive == 1:
                did_hit = 1
                hit_t = t1

            if did_hit == 1:
                hit_point = ray_origin + hit_t * ray_direction
                hit_normal = normalize(hit_point - sphere.center)

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        position=hit_point,
        normal=hit_normal,
        incident=ray_direction,
    )


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius."""
    return Sphere(center=center, radius=radius)
