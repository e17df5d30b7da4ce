"""Ray data structure and vector utilities for the Whitted-style ray tracer.

This module provides the fundamental Ray dataclass and the vector helpers
shared by every primitive and by the shading code. All operations are
Taichi functions so they can run inside the render kernels.

Zero-length vectors are left untouched by ``normalize`` instead of
producing NaNs, so degenerate geometry degrades to "no hit" rather than
poisoning a pixel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, 1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Offset used to push points off a surface before firing secondary rays
BIAS = 1e-4

# Largest distance considered by the intersection routines
T_MAX = 1e30


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Primary and
            secondary rays are normalized, but the intersection routines
            accept any non-zero direction.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Used wherever only magnitudes are compared (closest-hit selection),
    which avoids the square root.
    """
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    Args:
        v: The input vector.

    Returns:
        A unit vector in the same direction as v. A zero-length vector is
        returned unchanged.
    """
    result = v
    len_sq = tm.dot(v, v)
    if len_sq > 0.0:
        result = v / ti.sqrt(len_sq)
    return result


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product a . b."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Computes ``incident - 2 (incident . normal) normal``. The result has
    the same length as ``incident`` when ``normal`` is unit length; the
    side the normal faces does not matter.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The mirror-reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def offset_point(point: vec3, direction: vec3) -> vec3:
    """Nudge a point by BIAS along a direction.

    This is how a biased copy of a hit position is produced: along the
    normal to leave a surface, against the incident direction to compare
    candidate hits, and so on. The hit itself is never modified.
    """
    return point + BIAS * direction
