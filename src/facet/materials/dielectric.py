"""Dielectric (glass/water) optics: refraction and Fresnel reflectance.

This module holds the physics used when a ray hits a refractive surface.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Exact Fresnel reflectance for unpolarized light, the average of the
      parallel and perpendicular polarization reflectances
    - Total internal reflection when the refraction discriminant
      k = 1 - eta^2 (1 - cos_i^2) is negative

Unlike a Monte Carlo path tracer, the Whitted shading model does not pick
between reflection and refraction at random: both rays are traced and the
results are blended by the Fresnel coefficient.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.facet.materials.dielectric import fresnel
    >>> # Use within a Taichi kernel:
    >>> # fr = fresnel(1.0, 1.5, cos_i)
"""

import taichi as ti
import taichi.math as tm

from src.facet.core.ray import normalize

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def fresnel(eta_i: ti.f32, eta_t: ti.f32, cos_i: ti.f32) -> ti.f32:
    """Compute the unpolarized Fresnel reflectance at a dielectric interface.

    Averages the squared reflection coefficients for light polarized
    parallel and perpendicular to the plane of incidence. At normal
    incidence both equal ``(eta_i - eta_t) / (eta_i + eta_t)``.

    Args:
        eta_i: Index of refraction of the medium the light comes from.
        eta_t: Index of refraction of the medium the light enters.
        cos_i: Cosine of the angle between the incident ray (reversed) and
            the normal on the incident side.

    Returns:
        The fraction of light reflected, in [0, 1]. Returns 1 when the
        transmitted sine would reach 1 (total internal reflection).
    """
    eta = eta_i / eta_t
    sin_i = ti.sqrt(ti.max(0.0, 1.0 - cos_i * cos_i))
    sin_t = eta * sin_i

    reflectance = 1.0
    if sin_t < 1.0:
        cos_t = ti.sqrt(ti.max(0.0, 1.0 - sin_t * sin_t))
        r_parallel = (eta_t * cos_i - eta_i * cos_t) / (eta_t * cos_i + eta_i * cos_t)
        r_perpendicular = (eta_i * cos_i - eta_t * cos_t) / (eta_i * cos_i + eta_t * cos_t)
        reflectance = 0.5 * (r_parallel * r_parallel + r_perpendicular * r_perpendicular)

    return reflectance


@ti.func
def orient_interface(incident: vec3, normal: vec3, refractive_index: ti.f32):
    """Work out which way a ray crosses a refractive surface.

    A ray with ``normal . incident < 0`` enters the medium from outside
    (``eta_i = 1``, ``eta_t = refractive_index``). Otherwise it is leaving
    the medium: the normal is flipped to face the incident side and the
    indices are swapped.

    Args:
        incident: The incoming ray direction.
        normal: The raw geometric normal reported by the surface.
        refractive_index: Index of refraction of the material.

    Returns:
        A tuple (facing_normal, eta_i, eta_t, entering) where facing_normal
        points toward the side the ray arrives from and entering is 1 when
        the ray enters the medium.
    """
    facing_normal = normal
    eta_i = 1.0
    eta_t = refractive_index
    entering = 1

    if tm.dot(normal, incident) >= 0.0:
        facing_normal = -normal
        eta_i = refractive_index
        eta_t = 1.0
        entering = 0

    return facing_normal, eta_i, eta_t, entering


@ti.func
def refraction_discriminant(eta: ti.f32, cos_i: ti.f32) -> ti.f32:
    """Compute ``k = 1 - eta^2 (1 - cos_i^2)``.

    A negative value means total internal reflection: no transmitted ray
    exists.
    """
    return 1.0 - eta * eta * (1.0 - cos_i * cos_i)


@ti.func
def refract_direction(incident: vec3, facing_normal: vec3, eta: ti.f32, cos_i: ti.f32, k: ti.f32) -> vec3:
    """Compute the transmitted direction for a non-negative discriminant.

    Args:
        incident: The incoming ray direction (unit length).
        facing_normal: Normal on the incident side of the interface.
        eta: Ratio eta_i / eta_t.
        cos_i: ``facing_normal . -incident``.
        k: The refraction discriminant (must be >= 0).

    Returns:
        The normalized transmitted direction
        ``eta * incident + (eta * cos_i - sqrt(k)) * facing_normal``.
    """
    return normalize(eta * incident + (eta * cos_i - ti.sqrt(k)) * facing_normal)
