"""Materials module for the Whitted shading model.

This module implements the material kinds a surface can carry:

Components:
    material: Material kinds (diffuse, reflective, refractive) and the
        Taichi-side material registry
    dielectric: Refraction and Fresnel reflectance for refractive materials

Each material provides:
    - an albedo color (used by diffuse shading)
    - a refractive index (used by refractive shading)

All lookups and optics are implemented as Taichi functions for use in the
render kernels.
"""

from .dielectric import (
    fresnel,
    orient_interface,
    refract_direction,
    refraction_discriminant,
)
from .material import (
    MAX_MATERIALS,
    MaterialType,
    add_material,
    clear_materials,
    get_material_color,
    get_material_count,
    get_material_type,
    get_refractive_index,
    is_refractive,
)

__all__ = [
    # Registry
    "MaterialType",
    "MAX_MATERIALS",
    "add_material",
    "clear_materials",
    "get_material_count",
    "get_material_type",
    "get_material_color",
    "get_refractive_index",
    "is_refractive",
    # Dielectric optics
    "fresnel",
    "orient_interface",
    "refraction_discriminant",
    "refract_direction",
]
