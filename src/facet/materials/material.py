"""Material registry shared by every surface in the scene.

Materials are a closed set of kinds:

- DIFFUSE: lit directly by the point lights (Lambert cosine term, shadows)
- REFLECTIVE: a perfect mirror; the reflected color is not tinted
- REFRACTIVE: a dielectric that blends refraction and reflection by the
  Fresnel reflectance

Every material carries an albedo color; refractive materials also carry a
refractive index. Materials are stored in Taichi fields (one entry per
material id) so the shading kernels can dispatch on them.
"""

from enum import IntEnum

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3


class MaterialType(IntEnum):
    """Enumeration of supported material kinds.

    Used by the shading code to decide how the color at a hit is resolved.
    """

    DIFFUSE = 0
    REFLECTIVE = 1
    REFRACTIVE = 2


# Maximum number of materials in a scene
MAX_MATERIALS = 1024

# material_types[i] stores the MaterialType for material id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
material_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_refractive_indices = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Clear all materials.

    Resets the material count to zero. Existing data in the fields will be
    overwritten when new materials are added.
    """
    num_materials[None] = 0


def add_material(
    material_type: MaterialType,
    color: tuple[float, float, float],
    refractive_index: float = 1.0,
) -> int:
    """Add a material to the registry.

    Args:
        material_type: The kind of material.
        color: The albedo color as (R, G, B). Components must be
            non-negative.
        refractive_index: Index of refraction, only meaningful for
            refractive materials. Must be >= 1.0.

    Returns:
        The id of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any color component is negative or the refractive
            index is below 1.0.
    """
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"Color component {i} = {component} is negative")

    if refractive_index < 1.0:
        raise ValueError(
            f"Index of refraction = {refractive_index} is less than 1.0. "
            "IOR must be >= 1.0 for physically meaningful materials."
        )

    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_types[idx] = int(material_type)
    material_colors[idx] = vec3(color[0], color[1], color[2])
    material_refractive_indices[idx] = refractive_index
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of materials in the registry."""
    return int(num_materials[None])


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material id.

    Returns:
        The material type as an integer (see MaterialType), or -1 for an
        invalid material id.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_color(material_id: ti.i32) -> vec3:
    """Get the albedo color of a material."""
    return material_colors[material_id]


@ti.func
def get_refractive_index(material_id: ti.i32) -> ti.f32:
    """Get the index of refraction of a material."""
    return material_refractive_indices[material_id]


@ti.func
def is_refractive(material_id: ti.i32) -> ti.i32:
    """Return 1 if the material is refractive, 0 otherwise."""
    result = 0
    if get_material_type(material_id) == int(MaterialType.REFRACTIVE):
        result = 1
    return result
