"""Point light storage.

A point light has a position and an RGB color (intensity per channel).
Lights only contribute to diffuse surfaces, and only when the light is in
line of sight of the shaded point.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Maximum number of point lights in a scene
MAX_LIGHTS = 256

light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Remove all lights."""
    num_lights[None] = 0


def add_point_light(position: tuple[float, float, float], color: tuple[float, float, float]) -> int:
    """Add a point light.

    Args:
        position: The light position in world space.
        color: The light color as (R, G, B). Components must be non-negative.

    Returns:
        The index of the added light.

    Raises:
        ValueError: If any color component is negative.
        RuntimeError: If the maximum number of lights is exceeded.
    """
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"Light color component {i} = {component} is negative")

    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")

    light_positions[idx] = vec3(position[0], position[1], position[2])
    light_colors[idx] = vec3(color[0], color[1], color[2])
    num_lights[None] = idx + 1
    return idx


def get_light_count() -> int:
    """Get the number of lights in the scene."""
    return int(num_lights[None])
