"""Whitted-style shading and the render kernels.

This module resolves the color seen along a ray. Every ray is resolved by
dispatching on the material of the surface it hits first:

- Diffuse: sum over point lights of ``albedo * light_color * (N . L)`` for
  lights on the normal's side that are in line of sight
- Reflective: follow the mirror-reflected ray
- Refractive: follow the transmitted ray and the reflected ray, blended by
  the Fresnel reflectance (or only the reflected ray on total internal
  reflection)

A miss contributes black. The shading recursion is evaluated with an
explicit stack of pending rays, each carrying the weight its color
contributes to the pixel and its recursion depth. Only diffuse hits add
light, so a path that exhausts the depth limit without reaching a diffuse
surface contributes black.

Depth follows the recursive formulation: a camera ray's hit is resolved at
depth 0. A reflective or refractive hit at depth ``d`` is only followed when
``d <= max_depth``; the rays it spawns are resolved at ``d + 1``, except the
reflected ray of a refractive hit which goes through the reflective path and
is resolved at ``d + 2``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.facet.core.integrator import setup_render_target, render_rows
    >>> setup_render_target(64, 48)
    >>> render_rows(0, 48, aa_multiplier=2)
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.facet.camera.pinhole import get_camera_position, get_ray_direction
from src.facet.core.ray import normalize, offset_point, reflect
from src.facet.materials.dielectric import (
    fresnel,
    orient_interface,
    refract_direction,
    refraction_discriminant,
)
from src.facet.materials.material import (
    MaterialType,
    get_material_color,
    get_material_type,
    get_refractive_index,
)
from src.facet.scene.intersection import closest_hit, line_of_sight
from src.facet.scene.lights import light_colors, light_positions, num_lights

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Default and maximum recursion depth
DEFAULT_MAX_DEPTH = 10
MAX_DEPTH_LIMIT = 100

# Pending-ray stack capacity; occupancy never exceeds max_depth + 2
STACK_SIZE = MAX_DEPTH_LIMIT + 4


def check_max_depth(max_depth: int) -> None:
    """Validate a maximum recursion depth.

    Work grows exponentially with depth in scenes with several refractive
    surfaces along a ray, since each refractive hit spawns a transmitted
    and a reflected ray. A row of glass spheres traces in milliseconds at
    depth 24 but may not finish in practice at MAX_DEPTH_LIMIT; mirror-only
    paths stay linear.

    Raises:
        ValueError: If max_depth is outside [0, MAX_DEPTH_LIMIT].
    """
    if not 0 <= max_depth <= MAX_DEPTH_LIMIT:
        raise ValueError(f"max_depth must be in [0, {MAX_DEPTH_LIMIT}], got {max_depth}")


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Color buffer indexed [x, y] with y growing downward
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffer.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum
            supported size.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffer to zero."""
    _color_buffer.fill(0.0)


def reset_render_target() -> None:
    """Forget the render target so a new one must be set up."""
    _render_target_initialized[None] = 0
    _image_width[None] = 0
    _image_height[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions.

    Returns:
        Tuple of (width, height).
    """
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Shading
# =============================================================================


@ti.func
def shade_diffuse(position: vec3, normal: vec3, material_id: ti.i32) -> vec3:
    """Direct lighting of a diffuse hit by the point lights.

    The hit is lifted off the surface by BIAS along the normal before the
    visibility test so the surface does not shadow itself.

    Args:
        position: The hit position.
        normal: The unit surface normal at the hit.
        material_id: The diffuse material of the hit surface.

    Returns:
        The summed light contribution (not clamped).
    """
    point = offset_point(position, normal)
    albedo = get_material_color(material_id)
    color = vec3(0.0, 0.0, 0.0)

    for l in range(num_lights[None]):
        light_position = light_positions[l]
        cos_theta = tm.dot(normal, normalize(light_position - point))
        if cos_theta > 0.0:
            if line_of_sight(point, light_position) == 1:
                color += albedo * light_colors[l] * cos_theta

    return color


@ti.func
def trace_ray(ray_origin: vec3, ray_direction: vec3, max_depth: ti.i32) -> vec3:
    """Resolve the color seen along a ray.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.
        max_depth: Maximum recursion depth for reflective and refractive hits.

    Returns:
        The resolved RGB color; black if the ray hits nothing.
    """
    stack_origin = ti.Matrix.zero(ti.f32, STACK_SIZE, 3)
    stack_direction = ti.Matrix.zero(ti.f32, STACK_SIZE, 3)
    stack_weight = ti.Matrix.zero(ti.f32, STACK_SIZE, 3)
    stack_depth = ti.Vector.zero(ti.i32, STACK_SIZE)

    for c in ti.static(range(3)):
        stack_origin[0, c] = ray_origin[c]
        stack_direction[0, c] = ray_direction[c]
        stack_weight[0, c] = 1.0
    top = 1

    color = vec3(0.0, 0.0, 0.0)

    while top > 0:
        top -= 1
        origin = vec3(stack_origin[top, 0], stack_origin[top, 1], stack_origin[top, 2])
        direction = vec3(
            stack_direction[top, 0], stack_direction[top, 1], stack_direction[top, 2]
        )
        weight = vec3(stack_weight[top, 0], stack_weight[top, 1], stack_weight[top, 2])
        depth = stack_depth[top]

        rec = closest_hit(origin, direction)

        # Rays to push: up to two per hit
        push_count = 0
        origin_a = vec3(0.0, 0.0, 0.0)
        direction_a = vec3(0.0, 0.0, 0.0)
        weight_a = vec3(0.0, 0.0, 0.0)
        depth_a = 0
        origin_b = vec3(0.0, 0.0, 0.0)
        direction_b = vec3(0.0, 0.0, 0.0)
        weight_b = vec3(0.0, 0.0, 0.0)
        depth_b = 0

        if rec.hit == 1:
            mat_type = get_material_type(rec.material_id)

            if mat_type == int(MaterialType.DIFFUSE):
                color += weight * shade_diffuse(rec.position, rec.normal, rec.material_id)

            elif mat_type == int(MaterialType.REFLECTIVE):
                if depth <= max_depth:
                    origin_a = offset_point(rec.position, rec.normal)
                    direction_a = normalize(reflect(rec.incident, rec.normal))
                    weight_a = weight
                    depth_a = depth + 1
                    push_count = 1

            elif mat_type == int(MaterialType.REFRACTIVE):
                if depth <= max_depth:
                    facing_normal, eta_i, eta_t, _ = orient_interface(
                        rec.incident, rec.normal, get_refractive_index(rec.material_id)
                    )
                    eta = eta_i / eta_t
                    cos_i = tm.dot(facing_normal, -rec.incident)
                    k = refraction_discriminant(eta, cos_i)

                    # Mirror ray off the incident side, resolved two levels down
                    mirror_origin = offset_point(rec.position, facing_normal)
                    mirror_direction = normalize(reflect(rec.incident, facing_normal))

                    if k < 0.0:
                        # Total internal reflection
                        if depth + 1 <= max_depth:
                            origin_a = mirror_origin
                            direction_a = mirror_direction
                            weight_a = weight
                            depth_a = depth + 2
                            push_count = 1
                    else:
                        reflectance = fresnel(eta_i, eta_t, cos_i)
                        origin_a = offset_point(rec.position, -facing_normal)
                        direction_a = refract_direction(
                            rec.incident, facing_normal, eta, cos_i, k
                        )
                        weight_a = weight * (1.0 - reflectance)
                        depth_a = depth + 1
                        push_count = 1
                        if depth + 1 <= max_depth:
                            origin_b = mirror_origin
                            direction_b = mirror_direction
                            weight_b = weight * reflectance
                            depth_b = depth + 2
                            push_count = 2

        if push_count >= 1 and top < STACK_SIZE:
            for c in ti.static(range(3)):
                stack_origin[top, c] = origin_a[c]
                stack_direction[top, c] = direction_a[c]
                stack_weight[top, c] = weight_a[c]
            stack_depth[top] = depth_a
            top += 1
        if push_count >= 2 and top < STACK_SIZE:
            for c in ti.static(range(3)):
                stack_origin[top, c] = origin_b[c]
                stack_direction[top, c] = direction_b[c]
                stack_weight[top, c] = weight_b[c]
            stack_depth[top] = depth_b
            top += 1

    return color


@ti.func
def render_pixel_impl(
    pixel_x: ti.i32,
    pixel_y: ti.i32,
    width: ti.i32,
    height: ti.i32,
    aa_multiplier: ti.i32,
    max_depth: ti.i32,
) -> vec3:
    """Average the colors of an ``N x N`` grid of sub-samples in a pixel.

    Sub-sample ``(sx, sy)`` sits at offset ``((sx + 0.5) / N, (sy + 0.5) / N)``
    inside the pixel, so ``N = 1`` samples the pixel center.

    Args:
        pixel_x: Pixel column (0 = left).
        pixel_y: Pixel row (0 = top).
        width: Image width in pixels.
        height: Image height in pixels.
        aa_multiplier: Sub-samples per pixel side.
        max_depth: Maximum recursion depth.

    Returns:
        The averaged pixel color.
    """
    origin = get_camera_position()
    step = 1.0 / ti.cast(aa_multiplier, ti.f32)
    color = vec3(0.0, 0.0, 0.0)

    for sy in range(aa_multiplier):
        for sx in range(aa_multiplier):
            x = (ti.cast(pixel_x, ti.f32) + (ti.cast(sx, ti.f32) + 0.5) * step) / ti.cast(
                width, ti.f32
            )
            y = (ti.cast(pixel_y, ti.f32) + (ti.cast(sy, ti.f32) + 0.5) * step) / ti.cast(
                height, ti.f32
            )
            color += trace_ray(origin, get_ray_direction(x, y), max_depth)

    return color / ti.cast(aa_multiplier * aa_multiplier, ti.f32)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_rows(
    row_start: ti.i32,
    row_end: ti.i32,
    width: ti.i32,
    height: ti.i32,
    aa_multiplier: ti.i32,
    max_depth: ti.i32,
):
    for i, j in ti.ndrange(width, (row_start, row_end)):
        color = render_pixel_impl(i, j, width, height, aa_multiplier, max_depth)

        # Replace NaN/Inf from degenerate geometry with black
        for c in ti.static(range(3)):
            if tm.isnan(color[c]) or tm.isinf(color[c]):
                color[c] = 0.0

        _color_buffer[i, j] = color


@ti.kernel
def _render_single_pixel(
    pixel_x: ti.i32,
    pixel_y: ti.i32,
    width: ti.i32,
    height: ti.i32,
    aa_multiplier: ti.i32,
    max_depth: ti.i32,
) -> vec3:
    color = vec3(0.0, 0.0, 0.0)
    # Single-iteration outer loop keeps the inner scans serial
    for _ in range(1):
        color = render_pixel_impl(pixel_x, pixel_y, width, height, aa_multiplier, max_depth)
    return color


@ti.kernel
def _trace_single(ray_origin: vec3, ray_direction: vec3, max_depth: ti.i32) -> vec3:
    color = vec3(0.0, 0.0, 0.0)
    for _ in range(1):
        color = trace_ray(ray_origin, normalize(ray_direction), max_depth)
    return color


# =============================================================================
# Public Rendering API
# =============================================================================


def trace(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> tuple[float, float, float]:
    """Resolve the color seen along a single ray (Python-callable).

    The direction is normalized before tracing.

    Returns:
        Tuple of (R, G, B) color values.

    Raises:
        ValueError: If max_depth is out of range.
    """
    check_max_depth(max_depth)
    color = _trace_single(
        vec3(float(origin[0]), float(origin[1]), float(origin[2])),
        vec3(float(direction[0]), float(direction[1]), float(direction[2])),
        max_depth,
    )
    return (float(color[0]), float(color[1]), float(color[2]))


def render_rows(
    row_start: int,
    row_end: int,
    aa_multiplier: int = 1,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> None:
    """Render the rows ``[row_start, row_end)`` into the color buffer.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If the row range, anti-aliasing factor or depth is invalid.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()

    if aa_multiplier < 1:
        raise ValueError(f"aa_multiplier must be >= 1, got {aa_multiplier}")
    if not 0 <= row_start <= row_end <= height:
        raise ValueError(f"Invalid row range [{row_start}, {row_end}) for height {height}")
    check_max_depth(max_depth)

    if row_end > row_start:
        _render_rows(row_start, row_end, width, height, aa_multiplier, max_depth)


def render_pixel(
    pixel_x: int,
    pixel_y: int,
    aa_multiplier: int = 1,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> tuple[float, float, float]:
    """Render one pixel of the current render target (Python-callable).

    Useful for testing individual pixels; the color buffer is not written.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    check_max_depth(max_depth)
    width, height = get_image_dimensions()
    color = _render_single_pixel(pixel_x, pixel_y, width, height, aa_multiplier, max_depth)
    return (float(color[0]), float(color[1]), float(color[2]))


def get_image_numpy() -> npt.NDArray[np.float32]:
    """Get the rendered image as a NumPy array of shape (height, width, 3).

    Values are linear and unclamped; row 0 is the top of the image.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    width, height = get_image_dimensions()

    full_image = _color_buffer.to_numpy()
    image = full_image[:width, :height, :]

    # (width, height, 3) -> (height, width, 3)
    return np.ascontiguousarray(np.transpose(image, (1, 0, 2))).astype(np.float32)


@ti.kernel
def _copy_rows(out: ti.types.ndarray(dtype=vec3, ndim=2), row_start: ti.i32):
    for y, x in ti.ndrange(out.shape[0], out.shape[1]):
        out[y, x] = _color_buffer[x, row_start + y]


def get_rows_numpy(row_start: int, row_end: int) -> npt.NDArray[np.float32]:
    """Get rows ``[row_start, row_end)`` as an array of shape (rows, width, 3).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    width, _ = get_image_dimensions()

    rows = np.zeros((row_end - row_start, width, 3), dtype=np.float32)
    if row_end > row_start:
        _copy_rows(rows, row_start)
    return rows
