"""Pinhole camera with axis/angle orientation for primary ray generation.

The camera sits at a position and looks down its local +z axis, with +x to
the right and +y up. Its orientation in the world is given as a rotation of
that local frame around an arbitrary axis by an angle in degrees (Rodrigues'
rotation formula). With a zero angle the camera looks down world +z.

The image plane lies at unit distance in front of the camera. Its height is
``2 * tan(fov / 2)`` and its width is the height times the aspect ratio.
Normalized image coordinates map onto it as:

- x = 0: left edge, x = 1: right edge
- y = 0: top edge, y = 1: bottom edge (image rows grow downward)

The basis is computed once in Python with NumPy and stored in Taichi fields
so the render kernels can generate rays in parallel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.facet.camera.pinhole import setup_camera, get_ray
    >>> setup_camera(
    ...     position=(0.0, 0.0, 0.0),
    ...     axis=(0.0, 1.0, 0.0),
    ...     angle=0.0,
    ...     field_of_view=60.0,
    ...     aspect_ratio=1.0,
    ... )
    >>> @ti.kernel
    ... def render():
    ...     ray = get_ray(0.5, 0.5)  # Ray through image center
"""

import math
from collections.abc import Sequence

import numpy as np
import taichi as ti
import taichi.math as tm

from src.facet.core.ray import Ray, make_ray, normalize, vec3

Vec3Tuple = tuple[float, float, float]

# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

# Camera position
_camera_position = ti.Vector.field(3, dtype=ti.f32, shape=())

# Local axes rotated into world space
_axis_x = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_axis_y = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_axis_z = ti.Vector.field(3, dtype=ti.f32, shape=())  # Forward

# Image plane size at unit distance
_plane_width = ti.field(dtype=ti.f32, shape=())
_plane_height = ti.field(dtype=ti.f32, shape=())


# =============================================================================
# Camera Setup (Python-side)
# =============================================================================


def normalize_angle(angle: float) -> float:
    """Wrap an angle in degrees into [-180, 180]."""
    wrapped = math.fmod(angle, 360.0)
    if wrapped > 180.0:
        wrapped -= 360.0
    elif wrapped < -180.0:
        wrapped += 360.0
    return wrapped


def rotate_basis(axis: Sequence[float], angle: float) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Rotate the local x, y and z axes around ``axis`` by ``angle`` degrees.

    Uses Rodrigues' rotation formula
    ``v cos(a) + (k x v) sin(a) + k (k . v)(1 - cos(a))`` with ``k`` the
    normalized rotation axis.

    Args:
        axis: The rotation axis. Need not be unit length.
        angle: The rotation angle in degrees.

    Returns:
        Tuple of the rotated (x, y, z) axes as float64 arrays.

    Raises:
        ValueError: If the axis is zero while the angle is not.
    """
    theta = math.radians(normalize_angle(angle))
    identity = np.eye(3, dtype=np.float64)

    k = np.asarray(axis, dtype=np.float64)
    norm = np.linalg.norm(k)
    if norm == 0.0:
        if theta != 0.0:
            raise ValueError("Camera rotation axis must be non-zero for a non-zero angle")
        return identity[0], identity[1], identity[2]
    k = k / norm

    cos_t = math.cos(theta)
    sin_t = math.sin(theta)

    rotated = []
    for v in identity:
        rotated.append(v * cos_t + np.cross(k, v) * sin_t + k * np.dot(k, v) * (1.0 - cos_t))

    return rotated[0], rotated[1], rotated[2]


def setup_camera(
    position: Sequence[float],
    axis: Sequence[float],
    angle: float,
    field_of_view: float,
    aspect_ratio: float,
) -> None:
    """Initialize camera state.

    Must be called before rendering.

    Args:
        position: Camera position in world space.
        axis: Rotation axis of the camera orientation.
        angle: Rotation angle in degrees.
        field_of_view: Field of view in degrees, in (0, 180).
        aspect_ratio: Image width divided by image height.

    Raises:
        ValueError: If the field of view or aspect ratio is out of range, or
            the rotation axis is zero with a non-zero angle.
    """
    if not 0.0 < field_of_view < 180.0:
        raise ValueError(f"Field of view must be in (0, 180) degrees, got {field_of_view}")
    if aspect_ratio <= 0.0:
        raise ValueError(f"Aspect ratio must be positive, got {aspect_ratio}")

    axis_x, axis_y, axis_z = rotate_basis(axis, angle)

    plane_height = 2.0 * math.tan(math.radians(field_of_view) / 2.0)
    plane_width = plane_height * aspect_ratio

    _camera_position[None] = [float(position[0]), float(position[1]), float(position[2])]
    _axis_x[None] = axis_x.tolist()
    _axis_y[None] = axis_y.tolist()
    _axis_z[None] = axis_z.tolist()
    _plane_width[None] = plane_width
    _plane_height[None] = plane_height


# =============================================================================
# Ray Generation (Taichi-compatible)
# =============================================================================


@ti.func
def get_image_plane_point(x: ti.f32, y: ti.f32) -> vec3:
    """World-space point on the image plane for normalized coordinates."""
    return (
        _camera_position[None]
        + (x - 0.5) * _plane_width[None] * _axis_x[None]
        + (0.5 - y) * _plane_height[None] * _axis_y[None]
        + _axis_z[None]
    )


@ti.func
def get_ray_direction(x: ti.f32, y: ti.f32) -> vec3:
    """Unit direction of the camera ray through normalized coordinates (x, y).

    Args:
        x: Horizontal coordinate in [0, 1] (left to right).
        y: Vertical coordinate in [0, 1] (top to bottom).
    """
    return normalize(get_image_plane_point(x, y) - _camera_position[None])


@ti.func
def get_ray(x: ti.f32, y: ti.f32) -> Ray:
    """Generate the camera ray through normalized image coordinates (x, y)."""
    return make_ray(_camera_position[None], get_ray_direction(x, y))


@ti.func
def get_camera_position() -> vec3:
    """Get the camera position in world space."""
    return _camera_position[None]


# =============================================================================
# Utility Functions
# =============================================================================


@ti.kernel
def _ray_direction_kernel(x: ti.f32, y: ti.f32) -> vec3:
    return get_ray_direction(x, y)


def compute_ray_direction(x: float, y: float) -> Vec3Tuple:
    """Python-callable version of ``get_ray_direction``."""
    d = _ray_direction_kernel(x, y)
    return (float(d[0]), float(d[1]), float(d[2]))


def get_camera_info() -> dict[str, tuple[float, ...]]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with position, axis_x, axis_y, axis_z and the image plane
        size as ``plane`` (width, height).
    """

    def _tuple(field) -> Vec3Tuple:
        v = field[None]
        return (float(v[0]), float(v[1]), float(v[2]))

    return {
        "position": _tuple(_camera_position),
        "axis_x": _tuple(_axis_x),
        "axis_y": _tuple(_axis_y),
        "axis_z": _tuple(_axis_z),
        "plane": (float(_plane_width[None]), float(_plane_height[None])),
    }
