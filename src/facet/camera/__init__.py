"""Camera module for view and primary ray generation.

Components:
    pinhole: Pinhole camera oriented by an axis/angle rotation

Camera responsibilities:
    - Map normalized (x, y) image coordinates to world-space rays
    - Apply field of view and aspect ratio to the image plane
    - Rotate the local camera frame with Rodrigues' formula

Ray generation uses normalized image coordinates:
    x in [0, 1]: left to right across the image
    y in [0, 1]: top to bottom across the image
"""

from .pinhole import (
    compute_ray_direction,
    get_camera_info,
    get_camera_position,
    get_image_plane_point,
    get_ray,
    get_ray_direction,
    normalize_angle,
    rotate_basis,
    setup_camera,
)

__all__ = [
    "setup_camera",
    "rotate_basis",
    "normalize_angle",
    "get_image_plane_point",
    "get_ray_direction",
    "get_ray",
    "get_camera_position",
    "compute_ray_direction",
    "get_camera_info",
]
