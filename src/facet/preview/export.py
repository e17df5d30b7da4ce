"""Image sink and export utilities for rendered images.

``ImageBuffer`` is the in-memory image sink the renderer writes into: it
exposes ``width``, ``height`` and ``set_pixel(x, y, color)`` and keeps the
linear colors in a NumPy array. The export functions turn linear images
into 8-bit PNG files with Pillow after tone mapping and gamma correction.

Example:
    >>> from src.facet.preview.export import ImageBuffer, save_png
    >>> sink = ImageBuffer(320, 240)
    >>> scene.render(sink)
    >>> save_png(sink, "output.png", tone_map="reinhard")
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.facet.preview.display import ToneMapMethod, process_image_for_display


class ImageBuffer:
    """In-memory RGB image sink backed by a float32 array.

    Pixel (0, 0) is the top-left corner; ``y`` grows downward.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
    """

    def __init__(self, width: int, height: int) -> None:
        """Create a black image.

        Raises:
            ValueError: If either dimension is not positive.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
        self._width = width
        self._height = height
        self._pixels = np.zeros((height, width, 3), dtype=np.float32)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    def _check_bounds(self, x: int, y: int) -> None:
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self._width}x{self._height} image")

    def set_pixel(self, x: int, y: int, color: Sequence[float]) -> None:
        """Store the linear color of pixel (x, y)."""
        self._check_bounds(x, y)
        self._pixels[y, x] = color

    def get_pixel(self, x: int, y: int) -> tuple[float, float, float]:
        """Get the linear color of pixel (x, y)."""
        self._check_bounds(x, y)
        r, g, b = self._pixels[y, x]
        return (float(r), float(g), float(b))

    def to_numpy(self) -> npt.NDArray[np.float32]:
        """Get a copy of the image as an array of shape (height, width, 3)."""
        return self._pixels.copy()

    def __repr__(self) -> str:
        return f"ImageBuffer(width={self._width}, height={self._height})"


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to 8-bit after the display pipeline.

    Values are rounded to the nearest 8-bit level.

    Returns:
        Array of shape (H, W, 3) with dtype uint8.
    """
    processed = process_image_for_display(
        image, tone_map=tone_map, gamma=gamma, exposure=exposure
    )
    return np.round(processed * 255.0).astype(np.uint8)


def save_png_from_array(
    image: npt.NDArray[np.float32],
    filepath: str,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Save a linear image array of shape (H, W, 3) as an 8-bit PNG."""
    image_uint8 = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(image_uint8).save(filepath)


def save_png(
    image: ImageBuffer,
    filepath: str,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Save an ImageBuffer as an 8-bit PNG.

    Args:
        image: The rendered image sink.
        filepath: Output file path (should end in .png).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma value (default 2.2 for sRGB).
        exposure: Exposure for the "exposure" tone map.
    """
    save_png_from_array(
        image.to_numpy(), filepath, tone_map=tone_map, gamma=gamma, exposure=exposure
    )


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Root mean squared error between two images of the same shape.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
