"""Render driver writing pixels into an image sink.

The driver renders the image in horizontal bands of rows. Each band is one
parallel kernel launch over its pixels; after a band completes its colors
are copied into the sink and the progress callback is invoked. The sink is
any object exposing ``width``, ``height`` and ``set_pixel(x, y, color)``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.facet.core.renderer import Renderer
    >>> from src.facet.preview.export import ImageBuffer
    >>> sink = ImageBuffer(64, 48)
    >>> Renderer(aa_multiplier=2).render(sink)
"""

import logging
import time
from collections.abc import Callable
from typing import Protocol

import numpy as np

from src.facet.core.integrator import (
    DEFAULT_MAX_DEPTH,
    check_max_depth,
    get_image_numpy,
    get_rows_numpy,
    render_rows,
    setup_render_target,
)

_LOGGER: logging.Logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (rows_done, total_rows)
ProgressCallback = Callable[[int, int], None]


class ImageSink(Protocol):
    """Destination of rendered pixels."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def set_pixel(self, x: int, y: int, color: tuple[float, float, float]) -> None: ...


class Renderer:
    """Renders the current scene into image sinks.

    The scene, camera and lights are read from the global Taichi fields;
    the renderer only owns the sampling settings.

    Attributes:
        aa_multiplier: Sub-samples per pixel side (N for N x N sampling).
        max_depth: Maximum recursion depth for reflective and refractive hits.
        band_rows: Number of rows rendered per kernel launch.
    """

    def __init__(
        self,
        aa_multiplier: int = 1,
        max_depth: int = DEFAULT_MAX_DEPTH,
        band_rows: int = 64,
    ) -> None:
        """Initialize the renderer.

        Raises:
            ValueError: If any setting is out of range.
        """
        if aa_multiplier < 1:
            raise ValueError(f"aa_multiplier must be >= 1, got {aa_multiplier}")
        if band_rows < 1:
            raise ValueError(f"band_rows must be >= 1, got {band_rows}")
        check_max_depth(max_depth)

        self.aa_multiplier = aa_multiplier
        self.max_depth = max_depth
        self.band_rows = band_rows

    def render(self, sink: ImageSink, callback: ProgressCallback | None = None) -> None:
        """Render every pixel of the sink.

        Args:
            sink: The image sink to write to. Its size sets the image size.
            callback: Optional callback called after each band with
                (rows_done, total_rows).

        Raises:
            ValueError: If the sink size is not supported.
        """
        width, height = int(sink.width), int(sink.height)
        setup_render_target(width, height)

        _LOGGER.info(
            f"Rendering {width}x{height} with {self.aa_multiplier}x{self.aa_multiplier} "
            f"samples per pixel, max depth {self.max_depth}"
        )
        start = time.perf_counter()

        for row_start in range(0, height, self.band_rows):
            row_end = min(row_start + self.band_rows, height)
            render_rows(row_start, row_end, self.aa_multiplier, self.max_depth)
            self._write_band(sink, row_start, row_end)
            _LOGGER.debug(f"Rows {row_start}-{row_end - 1} done")

            if callback is not None:
                callback(row_end, height)

        _LOGGER.info(f"Render finished in {time.perf_counter() - start:.2f}s")

    def render_to_array(self, width: int, height: int) -> np.ndarray:
        """Render into a new float32 array of shape (height, width, 3)."""
        setup_render_target(width, height)
        render_rows(0, height, self.aa_multiplier, self.max_depth)
        return get_image_numpy()

    @staticmethod
    def _write_band(sink: ImageSink, row_start: int, row_end: int) -> None:
        rows = get_rows_numpy(row_start, row_end)
        for dy in range(rows.shape[0]):
            for x in range(rows.shape[1]):
                r, g, b = rows[dy, x]
                sink.set_pixel(x, row_start + dy, (float(r), float(g), float(b)))

    def __repr__(self) -> str:
        return (
            f"Renderer(aa_multiplier={self.aa_multiplier}, max_depth={self.max_depth}, "
            f"band_rows={self.band_rows})"
        )
