"""Display pipeline and Matplotlib preview for rendered images.

Rendered colors are linear and unbounded: a diffuse surface lit by several
lights can exceed 1.0. Before display or export they go through:

1. Tone mapping: ``none`` (clip), ``reinhard`` or ``exposure``
2. Gamma encoding (2.2 for sRGB)
3. A final clamp to [0, 1]

Example:
    >>> from src.facet.preview.display import show_preview
    >>> from src.facet.preview.export import ImageBuffer
    >>> sink = ImageBuffer(320, 240)
    >>> scene.render(sink)
    >>> show_preview(sink, tone_map="reinhard")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from src.facet.preview.export import ImageBuffer


# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]


def tone_map_reinhard(image: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Reinhard operator ``c / (1 + c)``, applied per channel.

    Maps [0, inf) onto [0, 1); negative values are treated as black.
    """
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Exposure operator ``1 - exp(-c * exposure)``, applied per channel.

    Args:
        image: Linear image array of shape (H, W, 3).
        exposure: Brightness control. Must be positive.

    Raises:
        ValueError: If exposure is not positive.
    """
    if exposure <= 0.0:
        raise ValueError(f"Exposure must be positive, got {exposure}")
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = 2.2,
) -> npt.NDArray[np.float32]:
    """Encode linear values in [0, 1] with ``out = in ** (1 / gamma)``.

    Values are clipped to [0, 1] first. ``gamma == 1.0`` returns the input
    unchanged.

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"Gamma must be positive, got {gamma}")
    if gamma == 1.0:
        return image
    return np.power(np.clip(image, 0.0, 1.0), 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Run the display pipeline on a linear image.

    Args:
        image: Linear image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma value (default 2.2 for sRGB).
        exposure: Exposure for the "exposure" tone map.

    Returns:
        Display-ready float32 image in [0, 1].

    Raises:
        ValueError: If the tone mapping method is unknown.
    """
    if tone_map == "reinhard":
        result = tone_map_reinhard(image)
    elif tone_map == "exposure":
        result = tone_map_exposure(image, exposure)
    elif tone_map == "none":
        result = np.asarray(image, dtype=np.float32).copy()
    else:
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = apply_gamma(result, gamma)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def show_preview(
    image: ImageBuffer | npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 6),
    block: bool = True,
) -> None:
    """Show a rendered image in a Matplotlib figure.

    Args:
        image: An ImageBuffer sink or a linear array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma value (default 2.2 for sRGB).
        exposure: Exposure for the "exposure" tone map.
        title: Custom title (default shows the image size).
        figsize: Figure size in inches (width, height).
        block: Whether to block until the figure is closed.
    """
    import matplotlib.pyplot as plt

    pixels = image if isinstance(image, np.ndarray) else image.to_numpy()
    display_image = process_image_for_display(
        pixels, tone_map=tone_map, gamma=gamma, exposure=exposure
    )

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")

    if title is None:
        height, width = display_image.shape[:2]
        title = f"Render Preview - {width}x{height}"
        if tone_map != "none":
            title += f" ({tone_map})"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)
