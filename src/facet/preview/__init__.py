"""Preview module for output and visualization.

Components:
    display: Tone mapping, gamma correction and Matplotlib preview
    export: ImageBuffer sink and PNG export via Pillow

Example:
    >>> from src.facet.preview import ImageBuffer, save_png, show_preview
    >>> sink = ImageBuffer(320, 240)
    >>> scene.render(sink)
    >>> show_preview(sink, tone_map="reinhard")
    >>> save_png(sink, "output.png", gamma=2.2)
"""

from src.facet.preview.display import (
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    show_preview,
    tone_map_exposure,
    tone_map_reinhard,
)
from src.facet.preview.export import (
    ImageBuffer,
    compute_rmse,
    image_to_uint8,
    save_png,
    save_png_from_array,
)

__all__ = [
    # Image sink
    "ImageBuffer",
    # Display functions
    "show_preview",
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    # Export functions
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "compute_rmse",
]
