"""Preview module for output and visualization.

This module handles rendering output and preview:

Components:
    display: Matplotlib-based preview display
    export: 8-bit conversion plus PPM and PNG image export

Example:
    >>> from prismtrace.preview import show_preview
    >>> from prismtrace.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer()
    >>> renderer.render(100)
    >>> show_preview(renderer)
    >>> renderer.save_png("output.png")
"""

from prismtrace.preview.display import show_comparison, show_preview
from prismtrace.preview.export import (
    compute_rmse,
    image_to_uint8,
    save_png_from_array,
    save_ppm,
    write_ppm,
)

__all__ = [
    # Display functions
    "show_preview",
    "show_comparison",
    # Export functions
    "image_to_uint8",
    "write_ppm",
    "save_ppm",
    "save_png_from_array",
    "compute_rmse",
]
