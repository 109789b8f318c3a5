"""Image export utilities for rendered images.

This module converts linear averaged pixel colors to 8-bit output and writes
image files.

The 8-bit mapping applies gamma 2 (square root), clamps to [0, 0.999] and
truncates x * 256, so every channel lands in [0, 255].

Supported formats:
    - PPM (plain-text P3)
    - PNG (8-bit via Pillow)

Example:
    >>> from prismtrace.preview.export import image_to_uint8, save_ppm
    >>> from prismtrace.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer()
    >>> renderer.render(100)
    >>> save_ppm(image_to_uint8(renderer.get_image_numpy()), "output.ppm")
"""

from __future__ import annotations

from pathlib import Path
from typing import TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

# Upper clamp before scaling by 256; keeps 1.0 from mapping to 256
MAX_CHANNEL_VALUE = 0.999


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to gamma-corrected uint8.

    Args:
        image: Linear image array of shape (H, W, 3), averaged per pixel.

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.
    """
    image = np.asarray(image, dtype=np.float64)
    # Negative or NaN channels would otherwise poison the square root
    image = np.nan_to_num(np.maximum(image, 0.0), nan=0.0)
    gamma_corrected = np.sqrt(image)
    clamped = np.clip(gamma_corrected, 0.0, MAX_CHANNEL_VALUE)
    return np.floor(256.0 * clamped).astype(np.uint8)


def write_ppm(image_uint8: npt.NDArray[np.uint8], stream: TextIO) -> None:
    """Write an 8-bit image as plain-text PPM (P3).

    The header is ``P3``, the width and height, and the maximum value 255,
    each on its own line. One ``R G B`` line follows per pixel, top row
    first and left to right within a row.

    Args:
        image_uint8: Image array of shape (H, W, 3).
        stream: Text stream to write to.

    Raises:
        ValueError: If the array is not of shape (H, W, 3).
    """
    image_uint8 = np.asarray(image_uint8)
    if image_uint8.ndim != 3 or image_uint8.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image_uint8.shape}")

    height, width = image_uint8.shape[:2]
    stream.write(f"P3\n{width} {height}\n255\n")
    for row in image_uint8:
        stream.write("".join(f"{r} {g} {b}\n" for r, g, b in row.tolist()))


def save_ppm(image_uint8: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Save an 8-bit image as a plain-text PPM file."""
    with open(filepath, "w", encoding="ascii", newline="\n") as f:
        write_ppm(image_uint8, f)


def save_png_from_array(image_uint8: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Save an 8-bit image array with Pillow (format inferred from the extension)."""
    pil_image = PILImage.fromarray(np.ascontiguousarray(image_uint8, dtype=np.uint8), mode="RGB")
    pil_image.save(filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
