"""Progressive renderer for iterative sample accumulation.

This module provides a convenient wrapper around the core integrator that supports:
- Progressive rendering that refines over time
- Batch rendering (multiple SPP in one call)
- Progress callbacks for UI updates
- Scanline progress for a single full-quality frame
- Easy reset and re-render functionality

Sample numbering continues across calls, so an image rendered as several
batches is identical to one rendered in a single call with the same seed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from prismtrace.core.config import RenderSettings
    >>> from prismtrace.core.progressive import ProgressiveRenderer
    >>> from prismtrace.scene.presets import create_material_showcase_scene
    >>> from prismtrace.camera import setup_camera
    >>>
    >>> scene, camera = create_material_showcase_scene()
    >>> setup_camera(camera)
    >>>
    >>> renderer = ProgressiveRenderer(RenderSettings(image_width=400, seed=7))
    >>> renderer.render(100)  # Render 100 SPP
    >>> image = renderer.get_image_numpy()
"""

import logging
from collections.abc import Callable, Generator
from dataclasses import replace
from pathlib import Path
from typing import Any

import numpy as np
import numpy.typing as npt

from prismtrace.core.config import RenderSettings
from prismtrace.core.integrator import (
    clear_render_target,
    get_image,
    get_normalized_image_numpy,
    get_total_samples,
    render_image,
    setup_render_target,
)
from prismtrace.preview.export import image_to_uint8, save_png_from_array, save_ppm

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    This class wraps the core integrator functions to provide a convenient
    interface for progressive rendering with support for:
    - Incremental sample accumulation
    - Batch rendering (multiple SPP per call)
    - Progress callbacks
    - Reset functionality

    The renderer keeps the render settings and delegates to the global
    integrator buffers (which are Taichi fields).

    Attributes:
        settings: The active render settings.
    """

    def __init__(self, settings: RenderSettings | None = None) -> None:
        """Initialize the progressive renderer.

        Args:
            settings: Render settings. Defaults to RenderSettings().

        Raises:
            ValueError: If dimensions exceed maximum supported size.
        """
        self.settings = settings if settings is not None else RenderSettings()
        setup_render_target(self.width, self.height)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.settings.image_width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.settings.image_height

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Reset the accumulator for a new render.

        Clears the color buffer and sample count, allowing a fresh render
        without changing the image dimensions.
        """
        clear_render_target()

    def resize(self, width: int, aspect_ratio: float | None = None) -> None:
        """Resize the render target and reset accumulator.

        Args:
            width: New image width in pixels.
            aspect_ratio: New aspect ratio. Keeps the current one if omitted.

        Raises:
            ValueError: If the size is invalid or exceeds the maximum
                supported size.
        """
        changes: dict[str, Any] = {"image_width": width}
        if aspect_ratio is not None:
            changes["aspect_ratio"] = aspect_ratio
        settings = replace(self.settings, **changes)
        setup_render_target(settings.image_width, settings.image_height)
        self.settings = settings

    def _render_batch(self, num_samples: int, progress: Callable[[int], None] | None = None) -> None:
        render_image(
            num_samples,
            max_depth=self.settings.max_depth,
            seed=self.settings.seed,
            shading=self.settings.shading,
            antialias=self.settings.antialias,
            progress=progress,
        )

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples progressively with optional progress callback.

        Accumulates the specified number of samples into the existing buffer.
        Can be called multiple times to continue refining the image.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each callback.
            callback: Optional callback function called after each batch.
                Receives (current_total_samples, target_total_samples).

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} samples")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each batch.

        This is a generator-based alternative to render() with callbacks.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each yield.

        Yields:
            Tuple of (current_total_samples, target_total_samples).

        Example:
            >>> for current, target in renderer.render_progressive(100, batch_size=10):
            ...     print(f"Progress: {current}/{target} samples")
        """
        if num_samples <= 0:
            return
        batch_size = max(batch_size, 1)

        target_samples = self.sample_count + num_samples

        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            self._render_batch(batch)
            remaining -= batch
            yield (self.sample_count, target_samples)

    def render_frame(self, progress: Callable[[int], None] | None = None) -> None:
        """Render settings.samples_per_pixel samples in one top-to-bottom pass.

        Args:
            progress: Optional callback receiving the number of scanlines
                still to render.
        """
        logger.info(
            "Rendering %dx%d, %d samples per pixel, max depth %d",
            self.width,
            self.height,
            self.settings.samples_per_pixel,
            self.settings.max_depth,
        )
        self._render_batch(self.settings.samples_per_pixel, progress=progress)

    def get_image(self) -> Any:
        """Get the raw Taichi color sum buffer.

        Note: This returns the full preallocated buffer. Use width/height
        properties to determine the active region.
        """
        return get_image()

    def get_image_numpy(self) -> npt.NDArray[np.float64]:
        """Get the linear averaged image, shape (height, width, 3), top row first."""
        return get_normalized_image_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the gamma-corrected 8-bit image, shape (height, width, 3)."""
        return image_to_uint8(self.get_image_numpy())

    def save_png(self, filepath: str | Path) -> None:
        """Save the rendered image as PNG (or any format Pillow infers)."""
        save_png_from_array(self.get_image_uint8(), filepath)

    def save_ppm(self, filepath: str | Path) -> None:
        """Save the rendered image as plain-text PPM."""
        save_ppm(self.get_image_uint8(), filepath)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )
