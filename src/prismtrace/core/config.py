"""Render configuration.

RenderSettings collects the numeric knobs of a render. Invalid values are
rejected when the settings are constructed, before any kernel runs.
"""

import math
from dataclasses import dataclass
from enum import IntEnum

# Seeds feed a 32-bit hash and are passed to kernels as i32
MAX_SEED = 2**31


class ShadingMode(IntEnum):
    """How the integrator colors a ray.

    PATH traces full material scattering. NORMALS colors the first hit by
    0.5 * (normal + 1) and never scatters, which gives a deterministic
    silhouette for checking geometry and framing.
    """

    PATH = 0
    NORMALS = 1


@dataclass
class RenderSettings:
    """Configuration for a render.

    Attributes:
        image_width: Output width in pixels.
        aspect_ratio: Width divided by height. The height is derived as
            int(image_width / aspect_ratio).
        samples_per_pixel: Number of camera samples averaged per pixel.
        max_depth: Maximum number of ray segments traced per sample. A
            depth of 0 renders black.
        seed: Seed for the random streams, in [0, 2^31).
        shading: Path tracing or normal shading.
        antialias: Jitter each sample within its pixel. When disabled every
            sample goes through the same point, so the pixel grid spans the
            viewport edge to edge.
    """

    image_width: int = 400
    aspect_ratio: float = 16.0 / 9.0
    samples_per_pixel: int = 100
    max_depth: int = 50
    seed: int = 0
    shading: ShadingMode = ShadingMode.PATH
    antialias: bool = True

    def __post_init__(self) -> None:
        if self.image_width <= 0:
            raise ValueError(f"image_width must be positive, got {self.image_width}")
        if not math.isfinite(self.aspect_ratio) or self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.image_height <= 0:
            raise ValueError(
                f"image_width {self.image_width} with aspect_ratio {self.aspect_ratio} "
                "gives an empty image"
            )
        if self.samples_per_pixel < 1:
            raise ValueError(f"samples_per_pixel must be >= 1, got {self.samples_per_pixel}")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if not 0 <= self.seed < MAX_SEED:
            raise ValueError(f"seed must be in [0, {MAX_SEED}), got {self.seed}")
        self.shading = ShadingMode(self.shading)

    @property
    def image_height(self) -> int:
        """Output height in pixels."""
        return int(self.image_width / self.aspect_ratio)
