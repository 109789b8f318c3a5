"""Thin-lens camera with depth of field.

A thin-lens camera samples ray origins across a disk of radius aperture/2
centered on lookfrom, while every ray for a given viewport coordinate still
passes through the same point on the focus plane. Objects on that plane stay
sharp; everything nearer or farther is blurred by the circle of confusion.

Ray generation is shared with the pinhole camera: setup_camera() reads the
lens_radius and focus_distance properties, and get_ray() applies the lens
offset.

Example:
    >>> from prismtrace.camera import ThinLensCamera, setup_camera
    >>> camera = ThinLensCamera(
    ...     lookfrom=(3.0, 3.0, 2.0),
    ...     lookat=(0.0, 0.0, -1.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=20.0,
    ...     aspect_ratio=16.0 / 9.0,
    ...     aperture=2.0,
    ... )
    >>> camera.focus_distance  # defaults to |lookfrom - lookat|
    5.196152422706632
    >>> setup_camera(camera)
"""

import math
from dataclasses import dataclass

import numpy as np

from prismtrace.camera.pinhole import PinholeCamera


@dataclass
class ThinLensCamera(PinholeCamera):
    """Configuration for a camera with a finite aperture.

    Attributes:
        aperture: Lens diameter. 0 gives a pinhole image.
        focus_dist: Distance to the plane of perfect focus. Defaults to the
            distance between lookfrom and lookat.
    """

    aperture: float = 0.0
    focus_dist: float | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        self.aperture = float(self.aperture)
        if not math.isfinite(self.aperture) or self.aperture < 0.0:
            raise ValueError(f"aperture must be >= 0, got {self.aperture}")

        if self.focus_dist is None:
            self.focus_dist = float(np.linalg.norm(np.subtract(self.lookfrom, self.lookat)))
        self.focus_dist = float(self.focus_dist)
        if not math.isfinite(self.focus_dist) or self.focus_dist <= 0.0:
            raise ValueError(f"focus_dist must be positive, got {self.focus_dist}")

    @property
    def lens_radius(self) -> float:
        return self.aperture / 2.0

    @property
    def focus_distance(self) -> float:
        return self.focus_dist
