"""Camera module for view and ray generation.

This module provides camera models for generating primary rays:

Components:
    pinhole: Pinhole (perspective) camera and the shared ray generator
    thin_lens: Camera with depth of field (aperture and focus distance)

Camera responsibilities:
    - Transform (s, t) viewport coordinates to world-space rays
    - Support look-at positioning with up vector
    - Sample the lens disk for defocus blur

Ray generation uses normalized viewport coordinates:
    s in [0, 1]: left to right across image
    t in [0, 1]: bottom to top across image
"""

from .pinhole import (
    PinholeCamera,
    get_camera_info,
    get_ray,
    setup_camera,
)
from .thin_lens import ThinLensCamera

__all__ = [
    "PinholeCamera",
    "ThinLensCamera",
    "setup_camera",
    "get_ray",
    "get_camera_info",
]
