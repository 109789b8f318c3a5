"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Ray data structure and vector utilities
    sampler: Counter-based random number generation and sampling
    config: Render settings and shading modes
    integrator: Path tracing kernels and the render target
    progressive: Progressive accumulation wrapper

All compute-intensive operations use Taichi kernels.
"""

from .config import RenderSettings, ShadingMode
from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    ray_at,
    real,
    reflect,
    refract,
    schlick_reflectance,
    unit_vector,
    vec3,
)
from .sampler import (
    random_in_hemisphere,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_range,
    random_real,
    random_unit_vector,
    random_vec3,
    rng_init,
)

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from prismtrace.core.integrator or prismtrace.core.progressive.

__all__ = [
    "RenderSettings",
    "ShadingMode",
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "real",
    "length",
    "length_squared",
    "unit_vector",
    "dot",
    "cross",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "rng_init",
    "random_real",
    "random_range",
    "random_vec3",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_hemisphere",
    "random_in_unit_disk",
]
