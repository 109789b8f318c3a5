"""Dielectric (glass/water) material implementation.

This module implements clear dielectrics that both reflect and refract.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when the refraction ratio times sin(theta)
      exceeds 1

The material randomly chooses between reflection and refraction based on
the Fresnel reflectance probability, which increases at grazing angles.
No light is absorbed, so the attenuation is always white.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from prismtrace.materials.dielectric import Dielectric, scatter_dielectric
    >>> glass = Dielectric(refractive_index=1.5)
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, state = scatter_dielectric(
    >>> #     ior, incident_dir, normal, front_face, state
    >>> # )
"""

import math
from dataclasses import dataclass

import taichi as ti

from prismtrace.core.ray import (
    dot,
    real,
    reflect,
    refract,
    schlick_reflectance,
    unit_vector,
    vec3,
)
from prismtrace.core.sampler import random_real


def validate_refractive_index(ior: float) -> float:
    """Check a refractive index and return it as a float.

    Raises:
        ValueError: If the index is not a finite positive number.
    """
    ior = float(ior)
    if not math.isfinite(ior) or ior <= 0.0:
        raise ValueError(f"Index of refraction must be a finite positive number, got {ior}")
    return ior


@dataclass(frozen=True)
class Dielectric:
    """Refractive material value.

    Attributes:
        refractive_index: Index of refraction. Common values:
            - Air: 1.0
            - Water: 1.33
            - Glass: 1.5
            - Diamond: 2.4
    """

    refractive_index: float = 1.5

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "refractive_index", validate_refractive_index(self.refractive_index)
        )


@ti.func
def _refraction_ratio(ior: real, front_face: ti.i32) -> real:
    # Entering the medium goes from air (1.0) to ior, leaving goes back
    ratio = 1.0 / ior
    if front_face == 0:
        ratio = ior
    return ratio


@ti.func
def scatter_dielectric(
    ior: real,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    state: ti.u32,
):
    """Compute the scattered ray direction for a dielectric surface.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal, facing the incident ray.
        front_face: 1 if ray is hitting the outside of the surface,
            0 if ray is inside the material hitting from within.
        state: Random generator state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
        did_scatter is always 1 and the attenuation is white.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    refraction_ratio = _refraction_ratio(ior, front_face)

    unit_direction = unit_vector(incident_direction)
    cos_theta = ti.min(dot(-unit_direction, normal), 1.0)
    sin_theta = ti.sqrt(ti.max(1.0 - cos_theta * cos_theta, 0.0))

    cannot_refract = refraction_ratio * sin_theta > 1.0

    # The draw is always consumed so the stream does not depend on the branch
    u, state = random_real(state)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if cannot_refract or u < schlick_reflectance(cos_theta, refraction_ratio):
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, refraction_ratio)

    return scattered_direction, attenuation, 1, state


@ti.func
def will_reflect(
    ior: real,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.i32:
    """Determine if total internal reflection will occur.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction.
        normal: The unit surface normal.
        front_face: 1 if ray is hitting the outside of the surface,
            0 if ray is inside the material hitting from within.

    Returns:
        1 if total internal reflection will occur, 0 otherwise.
    """
    refraction_ratio = _refraction_ratio(ior, front_face)

    cos_theta = ti.min(dot(-unit_vector(incident_direction), normal), 1.0)
    sin_theta = ti.sqrt(ti.max(1.0 - cos_theta * cos_theta, 0.0))

    return 1 if refraction_ratio * sin_theta > 1.0 else 0


@ti.func
def fresnel_reflectance(
    ior: real,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> real:
    """Compute Fresnel reflectance using Schlick's approximation.

    Returns:
        The reflectance coefficient in [0, 1].
    """
    refraction_ratio = _refraction_ratio(ior, front_face)
    cos_theta = ti.min(dot(-unit_vector(incident_direction), normal), 1.0)
    return schlick_reflectance(cos_theta, refraction_ratio)


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 1024

# Storage for dielectric material properties
dielectric_iors = ti.field(dtype=ti.f64, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass).

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If the index is not a finite positive number.
    """
    ior = validate_refractive_index(ior)

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> real:
    """Get the index of refraction for a dielectric material by index."""
    return dielectric_iors[material_idx]


@ti.func
def scatter_dielectric_by_id(
    material_idx: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    state: ti.u32,
):
    """Scatter off a registered dielectric material.

    Looks up the index of refraction from the material registry and calls
    scatter_dielectric.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
    """
    ior = get_dielectric_ior(material_idx)
    return scatter_dielectric(ior, incident_direction, normal, front_face, state)
