"""Ray data structure and vector utilities for the path tracer.

This module provides the fundamental Ray dataclass and the vector algebra used
throughout the renderer. Points, directions and colors share the same ``vec3``
representation; only their semantic role differs. All math is double
precision, so Taichi must be initialised with ``default_fp=ti.f64``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> origin = vec3(0.0, 0.0, 0.0)
    >>> direction = vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> # point = ray_at(ray, 5.0) inside a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Scalar and 3D vector types used for all geometry and color math
real = ti.f64
vec3 = ti.types.vector(3, ti.f64)

# Components smaller than this are treated as zero by near_zero()
NEAR_ZERO_EPSILON = 1e-8


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). It is not required
            to be unit length; camera rays point at the viewport target.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: real) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def dot(a: vec3, b: vec3) -> real:
    """Compute the dot product of two vectors."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def length_squared(v: vec3) -> real:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def length(v: vec3) -> real:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def unit_vector(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    The caller must guarantee a nonzero vector; a zero-length input yields
    NaN components.

    Args:
        v: The input vector.

    Returns:
        v / length(v).
    """
    return tm.normalize(v)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Used to detect degenerate scatter directions.

    Args:
        v: The vector to check.

    Returns:
        1 if every component is below NEAR_ZERO_EPSILON in magnitude, 0 otherwise.
    """
    s = NEAR_ZERO_EPSILON
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Computes v - 2 * dot(v, n) * n. The normal should be unit length.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, etai_over_etat: real) -> vec3:
    """Refract a unit incident vector through a surface using Snell's law.

    The refracted ray is split into a component perpendicular to the normal,
    whose size follows from the refraction ratio, and a component parallel to
    the normal that restores unit length. Callers must rule out total internal
    reflection beforehand.

    Args:
        incident: The incoming direction (unit length).
        normal: The surface normal (unit length, facing the incident ray).
        etai_over_etat: Ratio of refractive indices (incident / transmitted).

    Returns:
        The refracted direction vector.
    """
    cos_theta = ti.min(dot(-incident, normal), 1.0)
    r_out_perp = etai_over_etat * (incident + cos_theta * normal)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - length_squared(r_out_perp))) * normal
    return r_out_perp + r_out_parallel


@ti.func
def schlick_reflectance(cosine: real, ref_idx: real) -> real:
    """Compute Fresnel reflectance using Schlick's approximation.

    r0 is the same whether ref_idx is an index or its reciprocal, so either
    the material index or the refraction ratio may be passed.

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        ref_idx: Refractive index (or ratio of indices).

    Returns:
        The approximate reflectance, r0 at normal incidence rising to 1
        at grazing angles.
    """
    r0 = (1.0 - ref_idx) / (1.0 + ref_idx)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)
