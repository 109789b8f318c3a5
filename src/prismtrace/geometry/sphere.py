"""Sphere primitive with analytic ray-sphere intersection.

The intersection substitutes the ray into the implicit sphere equation
|P - C|^2 = r^2 and solves the resulting quadratic in its half-b form:

    a = dot(direction, direction)
    half_b = dot(direction, origin - center)
    c = |origin - center|^2 - r^2
    discriminant = half_b^2 - a*c

A negative radius is allowed on purpose. The outward normal is computed as
(P - C) / r, so a negative radius flips it inward, which is how a thin glass
shell is modelled: a sphere of radius r and a second of radius -r' < r
sharing one dielectric material.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from prismtrace.geometry.sphere import Sphere, hit_sphere, vec3
    >>> sphere = Sphere(center=vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import math
from dataclasses import dataclass

import taichi as ti

from prismtrace.core.ray import dot, length_squared, real, vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius. Negative values invert the normal (hollow shell).
    """

    center: vec3
    radius: real


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: Whether the ray intersected the sphere (1 if hit, 0 if miss).
        t: The ray parameter of the intersection. Only valid if hit == 1.
        point: The intersection point. Only valid if hit == 1.
        normal: The unit surface normal, always oriented against the
            incoming ray. Only valid if hit == 1.
        front_face: 1 if the ray struck the outward-facing side, 0 if it
            struck from inside. Only valid if hit == 1.
    """

    hit: ti.i32
    t: real
    point: vec3
    normal: vec3
    front_face: ti.i32


@dataclass(frozen=True)
class SpherePrimitive:
    """Host-side description of a sphere, passed to the scene builder.

    Attributes:
        center: The center point as (x, y, z).
        radius: The radius. Must be finite and nonzero; negative radii
            produce an inward-facing shell.
    """

    center: tuple[float, float, float]
    radius: float

    def __post_init__(self) -> None:
        center = tuple(float(c) for c in self.center)
        if len(center) != 3 or not all(math.isfinite(c) for c in center):
            raise ValueError(f"Sphere center must be three finite numbers, got {self.center!r}")
        radius = float(self.radius)
        if not math.isfinite(radius) or radius == 0.0:
            raise ValueError(f"Sphere radius must be finite and nonzero, got {self.radius!r}")
        object.__setattr__(self, "center", center)
        object.__setattr__(self, "radius", radius)


@ti.func
def sphere_discriminant(ray_origin: vec3, ray_direction: vec3, sphere: Sphere) -> real:
    """Compute the half-b discriminant of the ray-sphere quadratic.

    Negative means a miss, zero a tangent ray, positive two crossings.
    """
    oc = ray_origin - sphere.center
    a = length_squared(ray_direction)
    half_b = dot(oc, ray_direction)
    c = length_squared(oc) - sphere.radius * sphere.radius
    return half_b * half_b - a * c


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: real,
    t_max: real,
) -> HitRecord:
    """Test for ray-sphere intersection within [t_min, t_max].

    The nearer root is preferred; if it lies outside the interval the farther
    root is tried. The normal is the outward normal (P - C) / radius, turned
    to face the incoming ray.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (any nonzero length).
        sphere: The sphere to test intersection against.
        t_min: Minimum accepted ray parameter.
        t_max: Maximum accepted ray parameter.

    Returns:
        A HitRecord; check the hit field to see whether an intersection
        occurred.
    """
    oc = ray_origin - sphere.center
    a = length_squared(ray_direction)
    half_b = dot(oc, ray_direction)
    c = length_squared(oc) - sphere.radius * sphere.radius
    discriminant = half_b * half_b - a * c

    # Initialize result fields (Taichi requires outer-scope declaration)
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)

        root = (-half_b - sqrt_d) / a
        valid = t_min <= root and root <= t_max
        if not valid:
            root = (-half_b + sqrt_d) / a
            valid = t_min <= root and root <= t_max

        if valid:
            did_hit = 1
            hit_t = root
            hit_point = ray_origin + root * ray_direction
            outward_normal = (hit_point - sphere.center) / sphere.radius

            if dot(ray_direction, outward_normal) < 0.0:
                is_front_face = 1
                hit_normal = outward_normal
            else:
                is_front_face = 0
                hit_normal = -outward_normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )


@ti.func
def make_sphere(center: vec3, radius: real) -> Sphere:
    """Create a sphere from center and radius."""
    return Sphere(center=center, radius=radius)
