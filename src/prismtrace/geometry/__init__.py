"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive with ray-sphere intersection

Intersection routines are Taichi functions (@ti.func) called from the
scene-level closest-hit loop. SpherePrimitive is the host-side value that
scene builders pass around.
"""

from .sphere import HitRecord, Sphere, SpherePrimitive, hit_sphere, make_sphere, sphere_discriminant

__all__ = [
    "Sphere",
    "SpherePrimitive",
    "HitRecord",
    "hit_sphere",
    "make_sphere",
    "sphere_discriminant",
]
