"""Monte Carlo ray tracer built on Taichi.

This package renders scenes of spheres with diffuse, metal and glass
materials, with support for:
- Path tracing with a bounded number of bounces and a sky gradient
- Pinhole and thin-lens (depth of field) cameras
- Reproducible, seedable sampling that runs in parallel
- Progressive accumulation and PPM/PNG output

Subpackages:
    core: Vector utilities, random sampling, render settings and the integrator
    geometry: Sphere primitive and ray-sphere intersection
    materials: Lambertian, metal and dielectric scattering
    scene: Scene management, intersection and preset scenes
    camera: Camera models with ray generation
    preview: Image export and preview utilities

Taichi must be initialised with ``default_fp=ti.f64`` before any
submodule is imported.
"""

__version__ = "0.1.0"
