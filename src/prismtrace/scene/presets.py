"""Ready-made scenes and scene files.

Each factory clears the active scene, fills it through SceneManager and
returns the manager together with a camera framing the scene.

Presets:
    single_sphere: one sphere of radius 0.5 at (0, 0, -1) in front of a
        90 degree pinhole camera. Rendered with normal shading it gives the
        classic normal-colored silhouette over the sky gradient.
    showcase: ground, diffuse center sphere, hollow glass sphere and a
        metal sphere, viewed through a thin lens focused on the center.
    random: a large ground sphere covered with a grid of small random
        spheres plus three large feature spheres.
    classic: the same grid with every sphere on the ground, random diffuse
        colors and fuzzy metals.

Scene files are JSON documents with "materials" and "spheres" lists (see
SceneManager.to_dict) and an optional "camera" object.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from prismtrace.scene.presets import create_random_scene
    >>> scene, camera = create_random_scene(seed=3)
    >>> scene.get_sphere_count() > 100
    True
"""

import colorsys
import json
import logging
import math
from collections.abc import Callable
from pathlib import Path
from typing import Any

import numpy as np

from prismtrace.camera.pinhole import PinholeCamera
from prismtrace.camera.thin_lens import ThinLensCamera
from prismtrace.geometry.sphere import SpherePrimitive
from prismtrace.materials.dielectric import Dielectric
from prismtrace.materials.lambertian import Lambertian
from prismtrace.materials.metal import Metal
from prismtrace.scene.manager import SceneManager

logger = logging.getLogger(__name__)

SceneFactory = Callable[..., tuple[SceneManager, PinholeCamera]]


def create_single_sphere_scene(
    aspect_ratio: float = 16.0 / 9.0,
) -> tuple[SceneManager, PinholeCamera]:
    """Create a single diffuse sphere in front of a pinhole camera.

    The camera sits at the origin looking down -z with a 90 degree vertical
    field of view, so the viewport is two units high at unit distance.

    Returns:
        Tuple of (scene manager, camera).
    """
    scene = SceneManager()
    scene.add(SpherePrimitive((0.0, 0.0, -1.0), 0.5), Lambertian((0.5, 0.5, 0.5)))

    camera = PinholeCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
    )
    return scene, camera


def create_material_showcase_scene(
    aspect_ratio: float = 16.0 / 9.0,
    aperture: float = 2.0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the three-material scene with a hollow glass sphere.

    The glass sphere on the left is a shell: an outer sphere of radius 0.5
    and an inner sphere of radius -0.4 sharing one dielectric material. The
    negative radius turns the inner surface's normal inward.

    Args:
        aspect_ratio: Image aspect ratio.
        aperture: Lens diameter; the camera focuses on the center sphere.

    Returns:
        Tuple of (scene manager, camera).
    """
    scene = SceneManager()

    ground = Lambertian((0.8, 0.8, 0.0))
    center = Lambertian((0.1, 0.2, 0.5))
    glass = Dielectric(1.5)
    gold = Metal((0.8, 0.6, 0.2), 0.0)

    scene.add(SpherePrimitive((0.0, -100.5, -1.0), 100.0), ground)
    scene.add(SpherePrimitive((0.0, 0.0, -1.0), 0.5), center)
    scene.add(SpherePrimitive((-1.0, 0.0, -1.0), 0.5), glass)
    scene.add(SpherePrimitive((-1.0, 0.0, -1.0), -0.4), glass)
    scene.add(SpherePrimitive((1.0, 0.0, -1.0), 0.5), gold)

    camera = ThinLensCamera(
        lookfrom=(3.0, 3.0, 2.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=aperture,
    )
    return scene, camera


def create_random_scene(
    seed: int = 0,
    aspect_ratio: float = 3.0 / 2.0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the "many spheres" scene.

    A 22 x 22 grid of small spheres is scattered over a huge ground sphere.
    Each grid cell draws a material: 70% diffuse with a random fully
    saturated hue, 10% mirror metal, 20% glass. Diffuse and glass spheres may
    float above the ground; metal ones always rest on it. Cells too close to
    the large metal sphere are left empty.

    Args:
        seed: Seed for the scene layout (independent of the render seed).
        aspect_ratio: Image aspect ratio.

    Returns:
        Tuple of (scene manager, camera).
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    scene.add(SpherePrimitive((0.0, -1000.0, 0.0), 1000.0), Lambertian((0.5, 0.5, 0.5)))

    glass = Dielectric(1.5)
    mirror = Metal((1.0, 1.0, 1.0), 0.0)
    clearing = np.array([4.0, 0.2, 0.0])

    for a in range(-11, 11):
        for b in range(-11, 11):
            choose_mat = rng.random()
            airborne = 1.0 if choose_mat > 0.4 else 0.0
            center = np.array(
                [
                    a + 0.9 * rng.random(),
                    0.2 + airborne * rng.uniform(0.0, 4.2),
                    b + 0.9 * rng.random(),
                ]
            )

            if np.linalg.norm(center - clearing) <= 0.9:
                continue

            if choose_mat < 0.7:
                r, g, bl = colorsys.hls_to_rgb(rng.random(), 0.5, 1.0)
                material = Lambertian((r, g, bl))
            elif choose_mat < 0.8:
                material = mirror
                center[1] = 0.2
            else:
                material = glass

            scene.add(SpherePrimitive(tuple(center.tolist()), 0.2), material)

    scene.add(SpherePrimitive((0.0, 1.0, 0.0), 1.0), glass)
    scene.add(SpherePrimitive((-4.0, 1.0, 0.0), 1.0), Lambertian((0.0, 0.8, 0.2)))
    scene.add(SpherePrimitive((4.0, 1.0, 0.0), 1.0), mirror)

    logger.debug("Random scene (seed=%d) has %d spheres", seed, scene.get_sphere_count())

    camera = ThinLensCamera(
        lookfrom=(13.0, 5.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=0.1,
        focus_dist=10.0,
    )
    return scene, camera


def create_classic_scene(
    seed: int = 0,
    aspect_ratio: float = 3.0 / 2.0,
) -> tuple[SceneManager, ThinLensCamera]:
    """Create the classic "final render" sphere field.

    Same grid as the random scene, but every small sphere rests on the
    ground. Cells are 80% diffuse with albedo the product of two random
    colors, 15% metal with albedo in [0.5, 1] and fuzz in [0, 0.5], and 5%
    glass.

    Args:
        seed: Seed for the scene layout (independent of the render seed).
        aspect_ratio: Image aspect ratio.

    Returns:
        Tuple of (scene manager, camera).
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    scene.add(SpherePrimitive((0.0, -1000.0, 0.0), 1000.0), Lambertian((0.5, 0.5, 0.5)))

    glass = Dielectric(1.5)
    clearing = np.array([4.0, 0.2, 0.0])

    for a in range(-11, 11):
        for b in range(-11, 11):
            choose_mat = rng.random()
            center = np.array([a + 0.9 * rng.random(), 0.2, b + 0.9 * rng.random()])

            if np.linalg.norm(center - clearing) <= 0.9:
                continue

            if choose_mat < 0.8:
                albedo = rng.random(3) * rng.random(3)
                material = Lambertian(tuple(albedo.tolist()))
            elif choose_mat < 0.95:
                albedo = rng.uniform(0.5, 1.0, size=3)
                material = Metal(tuple(albedo.tolist()), float(rng.uniform(0.0, 0.5)))
            else:
                material = glass

            scene.add(SpherePrimitive(tuple(center.tolist()), 0.2), material)

    scene.add(SpherePrimitive((0.0, 1.0, 0.0), 1.0), glass)
    scene.add(SpherePrimitive((-4.0, 1.0, 0.0), 1.0), Lambertian((0.4, 0.2, 0.1)))
    scene.add(SpherePrimitive((4.0, 1.0, 0.0), 1.0), Metal((0.7, 0.6, 0.5), 0.0))

    logger.debug("Classic scene (seed=%d) has %d spheres", seed, scene.get_sphere_count())

    camera = ThinLensCamera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=0.1,
        focus_dist=10.0,
    )
    return scene, camera


PRESETS: dict[str, SceneFactory] = {
    "single_sphere": create_single_sphere_scene,
    "showcase": create_material_showcase_scene,
    "random": create_random_scene,
    "classic": create_classic_scene,
}


def create_preset(name: str, aspect_ratio: float) -> tuple[SceneManager, PinholeCamera]:
    """Build a preset by name.

    Raises:
        ValueError: If the name is not a known preset.
    """
    try:
        factory = PRESETS[name]
    except KeyError:
        raise ValueError(f"Unknown scene preset {name!r}; choose from {sorted(PRESETS)}") from None
    return factory(aspect_ratio=aspect_ratio)


# =============================================================================
# Scene Files
# =============================================================================


def camera_to_dict(camera: PinholeCamera) -> dict[str, Any]:
    """Export a camera to a JSON-friendly dictionary."""
    data: dict[str, Any] = {
        "lookfrom": list(camera.lookfrom),
        "lookat": list(camera.lookat),
        "vup": list(camera.vup),
        "vfov": camera.vfov,
    }
    if isinstance(camera, ThinLensCamera):
        data["aperture"] = camera.aperture
        data["focus_dist"] = camera.focus_dist
    return data


def camera_from_dict(data: dict[str, Any], aspect_ratio: float) -> PinholeCamera:
    """Build a camera from a dictionary.

    A dictionary with an "aperture" or "focus_dist" key gives a thin-lens
    camera, otherwise a pinhole camera.

    Raises:
        ValueError: If a camera parameter is invalid.
    """
    common = {
        "lookfrom": tuple(data.get("lookfrom", (0.0, 0.0, 0.0))),
        "lookat": tuple(data.get("lookat", (0.0, 0.0, -1.0))),
        "vup": tuple(data.get("vup", (0.0, 1.0, 0.0))),
        "vfov": data.get("vfov", 90.0),
        "aspect_ratio": aspect_ratio,
    }
    if "aperture" in data or "focus_dist" in data:
        return ThinLensCamera(
            **common,
            aperture=data.get("aperture", 0.0),
            focus_dist=data.get("focus_dist"),
        )
    return PinholeCamera(**common)


def save_scene_file(
    scene: SceneManager, camera: PinholeCamera, filepath: str | Path
) -> None:
    """Write a scene and its camera as JSON."""
    data = scene.to_dict()
    data["camera"] = camera_to_dict(camera)
    Path(filepath).write_text(json.dumps(data, indent=2), encoding="utf-8")


def load_scene_file(
    filepath: str | Path, aspect_ratio: float
) -> tuple[SceneManager, PinholeCamera]:
    """Load a scene and camera from a JSON file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not valid JSON or describes an invalid
            scene or camera.
    """
    with open(filepath, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Scene file {filepath} must contain a JSON object")

    scene = SceneManager()
    scene.from_dict(data)
    camera = camera_from_dict(data.get("camera", {}), aspect_ratio)

    logger.info("Loaded %d spheres from %s", scene.get_sphere_count(), filepath)
    return scene, camera


def default_focus_distance(camera: PinholeCamera) -> float:
    """Distance between lookfrom and lookat."""
    return math.dist(camera.lookfrom, camera.lookat)
