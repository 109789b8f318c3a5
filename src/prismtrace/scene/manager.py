"""Unified scene manager for coordinating primitives and materials.

This module provides the scene-building API used by presets, scene files and
the command line. It coordinates sphere storage with material assignment and
tracks which material type (Lambertian, Metal, Dielectric) each material ID
corresponds to, enabling exhaustive material dispatch in the path tracer.

The SceneManager maintains:
- A unified material_id space across all material types
- Mapping from material_id to (material_type, type_local_index)
- Sharing of equal material values, so several spheres reference one entry
- Scene serialization/configuration support

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from prismtrace.geometry.sphere import SpherePrimitive
    >>> from prismtrace.materials import Dielectric
    >>> from prismtrace.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> glass = Dielectric(1.5)
    >>> scene.add(SpherePrimitive((-1, 0, -1), 0.5), glass)
    >>> scene.add(SpherePrimitive((-1, 0, -1), -0.4), glass)  # hollow shell
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Union

import taichi as ti

from prismtrace.geometry.sphere import SpherePrimitive
from prismtrace.materials.dielectric import (
    Dielectric,
    add_dielectric_material,
    clear_dielectric_materials,
)
from prismtrace.materials.lambertian import (
    Lambertian,
    add_lambertian_material,
    clear_lambertian_materials,
)
from prismtrace.materials.metal import (
    Metal,
    add_metal_material,
    clear_metal_materials,
)
from prismtrace.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

logger = logging.getLogger(__name__)

Material = Union[Lambertian, Metal, Dielectric]


class MaterialType(IntEnum):
    """Enumeration of supported material types.

    Used for material dispatch in the path tracer to determine which
    scattering function to call. The set is closed.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Maximum number of materials across all types
MAX_MATERIALS = 2048

# Taichi fields for kernel-side material type lookup
# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
# (e.g., if material_id 5 is the 2nd metal material, material_type_indices[5] = 1)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material ID.

    Args:
        material_id: The unified material ID.

    Returns:
        The material type as an integer (see MaterialType enum).
        Returns -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the type-local index for a given material ID.

    This is used to look up material properties in the type-specific
    material arrays (e.g., lambertian_albedos[type_index]).

    Returns:
        The index into the type-specific material array.
        Returns -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The type of material (Lambertian, Metal, Dielectric).
        type_index: The index within the type-specific material array.
        material: The immutable material value.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    material: Material

    @property
    def params(self) -> dict[str, Any]:
        """The material parameters in JSON-friendly form."""
        if self.material_type == MaterialType.LAMBERTIAN:
            return {"albedo": list(self.material.albedo)}
        if self.material_type == MaterialType.METAL:
            return {"albedo": list(self.material.albedo), "fuzz": self.material.fuzz}
        return {"refractive_index": self.material.refractive_index}


@dataclass
class SphereInfo:
    """Information about a sphere in the scene.

    Attributes:
        sphere_index: The index in the sphere storage arrays.
        center: The center of the sphere.
        radius: The radius of the sphere.
        material_id: The material ID assigned to the sphere.
    """

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        materials: List of material configurations.
        spheres: List of sphere configurations.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


def material_from_config(mat_config: dict[str, Any]) -> Material:
    """Build a material value from its configuration dictionary.

    Raises:
        ValueError: If the type is unknown or a parameter is invalid.
    """
    mat_type = str(mat_config.get("type", "")).lower()
    if mat_type == "lambertian":
        return Lambertian(tuple(mat_config.get("albedo", [0.5, 0.5, 0.5])))
    if mat_type == "metal":
        return Metal(
            tuple(mat_config.get("albedo", [0.8, 0.8, 0.8])),
            mat_config.get("fuzz", 0.0),
        )
    if mat_type == "dielectric":
        return Dielectric(mat_config.get("refractive_index", 1.5))
    raise ValueError(f"Unknown material type: {mat_type!r}")


class SceneManager:
    """Unified scene manager coordinating primitives and materials.

    The SceneManager provides a high-level API for building scenes with
    automatic material tracking. It maintains a unified material_id space
    that maps to type-specific material registries, enabling the path tracer
    to dispatch to the correct scattering function.

    Scene state lives in module-level Taichi fields, so there is one active
    scene per process. Creating a SceneManager clears it.

    Attributes:
        materials: List of MaterialInfo for all registered materials.
        spheres: List of SphereInfo for all spheres in the scene.

    Example:
        >>> scene = SceneManager()
        >>> red = scene.add_lambertian_material(albedo=(0.8, 0.1, 0.1))
        >>> gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> scene.add_sphere((0, 0, -1), 0.5, red)
        >>> scene.add_sphere((1, 0, -1), 0.5, gold)
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self._material_ids: dict[Material, int] = {}
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()
        self._material_ids.clear()

    def clear(self) -> None:
        """Clear the entire scene (primitives and materials).

        Resets all Taichi fields and internal tracking structures.
        """
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def add_material(self, material: Material) -> int:
        """Register a material value and return its unified ID.

        Materials are immutable values: registering a value equal to one
        already in the scene returns the existing ID, so primitives built
        from equal materials share a single registry entry.

        Args:
            material: A Lambertian, Metal or Dielectric value.

        Returns:
            The unified material ID for this material.

        Raises:
            RuntimeError: If the maximum number of materials is exceeded.
            TypeError: If the value is not a supported material.
        """
        existing = self._material_ids.get(material)
        if existing is not None:
            return existing

        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        # Add to type-specific registry
        if isinstance(material, Lambertian):
            material_type = MaterialType.LAMBERTIAN
            type_index = add_lambertian_material(material.albedo)
        elif isinstance(material, Metal):
            material_type = MaterialType.METAL
            type_index = add_metal_material(material.albedo, material.fuzz)
        elif isinstance(material, Dielectric):
            material_type = MaterialType.DIELECTRIC
            type_index = add_dielectric_material(material.refractive_index)
        else:
            raise TypeError(f"Unsupported material: {material!r}")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                material=material,
            )
        )
        self._material_ids[material] = material_id
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a Lambertian (diffuse) material to the scene.

        Raises:
            ValueError: If any albedo component is outside [0, 1].
        """
        return self.add_material(Lambertian(albedo))

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a metal material to the scene. Fuzz is clamped to [0, 1].

        Raises:
            ValueError: If any albedo component is outside [0, 1].
        """
        return self.add_material(Metal(albedo, fuzz))

    def add_dielectric_material(self, refractive_index: float = 1.5) -> int:
        """Add a dielectric (glass/water) material to the scene.

        Raises:
            ValueError: If the refractive index is not positive.
        """
        return self.add_material(Dielectric(refractive_index))

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Get the material type for a given material ID (Python side).

        For kernel-side lookup, use the get_material_type() Taichi function.
        """
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id].material_type
        return None

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add(self, primitive: SpherePrimitive, material: Material) -> int:
        """Append a primitive bound to a material.

        Args:
            primitive: The sphere to add.
            material: The material governing scattering on the sphere. Equal
                material values are shared between primitives.

        Returns:
            The index of the added sphere.
        """
        if not isinstance(primitive, SpherePrimitive):
            raise TypeError(f"Unsupported primitive: {primitive!r}")
        material_id = self.add_material(material)
        return self.add_sphere(primitive.center, primitive.radius, material_id)

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere. A negative radius flips the
                surface normal inward.
            material_id: The unified material ID to assign to the sphere.

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If material_id is invalid or the geometry is
                degenerate.
        """
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

        primitive = SpherePrimitive(center, radius)
        sphere_index = add_sphere(primitive.center, primitive.radius, material_id)

        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=primitive.center,
                radius=primitive.radius,
                material_id=material_id,
            )
        )
        return sphere_index

    # =========================================================================
    # Convenience Methods (add object with material in one call)
    # =========================================================================

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with a Lambertian material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere with a metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        refractive_index: float = 1.5,
    ) -> tuple[int, int]:
        """Add a sphere with a dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(refractive_index)
        sphere_index = self.add_sphere(center, radius, material_id)
        return sphere_index, material_id

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_sphere_count(self) -> int:
        """Get the number of spheres in the scene."""
        return get_sphere_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig()

        for mat in self.materials:
            config.materials.append({"type": mat.material_type.name.lower(), **mat.params})

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration. Sphere
        material_id values index into config.materials.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        # Equal materials collapse to one ID, so keep the config -> ID mapping
        id_map: list[int] = []
        for mat_config in config.materials:
            id_map.append(self.add_material(material_from_config(mat_config)))

        for sphere_config in config.spheres:
            config_id = int(sphere_config.get("material_id", 0))
            if not 0 <= config_id < len(id_map):
                raise ValueError(f"Invalid material_id: {config_id}")
            center = tuple(sphere_config.get("center", [0.0, 0.0, 0.0]))
            radius = sphere_config.get("radius", 1.0)
            self.add_sphere(center, radius, id_map[config_id])

        logger.debug(
            "Loaded scene with %d materials and %d spheres",
            len(self.materials),
            len(self.spheres),
        )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "spheres": config.spheres,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary with 'materials' and 'spheres' keys."""
        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
        )
        self.from_config(config)

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        """Get the maximum number of spheres supported."""
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        """Get the maximum number of materials supported."""
        return MAX_MATERIALS
