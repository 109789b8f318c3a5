"""Unit tests for the scene manager.

Tests cover:
- Material registration and type dispatch tables
- Sharing of equal material values
- Adding primitives with materials
- Validation of material ids
- Serialization round trips
"""

import pytest
import taichi as ti


class TestMaterials:
    """Tests for material registration."""

    def test_unified_ids_across_types(self):
        from prismtrace.scene.manager import MaterialType, SceneManager

        scene = SceneManager()
        red = scene.add_lambertian_material((0.8, 0.1, 0.1))
        gold = scene.add_metal_material((0.8, 0.6, 0.2), 0.3)
        glass = scene.add_dielectric_material(1.5)

        assert (red, gold, glass) == (0, 1, 2)
        assert scene.get_material_count() == 3
        assert scene.get_material_type_python(red) == MaterialType.LAMBERTIAN
        assert scene.get_material_type_python(gold) == MaterialType.METAL
        assert scene.get_material_type_python(glass) == MaterialType.DIELECTRIC
        assert scene.get_material_type_python(99) is None

    def test_type_index_per_registry(self):
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_material((0.1, 0.1, 0.1))
        scene.add_metal_material((0.5, 0.5, 0.5))
        second = scene.add_lambertian_material((0.2, 0.2, 0.2))
        assert scene.get_material_info(second).type_index == 1

    def test_equal_materials_share_an_id(self):
        from prismtrace.materials.dielectric import Dielectric
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        a = scene.add_material(Dielectric(1.5))
        b = scene.add_material(Dielectric(1.5))
        c = scene.add_material(Dielectric(1.33))
        assert a == b
        assert c != a
        assert scene.get_material_count() == 2

    def test_metal_fuzz_clamped_through_manager(self):
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        material_id = scene.add_metal_material((0.5, 0.5, 0.5), 2.0)
        assert scene.get_material_info(material_id).params == {"albedo": [0.5, 0.5, 0.5], "fuzz": 1.0}

    def test_unsupported_material(self):
        from prismtrace.scene.manager import SceneManager

        with pytest.raises(TypeError):
            SceneManager().add_material("chalk")

    def test_kernel_side_lookup(self):
        from prismtrace.scene.manager import SceneManager, get_material_type, get_material_type_index

        scene = SceneManager()
        scene.add_lambertian_material((0.5, 0.5, 0.5))
        scene.add_dielectric_material(1.5)

        result = ti.field(dtype=ti.i32, shape=4)

        @ti.kernel
        def test_kernel():
            result[0] = get_material_type(1)
            result[1] = get_material_type_index(1)
            result[2] = get_material_type(5)
            result[3] = get_material_type_index(-1)

        test_kernel()
        assert [result[k] for k in range(4)] == [2, 0, -1, -1]


class TestPrimitives:
    """Tests for adding spheres."""

    def test_add_binds_material(self):
        from prismtrace.geometry.sphere import SpherePrimitive
        from prismtrace.materials.lambertian import Lambertian
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        first = scene.add(SpherePrimitive((0, 0, -1), 0.5), Lambertian((0.5, 0.5, 0.5)))
        second = scene.add(SpherePrimitive((1, 0, -1), 0.5), Lambertian((0.5, 0.5, 0.5)))
        assert (first, second) == (0, 1)
        assert scene.get_sphere_count() == 2
        assert scene.get_material_count() == 1
        assert scene.spheres[0].material_id == scene.spheres[1].material_id

    def test_hollow_glass_shell(self):
        from prismtrace.geometry.sphere import SpherePrimitive
        from prismtrace.materials.dielectric import Dielectric
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        glass = Dielectric(1.5)
        scene.add(SpherePrimitive((-1, 0, -1), 0.5), glass)
        scene.add(SpherePrimitive((-1, 0, -1), -0.4), glass)
        assert scene.get_material_count() == 1
        assert scene.spheres[1].radius == -0.4

    def test_add_rejects_non_sphere(self):
        from prismtrace.materials.lambertian import Lambertian
        from prismtrace.scene.manager import SceneManager

        with pytest.raises(TypeError):
            SceneManager().add(((0, 0, 0), 1.0), Lambertian((0.5, 0.5, 0.5)))

    @pytest.mark.parametrize("material_id", [-1, 1])
    def test_invalid_material_id(self, material_id):
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_material((0.5, 0.5, 0.5))
        with pytest.raises(ValueError, match="material_id"):
            scene.add_sphere((0, 0, 0), 1.0, material_id)

    def test_degenerate_radius(self):
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        with pytest.raises(ValueError):
            scene.add_lambertian_sphere((0, 0, 0), 0.0, (0.5, 0.5, 0.5))

    def test_convenience_methods(self):
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        assert scene.add_lambertian_sphere((0, 0, -1), 0.5, (0.5, 0.5, 0.5)) == (0, 0)
        assert scene.add_metal_sphere((1, 0, -1), 0.5, (0.8, 0.8, 0.8), 0.1) == (1, 1)
        assert scene.add_dielectric_sphere((-1, 0, -1), 0.5) == (2, 2)

    def test_clear(self):
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0, 0, -1), 0.5, (0.5, 0.5, 0.5))
        scene.clear()
        assert scene.get_sphere_count() == 0
        assert scene.get_material_count() == 0
        assert scene.materials == []
        assert scene.spheres == []

    def test_new_manager_clears_scene(self):
        from prismtrace.scene.manager import SceneManager

        SceneManager().add_lambertian_sphere((0, 0, -1), 0.5, (0.5, 0.5, 0.5))
        assert SceneManager().get_sphere_count() == 0


class TestSerialization:
    """Tests for config and dict export/import."""

    def _build(self):
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0, -100.5, -1), 100.0, (0.8, 0.8, 0.0))
        scene.add_metal_sphere((1, 0, -1), 0.5, (0.8, 0.6, 0.2), 0.25)
        glass = scene.add_dielectric_material(1.5)
        scene.add_sphere((-1, 0, -1), 0.5, glass)
        scene.add_sphere((-1, 0, -1), -0.4, glass)
        return scene

    def test_to_dict(self):
        data = self._build().to_dict()
        assert data["materials"] == [
            {"type": "lambertian", "albedo": [0.8, 0.8, 0.0]},
            {"type": "metal", "albedo": [0.8, 0.6, 0.2], "fuzz": 0.25},
            {"type": "dielectric", "refractive_index": 1.5},
        ]
        assert data["spheres"][3] == {"center": [-1.0, 0.0, -1.0], "radius": -0.4, "material_id": 2}

    def test_dict_round_trip(self):
        from prismtrace.scene.manager import SceneManager

        data = self._build().to_dict()
        restored = SceneManager()
        restored.from_dict(data)
        assert restored.to_dict() == data
        assert restored.get_sphere_count() == 4

    def test_duplicate_materials_in_config_collapse(self):
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.from_dict(
            {
                "materials": [
                    {"type": "dielectric", "refractive_index": 1.5},
                    {"type": "dielectric", "refractive_index": 1.5},
                ],
                "spheres": [
                    {"center": [0, 0, 0], "radius": 1.0, "material_id": 1},
                ],
            }
        )
        assert scene.get_material_count() == 1
        assert scene.spheres[0].material_id == 0

    @pytest.mark.parametrize(
        "data",
        [
            {"materials": [{"type": "plasma"}], "spheres": []},
            {"materials": [], "spheres": [{"center": [0, 0, 0], "radius": 1.0, "material_id": 0}]},
            {"materials": [{"type": "lambertian", "albedo": [2, 0, 0]}], "spheres": []},
        ],
    )
    def test_invalid_config(self, data):
        from prismtrace.scene.manager import SceneManager

        with pytest.raises(ValueError):
            SceneManager().from_dict(data)

    def test_capacity_information(self):
        from prismtrace.scene.manager import MAX_MATERIALS, SceneManager
        from prismtrace.scene.intersection import MAX_SPHERES

        assert SceneManager.get_max_spheres() == MAX_SPHERES
        assert SceneManager.get_max_materials() == MAX_MATERIALS
