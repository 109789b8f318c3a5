"""Unit tests for scene presets and scene files.

Tests cover:
- Construction of each preset scene and camera
- Determinism of the random scene layout
- JSON scene file round trip
"""

import json

import pytest


class TestPresets:
    """Tests for the preset scene factories."""

    def test_single_sphere(self):
        from prismtrace.camera.pinhole import PinholeCamera
        from prismtrace.scene.presets import create_single_sphere_scene

        scene, camera = create_single_sphere_scene()
        assert scene.get_sphere_count() == 1
        assert scene.spheres[0].center == (0.0, 0.0, -1.0)
        assert scene.spheres[0].radius == 0.5
        assert type(camera) is PinholeCamera
        assert camera.vfov == 90.0

    def test_showcase_shares_glass(self):
        from prismtrace.camera.thin_lens import ThinLensCamera
        from prismtrace.scene.presets import create_material_showcase_scene

        scene, camera = create_material_showcase_scene(aspect_ratio=2.0, aperture=0.5)
        assert scene.get_sphere_count() == 5
        assert scene.get_material_count() == 4
        assert scene.spheres[2].material_id == scene.spheres[3].material_id
        assert scene.spheres[3].radius == -0.4
        assert isinstance(camera, ThinLensCamera)
        assert camera.aspect_ratio == 2.0
        assert camera.aperture == 0.5
        assert camera.focus_dist == pytest.approx(27.0**0.5)

    def test_random_scene_is_seeded(self):
        from prismtrace.scene.presets import create_random_scene

        first, _ = create_random_scene(seed=5)
        layout = first.to_dict()
        second, _ = create_random_scene(seed=5)
        assert second.to_dict() == layout

        third, _ = create_random_scene(seed=6)
        assert third.to_dict() != layout

    def test_random_scene_contents(self):
        from prismtrace.scene.manager import MaterialType
        from prismtrace.scene.presets import create_random_scene

        scene, camera = create_random_scene(seed=1)
        # Ground + grid (minus the clearing) + three feature spheres
        assert 1 + 3 < scene.get_sphere_count() <= 1 + 22 * 22 + 3
        assert scene.spheres[0].radius == 1000.0
        assert camera.focus_dist == 10.0
        assert camera.aperture == 0.1

        for sphere in scene.spheres[1:-3]:
            info = scene.get_material_info(sphere.material_id)
            if info.material_type == MaterialType.METAL:
                assert sphere.center[1] == pytest.approx(0.2)
            assert sphere.radius == 0.2

    def test_classic_scene_contents(self):
        from prismtrace.scene.manager import MaterialType
        from prismtrace.scene.presets import create_classic_scene

        scene, camera = create_classic_scene(seed=2)
        assert 1 + 3 < scene.get_sphere_count() <= 1 + 22 * 22 + 3
        assert camera.lookfrom == (13.0, 2.0, 3.0)
        assert camera.focus_dist == 10.0

        fuzzes = []
        for sphere in scene.spheres[1:-3]:
            assert sphere.radius == 0.2
            assert sphere.center[1] == 0.2
            info = scene.get_material_info(sphere.material_id)
            if info.material_type == MaterialType.METAL:
                assert all(0.5 <= c <= 1.0 for c in info.material.albedo)
                assert 0.0 <= info.material.fuzz <= 0.5
                fuzzes.append(info.material.fuzz)
            elif info.material_type == MaterialType.LAMBERTIAN:
                assert all(0.0 <= c <= 1.0 for c in info.material.albedo)

        assert max(fuzzes) > 0.0

    def test_classic_scene_is_seeded(self):
        from prismtrace.scene.presets import create_classic_scene

        first, _ = create_classic_scene(seed=5)
        second, _ = create_classic_scene(seed=5)
        assert second.to_dict() == first.to_dict()

    def test_create_preset(self):
        from prismtrace.scene.presets import PRESETS, create_preset

        assert set(PRESETS) == {"single_sphere", "showcase", "random", "classic"}
        scene, camera = create_preset("single_sphere", 1.5)
        assert camera.aspect_ratio == 1.5
        assert scene.get_sphere_count() == 1

    def test_unknown_preset(self):
        from prismtrace.scene.presets import create_preset

        with pytest.raises(ValueError, match="Unknown scene preset"):
            create_preset("cornell", 1.0)


class TestSceneFiles:
    """Tests for JSON scene files."""

    def test_round_trip(self, tmp_path):
        from prismtrace.camera.thin_lens import ThinLensCamera
        from prismtrace.scene.presets import (
            create_material_showcase_scene,
            load_scene_file,
            save_scene_file,
        )

        scene, camera = create_material_showcase_scene()
        expected = scene.to_dict()
        path = tmp_path / "scene.json"
        save_scene_file(scene, camera, path)

        loaded, loaded_camera = load_scene_file(path, camera.aspect_ratio)
        assert loaded.to_dict() == expected
        assert isinstance(loaded_camera, ThinLensCamera)
        assert loaded_camera == camera

    def test_pinhole_camera_from_file(self, tmp_path):
        from prismtrace.camera.pinhole import PinholeCamera
        from prismtrace.scene.presets import load_scene_file

        path = tmp_path / "scene.json"
        path.write_text(
            json.dumps(
                {
                    "materials": [{"type": "lambertian", "albedo": [0.5, 0.5, 0.5]}],
                    "spheres": [{"center": [0, 0, -1], "radius": 0.5, "material_id": 0}],
                    "camera": {"lookfrom": [0, 0, 0], "lookat": [0, 0, -1], "vfov": 60},
                }
            )
        )
        scene, camera = load_scene_file(path, 2.0)
        assert scene.get_sphere_count() == 1
        assert type(camera) is PinholeCamera
        assert camera.vfov == 60.0

    def test_not_an_object(self, tmp_path):
        from prismtrace.scene.presets import load_scene_file

        path = tmp_path / "scene.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ValueError):
            load_scene_file(path, 1.0)

    def test_invalid_json(self, tmp_path):
        from prismtrace.scene.presets import load_scene_file

        path = tmp_path / "scene.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            load_scene_file(path, 1.0)
