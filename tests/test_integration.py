"""End-to-end rendering tests.

These render complete (small) images through the public API and check them
against values computed independently with NumPy:
- a normal-shaded sphere silhouette over the sky gradient
- an empty scene that is exactly the gradient for every seed
- a diffuse sphere that is darker than its albedo
- byte-identical output for repeated renders with one seed
"""

import io

import numpy as np
import pytest

WIDTH = 40
HEIGHT = 20


def _setup_pinhole():
    from prismtrace.camera.pinhole import PinholeCamera, setup_camera

    camera = PinholeCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=WIDTH / HEIGHT,
    )
    setup_camera(camera)


def _render(samples, **settings_overrides):
    from prismtrace.core.config import RenderSettings
    from prismtrace.core.progressive import ProgressiveRenderer

    params = {
        "image_width": WIDTH,
        "aspect_ratio": WIDTH / HEIGHT,
        "samples_per_pixel": samples,
        "max_depth": 50,
    }
    params.update(settings_overrides)
    renderer = ProgressiveRenderer(RenderSettings(**params))
    renderer.render_frame()
    return renderer


def _pixel_directions():
    """Directions through the pixel grid without jitter, top row first."""
    lower_left = np.array([-2.0, -1.0, -1.0])
    horizontal = np.array([4.0, 0.0, 0.0])
    vertical = np.array([0.0, 2.0, 0.0])

    s = np.arange(WIDTH) / (WIDTH - 1)
    t = np.arange(HEIGHT)[::-1] / (HEIGHT - 1)
    return (
        lower_left
        + s[None, :, None] * horizontal
        + t[:, None, None] * vertical
    )


def _background(directions):
    unit_y = directions[..., 1] / np.linalg.norm(directions, axis=-1)
    t = 0.5 * (unit_y + 1.0)
    return (1.0 - t)[..., None] * np.array([1.0, 1.0, 1.0]) + t[..., None] * np.array([0.5, 0.7, 1.0])


class TestNormalShadedSphere:
    """A single sphere rendered with normal shading and one sample per pixel."""

    def test_silhouette_over_gradient(self):
        from prismtrace.core.config import ShadingMode
        from prismtrace.scene.presets import create_single_sphere_scene

        create_single_sphere_scene(aspect_ratio=WIDTH / HEIGHT)
        _setup_pinhole()
        renderer = _render(1, shading=ShadingMode.NORMALS, antialias=False)
        image = renderer.get_image_numpy()

        directions = _pixel_directions()
        center = np.array([0.0, 0.0, -1.0])
        oc = -center
        a = np.sum(directions * directions, axis=-1)
        half_b = directions @ oc
        c = oc @ oc - 0.25
        discriminant = half_b * half_b - a * c
        hit = discriminant >= 0.0

        root = (-half_b - np.sqrt(np.where(hit, discriminant, 0.0))) / a
        points = root[..., None] * directions
        normal_color = 0.5 * ((points - center) / 0.5 + 1.0)
        expected = np.where(hit[..., None], normal_color, _background(directions))

        assert hit.any() and not hit.all()
        np.testing.assert_allclose(image, expected, atol=1e-9)

    def test_center_pixel_faces_camera(self):
        from prismtrace.core.config import ShadingMode
        from prismtrace.scene.presets import create_single_sphere_scene

        create_single_sphere_scene(aspect_ratio=WIDTH / HEIGHT)
        _setup_pinhole()
        image = _render(1, shading=ShadingMode.NORMALS, antialias=False).get_image_numpy()
        # Pixels nearest the view axis see the normal (0, 0, 1)
        center = image[HEIGHT // 2, WIDTH // 2]
        assert center[2] > 0.95
        assert center[0] == pytest.approx(0.5, abs=0.05)
        assert center[1] == pytest.approx(0.5, abs=0.05)


class TestEmptyScene:
    """An empty scene shows only the background gradient."""

    def test_exact_gradient(self):
        from prismtrace.scene.manager import SceneManager

        SceneManager()
        _setup_pinhole()
        image = _render(1, antialias=False).get_image_numpy()
        np.testing.assert_allclose(image, _background(_pixel_directions()), atol=1e-12)

    def test_independent_of_seed(self):
        from prismtrace.scene.manager import SceneManager

        SceneManager()
        _setup_pinhole()
        images = [_render(2, seed=seed, antialias=False).get_image_uint8() for seed in (0, 1, 12345)]
        for image in images[1:]:
            np.testing.assert_array_equal(image, images[0])


class TestDiffuseEnergyLoss:
    """A diffuse sphere filling the frame loses energy at every bounce."""

    def _setup(self):
        from prismtrace.camera.pinhole import PinholeCamera, setup_camera
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -3.0), 2.0, (0.6, 0.6, 0.6))
        setup_camera(
            PinholeCamera(
                lookfrom=(0.0, 0.0, 0.0),
                lookat=(0.0, 0.0, -1.0),
                vup=(0.0, 1.0, 0.0),
                vfov=30.0,
                aspect_ratio=WIDTH / HEIGHT,
            )
        )

    def test_luminance_below_albedo(self):
        self._setup()
        image = _render(16, seed=4).get_image_numpy()
        luminance = image @ np.array([0.2126, 0.7152, 0.0722])
        assert luminance.max() < 0.6
        assert luminance.mean() > 0.0

    def test_depth_one_is_black(self):
        """Test a path that must scatter but has no depth left contributes black."""
        self._setup()
        image = _render(2, max_depth=1).get_image_numpy()
        assert np.all(image == 0.0)


class TestIdempotence:
    """Renders with the same seed are byte-identical."""

    def test_same_seed_same_bytes(self):
        from prismtrace.preview.export import write_ppm
        from prismtrace.scene.presets import create_material_showcase_scene
        from prismtrace.camera.pinhole import setup_camera

        outputs = []
        for _ in range(2):
            _, camera = create_material_showcase_scene(aspect_ratio=WIDTH / HEIGHT, aperture=0.5)
            setup_camera(camera)
            renderer = _render(3, seed=42, max_depth=10)
            stream = io.StringIO()
            write_ppm(renderer.get_image_uint8(), stream)
            outputs.append(stream.getvalue())

        assert outputs[0] == outputs[1]

    def test_different_seed_differs(self):
        from prismtrace.scene.presets import create_material_showcase_scene
        from prismtrace.camera.pinhole import setup_camera

        _, camera = create_material_showcase_scene(aspect_ratio=WIDTH / HEIGHT, aperture=0.5)
        setup_camera(camera)
        a = _render(2, seed=1, max_depth=10).get_image_numpy()
        b = _render(2, seed=2, max_depth=10).get_image_numpy()
        assert not np.array_equal(a, b)
