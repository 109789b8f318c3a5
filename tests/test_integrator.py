"""Unit tests for the path tracing integrator.

Tests cover:
- Render target setup and validation
- Background gradient for escaped rays
- Depth bound, absorption and attenuation along a path
- Normal shading
- Sample accumulation and image orientation
"""

import numpy as np
import pytest
import taichi as ti


def _pinhole_camera(aspect_ratio=2.0):
    from prismtrace.camera.pinhole import PinholeCamera, setup_camera

    camera = PinholeCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
    )
    setup_camera(camera)
    return camera


def _expected_background(direction):
    d = np.asarray(direction, dtype=np.float64)
    t = 0.5 * (d[1] / np.linalg.norm(d) + 1.0)
    return (1.0 - t) * np.array([1.0, 1.0, 1.0]) + t * np.array([0.5, 0.7, 1.0])


class TestRenderTarget:
    """Tests for render target management."""

    def test_setup_sets_dimensions(self):
        from prismtrace.core.integrator import get_image_dimensions, setup_render_target

        setup_render_target(64, 32)
        assert get_image_dimensions() == (64, 32)

    @pytest.mark.parametrize(("width", "height"), [(0, 10), (10, -1), (4096, 10), (10, 4096)])
    def test_invalid_dimensions(self, width, height):
        from prismtrace.core.integrator import setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(width, height)

    def test_clear_resets_samples(self):
        from prismtrace.core.integrator import (
            clear_render_target,
            get_total_samples,
            render_image,
            setup_render_target,
        )

        _pinhole_camera()
        setup_render_target(8, 4)
        render_image(2)
        assert get_total_samples() == 2
        clear_render_target()
        assert get_total_samples() == 0

    @pytest.mark.parametrize(("kwargs"), [{"num_samples": 0}, {"rows_per_batch": 0}])
    def test_render_image_rejects_non_positive_counts(self, kwargs):
        from prismtrace.core.integrator import render_image, setup_render_target

        setup_render_target(8, 4)
        with pytest.raises(ValueError):
            render_image(**kwargs)


class TestRayColor:
    """Tests for single-ray tracing."""

    @pytest.mark.parametrize(
        "direction",
        [(0.0, 1.0, 0.0), (0.0, -1.0, 0.0), (0.0, 0.0, -1.0), (1.0, 0.3, -2.0)],
    )
    def test_escaped_ray_gets_background(self, direction):
        from prismtrace.core.integrator import trace_ray

        color = trace_ray((0.0, 0.0, 0.0), direction)
        np.testing.assert_allclose(color, _expected_background(direction), atol=1e-12)

    def test_background_extremes(self):
        from prismtrace.core.integrator import trace_ray

        assert trace_ray((0, 0, 0), (0, 1, 0)) == pytest.approx((0.5, 0.7, 1.0))
        assert trace_ray((0, 0, 0), (0, -1, 0)) == pytest.approx((1.0, 1.0, 1.0))

    def test_zero_depth_is_black(self):
        from prismtrace.core.integrator import trace_ray

        assert trace_ray((0, 0, 0), (0, 1, 0), max_depth=0) == (0.0, 0.0, 0.0)

    def test_depth_exhausted_between_mirrors_is_black(self):
        """Test a ray trapped between two facing mirrors runs out of depth."""
        from prismtrace.core.integrator import trace_ray
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        mirror = scene.add_metal_material((1.0, 1.0, 1.0), 0.0)
        scene.add_sphere((0.0, 0.0, -101.0), 100.0, mirror)
        scene.add_sphere((0.0, 0.0, 101.0), 100.0, mirror)

        assert trace_ray((0, 0, 0), (0, 0, -1), max_depth=10) == (0.0, 0.0, 0.0)

    def test_mirror_attenuates_background(self):
        """Test one bounce off a mirror returns albedo times the reflected sky."""
        from prismtrace.core.integrator import trace_ray
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, -100.0, 0.0), 99.0, (0.5, 0.8, 0.25), 0.0)

        color = trace_ray((0, 0, 0), (0, -1, 0))
        expected = np.array([0.5, 0.8, 0.25]) * _expected_background((0.0, 1.0, 0.0))
        np.testing.assert_allclose(color, expected, atol=1e-12)

    def test_lambertian_darkens(self):
        """Test every channel of a diffuse bounce is at most albedo times white."""
        from prismtrace.core.integrator import trace_ray
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -2.0), 1.0, (0.5, 0.5, 0.5))

        for seed in range(8):
            color = trace_ray((0, 0, 0), (0, 0, -1), seed=seed)
            assert all(c <= 0.5 + 1e-12 for c in color)

    def test_normal_shading(self):
        from prismtrace.core.config import ShadingMode
        from prismtrace.core.integrator import trace_ray
        from prismtrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, 0.0, -1.0), 0.5, (0.5, 0.5, 0.5))

        color = trace_ray((0, 0, 0), (0, 0, -1), shading=ShadingMode.NORMALS)
        assert color == pytest.approx((0.5, 0.5, 1.0))


class TestRenderImage:
    """Tests for whole-image rendering and accumulation."""

    def test_image_shape_and_dtype(self):
        from prismtrace.core.integrator import get_normalized_image_numpy, render_image, setup_render_target

        _pinhole_camera()
        setup_render_target(16, 8)
        render_image(1)
        image = get_normalized_image_numpy()
        assert image.shape == (8, 16, 3)
        assert image.dtype == np.float64

    def test_top_row_looks_up(self):
        """Test the first image row is the top of the view (bluer sky)."""
        from prismtrace.core.integrator import get_normalized_image_numpy, render_image, setup_render_target

        _pinhole_camera()
        setup_render_target(16, 8)
        render_image(4)
        image = get_normalized_image_numpy()
        assert image[0, :, 0].mean() < image[-1, :, 0].mean()

    def test_accumulation_is_average(self):
        from prismtrace.core.integrator import (
            get_normalized_image_numpy,
            get_total_samples,
            render_image,
            setup_render_target,
        )

        _pinhole_camera()
        setup_render_target(16, 8)
        render_image(3)
        assert get_total_samples() == 3
        image = get_normalized_image_numpy()
        # Empty scene: averages stay within the gradient range
        assert image.min() >= 0.5 - 1e-12
        assert image.max() <= 1.0 + 1e-12

    def test_progress_reports_rows_remaining(self):
        from prismtrace.core.integrator import render_image, setup_render_target

        _pinhole_camera()
        setup_render_target(8, 40)
        remaining = []
        render_image(1, progress=remaining.append, rows_per_batch=16)
        assert remaining == [24, 8, 0]

    def test_render_sample_matches_trace(self):
        """Test render_sample is deterministic for a fixed sample index."""
        from prismtrace.core.integrator import render_sample, setup_render_target

        _pinhole_camera()
        setup_render_target(16, 8)
        a = render_sample(3, 4, 7, seed=1)
        b = render_sample(3, 4, 7, seed=1)
        assert a == b

    def test_save_image_ppm(self, tmp_path):
        from prismtrace.core.integrator import render_image, save_image, setup_render_target

        _pinhole_camera()
        setup_render_target(4, 2)
        render_image(1)
        path = tmp_path / "out.ppm"
        save_image(path)
        lines = path.read_text().splitlines()
        assert lines[:3] == ["P3", "4 2", "255"]
        assert len(lines) == 3 + 8
