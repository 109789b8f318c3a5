"""Unit tests for render settings."""

import math

import pytest


class TestRenderSettings:
    """Tests for RenderSettings validation and derived values."""

    def test_defaults(self):
        from prismtrace.core.config import RenderSettings, ShadingMode

        settings = RenderSettings()
        assert settings.image_width == 400
        assert settings.image_height == 225
        assert settings.samples_per_pixel == 100
        assert settings.max_depth == 50
        assert settings.shading is ShadingMode.PATH
        assert settings.antialias is True

    def test_height_is_truncated(self):
        from prismtrace.core.config import RenderSettings

        assert RenderSettings(image_width=1200, aspect_ratio=3.0 / 2.0).image_height == 800
        assert RenderSettings(image_width=100, aspect_ratio=3.0).image_height == 33

    def test_shading_accepts_int(self):
        from prismtrace.core.config import RenderSettings, ShadingMode

        assert RenderSettings(shading=1).shading is ShadingMode.NORMALS

    def test_zero_depth_allowed(self):
        from prismtrace.core.config import RenderSettings

        assert RenderSettings(max_depth=0).max_depth == 0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"image_width": 0},
            {"aspect_ratio": 0.0},
            {"aspect_ratio": math.nan},
            {"image_width": 1, "aspect_ratio": 2.0},
            {"samples_per_pixel": 0},
            {"max_depth": -1},
            {"seed": -1},
            {"seed": 2**31},
        ],
    )
    def test_invalid(self, kwargs):
        from prismtrace.core.config import RenderSettings

        with pytest.raises(ValueError):
            RenderSettings(**kwargs)

    def test_invalid_shading(self):
        from prismtrace.core.config import RenderSettings

        with pytest.raises(ValueError):
            RenderSettings(shading=7)
