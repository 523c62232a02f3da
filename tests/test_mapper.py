"""Tests for brightness to glyph and color mapping."""

import numpy as np
import pytest

from glyphscope.core.mapper import (
    CHARACTER_SETS,
    background_color,
    color_for,
    compress,
    get_ramp,
    glyph_for,
    glyphs_for,
    rgb_array,
    rgb_for,
)


class TestGlyphMapping:
    """Tests for glyph_for / glyphs_for."""

    @pytest.mark.parametrize("style", sorted(CHARACTER_SETS))
    def test_glyph_index_is_monotonic(self, style):
        """Brighter input never maps to an earlier ramp entry."""
        ramp = CHARACTER_SETS[style]
        indices = [ramp.index(glyph_for(b, ramp)) for b in range(256)]

        assert indices == sorted(indices)
        assert indices[0] == 0
        assert indices[-1] == len(ramp) - 1

    def test_zero_is_blank(self):
        for ramp in CHARACTER_SETS.values():
            assert glyph_for(0, ramp) == " "

    def test_out_of_range_is_clamped(self):
        ramp = CHARACTER_SETS["minimal"]
        assert glyph_for(-50, ramp) == ramp[0]
        assert glyph_for(1000, ramp) == ramp[-1]
        assert glyph_for(float("nan"), ramp) == ramp[0]

    def test_vectorized_matches_scalar(self):
        ramp = CHARACTER_SETS["minimal"]
        values = np.arange(-10, 300, 7, dtype=np.float64).reshape(-1, 1)
        glyphs = glyphs_for(values, ramp)

        assert glyphs.shape == values.shape
        for v, g in zip(values.ravel(), glyphs.ravel()):
            assert g == glyph_for(v, ramp)

    def test_unknown_style_raises(self):
        with pytest.raises(ValueError, match="character style"):
            get_ramp("braille")


class TestColorMapping:
    """Tests for theme colors."""

    def test_dark_theme_is_gray_and_non_decreasing(self):
        previous = -1
        for b in range(256):
            r, g, bl = rgb_for(b, "dark")
            assert r == g == bl
            assert r >= previous
            previous = r

    def test_light_theme_is_gray_and_non_increasing(self):
        previous = 256
        for b in range(256):
            r, g, bl = rgb_for(b, "light")
            assert r == g == bl
            assert r <= previous
            previous = r

    def test_full_brightness_stays_below_white(self):
        assert rgb_for(255, "dark") == (200, 200, 200)
        assert rgb_for(255, "light") == (55, 55, 55)

    def test_blue_theme_endpoints(self):
        assert rgb_for(0, "blue") == (0, 100, 180)
        assert rgb_for(255, "blue") == (80, 255, 255)

    @pytest.mark.parametrize("theme", ["dark", "light", "blue"])
    def test_extremes_are_distinct(self, theme):
        assert color_for(0, theme) != color_for(255, theme)
        assert color_for(128, theme) == color_for(128, theme)

    def test_css_strings(self):
        assert color_for(0, "dark") == "rgb(0, 0, 0)"
        assert color_for(255, "light") == "rgb(55, 55, 55)"
        assert color_for(255, "blue").startswith("color(display-p3 ")

    def test_compress_endpoints(self):
        assert compress(0) == 0.0
        assert compress(255) == pytest.approx(200.0)

    def test_rgb_array_matches_scalar(self):
        values = np.array([[0.0, 17.0, 128.0], [200.0, 254.9, 255.0]])
        for theme in ("dark", "light", "blue"):
            colors = rgb_array(values, theme)
            assert colors.shape == (2, 3, 3)
            assert colors.dtype == np.uint8
            for (y, x), v in np.ndenumerate(values):
                assert tuple(int(c) for c in colors[y, x]) == rgb_for(v, theme)

    def test_unknown_theme_raises(self):
        with pytest.raises(ValueError, match="theme"):
            rgb_for(100, "sepia")
        with pytest.raises(ValueError):
            background_color("sepia")
