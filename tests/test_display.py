"""Tests for rasterization and the live window key bindings."""

import numpy as np
import pygame
import pytest

from glyphscope.core.buffer import FrameBuffer
from glyphscope.core.mapper import CHARACTER_SETS, background_color
from glyphscope.display import GlyphAtlas, LiveWindow, Rasterizer, _cycle

# 240 maps to "@", which every fallback font can draw
RAMP = CHARACTER_SETS["minimal"]


@pytest.fixture(scope="module")
def rasterizer():
    return Rasterizer(GlyphAtlas(preload=RAMP))


class TestGlyphAtlas:
    def test_blank_tile_is_empty(self, rasterizer):
        assert not rasterizer.atlas.mask(" ").any()

    def test_tiles_have_coverage(self, rasterizer):
        tile = rasterizer.atlas.mask("@")
        assert tile.shape == (12, 6)
        assert 0.0 <= tile.min() and tile.max() <= 1.0
        assert tile.max() > 0.0

    def test_coverage_layout(self, rasterizer):
        glyphs = np.array([[" ", "@"], ["#", " "]])
        coverage = rasterizer.atlas.coverage(glyphs)

        assert coverage.shape == (24, 12)
        assert np.array_equal(coverage[:12, 6:], rasterizer.atlas.mask("@"))
        assert np.array_equal(coverage[12:, :6], rasterizer.atlas.mask("#"))
        assert not coverage[:12, :6].any()


class TestRasterizer:
    """Tests for buffer to RGB conversion."""

    def test_image_size(self, rasterizer):
        assert rasterizer.image_size(80, 50) == (480, 600)

    def test_empty_frame_is_theme_background(self, rasterizer):
        buffer = FrameBuffer(4, 3)
        for theme in ("dark", "light", "blue"):
            image = rasterizer.render(buffer, theme=theme)

            assert image.shape == (36, 24, 3)
            assert image.dtype == np.uint8
            assert np.all(image == background_color(theme))

    def test_lit_cell_is_drawn_in_its_cell(self, rasterizer):
        buffer = FrameBuffer(4, 3)
        buffer.set_cell(2, 1, 240, RAMP)

        image = rasterizer.render(buffer)

        cell = image[12:24, 12:18]
        assert cell.max() > 0
        assert cell.max() <= 200
        # Everything outside the lit cell stays black
        image[12:24, 12:18] = 0
        assert not image.any()

    def test_dark_theme_pixels_are_gray(self, rasterizer):
        buffer = FrameBuffer.from_brightness(np.full((2, 2), 180.0), RAMP)
        image = rasterizer.render(buffer)

        assert np.array_equal(image[..., 0], image[..., 1])
        assert np.array_equal(image[..., 1], image[..., 2])

    def test_background_layer_is_dimmed(self, rasterizer):
        subject = FrameBuffer(2, 1)
        background = FrameBuffer(2, 1)
        background.set_cell(0, 0, 240, RAMP)
        dimmed = rasterizer.render(subject, background)

        subject.set_cell(0, 0, 240, RAMP)
        full = rasterizer.render(subject)

        assert 0 < dimmed.max() < full.max()

    def test_render_compositor(self, rasterizer, compositor):
        compositor.tick(1 / 30)
        image = rasterizer.render_compositor(compositor)
        assert image.shape == (600, 480, 3)


class TestLiveWindowKeys:
    """Key handling works without opening a window."""

    @pytest.fixture
    def window(self, compositor, rasterizer, tmp_path):
        return LiveWindow(compositor, rasterizer=rasterizer, gif_dir=tmp_path)

    def test_cycle_wraps(self):
        assert _cycle(["a", "b", "c"], "c") == "a"
        assert _cycle(["a", "b"], "missing") == "a"

    def test_escape_stops(self, window):
        window.running = True
        window.handle_key(pygame.K_ESCAPE)
        assert not window.running

    def test_cycle_keys(self, window):
        comp = window.compositor
        window.handle_key(pygame.K_b)
        window.handle_key(pygame.K_t)
        window.handle_key(pygame.K_a)
        window.handle_key(pygame.K_m)
        window.handle_key(pygame.K_c)

        assert comp.background.effect.value == "particles"
        assert comp.transition.effect.value == "crossfade"
        assert comp.rotation.style.value == "shimmer"
        assert comp.context.theme == "light"
        assert comp.context.character_style == "blocks"

    def test_speed_keys(self, window):
        window.handle_key(pygame.K_PLUS)
        assert window.compositor.rotation.speed == 1.25
        window.handle_key(pygame.K_MINUS)
        window.handle_key(pygame.K_MINUS)
        assert window.compositor.rotation.speed == 0.75

    def test_recording_saves_gif(self, window, tmp_path):
        window.handle_key(pygame.K_g)
        recorder = window.recorder
        assert recorder is not None
        recorder.duration = 0.2

        image = np.zeros((8, 8, 3), dtype=np.uint8)
        for i in range(4):
            window.compositor.elapsed = i * 0.1
            window._offer_to_recorder(image + i * 50)

        assert window.recorder is None
        assert len(list(tmp_path.glob("glyphscope_*.gif"))) == 1
