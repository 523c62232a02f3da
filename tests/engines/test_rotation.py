"""Tests for the rotation engine and 3D projection."""

import math

import numpy as np
import pytest

from glyphscope.core.buffer import FrameBuffer
from glyphscope.core.mapper import glyph_for
from glyphscope.engines.rotation import (
    FOCAL_LENGTH,
    MAX_SPEED,
    MIN_SPEED,
    AnimationStyle,
    RotationEngine,
    parse_style,
    rotate_3d,
)


class TestRotate3D:
    """Tests for the brightness-as-depth projection."""

    def test_angle_zero_keeps_positions(self):
        """A uniform field facing the camera keeps every cell in place."""
        field = np.full((10, 10), 255.0, dtype=np.float32)
        out = rotate_3d(field, 0.0)

        expected = 255.0 * FOCAL_LENGTH / (FOCAL_LENGTH + 10.0)
        assert out.shape == (10, 10)
        assert np.allclose(out, expected)

    @pytest.mark.parametrize("near,far,expected", [
        # Brighter lit value is written first
        (127.5, 130.0, 127.5 * 200 / 192),
        # Brighter lit value is written last
        (122.0, 133.0, 133.0 * 200 / 205),
    ])
    def test_brightest_candidate_wins(self, near, far, expected):
        """Two cells landing on one target keep the brighter lit value."""
        field = np.zeros((1, 20), dtype=np.float32)
        field[0, 2] = near
        field[0, 15] = far

        out = rotate_3d(field, math.pi / 2)

        lit_near = near * 200 / 192
        lit_far = far * 200 / 205
        assert lit_near != pytest.approx(lit_far, abs=1.0)
        assert out[0, 10] == pytest.approx(max(lit_near, lit_far), rel=1e-5)
        assert out[0, 10] == pytest.approx(expected, rel=1e-5)
        assert np.count_nonzero(out) == 1

    def test_empty_field(self):
        out = rotate_3d(np.zeros((5, 7)), 1.0)
        assert out.shape == (5, 7)
        assert not out.any()

    def test_output_is_bounded(self):
        rng = np.random.default_rng(3)
        field = rng.random((30, 40)).astype(np.float32) * 255
        for angle in np.linspace(0, 2 * math.pi, 9):
            out = rotate_3d(field, angle)
            assert out.shape == field.shape
            assert np.isfinite(out).all()
            assert out.min() >= 0.0


class TestRotationEngine:
    """Tests for the animation state machine."""

    def test_angle_advances_and_wraps(self, context):
        engine = RotationEngine(context, speed=1.0)
        engine.update(1.0)
        assert engine.angle == pytest.approx(math.pi / 2)

        for _ in range(10):
            engine.update(1.0)
        assert 0.0 <= engine.angle < 2 * math.pi
        assert engine.time == pytest.approx(11.0)

    def test_speed_is_clamped(self, context):
        engine = RotationEngine(context)
        engine.set_speed(10)
        assert engine.speed == MAX_SPEED
        engine.set_speed(0)
        assert engine.speed == MIN_SPEED

    def test_style_switch_resets_clock(self, context):
        engine = RotationEngine(context)
        engine.update(0.5)
        engine.set_animation_style("pulse")

        assert engine.style is AnimationStyle.PULSE
        assert engine.time == 0.0
        assert engine.angle > 0.0

    def test_unknown_style_raises(self):
        with pytest.raises(ValueError, match="animation style"):
            parse_style("wobble")

    def test_default_style_is_rotation(self, context):
        field = np.zeros((8, 8), dtype=np.float32)
        field[2:6, 2:6] = 180
        engine = RotationEngine(context, style="default")

        assert np.array_equal(engine.transform(field, 0.7), rotate_3d(field, 0.7))

    @pytest.mark.parametrize("style", [s.value for s in AnimationStyle])
    def test_every_style_keeps_shape(self, context, style):
        rng = np.random.default_rng(4)
        field = (rng.random((20, 30)) * 255).astype(np.float32)
        engine = RotationEngine(context, style=style)
        engine.update(0.37)

        out = engine.transform(field)

        assert out.shape == field.shape
        assert np.isfinite(out).all()

    def test_render_rotated_centers_field(self, context):
        engine = RotationEngine(context, style="rotate")
        buffer = context.create_buffer()
        field = np.full((10, 10), 255.0, dtype=np.float32)

        engine.render_rotated(field, buffer, angle=0.0)

        rows, cols = np.nonzero(buffer.brightness)
        assert (cols.min(), cols.max()) == (35, 44)
        assert (rows.min(), rows.max()) == (20, 29)
        lit = 255.0 * FOCAL_LENGTH / (FOCAL_LENGTH + 10.0)
        assert set(buffer.glyphs[20:30, 35:45].ravel()) == {glyph_for(lit, context.ramp)}

    def test_render_uses_buffer_size(self, context):
        engine = RotationEngine(context, style="shimmer")
        buffer = FrameBuffer(20, 10)
        engine.render_rotated(np.full((4, 4), 100.0), buffer)

        assert buffer.brightness[3:7, 8:12].all()
