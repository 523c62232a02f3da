"""Tests for the transition engine."""

import numpy as np
import pytest

from glyphscope.core.buffer import FrameBuffer
from glyphscope.core.mapper import CHARACTER_SETS
from glyphscope.engines.transitions import (
    TransitionEffect,
    TransitionEngine,
    dissolve_thresholds,
    ease_in_out_cubic,
    parse_transition,
)

RAMP = CHARACTER_SETS["detailed"]


@pytest.fixture
def frames():
    """An all-dark 'from' frame and a bright 'to' frame, 20x10."""
    dark = FrameBuffer(20, 10)
    bright = FrameBuffer.from_brightness(np.full((10, 20), 200.0), RAMP)
    return dark, bright


class TestEasing:
    def test_endpoints_and_midpoint(self):
        assert ease_in_out_cubic(0.0) == 0.0
        assert ease_in_out_cubic(0.5) == pytest.approx(0.5)
        assert ease_in_out_cubic(1.0) == 1.0

    def test_monotonic(self):
        values = [ease_in_out_cubic(t) for t in np.linspace(0, 1, 101)]
        assert values == sorted(values)

    def test_dissolve_thresholds_in_unit_range(self):
        t = dissolve_thresholds(50, 80)
        assert t.shape == (50, 80)
        assert t.min() >= 0.0 and t.max() < 1.0


class TestTransitionEngine:
    """Tests for the idle/active state machine and blend strategies."""

    def test_completes_after_duration(self, context):
        engine = TransitionEngine(context, duration=0.5)
        engine.start()
        assert engine.is_transitioning

        engine.update(0.25)
        assert engine.is_transitioning
        engine.update(0.25)

        assert not engine.get_is_transitioning()
        assert engine.progress == 1.0

    def test_repeated_updates_finish_on_target(self, context, frames):
        dark, bright = frames
        engine = TransitionEngine(context, "morph", duration=0.5)
        engine.start()
        elapsed = 0.0
        while elapsed < engine.duration:
            engine.update(1 / 60)
            elapsed += 1 / 60

        assert not engine.get_is_transitioning()
        assert engine.apply(dark, bright) == bright

    def test_idle_apply_returns_target(self, context, frames):
        dark, bright = frames
        engine = TransitionEngine(context)

        assert engine.apply(dark, bright) is bright

    def test_finished_apply_returns_target(self, context, frames):
        dark, bright = frames
        engine = TransitionEngine(context, "crossfade", duration=0.5)
        engine.start()
        engine.update(1.0)

        assert engine.apply(dark, bright) is bright

    def test_mismatched_grids_return_target(self, context, frames):
        _, bright = frames
        engine = TransitionEngine(context)
        engine.start()

        assert engine.apply(FrameBuffer(5, 5), bright) is bright

    @pytest.mark.parametrize("effect", [e.value for e in TransitionEffect])
    def test_every_effect_blends(self, context, frames, effect):
        dark, bright = frames
        engine = TransitionEngine(context, effect)
        engine.start()
        engine.update(0.25)

        out = engine.apply(dark, bright)

        assert out is not bright
        assert out.shape == bright.shape
        assert out.brightness.min() >= 0.0 and out.brightness.max() <= 255.0

    def test_crossfade_midpoint(self, context, frames):
        dark, bright = frames
        engine = TransitionEngine(context, "crossfade")

        out = engine.crossfade(dark, bright, 0.5)

        assert np.allclose(out.brightness, 100.0)

    @pytest.mark.parametrize("effect", ["spiral", "dissolve"])
    def test_binary_effects_pick_whole_cells(self, context, frames, effect):
        dark, bright = frames
        engine = TransitionEngine(context, effect)
        strategy = getattr(engine, effect)

        assert strategy(dark, bright, 0.0) == dark
        assert strategy(dark, bright, 1.0) == bright

        mid = strategy(dark, bright, 0.5)
        assert set(np.unique(mid.brightness).tolist()) <= {0.0, 200.0}

    def test_morph_ends_on_target(self, context, frames):
        dark, bright = frames
        engine = TransitionEngine(context, "morph")

        out = engine.morph(dark, bright, 1.0)
        assert np.allclose(out.brightness, bright.brightness)

    def test_zoom_hides_both_frames_halfway(self, context, frames):
        dark, bright = frames
        engine = TransitionEngine(context, "zoom")

        assert not engine.zoom(dark, bright, 0.5).brightness.any()
        assert np.allclose(engine.zoom(dark, bright, 1.0).brightness, 200.0)

    def test_invalid_duration_raises(self, context):
        with pytest.raises(ValueError):
            TransitionEngine(context, duration=0)
        engine = TransitionEngine(context)
        with pytest.raises(ValueError):
            engine.set_duration(-1)

    def test_unknown_effect_raises(self):
        with pytest.raises(ValueError, match="transition"):
            parse_transition("wipe")
