"""Tests for the Compositor render loop and subject selection."""

from unittest import mock

import numpy as np
import pytest
from PIL import Image

from glyphscope.compositor import MAX_DT, UPLOAD_SPEED, Compositor, SubjectKind
from glyphscope.config import AnimatorConfig


def _settle(compositor: Compositor):
    """Tick until any running transition has finished."""
    for _ in range(20):
        compositor.tick(MAX_DT)
    assert not compositor.transition.is_transitioning


class TestInitialSubject:
    """Tests for the subject loaded at construction."""

    def test_defaults_to_configured_emoji(self, compositor):
        assert compositor.subject is SubjectKind.EMOJI
        assert compositor.current_emoji == "A"
        assert compositor.subject_field is not None

    def test_first_frame_has_no_transition(self, compositor):
        compositor.tick(1 / 60)
        assert not compositor.transition.is_transitioning
        assert compositor.display is compositor.current
        assert compositor.current.brightness.any()

    def test_shape_config(self, config, converter):
        config.shape = "circle"
        comp = Compositor(config, converter=converter)

        assert comp.subject is SubjectKind.SHAPE
        assert comp.current_shape.value == "circle"

    def test_image_config(self, config, converter, tmp_path, gradient_image):
        path = tmp_path / "photo.png"
        Image.fromarray(gradient_image).save(path)
        config.image_path = str(path)
        config.speed = 2.0

        comp = Compositor(config, converter=converter)

        assert comp.subject is SubjectKind.IMAGE
        assert comp.rotation.speed == UPLOAD_SPEED

    def test_configured_speed_applies(self, config, converter):
        config.speed = 2.5
        comp = Compositor(config, converter=converter)
        assert comp.rotation.speed == 2.5

    def test_camera_config_falls_back_to_emoji(self, config, converter, make_camera):
        config.camera = True
        comp = Compositor(config, converter=converter, camera=make_camera(opened=False))

        assert comp.subject is SubjectKind.EMOJI
        assert not comp.camera_active


class TestSelection:
    """Tests for emoji, shape and upload selection."""

    def test_rapid_selection_starts_one_transition(self, compositor):
        """Two selections before a tick: one transition, the last subject wins."""
        compositor.tick(1 / 60)
        with mock.patch.object(
            compositor.transition, "start", wraps=compositor.transition.start
        ) as start:
            assert compositor.select_emoji("B")
            assert compositor.select_shape("circle")
            compositor.tick(1 / 60)

        assert start.call_count == 1
        assert compositor.subject is SubjectKind.SHAPE
        assert compositor.current_emoji is None

    def test_two_emoji_before_a_tick(self, compositor):
        compositor.tick(1 / 60)
        with mock.patch.object(
            compositor.transition, "start", wraps=compositor.transition.start
        ) as start:
            compositor.select_emoji("B")
            compositor.select_emoji("C")
            compositor.tick(1 / 60)

        assert start.call_count == 1
        assert compositor.current_emoji == "C"

    def test_selection_ignored_during_transition(self, compositor):
        compositor.tick(1 / 60)
        compositor.select_shape("star")
        compositor.tick(1 / 60)
        assert compositor.transition.is_transitioning

        assert compositor.select_shape("heart") is False
        assert compositor.select_emoji("Z") is False
        assert compositor.current_shape.value == "star"

    def test_same_subject_is_ignored(self, compositor):
        assert compositor.select_emoji("A") is False
        compositor.select_shape("circle")
        _settle(compositor)
        assert compositor.select_shape("circle") is False

    def test_transition_snapshots_previous_frame(self, compositor):
        compositor.tick(1 / 60)
        shown = compositor.current.clone()

        compositor.select_shape("square")
        compositor.tick(0.0)

        assert compositor.previous == shown
        assert compositor.previous is not compositor.current

    def test_transition_runs_to_completion(self, compositor):
        compositor.tick(1 / 60)
        compositor.select_shape("diamond")
        for _ in range(40):
            compositor.tick(1 / 60)

        assert not compositor.transition.is_transitioning
        assert compositor.display is compositor.current

    def test_selection_speeds(self, compositor, gradient_image):
        compositor.select_uploaded_image(gradient_image)
        assert compositor.subject is SubjectKind.IMAGE
        assert compositor.rotation.speed == UPLOAD_SPEED

        _settle(compositor)
        compositor.select_shape("wave")
        assert compositor.rotation.speed == 1.0

    def test_unknown_shape_raises(self, compositor):
        with pytest.raises(ValueError):
            compositor.select_shape("octagon")


class TestCamera:
    """Tests for the live camera subject."""

    def test_start_and_stop(self, config, converter, make_camera):
        camera = make_camera()
        comp = Compositor(config, converter=converter, camera=camera)
        comp.tick(1 / 60)

        assert comp.start_camera()
        assert comp.camera_active
        assert camera.is_active

        assert comp.stop_camera()
        assert not camera.is_active
        assert comp.subject is SubjectKind.EMOJI
        assert comp.current_emoji == config.emoji

    def test_failed_camera_keeps_subject(self, config, converter, make_camera):
        comp = Compositor(config, converter=converter, camera=make_camera(opened=False))

        assert comp.start_camera() is False
        assert comp.subject is SubjectKind.EMOJI

    def test_stop_during_transition_releases_device(self, config, converter, make_camera):
        camera = make_camera()
        comp = Compositor(config, converter=converter, camera=camera)
        comp.tick(1 / 60)
        comp.start_camera()
        comp.tick(1 / 60)
        assert comp.transition.is_transitioning

        assert comp.stop_camera()
        assert not camera.is_active

    def test_selecting_a_shape_releases_camera(self, config, converter, make_camera):
        camera = make_camera()
        comp = Compositor(config, converter=converter, camera=camera)
        comp.start_camera()

        comp.select_shape("circle")
        assert not camera.is_active
        assert comp.subject is SubjectKind.SHAPE

    def test_stop_without_camera(self, compositor):
        assert compositor.stop_camera() is False


class TestTick:
    """Tests for the per-frame update."""

    def test_dt_is_clamped(self, compositor):
        compositor.tick(5.0)
        assert compositor.elapsed == pytest.approx(MAX_DT)

        compositor.tick(-1.0)
        compositor.tick(float("nan"))
        assert compositor.elapsed == pytest.approx(MAX_DT)
        assert compositor.frame_count == 3

    def test_background_is_separate_layer(self, compositor):
        compositor.tick(1 / 30)
        assert compositor.background_buffer is not compositor.current
        assert compositor.background_buffer.brightness.any()

    def test_settings_pass_through(self, compositor):
        compositor.set_background_effect("waves")
        compositor.set_transition_effect("dissolve")
        compositor.set_transition_duration(1.5)
        compositor.set_animation_style("spin")
        compositor.set_theme("blue")
        compositor.set_character_style("blocks")
        compositor.set_speed(9)

        assert compositor.background.effect.value == "waves"
        assert compositor.transition.effect.value == "dissolve"
        assert compositor.transition.duration == 1.5
        assert compositor.rotation.style.value == "spin"
        assert compositor.context.theme == "blue"
        assert compositor.context.character_style == "blocks"
        assert compositor.rotation.speed == 3.0

    def test_resize_reallocates_buffers(self, compositor):
        assert compositor.resize(1200, 800) is True
        assert (compositor.cols, compositor.rows) == (200, 66)
        assert compositor.current.shape == (66, 200)
        assert compositor.background_buffer.shape == (66, 200)

        frame = compositor.tick(1 / 60)
        assert frame.shape == (66, 200)

    def test_resize_without_grid_change(self, compositor):
        assert compositor.resize(300, 300) is False

    def test_resize_mid_transition(self, compositor):
        compositor.tick(1 / 60)
        compositor.select_shape("hexagon")
        compositor.tick(1 / 60)
        compositor.resize(900, 900)

        frame = compositor.tick(1 / 60)
        assert frame.shape == (compositor.rows, compositor.cols)

    def test_invalid_config_raises(self):
        with pytest.raises(ValueError):
            Compositor(AnimatorConfig(theme="sepia"))

    def test_subject_stays_inside_grid(self, compositor):
        for shape in ("circle", "cube", "mandala"):
            _settle(compositor)
            compositor.select_shape(shape)
            frame = compositor.tick(1 / 60)
            assert np.isfinite(frame.brightness).all()
