"""
Compositor and render loop.

Owns the render context, the engines and the three long-lived frame
buffers (current, previous snapshot, background). Selection methods and
setters only record intent; all per-frame mutation happens in ``tick``,
which runs the engines in a fixed order:

    transition snapshot -> rotation/time update -> transition progress
    -> background -> subject field -> rotated subject -> transition blend
"""

import logging
import math
from enum import Enum

import numpy as np
from PIL import Image

from glyphscope.config import AnimatorConfig
from glyphscope.core.buffer import FrameBuffer
from glyphscope.core.context import RenderContext
from glyphscope.core.converter import DepthMapConverter, RasterInput
from glyphscope.engines.backgrounds import BackgroundEngine
from glyphscope.engines.rotation import RotationEngine
from glyphscope.engines.shapes import ShapeGenerator, parse_shape
from glyphscope.engines.transitions import TransitionEngine
from glyphscope.io.camera import CameraCapture

logger = logging.getLogger(__name__)

MAX_DT = 0.1
UPLOAD_SPEED = 0.5


class SubjectKind(str, Enum):
    EMOJI = "emoji"
    SHAPE = "shape"
    IMAGE = "image"
    CAMERA = "camera"


def emoji_size(cols: int, rows: int) -> tuple[int, int]:
    return min(120, int(cols * 0.8)), min(100, int(rows * 0.8))


def shape_size(cols: int, rows: int) -> tuple[int, int]:
    return min(100, int(cols * 0.7)), min(80, int(rows * 0.7))


def image_size(cols: int, rows: int) -> tuple[int, int]:
    return min(180, int(cols * 0.95)), min(140, int(rows * 0.95))


class Compositor:
    """
    Drives one animated subject over an animated background.

    Args:
        config: Runtime options. Defaults are used if None.
        converter: Depth-map converter; built from ``config.font_path``
            if None.
        camera: Camera source used by ``start_camera``; built lazily from
            ``config.camera_device`` if None.
        load_initial: Load the subject named by ``config`` right away.
    """

    def __init__(
        self,
        config: AnimatorConfig | None = None,
        converter: DepthMapConverter | None = None,
        camera: CameraCapture | None = None,
        load_initial: bool = True,
    ):
        self.config = config or AnimatorConfig()
        self.config.validate()
        cfg = self.config

        self.context = RenderContext(
            character_style=cfg.character_style,
            theme=cfg.theme,
            seed=cfg.seed,
        )
        self.context.resize(cfg.width, cfg.height)

        self.converter = converter or DepthMapConverter(font_path=cfg.font_path)
        self.camera = camera
        self.shapes = ShapeGenerator()
        self.rotation = RotationEngine(self.context, cfg.animation_style, cfg.speed)
        self.background = BackgroundEngine(self.context, cfg.background_effect)
        self.transition = TransitionEngine(
            self.context, cfg.transition_effect, cfg.transition_duration
        )

        self._allocate_buffers()

        # Subject selection: exactly one payload is set for the active kind.
        self.subject: SubjectKind | None = None
        self.current_emoji: str | None = None
        self.current_shape = None
        self.current_image: RasterInput | None = None
        self.subject_field: np.ndarray | None = None

        self._transition_pending = False
        self.elapsed = 0.0
        self.frame_count = 0

        if load_initial:
            self._load_initial()

    # ---- setup -----------------------------------------------------------

    def _allocate_buffers(self):
        self.current = self.context.create_buffer()
        self.previous = self.context.create_buffer()
        self.background_buffer = self.context.create_buffer()
        self.display = self.current

    def _load_initial(self):
        """Show the configured subject without a transition."""
        cfg = self.config
        if cfg.image_path is not None and cfg.shape is None:
            with Image.open(cfg.image_path) as img:
                self.select_uploaded_image(img.convert("RGBA"))
        else:
            if cfg.shape is not None:
                self.select_shape(cfg.shape)
            elif not (cfg.camera and self.start_camera()):
                self.select_emoji(cfg.emoji)
            self.rotation.set_speed(cfg.speed)
        self._transition_pending = False

    @property
    def cols(self) -> int:
        return self.context.cols

    @property
    def rows(self) -> int:
        return self.context.rows

    @property
    def camera_active(self) -> bool:
        return self.subject is SubjectKind.CAMERA

    # ---- subject selection -----------------------------------------------

    def _set_subject(self, kind: SubjectKind, field: np.ndarray | None, payload=None):
        self.subject = kind
        self.current_emoji = payload if kind is SubjectKind.EMOJI else None
        self.current_shape = payload if kind is SubjectKind.SHAPE else None
        self.current_image = payload if kind is SubjectKind.IMAGE else None
        if field is not None:
            self.subject_field = field
        self._transition_pending = True

    def select_emoji(self, glyph: str) -> bool:
        """
        Show an emoji. Returns False when ignored (same emoji already
        showing, or a transition in flight).
        """
        if self.transition.is_transitioning:
            return False
        if self.subject is SubjectKind.EMOJI and glyph == self.current_emoji:
            return False
        field = self.converter.from_glyph(glyph, *emoji_size(self.cols, self.rows))
        self._release_camera()
        self._set_subject(SubjectKind.EMOJI, field, glyph)
        self.rotation.set_speed(1.0)
        logger.info("Selected emoji %s", glyph)
        return True

    def select_shape(self, shape) -> bool:
        kind = parse_shape(shape)
        if self.transition.is_transitioning:
            return False
        if self.subject is SubjectKind.SHAPE and kind is self.current_shape:
            return False
        field = self.shapes.generate(kind, *shape_size(self.cols, self.rows))
        self._release_camera()
        self._set_subject(SubjectKind.SHAPE, field, kind)
        self.rotation.set_speed(1.0)
        logger.info("Selected shape %s", kind.value)
        return True

    def select_uploaded_image(self, image: RasterInput) -> bool:
        """
        Show a decoded image (Pillow image or uint8 array).

        Uploaded photos rotate at the minimum speed so they stay legible.
        """
        if self.transition.is_transitioning:
            return False
        field = self.converter.from_raster(image, *image_size(self.cols, self.rows))
        self._release_camera()
        self._set_subject(SubjectKind.IMAGE, field, image)
        self.rotation.set_speed(UPLOAD_SPEED)
        logger.info("Selected uploaded image")
        return True

    def start_camera(self) -> bool:
        """
        Switch to the live camera.

        Returns:
            True if the camera is now the subject. False if it already
            was, a transition is in flight, or the device failed to open.
        """
        if self.camera_active or self.transition.is_transitioning:
            return False
        if self.camera is None:
            self.camera = CameraCapture(self.config.camera_device)
        if not self.camera.start():
            logger.warning("Camera unavailable, keeping the current subject")
            return False
        # Keep the old field on screen until the first frame arrives.
        self._set_subject(SubjectKind.CAMERA, None)
        logger.info("Camera subject active")
        return True

    def stop_camera(self) -> bool:
        """
        Release the camera and fall back to the configured emoji.

        The device is always released, even mid-transition, so no tick
        can read from a closed capture.
        """
        if not self.camera_active:
            return False
        glyph = self.config.emoji
        field = self.converter.from_glyph(glyph, *emoji_size(self.cols, self.rows))
        self._release_camera()
        logger.info("Camera released")
        transitioning = self.transition.is_transitioning
        self._set_subject(SubjectKind.EMOJI, field, glyph)
        if transitioning:
            self._transition_pending = False
        return True

    def _release_camera(self):
        if self.camera is not None and self.camera.is_active:
            self.camera.stop()

    # ---- settings --------------------------------------------------------

    def set_background_effect(self, effect):
        self.background.set_effect(effect)

    def set_transition_effect(self, effect):
        self.transition.set_effect(effect)

    def set_transition_duration(self, duration: float):
        self.transition.set_duration(duration)

    def set_animation_style(self, style):
        self.rotation.set_animation_style(style)

    def set_theme(self, theme: str):
        self.context.set_theme(theme)

    def set_character_style(self, style: str):
        self.context.set_character_style(style)

    def set_speed(self, speed: float):
        self.rotation.set_speed(speed)

    # ---- display surface -------------------------------------------------

    def resize(self, width_px: int, height_px: int) -> bool:
        """
        Recompute the character grid for a new surface size.

        Buffers are reallocated and the active subject's field is rebuilt
        at the new size. Returns True if the grid changed.
        """
        if not self.context.resize(width_px, height_px):
            return False
        self._allocate_buffers()
        self.background.resize()
        self._rebuild_subject_field()
        logger.debug("Grid resized to %dx%d", self.cols, self.rows)
        return True

    def _rebuild_subject_field(self):
        if self.subject is SubjectKind.EMOJI:
            self.subject_field = self.converter.from_glyph(
                self.current_emoji, *emoji_size(self.cols, self.rows)
            )
        elif self.subject is SubjectKind.IMAGE:
            self.subject_field = self.converter.from_raster(
                self.current_image, *image_size(self.cols, self.rows)
            )
        elif self.subject is SubjectKind.SHAPE:
            self.subject_field = self.shapes.generate(
                self.current_shape, *shape_size(self.cols, self.rows)
            )

    # ---- render loop -----------------------------------------------------

    def _acquire_subject_field(self):
        """Refresh the field for subjects that change every frame."""
        try:
            if self.subject is SubjectKind.SHAPE:
                self.subject_field = self.shapes.generate(
                    self.current_shape, *shape_size(self.cols, self.rows)
                )
            elif self.subject is SubjectKind.CAMERA and self.camera is not None:
                frame = self.camera.latest_frame()
                if frame is not None:
                    self.subject_field = self.converter.from_raster(
                        frame, *image_size(self.cols, self.rows)
                    )
        except Exception:
            logger.exception("Failed to refresh the %s field", self.subject)

    def tick(self, dt: float) -> FrameBuffer:
        """
        Advance every engine by ``dt`` seconds and compose one frame.

        ``dt`` is clamped to [0, 0.1] so a stall never causes a large
        jump. Returns the frame to draw (the current buffer, or a blended
        buffer while a transition runs).
        """
        dt = float(dt)
        if not math.isfinite(dt):
            dt = 0.0
        dt = min(max(dt, 0.0), MAX_DT)

        if self._transition_pending:
            self.previous = self.current.clone()
            self.transition.start()
            self._transition_pending = False

        self.rotation.update(dt)
        self.shapes.update_time(dt)
        self.transition.update(dt)
        self.background.render(self.background_buffer, dt)

        self._acquire_subject_field()
        self.current.clear()
        if self.subject_field is not None:
            self.rotation.render_rotated(self.subject_field, self.current)

        self.display = self.transition.apply(self.previous, self.current)
        self.elapsed += dt
        self.frame_count += 1
        return self.display

    def close(self):
        self._release_camera()
