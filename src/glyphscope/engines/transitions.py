"""
Transition engine.

Blends the snapshot of the previous frame into the current one while a
transition is in flight. Progress is eased with an in-out cubic curve
before it reaches the blend strategy.
"""

import math
from enum import Enum

import numpy as np

from glyphscope.core.buffer import FrameBuffer
from glyphscope.core.context import RenderContext

DEFAULT_DURATION = 0.5
MORPH_AMPLITUDE = 5.0


class TransitionEffect(str, Enum):
    CROSSFADE = "crossfade"
    ZOOM = "zoom"
    SPIRAL = "spiral"
    DISSOLVE = "dissolve"
    MORPH = "morph"


def parse_transition(effect) -> TransitionEffect:
    if isinstance(effect, TransitionEffect):
        return effect
    try:
        return TransitionEffect(effect)
    except ValueError:
        raise ValueError(
            f"Unknown transition {effect!r}, available: {[e.value for e in TransitionEffect]}"
        ) from None


def ease_in_out_cubic(t: float) -> float:
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2


def dissolve_thresholds(rows: int, cols: int) -> np.ndarray:
    """Per-cell pseudo-random threshold in [0, 1): ``fract(sin(12.9898x + 78.233y) * 43758.5453)``."""
    y, x = np.mgrid[0:rows, 0:cols].astype(np.float64)
    v = np.sin(x * 12.9898 + y * 78.233) * 43758.5453
    return v - np.floor(v)


class TransitionEngine:
    """
    ``idle -> active -> idle`` state machine.

    ``start()`` arms the transition at progress 0; ``update(dt)``
    advances progress by ``dt / duration`` and returns to idle once it
    reaches 1. While idle, ``apply`` returns the target buffer untouched.
    """

    def __init__(
        self,
        context: RenderContext | None = None,
        effect=TransitionEffect.MORPH,
        duration: float = DEFAULT_DURATION,
    ):
        if duration <= 0:
            raise ValueError(f"Transition duration must be positive, got {duration}")
        self.context = context or RenderContext()
        self.effect = parse_transition(effect)
        self.duration = float(duration)
        self.is_transitioning = False
        self.progress = 0.0
        self.elapsed = 0.0
        self._strategies = {
            TransitionEffect.CROSSFADE: self.crossfade,
            TransitionEffect.ZOOM: self.zoom,
            TransitionEffect.SPIRAL: self.spiral,
            TransitionEffect.DISSOLVE: self.dissolve,
            TransitionEffect.MORPH: self.morph,
        }

    def start(self):
        self.is_transitioning = True
        self.progress = 0.0
        self.elapsed = 0.0

    def update(self, dt: float):
        if not self.is_transitioning:
            return
        # Progress derives from accumulated time, not summed fractions
        self.elapsed += dt
        self.progress = min(self.elapsed / self.duration, 1.0)
        if self.elapsed >= self.duration:
            self.progress = 1.0
            self.is_transitioning = False

    def get_is_transitioning(self) -> bool:
        return self.is_transitioning

    def set_effect(self, effect):
        self.effect = parse_transition(effect)

    def set_duration(self, duration: float):
        if duration <= 0:
            raise ValueError(f"Transition duration must be positive, got {duration}")
        self.duration = float(duration)

    @property
    def alpha(self) -> float:
        return ease_in_out_cubic(self.progress)

    def apply(self, buffer_from: FrameBuffer, buffer_to: FrameBuffer) -> FrameBuffer:
        """
        Blend ``buffer_from`` into ``buffer_to`` with the active strategy.

        Returns a new buffer while transitioning, else ``buffer_to``
        itself. Mismatched grids (after a resize) also return
        ``buffer_to``.
        """
        if not self.is_transitioning or buffer_from.shape != buffer_to.shape:
            return buffer_to
        return self._strategies[self.effect](buffer_from, buffer_to, self.alpha)

    # ---- strategies ------------------------------------------------------

    def _from_brightness(self, brightness: np.ndarray) -> FrameBuffer:
        return FrameBuffer.from_brightness(brightness, self.context.ramp)

    def crossfade(self, buffer_from: FrameBuffer, buffer_to: FrameBuffer, alpha: float) -> FrameBuffer:
        blended = buffer_from.brightness * (1 - alpha) + buffer_to.brightness * alpha
        return self._from_brightness(blended)

    def zoom(self, buffer_from: FrameBuffer, buffer_to: FrameBuffer, alpha: float) -> FrameBuffer:
        """
        Punch through the center: the old frame swells and fades out,
        then the new frame shrinks back into place and fades in.
        """
        rows, cols = buffer_to.shape
        scale = 1 + math.sin(alpha * math.pi) * 0.5
        if alpha < 0.5:
            source, source_alpha = buffer_from, 1 - alpha * 2
        else:
            source, source_alpha = buffer_to, (alpha - 0.5) * 2

        cx, cy = cols / 2.0, rows / 2.0
        y, x = np.mgrid[0:rows, 0:cols].astype(np.float64)
        sx = np.floor(cx + (x - cx) / scale).astype(np.intp)
        sy = np.floor(cy + (y - cy) / scale).astype(np.intp)
        valid = (sx >= 0) & (sx < cols) & (sy >= 0) & (sy < rows)

        brightness = np.zeros((rows, cols), dtype=np.float32)
        brightness[valid] = source.brightness[sy[valid], sx[valid]] * source_alpha
        return self._from_brightness(brightness)

    def spiral(self, buffer_from: FrameBuffer, buffer_to: FrameBuffer, alpha: float) -> FrameBuffer:
        """Sweep the new frame in along a spiral front."""
        rows, cols = buffer_to.shape
        cx, cy = cols / 2.0, rows / 2.0
        max_dist = math.sqrt(cx * cx + cy * cy)
        y, x = np.mgrid[0:rows, 0:cols].astype(np.float64)
        dx, dy = x - cx, y - cy
        dist = np.sqrt(dx * dx + dy * dy)
        threshold = np.mod(dist / max_dist + np.arctan2(dy, dx) / (2 * math.pi), 1.0)
        return self._select(buffer_from, buffer_to, threshold < alpha)

    def dissolve(self, buffer_from: FrameBuffer, buffer_to: FrameBuffer, alpha: float) -> FrameBuffer:
        rows, cols = buffer_to.shape
        return self._select(buffer_from, buffer_to, dissolve_thresholds(rows, cols) < alpha)

    def morph(self, buffer_from: FrameBuffer, buffer_to: FrameBuffer, alpha: float) -> FrameBuffer:
        """
        Crossfade in which the old frame is read through a sinusoidal warp.

        The warp peaks at 5 cells mid-transition and relaxes to nothing
        at either end.
        """
        rows, cols = buffer_to.shape
        offset = math.sin(alpha * math.pi) * MORPH_AMPLITUDE
        y, x = np.mgrid[0:rows, 0:cols].astype(np.float64)
        sx = np.floor(x + offset * np.sin(y * 0.5)).astype(np.intp)
        sy = np.floor(y + offset * np.cos(x * 0.5)).astype(np.intp)
        valid = (sx >= 0) & (sx < cols) & (sy >= 0) & (sy < rows)

        warped = np.zeros((rows, cols), dtype=np.float32)
        warped[valid] = buffer_from.brightness[sy[valid], sx[valid]]
        blended = warped * (1 - alpha) + buffer_to.brightness * alpha
        return self._from_brightness(blended)

    @staticmethod
    def _select(buffer_from: FrameBuffer, buffer_to: FrameBuffer, take_to: np.ndarray) -> FrameBuffer:
        """Per-cell binary choice; glyphs travel with their cells."""
        glyphs = np.where(take_to, buffer_to.glyphs, buffer_from.glyphs)
        brightness = np.where(take_to, buffer_to.brightness, buffer_from.brightness)
        return FrameBuffer.from_arrays(glyphs, brightness)
