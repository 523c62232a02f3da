"""
Rotation and animation engine.

Transforms a subject's brightness field once per frame according to the
active animation style and writes the result, centered, into a frame
buffer. The canonical style is a fake 3D rotation about the Y axis:
brightness doubles as depth, cells are projected with perspective and
collisions are resolved by keeping the brightest candidate.
"""

import math
from enum import Enum

import numpy as np

from glyphscope.core.buffer import FrameBuffer
from glyphscope.core.context import RenderContext

FOCAL_LENGTH = 200.0
DEPTH_RANGE = 10.0
MIN_LIGHTING = 0.5

MIN_SPEED = 0.5
MAX_SPEED = 3.0
TAU = 2 * math.pi


class AnimationStyle(str, Enum):
    ROTATE = "rotate"
    PULSE = "pulse"
    WAVE = "wave"
    SPIRAL = "spiral"
    ZOOM = "zoom"
    TILT = "tilt"
    BOUNCE = "bounce"
    SPIN = "spin"
    FLOAT = "float"
    SHIMMER = "shimmer"
    DEFAULT = "default"


def parse_style(style) -> AnimationStyle:
    if isinstance(style, AnimationStyle):
        return style
    try:
        return AnimationStyle(style)
    except ValueError:
        raise ValueError(
            f"Unknown animation style {style!r}, available: {[s.value for s in AnimationStyle]}"
        ) from None


def round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5).astype(np.intp)


def rotate_3d(field: np.ndarray, angle: float) -> np.ndarray:
    """
    Rotate a brightness field about the vertical axis.

    Every non-zero cell becomes a point ``(x, y, z)`` around the field
    center with ``z = b/255 * 20 - 10``. The point is rotated by
    ``angle``, projected with ``scale = f / (f + z')`` (f = 200) and
    rounded to a target cell. Its lit brightness is
    ``b * max(0.5, scale)``; when several points land on one cell the
    brightest wins.

    Args:
        field: (H, W) brightness field.
        angle: Rotation in radians.

    Returns:
        (H, W) float32 field of the same size.
    """
    h, w = field.shape
    out = np.zeros((h, w), dtype=np.float64)
    src = np.nan_to_num(field.astype(np.float64), nan=0.0)
    ys, xs = np.nonzero(src > 0)
    if len(xs) == 0:
        return out.astype(np.float32)

    b = src[ys, xs]
    cx, cy = w / 2.0, h / 2.0
    tx = xs - cx
    ty = ys - cy
    tz = b / 255.0 * (2 * DEPTH_RANGE) - DEPTH_RANGE

    cos_a, sin_a = math.cos(angle), math.sin(angle)
    rx = tx * cos_a - tz * sin_a
    rz = tx * sin_a + tz * cos_a

    with np.errstate(divide="ignore", invalid="ignore"):
        scale = FOCAL_LENGTH / (FOCAL_LENGTH + rz)
    px = round_half_up(rx * scale + cx)
    py = round_half_up(ty * scale + cy)
    lit = b * np.maximum(MIN_LIGHTING, scale)

    keep = (px >= 0) & (px < w) & (py >= 0) & (py < h) & np.isfinite(lit)
    np.maximum.at(out, (py[keep], px[keep]), lit[keep])
    return out.astype(np.float32)


def _sample(field: np.ndarray, sx: np.ndarray, sy: np.ndarray) -> np.ndarray:
    """Gather ``field[sy, sx]``; coordinates outside the field read as 0."""
    h, w = field.shape
    sx, sy = np.broadcast_arrays(sx, sy)
    valid = (sx >= 0) & (sx < w) & (sy >= 0) & (sy < h)
    out = np.zeros(sx.shape, dtype=np.float32)
    out[valid] = field[sy[valid], sx[valid]]
    return out


def _cell_grid(field: np.ndarray):
    h, w = field.shape
    return np.mgrid[0:h, 0:w].astype(np.float64)


def _scale_about_center(field: np.ndarray, scale: float) -> np.ndarray:
    h, w = field.shape
    y, x = _cell_grid(field)
    cx, cy = w / 2.0, h / 2.0
    sx = np.floor((x - cx) * scale + cx).astype(np.intp)
    sy = np.floor((y - cy) * scale + cy).astype(np.intp)
    return _sample(field, sx, sy)


class RotationEngine:
    """
    Animation state machine over one active style.

    Owns ``angle`` (wrapped to [0, 2π)), ``time`` (seconds since the
    last style switch) and the speed multiplier.
    """

    def __init__(
        self,
        context: RenderContext | None = None,
        style=AnimationStyle.FLOAT,
        speed: float = 1.0,
    ):
        self.context = context or RenderContext()
        self.angle = 0.0
        self.time = 0.0
        self.speed = 1.0
        self.style = parse_style(style)
        self.set_speed(speed)
        self._transforms = {
            AnimationStyle.ROTATE: self.rotate,
            AnimationStyle.PULSE: self.pulse,
            AnimationStyle.WAVE: self.wave,
            AnimationStyle.SPIRAL: self.spiral,
            AnimationStyle.ZOOM: self.zoom,
            AnimationStyle.TILT: self.tilt,
            AnimationStyle.BOUNCE: self.bounce,
            AnimationStyle.SPIN: self.spin,
            AnimationStyle.FLOAT: self.floating,
            AnimationStyle.SHIMMER: self.shimmer,
            AnimationStyle.DEFAULT: self.rotate,
        }

    # ---- state -----------------------------------------------------------

    def update(self, dt: float):
        """Advance the angle at ``π/2 * speed`` rad/s and the style clock."""
        self.angle = (self.angle + (math.pi / 2) * self.speed * dt) % TAU
        self.time += dt

    def set_speed(self, speed: float):
        self.speed = max(MIN_SPEED, min(MAX_SPEED, float(speed)))

    def set_animation_style(self, style):
        """Switch styles; the style clock restarts from zero."""
        self.style = parse_style(style)
        self.time = 0.0

    # ---- rendering -------------------------------------------------------

    def transform(self, field: np.ndarray, angle: float | None = None) -> np.ndarray:
        """Apply the active style's transform to a field."""
        if angle is None:
            angle = self.angle
        return self._transforms[self.style](field, angle)

    def render_rotated(self, field: np.ndarray, buffer: FrameBuffer, angle: float | None = None):
        """
        Transform ``field`` and write it centered into ``buffer``.

        Only non-zero cells are written; cells the transformed field
        does not reach keep their contents, so callers clear the buffer
        first when they want a full redraw.
        """
        transformed = self.transform(field, angle)
        h, w = transformed.shape
        offset_x = (buffer.cols - w) // 2
        offset_y = (buffer.rows - h) // 2
        buffer.write_field(transformed, offset_x, offset_y, self.context.ramp)

    # ---- styles ----------------------------------------------------------

    def rotate(self, field: np.ndarray, angle: float) -> np.ndarray:
        return rotate_3d(field, angle)

    def spin(self, field: np.ndarray, angle: float) -> np.ndarray:
        return rotate_3d(field, self.time * 2)

    def tilt(self, field: np.ndarray, angle: float) -> np.ndarray:
        """Rotation rocking ±0.5 rad around the running angle."""
        return rotate_3d(field, angle + math.sin(self.time * 2) * 0.5)

    def spiral(self, field: np.ndarray, angle: float) -> np.ndarray:
        """Slow rotation modulated by a turning spiral of light and shade."""
        rotated = rotate_3d(field, self.time * 0.5)
        h, w = rotated.shape
        y, x = _cell_grid(rotated)
        dx, dy = x - w / 2.0, y - h / 2.0
        phase = np.arctan2(dy, dx) + np.sqrt(dx * dx + dy * dy) * 0.1 - self.time
        return (rotated * (np.sin(phase * 2) * 0.3 + 0.7)).astype(np.float32)

    def pulse(self, field: np.ndarray, angle: float) -> np.ndarray:
        return _scale_about_center(field, 1 + math.sin(self.time * 2) * 0.2)

    def zoom(self, field: np.ndarray, angle: float) -> np.ndarray:
        """Slow, deep in-and-out breathing."""
        return _scale_about_center(field, 1 + math.sin(self.time) * 0.35)

    def wave(self, field: np.ndarray, angle: float) -> np.ndarray:
        y, x = _cell_grid(field)
        offset = np.sin(x * 0.2 + self.time * 3) * 3
        sy = np.floor(y + offset).astype(np.intp)
        return _sample(field, x.astype(np.intp), sy)

    def bounce(self, field: np.ndarray, angle: float) -> np.ndarray:
        y, x = _cell_grid(field)
        lift = abs(math.sin(self.time * 3)) * 5
        sy = np.floor(y - lift).astype(np.intp)
        return _sample(field, x.astype(np.intp), sy)

    def floating(self, field: np.ndarray, angle: float) -> np.ndarray:
        y, x = _cell_grid(field)
        sx = np.floor(x + np.sin(y * 0.1 + self.time * 2) * 2).astype(np.intp)
        sy = np.floor(y + np.cos(x * 0.1 + self.time * 2) * 2).astype(np.intp)
        return _sample(field, sx, sy)

    def shimmer(self, field: np.ndarray, angle: float) -> np.ndarray:
        y, x = _cell_grid(field)
        glint = np.sin(x * 0.2 + y * 0.2 + self.time * 4) * 0.3 + 1
        return (field * glint).astype(np.float32)
