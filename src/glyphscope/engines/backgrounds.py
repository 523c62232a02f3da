"""
Background effects engine.

Fills the full-grid background buffer once per tick. Matrix rain keeps
per-column state across frames; every other effect is recomputed from
scratch as a function of the effect clock.
"""

import math
from enum import Enum

import numpy as np

from glyphscope.core.buffer import BLANK, FrameBuffer
from glyphscope.core.context import RenderContext

MATRIX_GLYPHS = np.array(["0", "1", "|", "/", "\\", "-", "+", "*"], dtype="<U1")
MATRIX_FADE = 0.95
MATRIX_CUTOFF = 5.0
MATRIX_ROWS_PER_SECOND = 30.0
MATRIX_HEAD_BOOST = 1.2

PARTICLE_COUNT = 50
STAR_COUNT = 100


class BackgroundEffect(str, Enum):
    MATRIX = "matrix"
    PARTICLES = "particles"
    WAVES = "waves"
    STARFIELD = "starfield"
    GEOMETRIC = "geometric"


def parse_effect(effect) -> BackgroundEffect:
    if isinstance(effect, BackgroundEffect):
        return effect
    try:
        return BackgroundEffect(effect)
    except ValueError:
        raise ValueError(
            f"Unknown background effect {effect!r}, available: {[e.value for e in BackgroundEffect]}"
        ) from None


class BackgroundEngine:
    """Animated background layer with one active effect."""

    def __init__(self, context: RenderContext | None = None, effect=BackgroundEffect.MATRIX):
        self.context = context or RenderContext()
        self.effect = parse_effect(effect)
        self.time = 0.0

        # Matrix rain columns: head row, fall speed, head brightness.
        self.column_y = np.zeros(0)
        self.column_speed = np.zeros(0)
        self.column_brightness = np.zeros(0)
        self.init_matrix()

        self._renderers = {
            BackgroundEffect.MATRIX: self.render_matrix,
            BackgroundEffect.PARTICLES: self.render_particles,
            BackgroundEffect.WAVES: self.render_waves,
            BackgroundEffect.STARFIELD: self.render_starfield,
            BackgroundEffect.GEOMETRIC: self.render_geometric,
        }

    @property
    def rng(self) -> np.random.Generator:
        return self.context.rng

    def init_matrix(self, cols: int | None = None, rows: int | None = None):
        """Scatter one rain column per grid column at random heights."""
        cols = self.context.cols if cols is None else cols
        rows = self.context.rows if rows is None else rows
        self.column_y = self.rng.random(cols) * rows
        self.column_speed = 0.5 + self.rng.random(cols) * 1.5
        self.column_brightness = 100 + self.rng.random(cols) * 155

    def set_effect(self, effect):
        """Switch effects; the clock restarts and matrix columns are reseeded."""
        self.effect = parse_effect(effect)
        self.time = 0.0
        if self.effect is BackgroundEffect.MATRIX:
            self.init_matrix()

    def resize(self):
        self.init_matrix()

    def render(self, buffer: FrameBuffer, dt: float):
        """Advance the active effect by ``dt`` and draw it into ``buffer``."""
        self._renderers[self.effect](buffer, dt)
        np.clip(buffer.brightness, 0.0, 255.0, out=buffer.brightness)

    # ---- effects ---------------------------------------------------------

    def render_matrix(self, buffer: FrameBuffer, dt: float):
        """
        Falling glyph columns that leave fading trails.

        Every cell fades by 5% per frame and is blanked once it drops
        under 5. Column heads move ``speed * dt * 30`` rows and are
        reseeded at the top after leaving the bottom.
        """
        self.time += dt
        rows, cols = buffer.rows, buffer.cols
        if len(self.column_y) != cols:
            self.init_matrix(cols, rows)

        buffer.brightness *= MATRIX_FADE
        dim = buffer.brightness < MATRIX_CUTOFF
        buffer.brightness[dim] = 0.0
        buffer.glyphs[dim] = BLANK

        self.column_y += self.column_speed * dt * MATRIX_ROWS_PER_SECOND
        done = self.column_y > rows
        n_done = int(done.sum())
        if n_done:
            self.column_y[done] = 0.0
            self.column_speed[done] = 0.5 + self.rng.random(n_done) * 1.5
            self.column_brightness[done] = 100 + self.rng.random(n_done) * 155

        heads = np.floor(self.column_y).astype(np.intp)
        on_grid = (heads >= 0) & (heads < rows)
        xs = np.nonzero(on_grid)[0]
        ys = heads[on_grid]
        buffer.glyphs[ys, xs] = MATRIX_GLYPHS[self.rng.integers(0, len(MATRIX_GLYPHS), len(xs))]
        buffer.brightness[ys, xs] = np.minimum(
            255.0, self.column_brightness[on_grid] * MATRIX_HEAD_BOOST
        )

    def render_particles(self, buffer: FrameBuffer, dt: float):
        """Fifty dots drifting on closed Lissajous-like orbits."""
        self.time += dt
        buffer.clear()
        rows, cols = buffer.rows, buffer.cols

        i = np.arange(PARTICLE_COUNT, dtype=np.float64)
        phase = np.mod(self.time * 0.3 + i * 123.456, 1.0)
        x = np.floor((np.sin(phase * 2 * math.pi + i) * 0.5 + 0.5) * cols).astype(np.intp)
        y = np.floor((np.cos(phase * 2 * math.pi + i * 0.7) * 0.5 + 0.5) * rows).astype(np.intp)
        brightness = 150 + np.sin(phase * 2 * math.pi) * 100

        keep = (x >= 0) & (x < cols) & (y >= 0) & (y < rows)
        buffer.glyphs[y[keep], x[keep]] = "."
        buffer.brightness[y[keep], x[keep]] = brightness[keep]

    def render_waves(self, buffer: FrameBuffer, dt: float):
        self.time += dt
        y, x = np.mgrid[0:buffer.rows, 0:buffer.cols].astype(np.float64)
        combined = (np.sin(x * 0.2 + self.time * 2) + np.cos(y * 0.2 + self.time * 1.5)) * 0.5

        buffer.glyphs[...] = np.where(combined > 0, "~", "-")
        buffer.brightness[...] = (combined * 0.5 + 0.5) * 100

    def render_starfield(self, buffer: FrameBuffer, dt: float):
        """A hundred fixed stars twinkling out of phase."""
        self.time += dt
        buffer.clear()
        rows, cols = buffer.rows, buffer.cols

        i = np.arange(STAR_COUNT, dtype=np.float64)
        seed = i * 12345.6789
        x = np.floor((np.sin(seed) * 0.5 + 0.5) * cols).astype(np.intp)
        y = np.floor((np.cos(seed) * 0.5 + 0.5) * rows).astype(np.intp)
        twinkle = np.sin(self.time * 3 + i) * 0.5 + 0.5

        keep = (x >= 0) & (x < cols) & (y >= 0) & (y < rows)
        buffer.glyphs[y[keep], x[keep]] = "*"
        buffer.brightness[y[keep], x[keep]] = 100 + twinkle[keep] * 155

    def render_geometric(self, buffer: FrameBuffer, dt: float):
        """Radial six-fold interference rippling outward."""
        self.time += dt
        y, x = np.mgrid[0:buffer.rows, 0:buffer.cols].astype(np.float64)
        dx = x - buffer.cols / 2.0
        dy = y - buffer.rows / 2.0
        dist = np.sqrt(dx * dx + dy * dy)
        angle = np.arctan2(dy, dx)

        pattern = np.sin(dist * 0.5 - self.time * 2) * np.cos(angle * 6 + self.time)
        buffer.glyphs[...] = np.where(pattern > 0, "#", "+")
        buffer.brightness[...] = (pattern * 0.5 + 0.5) * 120
