"""
Frame buffer: a fixed-size grid of (glyph, brightness) cells.

The buffer is the common currency between the engines. Glyphs are
resolved at write time, so swapping the character ramp later never
rewrites cells that were already rendered.
"""

from __future__ import annotations

import numpy as np

from glyphscope.core.mapper import glyph_for, glyphs_for

BLANK = " "


class FrameBuffer:
    """Two parallel (rows, cols) arrays: ``glyphs`` and ``brightness``."""

    def __init__(self, cols: int, rows: int):
        if cols <= 0 or rows <= 0:
            raise ValueError(f"Buffer size must be positive, got {cols}x{rows}")
        self.cols = int(cols)
        self.rows = int(rows)
        self.glyphs = np.full((self.rows, self.cols), BLANK, dtype="<U1")
        self.brightness = np.zeros((self.rows, self.cols), dtype=np.float32)

    @property
    def shape(self) -> tuple[int, int]:
        return (self.rows, self.cols)

    def clear(self):
        self.glyphs.fill(BLANK)
        self.brightness.fill(0.0)

    def clone(self) -> FrameBuffer:
        """Structural value copy; the clone shares no storage with self."""
        other = FrameBuffer.__new__(FrameBuffer)
        other.cols = self.cols
        other.rows = self.rows
        other.glyphs = self.glyphs.copy()
        other.brightness = self.brightness.copy()
        return other

    def set_cell(self, x: int, y: int, brightness: float, ramp):
        """Write one cell; out-of-bounds coordinates are ignored."""
        if 0 <= x < self.cols and 0 <= y < self.rows:
            b = float(np.clip(np.nan_to_num(brightness), 0.0, 255.0))
            self.brightness[y, x] = b
            self.glyphs[y, x] = glyph_for(b, ramp)

    def write_field(self, field: np.ndarray, offset_x: int, offset_y: int, ramp):
        """
        Copy the non-zero cells of a brightness field into the buffer.

        The field is placed with its top-left corner at
        (offset_x, offset_y) and cropped to the buffer bounds. Cells the
        field leaves at zero keep their previous contents.

        Args:
            field: (H, W) brightness array.
            offset_x: Column of the field's left edge (may be negative).
            offset_y: Row of the field's top edge (may be negative).
            ramp: Character ramp used to resolve glyphs.
        """
        h, w = field.shape
        x0 = max(0, offset_x)
        y0 = max(0, offset_y)
        x1 = min(self.cols, offset_x + w)
        y1 = min(self.rows, offset_y + h)
        if x1 <= x0 or y1 <= y0:
            return

        src = np.nan_to_num(
            field[y0 - offset_y:y1 - offset_y, x0 - offset_x:x1 - offset_x],
            nan=0.0,
        )
        mask = src > 0
        if not np.any(mask):
            return

        values = np.clip(src[mask], 0.0, 255.0).astype(np.float32)
        self.brightness[y0:y1, x0:x1][mask] = values
        self.glyphs[y0:y1, x0:x1][mask] = glyphs_for(values, ramp)

    @classmethod
    def from_arrays(cls, glyphs: np.ndarray, brightness: np.ndarray) -> FrameBuffer:
        if glyphs.shape != brightness.shape:
            raise ValueError(
                f"Glyph and brightness grids differ: {glyphs.shape} vs {brightness.shape}"
            )
        buf = cls.__new__(cls)
        buf.rows, buf.cols = brightness.shape
        buf.glyphs = np.asarray(glyphs, dtype="<U1")
        buf.brightness = np.clip(
            np.nan_to_num(brightness.astype(np.float32), nan=0.0), 0.0, 255.0
        )
        return buf

    @classmethod
    def from_brightness(cls, brightness: np.ndarray, ramp) -> FrameBuffer:
        """Build a buffer whose glyphs are derived from brightness."""
        b = np.clip(np.nan_to_num(brightness.astype(np.float32), nan=0.0), 0.0, 255.0)
        return cls.from_arrays(glyphs_for(b, ramp), b)

    def __eq__(self, other):
        if not isinstance(other, FrameBuffer):
            return NotImplemented
        return (
            self.shape == other.shape
            and np.array_equal(self.glyphs, other.glyphs)
            and np.array_equal(self.brightness, other.brightness)
        )

    def __repr__(self):
        return f"FrameBuffer(cols={self.cols}, rows={self.rows})"
