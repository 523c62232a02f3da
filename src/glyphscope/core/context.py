"""
Render context shared by every engine.

Replaces ambient global state: the compositor owns one context and
passes it to each engine constructor. Engines read the grid size and
character ramp from it on every call, so a resize or a style switch
is picked up on the next tick.
"""

from dataclasses import dataclass, field

import numpy as np

from glyphscope.core.buffer import FrameBuffer
from glyphscope.core.mapper import THEMES, get_ramp

# Pixel footprint of one glyph on the display surface.
CHAR_WIDTH = 6
CHAR_HEIGHT = 12

MIN_COLS, MAX_COLS = 80, 200
MIN_ROWS, MAX_ROWS = 50, 120


def grid_for_surface(
    width_px: int,
    height_px: int,
    char_width: int = CHAR_WIDTH,
    char_height: int = CHAR_HEIGHT,
) -> tuple[int, int]:
    """
    Character grid for a display surface.

    Returns:
        (cols, rows) clamped to the supported grid range.
    """
    if width_px <= 0 or height_px <= 0:
        raise ValueError(f"Display surface must be non-empty, got {width_px}x{height_px}")
    cols = max(MIN_COLS, min(MAX_COLS, width_px // char_width))
    rows = max(MIN_ROWS, min(MAX_ROWS, height_px // char_height))
    return cols, rows


@dataclass
class RenderContext:
    """Grid geometry, character style, theme and random source."""

    cols: int = MIN_COLS
    rows: int = MIN_ROWS
    character_style: str = "detailed"
    theme: str = "dark"
    seed: int | None = None
    rng: np.random.Generator = field(init=False, repr=False)

    def __post_init__(self):
        get_ramp(self.character_style)
        if self.theme not in THEMES:
            raise ValueError(f"Unknown theme {self.theme!r}, available: {list(THEMES)}")
        self.rng = np.random.default_rng(self.seed)

    @property
    def ramp(self) -> tuple[str, ...]:
        return get_ramp(self.character_style)

    def set_character_style(self, style: str):
        get_ramp(style)
        self.character_style = style

    def set_theme(self, theme: str):
        if theme not in THEMES:
            raise ValueError(f"Unknown theme {theme!r}, available: {list(THEMES)}")
        self.theme = theme

    def resize(self, width_px: int, height_px: int) -> bool:
        """Recompute the grid from a surface size. Returns True if it changed."""
        cols, rows = grid_for_surface(width_px, height_px)
        changed = (cols, rows) != (self.cols, self.rows)
        self.cols, self.rows = cols, rows
        return changed

    def create_buffer(self) -> FrameBuffer:
        return FrameBuffer(self.cols, self.rows)
