"""Core data model: mapping, buffers, context and the depth-map pipeline."""

from glyphscope.core.buffer import FrameBuffer
from glyphscope.core.context import RenderContext, grid_for_surface
from glyphscope.core.converter import DepthMapConverter
from glyphscope.core.mapper import (
    CHARACTER_SETS,
    THEMES,
    color_for,
    glyph_for,
    glyphs_for,
    rgb_array,
    rgb_for,
)

__all__ = [
    "CHARACTER_SETS",
    "THEMES",
    "DepthMapConverter",
    "FrameBuffer",
    "RenderContext",
    "color_for",
    "glyph_for",
    "glyphs_for",
    "grid_for_surface",
    "rgb_array",
    "rgb_for",
]
