"""Animated 3D ASCII art from emoji, shapes, images and the camera."""

from glyphscope.compositor import Compositor
from glyphscope.config import AnimatorConfig
from glyphscope.core.converter import DepthMapConverter
from glyphscope.core.context import RenderContext

__version__ = "0.1.0"
__all__ = [
    "AnimatorConfig",
    "Compositor",
    "DepthMapConverter",
    "RenderContext",
]
