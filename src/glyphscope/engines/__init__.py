"""Animation engines: shapes, rotation, backgrounds and transitions."""

from glyphscope.engines.backgrounds import BackgroundEffect, BackgroundEngine
from glyphscope.engines.rotation import AnimationStyle, RotationEngine, rotate_3d
from glyphscope.engines.shapes import Shape, ShapeGenerator
from glyphscope.engines.transitions import TransitionEffect, TransitionEngine

__all__ = [
    "AnimationStyle",
    "BackgroundEffect",
    "BackgroundEngine",
    "RotationEngine",
    "Shape",
    "ShapeGenerator",
    "TransitionEffect",
    "TransitionEngine",
    "rotate_3d",
]
