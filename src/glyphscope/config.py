"""
Animator configuration.

One dataclass carries every runtime option. It can be built from keyword
arguments, a plain dict or a JSON file; ``validate()`` rejects unknown
names and out-of-range values before any engine sees them.
"""

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import get_args

from glyphscope.core.mapper import CHARACTER_SETS, THEMES
from glyphscope.engines.backgrounds import BackgroundEffect
from glyphscope.engines.rotation import MAX_SPEED, MIN_SPEED, AnimationStyle
from glyphscope.engines.shapes import Shape
from glyphscope.engines.transitions import TransitionEffect

DEFAULT_EMOJI = "😀"

EMOJI_PRESETS = ("😀", "❤️", "🔥", "⭐", "🌈", "🚀")


@dataclass
class AnimatorConfig:
    """Runtime options for the compositor, the live window and exporters."""

    # Display surface
    width: int = 1200
    height: int = 800
    fps: int = 60

    # Look
    background_effect: str = "matrix"  # matrix, particles, waves, starfield, geometric
    transition_effect: str = "morph"  # crossfade, zoom, spiral, dissolve, morph
    animation_style: str = "float"  # float, rotate, pulse, wave, spiral, zoom, tilt, bounce, spin, shimmer
    theme: str = "dark"  # dark, light, blue
    character_style: str = "detailed"
    speed: float = 1.0  # Rotation multiplier, 0.5-3.0
    transition_duration: float = 0.5

    # Initial subject: shape, then image, then camera, then emoji
    emoji: str = DEFAULT_EMOJI
    shape: str | None = None
    image_path: str | None = None
    camera: bool = False
    camera_device: int = 0

    # Misc
    seed: int | None = None
    font_path: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "AnimatorConfig":
        """Build a config from a dict; unknown keys raise ValueError."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config option(s): {', '.join(unknown)}")
        config = cls(**data)
        config.validate()
        return config

    @classmethod
    def from_json(cls, path) -> "AnimatorConfig":
        return cls.from_dict(read_json(path))

    def merged(self, overrides: dict) -> "AnimatorConfig":
        """Copy with the non-None ``overrides`` applied."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return AnimatorConfig.from_dict(data)

    def to_dict(self) -> dict:
        return asdict(self)

    def validate(self):
        """Raise ValueError describing the first invalid option."""
        for f in fields(self):
            _check_type(f.name, getattr(self, f.name), f.type)
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Surface size must be positive, got {self.width}x{self.height}")
        if self.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.fps}")
        if not MIN_SPEED <= self.speed <= MAX_SPEED:
            raise ValueError(f"speed must be within [{MIN_SPEED}, {MAX_SPEED}], got {self.speed}")
        if self.transition_duration <= 0:
            raise ValueError(
                f"transition_duration must be positive, got {self.transition_duration}"
            )
        if self.theme not in THEMES:
            raise ValueError(f"Unknown theme {self.theme!r}, available: {list(THEMES)}")
        if self.character_style not in CHARACTER_SETS:
            raise ValueError(
                f"Unknown character style {self.character_style!r}, "
                f"available: {sorted(CHARACTER_SETS)}"
            )
        _check_choice("background_effect", self.background_effect, BackgroundEffect)
        _check_choice("transition_effect", self.transition_effect, TransitionEffect)
        _check_choice("animation_style", self.animation_style, AnimationStyle)
        if self.shape is not None:
            _check_choice("shape", self.shape, Shape)
        if not self.emoji or not self.emoji.strip():
            raise ValueError("emoji must be a non-empty glyph")


def _check_type(name: str, value, annotation):
    allowed = get_args(annotation) or (annotation,)
    if float in allowed:
        allowed += (int,)
    # bool is an int subclass, so JSON true must not pass for a number
    if isinstance(value, bool):
        ok = bool in allowed
    else:
        ok = isinstance(value, allowed)
    if not ok:
        names = " or ".join("null" if a is type(None) else a.__name__ for a in allowed)
        raise ValueError(f"{name} must be {names}, got {value!r}")


def _check_choice(name: str, value, enum_cls):
    allowed = [member.value for member in enum_cls]
    if value not in allowed:
        raise ValueError(f"Unknown {name} {value!r}, available: {allowed}")


def read_json(path) -> dict:
    """Load a JSON config file as a dict of options."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    return data
