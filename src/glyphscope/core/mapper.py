"""
Character and color mapping.

Maps scalar brightness values (0-255) to display glyphs from a
selectable character ramp, and to theme-aware colors. Every
function here is pure and tolerates out-of-range input by clamping.
"""

import math

import numpy as np

# Ordered dark -> bright. Index 0 is always a blank cell.
CHARACTER_SETS = {
    "detailed": (
        " ", ".", "`", "'", ",", ":", ";", '"', "^",
        "~", "-", "_", "+", "=", "<", ">", "i", "!",
        "l", "I", "?", "/", "\\", "|", "(", ")", "1",
        "{", "}", "[", "]", "r", "c", "v", "u", "n",
        "x", "z", "j", "f", "t", "L", "C", "J", "U",
        "Y", "X", "Z", "O", "Q", "0", "o", "a", "h",
        "k", "b", "d", "p", "q", "w", "m", "*", "#",
        "M", "W", "&", "8", "%", "B", "@", "█",
    ),
    "blocks": (" ", "░", "▒", "▓", "█"),
    "dots": (" ", "·", "•", "⋅", "∘", "○", "●", "◉", "⬤"),
    "lines": (" ", "─", "│", "┼", "╬", "║", "═", "╫", "█"),
    "minimal": (" ", ".", ":", "|", "o", "O", "#", "@", "█"),
    "geometric": (" ", "▫", "▪", "◽", "◾", "▢", "▣", "■", "█"),
    "circles": (" ", "◌", "○", "◍", "◎", "◐", "◑", "●", "⬤"),
    "stars": (" ", ".", "·", "*", "✦", "✧", "★", "✪", "✯"),
}

THEMES = ("dark", "light", "blue")

BACKGROUND_COLORS = {
    "dark": (0, 0, 0),
    "light": (255, 255, 255),
    "blue": (10, 14, 39),  # #0a0e27
}

# Upper range is compressed so full brightness never reaches pure white.
COMPRESSION_EXPONENT = 0.85
COMPRESSION_SCALE = 200.0


def get_ramp(style: str) -> tuple[str, ...]:
    """Look up a named character ramp."""
    try:
        return CHARACTER_SETS[style]
    except KeyError:
        raise ValueError(
            f"Unknown character style {style!r}, available: {sorted(CHARACTER_SETS)}"
        ) from None


def _check_theme(theme: str) -> str:
    if theme not in THEMES:
        raise ValueError(f"Unknown theme {theme!r}, available: {list(THEMES)}")
    return theme


def _clamp_scalar(brightness: float) -> float:
    b = float(brightness)
    if math.isnan(b):
        return 0.0
    return min(255.0, max(0.0, b))


def glyph_for(brightness: float, ramp) -> str:
    """
    Map a brightness value to a glyph of the ramp.

    Args:
        brightness: Scalar brightness, nominally 0-255.
        ramp: Ordered glyph sequence (dark first).

    Returns:
        A member of ``ramp``.
    """
    n = len(ramp)
    index = math.floor(_clamp_scalar(brightness) / 255.0 * (n - 1))
    return ramp[max(0, min(n - 1, index))]


def glyphs_for(brightness: np.ndarray, ramp) -> np.ndarray:
    """Vectorized ``glyph_for`` returning a ``<U1`` array of the same shape."""
    table = np.array(ramp, dtype="<U1")
    b = np.nan_to_num(np.asarray(brightness, dtype=np.float32), nan=0.0)
    b = np.clip(b, 0.0, 255.0)
    index = np.floor(b / 255.0 * (len(table) - 1)).astype(np.intp)
    index = np.clip(index, 0, len(table) - 1)
    return table[index]


def compress(brightness):
    """Perceptual compression: ``(b/255)^0.85 * 200``."""
    if np.ndim(brightness) == 0:
        return (_clamp_scalar(brightness) / 255.0) ** COMPRESSION_EXPONENT * COMPRESSION_SCALE
    b = np.nan_to_num(np.asarray(brightness, dtype=np.float64), nan=0.0)
    b = np.clip(b, 0.0, 255.0)
    return (b / 255.0) ** COMPRESSION_EXPONENT * COMPRESSION_SCALE


def rgb_for(brightness: float, theme: str = "dark") -> tuple[int, int, int]:
    """
    Map brightness to an 8-bit RGB triple for a theme.

    The blue theme is specified in display-p3; its components are
    returned unconverted.
    """
    _check_theme(theme)
    compressed = compress(brightness)
    if theme == "light":
        gray = math.floor(255.0 - compressed)
        return (gray, gray, gray)
    if theme == "blue":
        intensity = compressed / COMPRESSION_SCALE
        return (
            math.floor(intensity * 80),
            math.floor(100 + intensity * 155),
            math.floor(180 + intensity * 75),
        )
    gray = math.floor(compressed)
    return (gray, gray, gray)


def color_for(brightness: float, theme: str = "dark") -> str:
    """
    Map brightness to a CSS color string for a theme.

    Returns:
        ``rgb(g, g, g)`` for dark/light and ``color(display-p3 r g b)``
        for the blue theme.
    """
    r, g, b = rgb_for(brightness, theme)
    if theme == "blue":
        return f"color(display-p3 {r / 255} {g / 255} {b / 255})"
    return f"rgb({r}, {g}, {b})"


def rgb_array(brightness: np.ndarray, theme: str = "dark") -> np.ndarray:
    """
    Vectorized ``rgb_for``.

    Args:
        brightness: (H, W) array.
        theme: Theme name.

    Returns:
        (H, W, 3) uint8 array.
    """
    _check_theme(theme)
    compressed = compress(brightness)
    out = np.empty(np.shape(compressed) + (3,), dtype=np.uint8)
    if theme == "light":
        gray = np.floor(255.0 - compressed)
        out[..., 0] = gray
        out[..., 1] = gray
        out[..., 2] = gray
    elif theme == "blue":
        intensity = compressed / COMPRESSION_SCALE
        out[..., 0] = np.floor(intensity * 80)
        out[..., 1] = np.floor(100 + intensity * 155)
        out[..., 2] = np.floor(180 + intensity * 75)
    else:
        gray = np.floor(compressed)
        out[..., 0] = gray
        out[..., 1] = gray
        out[..., 2] = gray
    return out


def background_color(theme: str = "dark") -> tuple[int, int, int]:
    """Canvas fill color behind the glyphs."""
    return BACKGROUND_COLORS[_check_theme(theme)]
