"""
Depth-map converter.

Turns a glyph (emoji) or a raster image into a brightness field ready
for the rotation engine. Glyphs take a light path (edge enhancement);
photos and camera frames take the full enhancement chain so they stay
recognizable at ASCII resolution.
"""

import logging
import os
from typing import Sequence, Union

import numpy as np
from PIL import Image, ImageDraw, ImageFilter, ImageFont

from glyphscope.core.enhance import (
    adaptive_equalize,
    apply_depth_curve,
    apply_gamma,
    contrast_stretch,
    enhance_edges,
    floyd_steinberg,
    luminance,
    sample_bilinear,
    unsharp_mask,
)

logger = logging.getLogger(__name__)

BITMAP_SIZE = 256
GLYPH_FILL = 0.85
GLYPH_CACHE_SIZE = 64

# Color emoji fonts only ship fixed bitmap strikes, tried in this order.
BITMAP_STRIKES = (109, 136, 160, 96, 64)

EMOJI_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/noto/NotoColorEmoji.ttf",
    "/usr/share/fonts/noto/NotoColorEmoji.ttf",
    "/usr/share/fonts/google-noto-emoji/NotoColorEmoji.ttf",
    "/System/Library/Fonts/Apple Color Emoji.ttc",
    r"C:\Windows\Fonts\seguiemj.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
)

RasterInput = Union[Image.Image, np.ndarray]


def _load_font(path: str | None, size: int):
    """Open a TrueType font, falling back to fixed strikes for bitmap fonts."""
    if path is None:
        return None
    try:
        return ImageFont.truetype(path, size)
    except OSError:
        pass
    for strike in BITMAP_STRIKES:
        try:
            return ImageFont.truetype(path, strike)
        except OSError:
            continue
    return None


def find_emoji_font(candidates: Sequence[str] = EMOJI_FONT_CANDIDATES) -> str | None:
    for p in candidates:
        if os.path.isfile(p):
            return p
    return None


def _to_image(image: RasterInput) -> Image.Image:
    """Normalize a Pillow image or uint8 array to an RGBA image."""
    if isinstance(image, Image.Image):
        if image.width == 0 or image.height == 0:
            raise ValueError("Image has zero size")
        return image.convert("RGBA")

    arr = np.asarray(image)
    if arr.ndim not in (2, 3) or arr.shape[0] == 0 or arr.shape[1] == 0:
        raise ValueError(f"Image has unusable shape {arr.shape}")
    if arr.dtype != np.uint8:
        arr = np.clip(np.nan_to_num(arr), 0, 255).astype(np.uint8)
    if arr.ndim == 2:
        return Image.fromarray(arr).convert("RGBA")
    channels = arr.shape[2]
    if channels == 3:
        return Image.fromarray(arr).convert("RGBA")
    if channels == 4:
        return Image.fromarray(arr)
    raise ValueError(f"Unsupported channel count {channels}")


class DepthMapConverter:
    """
    Converts glyphs and images into brightness fields.

    All work happens on a fixed square off-screen bitmap; the output
    grid is sampled from it with bilinear interpolation.

    Args:
        size: Edge length of the square bitmap.
        font_path: Emoji font file. The first installed candidate from
            ``EMOJI_FONT_CANDIDATES`` is used if None.
        font: Preloaded Pillow font; takes precedence over ``font_path``.
    """

    def __init__(
        self,
        size: int = BITMAP_SIZE,
        font_path: str | None = None,
        font: ImageFont.FreeTypeFont | None = None,
    ):
        self.size = size
        self.font_path = None if font is not None else font_path or find_emoji_font()
        self._font = font or _load_font(self.font_path, int(size * GLYPH_FILL))
        if self._font is None:
            logger.info("No emoji font found, using Pillow's default font")
            self._font = ImageFont.load_default(size=int(size * GLYPH_FILL))
        self.cache_size = GLYPH_CACHE_SIZE
        self._glyph_cache: dict[str, np.ndarray] = {}

    # ---- bitmaps -------------------------------------------------------

    def render_glyph(self, glyph: str) -> np.ndarray:
        """
        Draw a glyph centered on the square bitmap.

        The drawn glyph is scaled to fill 85% of the bitmap, then given
        a 1px blur for smoother gradients.

        Returns:
            (size, size, 4) uint8 RGBA array.
        """
        if not glyph or not glyph.strip():
            raise ValueError("Glyph must be a non-empty, non-blank string")
        cached = self._glyph_cache.get(glyph)
        if cached is not None:
            return cached

        probe = int(self.size * 2)
        layer = Image.new("RGBA", (probe, probe), (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        draw.text(
            (probe / 2, probe / 2),
            glyph,
            font=self._font,
            fill=(255, 255, 255, 255),
            anchor="mm",
            embedded_color=True,
        )

        canvas = Image.new("RGBA", (self.size, self.size), (0, 0, 0, 0))
        bbox = layer.getchannel("A").getbbox()
        if bbox is not None:
            drawn = layer.crop(bbox)
            target = self.size * GLYPH_FILL
            scale = target / max(drawn.width, drawn.height)
            new_w = max(1, round(drawn.width * scale))
            new_h = max(1, round(drawn.height * scale))
            drawn = drawn.resize((new_w, new_h), Image.BILINEAR)
            canvas.paste(drawn, ((self.size - new_w) // 2, (self.size - new_h) // 2), drawn)

        canvas = canvas.filter(ImageFilter.GaussianBlur(radius=1))
        pixels = np.asarray(canvas, dtype=np.uint8)
        # Oldest glyph goes first once the cache is full
        while len(self._glyph_cache) >= self.cache_size:
            self._glyph_cache.pop(next(iter(self._glyph_cache)))
        self._glyph_cache[glyph] = pixels
        return pixels

    def fit_image(self, image: RasterInput) -> np.ndarray:
        """
        Letterbox/pillarbox an image onto the black square bitmap.

        Returns:
            (size, size, 4) uint8 RGBA array, fully opaque.
        """
        img = _to_image(image)
        aspect = img.width / img.height

        if aspect > 1.0:
            draw_w = self.size
            draw_h = max(1, round(self.size / aspect))
        else:
            draw_h = self.size
            draw_w = max(1, round(self.size * aspect))
        offset_x = (self.size - draw_w) // 2
        offset_y = (self.size - draw_h) // 2

        canvas = Image.new("RGBA", (self.size, self.size), (0, 0, 0, 255))
        scaled = img.resize((draw_w, draw_h), Image.BILINEAR)
        canvas.alpha_composite(scaled, (offset_x, offset_y))
        return np.asarray(canvas, dtype=np.uint8)

    # ---- depth maps ----------------------------------------------------

    @staticmethod
    def _check_size(width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Depth map size must be positive, got {width}x{height}")

    def from_glyph(self, glyph: str, width: int, height: int) -> np.ndarray:
        """
        Glyph -> 3D-ready brightness field.

        Luminance (alpha weighted), gamma 0.9, Sobel edge enhancement
        capped at 220, then a 0.3 radial depth curve.

        Returns:
            (height, width) float32 field in [0, 220].
        """
        self._check_size(width, height)
        pixels = self.render_glyph(glyph)
        sampled = sample_bilinear(pixels, width, height)

        field = luminance(sampled)
        field = apply_gamma(field, 0.9)
        field = enhance_edges(field, weight=0.4, cap=220.0)
        field = apply_depth_curve(field, 0.3)
        return np.clip(np.nan_to_num(field, nan=0.0), 0.0, 255.0).astype(np.float32)

    def from_raster(self, image: RasterInput, width: int, height: int) -> np.ndarray:
        """
        Photo or camera frame -> 3D-ready brightness field.

        Pipeline:
            1. Aspect-preserving fit onto the square bitmap.
            2. Bilinear sampling and luminance.
            3. 2nd/98th percentile contrast stretch, gamma 0.85.
            4. Adaptive local contrast (tiled, clip-limited equalization).
            5. Unsharp mask.
            6. Floyd-Steinberg dithering to 64 levels.
            7. Subtle 0.1 radial depth curve.

        Returns:
            (height, width) float32 field in [0, 255].
        """
        self._check_size(width, height)
        pixels = self.fit_image(image)
        sampled = sample_bilinear(pixels, width, height)

        field = luminance(sampled)
        field = contrast_stretch(field, 2.0, 98.0)
        field = apply_gamma(field, 0.85)
        field = adaptive_equalize(field, tile_size=8, clip_limit=2.0)
        field = unsharp_mask(field, sigma=1.0, amount=1.2)
        field = floyd_steinberg(field, levels=64)
        field = apply_depth_curve(field, 0.1)
        return np.clip(np.nan_to_num(field, nan=0.0), 0.0, 255.0).astype(np.float32)
