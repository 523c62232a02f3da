"""
Display surface.

``Rasterizer`` turns frame buffers into RGB images through a glyph atlas;
``LiveWindow`` puts those images in a resizable pygame window and feeds
the compositor its clock, resize events and key presses.
"""

import logging
import os
import time
from pathlib import Path
from typing import Sequence

import numpy as np
import pygame
from PIL import Image, ImageDraw, ImageFont

from glyphscope.compositor import Compositor
from glyphscope.config import EMOJI_PRESETS
from glyphscope.core.buffer import BLANK, FrameBuffer
from glyphscope.core.context import CHAR_HEIGHT, CHAR_WIDTH
from glyphscope.core.mapper import CHARACTER_SETS, THEMES, background_color, rgb_array
from glyphscope.engines.backgrounds import BackgroundEffect
from glyphscope.engines.rotation import AnimationStyle
from glyphscope.engines.transitions import TransitionEffect
from glyphscope.io.export import GifRecorder

logger = logging.getLogger(__name__)

BACKGROUND_DIM = 0.5

MONO_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/dejavu/DejaVuSansMono.ttf",
    "/Library/Fonts/Courier New Bold.ttf",
    "/System/Library/Fonts/Menlo.ttc",
    r"C:\Windows\Fonts\courbd.ttf",
    r"C:\Windows\Fonts\consola.ttf",
)


def _load_mono_font(path: str | None, size: int):
    candidates = [path] if path else []
    candidates.extend(p for p in MONO_FONT_CANDIDATES if os.path.isfile(p))
    for p in candidates:
        try:
            return ImageFont.truetype(p, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


class GlyphAtlas:
    """
    Coverage masks for glyphs, one ``(cell_h, cell_w)`` tile each.

    Tiles are rendered once with Pillow on first use.
    """

    def __init__(
        self,
        cell_w: int = CHAR_WIDTH,
        cell_h: int = CHAR_HEIGHT,
        font_path: str | None = None,
        preload: Sequence[str] = (),
    ):
        self.cell_w = cell_w
        self.cell_h = cell_h
        self.font = _load_mono_font(font_path, cell_h)
        self._tiles: dict[str, np.ndarray] = {BLANK: np.zeros((cell_h, cell_w), dtype=np.float32)}
        for glyph in preload:
            self.mask(glyph)

    def __len__(self):
        return len(self._tiles)

    def __contains__(self, glyph: str) -> bool:
        return glyph in self._tiles

    def mask(self, glyph: str) -> np.ndarray:
        tile = self._tiles.get(glyph)
        if tile is None:
            img = Image.new("L", (self.cell_w, self.cell_h), 0)
            ImageDraw.Draw(img).text(
                (self.cell_w / 2, self.cell_h / 2), glyph, fill=255, font=self.font, anchor="mm"
            )
            tile = np.asarray(img, dtype=np.float32) / 255.0
            self._tiles[glyph] = tile
        return tile

    def coverage(self, glyphs: np.ndarray) -> np.ndarray:
        """
        Pixel coverage for a whole glyph grid.

        Args:
            glyphs: (rows, cols) array of single characters.

        Returns:
            (rows * cell_h, cols * cell_w) float32 array in [0, 1].
        """
        rows, cols = glyphs.shape
        unique, inverse = np.unique(glyphs, return_inverse=True)
        table = np.stack([self.mask(str(g)) for g in unique])
        tiles = table[inverse.reshape(rows, cols)]
        return tiles.transpose(0, 2, 1, 3).reshape(rows * self.cell_h, cols * self.cell_w)


class Rasterizer:
    """Draws frame buffers as colored glyphs on a theme background."""

    def __init__(self, atlas: GlyphAtlas | None = None):
        self.atlas = atlas or GlyphAtlas()

    def image_size(self, cols: int, rows: int) -> tuple[int, int]:
        """(width, height) in pixels of a rendered grid."""
        return cols * self.atlas.cell_w, rows * self.atlas.cell_h

    def _draw_layer(self, canvas: np.ndarray, glyphs: np.ndarray, brightness: np.ndarray, theme: str):
        drawn = (brightness > 0) & (glyphs != BLANK)
        if not np.any(drawn):
            return
        cell_h, cell_w = self.atlas.cell_h, self.atlas.cell_w
        coverage = self.atlas.coverage(np.where(drawn, glyphs, BLANK))[..., None]
        colors = rgb_array(brightness, theme).astype(np.float32)
        colors = colors.repeat(cell_h, axis=0).repeat(cell_w, axis=1)
        canvas *= 1.0 - coverage
        canvas += colors * coverage

    def render(
        self,
        display: FrameBuffer,
        background: FrameBuffer | None = None,
        theme: str = "dark",
    ) -> np.ndarray:
        """
        Rasterize one frame.

        The theme background is filled first, then the background layer
        at half brightness, then the subject layer. Cells with zero
        brightness are not drawn.

        Returns:
            (rows * cell_h, cols * cell_w, 3) uint8 RGB image.
        """
        width, height = self.image_size(display.cols, display.rows)
        canvas = np.empty((height, width, 3), dtype=np.float32)
        canvas[...] = background_color(theme)

        if background is not None and background.shape == display.shape:
            self._draw_layer(canvas, background.glyphs, background.brightness * BACKGROUND_DIM, theme)
        self._draw_layer(canvas, display.glyphs, display.brightness, theme)
        return np.clip(canvas + 0.5, 0, 255).astype(np.uint8)

    def render_compositor(self, compositor: Compositor) -> np.ndarray:
        """Rasterize the compositor's last composed frame without advancing it."""
        return self.render(compositor.display, compositor.background_buffer, compositor.context.theme)


def _cycle(options: Sequence, current) -> object:
    values = list(options)
    try:
        i = values.index(current)
    except ValueError:
        i = -1
    return values[(i + 1) % len(values)]


class LiveWindow:
    """
    Interactive pygame window around a compositor.

    Keys:
        Esc       quit
        1-6       preset emoji
        b/t/a     cycle background / transition / animation style
        c/m       cycle character style / theme
        +/-       speed up / slow down
        space     toggle the camera
        g         record a 5 second GIF
    """

    def __init__(
        self,
        compositor: Compositor,
        fps: int = 60,
        rasterizer: Rasterizer | None = None,
        gif_dir: Path | str = ".",
    ):
        self.compositor = compositor
        self.fps = fps
        self.rasterizer = rasterizer or Rasterizer()
        self.gif_dir = Path(gif_dir)
        self.recorder: GifRecorder | None = None
        self.running = False
        self.screen: pygame.Surface | None = None

    def _open(self):
        pygame.init()
        cfg = self.compositor.config
        self.screen = pygame.display.set_mode((cfg.width, cfg.height), pygame.RESIZABLE)
        pygame.display.set_caption("glyphscope")

    def handle_key(self, key: int):
        comp = self.compositor
        if key == pygame.K_ESCAPE:
            self.running = False
        elif pygame.K_1 <= key <= pygame.K_6:
            comp.select_emoji(EMOJI_PRESETS[key - pygame.K_1])
        elif key == pygame.K_b:
            comp.set_background_effect(_cycle(BackgroundEffect, comp.background.effect))
        elif key == pygame.K_t:
            comp.set_transition_effect(_cycle(TransitionEffect, comp.transition.effect))
        elif key == pygame.K_a:
            styles = [s for s in AnimationStyle if s is not AnimationStyle.DEFAULT]
            comp.set_animation_style(_cycle(styles, comp.rotation.style))
        elif key == pygame.K_c:
            comp.set_character_style(_cycle(CHARACTER_SETS, comp.context.character_style))
        elif key == pygame.K_m:
            comp.set_theme(_cycle(THEMES, comp.context.theme))
        elif key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
            comp.set_speed(comp.rotation.speed + 0.25)
        elif key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            comp.set_speed(comp.rotation.speed - 0.25)
        elif key == pygame.K_SPACE:
            if comp.camera_active:
                comp.stop_camera()
            elif not comp.start_camera():
                logger.warning("Could not start the camera")
        elif key == pygame.K_g and self.recorder is None:
            self.recorder = GifRecorder(fps=15, duration=5.0)
            logger.info("Recording GIF")

    def _present(self, image: np.ndarray):
        surface = pygame.surfarray.make_surface(np.transpose(image, (1, 0, 2)))
        target = self.screen.get_size()
        if surface.get_size() != target:
            surface = pygame.transform.smoothscale(surface, target)
        self.screen.blit(surface, (0, 0))
        pygame.display.flip()

    def _offer_to_recorder(self, image: np.ndarray):
        if self.recorder is None:
            return
        self.recorder.offer(image, self.compositor.elapsed)
        if self.recorder.complete:
            path = self.gif_dir / f"glyphscope_{time.strftime('%Y%m%d_%H%M%S')}.gif"
            self.recorder.save(path)
            logger.info("Saved %s", path)
            self.recorder = None

    def run(self):
        self._open()
        clock = pygame.time.Clock()
        self.running = True
        try:
            while self.running:
                for event in pygame.event.get():
                    if event.type == pygame.QUIT:
                        self.running = False
                    elif event.type == pygame.VIDEORESIZE:
                        self.compositor.resize(event.w, event.h)
                    elif event.type == pygame.KEYDOWN:
                        self.handle_key(event.key)

                dt = clock.tick(self.fps) / 1000.0
                self.compositor.tick(dt)
                image = self.rasterizer.render_compositor(self.compositor)
                self._present(image)
                self._offer_to_recorder(image)
        finally:
            self.compositor.close()
            pygame.quit()
