"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest
from PIL import ImageFont

from glyphscope.compositor import Compositor
from glyphscope.config import AnimatorConfig
from glyphscope.core.context import RenderContext
from glyphscope.core.converter import DepthMapConverter
from glyphscope.io.camera import CameraCapture

# Smallest surface that still maps onto the 80x50 minimum grid
TEST_WIDTH = 480
TEST_HEIGHT = 600
TEST_SEED = 7


class FakeCapture:
    """Stands in for cv2.VideoCapture: serves one BGR frame forever."""

    def __init__(self, frame: np.ndarray | None = None, opened: bool = True):
        if frame is None:
            frame = np.zeros((48, 64, 3), dtype=np.uint8)
            frame[:, :8] = (255, 0, 0)  # blue strip on the left, BGR order
        self.frame = frame
        self.opened = opened
        self.released = 0

    def isOpened(self) -> bool:
        return self.opened

    def read(self):
        return True, self.frame.copy()

    def release(self):
        self.released += 1


@pytest.fixture
def context() -> RenderContext:
    """80x50 render context with a fixed seed."""
    return RenderContext(seed=TEST_SEED)


@pytest.fixture
def converter() -> DepthMapConverter:
    """
    Converter on a small bitmap to keep tests fast.

    Uses Pillow's bundled font so plain letters render the same whether
    or not an emoji font is installed.
    """
    return DepthMapConverter(size=64, font=ImageFont.load_default(size=54))


@pytest.fixture
def config() -> AnimatorConfig:
    """Config for the minimum grid with a plain-text glyph subject."""
    return AnimatorConfig(
        width=TEST_WIDTH,
        height=TEST_HEIGHT,
        seed=TEST_SEED,
        emoji="A",
    )


@pytest.fixture
def compositor(config, converter) -> Compositor:
    comp = Compositor(config, converter=converter)
    yield comp
    comp.close()


@pytest.fixture
def gradient_image() -> np.ndarray:
    """
    Horizontal RGB gradient, 40x60.

    Returns:
        (40, 60, 3) uint8 array.
    """
    ramp = np.linspace(0, 255, 60, dtype=np.float64)
    img = np.repeat(ramp[None, :, None], 40, axis=0).repeat(3, axis=2)
    return img.astype(np.uint8)


@pytest.fixture
def make_capture():
    """The fake capture class, for tests that inspect the device."""
    return FakeCapture


@pytest.fixture
def make_camera(make_capture):
    """Factory for a CameraCapture reading from a FakeCapture."""
    cameras = []

    def _make(**kwargs) -> CameraCapture:
        capture = make_capture(**kwargs)
        camera = CameraCapture(capture_factory=lambda device: capture)
        cameras.append(camera)
        return camera

    yield _make
    for camera in cameras:
        camera.stop()
