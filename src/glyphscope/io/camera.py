"""
Live camera capture.

A daemon thread reads frames from an OpenCV capture device and keeps
only the most recent one. The render loop polls ``latest_frame()`` once
per tick and never waits on the device.
"""

import logging
import threading
import time
from typing import Callable

import cv2
import numpy as np

logger = logging.getLogger(__name__)

CAPTURE_WIDTH = 640
CAPTURE_HEIGHT = 480


def open_video_capture(device):
    """Default capture factory: an OpenCV ``VideoCapture`` at 640x480."""
    cap = cv2.VideoCapture(device)
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, CAPTURE_WIDTH)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, CAPTURE_HEIGHT)
    return cap


class CameraCapture:
    """
    Non-blocking camera source.

    Args:
        device: Device index or path handed to the capture factory.
        capture_factory: Callable returning an object with the OpenCV
            ``isOpened()/read()/release()`` interface.
        mirror: Flip frames horizontally so the preview acts like a mirror.
    """

    def __init__(
        self,
        device: int | str = 0,
        capture_factory: Callable | None = None,
        mirror: bool = True,
    ):
        self.device = device
        self.capture_factory = capture_factory or open_video_capture
        self.mirror = mirror

        self._capture = None
        self._thread: threading.Thread | None = None
        self._running = threading.Event()
        self._lock = threading.Lock()
        self._frame: np.ndarray | None = None

    @property
    def is_active(self) -> bool:
        return self._running.is_set()

    def start(self) -> bool:
        """
        Open the device and start the reader thread.

        Returns:
            True once the device is open, False if it could not be opened.
        """
        if self.is_active:
            return True
        try:
            capture = self.capture_factory(self.device)
            opened = capture is not None and capture.isOpened()
        except Exception:
            logger.exception("Failed to open camera %r", self.device)
            return False
        if not opened:
            logger.warning("Camera %r is unavailable", self.device)
            if capture is not None:
                capture.release()
            return False

        self._capture = capture
        with self._lock:
            self._frame = None
        self._running.set()
        self._thread = threading.Thread(target=self._run, name="camera-reader", daemon=True)
        self._thread.start()
        logger.info("Camera %r started", self.device)
        return True

    def stop(self):
        """Stop the reader and release the device. Safe to call repeatedly."""
        was_active = self.is_active
        self._running.clear()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
            self._thread = None
        if self._capture is not None:
            self._capture.release()
            self._capture = None
        with self._lock:
            self._frame = None
        if was_active:
            logger.info("Camera %r stopped", self.device)

    def latest_frame(self) -> np.ndarray | None:
        """Most recent RGB frame, or None when stopped or nothing is ready yet."""
        if not self.is_active:
            return None
        with self._lock:
            return self._frame

    def _run(self):
        while self._running.is_set():
            capture = self._capture
            if capture is None:
                break
            try:
                ok, frame = capture.read()
            except Exception:
                logger.exception("Camera read failed")
                ok, frame = False, None
            if not ok or frame is None:
                time.sleep(0.01)
                continue

            if self.mirror:
                frame = cv2.flip(frame, 1)
            if frame.ndim == 3:
                frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            with self._lock:
                self._frame = frame
