"""
Animation export.

Frames are sampled from a running compositor (read only) and written
either as an animated GIF with Pillow or as an MP4 by piping raw RGB
frames to ffmpeg. No intermediate files are written.
"""

import logging
import subprocess
from pathlib import Path
from typing import Callable, Iterable, Iterator

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

# Quality presets: (preset, crf, pix_fmt)
QUALITY_PRESETS = {
    "high": ("slow", "18", "yuv444p"),
    "medium": ("medium", "23", "yuv420p"),
    "fast": ("ultrafast", "28", "yuv420p"),
}


class GifRecorder:
    """
    Samples frames at a fixed rate from an external clock.

    The caller offers every frame it draws together with its own
    elapsed time; the recorder keeps one every ``1/fps`` seconds until
    ``duration`` is covered. It only ever reads the frames it is given.
    """

    def __init__(self, fps: int = 15, duration: float = 5.0):
        if fps <= 0 or duration <= 0:
            raise ValueError(f"fps and duration must be positive, got {fps} and {duration}")
        self.fps = fps
        self.duration = duration
        self.frames: list[np.ndarray] = []
        self._last: float | None = None

    @property
    def frame_target(self) -> int:
        return max(1, round(self.fps * self.duration))

    @property
    def complete(self) -> bool:
        return len(self.frames) >= self.frame_target

    def offer(self, frame: np.ndarray, elapsed: float) -> bool:
        """
        Offer a frame stamped with the caller's clock.

        Returns:
            True if the frame was kept.
        """
        if self.complete:
            return False
        if self._last is not None and elapsed - self._last < 1.0 / self.fps - 1e-9:
            return False
        self._last = elapsed
        self.frames.append(np.array(frame, dtype=np.uint8, copy=True))
        return True

    def save(self, path) -> Path:
        if not self.frames:
            raise ValueError("No frames recorded")
        return export_gif(self.frames, path, self.fps)


def export_gif(frames: Iterable[np.ndarray], path, fps: int = 15) -> Path:
    """Write (H, W, 3) uint8 frames as a looping animated GIF."""
    images = [Image.fromarray(np.asarray(f, dtype=np.uint8)) for f in frames]
    if not images:
        raise ValueError("Cannot write a GIF without frames")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    images[0].save(
        path,
        save_all=True,
        append_images=images[1:],
        duration=max(1, round(1000 / fps)),
        loop=0,
        optimize=False,
    )
    logger.info("Wrote %d frames to %s", len(images), path)
    return path


def sample_frames(
    compositor,
    rasterizer,
    fps: int = 30,
    duration: float = 5.0,
    progress_callback: Callable[[int, int], None] | None = None,
) -> Iterator[np.ndarray]:
    """
    Drive a compositor headlessly at a fixed step and yield RGB frames.

    Args:
        compositor: Compositor to advance.
        rasterizer: Rasterizer used to draw each composed frame.
        fps: Frames per second of the output.
        duration: Seconds of animation to sample.
        progress_callback: Optional callback(current_frame, total_frames).
    """
    total = max(1, round(fps * duration))
    dt = 1.0 / fps
    for i in range(total):
        compositor.tick(dt)
        yield rasterizer.render_compositor(compositor)
        if progress_callback:
            progress_callback(i + 1, total)


def _ffmpeg_command(output_path: Path, width: int, height: int, fps: int, quality: str) -> list[str]:
    """Build an ffmpeg command reading raw RGB frames from stdin."""
    try:
        preset, crf, pix_fmt = QUALITY_PRESETS[quality]
    except KeyError:
        raise ValueError(
            f"Unknown quality {quality!r}, available: {sorted(QUALITY_PRESETS)}"
        ) from None
    return [
        "ffmpeg", "-y", "-loglevel", "error",
        "-f", "rawvideo", "-pix_fmt", "rgb24",
        "-s", f"{width}x{height}", "-r", str(fps),
        "-i", "pipe:0",
        "-c:v", "libx264", "-preset", preset, "-crf", crf, "-pix_fmt", pix_fmt,
        # Glyph animations have no soundtrack
        "-an",
        str(output_path),
    ]


def _ffmpeg_error(stderr: bytes) -> str:
    """Last few meaningful lines of ffmpeg's stderr."""
    lines = [line.strip() for line in stderr.decode("utf-8", errors="replace").splitlines()]
    lines = [line for line in lines if line]
    return "\n".join(lines[-5:]) or "no output"


def encode_video(
    frame_iterator: Iterator,
    output_path: Path,
    width: int,
    height: int,
    fps: int = 30,
    quality: str = "high",
    total_frames: int | None = None,
    progress_callback: Callable[[int, int], None] | None = None,
) -> Path:
    """
    Pipe rendered frames into ffmpeg and write a silent MP4.

    Args:
        frame_iterator: Yields (height, width, 3) uint8 RGB frames.
        output_path: Output MP4 path; parent directories are created.
        width: Frame width in pixels.
        height: Frame height in pixels.
        fps: Frames per second.
        quality: Key of ``QUALITY_PRESETS``.
        total_frames: Expected frame count, for progress reporting.
        progress_callback: Optional callback(frames_written, total_frames).

    Returns:
        Path to the output file.

    Raises:
        ValueError: Unknown quality, or a frame of the wrong shape.
        RuntimeError: ffmpeg exited with a non-zero code.
    """
    output_path = Path(output_path)
    cmd = _ffmpeg_command(output_path, width, height, fps, quality)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Running %s", " ".join(cmd))

    proc = subprocess.Popen(
        cmd,
        stdin=subprocess.PIPE,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
    )

    written = 0
    try:
        for frame in frame_iterator:
            if frame.shape != (height, width, 3):
                raise ValueError(
                    f"Frame {written} has shape {frame.shape}, expected {(height, width, 3)}"
                )
            try:
                proc.stdin.write(np.ascontiguousarray(frame, dtype=np.uint8).tobytes())
            except BrokenPipeError:
                # ffmpeg quit early; its exit code explains why
                logger.warning("ffmpeg closed its input after %d frames", written)
                break
            written += 1
            if progress_callback and total_frames:
                progress_callback(written, total_frames)
    finally:
        if proc.stdin:
            proc.stdin.close()
        proc.wait()

    if proc.returncode != 0:
        raise RuntimeError(
            f"ffmpeg exited with code {proc.returncode}: {_ffmpeg_error(proc.stderr.read())}"
        )

    logger.info("Encoded %d frames to %s", written, output_path)
    return output_path
