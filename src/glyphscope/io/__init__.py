"""Camera input and animation export."""

from glyphscope.io.camera import CameraCapture
from glyphscope.io.export import GifRecorder, encode_video, export_gif, sample_frames

__all__ = [
    "CameraCapture",
    "GifRecorder",
    "encode_video",
    "export_gif",
    "sample_frames",
]
