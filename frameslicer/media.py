"""MediaSource backed by ffmpeg subprocesses."""

import logging
import struct
import subprocess
from pathlib import Path

from frameslicer import ffutil
from frameslicer.errors import MediaSourceError
from frameslicer.models import ImageBuffer, MediaDimensions

logger = logging.getLogger(__name__)

_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def png_size(data: bytes) -> tuple[int, int]:
    """Width and height from a PNG's IHDR chunk."""
    if len(data) < 24 or not data.startswith(_PNG_SIGNATURE):
        raise MediaSourceError("ffmpeg did not return a PNG image")
    return struct.unpack(">II", data[16:24])


class FFmpegMediaSource:
    """Decodes one frame per seek and crops regions out of it.

    Holds a single current frame, like a video element: a seek replaces it,
    a capture reads from it.
    """

    def __init__(self, input_path: Path, dimensions: MediaDimensions, fps: float = 0.0):
        self.input_path = Path(input_path)
        self.dimensions = dimensions
        self.fps = fps
        self.position: float | None = None
        self._frame: bytes | None = None

    async def seek(self, timestamp: float) -> None:
        # nothing decodes at exactly the end of the stream; back off one frame
        last_frame = self.dimensions.duration - (1 / self.fps if self.fps > 0 else 0.1)
        t = min(max(timestamp, 0.0), max(last_frame, 0.0))
        try:
            self._frame = await ffutil.decode_frame(self.input_path, t)
        except subprocess.CalledProcessError as e:
            self._frame = None
            raise MediaSourceError(_describe(e, f"decode at {t:.3f}s")) from e
        except OSError as e:
            self._frame = None
            raise MediaSourceError(f"ffmpeg could not be started: {e}") from e
        self.position = t

    def frame_dimensions(self) -> tuple[int, int]:
        if self._frame is None:
            return self.dimensions.width, self.dimensions.height
        return png_size(self._frame)

    def capture_region(self, x: int, y: int, w: int, h: int) -> ImageBuffer:
        if self._frame is None:
            raise MediaSourceError("No decoded frame; seek before capturing")

        fw, fh = self.frame_dimensions()
        if x < 0 or y < 0 or x + w > fw or y + h > fh:
            raise MediaSourceError(f"Region {w}x{h}+{x}+{y} is outside the {fw}x{fh} frame")

        try:
            data = ffutil.crop_png(self._frame, x, y, w, h)
        except subprocess.CalledProcessError as e:
            raise MediaSourceError(_describe(e, "crop")) from e
        except OSError as e:
            raise MediaSourceError(f"ffmpeg could not be started: {e}") from e

        width, height = png_size(data)
        return ImageBuffer(width=width, height=height, data=data, format="png")


def _describe(e: subprocess.CalledProcessError, what: str) -> str:
    stderr = e.stderr if isinstance(e.stderr, str) else (e.stderr or b"").decode(errors="replace")
    return f"ffmpeg {what} failed: {stderr.strip()[-500:]}" if stderr else f"ffmpeg {what} failed"
