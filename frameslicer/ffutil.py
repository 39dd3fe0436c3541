"""FFmpeg/ffprobe subprocess helpers."""

import asyncio
import json
import logging
import shutil
import subprocess
from pathlib import Path

from frameslicer.models import ProbeResult

logger = logging.getLogger(__name__)


class FFmpegNotFoundError(RuntimeError):
    pass


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def probe(input_path: Path) -> ProbeResult:
    """Extract video metadata via ffprobe."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    data = json.loads(result.stdout)

    video_stream = next(
        (s for s in data["streams"] if s["codec_type"] == "video"), None
    )
    if video_stream is None:
        raise ValueError(f"No video stream found in {input_path}")

    # Parse fps from r_frame_rate (e.g. "30000/1001")
    num, den = video_stream["r_frame_rate"].split("/")
    fps = int(num) / int(den) if int(den) else 0.0

    duration = data["format"].get("duration") or video_stream.get("duration")
    if duration is None:
        raise ValueError(f"No duration reported for {input_path}")

    probe_result = ProbeResult(
        duration=float(duration),
        width=int(video_stream["width"]),
        height=int(video_stream["height"]),
        fps=fps,
        codec_video=video_stream["codec_name"],
    )
    logger.info(
        "Probed %s: %dx%d, %.3fs, %s", input_path, probe_result.width, probe_result.height,
        probe_result.duration, probe_result.codec_video,
    )
    return probe_result


def frame_command(input_path: Path, timestamp: float) -> list[str]:
    """ffmpeg command that writes the frame at ``timestamp`` as PNG to stdout."""
    return [
        "ffmpeg",
        "-v", "error",
        "-ss", f"{timestamp:.3f}",
        "-i", str(input_path),
        "-frames:v", "1",
        "-f", "image2pipe",
        "-vcodec", "png",
        "-",
    ]


def crop_command(x: int, y: int, w: int, h: int) -> list[str]:
    """ffmpeg command that crops a PNG read from stdin and writes PNG to stdout."""
    return [
        "ffmpeg",
        "-v", "error",
        "-f", "png_pipe",
        "-i", "-",
        "-vf", f"crop={w}:{h}:{x}:{y}",
        "-frames:v", "1",
        "-f", "image2pipe",
        "-vcodec", "png",
        "-",
    ]


async def decode_frame(input_path: Path, timestamp: float) -> bytes:
    """Decode one frame without blocking the event loop."""
    cmd = frame_command(input_path, timestamp)
    proc = await asyncio.create_subprocess_exec(
        *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
    )
    try:
        stdout, stderr = await proc.communicate()
    finally:
        # a cancelled wait (seek timeout) must not leave ffmpeg running
        if proc.returncode is None:
            logger.warning("Killing ffmpeg decode at %.3fs", timestamp)
            proc.kill()
            await proc.wait()
    if proc.returncode != 0 or not stdout:
        raise subprocess.CalledProcessError(proc.returncode or 1, cmd, output=stdout, stderr=stderr)
    return stdout


def crop_png(png: bytes, x: int, y: int, w: int, h: int) -> bytes:
    """Cut the ``w`` x ``h`` region at (x, y) out of a PNG image."""
    result = subprocess.run(crop_command(x, y, w, h), input=png, capture_output=True, check=True)
    return result.stdout
