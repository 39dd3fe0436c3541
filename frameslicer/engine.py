"""Orchestrator that runs a slicing job defined by a manifest."""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from frameslicer import ffutil
from frameslicer.crop import AspectPolicy
from frameslicer.errors import CaptureFailed
from frameslicer.export import archive_name
from frameslicer.manifest import SliceManifest
from frameslicer.media import FFmpegMediaSource
from frameslicer.models import CapturedFrame, Rect, TimeRange
from frameslicer.session import Session

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    output_path: Path
    frames: list[CapturedFrame] = field(default_factory=list)
    crop: Rect | None = None
    time_range: TimeRange | None = None
    error: str | None = None

    @property
    def frame_count(self) -> int:
        return len(self.frames)


def build_session(manifest: SliceManifest, session: Session) -> Session:
    """Apply the manifest's crop, aspect, time window and interval."""
    if manifest.crop is not None:
        c = manifest.crop
        session.crop.set_rect(Rect(c.x, c.y, c.w, c.h))
    session.set_aspect(AspectPolicy.parse(manifest.aspect))

    if manifest.time.end is not None:
        session.time_range.set_end(manifest.time.end)
    if manifest.time.start is not None:
        session.time_range.set_start(manifest.time.start)

    session.set_interval(manifest.interval)
    return session


def resolve_output(output: Path, now: float | None = None) -> Path:
    """A directory output gets a timestamped archive name inside it."""
    if output.is_dir() or output.suffix.lower() != ".zip":
        return output / archive_name(now)
    return output


def process(
    manifest: SliceManifest,
    on_progress: Callable[[str, float], None] | None = None,
) -> EngineResult:
    """Execute the full sample-and-package pipeline.

    Args:
        manifest: Validated slicing manifest.
        on_progress: Optional callback(stage_name, fraction_complete).
    """

    def _progress(stage: str, frac: float) -> None:
        if on_progress:
            on_progress(stage, frac)

    def _sub_progress(stage: str, base: float, span: float):
        """Return a callback that maps (completed, total) to [base, base+span]."""
        def cb(completed: int, total: int) -> None:
            _progress(stage, base + (completed / total if total else 1.0) * span)
        return cb

    ffutil.check_ffmpeg()

    _progress("Probing video metadata", 0.0)
    probe_result = ffutil.probe(manifest.input)
    _progress("Probing video metadata", 0.05)

    session = build_session(
        manifest, Session(probe_result.dimensions, seek_timeout=manifest.seek_timeout)
    )
    snap = session.snapshot()
    source = FFmpegMediaSource(manifest.input, probe_result.dimensions, fps=probe_result.fps)

    error = None
    try:
        asyncio.run(
            session.preview(source, on_progress=_sub_progress("Capturing frames", 0.05, 0.80))
        )
    except CaptureFailed as e:
        if not (manifest.keep_partial and e.frames):
            raise
        error = str(e)
        logger.warning("Packaging %d frames captured before failure: %s", len(e.frames), e)

    _progress("Packaging archive", 0.85)
    _, data = asyncio.run(
        session.export(source, on_progress=_sub_progress("Packaging archive", 0.85, 0.10))
    )

    output_path = resolve_output(manifest.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)

    _progress("Done", 1.0)
    return EngineResult(
        output_path=output_path,
        frames=session.preview_frames,
        crop=snap.rect,
        time_range=snap.time_range,
        error=error,
    )
