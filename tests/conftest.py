"""Shared test fixtures."""

import asyncio
from pathlib import Path

import pytest

from frameslicer.errors import MediaSourceError
from frameslicer.models import ImageBuffer, MediaDimensions

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeMediaSource:
    """In-memory MediaSource that records every seek and capture.

    ``fail_at`` is the 1-based call number of ``fail_on`` ("seek" or
    "capture") that raises; ``hang_at`` makes that seek never land.
    """

    def __init__(self, width=1920, height=1080, fail_at=None, fail_on="capture", hang_at=None):
        self.width = width
        self.height = height
        self.fail_at = fail_at
        self.fail_on = fail_on
        self.hang_at = hang_at
        self.current: float | None = None
        self.events: list[tuple[str, float | None]] = []
        self.seek_calls = 0
        self.capture_calls = 0
        self.on_capture = None

    async def seek(self, timestamp: float) -> None:
        self.seek_calls += 1
        self.events.append(("seek", timestamp))
        if self.hang_at == self.seek_calls:
            await asyncio.sleep(3600)
        await asyncio.sleep(0)
        if self.fail_on == "seek" and self.fail_at == self.seek_calls:
            raise MediaSourceError(f"cannot seek to {timestamp}")
        self.current = timestamp
        self.events.append(("landed", timestamp))

    def frame_dimensions(self) -> tuple[int, int]:
        return self.width, self.height

    def capture_region(self, x: int, y: int, w: int, h: int) -> ImageBuffer:
        self.capture_calls += 1
        self.events.append(("capture", self.current))
        if self.fail_on == "capture" and self.fail_at == self.capture_calls:
            raise MediaSourceError("decoder lost the frame")
        if self.on_capture:
            self.on_capture(self.capture_calls)
        return ImageBuffer(width=w, height=h, data=f"{self.current}@{x},{y},{w},{h}".encode())


@pytest.fixture
def media() -> MediaDimensions:
    return MediaDimensions(width=1920, height=1080, duration=60.0)


@pytest.fixture
def fake_source():
    return FakeMediaSource


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"
