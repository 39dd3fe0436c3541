"""Packages captured frames into a zip archive."""

import base64
import io
import logging
import time
import zipfile
from typing import Callable, Protocol

from frameslicer.models import CapturedFrame

logger = logging.getLogger(__name__)


class ArchiveWriter(Protocol):
    def add(self, filename: str, data: bytes | str, is_base64: bool = False) -> None:
        ...

    async def finalize(self) -> bytes:
        ...


class ZipArchiveWriter:
    """In-memory deflate zip; entries are written in the order they are added."""

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED):
        self._buf = io.BytesIO()
        self._zip = zipfile.ZipFile(self._buf, "w", compression=compression)
        self._names: set[str] = set()

    def add(self, filename: str, data: bytes | str, is_base64: bool = False) -> None:
        if filename in self._names:
            raise ValueError(f"Duplicate archive entry {filename!r}")
        if is_base64:
            data = base64.b64decode(data)
        elif isinstance(data, str):
            data = data.encode("utf-8")
        self._zip.writestr(filename, data)
        self._names.add(filename)

    async def finalize(self) -> bytes:
        self._zip.close()
        return self._buf.getvalue()


def frame_filename(ordinal: int, fmt: str = "png") -> str:
    return f"frame_{ordinal:04d}.{fmt}"


def archive_name(now: float | None = None) -> str:
    """Download name stamped with epoch milliseconds, e.g. ``frames_1700000000000.zip``."""
    if now is None:
        now = time.time()
    return f"frames_{round(now * 1000)}.zip"


class ExportPackager:
    def __init__(self, writer_factory: Callable[[], ArchiveWriter] = ZipArchiveWriter):
        self.writer_factory = writer_factory

    async def package(
        self,
        frames: list[CapturedFrame],
        on_progress: Callable[[int, int], None] | None = None,
    ) -> bytes:
        """Write one ``frame_NNNN.<fmt>`` entry per frame, in ordinal order."""
        ordered = sorted(frames, key=lambda f: f.ordinal)
        ordinals = [f.ordinal for f in ordered]
        if len(set(ordinals)) != len(ordinals):
            raise ValueError("Frames must have unique ordinals")

        writer = self.writer_factory()
        total = len(ordered)
        for i, frame in enumerate(ordered, 1):
            writer.add(frame_filename(frame.ordinal, frame.pixels.format), frame.pixels.data)
            if on_progress:
                on_progress(i, total)

        data = await writer.finalize()
        logger.info("Packaged %d frames into %d bytes", total, len(data))
        return data
