"""Tests for zip packaging of captured frames."""

import asyncio
import base64
import io
import zipfile

import pytest

from frameslicer.export import ExportPackager, ZipArchiveWriter, archive_name, frame_filename
from frameslicer.models import CapturedFrame, ImageBuffer


def _frame(ordinal: int, t: float = 0.0) -> CapturedFrame:
    return CapturedFrame(ordinal=ordinal, timestamp=t, pixels=ImageBuffer(4, 4, f"png-{ordinal}".encode()))


def _package(frames, on_progress=None) -> bytes:
    return asyncio.run(ExportPackager().package(frames, on_progress=on_progress))


class TestNames:
    @pytest.mark.parametrize("ordinal,name", [(1, "frame_0001.png"), (42, "frame_0042.png"), (9999, "frame_9999.png")])
    def test_frame_filename(self, ordinal, name):
        assert frame_filename(ordinal) == name

    def test_archive_name_uses_milliseconds(self):
        assert archive_name(1700000000.123) == "frames_1700000000123.zip"

    def test_archive_names_differ_over_time(self):
        assert archive_name(1.0) != archive_name(1.001)


class TestPackage:
    def test_entries_ordered_and_unique(self):
        data = _package([_frame(i) for i in range(1, 13)])
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            names = zf.namelist()
            assert names == [f"frame_{i:04d}.png" for i in range(1, 13)]
            assert zf.read("frame_0007.png") == b"png-7"

    def test_sorted_by_ordinal(self):
        data = _package([_frame(3), _frame(1), _frame(2)])
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.namelist() == ["frame_0001.png", "frame_0002.png", "frame_0003.png"]

    def test_deflated(self):
        data = _package([_frame(1)])
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.infolist()[0].compress_type == zipfile.ZIP_DEFLATED

    def test_progress_per_entry(self):
        calls = []
        _package([_frame(i) for i in range(1, 4)], on_progress=lambda c, t: calls.append((c, t)))
        assert calls == [(1, 3), (2, 3), (3, 3)]

    def test_duplicate_ordinals_rejected(self):
        with pytest.raises(ValueError, match="unique"):
            _package([_frame(1), _frame(1)])

    def test_empty(self):
        with zipfile.ZipFile(io.BytesIO(_package([]))) as zf:
            assert zf.namelist() == []


class TestZipArchiveWriter:
    def test_base64_entries_decoded(self):
        writer = ZipArchiveWriter()
        writer.add("a.png", base64.b64encode(b"raw").decode(), is_base64=True)
        data = asyncio.run(writer.finalize())
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.read("a.png") == b"raw"

    def test_no_overwrite(self):
        writer = ZipArchiveWriter()
        writer.add("a.png", b"1")
        with pytest.raises(ValueError, match="Duplicate"):
            writer.add("a.png", b"2")
