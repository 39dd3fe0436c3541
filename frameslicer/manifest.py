"""JSON manifest schema shared by the CLI and the engine."""

import json
from dataclasses import dataclass, field
from pathlib import Path

from frameslicer.errors import InvalidInterval
from frameslicer.sampling import DEFAULT_SEEK_TIMEOUT
from frameslicer.timerange import parse_time


@dataclass
class CropConfig:
    """Crop rectangle in video pixels."""

    x: int = 0
    y: int = 0
    w: int = 0
    h: int = 0


@dataclass
class TimeConfig:
    """Time window in seconds; None means the start/end of the video."""

    start: float | None = None
    end: float | None = None


@dataclass
class SliceManifest:
    """Top-level slicing manifest."""

    input: Path
    output: Path
    version: str = "1"
    crop: CropConfig | None = None
    aspect: str = "free"
    time: TimeConfig = field(default_factory=TimeConfig)
    interval: float = 1.0
    seek_timeout: float = DEFAULT_SEEK_TIMEOUT
    keep_partial: bool = True


def parse_seconds(value) -> float | None:
    """Accept seconds as a number or an ``MM:SS.mmm`` string."""
    if value is None:
        return None
    if isinstance(value, str):
        return parse_time(value)
    return float(value)


def load_manifest(path: str | Path) -> SliceManifest:
    """Load and validate a manifest from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if "input" not in data or "output" not in data:
        raise ValueError("Manifest must contain 'input' and 'output' fields")

    crop = CropConfig(**data["crop"]) if data.get("crop") else None
    t = data.get("time", {})
    time = TimeConfig(start=parse_seconds(t.get("start")), end=parse_seconds(t.get("end")))

    interval = float(data.get("interval", 1.0))
    if interval <= 0:
        raise InvalidInterval(interval)

    return SliceManifest(
        version=data.get("version", "1"),
        input=Path(data["input"]),
        output=Path(data["output"]),
        crop=crop,
        aspect=data.get("aspect", "free"),
        time=time,
        interval=interval,
        seek_timeout=float(data.get("seek_timeout", DEFAULT_SEEK_TIMEOUT)),
        keep_partial=bool(data.get("keep_partial", True)),
    )
