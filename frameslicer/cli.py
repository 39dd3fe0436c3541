"""Thin CLI entry point: builds a SliceManifest and calls the engine."""

import argparse
import logging
import subprocess
import sys
from pathlib import Path

from frameslicer.engine import process
from frameslicer.errors import FrameSlicerError
from frameslicer.ffutil import FFmpegNotFoundError
from frameslicer.manifest import CropConfig, SliceManifest, TimeConfig, load_manifest, parse_seconds
from frameslicer.sampling import DEFAULT_SEEK_TIMEOUT


def _seconds(value: str) -> float:
    """argparse type accepting ``12.5`` or ``00:12.500``."""
    try:
        return parse_seconds(value) if ":" in value else float(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="frameslicer",
        description="FrameSlicer: sample a cropped region of a video into numbered PNG frames.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    sl = sub.add_parser("slice", help="Sample frames from a video file")
    sl.add_argument("video", nargs="?", type=Path, help="Input video file")
    sl.add_argument("--manifest", "-m", type=Path, help="Path to a JSON manifest file")
    sl.add_argument("--output", "-o", type=Path, help="Output .zip file or directory")
    sl.add_argument("--crop", nargs=4, type=int, metavar=("X", "Y", "W", "H"), help="Crop rectangle in video pixels")
    sl.add_argument("--aspect", type=str, default="free", help="free, original, 16:9, 4:3, 1:1, 9:16 or W:H")
    sl.add_argument("--start", type=_seconds, help="Start time (seconds or MM:SS.mmm)")
    sl.add_argument("--end", type=_seconds, help="End time (seconds or MM:SS.mmm)")
    sl.add_argument("--interval", type=float, default=1.0, help="Seconds between sampled frames")
    sl.add_argument("--seek-timeout", type=float, default=DEFAULT_SEEK_TIMEOUT, help="Seconds to wait for each seek")

    serve = sub.add_parser("serve", help="Launch the web API")
    serve.add_argument("--port", type=int, default=8322, help="Port to listen on")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from frameslicer.web import create_app
        app = create_app()
        print(f"FrameSlicer web API: http://{args.host}:{args.port}")
        app.run(host=args.host, port=args.port, debug=False)
        return

    if args.manifest:
        m = load_manifest(args.manifest)
    elif args.video:
        output = args.output or args.video.parent
        m = SliceManifest(
            input=args.video,
            output=output,
            crop=CropConfig(*args.crop) if args.crop else None,
            aspect=args.aspect,
            time=TimeConfig(start=args.start, end=args.end),
            interval=args.interval,
            seek_timeout=args.seek_timeout,
        )
    else:
        print("Error: provide either a VIDEO argument or --manifest.", file=sys.stderr)
        sys.exit(1)

    def on_progress(stage: str, frac: float) -> None:
        print(f"  [{frac:3.0%}] {stage}")

    try:
        result = process(m, on_progress=on_progress)
    except (FrameSlicerError, FFmpegNotFoundError, subprocess.CalledProcessError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print()
    print(f"Done! Archive: {result.output_path}")
    print(f"  Frames: {result.frame_count}")
    if result.crop is not None:
        c = result.crop
        print(f"  Crop: {c.w}x{c.h} at ({c.x}, {c.y})")
    if result.error:
        print(f"  Stopped early: {result.error}")
