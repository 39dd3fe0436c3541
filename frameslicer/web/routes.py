"""Web API routes for FrameSlicer."""

import asyncio
import io
import json
import logging
import queue
import subprocess
import threading
import uuid
from pathlib import Path

from flask import Blueprint, Response, current_app, jsonify, request, send_file

from frameslicer import ffutil
from frameslicer.crop import AspectPolicy
from frameslicer.errors import CaptureFailed, InvalidInterval
from frameslicer.interaction import PointerDown, PointerLeave, PointerMove, PointerUp
from frameslicer.media import FFmpegMediaSource
from frameslicer.models import Rect
from frameslicer.session import Session
from frameslicer.timerange import END, START

logger = logging.getLogger(__name__)

bp = Blueprint("api", __name__)

# In-memory session store: session_id -> entry dict
_sessions: dict[str, dict] = {}
# guards the check-and-set of an entry's "sampling" status
_status_lock = threading.Lock()


def _claim_sampling(entry: dict) -> bool:
    """Mark the entry as sampling; False if a run already holds it."""
    with _status_lock:
        if entry["status"] == "sampling":
            return False
        entry["status"] = "sampling"
        return True


_POINTER_EVENTS = {
    "down": lambda d: PointerDown(float(d["x"]), float(d["y"])),
    "move": lambda d: PointerMove(float(d["x"]), float(d["y"])),
    "up": lambda d: PointerUp(),
    "leave": lambda d: PointerLeave(),
}


def _not_found():
    return jsonify({"error": "Session not found"}), 404


def _source(entry: dict) -> FFmpegMediaSource:
    return FFmpegMediaSource(entry["input_path"], entry["session"].media, fps=entry["fps"])


def _crop_response(session: Session):
    return jsonify({
        "crop": session.crop.rect.as_dict(),
        "crop_display": session.mapper.rect_to_presentation(session.crop.rect).as_dict(),
        "cursor": session.controller.cursor,
        "aspect": session.crop.policy.name,
    })


@bp.route("/api/upload", methods=["POST"])
def upload():
    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    f = request.files["file"]
    if not f.filename:
        return jsonify({"error": "Empty filename"}), 400

    session_id = uuid.uuid4().hex[:12]
    session_dir = Path(current_app.config["WORK_DIR"]) / session_id
    session_dir.mkdir(parents=True, exist_ok=True)

    ext = Path(f.filename).suffix or ".mp4"
    input_path = session_dir / f"input{ext}"
    f.save(input_path)

    try:
        probe_result = ffutil.probe(input_path)
        media = probe_result.dimensions
    except (subprocess.CalledProcessError, ValueError, KeyError) as e:
        logger.warning("Rejected upload %s: %s", f.filename, e)
        return jsonify({"error": f"Not a readable video: {f.filename}"}), 400

    _sessions[session_id] = {
        "dir": session_dir,
        "input_path": input_path,
        "filename": f.filename,
        "fps": probe_result.fps,
        "session": Session(media, seek_timeout=current_app.config["SEEK_TIMEOUT"]),
        "status": "ready",
        "error": None,
    }
    logger.info("Session %s created for %s", session_id, f.filename)

    return jsonify({
        "session_id": session_id,
        "filename": f.filename,
        "media": {"width": media.width, "height": media.height, "duration": media.duration},
    })


@bp.route("/api/sessions/<session_id>")
def session_state(session_id: str):
    if session_id not in _sessions:
        return _not_found()

    entry = _sessions[session_id]
    resp = entry["session"].as_dict()
    resp["status"] = entry["status"]
    resp["filename"] = entry["filename"]
    if entry["error"]:
        resp["error"] = entry["error"]
    return jsonify(resp)


@bp.route("/api/sessions/<session_id>/container", methods=["POST"])
def resize_container(session_id: str):
    if session_id not in _sessions:
        return _not_found()

    session = _sessions[session_id]["session"]
    data = request.get_json() or {}
    try:
        mapper = session.resize_container(float(data["width"]), float(data["height"]))
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid container size: {e}"}), 400

    g = mapper.geometry
    return jsonify({
        "geometry": {
            "display_w": g.display_w,
            "display_h": g.display_h,
            "offset_x": g.offset_x,
            "offset_y": g.offset_y,
        },
        "crop_display": mapper.rect_to_presentation(session.crop.rect).as_dict(),
    })


@bp.route("/api/sessions/<session_id>/pointer", methods=["POST"])
def pointer(session_id: str):
    if session_id not in _sessions:
        return _not_found()

    session = _sessions[session_id]["session"]
    data = request.get_json() or {}
    make_event = _POINTER_EVENTS.get(data.get("type"))
    if make_event is None:
        return jsonify({"error": "type must be one of down, move, up, leave"}), 400
    try:
        event = make_event(data)
    except (KeyError, TypeError, ValueError):
        return jsonify({"error": "Pointer events need numeric x and y"}), 400

    session.pointer(event)
    return _crop_response(session)


@bp.route("/api/sessions/<session_id>/crop", methods=["PUT"])
def set_crop(session_id: str):
    if session_id not in _sessions:
        return _not_found()

    session = _sessions[session_id]["session"]
    data = request.get_json() or {}
    current = session.crop.rect
    try:
        candidate = Rect(
            x=int(data.get("x", current.x)),
            y=int(data.get("y", current.y)),
            w=int(data.get("w", current.w)),
            h=int(data.get("h", current.h)),
        )
    except (TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid crop: {e}"}), 400

    session.crop.set_rect(candidate)
    return _crop_response(session)


@bp.route("/api/sessions/<session_id>/crop/reset", methods=["POST"])
def reset_crop(session_id: str):
    if session_id not in _sessions:
        return _not_found()

    session = _sessions[session_id]["session"]
    session.crop.reset()
    return _crop_response(session)


@bp.route("/api/sessions/<session_id>/aspect", methods=["POST"])
def set_aspect(session_id: str):
    if session_id not in _sessions:
        return _not_found()

    session = _sessions[session_id]["session"]
    data = request.get_json() or {}
    try:
        if "ratio_w" in data or "ratio_h" in data:
            session.crop.set_custom_ratio(int(data.get("ratio_w") or 0), int(data.get("ratio_h") or 0))
        else:
            session.set_aspect(AspectPolicy.parse(str(data.get("aspect", "free"))))
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    return _crop_response(session)


@bp.route("/api/sessions/<session_id>/time", methods=["POST"])
def set_time(session_id: str):
    if session_id not in _sessions:
        return _not_found()

    session = _sessions[session_id]["session"]
    data = request.get_json() or {}
    which = data.get("which")
    if which not in (START, END):
        return jsonify({"error": "which must be 'start' or 'end'"}), 400

    try:
        if "text" in data:
            applied = session.time_range.set_from_text(str(data["text"]), which)
            if applied is None:
                return jsonify({"error": f"Rejected time {data['text']!r}", **session.as_dict()}), 400
        elif "fraction" in data:
            session.time_range.set_from_fraction(float(data["fraction"]), which)
        elif "seconds" in data:
            session.time_range.set(which, float(data["seconds"]))
        else:
            return jsonify({"error": "Provide text, fraction or seconds"}), 400
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(session.as_dict())


@bp.route("/api/sessions/<session_id>/interval", methods=["POST"])
def set_interval(session_id: str):
    if session_id not in _sessions:
        return _not_found()

    session = _sessions[session_id]["session"]
    data = request.get_json() or {}
    try:
        session.set_interval(float(data.get("interval", 1.0)))
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(session.as_dict())


@bp.route("/api/sessions/<session_id>/preview", methods=["POST"])
def start_preview(session_id: str):
    if session_id not in _sessions:
        return _not_found()

    entry = _sessions[session_id]
    if not _claim_sampling(entry):
        return jsonify({"error": "Sampling is already running"}), 409

    session: Session = entry["session"]
    source = _source(entry)
    progress_queue: queue.Queue = queue.Queue()
    entry["progress_queue"] = progress_queue
    entry["error"] = None

    def run():
        try:
            def on_progress(completed: int, total: int):
                progress_queue.put({"completed": completed, "total": total})

            asyncio.run(session.preview(source, on_progress=on_progress))
            entry["status"] = "done"
        except CaptureFailed as e:
            entry["status"] = "error"
            entry["error"] = f"{e} (kept {e.last_ordinal} frames)"
        except InvalidInterval as e:
            entry["status"] = "error"
            entry["error"] = str(e)
        except Exception as e:
            logger.exception("Preview for session %s failed", session_id)
            entry["status"] = "error"
            entry["error"] = str(e)
        finally:
            progress_queue.put(None)  # sentinel

    threading.Thread(target=run, daemon=True).start()
    return jsonify({"status": "started", "frame_count": session.frame_count()})


@bp.route("/api/sessions/<session_id>/progress")
def progress_stream(session_id: str):
    if session_id not in _sessions:
        return _not_found()

    entry = _sessions[session_id]
    q = entry.get("progress_queue")

    if q is None:
        return jsonify({"error": "No sampling in progress"}), 409

    def generate():
        while True:
            try:
                msg = q.get(timeout=120)
            except queue.Empty:
                yield "data: {\"error\": \"timeout\"}\n\n"
                break
            if msg is None:
                data = {"stage": "complete", "frames": len(entry["session"].preview_frames)}
                if entry["status"] == "error":
                    data["error"] = entry["error"]
                yield f"data: {json.dumps(data)}\n\n"
                break
            yield f"data: {json.dumps(msg)}\n\n"

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/sessions/<session_id>/frames")
def list_frames(session_id: str):
    if session_id not in _sessions:
        return _not_found()

    frames = _sessions[session_id]["session"].preview_frames
    return jsonify({
        "frames": [
            {
                "ordinal": f.ordinal,
                "timestamp": f.timestamp,
                "label": f.label,
                "width": f.pixels.width,
                "height": f.pixels.height,
            }
            for f in frames
        ]
    })


@bp.route("/api/sessions/<session_id>/frames/<int:ordinal>")
def get_frame(session_id: str, ordinal: int):
    if session_id not in _sessions:
        return _not_found()

    frames = _sessions[session_id]["session"].preview_frames
    frame = next((f for f in frames if f.ordinal == ordinal), None)
    if frame is None:
        return jsonify({"error": "Frame not found"}), 404

    return send_file(io.BytesIO(frame.pixels.data), mimetype=f"image/{frame.pixels.format}")


@bp.route("/api/sessions/<session_id>/export")
def export(session_id: str):
    if session_id not in _sessions:
        return _not_found()

    entry = _sessions[session_id]
    previous = entry["status"]
    # export may sample in this request, so it holds the session like a preview
    if not _claim_sampling(entry):
        return jsonify({"error": "Sampling is still running"}), 409

    session: Session = entry["session"]
    try:
        name, data = asyncio.run(session.export(_source(entry)))
    except CaptureFailed as e:
        return jsonify({"error": str(e), "last_ordinal": e.last_ordinal}), 409
    finally:
        entry["status"] = previous

    return send_file(
        io.BytesIO(data),
        mimetype="application/zip",
        as_attachment=True,
        download_name=name,
    )
