"""Flask application factory for the FrameSlicer web API."""

import tempfile
from pathlib import Path

from flask import Flask, jsonify

from frameslicer.sampling import DEFAULT_SEEK_TIMEOUT


def create_app(work_dir: Path | None = None) -> Flask:
    app = Flask(__name__)
    app.config["WORK_DIR"] = work_dir or Path(tempfile.mkdtemp(prefix="frameslicer_"))
    app.config["MAX_CONTENT_LENGTH"] = 4 * 1024 * 1024 * 1024  # 4 GB
    app.config["SEEK_TIMEOUT"] = DEFAULT_SEEK_TIMEOUT

    from frameslicer.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": "File too large"}), 413

    return app
