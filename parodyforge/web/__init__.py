"""Flask application factory for the ParodyForge job API."""

import tempfile
from pathlib import Path

from flask import Flask, jsonify

from parodyforge.manifest import PipelineConfig
from parodyforge.runner import CommandRunner


def create_app(
    work_dir: Path | None = None,
    config: PipelineConfig | None = None,
    runner: CommandRunner | None = None,
) -> Flask:
    app = Flask(__name__)
    app.config["WORK_DIR"] = work_dir or Path(tempfile.mkdtemp(prefix="parodyforge_"))
    app.config["PIPELINE_CONFIG"] = config or PipelineConfig()
    app.config["COMMAND_RUNNER"] = runner
    app.config["MAX_CONTENT_LENGTH"] = 1 * 1024 * 1024  # manifests only

    from parodyforge.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": "Manifest too large"}), 413

    return app
