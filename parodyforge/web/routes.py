"""Job API routes: submit an exported manifest, follow progress, fetch the result."""

import dataclasses
import json
import logging
import queue
import re
import threading
import uuid
from pathlib import Path

from flask import Blueprint, Response, current_app, jsonify, request, send_file

from parodyforge.engine import RunStatus, run
from parodyforge.errors import MalformedInputError
from parodyforge.manifest import dump_tasks, parse_tasks

logger = logging.getLogger(__name__)

bp = Blueprint("web", __name__)

# In-memory job store: job_id -> job dict
_jobs: dict[str, dict] = {}

_SAFE_NAME = re.compile(r"^[\w][\w.-]*\.(mp4|mkv|mov)$")


@bp.route("/api/jobs", methods=["POST"])
def create_job():
    payload = request.get_json(silent=True)
    if payload is None:
        return jsonify({"error": "Request body must be JSON"}), 400

    output_name = "output.mp4"
    if isinstance(payload, dict):
        output_name = payload.get("output_name") or output_name
        payload = payload.get("tasks")
    if not isinstance(output_name, str) or not _SAFE_NAME.match(output_name):
        return jsonify({"error": f"Invalid output_name: {output_name!r}"}), 400

    try:
        tasks = parse_tasks(payload)
    except MalformedInputError as e:
        return jsonify({"error": str(e)}), 400

    job_id = uuid.uuid4().hex[:12]
    job_dir = Path(current_app.config["WORK_DIR"]) / job_id
    job_dir.mkdir(parents=True, exist_ok=True)
    manifest_path = job_dir / "manifest.json"
    dump_tasks(tasks, manifest_path)

    config = dataclasses.replace(
        current_app.config["PIPELINE_CONFIG"],
        temp_dir=job_dir / "segments",
        keep_temp=False,
    )
    runner = current_app.config["COMMAND_RUNNER"]
    output_path = job_dir / output_name

    progress_queue: queue.Queue = queue.Queue()
    job = {
        "dir": job_dir,
        "status": "queued",
        "progress_queue": progress_queue,
        "result": None,
        "reason": None,
        "error": None,
    }
    _jobs[job_id] = job

    def work():
        job["status"] = "processing"
        try:
            def on_progress(stage: str, frac: float):
                progress_queue.put({"stage": stage, "progress": round(frac, 3)})

            result = run(manifest_path, output_path, config, runner=runner, on_progress=on_progress)
            job["result"] = {
                "output_path": str(result.output_path) if result.output_path else None,
                "tasks": result.tasks_total,
                "downloaded": result.downloaded,
                "cache_hits": result.cache_hits,
                "cut": result.cut,
                "joined": result.joined,
                "failures": [dataclasses.asdict(f) for f in result.failures],
            }
            job["reason"] = result.reason
            if result.status is RunStatus.SUCCEEDED:
                job["status"] = "done"
            elif result.status is RunStatus.NO_SURVIVORS:
                job["status"] = "no_survivors"
            else:
                job["status"] = "error"
                job["error"] = result.reason
        except Exception as e:
            logger.exception("Job %s crashed", job_id)
            job["status"] = "error"
            job["error"] = str(e)
        finally:
            progress_queue.put(None)  # sentinel

    threading.Thread(target=work, daemon=True).start()
    return jsonify({"job_id": job_id, "tasks": len(tasks)}), 202


@bp.route("/api/jobs/<job_id>/progress")
def progress_stream(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    q = job["progress_queue"]

    def generate():
        while True:
            try:
                msg = q.get(timeout=120)
            except queue.Empty:
                yield "data: {\"error\": \"timeout\"}\n\n"
                break
            if msg is None:
                if job["status"] == "error":
                    data = json.dumps({"error": job["error"]})
                else:
                    data = json.dumps({
                        "stage": "complete",
                        "progress": 1.0,
                        "status": job["status"],
                        "result": job["result"],
                    })
                yield f"data: {data}\n\n"
                break
            yield f"data: {json.dumps(msg)}\n\n"

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/jobs/<job_id>/result")
def download_result(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] == "no_survivors":
        # Every task was dropped, so no video was ever joined.
        return jsonify({
            "error": f"No video produced: {job['reason']}",
            "status": job["status"],
            "failures": job["result"]["failures"],
        }), 409
    if job["status"] == "error":
        return jsonify({"error": job["error"], "status": job["status"]}), 409
    if job["status"] != "done":
        return jsonify({"error": "Job not complete", "status": job["status"]}), 409

    output_path = Path(job["result"]["output_path"])
    return send_file(output_path, as_attachment=True, download_name=output_path.name)


@bp.route("/api/jobs/<job_id>/status")
def job_status(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    resp = {"status": job["status"]}
    if job["result"] is not None:
        resp["result"] = job["result"]
    if job["status"] == "error":
        resp["error"] = job["error"]
    elif job["reason"]:
        resp["reason"] = job["reason"]
    return jsonify(resp)
