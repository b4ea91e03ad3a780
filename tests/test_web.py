"""Unit tests for the HTTP job API."""

import time

import pytest

from parodyforge.manifest import PipelineConfig
from parodyforge.web import create_app

from conftest import URL_A, URL_B, FakeRunner


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def app(tmp_path, runner):
    app = create_app(
        work_dir=tmp_path / "jobs",
        config=PipelineConfig(cache_dir=tmp_path / "cache"),
        runner=runner,
    )
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def _task(url: str) -> dict:
    return {"url": url, "startTime": "00:00:01", "endTime": "00:00:04"}


def _wait(client, job_id: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        data = client.get(f"/api/jobs/{job_id}/status").get_json()
        if data["status"] not in ("queued", "processing"):
            return data
        time.sleep(0.02)
    raise AssertionError(f"job {job_id} did not finish")


class TestCreateJob:
    def test_accepts_manifest_array(self, client, tmp_path):
        resp = client.post("/api/jobs", json=[_task(URL_A), _task(URL_B)])
        assert resp.status_code == 202
        data = resp.get_json()
        assert data["tasks"] == 2
        assert (tmp_path / "jobs" / data["job_id"] / "manifest.json").exists()

    def test_accepts_wrapped_form(self, client, tmp_path):
        resp = client.post("/api/jobs", json={"tasks": [_task(URL_A)], "output_name": "song.mp4"})
        assert resp.status_code == 202
        job_id = resp.get_json()["job_id"]
        status = _wait(client, job_id)
        assert status["result"]["output_path"].endswith("song.mp4")

    def test_rejects_malformed_manifest(self, client):
        resp = client.post("/api/jobs", json=[{"url": URL_A, "startTime": "0"}])
        assert resp.status_code == 400
        assert "endTime" in resp.get_json()["error"]

    def test_rejects_non_json(self, client):
        resp = client.post("/api/jobs", data="nope", content_type="text/plain")
        assert resp.status_code == 400

    def test_rejects_unsafe_output_name(self, client):
        resp = client.post("/api/jobs", json={"tasks": [_task(URL_A)], "output_name": "../evil.mp4"})
        assert resp.status_code == 400

    def test_rejects_non_string_output_name(self, client):
        resp = client.post("/api/jobs", json={"tasks": [_task(URL_A)], "output_name": 5})
        assert resp.status_code == 400
        assert "output_name" in resp.get_json()["error"]


class TestJobLifecycle:
    def test_runs_to_completion(self, client, runner):
        job_id = client.post("/api/jobs", json=[_task(URL_A), _task(URL_B)]).get_json()["job_id"]

        status = _wait(client, job_id)

        assert status["status"] == "done"
        assert status["result"]["downloaded"] == 2
        assert status["result"]["cut"] == 2
        assert status["result"]["joined"] == 1
        assert len(runner.joins) == 1

        resp = client.get(f"/api/jobs/{job_id}/result")
        assert resp.status_code == 200
        assert resp.data == b"fake media"
        resp.close()

    def test_no_survivors(self, client):
        job_id = client.post("/api/jobs", json=[_task("https://example.com/x")]).get_json()["job_id"]
        status = _wait(client, job_id)
        assert status["status"] == "no_survivors"
        assert status["reason"] == "nothing to join"

        resp = client.get(f"/api/jobs/{job_id}/result")
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["status"] == "no_survivors"
        assert "nothing to join" in body["error"]
        assert body["failures"][0]["stage"] == "resolve"

    def test_progress_stream_ends_with_result(self, client):
        job_id = client.post("/api/jobs", json=[_task(URL_A)]).get_json()["job_id"]
        resp = client.get(f"/api/jobs/{job_id}/progress")
        body = resp.get_data(as_text=True)
        events = [line for line in body.splitlines() if line.startswith("data: ")]
        assert '"stage": "complete"' in events[-1]
        assert '"status": "done"' in events[-1]


class TestUnknownJob:
    def test_status(self, client):
        assert client.get("/api/jobs/nonexistent/status").status_code == 404

    def test_result(self, client):
        assert client.get("/api/jobs/nonexistent/result").status_code == 404

    def test_progress(self, client):
        assert client.get("/api/jobs/nonexistent/progress").status_code == 404
