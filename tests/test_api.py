from __future__ import annotations

import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from core.image_pdf.config import AppConfig


def build_client(config: AppConfig) -> TestClient:
    return TestClient(create_app(config))


def test_health(config: AppConfig) -> None:
    client = build_client(config)
    payload = client.get("/health").json()
    assert payload["status"] == "ok"
    assert payload["formats"] == [".jpeg", ".jpg", ".png"]


def test_disabled_api_raises(config: AppConfig) -> None:
    config.runtime.enable_local_api = False
    with pytest.raises(RuntimeError):
        create_app(config)


def test_convert_endpoint(make_image, config: AppConfig, tmp_path: Path) -> None:
    client = build_client(config)
    images = [str(make_image("a.png")), str(make_image("b.jpg"))]
    response = client.post(
        "/convert",
        json={"images": images, "output_path": str(tmp_path / "api.pdf"), "page_size": "sheet"},
    )
    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["outcome"] == "succeeded"
    assert payload["document"]["pages"] == 2
    assert payload["archive"]["entries"] == 2
    assert Path(payload["archive"]["path"]).exists()


def test_convert_endpoint_errors(make_image, corrupt_image: Path, config: AppConfig, tmp_path: Path) -> None:
    client = build_client(config)
    empty = client.post("/convert", json={"images": []})
    assert empty.status_code == 400
    assert empty.json()["detail"] == "EMPTY_INPUT"

    failed = client.post(
        "/convert",
        json={"images": [str(make_image("a.png")), str(corrupt_image)], "output_path": str(tmp_path / "x.pdf")},
    )
    assert failed.status_code == 400
    detail = failed.json()["detail"]
    assert detail["outcome"] == "partial"
    assert detail["error_code"] == "DOCUMENT_FAILED"
    assert detail["archive"]["status"] == "succeeded"


def test_job_endpoints(make_image, config: AppConfig) -> None:
    client = build_client(config)
    submitted = client.post("/api/v1/jobs", json={"images": [str(make_image("a.png"))], "archive": False})
    assert submitted.status_code == 202
    job_id = submitted.json()["job_id"]

    status = {}
    for _ in range(200):
        status = client.get(f"/api/v1/jobs/{job_id}").json()
        if status["terminal"]:
            break
        time.sleep(0.05)
    assert status["status"] == "succeeded"
    assert status["artifacts"]["archive_path"] is None
    assert Path(status["artifacts"]["document_path"]).exists()

    listed = client.get("/api/v1/jobs").json()["jobs"]
    assert listed[-1]["job_id"] == job_id
    assert client.get("/api/v1/jobs/job-unknown").status_code == 404
    assert client.post("/api/v1/jobs/job-unknown/cancel").status_code == 409
    assert client.post("/api/v1/jobs", json={"images": []}).status_code == 400
