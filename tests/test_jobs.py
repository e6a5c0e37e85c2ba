from __future__ import annotations

import json
import threading
import time
from pathlib import Path

import pytest

from core.image_pdf.config import AppConfig
from core.image_pdf.core import ConversionService
from core.image_pdf.errors import EmptyInputError
from core.image_pdf.jobs import JobManager, JobOptions, JobStatus
from core.image_pdf.models import ConversionJob, ConversionResult
from core.image_pdf.progress import ProgressSnapshot


def build_manager(config: AppConfig, service: ConversionService | None = None) -> JobManager:
    config.runtime.jobs.worker_pool_size = 1
    return JobManager(config, service or ConversionService(config))


def wait_for_status(manager: JobManager, job_id: str, status: JobStatus) -> None:
    for _ in range(200):
        record = manager.get_status(job_id)
        if record and record.status is status:
            return
        time.sleep(0.05)
    raise AssertionError(f"Job {job_id} did not reach {status}")


class BlockingService(ConversionService):
    """Holds the first job until released so later jobs stay queued."""

    def __init__(self, config: AppConfig) -> None:
        super().__init__(config)
        self.release = threading.Event()

    def convert(self, job: ConversionJob, *args, **kwargs) -> ConversionResult:  # type: ignore[override]
        self.release.wait(5)
        return super().convert(job, *args, **kwargs)


def test_job_manager_completes_and_tracks_artifacts(make_image, config: AppConfig) -> None:
    manager = build_manager(config)
    try:
        images = [make_image("a.png"), make_image("b.jpg")]
        record = manager.submit(images, options=JobOptions(page_size=None))
        assert record.status is JobStatus.QUEUED
        assert record.total == 2
        final = manager.wait(record.job_id, timeout=10)
        assert final is not None
        assert final.status is JobStatus.SUCCEEDED
        assert final.progress == 1.0
        assert final.document_done == 2
        assert final.archive_done == 2
        assert final.artifacts is not None
        assert Path(final.artifacts.document_path).exists()
        assert Path(final.artifacts.archive_path).exists()
        assert final.artifacts.page_count == 2
        assert Path(final.artifacts.document_path).parent.name == record.job_id

        status_file = config.runtime.output_dir / record.job_id / "status.json"
        assert json.loads(status_file.read_text(encoding="utf-8"))["status"] == "succeeded"
        listed = manager.list_jobs()
        assert [entry["job_id"] for entry in listed] == [record.job_id]
        assert listed[0]["status"] == "succeeded"
    finally:
        manager.shutdown(wait=True)


def test_job_partial_outcome(make_image, corrupt_image: Path, config: AppConfig, tmp_path: Path) -> None:
    manager = build_manager(config)
    try:
        record = manager.submit([make_image("a.png"), corrupt_image], tmp_path / "out.pdf")
        final = manager.wait(record.job_id, timeout=10)
        assert final is not None
        assert final.status is JobStatus.PARTIAL
        assert final.error_code == "DOCUMENT_FAILED"
        assert final.artifacts is not None
        assert final.artifacts.document_path is None
        assert final.artifacts.archive_path is not None
    finally:
        manager.shutdown(wait=True)


def test_queued_job_can_be_canceled(make_image, config: AppConfig, tmp_path: Path) -> None:
    service = BlockingService(config)
    manager = build_manager(config, service)
    try:
        first = manager.submit([make_image("a.png")], tmp_path / "first.pdf")
        second = manager.submit([make_image("b.png")], tmp_path / "second.pdf", JobOptions(archive=False))
        assert manager.cancel(second.job_id) is True
        service.release.set()
        wait_for_status(manager, first.job_id, JobStatus.SUCCEEDED)
        canceled = manager.wait(second.job_id, timeout=10)
        assert canceled is not None
        assert canceled.status is JobStatus.CANCELED
        assert not (tmp_path / "second.pdf").exists()
        assert manager.cancel(second.job_id) is False
    finally:
        service.release.set()
        manager.shutdown(wait=True)


def test_submit_rejects_empty_input(config: AppConfig) -> None:
    manager = build_manager(config)
    try:
        with pytest.raises(EmptyInputError):
            manager.submit([])
        assert manager.list_jobs() == []
    finally:
        manager.shutdown(wait=True)


def test_unknown_job(config: AppConfig) -> None:
    manager = build_manager(config)
    try:
        assert manager.get_status("job-missing") is None
        assert manager.cancel("job-missing") is False
    finally:
        manager.shutdown(wait=True)


def test_finished_jobs_are_served_from_disk(make_image, config: AppConfig) -> None:
    manager = build_manager(config)
    try:
        record = manager.submit([make_image("a.png")])
        final = manager.wait(record.job_id, timeout=10)
        assert final is not None
        assert final.status is JobStatus.SUCCEEDED
        assert manager._records == {}
        reloaded = manager.get_status(record.job_id)
        assert reloaded is not None
        assert reloaded.status is JobStatus.SUCCEEDED
        assert reloaded.artifacts is not None
    finally:
        manager.shutdown(wait=True)


class ChattyService(ConversionService):
    """Reports the same fraction many times before converting."""

    def convert(self, job: ConversionJob, on_progress=None, *args, **kwargs) -> ConversionResult:  # type: ignore[override]
        for _ in range(500):
            on_progress(ProgressSnapshot(fraction=0.5, document_done=1, archive_done=0, total=1))
        return super().convert(job, on_progress, *args, **kwargs)


def test_status_file_writes_follow_percentage_changes(make_image, config: AppConfig) -> None:
    manager = build_manager(config, ChattyService(config))
    writes: list[str] = []
    original = manager._store.write_status

    def _counting(record) -> None:
        writes.append(record.status.value)
        original(record)

    manager._store.write_status = _counting  # type: ignore[method-assign]
    try:
        record = manager.submit([make_image("a.png")])
        final = manager.wait(record.job_id, timeout=10)
        assert final is not None
        assert final.status is JobStatus.SUCCEEDED
        assert final.progress == 1.0
        assert len(writes) < 10
        assert writes[0] == "queued"
        assert writes[-1] == "succeeded"
    finally:
        manager.shutdown(wait=True)
