from __future__ import annotations

import json
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Sequence

from .config import AppConfig
from .core import ConversionService
from .errors import EmptyInputError
from .geometry import PageSizeMode
from .models import ConversionJob, ConversionResult, Outcome, StreamStatus, default_document_name
from .ordering import SortPolicy, order_paths
from .progress import ProgressSnapshot
from .utils import atomic_write, generate_run_id


ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).strftime(ISO_FORMAT)


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def terminal(self) -> bool:
        return self not in {JobStatus.QUEUED, JobStatus.RUNNING}


_OUTCOME_STATUS: dict[Outcome, JobStatus] = {
    Outcome.SUCCEEDED: JobStatus.SUCCEEDED,
    Outcome.PARTIAL: JobStatus.PARTIAL,
    Outcome.FAILED: JobStatus.FAILED,
    Outcome.CANCELED: JobStatus.CANCELED,
}


@dataclass(slots=True)
class JobArtifacts:
    document_path: str | None = None
    archive_path: str | None = None
    page_count: int = 0
    entry_count: int = 0
    size_bytes_document: int = 0
    size_bytes_archive: int = 0


@dataclass(slots=True)
class JobOptions:
    page_size: PageSizeMode | None = None
    archive: bool | None = None
    archive_path: str | None = None
    sort: SortPolicy | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "page_size": self.page_size.value if self.page_size else None,
            "archive": self.archive,
            "archive_path": self.archive_path,
            "sort": self.sort.value if self.sort else None,
        }


@dataclass(slots=True)
class JobRecord:
    job_id: str
    status: JobStatus
    progress: float = 0.0
    document_done: int = 0
    archive_done: int = 0
    total: int = 0
    submitted_at: str | None = None
    started_at: str | None = None
    finished_at: str | None = None
    warnings: list[str] = field(default_factory=list)
    error_code: str | None = None
    error_message: str | None = None
    artifacts: JobArtifacts | None = None
    options: dict[str, object] = field(default_factory=dict)

    def to_payload(self) -> dict[str, object | None]:
        payload = asdict(self)
        payload["status"] = self.status.value
        if self.artifacts is not None:
            payload["artifacts"] = asdict(self.artifacts)
        return payload

    @classmethod
    def from_payload(cls, data: dict[str, object]) -> "JobRecord":
        artifacts_dict = data.get("artifacts")
        artifacts = JobArtifacts(**artifacts_dict) if isinstance(artifacts_dict, dict) else None
        warnings_value = data.get("warnings")
        return cls(
            job_id=str(data.get("job_id")),
            status=JobStatus(str(data.get("status", JobStatus.QUEUED.value))),
            progress=float(data.get("progress", 0.0)),
            document_done=int(data.get("document_done", 0)),
            archive_done=int(data.get("archive_done", 0)),
            total=int(data.get("total", 0)),
            submitted_at=str(data["submitted_at"]) if data.get("submitted_at") else None,
            started_at=str(data["started_at"]) if data.get("started_at") else None,
            finished_at=str(data["finished_at"]) if data.get("finished_at") else None,
            warnings=[str(item) for item in warnings_value] if isinstance(warnings_value, list) else [],
            error_code=str(data["error_code"]) if data.get("error_code") else None,
            error_message=str(data["error_message"]) if data.get("error_message") else None,
            artifacts=artifacts,
            options=dict(data["options"]) if isinstance(data.get("options"), dict) else {},
        )


class JobStore:
    def __init__(self, config: AppConfig) -> None:
        self._root = config.runtime.output_dir
        self._index_dir = self._root / "_index"
        self._jobs_index = self._index_dir / "jobs.jsonl"
        self._lock = threading.Lock()
        self._index_dir.mkdir(parents=True, exist_ok=True)

    def job_dir(self, job_id: str) -> Path:
        return self._root / job_id

    def status_path(self, job_id: str) -> Path:
        return self.job_dir(job_id) / "status.json"

    def write_status(self, record: JobRecord) -> None:
        atomic_write(self.status_path(record.job_id), json.dumps(record.to_payload(), indent=2))

    def read_status(self, job_id: str) -> JobRecord | None:
        path = self.status_path(job_id)
        if not path.exists():
            return None
        return JobRecord.from_payload(json.loads(path.read_text(encoding="utf-8")))

    def append_index(self, record: JobRecord) -> None:
        payload = json.dumps(record.to_payload())
        with self._lock:
            with self._jobs_index.open("a", encoding="utf-8") as handle:
                handle.write(payload + "\n")

    def list_latest(self, limit: int) -> list[dict[str, object]]:
        if not self._jobs_index.exists():
            return []
        latest: dict[str, dict[str, object]] = {}
        with self._lock:
            with self._jobs_index.open("r", encoding="utf-8") as handle:
                for line in handle:
                    if not line.strip():
                        continue
                    try:
                        entry = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    job_id = str(entry.get("job_id"))
                    latest.pop(job_id, None)
                    latest[job_id] = entry
        records = list(latest.values())
        return records[-limit:] if limit > 0 else records


@dataclass(slots=True)
class JobHandle:
    job_id: str
    job: ConversionJob
    cancel_event: threading.Event
    submitted_at: datetime


class JobManager:
    """Runs conversion jobs on a worker pool and tracks their status on disk."""

    def __init__(self, config: AppConfig, service: ConversionService | None = None) -> None:
        self._config = config
        self._service = service or ConversionService(config)
        self._store = JobStore(config)
        pool_size = config.runtime.jobs.worker_pool_size
        if pool_size <= 0:
            pool_size = min(4, max(1, os.cpu_count() or 1))
        self._executor = ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="job-worker")
        self._jobs: dict[str, JobHandle] = {}
        self._futures: dict[str, Future[ConversionResult | None]] = {}
        self._records: dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def submit(
        self,
        images: Sequence[Path],
        output_path: Path | None = None,
        options: JobOptions | None = None,
    ) -> JobRecord:
        if not images:
            raise EmptyInputError()
        options = options or JobOptions()
        submitted = _utc_now()
        job_id = generate_run_id("job")
        ordered = order_paths(images, options.sort) if options.sort else [Path(p) for p in images]
        document_path = output_path or self._store.job_dir(job_id) / default_document_name(ordered)
        archive_enabled = self._config.archive.enabled if options.archive is None else options.archive
        job = ConversionJob.create(
            ordered,
            document_path,
            mode=options.page_size or self._config.layout.default_mode,
            archive=archive_enabled,
            archive_path=Path(options.archive_path) if options.archive_path else None,
            archive_suffix=self._config.archive.suffix,
        )
        options_dict = options.as_dict()
        options_dict["document_path"] = str(job.document_path)
        options_dict["archive_path"] = str(job.archive_path) if job.archive_path else None
        record = JobRecord(
            job_id=job_id,
            status=JobStatus.QUEUED,
            total=job.total,
            submitted_at=_iso(submitted),
            options=options_dict,
        )
        queued = JobRecord.from_payload(record.to_payload())
        handle = JobHandle(job_id=job_id, job=job, cancel_event=threading.Event(), submitted_at=submitted)
        with self._lock:
            self._records[job_id] = record
            self._jobs[job_id] = handle
            self._store.write_status(record)
        self._store.append_index(record)
        with self._lock:
            self._futures[job_id] = self._executor.submit(self._run_job, handle)
        return queued

    def _run_job(self, handle: JobHandle) -> ConversionResult | None:
        try:
            return self._execute_job(handle)
        finally:
            self._finalize_job(handle.job_id)

    def _execute_job(self, handle: JobHandle) -> ConversionResult | None:
        if handle.cancel_event.is_set():
            self._update_status(handle.job_id, JobStatus.CANCELED, finished_at=_iso(_utc_now()))
            self._append_terminal(handle.job_id)
            return None
        self._update_status(handle.job_id, JobStatus.RUNNING, started_at=_iso(_utc_now()))

        last_percent = -1

        def _progress(snapshot: ProgressSnapshot) -> None:
            nonlocal last_percent
            percent = int(snapshot.fraction * 100)
            # status.json is rewritten only when the whole percentage moves
            if percent == last_percent:
                return
            last_percent = percent
            self._update_status(handle.job_id, JobStatus.RUNNING, snapshot=snapshot)

        try:
            result = self._service.convert(
                handle.job,
                _progress,
                cancellation=handle.cancel_event,
                run_id=handle.job_id,
            )
        except Exception as exc:
            self._update_status(
                handle.job_id,
                JobStatus.FAILED,
                finished_at=_iso(_utc_now()),
                error_code=getattr(exc, "code", "UNKNOWN"),
                error_message=str(exc),
            )
            self._append_terminal(handle.job_id)
            raise

        error = result.error
        self._update_status(
            handle.job_id,
            _OUTCOME_STATUS[result.outcome],
            finished_at=_iso(_utc_now()),
            warnings=result.warnings,
            error_code=error.code if error else None,
            error_message=str(error) if error else None,
            artifacts=self._build_artifacts(result),
        )
        self._append_terminal(handle.job_id)
        return result

    def _build_artifacts(self, result: ConversionResult) -> JobArtifacts:
        document = result.document
        archive = result.archive
        document_ok = document.status is StreamStatus.SUCCEEDED and document.path is not None
        archive_ok = archive.status is StreamStatus.SUCCEEDED and archive.path is not None
        return JobArtifacts(
            document_path=str(document.path.resolve()) if document_ok else None,
            archive_path=str(archive.path.resolve()) if archive_ok else None,
            page_count=document.items,
            entry_count=archive.items,
            size_bytes_document=document.path.stat().st_size if document_ok else 0,
            size_bytes_archive=archive.path.stat().st_size if archive_ok else 0,
        )

    def _finalize_job(self, job_id: str) -> None:
        with self._lock:
            self._jobs.pop(job_id, None)
            self._futures.pop(job_id, None)
            self._records.pop(job_id, None)

    def _update_status(
        self,
        job_id: str,
        status: JobStatus,
        *,
        snapshot: ProgressSnapshot | None = None,
        started_at: str | None = None,
        finished_at: str | None = None,
        warnings: list[str] | None = None,
        error_code: str | None = None,
        error_message: str | None = None,
        artifacts: JobArtifacts | None = None,
    ) -> None:
        with self._lock:
            record = self._records.get(job_id) or self._store.read_status(job_id) or JobRecord(job_id=job_id, status=status)
            record.status = status
            if snapshot is not None:
                record.progress = max(record.progress, min(snapshot.fraction, 1.0))
                record.document_done = snapshot.document_done
                record.archive_done = snapshot.archive_done
                record.total = snapshot.total
            if status is JobStatus.SUCCEEDED:
                record.progress = 1.0
            if started_at:
                record.started_at = started_at
            if finished_at:
                record.finished_at = finished_at
            if warnings is not None:
                record.warnings = warnings
            if error_code is not None:
                record.error_code = error_code
            if error_message is not None:
                record.error_message = error_message
            if artifacts is not None:
                record.artifacts = artifacts
            self._records[job_id] = record
            self._store.write_status(record)

    def _append_terminal(self, job_id: str) -> None:
        record = self.get_status(job_id)
        if record:
            self._store.append_index(record)

    def get_status(self, job_id: str) -> JobRecord | None:
        with self._lock:
            record = self._records.get(job_id)
        if record is not None:
            return JobRecord.from_payload(record.to_payload())
        return self._store.read_status(job_id)

    def cancel(self, job_id: str) -> bool:
        with self._lock:
            handle = self._jobs.get(job_id)
        if handle is None:
            return False
        handle.cancel_event.set()
        return True

    def wait(self, job_id: str, timeout: float | None = None) -> JobRecord | None:
        with self._lock:
            future = self._futures.get(job_id)
        if future is not None:
            wait_futures([future], timeout=timeout)
        return self.get_status(job_id)

    def list_jobs(self, limit: int = 50) -> list[dict[str, object]]:
        cap = self._config.runtime.jobs.index_limit
        return self._store.list_latest(min(limit, cap) if cap > 0 else limit)

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)


__all__ = [
    "JobArtifacts",
    "JobManager",
    "JobOptions",
    "JobRecord",
    "JobStatus",
    "JobStore",
]
