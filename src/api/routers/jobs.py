from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_job_manager
from api.schemas import ConversionRequest
from core.image_pdf.errors import EmptyInputError
from core.image_pdf.jobs import JobManager, JobOptions, JobRecord

router = APIRouter(prefix="/api/v1", tags=["jobs"])


@router.post("/jobs", summary="Submit a conversion job", status_code=202)
def submit_job(
    request: ConversionRequest,
    manager: JobManager = Depends(get_job_manager),
) -> dict[str, Any]:
    options = JobOptions(
        page_size=request.page_size,
        archive=request.archive,
        archive_path=request.archive_path,
        sort=request.sort,
    )
    try:
        record = manager.submit(
            [Path(item) for item in request.images],
            Path(request.output_path) if request.output_path else None,
            options,
        )
    except EmptyInputError as exc:
        raise HTTPException(status_code=400, detail=exc.code) from exc
    return {
        "job_id": record.job_id,
        "status": record.status.value,
        "submitted_at": record.submitted_at,
        "total": record.total,
        "progress": record.progress,
    }


@router.get("/jobs/{job_id}", summary="Retrieve job status")
def get_job(job_id: str, manager: JobManager = Depends(get_job_manager)) -> dict[str, Any]:
    record = manager.get_status(job_id)
    if record is None:
        raise HTTPException(status_code=404, detail="JOB_NOT_FOUND")
    return _serialize_record(record)


@router.post("/jobs/{job_id}/cancel", summary="Cancel a queued or running job")
def cancel_job(job_id: str, manager: JobManager = Depends(get_job_manager)) -> dict[str, Any]:
    if not manager.cancel(job_id):
        raise HTTPException(status_code=409, detail="NOT_CANCELABLE")
    record = manager.get_status(job_id)
    if record is None:
        raise HTTPException(status_code=404, detail="JOB_NOT_FOUND")
    return _serialize_record(record)


@router.get("/jobs", summary="List recent jobs")
def list_jobs(
    limit: int = Query(50, ge=1, le=500),
    manager: JobManager = Depends(get_job_manager),
) -> dict[str, Any]:
    return {"jobs": manager.list_jobs(limit)}


def _serialize_record(record: JobRecord) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "job_id": record.job_id,
        "status": record.status.value,
        "terminal": record.status.terminal,
        "progress": record.progress,
        "document_done": record.document_done,
        "archive_done": record.archive_done,
        "total": record.total,
        "submitted_at": record.submitted_at,
        "started_at": record.started_at,
        "finished_at": record.finished_at,
        "warnings": record.warnings,
        "error_code": record.error_code,
        "error_message": record.error_message,
        "options": record.options,
    }
    payload["artifacts"] = asdict(record.artifacts) if record.artifacts else None
    return payload


__all__ = ["router"]
