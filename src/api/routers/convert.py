from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_config, get_service
from api.schemas import ConversionRequest
from api.utils import run_sync
from core.image_pdf.config import AppConfig
from core.image_pdf.core import ConversionService
from core.image_pdf.errors import EmptyInputError
from core.image_pdf.models import ConversionResult, default_document_name
from core.image_pdf.utils import generate_run_id

router = APIRouter(tags=["conversion"])


@router.post("/convert", summary="Convert images to a PDF (and ZIP) and wait for the result")
async def convert_images(
    request: ConversionRequest,
    service: ConversionService = Depends(get_service),
    config: AppConfig = Depends(get_config),
) -> dict[str, Any]:
    images = [Path(item) for item in request.images]
    if not images:
        raise HTTPException(status_code=400, detail=EmptyInputError.code)
    output_path = _resolve_output(request, images, config)
    try:
        result = await run_sync(
            service.convert_images,
            images,
            output_path,
            mode=request.page_size,
            archive=request.archive,
            archive_path=Path(request.archive_path) if request.archive_path else None,
            sort=request.sort,
        )
    except EmptyInputError as exc:
        raise HTTPException(status_code=400, detail=exc.code) from exc
    payload = serialize_result(result)
    if result.error is not None:
        raise HTTPException(status_code=400, detail=payload)
    return payload


def _resolve_output(request: ConversionRequest, images: list[Path], config: AppConfig) -> Path:
    if request.output_path:
        return Path(request.output_path)
    return config.runtime.output_dir / generate_run_id("convert") / default_document_name(images)


def serialize_result(result: ConversionResult) -> dict[str, Any]:
    error = result.error
    return {
        "run_id": result.job_id,
        "outcome": result.outcome.value,
        "document": {
            "status": result.document.status.value,
            "path": str(result.document.path) if result.document.path else None,
            "pages": result.document.items,
            "error": str(result.document.error) if result.document.error else None,
        },
        "archive": {
            "status": result.archive.status.value,
            "path": str(result.archive.path) if result.archive.path else None,
            "entries": result.archive.items,
            "error": str(result.archive.error) if result.archive.error else None,
        },
        "error_code": error.code if error else None,
        "error_message": str(error) if error else None,
        "warnings": result.warnings,
    }


__all__ = [
    "router",
    "serialize_result",
]
