from __future__ import annotations

from fastapi import APIRouter

from core.image_pdf.detection import SUPPORTED_EXTENSIONS

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check")
def health() -> dict[str, object]:
    return {"status": "ok", "formats": sorted(SUPPORTED_EXTENSIONS)}


__all__ = ["router"]
