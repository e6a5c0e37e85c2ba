from __future__ import annotations

from pydantic import BaseModel, Field

from core.image_pdf.geometry import PageSizeMode
from core.image_pdf.ordering import SortPolicy


class ConversionRequest(BaseModel):
    images: list[str] = Field(default_factory=list, description="Absolute image paths in page order")
    output_path: str | None = Field(None, description="Destination PDF; defaults to the run directory")
    page_size: PageSizeMode | None = None
    archive: bool | None = None
    archive_path: str | None = None
    sort: SortPolicy | None = None


__all__ = ["ConversionRequest"]
