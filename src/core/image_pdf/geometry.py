"""Page geometry: page size and image placement in millimetres."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import MeasurementError

MM_PER_INCH = 25.4
ASSUMED_DPI = 96.0


class PageSizeMode(str, Enum):
    FIXED_SHEET = "sheet"
    FIT_TO_IMAGE = "fit"

    @classmethod
    def parse(cls, value: str) -> "PageSizeMode":
        normalized = value.strip().lower()
        aliases = {"a4": cls.FIXED_SHEET, "fit-to-image": cls.FIT_TO_IMAGE, "image": cls.FIT_TO_IMAGE}
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Unknown page size mode: {value!r}") from exc


@dataclass(frozen=True, slots=True)
class SheetSpec:
    width_mm: float
    height_mm: float
    margin_mm: float

    @property
    def available_width(self) -> float:
        return self.width_mm - 2 * self.margin_mm

    @property
    def available_height(self) -> float:
        return self.height_mm - 2 * self.margin_mm


A4_SHEET = SheetSpec(width_mm=210.0, height_mm=297.0, margin_mm=10.0)


@dataclass(frozen=True, slots=True)
class PageLayout:
    page_width: float
    page_height: float
    draw_x: float
    draw_y: float
    draw_width: float
    draw_height: float


def pixel_to_mm(px: float, dpi: float = ASSUMED_DPI) -> float:
    return px / dpi * MM_PER_INCH


def fit_scale(src_w: float, src_h: float, max_w: float, max_h: float) -> float:
    """Largest uniform factor that fits ``src`` inside ``max``."""

    return min(max_w / src_w, max_h / src_h)


def compute_layout(
    width_px: int,
    height_px: int,
    mode: PageSizeMode,
    *,
    sheet: SheetSpec = A4_SHEET,
    dpi: float = ASSUMED_DPI,
) -> PageLayout:
    if width_px <= 0 or height_px <= 0:
        raise MeasurementError(f"Image has no area ({width_px}x{height_px} px)")

    if mode is PageSizeMode.FIT_TO_IMAGE:
        page_w = pixel_to_mm(width_px, dpi)
        page_h = pixel_to_mm(height_px, dpi)
        return PageLayout(page_w, page_h, 0.0, 0.0, page_w, page_h)

    if sheet.available_width <= 0 or sheet.available_height <= 0:
        raise ValueError("Sheet margins leave no printable area")
    scale = fit_scale(width_px, height_px, sheet.available_width, sheet.available_height)
    draw_w = width_px * scale
    draw_h = height_px * scale
    return PageLayout(
        page_width=sheet.width_mm,
        page_height=sheet.height_mm,
        draw_x=(sheet.width_mm - draw_w) / 2,
        draw_y=(sheet.height_mm - draw_h) / 2,
        draw_width=draw_w,
        draw_height=draw_h,
    )


__all__ = [
    "A4_SHEET",
    "ASSUMED_DPI",
    "PageLayout",
    "PageSizeMode",
    "SheetSpec",
    "compute_layout",
    "fit_scale",
    "pixel_to_mm",
]
