from __future__ import annotations

import pytest

from core.image_pdf.errors import MeasurementError
from core.image_pdf.geometry import (
    A4_SHEET,
    PageSizeMode,
    SheetSpec,
    compute_layout,
    pixel_to_mm,
)


def test_fit_to_image_page_matches_pixels_at_96_dpi() -> None:
    layout = compute_layout(960, 480, PageSizeMode.FIT_TO_IMAGE)
    assert layout.page_width == pytest.approx(254.0)
    assert layout.page_height == pytest.approx(127.0)
    assert (layout.draw_x, layout.draw_y) == (0.0, 0.0)
    assert layout.draw_width == layout.page_width
    assert layout.draw_height == layout.page_height


def test_fixed_sheet_landscape_fills_available_width() -> None:
    layout = compute_layout(2000, 1000, PageSizeMode.FIXED_SHEET)
    assert (layout.page_width, layout.page_height) == (210.0, 297.0)
    assert layout.draw_width == pytest.approx(190.0)
    assert layout.draw_height == pytest.approx(95.0)
    assert layout.draw_x == pytest.approx(10.0)
    assert layout.draw_y == pytest.approx((297.0 - 95.0) / 2)


def test_fixed_sheet_portrait_fills_available_height() -> None:
    layout = compute_layout(100, 1000, PageSizeMode.FIXED_SHEET)
    assert layout.draw_height == pytest.approx(277.0)
    assert layout.draw_width == pytest.approx(27.7)
    assert layout.draw_y == pytest.approx(10.0)


@pytest.mark.parametrize("size", [(1, 1), (640, 480), (300, 4000), (5000, 20)])
def test_fixed_sheet_preserves_aspect_and_fits(size: tuple[int, int]) -> None:
    width, height = size
    layout = compute_layout(width, height, PageSizeMode.FIXED_SHEET)
    assert layout.draw_width / layout.draw_height == pytest.approx(width / height)
    assert layout.draw_width <= A4_SHEET.available_width + 1e-9
    assert layout.draw_height <= A4_SHEET.available_height + 1e-9
    tight = (
        layout.draw_width == pytest.approx(A4_SHEET.available_width)
        or layout.draw_height == pytest.approx(A4_SHEET.available_height)
    )
    assert tight


def test_custom_sheet_and_dpi() -> None:
    sheet = SheetSpec(width_mm=100.0, height_mm=100.0, margin_mm=0.0)
    layout = compute_layout(50, 100, PageSizeMode.FIXED_SHEET, sheet=sheet)
    assert layout.draw_height == pytest.approx(100.0)
    assert layout.draw_x == pytest.approx(25.0)
    assert pixel_to_mm(300, dpi=300) == pytest.approx(25.4)


@pytest.mark.parametrize("mode", list(PageSizeMode))
@pytest.mark.parametrize("size", [(0, 10), (10, 0), (-1, 5)])
def test_zero_area_is_rejected(mode: PageSizeMode, size: tuple[int, int]) -> None:
    with pytest.raises(MeasurementError):
        compute_layout(size[0], size[1], mode)


def test_page_size_mode_parse_aliases() -> None:
    assert PageSizeMode.parse("A4") is PageSizeMode.FIXED_SHEET
    assert PageSizeMode.parse("fit") is PageSizeMode.FIT_TO_IMAGE
    assert PageSizeMode.parse(" fit-to-image ") is PageSizeMode.FIT_TO_IMAGE
    with pytest.raises(ValueError):
        PageSizeMode.parse("letter")
