"""PDF assembly: one page per image, image data embedded without re-encoding."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Callable

import img2pdf
from PIL import Image
from pypdf import PdfWriter
from pypdf.errors import PyPdfError

from .detection import PIL_FORMAT_MAP, ImageFormat, detect_image_format
from .errors import (
    BuildError,
    ConversionCancelled,
    EmptyInputError,
    MeasurementError,
    ReadError,
    WriteError,
)
from .geometry import A4_SHEET, ASSUMED_DPI, PageLayout, PageSizeMode, SheetSpec, compute_layout
from .utils import atomic_output

ItemCallback = Callable[[int], None]

_IMG2PDF_ERRORS = (
    img2pdf.ImageOpenError,
    img2pdf.AlphaChannelError,
    img2pdf.PdfTooLargeError,
    ValueError,
)


@dataclass(frozen=True, slots=True)
class ImageInfo:
    width_px: int
    height_px: int
    image_format: ImageFormat


def measure_image(data: bytes, path: Path) -> ImageInfo:
    """Read pixel dimensions from the image header without decoding pixels."""

    try:
        with Image.open(BytesIO(data)) as image:
            pil_format = image.format or ""
            width, height = image.size
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise MeasurementError(f"cannot read image header: {exc}", path=path) from exc
    image_format = PIL_FORMAT_MAP.get(pil_format)
    if image_format is None:
        raise MeasurementError(f"unsupported image content {pil_format or 'unknown'}", path=path)
    if width <= 0 or height <= 0:
        raise MeasurementError(f"image has no area ({width}x{height} px)", path=path)
    return ImageInfo(width_px=width, height_px=height, image_format=image_format)


def _layout_fun(layout: PageLayout):  # type: ignore[no-untyped-def]
    page_w = img2pdf.mm_to_pt(layout.page_width)
    page_h = img2pdf.mm_to_pt(layout.page_height)
    draw_w = img2pdf.mm_to_pt(layout.draw_width)
    draw_h = img2pdf.mm_to_pt(layout.draw_height)

    # img2pdf centres the image on the page, which matches both modes.
    def _fun(_width_px, _height_px, _ndpi):  # type: ignore[no-untyped-def]
        return page_w, page_h, draw_w, draw_h

    return _fun


class DocumentBuilder:
    def __init__(
        self,
        mode: PageSizeMode = PageSizeMode.FIT_TO_IMAGE,
        *,
        sheet: SheetSpec = A4_SHEET,
        dpi: float = ASSUMED_DPI,
    ) -> None:
        self._mode = mode
        self._sheet = sheet
        self._dpi = dpi

    @property
    def mode(self) -> PageSizeMode:
        return self._mode

    def build(
        self,
        images: Sequence[Path],
        output_path: Path,
        on_item_done: ItemCallback | None = None,
        cancellation: threading.Event | None = None,
    ) -> int:
        if not images:
            raise EmptyInputError()
        callback = on_item_done or (lambda _: None)
        writer = PdfWriter()
        for index, image in enumerate(images, start=1):
            if cancellation is not None and cancellation.is_set():
                raise ConversionCancelled(f"Document canceled before {image.name}")
            try:
                self._add_page(writer, image)
            except BuildError as exc:
                raise type(exc)(f"failed to add {image.name}: {exc}", path=image) from exc
            callback(index)
        self._write(writer, output_path)
        return len(images)

    def layout_for(self, info: ImageInfo) -> PageLayout:
        return compute_layout(info.width_px, info.height_px, self._mode, sheet=self._sheet, dpi=self._dpi)

    def _add_page(self, writer: PdfWriter, image: Path) -> None:
        detect_image_format(image)
        try:
            data = image.read_bytes()
        except OSError as exc:
            raise ReadError(str(exc), path=image) from exc
        info = measure_image(data, image)
        layout = self.layout_for(info)
        try:
            # EXIF orientation is not applied; the page keeps the stored pixel geometry.
            page_pdf = img2pdf.convert(
                data,
                layout_fun=_layout_fun(layout),
                rotation=img2pdf.Rotation.none,
            )
        except _IMG2PDF_ERRORS as exc:
            raise MeasurementError(f"cannot embed image: {exc}", path=image) from exc
        try:
            writer.append(BytesIO(page_pdf))
        except PyPdfError as exc:
            raise MeasurementError(f"cannot append page: {exc}", path=image) from exc

    def _write(self, writer: PdfWriter, output_path: Path) -> None:
        try:
            with atomic_output(output_path) as tmp_path:
                with tmp_path.open("wb") as handle:
                    writer.write(handle)
        except OSError as exc:
            raise WriteError(f"failed to write {output_path.name}: {exc}", path=output_path) from exc


__all__ = ["DocumentBuilder", "ImageInfo", "measure_image"]
