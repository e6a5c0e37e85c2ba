from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from pathlib import Path

from .errors import ReadError, UnsupportedFormatError
from .ordering import SortPolicy, order_paths


class ImageFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"


EXTENSION_MAP: dict[str, ImageFormat] = {
    ".jpg": ImageFormat.JPEG,
    ".jpeg": ImageFormat.JPEG,
    ".png": ImageFormat.PNG,
}

# Pillow's ``Image.format`` names for the containers we embed as-is.
PIL_FORMAT_MAP: dict[str, ImageFormat] = {
    "JPEG": ImageFormat.JPEG,
    "PNG": ImageFormat.PNG,
}

SUPPORTED_EXTENSIONS = frozenset(EXTENSION_MAP)


def is_supported_image(path: Path) -> bool:
    return path.suffix.lower() in EXTENSION_MAP


def detect_image_format(path: Path) -> ImageFormat:
    extension = path.suffix.lower()
    image_format = EXTENSION_MAP.get(extension)
    if image_format is None:
        raise UnsupportedFormatError(
            f"Unsupported file extension: {extension or '<none>'}",
            path=path,
        )
    return image_format


def scan_images(directory: Path, policy: SortPolicy = SortPolicy.NATURAL) -> list[Path]:
    """Return the supported images directly inside ``directory``."""

    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise ReadError(f"Cannot scan {directory}: {exc}", path=directory) from exc
    images = [entry for entry in entries if entry.is_file() and is_supported_image(entry)]
    return order_paths(images, policy)


def filter_supported(paths: Iterable[Path]) -> list[Path]:
    """Keep supported images from an ad-hoc selection, in natural order."""

    return order_paths([Path(p) for p in paths if is_supported_image(Path(p))])


def collect_images(inputs: Iterable[Path], policy: SortPolicy = SortPolicy.NATURAL) -> list[Path]:
    """Expand directories and keep explicitly named files in the given order."""

    collected: list[Path] = []
    for item in inputs:
        path = Path(item)
        if path.is_dir():
            collected.extend(scan_images(path, policy))
        else:
            detect_image_format(path)
            collected.append(path)
    return collected


__all__ = [
    "EXTENSION_MAP",
    "ImageFormat",
    "PIL_FORMAT_MAP",
    "SUPPORTED_EXTENSIONS",
    "collect_images",
    "detect_image_format",
    "filter_supported",
    "is_supported_image",
    "scan_images",
]
