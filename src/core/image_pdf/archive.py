from __future__ import annotations

import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Callable
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

from .detection import detect_image_format
from .errors import ConversionCancelled, EmptyInputError, ReadError, WriteError
from .utils import atomic_output

ItemCallback = Callable[[int], None]

COPY_CHUNK_SIZE = 1024 * 1024


def derive_archive_path(document_path: Path, suffix: str = ".zip") -> Path:
    return document_path.with_suffix(suffix)


class ArchiveBuilder:
    """Streams source images, unmodified, into a deflated ZIP archive.

    Entries are named by basename only. Two sources sharing a basename both
    get a record; readers resolve the name to the last one written.
    """

    def build(
        self,
        images: Sequence[Path],
        output_path: Path,
        on_item_done: ItemCallback | None = None,
        cancellation: threading.Event | None = None,
    ) -> int:
        if not images:
            raise EmptyInputError()
        for image in images:
            detect_image_format(image)

        callback = on_item_done or (lambda _: None)
        try:
            with atomic_output(output_path) as tmp_path:
                with ZipFile(tmp_path, "w", compression=ZIP_DEFLATED) as archive:
                    for index, image in enumerate(images, start=1):
                        if cancellation is not None and cancellation.is_set():
                            raise ConversionCancelled(f"Archive canceled before {image.name}")
                        self._add_entry(archive, image)
                        callback(index)
        except OSError as exc:
            raise WriteError(f"failed to write archive {output_path.name}: {exc}", path=output_path) from exc
        return len(images)

    def _add_entry(self, archive: ZipFile, image: Path) -> None:
        try:
            info = ZipInfo.from_file(image, arcname=image.name)
            source = image.open("rb")
        except (OSError, ValueError) as exc:
            raise ReadError(f"failed to add {image.name}: {exc}", path=image) from exc
        info.compress_type = ZIP_DEFLATED
        with source:
            with archive.open(info, "w") as entry:
                while True:
                    try:
                        chunk = source.read(COPY_CHUNK_SIZE)
                    except OSError as exc:
                        raise ReadError(f"failed to add {image.name}: {exc}", path=image) from exc
                    if not chunk:
                        break
                    entry.write(chunk)


__all__ = ["ArchiveBuilder", "derive_archive_path"]
