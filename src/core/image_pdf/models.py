"""Domain models for image-to-PDF conversion."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .archive import derive_archive_path
from .detection import detect_image_format
from .errors import BuildError, ConversionError
from .geometry import PageSizeMode
from .ordering import SortPolicy, order_paths


class ImageSet:
    """Live, mutable image selection owned by a collaborator.

    Order is significant and duplicates are allowed. Jobs take a
    :meth:`snapshot`, never the set itself.
    """

    def __init__(self, paths: Iterable[Path | str] = ()) -> None:
        self._paths: list[Path] = []
        self.extend(paths)

    def add(self, path: Path | str) -> None:
        candidate = Path(path)
        detect_image_format(candidate)
        self._paths.append(candidate)

    def extend(self, paths: Iterable[Path | str]) -> None:
        for path in paths:
            self.add(path)

    def remove(self, index: int) -> None:
        if 0 <= index < len(self._paths):
            del self._paths[index]

    def clear(self) -> None:
        self._paths.clear()

    def sort(self, policy: SortPolicy = SortPolicy.NATURAL) -> None:
        self._paths = order_paths(self._paths, policy)

    def snapshot(self) -> tuple[Path, ...]:
        return tuple(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[Path]:
        return iter(list(self._paths))

    def __getitem__(self, index: int) -> Path:
        return self._paths[index]


def default_document_name(images: Iterable[Path]) -> str:
    """Suggested PDF file name: the first image's stem."""

    for image in images:
        return f"{Path(image).stem}.pdf"
    return "images.pdf"


@dataclass(frozen=True, slots=True)
class ConversionJob:
    """Immutable description of one conversion run."""

    images: tuple[Path, ...]
    document_path: Path
    mode: PageSizeMode = PageSizeMode.FIT_TO_IMAGE
    archive_path: Path | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "images", tuple(Path(p) for p in self.images))
        object.__setattr__(self, "document_path", Path(self.document_path))
        if self.archive_path is not None:
            object.__setattr__(self, "archive_path", Path(self.archive_path))

    @classmethod
    def create(
        cls,
        images: Iterable[Path | str] | ImageSet,
        document_path: Path,
        *,
        mode: PageSizeMode = PageSizeMode.FIT_TO_IMAGE,
        archive: bool = True,
        archive_path: Path | None = None,
        archive_suffix: str = ".zip",
    ) -> "ConversionJob":
        snapshot = images.snapshot() if isinstance(images, ImageSet) else tuple(Path(p) for p in images)
        resolved_archive: Path | None = None
        if archive:
            resolved_archive = archive_path or derive_archive_path(Path(document_path), archive_suffix)
        return cls(
            images=snapshot,
            document_path=Path(document_path),
            mode=mode,
            archive_path=resolved_archive,
        )

    @property
    def total(self) -> int:
        return len(self.images)


class Outcome(str, Enum):
    SUCCEEDED = "succeeded"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELED = "canceled"


class StreamStatus(str, Enum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


@dataclass(slots=True)
class StreamResult:
    """Terminal state of one output stream (document or archive)."""

    status: StreamStatus
    path: Path | None = None
    items: int = 0
    error: BuildError | None = None
    elapsed_ms: float = 0.0


@dataclass(slots=True)
class ConversionResult:
    job_id: str
    job: ConversionJob
    document: StreamResult
    archive: StreamResult
    outcome: Outcome
    error: ConversionError | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCEEDED

    @property
    def summary(self) -> str:
        if self.outcome is Outcome.SUCCEEDED:
            parts = [f"{self.document.items} page(s) -> {self.document.path}"]
            if self.archive.status is StreamStatus.SUCCEEDED:
                parts.append(f"{self.archive.items} archive entries -> {self.archive.path}")
            return "Converted " + ", ".join(parts)
        if self.outcome is Outcome.CANCELED:
            return "Conversion canceled"
        return f"Conversion {self.outcome.value}: {self.error}"

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


__all__ = [
    "ConversionJob",
    "ConversionResult",
    "ImageSet",
    "Outcome",
    "StreamResult",
    "StreamStatus",
    "default_document_name",
]
