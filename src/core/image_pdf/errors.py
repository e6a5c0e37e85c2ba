"""Error kinds raised by the conversion pipeline."""

from __future__ import annotations

from pathlib import Path


class BuildError(RuntimeError):
    """Base class for pipeline failures; ``code`` is a stable identifier."""

    code = "BUILD_FAILED"

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class EmptyInputError(BuildError):
    code = "EMPTY_INPUT"

    def __init__(self, message: str = "No images to convert") -> None:
        super().__init__(message)


class MeasurementError(BuildError):
    code = "MEASUREMENT"


class UnsupportedFormatError(BuildError):
    code = "UNSUPPORTED_FORMAT"


class ReadError(BuildError):
    code = "READ"


class WriteError(BuildError):
    code = "WRITE"


class ConversionError(BuildError):
    """Aggregate failure of a conversion job.

    Holds the document and/or archive sub-error. The document is the primary
    artifact, so when it failed ``str(error)`` always mentions it.
    """

    def __init__(
        self,
        *,
        document_error: BuildError | None = None,
        archive_error: BuildError | None = None,
    ) -> None:
        if document_error is None and archive_error is None:
            raise ValueError("ConversionError requires at least one sub-error")
        self.document_error = document_error
        self.archive_error = archive_error
        if document_error is not None and archive_error is not None:
            message = f"document: {document_error}; archive: {archive_error}"
            self.code = "CONVERSION_FAILED"
        elif document_error is not None:
            message = str(document_error)
            self.code = "DOCUMENT_FAILED"
        else:
            message = str(archive_error)
            self.code = "ARCHIVE_FAILED"
        primary = document_error or archive_error
        super().__init__(message, path=primary.path if primary else None)

    @property
    def errors(self) -> dict[str, BuildError]:
        found: dict[str, BuildError] = {}
        if self.document_error is not None:
            found["document"] = self.document_error
        if self.archive_error is not None:
            found["archive"] = self.archive_error
        return found


class ConversionCancelled(Exception):
    """Raised inside a builder when the job's cancellation event is set."""

    code = "CANCELED"


__all__ = [
    "BuildError",
    "ConversionCancelled",
    "ConversionError",
    "EmptyInputError",
    "MeasurementError",
    "ReadError",
    "UnsupportedFormatError",
    "WriteError",
]
