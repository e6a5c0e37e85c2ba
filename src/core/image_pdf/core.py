from __future__ import annotations

import concurrent.futures
import threading
import time
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from .archive import ArchiveBuilder
from .config import AppConfig
from .document import DocumentBuilder
from .errors import BuildError, ConversionCancelled, ConversionError, EmptyInputError
from .geometry import PageSizeMode
from .logging import RunLogEntry, RunLogger, StageTimings
from .models import ConversionJob, ConversionResult, Outcome, StreamResult, StreamStatus
from .ordering import SortPolicy, order_paths
from .progress import ProgressCallback, ProgressTracker, Stream
from .utils import elapsed_ms, generate_run_id

CompletionCallback = Callable[[ConversionResult], None]


@dataclass(slots=True)
class _StreamRun:
    future: concurrent.futures.Future[int]
    path: Path
    started: float
    finished: float | None = None

    def __post_init__(self) -> None:
        self.future.add_done_callback(self._mark_finished)

    def _mark_finished(self, _future: concurrent.futures.Future[int]) -> None:
        self.finished = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        end = self.finished if self.finished is not None else time.perf_counter()
        return (end - self.started) * 1000


class ConversionService:
    """Runs the PDF and ZIP streams of a job side by side.

    Both builders get the same immutable snapshot. The service waits for
    every requested stream to terminate before reporting, and a document
    failure never interrupts an archive that is still being written.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        self._config = config or AppConfig()
        self._logger = RunLogger(self._config.log_path)

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def run_logger(self) -> RunLogger:
        return self._logger

    def document_builder(self, mode: PageSizeMode) -> DocumentBuilder:
        layout = self._config.layout
        return DocumentBuilder(mode, sheet=layout.sheet, dpi=layout.dpi)

    def convert(
        self,
        job: ConversionJob,
        on_progress: ProgressCallback | None = None,
        on_complete: CompletionCallback | None = None,
        *,
        cancellation: threading.Event | None = None,
        run_id: str | None = None,
    ) -> ConversionResult:
        if job.total == 0:
            raise EmptyInputError()
        run_id = run_id or generate_run_id("convert")
        archive_enabled = job.archive_path is not None
        tracker = ProgressTracker(job.total, archive_enabled=archive_enabled, callback=on_progress)
        start = time.perf_counter()

        with concurrent.futures.ThreadPoolExecutor(max_workers=2, thread_name_prefix="convert") as executor:
            document_run = _StreamRun(
                future=executor.submit(
                    self.document_builder(job.mode).build,
                    job.images,
                    job.document_path,
                    tracker.callback_for(Stream.DOCUMENT),
                    cancellation,
                ),
                path=job.document_path,
                started=time.perf_counter(),
            )
            archive_run: _StreamRun | None = None
            if job.archive_path is not None:
                archive_run = _StreamRun(
                    future=executor.submit(
                        ArchiveBuilder().build,
                        job.images,
                        job.archive_path,
                        tracker.callback_for(Stream.ARCHIVE),
                        cancellation,
                    ),
                    path=job.archive_path,
                    started=time.perf_counter(),
                )
            pending = [document_run.future] + ([archive_run.future] if archive_run else [])
            concurrent.futures.wait(pending)

        document = self._collect(document_run)
        archive = self._collect(archive_run) if archive_run else StreamResult(status=StreamStatus.SKIPPED)
        result = self._build_result(run_id, job, document, archive)
        self._log_run(result, elapsed_ms(start))
        if on_complete is not None:
            on_complete(result)
        return result

    def convert_images(
        self,
        images: Sequence[Path],
        output_path: Path,
        *,
        mode: PageSizeMode | None = None,
        archive: bool | None = None,
        archive_path: Path | None = None,
        sort: SortPolicy | None = None,
        on_progress: ProgressCallback | None = None,
        cancellation: threading.Event | None = None,
    ) -> ConversionResult:
        ordered = order_paths(images, sort) if sort is not None else list(images)
        job = ConversionJob.create(
            ordered,
            output_path,
            mode=mode or self._config.layout.default_mode,
            archive=self._config.archive.enabled if archive is None else archive,
            archive_path=archive_path,
            archive_suffix=self._config.archive.suffix,
        )
        return self.convert(job, on_progress, cancellation=cancellation)

    def _collect(self, run: _StreamRun) -> StreamResult:
        exc = run.future.exception()
        elapsed = run.elapsed_ms
        if exc is None:
            return StreamResult(
                status=StreamStatus.SUCCEEDED,
                path=run.path,
                items=run.future.result(),
                elapsed_ms=elapsed,
            )
        if isinstance(exc, ConversionCancelled):
            return StreamResult(status=StreamStatus.CANCELED, path=run.path, elapsed_ms=elapsed)
        if isinstance(exc, BuildError):
            return StreamResult(status=StreamStatus.FAILED, path=run.path, error=exc, elapsed_ms=elapsed)
        raise exc

    def _build_result(
        self,
        run_id: str,
        job: ConversionJob,
        document: StreamResult,
        archive: StreamResult,
    ) -> ConversionResult:
        error: ConversionError | None = None
        if document.error is not None or archive.error is not None:
            error = ConversionError(document_error=document.error, archive_error=archive.error)
        return ConversionResult(
            job_id=run_id,
            job=job,
            document=document,
            archive=archive,
            outcome=self._outcome(document, archive),
            error=error,
            warnings=self._warnings(job),
        )

    def _outcome(self, document: StreamResult, archive: StreamResult) -> Outcome:
        streams = [document] if archive.status is StreamStatus.SKIPPED else [document, archive]
        failed = [s for s in streams if s.status is StreamStatus.FAILED]
        canceled = [s for s in streams if s.status is StreamStatus.CANCELED]
        if not failed and not canceled:
            return Outcome.SUCCEEDED
        if not failed:
            return Outcome.CANCELED
        if len(failed) == len(streams) or canceled:
            return Outcome.FAILED
        return Outcome.PARTIAL

    def _warnings(self, job: ConversionJob) -> list[str]:
        if job.archive_path is None:
            return []
        counts = Counter(path.name for path in job.images)
        return [f"Duplicate archive entry name: {name}" for name, count in counts.items() if count > 1]

    def _log_run(self, result: ConversionResult, total_ms: float) -> None:
        error = result.error
        self._logger.append(
            RunLogEntry(
                run_id=result.job_id,
                status=result.outcome.value,
                page_mode=result.job.mode.value,
                image_count=result.job.total,
                document_path=str(result.job.document_path),
                archive_path=str(result.job.archive_path) if result.job.archive_path else None,
                document_status=result.document.status.value,
                archive_status=result.archive.status.value,
                error_codes=[e.code for e in error.errors.values()] if error else [],
                error_message=str(error) if error else None,
                timings=StageTimings(
                    document_ms=result.document.elapsed_ms,
                    archive_ms=result.archive.elapsed_ms,
                    total_ms=total_ms,
                ),
                warnings=result.warnings,
            )
        )


__all__ = [
    "ConversionService",
    "ConversionResult",
    "ConversionJob",
    "ConversionError",
]
