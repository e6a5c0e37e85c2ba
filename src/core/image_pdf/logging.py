from __future__ import annotations

import json
import threading
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class StageTimings:
    document_ms: float = 0.0
    archive_ms: float = 0.0
    total_ms: float = 0.0


@dataclass(slots=True)
class RunLogEntry:
    run_id: str
    status: str
    page_mode: str
    image_count: int
    document_path: str
    archive_path: str | None
    document_status: str
    archive_status: str
    error_codes: list[str]
    error_message: str | None
    timings: StageTimings
    warnings: list[str] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["timings"] = asdict(self.timings)
        return payload


class RunLogger:
    """Appends one JSON line per conversion run."""

    def __init__(self, log_file: Path) -> None:
        self._log_file = log_file
        self._lock = threading.Lock()

    @property
    def log_file(self) -> Path:
        return self._log_file

    def append(self, entry: RunLogEntry) -> None:
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with self._lock:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            with self._log_file.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    def read(self) -> list[dict[str, Any]]:
        if not self._log_file.exists():
            return []
        with self._log_file.open("r", encoding="utf-8") as handle:
            return [json.loads(line) for line in handle if line.strip()]


__all__ = ["RunLogEntry", "RunLogger", "StageTimings"]
