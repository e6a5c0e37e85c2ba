from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .geometry import A4_SHEET, ASSUMED_DPI, PageSizeMode, SheetSpec


CONFIG_FILE = Path("config.toml")


@dataclass(slots=True)
class JobsConfig:
    worker_pool_size: int = 1
    index_limit: int = 200


@dataclass(slots=True)
class RuntimeConfig:
    output_dir: Path = Path("runs")
    log_file: str = "log.jsonl"
    enable_local_api: bool = False
    preferences_file: Path = Path("preferences.json")
    jobs: JobsConfig = field(default_factory=JobsConfig)


@dataclass(slots=True)
class LayoutConfig:
    default_mode: PageSizeMode = PageSizeMode.FIT_TO_IMAGE
    sheet_width_mm: float = A4_SHEET.width_mm
    sheet_height_mm: float = A4_SHEET.height_mm
    margin_mm: float = A4_SHEET.margin_mm
    dpi: float = ASSUMED_DPI

    @property
    def sheet(self) -> SheetSpec:
        return SheetSpec(
            width_mm=self.sheet_width_mm,
            height_mm=self.sheet_height_mm,
            margin_mm=self.margin_mm,
        )


@dataclass(slots=True)
class ArchiveConfig:
    enabled: bool = True
    suffix: str = ".zip"


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    api: APIConfig = field(default_factory=APIConfig)

    @property
    def log_path(self) -> Path:
        return self.runtime.output_dir / self.runtime.log_file


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _section(raw: Mapping[str, object], key: str) -> Mapping[str, object] | None:
    value = raw.get(key)
    return value if isinstance(value, Mapping) else None


def _build_jobs(data: Mapping[str, object] | None) -> JobsConfig:
    if not data:
        return JobsConfig()
    return JobsConfig(
        worker_pool_size=int(data.get("worker_pool_size", 1)),
        index_limit=int(data.get("index_limit", 200)),
    )


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    return RuntimeConfig(
        output_dir=Path(str(data.get("output_dir", "runs"))),
        log_file=str(data.get("log_file", "log.jsonl")),
        enable_local_api=bool(data.get("enable_local_api", False)),
        preferences_file=Path(str(data.get("preferences_file", "preferences.json"))),
        jobs=_build_jobs(_section(data, "jobs")),
    )


def _build_layout(data: Mapping[str, object] | None) -> LayoutConfig:
    if not data:
        return LayoutConfig()
    return LayoutConfig(
        default_mode=PageSizeMode.parse(str(data.get("default_mode", PageSizeMode.FIT_TO_IMAGE.value))),
        sheet_width_mm=float(data.get("sheet_width_mm", A4_SHEET.width_mm)),
        sheet_height_mm=float(data.get("sheet_height_mm", A4_SHEET.height_mm)),
        margin_mm=float(data.get("margin_mm", A4_SHEET.margin_mm)),
        dpi=float(data.get("dpi", ASSUMED_DPI)),
    )


def _build_archive(data: Mapping[str, object] | None) -> ArchiveConfig:
    if not data:
        return ArchiveConfig()
    suffix = str(data.get("suffix", ".zip"))
    if not suffix.startswith("."):
        suffix = f".{suffix}"
    return ArchiveConfig(
        enabled=bool(data.get("enabled", True)),
        suffix=suffix,
    )


def _build_api(data: Mapping[str, object] | None) -> APIConfig:
    if not data:
        return APIConfig()
    return APIConfig(host=str(data.get("host", "127.0.0.1")), port=int(data.get("port", 8000)))


def load_config(path: Path | None = None) -> AppConfig:
    path = path or CONFIG_FILE
    raw = _read_toml(path)
    return AppConfig(
        runtime=_build_runtime(_section(raw, "runtime")),
        layout=_build_layout(_section(raw, "layout")),
        archive=_build_archive(_section(raw, "archive")),
        api=_build_api(_section(raw, "api")),
    )


def dump_config(config: AppConfig) -> str:
    payload = {
        "runtime": {
            "output_dir": str(config.runtime.output_dir),
            "log_file": config.runtime.log_file,
            "enable_local_api": config.runtime.enable_local_api,
            "preferences_file": str(config.runtime.preferences_file),
            "jobs": {
                "worker_pool_size": config.runtime.jobs.worker_pool_size,
                "index_limit": config.runtime.jobs.index_limit,
            },
        },
        "layout": {
            "default_mode": config.layout.default_mode.value,
            "sheet_width_mm": config.layout.sheet_width_mm,
            "sheet_height_mm": config.layout.sheet_height_mm,
            "margin_mm": config.layout.margin_mm,
            "dpi": config.layout.dpi,
        },
        "archive": {
            "enabled": config.archive.enabled,
            "suffix": config.archive.suffix,
        },
        "api": {
            "host": config.api.host,
            "port": config.api.port,
        },
    }
    return json.dumps(payload, indent=2)


__all__ = [
    "APIConfig",
    "AppConfig",
    "ArchiveConfig",
    "JobsConfig",
    "LayoutConfig",
    "RuntimeConfig",
    "dump_config",
    "load_config",
]
