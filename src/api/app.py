from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from core.image_pdf.config import AppConfig, load_config
from core.image_pdf.core import ConversionService
from core.image_pdf.geometry import PageSizeMode
from core.image_pdf.jobs import JobManager
from core.settings import Settings, get_settings

from .routers import convert, health, jobs


def create_app(config: AppConfig | None = None) -> FastAPI:
    config = config or _prepare_config(get_settings())
    if not config.runtime.enable_local_api:
        raise RuntimeError("Local API is disabled. Enable it via configuration or environment.")

    service = ConversionService(config)
    manager = JobManager(config, service)

    @asynccontextmanager
    async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        manager.shutdown()

    app = FastAPI(title="Local Image to PDF Converter", version="0.1.0", lifespan=_lifespan)
    app.state.config = config
    app.state.service = service
    app.state.job_manager = manager

    app.include_router(health.router)
    app.include_router(convert.router)
    app.include_router(jobs.router)
    return app


def _prepare_config(settings: Settings) -> AppConfig:
    config = load_config(settings.config_path)
    if settings.enable_local_api is not None:
        config.runtime.enable_local_api = settings.enable_local_api
    if settings.output_dir is not None:
        config.runtime.output_dir = settings.output_dir
    if settings.page_size:
        config.layout.default_mode = PageSizeMode.parse(settings.page_size)
    return config


__all__ = ["create_app"]
