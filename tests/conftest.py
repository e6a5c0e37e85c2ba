from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from core.image_pdf.config import AppConfig, RuntimeConfig

ImageFactory = Callable[..., Path]


@pytest.fixture
def make_image(tmp_path: Path) -> ImageFactory:
    """Write a small solid-colour JPEG or PNG and return its path."""

    def _make(
        name: str,
        size: tuple[int, int] = (40, 30),
        *,
        folder: Path | None = None,
        mtime: float | None = None,
    ) -> Path:
        target = (folder or tmp_path) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        image_format = "PNG" if target.suffix.lower() == ".png" else "JPEG"
        Image.new("RGB", size, (200, 80, 40)).save(target, format=image_format)
        if mtime is not None:
            os.utime(target, (mtime, mtime))
        return target

    return _make


@pytest.fixture
def corrupt_image(tmp_path: Path) -> Path:
    target = tmp_path / "broken.jpg"
    target.write_bytes(b"this is not a jpeg")
    return target


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    runtime = RuntimeConfig(output_dir=tmp_path / "runs", enable_local_api=True)
    runtime.preferences_file = tmp_path / "preferences.json"
    return AppConfig(runtime=runtime)
