"""Image-to-PDF conversion toolkit with a companion ZIP archive."""

from .config import AppConfig, load_config
from .core import ConversionService
from .errors import (
    BuildError,
    ConversionError,
    EmptyInputError,
    MeasurementError,
    ReadError,
    UnsupportedFormatError,
    WriteError,
)
from .geometry import PageSizeMode, compute_layout
from .models import ConversionJob, ConversionResult, ImageSet, Outcome
from .ordering import SortPolicy, order_paths

__all__ = [
    "AppConfig",
    "BuildError",
    "ConversionError",
    "ConversionJob",
    "ConversionResult",
    "ConversionService",
    "EmptyInputError",
    "ImageSet",
    "MeasurementError",
    "Outcome",
    "PageSizeMode",
    "ReadError",
    "SortPolicy",
    "UnsupportedFormatError",
    "WriteError",
    "compute_layout",
    "load_config",
    "order_paths",
]
