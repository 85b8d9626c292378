"""Service layer exports."""

from .interop import (
    DestinationNotFound,
    ExportOptions,
    FormatUnspecified,
    ImportOptions,
    InteropService,
    SourceNotFound,
    create_service,
)
from .settings import InteropSettings, default_settings
from .store import InMemoryItemStore

__all__ = [
    "DestinationNotFound",
    "ExportOptions",
    "FormatUnspecified",
    "ImportOptions",
    "InMemoryItemStore",
    "InteropService",
    "InteropSettings",
    "SourceNotFound",
    "create_service",
    "default_settings",
]
