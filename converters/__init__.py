"""Converter registry, resolver and the lifecycle interfaces converters implement."""

from .base import (
    BaseExporter,
    BaseImporter,
    ConverterLoadError,
    ExportContext,
    ExportQueueEntry,
    FileSystemItem,
    ImportExportResult,
    InteropError,
    ItemType,
    ModuleDescriptor,
    ModuleNotFound,
    ModuleType,
    OutputFormat,
)
from .registry import ModuleRegistry
from .resolver import ModuleResolver

__all__ = [
    "BaseExporter",
    "BaseImporter",
    "ConverterLoadError",
    "ExportContext",
    "ExportQueueEntry",
    "FileSystemItem",
    "ImportExportResult",
    "InteropError",
    "ItemType",
    "ModuleDescriptor",
    "ModuleNotFound",
    "ModuleRegistry",
    "ModuleResolver",
    "ModuleType",
    "OutputFormat",
]
