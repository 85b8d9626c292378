"""Adapters exposing custom-factory handles through the converter interfaces."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from .base import (
    BaseExporter,
    BaseImporter,
    ExportContext,
    ExportQueueEntry,
    ImportExportResult,
    ItemType,
)


@dataclass
class CustomContext:
    """What a custom handle sees of the current run."""

    path: Optional[str] = None
    options: Any = None
    export_context: Optional[ExportContext] = None
    warnings: List[str] = field(default_factory=list)


def _call_hook(handle: Any, name: str, *args: Any) -> Any:
    hook = getattr(handle, name, None)
    if hook is None:
        return None
    return hook(*args)


class CustomImporter(BaseImporter):
    """Importer backed by a handle exposing ``on_init``/``on_exec`` hooks."""

    def __init__(self, handle: Any) -> None:
        super().__init__()
        self.handle = handle
        self.ctx = CustomContext()

    def init(self, source_path: str, options: Any) -> None:
        super().init(source_path, options)
        self.ctx = CustomContext(path=source_path, options=options)
        _call_hook(self.handle, "on_init", self.ctx)

    def exec(self, result: ImportExportResult) -> ImportExportResult:
        _call_hook(self.handle, "on_exec", self.ctx)
        result.warnings.extend(self.ctx.warnings)
        return result


class CustomExporter(BaseExporter):
    """Exporter backed by a handle exposing ``on_*`` hooks."""

    def __init__(self, handle: Any) -> None:
        super().__init__()
        self.handle = handle
        self.ctx = CustomContext(export_context=self.context, warnings=self.warnings)

    def init(self, target_path: str, options: Any) -> None:
        super().init(target_path, options)
        self.ctx = CustomContext(
            path=target_path, options=options, export_context=self.context, warnings=self.warnings
        )
        _call_hook(self.handle, "on_init", self.ctx)

    def prepare_for_processing_item_type(
        self, item_type: ItemType, queue: Sequence[ExportQueueEntry]
    ) -> None:
        _call_hook(self.handle, "on_prepare_item_type", self.ctx, item_type, queue)

    def update_context(self, context: ExportContext) -> None:
        super().update_context(context)
        self.ctx.export_context = context

    def process_resource(self, item: Any, path: str) -> None:
        _call_hook(self.handle, "on_process_resource", self.ctx, item, path)

    def process_item(self, item_type: ItemType, item: Any) -> None:
        _call_hook(self.handle, "on_process_item", self.ctx, item_type, item)

    def close(self) -> None:
        _call_hook(self.handle, "on_close", self.ctx)
