"""Service layer orchestrating imports and exports through converter modules."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, List, Optional, Sequence

from converters.base import (
    EXPORT_TYPE_ORDER,
    BaseExporter,
    ExportContext,
    ExportQueueEntry,
    FileSystemItem,
    ImportExportResult,
    InteropError,
    ItemType,
    ModuleType,
    OutputFormat,
)
from converters.items import Container, ItemStore
from converters.registry import ModuleRegistry
from converters.resolver import ModuleResolver

from .settings import InteropSettings, default_settings
from .store import InMemoryItemStore

logger = logging.getLogger(__name__)


class SourceNotFound(InteropError):
    """Raised when the import source does not exist."""


class FormatUnspecified(InteropError):
    """Raised when ``format="auto"`` cannot be resolved from the path."""


class DestinationNotFound(InteropError):
    """Raised when the destination container id does not resolve."""


@dataclass
class ImportOptions:
    path: str
    format: str = "auto"
    destination_container_id: Optional[str] = None
    destination_container: Optional[Container] = None
    output_format: Optional[OutputFormat] = None
    target: Optional[FileSystemItem] = None
    implementation_path: Optional[str] = None
    store: Optional[ItemStore] = None


@dataclass
class ExportOptions:
    path: Optional[str] = None
    format: str = "jex"
    source_container_ids: List[str] = field(default_factory=list)
    source_document_ids: List[str] = field(default_factory=list)
    target: Optional[FileSystemItem] = None
    implementation_path: Optional[str] = None
    store: Optional[ItemStore] = None


def file_extension(path: str) -> str:
    return os.path.splitext(path)[1].lstrip(".")


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


class InteropService:
    """Drive importers and exporters against an item store."""

    def __init__(
        self,
        resolver: ModuleResolver,
        store: ItemStore,
        path_exists: Callable[[str], bool] = os.path.exists,
    ) -> None:
        self.resolver = resolver
        self.store = store
        self.path_exists = path_exists

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------
    def import_items(self, options: ImportOptions) -> ImportExportResult:
        if not self.path_exists(options.path):
            raise SourceNotFound(f'Cannot find "{options.path}".')

        options = replace(options, store=self.store)

        if options.format == "auto":
            module = self.resolver.module_by_file_extension(ModuleType.IMPORTER, file_extension(options.path))
            if module is None:
                raise FormatUnspecified(f"Please specify import format for {options.path}")
            options.format = module.format

        if options.destination_container_id:
            container = self.store.load(ItemType.CONTAINER, options.destination_container_id)
            if container is None:
                raise DestinationNotFound(f'Cannot find "{options.destination_container_id}".')
            options.destination_container = container

        if options.implementation_path:
            importer = self.resolver.resolve_by_path(ModuleType.IMPORTER, options)
        else:
            importer = self.resolver.resolve_by_format(
                ModuleType.IMPORTER,
                options.format,
                options.output_format or OutputFormat.MARKDOWN,
            )

        logger.info("Importing %s as %r", options.path, options.format)
        result = ImportExportResult()
        importer.init(options.path, options)
        result = importer.exec(result)
        logger.info("Import of %s finished with %d warning(s)", options.path, len(result.warnings))
        return result

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def collect_export_queue(
        self,
        source_container_ids: Sequence[str] = (),
        source_document_ids: Sequence[str] = (),
    ) -> List[ExportQueueEntry]:
        """Build the list of items an export will process.

        A container filter also selects every descendant container. Without a
        document filter the containers themselves are exported too.
        """

        queue: List[ExportQueueEntry] = []
        container_filter = list(source_container_ids)
        for container_id in source_container_ids:
            container_filter.extend(self.store.descendant_container_ids(container_id))
        document_filter = set(source_document_ids)

        exported_document_ids = set()
        attachment_ids: List[str] = []

        for container_id in self.store.container_ids():
            if container_filter and container_id not in container_filter:
                continue

            if not document_filter:
                queue.append(ExportQueueEntry(ItemType.CONTAINER, container_id))

            for document_id in self.store.document_ids(container_id):
                if document_filter and document_id not in document_filter:
                    continue
                document = self.store.load(ItemType.DOCUMENT, document_id)
                if document is None:
                    queue.append(ExportQueueEntry(ItemType.DOCUMENT, document_id))
                    continue
                queue.append(ExportQueueEntry(ItemType.DOCUMENT, document))
                exported_document_ids.add(document_id)
                attachment_ids.extend(self.store.linked_attachment_ids(document))

        for attachment_id in _unique(attachment_ids):
            queue.append(ExportQueueEntry(ItemType.ATTACHMENT, attachment_id))

        label_ids: List[str] = []
        for assignment in self.store.label_assignments():
            if assignment.document_id not in exported_document_ids:
                continue
            queue.append(ExportQueueEntry(ItemType.LABEL_ASSIGNMENT, assignment.id))
            label_ids.append(assignment.label_id)

        for label_id in _unique(label_ids):
            queue.append(ExportQueueEntry(ItemType.LABEL, label_id))

        return queue

    def export_items(self, options: ExportOptions) -> ImportExportResult:
        options = replace(options, store=self.store)
        result = ImportExportResult()

        logger.debug("Export state: collecting")
        queue = self.collect_export_queue(options.source_container_ids, options.source_document_ids)

        exporter = self.resolver.resolve_by_path(ModuleType.EXPORTER, options)
        logger.info("Exporting %d items as %r to %s", len(queue), options.format, options.path)
        exporter.init(options.path, options)

        context = ExportContext()
        for item_type in EXPORT_TYPE_ORDER:
            logger.debug("Export state: dispatching %s", item_type.value)
            exporter.prepare_for_processing_item_type(item_type, queue)
            for entry in queue:
                if entry.item_type is item_type:
                    self._dispatch(exporter, entry, context, result)

        logger.debug("Export state: finalizing")
        exporter.close()
        result.warnings.extend(getattr(exporter, "warnings", ()))
        logger.info("Export to %s finished with %d warning(s)", options.path, len(result.warnings))
        return result

    def _dispatch(
        self,
        exporter: BaseExporter,
        entry: ExportQueueEntry,
        context: ExportContext,
        result: ImportExportResult,
    ) -> None:
        item_type = entry.item_type
        item = entry.item_or_id if entry.is_loaded else self.store.load(item_type, entry.item_or_id)

        if item is None:
            if item_type is ItemType.ATTACHMENT:
                message = (
                    "An attachment that does not exist is referenced in a document. "
                    f"The attachment was skipped. Attachment ID: {entry.item_id}"
                )
            else:
                message = (
                    f'Cannot find item with type "{item_type.label}" and ID "{entry.item_id}". '
                    "Item was skipped."
                )
            logger.warning(message)
            result.warnings.append(message)
            return

        if item.is_encrypted:
            message = (
                f'This item is currently encrypted: {item_type.label} "{item.title or item.id}" '
                f"({item.id}) and was not exported. You may wait for it to be decrypted and try again."
            )
            logger.warning(message)
            result.warnings.append(message)
            return

        try:
            if item_type is ItemType.ATTACHMENT:
                attachment_path = self.store.attachment_path(item)
                context.attachment_paths[item.id] = attachment_path
                exporter.update_context(context)
                exporter.process_resource(item, attachment_path)

            exporter.process_item(item_type, item)
        except Exception as exc:
            logger.exception("Failed to export %s %s", item_type.label, item.id)
            result.warnings.append(str(exc) or exc.__class__.__name__)


def create_service(settings: Optional[InteropSettings] = None) -> InteropService:
    """Build a service over the snapshot store described by ``settings``."""

    if settings is None:
        settings = default_settings()
    store = InMemoryItemStore.from_snapshot(settings.store_path, settings.attachments_dir)
    resolver = ModuleResolver(ModuleRegistry())
    for module in resolver.unavailable_modules():
        logger.info(
            "No implementation for %s %r (%s); it is listed but cannot run",
            module.type.value,
            module.format,
            module.importer_class or module.output_format.value,
        )
    return InteropService(resolver, store)
