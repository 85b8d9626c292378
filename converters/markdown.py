"""Markdown format: directories for containers, one ``.md`` file per document."""

from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Set

from .base import BaseExporter, BaseImporter, ExportQueueEntry, ImportExportResult, ItemType
from .items import ATTACHMENT_LINK_RE, Attachment, Container, Document, Item, require_store

logger = logging.getLogger(__name__)

RESOURCES_DIR = "_resources"
DEFAULT_EXTENSIONS = frozenset({"md", "markdown", "txt"})

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def safe_filename(title: str, fallback: str = "Untitled") -> str:
    name = _UNSAFE_CHARS.sub("_", title or "").strip().strip(".")
    return name[:120] or fallback


def unique_name(name: str, used: Set[str], suffix: str = "") -> str:
    """Return ``name`` or ``name (n)`` so that it is not in ``used``."""

    candidate = name
    counter = 1
    while (candidate + suffix).lower() in used:
        candidate = f"{name} ({counter})"
        counter += 1
    used.add((candidate + suffix).lower())
    return candidate + suffix


class MdExporter(BaseExporter):
    def init(self, target_path: str, options: Any) -> None:
        super().init(target_path, options)
        self.dest_dir = Path(target_path)
        self.resource_dir = self.dest_dir / RESOURCES_DIR
        self.resource_dir.mkdir(parents=True, exist_ok=True)
        self._container_paths: Dict[str, str] = {}
        self._used_names: Dict[str, Set[str]] = {}

    def prepare_for_processing_item_type(
        self, item_type: ItemType, queue: Sequence[ExportQueueEntry]
    ) -> None:
        if item_type is not ItemType.CONTAINER:
            return

        for entry in queue:
            if entry.item_type is ItemType.CONTAINER:
                self._container_path(entry.item_id)
            elif entry.item_type is ItemType.DOCUMENT and entry.is_loaded:
                self._container_path(entry.item_or_id.container_id)

    def process_resource(self, item: Attachment, path: str) -> None:
        shutil.copyfile(path, self.resource_dir / os.path.basename(path))

    def process_item(self, item_type: ItemType, item: Item) -> None:
        if item_type is ItemType.CONTAINER:
            (self.dest_dir / self._container_path(item.id)).mkdir(parents=True, exist_ok=True)
        elif item_type is ItemType.DOCUMENT:
            self._write_document(item)

    def _write_document(self, document: Document) -> None:
        relative_dir = self._container_path(document.container_id)
        doc_dir = self.dest_dir / relative_dir
        doc_dir.mkdir(parents=True, exist_ok=True)

        used = self._used_names.setdefault(relative_dir, set())
        filename = unique_name(safe_filename(document.title), used, ".md")
        (doc_dir / filename).write_text(self._rewrite_links(document.body, doc_dir), encoding="utf-8")

    def _rewrite_links(self, body: str, doc_dir: Path) -> str:
        def replace(match: "re.Match[str]") -> str:
            path = self.context.attachment_paths.get(match.group(1))
            if path is None:
                return match.group(0)
            exported = self.resource_dir / os.path.basename(path)
            return Path(os.path.relpath(exported, doc_dir)).as_posix()

        return ATTACHMENT_LINK_RE.sub(replace, body or "")

    def _container_path(self, container_id: str) -> str:
        if not container_id:
            return ""
        if container_id in self._container_paths:
            return self._container_paths[container_id]

        container: Optional[Container] = require_store(self.options).load(ItemType.CONTAINER, container_id)
        if container is None:
            self._container_paths[container_id] = ""
            return ""

        parent_path = self._container_path(container.parent_id)
        used = self._used_names.setdefault(parent_path, {RESOURCES_DIR.lower()})
        name = unique_name(safe_filename(container.title), used)
        path = f"{parent_path}/{name}" if parent_path else name
        self._container_paths[container_id] = path
        return path


class MdImporter(BaseImporter):
    def exec(self, result: ImportExportResult) -> ImportExportResult:
        self.store = require_store(self.options)
        source = Path(self.source_path)
        extensions = DEFAULT_EXTENSIONS
        if self.metadata is not None and self.metadata.file_extensions:
            extensions = self.metadata.file_extensions

        parent = getattr(self.options, "destination_container", None)
        if parent is None:
            title = source.name if source.is_dir() else source.stem
            parent = self.store.save(Container(title=title))

        if source.is_dir():
            self._import_directory(source, parent.id, extensions, result)
        else:
            self._import_file(source, parent.id, result)
        return result

    def _import_directory(self, directory: Path, container_id: str, extensions, result) -> None:
        for path in sorted(directory.iterdir()):
            if path.is_dir():
                child = self.store.save(Container(title=path.name, parent_id=container_id))
                self._import_directory(path, child.id, extensions, result)
            elif path.suffix.lower().lstrip(".") in extensions:
                self._import_file(path, container_id, result)
            else:
                logger.debug("Skipping %s: not a Markdown file", path)

    def _import_file(self, path: Path, container_id: str, result: ImportExportResult) -> None:
        try:
            body = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            result.warnings.append(f"Could not read {path.name}: {exc}")
            return
        self.store.save(Document(title=path.stem, body=body, container_id=container_id))
