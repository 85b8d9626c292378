"""Raw directory format: one JSON file per item plus a resources folder."""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Set

from pydantic import ValidationError

from .base import EXPORT_TYPE_ORDER, BaseExporter, BaseImporter, ImportExportResult, InteropError, ItemType
from .items import ITEM_CLASSES, Attachment, Container, Document, Item, require_store

logger = logging.getLogger(__name__)

RESOURCES_DIR = "resources"
TYPE_KEY = "type_"


class RawExporter(BaseExporter):
    def init(self, target_path: str, options: Any) -> None:
        super().init(target_path, options)
        self.dest_dir = Path(target_path)
        self.resource_dir = self.dest_dir / RESOURCES_DIR
        self.resource_dir.mkdir(parents=True, exist_ok=True)

    def process_resource(self, item: Attachment, path: str) -> None:
        shutil.copyfile(path, self.resource_dir / item.filename)

    def process_item(self, item_type: ItemType, item: Item) -> None:
        data = item.model_dump(mode="json")
        data[TYPE_KEY] = item_type.value
        target = self.dest_dir / f"{item.id}.json"
        target.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


class RawImporter(BaseImporter):
    def exec(self, result: ImportExportResult) -> ImportExportResult:
        store = require_store(self.options)
        source_dir = Path(self.source_path)
        if not source_dir.is_dir():
            raise InteropError(f"Raw import needs a directory: {source_dir}")

        items = self._read_items(source_dir, result)
        destination = getattr(self.options, "destination_container", None)
        container_ids: Set[str] = {
            item.id for item_type, item in items if item_type is ItemType.CONTAINER
        }

        for item_type in EXPORT_TYPE_ORDER:
            for current_type, item in items:
                if current_type is not item_type:
                    continue
                if store.load(item_type, item.id) is not None:
                    result.warnings.append(
                        f'Item with type "{item_type.label}" and ID "{item.id}" already exists and was skipped.'
                    )
                    continue

                if destination is not None:
                    self._reparent(item, container_ids, destination.id)

                if item_type is ItemType.ATTACHMENT:
                    payload = source_dir / RESOURCES_DIR / item.filename
                    if not payload.exists():
                        result.warnings.append(f"Attachment payload missing and was skipped: {payload.name}")
                        continue
                    dest = Path(store.attachment_path(item))
                    dest.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copyfile(payload, dest)

                store.save(item)

        logger.info("Imported %d items from %s", len(items), source_dir)
        return result

    @staticmethod
    def _reparent(item: Item, container_ids: Set[str], destination_id: str) -> None:
        if isinstance(item, Container) and item.parent_id not in container_ids:
            item.parent_id = destination_id
        elif isinstance(item, Document) and item.container_id not in container_ids:
            item.container_id = destination_id

    @staticmethod
    def _read_items(source_dir: Path, result: ImportExportResult) -> List:
        items = []
        for path in sorted(source_dir.glob("*.json")):
            try:
                data: Dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
                item_type = ItemType(data.pop(TYPE_KEY))
                items.append((item_type, ITEM_CLASSES[item_type].model_validate(data)))
            except (ValueError, KeyError, ValidationError) as exc:
                result.warnings.append(f"Could not read {path.name}: {exc}")
        return items
