"""In-memory item store with optional JSON snapshot persistence."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from converters.base import ItemType
from converters.items import (
    ITEM_CLASSES,
    Attachment,
    Container,
    Document,
    Item,
    LabelAssignment,
    item_type_of,
    linked_attachment_ids,
)

logger = logging.getLogger(__name__)


class InMemoryItemStore:
    """Dict-backed implementation of :class:`converters.items.ItemStore`.

    Items keep their insertion order, which makes container and document
    enumeration deterministic.
    """

    def __init__(self, attachments_dir: Union[str, Path]) -> None:
        self.attachments_dir = Path(attachments_dir).expanduser().resolve()
        self._items: Dict[ItemType, Dict[str, Item]] = {item_type: {} for item_type in ItemType}

    # ------------------------------------------------------------------
    # Basic access
    # ------------------------------------------------------------------
    def load(self, item_type: ItemType, item_id: str) -> Optional[Item]:
        return self._items[ItemType(item_type)].get(item_id)

    def save(self, item: Item) -> Item:
        self._items[item_type_of(item)][item.id] = item
        return item

    def all(self, item_type: ItemType) -> List[Item]:
        return list(self._items[ItemType(item_type)].values())

    def counts(self) -> Dict[str, int]:
        return {item_type.value: len(items) for item_type, items in self._items.items()}

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------
    def child_container_ids(self, parent_id: str) -> List[str]:
        return [
            container.id
            for container in self._items[ItemType.CONTAINER].values()
            if container.parent_id == parent_id
        ]

    def descendant_container_ids(self, container_id: str) -> List[str]:
        output: List[str] = []
        for child_id in self.child_container_ids(container_id):
            output.append(child_id)
            output.extend(self.descendant_container_ids(child_id))
        return output

    def container_ids(self) -> List[str]:
        """Every container reachable from the root, depth-first.

        Containers whose parent does not exist are not reachable and are left
        out.
        """

        return self.descendant_container_ids("")

    def document_ids(self, container_id: str) -> List[str]:
        return [
            document.id
            for document in self._items[ItemType.DOCUMENT].values()
            if document.container_id == container_id
        ]

    def linked_attachment_ids(self, document: Document) -> List[str]:
        return linked_attachment_ids(document.body)

    def label_assignments(self) -> Iterable[LabelAssignment]:
        return list(self._items[ItemType.LABEL_ASSIGNMENT].values())

    def attachment_path(self, attachment: Attachment) -> str:
        return str(self.attachments_dir / attachment.filename)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def dump(self) -> Dict[str, List[dict]]:
        return {
            item_type.value: [item.model_dump(mode="json") for item in items.values()]
            for item_type, items in self._items.items()
        }

    def save_snapshot(self, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.dump(), indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("Saved store snapshot to %s", path)

    @classmethod
    def from_snapshot(cls, path: Union[str, Path], attachments_dir: Union[str, Path]) -> "InMemoryItemStore":
        store = cls(attachments_dir)
        path = Path(path)
        if not path.exists():
            return store

        data = json.loads(path.read_text(encoding="utf-8"))
        for type_name, records in data.items():
            item_cls = ITEM_CLASSES[ItemType(type_name)]
            for record in records:
                store.save(item_cls.model_validate(record))
        logger.debug("Loaded store snapshot from %s", path)
        return store
