"""Item models exchanged between the store, the pipelines and converters."""

from __future__ import annotations

import re
import uuid
from typing import Dict, Iterable, List, Optional, Protocol, Type

from pydantic import BaseModel, Field

from .base import InteropError, ItemType


# Documents reference attachments as ``:/<id>`` link targets, either in
# Markdown (``![img](:/abc123)``) or in HTML attributes (``src=":/abc123"``).
# Only the ``:/<id>`` part is matched so substitutions keep the surrounding link.
ATTACHMENT_LINK_RE = re.compile(r"""(?:(?<=\]\()|(?<=["'<])):/([A-Za-z0-9_-]+)(?=[)\s"'>#?]|$)""")


def new_id() -> str:
    return uuid.uuid4().hex


class Item(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str = ""
    encryption_applied: bool = False

    @property
    def is_encrypted(self) -> bool:
        return self.encryption_applied


class Container(Item):
    parent_id: str = ""


class Document(Item):
    container_id: str = ""
    body: str = ""


class Attachment(Item):
    mime: str = "application/octet-stream"
    file_extension: str = ""
    encryption_blob_encrypted: bool = False

    @property
    def is_encrypted(self) -> bool:
        return self.encryption_applied or self.encryption_blob_encrypted

    @property
    def filename(self) -> str:
        if self.file_extension:
            return f"{self.id}.{self.file_extension}"
        return self.id


class Label(Item):
    pass


class LabelAssignment(Item):
    document_id: str
    label_id: str


ITEM_CLASSES: Dict[ItemType, Type[Item]] = {
    ItemType.CONTAINER: Container,
    ItemType.ATTACHMENT: Attachment,
    ItemType.DOCUMENT: Document,
    ItemType.LABEL: Label,
    ItemType.LABEL_ASSIGNMENT: LabelAssignment,
}


def item_type_of(item: Item) -> ItemType:
    for item_type, cls in ITEM_CLASSES.items():
        if type(item) is cls:
            return item_type
    raise TypeError(f"Unsupported item class {type(item).__name__}")


def linked_attachment_ids(body: str) -> List[str]:
    """Return attachment ids referenced in ``body``, in order of appearance."""

    seen: List[str] = []
    for match in ATTACHMENT_LINK_RE.finditer(body or ""):
        if match.group(1) not in seen:
            seen.append(match.group(1))
    return seen


class ItemStore(Protocol):
    """Boundary of the item store the pipelines and converters rely on."""

    def load(self, item_type: ItemType, item_id: str) -> Optional[Item]:
        ...

    def save(self, item: Item) -> Item:
        ...

    def container_ids(self) -> List[str]:
        ...

    def descendant_container_ids(self, container_id: str) -> List[str]:
        ...

    def document_ids(self, container_id: str) -> List[str]:
        ...

    def linked_attachment_ids(self, document: Document) -> List[str]:
        ...

    def label_assignments(self) -> Iterable[LabelAssignment]:
        ...

    def attachment_path(self, attachment: Attachment) -> str:
        ...


def require_store(options) -> ItemStore:
    """Return the store a pipeline attached to ``options``."""

    store = getattr(options, "store", None)
    if store is None:
        raise InteropError("This converter needs an item store in its options")
    return store
