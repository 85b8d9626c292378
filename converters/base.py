"""Base types and lifecycle interfaces for importer/exporter converter modules."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple, Union


class ModuleType(str, Enum):
    IMPORTER = "importer"
    EXPORTER = "exporter"


class FileSystemItem(str, Enum):
    """Kind of location a converter reads from or writes to."""

    FILE = "file"
    DIRECTORY = "directory"


class OutputFormat(str, Enum):
    """Body format produced by an importer."""

    MARKDOWN = "md"
    HTML = "html"


class ItemType(str, Enum):
    CONTAINER = "container"
    ATTACHMENT = "attachment"
    DOCUMENT = "document"
    LABEL = "label"
    LABEL_ASSIGNMENT = "label_assignment"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


# Attachments precede the documents that embed them, labels precede their
# assignments, and containers come first so documents have somewhere to go.
EXPORT_TYPE_ORDER: Tuple[ItemType, ...] = (
    ItemType.CONTAINER,
    ItemType.ATTACHMENT,
    ItemType.DOCUMENT,
    ItemType.LABEL,
    ItemType.LABEL_ASSIGNMENT,
)


class InteropError(Exception):
    """Base exception for import/export failures."""


class ModuleNotFound(InteropError):
    """Raised when no descriptor matches the requested type/format."""


class ConverterLoadError(InteropError):
    """Raised when a matched descriptor cannot be turned into a converter."""


@dataclass(frozen=True)
class ModuleDescriptor:
    """Metadata describing one importer or exporter module."""

    type: ModuleType
    format: str
    description: str = ""
    file_extensions: FrozenSet[str] = frozenset()
    sources: Tuple[FileSystemItem, ...] = ()
    target: Optional[FileSystemItem] = None
    output_format: OutputFormat = OutputFormat.MARKDOWN
    is_default: bool = False
    can_do_multi_export: bool = True
    is_note_archive: bool = True
    importer_class: Optional[str] = None
    instance_factory: Optional[Callable[[], Any]] = None

    def matches_location(self, location: FileSystemItem) -> bool:
        if self.type is ModuleType.IMPORTER:
            return location in self.sources
        return self.target == location

    def as_dict(self) -> Dict[str, object]:
        return {
            "type": self.type.value,
            "format": self.format,
            "description": self.description,
            "file_extensions": sorted(self.file_extensions),
            "sources": [source.value for source in self.sources],
            "target": self.target.value if self.target else None,
            "output_format": self.output_format.value,
            "is_default": self.is_default,
            "can_do_multi_export": self.can_do_multi_export,
            "is_note_archive": self.is_note_archive,
            "importer_class": self.importer_class,
            "custom": self.instance_factory is not None,
        }


def default_module_fields(module_type: ModuleType) -> Dict[str, object]:
    """Return the defaults a descriptor of ``module_type`` starts from."""

    fields: Dict[str, object] = {
        "description": "",
        "file_extensions": frozenset(),
        "output_format": OutputFormat.MARKDOWN,
        "is_default": False,
        "instance_factory": None,
    }
    if module_type is ModuleType.IMPORTER:
        fields.update(sources=(), is_note_archive=True, importer_class=None)
    else:
        fields.update(target=FileSystemItem.FILE, can_do_multi_export=True)
    return fields


def build_descriptor(module_type: ModuleType, format: str, **fields: Any) -> ModuleDescriptor:
    """Merge ``fields`` over the type defaults and build a descriptor."""

    module_type = ModuleType(module_type)
    merged = {**default_module_fields(module_type), **fields}
    merged["file_extensions"] = frozenset(
        ext.lower().lstrip(".") for ext in merged.get("file_extensions") or ()
    )
    merged["sources"] = tuple(FileSystemItem(s) for s in merged.get("sources") or ())
    if merged.get("target") is not None:
        merged["target"] = FileSystemItem(merged["target"])
    merged["output_format"] = OutputFormat(merged["output_format"])
    return ModuleDescriptor(type=module_type, format=format, **merged)


@dataclass
class ImportExportResult:
    """Outcome of a run; warnings are only ever appended to."""

    warnings: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, object]:
        return {"warnings": list(self.warnings)}


@dataclass
class ExportContext:
    """State shared between the export pipeline and the active exporter."""

    attachment_paths: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ExportQueueEntry:
    item_type: ItemType
    item_or_id: Union[str, Any]

    @property
    def is_loaded(self) -> bool:
        return not isinstance(self.item_or_id, str)

    @property
    def item_id(self) -> str:
        if self.is_loaded:
            return self.item_or_id.id
        return self.item_or_id


class _Converter(ABC):
    def __init__(self) -> None:
        self.metadata: Optional[ModuleDescriptor] = None
        self.options: Any = None

    def set_metadata(self, metadata: ModuleDescriptor, options: Any = None) -> None:
        self.metadata = metadata
        if options is not None:
            self.options = options


class BaseImporter(_Converter):
    """Abstract base class for importers."""

    def init(self, source_path: str, options: Any) -> None:
        self.source_path = source_path
        self.options = options

    @abstractmethod
    def exec(self, result: ImportExportResult) -> ImportExportResult:
        """Read the source and write its items to the store."""


class BaseExporter(_Converter):
    """Abstract base class for exporters.

    The pipeline calls ``init`` once, then for every item type in
    ``EXPORT_TYPE_ORDER`` calls ``prepare_for_processing_item_type`` followed
    by ``process_item`` (and ``process_resource`` for attachments) per entry,
    and finally ``close``. Anything left in ``warnings`` after ``close`` is
    added to the run result.
    """

    def __init__(self) -> None:
        super().__init__()
        self.context = ExportContext()
        self.warnings: List[str] = []

    def init(self, target_path: str, options: Any) -> None:
        self.target_path = target_path
        self.options = options

    def prepare_for_processing_item_type(
        self, item_type: ItemType, queue: Sequence[ExportQueueEntry]
    ) -> None:
        """Hook called once per item type before its entries are processed."""

    def update_context(self, context: ExportContext) -> None:
        self.context = context

    def process_resource(self, item: Any, path: str) -> None:
        """Handle the payload file of an attachment."""

    @abstractmethod
    def process_item(self, item_type: ItemType, item: Any) -> None:
        """Write one item to the target."""

    def close(self) -> None:
        """Flush and release the target."""
