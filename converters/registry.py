"""Registry of available importer and exporter modules."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from .base import (
    FileSystemItem,
    ModuleDescriptor,
    ModuleType,
    OutputFormat,
    build_descriptor,
)
from .jex import JexExporter, JexImporter
from .markdown import MdExporter, MdImporter
from .raw import RawExporter, RawImporter

logger = logging.getLogger(__name__)

ChangeListener = Callable[["ModuleRegistry"], None]


def _builtin_modules() -> List[ModuleDescriptor]:
    importers = [
        build_descriptor(
            ModuleType.IMPORTER,
            "jex",
            file_extensions=("jex",),
            sources=(FileSystemItem.FILE,),
            description="Export archive (JEX)",
        ),
        build_descriptor(
            ModuleType.IMPORTER,
            "md",
            file_extensions=("md", "markdown", "txt"),
            sources=(FileSystemItem.FILE, FileSystemItem.DIRECTORY),
            is_note_archive=False,
            description="Markdown",
        ),
        build_descriptor(
            ModuleType.IMPORTER,
            "raw",
            sources=(FileSystemItem.DIRECTORY,),
            description="Export directory (raw)",
        ),
        build_descriptor(
            ModuleType.IMPORTER,
            "enex",
            file_extensions=("enex",),
            sources=(FileSystemItem.FILE,),
            description="Evernote export file (as Markdown)",
            importer_class="EnexToMdImporter",
            is_default=True,
        ),
        build_descriptor(
            ModuleType.IMPORTER,
            "enex",
            file_extensions=("enex",),
            sources=(FileSystemItem.FILE,),
            description="Evernote export file (as HTML)",
            importer_class="EnexToHtmlImporter",
            output_format=OutputFormat.HTML,
        ),
    ]

    exporters = [
        build_descriptor(
            ModuleType.EXPORTER,
            "jex",
            file_extensions=("jex",),
            target=FileSystemItem.FILE,
            can_do_multi_export=True,
            description="Export archive (JEX)",
        ),
        build_descriptor(
            ModuleType.EXPORTER,
            "raw",
            target=FileSystemItem.DIRECTORY,
            description="Export directory (raw)",
        ),
        build_descriptor(
            ModuleType.EXPORTER,
            "md",
            target=FileSystemItem.DIRECTORY,
            description="Markdown",
        ),
        build_descriptor(
            ModuleType.EXPORTER,
            "html",
            file_extensions=("html", "htm"),
            target=FileSystemItem.FILE,
            can_do_multi_export=False,
            description="HTML file",
        ),
        build_descriptor(
            ModuleType.EXPORTER,
            "html",
            target=FileSystemItem.DIRECTORY,
            description="HTML directory",
        ),
    ]

    return importers + exporters


def implementation_name(module: ModuleDescriptor) -> str:
    """Return the implementation table key for ``module``."""

    if module.type is ModuleType.IMPORTER and module.importer_class:
        return module.importer_class
    return f"{module.type.value.title()}{module.format.title()}"


BUILTIN_IMPLEMENTATIONS: Dict[str, Callable[[], object]] = {
    "ImporterJex": JexImporter,
    "ImporterMd": MdImporter,
    "ImporterRaw": RawImporter,
    "ExporterJex": JexExporter,
    "ExporterMd": MdExporter,
    "ExporterRaw": RawExporter,
}


class ModuleRegistry:
    """Built-in plus caller-registered module descriptors."""

    def __init__(self) -> None:
        self._default_modules: Optional[List[ModuleDescriptor]] = None
        self._user_modules: List[ModuleDescriptor] = []
        self._listeners: List[ChangeListener] = []

    def modules(self) -> List[ModuleDescriptor]:
        if self._default_modules is None:
            self._default_modules = _builtin_modules()
        return self._default_modules + self._user_modules

    def register_module(self, module_type: ModuleType, format: str, **fields) -> ModuleDescriptor:
        module = build_descriptor(module_type, format, **fields)

        if module.is_default:
            clash = self._find_default_clash(module)
            if clash is not None:
                logger.warning(
                    "Module %s/%s is marked as default but %r already is; the first one wins",
                    module.type.value,
                    module.format,
                    clash.description or clash.format,
                )

        self._user_modules.append(module)
        logger.info("Registered %s module for format %r", module.type.value, module.format)
        self._emit_modules_changed()
        return module

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Call ``listener`` after every registration; returns a disposer."""

        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def find_module_by_format(
        self,
        module_type: ModuleType,
        format: str,
        target: Optional[FileSystemItem] = None,
        output_format: Optional[OutputFormat] = None,
    ) -> Optional[ModuleDescriptor]:
        """Find the module for ``module_type`` and ``format``.

        Several modules may share a format (e.g. the two ENEX importers). They
        are told apart either by ``target`` or by ``output_format``, never
        both. Among the remaining candidates the one marked ``is_default``
        wins, otherwise the first one in registration order.
        """

        if target is not None and output_format is not None:
            raise ValueError("Pass either target or output_format, not both")

        matches = []
        for module in self.modules():
            if module.type != module_type or module.format != format:
                continue
            if target is not None:
                if module.matches_location(FileSystemItem(target)):
                    matches.append(module)
            elif output_format is not None:
                if module.output_format == OutputFormat(output_format):
                    matches.append(module)
            else:
                matches.append(module)

        for module in matches:
            if module.is_default:
                return module
        return matches[0] if matches else None

    def module_by_file_extension(self, module_type: ModuleType, ext: str) -> Optional[ModuleDescriptor]:
        ext = (ext or "").lower().lstrip(".")
        if not ext:
            return None

        for module in self.modules():
            if module.type != module_type:
                continue
            if ext in module.file_extensions:
                return module
        return None

    def _find_default_clash(self, module: ModuleDescriptor) -> Optional[ModuleDescriptor]:
        for other in self.modules():
            if (
                other.is_default
                and other.type == module.type
                and other.format == module.format
                and other.target == module.target
                and other.output_format == module.output_format
            ):
                return other
        return None

    def _emit_modules_changed(self) -> None:
        for listener in list(self._listeners):
            listener(self)
