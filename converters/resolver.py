"""Turning matched module descriptors into live converter instances."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .base import (
    BaseExporter,
    BaseImporter,
    ConverterLoadError,
    FileSystemItem,
    ModuleDescriptor,
    ModuleNotFound,
    ModuleType,
    OutputFormat,
    build_descriptor,
)
from .custom import CustomExporter, CustomImporter
from .external import load_converter_class
from .registry import BUILTIN_IMPLEMENTATIONS, ModuleRegistry, implementation_name

logger = logging.getLogger(__name__)

Converter = Union[BaseImporter, BaseExporter]


class ModuleResolver:
    """Resolve converters by format, by target, or by explicit module path."""

    def __init__(
        self,
        registry: ModuleRegistry,
        implementations: Optional[Mapping[str, Callable[[], Any]]] = None,
    ) -> None:
        self.registry = registry
        self.implementations: Dict[str, Callable[[], Any]] = dict(BUILTIN_IMPLEMENTATIONS)
        if implementations:
            self.implementations.update(implementations)

    def resolve_by_format(
        self,
        module_type: ModuleType,
        format: str,
        output_format: OutputFormat = OutputFormat.MARKDOWN,
    ) -> Converter:
        module = self.registry.find_module_by_format(module_type, format, output_format=output_format)
        if module is None:
            raise ModuleNotFound(
                f'Cannot load "{module_type.value}" module for format "{format}" '
                f'and output "{OutputFormat(output_format).value}"'
            )

        if module.instance_factory is not None:
            converter = self._from_custom_factory(module)
        else:
            converter = self._from_table(module)

        converter.set_metadata(module)
        return converter

    def resolve_by_path(self, module_type: ModuleType, options: Any) -> Converter:
        """Resolve using ``options.format`` and ``options.target``.

        ``options.implementation_path`` overrides the implementation that
        would otherwise be looked up for the matched descriptor.
        """

        format = options.format
        target = getattr(options, "target", None)
        implementation_path = getattr(options, "implementation_path", None)

        module = self.registry.find_module_by_format(module_type, format, target=target)
        if module is None:
            if not implementation_path:
                target_name = FileSystemItem(target).value if target is not None else None
                raise ModuleNotFound(
                    f'Cannot load "{module_type.value}" module for format "{format}" '
                    f'and target "{target_name}"'
                )
            module = build_descriptor(module_type, format)

        if module.instance_factory is not None:
            converter = self._from_custom_factory(module)
        elif implementation_path:
            converter = self._from_path(module, implementation_path)
        else:
            converter = self._from_table(module)

        converter.set_metadata(module, options)
        return converter

    def module_by_file_extension(self, module_type: ModuleType, ext: str) -> Optional[ModuleDescriptor]:
        return self.registry.module_by_file_extension(module_type, ext)

    def is_available(self, module: ModuleDescriptor) -> bool:
        return module.instance_factory is not None or implementation_name(module) in self.implementations

    def unavailable_modules(self) -> List[ModuleDescriptor]:
        return [module for module in self.registry.modules() if not self.is_available(module)]

    # ------------------------------------------------------------------
    # Instantiation
    # ------------------------------------------------------------------
    def _from_custom_factory(self, module: ModuleDescriptor) -> Converter:
        try:
            handle = module.instance_factory()
        except Exception as exc:
            raise ConverterLoadError(
                f"Custom {module.type.value} factory for format '{module.format}' failed: {exc}"
            ) from exc

        if module.type is ModuleType.IMPORTER:
            return CustomImporter(handle)
        return CustomExporter(handle)

    def _from_table(self, module: ModuleDescriptor) -> Converter:
        name = implementation_name(module)
        factory = self.implementations.get(name)
        if factory is None:
            raise ConverterLoadError(
                f"No implementation '{name}' available for {module.type.value} format '{module.format}'"
            )
        return self._instantiate(factory, name)

    def _from_path(self, module: ModuleDescriptor, implementation_path: str) -> Converter:
        cls = load_converter_class(implementation_path, module.type)
        logger.debug("Using %s from %s for format %r", cls.__name__, implementation_path, module.format)
        return self._instantiate(cls, implementation_path)

    @staticmethod
    def _instantiate(factory: Callable[[], Any], name: str) -> Converter:
        try:
            return factory()
        except Exception as exc:
            raise ConverterLoadError(f"Converter '{name}' could not be created: {exc}") from exc
