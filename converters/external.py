"""Loading converter implementations from an explicit module path."""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import logging
import threading
from pathlib import Path
from types import ModuleType as PyModule
from typing import Dict, List, Optional, Tuple, Type

from .base import BaseExporter, BaseImporter, ConverterLoadError, ModuleType

logger = logging.getLogger(__name__)

_module_cache: Dict[str, PyModule] = {}
_module_lock = threading.Lock()


def split_implementation_path(implementation_path: str) -> Tuple[str, Optional[str]]:
    """Split ``location[:ClassName]`` into its two parts.

    A Windows drive letter (``C:\\...``) is not mistaken for a class suffix.
    """

    location, sep, attr = implementation_path.rpartition(":")
    if not sep or not attr or "/" in attr or "\\" in attr or "." in attr:
        return implementation_path, None
    return location, attr


def load_converter_class(implementation_path: str, module_type: ModuleType) -> Type:
    """Return the converter class designated by ``implementation_path``.

    ``implementation_path`` is either a Python file (``plugins/foo.py``) or a
    dotted module name (``plugins.foo``), optionally followed by
    ``:ClassName``. Without a class name, the module must define exactly one
    importer or exporter class matching ``module_type``.
    """

    location, attr = split_implementation_path(implementation_path)
    module = _load_module(location)

    if attr:
        if not hasattr(module, attr):
            raise ConverterLoadError(f"Converter class '{attr}' missing in {location}")
        cls = getattr(module, attr)
        if not callable(cls):
            raise ConverterLoadError(f"Converter '{attr}' in {location} is not callable.")
        return cls

    candidates = _converter_classes(module, module_type)
    if len(candidates) != 1:
        names = ", ".join(cls.__name__ for cls in candidates) or "none"
        raise ConverterLoadError(
            f"Expected exactly one {module_type.value} class in {location}, found: {names}"
        )
    return candidates[0]


def _converter_classes(module: PyModule, module_type: ModuleType) -> List[Type]:
    base = BaseImporter if module_type is ModuleType.IMPORTER else BaseExporter
    return [
        cls
        for _, cls in inspect.getmembers(module, inspect.isclass)
        if issubclass(cls, base)
        and cls.__module__ == module.__name__
        and not inspect.isabstract(cls)
    ]


def _load_module(location: str) -> PyModule:
    with _module_lock:
        if location in _module_cache:
            return _module_cache[location]

        if location.endswith(".py") or "/" in location or "\\" in location:
            module = _load_file(Path(location))
        else:
            try:
                module = importlib.import_module(location)
            except ImportError as exc:
                raise ConverterLoadError(f"Unable to import converter module '{location}': {exc}") from exc

        _module_cache[location] = module
        return module


def _load_file(script_path: Path) -> PyModule:
    script_path = script_path.expanduser().resolve()
    if not script_path.exists():
        raise ConverterLoadError(f"Converter script not found: {script_path}")

    module_name = f"interop_converter_{script_path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, script_path)
    if spec is None or spec.loader is None:
        raise ConverterLoadError(f"Unable to load converter script: {script_path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise ConverterLoadError(f"Converter script {script_path} failed to load: {exc}") from exc

    logger.debug("Loaded converter script %s", script_path)
    return module
