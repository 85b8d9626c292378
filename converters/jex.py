"""JEX archive format: a raw export packed into a single tar file."""

from __future__ import annotations

import logging
import shutil
import tarfile
import tempfile
from pathlib import Path
from typing import Any, Sequence

from .base import (
    BaseExporter,
    BaseImporter,
    ExportContext,
    ExportQueueEntry,
    ImportExportResult,
    InteropError,
    ItemType,
)
from .raw import RawExporter, RawImporter

logger = logging.getLogger(__name__)


class JexExporter(BaseExporter):
    def init(self, target_path: str, options: Any) -> None:
        super().init(target_path, options)
        self._staging_dir = Path(tempfile.mkdtemp(prefix="jex-export-"))
        self._raw = RawExporter()
        self._raw.set_metadata(self.metadata, options)
        self._raw.init(str(self._staging_dir), options)

    def prepare_for_processing_item_type(
        self, item_type: ItemType, queue: Sequence[ExportQueueEntry]
    ) -> None:
        self._raw.prepare_for_processing_item_type(item_type, queue)

    def update_context(self, context: ExportContext) -> None:
        super().update_context(context)
        self._raw.update_context(context)

    def process_resource(self, item: Any, path: str) -> None:
        self._raw.process_resource(item, path)

    def process_item(self, item_type: ItemType, item: Any) -> None:
        self._raw.process_item(item_type, item)

    def close(self) -> None:
        self._raw.close()
        archive = Path(self.target_path)
        archive.parent.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(archive, "w") as tar:
                for path in sorted(self._staging_dir.rglob("*")):
                    tar.add(path, arcname=path.relative_to(self._staging_dir).as_posix(), recursive=False)
        finally:
            shutil.rmtree(self._staging_dir, ignore_errors=True)
        logger.info("Wrote archive %s", archive)


class JexImporter(BaseImporter):
    def exec(self, result: ImportExportResult) -> ImportExportResult:
        source = Path(self.source_path)
        if not tarfile.is_tarfile(source):
            raise InteropError(f"Not a valid JEX archive: {source}")

        with tempfile.TemporaryDirectory(prefix="jex-import-") as staging_dir:
            with tarfile.open(source, "r") as tar:
                _check_members(tar)
                if hasattr(tarfile, "data_filter"):
                    tar.extractall(staging_dir, filter="data")
                else:
                    tar.extractall(staging_dir)

            raw = RawImporter()
            raw.set_metadata(self.metadata, self.options)
            raw.init(staging_dir, self.options)
            return raw.exec(result)


def _check_members(tar: tarfile.TarFile) -> None:
    for member in tar.getmembers():
        name = Path(member.name)
        if name.is_absolute() or ".." in name.parts:
            raise InteropError(f"Unsafe path in archive: {member.name}")
        if not (member.isfile() or member.isdir()):
            raise InteropError(f"Unsupported member in archive: {member.name}")
