"""Shared fixtures for the interop test suite."""

import pytest

from converters.base import BaseExporter, FileSystemItem, ModuleType
from converters.items import Attachment, Container, Document, Label, LabelAssignment
from converters.registry import ModuleRegistry
from converters.resolver import ModuleResolver
from services.interop import InteropService
from services.store import InMemoryItemStore


class RecordingExporter(BaseExporter):
    """Exporter that records every lifecycle call it receives."""

    def __init__(self, calls, fail_on=()):
        super().__init__()
        self.calls = calls
        self.fail_on = set(fail_on)

    def init(self, target_path, options):
        super().init(target_path, options)
        self.calls.append(("init", target_path))

    def prepare_for_processing_item_type(self, item_type, queue):
        self.calls.append(("prepare", item_type, len(queue)))

    def update_context(self, context):
        super().update_context(context)
        self.calls.append(("context", dict(context.attachment_paths)))

    def process_resource(self, item, path):
        self.calls.append(("resource", item.id, path))

    def process_item(self, item_type, item):
        if item.id in self.fail_on:
            raise RuntimeError(f"cannot write {item.id}")
        self.calls.append(("item", item_type, item.id))

    def close(self):
        self.calls.append(("close",))


@pytest.fixture
def store(tmp_path):
    return InMemoryItemStore(tmp_path / "attachments")


@pytest.fixture
def registry():
    return ModuleRegistry()


@pytest.fixture
def calls():
    return []


@pytest.fixture
def failing_ids():
    return set()


@pytest.fixture
def service(registry, store, calls, failing_ids):
    """Service whose ``record`` exporter logs into ``calls``."""
    registry.register_module(ModuleType.EXPORTER, "record", target=FileSystemItem.DIRECTORY)
    resolver = ModuleResolver(
        registry,
        implementations={"ExporterRecord": lambda: RecordingExporter(calls, failing_ids)},
    )
    return InteropService(resolver, store)


@pytest.fixture
def sample_graph(store):
    """
    Containers A > B and C, documents M (in A) and N (in B) both embedding
    attachment ``res1``, and label ``lab1`` assigned to N.
    """
    store.save(Container(id="cA", title="Alpha"))
    store.save(Container(id="cB", title="Beta", parent_id="cA"))
    store.save(Container(id="cC", title="Gamma"))
    store.save(Document(id="dM", title="Meeting", container_id="cA", body="See ![chart](:/res1)"))
    store.save(Document(id="dN", title="Notes", container_id="cB", body="![chart](:/res1) again"))
    attachment = store.save(Attachment(id="res1", title="chart.png", mime="image/png", file_extension="png"))
    store.attachments_dir.mkdir(parents=True, exist_ok=True)
    with open(store.attachment_path(attachment), "wb") as fh:
        fh.write(b"\x89PNG fake")
    store.save(Label(id="lab1", title="important"))
    store.save(LabelAssignment(id="as1", document_id="dN", label_id="lab1"))
    return store
