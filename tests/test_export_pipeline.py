"""Tests for export queue collection and dispatch."""

import pytest

from converters.base import EXPORT_TYPE_ORDER, FileSystemItem, ItemType, ModuleNotFound, ModuleType
from converters.items import Container, Document, LabelAssignment, linked_attachment_ids
from services.interop import ExportOptions


def queue_summary(queue):
    return [(entry.item_type, entry.item_id) for entry in queue]


def processed(calls):
    return [(call[1], call[2]) for call in calls if call[0] == "item"]


def export(service, **kwargs):
    return service.export_items(ExportOptions(path="out", format="record", **kwargs))


class TestCollection:
    """Which entries end up in the queue, and in what order."""

    def test_no_filters_enqueue_everything_once(self, service, sample_graph):
        queue = service.collect_export_queue()
        summary = queue_summary(queue)

        containers = [i for t, i in summary if t is ItemType.CONTAINER]
        documents = [i for t, i in summary if t is ItemType.DOCUMENT]
        attachments = [i for t, i in summary if t is ItemType.ATTACHMENT]
        assert containers == ["cA", "cB", "cC"]
        assert sorted(documents) == ["dM", "dN"]
        # Referenced by two documents, queued once
        assert attachments == ["res1"]
        assert (ItemType.LABEL_ASSIGNMENT, "as1") in summary
        assert (ItemType.LABEL, "lab1") in summary

    def test_documents_are_queued_loaded(self, service, sample_graph):
        queue = service.collect_export_queue()
        for entry in queue:
            assert entry.is_loaded == (entry.item_type is ItemType.DOCUMENT)

    def test_container_filter_includes_descendants(self, service, sample_graph):
        summary = queue_summary(service.collect_export_queue(source_container_ids=["cA"]))

        assert summary == [
            (ItemType.CONTAINER, "cA"),
            (ItemType.DOCUMENT, "dM"),
            (ItemType.CONTAINER, "cB"),
            (ItemType.DOCUMENT, "dN"),
            (ItemType.ATTACHMENT, "res1"),
            (ItemType.LABEL_ASSIGNMENT, "as1"),
            (ItemType.LABEL, "lab1"),
        ]

    def test_child_container_filter(self, service, sample_graph):
        summary = queue_summary(service.collect_export_queue(source_container_ids=["cB"]))
        assert (ItemType.CONTAINER, "cA") not in summary
        assert (ItemType.CONTAINER, "cB") in summary
        assert (ItemType.DOCUMENT, "dM") not in summary

    def test_document_filter_skips_containers(self, service, sample_graph):
        summary = queue_summary(service.collect_export_queue(source_document_ids=["dM"]))
        assert summary == [(ItemType.DOCUMENT, "dM"), (ItemType.ATTACHMENT, "res1")]

    def test_labels_are_deduplicated(self, service, sample_graph):
        sample_graph.save(LabelAssignment(id="as2", document_id="dM", label_id="lab1"))
        summary = queue_summary(service.collect_export_queue())
        assert [i for t, i in summary if t is ItemType.LABEL] == ["lab1"]
        assert [i for t, i in summary if t is ItemType.LABEL_ASSIGNMENT] == ["as1", "as2"]

    def test_orphan_containers_are_not_exported(self, service, sample_graph):
        sample_graph.save(Container(id="orphan", title="Lost", parent_id="gone"))
        summary = queue_summary(service.collect_export_queue())
        assert (ItemType.CONTAINER, "orphan") not in summary


class TestDispatch:
    """Lifecycle calls made against the exporter."""

    def test_type_order_and_single_close(self, service, sample_graph, calls):
        result = export(service)

        assert result.warnings == []
        assert calls[0] == ("init", "out")
        assert calls[-1] == ("close",)
        assert [c for c in calls if c[0] == "close"] == [("close",)]

        prepared = [call[1] for call in calls if call[0] == "prepare"]
        assert prepared == list(EXPORT_TYPE_ORDER)
        # Every prepare call sees the whole queue
        assert {call[2] for call in calls if call[0] == "prepare"} == {8}

        types = [item_type for item_type, _ in processed(calls)]
        assert types == sorted(types, key=EXPORT_TYPE_ORDER.index)

    def test_attachments_before_documents_labels_before_assignments(self, service, sample_graph, calls):
        export(service)
        order = [item_id for _, item_id in processed(calls)]
        assert order.index("res1") < order.index("dM")
        assert order.index("res1") < order.index("dN")
        assert order.index("lab1") < order.index("as1")

    def test_resource_path_is_shared_through_context(self, service, sample_graph, calls):
        export(service)
        path = sample_graph.attachment_path(sample_graph.load(ItemType.ATTACHMENT, "res1"))

        assert ("context", {"res1": path}) in calls
        assert ("resource", "res1", path) in calls
        resource_index = calls.index(("resource", "res1", path))
        assert calls[resource_index + 1] == ("item", ItemType.ATTACHMENT, "res1")

    def test_loaded_documents_are_not_reloaded(self, service, sample_graph, monkeypatch):
        queue = service.collect_export_queue()
        loads = []
        original = sample_graph.load

        def counting_load(item_type, item_id):
            loads.append(item_type)
            return original(item_type, item_id)

        monkeypatch.setattr(sample_graph, "load", counting_load)
        monkeypatch.setattr(service, "collect_export_queue", lambda *args: queue)
        export(service)

        assert ItemType.DOCUMENT not in loads
        assert ItemType.CONTAINER in loads

    def test_unknown_format(self, service, sample_graph, calls):
        with pytest.raises(ModuleNotFound):
            service.export_items(ExportOptions(path="out", format="pdf"))
        assert calls == []


class TestFailureIsolation:
    """Non-fatal problems become warnings and the run carries on."""

    def test_missing_attachment(self, service, sample_graph, calls):
        sample_graph.save(Document(id="dX", title="Broken", container_id="cC", body="![x](:/ghost)"))

        result = export(service)

        assert len(result.warnings) == 1
        assert "does not exist" in result.warnings[0]
        assert "ghost" in result.warnings[0]
        ids = [item_id for _, item_id in processed(calls)]
        assert {"cA", "cB", "cC", "res1", "dM", "dN", "dX", "lab1", "as1"} <= set(ids)

    def test_missing_label_uses_generic_wording(self, service, sample_graph, calls):
        sample_graph.save(LabelAssignment(id="as9", document_id="dM", label_id="nolabel"))

        result = export(service)

        assert result.warnings == [
            'Cannot find item with type "label" and ID "nolabel". Item was skipped.'
        ]
        assert (ItemType.LABEL_ASSIGNMENT, "as9") in processed(calls)

    def test_encrypted_item_is_skipped(self, service, sample_graph, calls):
        sample_graph.load(ItemType.DOCUMENT, "dN").encryption_applied = True

        result = export(service)

        assert len(result.warnings) == 1
        assert 'document "Notes" (dN)' in result.warnings[0]
        assert "currently encrypted" in result.warnings[0]
        assert (ItemType.DOCUMENT, "dN") not in processed(calls)
        assert (ItemType.DOCUMENT, "dM") in processed(calls)

    def test_encrypted_attachment_blob(self, service, sample_graph, calls):
        sample_graph.load(ItemType.ATTACHMENT, "res1").encryption_blob_encrypted = True

        result = export(service)

        assert "attachment" in result.warnings[0]
        assert not [c for c in calls if c[0] == "resource"]

    def test_converter_error_becomes_warning(self, service, sample_graph, calls, failing_ids):
        failing_ids.add("dM")

        result = export(service)

        assert result.warnings == ["cannot write dM"]
        assert calls[-1] == ("close",)
        ids = [item_id for _, item_id in processed(calls)]
        assert "dM" not in ids
        assert "dN" in ids and "as1" in ids


class TestAttachmentLinks:
    """Only link targets count as attachment references."""

    def test_plain_paths_and_urls_are_not_links(self, service, store, calls):
        store.save(Container(id="cP", title="Setup"))
        store.save(Document(
            id="dP",
            title="Install",
            container_id="cP",
            body="Install into C:/Users/me, see https://x.org/a or file:/tmp/x",
        ))

        summary = queue_summary(service.collect_export_queue())
        result = export(service)

        assert [i for t, i in summary if t is ItemType.ATTACHMENT] == []
        assert result.warnings == []

    def test_markdown_and_html_targets(self):
        body = '![a](:/img1) <img src=":/img2"/> [t](:/img1 "title") C:/Users/me'
        assert linked_attachment_ids(body) == ["img1", "img2"]


class TestCustomExporterWarnings:
    def test_handle_warnings_reach_the_result(self, registry, service, sample_graph):
        class Handle:
            def on_process_item(self, ctx, item_type, item):
                if item_type is ItemType.LABEL:
                    ctx.warnings.append(f"label {item.id} flattened")

        registry.register_module(
            ModuleType.EXPORTER,
            "flat",
            target=FileSystemItem.DIRECTORY,
            instance_factory=Handle,
        )

        result = service.export_items(ExportOptions(path="out", format="flat"))

        assert result.warnings == ["label lab1 flattened"]
