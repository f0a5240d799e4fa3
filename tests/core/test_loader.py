# tests/core/test_loader.py
"""Tests for subsection and binding-list loading."""

import json
from pathlib import Path

import pytest
import yaml

from tests.fixtures.factories import (
    example_bindings,
    input_document,
    processing_document,
    write_workflow,
    write_yaml,
)


class TestParseSubsection:
    """Document validation and conversion."""

    def test_list_form(self) -> None:
        from flowstitch.contracts import EdgeKind, NodeType
        from flowstitch.core.loader import parse_subsection

        subsection = parse_subsection(input_document())

        assert subsection.name == "input"
        assert subsection.graph.frozen is True
        start = subsection.graph.get_node_info("start")
        assert start.node_type == NodeType.TRIGGER
        assert start.name == "Manual Trigger"
        assert start.subsection == "input"
        assert dict(subsection.graph.get_node_info("validate").config) == {"schema": "order"}
        assert [(e.source, e.target, e.kind) for e in subsection.graph.edges] == [("start", "validate", EdgeKind.MAIN)]
        assert [(p.name, p.node, p.port) for p in subsection.boundary.exports] == [("validated", "validate", 0)]
        assert subsection.boundary.imports == ()

    def test_config_alias_and_camel_case_ports(self) -> None:
        from flowstitch.core.loader import parse_subsection

        document = {
            "name": "router",
            "nodes": [
                {"id": "route", "type": "conditional", "config": {"field": "status"}},
                {"id": "rejected", "type": "terminal"},
            ],
            "connections": [{"source": "route", "target": "rejected", "sourcePort": 1, "kind": "error"}],
        }
        subsection = parse_subsection(document)

        assert dict(subsection.graph.get_node_info("route").config) == {"field": "status"}
        [edge] = subsection.graph.edges
        assert edge.ref == "route:1->rejected:0 (error)"

    def test_default_name(self) -> None:
        from flowstitch.core.loader import parse_subsection

        document = input_document()
        del document["name"]

        assert parse_subsection(document, default_name="intake").name == "intake"

    def test_missing_name(self) -> None:
        from flowstitch.contracts import SubsectionLoadError
        from flowstitch.core.loader import parse_subsection

        document = input_document()
        del document["name"]

        with pytest.raises(SubsectionLoadError, match="no name"):
            parse_subsection(document)

    def test_dangling_connection_is_kept(self) -> None:
        from flowstitch.core.loader import parse_subsection

        document = processing_document()
        document["connections"].append({"source": "store", "target": "archive"})

        subsection = parse_subsection(document)

        assert [edge.target for edge in subsection.graph.dangling_edges()] == ["archive"]

    def test_unknown_keys_on_nodes_ignored(self) -> None:
        from flowstitch.core.loader import parse_subsection

        document = processing_document()
        document["nodes"][0].update({"position": [250, 300], "typeVersion": 2})

        assert parse_subsection(document).graph.has_node("ingest")

    def test_n8n_mapping_form(self) -> None:
        from flowstitch.contracts import EdgeKind
        from flowstitch.core.loader import parse_subsection

        document = {
            "name": "intake",
            "nodes": [
                {"id": "start", "type": "trigger", "name": "Manual Trigger"},
                {"id": "check", "type": "conditional", "name": "Check"},
                {"id": "ok", "type": "terminal"},
                {"id": "alert", "type": "terminal", "name": "Alert"},
            ],
            "connections": {
                "Manual Trigger": {"main": [[{"node": "Check", "type": "main", "index": 0}]]},
                "check": {
                    "main": [[{"node": "ok"}], [{"node": "Alert", "index": 0}]],
                    "error": [[{"node": "alert"}]],
                },
            },
        }
        graph = parse_subsection(document).graph

        assert [(e.source, e.source_port, e.target, e.kind) for e in graph.edges] == [
            ("start", 0, "check", EdgeKind.MAIN),
            ("check", 0, "ok", EdgeKind.MAIN),
            ("check", 1, "alert", EdgeKind.MAIN),
            ("check", 0, "alert", EdgeKind.ERROR),
        ]
        assert graph.dangling_edges() == []

    @pytest.mark.parametrize(
        ("mutate", "expected"),
        [
            (lambda d: d["nodes"].append({"id": "start", "type": "action"}), "duplicate node id 'start'"),
            (lambda d: d["nodes"].append({"id": "a.b", "type": "action"}), "must not contain '.'"),
            (lambda d: d["nodes"].append({"id": "x", "type": "webhook"}), "nodes.2.type"),
            (lambda d: d["boundary"]["exports"].append({"name": "extra", "node": "ghost"}), "unknown node 'ghost'"),
            (lambda d: d["boundary"]["exports"].append({"name": "validated", "node": "start"}), "duplicate export port name"),
            (lambda d: d["connections"].append({"source": "start", "target": "validate", "targetPort": -1}), "connections"),
            (lambda d: d.update({"owner": "team-a"}), "owner"),
        ],
    )
    def test_malformed_documents(self, mutate, expected: str) -> None:  # type: ignore[no-untyped-def]
        from flowstitch.contracts import SubsectionLoadError
        from flowstitch.core.loader import parse_subsection

        document = input_document()
        mutate(document)

        with pytest.raises(SubsectionLoadError) as exc_info:
            parse_subsection(document)

        assert any(expected in detail for detail in exc_info.value.details), exc_info.value.details

    def test_yaml_dates_in_parameters_become_iso_strings(self) -> None:
        from flowstitch.core.loader import parse_subsection

        document = input_document()
        document["nodes"][1]["parameters"] = yaml.safe_load("since: 2024-01-01\nat: 2024-01-01 08:00:00\n")

        config = parse_subsection(document).graph.get_node_info("validate").config

        assert dict(config) == {"since": "2024-01-01", "at": "2024-01-01T08:00:00+00:00"}

    @pytest.mark.parametrize(
        ("parameters", "expected"),
        [
            ("account: 12345678901234567890", "2**53"),
            ("threshold: .nan", "non-finite"),
            ("limit: -.inf", "non-finite"),
            ("tags: !!set {a, b}", "set"),
        ],
    )
    def test_parameters_without_json_form_rejected(self, parameters: str, expected: str) -> None:
        from flowstitch.contracts import SubsectionLoadError
        from flowstitch.core.loader import parse_subsection

        document = input_document()
        document["nodes"][1]["parameters"] = yaml.safe_load(parameters)

        with pytest.raises(SubsectionLoadError, match="node 'validate'") as exc_info:
            parse_subsection(document)

        assert any(expected in detail for detail in exc_info.value.details), exc_info.value.details

    @pytest.mark.parametrize("section", ["connections", "boundary"])
    def test_null_section_is_empty(self, section: str) -> None:
        from flowstitch.core.loader import parse_subsection

        document = processing_document()
        document[section] = None

        subsection = parse_subsection(document)

        assert subsection.graph.node_count == 2
        if section == "connections":
            assert subsection.graph.edges == ()
        else:
            assert subsection.boundary.imports == ()

    def test_bare_keys_in_yaml_file(self, tmp_path: Path) -> None:
        from flowstitch.core.loader import load_subsection

        path = tmp_path / "stub.yaml"
        path.write_text("nodes:\n  - id: start\n    type: trigger\n    parameters:\nconnections:\nboundary:\n")

        subsection = load_subsection(path)

        assert subsection.name == "stub"
        assert dict(subsection.graph.get_node_info("start").config) == {}
        assert subsection.graph.edge_count == 0

    def test_subsection_name_with_separator(self) -> None:
        from flowstitch.contracts import SubsectionLoadError
        from flowstitch.core.loader import parse_subsection

        document = input_document()
        document["name"] = "input.v2"

        with pytest.raises(SubsectionLoadError, match="must not contain"):
            parse_subsection(document)

    def test_non_mapping_document(self) -> None:
        from flowstitch.contracts import SubsectionLoadError
        from flowstitch.core.loader import parse_subsection

        with pytest.raises(SubsectionLoadError, match="must be a mapping"):
            parse_subsection(["not", "a", "subsection"])


class TestLoadFiles:
    """Reading artifacts from disk."""

    def test_load_directory_in_file_name_order(self, example_workflow: tuple[Path, Path]) -> None:
        from flowstitch.core.loader import load_subsections

        subsections_dir, _ = example_workflow

        assert [s.name for s in load_subsections(subsections_dir)] == ["input", "processing"]

    def test_name_defaults_to_file_stem(self, tmp_path: Path) -> None:
        from flowstitch.core.loader import load_subsection

        document = processing_document()
        del document["name"]
        path = write_yaml(tmp_path / "billing.yaml", document)

        assert load_subsection(path).name == "billing"

    def test_json_artifact(self, tmp_path: Path) -> None:
        from flowstitch.core.loader import load_subsections

        path = tmp_path / "input.json"
        path.write_text(json.dumps(input_document()))

        [subsection] = load_subsections(path)
        assert subsection.graph.node_count == 2

    def test_manifest_with_paths_and_inline_documents(self, tmp_path: Path) -> None:
        from flowstitch.core.loader import load_subsections

        write_yaml(tmp_path / "parts" / "input.yaml", input_document())
        manifest = write_yaml(tmp_path / "workflow.yaml", {"subsections": ["parts/input.yaml", processing_document()]})

        assert [s.name for s in load_subsections(manifest)] == ["input", "processing"]

    def test_manifest_with_bad_entry(self, tmp_path: Path) -> None:
        from flowstitch.contracts import SubsectionLoadError
        from flowstitch.core.loader import load_subsections

        manifest = write_yaml(tmp_path / "workflow.yaml", {"subsections": [42]})

        with pytest.raises(SubsectionLoadError, match=r"subsections\[0\]"):
            load_subsections(manifest)

    def test_empty_directory(self, tmp_path: Path) -> None:
        from flowstitch.contracts import SubsectionLoadError
        from flowstitch.core.loader import load_subsections

        with pytest.raises(SubsectionLoadError, match="no subsection artifacts"):
            load_subsections(tmp_path)

    def test_missing_file(self, tmp_path: Path) -> None:
        from flowstitch.contracts import SubsectionLoadError
        from flowstitch.core.loader import load_subsections

        missing = tmp_path / "nope.yaml"
        with pytest.raises(SubsectionLoadError, match="does not exist") as exc_info:
            load_subsections(missing)

        assert exc_info.value.path == missing

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        from flowstitch.contracts import SubsectionLoadError
        from flowstitch.core.loader import load_subsection

        path = tmp_path / "broken.yaml"
        path.write_text("nodes: [unclosed\n")

        with pytest.raises(SubsectionLoadError, match="malformed YAML/JSON"):
            load_subsection(path)

    def test_load_error_carries_path_in_message(self, tmp_path: Path) -> None:
        from flowstitch.contracts import SubsectionLoadError
        from flowstitch.core.loader import load_subsection

        path = write_yaml(tmp_path / "bad.yaml", {"nodes": "not-a-list"})

        with pytest.raises(SubsectionLoadError) as exc_info:
            load_subsection(path)

        assert str(exc_info.value).startswith(str(path))


class TestBindings:
    """Binding list parsing."""

    def test_camel_case_mapping_form(self, example_workflow: tuple[Path, Path]) -> None:
        from flowstitch.core.loader import load_bindings

        _, bindings_path = example_workflow
        [binding] = load_bindings(bindings_path)

        assert binding.describe() == "input.validated -> processing.raw"

    def test_snake_case_list_form(self) -> None:
        from flowstitch.core.loader import parse_bindings

        bindings = parse_bindings(
            [
                {"export_subsection": "a", "export_port": "out", "import_subsection": "b", "import_port": "in"},
                {"exportSubsection": "b", "exportPort": "done", "importSubsection": "c", "importPort": "start"},
            ]
        )

        assert [b.describe() for b in bindings] == ["a.out -> b.in", "b.done -> c.start"]

    def test_empty_file_means_no_bindings(self, tmp_path: Path) -> None:
        from flowstitch.core.loader import load_bindings

        path = tmp_path / "bindings.yaml"
        path.write_text("")

        assert load_bindings(path) == []

    def test_every_bad_entry_reported(self) -> None:
        from flowstitch.contracts import SubsectionLoadError
        from flowstitch.core.loader import parse_bindings

        entries = [*example_bindings(), {"exportSubsection": "a"}, "nonsense"]

        with pytest.raises(SubsectionLoadError, match="invalid binding list") as exc_info:
            parse_bindings(entries)

        details = exc_info.value.details
        assert any(d.startswith("bindings[1].") for d in details)
        assert any(d.startswith("bindings[2].") for d in details)
        assert not any(d.startswith("bindings[0].") for d in details)

    def test_wrong_top_level_type(self) -> None:
        from flowstitch.contracts import SubsectionLoadError
        from flowstitch.core.loader import parse_bindings

        with pytest.raises(SubsectionLoadError, match="must be a list"):
            parse_bindings("input.validated -> processing.raw")

    def test_workflow_files_round_trip_into_merge(self, tmp_path: Path) -> None:
        from flowstitch.core.loader import load_bindings, load_subsections
        from flowstitch.core.merge import merge_subsections

        subsections_dir, bindings_path = write_workflow(tmp_path, [input_document(), processing_document()], example_bindings())
        merged = merge_subsections(load_subsections(subsections_dir), load_bindings(bindings_path))

        assert [edge.ref for edge in merged.synthesized_edges] == ["input.validate:0->processing.ingest:0 (main)"]
