# src/flowstitch/core/artifacts.py
"""Produced artifacts: the merged workflow document and the diagnostics report.

The merged artifact has the same shape as a subsection artifact minus the
``boundary`` section (every port is bound), so an execution engine can
consume it directly. Output is deterministic: nodes and connections keep
merge order and JSON is written with a fixed layout.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from flowstitch.contracts.diagnostics import ValidationReport
from flowstitch.core.canonical import CANONICAL_VERSION, compute_topology_hash, normalize_for_canonical
from flowstitch.core.graph import EdgeInfo, MergedGraph, NodeInfo


def _node_record(info: NodeInfo) -> dict[str, Any]:
    return {
        "id": info.node_id,
        "name": info.name,
        "type": info.node_type.value,
        "subsection": info.subsection,
        "parameters": normalize_for_canonical(info.config),
    }


def _connection_record(edge: EdgeInfo) -> dict[str, Any]:
    record: dict[str, Any] = {
        "source": edge.source,
        "source_port": edge.source_port,
        "target": edge.target,
        "target_port": edge.target_port,
        "kind": edge.kind.value,
    }
    if edge.synthesized:
        record["synthesized"] = True
    return record


def merged_artifact(merged: MergedGraph) -> dict[str, Any]:
    """Build the merged workflow document."""
    graph = merged.graph
    return {
        "name": graph.name,
        "subsections": list(merged.subsections),
        "nodes": [_node_record(info) for info in graph.nodes],
        "connections": [_connection_record(edge) for edge in graph.edges],
        "fingerprint": {
            "algorithm": CANONICAL_VERSION,
            "topology": compute_topology_hash(graph),
        },
    }


def diagnostics_report(report: ValidationReport) -> dict[str, Any]:
    """Build the JSON diagnostics report."""
    return report.to_dict()


def dumps(data: Any) -> str:
    """Serialize to the fixed JSON layout used for every produced artifact."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_json(data: Any, path: Path) -> None:
    """Write a produced artifact to disk, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(data), encoding="utf-8")
