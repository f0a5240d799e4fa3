# src/flowstitch/core/validation.py
"""Structural validation of merged workflow graphs.

Every check runs (no early exit) and contributes zero or more Diagnostics,
so one pass enumerates every defect. The only exception is the identifier
uniqueness check: a violation there means the graph model itself is broken,
so it raises InternalInvariantViolation instead of reporting.

Validation never mutates the graph.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable

import networkx as nx

from flowstitch.contracts.diagnostics import Diagnostic, ValidationReport
from flowstitch.contracts.enums import DiagnosticCode, EdgeKind, NodeType, Severity
from flowstitch.contracts.errors import InternalInvariantViolation
from flowstitch.contracts.types import EdgeRef, NodeID
from flowstitch.core.config import ValidationSettings
from flowstitch.core.graph import EdgeInfo, MergedGraph, WorkflowGraph
from flowstitch.core.logging import get_logger

logger = get_logger(__name__)

CHECK_UNIQUENESS = "uniqueness"
CHECK_REFERENTIAL_INTEGRITY = "referential_integrity"
CHECK_TRIGGER_PRESENCE = "trigger_presence"
CHECK_REACHABILITY = "reachability"
CHECK_TERMINAL_TOPOLOGY = "terminal_topology"
CHECK_CYCLES = "cycles"

_ON_STACK = 1
_DONE = 2


def _refs(edges: list[EdgeInfo]) -> tuple[EdgeRef, ...]:
    return tuple(sorted(edge.ref for edge in edges))


def _check_uniqueness(graph: WorkflowGraph) -> list[Diagnostic]:
    duplicate_ids = [node_id for node_id, count in Counter(graph.node_ids).items() if count > 1]
    origins = Counter(info.sort_key for info in graph.nodes if info.subsection is not None)
    duplicate_origins = [f"{subsection}/{local_id}" for (subsection, local_id), count in origins.items() if count > 1]
    if duplicate_ids or duplicate_origins:
        raise InternalInvariantViolation(
            f"{DiagnosticCode.INTERNAL_INVARIANT_VIOLATION}: node identifiers are not unique "
            f"(ids: {sorted(duplicate_ids)}, origins: {sorted(duplicate_origins)})"
        )
    return []


def _check_referential_integrity(graph: WorkflowGraph) -> list[Diagnostic]:
    diagnostics = []
    for edge in graph.dangling_edges():
        missing = sorted({n for n in (edge.source, edge.target) if not graph.has_node(n)})
        diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code=DiagnosticCode.DANGLING_EDGE,
                message=f"Edge {edge.ref} references missing node(s): {', '.join(missing)}",
                node_ids=tuple(missing),
                edge_refs=(edge.ref,),
                check=CHECK_REFERENTIAL_INTEGRITY,
            )
        )
    return diagnostics


def _check_trigger_presence(graph: WorkflowGraph) -> list[Diagnostic]:
    triggers = graph.nodes_of_type(NodeType.TRIGGER)
    if not triggers:
        return [
            Diagnostic(
                severity=Severity.ERROR,
                code=DiagnosticCode.NO_ENTRY_POINT,
                message="Graph has no trigger node; nothing can start the workflow",
                check=CHECK_TRIGGER_PRESENCE,
            )
        ]

    diagnostics = []
    for trigger in triggers:
        inbound = graph.in_edges(trigger)
        if inbound:
            diagnostics.append(
                Diagnostic(
                    severity=Severity.ERROR,
                    code=DiagnosticCode.INVALID_TRIGGER_TOPOLOGY,
                    message=f"Trigger '{trigger}' has {len(inbound)} inbound edge(s); triggers must have none",
                    node_ids=(trigger,),
                    edge_refs=_refs(inbound),
                    check=CHECK_TRIGGER_PRESENCE,
                )
            )
    return diagnostics


def _check_reachability(graph: WorkflowGraph, severity: Severity) -> list[Diagnostic]:
    triggers = graph.nodes_of_type(NodeType.TRIGGER)
    reachable = graph.reachable_from(triggers)
    return [
        Diagnostic(
            severity=severity,
            code=DiagnosticCode.ORPHAN_NODE,
            message=f"Node '{info.node_id}' ({info.node_type.value}) is not reachable from any trigger over main edges",
            node_ids=(info.node_id,),
            check=CHECK_REACHABILITY,
        )
        for info in graph.nodes
        if info.node_type != NodeType.TRIGGER and info.node_id not in reachable
    ]


def _check_terminal_topology(graph: WorkflowGraph) -> list[Diagnostic]:
    diagnostics = []
    for terminal in graph.nodes_of_type(NodeType.TERMINAL):
        outbound = graph.out_edges(terminal, EdgeKind.MAIN)
        if outbound:
            diagnostics.append(
                Diagnostic(
                    severity=Severity.ERROR,
                    code=DiagnosticCode.INVALID_TERMINAL_TOPOLOGY,
                    message=f"Terminal '{terminal}' has {len(outbound)} outbound main edge(s); terminals must have none",
                    node_ids=(terminal,),
                    edge_refs=_refs(outbound),
                    check=CHECK_TERMINAL_TOPOLOGY,
                )
            )
    return diagnostics


def _check_cycles(graph: WorkflowGraph) -> list[Diagnostic]:
    """Flag every cycle made only of non-merge-point nodes.

    Such a cycle exists exactly when the main-edge subgraph induced by the
    non-merge-point nodes has a strongly connected component with more than
    one node (or a self loop). One diagnostic is emitted per component.
    """
    main = graph.main_graph()
    candidates = [info.node_id for info in graph.nodes if info.node_type != NodeType.MERGE_POINT]
    restricted = main.subgraph(candidates)

    diagnostics = []
    for component in nx.strongly_connected_components(restricted):
        members = sorted(component)
        if len(members) == 1 and not restricted.has_edge(members[0], members[0]):
            continue
        cycle = nx.find_cycle(restricted.subgraph(members), source=members[0])
        path = " -> ".join([*(u for u, _ in cycle), cycle[0][0]])
        diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code=DiagnosticCode.UNINTENDED_CYCLE,
                message=f"Cycle without a merge-point node: {path}",
                node_ids=tuple(NodeID(m) for m in members),
                check=CHECK_CYCLES,
            )
        )
    return diagnostics


def find_loop_closing_edges(graph: WorkflowGraph) -> list[EdgeInfo]:
    """Main edges that close a loop, found by a deterministic DFS from the triggers.

    Triggers are visited in stable order, and each node's successors in
    stable order. An edge whose target is still on the DFS stack closes a
    loop. Removing these edges leaves the trigger-reachable part of the
    graph acyclic; the layout engine ranks nodes over what remains.
    """
    ordered_out: dict[NodeID, list[EdgeInfo]] = {
        node_id: sorted(
            graph.out_edges(node_id, EdgeKind.MAIN),
            key=lambda e: (graph.sort_key(e.target), e.source_port, e.target_port),
        )
        for node_id in graph.node_ids
    }

    state: dict[NodeID, int] = {}
    closing: list[EdgeInfo] = []
    for root in graph.sorted_ids(graph.nodes_of_type(NodeType.TRIGGER)):
        if root in state:
            continue
        state[root] = _ON_STACK
        stack = [(root, iter(ordered_out[root]))]
        while stack:
            node, pending = stack[-1]
            edge = next(pending, None)
            if edge is None:
                state[node] = _DONE
                stack.pop()
                continue
            target_state = state.get(edge.target)
            if target_state == _ON_STACK:
                closing.append(edge)
            elif target_state is None:
                state[edge.target] = _ON_STACK
                stack.append((edge.target, iter(ordered_out[edge.target])))
    return closing


def validate_graph(
    graph: WorkflowGraph | MergedGraph,
    settings: ValidationSettings | None = None,
) -> ValidationReport:
    """Run every structural check and return the ordered report.

    Args:
        graph: Merged graph (or any workflow graph) to check
        settings: Validator policy; defaults to ValidationSettings()

    Returns:
        ValidationReport sorted by check name, then node ids, then edge refs

    Raises:
        InternalInvariantViolation: If node identifiers are not unique
    """
    if isinstance(graph, MergedGraph):
        graph = graph.graph
    settings = settings or ValidationSettings()

    checks: list[Callable[[WorkflowGraph], list[Diagnostic]]] = [
        _check_uniqueness,
        _check_referential_integrity,
        _check_trigger_presence,
        lambda g: _check_reachability(g, settings.orphan_severity),
        _check_terminal_topology,
        _check_cycles,
    ]
    diagnostics: list[Diagnostic] = []
    for check in checks:
        diagnostics.extend(check(graph))
    diagnostics.sort(key=lambda d: d.sort_key)

    report = ValidationReport(diagnostics=tuple(diagnostics))
    logger.info(
        "validation_completed",
        workflow=graph.name,
        valid=report.valid,
        errors=len(report.errors),
        warnings=len(report.warnings),
    )
    return report
