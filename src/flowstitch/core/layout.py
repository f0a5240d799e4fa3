# src/flowstitch/core/layout.py
"""Layered layout and ASCII rendering of workflow graphs.

Phases:
  1. Loop-closing edge detection (shared with the validator's cycle check)
  2. Rank assignment: longest main-edge path from any trigger, over the
     trigger-reachable subgraph with loop-closing edges removed
  3. Row ordering by the stable (subsection, local id) key
  4. Text rendering

A rank is one logical row: the row index is the y coordinate and the
position within the row is x. In the text, a row is printed as a ``rank N:``
block with one node per line rather than side by side. Every node line then
carries that node's outgoing edges, and the output width depends on the
edge count, not on how wide the rank is.

Works on invalid graphs too: unreachable nodes go to a trailing block and
dangling edges are drawn as missing references, so no node is ever dropped.

Diagram markers:
    -->  main edge
    ~~>  error edge
    --^  loop-closing main edge (back to an earlier or equal rank)
    @rN  jump reference to a node on rank N (rank gap other than 1)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

import networkx as nx

from flowstitch.contracts.enums import EdgeKind, NodeType
from flowstitch.contracts.errors import InternalInvariantViolation
from flowstitch.contracts.types import NodeID
from flowstitch.core.config import LayoutSettings
from flowstitch.core.graph import EdgeInfo, MergedGraph, WorkflowGraph
from flowstitch.core.validation import find_loop_closing_edges

TYPE_TAGS: Mapping[NodeType, str] = MappingProxyType(
    {
        NodeType.TRIGGER: "TRG",
        NodeType.ACTION: "ACT",
        NodeType.CONDITIONAL: "CND",
        NodeType.MERGE_POINT: "MRG",
        NodeType.TERMINAL: "END",
        NodeType.SUBSECTION_BOUNDARY: "BND",
    }
)

MAIN_MARKER = "-->"
ERROR_MARKER = "~~>"
LOOP_MARKER = "--^"
UNREACHABLE_HEADING = "-- unreachable --"
INDENT = "  "


@dataclass(frozen=True, slots=True)
class Layout:
    """Computed positions plus the rendered diagram.

    Attributes:
        positions: node id -> (x, y); y is the rank, x the index within the row.
            Unreachable nodes sit on y == len(rows).
        ranks: node id -> rank, for trigger-reachable nodes only
        rows: node ids per rank, in stable order
        unreachable: node ids without a rank, in stable order
        loop_closing: main edges ignored for ranking
        text: the ASCII diagram
    """

    positions: Mapping[NodeID, tuple[int, int]]
    ranks: Mapping[NodeID, int]
    rows: tuple[tuple[NodeID, ...], ...]
    unreachable: tuple[NodeID, ...]
    loop_closing: tuple[EdgeInfo, ...]
    text: str


def compute_ranks(graph: WorkflowGraph, loop_closing: list[EdgeInfo]) -> dict[NodeID, int]:
    """Longest-path layering from the triggers, ignoring loop-closing edges.

    Raises:
        InternalInvariantViolation: If the remaining subgraph still has a cycle
    """
    reachable = graph.reachable_from(graph.nodes_of_type(NodeType.TRIGGER))
    ignored = set(loop_closing)

    dag: nx.DiGraph[str] = nx.DiGraph()
    dag.add_nodes_from(graph.sorted_ids(reachable))
    for edge in graph.edges:
        if edge.kind != EdgeKind.MAIN or edge in ignored:
            continue
        if edge.source in reachable and edge.target in reachable:
            dag.add_edge(edge.source, edge.target)

    try:
        order = list(nx.topological_sort(dag))
    except nx.NetworkXUnfeasible as e:
        raise InternalInvariantViolation(f"Cannot rank graph '{graph.name}': {e}") from e

    ranks: dict[NodeID, int] = {}
    for node in order:
        ranks[NodeID(node)] = max((ranks[NodeID(p)] + 1 for p in dag.predecessors(node)), default=0)
    return ranks


def _node_label(graph: WorkflowGraph, node_id: NodeID, width: int) -> str:
    info = graph.get_node_info(node_id)
    return f"[{TYPE_TAGS[info.node_type]} {node_id:<{width}}]"


def _edge_text(
    graph: WorkflowGraph,
    edge: EdgeInfo,
    ranks: Mapping[NodeID, int],
    loop_closing: set[EdgeInfo],
    settings: LayoutSettings,
) -> str:
    if edge in loop_closing:
        marker = LOOP_MARKER
    elif edge.kind == EdgeKind.ERROR:
        marker = ERROR_MARKER
    else:
        marker = MAIN_MARKER

    if not graph.has_node(edge.target):
        target = f"?{edge.target} (missing)"
    elif edge.target not in ranks:
        target = f"@unreachable {edge.target}"
    elif marker != LOOP_MARKER and edge.source in ranks and ranks[edge.target] == ranks[edge.source] + 1:
        target = edge.target
    else:
        target = f"@r{ranks[edge.target]} {edge.target}"

    ports = ""
    if settings.show_ports and (edge.source_port or edge.target_port):
        ports = f" ({edge.source_port}>{edge.target_port})"
    return f"{marker} {target}{ports}"


def _render_node(
    graph: WorkflowGraph,
    node_id: NodeID,
    width: int,
    outgoing: list[EdgeInfo],
    ranks: Mapping[NodeID, int],
    loop_closing: set[EdgeInfo],
    settings: LayoutSettings,
) -> list[str]:
    label = _node_label(graph, node_id, width)
    edge_texts = [_edge_text(graph, edge, ranks, loop_closing, settings) for edge in outgoing]
    if not edge_texts:
        return [f"{INDENT}{label}"]
    lines = [f"{INDENT}{label} {edge_texts[0]}"]
    continuation = " " * (len(INDENT) + len(label))
    lines.extend(f"{continuation} {text}" for text in edge_texts[1:])
    return lines


def compute_layout(
    graph: WorkflowGraph | MergedGraph,
    settings: LayoutSettings | None = None,
) -> Layout:
    """Compute node positions and render the ASCII diagram.

    Identical input always yields an identical Layout and byte-identical text.

    Raises:
        InternalInvariantViolation: If ranking fails (should never happen)
    """
    if isinstance(graph, MergedGraph):
        graph = graph.graph
    settings = settings or LayoutSettings()

    loop_closing = find_loop_closing_edges(graph)
    ranks = compute_ranks(graph, loop_closing)

    depth = max(ranks.values(), default=-1) + 1
    rows = tuple(tuple(graph.sorted_ids(n for n, r in ranks.items() if r == rank)) for rank in range(depth))
    unreachable = tuple(graph.sorted_ids(n for n in graph.node_ids if n not in ranks))

    positions: dict[NodeID, tuple[int, int]] = {}
    for y, row in enumerate(rows):
        for x, node_id in enumerate(row):
            positions[node_id] = (x, y)
    for x, node_id in enumerate(unreachable):
        positions[node_id] = (x, len(rows))

    outgoing: dict[NodeID, list[EdgeInfo]] = {node_id: [] for node_id in graph.node_ids}
    for edge in graph.edges:
        if edge.source in outgoing:
            outgoing[edge.source].append(edge)

    width = max([settings.min_label_width, *(len(n) for n in graph.node_ids)])
    closing_set = set(loop_closing)

    lines: list[str] = []
    if settings.header:
        lines.append(f"workflow {graph.name or '(unnamed)'}: {graph.node_count} nodes, {graph.edge_count} edges")
    if graph.node_count == 0:
        lines.append("(empty graph)")
    for rank, row in enumerate(rows):
        lines.append(f"rank {rank}:")
        for node_id in row:
            lines.extend(_render_node(graph, node_id, width, outgoing[node_id], ranks, closing_set, settings))
    if unreachable:
        if rows:
            lines.append("")
        lines.append(UNREACHABLE_HEADING)
        for node_id in unreachable:
            lines.extend(_render_node(graph, node_id, width, outgoing[node_id], ranks, closing_set, settings))

    return Layout(
        positions=MappingProxyType(positions),
        ranks=MappingProxyType(ranks),
        rows=rows,
        unreachable=unreachable,
        loop_closing=tuple(loop_closing),
        text="\n".join(lines) + "\n",
    )


def render_ascii(graph: WorkflowGraph | MergedGraph, settings: LayoutSettings | None = None) -> str:
    """Render the ASCII diagram of a graph."""
    return compute_layout(graph, settings).text
