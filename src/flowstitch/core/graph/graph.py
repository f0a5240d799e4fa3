# src/flowstitch/core/graph/graph.py
"""WorkflowGraph class - node/edge storage and structural queries.

The graph keeps its own ordered node and edge records (insertion order is
part of every deterministic output) and derives a NetworkX DiGraph of
MAIN edges from them on demand for traversal and cycle analysis. Edges
whose endpoints are missing are kept as records so the validator can
report them, but never enter the NetworkX view.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import networkx as nx
from networkx import DiGraph

from flowstitch.contracts.enums import EdgeKind, NodeType
from flowstitch.contracts.errors import GraphModelError, UnknownNodeError
from flowstitch.contracts.types import NodeID, SubsectionName
from flowstitch.core.graph.models import EdgeInfo, NodeInfo


class WorkflowGraph:
    """Directed multigraph of typed nodes and typed, port-addressed edges.

    Edges are kept as an ordered record list rather than a simple adjacency
    because two nodes may be connected through several port pairs and
    through both edge kinds.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._nodes: dict[NodeID, NodeInfo] = {}
        self._edges: list[EdgeInfo] = []
        self._frozen = False

    # === Construction ===

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the graph immutable. Further add_node/add_edge calls raise."""
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise GraphModelError(f"Graph '{self.name}' is frozen and cannot be modified")

    def add_node(
        self,
        node_id: str,
        *,
        node_type: NodeType | str,
        name: str | None = None,
        config: Mapping[str, Any] | None = None,
        subsection: str | None = None,
        local_id: str | None = None,
    ) -> NodeInfo:
        """Add a node to the graph.

        Args:
            node_id: Unique node identifier
            node_type: NodeType enum value (or its string value)
            name: Display name (defaults to local_id, then node_id)
            config: Opaque configuration payload
            subsection: Name of the subsection that contributed the node
            local_id: Identifier inside the contributing subsection

        Returns:
            The stored NodeInfo

        Raises:
            GraphModelError: If the id is already present or the graph is frozen
        """
        self._check_mutable()
        if node_id in self._nodes:
            raise GraphModelError(f"Duplicate node id: {node_id}")
        info = NodeInfo(
            node_id=NodeID(node_id),
            node_type=NodeType(node_type),
            name=name or local_id or node_id,
            config=config or {},
            subsection=SubsectionName(subsection) if subsection is not None else None,
            local_id=local_id,
        )
        self._nodes[info.node_id] = info
        return info

    def add_edge(
        self,
        source: str,
        target: str,
        *,
        source_port: int = 0,
        target_port: int = 0,
        kind: EdgeKind | str = EdgeKind.MAIN,
        synthesized: bool = False,
    ) -> EdgeInfo:
        """Add an edge between two node ports.

        Endpoints are NOT required to exist: a dangling edge is recorded so
        that validation can report it.
        """
        self._check_mutable()
        edge = EdgeInfo(
            source=NodeID(source),
            target=NodeID(target),
            source_port=source_port,
            target_port=target_port,
            kind=EdgeKind(kind),
            synthesized=synthesized,
        )
        self._edges.append(edge)
        return edge

    # === Basic accessors ===

    @property
    def node_count(self) -> int:
        """Number of nodes in the graph."""
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        """Number of edges in the graph, dangling ones included."""
        return len(self._edges)

    @property
    def nodes(self) -> tuple[NodeInfo, ...]:
        """Nodes in insertion order."""
        return tuple(self._nodes.values())

    @property
    def node_ids(self) -> tuple[NodeID, ...]:
        return tuple(self._nodes)

    @property
    def edges(self) -> tuple[EdgeInfo, ...]:
        """Edges in insertion order."""
        return tuple(self._edges)

    def has_node(self, node_id: str) -> bool:
        """Check if node exists."""
        return node_id in self._nodes

    def get_node_info(self, node_id: str) -> NodeInfo:
        """Get NodeInfo for a node.

        Raises:
            UnknownNodeError: If node doesn't exist
        """
        try:
            return self._nodes[NodeID(node_id)]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def nodes_of_type(self, node_type: NodeType) -> list[NodeID]:
        """Node ids of the given type, in insertion order."""
        return [info.node_id for info in self._nodes.values() if info.node_type == node_type]

    def sort_key(self, node_id: str) -> tuple[str, str]:
        """Stable ordering key: (subsection name, local id)."""
        return self.get_node_info(node_id).sort_key

    def sorted_ids(self, node_ids: Iterable[str]) -> list[NodeID]:
        """Sort node ids by their stable key."""
        return sorted((NodeID(n) for n in node_ids), key=self.sort_key)

    def dangling_edges(self) -> list[EdgeInfo]:
        """Edges with at least one endpoint missing from the graph."""
        return [edge for edge in self._edges if edge.source not in self._nodes or edge.target not in self._nodes]

    def _is_resolved(self, edge: EdgeInfo) -> bool:
        return edge.source in self._nodes and edge.target in self._nodes

    # === NetworkX view ===

    def main_graph(self) -> DiGraph[str]:
        """Frozen simple DiGraph over all nodes and resolved MAIN edges.

        Parallel main edges collapse into one; used for cycle and path analysis.
        """
        graph: DiGraph[str] = nx.DiGraph()
        graph.add_nodes_from(self._nodes)
        graph.add_edges_from((edge.source, edge.target) for edge in self._edges if edge.kind == EdgeKind.MAIN and self._is_resolved(edge))
        return nx.freeze(graph)  # type: ignore[no-any-return]

    # === Structural queries ===

    def _require(self, node_id: str) -> NodeID:
        if node_id not in self._nodes:
            raise UnknownNodeError(node_id)
        return NodeID(node_id)

    def out_edges(self, node_id: str, kind: EdgeKind | None = None) -> list[EdgeInfo]:
        """Resolved outgoing edges in insertion order, optionally filtered by kind."""
        self._require(node_id)
        return [
            edge for edge in self._edges if edge.source == node_id and self._is_resolved(edge) and (kind is None or edge.kind == kind)
        ]

    def in_edges(self, node_id: str, kind: EdgeKind | None = None) -> list[EdgeInfo]:
        """Resolved incoming edges in insertion order, optionally filtered by kind."""
        self._require(node_id)
        return [
            edge for edge in self._edges if edge.target == node_id and self._is_resolved(edge) and (kind is None or edge.kind == kind)
        ]

    def neighbors_of(self, node_id: str, kind: EdgeKind = EdgeKind.MAIN) -> list[NodeID]:
        """Successor node ids over edges of one kind, in edge insertion order, without repeats.

        Raises:
            UnknownNodeError: If node doesn't exist
        """
        return list(dict.fromkeys(edge.target for edge in self.out_edges(node_id, kind)))

    def predecessors_of(self, node_id: str, kind: EdgeKind = EdgeKind.MAIN) -> list[NodeID]:
        """Predecessor node ids over edges of one kind, in edge insertion order, without repeats."""
        return list(dict.fromkeys(edge.source for edge in self.in_edges(node_id, kind)))

    def in_degree(self, node_id: str, kind: EdgeKind | None = None) -> int:
        """Number of resolved inbound edges; all kinds when kind is None."""
        return len(self.in_edges(node_id, kind))

    def out_degree(self, node_id: str, kind: EdgeKind | None = None) -> int:
        """Number of resolved outbound edges; all kinds when kind is None."""
        return len(self.out_edges(node_id, kind))

    def reachable_from(self, node_ids: Iterable[str]) -> set[NodeID]:
        """All nodes reachable over MAIN edges from the given start nodes.

        Breadth-first traversal; the start nodes are part of the result.

        Raises:
            UnknownNodeError: If a start node doesn't exist
        """
        starts = [self._require(node_id) for node_id in node_ids]
        main = self.main_graph()
        reachable: set[NodeID] = set()
        for start in starts:
            if start in reachable:
                continue
            reachable.add(start)
            reachable.update(NodeID(n) for _, n in nx.bfs_edges(main, start))
        return reachable

    def __repr__(self) -> str:
        return f"WorkflowGraph(name={self.name!r}, nodes={self.node_count}, edges={self.edge_count})"
