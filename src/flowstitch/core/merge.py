# src/flowstitch/core/merge.py
"""Merge engine - composes subsections into one MergedGraph.

Algorithm:
1. Namespace every node id as '<subsection>.<local id>' and rewrite edges
   in lock-step. Two subsections may use the same local id without clashing.
2. For each binding, in order, synthesize one MAIN edge from the export
   port's node/port to the import port's node/port and mark both ports
   satisfied. A port may be bound exactly once: a second binding that
   names it is rejected, never overwritten.
3. Any port left unsatisfied is fatal.

Merge is all-or-nothing: the graph under construction is private to this
module and is only returned, frozen, once every check has passed.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeAlias

from flowstitch.contracts.enums import PortDirection
from flowstitch.contracts.errors import DuplicateSubsectionError, InvalidBindingError, UnboundPortsError
from flowstitch.contracts.types import SubsectionName
from flowstitch.core.graph import Binding, MergedGraph, Port, Subsection, WorkflowGraph, namespaced_id
from flowstitch.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MERGED_NAME = "merged"

# (subsection name, direction, port name)
PortKey: TypeAlias = tuple[str, PortDirection, str]


def _index_subsections(subsections: Sequence[Subsection]) -> dict[str, Subsection]:
    by_name: dict[str, Subsection] = {}
    for subsection in subsections:
        if subsection.name in by_name:
            raise DuplicateSubsectionError(subsection.name)
        by_name[subsection.name] = subsection
    return by_name


def _copy_namespaced(target: WorkflowGraph, subsection: Subsection) -> None:
    """Copy a subsection's nodes and edges into target under namespaced ids."""
    prefix = subsection.name
    for info in subsection.graph.nodes:
        local_id = info.local_id or info.node_id
        target.add_node(
            namespaced_id(prefix, info.node_id),
            node_type=info.node_type,
            name=info.name,
            config=info.config,
            subsection=prefix,
            local_id=local_id,
        )
    for edge in subsection.graph.edges:
        # Dangling edges are renamed too; the validator reports them
        target.add_edge(
            namespaced_id(prefix, edge.source),
            namespaced_id(prefix, edge.target),
            source_port=edge.source_port,
            target_port=edge.target_port,
            kind=edge.kind,
        )


def _resolve_port(
    by_name: dict[str, Subsection],
    index: int,
    binding: Binding,
    subsection_name: str,
    direction: PortDirection,
    port_name: str,
) -> Port:
    subsection = by_name.get(subsection_name)
    if subsection is None:
        raise InvalidBindingError(index, binding.describe(), f"unknown subsection '{subsection_name}'")
    port = subsection.boundary.find(direction, port_name)
    if port is None:
        declared = ", ".join(p.name for p in subsection.boundary.ports(direction)) or "none"
        raise InvalidBindingError(
            index,
            binding.describe(),
            f"subsection '{subsection_name}' has no {direction.value} port '{port_name}' (declared: {declared})",
        )
    return port


def merge_subsections(
    subsections: Sequence[Subsection],
    bindings: Sequence[Binding],
    *,
    name: str = DEFAULT_MERGED_NAME,
) -> MergedGraph:
    """Compose subsections into one fully bound graph.

    Args:
        subsections: Ordered subsection set; order fixes node/edge order in the result
        bindings: Ordered binding list
        name: Name of the merged workflow

    Returns:
        Frozen MergedGraph

    Raises:
        DuplicateSubsectionError: If two subsections share a name
        InvalidBindingError: If a binding names an unknown subsection or port,
            or a port that an earlier binding already bound
        UnboundPortsError: If any boundary port is left unbound
    """
    by_name = _index_subsections(subsections)

    graph = WorkflowGraph(name=name)
    for subsection in subsections:
        _copy_namespaced(graph, subsection)

    satisfied: dict[PortKey, int] = {}
    for index, binding in enumerate(bindings):
        export = _resolve_port(by_name, index, binding, binding.export_subsection, PortDirection.EXPORT, binding.export_port)
        import_ = _resolve_port(by_name, index, binding, binding.import_subsection, PortDirection.IMPORT, binding.import_port)

        export_key: PortKey = (binding.export_subsection, PortDirection.EXPORT, binding.export_port)
        import_key: PortKey = (binding.import_subsection, PortDirection.IMPORT, binding.import_port)
        for key in (export_key, import_key):
            if key in satisfied:
                raise InvalidBindingError(
                    index,
                    binding.describe(),
                    f"{key[1].value} port '{key[0]}.{key[2]}' is already bound by binding #{satisfied[key]}",
                )

        graph.add_edge(
            namespaced_id(binding.export_subsection, export.node),
            namespaced_id(binding.import_subsection, import_.node),
            source_port=export.port,
            target_port=import_.port,
            synthesized=True,
        )
        satisfied[export_key] = index
        satisfied[import_key] = index

    unbound: list[PortKey] = [
        (subsection.name, direction, port.name)
        for subsection in subsections
        for direction in (PortDirection.EXPORT, PortDirection.IMPORT)
        for port in subsection.boundary.ports(direction)
        if (subsection.name, direction, port.name) not in satisfied
    ]
    if unbound:
        raise UnboundPortsError(sorted(unbound, key=lambda k: (k[0], k[1].value, k[2])))

    graph.freeze()
    merged = MergedGraph(
        graph=graph,
        subsections=tuple(SubsectionName(s.name) for s in subsections),
        bindings=tuple(bindings),
    )
    logger.info(
        "merge_completed",
        workflow=name,
        subsections=len(subsections),
        nodes=graph.node_count,
        edges=graph.edge_count,
        bindings=len(bindings),
    )
    return merged
