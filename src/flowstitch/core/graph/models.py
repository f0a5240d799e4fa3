# src/flowstitch/core/graph/models.py
"""Types and constants for the workflow graph model.

Leaf module - only imports from contracts (prevents import cycles).
WorkflowGraph lives in graph.py and is referenced here for typing only.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, TypeAlias

from flowstitch.contracts.enums import EdgeKind, NodeType, PortDirection
from flowstitch.contracts.errors import GraphModelError
from flowstitch.contracts.types import EdgeRef, NodeID, PortName, SubsectionName

if TYPE_CHECKING:
    from flowstitch.core.graph.graph import WorkflowGraph

# Separator between subsection name and local id in namespaced node ids.
# Subsection names and local ids may not contain it (enforced by the loader).
NAMESPACE_SEPARATOR = "."

# Node configuration is opaque to the engine: it is carried through merge and
# written to the merged artifact, never interpreted.
NodeConfig: TypeAlias = Mapping[str, Any]


def namespaced_id(subsection: str, local_id: str) -> NodeID:
    """Build the globally unique id of a node contributed by a subsection."""
    return NodeID(f"{subsection}{NAMESPACE_SEPARATOR}{local_id}")


@dataclass(frozen=True, slots=True)
class NodeInfo:
    """Information about a node in a workflow graph.

    Frozen after construction. ``config`` is wrapped in a MappingProxyType so
    the opaque payload cannot be mutated through the graph either.

    ``subsection`` and ``local_id`` record where the node came from; they are
    the stable ordering key for every deterministic output.
    """

    node_id: NodeID
    node_type: NodeType
    name: str
    config: NodeConfig = field(default_factory=dict)
    subsection: SubsectionName | None = None
    local_id: str | None = None

    def __post_init__(self) -> None:
        if not self.node_id:
            raise GraphModelError("node_id must be a non-empty string")
        object.__setattr__(self, "node_type", NodeType(self.node_type))
        object.__setattr__(self, "config", MappingProxyType(dict(self.config)))

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.subsection or "", self.local_id or self.node_id)


@dataclass(frozen=True, slots=True)
class EdgeInfo:
    """A directed edge between two node ports.

    ``synthesized`` marks edges created by the merge engine from a binding.
    """

    source: NodeID
    target: NodeID
    source_port: int = 0
    target_port: int = 0
    kind: EdgeKind = EdgeKind.MAIN
    synthesized: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", EdgeKind(self.kind))
        if self.source_port < 0 or self.target_port < 0:
            raise GraphModelError(f"Port indices must be non-negative: {self.ref}")

    @property
    def ref(self) -> EdgeRef:
        return EdgeRef(f"{self.source}:{self.source_port}->{self.target}:{self.target_port} ({self.kind.value})")


@dataclass(frozen=True, slots=True)
class Port:
    """A named boundary port.

    For imports, (node, port) is the input that receives the binding edge.
    For exports, (node, port) is the output that emits it.
    """

    name: PortName
    node: str
    port: int = 0


@dataclass(frozen=True, slots=True)
class BoundaryContract:
    """Ordered import and export ports a subsection exposes."""

    imports: tuple[Port, ...] = ()
    exports: tuple[Port, ...] = ()

    def ports(self, direction: PortDirection) -> tuple[Port, ...]:
        return self.imports if direction == PortDirection.IMPORT else self.exports

    def find(self, direction: PortDirection, name: str) -> Port | None:
        for port in self.ports(direction):
            if port.name == name:
                return port
        return None


@dataclass(frozen=True, slots=True)
class Subsection:
    """An independently authored graph fragment with its boundary contract.

    The graph uses local ids; namespacing happens during merge.
    """

    name: SubsectionName
    graph: WorkflowGraph
    boundary: BoundaryContract = field(default_factory=BoundaryContract)

    def __post_init__(self) -> None:
        if not self.graph.frozen:
            self.graph.freeze()


@dataclass(frozen=True, slots=True)
class Binding:
    """A declared connection from one subsection's export port to another's import port."""

    export_subsection: str
    export_port: str
    import_subsection: str
    import_port: str

    def describe(self) -> str:
        return f"{self.export_subsection}.{self.export_port} -> {self.import_subsection}.{self.import_port}"


@dataclass(frozen=True, slots=True)
class MergedGraph:
    """The fully bound graph produced by composing all subsections.

    Immutable: the wrapped graph is frozen by the merge engine.
    """

    graph: WorkflowGraph
    subsections: tuple[SubsectionName, ...]
    bindings: tuple[Binding, ...] = ()

    @property
    def synthesized_edges(self) -> tuple[EdgeInfo, ...]:
        return tuple(edge for edge in self.graph.edges if edge.synthesized)
