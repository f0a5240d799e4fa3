# src/flowstitch/core/graph/__init__.py
"""Workflow graph model: typed nodes, port-addressed edges, subsections.

Package re-exports - the public API of the graph model.
"""

from flowstitch.core.graph.graph import WorkflowGraph
from flowstitch.core.graph.models import (
    NAMESPACE_SEPARATOR,
    Binding,
    BoundaryContract,
    EdgeInfo,
    MergedGraph,
    NodeConfig,
    NodeInfo,
    Port,
    Subsection,
    namespaced_id,
)

__all__ = [
    "NAMESPACE_SEPARATOR",
    "Binding",
    "BoundaryContract",
    "EdgeInfo",
    "MergedGraph",
    "NodeConfig",
    "NodeInfo",
    "Port",
    "Subsection",
    "WorkflowGraph",
    "namespaced_id",
]
