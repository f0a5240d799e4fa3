# src/flowstitch/core/__init__.py
"""Core infrastructure: Graph model, Loader, Merge, Validation, Layout, Canonical, Configuration, Logging."""

from flowstitch.core.canonical import (
    CANONICAL_VERSION,
    canonical_json,
    compute_topology_hash,
    stable_hash,
)
from flowstitch.core.config import (
    FlowstitchSettings,
    LayoutSettings,
    LoggingSettings,
    ValidationSettings,
    load_settings,
)
from flowstitch.core.graph import (
    Binding,
    BoundaryContract,
    EdgeInfo,
    MergedGraph,
    NodeInfo,
    Port,
    Subsection,
    WorkflowGraph,
)
from flowstitch.core.layout import Layout, compute_layout, render_ascii
from flowstitch.core.loader import load_bindings, load_subsection, load_subsections, parse_bindings, parse_subsection
from flowstitch.core.merge import merge_subsections
from flowstitch.core.validation import find_loop_closing_edges, validate_graph

__all__ = [
    "CANONICAL_VERSION",
    "Binding",
    "BoundaryContract",
    "EdgeInfo",
    "FlowstitchSettings",
    "Layout",
    "LayoutSettings",
    "LoggingSettings",
    "MergedGraph",
    "NodeInfo",
    "Port",
    "Subsection",
    "ValidationSettings",
    "WorkflowGraph",
    "canonical_json",
    "compute_layout",
    "compute_topology_hash",
    "find_loop_closing_edges",
    "load_bindings",
    "load_settings",
    "load_subsection",
    "load_subsections",
    "merge_subsections",
    "parse_bindings",
    "parse_subsection",
    "render_ascii",
    "stable_hash",
    "validate_graph",
]
