"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core/engine.
Settings classes are NOT re-exported here - import them from
flowstitch.core.config.

Import patterns:
    from flowstitch.contracts import NodeType, Diagnostic, InvalidBindingError
"""

from flowstitch.contracts.diagnostics import Diagnostic, ValidationReport
from flowstitch.contracts.enums import (
    DiagnosticCode,
    EdgeKind,
    NodeType,
    PortDirection,
    Severity,
)
from flowstitch.contracts.errors import (
    DuplicateSubsectionError,
    GraphModelError,
    InternalInvariantViolation,
    InvalidBindingError,
    MergeError,
    SubsectionLoadError,
    UnboundPortsError,
    UnknownNodeError,
)
from flowstitch.contracts.types import EdgeRef, NodeID, PortName, SubsectionName

__all__ = [
    "Diagnostic",
    "DiagnosticCode",
    "DuplicateSubsectionError",
    "EdgeKind",
    "EdgeRef",
    "GraphModelError",
    "InternalInvariantViolation",
    "InvalidBindingError",
    "MergeError",
    "NodeID",
    "NodeType",
    "PortDirection",
    "PortName",
    "Severity",
    "SubsectionLoadError",
    "SubsectionName",
    "UnboundPortsError",
    "UnknownNodeError",
    "ValidationReport",
]
