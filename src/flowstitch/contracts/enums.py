"""All kinds, severities and codes used across subsystem boundaries.

Values are the exact strings used in subsection artifacts and in the
diagnostics report, so they are part of the external format.
"""

from enum import StrEnum


class NodeType(StrEnum):
    """Type of node in a workflow graph.

    The type decides fan-in/fan-out legality:
    - TRIGGER: entry point, must have zero inbound edges
    - TERMINAL: exit point, must have zero outbound main edges
    - MERGE_POINT: the only type allowed to close a loop
    """

    TRIGGER = "trigger"
    ACTION = "action"
    CONDITIONAL = "conditional"
    MERGE_POINT = "merge-point"
    TERMINAL = "terminal"
    SUBSECTION_BOUNDARY = "subsection-boundary"


class EdgeKind(StrEnum):
    """Kind of edge.

    MAIN edges carry the success path and define reachability.
    ERROR edges are optional failure routes and never count toward it.
    """

    MAIN = "main"
    ERROR = "error"


class Severity(StrEnum):
    """Severity of a validation diagnostic.

    Only ERROR diagnostics make a graph invalid.
    """

    ERROR = "error"
    WARNING = "warning"


class PortDirection(StrEnum):
    """Direction of a boundary port, as seen from its subsection."""

    IMPORT = "import"
    EXPORT = "export"


class DiagnosticCode(StrEnum):
    """Stable codes carried by diagnostics."""

    INTERNAL_INVARIANT_VIOLATION = "InternalInvariantViolation"
    DANGLING_EDGE = "DanglingEdge"
    NO_ENTRY_POINT = "NoEntryPoint"
    INVALID_TRIGGER_TOPOLOGY = "InvalidTriggerTopology"
    ORPHAN_NODE = "OrphanNode"
    INVALID_TERMINAL_TOPOLOGY = "InvalidTerminalTopology"
    UNINTENDED_CYCLE = "UnintendedCycle"
