"""Exception taxonomy for the composition pipeline.

Load and merge errors are fatal: they stop the pipeline before a merged
graph exists. Validation defects are NOT exceptions - they are reported as
Diagnostic records (see contracts/diagnostics.py).
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flowstitch.contracts.enums import PortDirection


class SubsectionLoadError(ValueError):
    """Raised when a subsection artifact or binding list is malformed.

    Attributes:
        path: File the error was found in (None for in-memory documents)
        details: Per-field problems, already formatted for display
    """

    def __init__(self, message: str, *, path: Path | None = None, details: Sequence[str] = ()) -> None:
        self.path = path
        self.details = tuple(details)
        prefix = f"{path}: " if path is not None else ""
        super().__init__(f"{prefix}{message}")


class GraphModelError(ValueError):
    """Raised on misuse of the graph model (duplicate node id, mutating a frozen graph)."""

    pass


class UnknownNodeError(KeyError):
    """Raised when a structural query names a node that is not in the graph."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0])


class MergeError(ValueError):
    """Base class for fatal merge failures. No partial graph is ever returned."""

    pass


class DuplicateSubsectionError(MergeError):
    """Raised when two subsections in one merge share a name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Subsection '{name}' appears more than once in the merge input")


class InvalidBindingError(MergeError):
    """Raised when a binding cannot be applied.

    Covers unknown subsections, unknown ports, and ports that are already
    bound by an earlier binding (the later binding is the one rejected).

    Attributes:
        index: Position of the offending binding in the binding list
        reason: Short description of the problem
    """

    def __init__(self, index: int, description: str, reason: str) -> None:
        self.index = index
        self.description = description
        self.reason = reason
        super().__init__(f"Invalid binding #{index} ({description}): {reason}")


class UnboundPortsError(MergeError):
    """Raised when boundary ports remain unbound after all bindings are applied.

    Attributes:
        ports: (subsection, direction, port name) for every unbound port
    """

    def __init__(self, ports: Sequence[tuple[str, PortDirection, str]]) -> None:
        self.ports = tuple(ports)
        listed = ", ".join(f"{subsection}.{direction.value}:{port}" for subsection, direction, port in self.ports)
        super().__init__(f"{len(self.ports)} unbound port(s) after merge: {listed}")


class InternalInvariantViolation(RuntimeError):
    """Raised when an invariant that construction guarantees is found broken.

    Should never happen; indicates a bug in the merge or graph model.
    """

    pass
