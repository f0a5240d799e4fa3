"""Diagnostic records produced by the validator.

Diagnostics describe defects; they never mutate the graph they describe.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from flowstitch.contracts.enums import DiagnosticCode, Severity
from flowstitch.contracts.types import EdgeRef, NodeID


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One defect found by one validator check.

    Attributes:
        severity: ERROR blocks validity, WARNING does not
        code: Stable machine-readable code
        message: Human-readable explanation
        node_ids: Offending nodes, sorted
        edge_refs: Offending edges, sorted
        check: Name of the check that produced this diagnostic
    """

    severity: Severity
    code: DiagnosticCode
    message: str
    node_ids: tuple[NodeID, ...] = ()
    edge_refs: tuple[EdgeRef, ...] = ()
    check: str = ""

    @property
    def sort_key(self) -> tuple[str, tuple[str, ...], tuple[str, ...], str]:
        return (self.check, self.node_ids, self.edge_refs, self.code.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "code": self.code.value,
            "message": self.message,
            "nodeIds": list(self.node_ids),
            "edgeRefs": list(self.edge_refs),
            "check": self.check,
        }


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """Ordered result of a full validation pass."""

    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def errors(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.severity == Severity.ERROR)

    @property
    def warnings(self) -> tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.severity == Severity.WARNING)

    @property
    def valid(self) -> bool:
        """True when no error-severity diagnostic is present."""
        return not self.errors

    def codes(self) -> list[DiagnosticCode]:
        return [d.code for d in self.diagnostics]

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
