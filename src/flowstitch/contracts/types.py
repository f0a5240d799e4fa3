"""Semantic type aliases for compile-time type safety.

NewType creates distinct types that mypy treats as incompatible,
preventing accidental misuse of semantically different string values.
"""

from typing import NewType

NodeID = NewType("NodeID", str)
"""Node identifier; namespaced as '<subsection>.<local id>' after merge (e.g., 'checkout.validate-input')"""

SubsectionName = NewType("SubsectionName", str)
"""Author-chosen subsection name (e.g., 'checkout')"""

PortName = NewType("PortName", str)
"""Boundary port name, unique per subsection and direction (e.g., 'validated')"""

EdgeRef = NewType("EdgeRef", str)
"""Textual edge reference used in diagnostics (e.g., 'a.x:0->b.y:0 (main)')"""
