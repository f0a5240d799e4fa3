# tests/property/__init__.py
"""Property-based tests for flowstitch.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of. Merge, validation and layout
output feeds review tooling and diffs, so determinism is non-negotiable.
"""
