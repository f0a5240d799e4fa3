"""
flowstitch: compose, validate and diagram workflow subsection graphs.

Independently authored workflow fragments are stitched together through
explicit import/export ports into one graph that is checked for structural
defects and rendered as a deterministic ASCII diagram.
"""

__version__ = "0.1.0"
