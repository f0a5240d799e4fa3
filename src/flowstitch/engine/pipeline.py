# src/flowstitch/engine/pipeline.py
"""Load -> merge -> validate -> render, as one synchronous pass.

Each stage consumes the complete output of the previous one. Load and merge
failures propagate as exceptions and stop the pipeline; validation defects
never do, so a defective graph is still rendered for review.

Every call owns its own subsections, graph and report: nothing is cached
between invocations, so independent pipelines may run in parallel.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from flowstitch.contracts.diagnostics import ValidationReport
from flowstitch.core.config import FlowstitchSettings
from flowstitch.core.graph import Binding, MergedGraph, Subsection
from flowstitch.core.layout import Layout, compute_layout
from flowstitch.core.loader import load_bindings, load_subsections
from flowstitch.core.logging import get_logger
from flowstitch.core.merge import DEFAULT_MERGED_NAME, merge_subsections
from flowstitch.core.validation import validate_graph

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """Everything one pipeline pass produces."""

    merged: MergedGraph
    report: ValidationReport
    layout: Layout

    @property
    def valid(self) -> bool:
        return self.report.valid


def compose(
    subsections: Sequence[Subsection],
    bindings: Sequence[Binding],
    settings: FlowstitchSettings | None = None,
    *,
    name: str = DEFAULT_MERGED_NAME,
) -> PipelineResult:
    """Merge, validate and lay out already-loaded subsections.

    Raises:
        MergeError: If the merge fails (no partial result)
        InternalInvariantViolation: If an engine invariant is broken
    """
    settings = settings or FlowstitchSettings()
    merged = merge_subsections(subsections, bindings, name=name)
    report = validate_graph(merged, settings.validation)
    layout = compute_layout(merged, settings.layout)
    return PipelineResult(merged=merged, report=report, layout=layout)


def run_pipeline(
    subsections_path: Path,
    bindings_path: Path,
    settings: FlowstitchSettings | None = None,
) -> PipelineResult:
    """Run the full pipeline from artifact files.

    The merged workflow is named after the subsection set (directory or
    manifest file stem).

    Raises:
        SubsectionLoadError: If any artifact is malformed
        MergeError: If the merge fails
    """
    subsections = load_subsections(subsections_path)
    bindings = load_bindings(bindings_path)
    logger.debug(
        "pipeline_inputs_loaded",
        subsections=[s.name for s in subsections],
        bindings=len(bindings),
    )
    return compose(subsections, bindings, settings, name=subsections_path.stem or DEFAULT_MERGED_NAME)
