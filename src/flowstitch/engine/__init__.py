"""Pipeline driver: load, merge, validate and render in one pass."""

from flowstitch.engine.pipeline import PipelineResult, compose, run_pipeline

__all__ = [
    "PipelineResult",
    "compose",
    "run_pipeline",
]
