"""Pipeline modules for orchestrating the enrichment process."""

from . import batch, enricher, sink, source
from .enricher import EnrichmentPipeline, PipelineState, dispatch_batch, run_enrichment

__all__ = [
    "batch",
    "enricher",
    "sink",
    "source",
    "EnrichmentPipeline",
    "PipelineState",
    "dispatch_batch",
    "run_enrichment",
]
