"""Pipeline: create pod → await ready → stream + unpack → delete pod."""

from monitoring_extractor.pipeline.orchestrator import ExtractionResult, print_result, run_extraction

__all__ = [
    "run_extraction",
    "print_result",
    "ExtractionResult",
]
