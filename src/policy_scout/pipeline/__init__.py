"""The staged analysis pipeline and its compilation helpers."""

from policy_scout.pipeline.orchestrator import STAGES, AnalysisPipeline
from policy_scout.pipeline.validation import validate_document, validate_inputs, validate_manual_fields

__all__ = [
    "STAGES",
    "AnalysisPipeline",
    "validate_document",
    "validate_inputs",
    "validate_manual_fields",
]
