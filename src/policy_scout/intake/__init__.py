"""Document intake adapters."""

from policy_scout.intake.protocols import IDocumentIntake, IntakeResult
from policy_scout.intake.text_intake import PlainTextIntake, clean_text, extract_structured_fields

__all__ = [
    "IDocumentIntake",
    "IntakeResult",
    "PlainTextIntake",
    "clean_text",
    "extract_structured_fields",
]
