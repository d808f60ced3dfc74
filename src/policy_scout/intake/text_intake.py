"""Plain-text intake with regex field extraction."""

from __future__ import annotations

import logging
import re

from policy_scout.intake.protocols import IntakeResult

log = logging.getLogger(__name__)

TEXT_MIME_TYPES = frozenset({"text/plain"})

_LIMIT = r"\$?(\d[\d,]*(?:\s*/\s*\$?\d[\d,]*){0,2})"

# Patterns per field, tried in order; the first match wins.
FIELD_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "policyNumber": (re.compile(r"policy\s*(?:number|#|no\.?)\s*:?\s*([A-Z0-9][A-Z0-9\-]*)", re.I),),
    "insuranceProvider": (
        re.compile(r"(?:insurance\s*company|insurance\s*provider|insurer|carrier)\s*:\s*([^\n]+)", re.I),
    ),
    "policyType": (re.compile(r"(?:policy\s*type|coverage\s*type|insurance\s*type)\s*:\s*([^\n]+)", re.I),),
    "effectiveDate": (
        re.compile(r"(?:effective\s*date|policy\s*period|coverage\s*period)\s*:?\s*(\d[\d/\-]+)", re.I),
    ),
    "expirationDate": (re.compile(r"(?:expiration\s*date|expires?|through)\s*:?\s*(\d[\d/\-]+)", re.I),),
    "premium": (re.compile(r"(?:premium|cost|price)\s*:?\s*\$?(\d[\d,]*(?:\.\d+)?)", re.I),),
    "deductible": (re.compile(r"deductible\s*:?\s*\$?(\d[\d,]*(?:\.\d+)?)", re.I),),
    "liabilityLimits": (
        re.compile(rf"bodily\s*injury(?:\s*liability)?(?:\s*limits?)?\s*:?\s*{_LIMIT}", re.I),
        # A bare liability line, unless it is the property damage one
        re.compile(rf"(?<!damage\s)liability(?:\s*limits?)?\s*:?\s*{_LIMIT}", re.I),
    ),
    "propertyDamage": (re.compile(r"property\s*damage(?:\s*liability)?\s*:?\s*\$?(\d[\d,]*)", re.I),),
}

_NON_PRINTABLE = re.compile(r"[^\x20-\x7E\n]")
_HORIZONTAL_SPACE = re.compile(r"[ \t\f\v]+")
_BLANK_LINES = re.compile(r"\n\s*\n+")


def clean_text(text: str) -> str:
    """Normalize line endings and whitespace and drop non-printable characters."""
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _HORIZONTAL_SPACE.sub(" ", text)
    text = _NON_PRINTABLE.sub("", text)
    text = _BLANK_LINES.sub("\n", text)
    return "\n".join(line.strip() for line in text.split("\n")).strip()


def extract_structured_fields(text: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for name, patterns in FIELD_PATTERNS.items():
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                fields[name] = match.group(1).strip()
                break
    return fields


class PlainTextIntake:
    """Handles ``text/plain`` documents; other formats need an external extractor."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def supports(self, mime_type: str, file_name: str = "") -> bool:
        return mime_type in TEXT_MIME_TYPES or file_name.lower().endswith(".txt")

    async def extract(self, content: bytes, mime_type: str, file_name: str = "") -> IntakeResult:
        if not self.supports(mime_type, file_name):
            return IntakeResult(
                success=False,
                error=f"No text extractor for {mime_type or 'unknown type'}; OCR/PDF extraction is external",
            )

        text = clean_text(content.decode(self._encoding, errors="replace"))
        if not text:
            return IntakeResult(success=False, error="Document contains no readable text")

        fields = extract_structured_fields(text)
        log.info("Extracted %d characters and %d fields from %s", len(text), len(fields), file_name or "document")
        return IntakeResult(extracted_text=text, structured_fields=fields)
