"""Input validation for the first pipeline stage.

Document problems are fatal and raise :class:`DocumentValidationError`.
Manual-field problems are returned as warnings; manual data is optional.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from pathlib import PurePath

from policy_scout.core.config import PipelineConfig
from policy_scout.exceptions import DocumentValidationError
from policy_scout.models import DocumentInput
from policy_scout.parsing import parse_date, parse_money

MIME_FORMATS: dict[str, str] = {
    "application/pdf": "pdf",
    "text/plain": "txt",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "image/jpeg": "jpg",
    "image/png": "png",
}

_EXTENSION_ALIASES = {"jpeg": "jpg", "text": "txt"}

SMALL_FILE_BYTES = 1000
MAX_FILE_NAME_LENGTH = 255


def document_format(document: DocumentInput) -> str | None:
    """Resolve the document format from its mime type, else its file extension."""
    mime = document.mime_type.split(";", 1)[0].strip().lower()
    if mime in MIME_FORMATS:
        return MIME_FORMATS[mime]
    suffix = PurePath(document.file_name).suffix.lower().lstrip(".")
    return _EXTENSION_ALIASES.get(suffix, suffix) or None


def validate_document(document: DocumentInput, config: PipelineConfig) -> list[str]:
    """Check format, emptiness and size. Returns warnings; raises on any error."""
    errors: list[str] = []
    warnings: list[str] = []

    fmt = document_format(document)
    supported = {f.lower() for f in config.supported_formats}
    if fmt not in supported:
        label = document.mime_type or document.file_name or "unknown"
        errors.append(f"File type {label} is not supported")

    if document.size == 0:
        errors.append("File is empty")
    elif document.size > config.max_document_bytes:
        limit_mb = config.max_document_bytes / (1024 * 1024)
        errors.append(f"File size exceeds {limit_mb:g}MB limit")
    elif document.size < SMALL_FILE_BYTES:
        warnings.append("File is very small and may not contain sufficient data")

    if len(document.file_name) > MAX_FILE_NAME_LENGTH:
        warnings.append("File name is very long")

    if errors:
        raise DocumentValidationError(f"Validation failed: {', '.join(errors)}", errors)
    return warnings


def validate_manual_fields(fields: Mapping[str, str]) -> list[str]:
    """Sanity-check user-entered policy fields. Every problem is a warning."""
    warnings: list[str] = []

    if not fields.get("policyNumber", "").strip():
        warnings.append("Policy number is required")
    if not fields.get("insuranceProvider", "").strip():
        warnings.append("Insurance provider is required")

    effective = expiration = None
    if fields.get("effectiveDate"):
        effective = parse_date(fields["effectiveDate"])
        if effective is None:
            warnings.append("Effective date is not valid")
    if fields.get("expirationDate"):
        expiration = parse_date(fields["expirationDate"])
        if expiration is None:
            warnings.append("Expiration date is not valid")
        elif effective is not None and expiration <= effective:
            warnings.append("Expiration date must be after effective date")

    premium = fields.get("premium", "").strip()
    if premium:
        amount = parse_money(premium, default=float("nan"))
        if math.isnan(amount):
            warnings.append("Premium must be a valid monetary amount")
        elif amount < 0:
            warnings.append("Premium cannot be negative")

    return warnings


def validate_inputs(
    document: DocumentInput | None,
    manual_fields: Mapping[str, str],
    config: PipelineConfig,
) -> list[str]:
    """Run the validation stage. Returns warnings; raises :class:`DocumentValidationError`."""
    if document is None and not manual_fields:
        reason = "Either a policy document or manual policy data must be provided"
        raise DocumentValidationError(f"Validation failed: {reason}", [reason])

    warnings: list[str] = []
    if document is not None:
        warnings.extend(validate_document(document, config))
    if manual_fields:
        warnings.extend(validate_manual_fields(manual_fields))
    return warnings
