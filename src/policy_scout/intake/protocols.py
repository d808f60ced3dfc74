"""Document intake protocol: raw bytes in, text and string fields out."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field


class IntakeResult(BaseModel):
    extracted_text: str = ""
    structured_fields: dict[str, str] = Field(default_factory=dict)
    success: bool = True
    error: str = ""


@runtime_checkable
class IDocumentIntake(Protocol):
    """Extracts text and structured fields from a policy document.

    Implementations report failure through ``success=False`` and may also raise;
    the pipeline treats both as a degraded document stage.
    """

    async def extract(self, content: bytes, mime_type: str, file_name: str = "") -> IntakeResult: ...
