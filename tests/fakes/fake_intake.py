"""Fake document intake adapters for testing."""

from __future__ import annotations

from policy_scout.intake import IntakeResult


class FakeIntake:
    """Returns a fixed extraction result and records what it was given."""

    def __init__(self, result: IntakeResult | None = None) -> None:
        self._result = result or IntakeResult(extracted_text="", structured_fields={})
        self.calls: list[tuple[bytes, str, str]] = []

    async def extract(self, content: bytes, mime_type: str, file_name: str = "") -> IntakeResult:
        self.calls.append((content, mime_type, file_name))
        return self._result


class ExplodingIntake:
    """Raises from ``extract``, as a broken OCR backend would."""

    async def extract(self, content: bytes, mime_type: str, file_name: str = "") -> IntakeResult:
        raise OSError("OCR backend unreachable")
