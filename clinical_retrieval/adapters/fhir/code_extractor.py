"""FHIR Code Extractor Adapter.

Converts the values found at a code path into domain Code values. Coding and
CodeableConcept elements are understood; anything else contributes nothing.
"""

from typing import Any

from clinical_retrieval.domain.models import Code
from clinical_retrieval.domain.ports import CodeExtractorPort


class FhirCodeExtractor(CodeExtractorPort):
    """Extracts Codes from Coding / CodeableConcept JSON elements."""

    def from_values(self, values: list[Any]) -> list[Code]:
        codes: list[Code] = []
        for value in values or []:
            self._collect(value, codes)
        return codes

    def _collect(self, value: Any, codes: list[Code]) -> None:
        if isinstance(value, Code):
            codes.append(value)
        elif isinstance(value, list):
            for item in value:
                self._collect(item, codes)
        elif isinstance(value, dict):
            if "coding" in value:
                # CodeableConcept
                self._collect(value.get("coding") or [], codes)
            elif "code" in value or "system" in value:
                codes.append(self._coding_to_code(value))

    @staticmethod
    def _coding_to_code(coding: dict) -> Code:
        def as_text(key):
            raw = coding.get(key)
            return str(raw) if raw is not None else None

        return Code(
            code=as_text("code"),
            system=as_text("system"),
            display=as_text("display"),
            version=as_text("version"),
        )
