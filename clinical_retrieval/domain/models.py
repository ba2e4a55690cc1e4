"""Retrieval Domain Models.

This module defines the value objects that flow through the retrieval engine:
terminology codes, date intervals, versioned identifiers and the retrieve
Query itself.

Security Impact:
    - Models are immutable (frozen) so a Query cannot be altered while it is
      being evaluated by a chain of retrievers
    - Validation happens once, at construction time

Architecture:
    - Pure domain models with zero infrastructure dependencies beyond Pydantic
    - Records themselves are FHIR-JSON dictionaries and are not modelled here;
      the engine only reads them through the PathEvaluator port
"""

from typing import Any, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Code(BaseModel):
    """A terminology code (code + coding system pair).

    Parameters:
        code: The code value (e.g. "1234-5")
        system: The coding system URI (e.g. "http://loinc.org")
        display: Optional human readable display text
        version: Optional code system version

    Note:
        Only ``code`` and ``system`` take part in matching. A code with either
        field missing never matches anything, including itself.
    """

    model_config = ConfigDict(frozen=True)

    code: Optional[str] = Field(None, description="Code value")
    system: Optional[str] = Field(None, description="Coding system URI")
    display: Optional[str] = Field(None, description="Display text")
    version: Optional[str] = Field(None, description="Code system version")

    def matches(self, other: "Code") -> bool:
        """Check whether two codes denote the same concept.

        Parameters:
            other: Code to compare against

        Returns:
            bool: True if both code and system are non-null and pairwise equal
        """
        if self.code is None or self.system is None:
            return False
        return self.code == other.code and self.system == other.system

    @classmethod
    def parse(cls, token: str) -> "Code":
        """Parse a ``system|code`` token into a Code.

        A token without a ``|`` separator yields a code with no system.
        """
        if "|" in token:
            system, _, code = token.rpartition("|")
            return cls(code=code or None, system=system or None)
        return cls(code=token)


def split_codes(codes: Optional[Sequence[Union[Code, str]]]) -> tuple[list[Code], list[str]]:
    """Separate ``codes`` into Code entries and literal strings, keeping order."""
    requested = [c for c in (codes or ()) if isinstance(c, Code)]
    literals = [c for c in (codes or ()) if isinstance(c, str)]
    return requested, literals


class Interval(BaseModel):
    """A closed/open interval of comparable values (used for date ranges)."""

    model_config = ConfigDict(frozen=True)

    low: Optional[Any] = None
    high: Optional[Any] = None
    low_closed: bool = True
    high_closed: bool = True


class VersionedIdentifier(BaseModel):
    """Identifier of a versioned artifact such as a logic library."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Artifact name or id")
    version: Optional[str] = Field(None, description="Artifact version")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Identifier id cannot be empty")
        return v.strip()

    def cache_key(self) -> tuple[str, Optional[str]]:
        return (self.id, self.version)


class Query(BaseModel):
    """Immutable description of a single retrieve request.

    The field set mirrors the retrieve operation contract:
    ``retrieve(contextName, contextPath, contextValue, dataType, templateId,
    codePath, codes, valueSetId, datePath, dateLowPath, dateHighPath,
    dateRange)``.

    Parameters:
        context_name: Name of the evaluation context (e.g. "Patient")
        context_path: Path on the record that relates it to the context
                      (e.g. "subject")
        context_value: Id of the context subject (e.g. "patient-1")
        data_type: Resource type to retrieve (e.g. "Observation")
        template_id: Profile/template identifier (not used for filtering)
        code_path: Path to the coded element (e.g. "code")
        codes: Explicit codes to match. Literal strings are allowed and are
               compared against primitive values (id filtering)
        value_set_id: Value set the coded element must be a member of
        date_path: Date element path (pass-through)
        date_low_path: Date range low path (pass-through)
        date_high_path: Date range high path (pass-through)
        date_range: Date range (pass-through)
    """

    model_config = ConfigDict(frozen=True)

    context_name: Optional[str] = None
    context_path: Optional[str] = None
    context_value: Optional[Any] = None
    data_type: Optional[str] = None
    template_id: Optional[str] = None
    code_path: Optional[str] = None
    codes: Optional[tuple[Union[Code, str], ...]] = None
    value_set_id: Optional[str] = None
    date_path: Optional[str] = None
    date_low_path: Optional[str] = None
    date_high_path: Optional[str] = None
    date_range: Optional[Interval] = None

    @field_validator("codes", mode="before")
    @classmethod
    def coerce_codes(cls, v):
        """Accept any iterable of codes and freeze it into a tuple."""
        if v is None:
            return None
        if isinstance(v, (str, Code)):
            return (v,)
        return tuple(v)

    @classmethod
    def of(
        cls,
        context_name: Optional[str],
        context_path: Optional[str],
        context_value: Optional[Any],
        data_type: Optional[str],
        template_id: Optional[str],
        code_path: Optional[str],
        codes: Optional[Sequence[Union[Code, str]]],
        value_set_id: Optional[str],
        date_path: Optional[str],
        date_low_path: Optional[str],
        date_high_path: Optional[str],
        date_range: Optional[Interval],
    ) -> "Query":
        """Build a Query from the positional retrieve contract."""
        return cls(
            context_name=context_name,
            context_path=context_path,
            context_value=context_value,
            data_type=data_type,
            template_id=template_id,
            code_path=code_path,
            codes=codes,
            value_set_id=value_set_id,
            date_path=date_path,
            date_low_path=date_low_path,
            date_high_path=date_high_path,
            date_range=date_range,
        )
