"""Typed values produced by path evaluation.

A PathEvaluator returns plain Python values for most elements. Two shapes are
distinguished because the context filter treats them specially:

    - IdValue: a resource identifier (``Patient/123`` or ``123``). Primitive.
    - ReferenceValue: a Reference element (``{"reference": "Patient/123"}``).

Any other ``str``/``int``/``float``/``bool`` is a primitive; dictionaries are
complex elements (CodeableConcept, Coding, Period, ...).
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class IdValue:
    """Identifier-shaped value (a resource id)."""

    value: Optional[str]

    def __str__(self) -> str:
        return self.value or ""


@dataclass(frozen=True)
class ReferenceValue:
    """Reference-shaped value wrapping a FHIR Reference element."""

    reference: Optional[str]
    element: dict = field(default_factory=dict, compare=False, hash=False)


PRIMITIVE_TYPES = (str, int, float, bool)


def is_primitive(value: Any) -> bool:
    """Return True for values that behave as FHIR primitive types."""
    return isinstance(value, IdValue) or isinstance(value, PRIMITIVE_TYPES)


def primitive_as_string(value: Any) -> Optional[str]:
    """Render a primitive value as its string form."""
    if isinstance(value, IdValue):
        return value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return None
    return str(value)
