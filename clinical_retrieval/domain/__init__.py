"""Domain layer for Clinical-Retrieval.

This module contains the core retrieval logic: query and code models, the
ports adapters must implement, and the filtering/composition services.
All domain models are pure Python with no external dependencies beyond Pydantic.
"""

from .models import (
    Code,
    Interval,
    Query,
    VersionedIdentifier,
)

__all__ = [
    "Code",
    "Interval",
    "Query",
    "VersionedIdentifier",
]
