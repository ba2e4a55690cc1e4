"""File-based Terminology Adapter.

Answers value set membership from FHIR ValueSet resources stored on disk. Both
expanded value sets (``expansion.contains``, nested entries included) and
enumerated compose definitions (``compose.include[].concept``) are indexed.

Architecture:
    - Implements TerminologyPort (Hexagonal Architecture)
    - Indexes are built once at load time and only read afterwards
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Union

from clinical_retrieval.domain.models import Code
from clinical_retrieval.domain.ports import (
    SourceNotFoundError,
    TerminologyError,
    TerminologyPort,
    UnsupportedSourceError,
)

logger = logging.getLogger(__name__)


def _expansion_members(contains: Iterable[dict]) -> Iterable[tuple[str, str]]:
    for entry in contains or []:
        if entry.get("system") and entry.get("code"):
            yield (entry["system"], entry["code"])
        yield from _expansion_members(entry.get("contains") or [])


def _compose_members(compose: dict) -> Iterable[tuple[str, str]]:
    for include in compose.get("include") or []:
        system = include.get("system")
        for concept in include.get("concept") or []:
            if system and concept.get("code"):
                yield (system, concept["code"])


def _read_json(file_path: Path):
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise UnsupportedSourceError(
            f"Invalid JSON in {file_path}: {str(e)}",
            source=str(file_path),
            adapter="FileValueSetTerminology"
        )


def _value_sets_of(document, source: str) -> list[dict]:
    """Return the resources of a Bundle, or the document itself."""
    if not isinstance(document, dict) or "resourceType" not in document:
        raise UnsupportedSourceError(
            f"Not a FHIR resource: {source}",
            source=source,
            adapter="FileValueSetTerminology"
        )

    if document["resourceType"] != "Bundle":
        return [document]

    resources = []
    for entry in document.get("entry") or []:
        resource = entry.get("resource") if isinstance(entry, dict) else None
        if isinstance(resource, dict):
            resources.append(resource)
        else:
            logger.warning(f"Skipping Bundle entry without a resource in {source}")
    return resources


class FileValueSetTerminology(TerminologyPort):
    """TerminologyPort backed by ValueSet resources loaded from files.

    Parameters:
        value_sets: FHIR ValueSet resources to index

    Example Usage:
        ```python
        terminology = FileValueSetTerminology.from_path("terminology/")
        terminology.is_member(Code(code="1234-5", system="http://loinc.org"),
                              "http://example.org/fhir/ValueSet/hba1c")
        ```
    """

    def __init__(self, value_sets: Iterable[dict]):
        self._members: dict[str, frozenset[tuple[str, str]]] = {}
        for value_set in value_sets:
            self.add_value_set(value_set)

    def add_value_set(self, value_set: dict) -> None:
        """Index a ValueSet resource under its url, ``url|version`` and id."""
        if not isinstance(value_set, dict) or value_set.get("resourceType") != "ValueSet":
            return

        members = set(_expansion_members((value_set.get("expansion") or {}).get("contains")))
        members.update(_compose_members(value_set.get("compose") or {}))
        frozen = frozenset(members)

        keys = [value_set.get("url"), value_set.get("id")]
        if value_set.get("url") and value_set.get("version"):
            keys.append(f"{value_set['url']}|{value_set['version']}")
        for key in keys:
            if key:
                self._members[key] = frozen

        logger.debug(f"Indexed ValueSet {value_set.get('url') or value_set.get('id')} with {len(frozen)} codes")

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "FileValueSetTerminology":
        """Load ValueSets from a JSON file or a directory of JSON files.

        Files may hold a single ValueSet or a Bundle of them. Resources other
        than ValueSets are ignored.

        Raises:
            SourceNotFoundError: If the path does not exist
            UnsupportedSourceError: If a file is not valid JSON or not a FHIR resource
        """
        source = Path(path)
        if not source.exists():
            raise SourceNotFoundError(f"Terminology source not found: {source}", source=str(source))

        files = sorted(source.glob("*.json")) if source.is_dir() else [source]
        value_sets = []
        for file_path in files:
            value_sets.extend(_value_sets_of(_read_json(file_path), str(file_path)))

        terminology = cls(value_sets)
        logger.info(f"Loaded {len(terminology.value_set_ids())} value set keys from {source}")
        return terminology

    def value_set_ids(self) -> list[str]:
        return sorted(self._members)

    def is_member(self, code: Code, value_set_id: str) -> bool:
        # Exact keys only: a canonical from another server never resolves through a shared id
        members = self._members.get(value_set_id)
        if members is None:
            raise TerminologyError(f"Unknown ValueSet: {value_set_id}", value_set_id=value_set_id, code=code)

        if code.code is None or code.system is None:
            return False
        return (code.system, code.code) in members
