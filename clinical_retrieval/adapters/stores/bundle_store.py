"""FHIR Bundle Resource Store Adapter.

This adapter implements ResourceStorePort over an in-memory FHIR Bundle. It can
be built from a Bundle dictionary, a JSON file (a Bundle or a single resource)
or a directory of such files.

Security Impact:
    - Input files are parsed with the standard JSON parser (no code execution)
    - Resources are returned by reference and are never modified

Architecture:
    - Implements ResourceStorePort (Hexagonal Architecture)
    - Read-only after construction: safe for concurrent retrieve calls
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from clinical_retrieval.domain.ports import (
    ResourceRecord,
    ResourceStorePort,
    SourceNotFoundError,
    UnsupportedSourceError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _resources_of(document: dict, source: str) -> list[ResourceRecord]:
    """Return the resources contained in a Bundle, or the document itself."""
    if not isinstance(document, dict) or "resourceType" not in document:
        raise UnsupportedSourceError(
            f"Not a FHIR resource: {source}",
            source=source,
            adapter="BundleResourceStore"
        )

    if document["resourceType"] != "Bundle":
        return [document]

    resources = []
    for entry in document.get("entry") or []:
        resource = entry.get("resource") if isinstance(entry, dict) else None
        if isinstance(resource, dict):
            resources.append(resource)
    return resources


class BundleResourceStore(ResourceStorePort):
    """ResourceStorePort backed by the entries of a FHIR Bundle.

    Parameters:
        bundle: FHIR Bundle dictionary
        name: Optional name used in log messages

    Raises:
        ValidationError: If ``bundle`` is None
        UnsupportedSourceError: If ``bundle`` is not a FHIR resource

    Example Usage:
        ```python
        store = BundleResourceStore.from_file("data/patient-bundle.json")
        conditions = store.all_of_type("Condition")
        ```
    """

    def __init__(self, bundle: dict, name: Optional[str] = None):
        if bundle is None:
            raise ValidationError("bundle can not be None", argument="bundle")

        self.name = name or "bundle"
        self._resources: list[ResourceRecord] = _resources_of(bundle, self.name)

    @classmethod
    def from_resources(cls, resources: list[ResourceRecord], name: Optional[str] = None) -> "BundleResourceStore":
        """Build a store from a plain list of resources."""
        bundle = {
            "resourceType": "Bundle",
            "type": "collection",
            "entry": [{"resource": resource} for resource in resources],
        }
        return cls(bundle, name=name)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "BundleResourceStore":
        """Load a Bundle (or a single resource) from a JSON file.

        Raises:
            SourceNotFoundError: If the file does not exist
            UnsupportedSourceError: If the file is not valid FHIR JSON
        """
        file_path = Path(path)
        if not file_path.is_file():
            raise SourceNotFoundError(f"Bundle file not found: {file_path}", source=str(file_path))

        document = cls._read_json(file_path)
        store = cls(document, name=file_path.name)
        logger.info(f"Loaded {len(store._resources)} resources from {file_path}")
        return store

    @classmethod
    def from_directory(cls, path: Union[str, Path]) -> "BundleResourceStore":
        """Load every ``*.json`` file of a directory, in file name order."""
        dir_path = Path(path)
        if not dir_path.is_dir():
            raise SourceNotFoundError(f"Bundle directory not found: {dir_path}", source=str(dir_path))

        resources: list[ResourceRecord] = []
        for file_path in sorted(dir_path.glob("*.json")):
            resources.extend(_resources_of(cls._read_json(file_path), str(file_path)))

        logger.info(f"Loaded {len(resources)} resources from directory {dir_path}")
        return cls.from_resources(resources, name=dir_path.name)

    @classmethod
    def can_load(cls, source: str) -> bool:
        """Check if this adapter can handle the given source."""
        source_path = Path(source)
        return source_path.is_dir() or source_path.suffix.lower() == ".json"

    @staticmethod
    def _read_json(file_path: Path) -> dict:
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise UnsupportedSourceError(
                f"Invalid JSON in {file_path}: {str(e)}",
                source=str(file_path),
                adapter="BundleResourceStore"
            )

    def all_of_type(self, data_type: str) -> list[ResourceRecord]:
        return [r for r in self._resources if r.get("resourceType") == data_type]

    def __len__(self) -> int:
        return len(self._resources)

    def describe(self) -> str:
        return f"BundleResourceStore({self.name})"
