"""FHIR Path Evaluator Adapter.

Implements PathEvaluatorPort for FHIR-JSON resources using the simple path
subset that retrieve queries actually use:

    - dotted member access: ``subject``, ``subject.reference``, ``code.coding``
    - an optional leading resource type: ``Observation.code``
    - positional indexing: ``identifier[0].value``
    - choice-type resolution: ``value`` finds ``valueQuantity``, ``medication``
      finds ``medicationReference``

Collections are flattened at every step, so ``code.coding.code`` yields one
value per coding.

Architecture:
    - Implements PathEvaluatorPort (Hexagonal Architecture)
    - Stateless and read-only: safe for concurrent use
"""

import logging
import re
from functools import lru_cache
from typing import Any, Optional

from clinical_retrieval.domain.path_values import IdValue, ReferenceValue
from clinical_retrieval.domain.ports import PathEvaluatorPort, ResourceRecord

logger = logging.getLogger(__name__)

_SEGMENT_PATTERN = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)(?:\[(\d+)\])?$")


class InvalidPathError(ValueError):
    """Raised when a path expression is outside the supported subset."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


@lru_cache(maxsize=256)
def parse_path(path: str) -> tuple[tuple[str, Optional[int]], ...]:
    """Split a path into ``(name, index)`` segments.

    Raises:
        InvalidPathError: If a segment is not a plain member name with an
            optional ``[n]`` index
    """
    segments = []
    for raw in path.strip().split("."):
        match = _SEGMENT_PATTERN.match(raw)
        if not match:
            raise InvalidPathError(f"Unsupported path segment {raw!r} in {path!r}", path=path)
        name, index = match.groups()
        segments.append((name, int(index) if index is not None else None))
    return tuple(segments)


class FhirPathEvaluator(PathEvaluatorPort):
    """Evaluates simple FHIRPath member paths against FHIR-JSON dictionaries.

    The resource ``id`` element is returned as IdValue and any element
    carrying a ``reference`` key as ReferenceValue; everything else is returned
    as the raw JSON value.
    """

    def evaluate(self, record: ResourceRecord, path: str) -> list[Any]:
        if record is None or not path:
            return []

        segments = parse_path(path)
        resource_type = record.get("resourceType") if isinstance(record, dict) else None
        if resource_type and segments[0][0] == resource_type and segments[0][1] is None:
            segments = segments[1:]

        nodes: list[Any] = [record]
        for position, (name, index) in enumerate(segments):
            is_last = position == len(segments) - 1
            next_nodes = []
            for node in nodes:
                if not isinstance(node, dict):
                    continue
                child = self._resolve(node, name)
                if child is None:
                    continue
                for item in child if isinstance(child, list) else [child]:
                    if item is None:
                        continue
                    if is_last and name == "id" and "resourceType" in node:
                        item = IdValue(str(item))
                    next_nodes.append(item)

            if index is not None:
                next_nodes = next_nodes[index:index + 1]
            nodes = next_nodes

        return [self._wrap(node) for node in nodes]

    @staticmethod
    def _resolve(node: dict, name: str) -> Any:
        if name in node:
            return node[name]

        # value[x] style choice elements
        for key, value in node.items():
            if key.startswith(name) and len(key) > len(name) and key[len(name)].isupper():
                return value

        return None

    @staticmethod
    def _wrap(node: Any) -> Any:
        if isinstance(node, dict) and "reference" in node:
            return ReferenceValue(reference=node.get("reference"), element=node)
        return node
