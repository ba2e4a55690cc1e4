"""Context Filter - relate records to the clinical subject of a query.

A record is related to the context (typically a Patient) when the value found
at ``context_path`` points at the context id. Three shapes are understood:

    1. Identifier values (``Patient/123`` or ``123``)
    2. Reference elements (``{"reference": "Patient/123"}``)
    3. Anything else: the record's own ``reference`` element is consulted

Records that cannot be related are excluded, never reported as errors.
"""

import logging
from typing import Any, Optional

from clinical_retrieval.domain.path_values import IdValue, ReferenceValue, is_primitive, primitive_as_string
from clinical_retrieval.domain.ports import PathEvaluatorPort, ResourceRecord, ValidationError
from clinical_retrieval.domain.utils import id_part, strip_reference_prefix

logger = logging.getLogger(__name__)

FALLBACK_REFERENCE_PATH = "reference"


class ContextFilter:
    """Narrows a record list to the records related to a context value.

    Parameters:
        path_evaluator: Evaluator used to resolve ``context_path`` on records
    """

    def __init__(self, path_evaluator: PathEvaluatorPort):
        if path_evaluator is None:
            raise ValidationError("path_evaluator can not be None", argument="path_evaluator")
        self.path_evaluator = path_evaluator

    def filter(
        self,
        data_type: Optional[str],
        context: Optional[str],
        context_path: Optional[str],
        context_value: Optional[Any],
        records: list[ResourceRecord],
    ) -> list[ResourceRecord]:
        """Return the subset of ``records`` related to ``context_value``.

        Parameters:
            data_type: Resource type being filtered (used for logging)
            context: Context name (e.g. "Patient")
            context_path: Path relating a record to the context
            context_value: Context id to match
            records: Candidate records

        Returns:
            list[ResourceRecord]: The input list itself when any of context,
            context_path or context_value is None, otherwise a new list
        """
        if context is None or context_value is None or context_path is None:
            logger.info(
                f"Unable to relate {data_type} to {context} context with contextPath: {context_path} "
                f"and contextValue: {context_value}. Returning all resources."
            )
            return records

        return [
            record for record in records
            if self._is_related(data_type, record, context_path, context_value)
        ]

    def _is_related(
        self,
        data_type: Optional[str],
        record: ResourceRecord,
        context_path: str,
        context_value: Any,
    ) -> bool:
        resolved = self.path_evaluator.evaluate_first(record, context_path)

        if isinstance(resolved, IdValue):
            return self._matches_id(data_type, resolved.value, context_value)

        if isinstance(resolved, ReferenceValue):
            return self._matches_id(data_type, resolved.reference, context_value)

        return self._matches_fallback_reference(data_type, record, context_value)

    def _matches_id(self, data_type: Optional[str], raw_id: Optional[str], context_value: Any) -> bool:
        if raw_id is None:
            logger.info(f"Found null id for {data_type} resource. Skipping.")
            return False

        resource_id = id_part(raw_id)
        if resource_id != context_value:
            logger.info(f"Found {data_type} with id {resource_id}. Skipping.")
            return False

        return True

    def _matches_fallback_reference(self, data_type: Optional[str], record: ResourceRecord, context_value: Any) -> bool:
        reference = self.path_evaluator.evaluate_first(record, FALLBACK_REFERENCE_PATH)
        if reference is None:
            logger.info(f"Found {data_type} resource unrelated to context. Skipping.")
            return False

        if not is_primitive(reference):
            logger.info(f"Found {data_type} resource with unparsable reference. Skipping.")
            return False

        reference_id = strip_reference_prefix(primitive_as_string(reference))
        if reference_id != context_value:
            logger.info(
                f"Found {data_type} resource for context value: {reference_id} "
                f"when expecting: {context_value}. Skipping."
            )
            return False

        return True
