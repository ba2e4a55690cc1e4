"""Terminology Filter - select records whose coded element matches a query.

Two matching strategies are applied to the value found at ``code_path``:

    - Explicit codes: any extracted Code equal (code + system) to a requested Code
    - Value set: any extracted Code that the terminology provider places in the
      requested value set

A third, narrower path handles "codes" that are really ids: when the coded
element resolves to a single primitive value, it is compared literally against
the string entries of the requested codes.
"""

import logging
from typing import Optional, Sequence, Union

from clinical_retrieval.domain.models import Code, split_codes
from clinical_retrieval.domain.path_values import is_primitive, primitive_as_string
from clinical_retrieval.domain.ports import (
    CodeExtractorPort,
    ConfigurationError,
    PathEvaluatorPort,
    ResourceRecord,
    TerminologyError,
    TerminologyPort,
    ValidationError,
)
from clinical_retrieval.domain.utils import strip_type_prefix

logger = logging.getLogger(__name__)

FAILURE_POLICIES = ("fail", "exclude")


class TerminologyFilter:
    """Narrows a record list to the records matching codes or a value set.

    Parameters:
        path_evaluator: Evaluator used to resolve ``code_path`` on records
        code_extractor: Converts path results into Code values
        terminology: Optional value set membership provider
        failure_policy: What to do when a configured provider fails a single
                        membership check. "fail" (default) propagates the
                        TerminologyError, "exclude" treats the code as a non-member

    Raises:
        ValidationError: If a required collaborator is None or the policy is unknown
    """

    def __init__(
        self,
        path_evaluator: PathEvaluatorPort,
        code_extractor: CodeExtractorPort,
        terminology: Optional[TerminologyPort] = None,
        failure_policy: str = "fail",
    ):
        if path_evaluator is None:
            raise ValidationError("path_evaluator can not be None", argument="path_evaluator")
        if code_extractor is None:
            raise ValidationError("code_extractor can not be None", argument="code_extractor")
        if failure_policy not in FAILURE_POLICIES:
            raise ValidationError(
                f"Unknown terminology failure policy: {failure_policy}. Supported: {FAILURE_POLICIES}",
                argument="failure_policy"
            )

        self.path_evaluator = path_evaluator
        self.code_extractor = code_extractor
        self.terminology = terminology
        self.failure_policy = failure_policy

    def filter(
        self,
        data_type: Optional[str],
        code_path: Optional[str],
        codes: Optional[Sequence[Union[Code, str]]],
        value_set_id: Optional[str],
        records: list[ResourceRecord],
    ) -> list[ResourceRecord]:
        """Return the subset of ``records`` whose coded element matches.

        Parameters:
            data_type: Resource type being filtered
            code_path: Path to the coded element
            codes: Requested codes (Code instances and/or literal id strings)
            value_set_id: Requested value set
            records: Candidate records

        Returns:
            list[ResourceRecord]: The input list itself when there is nothing to
            filter on, otherwise a new list

        Raises:
            ConfigurationError: If value set filtering is requested without a
                terminology provider
            TerminologyError: If a membership check fails and the policy is "fail"
        """
        if codes is None and value_set_id is None:
            return records

        if code_path is None:
            return records

        if value_set_id is not None and self.terminology is None:
            raise ConfigurationError(
                f"Unable to check code membership in ValueSet {value_set_id}. No terminology provider is configured.",
                details={"value_set_id": value_set_id, "data_type": data_type}
            )

        requested_codes, literal_codes = split_codes(codes)

        filtered = []
        for record in records:
            values = self.path_evaluator.evaluate(record, code_path)

            if values is not None and len(values) == 1 and is_primitive(values[0]):
                if self._is_primitive_match(data_type, values[0], literal_codes):
                    filtered.append(record)
                continue

            record_codes = self.code_extractor.from_values(values or [])
            if not record_codes:
                logger.info(f"Found {data_type} resource without codes at {code_path}. Skipping.")
                continue

            if self._any_code_match(record_codes, requested_codes):
                filtered.append(record)
                continue

            if self._any_code_in_value_set(record_codes, value_set_id):
                filtered.append(record)
                continue

        return filtered

    # Handles "codes" that are actually ids, e.g. a reference such as "Medication/med-id".
    def _is_primitive_match(self, data_type: Optional[str], value, literal_codes: list[str]) -> bool:
        primitive_string = primitive_as_string(value)
        if primitive_string is None:
            return False

        primitive_string = strip_type_prefix(primitive_string, data_type)
        return primitive_string in literal_codes

    @staticmethod
    def _any_code_match(left: list[Code], right: list[Code]) -> bool:
        return any(code.matches(other) for code in left for other in right)

    def _any_code_in_value_set(self, record_codes: list[Code], value_set_id: Optional[str]) -> bool:
        if value_set_id is None:
            return False

        for code in record_codes:
            try:
                if self.terminology.is_member(code, value_set_id):
                    return True
            except TerminologyError as e:
                if self.failure_policy == "fail":
                    raise
                logger.warning(
                    f"Membership check for {code.system}|{code.code} in {value_set_id} failed, "
                    f"treating as non-member: {str(e)}",
                    extra={"value_set_id": value_set_id}
                )

        return False
