"""Retrievers - single-source filtering and priority composition.

SingleSourceRetriever answers a Query from one ResourceStore by applying the
ContextFilter and then the TerminologyFilter. PriorityRetriever composes any
number of retrievers (including other PriorityRetrievers) and returns the
first non-empty answer.

Architecture:
    - Both variants implement RetrievePort, so compositions nest freely
    - No locking and no mutable shared state: concurrent retrieve calls are
      safe as long as the store and path evaluator allow concurrent reads
"""

import logging
from collections.abc import Sized
from typing import Iterable, Optional

from clinical_retrieval.domain.models import Query
from clinical_retrieval.domain.ports import (
    CodeExtractorPort,
    ContractViolation,
    PathEvaluatorPort,
    ResourceRecord,
    ResourceStorePort,
    RetrievePort,
    TerminologyPort,
    ValidationError,
)
from clinical_retrieval.domain.services.context_filter import ContextFilter
from clinical_retrieval.domain.services.terminology_filter import TerminologyFilter

logger = logging.getLogger(__name__)


class SingleSourceRetriever(RetrievePort):
    """Retriever backed by a single ResourceStore.

    Parameters:
        store: Backing store of FHIR resources
        path_evaluator: Evaluator for context and code paths
        code_extractor: Converts coded elements into Code values
        terminology: Optional value set membership provider
        terminology_failure_policy: "fail" or "exclude" (see TerminologyFilter)

    Raises:
        ValidationError: If store, path_evaluator or code_extractor is None

    Example Usage:
        ```python
        retriever = SingleSourceRetriever(
            store=BundleResourceStore.from_file("patient-bundle.json"),
            path_evaluator=FhirPathEvaluator(),
            code_extractor=FhirCodeExtractor(),
        )
        observations = retriever.retrieve(Query(
            context_name="Patient",
            context_path="subject",
            context_value="patient-1",
            data_type="Observation",
            code_path="code",
            codes=[Code(code="1234-5", system="http://loinc.org")],
        ))
        ```
    """

    def __init__(
        self,
        store: ResourceStorePort,
        path_evaluator: PathEvaluatorPort,
        code_extractor: CodeExtractorPort,
        terminology: Optional[TerminologyPort] = None,
        terminology_failure_policy: str = "fail",
    ):
        if store is None:
            raise ValidationError("store can not be None", argument="store")

        self.store = store
        self.context_filter = ContextFilter(path_evaluator)
        self.terminology_filter = TerminologyFilter(
            path_evaluator,
            code_extractor,
            terminology=terminology,
            failure_policy=terminology_failure_policy,
        )

    def retrieve(self, query: Query) -> list[ResourceRecord]:
        """Fetch all records of ``query.data_type`` and filter them.

        Returns:
            list[ResourceRecord]: Survivors of context then terminology
            filtering, in store order

        Raises:
            ContractViolation: If the store returns None
            ConfigurationError: If value set filtering is requested without
                a terminology provider
        """
        if query.data_type is None:
            logger.warning(
                f"Retrieve without a data type against {self.store.describe()}. Returning no resources.",
                extra={"source": self.store.describe()}
            )
            return []

        records = self.store.all_of_type(query.data_type)
        if records is None:
            raise ContractViolation(
                f"{self.store.describe()} returned None for {query.data_type}; stores must return an empty list",
                collaborator=self.store.describe()
            )

        records = self.context_filter.filter(
            query.data_type,
            query.context_name,
            query.context_path,
            query.context_value,
            list(records),
        )
        records = self.terminology_filter.filter(
            query.data_type,
            query.code_path,
            query.codes,
            query.value_set_id,
            records,
        )

        logger.debug(
            f"Retrieved {len(records)} {query.data_type} resources from {self.store.describe()}",
            extra={"data_type": query.data_type, "source": self.store.describe()}
        )
        return list(records)


class PriorityRetriever(RetrievePort):
    """Chain-of-responsibility over an ordered list of retrievers.

    Each child is asked in order; the first non-empty result is returned as-is
    and later children are never invoked. Results are never merged across
    children.

    Parameters:
        retrievers: Ordered child retrievers (an empty list is legal)

    Raises:
        ValidationError: If ``retrievers`` is None or contains None
    """

    def __init__(self, retrievers: Iterable[RetrievePort]):
        if retrievers is None:
            raise ValidationError("retrievers can not be None", argument="retrievers")

        self.retrievers: tuple[RetrievePort, ...] = tuple(retrievers)
        for index, retriever in enumerate(self.retrievers):
            if retriever is None:
                raise ValidationError(f"retriever at position {index} is None", argument="retrievers")

    def retrieve(self, query: Query) -> list[ResourceRecord]:
        """Return the first non-empty result of the child retrievers.

        Raises:
            ContractViolation: If a child returns None. Raised before any
                later child is tried.
        """
        for index, retriever in enumerate(self.retrievers):
            result = retriever.retrieve(query)

            if result is None:
                raise ContractViolation(
                    f"Retriever {index} ({retriever.__class__.__name__}) returned None; "
                    "retrievers must return an empty sequence when they have no data",
                    collaborator=retriever.__class__.__name__
                )

            if not isinstance(result, Sized):
                result = list(result)

            if len(result) > 0:
                logger.debug(f"Retriever {index} ({retriever.__class__.__name__}) returned {len(result)} resources")
                return result

        return []
