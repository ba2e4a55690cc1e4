"""Unit tests for SingleSourceRetriever and PriorityRetriever."""

from unittest.mock import Mock

import pytest

from clinical_retrieval.adapters.fhir import FhirCodeExtractor, FhirPathEvaluator
from clinical_retrieval.adapters.stores import BundleResourceStore
from clinical_retrieval.domain.models import Code, Query
from clinical_retrieval.domain.ports import (
    ConfigurationError,
    ContractViolation,
    ResourceStorePort,
    RetrievePort,
    ValidationError,
)
from clinical_retrieval.domain.services import PriorityRetriever, SingleSourceRetriever

LOINC = "http://loinc.org"


def observation(resource_id, patient_id, code):
    return {
        "resourceType": "Observation",
        "id": resource_id,
        "subject": {"reference": f"Patient/{patient_id}"},
        "code": {"coding": [{"system": LOINC, "code": code}]},
    }


def fixed_retriever(result):
    retriever = Mock(spec=RetrievePort)
    retriever.retrieve.return_value = result
    return retriever


@pytest.fixture
def three_observations():
    return [
        observation("obs-1", "patient-1", "1234-5"),
        observation("obs-2", "patient-2", "9999-9"),
        observation("obs-3", "patient-3", "8888-8"),
    ]


@pytest.fixture
def single_source(three_observations):
    store = BundleResourceStore.from_resources(three_observations)
    return SingleSourceRetriever(store, FhirPathEvaluator(), FhirCodeExtractor())


class TestSingleSourceRetrieverInitialization:
    """Test SingleSourceRetriever construction."""

    def test_requires_store(self):
        with pytest.raises(ValidationError) as exc_info:
            SingleSourceRetriever(None, FhirPathEvaluator(), FhirCodeExtractor())

        assert exc_info.value.argument == "store"

    def test_requires_path_evaluator(self):
        with pytest.raises(ValidationError):
            SingleSourceRetriever(Mock(spec=ResourceStorePort), None, FhirCodeExtractor())

    def test_requires_code_extractor(self):
        with pytest.raises(ValidationError):
            SingleSourceRetriever(Mock(spec=ResourceStorePort), FhirPathEvaluator(), None)


class TestSingleSourceRetriever:
    """Test SingleSourceRetriever.retrieve."""

    def test_context_scenario(self, single_source):
        """Only the observation whose subject is patient-1 survives."""
        result = single_source.retrieve(Query(
            context_name="Patient",
            context_path="subject",
            context_value="patient-1",
            data_type="Observation",
        ))

        assert [r["id"] for r in result] == ["obs-1"]

    def test_code_scenario(self, single_source):
        """Exactly one of three observations carries the requested code."""
        result = single_source.retrieve(Query(
            data_type="Observation",
            code_path="code",
            codes=[Code(code="1234-5", system=LOINC)],
        ))

        assert len(result) == 1
        assert result[0]["id"] == "obs-1"

    def test_context_then_codes(self, single_source):
        result = single_source.retrieve(Query(
            context_name="Patient",
            context_path="subject",
            context_value="patient-2",
            data_type="Observation",
            code_path="code",
            codes=[Code(code="1234-5", system=LOINC)],
        ))

        assert result == []

    def test_unfiltered_returns_all_of_type(self, single_source, three_observations):
        assert single_source.retrieve(Query(data_type="Observation")) == three_observations

    def test_other_type_returns_empty(self, single_source):
        assert single_source.retrieve(Query(data_type="Condition")) == []

    def test_missing_data_type_returns_empty(self):
        store = Mock(spec=ResourceStorePort)
        retriever = SingleSourceRetriever(store, FhirPathEvaluator(), FhirCodeExtractor())

        assert retriever.retrieve(Query()) == []
        store.all_of_type.assert_not_called()

    def test_store_returning_none_is_contract_violation(self):
        store = Mock(spec=ResourceStorePort)
        store.all_of_type.return_value = None
        store.describe.return_value = "broken-store"
        retriever = SingleSourceRetriever(store, FhirPathEvaluator(), FhirCodeExtractor())

        with pytest.raises(ContractViolation) as exc_info:
            retriever.retrieve(Query(data_type="Observation"))

        assert exc_info.value.collaborator == "broken-store"

    def test_value_set_without_terminology(self, single_source):
        with pytest.raises(ConfigurationError):
            single_source.retrieve(Query(
                data_type="Observation",
                code_path="code",
                value_set_id="http://example.org/fhir/ValueSet/hba1c",
            ))

    def test_records_are_not_copied(self, three_observations):
        store = BundleResourceStore.from_resources(three_observations)
        retriever = SingleSourceRetriever(store, FhirPathEvaluator(), FhirCodeExtractor())

        result = retriever.retrieve(Query(data_type="Observation"))

        assert all(a is b for a, b in zip(result, three_observations))


class TestPriorityRetrieverInitialization:
    """Test PriorityRetriever construction."""

    def test_none_list_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            PriorityRetriever(None)

        assert exc_info.value.argument == "retrievers"

    def test_none_child_rejected(self):
        with pytest.raises(ValidationError):
            PriorityRetriever([fixed_retriever([]), None])

    def test_children_are_fixed(self):
        children = [fixed_retriever([])]
        retriever = PriorityRetriever(children)
        children.append(fixed_retriever([{"id": "late"}]))

        assert retriever.retrieve(Query(data_type="Observation")) == []


class TestPriorityRetriever:
    """Test PriorityRetriever.retrieve."""

    def test_first_non_empty_wins(self):
        """B's result is returned unmodified and C is never invoked."""
        r1, r2, r3, r4, r5 = ({"id": str(n)} for n in range(1, 6))
        a = fixed_retriever([])
        b_result = [r1, r2, r3]
        b = fixed_retriever(b_result)
        c = fixed_retriever([r5, r4, r3, r2, r1])
        query = Query(data_type="Observation")

        result = PriorityRetriever([a, b, c]).retrieve(query)

        assert result == [r1, r2, r3]
        assert result is b_result
        a.retrieve.assert_called_once_with(query)
        b.retrieve.assert_called_once_with(query)
        c.retrieve.assert_not_called()

    def test_null_child_raises_before_later_children(self):
        a = fixed_retriever([])
        broken = fixed_retriever(None)
        c = fixed_retriever([{"id": "1"}])

        with pytest.raises(ContractViolation):
            PriorityRetriever([a, broken, c]).retrieve(Query(data_type="Observation"))

        c.retrieve.assert_not_called()

    def test_zero_children_return_empty(self):
        retriever = PriorityRetriever([])

        for _ in range(3):
            result = retriever.retrieve(Query(data_type="Observation"))
            assert result is not None
            assert result == []

    def test_all_empty_returns_empty(self):
        retriever = PriorityRetriever([fixed_retriever([]), fixed_retriever(())])

        assert retriever.retrieve(Query(data_type="Observation")) == []

    def test_iterable_result_is_materialized(self):
        retriever = PriorityRetriever([fixed_retriever(iter([{"id": "1"}]))])

        assert retriever.retrieve(Query(data_type="Observation")) == [{"id": "1"}]

    def test_nested_priority_retrievers(self, single_source):
        inner = PriorityRetriever([fixed_retriever([]), single_source])
        outer = PriorityRetriever([fixed_retriever([]), inner, fixed_retriever([{"id": "never"}])])

        result = outer.retrieve(Query(
            context_name="Patient",
            context_path="subject",
            context_value="patient-3",
            data_type="Observation",
        ))

        assert [r["id"] for r in result] == ["obs-3"]

    def test_falls_through_to_second_source(self, three_observations):
        empty = SingleSourceRetriever(
            BundleResourceStore.from_resources([]), FhirPathEvaluator(), FhirCodeExtractor()
        )
        full = SingleSourceRetriever(
            BundleResourceStore.from_resources(three_observations), FhirPathEvaluator(), FhirCodeExtractor()
        )

        result = PriorityRetriever([empty, full]).retrieve(Query(data_type="Observation"))

        assert len(result) == 3
