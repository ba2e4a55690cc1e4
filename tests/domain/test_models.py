"""Unit tests for retrieval domain models."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from clinical_retrieval.domain.models import Code, Interval, Query, VersionedIdentifier, split_codes


class TestCodeEquality:
    """Test Code matching rules."""

    def test_matching_code_and_system(self):
        """Codes with equal code and system match."""
        left = Code(code="1234-5", system="http://loinc.org")
        right = Code(code="1234-5", system="http://loinc.org", display="Glucose")

        assert left.matches(right)
        assert right.matches(left)

    def test_different_system_does_not_match(self):
        left = Code(code="1234-5", system="http://loinc.org")
        right = Code(code="1234-5", system="http://snomed.info/sct")

        assert not left.matches(right)

    def test_code_without_system_matches_nothing(self):
        """A code with a null system never matches, not even itself."""
        partial = Code(code="A", system=None)

        assert not partial.matches(partial)
        assert not partial.matches(Code(code="A", system="http://loinc.org"))
        assert not Code(code="A", system="http://loinc.org").matches(partial)

    def test_code_without_code_matches_nothing(self):
        partial = Code(code=None, system="http://loinc.org")

        assert not partial.matches(partial)

    def test_code_is_immutable(self):
        code = Code(code="A", system="http://loinc.org")

        with pytest.raises(PydanticValidationError):
            code.code = "B"


class TestCodeParse:
    """Test parsing system|code tokens."""

    def test_parse_system_and_code(self):
        code = Code.parse("http://loinc.org|1234-5")

        assert code.system == "http://loinc.org"
        assert code.code == "1234-5"

    def test_parse_without_separator(self):
        code = Code.parse("1234-5")

        assert code.code == "1234-5"
        assert code.system is None

    def test_parse_empty_code(self):
        code = Code.parse("http://loinc.org|")

        assert code.system == "http://loinc.org"
        assert code.code is None


class TestVersionedIdentifier:
    """Test VersionedIdentifier validation and cache keys."""

    def test_cache_key(self):
        identifier = VersionedIdentifier(id="Diabetes", version="1.0.0")

        assert identifier.cache_key() == ("Diabetes", "1.0.0")

    def test_cache_key_without_version(self):
        assert VersionedIdentifier(id="Diabetes").cache_key() == ("Diabetes", None)

    def test_id_is_stripped(self):
        assert VersionedIdentifier(id="  Diabetes ").id == "Diabetes"

    def test_empty_id_rejected(self):
        with pytest.raises(PydanticValidationError):
            VersionedIdentifier(id="   ")


class TestSplitCodes:
    """Test separation of Code entries from literal strings."""

    def test_none(self):
        assert split_codes(None) == ([], [])

    def test_mixed_codes_keep_order(self):
        codes = (Code(code="A", system="s"), "Medication/med-1", Code(code="B"), "med-2")

        requested, literals = split_codes(codes)

        assert requested == [Code(code="A", system="s"), Code(code="B")]
        assert literals == ["Medication/med-1", "med-2"]

    def test_query_codes(self):
        query = Query(codes=["med-1"])

        assert split_codes(query.codes) == ([], ["med-1"])


class TestQuery:
    """Test Query construction."""

    def test_all_fields_optional(self):
        query = Query()

        assert query.data_type is None
        assert query.codes is None

    def test_codes_are_frozen_into_tuple(self):
        query = Query(codes=[Code(code="A", system="s"), "Medication/med-1"])

        assert isinstance(query.codes, tuple)
        assert query.codes == (Code(code="A", system="s"), "Medication/med-1")

    def test_single_code_is_wrapped(self):
        query = Query(codes="med-1")

        assert query.codes == ("med-1",)

    def test_of_positional_contract(self):
        """Query.of accepts the twelve retrieve parameters in order."""
        date_range = Interval(low="2024-01-01", high="2024-12-31")
        query = Query.of(
            "Patient", "subject", "patient-1", "Observation", "http://hl7.org/fhir/StructureDefinition/Observation",
            "code", [Code(code="1234-5", system="http://loinc.org")], None,
            "effective", None, None, date_range,
        )

        assert query.context_name == "Patient"
        assert query.context_path == "subject"
        assert query.context_value == "patient-1"
        assert query.data_type == "Observation"
        assert query.code_path == "code"
        assert query.date_path == "effective"
        assert query.date_range == date_range

    def test_query_is_immutable(self):
        query = Query(data_type="Observation")

        with pytest.raises(PydanticValidationError):
            query.data_type = "Condition"
