"""Unit tests for HTTP header parsing and command line parameter parsing."""

import pytest
import requests

from clinical_retrieval.domain.models import Code
from clinical_retrieval.domain.ports import ConfigurationError
from clinical_retrieval.infrastructure.http_client import create_session, parse_headers
from clinical_retrieval.infrastructure.parameter_parser import (
    parse_code_parameter,
    parse_context_parameter,
    parse_optional_context,
)


class TestParseHeaders:
    """Test "Name: value" header parsing."""

    def test_headers_parsed(self):
        headers = parse_headers(["Authorization: Bearer abc", "X-Tenant:demo"])

        assert headers == {"Authorization": "Bearer abc", "X-Tenant": "demo"}

    def test_value_may_contain_colon(self):
        assert parse_headers(["X-Url: http://example.org"]) == {"X-Url": "http://example.org"}

    def test_none_and_empty(self):
        assert parse_headers(None) == {}
        assert parse_headers([]) == {}

    def test_missing_separator(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_headers(["Authorization=Bearer abc"])

        assert "Bearer" not in str(exc_info.value)

    def test_create_session(self):
        session = create_session("http://tx.example.org/fhir", ["Authorization: Bearer abc"])

        assert isinstance(session, requests.Session)
        assert session.headers["Accept"] == "application/fhir+json"
        assert session.headers["Authorization"] == "Bearer abc"


class TestParseContextParameter:
    """Test Name=value context parsing."""

    def test_name_and_value(self):
        assert parse_context_parameter("Patient=123") == ("Patient", "123")

    def test_whitespace_stripped(self):
        assert parse_context_parameter(" Patient = 123 ") == ("Patient", "123")

    def test_value_may_contain_equals(self):
        assert parse_context_parameter("Patient=a=b") == ("Patient", "a=b")

    @pytest.mark.parametrize("parameter", ["Patient", "=123", "Patient=", ""])
    def test_invalid(self, parameter):
        with pytest.raises(ValueError):
            parse_context_parameter(parameter)

    def test_optional_context(self):
        assert parse_optional_context(None) == (None, None)
        assert parse_optional_context("Encounter=e1") == ("Encounter", "e1")


class TestParseCodeParameter:
    """Test system|code parsing."""

    def test_system_and_code(self):
        assert parse_code_parameter("http://loinc.org|4548-4") == Code(code="4548-4", system="http://loinc.org")

    @pytest.mark.parametrize("parameter", ["4548-4", "http://loinc.org|", "|4548-4"])
    def test_incomplete_code(self, parameter):
        with pytest.raises(ValueError):
            parse_code_parameter(parameter)
