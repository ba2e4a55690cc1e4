"""Unit tests for BundleLibrarySource."""

import base64

import pytest

from clinical_retrieval.adapters.libraries import BundleLibrarySource
from clinical_retrieval.domain.models import VersionedIdentifier
from clinical_retrieval.domain.ports import ValidationError
from clinical_retrieval.infrastructure.translation_cache import TranslationCache


class TestBundleLibrarySource:
    """Test library lookup and CQL decoding."""

    def test_exact_version(self, library_bundle):
        source = BundleLibrarySource(library_bundle)

        text = source.get_library_source(VersionedIdentifier(id="Diabetes", version="1.2.0"))

        assert text == "library Diabetes version '1.2.0'"

    def test_highest_version_without_version(self, library_bundle):
        """1.10.0 sorts above 1.2.0."""
        source = BundleLibrarySource(library_bundle)

        text = source.get_library_source(VersionedIdentifier(id="Diabetes"))

        assert text == "library Diabetes version '1.10.0'"

    def test_lookup_by_id(self, library_bundle):
        library = BundleLibrarySource(library_bundle).get_library("Diabetes-1.0.0")

        assert library["version"] == "1.0.0"

    def test_unknown_library(self, library_bundle):
        source = BundleLibrarySource(library_bundle)

        assert source.get_library_source(VersionedIdentifier(id="Hypertension")) is None
        assert source.get_library_source(VersionedIdentifier(id="Diabetes", version="9.9.9")) is None

    def test_library_without_cql(self):
        bundle = {"resourceType": "Bundle", "entry": [{"resource": {
            "resourceType": "Library",
            "name": "Elm",
            "content": [{"contentType": "application/elm+json", "data": "e30="}],
        }}]}

        assert BundleLibrarySource(bundle).get_library_source(VersionedIdentifier(id="Elm")) is None

    def test_undecodable_cql(self):
        bundle = {"resourceType": "Bundle", "entry": [{"resource": {
            "resourceType": "Library",
            "name": "Broken",
            "content": [{"contentType": "text/cql", "data": base64.b64encode(b"\xff\xfe").decode("ascii")}],
        }}]}

        assert BundleLibrarySource(bundle).get_library_source(VersionedIdentifier(id="Broken")) is None

    def test_none_bundle_rejected(self):
        with pytest.raises(ValidationError):
            BundleLibrarySource(None)

    def test_none_identifier_rejected(self, library_bundle):
        with pytest.raises(ValidationError):
            BundleLibrarySource(library_bundle).get_library_source(None)


class TestBundleLibrarySourceCaching:
    """Test the injected translation cache."""

    def test_source_is_cached(self, library_bundle):
        cache = TranslationCache()
        source = BundleLibrarySource(library_bundle, cache=cache)
        identifier = VersionedIdentifier(id="Diabetes", version="1.0.0")

        first = source.get_library_source(identifier)
        second = source.get_library_source(identifier)

        assert first == second
        assert identifier in cache
        assert cache.get_statistics()["hits"] == 1

    def test_cached_value_wins(self, library_bundle):
        cache = TranslationCache()
        identifier = VersionedIdentifier(id="Diabetes", version="1.0.0")
        cache.put(identifier, "cached text")

        assert BundleLibrarySource(library_bundle, cache=cache).get_library_source(identifier) == "cached text"

    def test_missing_library_not_cached(self, library_bundle):
        cache = TranslationCache()
        source = BundleLibrarySource(library_bundle, cache=cache)

        assert source.get_library_source(VersionedIdentifier(id="Unknown")) is None
        assert len(cache) == 0

    def test_cache_shared_between_sources(self, library_bundle):
        cache = TranslationCache()
        identifier = VersionedIdentifier(id="Diabetes", version="1.2.0")
        BundleLibrarySource(library_bundle, cache=cache).get_library_source(identifier)

        other = BundleLibrarySource({"resourceType": "Bundle", "entry": []}, cache=cache)

        assert other.get_library_source(identifier) == "library Diabetes version '1.2.0'"
