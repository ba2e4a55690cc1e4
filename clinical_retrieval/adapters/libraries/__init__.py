"""Library source adapters: locate logic library text inside FHIR Bundles."""

from clinical_retrieval.adapters.libraries.bundle_library_source import BundleLibrarySource

__all__ = ["BundleLibrarySource"]
