"""FHIR adapters: path evaluation and code extraction over FHIR-JSON resources."""

from clinical_retrieval.adapters.fhir.code_extractor import FhirCodeExtractor
from clinical_retrieval.adapters.fhir.path_evaluator import FhirPathEvaluator, InvalidPathError

__all__ = ["FhirCodeExtractor", "FhirPathEvaluator", "InvalidPathError"]
