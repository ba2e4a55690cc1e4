"""Terminology adapters for Clinical-Retrieval.

This module contains the TerminologyPort implementations and the factory that
selects one from a terminology URI and FHIR version.
"""

import logging
import re
from typing import Iterable, Optional

from clinical_retrieval.adapters.terminology.file_terminology import FileValueSetTerminology
from clinical_retrieval.adapters.terminology.fhir_terminology import RemoteFhirTerminology
from clinical_retrieval.domain.ports import ConfigurationError, TerminologyPort

__all__ = [
    "FileValueSetTerminology",
    "RemoteFhirTerminology",
    "create_terminology_provider",
    "is_file_uri",
]

logger = logging.getLogger(__name__)

_SCHEME_PATTERN = re.compile(r"\w+?://.*")

SUPPORTED_FHIR_VERSIONS = ("2.0.0", "3.0.0", "4.0.0")


def is_file_uri(uri: Optional[str]) -> bool:
    """Return True for ``file`` URIs and for anything without a ``scheme://`` prefix."""
    if uri is None:
        return False
    return uri.startswith("file") or not _SCHEME_PATTERN.fullmatch(uri)


def _file_path(uri: str) -> str:
    if uri.startswith("file://"):
        return uri[len("file://"):]
    if uri.startswith("file:"):
        return uri[len("file:"):]
    return uri


def create_terminology_provider(
    model: str,
    version: str,
    terminology_uri: Optional[str],
    headers: Optional[Iterable[str]] = None,
    timeout: float = 30.0,
) -> Optional[TerminologyPort]:
    """Factory function to create a terminology provider.

    Parameters:
        model: Data model name; only "FHIR" is supported
        version: FHIR version ("2.0.0", "3.0.0" or "4.0.0")
        terminology_uri: File/directory path, ``file:`` URI or server base URL.
                         None or empty means no terminology provider.
        headers: Optional ``"Name: value"`` headers for remote servers
        timeout: Request timeout for remote servers

    Returns:
        Optional[TerminologyPort]: Provider instance, or None without a URI

    Raises:
        ConfigurationError: For unsupported models, versions, or a remote
            server with FHIR 2.0.0
    """
    if not terminology_uri:
        return None

    if model != "FHIR":
        raise ConfigurationError("Only FHIR-based terminology is supported at this time.", details={"model": model})

    if version not in SUPPORTED_FHIR_VERSIONS:
        raise ConfigurationError(f"Unknown FHIR terminology provider version: {version}", details={"version": version})

    if is_file_uri(terminology_uri):
        logger.info(f"Using file-based terminology from {terminology_uri}")
        return FileValueSetTerminology.from_path(_file_path(terminology_uri))

    if version == "2.0.0":
        raise ConfigurationError("Remote FHIR provider not supported for version FHIR 2.0.0", details={"version": version})

    logger.info(f"Using remote FHIR {version} terminology at {terminology_uri}")
    return RemoteFhirTerminology(terminology_uri, headers=headers, timeout=timeout)
