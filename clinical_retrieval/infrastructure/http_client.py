"""HTTP session factory for FHIR REST endpoints.

Builds a ``requests.Session`` for a FHIR base URL with any additional request
headers (typically authorization) configured for that endpoint.

Security Impact:
    - Header values are never logged, only header names
"""

import logging
from typing import Iterable, Optional

import requests

from clinical_retrieval.domain.ports import ConfigurationError

logger = logging.getLogger(__name__)

FHIR_JSON = "application/fhir+json"


def parse_headers(headers: Optional[Iterable[str]]) -> dict[str, str]:
    """Parse ``"Name: value"`` strings into a header dictionary.

    Parameters:
        headers: Header strings; None or empty yields no headers

    Returns:
        dict[str, str]: Header name to value

    Raises:
        ConfigurationError: If a header string has no ``:`` separator
    """
    header_map: dict[str, str] = {}
    for header in headers or []:
        if ":" not in header:
            raise ConfigurationError(
                "Endpoint header must contain \":\".",
                details={"header_name": header.split("=")[0][:40]}
            )
        name, _, value = header.partition(":")
        header_map[name.strip()] = value.strip()
    return header_map


def create_session(base_url: str, headers: Optional[Iterable[str]] = None) -> requests.Session:
    """Create a session for a FHIR endpoint with additional request headers.

    Parameters:
        base_url: FHIR server base URL
        headers: Optional ``"Name: value"`` header strings

    Returns:
        requests.Session: Configured session
    """
    session = requests.Session()
    session.headers.update({"Accept": FHIR_JSON})

    header_map = parse_headers(headers)
    session.headers.update(header_map)

    if header_map:
        logger.info(f"Registered headers {sorted(header_map)} for {base_url}")
    return session
