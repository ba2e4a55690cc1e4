"""Remote FHIR Terminology Adapter.

Answers value set membership by calling ``ValueSet/$validate-code`` on a FHIR
terminology server.

Security Impact:
    - Authorization headers are attached through the session, never logged
    - Transport failures surface as TerminologyError rather than a silent "no"

Architecture:
    - Implements TerminologyPort (Hexagonal Architecture)
    - Blocking HTTP calls; callers control overall latency
"""

import logging
from typing import Iterable, Optional

import requests

from clinical_retrieval.domain.models import Code
from clinical_retrieval.domain.ports import TerminologyError, TerminologyPort
from clinical_retrieval.infrastructure.http_client import create_session

logger = logging.getLogger(__name__)


class RemoteFhirTerminology(TerminologyPort):
    """TerminologyPort backed by a FHIR terminology server.

    Parameters:
        base_url: FHIR terminology server base URL
        headers: Optional ``"Name: value"`` header strings
        timeout: Request timeout in seconds
        session: Pre-built session (headers are ignored when given)
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Iterable[str]] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or create_session(self.base_url, headers)

    def is_member(self, code: Code, value_set_id: str) -> bool:
        if code.code is None or code.system is None:
            return False

        params = {"url": value_set_id, "code": code.code, "system": code.system}
        if code.version:
            params["systemVersion"] = code.version

        try:
            response = self.session.get(
                f"{self.base_url}/ValueSet/$validate-code",
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
            parameters = response.json()
        except requests.RequestException as e:
            logger.error(f"Terminology request failed for {value_set_id}: {e}")
            raise TerminologyError(
                f"Terminology request failed for {value_set_id}: {e}",
                value_set_id=value_set_id,
                code=code
            ) from e
        except ValueError as e:
            raise TerminologyError(
                f"Terminology server returned invalid JSON for {value_set_id}",
                value_set_id=value_set_id,
                code=code
            ) from e

        return self._read_result(parameters, value_set_id, code)

    @staticmethod
    def _read_result(parameters: dict, value_set_id: str, code: Code) -> bool:
        if not isinstance(parameters, dict):
            parameters = {}

        for parameter in parameters.get("parameter") or []:
            if parameter.get("name") == "result":
                return bool(parameter.get("valueBoolean"))

        raise TerminologyError(
            f"$validate-code response for {value_set_id} has no result parameter",
            value_set_id=value_set_id,
            code=code
        )
