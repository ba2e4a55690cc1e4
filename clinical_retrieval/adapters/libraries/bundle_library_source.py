"""Bundle Library Source Adapter.

Finds logic Library resources inside a FHIR Bundle and returns their CQL source
text (the ``text/cql`` attachment). Parsing and translating that text is left
to the host application.

Architecture:
    - Implements LibrarySourcePort (Hexagonal Architecture)
    - Optionally backed by an injected TranslationCache
"""

import base64
import binascii
import logging
from typing import Optional

from clinical_retrieval.domain.models import VersionedIdentifier
from clinical_retrieval.domain.ports import LibrarySourcePort, ValidationError
from clinical_retrieval.infrastructure.translation_cache import TranslationCache

logger = logging.getLogger(__name__)

CQL_CONTENT_TYPE = "text/cql"


def _version_key(version: Optional[str]) -> tuple:
    """Sort key for dotted versions: numeric parts compare numerically."""
    if not version:
        return ()
    return tuple(
        (0, int(part), "") if part.isdigit() else (1, 0, part)
        for part in version.split(".")
    )


class BundleLibrarySource(LibrarySourcePort):
    """LibrarySourcePort over the Library entries of a FHIR Bundle.

    Parameters:
        bundle: FHIR Bundle containing Library resources
        cache: Optional translation cache shared with other sources
    """

    def __init__(self, bundle: dict, cache: Optional[TranslationCache] = None):
        if bundle is None:
            raise ValidationError("bundle can not be None", argument="bundle")

        self.cache = cache
        self._libraries = [
            entry["resource"] for entry in bundle.get("entry") or []
            if isinstance(entry, dict)
            and isinstance(entry.get("resource"), dict)
            and entry["resource"].get("resourceType") == "Library"
        ]

    def get_library(self, name: str, version: Optional[str] = None) -> Optional[dict]:
        """Find a Library by name (or id) and version.

        Without a version the highest available version is returned.
        """
        candidates = [
            library for library in self._libraries
            if library.get("name") == name or library.get("id") == name
        ]
        if version is not None:
            candidates = [library for library in candidates if library.get("version") == version]

        if not candidates:
            return None

        return max(candidates, key=lambda library: _version_key(library.get("version")))

    def get_library_source(self, identifier: VersionedIdentifier) -> Optional[str]:
        if identifier is None:
            raise ValidationError("identifier can not be None", argument="identifier")

        if self.cache is not None:
            return self.cache.get_or_load(identifier, self._load_source)
        return self._load_source(identifier)

    def _load_source(self, identifier: VersionedIdentifier) -> Optional[str]:
        library = self.get_library(identifier.id, identifier.version)
        if library is None:
            logger.info(f"Library {identifier.id} version {identifier.version} not found in bundle")
            return None

        return self._cql_text(library)

    @staticmethod
    def _cql_text(library: dict) -> Optional[str]:
        for content in library.get("content") or []:
            if content.get("contentType") != CQL_CONTENT_TYPE or not content.get("data"):
                continue
            try:
                return base64.b64decode(content["data"]).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as e:
                logger.warning(f"Library {library.get('name')} has undecodable CQL content: {str(e)}")
                return None
        return None
