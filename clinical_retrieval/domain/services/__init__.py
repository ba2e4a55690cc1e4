"""Domain Services.

This package contains the retrieval and filtering logic of the engine. It
depends only on domain models and ports, never on adapters.
"""

from clinical_retrieval.domain.services.context_filter import ContextFilter
from clinical_retrieval.domain.services.terminology_filter import TerminologyFilter
from clinical_retrieval.domain.services.retrievers import PriorityRetriever, SingleSourceRetriever

__all__ = ['ContextFilter', 'TerminologyFilter', 'SingleSourceRetriever', 'PriorityRetriever']
