"""Composition root for the Clinical-Retrieval engine.

This module wires configured data sources, the FHIR path evaluator and code
extractor, and the terminology provider into a PriorityRetriever.

Architecture:
    - Follows Hexagonal Architecture principles
    - Adapters are selected automatically based on source format
    - The only module that knows about both the domain and every adapter
"""

import logging
from typing import Optional

from clinical_retrieval.adapters.fhir import FhirCodeExtractor, FhirPathEvaluator
from clinical_retrieval.adapters.stores import get_store
from clinical_retrieval.adapters.terminology import create_terminology_provider
from clinical_retrieval.domain.ports import (
    CodeExtractorPort,
    PathEvaluatorPort,
    ResourceStorePort,
    TerminologyPort,
)
from clinical_retrieval.domain.services import PriorityRetriever, SingleSourceRetriever
from clinical_retrieval.infrastructure.config_manager import DataSourceConfig, RetrievalConfig
from clinical_retrieval.infrastructure.logging_config import setup_logging
from clinical_retrieval.infrastructure.settings import settings

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False, use_json: Optional[bool] = None) -> None:
    """Configure logging from settings, with command line overrides."""
    setup_logging(
        use_json=settings.log_json if use_json is None else use_json,
        log_level="DEBUG" if verbose else settings.log_level,
    )


def create_store(source_config: DataSourceConfig) -> ResourceStorePort:
    """Create the resource store for one configured data source.

    Raises:
        SourceNotFoundError: If the source does not exist
        UnsupportedSourceError: If no adapter can handle the source
    """
    logger.info(f"Opening {source_config.source_type} source {source_config.name}")
    return get_store(source_config.path, source_config.source_type)


def create_terminology(config: RetrievalConfig) -> Optional[TerminologyPort]:
    """Create the configured terminology provider, or None without a terminology URI."""
    return create_terminology_provider(
        "FHIR",
        config.fhir_version,
        config.terminology_uri,
        headers=config.header_values(),
        timeout=config.request_timeout,
    )


def create_retriever(
    config: RetrievalConfig,
    terminology: Optional[TerminologyPort] = None,
    path_evaluator: Optional[PathEvaluatorPort] = None,
    code_extractor: Optional[CodeExtractorPort] = None,
) -> PriorityRetriever:
    """Create a PriorityRetriever over every configured source, in order.

    Parameters:
        config: Retrieval configuration
        terminology: Terminology provider; created from ``config`` when omitted
        path_evaluator: Path evaluator (defaults to FhirPathEvaluator)
        code_extractor: Code extractor (defaults to FhirCodeExtractor)

    Returns:
        PriorityRetriever: One SingleSourceRetriever per source
    """
    if terminology is None:
        terminology = create_terminology(config)

    path_evaluator = path_evaluator or FhirPathEvaluator()
    code_extractor = code_extractor or FhirCodeExtractor()

    retrievers = [
        SingleSourceRetriever(
            store=create_store(source_config),
            path_evaluator=path_evaluator,
            code_extractor=code_extractor,
            terminology=terminology,
            terminology_failure_policy=config.terminology_failure_policy,
        )
        for source_config in config.sources
    ]

    if not retrievers:
        logger.warning("No data sources configured. Every retrieve will return no resources.")

    return PriorityRetriever(retrievers)
