"""Domain Ports - Abstract Contracts for Clinical Data Retrieval.

This module defines the Port interfaces (abstract contracts) that Adapters must
implement, plus the error taxonomy of the retrieval engine. Following Hexagonal
Architecture, the Domain Core defines what it needs, not how it's provided.

Security Impact:
    - Retrievers never mutate records; ports only expose read operations
    - Contract violations from collaborators surface as exceptions immediately
      instead of being mistaken for "no data"

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Adapters (FHIR bundles, DuckDB, terminology servers) implement these ports
    - Domain Core is isolated from data source specifics
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

from clinical_retrieval.domain.models import Code, Query, VersionedIdentifier

# Type variable for Result generic
T = TypeVar('T')

# A FHIR-JSON resource. The engine treats it as opaque.
ResourceRecord = dict


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    Used by store loading operations, where a bad bundle should be reported
    to the caller rather than abort a whole batch.

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error information (only present if success=False)
        error_type: Type of error (StoreError, SourceNotFoundError, etc.)
        error_details: Additional error context (source, table, etc.)

    Example:
        ```python
        result = store.load_bundle(bundle)
        if result.is_success():
            print(f"Loaded {result.value} resources")
        else:
            log_error(result.error, result.error_details)
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result."""
        return cls(
            success=True,
            value=value,
            error=None,
            error_type=None,
            error_details=None
        )

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message or exception
            error_type: Type of error (e.g., "StoreError")
            error_details: Additional context

        Returns:
            Result: Failure result with error information
        """
        error_message = str(error) if isinstance(error, Exception) else error
        error_type_name = error_type or (type(error).__name__ if isinstance(error, Exception) else "UnknownError")

        return cls(
            success=False,
            value=None,
            error=error_message,
            error_type=error_type_name,
            error_details=error_details or {}
        )

    def is_success(self) -> bool:
        """Check if result is successful."""
        return self.success

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class RetrievalError(Exception):
    """Base exception for all retrieval-related errors."""
    pass


class ValidationError(RetrievalError):
    """Raised when a required constructor argument is missing or invalid.

    Attributes:
        argument: Name of the offending argument
    """

    def __init__(self, message: str, argument: Optional[str] = None):
        super().__init__(message)
        self.argument = argument


class ConfigurationError(RetrievalError):
    """Raised when the engine is asked to do something it is not configured for.

    The canonical case is value-set filtering without a terminology provider.

    Attributes:
        details: Additional error context
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


class ContractViolation(RetrievalError):
    """Raised when a collaborator breaks its contract.

    A retriever must return an empty sequence when it has no data; returning
    None indicates a defect in that retriever.

    Attributes:
        collaborator: Description of the offending collaborator
    """

    def __init__(self, message: str, collaborator: Optional[str] = None):
        super().__init__(message)
        self.collaborator = collaborator


class TerminologyError(RetrievalError):
    """Raised when a configured terminology provider cannot answer a membership check.

    Attributes:
        value_set_id: The value set that was being checked
        code: The code that was being checked
    """

    def __init__(self, message: str, value_set_id: Optional[str] = None, code: Optional[Code] = None):
        super().__init__(message)
        self.value_set_id = value_set_id
        self.code = code


class SourceNotFoundError(RetrievalError):
    """Raised when a data source file or directory cannot be found.

    Attributes:
        source: The source identifier that was not found
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class UnsupportedSourceError(RetrievalError):
    """Raised when no adapter can handle a data source.

    Attributes:
        source: The source identifier that is unsupported
        adapter: The adapter that cannot handle the source
    """

    def __init__(self, message: str, source: Optional[str] = None, adapter: Optional[str] = None):
        super().__init__(message)
        self.source = source
        self.adapter = adapter


class StoreError(RetrievalError):
    """Raised when a backing store operation fails.

    Attributes:
        operation: The store operation that failed
        details: Additional error context
    """

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.operation = operation
        self.details = details or {}


# ============================================================================
# Collaborator Ports
# ============================================================================

class ResourceStorePort(ABC):
    """Abstract contract for a backing store of FHIR resources."""

    @abstractmethod
    def all_of_type(self, data_type: str) -> list[ResourceRecord]:
        """Return every resource of the given type, in store order.

        Parameters:
            data_type: Resource type name (e.g. "Observation")

        Returns:
            list[ResourceRecord]: Matching resources (empty list if none)
        """
        pass

    def describe(self) -> str:
        """Short human readable description used in logs."""
        return self.__class__.__name__


class PathEvaluatorPort(ABC):
    """Abstract contract for evaluating a path expression against a record."""

    @abstractmethod
    def evaluate(self, record: ResourceRecord, path: str) -> list[Any]:
        """Evaluate ``path`` on ``record``.

        Returns:
            list[Any]: Zero or more values. Identifiers are returned as
            IdValue and references as ReferenceValue.
        """
        pass

    def evaluate_first(self, record: ResourceRecord, path: str) -> Optional[Any]:
        """Evaluate ``path`` and return the first value, or None."""
        values = self.evaluate(record, path)
        return values[0] if values else None


class CodeExtractorPort(ABC):
    """Abstract contract for turning path results into Code values."""

    @abstractmethod
    def from_values(self, values: list[Any]) -> list[Code]:
        """Extract Codes from path evaluation results.

        Returns:
            list[Code]: Extracted codes (empty list if none)
        """
        pass


class TerminologyPort(ABC):
    """Abstract contract for value set membership checks."""

    @abstractmethod
    def is_member(self, code: Code, value_set_id: str) -> bool:
        """Check whether ``code`` is a member of value set ``value_set_id``.

        Raises:
            TerminologyError: If the membership question cannot be answered
        """
        pass


class LibrarySourcePort(ABC):
    """Abstract contract for locating logic library source text."""

    @abstractmethod
    def get_library_source(self, identifier: VersionedIdentifier) -> Optional[str]:
        """Return library source text, or None if the library is unknown."""
        pass


# ============================================================================
# Retrieve Port
# ============================================================================

class RetrievePort(ABC):
    """Abstract contract implemented by every retriever variant.

    Key Principles:
        - Never returns None: "no data" is an empty list
        - Never mutates the records it returns
        - Synchronous and free of shared mutable state

    Example Usage:
        ```python
        retriever = PriorityRetriever([primary, fallback])
        records = retriever.retrieve(Query(
            context_name="Patient",
            context_path="subject",
            context_value="patient-1",
            data_type="Observation",
        ))
        ```
    """

    @abstractmethod
    def retrieve(self, query: Query) -> list[ResourceRecord]:
        """Retrieve the records matching ``query``.

        Parameters:
            query: Immutable retrieve request

        Returns:
            list[ResourceRecord]: Matching records, possibly empty, never None
        """
        pass
