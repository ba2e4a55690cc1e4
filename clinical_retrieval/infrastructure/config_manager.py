"""Configuration Manager for Retrieval Sources and Terminology.

This module loads the configuration of the retrieval engine: the ordered list
of data sources consulted by the PriorityRetriever, and the terminology
provider used for value set membership.

Security Impact:
    - Terminology headers (usually credentials) are stored as SecretStr and
      never logged or exposed in error messages
    - Validates configuration before use

Architecture:
    - Follows Hexagonal Architecture: Infrastructure layer isolated from domain
    - Supports environment variables (optionally from a .env file) and JSON files
    - Type-safe configuration using Pydantic models
    - Fail-fast validation prevents runtime errors
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

logger = logging.getLogger(__name__)

SUPPORTED_SOURCE_TYPES = ["bundle", "duckdb"]
SUPPORTED_FHIR_VERSIONS = ["2.0.0", "3.0.0", "4.0.0"]
SUPPORTED_FAILURE_POLICIES = ["fail", "exclude"]


class DataSourceConfig(BaseModel):
    """Configuration of one data source.

    Parameters:
        path: File or directory path of the source
        source_type: "bundle" or "duckdb" (inferred from the path when omitted)
        name: Optional display name
    """

    path: str = Field(..., description="File or directory path of the source")
    source_type: Optional[str] = Field(None, description="Source type (bundle, duckdb)")
    name: Optional[str] = Field(None, description="Display name")

    @field_validator("source_type")
    @classmethod
    def validate_source_type(cls, v: Optional[str]) -> Optional[str]:
        """Validate source type."""
        if v is None:
            return v
        if v.lower() not in SUPPORTED_SOURCE_TYPES:
            raise ValueError(f"Unsupported source type: {v}. Supported: {SUPPORTED_SOURCE_TYPES}")
        return v.lower()

    @model_validator(mode='after')
    def infer_source_type(self) -> 'DataSourceConfig':
        """Infer source type and name from the path when they are missing."""
        if self.source_type is None:
            suffix = Path(self.path).suffix.lower()
            self.source_type = "duckdb" if suffix in (".duckdb", ".db") else "bundle"
        if self.name is None:
            self.name = Path(self.path).name or self.path
        return self


class RetrievalConfig(BaseModel):
    """Retrieval engine configuration.

    Parameters:
        sources: Ordered data sources (first non-empty answer wins)
        terminology_uri: File path, file: URI or terminology server base URL
        fhir_version: FHIR version of the terminology provider
        terminology_headers: "Name: value" headers for a remote server (secret)
        terminology_failure_policy: "fail" or "exclude" for failed membership checks
        request_timeout: Timeout for terminology requests in seconds
    """

    sources: List[DataSourceConfig] = Field(default_factory=list, description="Ordered data sources")
    terminology_uri: Optional[str] = Field(None, description="Terminology location")
    fhir_version: str = Field(default="4.0.0", description="FHIR version")
    terminology_headers: List[SecretStr] = Field(default_factory=list, description="Terminology headers (secret)")
    terminology_failure_policy: str = Field(default="fail", description="Failed membership check policy")
    request_timeout: float = Field(default=30.0, gt=0, description="Terminology request timeout (seconds)")

    @field_validator("fhir_version")
    @classmethod
    def validate_fhir_version(cls, v: str) -> str:
        if v not in SUPPORTED_FHIR_VERSIONS:
            raise ValueError(f"Unsupported FHIR version: {v}. Supported: {SUPPORTED_FHIR_VERSIONS}")
        return v

    @field_validator("terminology_failure_policy")
    @classmethod
    def validate_failure_policy(cls, v: str) -> str:
        if v.lower() not in SUPPORTED_FAILURE_POLICIES:
            raise ValueError(f"Unsupported failure policy: {v}. Supported: {SUPPORTED_FAILURE_POLICIES}")
        return v.lower()

    @field_validator("terminology_uri")
    @classmethod
    def empty_uri_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    def header_values(self) -> list[str]:
        """Return terminology headers as plain strings.

        Security Impact:
            - Values are retrieved from SecretStr but not logged
        """
        return [header.get_secret_value() for header in self.terminology_headers]


class ConfigManager:
    """Configuration manager for the retrieval engine.

    Example Usage:
        ```python
        # Load from environment variables
        config = ConfigManager.from_environment()
        retrieval_config = config.get_retrieval_config()

        # Load from file
        config = ConfigManager.from_file("retrieval.json")
        retrieval_config = config.get_retrieval_config()
        ```
    """

    def __init__(self, config_data: Dict[str, Any]):
        """Initialize configuration manager.

        Parameters:
            config_data: Configuration dictionary
        """
        self._config_data = config_data
        self._retrieval_config: Optional[RetrievalConfig] = None

    @classmethod
    def from_environment(cls) -> 'ConfigManager':
        """Load configuration from environment variables.

        Environment Variables:
            - CR_SOURCES: Comma-separated data source paths, in priority order
            - CR_TERMINOLOGY_URI: Terminology file/directory or server URL
            - CR_FHIR_VERSION: FHIR version (default 4.0.0)
            - CR_TERMINOLOGY_HEADERS: Semicolon-separated "Name: value" headers (secret)
            - CR_TERMINOLOGY_FAILURE_POLICY: fail (default) or exclude
            - CR_REQUEST_TIMEOUT: Terminology request timeout in seconds

        Returns:
            ConfigManager instance

        Security Impact:
            - Credentials are read from environment (never logged)
            - .env file is automatically loaded if present in project root
        """
        env_path = Path(__file__).parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment variables from {env_path}")

        sources = [s.strip() for s in os.getenv("CR_SOURCES", "").split(",") if s.strip()]
        headers = [h.strip() for h in os.getenv("CR_TERMINOLOGY_HEADERS", "").split(";") if h.strip()]

        config_data = {
            "retrieval": {
                "sources": [{"path": source} for source in sources],
                "terminology_uri": os.getenv("CR_TERMINOLOGY_URI"),
                "fhir_version": os.getenv("CR_FHIR_VERSION", "4.0.0"),
                "terminology_headers": headers,
                "terminology_failure_policy": os.getenv("CR_TERMINOLOGY_FAILURE_POLICY", "fail"),
                "request_timeout": float(os.getenv("CR_REQUEST_TIMEOUT", "30")),
            }
        }

        return cls(config_data)

    @classmethod
    def from_file(cls, config_path: str) -> 'ConfigManager':
        """Load configuration from a JSON file.

        Parameters:
            config_path: Path to configuration file

        Returns:
            ConfigManager instance

        Security Impact:
            - File permissions should be restricted (600) when headers hold credentials

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        stat_info = config_file.stat()
        if stat_info.st_mode & 0o077 != 0:
            logger.warning(
                f"Configuration file has overly permissive permissions: {config_path}. "
                "Consider setting to 600 for credential files."
            )

        try:
            with open(config_file, 'r') as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {str(e)}")

        return cls(config_data)

    def get_retrieval_config(self) -> RetrievalConfig:
        """Get retrieval configuration.

        Returns:
            RetrievalConfig instance (validated)
        """
        if self._retrieval_config is None:
            self._retrieval_config = RetrievalConfig(**self._config_data.get("retrieval", {}))
        return self._retrieval_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Parameters:
            key: Configuration key (supports dot notation, e.g., "retrieval.fhir_version")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self._config_data

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default


# ============================================================================
# Convenience Functions
# ============================================================================

def get_retrieval_config() -> RetrievalConfig:
    """Convenience function to get retrieval configuration from environment."""
    config_manager = ConfigManager.from_environment()
    return config_manager.get_retrieval_config()
