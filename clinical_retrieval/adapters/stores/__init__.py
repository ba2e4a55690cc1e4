"""Resource store adapters for Clinical-Retrieval.

This module contains the adapters that implement ResourceStorePort and a
factory that selects one for a configured data source.
"""

from pathlib import Path
from typing import Optional

from clinical_retrieval.adapters.stores.bundle_store import BundleResourceStore
from clinical_retrieval.adapters.stores.duckdb_store import DuckDBResourceStore
from clinical_retrieval.domain.ports import ResourceStorePort, SourceNotFoundError, UnsupportedSourceError

__all__ = ["BundleResourceStore", "DuckDBResourceStore", "get_store"]

DUCKDB_EXTENSIONS = (".duckdb", ".db")


def get_store(source: str, source_type: Optional[str] = None) -> ResourceStorePort:
    """Factory function to get the appropriate resource store for a source.

    Parameters:
        source: File or directory path
        source_type: "bundle" or "duckdb"; inferred from the path when omitted

    Returns:
        ResourceStorePort: Store instance for the source

    Raises:
        SourceNotFoundError: If the source does not exist
        UnsupportedSourceError: If no adapter can handle the source

    Example Usage:
        ```python
        store = get_store("data/patient-bundle.json")
        store = get_store("data/extract.duckdb")
        store = get_store("data/bundles/", source_type="bundle")
        ```
    """
    source_path = Path(source)
    if not source_path.exists():
        raise SourceNotFoundError(f"Data source not found: {source}", source=source)

    if source_type is None:
        if source_path.suffix.lower() in DUCKDB_EXTENSIONS:
            source_type = "duckdb"
        elif BundleResourceStore.can_load(source):
            source_type = "bundle"
        else:
            raise UnsupportedSourceError(
                f"No adapter found for source: {source}. Supported formats: JSON bundle, bundle directory, DuckDB",
                source=source
            )

    if source_type == "duckdb":
        return DuckDBResourceStore(db_path=str(source_path), read_only=True)

    if source_type == "bundle":
        if source_path.is_dir():
            return BundleResourceStore.from_directory(source_path)
        return BundleResourceStore.from_file(source_path)

    raise UnsupportedSourceError(f"Unknown source type: {source_type}", source=source)
