"""DuckDB Resource Store Adapter.

This adapter implements ResourceStorePort over a DuckDB table of FHIR resources,
an in-process OLAP database suited to large extracts that do not fit comfortably
in a single Bundle file.

Security Impact:
    - Resources are stored as JSON text and parsed with the standard JSON parser
    - All queries are parameterised
    - Database path is validated before connecting

Architecture:
    - Implements ResourceStorePort (Hexagonal Architecture)
    - Bulk loading goes through a pandas DataFrame registered as a DuckDB view
    - Reads use a per-call cursor so concurrent retrieve calls do not share one
"""

import json
import logging
from pathlib import Path
from threading import Lock
from typing import Optional

import duckdb
import pandas as pd

from clinical_retrieval.domain.ports import (
    ResourceRecord,
    ResourceStorePort,
    Result,
    StoreError,
)

logger = logging.getLogger(__name__)

RESOURCE_COLUMNS = ["resource_type", "resource_id", "position", "resource"]


class DuckDBResourceStore(ResourceStorePort):
    """DuckDB implementation of ResourceStorePort.

    Parameters:
        db_path: Path to DuckDB database file (or ':memory:' for in-memory)
        read_only: Open an existing database file read-only

    Raises:
        StoreError: If the database directory does not exist

    Example Usage:
        ```python
        store = DuckDBResourceStore(db_path="data/extract.duckdb")
        result = store.load_bundle(bundle)
        if result.is_success():
            observations = store.all_of_type("Observation")
        ```
    """

    def __init__(self, db_path: Optional[str] = None, read_only: bool = False):
        self.db_path = db_path or ":memory:"
        self.read_only = read_only and self.db_path != ":memory:"
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialized = False
        self._write_lock = Lock()
        self._connection_lock = Lock()

        # Validate db_path to prevent writing into missing directories
        if self.db_path != ":memory:":
            db_path_obj = Path(self.db_path)
            if not db_path_obj.parent.exists():
                raise StoreError(
                    f"Database directory does not exist: {db_path_obj.parent}",
                    operation="__init__"
                )

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create the DuckDB connection (created once, then shared by all threads)."""
        if self._connection is not None:
            return self._connection

        with self._connection_lock:
            if self._connection is None:
                try:
                    self._connection = duckdb.connect(self.db_path, read_only=self.read_only)
                    logger.info(f"Connected to DuckDB database: {self.db_path}")
                except Exception as e:
                    raise StoreError(
                        f"Failed to connect to DuckDB: {str(e)}",
                        operation="connect",
                        details={"db_path": self.db_path}
                    )
            return self._connection

    def initialize_schema(self) -> Result[None]:
        """Create the resources table and its index.

        Returns:
            Result[None]: Success or failure result
        """
        if self._initialized:
            return Result.success_result(None)

        try:
            conn = self._get_connection()
            with self._write_lock:
                if self._initialized:
                    return Result.success_result(None)
                if not self.read_only:
                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS resources (
                            resource_type VARCHAR NOT NULL,
                            resource_id VARCHAR,
                            position BIGINT NOT NULL,
                            resource VARCHAR NOT NULL
                        )
                    """)
                    conn.execute("CREATE INDEX IF NOT EXISTS idx_resources_type ON resources(resource_type)")

                self._initialized = True
            logger.info("Resource store schema initialized successfully")
            return Result.success_result(None)

        except Exception as e:
            error_msg = f"Failed to initialize schema: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StoreError(error_msg, operation="initialize_schema"),
                error_type="StoreError"
            )

    def load_resources(self, resources: list[ResourceRecord]) -> Result[int]:
        """Append resources to the store, preserving their order.

        Parameters:
            resources: FHIR resources; entries without a resourceType are skipped

        Returns:
            Result[int]: Number of resources loaded or error
        """
        rows = [r for r in resources if isinstance(r, dict) and r.get("resourceType")]
        skipped = len(resources) - len(rows)
        if skipped:
            logger.warning(f"Skipped {skipped} entries without a resourceType")
        if not rows:
            return Result.success_result(0)

        init_result = self.initialize_schema()
        if not init_result.is_success():
            return init_result

        with self._write_lock:
            try:
                conn = self._get_connection()
                start = conn.execute("SELECT COALESCE(MAX(position), -1) + 1 FROM resources").fetchone()[0]

                df = pd.DataFrame({
                    "resource_type": [r["resourceType"] for r in rows],
                    "resource_id": [r.get("id") for r in rows],
                    "position": range(start, start + len(rows)),
                    "resource": [json.dumps(r) for r in rows],
                }, columns=RESOURCE_COLUMNS)

                columns_str = ", ".join(RESOURCE_COLUMNS)
                conn.register("resources_df", df)
                try:
                    conn.execute(f"INSERT INTO resources ({columns_str}) SELECT {columns_str} FROM resources_df")
                finally:
                    conn.unregister("resources_df")

                logger.info(f"Loaded {len(rows)} resources into {self.db_path}")
                return Result.success_result(len(rows))

            except Exception as e:
                error_msg = f"Failed to load resources: {str(e)}"
                logger.error(error_msg, exc_info=True)
                return Result.failure_result(
                    StoreError(error_msg, operation="load_resources", details={"resource_count": len(rows)}),
                    error_type="StoreError"
                )

    def load_bundle(self, bundle: dict) -> Result[int]:
        """Append the entries of a FHIR Bundle to the store."""
        if not isinstance(bundle, dict) or bundle.get("resourceType") != "Bundle":
            return Result.failure_result(
                StoreError("Document is not a FHIR Bundle", operation="load_bundle"),
                error_type="StoreError"
            )

        resources = [
            entry["resource"] for entry in bundle.get("entry") or []
            if isinstance(entry, dict) and isinstance(entry.get("resource"), dict)
        ]
        return self.load_resources(resources)

    def all_of_type(self, data_type: str) -> list[ResourceRecord]:
        """Return every resource of ``data_type`` in load order.

        Raises:
            StoreError: If the query fails
        """
        init_result = self.initialize_schema()
        if not init_result.is_success():
            raise StoreError(init_result.error, operation="all_of_type")

        cursor = self._get_connection().cursor()
        try:
            rows = cursor.execute(
                "SELECT resource FROM resources WHERE resource_type = ? ORDER BY position",
                [data_type]
            ).fetchall()
        except Exception as e:
            raise StoreError(
                f"Failed to read {data_type} resources: {str(e)}",
                operation="all_of_type",
                details={"data_type": data_type}
            )
        finally:
            cursor.close()

        return [json.loads(row[0]) for row in rows]

    def count(self, data_type: Optional[str] = None) -> int:
        """Count stored resources, optionally of a single type."""
        init_result = self.initialize_schema()
        if not init_result.is_success():
            raise StoreError(init_result.error, operation="count")

        cursor = self._get_connection().cursor()
        try:
            if data_type is None:
                return cursor.execute("SELECT COUNT(*) FROM resources").fetchone()[0]
            return cursor.execute(
                "SELECT COUNT(*) FROM resources WHERE resource_type = ?", [data_type]
            ).fetchone()[0]
        finally:
            cursor.close()

    def describe(self) -> str:
        return f"DuckDBResourceStore({self.db_path})"

    def close(self) -> None:
        """Close storage connection and release resources."""
        with self._connection_lock:
            if self._connection is None:
                return
            try:
                self._connection.close()
                self._connection = None
                self._initialized = False
                logger.info("Closed DuckDB connection")
            except Exception as e:
                logger.warning(f"Error closing connection: {str(e)}")
