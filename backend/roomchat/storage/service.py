"""DuckDB-backed storage handle shared by the durable services.

This module owns the single embedded DuckDB connection used by the room
directory, the message ledger and the participant registry. DuckDB logs
every write to its write-ahead log before checkpointing, so readers never
observe a half-applied write.

Unlike a per-path registry, exactly one ``StorageService`` is built at
startup (see ``roomchat.main``) and passed to every service that needs it.

Thread Safety:
    The DuckDB connection is NOT thread-safe. The service is designed for
    use from a single asyncio event loop.

Usage:
    storage = StorageService("data/chat.duckdb")
    storage.initialize()
    rows = storage.fetchall("SELECT * FROM rooms")
"""
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

import duckdb

from roomchat.errors import StorageError

from .schema import SCHEMA_STATEMENTS

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"

# Largest value a BIGINT column (timestamps, offsets) can hold
MAX_BIGINT = 2**63 - 1


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class StorageService:
    """Explicit handle on the embedded DuckDB database.

    Attributes:
        db_path: Path to the DuckDB file, or ``:memory:``.
    """

    def __init__(self, db_path: str = MEMORY_DB) -> None:
        self.db_path = db_path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get the DuckDB connection, creating if needed."""
        if self._connection is None:
            if self.db_path != MEMORY_DB:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            try:
                self._connection = duckdb.connect(self.db_path)
            except duckdb.Error as exc:
                raise StorageError("Storage unavailable", cause=exc) from exc
            logger.info("[Storage] Opened database at %s", self.db_path)
        return self._connection

    def initialize(self) -> None:
        """Provision the schema. Safe to call multiple times."""
        conn = self._get_connection()
        try:
            for statement in SCHEMA_STATEMENTS:
                conn.execute(statement)
        except duckdb.Error as exc:
            raise StorageError("Failed to provision schema", cause=exc) from exc
        logger.info("[Storage] Schema ready")

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.info("[Storage] Closed database at %s", self.db_path)

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    # -----------------------------------------------------------------------
    # Query helpers
    # -----------------------------------------------------------------------

    def execute(self, sql: str, params: Sequence[Any] = ()) -> duckdb.DuckDBPyConnection:
        """Run a statement, wrapping DuckDB failures in StorageError."""
        conn = self._get_connection()
        try:
            return conn.execute(sql, list(params))
        except duckdb.Error as exc:
            logger.error("[Storage] Statement failed: %s", exc)
            raise StorageError("Storage operation failed", cause=exc) from exc

    def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[tuple]:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> List[tuple]:
        return self.execute(sql, params).fetchall()

    @contextmanager
    def transaction(self) -> Iterator["StorageService"]:
        """Run a block of statements atomically.

        Rolls back on any exception and re-raises it.
        """
        conn = self._get_connection()
        conn.execute("BEGIN TRANSACTION")
        try:
            yield self
        except Exception:
            conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")
