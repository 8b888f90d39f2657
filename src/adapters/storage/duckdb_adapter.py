"""DuckDB Storage Adapter.

This adapter implements the CommentStoragePort contract for persisting
accepted comments to DuckDB, an in-process database that runs either against
a file or entirely in memory.

Security Impact:
    - Only rows built from accepted comments can be persisted
    - Every statement is parameterized; listing ids are never interpolated
    - The comment identifier is the primary key, so duplicates are refused

Architecture:
    - Implements CommentStoragePort (Hexagonal Architecture)
    - Isolated from domain core - only depends on ports and row shapes
    - Inserts run in a transaction and return the stored row (RETURNING)
"""

import logging
import uuid
from decimal import Decimal
from pathlib import Path
from typing import Optional

import duckdb

from src.domain.ports import CommentStoragePort, Result, StorageError
from src.domain.row_converter import (
    ListingCommentRow,
    NullableNumeric,
    NullableUUID,
    PostCommentRow,
)
from src.infrastructure.config_manager import DatabaseConfig

logger = logging.getLogger(__name__)

_COLUMNS = "comment_id, listing_id, user_ip, user_id, username, comment_text, created_epoch"


class DuckDBCommentAdapter(CommentStoragePort):
    """DuckDB implementation of CommentStoragePort.

    Parameters:
        db_config: DatabaseConfig from configuration manager (preferred)
        db_path: Path to DuckDB database file (or ':memory:' for in-memory)

    Example Usage:
        ```python
        from src.infrastructure.config_manager import get_database_config

        adapter = DuckDBCommentAdapter(db_config=get_database_config())
        result = adapter.initialize_schema()
        if result.is_success():
            result = adapter.persist(row)
        ```
    """

    def __init__(
        self,
        db_config: Optional[DatabaseConfig] = None,
        db_path: Optional[str] = None
    ):
        """Initialize DuckDB adapter.

        Note:
            If both db_config and db_path are provided, db_config takes precedence.
            If neither is provided, defaults to in-memory database.
        """
        if db_config:
            if db_config.db_type != "duckdb":
                raise StorageError(
                    f"DatabaseConfig type '{db_config.db_type}' does not match DuckDB adapter",
                    operation="__init__"
                )
            self.db_path = db_config.db_path or ":memory:"
        else:
            self.db_path = db_path or ":memory:"

        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialized = False

        if self.db_path != ":memory:":
            db_path_obj = Path(self.db_path)
            if not db_path_obj.parent.exists():
                raise StorageError(
                    f"Database directory does not exist: {db_path_obj.parent}",
                    operation="__init__"
                )

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create the DuckDB connection (created lazily, then reused)."""
        if self._connection is None:
            try:
                self._connection = duckdb.connect(self.db_path)
                logger.info(f"Connected to DuckDB database: {self.db_path}")
            except duckdb.Error as e:
                raise StorageError(
                    f"Failed to connect to DuckDB: {str(e)}",
                    operation="connect",
                    details={"db_path": self.db_path}
                ) from e
        return self._connection

    def initialize_schema(self) -> Result[None]:
        """Create the comments table and its listing index.

        Returns:
            Result[None]: Success or failure result
        """
        try:
            conn = self._get_connection()
            conn.execute("""
                CREATE TABLE IF NOT EXISTS comments (
                    comment_id UUID PRIMARY KEY,
                    listing_id VARCHAR(200) NOT NULL,
                    user_ip VARCHAR(45) NOT NULL,
                    user_id VARCHAR(50) NOT NULL,
                    username VARCHAR(50) NOT NULL,
                    comment_text VARCHAR(300) NOT NULL,
                    created_epoch BIGINT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_comments_listing ON comments (listing_id)")
            self._initialized = True
            logger.info("Initialized DuckDB comment schema")
            return Result.success_result(None)
        except (duckdb.Error, StorageError) as e:
            error_msg = f"Failed to initialize schema: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="initialize_schema"),
                error_type="StorageError"
            )

    def persist(self, row: PostCommentRow) -> Result[PostCommentRow]:
        """Insert one comment row and return it as stored.

        Returns:
            Result[PostCommentRow]: Stored row or StorageError failure
        """
        if not row.comment_id.valid or row.extract.value is None or not row.extract.valid:
            return Result.failure_result(
                StorageError("Row has a null comment_id or timestamp", operation="persist"),
                error_type="StorageError"
            )
        comment_id = str(uuid.UUID(bytes=row.comment_id.value))

        try:
            if not self._initialized:
                init_result = self.initialize_schema()
                if not init_result.is_success():
                    return init_result

            conn = self._get_connection()
            conn.begin()
            try:
                stored = conn.execute(
                    f"""
                    INSERT INTO comments ({_COLUMNS})
                    VALUES (CAST(? AS UUID), ?, ?, ?, ?, ?, ?)
                    RETURNING {_COLUMNS}
                    """,
                    [
                        comment_id,
                        row.listing_id,
                        row.user_ip,
                        row.user_id,
                        row.username,
                        row.comment_text,
                        int(row.extract.value),
                    ]
                ).fetchone()
                conn.commit()
            except duckdb.Error:
                conn.rollback()
                raise

            logger.info(f"Persisted comment for listing_id: {row.listing_id}")
            return Result.success_result(PostCommentRow(
                comment_id=NullableUUID(value=uuid.UUID(str(stored[0])).bytes, valid=True),
                listing_id=stored[1],
                user_ip=stored[2],
                user_id=stored[3],
                username=stored[4],
                comment_text=stored[5],
                extract=NullableNumeric(value=Decimal(stored[6]), valid=True),
            ))

        except (duckdb.Error, StorageError) as e:
            error_msg = f"Failed to persist comment: {str(e)}"
            logger.error(error_msg)
            return Result.failure_result(
                StorageError(error_msg, operation="persist", details={"comment_id": comment_id}),
                error_type="StorageError",
                error_details={"comment_id": comment_id}
            )

    def fetch_by_listing(self, listing_id: str) -> Result[list[ListingCommentRow]]:
        """Fetch a listing's comments, newest first.

        Returns:
            Result[list[ListingCommentRow]]: Rows (possibly empty) or failure
        """
        try:
            if not self._initialized:
                init_result = self.initialize_schema()
                if not init_result.is_success():
                    return init_result

            records = self._get_connection().execute(
                f"SELECT {_COLUMNS} FROM comments WHERE listing_id = ? ORDER BY created_epoch DESC",
                [listing_id]
            ).fetchall()
        except (duckdb.Error, StorageError) as e:
            error_msg = f"Failed to fetch comments: {str(e)}"
            logger.error(error_msg)
            return Result.failure_result(
                StorageError(error_msg, operation="fetch_by_listing", details={"listing_id": listing_id}),
                error_type="StorageError"
            )

        return Result.success_result([
            ListingCommentRow(
                comment_id=uuid.UUID(str(record[0])).bytes,
                listing_id=record[1],
                user_ip=record[2],
                user_id=record[3],
                username=record[4],
                comment_text=record[5],
                extract=int(record[6]),
            )
            for record in records
        ])

    def close(self) -> None:
        """Close storage connection and release resources."""
        if self._connection is not None:
            try:
                self._connection.close()
                logger.info("Closed DuckDB connection")
            except duckdb.Error as e:
                logger.warning(f"Error closing connection: {str(e)}")
            finally:
                self._connection = None
                self._initialized = False
