"""In-Memory Storage Adapter.

This adapter implements the CommentStoragePort contract with a per-instance,
lock-guarded dictionary. It is the default adapter for development and tests;
each instance starts empty, so two services never share comments by accident.

Architecture:
    - Implements CommentStoragePort (Hexagonal Architecture)
    - Stores rows in the listing-query shape, keyed by listing id
    - Thread-safe: every read and write holds the instance lock
"""

import logging
import threading
import uuid
from typing import Optional

from src.domain.ports import CommentStoragePort, Result, StorageError
from src.domain.row_converter import ListingCommentRow, PostCommentRow

logger = logging.getLogger(__name__)


class InMemoryCommentAdapter(CommentStoragePort):
    """Dictionary-backed comment storage.

    Parameters:
        seed_rows: Optional rows to preload (listing-query shape)

    Example Usage:
        ```python
        storage = InMemoryCommentAdapter()
        storage.initialize_schema()
        result = storage.persist(row)
        ```
    """

    def __init__(self, seed_rows: Optional[list[ListingCommentRow]] = None):
        self._rows: dict[str, list[ListingCommentRow]] = {}
        self._ids: set[bytes] = set()
        self._lock = threading.Lock()
        for row in seed_rows or []:
            self._store(row)

    def _store(self, row: ListingCommentRow) -> None:
        self._rows.setdefault(row.listing_id, []).append(row)
        self._ids.add(row.comment_id)

    def initialize_schema(self) -> Result[None]:
        """Nothing to create; present for parity with database adapters."""
        return Result.success_result(None)

    def persist(self, row: PostCommentRow) -> Result[PostCommentRow]:
        """Store one comment row.

        Returns:
            Result[PostCommentRow]: The row as stored, or a StorageError
            failure if the row is incomplete or its id is already stored
        """
        if not row.comment_id.valid or row.extract.value is None or not row.extract.valid:
            error = StorageError("Row has a null comment_id or timestamp", operation="persist")
            return Result.failure_result(error, error_type="StorageError")

        stored = ListingCommentRow(
            comment_id=row.comment_id.value,
            listing_id=row.listing_id,
            user_ip=row.user_ip,
            user_id=row.user_id,
            username=row.username,
            comment_text=row.comment_text,
            extract=int(row.extract.value),
        )
        with self._lock:
            if stored.comment_id in self._ids:
                comment_id = str(uuid.UUID(bytes=stored.comment_id))
                error = StorageError(
                    f"Comment {comment_id} already exists",
                    operation="persist",
                    details={"comment_id": comment_id}
                )
                logger.warning(str(error))
                return Result.failure_result(error, error_type="StorageError", error_details=error.details)
            self._store(stored)

        logger.debug(f"Stored comment for listing_id: {row.listing_id}")
        return Result.success_result(row)

    def fetch_by_listing(self, listing_id: str) -> Result[list[ListingCommentRow]]:
        """Return the listing's rows, newest first (ties keep insertion order)."""
        with self._lock:
            rows = list(self._rows.get(listing_id, []))
        rows.sort(key=lambda r: r.extract, reverse=True)
        return Result.success_result(rows)

    def count(self) -> int:
        with self._lock:
            return len(self._ids)

    def close(self) -> None:
        """Drop every stored row."""
        with self._lock:
            self._rows.clear()
            self._ids.clear()
