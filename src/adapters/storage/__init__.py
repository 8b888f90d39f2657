"""Storage adapters for Comment-Sieve.

This module contains storage adapters that implement the CommentStoragePort
interface for persisting accepted comments and listing them back.
"""

from src.adapters.storage.duckdb_adapter import DuckDBCommentAdapter
from src.adapters.storage.memory_adapter import InMemoryCommentAdapter

__all__ = ["DuckDBCommentAdapter", "InMemoryCommentAdapter"]
