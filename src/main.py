"""Comment-Sieve application entry point.

This module wires the domain services to configured infrastructure and exposes
CommentService, the facade a web layer calls to post and list comments and to
issue submitter identifiers.

Security Impact:
    - Every posted comment passes the full validation pipeline before it is
      converted to a storage row
    - Rows read back are re-validated by the row converter
    - Only the public projection (no address, no submitter id) is returned

Architecture:
    - Follows Hexagonal Architecture principles
    - Storage adapter is selected from configuration and injected
    - The identifier validator's clock is the service clock, so minted ids,
      comment timestamps and the validation window always agree
"""

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from src.adapters.storage import DuckDBCommentAdapter, InMemoryCommentAdapter
from src.domain.comment_record import Comment, PublicComment, to_public_list
from src.domain.identifiers import IdentifierValidator, mint_identifier
from src.domain.pipeline import ValidationPipeline
from src.domain.ports import (
    CommentStoragePort,
    Result,
    StorageError,
    SubmissionRejectedError,
    TransformationError,
)
from src.domain.row_converter import PostCommentRow, comment_to_row, row_to_comment, rows_to_comments
from src.infrastructure.config_manager import DatabaseConfig
from src.infrastructure.logging_config import setup_logging
from src.infrastructure.redaction_logger import RedactionLogger, get_redaction_logger
from src.infrastructure.settings import Settings, settings

logger = logging.getLogger(__name__)


def configure_logging(app_settings: Optional[Settings] = None) -> None:
    """Configure root logging from settings."""
    app_settings = app_settings or settings
    setup_logging(use_json=app_settings.log_json, log_level=app_settings.log_level)


def create_identifier_validator(app_settings: Optional[Settings] = None) -> IdentifierValidator:
    """Build the identifier validator from the configured time window."""
    app_settings = app_settings or settings
    return IdentifierValidator(
        reference_instant=app_settings.uuid_reference_instant,
        skew_allowance=app_settings.clock_skew_allowance
    )


def create_storage_adapter(db_config: Optional[DatabaseConfig] = None) -> CommentStoragePort:
    """Create storage adapter based on configuration.

    Parameters:
        db_config: Storage configuration; loaded from settings when omitted

    Returns:
        CommentStoragePort: Configured storage adapter instance
    """
    db_config = db_config or settings.db_config

    if db_config.db_type == "duckdb":
        logger.info(f"Initializing DuckDB adapter with path: {db_config.db_path or ':memory:'}")
        return DuckDBCommentAdapter(db_config=db_config)
    if db_config.db_type == "memory":
        logger.info("Initializing in-memory comment adapter")
        return InMemoryCommentAdapter()
    raise ValueError(f"Unsupported database type: {db_config.db_type}")


class CommentService:
    """Application facade for posting and listing comments.

    Parameters:
        storage: Injected storage adapter
        identifier_validator: Time-window validator; its clock is also used to
            stamp comments and mint identifiers
        redaction_logger: Optional audit logger for redactions

    Example Usage:
        ```python
        service = create_comment_service()
        user_id = service.generate_user_id()
        result = service.submit_comment("12345", user_id, "alice", "Nice place!", "203.0.113.7")
        if result.is_success():
            print(result.value.comment_id)
        ```
    """

    def __init__(
        self,
        storage: CommentStoragePort,
        identifier_validator: Optional[IdentifierValidator] = None,
        redaction_logger: Optional[RedactionLogger] = None
    ):
        self.storage = storage
        self.identifier_validator = identifier_validator or IdentifierValidator()
        self.pipeline = ValidationPipeline.with_identifier_validator(
            self.identifier_validator,
            redaction_logger=redaction_logger
        )

    def _now_seconds(self) -> int:
        return int(self.identifier_validator.clock().timestamp())

    def generate_user_id(self) -> str:
        """Mint a new submitter identifier."""
        return str(mint_identifier(at=self.identifier_validator.clock()))

    def submit_comment(
        self,
        listing_id: str,
        user_id: str,
        username: str,
        comment_text: str,
        user_ip: str
    ) -> Result[PublicComment]:
        """Validate, clean and store one comment.

        Parameters:
            listing_id: Target listing reference (from the form)
            user_id: Submitter identifier (from the form)
            username: Display name (from the form)
            comment_text: Comment body (from the form)
            user_ip: Submitter address as seen by the server

        Returns:
            Result[PublicComment]: The stored comment's public view, or a
            failure with error_type "SubmissionRejected" (violations in
            error_details), "StorageError" or a conversion error name
        """
        comment_id = mint_identifier(at=self.identifier_validator.clock())
        outcome = self.pipeline.run({
            "comment_id": comment_id,
            "listing_id": listing_id,
            "user_ip": user_ip,
            "user_id": user_id,
            "username": username,
            "comment_text": comment_text,
        })

        if outcome.rejected:
            error = SubmissionRejectedError(outcome.violations)
            return Result.failure_result(
                error,
                error_type="SubmissionRejected",
                error_details={**error.details, "stage": outcome.failed_stage.value}
            )

        try:
            comment = Comment.from_submission(
                outcome.submission,
                timestamp=self._now_seconds(),
                identifier_validator=self.identifier_validator
            )
        except PydanticValidationError as e:
            logger.error(f"Accepted submission failed canonical checks: {e.error_count()} error(s)")
            return Result.failure_result(
                "Accepted submission failed canonical identifier checks",
                error_type="InvalidIdentifier"
            )

        stored = self.storage.persist(comment_to_row(comment, PostCommentRow))
        if stored.is_failure():
            return Result.failure_result(
                stored.error,
                error_type=stored.error_type,
                error_details=stored.error_details
            )

        try:
            persisted = row_to_comment(stored.value, self.identifier_validator)
        except TransformationError as e:
            logger.error(f"Stored row for listing_id {listing_id} failed conversion: {e}")
            return Result.failure_result(e, error_details={"field": e.field_name})

        logger.info(f"Accepted comment for listing_id: {persisted.listing_id}")
        return Result.success_result(persisted.to_public())

    def list_comments(self, listing_id: str) -> Result[list[PublicComment]]:
        """List a listing's comments, newest first.

        An unknown listing yields an empty list, not a failure.
        """
        fetched = self.storage.fetch_by_listing(listing_id)
        if fetched.is_failure():
            return Result.failure_result(
                fetched.error,
                error_type=fetched.error_type,
                error_details=fetched.error_details
            )

        try:
            comments = rows_to_comments(fetched.value, self.identifier_validator)
        except TransformationError as e:
            return Result.failure_result(e, error_details={"listing_id": listing_id, "field": e.field_name})

        comments.sort(key=lambda c: c.timestamp, reverse=True)
        return Result.success_result(to_public_list(comments))


def create_comment_service(
    storage: Optional[CommentStoragePort] = None,
    app_settings: Optional[Settings] = None
) -> CommentService:
    """Build a CommentService from settings.

    Raises:
        StorageError: If the storage schema cannot be initialized
    """
    app_settings = app_settings or settings
    storage = storage or create_storage_adapter(app_settings.db_config)

    init_result = storage.initialize_schema()
    if init_result.is_failure():
        raise StorageError(init_result.error or "Schema initialization failed", operation="initialize_schema")

    redaction_logger = get_redaction_logger() if app_settings.redaction_logging_enabled else None
    return CommentService(
        storage=storage,
        identifier_validator=create_identifier_validator(app_settings),
        redaction_logger=redaction_logger
    )
