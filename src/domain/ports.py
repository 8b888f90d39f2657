"""Domain Ports - Result Type, Error Taxonomy and Storage Contract.

This module defines what the domain core needs from the outside world and how
it reports failure. Following Hexagonal Architecture, the domain declares the
storage contract; adapters (in-memory, DuckDB) decide how rows are kept.

Security Impact:
    - Storage adapters only ever receive rows produced from accepted, sanitized
      and redacted comments
    - Error messages name fields and rules, never the submitted values
    - Rejections travel as Result objects so callers cannot forget to check them

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - A single exception root (CommentSieveError) with one branch per concern:
      identifiers, submissions, row conversion and storage
    - Result[T] carries success or failure across the storage port and the
      application facade
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, Optional, Sequence, TypeVar, Union

from src.domain.enums import ViolationCode

if TYPE_CHECKING:
    from src.domain.row_converter import ListingCommentRow, PostCommentRow
    from src.domain.validation import FieldViolation

# Type variable for Result generic
T = TypeVar('T')


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error message (only present if success=False)
        error_type: Type of error (SubmissionRejected, StorageError, etc.)
        error_details: Additional error context (violations, listing_id, etc.)

    Example:
        ```python
        result = service.submit_comment(...)
        if result.is_success():
            render(result.value)
        else:
            for violation in result.error_details["violations"]:
                ...
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result.

        Parameters:
            value: The successful result value

        Returns:
            Result: Success result with the value
        """
        return cls(success=True, value=value)

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
            error_type: Type of error; defaults to the exception class name
            error_details: Additional context for the caller

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

class CommentSieveError(Exception):
    """Base exception for every error raised by the comment engine."""
    pass


# --- Time-ordered identifiers ------------------------------------------------

class IdentifierError(CommentSieveError):
    """Raised when a candidate identifier fails time-ordered validation.

    Attributes:
        code: Violation code reported when this error surfaces during
              field validation
    """

    code: ViolationCode = ViolationCode.MALFORMED_IDENTIFIER


class MalformedIdentifierError(IdentifierError):
    """The candidate is not a syntactically valid UUID."""

    code = ViolationCode.MALFORMED_IDENTIFIER


class WrongVersionError(IdentifierError):
    """The candidate parses but its version nibble is not 7."""

    code = ViolationCode.WRONG_VERSION


class TimestampTooOldError(IdentifierError):
    """The embedded timestamp precedes the reference instant."""

    code = ViolationCode.TIMESTAMP_TOO_OLD


class TimestampTooNewError(IdentifierError):
    """The embedded timestamp lies beyond now plus the skew allowance."""

    code = ViolationCode.TIMESTAMP_TOO_NEW


# --- Submissions -------------------------------------------------------------

class ValidationError(CommentSieveError):
    """Raised when a submission cannot be accepted.

    Attributes:
        source: Where the submission came from (optional)
        details: Additional error details or validation messages
    """

    def __init__(self, message: str, source: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.source = source
        self.details = details or {}


class SubmissionRejectedError(ValidationError):
    """A submission was rejected by the validation pipeline.

    Attributes:
        violations: Every field violation collected at the rejecting stage
    """

    def __init__(self, violations: Sequence['FieldViolation'], source: Optional[str] = None):
        fields = sorted({v.field for v in violations})
        super().__init__(
            f"Submission rejected: {len(violations)} violation(s) on {', '.join(fields) or 'submission'}",
            source=source,
            details={"violations": [v.as_dict() for v in violations]}
        )
        self.violations = tuple(violations)


# --- Row conversion ----------------------------------------------------------

class TransformationError(CommentSieveError):
    """Raised when a storage row cannot be turned into a canonical Comment.

    Attributes:
        field_name: The row field responsible for the failure, if any
    """

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message)
        self.field_name = field_name


class UnsupportedShapeError(TransformationError):
    """The value handed to the converter is not a record type."""
    pass


class MissingFieldError(TransformationError):
    """A required field is absent from the row."""

    def __init__(self, field_name: str):
        super().__init__(f"missing {field_name} field", field_name=field_name)


class TypeMismatchError(TransformationError):
    """A field holds a value of the wrong kind (e.g. text where a UUID is expected)."""
    pass


class InvalidIdentifierError(TransformationError):
    """The identifier is present but flagged invalid or fails identifier rules."""
    pass


class StaleTimestampError(TransformationError):
    """The stored timestamp is null or older than the reference instant."""
    pass


# --- Storage -----------------------------------------------------------------

class StorageError(CommentSieveError):
    """Raised when a storage adapter cannot complete an operation.

    Attributes:
        operation: The adapter operation that failed (connect, persist, ...)
        details: Non-sensitive context (listing_id, db_path, ...)
    """

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.operation = operation
        self.details = details or {}


# ============================================================================
# Storage Port
# ============================================================================

class CommentStoragePort(ABC):
    """Abstract contract for comment storage adapters.

    The domain hands adapters rows produced by the row converter and gets rows
    back; adapters never see pydantic models and never construct Comments.
    Storage is always injected, never a process-wide singleton.

    Security Impact:
        - Only accepted comments reach persist()
        - Queries must be parameterized; listing ids are never interpolated
        - Adapters report failures through Result, not by raising

    Example Usage:
        ```python
        storage = InMemoryCommentAdapter()
        storage.initialize_schema()
        stored = storage.persist(comment_to_row(comment, PostCommentRow))
        rows = storage.fetch_by_listing("12345")
        ```
    """

    @abstractmethod
    def initialize_schema(self) -> Result[None]:
        """Create tables and indexes if they do not already exist.

        Returns:
            Result[None]: Success or failure result
        """
        pass

    @abstractmethod
    def persist(self, row: 'PostCommentRow') -> Result['PostCommentRow']:
        """Store one comment row and return the row as the store now holds it.

        Parameters:
            row: Insert-shaped row built from an accepted Comment

        Returns:
            Result[PostCommentRow]: The stored row, or a StorageError failure
            (for example when the comment identifier already exists)
        """
        pass

    @abstractmethod
    def fetch_by_listing(self, listing_id: str) -> Result[list['ListingCommentRow']]:
        """Fetch every comment row attached to a listing, newest first.

        Parameters:
            listing_id: The listing whose comments are requested

        Returns:
            Result[list[ListingCommentRow]]: Possibly empty list of rows
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release any resources held by the adapter."""
        pass
