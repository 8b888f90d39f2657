"""Row/Model Conversion.

Translates between storage rows and the canonical Comment. Storage drivers
hand back rows whose identifier and timestamp columns differ in concrete type
(a nullable UUID wrapper and a NUMERIC from an insert-returning query; raw
bytes and an integer from a listing query; UUID objects from a DataFrame), so
inbound conversion reads any record-like value field by field and coerces each
column explicitly instead of trusting the driver's types.

Security Impact:
    - Identifiers read back from storage are re-checked against the
      time-ordered identifier rules before a Comment is built
    - Timestamps older than the reference instant are refused as stale
    - Batch conversion is all-or-nothing; one bad row fails the batch

Architecture:
    - Pure domain code; no storage driver is imported
    - Inbound: row_to_comment / rows_to_comments / frame_to_comments
    - Outbound: comment_to_row / comments_to_rows / comments_to_frame
"""

import logging
import numbers
import uuid
from dataclasses import dataclass, fields as dataclass_fields, is_dataclass
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

import pandas as pd
from pydantic import BaseModel, ValidationError as PydanticValidationError

from src.domain.comment_record import IDENTIFIER_VALIDATOR_KEY, Comment
from src.domain.identifiers import IdentifierValidator, default_identifier_validator
from src.domain.ports import (
    InvalidIdentifierError,
    MissingFieldError,
    StaleTimestampError,
    TransformationError,
    TypeMismatchError,
    UnsupportedShapeError,
)

logger = logging.getLogger(__name__)

_NIL_BYTES = bytes(16)

ROW_FIELDS = (
    "comment_id",
    "listing_id",
    "user_ip",
    "user_id",
    "username",
    "comment_text",
    "extract",
)
TEXT_FIELDS = ("listing_id", "user_ip", "user_id", "username", "comment_text")

_MISSING = object()


@dataclass(frozen=True)
class NullableUUID:
    """A UUID column value as returned by drivers that model SQL NULL.

    Attributes:
        value: The 16 raw identifier bytes
        valid: False when the column was NULL
    """

    value: bytes = _NIL_BYTES
    valid: bool = False


@dataclass(frozen=True)
class NullableNumeric:
    """A NUMERIC column value (e.g. ``EXTRACT(EPOCH FROM ...)``) that may be NULL."""

    value: Optional[Decimal] = None
    valid: bool = False


@dataclass(frozen=True)
class PostCommentRow:
    """Row returned by the insert-comment query (INSERT ... RETURNING)."""

    comment_id: NullableUUID
    listing_id: str
    user_ip: str
    user_id: str
    username: str
    comment_text: str
    extract: NullableNumeric


@dataclass(frozen=True)
class ListingCommentRow:
    """Row returned by the comments-by-listing query."""

    comment_id: bytes
    listing_id: str
    user_ip: str
    user_id: str
    username: str
    comment_text: str
    extract: int


RowType = Union[type[PostCommentRow], type[ListingCommentRow]]


# ============================================================================
# Inbound: row -> Comment
# ============================================================================

def _field_reader(row: Any) -> Callable[[str], Any]:
    """Return a lookup function for a record-like row.

    Raises:
        UnsupportedShapeError: If the row is not a record type
    """
    if isinstance(row, pd.Series):
        return lambda name: row[name] if name in row.index else _MISSING
    if isinstance(row, Mapping):
        return lambda name: row.get(name, _MISSING)

    if is_dataclass(row) and not isinstance(row, type):
        names = {f.name for f in dataclass_fields(row)}
    elif isinstance(row, tuple) and hasattr(row, "_fields"):
        names = set(row._fields)
    elif isinstance(row, BaseModel):
        names = set(type(row).model_fields)
    else:
        raise UnsupportedShapeError(f"input of type {type(row).__name__} is not a record")

    return lambda name: getattr(row, name) if name in names else _MISSING


def _coerce_identifier(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, NullableUUID):
        if not value.valid:
            raise InvalidIdentifierError("comment_id is not valid", field_name="comment_id")
        raw = value.value
    elif isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
    else:
        raise TypeMismatchError(
            f"comment_id is of type {type(value).__name__}, not an identifier",
            field_name="comment_id"
        )

    if len(raw) != 16:
        raise InvalidIdentifierError("comment_id is not 16 bytes long", field_name="comment_id")
    return uuid.UUID(bytes=raw)


def _coerce_timestamp(value: Any, reference_instant: int) -> int:
    if isinstance(value, NullableNumeric):
        if not value.valid or value.value is None:
            raise StaleTimestampError("timestamp is not valid", field_name="extract")
        value = value.value

    if isinstance(value, bool) or not isinstance(value, (numbers.Real, Decimal)):
        raise TypeMismatchError(
            f"extract is of type {type(value).__name__}, not numeric",
            field_name="extract"
        )
    try:
        seconds = int(value)
    except (ValueError, OverflowError) as e:
        raise TypeMismatchError("extract is not a finite number", field_name="extract") from e

    if seconds < reference_instant:
        raise StaleTimestampError("timestamp predates the reference instant", field_name="extract")
    return seconds


def row_to_comment(row: Any, identifier_validator: Optional[IdentifierValidator] = None) -> Comment:
    """Convert one storage row into a canonical Comment.

    Parameters:
        row: Any record-like value exposing the ROW_FIELDS names: a dataclass
             instance, named tuple, pydantic model, mapping or pandas Series
        identifier_validator: Validator supplying the reference instant and
             the identifier checks; defaults to the built-in validator

    Returns:
        Comment: The canonical record

    Raises:
        UnsupportedShapeError: row is not a record type
        MissingFieldError: a required field is absent
        TypeMismatchError: the identifier, timestamp or a text field has the
            wrong kind of value
        InvalidIdentifierError: the identifier is flagged invalid, is not 16
            bytes, or an identifier fails time-ordered validation
        StaleTimestampError: the timestamp is null or predates the reference
    """
    validator = identifier_validator or default_identifier_validator()
    read = _field_reader(row)

    values = {}
    for name in ROW_FIELDS:
        value = read(name)
        if value is _MISSING:
            raise MissingFieldError(name)
        values[name] = value

    comment_id = _coerce_identifier(values["comment_id"])
    for name in TEXT_FIELDS:
        if not isinstance(values[name], str):
            raise TypeMismatchError(f"{name} is of type {type(values[name]).__name__}, not text", field_name=name)
    timestamp = _coerce_timestamp(values["extract"], validator.reference_instant)

    try:
        return Comment.model_validate(
            {
                "comment_id": comment_id,
                "listing_id": values["listing_id"],
                "user_ip": values["user_ip"],
                "user_id": values["user_id"],
                "username": values["username"],
                "comment_text": values["comment_text"],
                "timestamp": timestamp,
            },
            context={IDENTIFIER_VALIDATOR_KEY: validator}
        )
    except PydanticValidationError as e:
        error = e.errors(include_url=False)[0]
        field_name = str(error["loc"][0]) if error.get("loc") else None
        raise InvalidIdentifierError(f"{field_name}: {error['msg']}", field_name=field_name) from e


def rows_to_comments(
    rows: Iterable[Any],
    identifier_validator: Optional[IdentifierValidator] = None
) -> list[Comment]:
    """Convert a batch of rows; the first failing row aborts the batch."""
    comments = []
    for index, row in enumerate(rows):
        try:
            comments.append(row_to_comment(row, identifier_validator))
        except TransformationError as e:
            logger.warning(f"Row {index} failed conversion ({type(e).__name__}: {e})")
            raise
    return comments


def frame_to_comments(
    frame: pd.DataFrame,
    identifier_validator: Optional[IdentifierValidator] = None
) -> list[Comment]:
    """Convert every row of a DataFrame whose columns are ROW_FIELDS."""
    return rows_to_comments((row for _, row in frame.iterrows()), identifier_validator)


# ============================================================================
# Outbound: Comment -> row
# ============================================================================

def _to_post_row(comment: Comment) -> PostCommentRow:
    return PostCommentRow(
        comment_id=NullableUUID(value=comment.comment_id.bytes, valid=True),
        listing_id=comment.listing_id,
        user_ip=comment.user_ip,
        user_id=comment.user_id,
        username=comment.username,
        comment_text=comment.comment_text,
        extract=NullableNumeric(value=Decimal(comment.timestamp), valid=True),
    )


def _to_listing_row(comment: Comment) -> ListingCommentRow:
    return ListingCommentRow(
        comment_id=comment.comment_id.bytes,
        listing_id=comment.listing_id,
        user_ip=comment.user_ip,
        user_id=comment.user_id,
        username=comment.username,
        comment_text=comment.comment_text,
        extract=comment.timestamp,
    )


_ROW_WRITERS: dict[type, Callable[[Comment], Any]] = {
    PostCommentRow: _to_post_row,
    ListingCommentRow: _to_listing_row,
}


def comment_to_row(comment: Comment, row_type: RowType = PostCommentRow) -> Union[PostCommentRow, ListingCommentRow]:
    """Convert a Comment into the requested row shape.

    The identifier is written as its 16 raw bytes and the timestamp as the
    row's numeric type.

    Raises:
        UnsupportedShapeError: If row_type is not a known row shape
    """
    writer = _ROW_WRITERS.get(row_type)
    if writer is None:
        raise UnsupportedShapeError(f"cannot write rows of type {getattr(row_type, '__name__', row_type)}")
    return writer(comment)


def comments_to_rows(comments: Iterable[Comment], row_type: RowType = PostCommentRow) -> list:
    return [comment_to_row(comment, row_type) for comment in comments]


def comments_to_frame(comments: Sequence[Comment]) -> pd.DataFrame:
    """Build a DataFrame with one row per comment and ROW_FIELDS as columns."""
    records = [
        {
            "comment_id": comment.comment_id,
            "listing_id": comment.listing_id,
            "user_ip": comment.user_ip,
            "user_id": comment.user_id,
            "username": comment.username,
            "comment_text": comment.comment_text,
            "extract": comment.timestamp,
        }
        for comment in comments
    ]
    return pd.DataFrame.from_records(records, columns=list(ROW_FIELDS))
