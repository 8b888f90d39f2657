"""Comment Record Schema Definitions.

This module defines the data models that describe a comment at each point of
its life: the raw submission checked by the field constraint validator, the
canonical Comment held by the domain, and the PublicComment projection that is
safe to show to anyone.

Security Impact:
    - Field constraints reject out-of-charset and oversized input before any
      other processing happens
    - The canonical Comment enforces the time-ordered identifier invariant on
      both identifiers, so no code path can hold a Comment with a forged id
    - PublicComment has no network address and no submitter identifier, so
      those fields cannot leak through serialization

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Models are immutable (frozen) and validated on construction via Pydantic V2
    - The identifier validator is read from the validation context so callers
      can inject a clock; otherwise the built-in default is used
"""

import ipaddress
import re
from typing import Any, Iterable, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from src.domain.enums import ViolationCode
from src.domain.identifiers import IdentifierValidator, default_identifier_validator
from src.domain.ports import IdentifierError

LISTING_ID_PATTERN = re.compile(r"[0-9]+")
USERNAME_PATTERN = re.compile(r"[A-Za-z0-9]+")
COMMENT_TEXT_PATTERN = re.compile(r"[\x20-\x7E]+")

IDENTIFIER_VALIDATOR_KEY = "identifier_validator"


def identifier_validator_from(info: ValidationInfo) -> IdentifierValidator:
    """Pick the identifier validator from the validation context, if any."""
    context = info.context or {}
    return context.get(IDENTIFIER_VALIDATOR_KEY) or default_identifier_validator()


def _check_time_ordered(value: Any, info: ValidationInfo) -> UUID:
    try:
        return identifier_validator_from(info).validate(value).identifier
    except IdentifierError as e:
        raise PydanticCustomError(e.code.value, "{reason}", {"reason": str(e)}) from e


class CommentSubmission(BaseModel):
    """A comment as submitted, after field constraint validation.

    Every field is mandatory. Violations are reported with the codes in
    ViolationCode: missing or empty values raise ``MissingField``; length
    bounds raise ``OutOfRangeLength``; the remaining checks raise the code
    named in each validator.

    Parameters:
        comment_id: Server-assigned identifier; any non-nil UUID
        listing_id: Target listing reference, 1-20 decimal digits
        user_ip: Submitter network address (IPv4 or IPv6); never sanitized
        user_id: Submitter identifier; must pass time-ordered validation
        username: Display name, 3-25 ASCII letters or digits
        comment_text: Body, 1-300 printable ASCII characters (0x20-0x7E)
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    comment_id: UUID = Field(..., description="Server-assigned comment identifier")
    listing_id: str = Field(..., min_length=1, max_length=20, description="Target listing reference")
    user_ip: str = Field(..., description="Submitter network address")
    user_id: str = Field(..., description="Submitter time-ordered identifier")
    username: str = Field(..., min_length=3, max_length=25, description="Display name")
    comment_text: str = Field(..., min_length=1, max_length=300, description="Comment body")

    @field_validator(
        "comment_id", "listing_id", "user_ip", "user_id", "username", "comment_text",
        mode="before"
    )
    @classmethod
    def require_value(cls, v: Any, info: ValidationInfo) -> Any:
        """Reject absent and empty values before type coercion."""
        if v is None or (isinstance(v, str) and v == ""):
            raise PydanticCustomError(
                ViolationCode.MISSING_FIELD.value,
                "{field} is required",
                {"field": info.field_name}
            )
        return v

    @field_validator("comment_id")
    @classmethod
    def validate_comment_id(cls, v: UUID) -> UUID:
        """Reject the nil UUID."""
        if v.int == 0:
            raise PydanticCustomError(
                ViolationCode.MALFORMED_IDENTIFIER.value,
                "comment_id must not be the nil UUID"
            )
        return v

    @field_validator("listing_id")
    @classmethod
    def validate_listing_id(cls, v: str) -> str:
        """Listing references are decimal digits only."""
        if not LISTING_ID_PATTERN.fullmatch(v):
            raise PydanticCustomError(
                ViolationCode.INVALID_NUMERIC_FORMAT.value,
                "listing_id must contain only decimal digits"
            )
        return v

    @field_validator("user_ip")
    @classmethod
    def validate_user_ip(cls, v: str) -> str:
        """Accept any IPv4 or IPv6 address."""
        try:
            ipaddress.ip_address(v)
        except ValueError:
            raise PydanticCustomError(
                ViolationCode.INVALID_NETWORK_ADDRESS.value,
                "user_ip must be an IPv4 or IPv6 address"
            )
        return v

    @field_validator("user_id")
    @classmethod
    def validate_user_id(cls, v: str, info: ValidationInfo) -> str:
        """Run the time-ordered identifier check and store the canonical form."""
        return str(_check_time_ordered(v, info))

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not USERNAME_PATTERN.fullmatch(v):
            raise PydanticCustomError(
                ViolationCode.INVALID_CHARSET.value,
                "username must contain only ASCII letters and digits"
            )
        return v

    @field_validator("comment_text")
    @classmethod
    def validate_comment_text(cls, v: str) -> str:
        if not COMMENT_TEXT_PATTERN.fullmatch(v):
            raise PydanticCustomError(
                ViolationCode.INVALID_CHARSET.value,
                "comment_text must contain only printable ASCII characters"
            )
        return v


class PublicComment(BaseModel):
    """Projection of a Comment that is safe to return to any client.

    Omits the submitter's network address and submitter identifier.
    """

    model_config = ConfigDict(frozen=True)

    listing_id: str
    comment_id: UUID
    username: str
    comment_text: str
    timestamp: int


class Comment(BaseModel):
    """Canonical comment record.

    Security Impact: Both identifiers are re-checked against the time-ordered
    identifier rules on every construction, whether the Comment is built from
    an accepted submission or from a storage row.

    Parameters:
        comment_id: Unique, time-ordered comment identifier (UUIDv7)
        listing_id: Target listing reference
        user_ip: Submitter network address (never exposed publicly)
        user_id: Submitter time-ordered identifier (never exposed publicly)
        username: Display name
        comment_text: Sanitized and redacted body
        timestamp: Creation time in whole seconds since the Unix epoch
    """

    model_config = ConfigDict(frozen=True)

    comment_id: UUID = Field(..., description="Time-ordered comment identifier")
    listing_id: str = Field(..., description="Target listing reference")
    user_ip: str = Field(..., description="Submitter network address")
    user_id: str = Field(..., description="Submitter time-ordered identifier")
    username: str = Field(..., description="Display name")
    comment_text: str = Field(..., description="Sanitized, redacted body")
    timestamp: int = Field(..., ge=0, description="Creation time, seconds since the Unix epoch")

    @field_validator("comment_id", mode="before")
    @classmethod
    def validate_comment_id(cls, v: Any, info: ValidationInfo) -> UUID:
        return _check_time_ordered(v, info)

    @field_validator("user_id", mode="before")
    @classmethod
    def validate_user_id(cls, v: Any, info: ValidationInfo) -> str:
        return str(_check_time_ordered(v, info))

    def to_public(self) -> PublicComment:
        """Project this comment onto its public view."""
        return PublicComment(
            listing_id=self.listing_id,
            comment_id=self.comment_id,
            username=self.username,
            comment_text=self.comment_text,
            timestamp=self.timestamp,
        )

    @classmethod
    def from_submission(
        cls,
        submission: CommentSubmission,
        timestamp: int,
        identifier_validator: Optional[IdentifierValidator] = None
    ) -> 'Comment':
        """Build the canonical record for an accepted submission."""
        return cls.model_validate(
            {**submission.model_dump(), "timestamp": timestamp},
            context={IDENTIFIER_VALIDATOR_KEY: identifier_validator}
        )


def to_public_list(comments: Iterable[Comment]) -> list[PublicComment]:
    """Project a sequence of comments onto their public views, keeping order."""
    return [comment.to_public() for comment in comments]
