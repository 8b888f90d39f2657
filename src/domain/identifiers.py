"""Time-Ordered Identifier Validation.

Submitter and comment identifiers are UUIDv7 values (RFC 9562): the first 48
bits hold a big-endian count of milliseconds since the Unix epoch. This module
parses candidates, checks the version nibble, and bounds the embedded time to
a plausible window so that clients cannot forge identifiers that sort before
the service existed or far into the future.

Security Impact:
    - Rejects identifiers minted before the reference instant (replayed or
      fabricated legacy ids)
    - Rejects identifiers dated beyond the clock skew allowance
    - Never echoes the rejected candidate in error messages

Architecture:
    - Pure domain service; the clock is injected so tests can pin "now"
    - Minting uses the uuid6 package, parsing uses the standard uuid module
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

import uuid6

from src.domain.ports import (
    IdentifierError,
    MalformedIdentifierError,
    TimestampTooNewError,
    TimestampTooOldError,
    WrongVersionError,
)

logger = logging.getLogger(__name__)

# 2025-05-27T23:53:20Z, in whole seconds since the Unix epoch
REFERENCE_INSTANT = 1748390000

DEFAULT_SKEW_ALLOWANCE = timedelta(hours=1)

TIME_ORDERED_VERSION = 7

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


def extract_timestamp_ms(identifier: uuid.UUID) -> int:
    """Return the 48-bit millisecond timestamp held in the first six bytes."""
    return int.from_bytes(identifier.bytes[:6], "big")


def version_nibble(identifier: uuid.UUID) -> int:
    """Return the version nibble regardless of the variant bits."""
    return (identifier.int >> 76) & 0xF


def mint_identifier(at: Optional[datetime] = None) -> uuid.UUID:
    """Mint a fresh UUIDv7.

    Parameters:
        at: Instant to embed instead of the current time (e.g. an injected
            clock's "now"); the random bits still come from uuid6

    Returns:
        uuid.UUID: A version 7, RFC 4122 variant identifier
    """
    minted = uuid6.uuid7().bytes
    if at is not None:
        timestamp_ms = int(at.timestamp() * 1000)
        minted = timestamp_ms.to_bytes(6, "big") + minted[6:]
    return uuid.UUID(bytes=minted)


@dataclass(frozen=True)
class ValidatedIdentifier:
    """An identifier that passed every time-ordered check.

    Attributes:
        identifier: The parsed UUID
        issued_at: The embedded creation instant (UTC)
    """

    identifier: uuid.UUID
    issued_at: datetime

    def __str__(self) -> str:
        return str(self.identifier)


class IdentifierValidator:
    """Validates that a candidate is a plausible UUIDv7.

    A candidate is accepted iff it parses as a UUID, its version nibble is 7,
    and its embedded time t satisfies ``reference_instant <= t <= now + skew``.

    Parameters:
        reference_instant: Earliest acceptable embedded time, seconds since epoch
        skew_allowance: How far into the future an embedded time may lie
        clock: Callable returning the current UTC time

    Example Usage:
        ```python
        validator = IdentifierValidator()
        validated = validator.validate("0197...")
        print(validated.issued_at)
        ```
    """

    def __init__(
        self,
        reference_instant: int = REFERENCE_INSTANT,
        skew_allowance: timedelta = DEFAULT_SKEW_ALLOWANCE,
        clock: Optional[Clock] = None
    ):
        if skew_allowance < timedelta(0):
            raise ValueError("skew_allowance must not be negative")
        self.reference_instant = reference_instant
        self.skew_allowance = skew_allowance
        self.clock = clock or utc_now

    @property
    def reference_ms(self) -> int:
        return self.reference_instant * 1000

    def parse(self, candidate: Union[str, uuid.UUID]) -> uuid.UUID:
        """Parse a candidate into a UUID.

        Raises:
            MalformedIdentifierError: If the candidate is not a UUID string or
                UUID instance, or does not parse
        """
        if isinstance(candidate, uuid.UUID):
            return candidate
        if not isinstance(candidate, str) or not candidate:
            raise MalformedIdentifierError("identifier is not a UUID string")
        try:
            return uuid.UUID(candidate)
        except ValueError as e:
            raise MalformedIdentifierError("identifier is not a valid UUID") from e

    def validate(self, candidate: Union[str, uuid.UUID]) -> ValidatedIdentifier:
        """Validate a candidate time-ordered identifier.

        Parameters:
            candidate: UUID string (any form accepted by ``uuid.UUID``) or UUID

        Returns:
            ValidatedIdentifier: The parsed identifier and its embedded instant

        Raises:
            MalformedIdentifierError: Candidate is not a UUID
            WrongVersionError: Version nibble is not 7
            TimestampTooOldError: Embedded time precedes the reference instant
            TimestampTooNewError: Embedded time is beyond now plus skew
        """
        identifier = self.parse(candidate)

        version = version_nibble(identifier)
        if version != TIME_ORDERED_VERSION:
            raise WrongVersionError(f"identifier is version {version}, expected {TIME_ORDERED_VERSION}")

        timestamp_ms = extract_timestamp_ms(identifier)
        if timestamp_ms < self.reference_ms:
            raise TimestampTooOldError("identifier timestamp precedes the reference instant")

        now = self.clock()
        upper_bound_ms = int((now + self.skew_allowance).timestamp() * 1000)
        if timestamp_ms > upper_bound_ms:
            raise TimestampTooNewError("identifier timestamp is too far in the future")

        issued_at = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
        return ValidatedIdentifier(identifier=identifier, issued_at=issued_at)

    def is_valid(self, candidate: Union[str, uuid.UUID]) -> bool:
        """Return True if the candidate passes validate()."""
        try:
            self.validate(candidate)
        except IdentifierError:
            return False
        return True


_default_validator: Optional[IdentifierValidator] = None


def default_identifier_validator() -> IdentifierValidator:
    """Validator used when none is injected.

    Built once from the configured window (CS_UUID_REFERENCE_INSTANT,
    CS_UUID_CLOCK_SKEW_SECONDS) with the system clock, so records validated
    without an explicit validator follow the same window as the service.
    """
    global _default_validator
    if _default_validator is None:
        from src.infrastructure.settings import settings

        _default_validator = IdentifierValidator(
            reference_instant=settings.uuid_reference_instant,
            skew_allowance=settings.clock_skew_allowance
        )
    return _default_validator


def reset_default_identifier_validator() -> None:
    """Drop the cached default validator (used after settings change)."""
    global _default_validator
    _default_validator = None
