"""Tests for time-ordered identifier validation and minting."""

import os
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
import uuid6

from src.domain.comment_record import Comment
from src.domain.identifiers import (
    REFERENCE_INSTANT,
    IdentifierValidator,
    default_identifier_validator,
    extract_timestamp_ms,
    mint_identifier,
    reset_default_identifier_validator,
    version_nibble,
)
from src.domain.ports import (
    MalformedIdentifierError,
    TimestampTooNewError,
    TimestampTooOldError,
    WrongVersionError,
)
from src.infrastructure.settings import Settings
from tests.helpers import FIXED_NOW, uuid7_at_ms

REFERENCE_MS = REFERENCE_INSTANT * 1000
NOW_MS = int(FIXED_NOW.timestamp() * 1000)
SKEW_MS = 60 * 60 * 1000


class TestTimestampExtraction:
    """Test suite for reading the embedded timestamp."""

    def test_rfc_example_timestamp(self):
        """The RFC 9562 example identifier carries 2022-02-22T19:22:22Z."""
        identifier = uuid.UUID("017f22e2-79b0-7cc3-98c4-dc0c0c07398f")
        assert extract_timestamp_ms(identifier) == 1645557742000
        assert version_nibble(identifier) == 7

    def test_minted_identifier_is_version_7(self):
        identifier = mint_identifier()
        assert version_nibble(identifier) == 7
        assert identifier.variant == uuid.RFC_4122

    def test_minted_identifier_at_instant(self):
        """Minting at an instant embeds that instant in milliseconds."""
        identifier = mint_identifier(at=FIXED_NOW)
        assert extract_timestamp_ms(identifier) == NOW_MS
        assert version_nibble(identifier) == 7

    def test_minted_identifiers_are_unique(self):
        ids = {mint_identifier(at=FIXED_NOW) for _ in range(100)}
        assert len(ids) == 100


class TestIdentifierValidator:
    """Test suite for the UUIDv7 time-window validator."""

    def test_accepts_identifier_minted_now(self, identifier_validator):
        identifier = mint_identifier(at=FIXED_NOW)
        validated = identifier_validator.validate(str(identifier))
        assert validated.identifier == identifier
        assert validated.issued_at == FIXED_NOW

    def test_accepts_uuid_instance(self, identifier_validator):
        identifier = mint_identifier(at=FIXED_NOW)
        assert identifier_validator.validate(identifier).identifier == identifier

    def test_accepts_alternate_string_forms(self, identifier_validator):
        """Braced, URN, uppercase and unhyphenated forms all parse."""
        identifier = mint_identifier(at=FIXED_NOW)
        for form in (
            "{" + str(identifier) + "}",
            identifier.urn,
            str(identifier).upper(),
            identifier.hex,
        ):
            assert identifier_validator.validate(form).identifier == identifier

    @pytest.mark.parametrize("offset_ms,accepted", [
        (-1, False),
        (0, True),
        (1, True),
    ])
    def test_reference_boundary(self, identifier_validator, offset_ms, accepted):
        """Accepted iff the embedded time is not before the reference instant."""
        identifier = uuid7_at_ms(REFERENCE_MS + offset_ms)
        assert identifier_validator.is_valid(identifier) is accepted

    @pytest.mark.parametrize("offset_ms,accepted", [
        (-1, True),
        (0, True),
        (1, False),
    ])
    def test_future_boundary(self, identifier_validator, offset_ms, accepted):
        """Accepted iff the embedded time is not after now plus skew."""
        identifier = uuid7_at_ms(NOW_MS + SKEW_MS + offset_ms)
        assert identifier_validator.is_valid(identifier) is accepted

    def test_far_past_rejected(self, identifier_validator):
        with pytest.raises(TimestampTooOldError):
            identifier_validator.validate(uuid7_at_ms(1000 * 1000))

    def test_just_before_reference_rejected(self, identifier_validator):
        with pytest.raises(TimestampTooOldError):
            identifier_validator.validate(uuid7_at_ms((REFERENCE_INSTANT - 10) * 1000))

    def test_after_reference_accepted(self, identifier_validator):
        assert identifier_validator.is_valid(uuid7_at_ms((REFERENCE_INSTANT + 1000) * 1000))

    def test_eleven_hours_ahead_rejected(self, identifier_validator):
        future = FIXED_NOW + timedelta(hours=11)
        with pytest.raises(TimestampTooNewError):
            identifier_validator.validate(mint_identifier(at=future))

    def test_ten_years_ahead_rejected(self, identifier_validator):
        future = FIXED_NOW + timedelta(days=3650)
        with pytest.raises(TimestampTooNewError):
            identifier_validator.validate(mint_identifier(at=future))

    def test_window_follows_clock(self, clock, identifier_validator):
        """An identifier from the future becomes valid once the clock catches up."""
        identifier = mint_identifier(at=FIXED_NOW + timedelta(hours=3))
        assert not identifier_validator.is_valid(identifier)
        clock.advance(hours=3)
        assert identifier_validator.is_valid(identifier)

    @pytest.mark.parametrize("identifier", [
        uuid.uuid1(),
        uuid.uuid3(uuid.NAMESPACE_DNS, "example.com"),
        uuid.uuid4(),
        uuid.uuid5(uuid.NAMESPACE_DNS, "example.com"),
        uuid6.uuid6(),
    ])
    def test_other_versions_rejected(self, identifier_validator, identifier):
        with pytest.raises(WrongVersionError):
            identifier_validator.validate(str(identifier))

    def test_version_7_with_non_rfc_variant_accepted(self, identifier_validator):
        """Only the version nibble is checked, not the variant bits."""
        raw = bytearray(mint_identifier(at=FIXED_NOW).bytes)
        raw[8] &= 0x3F
        assert identifier_validator.is_valid(uuid.UUID(bytes=bytes(raw)))

    @pytest.mark.parametrize("candidate", [
        "",
        "not-a-uuid",
        "0197a0b3-7c4d-7e8f-9a0b",
        "zzzzzzzz-zzzz-7zzz-zzzz-zzzzzzzzzzzz",
        None,
        12345,
    ])
    def test_malformed_rejected(self, identifier_validator, candidate):
        with pytest.raises(MalformedIdentifierError):
            identifier_validator.validate(candidate)

    def test_error_message_does_not_echo_candidate(self, identifier_validator):
        candidate = "definitely-not-a-uuid"
        with pytest.raises(MalformedIdentifierError) as exc_info:
            identifier_validator.validate(candidate)
        assert candidate not in str(exc_info.value)

    def test_custom_window(self, clock):
        """Reference instant and skew are configurable."""
        validator = IdentifierValidator(
            reference_instant=int(FIXED_NOW.timestamp()) - 60,
            skew_allowance=timedelta(hours=12),
            clock=clock
        )
        assert validator.is_valid(mint_identifier(at=FIXED_NOW + timedelta(hours=11)))
        assert not validator.is_valid(mint_identifier(at=FIXED_NOW - timedelta(minutes=2)))

    def test_negative_skew_refused(self):
        with pytest.raises(ValueError):
            IdentifierValidator(skew_allowance=timedelta(seconds=-1))

    def test_default_clock_accepts_fresh_identifier(self):
        """With the system clock, a freshly minted identifier is valid."""
        validator = IdentifierValidator()
        validated = validator.validate(str(mint_identifier()))
        assert validated.issued_at <= datetime.now(timezone.utc) + timedelta(seconds=1)


class TestDefaultIdentifierValidator:
    """Test suite for the validator used when none is injected."""

    @pytest.fixture(autouse=True)
    def fresh_default(self):
        reset_default_identifier_validator()
        yield
        reset_default_identifier_validator()

    def test_default_follows_configured_window(self):
        """The default validator uses the window from the environment."""
        env = {"CS_UUID_REFERENCE_INSTANT": "1700000000", "CS_UUID_CLOCK_SKEW_SECONDS": "36000"}
        with patch.dict(os.environ, env, clear=True):
            with patch("src.infrastructure.settings.settings", Settings()):
                validator = default_identifier_validator()
        assert validator.reference_instant == 1700000000
        assert validator.skew_allowance == timedelta(hours=10)

    def test_comment_without_context_uses_configured_window(self):
        """An identifier older than the built-in reference passes when the window is widened."""
        early = mint_identifier(at=datetime.fromtimestamp(REFERENCE_INSTANT - 86400, tz=timezone.utc))
        fields = {
            "comment_id": str(early),
            "listing_id": "123456",
            "user_ip": "203.0.113.7",
            "user_id": str(mint_identifier()),
            "username": "TestUser",
            "comment_text": "Hello",
            "timestamp": REFERENCE_INSTANT,
        }
        env = {"CS_UUID_REFERENCE_INSTANT": str(REFERENCE_INSTANT - 7 * 86400)}
        with patch.dict(os.environ, env, clear=True):
            with patch("src.infrastructure.settings.settings", Settings()):
                comment = Comment.model_validate(fields)
        assert comment.comment_id == early

    def test_default_is_cached(self):
        assert default_identifier_validator() is default_identifier_validator()
