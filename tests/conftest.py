"""Shared fixtures: a controllable clock, identifier and comment builders."""

from datetime import datetime

import pytest

from src.domain.comment_record import IDENTIFIER_VALIDATOR_KEY, Comment
from src.domain.identifiers import IdentifierValidator, mint_identifier
from tests.helpers import FIXED_NOW, SteppingClock


@pytest.fixture
def clock():
    return SteppingClock(FIXED_NOW)


@pytest.fixture
def identifier_validator(clock):
    return IdentifierValidator(clock=clock)


@pytest.fixture
def make_v7(clock):
    """Mint a v7 identifier string at the clock's current time (or a given instant)."""
    def _make(at: datetime = None) -> str:
        return str(mint_identifier(at=at or clock()))
    return _make


@pytest.fixture
def valid_fields(make_v7):
    return {
        "comment_id": make_v7(),
        "listing_id": "123456",
        "user_ip": "203.0.113.7",
        "user_id": make_v7(),
        "username": "TestUser",
        "comment_text": "Lovely apartment, great light.",
    }


@pytest.fixture
def make_comment(clock, identifier_validator, make_v7):
    """Build a canonical Comment stamped at the clock's current time."""
    def _make(**overrides) -> Comment:
        fields = {
            "comment_id": make_v7(),
            "listing_id": "123456",
            "user_ip": "203.0.113.7",
            "user_id": make_v7(),
            "username": "TestUser",
            "comment_text": "Lovely apartment, great light.",
            "timestamp": int(clock().timestamp()),
        }
        fields.update(overrides)
        return Comment.model_validate(fields, context={IDENTIFIER_VALIDATOR_KEY: identifier_validator})
    return _make
