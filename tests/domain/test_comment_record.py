"""Tests for the canonical Comment model and its public projection."""

import uuid
from datetime import timedelta

import pytest
from pydantic import ValidationError

from src.domain.comment_record import Comment, CommentSubmission, PublicComment, to_public_list
from src.domain.identifiers import mint_identifier
from tests.helpers import FIXED_NOW, REFERENCE_DATETIME

NOW_SECONDS = int(FIXED_NOW.timestamp())


@pytest.fixture
def comment_fields(make_v7):
    return {
        "comment_id": make_v7(),
        "listing_id": "123456",
        "user_ip": "203.0.113.7",
        "user_id": make_v7(),
        "username": "TestUser",
        "comment_text": "Lovely apartment, great light.",
        "timestamp": NOW_SECONDS,
    }


def _build(fields, identifier_validator):
    return Comment.model_validate(fields, context={"identifier_validator": identifier_validator})


class TestComment:
    """Test suite for the canonical Comment record."""

    def test_valid_comment(self, comment_fields, identifier_validator):
        comment = _build(comment_fields, identifier_validator)
        assert str(comment.comment_id) == comment_fields["comment_id"]
        assert comment.timestamp == NOW_SECONDS

    @pytest.mark.parametrize("field", ["comment_id", "user_id"])
    def test_identifiers_must_be_version_7(self, comment_fields, identifier_validator, field):
        comment_fields[field] = str(uuid.uuid4())
        with pytest.raises(ValidationError) as exc_info:
            _build(comment_fields, identifier_validator)
        error = exc_info.value.errors()[0]
        assert error["loc"] == (field,)
        assert error["type"] == "WrongVersion"

    def test_stale_comment_id(self, comment_fields, identifier_validator):
        comment_fields["comment_id"] = str(mint_identifier(at=REFERENCE_DATETIME - timedelta(days=1)))
        with pytest.raises(ValidationError) as exc_info:
            _build(comment_fields, identifier_validator)
        assert exc_info.value.errors()[0]["type"] == "TimestampTooOld"

    def test_negative_timestamp(self, comment_fields, identifier_validator):
        comment_fields["timestamp"] = -1
        with pytest.raises(ValidationError):
            _build(comment_fields, identifier_validator)

    def test_comment_is_immutable(self, comment_fields, identifier_validator):
        comment = _build(comment_fields, identifier_validator)
        with pytest.raises(ValidationError):
            comment.comment_text = "edited"

    def test_from_submission(self, valid_fields, identifier_validator):
        submission = CommentSubmission.model_validate(
            valid_fields,
            context={"identifier_validator": identifier_validator}
        )
        comment = Comment.from_submission(submission, NOW_SECONDS, identifier_validator)
        assert comment.username == submission.username
        assert comment.user_id == submission.user_id
        assert comment.timestamp == NOW_SECONDS

    def test_from_submission_requires_v7_comment_id(self, valid_fields, identifier_validator):
        """Submissions allow any comment_id; the canonical record does not."""
        valid_fields["comment_id"] = str(uuid.uuid4())
        submission = CommentSubmission.model_validate(
            valid_fields,
            context={"identifier_validator": identifier_validator}
        )
        with pytest.raises(ValidationError):
            Comment.from_submission(submission, NOW_SECONDS, identifier_validator)


class TestPublicComment:
    """Test suite for the public projection."""

    def test_projection_omits_private_fields(self, comment_fields, identifier_validator):
        public = _build(comment_fields, identifier_validator).to_public()
        assert isinstance(public, PublicComment)
        dumped = public.model_dump()
        assert set(dumped) == {"listing_id", "comment_id", "username", "comment_text", "timestamp"}
        assert "user_ip" not in dumped
        assert "user_id" not in dumped

    def test_projection_copies_values(self, comment_fields, identifier_validator):
        comment = _build(comment_fields, identifier_validator)
        public = comment.to_public()
        assert public.comment_id == comment.comment_id
        assert public.listing_id == comment.listing_id
        assert public.username == comment.username
        assert public.comment_text == comment.comment_text
        assert public.timestamp == comment.timestamp

    def test_public_list_keeps_order(self, comment_fields, identifier_validator, make_v7):
        first = _build(comment_fields, identifier_validator)
        second = _build(dict(comment_fields, comment_id=make_v7(), timestamp=NOW_SECONDS - 5), identifier_validator)
        public = to_public_list([second, first])
        assert [p.comment_id for p in public] == [second.comment_id, first.comment_id]

    def test_public_list_of_nothing(self):
        assert to_public_list([]) == []
