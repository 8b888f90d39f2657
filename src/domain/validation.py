"""Field Constraint Validation.

Wraps the CommentSubmission model so that a bad submission produces a list of
FieldViolation records instead of an exception. Pydantic collects every field
error in one pass, so a submission with three bad fields yields three
violations.

Security Impact:
    - Violation reasons name the field and the rule, never the submitted value
    - Unknown pydantic error types are reported conservatively as charset
      violations rather than dropped
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from src.domain.comment_record import IDENTIFIER_VALIDATOR_KEY, CommentSubmission
from src.domain.enums import ViolationCode
from src.domain.identifiers import IdentifierValidator

logger = logging.getLogger(__name__)

# Built-in pydantic error types mapped onto the violation taxonomy.
_PYDANTIC_ERROR_CODES = {
    "missing": ViolationCode.MISSING_FIELD,
    "string_too_short": ViolationCode.OUT_OF_RANGE_LENGTH,
    "string_too_long": ViolationCode.OUT_OF_RANGE_LENGTH,
    "string_type": ViolationCode.INVALID_CHARSET,
    "string_unicode": ViolationCode.INVALID_CHARSET,
    "uuid_type": ViolationCode.MALFORMED_IDENTIFIER,
    "uuid_parsing": ViolationCode.MALFORMED_IDENTIFIER,
    "uuid_version": ViolationCode.WRONG_VERSION,
}

_CUSTOM_CODES = {code.value: code for code in ViolationCode}


@dataclass(frozen=True)
class FieldViolation:
    """One rejected field.

    Attributes:
        field: Name of the offending field
        code: Violation category
        reason: Human-readable explanation (never contains the value)
    """

    field: str
    code: ViolationCode
    reason: str

    def as_dict(self) -> dict:
        return {"field": self.field, "code": self.code.value, "reason": self.reason}


@dataclass(frozen=True)
class ConstraintReport:
    """Outcome of a field constraint check.

    Exactly one of ``submission`` and ``violations`` is meaningful: a passing
    report carries the validated submission and no violations.
    """

    submission: Optional[CommentSubmission] = None
    violations: tuple[FieldViolation, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return self.submission is not None and not self.violations


def violation_code_for(error_type: str) -> ViolationCode:
    """Map a pydantic error type onto the violation taxonomy."""
    if error_type in _CUSTOM_CODES:
        return _CUSTOM_CODES[error_type]
    return _PYDANTIC_ERROR_CODES.get(error_type, ViolationCode.INVALID_CHARSET)


def violations_from_error(exc: PydanticValidationError) -> tuple[FieldViolation, ...]:
    """Convert every error in a pydantic ValidationError into a FieldViolation."""
    violations = []
    for error in exc.errors(include_input=False, include_url=False):
        loc = error.get("loc") or ("submission",)
        violations.append(FieldViolation(
            field=str(loc[0]),
            code=violation_code_for(error["type"]),
            reason=error["msg"],
        ))
    return tuple(violations)


class FieldConstraintValidator:
    """Checks a raw submission mapping against the comment field constraints.

    Parameters:
        identifier_validator: Time-ordered identifier validator used for the
            submitter identifier; defaults to the built-in validator

    Example Usage:
        ```python
        validator = FieldConstraintValidator()
        report = validator.validate(form_fields)
        if not report.passed:
            for violation in report.violations:
                print(violation.field, violation.code.value)
        ```
    """

    def __init__(self, identifier_validator: Optional[IdentifierValidator] = None):
        self.identifier_validator = identifier_validator

    def validate(self, fields: Mapping[str, Any]) -> ConstraintReport:
        """Validate every field; never raises for bad input.

        Parameters:
            fields: Mapping with the six submission fields

        Returns:
            ConstraintReport: The validated submission, or every violation found
        """
        try:
            submission = CommentSubmission.model_validate(
                dict(fields),
                context={IDENTIFIER_VALIDATOR_KEY: self.identifier_validator}
            )
        except PydanticValidationError as exc:
            violations = violations_from_error(exc)
            logger.debug(f"Field constraint check failed on {[v.field for v in violations]}")
            return ConstraintReport(violations=violations)
        return ConstraintReport(submission=submission)
