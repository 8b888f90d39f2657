"""Comment Validation Pipeline.

Drives one submission through the staged state machine:

    Received -> SyntaxValidated -> Sanitized -> ContentValidated -> Accepted

Rejected is reachable from every non-terminal stage.

Field constraints are checked twice: once on the raw submission and once on
the sanitized and redacted result. The second pass catches content that only
becomes invalid after cleaning, such as a body pushed past its length bound
by escaping.

Security Impact:
    - Nothing reaches the Accepted stage without passing both checks
    - user_ip is never passed through the sanitizer
    - Rejections log field names and violation codes, never values
    - Redactions are audited through the redaction context

Architecture:
    - Pure domain orchestration; all collaborators are injected
    - Returns a ValidationResult value and never raises for bad input
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from src.domain.comment_record import CommentSubmission
from src.domain.enums import PipelineStage
from src.domain.identifiers import IdentifierValidator
from src.domain.services import RedactorService, SanitizerService
from src.domain.validation import ConstraintReport, FieldConstraintValidator, FieldViolation
from src.infrastructure.redaction_context import redaction_context
from src.infrastructure.redaction_logger import RedactionLogger

logger = logging.getLogger(__name__)

REDACTION_SOURCE = "validation_pipeline"


@dataclass(frozen=True)
class ValidationResult:
    """Terminal outcome of one pipeline run.

    Attributes:
        stage: ACCEPTED or REJECTED
        submission: The sanitized, re-validated submission (accepted only)
        violations: Every violation found at the rejecting stage
        trail: Every stage visited, in order, ending with the terminal stage
    """

    stage: PipelineStage
    submission: Optional[CommentSubmission] = None
    violations: tuple[FieldViolation, ...] = field(default_factory=tuple)
    trail: tuple[PipelineStage, ...] = field(default_factory=tuple)

    @property
    def accepted(self) -> bool:
        return self.stage is PipelineStage.ACCEPTED

    @property
    def rejected(self) -> bool:
        return self.stage is PipelineStage.REJECTED

    @property
    def failed_stage(self) -> Optional[PipelineStage]:
        """The last non-terminal stage reached before rejection."""
        if not self.rejected or len(self.trail) < 2:
            return None
        return self.trail[-2]


class ValidationPipeline:
    """Validates, sanitizes, redacts and re-validates comment submissions.

    Parameters:
        field_validator: Field constraint validator (shared by both passes)
        sanitizer: Markup sanitizer service
        redactor: Contact-detail redactor service
        redaction_logger: Optional audit logger for redactions

    Example Usage:
        ```python
        pipeline = ValidationPipeline()
        result = pipeline.run({
            "comment_id": str(mint_identifier()),
            "listing_id": "12345",
            "user_ip": "203.0.113.7",
            "user_id": user_id,
            "username": "alice",
            "comment_text": "Call me at 555-123-4567",
        })
        if result.accepted:
            result.submission.comment_text   # "Call me at [phone number removed]"
        ```
    """

    def __init__(
        self,
        field_validator: Optional[FieldConstraintValidator] = None,
        sanitizer: type[SanitizerService] = SanitizerService,
        redactor: type[RedactorService] = RedactorService,
        redaction_logger: Optional[RedactionLogger] = None
    ):
        self.field_validator = field_validator or FieldConstraintValidator()
        self.sanitizer = sanitizer
        self.redactor = redactor
        self.redaction_logger = redaction_logger

    @classmethod
    def with_identifier_validator(
        cls,
        identifier_validator: IdentifierValidator,
        redaction_logger: Optional[RedactionLogger] = None
    ) -> 'ValidationPipeline':
        return cls(
            field_validator=FieldConstraintValidator(identifier_validator),
            redaction_logger=redaction_logger
        )

    def run(self, fields: Mapping[str, Any]) -> ValidationResult:
        """Run one submission to a terminal stage.

        Parameters:
            fields: Raw submission with comment_id, listing_id, user_ip,
                    user_id, username and comment_text

        Returns:
            ValidationResult: Accepted with the cleaned submission, or
            Rejected with the violations from the failing pass
        """
        trail = [PipelineStage.RECEIVED]

        report = self.field_validator.validate(fields)
        if not report.passed:
            return self._reject(trail, report)
        self._advance(trail, PipelineStage.SYNTAX_VALIDATED)

        cleaned = self._clean(report.submission)
        self._advance(trail, PipelineStage.SANITIZED)

        report = self.field_validator.validate(cleaned)
        if not report.passed:
            return self._reject(trail, report)
        self._advance(trail, PipelineStage.CONTENT_VALIDATED)

        self._advance(trail, PipelineStage.ACCEPTED)
        return ValidationResult(
            stage=PipelineStage.ACCEPTED,
            submission=report.submission,
            trail=tuple(trail)
        )

    def _clean(self, submission: CommentSubmission) -> dict:
        """Sanitize free-text fields, then redact the comment body."""
        cleaned = self.sanitizer.sanitize_fields(submission.model_dump())
        with redaction_context(
            self.redaction_logger,
            record_id=str(submission.comment_id),
            source=REDACTION_SOURCE
        ):
            cleaned["comment_text"] = self.redactor.redact_comment_text(cleaned["comment_text"])
        return cleaned

    @staticmethod
    def _advance(trail: list, stage: PipelineStage) -> None:
        logger.debug(f"Submission moved {trail[-1].value} -> {stage.value}")
        trail.append(stage)

    @staticmethod
    def _reject(trail: list, report: ConstraintReport) -> ValidationResult:
        failed_at = trail[-1]
        trail.append(PipelineStage.REJECTED)
        logger.info(
            f"Submission rejected at {failed_at.value}: "
            f"{[(v.field, v.code.value) for v in report.violations]}"
        )
        return ValidationResult(
            stage=PipelineStage.REJECTED,
            violations=report.violations,
            trail=tuple(trail)
        )
