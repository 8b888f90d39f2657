"""Domain Enumerations.

Closed vocabularies shared by the validation pipeline, the field constraint
validator and the error taxonomy. Values are stable strings so they can be
rendered directly in API responses and log lines.
"""

from enum import Enum


class ViolationCode(str, Enum):
    """Reason a submitted field was rejected.

    The first five codes come from field constraint checks; the last four are
    raised by the time-ordered identifier validator and surface through the
    same reporting channel when the submitter identifier is checked.
    """

    MISSING_FIELD = "MissingField"
    OUT_OF_RANGE_LENGTH = "OutOfRangeLength"
    INVALID_CHARSET = "InvalidCharset"
    INVALID_NUMERIC_FORMAT = "InvalidNumericFormat"
    INVALID_NETWORK_ADDRESS = "InvalidNetworkAddress"
    MALFORMED_IDENTIFIER = "MalformedIdentifier"
    WRONG_VERSION = "WrongVersion"
    TIMESTAMP_TOO_OLD = "TimestampTooOld"
    TIMESTAMP_TOO_NEW = "TimestampTooNew"


class PipelineStage(str, Enum):
    """States of a submission moving through the validation pipeline.

    Transitions are strictly forward:
    RECEIVED -> SYNTAX_VALIDATED -> SANITIZED -> CONTENT_VALIDATED -> ACCEPTED,
    with REJECTED reachable from every non-terminal state. ACCEPTED and
    REJECTED are terminal.
    """

    RECEIVED = "Received"
    SYNTAX_VALIDATED = "SyntaxValidated"
    SANITIZED = "Sanitized"
    CONTENT_VALIDATED = "ContentValidated"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"

    @property
    def is_terminal(self) -> bool:
        """Check whether no further transition is possible from this stage."""
        return self in (PipelineStage.ACCEPTED, PipelineStage.REJECTED)
