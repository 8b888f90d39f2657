"""Redaction Audit Logger.

Collects one event per redaction applied to a comment so operators can see how
often each rule fires without ever storing what was removed.

Security Impact:
    - Original values are reduced to a SHA-256 digest before they are kept
    - Events carry the comment identifier, so a redaction can be traced to the
      stored comment without keeping the removed contact details

Architecture:
    - Infrastructure component; domain code reaches it only through the
      redaction context (src.infrastructure.redaction_context)
    - In-memory and lock-guarded, one instance per submission run or service
"""

import hashlib
import logging
import threading
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


class RedactionLogger:
    """In-memory collector of redaction events.

    Parameters:
        submission_id: Optional identifier attached to every event

    Example Usage:
        ```python
        redaction_logger = RedactionLogger()
        with redaction_context(redaction_logger, record_id=str(comment_id)):
            RedactorService.redact_comment_text(text)
        print(redaction_logger.get_summary())
        ```
    """

    def __init__(self, submission_id: Optional[str] = None):
        self._submission_id = submission_id
        self._logs: list[dict] = []
        self._lock = threading.Lock()

    def set_submission_id(self, submission_id: Optional[str]) -> None:
        self._submission_id = submission_id

    @staticmethod
    def hash_value(value: str) -> str:
        return hashlib.sha256(value.encode("utf-8")).hexdigest()

    def log_redaction(
        self,
        field_name: str,
        original_value: str,
        rule_triggered: str,
        record_id: Optional[str] = None,
        source: Optional[str] = None
    ) -> None:
        """Record one redaction event.

        Parameters:
            field_name: Field the rule was applied to
            original_value: Value before redaction (only its digest is kept)
            rule_triggered: Name of the pattern that matched
            record_id: Comment identifier, if known
            source: Component that applied the redaction
        """
        event = {
            "field_name": field_name,
            "original_hash": self.hash_value(original_value),
            "rule_triggered": rule_triggered,
            "record_id": record_id,
            "source": source,
            "submission_id": self._submission_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        with self._lock:
            self._logs.append(event)
        logger.debug(f"Redaction {rule_triggered} applied to {field_name} (record_id={record_id})")

    def get_logs(self) -> list[dict]:
        """Return a copy of every event recorded so far."""
        with self._lock:
            return list(self._logs)

    def get_summary(self) -> dict:
        """Count events per rule and per field."""
        by_rule: dict[str, int] = {}
        by_field: dict[str, int] = {}
        for event in self.get_logs():
            by_rule[event["rule_triggered"]] = by_rule.get(event["rule_triggered"], 0) + 1
            by_field[event["field_name"]] = by_field.get(event["field_name"], 0) + 1
        return {"total": sum(by_rule.values()), "by_rule": by_rule, "by_field": by_field}

    def clear(self) -> None:
        with self._lock:
            self._logs.clear()


_redaction_logger: Optional[RedactionLogger] = None
_redaction_logger_lock = threading.Lock()


def get_redaction_logger() -> RedactionLogger:
    """Shared redaction logger used when none is injected."""
    global _redaction_logger
    with _redaction_logger_lock:
        if _redaction_logger is None:
            _redaction_logger = RedactionLogger()
        return _redaction_logger


def reset_redaction_logger() -> None:
    """Drop the shared redaction logger (used between test cases)."""
    global _redaction_logger
    with _redaction_logger_lock:
        _redaction_logger = None
