"""Redaction Context Management.

Carries the active RedactionLogger and the identifier of the comment being
processed through the redaction passes, so domain services can report what
they removed without taking the logger as a parameter.

Security Impact:
    - Only field names, rule names and value digests reach the audit log
    - Redaction still happens when no context is active; only the audit
      event is skipped

Architecture:
    - Uses contextvars, so concurrent submissions never share a context
    - Set by the validation pipeline around the Sanitized stage
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from src.infrastructure.redaction_logger import RedactionLogger

_redaction_context: ContextVar[Optional[Dict[str, Any]]] = ContextVar(
    'redaction_context',
    default=None
)


def get_redaction_context() -> Optional[Dict[str, Any]]:
    """Return the active context, or None outside any redaction_context block."""
    return _redaction_context.get()


@contextmanager
def redaction_context(
    logger: Optional[RedactionLogger],
    record_id: Optional[str] = None,
    source: Optional[str] = None
) -> Iterator[Dict[str, Any]]:
    """Activate a redaction context for the duration of the block.

    Parameters:
        logger: RedactionLogger receiving events, or None to disable auditing
        record_id: Identifier of the comment being processed
        source: Component applying the redactions

    Example:
        ```python
        with redaction_context(redaction_logger, record_id=str(comment_id), source="pipeline"):
            text = RedactorService.redact_comment_text(text)
        ```
    """
    token = _redaction_context.set({
        'logger': logger,
        'record_id': record_id,
        'source': source,
    })
    try:
        yield _redaction_context.get()
    finally:
        _redaction_context.reset(token)


def log_redaction_if_context(
    field_name: str,
    original_value: Optional[str],
    rule_triggered: str
) -> None:
    """Report a redaction to the active logger, if there is one.

    Parameters:
        field_name: Name of the field being redacted
        original_value: Value before the rule was applied
        rule_triggered: Name of the redaction rule
    """
    context = get_redaction_context()
    if not context or not context.get('logger'):
        return

    if not original_value:
        return

    context['logger'].log_redaction(
        field_name=field_name,
        original_value=original_value,
        rule_triggered=rule_triggered,
        record_id=context.get('record_id'),
        source=context.get('source')
    )
