"""Markup Sanitization and Contact-Detail Redaction Services.

This module provides the two text-cleaning services applied to every
submission between the two validation passes:

- SanitizerService removes all markup from free-text fields and escapes what
  is left so that nothing a client sends can render as HTML.
- RedactorService replaces links, email addresses and phone numbers in the
  comment body with fixed placeholders.

Security Impact:
    - No tag or attribute survives sanitization; the allow-list is empty
    - Script and style bodies are dropped along with their tags
    - Residual ``<``, ``>``, ``&`` and quote characters are entity-escaped, so
      double-decoding cannot rebuild a tag
    - Redaction stops commenters from publishing contact details or links
    - Every redaction pass is idempotent: placeholders never match a pattern

Architecture:
    - Stateless services, class-level compiled patterns, static methods
    - Redaction methods accept a scalar string or a pandas Series (vectorized)
    - Redactions are reported through the redaction context when one is active
"""

import logging
import re
from typing import Iterable, Mapping, Optional, Union

import bleach
import pandas as pd

from src.infrastructure.redaction_context import log_redaction_if_context

logger = logging.getLogger(__name__)

# Entities that end a URL token once quotes and brackets have been escaped.
_BOUNDARY_ENTITY = r"&(?:#34|#39|#60|#62|quot|apos|lt|gt);"
_URL_CHAR = r"(?:(?!" + _BOUNDARY_ENTITY + r")\S)"
_URL_END = r"(?:(?!" + _BOUNDARY_ENTITY + r")[^\s.,!?;:'\")\]])"
_URL_TAIL = r"(?:" + _URL_CHAR + r"*" + _URL_END + r")?"


class SanitizerService:
    """Strict markup sanitizer for free-text submission fields.

    Parses input as HTML with bleach using an empty tag and attribute
    allow-list. Disallowed tags are stripped rather than escaped; the bodies of
    elements whose content is never text (script, style and similar) are
    removed first so their code does not leak into the output as text.

    Example Usage:
        ```python
        SanitizerService.sanitize("<b>123456</b>")                    # "123456"
        SanitizerService.sanitize('"><img src=x>TestUser')            # "&#34;&gt;TestUser"
        ```
    """

    # Submission fields that are sanitized; user_ip is never sanitized.
    SANITIZED_FIELDS = ("listing_id", "user_id", "username", "comment_text")

    EMBEDDED_CONTENT_PATTERN = re.compile(
        r"<(script|style|iframe|object|noscript|template|textarea|title|xmp|noembed|noframes)\b[^>]*>"
        r".*?(?:</\1\s*>|\Z)",
        re.IGNORECASE | re.DOTALL
    )

    @staticmethod
    def sanitize(value: Optional[str]) -> Optional[str]:
        """Strip all markup from a value and escape the remainder.

        Parameters:
            value: Untrusted text

        Returns:
            Text with no tags; ``<``, ``>`` and ``&`` as named entities and
            quotes as ``&#34;`` / ``&#39;``. None and "" are returned unchanged.
        """
        if not value:
            return value

        without_embedded = SanitizerService.EMBEDDED_CONTENT_PATTERN.sub("", value)
        cleaned = bleach.clean(
            without_embedded,
            tags=set(),
            attributes={},
            protocols=set(),
            strip=True,
            strip_comments=True
        )
        # bleach puts a line break where it strips a block element
        cleaned = cleaned.replace("\n", "")
        return cleaned.replace('"', "&#34;").replace("'", "&#39;")

    @staticmethod
    def sanitize_fields(
        fields: Mapping[str, object],
        field_names: Iterable[str] = SANITIZED_FIELDS
    ) -> dict:
        """Return a copy of ``fields`` with each named string field sanitized."""
        sanitized = dict(fields)
        for name in field_names:
            value = sanitized.get(name)
            if isinstance(value, str):
                sanitized[name] = SanitizerService.sanitize(value)
        return sanitized


class RedactorService:
    """Service for removing contact details and links from comment bodies.

    Three independent passes, each replacing every match with a fixed
    placeholder:

    - Links: ``http://`` or ``https://`` followed by non-space characters, or
      ``www.`` followed by a domain-like token, with optional port, path,
      query and fragment. Trailing punctuation is left in place.
    - Emails: local part, ``@``, a dot-separated domain ending in a TLD of at
      least two letters.
    - Phone numbers: optional ``+`` and country code, optional parenthesised
      area code, ``-``/``.``/space separators, at least ten digits in total.

    Other schemes (``ftp://``) and bare ``www.`` are not links. Numbers with
    fewer than ten digits are not phone numbers.
    """

    LINK_PATTERN = re.compile(
        r"\bhttps?://" + _URL_TAIL
        + r"|\bwww\.[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*(?::\d+)?(?:[/?#]" + _URL_TAIL + r")?",
        re.IGNORECASE
    )
    EMAIL_PATTERN = re.compile(
        r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'
    )
    PHONE_PATTERN = re.compile(
        r'(?<![\w+])'
        r'(?:\+\d{1,3}[-.\s]?|\d{1,3}[-.\s])?'
        r'(?:\(\d{2,4}\)|\d{2,4})[-.\s]?'
        r'\d{3,4}[-.\s]?'
        r'\d{4}'
        r'(?!\d)'
    )
    PHONE_MIN_DIGITS = 10

    # Redaction placeholders
    LINK_MASK = "[link removed]"
    EMAIL_MASK = "[email removed]"
    PHONE_MASK = "[phone number removed]"

    @staticmethod
    def _phone_replacement(match: 're.Match[str]') -> str:
        digits = sum(ch.isdigit() for ch in match.group(0))
        if digits < RedactorService.PHONE_MIN_DIGITS:
            return match.group(0)
        return RedactorService.PHONE_MASK

    @staticmethod
    def remove_links(value: Union[Optional[str], 'pd.Series']) -> Union[Optional[str], 'pd.Series']:
        """Replace every link with ``[link removed]``.

        Parameters:
            value: Text to redact or pandas Series of texts

        Returns:
            Redacted text/Series; None and "" are returned unchanged
        """
        if isinstance(value, pd.Series):
            return value.str.replace(RedactorService.LINK_PATTERN, RedactorService.LINK_MASK, regex=True)

        if not value:
            return value
        return RedactorService.LINK_PATTERN.sub(RedactorService.LINK_MASK, value)

    @staticmethod
    def remove_emails(value: Union[Optional[str], 'pd.Series']) -> Union[Optional[str], 'pd.Series']:
        """Replace every email address with ``[email removed]``.

        Security Impact: Stops commenters from publishing contact addresses
        and reduces phishing vectors.
        """
        if isinstance(value, pd.Series):
            return value.str.replace(RedactorService.EMAIL_PATTERN, RedactorService.EMAIL_MASK, regex=True)

        if not value:
            return value
        return RedactorService.EMAIL_PATTERN.sub(RedactorService.EMAIL_MASK, value)

    @staticmethod
    def remove_phone_numbers(value: Union[Optional[str], 'pd.Series']) -> Union[Optional[str], 'pd.Series']:
        """Replace every phone number with ``[phone number removed]``.

        Handles formats such as 555-123-4567, (555) 123-4567, 555.123.4567,
        5551234567, +1 555 123 4567 and +44 20 7946 0958.
        """
        if isinstance(value, pd.Series):
            return value.str.replace(RedactorService.PHONE_PATTERN, RedactorService._phone_replacement, regex=True)

        if not value:
            return value
        return RedactorService.PHONE_PATTERN.sub(RedactorService._phone_replacement, value)

    @staticmethod
    def redact_comment_text(
        value: Union[Optional[str], 'pd.Series'],
        field_name: str = "comment_text"
    ) -> Union[Optional[str], 'pd.Series']:
        """Apply every redaction pass to a comment body.

        Emails are removed before links, so an address whose domain starts
        with ``www.`` is reported as an email. Each pass that changes the text
        is reported to the active redaction context.

        Parameters:
            value: Comment body or pandas Series of bodies
            field_name: Field name used in redaction audit events

        Returns:
            Redacted text/Series
        """
        if isinstance(value, pd.Series):
            result = RedactorService.remove_emails(value)
            result = RedactorService.remove_links(result)
            return RedactorService.remove_phone_numbers(result)

        passes = (
            ("EMAIL_PATTERN", RedactorService.remove_emails),
            ("LINK_PATTERN", RedactorService.remove_links),
            ("PHONE_PATTERN", RedactorService.remove_phone_numbers),
        )
        result = value
        for rule, redact in passes:
            redacted = redact(result)
            if redacted != result:
                log_redaction_if_context(field_name, result, rule)
            result = redacted
        return result
