"""Domain layer for Comment-Sieve.

This module contains the core rules for accepting listing comments: the
time-ordered identifier validator, the comment records, the sanitizer and
redactor, the validation pipeline and the row/model converter.
"""

from .comment_record import (
    Comment,
    CommentSubmission,
    PublicComment,
    to_public_list,
)
from .identifiers import IdentifierValidator, mint_identifier
from .pipeline import ValidationPipeline, ValidationResult

__all__ = [
    "Comment",
    "CommentSubmission",
    "PublicComment",
    "to_public_list",
    "IdentifierValidator",
    "mint_identifier",
    "ValidationPipeline",
    "ValidationResult",
]
