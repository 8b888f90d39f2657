"""Test helpers shared across suites."""

import uuid
from datetime import datetime, timedelta, timezone

from src.domain.identifiers import REFERENCE_INSTANT, mint_identifier

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
REFERENCE_DATETIME = datetime.fromtimestamp(REFERENCE_INSTANT, tz=timezone.utc)


class SteppingClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def uuid7_at_ms(timestamp_ms: int) -> uuid.UUID:
    """UUIDv7 whose embedded timestamp is exactly ``timestamp_ms``."""
    return uuid.UUID(bytes=timestamp_ms.to_bytes(6, "big") + mint_identifier().bytes[6:])
