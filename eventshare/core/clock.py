"""UTC helpers shared by the schemas and the engine.

All stored timestamps are timezone-aware UTC. Naive inputs are taken to be
UTC already.
"""
from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def to_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
