"""
Domain time utilities (pure).

Centralized timestamp validation and resolution helpers.

Every timestamp held by the domain model is timezone-aware UTC. Mutators accept
an explicit `now` so tests can pin time; when it is omitted the wall clock is
read here and nowhere else in the domain.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces that a timestamp is UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_timestamp(name: str, value: Optional[datetime]) -> datetime:
    """Return `value` after validation, or the current UTC time when None."""

    if value is None:
        return utc_now()
    require_utc_timestamp(name, value)
    return value
