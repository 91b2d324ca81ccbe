"""
Voting Window Evaluator

Pure functions deriving a campaign's state from the wall clock and its
optional start/end times. Nothing here is stored; callers re-evaluate as
often as they display the post.

Boundary instants are strict: at exactly the start time voting is not yet
open, and at exactly the end time it is already closed.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from validtot.core.errors import PostValidationError


class WindowState(str, Enum):
    """Campaign window state."""

    ALWAYS_ACTIVE = "always_active"  # No window configured
    COUNTDOWN = "countdown"  # Start time not reached yet
    ACTIVE = "active"  # Inside the window
    CLOSED = "closed"  # End time passed, permanently closed


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are treated as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def evaluate_window(
    now: datetime,
    starts_at: Optional[datetime] = None,
    ends_at: Optional[datetime] = None,
) -> WindowState:
    """
    Derive the window state for an instant.

    - no start and no end -> always_active
    - now <= start -> countdown
    - end set and now >= end -> closed
    - otherwise -> active (a start without an end stays active forever)
    """
    now = as_utc(now)
    start = as_utc(starts_at)
    end = as_utc(ends_at)

    if start is None and end is None:
        return WindowState.ALWAYS_ACTIVE
    if start is not None and now <= start:
        return WindowState.COUNTDOWN
    if end is not None and now >= end:
        return WindowState.CLOSED
    return WindowState.ACTIVE


def is_voting_open(state: WindowState) -> bool:
    return state in (WindowState.ACTIVE, WindowState.ALWAYS_ACTIVE)


def seconds_until_start(now: datetime, starts_at: Optional[datetime]) -> Optional[int]:
    """Seconds left on the countdown, or None if no start is configured."""
    start = as_utc(starts_at)
    if start is None:
        return None
    return max(0, int((start - as_utc(now)).total_seconds()))


def seconds_remaining(now: datetime, ends_at: Optional[datetime]) -> Optional[int]:
    """Seconds until voting closes, or None if no end is configured."""
    end = as_utc(ends_at)
    if end is None:
        return None
    return max(0, int((end - as_utc(now)).total_seconds()))


def validate_window(starts_at: Optional[datetime], ends_at: Optional[datetime]) -> None:
    """
    Validate a window at post creation.

    Timed voting needs both a start and an end, and the end must come
    after the start.
    """
    if starts_at is None and ends_at is None:
        return
    if starts_at is None or ends_at is None:
        raise PostValidationError("Set both start and end time for timed voting, or turn it off")
    if as_utc(ends_at) <= as_utc(starts_at):
        raise PostValidationError("Voting end time must be after start time")
