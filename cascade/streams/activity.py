"""
Activity Countdown

Days remaining before an employer may exercise an emergency withdrawal on an
inactive employee's stream. The countdown is never stored: it is recomputed
from the last activity timestamp on every read, so a withdrawal or activity
refresh restarts it from the full threshold.

The value is advisory for the employee dashboard. Eligibility itself is
enforced by the on-chain program.
"""

import math
from datetime import datetime
from typing import Optional

from cascade.config import settings
from .numeric import ensure_utc


def calendar_days_between(later: datetime, earlier: datetime) -> int:
    """Number of UTC calendar-day boundaries between two instants."""
    return (ensure_utc(later).date() - ensure_utc(earlier).date()).days


def hours_since(moment: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole hours elapsed since a moment, truncated toward zero; None if absent."""
    if moment is None:
        return None
    seconds = (ensure_utc(now) - ensure_utc(moment)).total_seconds()
    return math.trunc(seconds / 3600)


def days_until_employer_withdrawal(
    last_activity_at: Optional[datetime],
    now: datetime,
    threshold_days: Optional[int] = None,
) -> Optional[int]:
    """
    Days left before the employer becomes eligible for emergency withdrawal.

    Returns None when there is no activity baseline yet, otherwise the
    threshold minus the calendar days since last activity, floored at zero.
    Zero means the employer is currently eligible.
    """
    if last_activity_at is None:
        return None

    if threshold_days is None:
        threshold_days = settings.EMPLOYER_WITHDRAWAL_THRESHOLD_DAYS

    elapsed_days = calendar_days_between(now, last_activity_at)
    return max(0, threshold_days - elapsed_days)
