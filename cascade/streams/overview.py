"""Employee-facing summary of an employee's streams."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from .activity import days_until_employer_withdrawal
from .numeric import ZERO
from .schemas import AccrualResult, StreamEventRecord, StreamSnapshot, StreamStatus
from .vesting import compute_accrual


@dataclass(frozen=True)
class EmployeeStreamSummary:
    snapshot: StreamSnapshot
    accrual: AccrualResult


@dataclass(frozen=True)
class EmployeeOverview:
    total_earned: Decimal
    available_to_withdraw: Decimal
    active_streams: int
    last_activity_at: Optional[datetime]
    days_until_employer_withdrawal: Optional[int]
    streams: List[EmployeeStreamSummary] = field(default_factory=list)
    recent_withdrawals: List[StreamEventRecord] = field(default_factory=list)


def summarize_employee_streams(
    snapshots: Iterable[StreamSnapshot],
    now: datetime,
    threshold_days: Optional[int] = None,
    withdrawals: Iterable[StreamEventRecord] = (),
) -> EmployeeOverview:
    """
    Totals across one employee's streams.

    The countdown runs from the most recent activity on any of the streams.
    Withdrawals are passed through as the employee's recent history.
    """
    summaries = []
    total_earned = ZERO
    available = ZERO
    last_activity: Optional[datetime] = None

    for snapshot in snapshots:
        accrual = compute_accrual(snapshot, now)
        total_earned += accrual.earned
        available += accrual.available
        summaries.append(EmployeeStreamSummary(snapshot=snapshot, accrual=accrual))

        if snapshot.last_activity_at is not None:
            if last_activity is None or snapshot.last_activity_at > last_activity:
                last_activity = snapshot.last_activity_at

    return EmployeeOverview(
        total_earned=total_earned,
        available_to_withdraw=available,
        active_streams=sum(1 for s in summaries if s.snapshot.status == StreamStatus.ACTIVE),
        last_activity_at=last_activity,
        days_until_employer_withdrawal=days_until_employer_withdrawal(last_activity, now, threshold_days),
        streams=summaries,
        recent_withdrawals=list(withdrawals),
    )
