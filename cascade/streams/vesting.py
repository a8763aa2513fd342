"""
Vesting Calculator

Recomputes how much of a stream's deposit has vested and how much is still
withdrawable. Accrual is stepped per whole hour since creation, matching the
on-chain program's hours-elapsed counter: a partial hour contributes nothing
until the boundary is crossed.
"""

import logging
import math
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from cascade.config import settings
from .numeric import ZERO, ensure_utc, round_amount
from .schemas import AccrualResult, StreamSnapshot, StreamStatus

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600

NO_ACCRUAL = AccrualResult(earned=ZERO, available=ZERO)


def hours_elapsed_since(start: datetime, now: datetime) -> int:
    """Whole hours between start and now, never negative."""
    seconds = math.floor((ensure_utc(now) - ensure_utc(start)).total_seconds())
    return max(0, seconds) // SECONDS_PER_HOUR


def compute_accrual(
    snapshot: StreamSnapshot,
    now: datetime,
    decimals: Optional[int] = None,
) -> AccrualResult:
    """
    Compute earned and available amounts for a stream.

    Inactive, unfunded or zero-rate streams accrue nothing. Earned is capped
    at the total deposited; available is earned minus withdrawals, floored
    at zero.

    Args:
        snapshot: Stream state to evaluate
        now: Evaluation time
        decimals: Fractional digits to round to (defaults to AMOUNT_DECIMALS)

    Returns:
        AccrualResult with rounded earned/available amounts
    """
    if (
        snapshot.status != StreamStatus.ACTIVE
        or snapshot.hourly_rate <= 0
        or snapshot.total_deposited <= 0
        or snapshot.created_at is None
    ):
        return NO_ACCRUAL

    if decimals is None:
        decimals = settings.AMOUNT_DECIMALS

    hours = hours_elapsed_since(snapshot.created_at, now)
    if hours <= 0:
        return NO_ACCRUAL

    earned = min(snapshot.hourly_rate * hours, snapshot.total_deposited)
    available = max(earned - snapshot.withdrawn_amount, ZERO)

    return AccrualResult(
        earned=round_amount(earned, decimals),
        available=round_amount(available, decimals),
    )


def find_invariant_violations(snapshot: StreamSnapshot) -> List[str]:
    """
    Cross-check a snapshot's monetary fields.

    Withdrawals may never exceed deposits, and the supplied vault balance
    must mirror deposits minus withdrawals exactly. Returns a description per
    violation; an empty list means the snapshot is consistent.
    """
    violations = []

    for name in ("hourly_rate", "total_deposited", "withdrawn_amount", "vault_balance"):
        value: Decimal = getattr(snapshot, name)
        if value < 0:
            violations.append(f"{name} is negative ({value})")

    if snapshot.withdrawn_amount > snapshot.total_deposited:
        violations.append(
            f"withdrawn_amount {snapshot.withdrawn_amount} exceeds "
            f"total_deposited {snapshot.total_deposited}"
        )

    expected_vault = snapshot.total_deposited - snapshot.withdrawn_amount
    if snapshot.vault_balance != expected_vault:
        violations.append(
            f"vault_balance {snapshot.vault_balance} does not match "
            f"deposits minus withdrawals ({expected_vault})"
        )

    return violations


def log_invariant_violations(snapshots: List[StreamSnapshot]) -> int:
    """Log every inconsistent snapshot and return how many were found."""
    inconsistent = 0
    for snapshot in snapshots:
        violations = find_invariant_violations(snapshot)
        if violations:
            inconsistent += 1
            logger.warning(f"Stream {snapshot.id} is inconsistent: {'; '.join(violations)}")
    return inconsistent
