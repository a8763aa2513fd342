"""
Stream Aggregator

Folds a collection of StreamSnapshots into the employer's portfolio metrics.
All functions here are pure: they read snapshots, events and an evaluation
time, and never touch the database.

Primary metrics:
- Active streams: count of streams with status active
- Monthly burn: sum of active hourly rates x 24 x 30 (30-day month by convention)
- Total deposited: sum over every stream regardless of status
- Vault coverage: active vault balance / active hourly rate / 24, None when no
  active stream is paying

Secondary metrics:
- Pending actions: low-runway streams plus suspended streams
- Inactivity risk: streams flagged by the inactivity rule
- Clawbacks: emergency withdrawals in the trailing window
- Token health: share of active streams with more than 72h of runway
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from cascade.config import settings
from cascade.detection.engine import RiskClassifier, runway_hours
from cascade.detection.models import AlertSeverity, AlertType
from cascade.streams.models import StreamEventType
from cascade.streams.numeric import ZERO, ensure_utc, round_half_up
from cascade.streams.schemas import StreamEventRecord, StreamSnapshot, StreamStatus

HOURS_PER_DAY = 24
DAYS_PER_MONTH = 30


@dataclass(frozen=True)
class OverviewMetrics:
    """Portfolio-wide figures for the employer overview."""
    active_streams: int
    monthly_burn: Decimal
    total_deposited: Decimal
    vault_coverage_days: Optional[Decimal]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active_streams": self.active_streams,
            "monthly_burn": str(self.monthly_burn),
            "total_deposited": str(self.total_deposited),
            "vault_coverage_days": str(self.vault_coverage_days) if self.vault_coverage_days is not None else None,
        }


@dataclass(frozen=True)
class SecondaryMetrics:
    """Risk counters shown beneath the overview metrics."""
    pending_actions: int
    inactivity_risk_count: int
    clawback_count: int
    token_health_percentage: int


@dataclass(frozen=True)
class OverviewAlert:
    """One summary line per alert type across the portfolio."""
    id: str
    type: AlertType
    level: AlertSeverity
    title: str
    description: str
    count: int


def _active(snapshots: Iterable[StreamSnapshot]) -> List[StreamSnapshot]:
    return [snapshot for snapshot in snapshots if snapshot.status == StreamStatus.ACTIVE]


def _plural(count: int, singular: str, plural: str) -> str:
    return singular if count == 1 else plural


def aggregate(snapshots: Iterable[StreamSnapshot]) -> OverviewMetrics:
    """Compute the primary overview metrics for a stream collection."""
    snapshots = list(snapshots)
    active = _active(snapshots)

    hourly_total = sum((snapshot.hourly_rate for snapshot in active), ZERO)
    vault_total = sum((snapshot.vault_balance for snapshot in active), ZERO)

    coverage_days = None
    if hourly_total > 0:
        coverage_days = vault_total / hourly_total / HOURS_PER_DAY

    return OverviewMetrics(
        active_streams=len(active),
        monthly_burn=hourly_total * HOURS_PER_DAY * DAYS_PER_MONTH,
        total_deposited=sum((snapshot.total_deposited for snapshot in snapshots), ZERO),
        vault_coverage_days=coverage_days,
    )


def count_clawbacks(
    events: Iterable[StreamEventRecord],
    now: datetime,
    window_days: Optional[int] = None,
) -> int:
    """Count emergency withdrawals that occurred within the trailing window."""
    if window_days is None:
        window_days = settings.CLAWBACK_WINDOW_DAYS

    cutoff = ensure_utc(now) - timedelta(days=window_days)
    return sum(
        1
        for event in events
        if event.event_type == StreamEventType.EMERGENCY_WITHDRAW
        and event.occurred_at is not None
        and ensure_utc(event.occurred_at) >= cutoff
    )


def token_health_percentage(
    snapshots: Iterable[StreamSnapshot],
    healthy_runway_hours: Optional[int] = None,
) -> int:
    """
    Percentage of active streams with runway above the healthy threshold.

    A zero-rate stream never runs out and counts as healthy. An empty
    portfolio is reported as 100.
    """
    if healthy_runway_hours is None:
        healthy_runway_hours = settings.LOW_RUNWAY_HOURS

    active = _active(snapshots)
    if not active:
        return 100

    healthy = 0
    for snapshot in active:
        hours = runway_hours(snapshot)
        if hours is None or hours > healthy_runway_hours:
            healthy += 1

    return round_half_up(Decimal(100 * healthy) / len(active))


def derive_secondary_metrics(
    snapshots: Iterable[StreamSnapshot],
    events: Iterable[StreamEventRecord],
    now: datetime,
    classifier: Optional[RiskClassifier] = None,
) -> SecondaryMetrics:
    """Compute the risk counters for the overview."""
    snapshots = list(snapshots)
    classifier = classifier or RiskClassifier()

    low_runway = 0
    inactive = 0
    for snapshot in snapshots:
        fired = {alert.type for alert in classifier.classify(snapshot, now)}
        if AlertType.LOW_RUNWAY in fired:
            low_runway += 1
        if AlertType.INACTIVITY in fired:
            inactive += 1

    suspended = sum(1 for snapshot in snapshots if snapshot.status == StreamStatus.SUSPENDED)

    return SecondaryMetrics(
        pending_actions=low_runway + suspended,
        inactivity_risk_count=inactive,
        clawback_count=count_clawbacks(events, now),
        token_health_percentage=token_health_percentage(
            snapshots, classifier.thresholds.low_runway_hours
        ),
    )


OVERVIEW_ALERT_COPY = {
    AlertType.LOW_RUNWAY: (
        "low-runway",
        AlertSeverity.CRITICAL,
        "Critical runway",
        "{count} {streams} fall below {hours} hours of funding.",
    ),
    AlertType.INACTIVITY: (
        "inactive-streams",
        AlertSeverity.HIGH,
        "Streams inactive",
        "{count} {streams} show no activity for {days}+ days.",
    ),
    AlertType.SUSPENDED_STREAM: (
        "suspended-streams",
        AlertSeverity.MEDIUM,
        "Suspended streams",
        "{count} {streams} {verb} currently suspended.",
    ),
    AlertType.TOKEN_ACCOUNT: (
        "empty-vaults",
        AlertSeverity.CRITICAL,
        "Empty vaults",
        "{count} active {streams} {verb} an empty vault.",
    ),
}


def derive_overview_alerts(
    snapshots: Iterable[StreamSnapshot],
    now: datetime,
    classifier: Optional[RiskClassifier] = None,
) -> List[OverviewAlert]:
    """Summarise classifier output into one line per alert type that fired."""
    classifier = classifier or RiskClassifier()
    candidates = classifier.classify_all(snapshots, now)
    if not candidates:
        return []

    counts: Dict[AlertType, int] = {}
    for candidate in candidates:
        counts[candidate.type] = counts.get(candidate.type, 0) + 1

    summaries = []
    for alert_type, (summary_id, level, title, template) in OVERVIEW_ALERT_COPY.items():
        count = counts.get(alert_type, 0)
        if count == 0:
            continue
        summaries.append(
            OverviewAlert(
                id=summary_id,
                type=alert_type,
                level=level,
                title=title,
                description=template.format(
                    count=count,
                    streams=_plural(count, "stream", "streams"),
                    verb=_plural(count, "is", "are") if alert_type == AlertType.SUSPENDED_STREAM
                    else _plural(count, "has", "have"),
                    hours=classifier.thresholds.low_runway_hours,
                    days=classifier.thresholds.inactivity_alert_days,
                ),
                count=count,
            )
        )

    return sorted(summaries, key=lambda summary: summary.level.rank)


def format_currency(value: Decimal) -> str:
    """Format like en-US currency with at most two fractional digits."""
    rounded = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if rounded == rounded.to_integral_value():
        return f"${rounded:,.0f}"
    return f"${rounded:,.2f}"


def to_metric_cards(metrics: OverviewMetrics) -> List[Dict[str, str]]:
    """Labelled display values for the overview metric cards."""
    if metrics.vault_coverage_days is not None:
        coverage = metrics.vault_coverage_days.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        coverage_value = f"{coverage.normalize():f} days"
    else:
        coverage_value = "N/A"

    return [
        {
            "id": "active-streams",
            "label": "Active Streams",
            "value": str(metrics.active_streams),
            "tooltip": "Count of streams with status set to active.",
        },
        {
            "id": "monthly-burn",
            "label": "Monthly Burn",
            "value": format_currency(metrics.monthly_burn),
            "tooltip": "Sum of hourly_rate x 24 x 30 across active streams.",
        },
        {
            "id": "total-deposited",
            "label": "Total Deposited",
            "value": format_currency(metrics.total_deposited),
            "tooltip": "Total tokens deposited into employer-controlled vault accounts.",
        },
        {
            "id": "vault-coverage",
            "label": "Vault Coverage",
            "value": coverage_value,
            "tooltip": "Vault balance divided by aggregate hourly rate, expressed in days.",
        },
    ]
