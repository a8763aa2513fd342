"""
Risk Classifier

Evaluates each stream against four independent risk rules:
1. LOW_RUNWAY - Vault funds 72 hours of pay or less
2. INACTIVITY - Employee inactive for 25+ days
3. SUSPENDED_STREAM - Stream suspended
4. TOKEN_ACCOUNT - Active stream with an empty vault

Rules never short-circuit each other. An active, positive-rate stream with an
empty vault is evaluated by both LOW_RUNWAY and TOKEN_ACCOUNT; the zero
runway falls outside LOW_RUNWAY's (0, 72] window, so only TOKEN_ACCOUNT fires.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from cascade.streams.activity import hours_since
from cascade.streams.numeric import round_half_up
from cascade.streams.schemas import StreamSnapshot, StreamStatus
from .models import AlertSeverity, AlertType
from .rules import RiskThresholds


@dataclass
class RiskAlert:
    """Candidate alert produced by the classifier, persisted by an AlertSink."""
    stream_id: str
    type: AlertType
    severity: AlertSeverity
    title: str
    description: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    organization_id: Optional[str] = None
    employee_id: Optional[str] = None

    @property
    def dedup_key(self) -> tuple:
        return (self.stream_id, self.type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stream_id": self.stream_id,
            "type": self.type.value,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "metadata": self.metadata,
            "organization_id": self.organization_id,
            "employee_id": self.employee_id,
        }


def runway_hours(snapshot: StreamSnapshot) -> Optional[Decimal]:
    """Hours of pay the vault still covers, or None for a zero rate."""
    if snapshot.hourly_rate <= 0:
        return None
    return snapshot.vault_balance / snapshot.hourly_rate


def low_runway_severity(hours: Decimal, thresholds: RiskThresholds) -> AlertSeverity:
    if hours <= thresholds.critical_runway_hours:
        return AlertSeverity.CRITICAL
    if hours <= thresholds.high_runway_hours:
        return AlertSeverity.HIGH
    return AlertSeverity.MEDIUM


class RiskClassifier:
    """
    Stateless risk rules over a single StreamSnapshot.

    Safe to share across tasks: classification reads only the snapshot,
    the evaluation time and the thresholds.
    """

    def __init__(self, thresholds: Optional[RiskThresholds] = None):
        self.thresholds = thresholds or RiskThresholds.from_settings()

    def classify(self, snapshot: StreamSnapshot, now: datetime) -> List[RiskAlert]:
        """Run every rule against a stream and return the ones that fire."""
        rules = (
            self._check_low_runway,
            self._check_inactivity,
            self._check_suspended,
            self._check_empty_vault,
        )
        alerts = []
        for rule in rules:
            alert = rule(snapshot, now)
            if alert is not None:
                alerts.append(alert)
        return alerts

    def classify_all(self, snapshots: Iterable[StreamSnapshot], now: datetime) -> List[RiskAlert]:
        """Classify a collection and flatten the candidates, most severe first."""
        candidates = []
        for snapshot in snapshots:
            candidates.extend(self.classify(snapshot, now))
        return rank_alerts(candidates)

    # ==========================================================================
    # Rules
    # ==========================================================================
    def _check_low_runway(self, snapshot: StreamSnapshot, now: datetime) -> Optional[RiskAlert]:
        if snapshot.status != StreamStatus.ACTIVE:
            return None

        hours = runway_hours(snapshot)
        if hours is None or not (0 < hours <= self.thresholds.low_runway_hours):
            return None

        return self._build(
            snapshot,
            AlertType.LOW_RUNWAY,
            low_runway_severity(hours, self.thresholds),
            title="Low runway warning",
            description=(
                f"Stream for {snapshot.display_name} has only "
                f"{round_half_up(hours)} hours of funding remaining."
            ),
            metadata={
                "runway_hours": float(hours),
                "vault_balance": float(snapshot.vault_balance),
                "hourly_rate": float(snapshot.hourly_rate),
                "stream_address": snapshot.stream_address,
            },
        )

    def _check_inactivity(self, snapshot: StreamSnapshot, now: datetime) -> Optional[RiskAlert]:
        if snapshot.status != StreamStatus.ACTIVE or snapshot.last_activity_at is None:
            return None

        inactive_hours = hours_since(snapshot.last_activity_at, now)
        if inactive_hours < self.thresholds.inactivity_alert_hours:
            return None

        inactive_days = round_half_up(Decimal(inactive_hours) / 24)
        return self._build(
            snapshot,
            AlertType.INACTIVITY,
            AlertSeverity.HIGH,
            title="Stream inactive",
            description=(
                f"Stream for {snapshot.display_name} has been inactive for {inactive_days} days."
            ),
            metadata={
                "hours_since_activity": inactive_hours,
                "last_activity_at": snapshot.last_activity_at.isoformat(),
                "stream_address": snapshot.stream_address,
            },
        )

    def _check_suspended(self, snapshot: StreamSnapshot, now: datetime) -> Optional[RiskAlert]:
        if snapshot.status != StreamStatus.SUSPENDED:
            return None

        return self._build(
            snapshot,
            AlertType.SUSPENDED_STREAM,
            AlertSeverity.MEDIUM,
            title="Stream suspended",
            description=f"Payment stream for {snapshot.display_name} is currently suspended.",
            metadata={
                "stream_address": snapshot.stream_address,
                "suspended_at": snapshot.deactivated_at.isoformat() if snapshot.deactivated_at else None,
            },
        )

    def _check_empty_vault(self, snapshot: StreamSnapshot, now: datetime) -> Optional[RiskAlert]:
        if snapshot.status != StreamStatus.ACTIVE or snapshot.vault_balance != 0:
            return None

        return self._build(
            snapshot,
            AlertType.TOKEN_ACCOUNT,
            AlertSeverity.CRITICAL,
            title="Empty vault",
            description=f"Stream for {snapshot.display_name} has zero balance. Top up immediately.",
            metadata={
                "stream_address": snapshot.stream_address,
                "vault_address": snapshot.vault_address,
            },
        )

    @staticmethod
    def _build(
        snapshot: StreamSnapshot,
        alert_type: AlertType,
        severity: AlertSeverity,
        title: str,
        description: str,
        metadata: Dict[str, Any],
    ) -> RiskAlert:
        return RiskAlert(
            stream_id=snapshot.id,
            type=alert_type,
            severity=severity,
            title=title,
            description=description,
            metadata=metadata,
            organization_id=snapshot.organization_id,
            employee_id=snapshot.employee_id,
        )


def rank_alerts(alerts: Iterable[RiskAlert]) -> List[RiskAlert]:
    """Order candidates critical first, then by stream for a stable output."""
    return sorted(alerts, key=lambda alert: (alert.severity.rank, alert.stream_id, alert.type.value))
