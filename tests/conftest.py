"""Shared test fixtures and fakes for Cascade backend tests."""
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import uuid4

from cascade.detection.engine import RiskAlert
from cascade.detection.models import UNRESOLVED_STATUSES, AlertStatus
from cascade.detection.sink import AlertNotFoundError, UpsertResult, check_transition
from cascade.streams.schemas import StreamSnapshot, StreamStatus


NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_snapshot(
    stream_id: str = "stream-1",
    hourly_rate="1000000",
    total_deposited="10000000",
    withdrawn_amount="0",
    vault_balance=None,
    created_at: Optional[datetime] = None,
    last_activity_at: Optional[datetime] = None,
    status: StreamStatus = StreamStatus.ACTIVE,
    **extra,
) -> StreamSnapshot:
    """Build a snapshot whose vault mirrors deposits minus withdrawals unless given."""
    total = Decimal(str(total_deposited))
    withdrawn = Decimal(str(withdrawn_amount))
    if vault_balance is None:
        vault_balance = total - withdrawn

    return StreamSnapshot(
        id=stream_id,
        hourly_rate=Decimal(str(hourly_rate)),
        total_deposited=total,
        withdrawn_amount=withdrawn,
        vault_balance=Decimal(str(vault_balance)),
        created_at=created_at if created_at is not None else NOW - timedelta(days=1),
        last_activity_at=last_activity_at,
        status=status,
        organization_id=extra.pop("organization_id", "org-1"),
        employee_id=extra.pop("employee_id", "emp-1"),
        employee_name=extra.pop("employee_name", "Ada Lovelace"),
        stream_address=extra.pop("stream_address", f"addr-{stream_id}"),
        vault_address=extra.pop("vault_address", f"vault-{stream_id}"),
        **extra,
    )


class FakeSnapshotSource:
    """Snapshot source returning a fixed collection, or raising."""

    def __init__(self, snapshots: List[StreamSnapshot] = None, error: Exception = None):
        self.snapshots = snapshots or []
        self.error = error
        self.calls: List[Optional[str]] = []

    async def fetch_streams(self, organization_id: Optional[str] = None) -> List[StreamSnapshot]:
        self.calls.append(organization_id)
        if self.error is not None:
            raise self.error
        if organization_id is None:
            return list(self.snapshots)
        return [s for s in self.snapshots if s.organization_id == organization_id]


class StoredAlert:
    def __init__(self, candidate: RiskAlert):
        self.id = str(uuid4())
        self.stream_id = candidate.stream_id
        self.type = candidate.type.value
        self.severity = candidate.severity.value
        self.status = AlertStatus.OPEN.value
        self.title = candidate.title
        self.description = candidate.description
        self.extra_data = candidate.metadata


class InMemoryAlertSink:
    """AlertSink holding alerts in a dict, with the same dedup and transitions."""

    def __init__(self):
        self.alerts: Dict[str, StoredAlert] = {}
        self.submitted: List[RiskAlert] = []

    async def upsert(self, candidate: RiskAlert) -> UpsertResult:
        self.submitted.append(candidate)
        for alert in self.alerts.values():
            if (
                alert.stream_id == candidate.stream_id
                and alert.type == candidate.type.value
                and alert.status in [s.value for s in UNRESOLVED_STATUSES]
            ):
                return UpsertResult(alert_id=alert.id, created=False, duplicate=True)

        alert = StoredAlert(candidate)
        self.alerts[alert.id] = alert
        return UpsertResult(alert_id=alert.id, created=True, duplicate=False)

    async def acknowledge(self, alert_id: str):
        return self._transition(alert_id, AlertStatus.ACKNOWLEDGED)

    async def resolve(self, alert_id: str):
        return self._transition(alert_id, AlertStatus.RESOLVED)

    async def dismiss(self, alert_id: str):
        return self._transition(alert_id, AlertStatus.DISMISSED)

    async def list_alerts(self, organization_id: Optional[str] = None, status: Optional[AlertStatus] = None):
        wanted = [status.value] if status is not None else [s.value for s in UNRESOLVED_STATUSES]
        return [alert for alert in self.alerts.values() if alert.status in wanted]

    def _transition(self, alert_id: str, target: AlertStatus):
        alert = self.alerts.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        check_transition(alert_id, alert.status, target)
        alert.status = target.value
        return alert


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def alert_sink():
    return InMemoryAlertSink()
