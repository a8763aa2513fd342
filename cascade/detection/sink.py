"""
Alert Sink

Persistence contract for risk alerts plus the SQLAlchemy implementation.

The sink owns deduplication and the alert state machine:
- upsert() inserts an alert unless one is already open or acknowledged for
  the same (stream_id, type)
- open -> acknowledged -> resolved, open -> resolved, open -> dismissed
- resolved and dismissed are terminal; re-detection opens a fresh alert
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Protocol
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cascade.streams.numeric import utcnow
from .engine import RiskAlert
from .models import (
    ALLOWED_TRANSITIONS,
    SEVERITY_RANK,
    UNRESOLVED_STATUSES,
    Alert,
    AlertSeverity,
    AlertStatus,
    AlertType,
)

logger = logging.getLogger(__name__)


class AlertNotFoundError(ValueError):
    """Raised when an alert id does not exist."""

    def __init__(self, alert_id: str):
        super().__init__(f"Alert {alert_id} not found")
        self.alert_id = alert_id


class InvalidAlertTransitionError(Exception):
    """Raised when a status change is not allowed from the alert's current status."""

    def __init__(self, alert_id: str, current: str, target: str):
        super().__init__(f"Alert {alert_id} cannot move from {current} to {target}")
        self.alert_id = alert_id
        self.current = current
        self.target = target


@dataclass(frozen=True)
class UpsertResult:
    """Outcome of submitting one candidate alert."""
    alert_id: str
    created: bool
    duplicate: bool


class AlertSink(Protocol):
    """Where the AlertWorkflow sends its candidates."""

    async def upsert(self, candidate: RiskAlert) -> UpsertResult:
        ...

    async def acknowledge(self, alert_id: str) -> Alert:
        ...

    async def resolve(self, alert_id: str) -> Alert:
        ...

    async def dismiss(self, alert_id: str) -> Alert:
        ...


def check_transition(alert_id: str, current: str, target: AlertStatus) -> None:
    """Raise InvalidAlertTransitionError unless current -> target is allowed."""
    try:
        allowed = ALLOWED_TRANSITIONS[AlertStatus(current)]
    except ValueError:
        allowed = set()
    if target not in allowed:
        raise InvalidAlertTransitionError(alert_id, current, target.value)


class SqlAlchemyAlertSink:
    """
    AlertSink backed by the alerts table.

    Every call opens its own session from the factory, so concurrent
    upserts never share a connection or a transaction.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def upsert(self, candidate: RiskAlert) -> UpsertResult:
        async with self.session_factory() as db:
            existing = await self._find_unresolved(db, candidate.stream_id, candidate.type)
            if existing is not None:
                return UpsertResult(alert_id=existing.id, created=False, duplicate=True)

            alert_id = str(uuid4())
            alert = Alert(
                id=alert_id,
                organization_id=candidate.organization_id,
                stream_id=candidate.stream_id,
                employee_id=candidate.employee_id,
                type=candidate.type.value,
                severity=candidate.severity.value,
                status=AlertStatus.OPEN.value,
                title=candidate.title,
                description=candidate.description,
                extra_data=candidate.metadata,
                triggered_at=utcnow(),
            )
            db.add(alert)
            await db.commit()

            logger.info(f"Created {candidate.type.value} alert {alert_id} for stream {candidate.stream_id}")
            return UpsertResult(alert_id=alert_id, created=True, duplicate=False)

    async def acknowledge(self, alert_id: str) -> Alert:
        return await self._transition(alert_id, AlertStatus.ACKNOWLEDGED)

    async def resolve(self, alert_id: str) -> Alert:
        return await self._transition(alert_id, AlertStatus.RESOLVED)

    async def dismiss(self, alert_id: str) -> Alert:
        return await self._transition(alert_id, AlertStatus.DISMISSED)

    async def auto_resolve(self, stream_id: str, alert_types: Iterable[AlertType]) -> int:
        """Resolve unresolved alerts of the given types once their condition clears."""
        types = [alert_type.value for alert_type in alert_types]
        if not types:
            return 0

        async with self.session_factory() as db:
            result = await db.execute(
                select(Alert)
                .where(Alert.stream_id == stream_id)
                .where(Alert.type.in_(types))
                .where(Alert.status.in_([status.value for status in UNRESOLVED_STATUSES]))
            )
            alerts = result.scalars().all()

            now = utcnow()
            for alert in alerts:
                alert.status = AlertStatus.RESOLVED.value
                alert.resolved_at = now
                alert.extra_data = {
                    **(alert.extra_data or {}),
                    "auto_resolved": True,
                    "resolved_at": now.isoformat(),
                }
            await db.commit()

        return len(alerts)

    async def list_alerts(
        self,
        organization_id: Optional[str] = None,
        status: Optional[AlertStatus] = None,
    ) -> List[Alert]:
        """
        List alerts, most severe first.

        Without a status filter only open and acknowledged alerts are returned.
        """
        query = select(Alert).order_by(Alert.triggered_at.desc(), Alert.created_at.desc())
        if organization_id is not None:
            query = query.where(Alert.organization_id == organization_id)
        if status is not None:
            query = query.where(Alert.status == status.value)
        else:
            query = query.where(Alert.status.in_([s.value for s in UNRESOLVED_STATUSES]))

        async with self.session_factory() as db:
            result = await db.execute(query)
            alerts = list(result.scalars().all())

        # Stable sort keeps newest-first within a severity
        return sorted(alerts, key=lambda alert: _severity_rank(alert.severity))

    async def _transition(self, alert_id: str, target: AlertStatus) -> Alert:
        async with self.session_factory() as db:
            result = await db.execute(select(Alert).where(Alert.id == alert_id))
            alert = result.scalar_one_or_none()

            if not alert:
                raise AlertNotFoundError(alert_id)

            check_transition(alert_id, alert.status, target)

            now = utcnow()
            alert.status = target.value
            if target == AlertStatus.ACKNOWLEDGED:
                alert.acknowledged_at = now
            elif target == AlertStatus.RESOLVED:
                alert.resolved_at = now

            await db.commit()
            logger.info(f"Alert {alert_id} moved to {target.value}")
            return alert

    @staticmethod
    async def _find_unresolved(db: AsyncSession, stream_id: str, alert_type: AlertType) -> Optional[Alert]:
        result = await db.execute(
            select(Alert)
            .where(Alert.stream_id == stream_id)
            .where(Alert.type == alert_type.value)
            .where(Alert.status.in_([status.value for status in UNRESOLVED_STATUSES]))
            .limit(1)
        )
        return result.scalar_one_or_none()


def _severity_rank(severity: str) -> int:
    try:
        return SEVERITY_RANK[AlertSeverity(severity)]
    except ValueError:
        return len(SEVERITY_RANK)
