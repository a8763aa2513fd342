"""
Stream Repository

Snapshot source and event log backed by the relational stream mirror.
Both are read-only: monetary state only changes on-chain.
"""

import logging
from datetime import datetime
from typing import List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Employee, Stream, StreamEvent, StreamEventType
from .numeric import ZERO, to_amount, to_datetime
from .schemas import StreamEventRecord, StreamSnapshot

logger = logging.getLogger(__name__)


class SnapshotSource(Protocol):
    """Anything that can supply the current stream collection."""

    async def fetch_streams(self, organization_id: Optional[str] = None) -> List[StreamSnapshot]:
        ...


class StreamRepository:
    """Reads StreamSnapshots for one organization or the whole tenant set."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def fetch_streams(self, organization_id: Optional[str] = None) -> List[StreamSnapshot]:
        query = (
            select(Stream, Employee.full_name)
            .outerjoin(Employee, Employee.id == Stream.employee_id)
            .order_by(Stream.created_at.desc())
        )
        if organization_id is not None:
            query = query.where(Stream.organization_id == organization_id)

        result = await self.db.execute(query)
        return [self._to_snapshot(stream, employee_name) for stream, employee_name in result.all()]

    async def fetch_employee_streams(self, organization_id: str, employee_id: str) -> List[StreamSnapshot]:
        result = await self.db.execute(
            select(Stream, Employee.full_name)
            .outerjoin(Employee, Employee.id == Stream.employee_id)
            .where(Stream.organization_id == organization_id)
            .where(Stream.employee_id == employee_id)
        )
        return [self._to_snapshot(stream, employee_name) for stream, employee_name in result.all()]

    @staticmethod
    def _to_snapshot(stream: Stream, employee_name: Optional[str]) -> StreamSnapshot:
        total_deposited = to_amount(stream.total_deposited)
        withdrawn_amount = to_amount(stream.withdrawn_amount)

        return StreamSnapshot.from_raw(
            id=stream.id,
            hourly_rate=stream.hourly_rate,
            total_deposited=total_deposited,
            withdrawn_amount=withdrawn_amount,
            # The mirror holds no separate vault column; the vault mirrors deposits minus withdrawals
            vault_balance=max(total_deposited - withdrawn_amount, ZERO),
            created_at=stream.created_at,
            last_activity_at=stream.last_activity_at,
            status=stream.status,
            organization_id=stream.organization_id,
            employee_id=stream.employee_id,
            employee_name=employee_name or "Unassigned employee",
            stream_address=stream.stream_address,
            vault_address=stream.vault_address,
            mint_address=stream.mint_address,
            deactivated_at=stream.deactivated_at,
            closed_at=stream.closed_at,
        )


class EventLog:
    """Read access to the stream event log."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def fetch_emergency_withdrawals(
        self,
        organization_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[StreamEventRecord]:
        query = (
            select(StreamEvent)
            .where(StreamEvent.event_type == StreamEventType.EMERGENCY_WITHDRAW)
            .order_by(StreamEvent.occurred_at.desc())
        )
        if organization_id is not None:
            query = query.where(StreamEvent.organization_id == organization_id)
        if since is not None:
            query = query.where(StreamEvent.occurred_at >= since)

        result = await self.db.execute(query)
        return [self._to_record(event) for event in result.scalars().all()]

    async def fetch_withdrawals(
        self,
        organization_id: str,
        employee_id: str,
        limit: int = 5,
    ) -> List[StreamEventRecord]:
        """Most recent employee withdrawals across all of the employee's streams."""
        result = await self.db.execute(
            select(StreamEvent)
            .join(Stream, Stream.id == StreamEvent.stream_id)
            .where(StreamEvent.organization_id == organization_id)
            .where(StreamEvent.event_type == StreamEventType.WITHDRAWN)
            .where(Stream.employee_id == employee_id)
            .order_by(StreamEvent.occurred_at.desc())
            .limit(limit)
        )
        return [self._to_record(event) for event in result.scalars().all()]

    @staticmethod
    def _to_record(event: StreamEvent) -> StreamEventRecord:
        return StreamEventRecord(
            id=event.id,
            stream_id=event.stream_id,
            event_type=event.event_type,
            occurred_at=to_datetime(event.occurred_at),
            amount=to_amount(event.amount),
            signature=event.signature,
            metadata=event.extra_data or {},
        )
