"""Stream API routes."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cascade.database import get_db
from .numeric import utcnow
from .overview import summarize_employee_streams
from .repository import EventLog, StreamRepository

router = APIRouter()


class EmployeeStreamResponse(BaseModel):
    id: str
    status: str
    stream_address: Optional[str] = None
    vault_address: Optional[str] = None
    mint_address: Optional[str] = None
    hourly_rate: Decimal
    withdrawn_amount: Decimal
    total_earned: Decimal
    available_balance: Decimal
    created_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None


class WithdrawalResponse(BaseModel):
    id: str
    stream_id: Optional[str] = None
    amount: Decimal
    occurred_at: Optional[datetime] = None
    signature: Optional[str] = None


class EmployeeOverviewResponse(BaseModel):
    employee_id: str
    total_earned: Decimal
    available_to_withdraw: Decimal
    active_streams: int
    last_activity_at: Optional[datetime] = None
    days_until_employer_withdrawal: Optional[int] = None
    streams: List[EmployeeStreamResponse]
    recent_withdrawals: List[WithdrawalResponse] = []


@router.get("/employees/{employee_id}/overview", response_model=EmployeeOverviewResponse)
async def get_employee_overview(
    employee_id: str,
    organization_id: str = Query(..., description="Organization ID"),
    db: AsyncSession = Depends(get_db)
):
    """
    Earned and withdrawable amounts for an employee's streams, plus the
    countdown before their employer may emergency withdraw and the five
    most recent withdrawals.
    """
    try:
        snapshots = await StreamRepository(db).fetch_employee_streams(organization_id, employee_id)
        withdrawals = await EventLog(db).fetch_withdrawals(organization_id, employee_id)
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Error loading streams: {str(e)}"
        )

    overview = summarize_employee_streams(snapshots, utcnow(), withdrawals=withdrawals)

    return EmployeeOverviewResponse(
        employee_id=employee_id,
        total_earned=overview.total_earned,
        available_to_withdraw=overview.available_to_withdraw,
        active_streams=overview.active_streams,
        last_activity_at=overview.last_activity_at,
        days_until_employer_withdrawal=overview.days_until_employer_withdrawal,
        streams=[
            EmployeeStreamResponse(
                id=summary.snapshot.id,
                status=summary.snapshot.status.value,
                stream_address=summary.snapshot.stream_address,
                vault_address=summary.snapshot.vault_address,
                mint_address=summary.snapshot.mint_address,
                hourly_rate=summary.snapshot.hourly_rate,
                withdrawn_amount=summary.snapshot.withdrawn_amount,
                total_earned=summary.accrual.earned,
                available_balance=summary.accrual.available,
                created_at=summary.snapshot.created_at,
                last_activity_at=summary.snapshot.last_activity_at,
            )
            for summary in overview.streams
        ],
        recent_withdrawals=[
            WithdrawalResponse(
                id=event.id,
                stream_id=event.stream_id,
                amount=event.amount,
                occurred_at=event.occurred_at,
                signature=event.signature,
            )
            for event in overview.recent_withdrawals
        ],
    )
