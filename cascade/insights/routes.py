"""Employer overview API routes."""
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cascade.config import settings
from cascade.database import get_db
from cascade.insights.engine import (
    aggregate,
    derive_overview_alerts,
    derive_secondary_metrics,
    to_metric_cards,
)
from cascade.insights.schemas import (
    MetricCard,
    OverviewAlertResponse,
    OverviewMetricsResponse,
    OverviewResponse,
    SecondaryMetricsResponse,
)
from cascade.streams.numeric import utcnow
from cascade.streams.repository import EventLog, StreamRepository

router = APIRouter()


@router.get("/overview", response_model=OverviewResponse)
async def get_overview(
    organization_id: str = Query(..., description="Organization ID"),
    db: AsyncSession = Depends(get_db)
):
    """
    Portfolio metrics for an employer.

    Computed on the fly from the current stream mirror:
    - Active streams, monthly burn, total deposited, vault coverage
    - Pending actions, inactivity risk, clawbacks, token health
    - One summary line per alert condition currently present
    """
    now = utcnow()
    try:
        snapshots = await StreamRepository(db).fetch_streams(organization_id)
        events = await EventLog(db).fetch_emergency_withdrawals(
            organization_id,
            since=now - timedelta(days=settings.CLAWBACK_WINDOW_DAYS),
        )
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Error loading streams: {str(e)}"
        )

    metrics = aggregate(snapshots)
    secondary = derive_secondary_metrics(snapshots, events, now)

    return OverviewResponse(
        metrics=OverviewMetricsResponse(
            active_streams=metrics.active_streams,
            monthly_burn=metrics.monthly_burn,
            total_deposited=metrics.total_deposited,
            vault_coverage_days=metrics.vault_coverage_days,
        ),
        secondary=SecondaryMetricsResponse(
            pending_actions=secondary.pending_actions,
            inactivity_risk_count=secondary.inactivity_risk_count,
            clawback_count=secondary.clawback_count,
            token_health_percentage=secondary.token_health_percentage,
        ),
        cards=[MetricCard(**card) for card in to_metric_cards(metrics)],
        alerts=[
            OverviewAlertResponse(
                id=alert.id,
                type=alert.type.value,
                level=alert.level.value,
                title=alert.title,
                description=alert.description,
                count=alert.count,
            )
            for alert in derive_overview_alerts(snapshots, now)
        ],
    )
