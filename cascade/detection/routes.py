"""
Alert Routes

List stream risk alerts, move them through their lifecycle, and trigger an
alert generation run on demand.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from cascade.database import async_session_maker, get_db
from cascade.streams.repository import StreamRepository
from .models import AlertStatus
from .schemas import AlertGenerationResponse, AlertResponse, AlertsListResponse
from .sink import AlertNotFoundError, InvalidAlertTransitionError, SqlAlchemyAlertSink
from .workflow import AlertWorkflow, SnapshotFetchError

logger = logging.getLogger(__name__)

router = APIRouter()


def get_alert_sink() -> SqlAlchemyAlertSink:
    return SqlAlchemyAlertSink(async_session_maker)


def get_alert_workflow(
    db: AsyncSession = Depends(get_db),
    sink: SqlAlchemyAlertSink = Depends(get_alert_sink),
) -> AlertWorkflow:
    return AlertWorkflow(source=StreamRepository(db), sink=sink)


@router.get("", response_model=AlertsListResponse)
async def list_alerts(
    organization_id: Optional[str] = Query(None, description="Organization ID"),
    status: Optional[AlertStatus] = Query(None, description="Filter by status (default: open and acknowledged)"),
    sink: SqlAlchemyAlertSink = Depends(get_alert_sink),
):
    """List alerts, most severe first."""
    alerts = await sink.list_alerts(organization_id=organization_id, status=status)
    return AlertsListResponse(
        alerts=[AlertResponse.model_validate(alert) for alert in alerts],
        total=len(alerts),
    )


async def _apply(action, alert_id: str) -> AlertResponse:
    try:
        alert = await action(alert_id)
    except AlertNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidAlertTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return AlertResponse.model_validate(alert)


@router.post("/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge_alert(alert_id: str, sink: SqlAlchemyAlertSink = Depends(get_alert_sink)):
    """Mark an open alert as seen."""
    return await _apply(sink.acknowledge, alert_id)


@router.post("/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(alert_id: str, sink: SqlAlchemyAlertSink = Depends(get_alert_sink)):
    """Mark an alert as resolved."""
    return await _apply(sink.resolve, alert_id)


@router.post("/{alert_id}/dismiss", response_model=AlertResponse)
async def dismiss_alert(alert_id: str, sink: SqlAlchemyAlertSink = Depends(get_alert_sink)):
    """Dismiss an open alert without action."""
    return await _apply(sink.dismiss, alert_id)


@router.post("/generate", response_model=AlertGenerationResponse)
async def generate_alerts(
    organization_id: Optional[str] = Query(None, description="Limit the scan to one organization"),
    workflow: AlertWorkflow = Depends(get_alert_workflow),
):
    """
    Run alert generation now.

    Returns 503 when the stream collection cannot be read, so the caller can
    retry later.
    """
    logger.info("Triggering manual alert generation")
    try:
        result = await workflow.run(organization_id)
    except SnapshotFetchError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return AlertGenerationResponse(
        success=result.ok,
        alerts_checked=result.alerts_checked,
        alerts_created=result.alerts_created,
        alerts_duplicate=result.alerts_duplicate,
        alerts_failed=result.alerts_failed,
    )
