"""Pydantic schemas for the alerts API."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .models import AlertSeverity, AlertStatus, AlertType


class AlertResponse(BaseModel):
    """Response schema for a persisted alert."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    type: AlertType
    severity: AlertSeverity
    status: AlertStatus
    title: str
    description: Optional[str] = None
    stream_id: Optional[str] = None
    employee_id: Optional[str] = None
    triggered_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="extra_data")


class AlertsListResponse(BaseModel):
    alerts: List[AlertResponse]
    total: int


class AlertGenerationResponse(BaseModel):
    """Result of a manual alert generation run."""
    success: bool
    alerts_checked: int
    alerts_created: int
    alerts_duplicate: int
    alerts_failed: int
