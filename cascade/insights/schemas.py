"""Pydantic schemas for the employer overview API."""
from pydantic import BaseModel
from typing import List, Optional
from decimal import Decimal


class MetricCard(BaseModel):
    """Display-ready metric for the overview header."""
    id: str
    label: str
    value: str
    tooltip: str


class OverviewMetricsResponse(BaseModel):
    active_streams: int
    monthly_burn: Decimal
    total_deposited: Decimal
    vault_coverage_days: Optional[Decimal] = None  # None when nothing active is paying


class SecondaryMetricsResponse(BaseModel):
    pending_actions: int
    inactivity_risk_count: int
    clawback_count: int
    token_health_percentage: int


class OverviewAlertResponse(BaseModel):
    id: str
    type: str
    level: str
    title: str
    description: str
    count: int


class OverviewResponse(BaseModel):
    """Complete employer overview."""
    metrics: OverviewMetricsResponse
    secondary: SecondaryMetricsResponse
    cards: List[MetricCard]
    alerts: List[OverviewAlertResponse]
