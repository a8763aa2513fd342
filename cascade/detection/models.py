"""
Detection Models

Alert rows and the enums shared by the classifier, the alert sink and the API.
"""

from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, String, DateTime, JSON, Text, Index
from sqlalchemy.sql import func

from cascade.database import Base


class AlertType(str, Enum):
    """Risk conditions detected on a stream."""
    LOW_RUNWAY = "low_runway"              # Vault funds less than 72h of pay
    INACTIVITY = "inactivity"              # Employee silent for 25+ days
    SUSPENDED_STREAM = "suspended_stream"  # Stream suspended
    TOKEN_ACCOUNT = "token_account"        # Active stream with an empty vault


class AlertSeverity(str, Enum):
    """Severity levels for alerts, most urgent first."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


SEVERITY_RANK = {
    AlertSeverity.CRITICAL: 0,
    AlertSeverity.HIGH: 1,
    AlertSeverity.MEDIUM: 2,
}


class AlertStatus(str, Enum):
    """Status of a persisted alert."""
    OPEN = "open"                  # Newly detected, needs attention
    ACKNOWLEDGED = "acknowledged"  # Employer has seen it
    RESOLVED = "resolved"          # Condition handled or cleared
    DISMISSED = "dismissed"        # Employer dismissed without action


# Statuses that block a new alert for the same (stream, type)
UNRESOLVED_STATUSES = (AlertStatus.OPEN, AlertStatus.ACKNOWLEDGED)

ALLOWED_TRANSITIONS = {
    AlertStatus.OPEN: {AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED, AlertStatus.DISMISSED},
    AlertStatus.ACKNOWLEDGED: {AlertStatus.RESOLVED},
    AlertStatus.RESOLVED: set(),
    AlertStatus.DISMISSED: set(),
}


class Alert(Base):
    """
    Persisted risk alert.

    At most one unresolved alert exists per (stream_id, type); re-detection of
    the same condition is reported as a duplicate rather than inserted.
    """
    __tablename__ = "alerts"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    organization_id = Column(String, nullable=True, index=True)
    stream_id = Column(String, nullable=True)
    employee_id = Column(String, nullable=True)

    # Alert details
    type = Column(String, nullable=False)
    severity = Column(String, nullable=False, default=AlertSeverity.MEDIUM.value)
    status = Column(String, nullable=False, default=AlertStatus.OPEN.value)
    title = Column(String(160), nullable=False)
    description = Column(Text, nullable=True)
    extra_data = Column("metadata", JSON, nullable=False, default=dict)

    # Timing
    triggered_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("alerts_org_status_idx", "organization_id", "status"),
        Index("alerts_stream_idx", "stream_id", "type", "status"),
    )
