"""
Detection Rules

Catalogue of the stream risk rules and their default thresholds. The
inactivity alert and the employer-withdrawal countdown both measure time
since employee activity but are separate policies with separate settings.
"""

from dataclasses import dataclass

from cascade.config import settings
from .models import AlertSeverity, AlertType


@dataclass(frozen=True)
class RiskThresholds:
    """Thresholds used by the RiskClassifier."""
    low_runway_hours: int = 72
    high_runway_hours: int = 48
    critical_runway_hours: int = 24
    inactivity_alert_days: int = 25

    @property
    def inactivity_alert_hours(self) -> int:
        return self.inactivity_alert_days * 24

    @classmethod
    def from_settings(cls) -> "RiskThresholds":
        return cls(
            low_runway_hours=settings.LOW_RUNWAY_HOURS,
            high_runway_hours=settings.HIGH_RUNWAY_HOURS,
            critical_runway_hours=settings.CRITICAL_RUNWAY_HOURS,
            inactivity_alert_days=settings.INACTIVITY_ALERT_DAYS,
        )


DETECTION_RULES = {
    AlertType.LOW_RUNWAY: {
        "name": "Low Runway",
        "description": "Active stream whose vault funds 72 hours of pay or less",
        "applies_to": ["active"],
        "severity": "critical <= 24h, high <= 48h, medium otherwise",
    },

    AlertType.INACTIVITY: {
        "name": "Employee Inactivity",
        "description": "No withdrawal or activity refresh for 25+ days",
        "applies_to": ["active"],
        "severity": AlertSeverity.HIGH,
    },

    AlertType.SUSPENDED_STREAM: {
        "name": "Suspended Stream",
        "description": "Stream is suspended and not paying out",
        "applies_to": ["suspended"],
        "severity": AlertSeverity.MEDIUM,
    },

    AlertType.TOKEN_ACCOUNT: {
        "name": "Empty Vault",
        "description": "Active stream whose vault balance is zero",
        "applies_to": ["active"],
        "severity": AlertSeverity.CRITICAL,
    },
}
