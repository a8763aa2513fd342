# Detection Module
# Scans payroll streams for funding and activity risk
#
# Components:
# - engine.py: RiskClassifier with the four stream risk rules
# - rules.py: Rule catalogue and RiskThresholds
# - sink.py: AlertSink contract and SQLAlchemy implementation
# - workflow.py: AlertWorkflow (fetch -> classify -> persist)
# - scheduler.py: Background job scheduler (APScheduler integration)
# - models.py: Alert model and enums

from .models import (
    Alert,
    AlertType,
    AlertSeverity,
    AlertStatus,
)
from .engine import RiskAlert, RiskClassifier, rank_alerts
from .rules import DETECTION_RULES, RiskThresholds
from .sink import (
    AlertSink,
    SqlAlchemyAlertSink,
    UpsertResult,
    AlertNotFoundError,
    InvalidAlertTransitionError,
)
from .workflow import AlertWorkflow, AlertGenerationResult, SnapshotFetchError
from .scheduler import AlertScheduler, alert_scheduler, setup_apscheduler

__all__ = [
    # Models
    "Alert",
    "AlertType",
    "AlertSeverity",
    "AlertStatus",
    # Classifier
    "RiskAlert",
    "RiskClassifier",
    "rank_alerts",
    # Rules
    "DETECTION_RULES",
    "RiskThresholds",
    # Sink
    "AlertSink",
    "SqlAlchemyAlertSink",
    "UpsertResult",
    "AlertNotFoundError",
    "InvalidAlertTransitionError",
    # Workflow
    "AlertWorkflow",
    "AlertGenerationResult",
    "SnapshotFetchError",
    # Scheduler
    "AlertScheduler",
    "alert_scheduler",
    "setup_apscheduler",
]
