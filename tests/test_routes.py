"""
API tests for the stream, insights and alert routes, plus the scheduler job.

The database is never touched: get_db yields a mock session, repositories
are patched and the alert sink is replaced with the in-memory fake.
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from cascade.database import get_db
from cascade.detection.routes import get_alert_sink, get_alert_workflow
from cascade.detection.scheduler import AlertScheduler, setup_apscheduler
from cascade.detection.workflow import AlertWorkflow
from cascade.main import app
from cascade.streams.models import StreamEventType
from cascade.streams.schemas import StreamEventRecord, StreamStatus

from .conftest import NOW, FakeSnapshotSource, InMemoryAlertSink, make_snapshot


async def override_get_db():
    yield MagicMock()


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def patched_repository(module, snapshots=None, error=None):
    repository = MagicMock()
    repository.fetch_streams = AsyncMock(return_value=snapshots or [], side_effect=error)
    repository.fetch_employee_streams = AsyncMock(return_value=snapshots or [], side_effect=error)
    return patch(f"{module}.StreamRepository", return_value=repository)


def patched_event_log(module, withdrawals=None):
    event_log = MagicMock()
    event_log.fetch_withdrawals = AsyncMock(return_value=withdrawals or [])
    event_log.fetch_emergency_withdrawals = AsyncMock(return_value=[])
    return patch(f"{module}.EventLog", return_value=event_log)


# =============================================================================
# Health
# =============================================================================

class TestHealth:

    def test_health_reports_scheduler(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "last_run" in response.json()["scheduler"]


# =============================================================================
# Insights
# =============================================================================

class TestOverviewRoute:

    def test_overview(self, client):
        snapshots = [
            make_snapshot("a", hourly_rate="10", total_deposited="4800"),
            make_snapshot("b", hourly_rate="1", total_deposited="10"),
            make_snapshot("c", status=StreamStatus.SUSPENDED, total_deposited="50"),
        ]
        events = [
            StreamEventRecord(
                id="e1",
                stream_id="a",
                event_type=StreamEventType.EMERGENCY_WITHDRAW,
                occurred_at=None,
            )
        ]
        event_log = MagicMock()
        event_log.fetch_emergency_withdrawals = AsyncMock(return_value=events)

        with patched_repository("cascade.insights.routes", snapshots), \
                patch("cascade.insights.routes.EventLog", return_value=event_log):
            response = client.get("/api/insights/overview", params={"organization_id": "org-1"})

        assert response.status_code == 200
        data = response.json()
        assert data["metrics"]["active_streams"] == 2
        assert Decimal(data["metrics"]["total_deposited"]) == Decimal("4860")
        assert Decimal(data["metrics"]["monthly_burn"]) == Decimal("7920")
        assert data["secondary"]["pending_actions"] == 2
        assert data["secondary"]["clawback_count"] == 0
        assert [card["id"] for card in data["cards"]] == [
            "active-streams",
            "monthly-burn",
            "total-deposited",
            "vault-coverage",
        ]
        assert {alert["type"] for alert in data["alerts"]} == {"low_runway", "suspended_stream"}

    def test_organization_required(self, client):
        response = client.get("/api/insights/overview")

        assert response.status_code == 422

    def test_load_failure(self, client):
        with patched_repository("cascade.insights.routes", error=RuntimeError("boom")):
            response = client.get("/api/insights/overview", params={"organization_id": "org-1"})

        assert response.status_code == 500
        assert "boom" in response.json()["detail"]


# =============================================================================
# Employee overview
# =============================================================================

class TestEmployeeOverviewRoute:

    def test_employee_overview(self, client):
        snapshots = [
            make_snapshot("a", hourly_rate="10", total_deposited="100", withdrawn_amount="30"),
            make_snapshot("b", status=StreamStatus.CLOSED),
        ]

        withdrawals = [
            StreamEventRecord(
                id="w1",
                stream_id="a",
                event_type=StreamEventType.WITHDRAWN,
                occurred_at=NOW,
                amount=Decimal("30"),
                signature="sig-1",
            )
        ]

        with patched_repository("cascade.streams.routes", snapshots), \
                patched_event_log("cascade.streams.routes", withdrawals):
            response = client.get(
                "/api/streams/employees/emp-1/overview",
                params={"organization_id": "org-1"},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["employee_id"] == "emp-1"
        assert Decimal(data["total_earned"]) == Decimal("100")
        assert Decimal(data["available_to_withdraw"]) == Decimal("70")
        assert data["active_streams"] == 1
        assert data["days_until_employer_withdrawal"] is None
        assert [stream["id"] for stream in data["streams"]] == ["a", "b"]
        assert len(data["recent_withdrawals"]) == 1
        assert data["recent_withdrawals"][0]["signature"] == "sig-1"
        assert Decimal(data["recent_withdrawals"][0]["amount"]) == Decimal("30")

    def test_load_failure(self, client):
        with patched_repository("cascade.streams.routes", error=RuntimeError("down")):
            response = client.get(
                "/api/streams/employees/emp-1/overview",
                params={"organization_id": "org-1"},
            )

        assert response.status_code == 500


# =============================================================================
# Alerts
# =============================================================================

@pytest.fixture
def alert_client(client):
    sink = InMemoryAlertSink()
    source = FakeSnapshotSource([
        make_snapshot("low", hourly_rate="1", total_deposited="10"),
        make_snapshot("empty", total_deposited="0"),
    ])
    app.dependency_overrides[get_alert_sink] = lambda: sink
    app.dependency_overrides[get_alert_workflow] = lambda: AlertWorkflow(
        source=source, sink=sink, clock=lambda: NOW
    )
    return client, sink, source


class TestAlertRoutes:

    def test_generate_then_list(self, alert_client):
        client, sink, _ = alert_client

        response = client.post("/api/alerts/generate")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "alerts_checked": 2,
            "alerts_created": 2,
            "alerts_duplicate": 0,
            "alerts_failed": 0,
        }

        listed = client.get("/api/alerts").json()
        assert listed["total"] == 2
        assert {alert["type"] for alert in listed["alerts"]} == {"low_runway", "token_account"}
        assert all(alert["status"] == "open" for alert in listed["alerts"])

    def test_generate_twice_reports_duplicates(self, alert_client):
        client, _, _ = alert_client

        client.post("/api/alerts/generate")
        response = client.post("/api/alerts/generate")

        assert response.json()["alerts_created"] == 0
        assert response.json()["alerts_duplicate"] == 2

    def test_generate_fetch_failure_is_503(self, alert_client):
        client, _, source = alert_client
        source.error = ConnectionError("db down")

        response = client.post("/api/alerts/generate")

        assert response.status_code == 503

    def test_lifecycle(self, alert_client):
        client, sink, _ = alert_client
        client.post("/api/alerts/generate")
        alert_id = next(iter(sink.alerts))

        acknowledged = client.post(f"/api/alerts/{alert_id}/acknowledge")
        resolved = client.post(f"/api/alerts/{alert_id}/resolve")
        conflict = client.post(f"/api/alerts/{alert_id}/dismiss")

        assert acknowledged.status_code == 200
        assert acknowledged.json()["status"] == "acknowledged"
        assert resolved.json()["status"] == "resolved"
        assert conflict.status_code == 409

    def test_unknown_alert_is_404(self, alert_client):
        client, _, _ = alert_client

        response = client.post("/api/alerts/missing/acknowledge")

        assert response.status_code == 404


# =============================================================================
# Scheduler
# =============================================================================

class TestAlertScheduler:

    @pytest.mark.asyncio
    async def test_fetch_failure_is_recorded(self):
        session = MagicMock()
        session.execute = AsyncMock(side_effect=RuntimeError("connection refused"))
        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=session)
        context.__aexit__ = AsyncMock(return_value=False)
        scheduler = AlertScheduler(session_factory=MagicMock(return_value=context))

        summary = await scheduler.run_alert_generation()

        assert summary["alerts_created"] == 0
        assert len(summary["errors"]) == 1
        assert scheduler.get_status()["running"] is False
        assert scheduler.get_status()["last_summary"] is summary

    @pytest.mark.asyncio
    async def test_empty_collection(self):
        result = MagicMock()
        result.all.return_value = []
        session = MagicMock()
        session.execute = AsyncMock(return_value=result)
        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=session)
        context.__aexit__ = AsyncMock(return_value=False)
        scheduler = AlertScheduler(session_factory=MagicMock(return_value=context))

        summary = await scheduler.run_alert_generation("org-1")

        assert summary["errors"] == []
        assert summary["alerts_checked"] == 0
        assert summary["organization_id"] == "org-1"

    def test_setup_registers_single_interval_job(self):
        scheduler = MagicMock()

        setup_apscheduler(scheduler, interval_minutes=5)

        args, kwargs = scheduler.add_job.call_args
        assert args[1] == "interval"
        assert kwargs["minutes"] == 5
        assert kwargs["id"] == "alert_generation"
        assert kwargs["max_instances"] == 1
