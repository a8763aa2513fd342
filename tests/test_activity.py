"""
Tests for the emergency-withdrawal countdown and the employee overview.
"""

import pytest
from datetime import timedelta
from decimal import Decimal

from cascade.streams.activity import (
    calendar_days_between,
    days_until_employer_withdrawal,
    hours_since,
)
from cascade.streams.overview import summarize_employee_streams
from cascade.streams.models import StreamEventType
from cascade.streams.schemas import StreamEventRecord, StreamStatus

from .conftest import NOW, make_snapshot


class TestDaysUntilEmployerWithdrawal:

    def test_no_activity_baseline(self):
        assert days_until_employer_withdrawal(None, NOW, 30) is None

    def test_thirty_days_inactive_is_eligible(self):
        assert days_until_employer_withdrawal(NOW - timedelta(days=30), NOW, 30) == 0

    def test_twenty_nine_days_leaves_one(self):
        assert days_until_employer_withdrawal(NOW - timedelta(days=29), NOW, 30) == 1

    def test_never_negative(self):
        assert days_until_employer_withdrawal(NOW - timedelta(days=400), NOW, 30) == 0

    def test_fresh_activity_restarts_full_threshold(self):
        assert days_until_employer_withdrawal(NOW, NOW, 30) == 30
        assert days_until_employer_withdrawal(NOW - timedelta(hours=3), NOW, 30) == 30

    def test_counts_calendar_days_not_24h_periods(self):
        """23:59 yesterday to 00:01 today is one calendar day."""
        late_yesterday = NOW.replace(hour=23, minute=59) - timedelta(days=1)
        just_after_midnight = NOW.replace(hour=0, minute=1)

        assert calendar_days_between(just_after_midnight, late_yesterday) == 1
        assert days_until_employer_withdrawal(late_yesterday, just_after_midnight, 30) == 29

    def test_threshold_defaults_to_settings(self):
        assert days_until_employer_withdrawal(NOW - timedelta(days=10), NOW) == 20

    @pytest.mark.parametrize("threshold", [7, 30, 45])
    def test_threshold_is_independent(self, threshold):
        assert days_until_employer_withdrawal(NOW - timedelta(days=5), NOW, threshold) == threshold - 5


class TestHoursSince:

    def test_absent(self):
        assert hours_since(None, NOW) is None

    def test_truncates(self):
        assert hours_since(NOW - timedelta(hours=599, minutes=59), NOW) == 599
        assert hours_since(NOW - timedelta(days=25), NOW) == 600


class TestEmployeeOverview:

    def test_totals_and_latest_activity(self):
        older = NOW - timedelta(days=20)
        newer = NOW - timedelta(days=4)
        snapshots = [
            make_snapshot("a", created_at=NOW - timedelta(hours=3), last_activity_at=older),
            make_snapshot(
                "b",
                hourly_rate="10",
                total_deposited="1000",
                withdrawn_amount="5",
                created_at=NOW - timedelta(hours=2),
                last_activity_at=newer,
            ),
            make_snapshot("c", status=StreamStatus.CLOSED, last_activity_at=None),
        ]

        overview = summarize_employee_streams(snapshots, NOW, threshold_days=30)

        assert overview.total_earned == Decimal("3000020")
        assert overview.available_to_withdraw == Decimal("3000015")
        assert overview.active_streams == 2
        assert overview.last_activity_at == newer
        assert overview.days_until_employer_withdrawal == 26
        assert len(overview.streams) == 3

    def test_no_streams(self):
        overview = summarize_employee_streams([], NOW)

        assert overview.total_earned == 0
        assert overview.active_streams == 0
        assert overview.days_until_employer_withdrawal is None

    def test_recent_withdrawals_are_carried(self):
        withdrawal = StreamEventRecord(
            id="w1",
            stream_id="a",
            event_type=StreamEventType.WITHDRAWN,
            occurred_at=NOW - timedelta(days=1),
            amount=Decimal("25"),
            signature="sig-1",
        )

        overview = summarize_employee_streams([make_snapshot("a")], NOW, withdrawals=[withdrawal])

        assert overview.recent_withdrawals == [withdrawal]
        assert summarize_employee_streams([], NOW).recent_withdrawals == []
