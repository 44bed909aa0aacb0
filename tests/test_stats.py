"""
Stats aggregator tests
"""

from datetime import datetime, timezone
from decimal import Decimal

from clubdesk.engine.models import AttendanceFact, Event
from clubdesk.engine.stats import available_years, event_stats, payment_stats, percent


def _event(event_id, month, day=10, **kwargs):
    data = {
        "event_id": event_id,
        "starts_at": datetime(2026, month, day, 18, 0, tzinfo=timezone.utc),
        "fee": "10",
        "target_groups": ["Men"],
    }
    data.update(kwargs)
    return Event(**data)


def test_percent_half_up():
    assert percent(1, 8) == 13  # 12.5
    assert percent(2, 3) == 67
    assert percent(1, 3) == 33
    assert percent(0, 0) == 0


def test_available_years():
    assert available_years(2026) == [2026, 2025, 2024]
    assert available_years(2026, years_back=1) == [2026, 2025]


class TestEventStats:
    """Monthly attendance"""

    def test_monthly_and_summary(self, man):
        events = [
            _event("jan-1", 1),
            _event("jan-2", 1, day=20),
            _event("mar-1", 3),
            _event("mar-cancelled", 3, status="cancelled"),
            _event("mar-women", 3, target_groups=["Women"]),
            _event("last-year", 1, starts_at=datetime(2025, 5, 1, tzinfo=timezone.utc)),
        ]
        facts = {
            "jan-1": AttendanceFact(event_id="jan-1", profile_id="p-men", attending="yes"),
            "jan-2": AttendanceFact(event_id="jan-2", profile_id="p-men", attending="no"),
            "mar-1": AttendanceFact(event_id="mar-1", profile_id="p-men", attending="yes"),
        }
        result = event_stats(events, facts, man, 2026)

        assert len(result["monthly"]) == 12
        assert result["monthly"][0] == {"month": "2026-01", "total": 2, "attended": 1, "rate": 50}
        assert result["monthly"][2] == {"month": "2026-03", "total": 1, "attended": 1, "rate": 100}
        assert result["monthly"][1]["rate"] == 0
        assert result["summary"] == {
            "total_events": 3,
            "attended": 2,
            "missed": 1,
            "attendance_rate": 67,
        }


class TestPaymentStats:
    """Paid / pending / outstanding"""

    def test_buckets(self, student):
        events = [
            _event("paid", 1),
            _event("pending", 2),
            _event("owed", 3),
            _event("not-billable", 4),
        ]
        facts = {
            "paid": AttendanceFact(event_id="paid", profile_id="p-student", attended=True, paid_status="paid"),
            "pending": AttendanceFact(event_id="pending", profile_id="p-student", attended=True, paid_status="pending"),
            "owed": AttendanceFact(event_id="owed", profile_id="p-student", attended=True, fee_due="4"),
            "not-billable": AttendanceFact(event_id="not-billable", profile_id="p-student", attending="yes"),
        }
        result = payment_stats(events, facts, student, 2026)

        summary = result["summary"]
        assert summary["total_paid"] == Decimal("7.50")
        assert summary["total_pending"] == Decimal("7.50")
        assert summary["total_outstanding"] == Decimal("4.00")
        assert summary["events_paid"] == 1
        assert summary["events_pending"] == 1
        assert summary["events_outstanding"] == 1

        assert result["monthly"][0]["paid"] == Decimal("7.50")
        assert result["monthly"][3]["outstanding"] == Decimal("0.00")

        assert [row["event_id"] for row in result["event_breakdown"]] == ["owed", "pending", "paid"]
        assert result["event_breakdown"][0]["event_date"] == "2026-03-10"

    def test_breakdown_limit(self, man):
        events = [_event(f"e{m}", m) for m in range(1, 13)]
        facts = {
            e.event_id: AttendanceFact(event_id=e.event_id, profile_id="p-men", attended=True)
            for e in events
        }
        result = payment_stats(events, facts, man, 2026, breakdown_limit=5)
        assert len(result["event_breakdown"]) == 5
        assert result["event_breakdown"][0]["event_id"] == "e12"
        assert result["summary"]["events_outstanding"] == 12

    def test_unconfirmed_membership_not_outstanding(self, woman):
        fee = _event("membership", 1, day=1, kind="membership_fee", fee="100", target_groups=["Women"])
        facts = {"membership": AttendanceFact(event_id="membership", profile_id="p-women", attending="yes")}
        result = payment_stats([fee], facts, woman, 2026)
        assert result["summary"]["events_outstanding"] == 0
        assert result["summary"]["total_outstanding"] == Decimal("0.00")
        assert result["event_breakdown"] == []
