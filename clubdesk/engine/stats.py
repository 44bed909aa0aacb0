"""
Stats Aggregator

Yearly attendance and payment statistics for one profile.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Mapping, Sequence

from .fees import DEFAULT_DISCOUNT_RATE, DEFAULT_YOUTH_GROUPS, amount_due
from .models import Attending, AttendanceFact, Event, PaidStatus, Profile
from .payments import billing_bucket, is_outstanding
from .timestamps import month_key
from .visibility import is_visible


def percent(part: int, whole: int) -> int:
    """Integer percentage, half-up, 0 for an empty whole"""
    if whole <= 0:
        return 0
    value = Decimal(part) * 100 / Decimal(whole)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def available_years(latest_year: int, years_back: int = 2) -> List[int]:
    """Latest year first"""
    return list(range(latest_year, latest_year - years_back - 1, -1))


def _month_keys(year: int) -> List[str]:
    return [f"{year}-{m:02d}" for m in range(1, 13)]


def _year_events(events: Iterable[Event], subject: Profile, year: int) -> List[Event]:
    return [
        e for e in events
        if e.starts_at.year == year
        and not e.is_cancelled
        and is_visible(e, subject)
    ]


# =============================================
# Attendance
# =============================================

def event_stats(
    events: Iterable[Event],
    facts: Mapping[str, AttendanceFact],
    subject: Profile,
    year: int,
) -> Dict:
    """
    Monthly attendance for one profile

    An event counts as attended when the profile marked itself going.

    Returns:
        {"monthly": [{month, total, attended, rate}], "summary": {...}}
    """
    monthly = {key: {"total": 0, "attended": 0} for key in _month_keys(year)}
    total = attended = 0

    for event in _year_events(events, subject, year):
        key = month_key(event.starts_at)
        total += 1
        monthly[key]["total"] += 1

        fact = facts.get(event.event_id)
        if fact is not None and fact.attending == Attending.yes:
            attended += 1
            monthly[key]["attended"] += 1

    return {
        "monthly": [
            {
                "month": key,
                "total": data["total"],
                "attended": data["attended"],
                "rate": percent(data["attended"], data["total"]),
            }
            for key, data in monthly.items()
        ],
        "summary": {
            "total_events": total,
            "attended": attended,
            "missed": total - attended,
            "attendance_rate": percent(attended, total),
        },
    }


# =============================================
# Payments
# =============================================

def payment_stats(
    events: Iterable[Event],
    facts: Mapping[str, AttendanceFact],
    subject: Profile,
    year: int,
    breakdown_limit: int = 20,
    discount_rate: Decimal = DEFAULT_DISCOUNT_RATE,
    youth_groups: Sequence[str] = DEFAULT_YOUTH_GROUPS,
) -> Dict:
    """
    Monthly paid / pending / outstanding amounts for one profile

    Only records that passed the billing gate are counted.
    """
    zero = Decimal("0.00")
    monthly = {
        key: {"paid": zero, "pending": zero, "outstanding": zero}
        for key in _month_keys(year)
    }
    summary = {
        "total_paid": zero,
        "total_pending": zero,
        "total_outstanding": zero,
        "events_paid": 0,
        "events_pending": 0,
        "events_outstanding": 0,
    }
    breakdown = []

    for event in _year_events(events, subject, year):
        fact = facts.get(event.event_id)
        bucket = billing_bucket(fact)
        if bucket is None:
            continue

        amount = amount_due(fact, event, subject, discount_rate, youth_groups)
        key = month_key(event.starts_at)

        if bucket == PaidStatus.paid:
            name = "paid"
        elif bucket == PaidStatus.pending:
            name = "pending"
        elif is_outstanding(bucket):
            name = "outstanding"
        else:
            continue

        monthly[key][name] += amount
        summary[f"total_{name}"] += amount
        summary[f"events_{name}"] += 1

        breakdown.append({
            "event_id": event.event_id,
            "event_name": event.title,
            "event_date": event.starts_at.date().isoformat(),
            "starts_at": event.starts_at,
            "amount": amount,
            "paid_status": fact.paid_status.value,
        })

    breakdown.sort(key=lambda row: row["starts_at"], reverse=True)
    for row in breakdown:
        row.pop("starts_at")

    return {
        "monthly": [{"month": key, **data} for key, data in monthly.items()],
        "summary": summary,
        "event_breakdown": breakdown[:breakdown_limit],
    }
