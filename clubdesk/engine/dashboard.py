"""
Dashboard Selector

Picks next / last / upcoming events for one profile and builds the
profile's own view of each event.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel

from .attendance import DEFAULT_NET_PRACTICE_CUTOFF_HOURS, WindowState, age_check, window_state
from .fees import DEFAULT_DISCOUNT_RATE, DEFAULT_YOUTH_GROUPS, amount_due, discount_applies
from .models import Attending, AttendanceFact, Event, PaidStatus, Profile
from .payments import billing_bucket, can_submit_payment
from .visibility import is_visible


class EventView(BaseModel):
    """One event as seen by one profile"""
    event_id: str
    title: str
    kind: str
    starts_at: datetime
    status: str
    target_groups: List[str] = []
    base_fee: Decimal
    fee: Decimal
    discounted: bool = False
    attending: Attending = Attending.unknown
    attended: bool = False
    paid_status: PaidStatus = PaidStatus.unpaid
    window: WindowState = WindowState.open
    can_toggle: bool = False
    can_request: bool = False
    can_submit_payment: bool = False
    age_message: Optional[str] = None
    friends: Optional[Dict] = None


class DashboardStats(BaseModel):
    attending_this_month: int = 0
    pending_payments: int = 0


class DashboardSelection(BaseModel):
    next_event: Optional[EventView] = None
    last_event: Optional[EventView] = None
    upcoming: List[EventView] = []
    stats: DashboardStats = DashboardStats()


def event_view(
    event: Event,
    subject: Profile,
    fact: Optional[AttendanceFact],
    now: datetime,
    net_practice_cutoff_hours: int = DEFAULT_NET_PRACTICE_CUTOFF_HOURS,
    discount_rate: Decimal = DEFAULT_DISCOUNT_RATE,
    youth_groups: Sequence[str] = DEFAULT_YOUTH_GROUPS,
) -> EventView:
    fact = fact or AttendanceFact.blank(event.event_id, subject.profile_id)
    state = window_state(event, now, net_practice_cutoff_hours)
    open_ = not event.is_cancelled

    return EventView(
        event_id=event.event_id,
        title=event.title,
        kind=event.kind.value,
        starts_at=event.starts_at,
        status=event.status.value,
        target_groups=event.target_groups,
        base_fee=event.fee,
        fee=amount_due(fact, event, subject, discount_rate, youth_groups),
        discounted=discount_applies(
            None if subject.is_child else subject.membership_type,
            subject.groups,
            event.target_groups,
            subject.is_child,
            youth_groups,
        ),
        attending=fact.attending,
        attended=fact.attended,
        paid_status=fact.paid_status,
        window=state,
        can_toggle=open_ and state == WindowState.open,
        can_request=open_ and state == WindowState.request_only,
        can_submit_payment=can_submit_payment(fact, event),
        age_message=age_check(subject, event, now.date()),
    )


def select_dashboard(
    events: Iterable[Event],
    now: datetime,
    subject: Profile,
    facts: Mapping[str, AttendanceFact],
    window_days: int = 30,
    upcoming_limit: int = 7,
    net_practice_cutoff_hours: int = DEFAULT_NET_PRACTICE_CUTOFF_HOURS,
    discount_rate: Decimal = DEFAULT_DISCOUNT_RATE,
    youth_groups: Sequence[str] = DEFAULT_YOUTH_GROUPS,
) -> DashboardSelection:
    """
    Args:
        events: candidate events, covering the look-around window and the
            current month so far (filtered here)
        now: reference instant
        subject: profile the dashboard is for
        facts: the subject's attendance records keyed by event_id

    Returns:
        DashboardSelection. Friends summaries are attached by the caller.
    """
    events = list(events)
    lower = now - timedelta(days=window_days)
    upper = now + timedelta(days=window_days)

    in_window = sorted(
        (
            e for e in events
            if not e.is_cancelled
            and lower <= e.starts_at <= upper
            and is_visible(e, subject)
        ),
        key=lambda e: e.starts_at,
    )
    upcoming = [e for e in in_window if e.starts_at >= now][:upcoming_limit]
    past = [e for e in in_window if e.starts_at < now]

    def view(e: Event) -> EventView:
        return event_view(
            e, subject, facts.get(e.event_id), now,
            net_practice_cutoff_hours, discount_rate, youth_groups,
        )

    upcoming_views = [view(e) for e in upcoming]

    return DashboardSelection(
        next_event=upcoming_views[0] if upcoming_views else None,
        last_event=view(past[-1]) if past else None,
        upcoming=upcoming_views,
        stats=dashboard_stats(events, facts, now, subject),
    )


def dashboard_stats(
    events: Iterable[Event],
    facts: Mapping[str, AttendanceFact],
    now: datetime,
    subject: Optional[Profile] = None,
) -> DashboardStats:
    """
    Going this month and payments awaiting admin review

    The month count covers events from the 1st of the month up to now and
    needs those events in `events`. Pending payments are counted over every
    record in `facts`, whatever their event date.
    """
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    stats = DashboardStats()
    for event in events:
        if event.is_cancelled or not month_start <= event.starts_at <= now:
            continue
        if subject is not None and not is_visible(event, subject):
            continue
        fact = facts.get(event.event_id)
        if fact is not None and fact.attending == Attending.yes:
            stats.attending_this_month += 1

    stats.pending_payments = sum(
        1 for fact in facts.values() if billing_bucket(fact) == PaidStatus.pending
    )
    return stats
