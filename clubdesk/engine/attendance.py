"""
Attendance State Machine

unknown -> yes / no, yes <-> no, self-service by the owning profile or a
parent acting for a child profile. `attended` is a separate admin-only
transition.

Attendance window:
- default events lock at start time
- net practice locks `cutoff` hours before start; between the cutoff and
  the start a participation request replaces the toggle
"""
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .errors import Forbidden, InvalidState, ValidationError
from .models import (
    AdultProfile,
    Attending,
    AttendanceFact,
    Event,
    EventKind,
    ParticipationRequest,
    Profile,
    RequestStatus,
)
from .transitions import Transition, changed, unchanged
from .visibility import is_visible

DEFAULT_NET_PRACTICE_CUTOFF_HOURS = 48


class WindowState(str, Enum):
    open = "open"
    request_only = "request_only"  # past the cutoff, before start
    closed = "closed"


# =============================================
# Guards
# =============================================

def ensure_can_act_for(subject: Profile, actor_id: str) -> None:
    """Only the profile itself, or a parent for a child profile"""
    if subject.profile_id == actor_id:
        return
    if subject.is_child and actor_id in subject.parent_ids:
        return
    raise Forbidden("You can only act for your own profile or your children")


def ensure_admin(actor: Optional[AdultProfile]) -> None:
    if actor is None or not actor.is_admin:
        raise Forbidden("Admin access required")


def ensure_visible(event: Event, subject: Profile) -> None:
    if not is_visible(event, subject):
        raise Forbidden("This event is not open to this profile")


# =============================================
# Window
# =============================================

def cutoff_hours(event: Event, net_practice_cutoff_hours: int = DEFAULT_NET_PRACTICE_CUTOFF_HOURS) -> int:
    """Explicit per-event cutoff, else the net practice default, else 0"""
    if event.attendance_cutoff_hours is not None:
        return max(event.attendance_cutoff_hours, 0)
    if event.kind == EventKind.net_practice:
        return net_practice_cutoff_hours
    return 0


def close_time(event: Event, net_practice_cutoff_hours: int = DEFAULT_NET_PRACTICE_CUTOFF_HOURS) -> datetime:
    """Instant after which self-service toggling is no longer allowed"""
    return event.starts_at - timedelta(hours=cutoff_hours(event, net_practice_cutoff_hours))


def window_state(
    event: Event,
    now: datetime,
    net_practice_cutoff_hours: int = DEFAULT_NET_PRACTICE_CUTOFF_HOURS,
) -> WindowState:
    if now >= event.starts_at:
        return WindowState.closed
    if now >= close_time(event, net_practice_cutoff_hours):
        return WindowState.request_only
    return WindowState.open


# =============================================
# Age eligibility
# =============================================

def age_on(birth_date: Optional[date], today: date) -> Optional[int]:
    """Age in whole years, None when unknown"""
    if birth_date is None:
        return None
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age if age >= 0 else None


def age_eligibility_message(age: Optional[int], min_age: int, max_age: int) -> Optional[str]:
    """Rejection text, None when eligible"""
    if age is None:
        return "Birth date required to verify age eligibility"
    if age < min_age:
        return f"Age {age} - Too young (Event requires ages {min_age}-{max_age})"
    if age > max_age:
        return f"Age {age} - Too old (Event requires ages {min_age}-{max_age})"
    return None


def age_check(subject: Profile, event: Event, today: date) -> Optional[str]:
    """Message when a child is outside the event's age range"""
    if not subject.is_child or event.age_range is None:
        return None
    age = age_on(subject.birth_date, today)
    return age_eligibility_message(age, event.age_range.min, event.age_range.max)


# =============================================
# Transitions
# =============================================

def _parse_choice(choice) -> Attending:
    if isinstance(choice, Attending):
        value = choice
    else:
        try:
            value = Attending(str(choice or "").strip().lower())
        except ValueError:
            raise ValidationError("Invalid attending value")
    if value == Attending.unknown:
        raise ValidationError("Invalid attending value")
    return value


def set_attending(
    fact: Optional[AttendanceFact],
    event: Event,
    subject: Profile,
    actor_id: str,
    choice,
    now: datetime,
    net_practice_cutoff_hours: int = DEFAULT_NET_PRACTICE_CUTOFF_HOURS,
) -> Transition:
    """
    Profile's own going / not going toggle

    Raises:
        ValidationError: choice is not yes / no
        Forbidden: actor is not the profile or its parent, or event not visible
        InvalidState: event cancelled, window closed, or child outside age range
    """
    value = _parse_choice(choice)
    ensure_can_act_for(subject, actor_id)
    ensure_visible(event, subject)

    if event.is_cancelled:
        raise InvalidState("Event has been cancelled")

    state = window_state(event, now, net_practice_cutoff_hours)
    if state == WindowState.closed:
        raise InvalidState("Attendance is locked after the event starts")
    if state == WindowState.request_only:
        raise InvalidState(
            "Attendance cut-off has passed. Send a participation request instead"
        )

    if value == Attending.yes:
        message = age_check(subject, event, now.date())
        if message:
            raise InvalidState(message)

    fact = fact or AttendanceFact.blank(event.event_id, subject.profile_id)
    if fact.attending == value:
        return unchanged(fact)

    return changed(fact, {"attending": value, "marked_at": now})


def set_attended(
    fact: Optional[AttendanceFact],
    event: Event,
    profile_id: str,
    value: bool,
    admin: AdultProfile,
    now: datetime,
) -> Transition:
    """Admin confirmation of physical presence"""
    ensure_admin(admin)
    fact = fact or AttendanceFact.blank(event.event_id, profile_id)
    if fact.attended == bool(value):
        return unchanged(fact)
    return changed(fact, {"attended": bool(value), "attended_at": now if value else None})


def pending_attendance_confirmations(facts: Iterable[AttendanceFact]) -> List[AttendanceFact]:
    """Records a bulk "mark all attended" should flip"""
    return [f for f in facts if f.attending == Attending.yes and not f.attended]


# =============================================
# Participation requests
# =============================================

def request_participation(
    event: Event,
    subject: Profile,
    actor_id: str,
    now: datetime,
    existing: Optional[ParticipationRequest] = None,
    net_practice_cutoff_hours: int = DEFAULT_NET_PRACTICE_CUTOFF_HOURS,
) -> ParticipationRequest:
    """
    Late participation request, only between the cutoff and the start

    Raises:
        Forbidden: actor is not the profile or its parent, or event not visible
        InvalidState: wrong window, cancelled event, or duplicate request
    """
    ensure_can_act_for(subject, actor_id)
    ensure_visible(event, subject)

    if event.is_cancelled:
        raise InvalidState("Event has been cancelled")
    if cutoff_hours(event, net_practice_cutoff_hours) <= 0:
        raise InvalidState("Participation requests not permitted for this event")

    state = window_state(event, now, net_practice_cutoff_hours)
    if state == WindowState.open:
        raise InvalidState("Cut-off not reached yet. Mark attendance directly")
    if state == WindowState.closed:
        raise InvalidState("Event has already started")

    if existing is not None:
        raise InvalidState("Participation request already exists")

    return ParticipationRequest(
        event_id=event.event_id,
        profile_id=subject.profile_id,
        profile_name=subject.name,
        kind="child" if subject.is_child else "adult",
        requested_by=actor_id,
        requested_at=now,
    )


def resolve_participation_request(
    request: ParticipationRequest,
    fact: Optional[AttendanceFact],
    approve: bool,
    admin: AdultProfile,
    now: datetime,
) -> Tuple[ParticipationRequest, Optional[Transition]]:
    """
    Approve or reject a pending request

    Approval marks the profile going and confirms attendance.
    """
    ensure_admin(admin)
    if request.status != RequestStatus.pending:
        raise InvalidState("Request is not pending")

    resolved = request.model_copy(update={
        "status": RequestStatus.approved if approve else RequestStatus.rejected,
        "resolved_at": now,
        "resolved_by": admin.profile_id,
    })
    if not approve:
        return resolved, None

    fact = fact or AttendanceFact.blank(request.event_id, request.profile_id)
    patch = {}
    if fact.attending != Attending.yes:
        patch.update({"attending": Attending.yes, "marked_at": now})
    if not fact.attended:
        patch.update({"attended": True, "attended_at": now})
    return resolved, (changed(fact, patch) if patch else unchanged(fact))
