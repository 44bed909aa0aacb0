"""
Payment State Machine & Billing Gate

    unpaid ──profile──▶ pending ──admin──▶ paid
                          │
                          └──admin──▶ rejected ──profile──▶ pending

A record only owes money once an admin confirmed attendance
(`attended`). Membership fees can be declared paid without it.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from .attendance import ensure_admin, ensure_can_act_for
from .errors import InvalidState, ValidationError
from .fees import to_money
from .models import (
    AdultProfile,
    Attending,
    AttendanceFact,
    Event,
    PaidStatus,
    Profile,
)
from .transitions import Transition, changed, unchanged

# Admin list sort order
STATUS_PRIORITY = {
    PaidStatus.pending: 0,
    PaidStatus.unpaid: 1,
    PaidStatus.paid: 2,
    PaidStatus.rejected: 3,
}


# =============================================
# Billing gate
# =============================================

def is_billable(fact: Optional[AttendanceFact]) -> bool:
    return fact is not None and fact.attended


def billing_bucket(fact: Optional[AttendanceFact]) -> Optional[PaidStatus]:
    """
    Bucket a record is counted in, None when it owes nothing yet

    paid / pending always count. unpaid / rejected only count once the
    record is billable, membership fee events included.
    """
    if fact is None:
        return None
    if fact.paid_status in (PaidStatus.paid, PaidStatus.pending):
        return fact.paid_status
    if is_billable(fact):
        return fact.paid_status
    return None


def is_outstanding(bucket: Optional[PaidStatus]) -> bool:
    return bucket in (PaidStatus.unpaid, PaidStatus.rejected)


def can_submit_payment(fact: Optional[AttendanceFact], event: Event) -> bool:
    """Whether the profile should be offered "mark as paid" """
    if event.is_cancelled:
        return False
    status = fact.paid_status if fact is not None else PaidStatus.unpaid
    if status not in (PaidStatus.unpaid, PaidStatus.rejected):
        return False
    return event.is_membership or is_billable(fact)


# =============================================
# Profile transition
# =============================================

def submit_payment(
    fact: Optional[AttendanceFact],
    event: Event,
    subject: Profile,
    actor_id: str,
    now: datetime,
) -> Transition:
    """
    Profile declares "I have paid"

    Raises:
        Forbidden: actor is not the profile or its parent
        InvalidState: already paid, event cancelled, or attendance not confirmed
    """
    ensure_can_act_for(subject, actor_id)
    fact = fact or AttendanceFact.blank(event.event_id, subject.profile_id)

    if fact.paid_status == PaidStatus.pending:
        return unchanged(fact)
    if fact.paid_status == PaidStatus.paid:
        raise InvalidState("Payment already confirmed")
    if event.is_cancelled:
        raise InvalidState("Event has been cancelled")

    if not event.is_membership and not fact.attended:
        raise InvalidState("Attendance not confirmed yet")

    patch = {"paid_status": PaidStatus.pending, "paid_updated_at": now}
    if subject.is_child:
        patch["paid_by"] = actor_id
    if event.is_membership and fact.attending != Attending.yes:
        patch.update({"attending": Attending.yes, "marked_at": now})

    return changed(fact, patch, expected=fact.paid_status)


# =============================================
# Admin transitions
# =============================================

def _admin_transition(
    fact: Optional[AttendanceFact],
    target: PaidStatus,
    admin: AdultProfile,
    now: datetime,
    event_id: str,
    profile_id: str,
) -> Transition:
    ensure_admin(admin)
    fact = fact or AttendanceFact.blank(event_id, profile_id)

    if fact.paid_status == target:
        return unchanged(fact)
    if fact.paid_status != PaidStatus.pending:
        raise InvalidState(
            f"Cannot move payment from {fact.paid_status.value} to {target.value}"
        )

    if target == PaidStatus.paid:
        patch = {
            "paid_status": PaidStatus.paid,
            "paid_updated_at": now,
            "confirmed_at": now,
            "confirmed_by": admin.profile_id,
        }
    else:
        patch = {
            "paid_status": PaidStatus.rejected,
            "paid_updated_at": now,
            "rejected_at": now,
            "rejected_by": admin.profile_id,
        }
    return changed(fact, patch, expected=PaidStatus.pending)


def confirm_payment(fact, admin: AdultProfile, now: datetime, event_id: str = "", profile_id: str = "") -> Transition:
    return _admin_transition(fact, PaidStatus.paid, admin, now, event_id, profile_id)


def reject_payment(fact, admin: AdultProfile, now: datetime, event_id: str = "", profile_id: str = "") -> Transition:
    return _admin_transition(fact, PaidStatus.rejected, admin, now, event_id, profile_id)


def admin_payment_transition(
    fact: Optional[AttendanceFact],
    status,
    admin: AdultProfile,
    now: datetime,
    event_id: str = "",
    profile_id: str = "",
) -> Transition:
    """Dispatch for the bulk update endpoint ("paid" / "rejected")"""
    try:
        target = PaidStatus(str(status or "").strip().lower())
    except ValueError:
        raise ValidationError("Invalid payment status")
    if target not in (PaidStatus.paid, PaidStatus.rejected):
        raise ValidationError("Status must be paid or rejected")
    return _admin_transition(fact, target, admin, now, event_id, profile_id)


def set_fee_due(
    fact: Optional[AttendanceFact],
    amount,
    admin: AdultProfile,
    event_id: str,
    profile_id: str,
) -> Transition:
    """Admin fee override; None clears it back to the computed fee"""
    ensure_admin(admin)
    fact = fact or AttendanceFact.blank(event_id, profile_id)

    if amount is None or amount == "":
        value = None
    else:
        try:
            raw = Decimal(str(amount))
        except InvalidOperation:
            raise ValidationError("fee_due must be a number")
        if raw < 0:
            raise ValidationError("fee_due must not be negative")
        value = to_money(raw)

    if fact.fee_due == value:
        return unchanged(fact)
    return changed(fact, {"fee_due": value})
