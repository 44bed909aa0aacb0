"""
Fee Calculator
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

from .models import AttendanceFact, Event, MembershipType, Profile

DEFAULT_DISCOUNT_RATE = Decimal("0.25")
DEFAULT_YOUTH_GROUPS = ("U-13", "U-15", "U-18")

_CENT = Decimal("0.01")


def to_money(value: Union[Decimal, int, float, str, None]) -> Decimal:
    """2 decimal places, half-up, never negative"""
    amount = Decimal(str(value)) if value not in (None, "") else Decimal("0")
    amount = amount.quantize(_CENT, rounding=ROUND_HALF_UP)
    return max(amount, Decimal("0.00"))


def _has_youth(groups: Iterable[str], youth_groups: Iterable[str]) -> bool:
    youth = {g.lower() for g in youth_groups}
    return any(str(g).strip().lower() in youth for g in groups or [])


def discount_applies(
    membership_type: Optional[Union[MembershipType, str]],
    profile_groups: Iterable[str],
    event_target_groups: Iterable[str],
    is_child: bool = False,
    youth_groups: Iterable[str] = DEFAULT_YOUTH_GROUPS,
) -> bool:
    """
    25% discount when any of:
    - the profile is a student member
    - the profile is a child in a youth group
    - the event targets a youth group
    """
    mt = membership_type.value if isinstance(membership_type, MembershipType) else membership_type
    if not is_child and str(mt or "").strip().lower() == MembershipType.student.value:
        return True
    if is_child and _has_youth(profile_groups, youth_groups):
        return True
    return _has_youth(event_target_groups, youth_groups)


def compute_fee(
    base_fee: Union[Decimal, int, float, str, None],
    membership_type: Optional[Union[MembershipType, str]],
    profile_groups: Iterable[str],
    event_target_groups: Iterable[str],
    is_child: bool = False,
    discount_rate: Decimal = DEFAULT_DISCOUNT_RATE,
    youth_groups: Iterable[str] = DEFAULT_YOUTH_GROUPS,
) -> Decimal:
    """
    Amount owed before any admin override

    The discount is applied once, never stacked.
    """
    fee = to_money(base_fee)
    if discount_applies(membership_type, profile_groups, event_target_groups, is_child, youth_groups):
        fee = fee * (Decimal("1") - Decimal(str(discount_rate)))
    return to_money(fee)


def amount_due(
    fact: Optional[AttendanceFact],
    event: Event,
    profile: Profile,
    discount_rate: Decimal = DEFAULT_DISCOUNT_RATE,
    youth_groups: Iterable[str] = DEFAULT_YOUTH_GROUPS,
) -> Decimal:
    """`fee_due` override on the record always wins"""
    if fact is not None and fact.fee_due is not None:
        return to_money(fact.fee_due)

    membership = None if profile.is_child else profile.membership_type
    return compute_fee(
        event.fee,
        membership,
        profile.groups,
        event.target_groups,
        is_child=profile.is_child,
        discount_rate=discount_rate,
        youth_groups=youth_groups,
    )
