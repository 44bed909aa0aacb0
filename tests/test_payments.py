"""
Payment state machine & billing gate tests
"""

from decimal import Decimal

import pytest

from clubdesk.engine.errors import Forbidden, InvalidState, ValidationError
from clubdesk.engine.models import Attending, AttendanceFact, PaidStatus
from clubdesk.engine.payments import (
    admin_payment_transition,
    billing_bucket,
    can_submit_payment,
    confirm_payment,
    is_billable,
    is_outstanding,
    reject_payment,
    set_fee_due,
    submit_payment,
)


def _fact(event, profile_id, **kwargs):
    return AttendanceFact(event_id=event.event_id, profile_id=profile_id, **kwargs)


class TestSubmitPayment:
    """Profile "I have paid" """

    def test_requires_attendance(self, man, league_past, now):
        fact = _fact(league_past, man.profile_id, attending="yes")
        with pytest.raises(InvalidState):
            submit_payment(fact, league_past, man, man.profile_id, now)

    def test_no_record(self, man, league_past, now):
        with pytest.raises(InvalidState):
            submit_payment(None, league_past, man, man.profile_id, now)

    def test_attended_goes_pending(self, man, league_past, now):
        fact = _fact(league_past, man.profile_id, attending="yes", attended=True)
        transition = submit_payment(fact, league_past, man, man.profile_id, now)
        assert transition.fact.paid_status == PaidStatus.pending
        assert transition.expected_paid_status == PaidStatus.unpaid
        assert transition.patch["paid_updated_at"] == now

    def test_membership_has_no_gate(self, woman, membership, now):
        transition = submit_payment(None, membership, woman, woman.profile_id, now)
        assert transition.fact.paid_status == PaidStatus.pending
        assert transition.fact.attending == Attending.yes

    def test_pending_again_is_noop(self, man, league_past, now):
        fact = _fact(league_past, man.profile_id, attended=True, paid_status="pending")
        assert not submit_payment(fact, league_past, man, man.profile_id, now).changed

    def test_paid_is_terminal(self, man, league_past, now):
        fact = _fact(league_past, man.profile_id, attended=True, paid_status="paid")
        with pytest.raises(InvalidState):
            submit_payment(fact, league_past, man, man.profile_id, now)

    def test_other_profile(self, man, woman, league_past, now):
        fact = _fact(league_past, man.profile_id, attended=True)
        with pytest.raises(Forbidden):
            submit_payment(fact, league_past, man, woman.profile_id, now)

    def test_parent_for_child(self, kid, kids_13_15, now):
        fact = _fact(kids_13_15, kid.profile_id, attending="yes", attended=True)
        transition = submit_payment(fact, kids_13_15, kid, "parent", now)
        assert transition.fact.paid_status == PaidStatus.pending
        assert transition.fact.paid_by == "parent"

    def test_cancelled(self, man, cancelled, now):
        fact = _fact(cancelled, man.profile_id, attended=True)
        with pytest.raises(InvalidState):
            submit_payment(fact, cancelled, man, man.profile_id, now)


class TestAdminTransitions:
    """Confirm / reject"""

    def test_reject_resubmit_confirm(self, admin, man, league_past, now):
        """rejected -> pending again -> paid, then no further resubmission"""
        fact = _fact(league_past, man.profile_id, attending="yes", attended=True)

        fact = submit_payment(fact, league_past, man, man.profile_id, now).fact
        assert fact.paid_status == PaidStatus.pending

        fact = reject_payment(fact, admin, now).fact
        assert fact.paid_status == PaidStatus.rejected
        assert fact.rejected_by == "admin"

        transition = submit_payment(fact, league_past, man, man.profile_id, now)
        assert transition.expected_paid_status == PaidStatus.rejected
        fact = transition.fact
        assert fact.paid_status == PaidStatus.pending

        fact = confirm_payment(fact, admin, now).fact
        assert fact.paid_status == PaidStatus.paid
        assert fact.confirmed_by == "admin"
        assert fact.confirmed_at == now

        with pytest.raises(InvalidState):
            submit_payment(fact, league_past, man, man.profile_id, now)

    def test_confirm_only_from_pending(self, admin, man, league_past, now):
        fact = _fact(league_past, man.profile_id, attended=True)
        with pytest.raises(InvalidState):
            confirm_payment(fact, admin, now)

    def test_repeat_is_noop(self, admin, man, league_past, now):
        fact = _fact(league_past, man.profile_id, attended=True, paid_status="paid")
        assert not confirm_payment(fact, admin, now).changed

    def test_paid_cannot_be_rejected(self, admin, man, league_past, now):
        fact = _fact(league_past, man.profile_id, attended=True, paid_status="paid")
        with pytest.raises(InvalidState):
            reject_payment(fact, admin, now)

    def test_keeps_fee_override(self, admin, man, league_past, now):
        fact = _fact(league_past, man.profile_id, attended=True, paid_status="pending", fee_due="4")
        assert confirm_payment(fact, admin, now).fact.fee_due == Decimal("4")

    def test_expected_status_is_pending(self, admin, man, league_past, now):
        fact = _fact(league_past, man.profile_id, attended=True, paid_status="pending")
        assert confirm_payment(fact, admin, now).expected_paid_status == PaidStatus.pending

    def test_player_cannot_confirm(self, man, league_past, now):
        fact = _fact(league_past, man.profile_id, attended=True, paid_status="pending")
        with pytest.raises(Forbidden):
            confirm_payment(fact, man, now)

    def test_dispatch(self, admin, man, league_past, now):
        fact = _fact(league_past, man.profile_id, attended=True, paid_status="pending")
        assert admin_payment_transition(fact, "PAID", admin, now).fact.paid_status == PaidStatus.paid
        with pytest.raises(ValidationError):
            admin_payment_transition(fact, "pending", admin, now)
        with pytest.raises(ValidationError):
            admin_payment_transition(fact, "bogus", admin, now)


class TestBillingGate:
    """What counts as owed"""

    def test_unconfirmed_unpaid_owes_nothing(self, league_past):
        fact = _fact(league_past, "p-men", attending="yes")
        assert not is_billable(fact)
        assert billing_bucket(fact) is None

    def test_confirmed_unpaid(self, league_past):
        fact = _fact(league_past, "p-men", attended=True)
        assert billing_bucket(fact) == PaidStatus.unpaid
        assert is_outstanding(billing_bucket(fact))

    def test_rejected_without_attendance(self, league_past):
        fact = _fact(league_past, "p-men", paid_status="rejected")
        assert billing_bucket(fact) is None

    def test_pending_and_paid_always_count(self, league_past):
        assert billing_bucket(_fact(league_past, "a", paid_status="pending")) == PaidStatus.pending
        assert billing_bucket(_fact(league_past, "a", paid_status="paid")) == PaidStatus.paid
        assert not is_outstanding(PaidStatus.paid)

    def test_membership_unconfirmed_owes_nothing(self, membership):
        assert billing_bucket(_fact(membership, "p-women")) is None
        assert billing_bucket(_fact(membership, "p-women", attending="yes")) is None
        assert billing_bucket(_fact(membership, "p-women", attending="yes", paid_status="rejected")) is None

    def test_membership_submitted(self, woman, membership, now):
        fact = submit_payment(None, membership, woman, woman.profile_id, now).fact
        assert billing_bucket(fact) == PaidStatus.pending

    def test_no_record(self, league_past):
        assert billing_bucket(None) is None

    def test_can_submit(self, league_past, membership, cancelled):
        assert can_submit_payment(_fact(league_past, "a", attended=True), league_past)
        assert can_submit_payment(_fact(league_past, "a", attended=True, paid_status="rejected"), league_past)
        assert not can_submit_payment(_fact(league_past, "a", attended=True, paid_status="pending"), league_past)
        assert not can_submit_payment(_fact(league_past, "a"), league_past)
        assert can_submit_payment(None, membership)
        assert not can_submit_payment(_fact(cancelled, "a", attended=True), cancelled)


class TestFeeOverride:
    def test_set(self, admin, league_past):
        transition = set_fee_due(None, "7.5", admin, league_past.event_id, "p-men")
        assert transition.fact.fee_due == Decimal("7.50")

    def test_clear(self, admin, league_past):
        fact = _fact(league_past, "p-men", fee_due="5")
        assert set_fee_due(fact, None, admin, league_past.event_id, "p-men").fact.fee_due is None

    def test_negative(self, admin, league_past):
        with pytest.raises(ValidationError):
            set_fee_due(None, -1, admin, league_past.event_id, "p-men")

    def test_not_a_number(self, admin, league_past):
        with pytest.raises(ValidationError):
            set_fee_due(None, "ten", admin, league_past.event_id, "p-men")

    def test_admin_only(self, man, league_past):
        with pytest.raises(Forbidden):
            set_fee_due(None, 1, man, league_past.event_id, "p-men")
