"""
Attendance state machine tests
"""

from datetime import date, timedelta

import pytest

from clubdesk.engine.attendance import (
    WindowState,
    age_eligibility_message,
    age_on,
    close_time,
    pending_attendance_confirmations,
    request_participation,
    resolve_participation_request,
    set_attended,
    set_attending,
    window_state,
)
from clubdesk.engine.errors import Forbidden, InvalidState, ValidationError
from clubdesk.engine.models import (
    Attending,
    AttendanceFact,
    ChildProfile,
    RequestStatus,
)


class TestWindow:
    """Cut-off handling"""

    def test_net_practice_far_is_open(self, practice_far, now):
        assert window_state(practice_far, now) == WindowState.open

    def test_net_practice_inside_48h(self, practice_soon, now):
        assert close_time(practice_soon) == practice_soon.starts_at - timedelta(hours=48)
        assert window_state(practice_soon, now) == WindowState.request_only

    def test_started_is_closed(self, league_past, now):
        assert window_state(league_past, now) == WindowState.closed

    def test_default_locks_at_start(self, cancelled, now):
        assert close_time(cancelled) == cancelled.starts_at
        assert window_state(cancelled, cancelled.starts_at - timedelta(minutes=1)) == WindowState.open
        assert window_state(cancelled, cancelled.starts_at) == WindowState.closed

    def test_explicit_cutoff(self, practice_far, now):
        event = practice_far.model_copy(update={"kind": "league_match", "attendance_cutoff_hours": 200})
        assert window_state(event, now) == WindowState.request_only

    def test_configured_net_practice_cutoff(self, practice_soon, now):
        assert window_state(practice_soon, now, net_practice_cutoff_hours=24) == WindowState.open


class TestAge:
    def test_age_on_before_birthday(self):
        assert age_on(date(2012, 6, 16), date(2026, 6, 15)) == 13

    def test_age_on_birthday(self):
        assert age_on(date(2012, 6, 15), date(2026, 6, 15)) == 14

    def test_unknown(self):
        assert age_on(None, date(2026, 6, 15)) is None

    def test_messages(self):
        assert age_eligibility_message(14, 13, 15) is None
        assert age_eligibility_message(14, 16, 18) == "Age 14 - Too young (Event requires ages 16-18)"
        assert age_eligibility_message(19, 16, 18) == "Age 19 - Too old (Event requires ages 16-18)"
        assert age_eligibility_message(None, 16, 18) == "Birth date required to verify age eligibility"


class TestSetAttending:
    """Self-service toggle"""

    def test_yes(self, man, practice_far, now):
        transition = set_attending(None, practice_far, man, man.profile_id, "yes", now)
        assert transition.changed
        assert transition.patch == {"attending": Attending.yes, "marked_at": now}
        assert transition.fact.attending == Attending.yes

    def test_never_touches_attended(self, man, practice_far, now):
        fact = AttendanceFact(event_id=practice_far.event_id, profile_id=man.profile_id, attending="yes", attended=True)
        transition = set_attending(fact, practice_far, man, man.profile_id, "no", now)
        assert "attended" not in transition.patch
        assert transition.fact.attended is True

    def test_repeat_is_noop(self, man, practice_far, now):
        fact = AttendanceFact(event_id=practice_far.event_id, profile_id=man.profile_id, attending="yes")
        transition = set_attending(fact, practice_far, man, man.profile_id, "YES", now)
        assert not transition.changed

    def test_invalid_choice(self, man, practice_far, now):
        with pytest.raises(ValidationError):
            set_attending(None, practice_far, man, man.profile_id, "maybe", now)
        with pytest.raises(ValidationError):
            set_attending(None, practice_far, man, man.profile_id, "unknown", now)

    def test_other_profile_forbidden(self, man, woman, practice_far, now):
        with pytest.raises(Forbidden):
            set_attending(None, practice_far, man, woman.profile_id, "yes", now)

    def test_not_visible_forbidden(self, woman, practice_soon, now):
        with pytest.raises(Forbidden):
            set_attending(None, practice_soon, woman, woman.profile_id, "yes", now)

    def test_cancelled(self, man, cancelled, now):
        with pytest.raises(InvalidState):
            set_attending(None, cancelled, man, man.profile_id, "yes", now)

    def test_started(self, man, league_past, now):
        with pytest.raises(InvalidState):
            set_attending(None, league_past, man, man.profile_id, "no", now)

    def test_inside_cutoff_points_to_request(self, man, practice_soon, now):
        """Net practice 40h away: the toggle is rejected"""
        with pytest.raises(InvalidState) as exc:
            set_attending(None, practice_soon, man, man.profile_id, "yes", now)
        assert "participation request" in exc.value.message


class TestChildAttending:
    """Parent acting for a child"""

    def test_parent_in_range(self, kid, kids_13_15, now):
        transition = set_attending(None, kids_13_15, kid, "parent", "yes", now)
        assert transition.fact.attending == Attending.yes

    def test_out_of_range_yes_rejected(self, kid, kids_16_18, now):
        with pytest.raises(InvalidState) as exc:
            set_attending(None, kids_16_18, kid, "parent", "yes", now)
        assert exc.value.message == "Age 14 - Too young (Event requires ages 16-18)"

    def test_out_of_range_no_allowed(self, kid, kids_16_18, now):
        transition = set_attending(None, kids_16_18, kid, "parent", "no", now)
        assert transition.fact.attending == Attending.no

    def test_missing_birth_date(self, kids_13_15, now):
        child = ChildProfile(profile_id="c", groups=["U-15"], parent_ids=["parent"])
        with pytest.raises(InvalidState) as exc:
            set_attending(None, kids_13_15, child, "parent", "yes", now)
        assert "Birth date required" in exc.value.message

    def test_stranger_cannot_act(self, kid, kids_13_15, now):
        with pytest.raises(Forbidden):
            set_attending(None, kids_13_15, kid, "p-men", "yes", now)


class TestSetAttended:
    """Admin confirmation"""

    def test_admin_only(self, man, league_past, now):
        with pytest.raises(Forbidden):
            set_attended(None, league_past, man.profile_id, True, man, now)

    def test_confirm(self, admin, league_past, now):
        transition = set_attended(None, league_past, "p-women", True, admin, now)
        assert transition.patch == {"attended": True, "attended_at": now}

    def test_repeat(self, admin, league_past, now):
        fact = AttendanceFact(event_id=league_past.event_id, profile_id="p-men", attended=True)
        assert not set_attended(fact, league_past, "p-men", True, admin, now).changed

    def test_pending_confirmations(self):
        facts = [
            AttendanceFact(event_id="e", profile_id="a", attending="yes"),
            AttendanceFact(event_id="e", profile_id="b", attending="yes", attended=True),
            AttendanceFact(event_id="e", profile_id="c", attending="no"),
        ]
        assert [f.profile_id for f in pending_attendance_confirmations(facts)] == ["a"]


class TestParticipationRequests:
    """Late requests after the cut-off"""

    def test_request_inside_cutoff(self, man, practice_soon, now):
        request = request_participation(practice_soon, man, man.profile_id, now)
        assert request.request_id == "practice-soon_p-men"
        assert request.status == RequestStatus.pending
        assert request.kind == "adult"

    def test_request_before_cutoff_rejected(self, man, practice_far, now):
        with pytest.raises(InvalidState):
            request_participation(practice_far, man, man.profile_id, now)

    def test_duplicate_rejected(self, man, practice_soon, now):
        first = request_participation(practice_soon, man, man.profile_id, now)
        with pytest.raises(InvalidState):
            request_participation(practice_soon, man, man.profile_id, now, existing=first)

    def test_started_rejected(self, man, practice_soon):
        with pytest.raises(InvalidState):
            request_participation(practice_soon, man, man.profile_id, practice_soon.starts_at)

    def test_event_without_cutoff(self, man, cancelled, now):
        event = cancelled.model_copy(update={"status": "scheduled"})
        with pytest.raises(InvalidState):
            request_participation(event, man, man.profile_id, now)

    def test_approve(self, admin, man, practice_soon, now):
        request = request_participation(practice_soon, man, man.profile_id, now)
        resolved, transition = resolve_participation_request(request, None, True, admin, now)
        assert resolved.status == RequestStatus.approved
        assert resolved.resolved_by == "admin"
        assert transition.fact.attending == Attending.yes
        assert transition.fact.attended is True

    def test_reject(self, admin, man, practice_soon, now):
        request = request_participation(practice_soon, man, man.profile_id, now)
        resolved, transition = resolve_participation_request(request, None, False, admin, now)
        assert resolved.status == RequestStatus.rejected
        assert transition is None

    def test_resolve_twice(self, admin, man, practice_soon, now):
        request = request_participation(practice_soon, man, man.profile_id, now)
        resolved, _ = resolve_participation_request(request, None, True, admin, now)
        with pytest.raises(InvalidState):
            resolve_participation_request(resolved, None, True, admin, now)

    def test_player_cannot_resolve(self, man, practice_soon, now):
        request = request_participation(practice_soon, man, man.profile_id, now)
        with pytest.raises(Forbidden):
            resolve_participation_request(request, None, True, man, now)
