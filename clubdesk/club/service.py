"""
Club Service

Loads facts from the store, runs the engine and persists at most one
attendance write per profile command.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from clubdesk.config import TARGET_GROUPS, ClubRules, get_club_rules
from clubdesk.database import ClubStore
from clubdesk.engine import attendance, dashboard, fees, friends, payments, stats
from clubdesk.engine.categories import category_of
from clubdesk.engine.errors import ClubError, Forbidden, InvalidState, NotFound, ValidationError
from clubdesk.engine.models import (
    AdultProfile,
    AttendanceFact,
    ChildProfile,
    Event,
    EventKind,
    EventStatus,
    PaidStatus,
    ParticipationRequest,
    Profile,
    RequestStatus,
    request_id_for,
)
from clubdesk.engine.timestamps import month_key, parse_month, to_instant, utcnow, year_range
from clubdesk.engine.transitions import Transition, apply_patch
from clubdesk.engine.visibility import is_visible, visible_events

from .schemas import (
    AdminPaymentItem,
    AdminPaymentStats,
    AdminPaymentsResponse,
    BulkResult,
    PaymentFailure,
    RosterRow,
)

PAYMENT_STATUS_FILTERS = ("all", "paid", "pending", "unpaid", "rejected")
EVENT_TYPE_FILTERS = ("all", "adults", "kids")


class ClubService:
    """Attendance / payment service"""

    def __init__(
        self,
        store: ClubStore,
        rules: Optional[ClubRules] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.rules = rules or get_club_rules()
        self.clock = clock

    # =============================================
    # Lookups
    # =============================================

    def _now(self) -> datetime:
        return to_instant(self.clock())

    async def _event(self, event_id: str) -> Event:
        event = await self.store.get_event(event_id)
        if event is None:
            raise NotFound("Event not found")
        return event

    async def _subject(self, actor: AdultProfile, profile_id: Optional[str]) -> Profile:
        """
        Profile an action is for: the actor, or one of the actor's children

        A child id on the actor's roster without a stored child profile is
        let through as a placeholder.
        """
        if not profile_id or profile_id == actor.profile_id:
            return actor

        child = await self.store.get_child(profile_id)
        if child is not None:
            if actor.profile_id in child.parent_ids:
                return child
            if profile_id in actor.child_ids:
                return child.model_copy(update={"parent_ids": child.parent_ids + [actor.profile_id]})
            raise Forbidden("You can only act for your own profile or your children")

        if profile_id in actor.child_ids:
            logger.warning(
                f"Child {profile_id} on roster of {actor.profile_id} has no profile, using placeholder"
            )
            return ChildProfile(
                profile_id=profile_id,
                parent_ids=[actor.profile_id],
                materialized=False,
            )

        if await self.store.get_adult(profile_id) is not None:
            raise Forbidden("You can only act for your own profile or your children")
        raise NotFound("Profile not found")

    async def _any_profile(self, profile_id: str) -> Profile:
        adult = await self.store.get_adult(profile_id)
        if adult is not None:
            return adult
        child = await self.store.get_child(profile_id)
        if child is not None:
            return child
        raise NotFound("Profile not found")

    async def _population(self) -> List[Profile]:
        return [*await self.store.list_adults(), *await self.store.list_children()]

    async def _profile_facts(self, profile_id: str) -> Dict[str, AttendanceFact]:
        return {f.event_id: f for f in await self.store.list_attendance_for_profile(profile_id)}

    async def _persist(self, transition: Transition, action: str, actor_id: str) -> AttendanceFact:
        """Write a transition, no-op transitions skip the store"""
        fact = transition.fact
        if not transition.changed:
            logger.debug(f"{action}: {fact.event_id}/{fact.profile_id} unchanged")
            return fact

        stored = await self.store.merge_attendance(
            fact.event_id,
            fact.profile_id,
            transition.patch,
            expected_paid_status=transition.expected_paid_status,
        )
        logger.info(
            f"{action}: {fact.event_id}/{fact.profile_id} by {actor_id} "
            f"-> {', '.join(sorted(transition.patch))}"
        )
        return stored

    def _view(self, event: Event, subject: Profile, fact: Optional[AttendanceFact], now: datetime):
        return dashboard.event_view(
            event,
            subject,
            fact,
            now,
            self.rules.net_practice_cutoff_hours,
            self.rules.discount_rate,
            self.rules.youth_groups,
        )

    # =============================================
    # Events
    # =============================================

    async def list_events(
        self,
        actor: AdultProfile,
        month: str,
        profile_id: Optional[str] = None,
        kind: Optional[str] = None,
    ) -> List[dashboard.EventView]:
        """
        Events visible to the profile in a month, with the profile's view

        Membership fee events are yearly, so they are listed for every
        month of their year.
        """
        start, end = parse_month(month)
        wanted = None
        if kind:
            try:
                wanted = EventKind(kind.strip().lower())
            except ValueError:
                raise ValidationError("Invalid event kind")

        subject = await self._subject(actor, profile_id)
        now = self._now()

        events: Dict[str, Event] = {}
        if wanted != EventKind.membership_fee:
            for event in await self.store.list_events(start, end):
                events[event.event_id] = event
        if wanted in (None, EventKind.membership_fee):
            year_start, year_end = year_range(start.year)
            for event in await self.store.list_events(year_start, year_end):
                if event.is_membership:
                    events[event.event_id] = event

        selected = [
            e for e in visible_events(events.values(), subject)
            if wanted is None or e.kind == wanted
        ]
        selected.sort(key=lambda e: e.starts_at)

        facts = await self._profile_facts(subject.profile_id)
        return [self._view(e, subject, facts.get(e.event_id), now) for e in selected]

    async def set_attending(
        self,
        actor: AdultProfile,
        event_id: str,
        choice: str,
        profile_id: Optional[str] = None,
    ) -> dashboard.EventView:
        event = await self._event(event_id)
        subject = await self._subject(actor, profile_id)
        now = self._now()

        fact = await self.store.get_attendance(event_id, subject.profile_id)
        transition = attendance.set_attending(
            fact, event, subject, actor.profile_id, choice, now,
            self.rules.net_practice_cutoff_hours,
        )
        stored = await self._persist(transition, "attending", actor.profile_id)
        return self._view(event, subject, stored, now)

    async def submit_payment(
        self,
        actor: AdultProfile,
        event_id: str,
        profile_id: Optional[str] = None,
    ) -> dashboard.EventView:
        event = await self._event(event_id)
        subject = await self._subject(actor, profile_id)
        now = self._now()

        fact = await self.store.get_attendance(event_id, subject.profile_id)
        transition = payments.submit_payment(fact, event, subject, actor.profile_id, now)
        stored = await self._persist(transition, "payment submitted", actor.profile_id)
        return self._view(event, subject, stored, now)

    async def request_participation(
        self,
        actor: AdultProfile,
        event_id: str,
        profile_id: Optional[str] = None,
    ) -> ParticipationRequest:
        event = await self._event(event_id)
        subject = await self._subject(actor, profile_id)

        existing = await self.store.get_participation_request(
            request_id_for(event_id, subject.profile_id)
        )
        request = attendance.request_participation(
            event, subject, actor.profile_id, self._now(), existing,
            self.rules.net_practice_cutoff_hours,
        )
        await self.store.save_participation_request(request)
        logger.info(f"Participation request {request.request_id} by {actor.profile_id}")
        return request

    async def friends_summary(self, actor: AdultProfile, event_id: str) -> Dict[str, friends.FriendsBucket]:
        """Who is going, for members the event is open to"""
        event = await self._event(event_id)
        population = await self._population()

        if not actor.is_admin:
            own = [actor] + [
                p for p in population
                if p.is_child and (actor.profile_id in p.parent_ids or p.profile_id in actor.child_ids)
            ]
            if not any(is_visible(event, p) for p in own):
                raise Forbidden("This event is not open to this profile")

        facts = {f.profile_id: f for f in await self.store.list_attendance_for_event(event_id)}
        return friends.summarize_friends(event, population, facts)

    # =============================================
    # Dashboard & stats
    # =============================================

    async def get_dashboard(self, actor: AdultProfile, profile_id: Optional[str] = None) -> dashboard.DashboardSelection:
        subject = await self._subject(actor, profile_id)
        now = self._now()
        window = timedelta(days=self.rules.dashboard_window_days)
        month_start, _ = parse_month(month_key(now))

        events = await self.store.list_events(
            min(now - window, month_start), now + window + timedelta(seconds=1)
        )
        facts = await self._profile_facts(subject.profile_id)

        selection = dashboard.select_dashboard(
            events,
            now,
            subject,
            facts,
            window_days=self.rules.dashboard_window_days,
            upcoming_limit=self.rules.upcoming_limit,
            net_practice_cutoff_hours=self.rules.net_practice_cutoff_hours,
            discount_rate=self.rules.discount_rate,
            youth_groups=self.rules.youth_groups,
        )

        by_id = {e.event_id: e for e in events}
        if selection.upcoming and self.rules.friends_summary_limit > 0:
            population = await self._population()
            for view in selection.upcoming[:self.rules.friends_summary_limit]:
                event_facts = {
                    f.profile_id: f for f in await self.store.list_attendance_for_event(view.event_id)
                }
                summary = friends.summarize_friends(by_id[view.event_id], population, event_facts)
                view.friends = {name: bucket.model_dump() for name, bucket in summary.items()}

        return selection

    async def event_stats(
        self,
        actor: AdultProfile,
        year: Optional[int] = None,
        profile_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Stats for `year`, the current year when omitted"""
        year = year or self._now().year
        subject = await self._subject(actor, profile_id)
        start, end = year_range(year)
        events = await self.store.list_events(start, end)
        facts = await self._profile_facts(subject.profile_id)

        result = stats.event_stats(events, facts, subject, year)
        result.update({
            "available_years": stats.available_years(self._now().year, self.rules.stats_years_back),
            "profile_id": subject.profile_id,
            "year": year,
        })
        return result

    async def payment_stats(
        self,
        actor: AdultProfile,
        year: Optional[int] = None,
        profile_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Stats for `year`, the current year when omitted"""
        year = year or self._now().year
        subject = await self._subject(actor, profile_id)
        start, end = year_range(year)
        events = await self.store.list_events(start, end)
        facts = await self._profile_facts(subject.profile_id)

        result = stats.payment_stats(
            events,
            facts,
            subject,
            year,
            breakdown_limit=self.rules.payment_breakdown_limit,
            discount_rate=self.rules.discount_rate,
            youth_groups=self.rules.youth_groups,
        )
        result.update({
            "available_years": stats.available_years(self._now().year, self.rules.stats_years_back),
            "profile_id": subject.profile_id,
            "year": year,
        })
        return result

    # =============================================
    # Admin: event attendance
    # =============================================

    async def event_roster(self, admin: AdultProfile, event_id: str) -> List[RosterRow]:
        """Eligible profiles plus anyone already holding a record"""
        attendance.ensure_admin(admin)
        event = await self._event(event_id)
        population = await self._population()
        facts = {f.profile_id: f for f in await self.store.list_attendance_for_event(event_id)}

        profiles = {p.profile_id: p for p in friends.eligible_population(event, population)}
        for p in population:
            if p.profile_id in facts:
                profiles.setdefault(p.profile_id, p)

        rows = []
        for profile in profiles.values():
            fact = facts.get(profile.profile_id) or AttendanceFact.blank(event_id, profile.profile_id)
            rows.append(RosterRow(
                profile_id=profile.profile_id,
                name=profile.name,
                bucket="kids" if profile.is_child else category_of(profile).value,
                attending=fact.attending.value,
                attended=fact.attended,
                paid_status=fact.paid_status,
                billing_bucket=payments.billing_bucket(fact),
                fee_due=fact.fee_due,
                amount_due=fees.amount_due(
                    fact, event, profile, self.rules.discount_rate, self.rules.youth_groups
                ),
            ))
        rows.sort(key=lambda r: (r.bucket, r.name.lower()))
        return rows

    async def update_attendance(
        self,
        admin: AdultProfile,
        event_id: str,
        profile_id: str,
        attended: Optional[bool] = None,
        fee_due: Any = None,
        set_fee_due: bool = False,
    ) -> AttendanceFact:
        """
        Admin edit of `attended` and / or the `fee_due` override, one write
        """
        attendance.ensure_admin(admin)
        event = await self._event(event_id)
        await self._any_profile(profile_id)
        now = self._now()

        fact = await self.store.get_attendance(event_id, profile_id) or AttendanceFact.blank(event_id, profile_id)
        patch: Dict[str, Any] = {}

        if attended is not None:
            step = attendance.set_attended(fact, event, profile_id, attended, admin, now)
            patch.update(step.patch)
        if set_fee_due:
            step = payments.set_fee_due(apply_patch(fact, patch), fee_due, admin, event_id, profile_id)
            patch.update(step.patch)

        transition = Transition(fact=apply_patch(fact, patch), patch=patch)
        return await self._persist(transition, "attendance update", admin.profile_id)

    async def confirm_all_attendance(self, admin: AdultProfile, event_id: str) -> BulkResult:
        """Mark every "going" record attended; continues past failures"""
        attendance.ensure_admin(admin)
        event = await self._event(event_id)
        now = self._now()
        result = BulkResult()

        pending = attendance.pending_attendance_confirmations(
            await self.store.list_attendance_for_event(event_id)
        )
        for fact in pending:
            try:
                transition = attendance.set_attended(fact, event, fact.profile_id, True, admin, now)
                await self._persist(transition, "attendance confirmed", admin.profile_id)
                result.updated += 1
            except ClubError as e:
                logger.warning(f"Confirm attendance failed for {event_id}/{fact.profile_id}: {e.message}")
                result.failed.append(PaymentFailure(event_id=event_id, profile_id=fact.profile_id, error=e.message))
        return result

    # =============================================
    # Admin: events
    # =============================================

    async def update_event(self, admin: AdultProfile, event_id: str, changes: Dict[str, Any]) -> Event:
        """
        Edit title / fee / start time / target groups

        Only allowed before the event starts.
        """
        attendance.ensure_admin(admin)
        event = await self._event(event_id)
        now = self._now()

        if event.is_cancelled:
            raise InvalidState("Event has been cancelled")
        if event.starts_at <= now:
            raise InvalidState("Event has already started and can no longer be edited")

        patch: Dict[str, Any] = {}
        if changes.get("title") is not None:
            patch["title"] = changes["title"]
        if changes.get("fee") is not None:
            patch["fee"] = fees.to_money(changes["fee"])
        if changes.get("starts_at") is not None:
            patch["starts_at"] = to_instant(changes["starts_at"])
        if changes.get("target_groups") is not None:
            patch["target_groups"] = _canonical_groups(changes["target_groups"])

        if not patch:
            return event

        updated = await self.store.update_event(event_id, patch)
        logger.info(f"Event {event_id} edited by {admin.profile_id}: {', '.join(sorted(patch))}")
        return updated

    async def cancel_event(self, admin: AdultProfile, event_id: str) -> Event:
        attendance.ensure_admin(admin)
        event = await self._event(event_id)
        if event.is_cancelled:
            return event

        updated = await self.store.update_event(event_id, {"status": EventStatus.cancelled})
        logger.info(f"Event {event_id} cancelled by {admin.profile_id}")
        return updated

    # =============================================
    # Admin: payments
    # =============================================

    async def admin_payments(
        self,
        admin: AdultProfile,
        status: str = "all",
        event_type: str = "all",
        month: Optional[str] = None,
        event_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> AdminPaymentsResponse:
        """
        Billable records across events

        Sorted newest event first, then pending, unpaid, paid, rejected.
        """
        attendance.ensure_admin(admin)
        status = (status or "all").lower()
        event_type = (event_type or "all").lower()
        if status not in PAYMENT_STATUS_FILTERS:
            raise ValidationError("Invalid status filter")
        if event_type not in EVENT_TYPE_FILTERS:
            raise ValidationError("Invalid type filter")
        query = (search or "").strip().lower()

        if event_id:
            events = [await self._event(event_id)]
        elif month:
            events = await self.store.list_events(*parse_month(month))
        else:
            now = self._now()
            start, _ = year_range(now.year - self.rules.stats_years_back)
            _, end = year_range(now.year)
            events = await self.store.list_events(start, end)

        adults = {p.profile_id: p for p in await self.store.list_adults()}
        children = {c.profile_id: c for c in await self.store.list_children()}

        items: List[AdminPaymentItem] = []
        for event in events:
            if event_type == "adults" and event.is_child_event:
                continue
            if event_type == "kids" and not event.is_child_event:
                continue

            for fact in await self.store.list_attendance_for_event(event.event_id):
                bucket = payments.billing_bucket(fact)
                if bucket is None:
                    continue
                if status != "all" and bucket.value != status:
                    continue

                profile = children.get(fact.profile_id) if event.is_child_event else adults.get(fact.profile_id)
                parent = None
                if isinstance(profile, ChildProfile) and profile.parent_ids:
                    parent = adults.get(profile.parent_ids[0])

                name = profile.name if profile and profile.name else (
                    "Unknown Kid" if event.is_child_event else "Unknown Player"
                )
                if query:
                    haystack = [name, event.title, parent.name if parent else ""]
                    if not any(query in text.lower() for text in haystack):
                        continue

                if profile is not None:
                    amount = fees.amount_due(
                        fact, event, profile, self.rules.discount_rate, self.rules.youth_groups
                    )
                else:
                    amount = fees.to_money(fact.fee_due if fact.fee_due is not None else event.fee)

                items.append(AdminPaymentItem(
                    id=request_id_for(event.event_id, fact.profile_id),
                    event_id=event.event_id,
                    event_name=event.title,
                    event_date=event.starts_at,
                    event_type="kids" if event.is_child_event else "adults",
                    profile_id=fact.profile_id,
                    profile_name=name,
                    parent_id=parent.profile_id if parent else None,
                    parent_name=parent.name if parent else None,
                    amount=amount,
                    status=bucket,
                    marked_at=fact.marked_at,
                    confirmed_at=fact.confirmed_at,
                    confirmed_by=fact.confirmed_by,
                ))

        items.sort(key=lambda p: payments.STATUS_PRIORITY[p.status])
        items.sort(key=lambda p: p.event_date, reverse=True)

        return AdminPaymentsResponse(payments=items, stats=_payment_list_stats(items))

    async def update_payments(self, admin: AdultProfile, refs: List[Dict[str, str]], status) -> BulkResult:
        """Bulk confirm / reject; each item is checked on its own"""
        attendance.ensure_admin(admin)
        target = str(getattr(status, "value", status) or "").lower()
        if target not in (PaidStatus.paid.value, PaidStatus.rejected.value):
            raise ValidationError("Status must be paid or rejected")

        now = self._now()
        result = BulkResult()
        for ref in refs:
            event_id, profile_id = ref["event_id"], ref["profile_id"]
            try:
                await self._event(event_id)
                fact = await self.store.get_attendance(event_id, profile_id)
                transition = payments.admin_payment_transition(
                    fact, target, admin, now, event_id, profile_id
                )
                await self._persist(transition, f"payment {target}", admin.profile_id)
                result.updated += 1
            except ClubError as e:
                logger.warning(f"Payment update failed for {event_id}/{profile_id}: {e.message}")
                result.failed.append(PaymentFailure(event_id=event_id, profile_id=profile_id, error=e.message))
        return result

    # =============================================
    # Admin: participation requests
    # =============================================

    async def list_participation_requests(
        self,
        admin: AdultProfile,
        status: Optional[str] = "pending",
    ) -> List[ParticipationRequest]:
        attendance.ensure_admin(admin)
        wanted = None
        if status and status != "all":
            try:
                wanted = RequestStatus(status.lower())
            except ValueError:
                raise ValidationError("Invalid request status")
        return await self.store.list_participation_requests(wanted)

    async def resolve_participation_request(
        self,
        admin: AdultProfile,
        request_id: str,
        approve: bool,
    ) -> ParticipationRequest:
        attendance.ensure_admin(admin)
        request = await self.store.get_participation_request(request_id)
        if request is None:
            raise NotFound("Request not found")

        fact = await self.store.get_attendance(request.event_id, request.profile_id)
        resolved, transition = attendance.resolve_participation_request(
            request, fact, approve, admin, self._now()
        )
        if transition is not None:
            await self._persist(transition, "participation approved", admin.profile_id)
        await self.store.save_participation_request(resolved)
        logger.info(f"Participation request {request_id} {resolved.status.value} by {admin.profile_id}")
        return resolved


def _canonical_groups(groups: List[str]) -> List[str]:
    """Validate against the known target groups, keeping their spelling"""
    known = {g.lower(): g for g in TARGET_GROUPS}
    result = []
    for group in groups:
        canonical = known.get(str(group).strip().lower())
        if canonical is None:
            raise ValidationError(f"Invalid target group: {group}")
        if canonical not in result:
            result.append(canonical)
    return result


def _payment_list_stats(items: List[AdminPaymentItem]) -> AdminPaymentStats:
    result = AdminPaymentStats(total=len(items))
    for item in items:
        setattr(result, item.status.value, getattr(result, item.status.value) + 1)
        result.total_amount += item.amount
        if item.status == PaidStatus.pending:
            result.pending_amount += item.amount
        elif item.status == PaidStatus.paid:
            result.paid_amount += item.amount
        else:
            result.outstanding_amount += item.amount
    return result
