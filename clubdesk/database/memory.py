"""
In-memory store

Used for local runs without Supabase and by the tests.
"""
import asyncio
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from clubdesk.engine.errors import ConcurrentUpdate, NotFound
from clubdesk.engine.models import (
    AdultProfile,
    AttendanceFact,
    ChildProfile,
    Event,
    PaidStatus,
    ParticipationRequest,
    RequestStatus,
)
from clubdesk.engine.transitions import apply_patch

from .base import ClubStore


class InMemoryClubStore(ClubStore):
    """Dict-backed store, writes serialized by an asyncio.Lock"""

    def __init__(
        self,
        adults: Iterable[AdultProfile] = (),
        children: Iterable[ChildProfile] = (),
        events: Iterable[Event] = (),
        attendance: Iterable[AttendanceFact] = (),
        requests: Iterable[ParticipationRequest] = (),
    ):
        self.adults: Dict[str, AdultProfile] = {p.profile_id: p for p in adults}
        self.children: Dict[str, ChildProfile] = {c.profile_id: c for c in children}
        self.events: Dict[str, Event] = {e.event_id: e for e in events}
        self.attendance: Dict[Tuple[str, str], AttendanceFact] = {
            (f.event_id, f.profile_id): f for f in attendance
        }
        self.requests: Dict[str, ParticipationRequest] = {r.request_id: r for r in requests}
        self._lock = asyncio.Lock()

    # ==================== Profiles ====================

    async def get_adult(self, profile_id: str) -> Optional[AdultProfile]:
        return self.adults.get(profile_id)

    async def get_child(self, profile_id: str) -> Optional[ChildProfile]:
        return self.children.get(profile_id)

    async def list_adults(self) -> List[AdultProfile]:
        return list(self.adults.values())

    async def list_children(self) -> List[ChildProfile]:
        return list(self.children.values())

    # ==================== Events ====================

    async def get_event(self, event_id: str) -> Optional[Event]:
        return self.events.get(event_id)

    async def list_events(self, start: datetime, end: datetime) -> List[Event]:
        return sorted(
            (e for e in self.events.values() if start <= e.starts_at < end),
            key=lambda e: e.starts_at,
        )

    async def update_event(self, event_id: str, patch: Dict[str, Any]) -> Event:
        async with self._lock:
            event = self.events.get(event_id)
            if event is None:
                raise NotFound("Event not found")
            updated = Event(**{**event.model_dump(), **patch})
            self.events[event_id] = updated
            return updated

    # ==================== Attendance ====================

    async def get_attendance(self, event_id: str, profile_id: str) -> Optional[AttendanceFact]:
        return self.attendance.get((event_id, profile_id))

    async def list_attendance_for_event(self, event_id: str) -> List[AttendanceFact]:
        return [f for (eid, _), f in self.attendance.items() if eid == event_id]

    async def list_attendance_for_profile(self, profile_id: str) -> List[AttendanceFact]:
        return [f for (_, pid), f in self.attendance.items() if pid == profile_id]

    async def merge_attendance(
        self,
        event_id: str,
        profile_id: str,
        patch: Dict[str, Any],
        expected_paid_status: Optional[PaidStatus] = None,
    ) -> AttendanceFact:
        async with self._lock:
            key = (event_id, profile_id)
            current = self.attendance.get(key) or AttendanceFact.blank(event_id, profile_id)
            if expected_paid_status is not None and current.paid_status != expected_paid_status:
                raise ConcurrentUpdate(
                    f"Payment status changed to {current.paid_status.value}, reload and retry"
                )
            merged = apply_patch(current, patch)
            self.attendance[key] = merged
            return merged

    # ==================== Participation requests ====================

    async def get_participation_request(self, request_id: str) -> Optional[ParticipationRequest]:
        return self.requests.get(request_id)

    async def list_participation_requests(
        self,
        status: Optional[RequestStatus] = None,
    ) -> List[ParticipationRequest]:
        rows = [r for r in self.requests.values() if status is None or r.status == status]
        return sorted(rows, key=lambda r: r.requested_at, reverse=True)

    async def save_participation_request(self, request: ParticipationRequest) -> ParticipationRequest:
        async with self._lock:
            self.requests[request.request_id] = request
            return request
