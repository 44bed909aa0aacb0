"""
Store interface

Adapters normalize stored values into engine models on the way out, so
the engine never sees raw timestamps or loose status strings.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from clubdesk.engine.models import (
    AdultProfile,
    AttendanceFact,
    ChildProfile,
    Event,
    PaidStatus,
    ParticipationRequest,
    RequestStatus,
)


class ClubStore(ABC):
    """Async store used by the service layer"""

    # ==================== Profiles ====================

    @abstractmethod
    async def get_adult(self, profile_id: str) -> Optional[AdultProfile]:
        ...

    @abstractmethod
    async def get_child(self, profile_id: str) -> Optional[ChildProfile]:
        ...

    @abstractmethod
    async def list_adults(self) -> List[AdultProfile]:
        ...

    @abstractmethod
    async def list_children(self) -> List[ChildProfile]:
        ...

    # ==================== Events ====================

    @abstractmethod
    async def get_event(self, event_id: str) -> Optional[Event]:
        ...

    @abstractmethod
    async def list_events(self, start: datetime, end: datetime) -> List[Event]:
        """Events with start <= starts_at < end"""

    @abstractmethod
    async def update_event(self, event_id: str, patch: Dict[str, Any]) -> Event:
        ...

    # ==================== Attendance ====================

    @abstractmethod
    async def get_attendance(self, event_id: str, profile_id: str) -> Optional[AttendanceFact]:
        ...

    @abstractmethod
    async def list_attendance_for_event(self, event_id: str) -> List[AttendanceFact]:
        ...

    @abstractmethod
    async def list_attendance_for_profile(self, profile_id: str) -> List[AttendanceFact]:
        ...

    @abstractmethod
    async def merge_attendance(
        self,
        event_id: str,
        profile_id: str,
        patch: Dict[str, Any],
        expected_paid_status: Optional[PaidStatus] = None,
    ) -> AttendanceFact:
        """
        Merge `patch` into the record, creating it if needed

        Raises:
            ConcurrentUpdate: stored paid_status no longer equals
                `expected_paid_status`
        """

    # ==================== Participation requests ====================

    @abstractmethod
    async def get_participation_request(self, request_id: str) -> Optional[ParticipationRequest]:
        ...

    @abstractmethod
    async def list_participation_requests(
        self,
        status: Optional[RequestStatus] = None,
    ) -> List[ParticipationRequest]:
        ...

    @abstractmethod
    async def save_participation_request(self, request: ParticipationRequest) -> ParticipationRequest:
        ...
