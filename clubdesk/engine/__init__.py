"""
Attendance & payment lifecycle engine

Pure functions over supplied facts. Nothing in here touches the store,
and "now" is always passed in.
"""
from .errors import (
    ClubError,
    ConcurrentUpdate,
    Forbidden,
    InvalidState,
    NotFound,
    Unauthorized,
    ValidationError,
)
from .models import (
    AdultProfile,
    AgeRange,
    Attending,
    AttendanceFact,
    Category,
    ChildProfile,
    Event,
    EventKind,
    EventStatus,
    MembershipType,
    PaidStatus,
    ParticipationRequest,
    Profile,
    ProfileRole,
    ProfileStatus,
    RequestStatus,
)
from .transitions import Transition

__all__ = [
    "ClubError",
    "ConcurrentUpdate",
    "Forbidden",
    "InvalidState",
    "NotFound",
    "Unauthorized",
    "ValidationError",
    "AdultProfile",
    "AgeRange",
    "Attending",
    "AttendanceFact",
    "Category",
    "ChildProfile",
    "Event",
    "EventKind",
    "EventStatus",
    "MembershipType",
    "PaidStatus",
    "ParticipationRequest",
    "Profile",
    "ProfileRole",
    "ProfileStatus",
    "RequestStatus",
    "Transition",
]
