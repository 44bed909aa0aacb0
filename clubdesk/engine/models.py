"""
Engine Models

Pydantic value types for events, profiles and attendance facts.
Timestamps are normalized on construction, so the engine only ever
compares aware UTC datetimes.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .timestamps import to_date, to_instant


# =============================================
# Enums
# =============================================

class EventKind(str, Enum):
    """Event type"""
    net_practice = "net_practice"
    league_match = "league_match"
    family_event = "family_event"
    membership_fee = "membership_fee"
    other = "other"


class EventStatus(str, Enum):
    scheduled = "scheduled"
    cancelled = "cancelled"


class Attending(str, Enum):
    """Profile's own intention"""
    unknown = "unknown"
    yes = "yes"
    no = "no"


class PaidStatus(str, Enum):
    """Payment status"""
    unpaid = "unpaid"
    pending = "pending"    # profile says "I have paid"
    paid = "paid"          # admin confirmed
    rejected = "rejected"  # admin rejected, profile may resubmit


class Category(str, Enum):
    """Derived cohort, never stored"""
    men = "men"
    women = "women"
    juniors = "juniors"


class MembershipType(str, Enum):
    standard = "standard"
    student = "student"


class ProfileRole(str, Enum):
    player = "player"
    admin = "admin"


class ProfileStatus(str, Enum):
    active = "active"
    disabled = "disabled"
    removed = "removed"
    inactive = "inactive"


class RequestStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


def _norm_enum(value, enum_cls, default):
    """Case-insensitive enum coercion with a fallback"""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, bool):
        # legacy child records store attending as a boolean
        if enum_cls is Attending:
            return Attending.yes if value else Attending.no
        return default
    text = str(value or "").strip().lower()
    try:
        return enum_cls(text)
    except ValueError:
        return default


# =============================================
# Events
# =============================================

class AgeRange(BaseModel):
    """Inclusive age bounds"""
    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _ordered(self):
        if self.min > self.max:
            raise ValueError("age_range.min must not exceed age_range.max")
        return self


class Event(BaseModel):
    """Scheduled club event"""
    event_id: str
    title: str = "Untitled Event"
    kind: EventKind = EventKind.other
    starts_at: datetime
    fee: Decimal = Decimal("0")
    target_groups: List[str] = []
    legacy_group: Optional[str] = None
    is_child_event: bool = False
    status: EventStatus = EventStatus.scheduled
    age_range: Optional[AgeRange] = None
    attendance_cutoff_hours: Optional[int] = None

    @field_validator("starts_at", mode="before")
    @classmethod
    def _instant(cls, v):
        return to_instant(v)

    @field_validator("kind", mode="before")
    @classmethod
    def _kind(cls, v):
        return _norm_enum(v, EventKind, EventKind.other)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _norm_enum(v, EventStatus, EventStatus.scheduled)

    @field_validator("fee", mode="before")
    @classmethod
    def _fee(cls, v):
        return Decimal(str(v)) if v not in (None, "") else Decimal("0")

    @field_validator("target_groups", mode="before")
    @classmethod
    def _groups(cls, v):
        return [str(g) for g in (v or []) if g]

    @property
    def is_membership(self) -> bool:
        return self.kind == EventKind.membership_fee

    @property
    def is_cancelled(self) -> bool:
        return self.status == EventStatus.cancelled


# =============================================
# Profiles
# =============================================

class AdultProfile(BaseModel):
    """Adult player (or admin) account"""
    profile_id: str
    name: str = ""
    email: str = ""
    gender: Optional[str] = None
    has_payment_manager: bool = False
    legacy_group: Optional[str] = None
    membership_type: MembershipType = MembershipType.standard
    groups: List[str] = []
    role: ProfileRole = ProfileRole.player
    status: ProfileStatus = ProfileStatus.active
    child_ids: List[str] = []

    @field_validator("membership_type", mode="before")
    @classmethod
    def _membership(cls, v):
        return _norm_enum(v, MembershipType, MembershipType.standard)

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, v):
        return _norm_enum(v, ProfileRole, ProfileRole.player)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _norm_enum(v, ProfileStatus, ProfileStatus.active)

    @field_validator("groups", "child_ids", mode="before")
    @classmethod
    def _list(cls, v):
        return [str(x) for x in (v or []) if x]

    @property
    def is_child(self) -> bool:
        return False

    @property
    def is_admin(self) -> bool:
        return self.role == ProfileRole.admin

    @property
    def is_active(self) -> bool:
        return self.status == ProfileStatus.active


class ChildProfile(BaseModel):
    """Child profile managed by one or more parents"""
    profile_id: str
    name: str = ""
    birth_date: Optional[date] = None
    groups: List[str] = []
    parent_ids: List[str] = []
    status: ProfileStatus = ProfileStatus.active
    materialized: bool = True  # False for roster placeholders

    @field_validator("birth_date", mode="before")
    @classmethod
    def _birth(cls, v):
        return to_date(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _norm_enum(v, ProfileStatus, ProfileStatus.active)

    @field_validator("groups", "parent_ids", mode="before")
    @classmethod
    def _list(cls, v):
        return [str(x) for x in (v or []) if x]

    @property
    def is_child(self) -> bool:
        return True

    @property
    def is_admin(self) -> bool:
        return False

    @property
    def is_active(self) -> bool:
        return self.status == ProfileStatus.active

    @property
    def legacy_group(self) -> str:
        return "all_kids"


Profile = Union[AdultProfile, ChildProfile]


# =============================================
# Attendance
# =============================================

_TIMESTAMP_FIELDS = (
    "marked_at",
    "attended_at",
    "paid_updated_at",
    "confirmed_at",
    "rejected_at",
)


class AttendanceFact(BaseModel):
    """The single per-(event, profile) record"""
    event_id: str
    profile_id: str
    attending: Attending = Attending.unknown
    attended: bool = False
    paid_status: PaidStatus = PaidStatus.unpaid
    fee_due: Optional[Decimal] = None

    marked_at: Optional[datetime] = None
    attended_at: Optional[datetime] = None
    paid_updated_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    confirmed_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    paid_by: Optional[str] = None

    @field_validator(*_TIMESTAMP_FIELDS, mode="before")
    @classmethod
    def _instant(cls, v):
        return to_instant(v)

    @field_validator("attending", mode="before")
    @classmethod
    def _attending(cls, v):
        return _norm_enum(v, Attending, Attending.unknown)

    @field_validator("paid_status", mode="before")
    @classmethod
    def _paid(cls, v):
        return _norm_enum(v, PaidStatus, PaidStatus.unpaid)

    @field_validator("attended", mode="before")
    @classmethod
    def _attended(cls, v):
        return v is True

    @field_validator("fee_due", mode="before")
    @classmethod
    def _fee_due(cls, v):
        if v is None or v == "":
            return None
        return Decimal(str(v))

    @classmethod
    def blank(cls, event_id: str, profile_id: str) -> "AttendanceFact":
        """Record that has not been created yet"""
        return cls(event_id=event_id, profile_id=profile_id)

    @property
    def exists(self) -> bool:
        """Lazily created records only count once something was set"""
        return (
            self.attending != Attending.unknown
            or self.attended
            or self.paid_status != PaidStatus.unpaid
            or self.fee_due is not None
        )


class ParticipationRequest(BaseModel):
    """Late request to join an event after the self-service cutoff"""
    event_id: str
    profile_id: str
    profile_name: str = ""
    kind: str = "adult"  # adult / child
    requested_by: str
    requested_at: datetime
    status: RequestStatus = RequestStatus.pending
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None

    @field_validator("requested_at", "resolved_at", mode="before")
    @classmethod
    def _instant(cls, v):
        return to_instant(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return _norm_enum(v, RequestStatus, RequestStatus.pending)

    @property
    def request_id(self) -> str:
        return request_id_for(self.event_id, self.profile_id)


def request_id_for(event_id: str, profile_id: str) -> str:
    return f"{event_id}_{profile_id}"
