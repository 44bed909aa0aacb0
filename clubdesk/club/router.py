"""
Club Router

Profile-facing and admin routes for attendance and payments
- events and attendance toggles
- payment submission
- late participation requests
- dashboard and stats
- admin roster, payments and requests
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from clubdesk.auth import ActorContext, get_actor, require_admin
from clubdesk.database import ClubStore, get_store
from clubdesk.engine.dashboard import DashboardSelection, EventView
from clubdesk.engine.models import AttendanceFact, Event, ParticipationRequest
from clubdesk.engine.timestamps import utcnow

from .schemas import (
    AdminPaymentsResponse,
    AttendanceUpdate,
    AttendingRequest,
    BulkResult,
    EventUpdate,
    PaymentsUpdateRequest,
    ProfileActionRequest,
    RosterRow,
)
from .service import ClubService

router = APIRouter(tags=["Club"])


def get_clock():
    """Clock dependency, overridden in tests"""
    return utcnow


def get_service(
    store: ClubStore = Depends(get_store),
    clock=Depends(get_clock),
) -> ClubService:
    return ClubService(store, clock=clock)


# =============================================
# Events
# =============================================

@router.get("/events", response_model=List[EventView])
async def list_events(
    month: str = Query(..., description="YYYY-MM"),
    profile_id: Optional[str] = Query(None, description="Child profile id"),
    kind: Optional[str] = Query(None, description="Event kind filter"),
    actor: ActorContext = Depends(get_actor),
    service: ClubService = Depends(get_service),
):
    """
    Events of a month visible to the profile

    Each row carries the profile's attendance, payment status and fee.
    """
    return await service.list_events(actor.profile, month, profile_id, kind)


@router.post("/events/{event_id}/attending", response_model=EventView)
async def set_attending(
    event_id: str,
    body: AttendingRequest,
    actor: ActorContext = Depends(get_actor),
    service: ClubService = Depends(get_service),
):
    """Going / not going"""
    return await service.set_attending(actor.profile, event_id, body.attending, body.profile_id)


@router.post("/events/{event_id}/paid", response_model=EventView)
async def submit_payment(
    event_id: str,
    body: Optional[ProfileActionRequest] = None,
    actor: ActorContext = Depends(get_actor),
    service: ClubService = Depends(get_service),
):
    """
    "I have paid"

    Moves the payment to pending for admin review.
    """
    profile_id = body.profile_id if body else None
    return await service.submit_payment(actor.profile, event_id, profile_id)


@router.post("/events/{event_id}/request", response_model=ParticipationRequest)
async def request_participation(
    event_id: str,
    body: Optional[ProfileActionRequest] = None,
    actor: ActorContext = Depends(get_actor),
    service: ClubService = Depends(get_service),
):
    """Late participation request after the attendance cut-off"""
    profile_id = body.profile_id if body else None
    return await service.request_participation(actor.profile, event_id, profile_id)


@router.get("/events/{event_id}/friends")
async def get_friends(
    event_id: str,
    actor: ActorContext = Depends(get_actor),
    service: ClubService = Depends(get_service),
):
    """Who is going, by category"""
    summary = await service.friends_summary(actor.profile, event_id)
    return {name: bucket.model_dump() for name, bucket in summary.items()}


# =============================================
# Dashboard & stats
# =============================================

@router.get("/dashboard", response_model=DashboardSelection)
async def get_dashboard(
    profile_id: Optional[str] = Query(None),
    actor: ActorContext = Depends(get_actor),
    service: ClubService = Depends(get_service),
):
    """Next / last / upcoming events with this month's stats"""
    return await service.get_dashboard(actor.profile, profile_id)


@router.get("/stats/events")
async def get_event_stats(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    profile_id: Optional[str] = Query(None),
    actor: ActorContext = Depends(get_actor),
    service: ClubService = Depends(get_service),
):
    """Monthly attendance for a year"""
    return await service.event_stats(actor.profile, year, profile_id)


@router.get("/stats/payments")
async def get_payment_stats(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    profile_id: Optional[str] = Query(None),
    actor: ActorContext = Depends(get_actor),
    service: ClubService = Depends(get_service),
):
    """Monthly paid / pending / outstanding amounts for a year"""
    return await service.payment_stats(actor.profile, year, profile_id)


# =============================================
# Admin: attendance
# =============================================

@router.get("/admin/events/{event_id}/attendance", response_model=List[RosterRow])
async def get_event_roster(
    event_id: str,
    admin: ActorContext = Depends(require_admin),
    service: ClubService = Depends(get_service),
):
    """Event roster with attendance and payment state"""
    return await service.event_roster(admin.profile, event_id)


@router.patch("/admin/events/{event_id}/attendance/{profile_id}", response_model=AttendanceFact)
async def update_attendance(
    event_id: str,
    profile_id: str,
    body: AttendanceUpdate,
    admin: ActorContext = Depends(require_admin),
    service: ClubService = Depends(get_service),
):
    """
    Confirm attendance and / or override the fee

    - `attended`: physical presence
    - `fee_due`: amount override, null clears it
    """
    return await service.update_attendance(
        admin.profile,
        event_id,
        profile_id,
        attended=body.attended,
        fee_due=body.fee_due,
        set_fee_due="fee_due" in body.model_fields_set,
    )


@router.post("/admin/events/{event_id}/attendance/confirm-all", response_model=BulkResult)
async def confirm_all_attendance(
    event_id: str,
    admin: ActorContext = Depends(require_admin),
    service: ClubService = Depends(get_service),
):
    """Mark everyone who said yes as attended"""
    return await service.confirm_all_attendance(admin.profile, event_id)


# =============================================
# Admin: events
# =============================================

@router.patch("/admin/events/{event_id}", response_model=Event)
async def update_event(
    event_id: str,
    body: EventUpdate,
    admin: ActorContext = Depends(require_admin),
    service: ClubService = Depends(get_service),
):
    """Edit an event that has not started yet"""
    return await service.update_event(admin.profile, event_id, body.model_dump(exclude_none=True))


@router.post("/admin/events/{event_id}/cancel", response_model=Event)
async def cancel_event(
    event_id: str,
    admin: ActorContext = Depends(require_admin),
    service: ClubService = Depends(get_service),
):
    return await service.cancel_event(admin.profile, event_id)


# =============================================
# Admin: payments
# =============================================

@router.get("/admin/payments", response_model=AdminPaymentsResponse)
async def list_payments(
    status: str = Query("all", description="all / paid / pending / unpaid / rejected"),
    type: str = Query("all", description="all / adults / kids"),
    month: Optional[str] = Query(None, description="YYYY-MM"),
    eventId: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    admin: ActorContext = Depends(require_admin),
    service: ClubService = Depends(get_service),
):
    """Billable records with counts and amounts"""
    return await service.admin_payments(admin.profile, status, type, month, eventId, search)


@router.post("/admin/payments/update", response_model=BulkResult)
async def update_payments(
    body: PaymentsUpdateRequest,
    admin: ActorContext = Depends(require_admin),
    service: ClubService = Depends(get_service),
):
    """Confirm or reject pending payments"""
    refs = [{"event_id": p.event_id, "profile_id": p.profile_id} for p in body.payments]
    return await service.update_payments(admin.profile, refs, body.status)


# =============================================
# Admin: participation requests
# =============================================

@router.get("/admin/participation-requests", response_model=List[ParticipationRequest])
async def list_participation_requests(
    status: str = Query("pending"),
    admin: ActorContext = Depends(require_admin),
    service: ClubService = Depends(get_service),
):
    return await service.list_participation_requests(admin.profile, status)


@router.post("/admin/participation-requests/{request_id}/approve", response_model=ParticipationRequest)
async def approve_participation_request(
    request_id: str,
    admin: ActorContext = Depends(require_admin),
    service: ClubService = Depends(get_service),
):
    """Approve: the profile is marked going and attended"""
    return await service.resolve_participation_request(admin.profile, request_id, approve=True)


@router.post("/admin/participation-requests/{request_id}/reject", response_model=ParticipationRequest)
async def reject_participation_request(
    request_id: str,
    admin: ActorContext = Depends(require_admin),
    service: ClubService = Depends(get_service),
):
    return await service.resolve_participation_request(admin.profile, request_id, approve=False)
