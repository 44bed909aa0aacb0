"""
Supabase store

Tables: profiles, child_profiles, events, attendance, participation_requests
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger
from supabase import Client, create_client

from clubdesk.config import get_supabase_config
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
from clubdesk.engine.transitions import patch_to_record

from .base import ClubStore


# Singleton client
_supabase_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """
    Supabase client instance (singleton)
    """
    global _supabase_client
    if _supabase_client is None:
        config = get_supabase_config()
        if not config.supabase_url or not config.supabase_key:
            raise ValueError("Set the SUPABASE_URL and SUPABASE_KEY environment variables")
        _supabase_client = create_client(
            config.supabase_url,
            config.supabase_key
        )
    return _supabase_client


# ==================== Row mapping ====================

def _event_from_row(row: Dict[str, Any]) -> Event:
    age_range = None
    if row.get("age_min") is not None and row.get("age_max") is not None:
        age_range = {"min": row["age_min"], "max": row["age_max"]}
    return Event(
        event_id=str(row["id"]),
        title=row.get("title") or "Untitled Event",
        kind=row.get("kind"),
        starts_at=row.get("starts_at"),
        fee=row.get("fee"),
        target_groups=row.get("target_groups") or [],
        legacy_group=row.get("legacy_group"),
        is_child_event=bool(row.get("is_child_event")),
        status=row.get("status"),
        age_range=age_range,
        attendance_cutoff_hours=row.get("attendance_cutoff_hours"),
    )


def _event_to_row(patch: Dict[str, Any]) -> Dict[str, Any]:
    record = patch_to_record(patch)
    if "fee" in record and record["fee"] is not None:
        record["fee"] = str(record["fee"])
    return record


def _adult_from_row(row: Dict[str, Any]) -> AdultProfile:
    return AdultProfile(
        profile_id=str(row["id"]),
        name=row.get("name") or "",
        email=row.get("email") or "",
        gender=row.get("gender"),
        has_payment_manager=bool(row.get("has_payment_manager")),
        legacy_group=row.get("legacy_group"),
        membership_type=row.get("membership_type"),
        groups=row.get("groups"),
        role=row.get("role"),
        status=row.get("status"),
        child_ids=row.get("child_ids"),
    )


def _child_from_row(row: Dict[str, Any]) -> ChildProfile:
    return ChildProfile(
        profile_id=str(row["id"]),
        name=row.get("name") or "",
        birth_date=row.get("birth_date"),
        groups=row.get("groups"),
        parent_ids=row.get("parent_ids"),
        status=row.get("status"),
    )


def _fact_from_row(row: Dict[str, Any]) -> AttendanceFact:
    return AttendanceFact(**{k: v for k, v in row.items() if k in AttendanceFact.model_fields})


def _request_from_row(row: Dict[str, Any]) -> ParticipationRequest:
    return ParticipationRequest(
        **{k: v for k, v in row.items() if k in ParticipationRequest.model_fields}
    )


class SupabaseClubStore(ClubStore):
    """Supabase-backed store"""

    def __init__(self, client: Optional[Client] = None):
        self.client: Client = client or get_supabase_client()

    # ==================== Profiles ====================

    async def get_adult(self, profile_id: str) -> Optional[AdultProfile]:
        try:
            result = self.client.table("profiles").select("*").eq("id", profile_id).execute()
        except Exception as e:
            logger.error(f"Profile lookup error ({profile_id}): {e}")
            raise
        return _adult_from_row(result.data[0]) if result.data else None

    async def get_child(self, profile_id: str) -> Optional[ChildProfile]:
        try:
            result = self.client.table("child_profiles").select("*").eq("id", profile_id).execute()
        except Exception as e:
            logger.error(f"Child profile lookup error ({profile_id}): {e}")
            raise
        return _child_from_row(result.data[0]) if result.data else None

    async def list_adults(self) -> List[AdultProfile]:
        try:
            result = self.client.table("profiles").select("*").execute()
        except Exception as e:
            logger.error(f"Profile list error: {e}")
            raise
        return [_adult_from_row(row) for row in result.data or []]

    async def list_children(self) -> List[ChildProfile]:
        try:
            result = self.client.table("child_profiles").select("*").execute()
        except Exception as e:
            logger.error(f"Child profile list error: {e}")
            raise
        return [_child_from_row(row) for row in result.data or []]

    # ==================== Events ====================

    async def get_event(self, event_id: str) -> Optional[Event]:
        try:
            result = self.client.table("events").select("*").eq("id", event_id).execute()
        except Exception as e:
            logger.error(f"Event lookup error ({event_id}): {e}")
            raise
        return _event_from_row(result.data[0]) if result.data else None

    async def list_events(self, start: datetime, end: datetime) -> List[Event]:
        try:
            result = (
                self.client.table("events")
                .select("*")
                .gte("starts_at", start.isoformat())
                .lt("starts_at", end.isoformat())
                .order("starts_at")
                .execute()
            )
        except Exception as e:
            logger.error(f"Event list error: {e}")
            raise
        return [_event_from_row(row) for row in result.data or []]

    async def update_event(self, event_id: str, patch: Dict[str, Any]) -> Event:
        try:
            result = (
                self.client.table("events")
                .update(_event_to_row(patch))
                .eq("id", event_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Event update error ({event_id}): {e}")
            raise
        if not result.data:
            raise NotFound("Event not found")
        return _event_from_row(result.data[0])

    # ==================== Attendance ====================

    async def get_attendance(self, event_id: str, profile_id: str) -> Optional[AttendanceFact]:
        row = await self._attendance_row(event_id, profile_id)
        return _fact_from_row(row) if row else None

    async def _attendance_row(self, event_id: str, profile_id: str) -> Optional[Dict[str, Any]]:
        """Stored row as is, before status normalization"""
        try:
            result = (
                self.client.table("attendance")
                .select("*")
                .eq("event_id", event_id)
                .eq("profile_id", profile_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Attendance lookup error ({event_id}/{profile_id}): {e}")
            raise
        return result.data[0] if result.data else None

    async def list_attendance_for_event(self, event_id: str) -> List[AttendanceFact]:
        try:
            result = self.client.table("attendance").select("*").eq("event_id", event_id).execute()
        except Exception as e:
            logger.error(f"Attendance list error ({event_id}): {e}")
            raise
        return [_fact_from_row(row) for row in result.data or []]

    async def list_attendance_for_profile(self, profile_id: str) -> List[AttendanceFact]:
        try:
            result = self.client.table("attendance").select("*").eq("profile_id", profile_id).execute()
        except Exception as e:
            logger.error(f"Attendance list error ({profile_id}): {e}")
            raise
        return [_fact_from_row(row) for row in result.data or []]

    async def merge_attendance(
        self,
        event_id: str,
        profile_id: str,
        patch: Dict[str, Any],
        expected_paid_status: Optional[PaidStatus] = None,
    ) -> AttendanceFact:
        record = patch_to_record(patch)
        table = self.client.table("attendance")

        try:
            if expected_paid_status is None:
                result = table.upsert(
                    {"event_id": event_id, "profile_id": profile_id, **record},
                    on_conflict="event_id,profile_id"
                ).execute()
                return _fact_from_row(result.data[0])

            # Conditional write on the status the transition was computed from
            result = (
                table.update(record)
                .eq("event_id", event_id)
                .eq("profile_id", profile_id)
                .eq("paid_status", expected_paid_status.value)
                .execute()
            )
            if result.data:
                return _fact_from_row(result.data[0])

            row = await self._attendance_row(event_id, profile_id)
            if row is None:
                if expected_paid_status == PaidStatus.unpaid:
                    result = table.insert(
                        {"event_id": event_id, "profile_id": profile_id, **record}
                    ).execute()
                    return _fact_from_row(result.data[0])
            elif _fact_from_row(row).paid_status == expected_paid_status:
                # NULL (lazily created row) or legacy casing: retry on the raw value
                raw = row.get("paid_status")
                query = (
                    table.update(record)
                    .eq("event_id", event_id)
                    .eq("profile_id", profile_id)
                )
                query = query.is_("paid_status", "null") if raw is None else query.eq("paid_status", raw)
                result = query.execute()
                if result.data:
                    return _fact_from_row(result.data[0])
        except Exception as e:
            logger.error(f"Attendance write error ({event_id}/{profile_id}): {e}")
            raise

        raise ConcurrentUpdate("Payment status changed, reload and retry")

    # ==================== Participation requests ====================

    async def get_participation_request(self, request_id: str) -> Optional[ParticipationRequest]:
        try:
            result = (
                self.client.table("participation_requests")
                .select("*")
                .eq("request_id", request_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Participation request lookup error ({request_id}): {e}")
            raise
        return _request_from_row(result.data[0]) if result.data else None

    async def list_participation_requests(
        self,
        status: Optional[RequestStatus] = None,
    ) -> List[ParticipationRequest]:
        query = self.client.table("participation_requests").select("*")
        if status is not None:
            query = query.eq("status", status.value)
        try:
            result = query.order("requested_at", desc=True).execute()
        except Exception as e:
            logger.error(f"Participation request list error: {e}")
            raise
        return [_request_from_row(row) for row in result.data or []]

    async def save_participation_request(self, request: ParticipationRequest) -> ParticipationRequest:
        data = patch_to_record(request.model_dump())
        data["request_id"] = request.request_id
        try:
            self.client.table("participation_requests").upsert(
                data,
                on_conflict="request_id"
            ).execute()
        except Exception as e:
            logger.error(f"Participation request save error ({request.request_id}): {e}")
            raise
        return request
