"""
Club API Models

Pydantic request / response bodies
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from clubdesk.engine.models import PaidStatus


# =============================================
# Profile actions
# =============================================

class AttendingRequest(BaseModel):
    """Going / not going"""
    attending: str = Field(..., description="yes or no")
    profile_id: Optional[str] = Field(None, description="Child profile the parent acts for")


class ProfileActionRequest(BaseModel):
    """Payment submission / participation request body"""
    profile_id: Optional[str] = None


# =============================================
# Admin
# =============================================

class AttendanceUpdate(BaseModel):
    """Admin edit of one record. Omitted fields are left alone."""
    attended: Optional[bool] = None
    fee_due: Optional[Decimal] = Field(None, ge=0, description="null clears the override")


class EventUpdate(BaseModel):
    """Admin event edit"""
    title: Optional[str] = None
    fee: Optional[Decimal] = Field(None, ge=0)
    starts_at: Optional[datetime] = None
    target_groups: Optional[List[str]] = Field(None, alias="targetGroups")

    model_config = {"populate_by_name": True}

    @field_validator("title")
    @classmethod
    def _title(cls, v):
        if v is not None and not v.strip():
            raise ValueError("title must not be blank")
        return v.strip() if v else v


class PaymentRef(BaseModel):
    event_id: str = Field(..., alias="eventId")
    profile_id: str = Field(..., alias="profileId")

    model_config = {"populate_by_name": True}


class PaymentsUpdateRequest(BaseModel):
    """Bulk confirm / reject"""
    payments: List[PaymentRef] = Field(..., min_length=1)
    status: PaidStatus


# =============================================
# Responses
# =============================================

class PaymentFailure(BaseModel):
    event_id: str
    profile_id: str
    error: str


class BulkResult(BaseModel):
    updated: int = 0
    failed: List[PaymentFailure] = []


class AdminPaymentItem(BaseModel):
    id: str
    event_id: str
    event_name: str
    event_date: Optional[datetime] = None
    event_type: str  # adults / kids
    profile_id: str
    profile_name: str
    parent_id: Optional[str] = None
    parent_name: Optional[str] = None
    amount: Decimal
    status: PaidStatus
    marked_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    confirmed_by: Optional[str] = None


class AdminPaymentStats(BaseModel):
    total: int = 0
    pending: int = 0
    paid: int = 0
    unpaid: int = 0
    rejected: int = 0
    total_amount: Decimal = Decimal("0.00")
    pending_amount: Decimal = Decimal("0.00")
    paid_amount: Decimal = Decimal("0.00")
    outstanding_amount: Decimal = Decimal("0.00")


class AdminPaymentsResponse(BaseModel):
    payments: List[AdminPaymentItem] = []
    stats: AdminPaymentStats = AdminPaymentStats()


class RosterRow(BaseModel):
    """Admin event roster line"""
    profile_id: str
    name: str
    bucket: str  # men / women / juniors / kids
    attending: str
    attended: bool
    paid_status: PaidStatus
    billing_bucket: Optional[PaidStatus] = None
    fee_due: Optional[Decimal] = None
    amount_due: Decimal
