"""Waitlist and reservation request/response schemas."""

from datetime import datetime
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field

from tableready.models.waitlist import CancelledBy, ReservationType, WaitlistStatus
from tableready.schemas.venue import TableMatchResponse


class PartyDetails(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=200)
    party_size: int = Field(..., ge=1)
    customer_phone: Optional[str] = Field(None, max_length=50)
    user_id: Optional[str] = Field(None, max_length=64)
    preferences: List[str] = []
    notes: Optional[str] = None


class WaitlistJoin(PartyDetails):
    """Walk-in join request."""
    pass


class ReservationCreate(PartyDetails):
    reservation_time: datetime


class ReasonRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class PatronCancelRequest(BaseModel):
    reason: str = Field("Cancelled by patron", min_length=1)


class ExtendRequest(BaseModel):
    minutes: int = Field(..., ge=1)
    reason: str = Field(..., min_length=1)


class DelayRequest(BaseModel):
    minutes: int = Field(..., ge=1)


class WaitlistEntryResponse(BaseModel):
    id: str
    venue_id: int
    customer_name: str
    party_size: int
    preferences: List[str] = []
    reservation_type: ReservationType
    reservation_time: Optional[datetime] = None
    status: WaitlistStatus
    position: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    eta: datetime
    original_eta: datetime
    ready_at: Optional[datetime] = None
    ready_deadline: Optional[datetime] = None
    seated_at: Optional[datetime] = None
    awaiting_merchant_confirmation: bool = False
    patron_delayed: bool = False
    delayed_until: Optional[datetime] = None
    merchant_acknowledged: bool = False
    needs_acknowledgement: bool = False
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[CancelledBy] = None
    assigned_table_id: Optional[str] = None
    linked_reservation_id: Optional[str] = None
    confidence: Optional[str] = None
    notes: Optional[str] = None
    version: int

    model_config = {"from_attributes": True}


class ReservationResponse(BaseModel):
    created: bool
    linked_reservation_id: Optional[str] = None
    entries: List[WaitlistEntryResponse] = []
    match: TableMatchResponse


class WaitEstimateResponse(BaseModel):
    estimated_minutes: int
    confidence_score: int
    confidence_level: str
    data_points: int
    is_default: bool
    reliable: bool
    breakdown: Dict[str, Any]


class WaitlistStats(BaseModel):
    total_waiting: int
    total_ready: int
    avg_quoted_wait: int
    current_longest_wait: int
    seated_today: int
    no_shows_today: int
    cancelled_today: int


class SweepResult(BaseModel):
    expired: int
    skipped: int
    errors: List[Dict[str, Any]] = []
