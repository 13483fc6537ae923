"""Waitlist and reservation routes - joins, staff transitions and patron actions."""

from typing import List, Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from tableready.core.timeutils import utc_now
from tableready.db.session import DbSession
from tableready.schemas.waitlist import (
    DelayRequest,
    ExtendRequest,
    PatronCancelRequest,
    ReasonRequest,
    ReservationCreate,
    ReservationResponse,
    SweepResult,
    WaitlistEntryResponse,
    WaitlistJoin,
    WaitlistStats,
)
from tableready.services.expiry_sweep import ExpirySweepService
from tableready.services.waitlist_service import ReservationResult, WaitlistService

router = APIRouter()


def _reservation_body(result: ReservationResult) -> dict:
    return ReservationResponse(
        created=result.created,
        linked_reservation_id=result.linked_reservation_id,
        entries=[WaitlistEntryResponse.model_validate(e) for e in result.entries],
        match=result.match.to_dict(),
    ).model_dump(mode="json")


# Venue-scoped

@router.post("/venues/{venue_id}/waitlist", response_model=WaitlistEntryResponse, status_code=201)
def join_waitlist(db: DbSession, venue_id: int, data: WaitlistJoin):
    """Add a walk-in party to the waitlist."""
    return WaitlistService(db).join_waitlist(
        venue_id,
        data.customer_name,
        data.party_size,
        utc_now(),
        preferences=data.preferences,
        customer_phone=data.customer_phone,
        user_id=data.user_id,
        notes=data.notes,
    )


@router.post("/venues/{venue_id}/reservations", response_model=ReservationResponse, status_code=201)
def create_reservation(db: DbSession, venue_id: int, data: ReservationCreate):
    """Book a reservation. Returns 409 with the table match when nothing fits."""
    result = WaitlistService(db).create_reservation(
        venue_id,
        data.customer_name,
        data.party_size,
        data.reservation_time,
        utc_now(),
        preferences=data.preferences,
        customer_phone=data.customer_phone,
        user_id=data.user_id,
        notes=data.notes,
    )
    if not result.created:
        return JSONResponse(status_code=409, content=_reservation_body(result))
    return _reservation_body(result)


@router.get("/venues/{venue_id}/queue", response_model=List[WaitlistEntryResponse])
def get_queue(db: DbSession, venue_id: int, view: Literal["staff", "active"] = "staff"):
    """Operational queue. ``staff`` also shows patron cancellations awaiting acknowledgement."""
    service = WaitlistService(db)
    if view == "active":
        return service.get_queue(venue_id)
    return service.get_staff_queue(venue_id)


@router.get("/venues/{venue_id}/upcoming", response_model=List[WaitlistEntryResponse])
def get_upcoming_reservations(db: DbSession, venue_id: int):
    return WaitlistService(db).get_upcoming_reservations(venue_id, utc_now())


@router.get("/venues/{venue_id}/waitlist/stats", response_model=WaitlistStats)
def get_waitlist_stats(db: DbSession, venue_id: int):
    return WaitlistService(db).get_waitlist_stats(venue_id, utc_now())


# Entry-scoped

@router.post("/waitlist/sweep", response_model=SweepResult)
def run_sweep(db: DbSession):
    """Expire overdue ready entries now instead of waiting for the scheduler."""
    return ExpirySweepService(db).expire_ready_entries(utc_now())


@router.get("/waitlist/{entry_id}", response_model=WaitlistEntryResponse)
def get_entry(db: DbSession, entry_id: str):
    return WaitlistService(db).get_entry(entry_id)


@router.post("/waitlist/{entry_id}/ready", response_model=WaitlistEntryResponse)
def mark_ready(db: DbSession, entry_id: str):
    return WaitlistService(db).mark_ready(entry_id, utc_now())


@router.post("/waitlist/{entry_id}/seat", response_model=WaitlistEntryResponse)
def confirm_seating(db: DbSession, entry_id: str):
    return WaitlistService(db).confirm_seating(entry_id, utc_now())


@router.post("/waitlist/{entry_id}/cancel", response_model=WaitlistEntryResponse)
def cancel_entry(db: DbSession, entry_id: str, data: ReasonRequest):
    """Venue-initiated cancellation."""
    return WaitlistService(db).cancel(entry_id, data.reason, utc_now())


@router.post("/waitlist/{entry_id}/no-show", response_model=WaitlistEntryResponse)
def mark_no_show(db: DbSession, entry_id: str, data: ReasonRequest):
    return WaitlistService(db).mark_no_show(entry_id, data.reason, utc_now())


@router.post("/waitlist/{entry_id}/extend", response_model=WaitlistEntryResponse)
def extend_eta(db: DbSession, entry_id: str, data: ExtendRequest):
    return WaitlistService(db).extend_eta(entry_id, data.minutes, data.reason, utc_now())


@router.post("/waitlist/{entry_id}/acknowledge", response_model=WaitlistEntryResponse)
def acknowledge_cancellation(db: DbSession, entry_id: str):
    return WaitlistService(db).acknowledge_cancellation(entry_id, utc_now())


@router.post("/waitlist/{entry_id}/arrived", response_model=WaitlistEntryResponse)
def patron_arrived(db: DbSession, entry_id: str):
    return WaitlistService(db).patron_arrived(entry_id, utc_now())


@router.post("/waitlist/{entry_id}/delay", response_model=WaitlistEntryResponse)
def patron_delay(db: DbSession, entry_id: str, data: DelayRequest):
    return WaitlistService(db).patron_delay(entry_id, data.minutes, utc_now())


@router.post("/waitlist/{entry_id}/patron-cancel", response_model=WaitlistEntryResponse)
def patron_cancel(db: DbSession, entry_id: str, data: PatronCancelRequest):
    return WaitlistService(db).patron_cancel(entry_id, data.reason, utc_now())
