"""Venue routes - setup, availability, slots, estimates and table matching."""

from datetime import date, datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Query

from tableready.core.exceptions import ValidationError
from tableready.core.timeutils import utc_now
from tableready.db.session import DbSession
from tableready.schemas.venue import (
    OrderCompletion,
    TableIn,
    TableMatchRequest,
    TableMatchResponse,
    TableResponse,
    VenueCreate,
    VenueResponse,
    VenueStatus,
)
from tableready.schemas.waitlist import WaitEstimateResponse
from tableready.services.table_matcher import TableAssignmentService
from tableready.services.venue_service import VenueService
from tableready.services.wait_time import WaitTimeService

router = APIRouter()


@router.post("/", response_model=VenueResponse, status_code=201)
def create_venue(db: DbSession, data: VenueCreate):
    """Create a venue with its hours, holidays and grace periods."""
    return VenueService(db).create_venue(data)


@router.get("/{venue_id}", response_model=VenueResponse)
def get_venue(db: DbSession, venue_id: int):
    return VenueService(db).get_venue(venue_id)


@router.get("/{venue_id}/tables", response_model=List[TableResponse])
def list_tables(db: DbSession, venue_id: int):
    venue = VenueService(db).get_venue(venue_id)
    return sorted(venue.tables, key=lambda t: t.id)


@router.put("/{venue_id}/tables", response_model=List[TableResponse])
def replace_tables(db: DbSession, venue_id: int, tables: List[TableIn]):
    """Replace the venue's table inventory."""
    return VenueService(db).replace_tables(venue_id, tables)


@router.get("/{venue_id}/status", response_model=VenueStatus)
def get_venue_status(
    db: DbSession,
    venue_id: int,
    operation: Literal["reservation", "order", "waitlist"] = "waitlist",
    at: Optional[datetime] = None,
):
    """Is the venue accepting this operation type now (or at ``at``)?"""
    service = VenueService(db)
    venue = service.get_venue(venue_id)
    return service.get_status(venue, operation, at or utc_now())


@router.get("/{venue_id}/slots")
def get_reservation_slots(
    db: DbSession,
    venue_id: int,
    day: date,
    interval: Optional[int] = Query(None, ge=5, le=120),
):
    """Bookable reservation start times for a date (venue-local HH:MM)."""
    service = VenueService(db)
    venue = service.get_venue(venue_id)
    return {
        "venue_id": venue.id,
        "date": day.isoformat(),
        "slots": service.get_reservation_slots(venue, day, interval),
    }


@router.get("/{venue_id}/wait-estimate", response_model=WaitEstimateResponse)
def get_wait_estimate(
    db: DbSession,
    venue_id: int,
    party_size: int = Query(..., ge=1),
):
    venue = VenueService(db).get_venue(venue_id)
    return WaitTimeService(db).estimate_waitlist(venue, party_size, utc_now()).to_dict()


@router.get("/{venue_id}/prep-estimate", response_model=WaitEstimateResponse)
def get_prep_estimate(
    db: DbSession,
    venue_id: int,
    items: int = Query(1, ge=1),
    current_load: int = Query(0, ge=0),
):
    venue = VenueService(db).get_venue(venue_id)
    return WaitTimeService(db).estimate_prep(venue, items, current_load, utc_now()).to_dict()


@router.get("/{venue_id}/capacity")
def get_capacity_status(db: DbSession, venue_id: int):
    venue = VenueService(db).get_venue(venue_id)
    return WaitTimeService(db).get_capacity_status(venue, utc_now())


@router.post("/{venue_id}/orders/completed", status_code=201)
def record_completed_order(db: DbSession, venue_id: int, order: OrderCompletion):
    """Feed a finished order's prep time into the prep estimator's history."""
    if order.ready_at < order.placed_at:
        raise ValidationError("ready_at must not be before placed_at")
    venue = VenueService(db).get_venue(venue_id)
    row = WaitTimeService(db).record_order(
        venue, order.placed_at, order.ready_at, order.items_count, order.order_ref
    )
    return {"id": row.id, "actual_prep_time": row.actual_prep_time}


@router.post("/{venue_id}/tables/match", response_model=TableMatchResponse)
def match_tables(db: DbSession, venue_id: int, request: TableMatchRequest):
    """Preview which table(s) a party would get at a given time."""
    VenueService(db).get_venue(venue_id)
    exclude = [request.exclude_entry_id] if request.exclude_entry_id else []
    result = TableAssignmentService(db).find_tables(
        venue_id, request.party_size, request.reservation_time, exclude
    )
    return result.to_dict()
