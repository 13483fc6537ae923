"""Venue configuration, table inventory and availability lookups."""

import logging
from datetime import date, datetime
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from tableready.core.config import settings
from tableready.core.exceptions import NotFound, ValidationError, VenueClosed
from tableready.core.timeutils import to_venue_local
from tableready.models.venue import Venue, VenueTable
from tableready.schemas.venue import AvailabilityConfig, TableIn, VenueCreate, VenueStatus
from tableready.services.availability import (
    check_venue_status,
    get_available_reservation_times,
    is_within_operating_hours,
)

logger = logging.getLogger(__name__)


def _validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone '{name}'")
    return name


class VenueService:
    """Service for venue setup and the availability gate."""

    def __init__(self, db: Session):
        self.db = db

    def get_venue(self, venue_id: int) -> Venue:
        venue = self.db.query(Venue).filter(Venue.id == venue_id).first()
        if not venue:
            raise NotFound("Venue", venue_id)
        return venue

    def create_venue(self, data: VenueCreate) -> Venue:
        venue = Venue(
            name=data.name.strip(),
            timezone=_validate_timezone(data.timezone or settings.timezone),
            settings=data.settings.model_dump(mode="json", exclude_none=True),
        )
        self.db.add(venue)
        self.db.commit()
        self.db.refresh(venue)
        logger.info(f"Created venue {venue.id} ({venue.name})")
        return venue

    def replace_tables(self, venue_id: int, tables: List[TableIn]) -> List[VenueTable]:
        """Replace the venue's table inventory with *tables*."""
        venue = self.get_venue(venue_id)
        ids = [t.id for t in tables]
        if len(ids) != len(set(ids)):
            raise ValidationError("Table ids must be unique within a venue")

        venue.tables.clear()
        self.db.flush()
        rows = [VenueTable(id=t.id, name=t.name, capacity=t.capacity) for t in tables]
        venue.tables.extend(rows)
        self.db.commit()
        logger.info(f"Venue {venue.id} table configuration replaced ({len(rows)} tables)")
        return sorted(venue.tables, key=lambda t: t.id)

    def availability_config(self, venue: Venue) -> AvailabilityConfig:
        return AvailabilityConfig.from_settings(venue.config)

    def get_status(self, venue: Venue, operation: str, at: datetime) -> VenueStatus:
        """Availability for *operation* at instant *at* (UTC or aware)."""
        local = to_venue_local(at, venue.timezone)
        return check_venue_status(self.availability_config(venue), operation, local)

    def require_open(self, venue: Venue, operation: str, at: datetime) -> VenueStatus:
        status = self.get_status(venue, operation, at)
        if not status.is_open:
            logger.info(f"Venue {venue.id} refused {operation}: {status.message}")
            raise VenueClosed(
                operation,
                status.message,
                status.next_opening.model_dump() if status.next_opening else None,
            )
        return status

    def get_reservation_slots(self, venue: Venue, day: date, interval_minutes: Optional[int] = None) -> List[str]:
        return get_available_reservation_times(self.availability_config(venue), day, interval_minutes)

    def is_open_at(self, venue: Venue, at: datetime) -> bool:
        return is_within_operating_hours(self.availability_config(venue), to_venue_local(at, venue.timezone))
