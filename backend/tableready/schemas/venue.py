"""Venue, availability and table schemas."""

import re
from datetime import date, datetime
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field, field_validator, model_validator

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _check_time(v: str) -> str:
    if not _TIME_RE.match(v):
        raise ValueError(f"Invalid time '{v}', expected HH:MM")
    return v


# Availability configuration

class BreakWindow(BaseModel):
    start: str
    end: str
    reason: str = "Break"

    @field_validator("start", "end")
    @classmethod
    def validate_times(cls, v: str) -> str:
        return _check_time(v)


class DayHours(BaseModel):
    open: str = "09:00"
    close: str = "22:00"
    is_closed: bool = False
    breaks: List[BreakWindow] = []

    @field_validator("open", "close")
    @classmethod
    def validate_times(cls, v: str) -> str:
        return _check_time(v)


class SpecialHours(BaseModel):
    open: str
    close: str

    @field_validator("open", "close")
    @classmethod
    def validate_times(cls, v: str) -> str:
        return _check_time(v)


class HolidayClosure(BaseModel):
    """A date-keyed override: fully closed, or open on special hours."""
    date: date
    is_closed: Optional[bool] = None
    reason: str = "holiday"
    special_hours: Optional[SpecialHours] = None
    breaks: List[BreakWindow] = []

    @model_validator(mode="after")
    def default_closed(self) -> "HolidayClosure":
        # unset means closed unless special hours are given
        if self.is_closed is None:
            self.is_closed = self.special_hours is None
        return self


class GracePeriods(BaseModel):
    """Minutes before close after which new entries are refused. None means unset."""
    last_reservation: Optional[int] = Field(None, ge=0)
    last_order: Optional[int] = Field(None, ge=0)
    last_waitlist_join: Optional[int] = Field(None, ge=0)


class AvailabilityConfig(BaseModel):
    business_hours: Dict[str, DayHours] = {}
    holiday_closures: List[HolidayClosure] = []
    grace_periods: GracePeriods = GracePeriods()

    @field_validator("business_hours")
    @classmethod
    def validate_weekdays(cls, v: Dict[str, DayHours]) -> Dict[str, DayHours]:
        normalised = {}
        for key, hours in v.items():
            day = key.strip().lower()
            if day not in WEEKDAYS:
                raise ValueError(f"Unknown weekday '{key}'")
            normalised[day] = hours
        return normalised

    @classmethod
    def from_settings(cls, venue_settings: Optional[Dict[str, Any]]) -> "AvailabilityConfig":
        venue_settings = venue_settings or {}
        return cls(
            business_hours=venue_settings.get("business_hours") or {},
            holiday_closures=venue_settings.get("holiday_closures") or [],
            grace_periods=venue_settings.get("grace_periods") or {},
        )

    def holiday_for(self, day: date) -> Optional[HolidayClosure]:
        for holiday in self.holiday_closures:
            if holiday.date == day:
                return holiday
        return None

    def hours_for(self, day: date) -> Optional[DayHours]:
        return self.business_hours.get(WEEKDAYS[day.weekday()])


class NextOpening(BaseModel):
    day: str
    time: str


class VenueStatus(BaseModel):
    """Result of an availability check."""
    is_open: bool
    is_on_break: bool = False
    closing_soon: bool = False
    current_break_reason: Optional[str] = None
    break_ends_at: Optional[str] = None
    opens_at: Optional[str] = None
    closes_at: Optional[str] = None
    next_opening: Optional[NextOpening] = None
    message: str


# Venues

class VenueSettings(AvailabilityConfig):
    max_extension_time: Optional[int] = Field(None, ge=1)
    default_prep_time: Optional[int] = Field(None, ge=1)


class VenueCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    timezone: Optional[str] = None
    settings: VenueSettings = VenueSettings()


class VenueResponse(BaseModel):
    id: int
    name: str
    timezone: str
    settings: Dict[str, Any]

    model_config = {"from_attributes": True}


# Tables

class TableIn(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=100)
    capacity: int = Field(..., ge=1)


class TableResponse(TableIn):
    model_config = {"from_attributes": True}


class TableMatchRequest(BaseModel):
    party_size: int = Field(..., ge=1)
    reservation_time: datetime
    exclude_entry_id: Optional[str] = None


class TableMatchResponse(BaseModel):
    available: bool
    requires_multiple_tables: bool = False
    table_ids: List[str] = []
    tables: List[TableResponse] = []
    total_capacity: int = 0
    utilization: Optional[int] = None
    warning: Optional[str] = None
    message: Optional[str] = None
    next_available_offset_minutes: Optional[int] = None
    next_available_time: Optional[datetime] = None
    search_budget_exceeded: bool = False


class OrderCompletion(BaseModel):
    """A finished food order, fed into prep-time history."""
    placed_at: datetime
    ready_at: datetime
    items_count: int = Field(1, ge=1)
    order_ref: Optional[str] = Field(None, max_length=64)
