"""Venue availability: business hours, holiday overrides, breaks and grace periods.

Everything here is a pure function of an ``AvailabilityConfig`` and a venue-local
wall-clock time. Callers convert "now" to the venue timezone first
(see ``VenueService.get_status``). Times of day travel as ``HH:MM`` strings and
are compared as minutes since midnight.
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from tableready.core.config import settings
from tableready.core.exceptions import ValidationError
from tableready.schemas.venue import (
    AvailabilityConfig,
    BreakWindow,
    GracePeriods,
    NextOpening,
    VenueStatus,
    WEEKDAYS,
)

logger = logging.getLogger(__name__)

OPERATIONS = ("reservation", "order", "waitlist")

DEFAULT_GRACE_MINUTES = {
    "reservation": 0,
    "order": 15,
    "waitlist": 30,
}

NEXT_OPENING_FALLBACK = NextOpening(day="soon", time="09:00")

MINUTES_PER_DAY = 24 * 60


def to_minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def is_time_in_range(time: str, start: str, end: str) -> bool:
    """Inclusive containment; ``start > end`` means the window spans midnight."""
    t, s, e = to_minutes(time), to_minutes(start), to_minutes(end)
    if s > e:
        return t >= s or t <= e
    return s <= t <= e


def is_approaching_time(current: str, target: str, minutes_before: int) -> bool:
    """True when *target* is between 0 and *minutes_before* minutes ahead of *current*.

    The difference wraps at midnight so an overnight close (e.g. 02:00 seen from
    23:45) is measured forward.
    """
    diff = (to_minutes(target) - to_minutes(current)) % MINUTES_PER_DAY
    return 0 <= diff <= minutes_before


def get_grace_period(operation: str, grace_periods: GracePeriods) -> int:
    if operation not in OPERATIONS:
        raise ValidationError(f"Unknown operation type '{operation}'")
    configured = {
        "reservation": grace_periods.last_reservation,
        "order": grace_periods.last_order,
        "waitlist": grace_periods.last_waitlist_join,
    }[operation]
    if configured is None:
        return DEFAULT_GRACE_MINUTES[operation]
    return configured


def effective_hours(config: AvailabilityConfig, day: date) -> Optional[Tuple[str, str, List[BreakWindow]]]:
    """Open window for a calendar day after holiday overrides, or None if closed."""
    holiday = config.holiday_for(day)
    if holiday:
        if holiday.is_closed:
            return None
        if holiday.special_hours:
            return holiday.special_hours.open, holiday.special_hours.close, holiday.breaks
    hours = config.hours_for(day)
    if not hours or hours.is_closed:
        return None
    return hours.open, hours.close, hours.breaks


def find_next_opening(config: AvailabilityConfig, from_day: date) -> NextOpening:
    """Scan up to 7 days ahead for the next open day, honouring holidays."""
    for offset in range(1, 8):
        day = from_day + timedelta(days=offset)
        label = "tomorrow" if offset == 1 else WEEKDAYS[day.weekday()].capitalize()

        holiday = config.holiday_for(day)
        if holiday:
            if holiday.is_closed:
                continue
            if holiday.special_hours:
                return NextOpening(day=label, time=holiday.special_hours.open)

        hours = config.hours_for(day)
        if hours and not hours.is_closed:
            return NextOpening(day=label, time=hours.open)

    return NEXT_OPENING_FALLBACK


def _open_window_status(
    current: str,
    close: str,
    breaks: List[BreakWindow],
    grace_minutes: int,
) -> VenueStatus:
    active_break = next((b for b in breaks if is_time_in_range(current, b.start, b.end)), None)
    if active_break:
        return VenueStatus(
            is_open=False,
            is_on_break=True,
            current_break_reason=active_break.reason,
            break_ends_at=active_break.end,
            closes_at=close,
            message=f"Currently on break: {active_break.reason}. Resumes at {active_break.end}",
        )

    closing_soon = is_approaching_time(current, close, grace_minutes)
    return VenueStatus(
        is_open=not closing_soon,
        closing_soon=closing_soon,
        closes_at=close,
        message=f"Closing soon at {close}" if closing_soon else f"Open until {close}",
    )


def _spillover_window(config: AvailabilityConfig, at: datetime) -> Optional[Tuple[str, str, List[BreakWindow]]]:
    """Yesterday's overnight window if it is still running at *at*."""
    window = effective_hours(config, at.date() - timedelta(days=1))
    if not window:
        return None
    open_, close, breaks = window
    if to_minutes(open_) > to_minutes(close) and to_minutes(at.strftime("%H:%M")) <= to_minutes(close):
        return window
    return None


def check_venue_status(config: AvailabilityConfig, operation: str, at: datetime) -> VenueStatus:
    """Decide whether the venue accepts *operation* at venue-local time *at*.

    Priority: holiday closure, holiday special hours, weekday hours, breaks,
    then the operation's grace period before close.
    """
    grace = get_grace_period(operation, config.grace_periods)
    current = at.strftime("%H:%M")
    today = at.date()

    holiday = config.holiday_for(today)
    if holiday:
        if holiday.is_closed:
            spill = _spillover_window(config, at)
            if spill:
                return _open_window_status(current, spill[1], spill[2], grace)
            next_opening = find_next_opening(config, today)
            return VenueStatus(
                is_open=False,
                opens_at=next_opening.time,
                next_opening=next_opening,
                message=f"Closed for {holiday.reason}. Opens {next_opening.day} at {next_opening.time}",
            )

        if holiday.special_hours:
            special = holiday.special_hours
            if not is_time_in_range(current, special.open, special.close):
                spill = _spillover_window(config, at)
                if spill:
                    return _open_window_status(current, spill[1], spill[2], grace)
                return VenueStatus(
                    is_open=False,
                    opens_at=special.open,
                    closes_at=special.close,
                    message=f"Special hours today: {special.open} - {special.close}",
                )
            return _open_window_status(current, special.close, holiday.breaks, grace)

    hours = config.hours_for(today)
    if not hours or hours.is_closed:
        spill = _spillover_window(config, at)
        if spill:
            return _open_window_status(current, spill[1], spill[2], grace)
        next_opening = find_next_opening(config, today)
        return VenueStatus(
            is_open=False,
            opens_at=next_opening.time,
            next_opening=next_opening,
            message=f"Closed today. Opens {next_opening.day} at {next_opening.time}",
        )

    if not is_time_in_range(current, hours.open, hours.close):
        spill = _spillover_window(config, at)
        if spill:
            return _open_window_status(current, spill[1], spill[2], grace)
        if to_minutes(current) < to_minutes(hours.open):
            return VenueStatus(
                is_open=False,
                opens_at=hours.open,
                message=f"Opens today at {hours.open}",
            )
        next_opening = find_next_opening(config, today)
        return VenueStatus(
            is_open=False,
            opens_at=next_opening.time,
            next_opening=next_opening,
            message=f"Closed. Opens {next_opening.day} at {next_opening.time}",
        )

    return _open_window_status(current, hours.close, hours.breaks, grace)


def get_available_reservation_times(
    config: AvailabilityConfig,
    day: date,
    interval_minutes: Optional[int] = None,
    close_buffer_minutes: Optional[int] = None,
) -> List[str]:
    """Bookable slot start times for *day*.

    Slots run from opening until ``close_buffer_minutes`` before close, skip
    any slot starting inside a break, and follow overnight windows past midnight.
    """
    interval = interval_minutes or settings.slot_interval_minutes
    buffer = settings.slot_close_buffer_minutes if close_buffer_minutes is None else close_buffer_minutes
    if interval <= 0:
        raise ValidationError("Slot interval must be positive")

    window = effective_hours(config, day)
    if not window:
        return []
    open_, close, breaks = window

    current = to_minutes(open_)
    close_minutes = to_minutes(close)
    if close_minutes < current:
        close_minutes += MINUTES_PER_DAY

    slots = []
    while current < close_minutes - buffer:
        slot = format_minutes(current)
        if not any(is_time_in_range(slot, b.start, b.end) for b in breaks):
            slots.append(slot)
        current += interval

    logger.debug(f"{len(slots)} reservation slots on {day.isoformat()} ({open_}-{close})")
    return slots


def is_within_operating_hours(config: AvailabilityConfig, at: datetime) -> bool:
    """Plain open/closed check ignoring breaks and grace periods."""
    current = at.strftime("%H:%M")
    window = effective_hours(config, at.date())
    if window and is_time_in_range(current, window[0], window[1]):
        return True
    return _spillover_window(config, at) is not None
