"""Tests for venue availability: hours, holidays, breaks, grace periods and slots."""

import pytest
from datetime import date, datetime

from tableready.core.exceptions import ValidationError
from tableready.schemas.venue import AvailabilityConfig, HolidayClosure, WEEKDAYS
from tableready.services.availability import (
    check_venue_status,
    find_next_opening,
    format_minutes,
    get_available_reservation_times,
    get_grace_period,
    is_approaching_time,
    is_time_in_range,
    is_within_operating_hours,
)

# 2026-03-10 is a Tuesday
TUESDAY = date(2026, 3, 10)


def at(hhmm: str, day: date = TUESDAY) -> datetime:
    hours, minutes = hhmm.split(":")
    return datetime(day.year, day.month, day.day, int(hours), int(minutes))


def every_day(open_: str = "09:00", close: str = "22:00", **extra) -> AvailabilityConfig:
    return AvailabilityConfig(
        business_hours={day: {"open": open_, "close": close} for day in WEEKDAYS},
        **extra,
    )


class TestTimeHelpers:
    """Tests for the HH:MM helpers."""

    def test_range_is_inclusive(self):
        assert is_time_in_range("09:00", "09:00", "22:00")
        assert is_time_in_range("22:00", "09:00", "22:00")
        assert not is_time_in_range("22:01", "09:00", "22:00")

    def test_range_spanning_midnight(self):
        assert is_time_in_range("23:30", "22:00", "02:00")
        assert is_time_in_range("01:00", "22:00", "02:00")
        assert not is_time_in_range("10:00", "22:00", "02:00")

    def test_approaching_wraps_midnight(self):
        assert is_approaching_time("23:45", "00:15", 30)
        assert not is_approaching_time("23:00", "00:15", 30)

    def test_approaching_ignores_past_targets(self):
        assert not is_approaching_time("22:10", "22:00", 30)

    def test_format_minutes_wraps(self):
        assert format_minutes(25 * 60 + 5) == "01:05"

    def test_grace_defaults(self):
        grace = AvailabilityConfig().grace_periods
        assert get_grace_period("reservation", grace) == 0
        assert get_grace_period("order", grace) == 15
        assert get_grace_period("waitlist", grace) == 30

    def test_unknown_operation_rejected(self):
        with pytest.raises(ValidationError):
            get_grace_period("delivery", AvailabilityConfig().grace_periods)


class TestVenueStatus:
    """Tests for check_venue_status."""

    def test_open_mid_day(self):
        status = check_venue_status(every_day(), "waitlist", at("12:00"))
        assert status.is_open is True
        assert status.message == "Open until 22:00"
        assert status.closes_at == "22:00"

    def test_waitlist_closing_soon_inside_grace(self):
        status = check_venue_status(every_day(), "waitlist", at("21:45"))
        assert status.is_open is False
        assert status.closing_soon is True
        assert status.message == "Closing soon at 22:00"

    def test_waitlist_open_before_grace(self):
        status = check_venue_status(every_day(), "waitlist", at("21:00"))
        assert status.is_open is True
        assert status.closing_soon is False

    def test_order_grace_is_fifteen_minutes(self):
        config = every_day()
        assert check_venue_status(config, "order", at("21:40")).is_open is True
        assert check_venue_status(config, "order", at("21:50")).is_open is False

    def test_reservations_accepted_until_close(self):
        assert check_venue_status(every_day(), "reservation", at("21:59")).is_open is True

    def test_explicit_zero_grace_is_respected(self):
        config = every_day(grace_periods={"last_waitlist_join": 0})
        assert check_venue_status(config, "waitlist", at("21:45")).is_open is True

    def test_before_opening(self):
        status = check_venue_status(every_day(), "waitlist", at("07:30"))
        assert status.is_open is False
        assert status.opens_at == "09:00"
        assert status.message == "Opens today at 09:00"

    def test_after_close_points_to_tomorrow(self):
        status = check_venue_status(every_day(), "waitlist", at("23:00"))
        assert status.is_open is False
        assert status.next_opening.day == "tomorrow"
        assert status.message == "Closed. Opens tomorrow at 09:00"

    def test_overnight_hours(self):
        config = every_day("22:00", "02:00")
        assert check_venue_status(config, "reservation", at("01:00")).is_open is True
        assert check_venue_status(config, "reservation", at("23:00")).is_open is True

        closed = check_venue_status(config, "reservation", at("10:00"))
        assert closed.is_open is False
        assert closed.message == "Opens today at 22:00"

    def test_overnight_spillover_into_closed_day(self):
        config = AvailabilityConfig(business_hours={"monday": {"open": "22:00", "close": "02:00"}})
        status = check_venue_status(config, "waitlist", at("00:30"))
        assert status.is_open is True
        assert status.closes_at == "02:00"

    def test_closed_weekday(self):
        config = AvailabilityConfig(business_hours={
            "monday": {"open": "09:00", "close": "17:00"},
            "tuesday": {"open": "09:00", "close": "17:00", "is_closed": True},
        })
        status = check_venue_status(config, "order", at("12:00"))
        assert status.is_open is False
        assert status.next_opening.day == "Monday"
        assert status.message == "Closed today. Opens Monday at 09:00"

    def test_holiday_closure(self):
        config = every_day(holiday_closures=[{"date": "2026-03-10", "reason": "Staff training"}])
        status = check_venue_status(config, "reservation", at("12:00"))
        assert status.is_open is False
        assert status.message == "Closed for Staff training. Opens tomorrow at 09:00"

    def test_holiday_special_hours(self):
        config = every_day(holiday_closures=[{
            "date": "2026-03-10",
            "is_closed": False,
            "reason": "Half day",
            "special_hours": {"open": "12:00", "close": "16:00"},
        }])
        assert check_venue_status(config, "reservation", at("13:00")).closes_at == "16:00"

        status = check_venue_status(config, "reservation", at("17:00"))
        assert status.is_open is False
        assert status.message == "Special hours today: 12:00 - 16:00"

    def test_special_hours_alone_mean_open(self):
        config = every_day(holiday_closures=[{
            "date": "2026-03-10",
            "reason": "Half day",
            "special_hours": {"open": "12:00", "close": "16:00"},
        }])
        assert config.holiday_closures[0].is_closed is False
        status = check_venue_status(config, "reservation", at("13:00"))
        assert status.is_open is True
        assert status.closes_at == "16:00"

    def test_bare_holiday_defaults_to_closed(self):
        assert HolidayClosure(date=TUESDAY).is_closed is True
        assert HolidayClosure(date=TUESDAY, is_closed=False).is_closed is False

    def test_break_takes_precedence(self):
        config = AvailabilityConfig(business_hours={
            day: {
                "open": "09:00",
                "close": "22:00",
                "breaks": [{"start": "15:00", "end": "17:00", "reason": "Staff meal"}],
            }
            for day in WEEKDAYS
        })
        status = check_venue_status(config, "waitlist", at("16:00"))
        assert status.is_open is False
        assert status.is_on_break is True
        assert status.break_ends_at == "17:00"
        assert status.message == "Currently on break: Staff meal. Resumes at 17:00"

    def test_weekday_keys_are_case_insensitive(self):
        config = AvailabilityConfig(business_hours={"Tuesday": {"open": "09:00", "close": "22:00"}})
        assert check_venue_status(config, "waitlist", at("12:00")).is_open is True

    def test_invalid_time_format_rejected(self):
        with pytest.raises(ValueError):
            AvailabilityConfig(business_hours={"monday": {"open": "9am", "close": "22:00"}})


class TestNextOpening:
    """Tests for find_next_opening."""

    def test_skips_holiday(self):
        config = every_day(holiday_closures=[{"date": "2026-03-11"}])
        opening = find_next_opening(config, TUESDAY)
        assert opening.day == "Thursday"
        assert opening.time == "09:00"

    def test_fallback_when_never_open(self):
        opening = find_next_opening(AvailabilityConfig(), TUESDAY)
        assert opening.day == "soon"
        assert opening.time == "09:00"


class TestReservationSlots:
    """Tests for get_available_reservation_times."""

    def test_stops_before_close_buffer(self):
        config = every_day("09:00", "12:00")
        slots = get_available_reservation_times(config, TUESDAY, 30, 30)
        assert slots == ["09:00", "09:30", "10:00", "10:30", "11:00"]

    def test_skips_breaks(self):
        config = AvailabilityConfig(business_hours={
            "tuesday": {
                "open": "09:00",
                "close": "12:00",
                "breaks": [{"start": "10:00", "end": "10:30"}],
            },
        })
        slots = get_available_reservation_times(config, TUESDAY, 30, 30)
        assert slots == ["09:00", "09:30", "11:00"]

    def test_overnight_window(self):
        config = every_day("22:00", "02:00")
        slots = get_available_reservation_times(config, TUESDAY, 60, 30)
        assert slots == ["22:00", "23:00", "00:00", "01:00"]

    def test_closed_day_has_no_slots(self):
        assert get_available_reservation_times(AvailabilityConfig(), TUESDAY) == []

    def test_within_operating_hours_ignores_grace(self):
        config = every_day()
        assert is_within_operating_hours(config, at("21:55")) is True
        assert is_within_operating_hours(config, at("22:30")) is False
