"""Tests for the wait and prep time estimator."""

from datetime import timedelta

from sqlalchemy.orm import Session

from conftest import NOW
from tableready.models.analytics import OrderAnalytics, VenueCapacitySnapshot, WaitlistAnalytics
from tableready.models.venue import Venue
from tableready.models.waitlist import WaitlistEntry
from tableready.services.wait_time import (
    WaitTimeService,
    calculate_prep_estimate,
    calculate_wait_estimate,
    complexity_multiplier,
    confidence_level,
    confidence_score,
    load_multiplier,
    party_size_factor,
)
from tableready.services.waitlist_service import WaitlistService


def add_history(db: Session, venue: Venue, minutes: int, count: int, party_size: int = 2, **overrides):
    for i in range(count):
        row = dict(
            venue_id=venue.id,
            waitlist_entry_id=f"hist-{party_size}-{minutes}-{i}-{overrides.get('hour_of_day', NOW.hour)}",
            joined_at=NOW - timedelta(days=7),
            quoted_wait_time=minutes,
            actual_wait_time=minutes,
            day_of_week=NOW.weekday(),
            hour_of_day=NOW.hour,
            party_size=party_size,
        )
        row.update(overrides)
        db.add(WaitlistAnalytics(**row))
    db.commit()


class TestConfidence:
    """Tests for confidence scoring."""

    def test_score_scales_to_thirty_samples(self):
        assert confidence_score(0) == 0
        assert confidence_score(15) == 50
        assert confidence_score(30) == 100
        assert confidence_score(90) == 100

    def test_levels(self):
        assert confidence_level(100) == "high"
        assert confidence_level(85) == "high"
        assert confidence_level(84) == "medium"
        assert confidence_level(60) == "medium"
        assert confidence_level(59) == "low"


class TestMultipliers:
    """Tests for the estimator's step functions."""

    def test_party_size_factor(self):
        assert party_size_factor(2) == 1.0
        assert party_size_factor(4) == 1.1
        assert party_size_factor(6) == 1.2

    def test_load_multiplier(self):
        assert load_multiplier(3) == 1.0
        assert load_multiplier(4) == 1.3
        assert load_multiplier(8) == 1.6

    def test_complexity_multiplier(self):
        assert complexity_multiplier(3) == 1.0
        assert complexity_multiplier(4) == 1.1
        assert complexity_multiplier(6) == 1.2


class TestWaitEstimate:
    """Tests for calculate_wait_estimate."""

    def test_default_baseline(self):
        estimate = calculate_wait_estimate(None, 0, queue_length=2, party_size=2)
        assert estimate.estimated_minutes == 30
        assert estimate.is_default is True
        assert estimate.reliable is False
        assert estimate.confidence_level == "low"
        assert estimate.breakdown["position_factor"] == 10

    def test_party_factor_rounds_up(self):
        assert calculate_wait_estimate(None, 0, queue_length=0, party_size=4).estimated_minutes == 22
        assert calculate_wait_estimate(None, 0, queue_length=1, party_size=4).estimated_minutes == 28
        assert calculate_wait_estimate(None, 0, queue_length=0, party_size=6).estimated_minutes == 24

    def test_busy_surcharge(self):
        estimate = calculate_wait_estimate(None, 0, queue_length=2, party_size=2, is_busy=True)
        assert estimate.breakdown["capacity_factor"] == 5
        assert estimate.estimated_minutes == 35

    def test_historical_average(self):
        estimate = calculate_wait_estimate(12.5, 30, queue_length=0, party_size=2)
        assert estimate.estimated_minutes == 13
        assert estimate.is_default is False
        assert estimate.reliable is True
        assert estimate.confidence_level == "high"


class TestPrepEstimate:
    """Tests for calculate_prep_estimate."""

    def test_default_baseline(self):
        estimate = calculate_prep_estimate(None, 0, current_load=0, items_count=1)
        assert estimate.estimated_minutes == 15
        assert estimate.is_default is True

    def test_load_then_complexity(self):
        estimate = calculate_prep_estimate(None, 0, current_load=5, items_count=4)
        # 15 * 1.3 = 19.5 -> 20, then 20 * 1.1 = 22
        assert estimate.estimated_minutes == 22
        assert estimate.breakdown["load_multiplier"] == 1.3
        assert estimate.breakdown["complexity_multiplier"] == 1.1


class TestWaitTimeService:
    """Tests for WaitTimeService against the database."""

    def test_uses_matching_history_bucket(self, db_session: Session, venue: Venue):
        add_history(db_session, venue, minutes=10, count=15)
        estimate = WaitTimeService(db_session).estimate_waitlist(venue, 2, NOW)
        assert estimate.estimated_minutes == 10
        assert estimate.data_points == 15
        assert estimate.confidence_score == 50
        assert estimate.confidence_level == "low"

    def test_ignores_rows_outside_bucket(self, db_session: Session, venue: Venue):
        add_history(db_session, venue, minutes=90, count=3, party_size=8)
        add_history(db_session, venue, minutes=90, count=3, hour_of_day=NOW.hour + 5)
        add_history(db_session, venue, minutes=90, count=3, party_size=3, joined_at=NOW - timedelta(days=45))

        estimate = WaitTimeService(db_session).estimate_waitlist(venue, 2, NOW)
        assert estimate.is_default is True
        assert estimate.data_points == 0
        assert estimate.estimated_minutes == 20

    def test_adjacent_party_sizes_count(self, db_session: Session, venue: Venue):
        add_history(db_session, venue, minutes=16, count=2, party_size=3)
        estimate = WaitTimeService(db_session).estimate_waitlist(venue, 2, NOW)
        assert estimate.data_points == 2
        assert estimate.estimated_minutes == 16

    def test_queue_length_adds_five_minutes_per_party(self, db_session: Session, venue: Venue):
        service = WaitlistService(db_session)
        service.join_waitlist(venue.id, "First", 2, NOW)
        service.join_waitlist(venue.id, "Second", 2, NOW)

        estimate = WaitTimeService(db_session).estimate_waitlist(venue, 2, NOW)
        assert estimate.estimated_minutes == 30

    def test_capacity_status_without_snapshots(self, db_session: Session, venue: Venue):
        service = WaitlistService(db_session)
        for i in range(9):
            service.join_waitlist(venue.id, f"Party {i}", 2, NOW)

        status = WaitTimeService(db_session).get_capacity_status(venue, NOW)
        assert status["current_load"] == 9
        assert status["baseline"] == 10
        assert status["is_busy"] is True

    def test_capacity_status_against_snapshots(self, db_session: Session, venue: Venue):
        db_session.add(VenueCapacitySnapshot(
            venue_id=venue.id,
            snapshot_time=NOW - timedelta(days=7),
            current_waitlist=20,
            day_of_week=NOW.weekday(),
            hour_of_day=NOW.hour,
        ))
        db_session.commit()
        WaitlistService(db_session).join_waitlist(venue.id, "Solo", 1, NOW)

        status = WaitTimeService(db_session).get_capacity_status(venue, NOW)
        assert status["capacity_pct"] == 5.0
        assert status["is_busy"] is False

    def test_join_records_quote(self, db_session: Session, venue: Venue):
        entry = WaitlistService(db_session).join_waitlist(venue.id, "Quoted", 2, NOW)
        row = db_session.query(WaitlistAnalytics).filter_by(waitlist_entry_id=entry.id).one()
        assert row.quoted_wait_time == 20
        assert row.actual_wait_time is None

    def test_ready_records_actual_wait(self, db_session: Session, venue: Venue):
        service = WaitlistService(db_session)
        entry = service.join_waitlist(venue.id, "Measured", 2, NOW)
        service.mark_ready(entry.id, NOW + timedelta(minutes=17))

        row = db_session.query(WaitlistAnalytics).filter_by(waitlist_entry_id=entry.id).one()
        assert row.actual_wait_time == 17

    def test_recorded_orders_feed_prep_estimate(self, db_session: Session, venue: Venue):
        service = WaitTimeService(db_session)
        service.record_order(venue, NOW - timedelta(days=7, minutes=12), NOW - timedelta(days=7), 2)
        service.record_order(venue, NOW - timedelta(days=7, minutes=8), NOW - timedelta(days=7), 2)

        assert db_session.query(OrderAnalytics).count() == 2
        estimate = service.estimate_prep(venue, items_count=1, current_load=0, now=NOW)
        assert estimate.estimated_minutes == 10
        assert estimate.data_points == 2

    def test_capacity_snapshot_counts_active_entries(self, db_session: Session, venue: Venue):
        WaitlistService(db_session).join_waitlist(venue.id, "Snap", 2, NOW)
        service = WaitTimeService(db_session)
        snapshot = service.take_capacity_snapshot(venue, NOW)
        db_session.commit()

        assert snapshot.current_waitlist == 1
        assert db_session.query(WaitlistEntry).count() == 1
