"""Wait and prep time estimation from historical aggregates and live load."""

import logging
import math
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select, func, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tableready.core.config import settings
from tableready.core.timeutils import minutes_between, to_utc_naive, to_venue_local
from tableready.models.analytics import OrderAnalytics, VenueCapacitySnapshot, WaitlistAnalytics
from tableready.models.venue import Venue
from tableready.models.waitlist import (
    ACTIVE_STATUSES,
    ReservationType,
    WaitlistEntry,
    WaitlistStatus,
)

logger = logging.getLogger(__name__)

MINUTES_PER_QUEUE_POSITION = 5
BUSY_SURCHARGE = 0.15
HOUR_WINDOW = 2
PARTY_SIZE_WINDOW = 1
BASELINE_LOAD_WITHOUT_SNAPSHOTS = 10


@dataclass
class WaitEstimate:
    estimated_minutes: int
    confidence_score: int
    confidence_level: str
    data_points: int
    is_default: bool
    reliable: bool
    breakdown: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _ceil(value: float) -> int:
    # 20 * 1.1 is 22.000000000000004 in binary floating point
    return math.ceil(round(value, 6))


def confidence_score(data_points: int) -> int:
    return min(100, round(data_points / settings.min_confidence_data_points * 100))


def confidence_level(score: int) -> str:
    if score >= 85:
        return "high"
    if score >= 60:
        return "medium"
    return "low"


def party_size_factor(party_size: int) -> float:
    if party_size >= 6:
        return 1.2
    if party_size >= 4:
        return 1.1
    return 1.0


def load_multiplier(current_load: int) -> float:
    if current_load <= 3:
        return 1.0
    if current_load <= 7:
        return 1.3
    return 1.6


def complexity_multiplier(items_count: int) -> float:
    if items_count > 5:
        return 1.2
    if items_count > 3:
        return 1.1
    return 1.0


def _estimate(minutes: int, data_points: int, historical_average: Optional[float], breakdown: Dict[str, Any]) -> WaitEstimate:
    score = confidence_score(data_points)
    return WaitEstimate(
        estimated_minutes=minutes,
        confidence_score=score,
        confidence_level=confidence_level(score),
        data_points=data_points,
        is_default=historical_average is None,
        reliable=data_points >= settings.min_confidence_data_points,
        breakdown=breakdown,
    )


def calculate_wait_estimate(
    historical_average: Optional[float],
    data_points: int,
    queue_length: int,
    party_size: int,
    is_busy: bool = False,
    default_minutes: Optional[int] = None,
) -> WaitEstimate:
    """Walk-in wait: (baseline + 5 min per party ahead) × party factor, +15% when busy."""
    base = historical_average if historical_average is not None else (
        default_minutes or settings.default_wait_minutes
    )
    position_factor = queue_length * MINUTES_PER_QUEUE_POSITION
    party_factor = party_size_factor(party_size)

    estimated = _ceil((base + position_factor) * party_factor)
    capacity_factor = _ceil(estimated * BUSY_SURCHARGE) if is_busy else 0
    estimated += capacity_factor

    return _estimate(estimated, data_points, historical_average, {
        "historical_average": round(base, 1),
        "position_factor": position_factor,
        "capacity_factor": capacity_factor,
        "party_size_factor": party_factor,
        "data_points": data_points,
    })


def calculate_prep_estimate(
    historical_average: Optional[float],
    data_points: int,
    current_load: int,
    items_count: int,
    default_minutes: Optional[int] = None,
) -> WaitEstimate:
    """Order prep: baseline × load multiplier, then × complexity multiplier."""
    base = historical_average if historical_average is not None else (
        default_minutes or settings.default_prep_minutes
    )
    load = load_multiplier(current_load)
    complexity = complexity_multiplier(items_count)

    estimated = _ceil(base * load)
    final = _ceil(estimated * complexity)

    return _estimate(final, data_points, historical_average, {
        "historical_average": round(base, 1),
        "load_multiplier": load,
        "complexity_multiplier": complexity,
        "current_load": current_load,
        "items_count": items_count,
        "data_points": data_points,
    })


class WaitTimeService:
    """Reads historical buckets and live load for a venue and records analytics."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Historical buckets
    # ------------------------------------------------------------------

    def _bucket(self, venue: Venue, now: datetime) -> Tuple[int, int, datetime]:
        local = to_venue_local(now, venue.timezone)
        since = to_utc_naive(now) - timedelta(days=settings.history_window_days)
        return local.weekday(), local.hour, since

    def get_waitlist_history(self, venue: Venue, party_size: int, now: datetime) -> Tuple[Optional[float], int]:
        """Average actual wait and sample count for the matching bucket."""
        day_of_week, hour, since = self._bucket(venue, now)
        query = select(
            func.avg(WaitlistAnalytics.actual_wait_time),
            func.count(WaitlistAnalytics.id),
        ).where(
            and_(
                WaitlistAnalytics.venue_id == venue.id,
                WaitlistAnalytics.day_of_week == day_of_week,
                WaitlistAnalytics.hour_of_day.between(hour - HOUR_WINDOW, hour + HOUR_WINDOW),
                WaitlistAnalytics.party_size.between(party_size - PARTY_SIZE_WINDOW, party_size + PARTY_SIZE_WINDOW),
                WaitlistAnalytics.joined_at >= since,
                WaitlistAnalytics.actual_wait_time.isnot(None),
            )
        )
        avg, count = self.db.execute(query).one()
        return (float(avg) if avg is not None else None), int(count or 0)

    def get_prep_history(self, venue: Venue, now: datetime) -> Tuple[Optional[float], int]:
        day_of_week, hour, since = self._bucket(venue, now)
        query = select(
            func.avg(OrderAnalytics.actual_prep_time),
            func.count(OrderAnalytics.id),
        ).where(
            and_(
                OrderAnalytics.venue_id == venue.id,
                OrderAnalytics.day_of_week == day_of_week,
                OrderAnalytics.hour_of_day.between(hour - HOUR_WINDOW, hour + HOUR_WINDOW),
                OrderAnalytics.placed_at >= since,
                OrderAnalytics.actual_prep_time.isnot(None),
            )
        )
        avg, count = self.db.execute(query).one()
        return (float(avg) if avg is not None else None), int(count or 0)

    # ------------------------------------------------------------------
    # Live load
    # ------------------------------------------------------------------

    def get_queue_length(self, venue_id: int) -> int:
        return self.db.query(func.count(WaitlistEntry.id)).filter(
            WaitlistEntry.venue_id == venue_id,
            WaitlistEntry.status == WaitlistStatus.WAITING,
            WaitlistEntry.reservation_type == ReservationType.WAITLIST,
        ).scalar() or 0

    def get_active_count(self, venue_id: int) -> int:
        return self.db.query(func.count(WaitlistEntry.id)).filter(
            WaitlistEntry.venue_id == venue_id,
            WaitlistEntry.status.in_(ACTIVE_STATUSES),
        ).scalar() or 0

    def get_capacity_status(self, venue: Venue, now: datetime) -> Dict[str, Any]:
        """Compare live load against the snapshot average for this hour and weekday."""
        local = to_venue_local(now, venue.timezone)
        current_load = self.get_active_count(venue.id)

        baseline = self.db.query(func.avg(VenueCapacitySnapshot.current_waitlist)).filter(
            VenueCapacitySnapshot.venue_id == venue.id,
            VenueCapacitySnapshot.day_of_week == local.weekday(),
            VenueCapacitySnapshot.hour_of_day == local.hour,
        ).scalar()
        baseline = float(baseline) if baseline else BASELINE_LOAD_WITHOUT_SNAPSHOTS

        capacity_pct = current_load / baseline * 100
        return {
            "current_load": current_load,
            "baseline": round(baseline, 1),
            "capacity_pct": round(capacity_pct, 1),
            "is_busy": capacity_pct > settings.busy_threshold_pct,
        }

    # ------------------------------------------------------------------
    # Estimates
    # ------------------------------------------------------------------

    def estimate_waitlist(
        self,
        venue: Venue,
        party_size: int,
        now: datetime,
        queue_length: Optional[int] = None,
    ) -> WaitEstimate:
        """Estimate a walk-in wait. Store failures fall back to the default quote."""
        try:
            if queue_length is None:
                queue_length = self.get_queue_length(venue.id)
            average, data_points = self.get_waitlist_history(venue, party_size, now)
            is_busy = self.get_capacity_status(venue, now)["is_busy"]
        except SQLAlchemyError as e:
            logger.warning(f"Wait history unavailable for venue {venue.id}, using default: {e}")
            self.db.rollback()
            return calculate_wait_estimate(None, 0, queue_length or 0, party_size)

        estimate = calculate_wait_estimate(average, data_points, queue_length, party_size, is_busy)
        logger.debug(
            f"Wait estimate venue={venue.id} party={party_size}: "
            f"{estimate.estimated_minutes}m ({estimate.confidence_level}, n={data_points})"
        )
        return estimate

    def estimate_prep(
        self,
        venue: Venue,
        items_count: int,
        current_load: int,
        now: datetime,
    ) -> WaitEstimate:
        try:
            average, data_points = self.get_prep_history(venue, now)
        except SQLAlchemyError as e:
            logger.warning(f"Prep history unavailable for venue {venue.id}, using default: {e}")
            self.db.rollback()
            average, data_points = None, 0
        return calculate_prep_estimate(
            average, data_points, current_load, items_count, default_minutes=venue.default_prep_time
        )

    # ------------------------------------------------------------------
    # Recording (joined to the caller's transaction, no commit here)
    # ------------------------------------------------------------------

    def record_join(self, entry: WaitlistEntry, venue: Venue) -> WaitlistAnalytics:
        local = to_venue_local(entry.created_at, venue.timezone)
        row = WaitlistAnalytics(
            venue_id=entry.venue_id,
            waitlist_entry_id=entry.id,
            joined_at=entry.created_at,
            quoted_wait_time=round(minutes_between(entry.created_at, entry.eta)),
            day_of_week=local.weekday(),
            hour_of_day=local.hour,
            party_size=entry.party_size,
        )
        self.db.add(row)
        return row

    def _analytics_for(self, entry_ids):
        return self.db.query(WaitlistAnalytics).filter(WaitlistAnalytics.waitlist_entry_id.in_(entry_ids))

    def record_ready(self, entry_ids, ready_at: datetime) -> None:
        for row in self._analytics_for(entry_ids).filter(WaitlistAnalytics.ready_at.is_(None)):
            row.ready_at = ready_at
            row.actual_wait_time = round(minutes_between(row.joined_at, ready_at))

    def record_seated(self, entry_ids, seated_at: datetime) -> None:
        for row in self._analytics_for(entry_ids):
            row.seated_at = seated_at

    def record_no_show(self, entry_ids) -> None:
        for row in self._analytics_for(entry_ids):
            row.was_no_show = True

    def record_order(
        self,
        venue: Venue,
        placed_at: datetime,
        ready_at: datetime,
        items_count: int,
        order_ref: Optional[str] = None,
    ) -> OrderAnalytics:
        """Store one completed order's prep time for future prep estimates."""
        local = to_venue_local(placed_at, venue.timezone)
        row = OrderAnalytics(
            venue_id=venue.id,
            order_ref=order_ref,
            placed_at=to_utc_naive(placed_at),
            ready_at=to_utc_naive(ready_at),
            actual_prep_time=max(0, round(minutes_between(placed_at, ready_at))),
            items_count=items_count,
            day_of_week=local.weekday(),
            hour_of_day=local.hour,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def take_capacity_snapshot(self, venue: Venue, now: datetime, source: str = "scheduler") -> VenueCapacitySnapshot:
        local = to_venue_local(now, venue.timezone)
        occupied = self.db.query(func.count(func.distinct(WaitlistEntry.assigned_table_id))).filter(
            WaitlistEntry.venue_id == venue.id,
            WaitlistEntry.status == WaitlistStatus.SEATED,
            WaitlistEntry.assigned_table_id.isnot(None),
            WaitlistEntry.seated_at >= to_utc_naive(now) - timedelta(hours=2),
        ).scalar() or 0
        snapshot = VenueCapacitySnapshot(
            venue_id=venue.id,
            snapshot_time=to_utc_naive(now),
            current_orders=0,
            current_waitlist=self.get_active_count(venue.id),
            tables_occupied=occupied,
            day_of_week=local.weekday(),
            hour_of_day=local.hour,
            source=source,
        )
        self.db.add(snapshot)
        return snapshot


def run_capacity_snapshots() -> Dict[str, Any]:
    """Standalone function to snapshot every venue's load (called from background scheduler)."""
    from tableready.core.timeutils import utc_now
    from tableready.db.session import SessionLocal

    db = SessionLocal()
    results = {"snapshots": 0, "errors": []}
    try:
        service = WaitTimeService(db)
        now = utc_now()
        for venue in db.query(Venue).all():
            service.take_capacity_snapshot(venue, now)
            results["snapshots"] += 1
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        results["errors"].append(str(e))
        logger.error(f"Capacity snapshot failed: {e}", exc_info=True)
    finally:
        db.close()
    return results
