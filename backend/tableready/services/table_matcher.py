"""Table matching: single-table best fit, multi-table combinations, forward probing.

The search functions are pure and work on ``TableConfig`` values plus a set of
occupied table ids. ``TableAssignmentService`` supplies occupancy from the
store and performs the post-commit confirmation of an assignment.
"""

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set

from sqlalchemy.orm import Session

from tableready.core.config import settings
from tableready.core.exceptions import (
    NoTableConfiguration,
    PartyTooLarge,
    ResourceUnavailable,
)
from tableready.core.timeutils import to_utc_naive
from tableready.models.venue import VenueTable
from tableready.models.waitlist import ACTIVE_STATUSES, ReservationType, WaitlistEntry

logger = logging.getLogger(__name__)

LOW_UTILIZATION_PCT = 50


@dataclass(frozen=True)
class TableConfig:
    id: str
    name: str
    capacity: int


@dataclass
class TableMatch:
    """Outcome of a match. ``available=False`` is a normal business answer."""
    available: bool
    party_size: int
    tables: List[TableConfig] = field(default_factory=list)
    utilization: Optional[int] = None
    warning: Optional[str] = None
    message: Optional[str] = None
    next_available_offset_minutes: Optional[int] = None
    next_available_time: Optional[datetime] = None
    search_budget_exceeded: bool = False

    @property
    def table_ids(self) -> List[str]:
        return [t.id for t in self.tables]

    @property
    def total_capacity(self) -> int:
        return sum(t.capacity for t in self.tables)

    @property
    def requires_multiple_tables(self) -> bool:
        return len(self.tables) > 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "available": self.available,
            "requires_multiple_tables": self.requires_multiple_tables,
            "table_ids": self.table_ids,
            "tables": [{"id": t.id, "name": t.name, "capacity": t.capacity} for t in self.tables],
            "total_capacity": self.total_capacity,
            "utilization": self.utilization,
            "warning": self.warning,
            "message": self.message,
            "next_available_offset_minutes": self.next_available_offset_minutes,
            "next_available_time": self.next_available_time,
            "search_budget_exceeded": self.search_budget_exceeded,
        }


def _free(tables: Iterable[TableConfig], occupied: Set[str]) -> List[TableConfig]:
    return sorted((t for t in tables if t.id not in occupied), key=lambda t: t.id)


def find_single_table(
    tables: Sequence[TableConfig],
    party_size: int,
    occupied: Set[str] = frozenset(),
) -> Optional[TableConfig]:
    """Smallest unoccupied table that seats the party; ties go to the lowest id."""
    fitting = [t for t in _free(tables, occupied) if t.capacity >= party_size]
    if not fitting:
        return None
    return min(fitting, key=lambda t: (t.capacity, t.id))


def find_table_combination(
    tables: Sequence[TableConfig],
    party_size: int,
    occupied: Set[str] = frozenset(),
    max_tables: Optional[int] = None,
) -> Optional[List[TableConfig]]:
    """Exhaustive subset search over unoccupied tables.

    Candidates are ranked by wasted seats, then table count, then table ids.
    Raises ResourceUnavailable when the number of free tables exceeds
    ``max_tables``: no answer within the search budget is not proof that
    none exists.
    """
    free = _free(tables, occupied)
    ceiling = max_tables or settings.max_combination_tables
    if len(free) > ceiling:
        raise ResourceUnavailable(
            f"{len(free)} free tables exceed the combination search limit of {ceiling}"
        )
    if sum(t.capacity for t in free) < party_size:
        return None

    best = None
    best_key = None
    for size in range(1, len(free) + 1):
        # a zero-waste answer cannot be beaten by more tables
        if best_key is not None and best_key[0] == 0:
            break
        for combo in itertools.combinations(free, size):
            capacity = sum(t.capacity for t in combo)
            if capacity < party_size:
                continue
            key = (capacity - party_size, size, tuple(t.id for t in combo))
            if best_key is None or key < best_key:
                best_key = key
                best = list(combo)
    return best


def _match_at(
    tables: Sequence[TableConfig],
    party_size: int,
    occupied: Set[str],
    max_tables: Optional[int],
) -> TableMatch:
    single = find_single_table(tables, party_size, occupied)
    if single:
        utilization = round(party_size / single.capacity * 100)
        warning = None
        if utilization < LOW_UTILIZATION_PCT:
            warning = f"Using {single.capacity}-seat table for party of {party_size}"
        return TableMatch(
            available=True,
            party_size=party_size,
            tables=[single],
            utilization=utilization,
            warning=warning,
        )

    try:
        combo = find_table_combination(tables, party_size, occupied, max_tables)
    except ResourceUnavailable as e:
        logger.warning(f"Table combination search skipped: {e}")
        return TableMatch(
            available=False,
            party_size=party_size,
            search_budget_exceeded=True,
            message=f"No tables available for party of {party_size} at this time",
        )

    if combo:
        return TableMatch(
            available=True,
            party_size=party_size,
            tables=combo,
            utilization=round(party_size / sum(t.capacity for t in combo) * 100),
            message=f"Your party of {party_size} requires {len(combo)} tables",
        )
    return TableMatch(
        available=False,
        party_size=party_size,
        message=f"No tables available for party of {party_size} at this time",
    )


def match_tables(
    tables: Sequence[TableConfig],
    party_size: int,
    occupied_at: Callable[[int], Set[str]],
    probe_offsets: Optional[Sequence[int]] = None,
    max_tables: Optional[int] = None,
) -> TableMatch:
    """Find seating for a party, probing later offsets when nothing fits now.

    ``occupied_at(offset_minutes)`` returns the occupied table ids for the
    requested time shifted by that offset.
    """
    if not tables:
        raise NoTableConfiguration()
    total_capacity = sum(t.capacity for t in tables)
    if party_size > total_capacity:
        raise PartyTooLarge(party_size, total_capacity)

    result = _match_at(tables, party_size, occupied_at(0), max_tables)
    if result.available:
        return result

    offsets = settings.probe_offsets_minutes if probe_offsets is None else probe_offsets
    for offset in offsets:
        probe = _match_at(tables, party_size, occupied_at(offset), max_tables)
        if probe.available:
            result.next_available_offset_minutes = offset
            result.message = (
                f"No tables available for party of {party_size} at this time. "
                f"Next available in {offset} minutes"
            )
            return result

    result.message = f"No tables available for party of {party_size} in the next {offsets[-1] if offsets else 0} minutes"
    return result


class TableAssignmentService:
    """Occupancy reads and reserve-then-confirm checks against the store."""

    def __init__(self, db: Session):
        self.db = db

    def get_tables(self, venue_id: int) -> List[TableConfig]:
        rows = self.db.query(VenueTable).filter(VenueTable.venue_id == venue_id).order_by(VenueTable.id).all()
        return [row.to_config() for row in rows]

    def _occupying_entries(self, venue_id: int, at: datetime, table_ids: Optional[Iterable[str]] = None):
        at = to_utc_naive(at)
        buffer = timedelta(minutes=settings.table_buffer_minutes)
        query = self.db.query(WaitlistEntry).filter(
            WaitlistEntry.venue_id == venue_id,
            WaitlistEntry.reservation_type == ReservationType.RESERVATION,
            WaitlistEntry.status.in_(ACTIVE_STATUSES),
            WaitlistEntry.assigned_table_id.isnot(None),
            WaitlistEntry.reservation_time >= at - buffer,
            WaitlistEntry.reservation_time <= at + buffer,
        )
        if table_ids is not None:
            query = query.filter(WaitlistEntry.assigned_table_id.in_(list(table_ids)))
        return query

    def occupied_table_ids(self, venue_id: int, at: datetime, exclude_entry_ids: Iterable[str] = ()) -> Set[str]:
        query = self._occupying_entries(venue_id, at)
        exclude = list(exclude_entry_ids)
        if exclude:
            query = query.filter(WaitlistEntry.id.notin_(exclude))
        return {entry.assigned_table_id for entry in query.all()}

    def find_tables(
        self,
        venue_id: int,
        party_size: int,
        reservation_time: datetime,
        exclude_entry_ids: Iterable[str] = (),
    ) -> TableMatch:
        tables = self.get_tables(venue_id)
        if not tables:
            raise NoTableConfiguration(venue_id)
        exclude = list(exclude_entry_ids)
        at = to_utc_naive(reservation_time)

        def occupied_at(offset: int) -> Set[str]:
            return self.occupied_table_ids(venue_id, at + timedelta(minutes=offset), exclude)

        result = match_tables(tables, party_size, occupied_at)
        if result.next_available_offset_minutes is not None:
            result.next_available_time = at + timedelta(minutes=result.next_available_offset_minutes)
        logger.info(
            f"Table match venue={venue_id} party={party_size} at={at.isoformat()}: "
            f"available={result.available} tables={result.table_ids}"
        )
        return result

    def find_conflicts(self, venue_id: int, entries: Sequence[WaitlistEntry]) -> List[WaitlistEntry]:
        """Other active reservations holding any of *entries*' tables in the same window.

        Run after *entries* are committed. Any hit means a concurrent booking
        matched the same table; the caller backs out whichever side it is on.
        """
        own_ids = [e.id for e in entries]
        conflicts = []
        for entry in entries:
            if not entry.assigned_table_id or entry.reservation_time is None:
                continue
            conflicts.extend(
                self._occupying_entries(venue_id, entry.reservation_time, [entry.assigned_table_id])
                .filter(WaitlistEntry.id.notin_(own_ids))
                .all()
            )
        return conflicts
