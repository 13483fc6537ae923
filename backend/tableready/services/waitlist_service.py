"""Waitlist and reservation lifecycle.

An entry moves ``waiting → ready → seated``; ``cancelled`` and ``no_show`` are
reachable from any non-terminal status and nothing leaves a terminal status.

Every mutation is applied as a conditioned UPDATE (entry ids plus the statuses
the caller observed, or the observed ``version`` when the status does not
change). A row count mismatch means another actor got there first: the session
is rolled back, state is re-read and the operation is retried once before a
``ConcurrencyConflict`` is surfaced. All operations take ``now`` explicitly.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select, update, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tableready.core.config import settings
from tableready.core.exceptions import (
    ConcurrencyConflict,
    DuplicateBooking,
    ExtensionLimitExceeded,
    InvalidTransition,
    NotFound,
    PolicyViolation,
    TableReadyError,
    ValidationError,
)
from tableready.core.timeutils import from_venue_local, to_utc_naive, to_venue_local
from tableready.models.waitlist import (
    ACTIVE_STATUSES,
    CancelledBy,
    ReservationType,
    WaitlistEntry,
    WaitlistStatus,
)
from tableready.services.table_matcher import TableAssignmentService, TableMatch
from tableready.services.venue_service import VenueService
from tableready.services.wait_time import WaitTimeService

logger = logging.getLogger(__name__)

VALID_TRANSITIONS = {
    WaitlistStatus.WAITING: {WaitlistStatus.READY, WaitlistStatus.CANCELLED, WaitlistStatus.NO_SHOW},
    WaitlistStatus.READY: {WaitlistStatus.SEATED, WaitlistStatus.CANCELLED, WaitlistStatus.NO_SHOW},
    WaitlistStatus.SEATED: set(),
    WaitlistStatus.CANCELLED: set(),
    WaitlistStatus.NO_SHOW: set(),
}

TABLE_CONFLICT_REASON = "Table assignment conflict - table was booked by a concurrent reservation"
MAX_NAME_LENGTH = 200


def can_transition(current: WaitlistStatus, target: WaitlistStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, set())


def queue_sort_key(entry: WaitlistEntry):
    """Awaiting staff confirmation first, then ready, then join order."""
    return (
        not entry.awaiting_merchant_confirmation,
        entry.status != WaitlistStatus.READY,
        entry.created_at,
        entry.id,
    )


def is_visible_to_staff(entry: WaitlistEntry) -> bool:
    """Staff board filter: active entries plus unacknowledged patron cancels."""
    if entry.status == WaitlistStatus.CANCELLED:
        return entry.needs_acknowledgement
    return entry.status in ACTIVE_STATUSES and not entry.merchant_acknowledged


@dataclass
class ReservationResult:
    """Entries created for a reservation, or the unavailable match that prevented it."""
    created: bool
    match: TableMatch
    entries: List[WaitlistEntry] = field(default_factory=list)

    @property
    def linked_reservation_id(self) -> Optional[str]:
        return self.entries[0].linked_reservation_id if self.entries else None


class WaitlistService:
    """Owns every status change of a waitlist entry."""

    def __init__(self, db: Session):
        self.db = db
        self.venues = VenueService(db)
        self.estimator = WaitTimeService(db)
        self.tables = TableAssignmentService(db)

    # ------------------------------------------------------------------
    # Lookups and guards
    # ------------------------------------------------------------------

    def get_entry(self, entry_id: str) -> WaitlistEntry:
        entry = self.db.query(WaitlistEntry).filter(WaitlistEntry.id == entry_id).first()
        if not entry:
            raise NotFound("Waitlist entry", entry_id)
        return entry

    def _linked_group(self, entry: WaitlistEntry) -> List[WaitlistEntry]:
        if not entry.linked_reservation_id:
            return [entry]
        return self.db.query(WaitlistEntry).filter(
            WaitlistEntry.linked_reservation_id == entry.linked_reservation_id
        ).order_by(WaitlistEntry.id).all()

    @staticmethod
    def _require_reason(reason: Optional[str], what: str) -> str:
        cleaned = (reason or "").strip()
        if not cleaned:
            raise ValidationError(f"A reason is required to {what}")
        return cleaned

    @staticmethod
    def _check_transition(entry: WaitlistEntry, target: WaitlistStatus, action: str) -> None:
        if not can_transition(entry.status, target):
            raise InvalidTransition(entry.id, entry.status.value, action)

    @staticmethod
    def _validate_party(customer_name: str, party_size: int) -> str:
        name = (customer_name or "").strip()
        if not name:
            raise ValidationError("Customer name is required")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Customer name must be at most {MAX_NAME_LENGTH} characters")
        if party_size is None or party_size < 1:
            raise ValidationError("Party size must be at least 1")
        return name

    @staticmethod
    def _clean_preferences(preferences: Optional[Iterable[str]]) -> List[str]:
        return sorted({p.strip() for p in (preferences or []) if p and p.strip()})

    # ------------------------------------------------------------------
    # Conditioned writes
    # ------------------------------------------------------------------

    def _conditioned_update(
        self,
        entry_ids: Sequence[str],
        expected_statuses: Sequence[WaitlistStatus],
        values: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> None:
        """UPDATE the rows only if they still hold an expected status (and version)."""
        stmt = update(WaitlistEntry).where(
            WaitlistEntry.id.in_(list(entry_ids)),
            WaitlistEntry.status.in_(list(expected_statuses)),
        )
        if expected_version is not None:
            stmt = stmt.where(WaitlistEntry.version == expected_version)
        stmt = stmt.values(version=WaitlistEntry.next_version(), **values).execution_options(
            synchronize_session=False
        )

        result = self.db.execute(stmt)
        if result.rowcount != len(entry_ids):
            self.db.rollback()
            raise ConcurrencyConflict(
                f"Expected to update {len(entry_ids)} entries, updated {result.rowcount}"
            )

    def _with_retry(self, action: str, operation: Callable[[], Any]) -> Any:
        """Run *operation*; on a lost race re-read and retry once."""
        try:
            return operation()
        except ConcurrencyConflict as e:
            logger.info(f"{action}: optimistic update lost ({e}), re-reading and retrying")
            self.db.rollback()
            self.db.expire_all()
        except TableReadyError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{action} failed: {e}", exc_info=True)
            raise

        try:
            return operation()
        except ConcurrencyConflict as e:
            self.db.rollback()
            logger.warning(f"{action}: repeated concurrency conflict: {e}")
            raise ConcurrencyConflict() from e
        except TableReadyError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{action} failed on retry: {e}", exc_info=True)
            raise

    def recalculate_positions(self, venue_id: int) -> None:
        """Rank waiting walk-ins 1..n by join time; everyone else has no position."""
        waiting_ids = self.db.execute(
            select(WaitlistEntry.id).where(
                WaitlistEntry.venue_id == venue_id,
                WaitlistEntry.status == WaitlistStatus.WAITING,
                WaitlistEntry.reservation_type == ReservationType.WAITLIST,
            ).order_by(WaitlistEntry.created_at, WaitlistEntry.id)
        ).scalars().all()

        self.db.execute(
            update(WaitlistEntry).where(
                WaitlistEntry.venue_id == venue_id,
                WaitlistEntry.position.isnot(None),
                or_(
                    WaitlistEntry.status != WaitlistStatus.WAITING,
                    WaitlistEntry.reservation_type != ReservationType.WAITLIST,
                ),
            ).values(position=None).execution_options(synchronize_session=False)
        )
        if waiting_ids:
            self.db.execute(
                update(WaitlistEntry),
                [{"id": entry_id, "position": rank} for rank, entry_id in enumerate(waiting_ids, start=1)],
            )

    def _finish(self, venue_id: int) -> None:
        self.db.flush()
        self.recalculate_positions(venue_id)
        self.db.commit()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def join_waitlist(
        self,
        venue_id: int,
        customer_name: str,
        party_size: int,
        now: datetime,
        preferences: Optional[Iterable[str]] = None,
        customer_phone: Optional[str] = None,
        user_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> WaitlistEntry:
        """Add a walk-in party. The venue must accept waitlist joins at *now*."""
        now = to_utc_naive(now)
        name = self._validate_party(customer_name, party_size)
        venue = self.venues.get_venue(venue_id)
        self.venues.require_open(venue, "waitlist", now)

        estimate = self.estimator.estimate_waitlist(venue, party_size, now)
        eta = now + timedelta(minutes=estimate.estimated_minutes)

        try:
            entry = WaitlistEntry(
                venue_id=venue.id,
                customer_name=name,
                customer_phone=customer_phone,
                user_id=user_id,
                party_size=party_size,
                preferences=self._clean_preferences(preferences),
                reservation_type=ReservationType.WAITLIST,
                created_at=now,
                updated_at=now,
                eta=eta,
                original_eta=eta,
                status=WaitlistStatus.WAITING,
                confidence=estimate.confidence_level,
                notes=notes,
            )
            self.db.add(entry)
            self.db.flush()
            self.estimator.record_join(entry, venue)
            self._finish(venue.id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to add party to waitlist for venue {venue_id}: {e}", exc_info=True)
            raise

        self.db.refresh(entry)
        logger.info(
            f"Entry {entry.id} joined waitlist at venue {venue.id}: party of {party_size}, "
            f"quoted {estimate.estimated_minutes}m, position {entry.position}"
        )
        return entry

    def _find_duplicate(
        self,
        venue_id: int,
        reservation_time: datetime,
        user_id: Optional[str],
        customer_phone: Optional[str],
    ) -> Optional[WaitlistEntry]:
        identity = []
        if user_id:
            identity.append(WaitlistEntry.user_id == user_id)
        if customer_phone:
            identity.append(WaitlistEntry.customer_phone == customer_phone)
        if not identity:
            return None
        window = timedelta(minutes=settings.duplicate_booking_window_minutes)
        return self.db.query(WaitlistEntry).filter(
            WaitlistEntry.venue_id == venue_id,
            WaitlistEntry.reservation_type == ReservationType.RESERVATION,
            WaitlistEntry.status.in_(ACTIVE_STATUSES),
            WaitlistEntry.reservation_time >= reservation_time - window,
            WaitlistEntry.reservation_time <= reservation_time + window,
            or_(*identity),
        ).first()

    def create_reservation(
        self,
        venue_id: int,
        customer_name: str,
        party_size: int,
        reservation_time: datetime,
        now: datetime,
        preferences: Optional[Iterable[str]] = None,
        customer_phone: Optional[str] = None,
        user_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ReservationResult:
        """Book a future slot and assign table(s).

        A party that needs several tables gets one entry per table, all sharing
        a ``linked_reservation_id``. When no table fits, nothing is created and
        the returned match carries the next available offset, if any.
        """
        now = to_utc_naive(now)
        reservation_time = to_utc_naive(reservation_time)
        name = self._validate_party(customer_name, party_size)
        if reservation_time <= now:
            raise ValidationError("Reservation time must be in the future")

        venue = self.venues.get_venue(venue_id)
        self.venues.require_open(venue, "reservation", reservation_time)

        duplicate = self._find_duplicate(venue.id, reservation_time, user_id, customer_phone)
        if duplicate:
            raise DuplicateBooking(duplicate.id)

        preferences = self._clean_preferences(preferences)

        def attempt() -> ReservationResult:
            match = self.tables.find_tables(venue.id, party_size, reservation_time)
            if not match.available:
                return ReservationResult(created=False, match=match)

            link_id = str(uuid.uuid4()) if match.requires_multiple_tables else None
            entries = [
                WaitlistEntry(
                    venue_id=venue.id,
                    customer_name=name,
                    customer_phone=customer_phone,
                    user_id=user_id,
                    party_size=party_size,
                    preferences=preferences,
                    reservation_type=ReservationType.RESERVATION,
                    reservation_time=reservation_time,
                    created_at=now,
                    updated_at=now,
                    eta=reservation_time,
                    original_eta=reservation_time,
                    status=WaitlistStatus.WAITING,
                    assigned_table_id=table.id,
                    linked_reservation_id=link_id,
                    notes=notes,
                )
                for table in match.tables
            ]
            self.db.add_all(entries)
            self.db.flush()
            for entry in entries:
                self.estimator.record_join(entry, venue)
            self.db.commit()

            # Reserve-then-confirm: whoever sees a clash after committing backs out.
            conflicts = self.tables.find_conflicts(venue.id, entries)
            if conflicts:
                ids = [e.id for e in entries]
                logger.warning(
                    f"Reservation {ids} lost tables {sorted({c.assigned_table_id for c in conflicts})} "
                    f"to a concurrent booking"
                )
                self.db.execute(
                    update(WaitlistEntry).where(WaitlistEntry.id.in_(ids)).values(
                        status=WaitlistStatus.CANCELLED,
                        cancellation_reason=TABLE_CONFLICT_REASON,
                        cancelled_by=CancelledBy.SYSTEM,
                        merchant_acknowledged=True,
                        updated_at=now,
                        version=WaitlistEntry.next_version(),
                    ).execution_options(synchronize_session=False)
                )
                self.db.commit()
                raise ConcurrencyConflict("The selected table was just booked, please retry")

            return ReservationResult(created=True, match=match, entries=entries)

        result = self._with_retry("create_reservation", attempt)
        if result.created:
            for entry in result.entries:
                self.db.refresh(entry)
            logger.info(
                f"Reservation for party of {party_size} at venue {venue.id} "
                f"on {reservation_time.isoformat()}: tables {result.match.table_ids}"
            )
        return result

    # ------------------------------------------------------------------
    # Staff transitions
    # ------------------------------------------------------------------

    def mark_ready(self, entry_id: str, now: datetime) -> WaitlistEntry:
        """waiting → ready. Starts the arrival window; keeps any arrival claim."""
        now = to_utc_naive(now)

        def apply() -> WaitlistEntry:
            entry = self.get_entry(entry_id)
            self._check_transition(entry, WaitlistStatus.READY, "mark ready")
            ids = [e.id for e in self._linked_group(entry) if e.status == WaitlistStatus.WAITING]
            self._conditioned_update(ids, [WaitlistStatus.WAITING], {
                "status": WaitlistStatus.READY,
                "ready_at": now,
                "ready_deadline": now + timedelta(minutes=settings.ready_grace_minutes),
                "patron_delayed": False,
                "delayed_until": None,
                "updated_at": now,
            })
            self.estimator.record_ready(ids, now)
            self._finish(entry.venue_id)
            return self.get_entry(entry_id)

        entry = self._with_retry("mark_ready", apply)
        logger.info(f"Entry {entry.id} is ready, deadline {entry.ready_deadline.isoformat()}")
        return entry

    def confirm_seating(self, entry_id: str, now: datetime) -> WaitlistEntry:
        """ready → seated."""
        now = to_utc_naive(now)

        def apply() -> WaitlistEntry:
            entry = self.get_entry(entry_id)
            self._check_transition(entry, WaitlistStatus.SEATED, "seat")
            ids = [e.id for e in self._linked_group(entry) if e.status == WaitlistStatus.READY]
            self._conditioned_update(ids, [WaitlistStatus.READY], {
                "status": WaitlistStatus.SEATED,
                "seated_at": now,
                "awaiting_merchant_confirmation": False,
                "ready_deadline": None,
                "updated_at": now,
            })
            self.estimator.record_seated(ids, now)
            self._finish(entry.venue_id)
            return self.get_entry(entry_id)

        entry = self._with_retry("confirm_seating", apply)
        logger.info(f"Entry {entry.id} seated")
        return entry

    def cancel(
        self,
        entry_id: str,
        reason: str,
        now: datetime,
        cancelled_by: CancelledBy = CancelledBy.VENUE,
    ) -> WaitlistEntry:
        """Any non-terminal → cancelled. Linked entries are cancelled together."""
        now = to_utc_naive(now)
        reason = self._require_reason(reason, "cancel")

        def apply() -> WaitlistEntry:
            entry = self.get_entry(entry_id)
            self._check_transition(entry, WaitlistStatus.CANCELLED, "cancel")
            group = [e for e in self._linked_group(entry) if e.status in ACTIVE_STATUSES]
            stored_reason = (
                f"Linked reservation cancelled: {reason}" if entry.linked_reservation_id else reason
            )
            self._conditioned_update([e.id for e in group], list(ACTIVE_STATUSES), {
                "status": WaitlistStatus.CANCELLED,
                "cancellation_reason": stored_reason,
                "cancelled_by": cancelled_by,
                "updated_at": now,
            })
            self._finish(entry.venue_id)
            return self.get_entry(entry_id)

        entry = self._with_retry("cancel", apply)
        logger.info(f"Entry {entry.id} cancelled by {cancelled_by.value}: {entry.cancellation_reason}")
        return entry

    def patron_cancel(self, entry_id: str, reason: str, now: datetime) -> WaitlistEntry:
        """Patron self-cancel. A cancel while ready stays on the staff board until acknowledged."""
        return self.cancel(entry_id, reason, now, cancelled_by=CancelledBy.PATRON)

    def mark_no_show(
        self,
        entry_id: str,
        reason: str,
        now: datetime,
        marked_by: CancelledBy = CancelledBy.VENUE,
    ) -> WaitlistEntry:
        now = to_utc_naive(now)
        reason = self._require_reason(reason, "mark a no-show")

        def apply() -> WaitlistEntry:
            entry = self.get_entry(entry_id)
            self._check_transition(entry, WaitlistStatus.NO_SHOW, "mark no-show")
            ids = [e.id for e in self._linked_group(entry) if e.status in ACTIVE_STATUSES]
            stored_reason = (
                f"Linked reservation no-show: {reason}" if entry.linked_reservation_id else reason
            )
            self._conditioned_update(ids, list(ACTIVE_STATUSES), {
                "status": WaitlistStatus.NO_SHOW,
                "cancellation_reason": stored_reason,
                "cancelled_by": marked_by,
                "updated_at": now,
            })
            self.estimator.record_no_show(ids)
            self._finish(entry.venue_id)
            return self.get_entry(entry_id)

        entry = self._with_retry("mark_no_show", apply)
        logger.info(f"Entry {entry.id} marked no-show: {entry.cancellation_reason}")
        return entry

    def extend_eta(self, entry_id: str, minutes: int, reason: str, now: datetime) -> WaitlistEntry:
        """Push a waiting entry's ETA back, bounded by the venue's maximum extension."""
        now = to_utc_naive(now)
        reason = self._require_reason(reason, "extend the wait")
        if minutes is None or minutes < 1:
            raise ValidationError("Extension must be at least 1 minute")

        def apply() -> WaitlistEntry:
            entry = self.get_entry(entry_id)
            if entry.status != WaitlistStatus.WAITING:
                raise InvalidTransition(entry.id, entry.status.value, "extend")
            max_extension = self.venues.get_venue(entry.venue_id).max_extension_time
            used = entry.extension_minutes_used
            if used + minutes > max_extension:
                raise ExtensionLimitExceeded(max_extension, used, minutes)

            self._conditioned_update([entry.id], [WaitlistStatus.WAITING], {
                "eta": entry.eta + timedelta(minutes=minutes),
                "notes": f"Extended: {reason}",
                "updated_at": now,
            }, expected_version=entry.version)
            self.db.commit()
            return self.get_entry(entry_id)

        entry = self._with_retry("extend_eta", apply)
        logger.info(
            f"Entry {entry.id} extended by {minutes}m "
            f"({entry.extension_minutes_used}m of allowance used)"
        )
        return entry

    def acknowledge_cancellation(self, entry_id: str, now: datetime) -> WaitlistEntry:
        """Staff dismiss a patron cancellation from their board. Status is unchanged."""
        now = to_utc_naive(now)

        def apply() -> WaitlistEntry:
            entry = self.get_entry(entry_id)
            if entry.status not in (WaitlistStatus.CANCELLED, WaitlistStatus.NO_SHOW):
                raise InvalidTransition(entry.id, entry.status.value, "acknowledge")
            if entry.merchant_acknowledged:
                return entry
            self._conditioned_update([entry.id], [entry.status], {
                "merchant_acknowledged": True,
                "updated_at": now,
            }, expected_version=entry.version)
            self.db.commit()
            return self.get_entry(entry_id)

        return self._with_retry("acknowledge_cancellation", apply)

    # ------------------------------------------------------------------
    # Patron actions
    # ------------------------------------------------------------------

    def patron_arrived(self, entry_id: str, now: datetime) -> WaitlistEntry:
        """Patron says they are at the venue; staff must confirm."""
        now = to_utc_naive(now)

        def apply() -> WaitlistEntry:
            entry = self.get_entry(entry_id)
            if entry.is_terminal:
                raise InvalidTransition(entry.id, entry.status.value, "check in")
            if entry.awaiting_merchant_confirmation:
                return entry
            self._conditioned_update([entry.id], [entry.status], {
                "awaiting_merchant_confirmation": True,
                "updated_at": now,
            }, expected_version=entry.version)
            self.db.commit()
            return self.get_entry(entry_id)

        entry = self._with_retry("patron_arrived", apply)
        logger.info(f"Entry {entry.id} patron reports arrival")
        return entry

    def patron_delay(self, entry_id: str, minutes: int, now: datetime) -> WaitlistEntry:
        """One-time grace extension requested by the patron while ready."""
        now = to_utc_naive(now)
        if minutes is None or not 1 <= minutes <= settings.patron_delay_max_minutes:
            raise ValidationError(
                f"Delay must be between 1 and {settings.patron_delay_max_minutes} minutes"
            )

        def apply() -> WaitlistEntry:
            entry = self.get_entry(entry_id)
            if entry.status != WaitlistStatus.READY:
                raise InvalidTransition(entry.id, entry.status.value, "delay")
            if entry.patron_delayed:
                raise PolicyViolation("A delay has already been requested for this entry")
            delayed_until = now + timedelta(minutes=minutes)
            deadline = max(entry.ready_deadline, delayed_until) if entry.ready_deadline else delayed_until
            self._conditioned_update([entry.id], [WaitlistStatus.READY], {
                "patron_delayed": True,
                "delayed_until": delayed_until,
                "ready_deadline": deadline,
                "updated_at": now,
            }, expected_version=entry.version)
            self.db.commit()
            return self.get_entry(entry_id)

        entry = self._with_retry("patron_delay", apply)
        logger.info(f"Entry {entry.id} delayed until {entry.delayed_until.isoformat()}")
        return entry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_queue(self, venue_id: int) -> List[WaitlistEntry]:
        """Active entries in operational order."""
        self.venues.get_venue(venue_id)
        entries = self.db.query(WaitlistEntry).filter(
            WaitlistEntry.venue_id == venue_id,
            WaitlistEntry.status.in_(ACTIVE_STATUSES),
        ).all()
        return sorted(entries, key=queue_sort_key)

    def get_staff_queue(self, venue_id: int) -> List[WaitlistEntry]:
        """What the staff board shows, including patron cancels awaiting acknowledgement."""
        self.venues.get_venue(venue_id)
        entries = self.db.query(WaitlistEntry).filter(
            WaitlistEntry.venue_id == venue_id,
            WaitlistEntry.merchant_acknowledged.is_(False),
            WaitlistEntry.status.in_(list(ACTIVE_STATUSES) + [WaitlistStatus.CANCELLED]),
        ).all()
        return sorted((e for e in entries if is_visible_to_staff(e)), key=queue_sort_key)

    def get_upcoming_reservations(
        self,
        venue_id: int,
        now: datetime,
        within_minutes: Optional[int] = None,
    ) -> List[WaitlistEntry]:
        """Waiting reservations due within the next *within_minutes*."""
        now = to_utc_naive(now)
        window = timedelta(minutes=within_minutes or settings.upcoming_window_minutes)
        self.venues.get_venue(venue_id)
        return self.db.query(WaitlistEntry).filter(
            WaitlistEntry.venue_id == venue_id,
            WaitlistEntry.reservation_type == ReservationType.RESERVATION,
            WaitlistEntry.status == WaitlistStatus.WAITING,
            WaitlistEntry.reservation_time >= now,
            WaitlistEntry.reservation_time <= now + window,
        ).order_by(WaitlistEntry.reservation_time, WaitlistEntry.id).all()

    def get_waitlist_stats(self, venue_id: int, now: datetime) -> Dict[str, Any]:
        now = to_utc_naive(now)
        venue = self.venues.get_venue(venue_id)
        local_midnight = to_venue_local(now, venue.timezone).replace(hour=0, minute=0, second=0, microsecond=0)
        day_start = from_venue_local(local_midnight, venue.timezone)

        waiting = self.db.query(WaitlistEntry).filter(
            WaitlistEntry.venue_id == venue_id,
            WaitlistEntry.status == WaitlistStatus.WAITING,
            WaitlistEntry.reservation_type == ReservationType.WAITLIST,
        ).all()
        ready_count = self.db.query(func.count(WaitlistEntry.id)).filter(
            WaitlistEntry.venue_id == venue_id,
            WaitlistEntry.status == WaitlistStatus.READY,
        ).scalar() or 0

        def count_today(status: WaitlistStatus) -> int:
            return self.db.query(func.count(WaitlistEntry.id)).filter(
                WaitlistEntry.venue_id == venue_id,
                WaitlistEntry.status == status,
                WaitlistEntry.updated_at >= day_start,
            ).scalar() or 0

        quoted = [(e.original_eta - e.created_at).total_seconds() / 60 for e in waiting]
        waited = [(now - e.created_at).total_seconds() / 60 for e in waiting]

        return {
            "total_waiting": len(waiting),
            "total_ready": ready_count,
            "avg_quoted_wait": round(sum(quoted) / len(quoted)) if quoted else 0,
            "current_longest_wait": round(max(waited)) if waited else 0,
            "seated_today": count_today(WaitlistStatus.SEATED),
            "no_shows_today": count_today(WaitlistStatus.NO_SHOW),
            "cancelled_today": count_today(WaitlistStatus.CANCELLED),
        }
