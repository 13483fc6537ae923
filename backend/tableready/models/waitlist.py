"""Waitlist entry model: one walk-in or reservation tracked from join to seating."""

import uuid
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Boolean, ForeignKey, JSON, Index,
    CheckConstraint, Enum as SQLEnum,
)

from tableready.db.base import Base, VersionMixin


class WaitlistStatus(str, Enum):
    WAITING = "waiting"
    READY = "ready"
    SEATED = "seated"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


TERMINAL_STATUSES = (WaitlistStatus.SEATED, WaitlistStatus.CANCELLED, WaitlistStatus.NO_SHOW)
ACTIVE_STATUSES = (WaitlistStatus.WAITING, WaitlistStatus.READY)


class ReservationType(str, Enum):
    WAITLIST = "waitlist"
    RESERVATION = "reservation"


class CancelledBy(str, Enum):
    PATRON = "patron"
    VENUE = "venue"
    SYSTEM = "system"


def _new_id() -> str:
    return str(uuid.uuid4())


class WaitlistEntry(VersionMixin, Base):
    """A walk-in or reservation moving through waiting → ready → seated."""
    __tablename__ = "waitlist_entries"
    __table_args__ = (
        CheckConstraint("party_size >= 1", name="ck_waitlist_entries_party_size"),
        Index("ix_waitlist_entries_venue_status", "venue_id", "status"),
        Index("ix_waitlist_entries_ready_deadline", "status", "ready_deadline"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False, index=True)

    # Party
    customer_name = Column(String(200), nullable=False)
    customer_phone = Column(String(50), nullable=True)
    user_id = Column(String(64), nullable=True, index=True)
    party_size = Column(Integer, nullable=False)
    preferences = Column(JSON, nullable=False, default=list)

    # Classification
    reservation_type = Column(SQLEnum(ReservationType), nullable=False, default=ReservationType.WAITLIST)
    reservation_time = Column(DateTime, nullable=True)

    # Timing (naive UTC)
    created_at = Column(DateTime, nullable=False)
    eta = Column(DateTime, nullable=False)
    original_eta = Column(DateTime, nullable=False)
    ready_at = Column(DateTime, nullable=True)
    ready_deadline = Column(DateTime, nullable=True)
    seated_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=False)

    status = Column(SQLEnum(WaitlistStatus), nullable=False, default=WaitlistStatus.WAITING)
    position = Column(Integer, nullable=True)
    confidence = Column(String(10), nullable=True)

    # Confirmation flags
    awaiting_merchant_confirmation = Column(Boolean, nullable=False, default=False)
    patron_delayed = Column(Boolean, nullable=False, default=False)
    delayed_until = Column(DateTime, nullable=True)
    merchant_acknowledged = Column(Boolean, nullable=False, default=False)

    # Cancellation
    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(SQLEnum(CancelledBy), nullable=True)

    # Linkage
    assigned_table_id = Column(String(64), nullable=True)
    linked_reservation_id = Column(String(36), nullable=True, index=True)

    notes = Column(Text, nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def needs_acknowledgement(self) -> bool:
        """Patron cancelled while staff were servicing the entry."""
        return (
            self.status == WaitlistStatus.CANCELLED
            and self.cancelled_by == CancelledBy.PATRON
            and self.ready_at is not None
            and not self.merchant_acknowledged
        )

    @property
    def extension_minutes_used(self) -> int:
        return int((self.eta - self.original_eta).total_seconds() // 60)

    def __repr__(self) -> str:
        return f"<WaitlistEntry {self.id} {self.status.value if self.status else None} party={self.party_size}>"
