"""Historical aggregates read by the wait/prep time estimator."""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Index

from tableready.db.base import Base


class WaitlistAnalytics(Base):
    """One row per waitlist entry, filled in as the entry moves through its lifecycle."""
    __tablename__ = "waitlist_analytics"
    __table_args__ = (
        Index("ix_waitlist_analytics_bucket", "venue_id", "day_of_week", "hour_of_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False)
    waitlist_entry_id = Column(String(36), ForeignKey("waitlist_entries.id"), nullable=False, unique=True)

    joined_at = Column(DateTime, nullable=False)
    ready_at = Column(DateTime, nullable=True)
    seated_at = Column(DateTime, nullable=True)

    quoted_wait_time = Column(Integer, nullable=True)  # minutes
    actual_wait_time = Column(Integer, nullable=True)  # minutes, join → ready

    day_of_week = Column(Integer, nullable=False)  # 0 = Monday
    hour_of_day = Column(Integer, nullable=False)
    party_size = Column(Integer, nullable=False)
    was_no_show = Column(Boolean, nullable=False, default=False)


class OrderAnalytics(Base):
    """Completed food orders with their measured preparation time."""
    __tablename__ = "order_analytics"
    __table_args__ = (
        Index("ix_order_analytics_bucket", "venue_id", "day_of_week", "hour_of_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False)
    order_ref = Column(String(64), nullable=True)

    placed_at = Column(DateTime, nullable=False)
    ready_at = Column(DateTime, nullable=True)
    actual_prep_time = Column(Integer, nullable=True)  # minutes
    items_count = Column(Integer, nullable=False, default=1)

    day_of_week = Column(Integer, nullable=False)
    hour_of_day = Column(Integer, nullable=False)


class VenueCapacitySnapshot(Base):
    """Periodic load sample used as the busy baseline."""
    __tablename__ = "venue_capacity_snapshots"
    __table_args__ = (
        Index("ix_capacity_snapshots_bucket", "venue_id", "day_of_week", "hour_of_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    venue_id = Column(Integer, ForeignKey("venues.id"), nullable=False)
    snapshot_time = Column(DateTime, nullable=False)
    current_orders = Column(Integer, nullable=False, default=0)
    current_waitlist = Column(Integer, nullable=False, default=0)
    tables_occupied = Column(Integer, nullable=False, default=0)
    day_of_week = Column(Integer, nullable=False)
    hour_of_day = Column(Integer, nullable=False)
    source = Column(String(20), nullable=True)
