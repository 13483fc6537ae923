"""Venue and table inventory models."""

from typing import Any, Dict

from sqlalchemy import Column, Integer, String, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import relationship

from tableready.core.config import settings as app_settings
from tableready.db.base import Base, TimestampMixin


class Venue(TimestampMixin, Base):
    """A restaurant taking waitlist joins and reservations.

    ``settings`` holds the availability configuration (``business_hours``,
    ``holiday_closures``, ``grace_periods``) plus ``max_extension_time`` and
    ``default_prep_time``.
    """
    __tablename__ = "venues"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    timezone = Column(String(64), nullable=False, default=lambda: app_settings.timezone)
    settings = Column(JSON, nullable=False, default=dict)

    tables = relationship(
        "VenueTable",
        back_populates="venue",
        cascade="all, delete-orphan",
        order_by="VenueTable.id",
    )

    @property
    def config(self) -> Dict[str, Any]:
        return self.settings or {}

    @property
    def max_extension_time(self) -> int:
        return int(self.config.get("max_extension_time") or app_settings.max_extension_minutes)

    @property
    def default_prep_time(self) -> int:
        return int(self.config.get("default_prep_time") or app_settings.default_prep_minutes)


class VenueTable(TimestampMixin, Base):
    """A physical table, identified by id within its venue."""
    __tablename__ = "venue_tables"
    __table_args__ = (CheckConstraint("capacity >= 1", name="ck_venue_tables_capacity"),)

    id = Column(String(64), primary_key=True)
    venue_id = Column(Integer, ForeignKey("venues.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False)

    venue = relationship("Venue", back_populates="tables")

    def to_config(self):
        from tableready.services.table_matcher import TableConfig
        return TableConfig(id=self.id, name=self.name, capacity=self.capacity)
