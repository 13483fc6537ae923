"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

waitlist_status = sa.Enum("WAITING", "READY", "SEATED", "CANCELLED", "NO_SHOW", name="waitliststatus")
reservation_type = sa.Enum("WAITLIST", "RESERVATION", name="reservationtype")
cancelled_by = sa.Enum("PATRON", "VENUE", "SYSTEM", name="cancelledby")


def upgrade() -> None:
    # Venues
    op.create_table(
        "venues",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_venues_id", "venues", ["id"])

    # Table inventory
    op.create_table(
        "venue_tables",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("venue_id", sa.Integer(), sa.ForeignKey("venues.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", "venue_id"),
        sa.CheckConstraint("capacity >= 1", name="ck_venue_tables_capacity"),
    )

    # Waitlist entries
    op.create_table(
        "waitlist_entries",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("venue_id", sa.Integer(), sa.ForeignKey("venues.id"), nullable=False),
        sa.Column("customer_name", sa.String(200), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("preferences", sa.JSON(), nullable=False),
        sa.Column("reservation_type", reservation_type, nullable=False),
        sa.Column("reservation_time", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("eta", sa.DateTime(), nullable=False),
        sa.Column("original_eta", sa.DateTime(), nullable=False),
        sa.Column("ready_at", sa.DateTime(), nullable=True),
        sa.Column("ready_deadline", sa.DateTime(), nullable=True),
        sa.Column("seated_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("status", waitlist_status, nullable=False),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("confidence", sa.String(10), nullable=True),
        sa.Column("awaiting_merchant_confirmation", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("patron_delayed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("delayed_until", sa.DateTime(), nullable=True),
        sa.Column("merchant_acknowledged", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_by", cancelled_by, nullable=True),
        sa.Column("assigned_table_id", sa.String(64), nullable=True),
        sa.Column("linked_reservation_id", sa.String(36), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.CheckConstraint("party_size >= 1", name="ck_waitlist_entries_party_size"),
    )
    op.create_index("ix_waitlist_entries_venue_id", "waitlist_entries", ["venue_id"])
    op.create_index("ix_waitlist_entries_user_id", "waitlist_entries", ["user_id"])
    op.create_index("ix_waitlist_entries_linked_reservation_id", "waitlist_entries", ["linked_reservation_id"])
    op.create_index("ix_waitlist_entries_venue_status", "waitlist_entries", ["venue_id", "status"])
    op.create_index("ix_waitlist_entries_ready_deadline", "waitlist_entries", ["status", "ready_deadline"])

    # Estimator history
    op.create_table(
        "waitlist_analytics",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("venue_id", sa.Integer(), sa.ForeignKey("venues.id"), nullable=False),
        sa.Column("waitlist_entry_id", sa.String(36), sa.ForeignKey("waitlist_entries.id"), nullable=False, unique=True),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
        sa.Column("ready_at", sa.DateTime(), nullable=True),
        sa.Column("seated_at", sa.DateTime(), nullable=True),
        sa.Column("quoted_wait_time", sa.Integer(), nullable=True),
        sa.Column("actual_wait_time", sa.Integer(), nullable=True),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("hour_of_day", sa.Integer(), nullable=False),
        sa.Column("party_size", sa.Integer(), nullable=False),
        sa.Column("was_no_show", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_waitlist_analytics_bucket", "waitlist_analytics", ["venue_id", "day_of_week", "hour_of_day"])

    op.create_table(
        "order_analytics",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("venue_id", sa.Integer(), sa.ForeignKey("venues.id"), nullable=False),
        sa.Column("order_ref", sa.String(64), nullable=True),
        sa.Column("placed_at", sa.DateTime(), nullable=False),
        sa.Column("ready_at", sa.DateTime(), nullable=True),
        sa.Column("actual_prep_time", sa.Integer(), nullable=True),
        sa.Column("items_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("hour_of_day", sa.Integer(), nullable=False),
    )
    op.create_index("ix_order_analytics_bucket", "order_analytics", ["venue_id", "day_of_week", "hour_of_day"])

    op.create_table(
        "venue_capacity_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("venue_id", sa.Integer(), sa.ForeignKey("venues.id"), nullable=False),
        sa.Column("snapshot_time", sa.DateTime(), nullable=False),
        sa.Column("current_orders", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_waitlist", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("tables_occupied", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("hour_of_day", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(20), nullable=True),
    )
    op.create_index("ix_capacity_snapshots_bucket", "venue_capacity_snapshots", ["venue_id", "day_of_week", "hour_of_day"])


def downgrade() -> None:
    op.drop_table("venue_capacity_snapshots")
    op.drop_table("order_analytics")
    op.drop_table("waitlist_analytics")
    op.drop_table("waitlist_entries")
    op.drop_table("venue_tables")
    op.drop_table("venues")
    cancelled_by.drop(op.get_bind(), checkfirst=True)
    reservation_type.drop(op.get_bind(), checkfirst=True)
    waitlist_status.drop(op.get_bind(), checkfirst=True)
